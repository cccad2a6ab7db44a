from typing import Optional, Any

class AgriBotError(Exception):
    """
    Base exception for AgriBot application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ResourceNotFoundError(AgriBotError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class ValidationError(AgriBotError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)

class ExternalServiceError(AgriBotError):
    """
    Raised when an external service (e.g., Twilio, OpenAI, ZIMRA) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)

class CollaboratorError(ExternalServiceError):
    """
    Raised when a receipt collaborator (code decoder, authority, AI, upload) fails.
    """
    def __init__(self, message: str = "Collaborator failed", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "COLLABORATOR_ERROR"

class CollaboratorTimeout(CollaboratorError):
    """
    Raised when a collaborator does not answer within its timeout.
    """
    def __init__(self, message: str = "Collaborator timed out", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "COLLABORATOR_TIMEOUT"
        self.status_code = 504

class DeliveryError(ExternalServiceError):
    """
    Raised when an outbound message is rejected by the channel.
    Not retried.
    """
    def __init__(self, message: str = "Message delivery failed", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "DELIVERY_FAILED"

class TransientDeliveryError(DeliveryError):
    """
    Raised for delivery failures worth retrying (timeouts, transport errors, 429, 5xx).
    """
    def __init__(self, message: str = "Transient delivery failure", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "DELIVERY_TRANSIENT"
