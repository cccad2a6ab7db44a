"""
app/schemas/response.py

Purpose: JSON bodies returned by the HTTP surface (errors and health checks)
"""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None


class ServiceInfo(BaseModel):
    name: str = "AgriBot API"
    version: str
    description: str = "WhatsApp agronomy assistant"
    status: str = "running"
    environment: str


class HealthReport(BaseModel):
    status: str = Field("healthy", description="healthy, degraded or unhealthy")
    timestamp: float
    environment: str
    version: str
    checks: Dict[str, Union[str, int]] = Field(default_factory=dict)

    @property
    def http_status(self) -> int:
        return 200 if self.status == "healthy" else 503
