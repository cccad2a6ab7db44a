"""
app/models/user.py

Purpose: User document model

- WhatsApp identity (the `phone` key is the full channel address)
- Onboarding details (name, typed phone number, email)
- Premium entitlement fields
- Last shared location and calculator inputs
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from utils.time_utils import utcnow


class GeoPoint(BaseModel):
    latitude: float
    longitude: float


class CalculatorRecord(BaseModel):
    """Last fertilizer calculator inputs."""
    plant_type: Optional[str] = None
    target_yield: Optional[float] = None
    soil_analysis_status: Optional[str] = None
    last_calculation: Optional[datetime] = None


class UserProfile(BaseModel):
    """
    Stored in the `users` collection, keyed by `phone`.

    Invariant: is_premium implies premium_expiry_date is set.
    """
    phone: str = Field(..., description="Opaque channel identity, e.g. whatsapp:+263...")
    name: Optional[str] = None
    phone_numeric: Optional[str] = Field(default=None, description="Number typed during onboarding")
    email: Optional[str] = None
    is_premium: bool = False
    premium_expiry_date: Optional[datetime] = None
    location: Optional[GeoPoint] = None
    receipt_image_url: Optional[str] = None
    calculator_data: Optional[CalculatorRecord] = None
    created_at: datetime = Field(default_factory=utcnow)
    last_interaction: datetime = Field(default_factory=utcnow)

    @property
    def display_name(self) -> str:
        return self.name or "there"

    def to_record(self) -> dict:
        return self.model_dump(mode="python")
