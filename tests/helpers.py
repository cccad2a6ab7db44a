"""
Fakes and builders shared by the test modules.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from app.core.exceptions import CollaboratorError
from app.models.user import GeoPoint
from app.schemas.message import DeliveryResult
from app.schemas.webhook import InboundEvent
from app.services.ai_service import Classification
from app.services.authority_service import AuthorityClient, AuthorityInvoice

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
USER = "whatsapp:+263771234567"
OTHER_USER = "whatsapp:+263772222222"
AUTHORITY_URL = "https://fdms.zimra.co.zw/Receipt/Result?deviceId=1&receiptNo=77"
DURABLE_URL = "https://files.example.com/receipts/abc.jpg"

RECEIPT_TEXT = """UCF FERTILIZERS
Farm & City
Invoice: INV-001
Date: 2025-03-01
Product: Compound D
Total 45.00"""

RECEIPT_FIELDS = {
    "retailer_name": "Farm & City",
    "invoice_number": "INV-001",
    "purchase_date": "2025-03-01",
    "total_amount": "45.00",
    "currency": "USD",
    "products": ["Compound D"],
}

# The same purchase as RECEIPT_TEXT, as the tax authority prints it
AUTHORITY_FIELDS = {
    "is_valid": True,
    "taxpayer_name": "Farm and City Centre (Pvt) Ltd",
    "trade_name": "Farm & City",
    "invoice_number": "INV-001",
    "invoice_date": "01/03/2025 10:15:00",
    "invoice_total": "45",
}


def authority_invoice(**overrides) -> AuthorityInvoice:
    return AuthorityInvoice(**dict(AUTHORITY_FIELDS, **overrides))


SEED = {
    "retailers": [
        {"name": "Farm & City", "full_name": "Farm and City Centre"},
        {"name": "Agricura", "full_name": "Agricura Pvt Ltd"},
    ],
    "products": [
        {
            "name": "Compound D",
            "npk": "7-14-7",
            "description": "Basal fertilizer for maize and tobacco",
            "crop_usage": ["maize", "tobacco"],
        },
        {
            "name": "Ammonium Nitrate",
            "npk": "34.5-0-0",
            "description": "Top dressing for cereals",
            "crop_usage": ["maize", "wheat"],
        },
    ],
    "pdfs": [
        {
            "title": "Maize Production Guide",
            "description": "From land prep to harvest",
            "pages": 24,
            "size": "2.1 MB",
            "category": "Cereals",
            "url": "https://files.example.com/guides/maize.pdf",
        },
    ],
    "shops": [
        {"name": "Bulawayo Farm Supplies", "address": "Fife St", "latitude": -20.15, "longitude": 28.58},
        {"name": "Harare Agro Centre", "address": "Robert Mugabe Rd", "latitude": -17.8292, "longitude": 31.0522},
        {"name": "Broken Shop", "address": "Nowhere"},
    ],
}


class FakeTransport:
    """Records sends; raises queued failures first."""

    def __init__(self, failures: Optional[List[Exception]] = None):
        self.sent = []
        self.calls = 0
        self.failures = list(failures or [])

    async def send_message(self, to, body, media_url=None):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        self.sent.append((to, body, media_url))
        return DeliveryResult(message_sid=f"SM{len(self.sent)}", status="queued")

    def bodies_to(self, target):
        return [body for to, body, _ in self.sent if to == target]


class FakeFetcher:
    def __init__(self, content: bytes = b"\xff\xd8fake-jpeg", error: Optional[Exception] = None):
        self.content = content
        self.error = error
        self.urls = []

    async def download_media(self, media_url):
        self.urls.append(media_url)
        if self.error:
            raise self.error
        return self.content


class FakeUploader:
    def __init__(self, url: Optional[str] = DURABLE_URL, error: Optional[Exception] = None):
        self.url = url
        self.error = error

    def is_configured(self):
        return True

    async def upload(self, local_path, meta=None):
        if self.error:
            raise self.error
        return self.url


class FakeDecoder:
    def __init__(self, payload: Optional[str] = None):
        self.payload = payload

    def decode(self, image_path):
        return self.payload


class FakeAuthority(AuthorityClient):
    def __init__(self, invoice: Optional[AuthorityInvoice] = None, error: Optional[Exception] = None):
        super().__init__()
        self.invoice = invoice
        self.error = error
        self.lookups = []

    async def lookup(self, url):
        self.lookups.append(url)
        if self.error:
            raise self.error
        return self.invoice


class FakeAI:
    def __init__(self):
        self.text = RECEIPT_TEXT
        self.fields = dict(RECEIPT_FIELDS)
        self.classification = Classification(
            label="Leaf Rust",
            confidence=0.9,
            narrative="🌾 UCF Crop Diagnosis\n\nIssue Detected: Leaf Rust\nAI Confidence: 90%",
        )
        self.answer_text = "Compound D is a basal fertilizer."
        self.extract_error: Optional[Exception] = None
        self.answer_error: Optional[Exception] = None
        self.classify_error: Optional[Exception] = None
        self.questions = []
        self.classified = []

    async def extract_text(self, image_path):
        if self.extract_error:
            raise self.extract_error
        return self.text

    async def analyze_receipt_text(self, raw_text):
        if not self.fields:
            raise CollaboratorError("Receipt analysis returned no JSON")
        return dict(self.fields)

    async def classify(self, image_path, context="crop", catalog=""):
        self.classified.append((image_path, context))
        if self.classify_error:
            raise self.classify_error
        return self.classification

    async def answer(self, question, context=""):
        self.questions.append((question, context))
        if self.answer_error:
            raise self.answer_error
        return self.answer_text


def text_event(text: str, identity: str = USER) -> InboundEvent:
    return InboundEvent(identity=identity, text=text, received_at=NOW)


def image_event(identity: str = USER, media_type: str = "image/jpeg", text: str = "") -> InboundEvent:
    return InboundEvent(
        identity=identity,
        text=text,
        has_media=True,
        media_url="https://api.twilio.com/2010-04-01/Accounts/AC1/Messages/MM1/Media/ME1",
        media_type=media_type,
        received_at=NOW,
    )


def location_event(latitude: float, longitude: float, identity: str = USER) -> InboundEvent:
    return InboundEvent(identity=identity, location=GeoPoint(latitude=latitude, longitude=longitude), received_at=NOW)


async def make_premium(store, identity: str = USER, name: Optional[str] = "Tendai", days: int = 10, **fields):
    record = {"name": name, "is_premium": True, "premium_expiry_date": NOW + timedelta(days=days)}
    record.update(fields)
    await store.upsert("users", {"phone": identity}, record)


async def make_user(store, identity: str = USER, name: Optional[str] = "Tendai", **fields):
    record = {"name": name, "is_premium": False}
    record.update(fields)
    await store.upsert("users", {"phone": identity}, record)

