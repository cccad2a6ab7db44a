import os

# Settings are read at import time
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
from tenacity import wait_none

from app.db.store import MemoryRecordStore
from app.flow.context import build_services
from app.flow.dispatcher import Dispatcher
from app.models.attachment import Attachment
from app.services.catalog_service import CatalogService
from app.services.channel_sender import ChannelSender
from app.services.document_pipeline import DocumentIntakePipeline
from app.services.entitlement_service import EntitlementManager
from app.services.media_service import TransientMediaStore
from app.services.receipt_ledger import ReceiptLedger
from app.services.session_service import SessionStore
from app.services.user_service import UserService
from app.services.verification_service import ReceiptVerifier
from helpers import (
    AUTHORITY_URL,
    SEED,
    FakeAI,
    FakeAuthority,
    FakeDecoder,
    FakeFetcher,
    FakeTransport,
    FakeUploader,
    authority_invoice,
)


@pytest.fixture
def store():
    return MemoryRecordStore(SEED)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def sender(transport):
    return ChannelSender(transport, wait=wait_none())


@pytest.fixture
def ai():
    return FakeAI()


@pytest.fixture
def decoder():
    return FakeDecoder(AUTHORITY_URL)


@pytest.fixture
def authority():
    return FakeAuthority(authority_invoice())


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def media(fetcher, tmp_path):
    return TransientMediaStore(fetcher, FakeUploader(), temp_dir=str(tmp_path / "media"))


@pytest.fixture
def catalog(store):
    return CatalogService(store)


@pytest.fixture
def pipeline(decoder, authority, ai, catalog):
    return DocumentIntakePipeline(decoder, authority, ai, catalog)


@pytest.fixture
def users(store):
    return UserService(store)


@pytest.fixture
def entitlements(users):
    return EntitlementManager(users, duration_days=30)


@pytest.fixture
def ledger(store):
    return ReceiptLedger(store)


@pytest.fixture
def verifier(pipeline, ledger, entitlements, sender):
    return ReceiptVerifier(pipeline, ledger, entitlements, sender)


@pytest.fixture
def attachment(tmp_path):
    path = tmp_path / "receipt.jpg"
    path.write_bytes(b"\xff\xd8fake-jpeg")
    return Attachment(path=str(path), media_type="image/jpeg", source_url="https://api.twilio.com/media/1")


@pytest.fixture
def services(store, sender, ai, media, pipeline):
    return build_services(
        store=store,
        sender=sender,
        ai=ai,
        media=media,
        pipeline=pipeline,
        sessions=SessionStore(idle_hours=24),
    )


@pytest.fixture
def dispatcher(services):
    return Dispatcher(services)
