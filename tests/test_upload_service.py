import httpx
import pytest

from app.core.config import settings
from app.core.exceptions import CollaboratorError
from app.services.media_service import TransientMediaStore
from app.services.upload_service import UploadService
from helpers import FakeFetcher

UPLOAD_URL = "https://files.example.com/upload"
MEDIA_URL = "https://api.twilio.com/media/ME1"


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_URL", UPLOAD_URL)
    monkeypatch.setattr(settings, "UPLOAD_API_KEY", "secret")


def uploader(handler):
    return UploadService(transport=httpx.MockTransport(handler))


async def test_upload_returns_url(configured, attachment):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"secure_url": "https://files.example.com/r.jpg"})

    url = await uploader(handler).upload(attachment.path, {"content_type": "image/jpeg"})

    assert url == "https://files.example.com/r.jpg"
    assert seen[0].headers["authorization"] == "Bearer secret"


async def test_non_object_response_is_a_collaborator_error(configured, attachment):
    service = uploader(lambda request: httpx.Response(200, json=["https://files.example.com/r.jpg"]))

    with pytest.raises(CollaboratorError, match="not a JSON object"):
        await service.upload(attachment.path)


async def test_response_without_url(configured, attachment):
    service = uploader(lambda request: httpx.Response(200, json={"id": "abc"}))

    with pytest.raises(CollaboratorError, match="did not include a URL"):
        await service.upload(attachment.path)


async def test_unconfigured_upload_is_refused(monkeypatch, attachment):
    monkeypatch.setattr(settings, "UPLOAD_URL", None)

    with pytest.raises(CollaboratorError, match="not configured"):
        await UploadService().upload(attachment.path)


async def test_malformed_upload_does_not_block_the_attachment(configured, tmp_path):
    service = uploader(lambda request: httpx.Response(200, json=[]))
    store = TransientMediaStore(FakeFetcher(), service, temp_dir=str(tmp_path))

    async with store.acquire(MEDIA_URL, "image/jpeg") as attachment:
        assert attachment.durable_url is None
