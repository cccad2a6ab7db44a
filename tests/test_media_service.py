import os
import time

import pytest

from app.core.exceptions import CollaboratorError
from app.services.media_service import TransientMediaStore
from helpers import DURABLE_URL, FakeFetcher, FakeUploader

MEDIA_URL = "https://api.twilio.com/media/ME1"


async def test_attachment_exists_only_inside_block(media, tmp_path):
    async with media.acquire(MEDIA_URL, "image/jpeg", folder="receipts") as attachment:
        assert os.path.exists(attachment.path)
        assert attachment.path.endswith(".jpg")
        assert attachment.durable_url == DURABLE_URL
        with open(attachment.path, "rb") as fh:
            assert fh.read() == b"\xff\xd8fake-jpeg"
        path = attachment.path

    assert not os.path.exists(path)


async def test_file_is_removed_when_block_raises(media):
    with pytest.raises(RuntimeError):
        async with media.acquire(MEDIA_URL, "image/png") as attachment:
            path = attachment.path
            raise RuntimeError("classifier crashed")

    assert not os.path.exists(path)


async def test_download_failure_leaves_nothing(tmp_path):
    store = TransientMediaStore(FakeFetcher(error=CollaboratorError("404")), FakeUploader(), temp_dir=str(tmp_path))

    with pytest.raises(CollaboratorError):
        async with store.acquire(MEDIA_URL, "image/jpeg"):
            pass
    assert os.listdir(tmp_path) == []


async def test_upload_failure_is_not_fatal(tmp_path):
    uploader = FakeUploader(error=CollaboratorError("bucket unavailable"))
    store = TransientMediaStore(FakeFetcher(), uploader, temp_dir=str(tmp_path))

    async with store.acquire(MEDIA_URL, "image/jpeg") as attachment:
        assert attachment.durable_url is None


async def test_upload_can_be_skipped(tmp_path):
    store = TransientMediaStore(FakeFetcher(), FakeUploader(), temp_dir=str(tmp_path))
    async with store.acquire(MEDIA_URL, "image/jpeg", upload=False) as attachment:
        assert attachment.durable_url is None


def test_purge_stale_removes_old_files_only(tmp_path):
    old = tmp_path / "old.jpg"
    fresh = tmp_path / "fresh.jpg"
    old.write_bytes(b"x")
    fresh.write_bytes(b"x")
    an_hour_ago = time.time() - 3600
    os.utime(old, (an_hour_ago, an_hour_ago))

    store = TransientMediaStore(FakeFetcher(), temp_dir=str(tmp_path))
    assert store.purge_stale(max_age_seconds=120) == 1
    assert not old.exists()
    assert fresh.exists()


def test_purge_stale_without_directory(tmp_path):
    store = TransientMediaStore(FakeFetcher(), temp_dir=str(tmp_path / "missing"))
    assert store.purge_stale() == 0
