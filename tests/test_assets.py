"""Proof image uploads."""

import asyncio

import pytest
import requests

from lifesync import assets
from lifesync.assets import AssetHost
from lifesync.errors import UploadError


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    def json(self):
        return self._payload


@pytest.fixture
def host():
    return AssetHost("https://upload.example.com/image/upload", "unsigned", max_bytes=1024)


def test_rejects_large_files_before_network(host, monkeypatch):
    monkeypatch.setattr(assets.requests, "post", lambda *a, **k: pytest.fail("network used"))

    with pytest.raises(UploadError):
        asyncio.run(host.upload(b"x" * 1025, "big.png", "image/png"))


@pytest.mark.parametrize("content_type", ["image/gif", "application/pdf", "image/webp"])
def test_rejects_other_types(host, content_type):
    with pytest.raises(UploadError, match="Invalid file type"):
        host.validate(b"x", content_type)


@pytest.mark.parametrize("content_type", ["image/jpeg", "image/jpg", "image/png"])
def test_accepts_jpeg_and_png(host, content_type):
    host.validate(b"x" * 1024, content_type)


def test_upload_returns_secure_url(host, monkeypatch):
    calls = []

    def fake_post(url, files, data, timeout):
        calls.append((url, files["file"][0], data))
        return FakeResponse(200, {"secure_url": "https://cdn.example.com/a.png"})

    monkeypatch.setattr(assets.requests, "post", fake_post)

    url = asyncio.run(host.upload(b"\x89PNG", "a.png", "image/png"))

    assert url == "https://cdn.example.com/a.png"
    assert calls == [("https://upload.example.com/image/upload", "a.png", {"upload_preset": "unsigned"})]


def test_host_error_message_is_surfaced(host, monkeypatch):
    monkeypatch.setattr(
        assets.requests,
        "post",
        lambda *a, **k: FakeResponse(400, {"error": {"message": "Upload preset not found"}}),
    )

    with pytest.raises(UploadError, match="Upload preset not found"):
        asyncio.run(host.upload(b"\x89PNG", "a.png", "image/png"))


def test_network_error_becomes_upload_error(host, monkeypatch):
    def fail(*args, **kwargs):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(assets.requests, "post", fail)

    with pytest.raises(UploadError):
        asyncio.run(host.upload(b"\x89PNG", "a.png", "image/png"))
