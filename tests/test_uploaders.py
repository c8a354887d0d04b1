"""
Tests for the attachment uploaders.

Dropbox runs against httpx.MockTransport; Cloudinary's SDK call is
monkeypatched. No request leaves the process.
"""

import json

import cloudinary.exceptions
import cloudinary.uploader
import httpx
import pytest

from finance_tracker.config import CloudinarySettings, DropboxSettings
from finance_tracker.models.transaction import Attachment
from finance_tracker.services.upload import (
    CloudinaryUploader,
    DropboxUploader,
    UploadError,
    UploadFailureReason,
    to_attachment_url,
    to_direct_download_url,
)
from finance_tracker.services.upload.dropbox_service import (
    CONTENT_URL,
    CREATE_LINK_URL,
    LIST_LINKS_URL,
)


@pytest.fixture
def dropbox_settings():
    return DropboxSettings(access_token="test-token", upload_folder="receipts/")


@pytest.fixture
def attachment():
    return Attachment(filename="receipt.pdf", content=b"%PDF-1.4", mime_type="application/pdf")


def dropbox_uploader(settings, handler, seen):
    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return DropboxUploader(settings, client=client)


class TestDirectDownloadUrl:
    """Tests for link rewriting."""

    @pytest.mark.parametrize("url, expected", [
        ("https://www.dropbox.com/s/abc/r.pdf?dl=0", "https://www.dropbox.com/s/abc/r.pdf?dl=1"),
        ("https://www.dropbox.com/scl/fi/abc/r.pdf?rlkey=k&dl=0", "https://www.dropbox.com/scl/fi/abc/r.pdf?rlkey=k&dl=1"),
        ("https://www.dropbox.com/s/abc/r.pdf", "https://www.dropbox.com/s/abc/r.pdf?dl=1"),
        ("https://www.dropbox.com/s/abc/r.pdf?dl=1", "https://www.dropbox.com/s/abc/r.pdf?dl=1"),
    ])
    def test_dropbox_links(self, url, expected):
        """Test that preview links become download links."""
        assert to_direct_download_url(url) == expected

    def test_cloudinary_links(self):
        """Test the fl_attachment rewrite and that it is idempotent."""
        url = "https://res.cloudinary.com/demo/image/upload/v1/finance_tracker/abc.jpg"
        rewritten = to_attachment_url(url)

        assert rewritten == "https://res.cloudinary.com/demo/image/upload/fl_attachment/v1/finance_tracker/abc.jpg"
        assert to_attachment_url(rewritten) == rewritten


class TestDropboxUploader:
    """Tests for DropboxUploader."""

    def test_folder_is_normalized(self, dropbox_settings):
        """Test that the configured folder becomes an absolute path."""
        assert dropbox_settings.upload_folder == "/receipts"
        assert DropboxSettings(access_token="t", upload_folder="/").upload_folder == ""

    @pytest.mark.asyncio
    async def test_upload_then_create_link(self, dropbox_settings, attachment):
        """Test the two-phase exchange and the returned URL."""
        seen = []

        def handler(request):
            if str(request.url) == CONTENT_URL:
                return httpx.Response(200, json={"path_display": "/receipts/receipt (1).pdf"})
            if str(request.url) == CREATE_LINK_URL:
                return httpx.Response(200, json={"url": "https://www.dropbox.com/s/abc/receipt%20(1).pdf?dl=0"})
            return httpx.Response(404)

        uploader = dropbox_uploader(dropbox_settings, handler, seen)
        url = await uploader.upload(attachment)

        assert url == "https://www.dropbox.com/s/abc/receipt%20(1).pdf?dl=1"
        upload_request, link_request = seen
        assert upload_request.headers["Authorization"] == "Bearer test-token"
        assert upload_request.headers["Content-Type"] == "application/octet-stream"
        assert upload_request.content == b"%PDF-1.4"
        assert json.loads(upload_request.headers["Dropbox-API-Arg"]) == {
            "path": "/receipts/receipt.pdf",
            "mode": "add",
            "autorename": True,
            "mute": False,
        }
        # The link is requested for the path Dropbox actually used
        assert json.loads(link_request.content) == {"path": "/receipts/receipt (1).pdf"}

    @pytest.mark.asyncio
    async def test_existing_link_is_reused(self, dropbox_settings, attachment):
        """Test the fallback to listing links when one already exists."""
        seen = []

        def handler(request):
            if str(request.url) == CONTENT_URL:
                return httpx.Response(200, json={"path_lower": "/receipts/receipt.pdf"})
            if str(request.url) == CREATE_LINK_URL:
                return httpx.Response(409, json={"error_summary": "shared_link_already_exists/metadata/.."})
            if str(request.url) == LIST_LINKS_URL:
                return httpx.Response(200, json={"links": [{"url": "https://www.dropbox.com/s/old/receipt.pdf?dl=0"}]})
            return httpx.Response(404)

        uploader = dropbox_uploader(dropbox_settings, handler, seen)
        url = await uploader.upload(attachment)

        assert url == "https://www.dropbox.com/s/old/receipt.pdf?dl=1"
        assert json.loads(seen[-1].content) == {"path": "/receipts/receipt.pdf", "direct_only": True}

    @pytest.mark.asyncio
    async def test_no_link_available(self, dropbox_settings, attachment):
        """Test that an empty link listing is an upload failure."""
        def handler(request):
            if str(request.url) == CONTENT_URL:
                return httpx.Response(200, json={"path_display": "/receipts/receipt.pdf"})
            if str(request.url) == CREATE_LINK_URL:
                return httpx.Response(409, json={"error_summary": "shared_link_already_exists/.."})
            return httpx.Response(200, json={"links": []})

        uploader = dropbox_uploader(dropbox_settings, handler, [])
        with pytest.raises(UploadError) as exc_info:
            await uploader.upload(attachment)

        assert exc_info.value.reason == UploadFailureReason.NO_LINK

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, body, reason", [
        (401, {"error_summary": "invalid_access_token/.."}, UploadFailureReason.AUTHENTICATION),
        (409, {"error_summary": "path/insufficient_space/.."}, UploadFailureReason.QUOTA),
        (500, {"error_summary": "internal"}, UploadFailureReason.SERVICE),
    ])
    async def test_upload_errors(self, dropbox_settings, attachment, status, body, reason):
        """Test that HTTP failures map to a reason and stop before linking."""
        seen = []
        uploader = dropbox_uploader(dropbox_settings, lambda request: httpx.Response(status, json=body), seen)

        with pytest.raises(UploadError) as exc_info:
            await uploader.upload(attachment)

        assert exc_info.value.reason == reason
        assert exc_info.value.service == "dropbox"
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_network_error(self, dropbox_settings, attachment):
        """Test that transport failures become NETWORK upload errors."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        uploader = dropbox_uploader(dropbox_settings, handler, [])
        with pytest.raises(UploadError) as exc_info:
            await uploader.upload(attachment)

        assert exc_info.value.reason == UploadFailureReason.NETWORK

    @pytest.mark.asyncio
    async def test_non_json_error_body(self, dropbox_settings, attachment):
        """Test that plain-text error bodies are reported."""
        uploader = dropbox_uploader(
            dropbox_settings,
            lambda request: httpx.Response(400, text="Error in call to API function"),
            [],
        )
        with pytest.raises(UploadError) as exc_info:
            await uploader.upload(attachment)

        assert "Error in call to API function" in exc_info.value.message


class TestCloudinaryUploader:
    """Tests for CloudinaryUploader."""

    @pytest.fixture
    def cloudinary_settings(self):
        return CloudinarySettings(cloud_name="demo", api_key="key", api_secret="secret")

    @pytest.mark.asyncio
    async def test_upload_returns_download_url(self, monkeypatch, cloudinary_settings, attachment):
        """Test the SDK call and the URL rewrite."""
        calls = []

        def fake_upload(content, **options):
            calls.append((content, options))
            return {
                "public_id": "finance_tracker/abc",
                "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/finance_tracker/abc.pdf",
            }

        monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
        url = await CloudinaryUploader(cloudinary_settings).upload(attachment)

        assert url == "https://res.cloudinary.com/demo/image/upload/fl_attachment/v1/finance_tracker/abc.pdf"
        content, options = calls[0]
        assert content == b"%PDF-1.4"
        assert options["folder"] == "finance_tracker"
        assert options["resource_type"] == "auto"
        assert options["filename_override"] == "receipt.pdf"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error, reason", [
        (cloudinary.exceptions.AuthorizationRequired("bad key"), UploadFailureReason.AUTHENTICATION),
        (cloudinary.exceptions.Error("bad request"), UploadFailureReason.SERVICE),
        (OSError("connection reset"), UploadFailureReason.NETWORK),
    ])
    async def test_upload_errors(self, monkeypatch, cloudinary_settings, attachment, error, reason):
        """Test that SDK failures map to a reason."""
        def fake_upload(content, **options):
            raise error

        monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
        with pytest.raises(UploadError) as exc_info:
            await CloudinaryUploader(cloudinary_settings).upload(attachment)

        assert exc_info.value.reason == reason

    @pytest.mark.asyncio
    async def test_missing_url(self, monkeypatch, cloudinary_settings, attachment):
        """Test that a response without a URL is an upload failure."""
        monkeypatch.setattr(cloudinary.uploader, "upload", lambda content, **options: {"public_id": "x"})

        with pytest.raises(UploadError) as exc_info:
            await CloudinaryUploader(cloudinary_settings).upload(attachment)

        assert exc_info.value.reason == UploadFailureReason.NO_LINK
