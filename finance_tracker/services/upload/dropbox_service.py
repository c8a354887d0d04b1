"""
Attachment Upload via Dropbox

Two-phase HTTP exchange against the Dropbox v2 API:
1. POST the raw bytes to /files/upload. The destination path travels in the
   Dropbox-API-Arg header as JSON, with collision mode "add" and autorename
   on, so an existing file is never overwritten.
2. Create a shared link for the stored path. Dropbox refuses when a link
   already exists, in which case we list the existing links instead.

Shared links open a preview page (dl=0). We rewrite them to dl=1 so the
URL serves the file itself.

No retries: one failure aborts the upload, and with it the add.
"""

import json
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx
import structlog

from finance_tracker.config import DropboxSettings, get_settings
from finance_tracker.models.transaction import Attachment
from finance_tracker.services.upload.interface import (
    AttachmentUploader,
    UploadError,
    UploadFailureReason,
)

CONTENT_URL = "https://content.dropboxapi.com/2/files/upload"
CREATE_LINK_URL = "https://api.dropboxapi.com/2/sharing/create_shared_link_with_settings"
LIST_LINKS_URL = "https://api.dropboxapi.com/2/sharing/list_shared_links"

logger = structlog.get_logger(__name__)


def to_direct_download_url(url: str) -> str:
    """Rewrite a shared link so it downloads instead of previewing (dl=0 -> dl=1)."""
    parts = urlsplit(url)
    query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key != "dl"]
    query.append(("dl", "1"))
    return urlunsplit(parts._replace(query=urlencode(query)))


def _error_summary(response: httpx.Response) -> str:
    """Dropbox puts a machine-readable summary in the JSON error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(body.get("error_summary") or body.get("error") or body)
    return str(body)


class DropboxUploader(AttachmentUploader):
    """
    Uploads attachments to a Dropbox folder and returns direct-download links.

    The HTTP client can be injected (tests pass one backed by
    httpx.MockTransport); otherwise one is opened per upload.
    """

    service_name = "dropbox"

    def __init__(
        self,
        settings: Optional[DropboxSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings().dropbox
        self._client = client

    def _destination(self, attachment: Attachment) -> str:
        return f"{self._settings.upload_folder}/{attachment.filename}"

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._settings.access_token}"}

    def _raise_for_response(self, response: httpx.Response, step: str) -> None:
        if response.is_success:
            return

        summary = _error_summary(response)
        if response.status_code == 401:
            raise UploadError(
                f"Dropbox rejected the access token while trying to {step}",
                reason=UploadFailureReason.AUTHENTICATION,
                service=self.service_name,
            )
        if response.status_code == 507 or "insufficient_space" in summary:
            raise UploadError(
                "Your Dropbox is full, free some space and try again",
                reason=UploadFailureReason.QUOTA,
                service=self.service_name,
            )
        raise UploadError(
            f"Dropbox could not {step}: {summary}",
            reason=UploadFailureReason.SERVICE,
            service=self.service_name,
        )

    async def _upload_file(self, client: httpx.AsyncClient, attachment: Attachment) -> str:
        """Phase 1: store the bytes. Returns the path Dropbox actually used."""
        requested_path = self._destination(attachment)
        api_arg = {
            "path": requested_path,
            "mode": "add",
            "autorename": True,
            "mute": False,
        }
        response = await client.post(
            CONTENT_URL,
            content=attachment.content,
            headers={
                **self._auth_headers(),
                "Content-Type": "application/octet-stream",
                "Dropbox-API-Arg": json.dumps(api_arg),
            },
        )
        self._raise_for_response(response, "upload the file")

        metadata = response.json()
        # autorename may have changed the name
        return metadata.get("path_display") or metadata.get("path_lower") or requested_path

    async def _shared_link(self, client: httpx.AsyncClient, path: str) -> str:
        """Phase 2: create a shared link, or reuse the one that already exists."""
        response = await client.post(
            CREATE_LINK_URL,
            json={"path": path},
            headers=self._auth_headers(),
        )
        if response.status_code == 409 and "shared_link_already_exists" in _error_summary(response):
            logger.debug("dropbox_link_exists", path=path)
            return await self._existing_link(client, path)

        self._raise_for_response(response, "create a shared link")
        return response.json()["url"]

    async def _existing_link(self, client: httpx.AsyncClient, path: str) -> str:
        response = await client.post(
            LIST_LINKS_URL,
            json={"path": path, "direct_only": True},
            headers=self._auth_headers(),
        )
        self._raise_for_response(response, "list shared links")
        links = response.json().get("links", [])
        if not links:
            raise UploadError(
                "No shareable link could be obtained from Dropbox",
                reason=UploadFailureReason.NO_LINK,
                service=self.service_name,
            )
        return links[0]["url"]

    async def _upload_with(self, client: httpx.AsyncClient, attachment: Attachment) -> str:
        path = await self._upload_file(client, attachment)
        link = await self._shared_link(client, path)
        url = to_direct_download_url(link)
        logger.info("dropbox_upload_complete", path=path, size_bytes=attachment.size_bytes)
        return url

    async def upload(self, attachment: Attachment) -> str:
        """
        Upload an attachment and return its direct-download URL.

        Raises:
            UploadError: On network, authentication, quota or link failures
        """
        try:
            if self._client is not None:
                return await self._upload_with(self._client, attachment)
            async with httpx.AsyncClient(timeout=self._settings.timeout_seconds) as client:
                return await self._upload_with(client, attachment)
        except UploadError:
            raise
        except httpx.HTTPError as e:
            raise UploadError(
                f"Could not reach Dropbox: {e}",
                reason=UploadFailureReason.NETWORK,
                service=self.service_name,
            )
        except (ValueError, KeyError) as e:
            raise UploadError(
                f"Unexpected response from Dropbox: {e}",
                reason=UploadFailureReason.SERVICE,
                service=self.service_name,
            )
