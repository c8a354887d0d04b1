"""
Attachment Upload via Cloudinary

DESIGN DECISION: Cloudinary is offered alongside Dropbox because:
1. Receipts are mostly photos and PDFs, which Cloudinary handles natively
2. Delivery URLs are public and stable
3. Free tier sufficient for personal use

Delivery URLs render in the browser by default. Inserting the
`fl_attachment` flag after `/upload/` makes them download instead.
"""

import hashlib
from typing import Optional
from uuid import uuid4

import cloudinary
import cloudinary.uploader
import structlog

from finance_tracker.config import CloudinarySettings, get_settings
from finance_tracker.models.transaction import Attachment
from finance_tracker.services.upload.interface import (
    AttachmentUploader,
    UploadError,
    UploadFailureReason,
)

logger = structlog.get_logger(__name__)


def to_attachment_url(url: str) -> str:
    """Force a Cloudinary delivery URL to download rather than display."""
    if "/upload/fl_attachment/" in url:
        return url
    return url.replace("/upload/", "/upload/fl_attachment/", 1)


class CloudinaryUploader(AttachmentUploader):
    """Uploads attachments to Cloudinary and returns direct-download URLs."""

    service_name = "cloudinary"

    def __init__(self, settings: Optional[CloudinarySettings] = None):
        self._settings = settings or get_settings().cloudinary
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    def _generate_public_id(self, filename: str) -> str:
        """
        Generate a unique public ID for Cloudinary.

        Format: {uuid}_{filename_hash}, so two uploads never collide.
        """
        filename_hash = hashlib.md5(filename.encode()).hexdigest()[:8]
        return f"{uuid4().hex}_{filename_hash}"

    async def upload(self, attachment: Attachment) -> str:
        """
        Upload an attachment and return its direct-download URL.

        Raises:
            UploadError: If the upload fails or no URL comes back
        """
        self._configure()

        try:
            result = cloudinary.uploader.upload(
                attachment.content,
                public_id=self._generate_public_id(attachment.filename),
                folder=self._settings.folder,
                resource_type="auto",
                filename_override=attachment.filename,
            )
        except cloudinary.exceptions.AuthorizationRequired as e:
            raise UploadError(
                f"Cloudinary rejected the credentials: {e}",
                reason=UploadFailureReason.AUTHENTICATION,
                service=self.service_name,
            )
        except cloudinary.exceptions.Error as e:
            raise UploadError(
                f"Cloudinary error: {e}",
                reason=UploadFailureReason.SERVICE,
                service=self.service_name,
            )
        except Exception as e:
            raise UploadError(
                f"Failed to upload attachment: {e}",
                reason=UploadFailureReason.NETWORK,
                service=self.service_name,
            )

        url = result.get("secure_url", result.get("url", ""))
        if not url:
            raise UploadError(
                "No URL returned from Cloudinary",
                reason=UploadFailureReason.NO_LINK,
                service=self.service_name,
            )

        logger.info("cloudinary_upload_complete", public_id=result.get("public_id"))
        return to_attachment_url(url)
