"""Attachment upload services package."""

from finance_tracker.services.upload.interface import (
    AttachmentUploader,
    UploadError,
    UploadFailureReason,
)
from finance_tracker.services.upload.dropbox_service import (
    DropboxUploader,
    to_direct_download_url,
)
from finance_tracker.services.upload.cloudinary_service import (
    CloudinaryUploader,
    to_attachment_url,
)

__all__ = [
    "AttachmentUploader",
    "CloudinaryUploader",
    "DropboxUploader",
    "UploadError",
    "UploadFailureReason",
    "to_attachment_url",
    "to_direct_download_url",
]
