"""
Attachment Uploader Interface

An uploader takes one file and hands back a URL anyone can fetch the raw
bytes from. It is a one-shot operation: no progress reporting, no retry.
A failure aborts the add that asked for the upload.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from finance_tracker.models.transaction import Attachment


class UploadFailureReason(str, Enum):
    """Broad cause of an upload failure, for the audit trail."""
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    QUOTA = "quota"
    NO_LINK = "no_link"
    NOT_CONFIGURED = "not_configured"
    SERVICE = "service"


class UploadError(Exception):
    """Attachment transfer or link resolution failed. The message is user-facing."""

    def __init__(
        self,
        message: str,
        reason: UploadFailureReason = UploadFailureReason.SERVICE,
        service: Optional[str] = None,
    ):
        self.message = message
        self.reason = reason
        self.service = service
        super().__init__(message)


class AttachmentUploader(ABC):
    """Uploads a file and returns a direct-download URL."""

    # Shown in audit events and the settings panel
    service_name: str = "uploader"

    @abstractmethod
    async def upload(self, attachment: Attachment) -> str:
        """
        Upload an attachment.

        Args:
            attachment: The file to upload

        Returns:
            A stable, publicly fetchable direct-download URL

        Raises:
            UploadError: If the transfer or the link creation fails
        """
        pass
