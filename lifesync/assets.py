"""Image upload for completion proofs."""

import asyncio
import logging

import requests

from .errors import UploadError

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {"image/jpeg", "image/jpg", "image/png"}


class AssetHost:
    """Unsigned multipart upload to an image host returning a public URL."""

    def __init__(
        self,
        upload_url: str,
        upload_preset: str,
        max_bytes: int = 5 * 1024 * 1024,
        timeout: float = 30.0,
    ):
        """
        Initialize asset host.

        Args:
            upload_url: Endpoint accepting multipart uploads
            upload_preset: Unsigned upload preset sent with each file
            max_bytes: Largest accepted file
            timeout: Request timeout in seconds
        """
        self.upload_url = upload_url
        self.upload_preset = upload_preset
        self.max_bytes = max_bytes
        self.timeout = timeout

    def validate(self, data: bytes, content_type: str):
        """
        Reject files the host would not accept.

        Raises:
            UploadError: If the file is too large or not a JPEG/PNG image
        """
        if len(data) > self.max_bytes:
            raise UploadError(f"File size exceeds {self.max_bytes // (1024 * 1024)}MB limit.")
        if content_type not in ALLOWED_TYPES:
            raise UploadError("Invalid file type. Only JPG, JPEG, and PNG are allowed.")

    async def upload(self, data: bytes, filename: str, content_type: str) -> str:
        """
        Upload an image.

        Validation happens before any network call.

        Returns:
            HTTPS URL of the stored image
        """
        self.validate(data, content_type)
        return await asyncio.to_thread(self._post, data, filename, content_type)

    def _post(self, data: bytes, filename: str, content_type: str) -> str:
        logger.info(f"Uploading {filename} ({len(data)} bytes)")
        try:
            response = requests.post(
                self.upload_url,
                files={"file": (filename, data, content_type)},
                data={"upload_preset": self.upload_preset},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Upload failed: {e}")
            raise UploadError(f"Image upload failed: {e}") from e

        if response.status_code != 200:
            try:
                message = response.json().get("error", {}).get("message")
            except ValueError:
                message = None
            logger.error(f"Upload rejected: {response.status_code} {response.text}")
            raise UploadError(message or "Image upload failed")

        url = response.json().get("secure_url")
        if not url:
            raise UploadError("Upload response had no URL")
        logger.info(f"Uploaded {filename} to {url}")
        return url
