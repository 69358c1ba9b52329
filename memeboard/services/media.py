"""
Media host client for image uploads (Cloudinary unsigned upload API).
"""

import logging
from typing import Any

import httpx

from memeboard.exceptions import UploadError
from memeboard.settings import settings

logger = logging.getLogger(__name__)


class MediaUploader:
    """Uploads images to the media host and returns their public URL.

    Requests carry the unsigned upload preset; there is no retry.
    """

    def __init__(
        self,
        cloud_name: str | None = None,
        upload_preset: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cloud_name = cloud_name or settings.cloudinary_cloud_name
        self.upload_preset = upload_preset or settings.cloudinary_upload_preset
        self.base_url = (base_url or settings.cloudinary_upload_url).rstrip("/")
        self.timeout = timeout or settings.upload_timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.upload_preset)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.cloud_name}/image/upload"

    async def upload_image(
        self,
        data: bytes,
        filename: str,
        content_type: str | None = None,
    ) -> str:
        """Upload ``data`` and return the host's secure URL.

        Raises:
            UploadError: If the host is not configured, unreachable, or
                rejects the upload.
        """
        if not self.configured:
            raise UploadError("Media uploads are not configured")

        files = {"file": (filename, data, content_type or "application/octet-stream")}
        form = {"upload_preset": self.upload_preset}

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(self.endpoint, data=form, files=files)
                response.raise_for_status()
                payload: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as e:
            raise UploadError(f"Media host rejected upload ({e.response.status_code})") from e
        except (httpx.HTTPError, ValueError) as e:
            raise UploadError(f"Failed to upload image: {e}") from e

        url = payload.get("secure_url") or payload.get("url")
        if not url:
            raise UploadError("Media host response did not include a URL")

        logger.info("Uploaded %s (%d bytes) to media host", filename, len(data))
        return url


def get_media_uploader() -> MediaUploader:
    """FastAPI dependency for the media uploader."""
    return MediaUploader()
