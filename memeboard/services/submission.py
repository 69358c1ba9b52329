"""
Meme submission: upload an image to the media host, then insert the meme row.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from PIL import Image

from memeboard.exceptions import MissingInputError, NotAuthenticatedError, StoreError
from memeboard.services.categories import resolve_category
from memeboard.services.feed import derive_caption
from memeboard.services.media import MediaUploader
from memeboard.services.overlay import load_template_image, render_overlay, to_png
from memeboard.settings import settings

logger = logging.getLogger(__name__)

ImageLoader = Callable[[str], Awaitable[Image.Image | None]]


def validate_image_upload(data: bytes | None, content_type: str | None) -> bytes:
    """Pre-flight checks on a selected file."""
    if not data:
        raise MissingInputError("Select a file and log in first!")
    if content_type and not content_type.startswith("image/"):
        raise MissingInputError("Only image files can be uploaded")
    if len(data) > settings.upload_max_size_bytes:
        raise MissingInputError(f"File size exceeds maximum allowed ({settings.upload_max_size_mb}MB)")
    return data


async def submit_meme(
    store: Any,
    uploader: MediaUploader,
    viewer_id: Any,
    data: bytes | None,
    filename: str | None,
    content_type: str | None = None,
    caption: str = "",
    category: str | None = None,
    custom_category: str | None = None,
) -> Any | None:
    """Upload a user-selected image and add it to the board.

    Returns the inserted meme, or None if the insert failed (logged).
    UploadError from the media host propagates to the caller.
    """
    if viewer_id is None:
        raise NotAuthenticatedError()
    data = validate_image_upload(data, content_type)

    url = await uploader.upload_image(data, filename or "upload", content_type)

    try:
        return await store.insert_meme(
            url=url,
            user_id=viewer_id,
            caption=caption.strip(),
            category=resolve_category(category, custom_category),
        )
    except StoreError as e:
        logger.error("Failed to insert meme: %s", e)
        return None


async def submit_generated_meme(
    store: Any,
    uploader: MediaUploader,
    viewer_id: Any,
    template: Any,
    top: str = "",
    bottom: str = "",
    image_loader: ImageLoader | None = None,
) -> Any | None:
    """Render captions onto a template, upload the PNG, and insert the meme."""
    if viewer_id is None:
        raise NotAuthenticatedError()
    if template is None:
        raise MissingInputError("Select a template and log in first!")

    image = await (image_loader or load_template_image)(template.url)
    if image is None:
        raise MissingInputError("Template image could not be loaded")

    png = to_png(render_overlay(image, top, bottom))
    filename = f"meme-{int(time.time() * 1000)}.png"
    url = await uploader.upload_image(png, filename, "image/png")

    try:
        return await store.insert_meme(
            url=url,
            user_id=viewer_id,
            caption=derive_caption(top, bottom),
            caption_top=top or None,
            caption_bottom=bottom or None,
            category=template.category,
            template_id=template.id,
        )
    except StoreError as e:
        logger.error("Failed to insert generated meme: %s", e)
        return None
