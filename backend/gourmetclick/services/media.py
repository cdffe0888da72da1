# gourmetclick/services/media.py
"""
Image uploads to Firebase Storage (product photos, logos, banners, receipts).
"""
from __future__ import annotations

import logging
import os
from typing import Dict
from uuid import uuid4

from fastapi import HTTPException, UploadFile, status
from google.api_core.exceptions import GoogleAPICallError

from gourmetclick.config import settings

logger = logging.getLogger("gourmetclick.media")

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def validate_image(content_type: str, size: int) -> None:
    if content_type not in settings.allowed_image_types:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported image type: {content_type}",
        )
    if size == 0:
        raise HTTPException(status_code=400, detail="Empty file")
    if size > settings.image_max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image exceeds {settings.image_max_bytes // (1024 * 1024)} MB",
        )


def _public_url(blob) -> str:
    try:
        blob.make_public()
        return blob.public_url
    except GoogleAPICallError:
        # buckets with uniform access reject ACL changes
        return blob.generate_signed_url(expiration=3600 * 24 * 365 * 10)


async def upload_image(bucket, file: UploadFile, folder: str) -> Dict[str, str]:
    """
    Validates type and size, stores the file under `<folder>/<uuid>.<ext>`
    and returns {"url", "path"}.
    """
    content_type = (file.content_type or "").lower()
    data = await file.read()
    validate_image(content_type, len(data))

    ext = _EXTENSIONS.get(content_type) or os.path.splitext(file.filename or "")[1].lstrip(".") or "jpg"
    path = f"{folder.strip('/')}/{uuid4().hex}.{ext}"
    blob = bucket.blob(path)
    try:
        blob.upload_from_string(data, content_type=content_type)
        url = _public_url(blob)
    except GoogleAPICallError as exc:
        logger.warning("Image upload to %s failed: %s", path, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Image upload failed: {exc}")
    logger.info("Uploaded image %s (%d bytes)", path, len(data))
    return {"url": url, "path": path}
