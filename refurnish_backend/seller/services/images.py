# seller/services/images.py

"""
PRODUCT IMAGE UPLOAD

Every image is validated (type + size) before the first upload starts, so a
bad file never leaves half the images uploaded. Uploads go to
POST /api/products/upload-image (multipart field "image") -> {secure_url}.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from marketplace.client import MarketplaceClient
from marketplace.exceptions import UpstreamError
from seller.services.exceptions import ImageUploadError, ImageValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
MAX_IMAGE_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    def __repr__(self) -> str:
        return f"ImageUpload({self.filename!r}, {self.content_type!r}, {self.size} bytes)"

    @classmethod
    def from_uploaded_file(cls, f) -> "ImageUpload":
        """Django UploadedFile -> ImageUpload."""
        return cls(
            filename=str(getattr(f, "name", "") or "image"),
            content_type=str(getattr(f, "content_type", "") or "").lower(),
            content=f.read(),
        )


def validate_image(image: ImageUpload) -> None:
    if (image.content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        raise ImageValidationError(
            f"Invalid file type: {image.filename}. Only JPEG, PNG, and WebP images are allowed."
        )
    if image.size > MAX_IMAGE_BYTES:
        raise ImageValidationError(f"File too large: {image.filename}. Maximum size is 5MB.")


class ImageUploader:
    def __init__(self, *, client: MarketplaceClient):
        self.client = client

    def upload(self, image: ImageUpload) -> str:
        try:
            data = self.client.upload(
                "/api/products/upload-image",
                field="image",
                filename=image.filename,
                content_type=image.content_type,
                content=image.content,
            )
        except UpstreamError as exc:
            logger.error(
                "Image upload failed",
                extra={"image_name": image.filename, "status": exc.status_code, "error": exc.message},
            )
            raise ImageUploadError(f"Failed to upload image: {image.filename}") from exc

        url = data.get("secure_url") if isinstance(data, dict) else None
        if not url:
            raise ImageUploadError(f"Failed to upload image: {image.filename}")
        return str(url)

    def upload_all(self, images: Iterable[ImageUpload]) -> list[str]:
        images = list(images)
        for image in images:
            validate_image(image)
        return [self.upload(image) for image in images]
