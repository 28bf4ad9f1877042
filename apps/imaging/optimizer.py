"""
Image optimization for intake uploads.

Logos are kept as PNG (alpha preserved) within 800x800. Hero and gallery
images become a JPEG within 1920x1080 plus a WebP copy and a 400x400 cover
thumbnail. Outputs are written through Django's default storage under
``sites/<record_id>/``.
"""

from __future__ import annotations

import io
import logging
from dataclasses import asdict, dataclass
from typing import Any

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

LOGO_BOUNDS = (800, 800)
PHOTO_BOUNDS = (1920, 1080)
THUMBNAIL_SIZE = (400, 400)
JPEG_QUALITY = 85
THUMBNAIL_QUALITY = 80
PRE_RESIZE_THRESHOLD = 3 * 1024 * 1024
DEFAULT_MAX_DIMENSION = 12000


class ImageProcessingError(Exception):
    """Raised when an upload cannot be decoded, transformed or stored."""


@dataclass
class OptimizedImage:
    """Storage references for one optimized upload."""

    ref: str
    webp_ref: str
    thumbnail_ref: str
    width: int
    height: int
    size: int
    format: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _check_dimensions(width: int, height: int, limit: int) -> None:
    if width > limit or height > limit:
        raise ImageProcessingError(
            f"Image dimensions too large: {width}x{height} pixels. "
            f"Maximum allowed: {limit}x{limit} pixels."
        )


def _flatten(img: Image.Image) -> Image.Image:
    """Drop alpha onto a white background for formats without transparency."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[3])
        return background
    return img.convert("RGB")


def _encode(img: Image.Image, fmt: str, **params) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format=fmt, **params)
    return buffer.getvalue()


class ImageOptimizer:
    """Resizes and re-encodes uploads, then stores the variants."""

    def __init__(self, storage=None, max_dimension: int | None = None):
        self.storage = storage or default_storage
        self.max_dimension = (
            max_dimension
            if max_dimension is not None
            else int(getattr(settings, "IMAGE_MAX_DIMENSION", DEFAULT_MAX_DIMENSION))
        )

    def optimize(
        self,
        raw_bytes: bytes,
        purpose: str,
        *,
        record_id: str,
        position: int = 0,
        filename: str = "",
    ) -> OptimizedImage:
        """
        Optimize one upload.

        Args:
            raw_bytes: The uploaded file content.
            purpose: ``logo``, ``hero`` or ``gallery``.
            record_id: Owning intake record, used for the storage folder.
            position: Slot index among assets of the same purpose.
            filename: Original filename (logging only).

        Returns:
            OptimizedImage with storage references.

        Raises:
            ImageProcessingError: If the image cannot be processed or stored.
        """
        if not raw_bytes:
            raise ImageProcessingError(f"empty upload: {filename or purpose}")

        stem = f"{purpose}-{position}"
        try:
            img = Image.open(io.BytesIO(raw_bytes))
            _check_dimensions(img.width, img.height, self.max_dimension)
            bounds = LOGO_BOUNDS if purpose == "logo" else PHOTO_BOUNDS
            if len(raw_bytes) > PRE_RESIZE_THRESHOLD:
                # JPEG decoders can downscale while decoding; no-op for other formats.
                img.draft("RGB", bounds)
                logger.debug(f"Pre-shrinking large upload {filename} ({len(raw_bytes)} bytes)")
            img = ImageOps.exif_transpose(img)

            folder = f"sites/{record_id}"
            if purpose == "logo":
                return self._optimize_logo(img, folder, stem)
            return self._optimize_photo(img, folder, stem)
        except ImageProcessingError:
            raise
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise ImageProcessingError(f"{filename or stem}: {e}") from e

    def _optimize_logo(self, img: Image.Image, folder: str, stem: str) -> OptimizedImage:
        has_alpha = img.mode in ("RGBA", "LA") or (
            img.mode == "P" and "transparency" in img.info
        )
        img = img.convert("RGBA" if has_alpha else "RGB")
        img.thumbnail(LOGO_BOUNDS, Image.Resampling.LANCZOS)
        data = _encode(img, "PNG", optimize=True)
        ref = self._store(f"{folder}/{stem}.png", data)
        # Logos have no separate variants.
        return OptimizedImage(
            ref=ref,
            webp_ref=ref,
            thumbnail_ref=ref,
            width=img.width,
            height=img.height,
            size=len(data),
            format="PNG",
        )

    def _optimize_photo(self, img: Image.Image, folder: str, stem: str) -> OptimizedImage:
        img = _flatten(img)
        img.thumbnail(PHOTO_BOUNDS, Image.Resampling.LANCZOS)

        jpeg = _encode(img, "JPEG", quality=JPEG_QUALITY, optimize=True, progressive=True)
        webp = _encode(img, "WEBP", quality=JPEG_QUALITY)
        thumb = ImageOps.fit(img, THUMBNAIL_SIZE, method=Image.Resampling.LANCZOS)
        thumb_data = _encode(thumb, "WEBP", quality=THUMBNAIL_QUALITY)

        return OptimizedImage(
            ref=self._store(f"{folder}/{stem}.jpg", jpeg),
            webp_ref=self._store(f"{folder}/{stem}.webp", webp),
            thumbnail_ref=self._store(f"{folder}/{stem}-thumb.webp", thumb_data),
            width=img.width,
            height=img.height,
            size=len(jpeg),
            format="JPEG",
        )

    def _store(self, name: str, data: bytes) -> str:
        # Replays overwrite the same slot instead of accumulating suffixed copies.
        if self.storage.exists(name):
            self.storage.delete(name)
        return self.storage.save(name, ContentFile(data))
