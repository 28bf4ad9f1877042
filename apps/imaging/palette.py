"""
Brand palette extraction from a stored logo.

The logo is reduced to a small set of representative colors with Pillow's
median-cut quantizer. Swatches are classified roughly the way vibrant-style
extractors do it: saturated mid-tones are "vibrant", bright saturated ones are
"light vibrant", and low-saturation ones are "muted". Each slot falls back
independently to the default palette.
"""

from __future__ import annotations

import colorsys
import io
import logging
import re
from dataclasses import asdict, dataclass

from django.core.files.storage import default_storage
from PIL import Image

logger = logging.getLogger(__name__)

SAMPLE_SIZE = (96, 96)
SWATCH_COUNT = 8
HEX_RE = re.compile(r"^[0-9a-fA-F]{6}$")


class PaletteExtractionError(Exception):
    """Raised when a palette cannot be derived from an image."""


@dataclass(frozen=True)
class Palette:
    primary: str
    secondary: str
    accent: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


DEFAULT_PALETTE = Palette(primary="#6366f1", secondary="#8b5cf6", accent="#06b6d4")


def normalize_hex(value: str | None) -> str | None:
    """Return ``#RRGGBB`` upper-case, or None when ``value`` is not a 6-digit hex color."""
    if not value:
        return None
    clean = str(value).strip().lstrip("#")
    if not HEX_RE.match(clean):
        return None
    return f"#{clean.upper()}"


def _to_hex(rgb: tuple[int, int, int]) -> str:
    return "#{:02X}{:02X}{:02X}".format(*rgb)


@dataclass
class _Swatch:
    rgb: tuple[int, int, int]
    population: int

    @property
    def hsv(self) -> tuple[float, float, float]:
        return colorsys.rgb_to_hsv(*(channel / 255 for channel in self.rgb))


class PaletteExtractor:
    """Derives a {primary, secondary, accent} palette from an image."""

    def __init__(self, storage=None, fallback: Palette = DEFAULT_PALETTE):
        self.storage = storage or default_storage
        self.fallback = fallback

    def extract(self, image_reference: str) -> Palette:
        """
        Extract a palette from a stored image.

        Args:
            image_reference: Storage name of the optimized logo.

        Raises:
            PaletteExtractionError: If the image cannot be read or has no usable colors.
        """
        if not image_reference:
            raise PaletteExtractionError("no image reference provided")
        try:
            with self.storage.open(image_reference, "rb") as fh:
                data = fh.read()
            return self.extract_from_bytes(data)
        except PaletteExtractionError:
            raise
        except (OSError, ValueError) as e:
            raise PaletteExtractionError(f"{image_reference}: {e}") from e

    def extract_from_bytes(self, data: bytes) -> Palette:
        swatches = self._swatches(data)
        if not swatches:
            raise PaletteExtractionError("image has no opaque pixels")

        vibrant, light_vibrant, muted = [], [], []
        for swatch in swatches:
            _, saturation, value = swatch.hsv
            if value < 0.12 or (saturation < 0.08 and value > 0.92):
                # near black or near white
                continue
            if saturation >= 0.35:
                (light_vibrant if value >= 0.75 else vibrant).append(swatch)
            else:
                muted.append(swatch)

        primary = _pick(vibrant + light_vibrant)
        secondary = _pick(muted + vibrant, exclude={primary})
        accent = _pick(light_vibrant + vibrant, exclude={primary, secondary})

        palette = Palette(
            primary=normalize_hex(primary) or self.fallback.primary,
            secondary=normalize_hex(secondary) or self.fallback.secondary,
            accent=normalize_hex(accent) or self.fallback.accent,
        )
        logger.debug(f"Extracted palette: {palette}")
        return palette

    def _swatches(self, data: bytes) -> list[_Swatch]:
        img = Image.open(io.BytesIO(data))
        img.thumbnail(SAMPLE_SIZE)
        rgba = img.convert("RGBA")
        # Transparent pixels would otherwise count as black.
        opaque = Image.new("RGB", rgba.size)
        opaque.paste(rgba, mask=rgba.split()[3])
        alpha = rgba.split()[3]
        if not alpha.getbbox():
            return []

        quantized = opaque.quantize(colors=SWATCH_COUNT, method=Image.Quantize.MEDIANCUT)
        palette = quantized.getpalette() or []
        mask = alpha.point(lambda a: 255 if a >= 128 else 0)
        counts: dict[int, int] = {}
        for index, visible in zip(quantized.getdata(), mask.getdata()):
            if visible:
                counts[index] = counts.get(index, 0) + 1

        swatches = [
            _Swatch(rgb=tuple(palette[index * 3 : index * 3 + 3]), population=count)
            for index, count in counts.items()
        ]
        swatches.sort(key=lambda s: (-s.population, s.rgb))
        return swatches


def _pick(swatches: list[_Swatch], exclude: set | None = None) -> str | None:
    """Most populous swatch not already used by another slot."""
    exclude = exclude or set()
    for swatch in sorted(swatches, key=lambda s: (-s.population, s.rgb)):
        hex_value = _to_hex(swatch.rgb)
        if hex_value not in exclude:
            return hex_value
    return None
