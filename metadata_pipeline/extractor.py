"""
Image metadata extractor.

Reads width, height and format from the image header with Pillow. Pure and
deterministic: no I/O beyond the in-memory buffer, and pixel data is never
decoded.
"""
from __future__ import annotations

import io
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from metadata_pipeline.constants import FORMAT_ALIASES, ImageFormat
from metadata_pipeline.exceptions import DecodeError

# Only the header is read, so the pixel cap guards nothing and would reject
# large valid images.
Image.MAX_IMAGE_PIXELS = None


@dataclass(frozen=True, slots=True)
class ImageDimensions:
    width: int
    height: int
    format: ImageFormat


def extract(data: bytes) -> ImageDimensions:
    """Return the dimensions and format of ``data`` or raise DecodeError."""
    if not data:
        raise DecodeError("empty object")

    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
            pil_format = image.format
    except UnidentifiedImageError as exc:
        raise DecodeError(str(exc)) from exc
    except (OSError, SyntaxError, ValueError) as exc:
        # Pillow plugins report truncated or corrupt headers with these
        raise DecodeError(f"corrupt image header: {exc}") from exc

    return ImageDimensions(
        width=width,
        height=height,
        format=_image_format(pil_format),
    )


def _image_format(pil_format: str | None) -> ImageFormat:
    if not pil_format:
        raise DecodeError("image format could not be determined")
    name = pil_format.upper()
    if name in FORMAT_ALIASES:
        return FORMAT_ALIASES[name]
    try:
        return ImageFormat(name)
    except ValueError:
        raise DecodeError(f"unsupported image format: {pil_format}") from None
