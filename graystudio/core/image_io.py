"""
Image file loading and export.

Loads PNG/JPEG (and anything else Pillow reads) or GB7 files and returns an
RGBA PixelBuffer plus basic image info.

Export uses:
- OpenCV (imencode) for PNG and JPEG
- the GB7 codec for .gb7
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from graystudio.core import gb7
from graystudio.core.pixel_buffer import PixelBuffer
from graystudio.exceptions import ImageLoadError
from graystudio.utils import config
from graystudio.utils.log import get_logger

LOGGER = get_logger(__name__)

GB7_SUFFIX = ".gb7"

MIME_TYPES = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "gb7": "application/octet-stream",
}

_FORMAT_ALIASES = {
    "png": "png",
    "jpg": "jpeg",
    "jpeg": "jpeg",
    "gb7": "gb7",
}


@dataclass(frozen=True)
class ImageInfo:
    """What the status line shows about the loaded image."""
    width: int
    height: int
    depth: int          # bits per sample: 7 for GB7, 8 otherwise
    format: str         # "gb7" or "image"


def _check_dimensions(width: int, height: int, name: str) -> None:
    limit = config.get_max_dimension()
    if width > limit or height > limit:
        raise ImageLoadError(
            f"{name} is {width}x{height}, larger than the {limit}px limit", path=name
        )


def _decode_gb7(data: bytes, name: str) -> tuple[PixelBuffer, ImageInfo]:
    header = gb7.read_header(data)
    if isinstance(header, gb7.Gb7Header):
        _check_dimensions(header.width, header.height, name)
    result = gb7.decode(data)
    if isinstance(result, gb7.FormatError):
        raise ImageLoadError(f"Failed to parse GB7 file {name}: {result.message}", path=name)
    return result, ImageInfo(result.width, result.height, depth=7, format="gb7")


def _decode_pillow(data: bytes, name: str) -> tuple[PixelBuffer, ImageInfo]:
    try:
        with Image.open(io.BytesIO(data)) as img:
            # open() only reads the header; reject before pixels are decoded
            _check_dimensions(img.width, img.height, name)
            rgba = np.array(img.convert("RGBA"), dtype=np.uint8)
    except UnidentifiedImageError as e:
        raise ImageLoadError(f"Unsupported or corrupt image {name}: {e}", path=name) from e
    except Image.DecompressionBombError as e:
        raise ImageLoadError(f"{name} is too large to decode: {e}", path=name) from e
    except OSError as e:
        raise ImageLoadError(f"Failed to decode image {name}: {e}", path=name) from e

    buffer = PixelBuffer(rgba)
    return buffer, ImageInfo(buffer.width, buffer.height, depth=8, format="image")


def load_image_bytes(data: bytes, name: str) -> tuple[PixelBuffer, ImageInfo]:
    """
    Decode in-memory file contents. `name` picks the decoder: a .gb7
    suffix goes through the GB7 codec, everything else through Pillow.

    Raises:
        ImageLoadError: If the data cannot be decoded or is too large
    """
    if Path(name).suffix.lower() == GB7_SUFFIX:
        buffer, info = _decode_gb7(data, name)
    else:
        buffer, info = _decode_pillow(data, name)
    LOGGER.info("Loaded %s: %dx%d, %d-bit %s", name, info.width, info.height, info.depth, info.format)
    return buffer, info


def load_image(filepath: str | Path) -> tuple[PixelBuffer, ImageInfo]:
    """
    Load an image file into an RGBA buffer.

    Args:
        filepath: Path to a .png, .jpg/.jpeg or .gb7 file

    Returns:
        (buffer, info) with buffer shape (H, W, 4), uint8

    Raises:
        ImageLoadError: If the file is missing or cannot be decoded
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise ImageLoadError(f"File not found: {filepath}", path=str(filepath))

    try:
        data = filepath.read_bytes()
    except OSError as e:
        raise ImageLoadError(f"Failed to read {filepath}: {e}", path=str(filepath)) from e

    return load_image_bytes(data, filepath.name)


# ============================================================================
# Export
# ============================================================================

def normalize_format(fmt: str) -> str:
    key = fmt.lower().lstrip(".")
    if key not in _FORMAT_ALIASES:
        raise ValueError(f"Unsupported export format: {fmt}")
    return _FORMAT_ALIASES[key]


def mime_type(fmt: str) -> str:
    return MIME_TYPES[normalize_format(fmt)]


def encode_image(buffer: PixelBuffer, fmt: str, quality: int | None = None) -> bytes:
    """
    Encode a buffer for saving.

    PNG keeps alpha; JPEG drops it; GB7 stores 7-bit luma only.
    """
    fmt = normalize_format(fmt)
    if buffer.is_empty:
        raise ValueError("Cannot export an empty image")

    if fmt == "gb7":
        return gb7.encode(buffer)

    if fmt == "png":
        bgra = cv2.cvtColor(np.ascontiguousarray(buffer.pixels), cv2.COLOR_RGBA2BGRA)
        ok, encoded = cv2.imencode(".png", bgra)
    else:
        q = config.get_jpeg_quality() if quality is None else quality
        bgr = cv2.cvtColor(np.ascontiguousarray(buffer.pixels), cv2.COLOR_RGBA2BGR)
        ok, encoded = cv2.imencode(".jpg", bgr, [cv2.IMWRITE_JPEG_QUALITY, int(q)])

    if not ok:
        raise ValueError(f"OpenCV failed to encode {fmt}")
    return encoded.tobytes()


def save_image(buffer: PixelBuffer, path: str | Path, quality: int | None = None) -> Path:
    """Encode by file suffix and write to `path`."""
    path = Path(path)
    data = encode_image(buffer, path.suffix, quality=quality)
    path.write_bytes(data)
    LOGGER.info("Saved %s (%d bytes, %s)", path, len(data), mime_type(path.suffix))
    return path
