"""
GrayBit-7 (GB7) codec.

Layout, big-endian:

    0-3   magic          47 42 37 1D
    4     version        1
    5     flags          bit0 = has mask
    6-7   width          u16
    8-9   height         u16
    10-11 reserved       0
    12..  pixel data     one byte per pixel: bit7 = mask, bits0-6 = gray

decode() never raises on bad input: it returns a FormatError value instead,
and never hands back a partially filled buffer.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

import numpy as np

from graystudio.core.pixel_buffer import PixelBuffer
from graystudio.utils.log import get_logger

LOGGER = get_logger(__name__)

MAGIC = b"\x47\x42\x37\x1d"
VERSION = 1
HEADER_SIZE = 12
FLAG_HAS_MASK = 0x01
GRAY_MASK = 0x7F
MAX_GRAY = 127

_HEADER = struct.Struct(">4sBBHHH")


class FormatErrorKind(enum.Enum):
    BAD_MAGIC = "bad_magic"
    RESERVED_NOT_ZERO = "reserved_not_zero"
    TRUNCATED = "truncated"


@dataclass(frozen=True)
class FormatError:
    """Tagged decode failure. Falsy, so ``if not result`` also works."""
    kind: FormatErrorKind
    message: str

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class Gb7Header:
    version: int
    has_mask: bool
    width: int
    height: int

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


def _js_round(values: np.ndarray) -> np.ndarray:
    """Round half up, as the format's reference encoder does."""
    return np.floor(values + 0.5)


def read_header(data: bytes) -> Gb7Header | FormatError:
    """Parse and validate the 12-byte header only."""
    if len(data) < 4 or data[:4] != MAGIC:
        return FormatError(FormatErrorKind.BAD_MAGIC, "Not a GB7 file: magic bytes mismatch")
    if len(data) < HEADER_SIZE:
        return FormatError(
            FormatErrorKind.TRUNCATED,
            f"GB7 header needs {HEADER_SIZE} bytes, got {len(data)}",
        )

    _magic, version, flags, width, height, reserved = _HEADER.unpack_from(data, 0)
    if reserved != 0:
        return FormatError(
            FormatErrorKind.RESERVED_NOT_ZERO,
            f"GB7 reserved field must be 0, got 0x{reserved:04x}",
        )
    return Gb7Header(
        version=version,
        has_mask=bool(flags & FLAG_HAS_MASK),
        width=width,
        height=height,
    )


def decode(data: bytes) -> PixelBuffer | FormatError:
    """
    Decode GB7 bytes into an RGBA buffer.

    Gray is expanded from 7 to 8 bits with round(g / 127 * 255). With the
    mask flag set, bit 7 of each byte selects alpha 255 (set) or 0 (clear);
    without it every pixel is opaque. Trailing bytes after the pixel data are
    ignored.
    """
    data = bytes(data)
    header = read_header(data)
    if isinstance(header, FormatError):
        LOGGER.warning("GB7 decode rejected: %s", header.message)
        return header

    count = header.pixel_count
    available = len(data) - HEADER_SIZE
    if available < count:
        err = FormatError(
            FormatErrorKind.TRUNCATED,
            f"GB7 pixel data truncated: need {count} bytes, got {available}",
        )
        LOGGER.warning("GB7 decode rejected: %s", err.message)
        return err

    if count:
        raw = np.frombuffer(data, dtype=np.uint8, count=count, offset=HEADER_SIZE)
    else:
        raw = np.zeros(0, dtype=np.uint8)
    gray7 = (raw & GRAY_MASK).astype(np.float64)
    luma = _js_round(gray7 / MAX_GRAY * 255.0).astype(np.uint8)

    if header.has_mask:
        alpha = np.where((raw >> 7) & 1, 255, 0).astype(np.uint8)
    else:
        alpha = np.full(count, 255, dtype=np.uint8)

    out = np.empty((header.height, header.width, 4), dtype=np.uint8)
    out[..., 0] = luma.reshape(header.height, header.width)
    out[..., 1] = out[..., 0]
    out[..., 2] = out[..., 0]
    out[..., 3] = alpha.reshape(header.height, header.width)

    LOGGER.debug(
        "Decoded GB7 v%d %dx%d (mask=%s)",
        header.version, header.width, header.height, header.has_mask,
    )
    return PixelBuffer(out)


def encode(buffer: PixelBuffer) -> bytes:
    """
    Encode an RGBA buffer as GB7.

    Uses Rec. 709 luma (0.2126 R + 0.7152 G + 0.0722 B) on the stored
    values, quantised to 7 bits. The flag byte is always 0 and no mask bit
    is written, so alpha does not survive the round trip.
    """
    width, height = buffer.size
    if width > 0xFFFF or height > 0xFFFF:
        raise ValueError(f"GB7 cannot store {width}x{height}: dimensions are u16")

    rgb = buffer.pixels[..., :3].astype(np.float64)
    luma = 0.2126 * rgb[..., 0] + 0.7152 * rgb[..., 1] + 0.0722 * rgb[..., 2]
    gray7 = np.clip(_js_round(luma / 255.0 * MAX_GRAY), 0, MAX_GRAY).astype(np.uint8)

    header = _HEADER.pack(MAGIC, VERSION, 0x00, width, height, 0)
    LOGGER.debug("Encoded GB7 %dx%d", width, height)
    return header + gray7.tobytes()
