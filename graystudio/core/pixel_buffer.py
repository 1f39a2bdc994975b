from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """
    RGBA raster: shape (H, W, 4), dtype uint8, non-premultiplied.

    Every transform in graystudio.core returns a new PixelBuffer and leaves
    its inputs alone, so callers can keep old buffers around for history.
    """
    pixels: np.ndarray

    def __post_init__(self):
        px = self.pixels
        if not isinstance(px, np.ndarray):
            raise ValueError("PixelBuffer.pixels must be a numpy array")
        if px.ndim != 3 or px.shape[2] != 4:
            raise ValueError(f"PixelBuffer expects shape (H, W, 4), got {px.shape}")
        if px.dtype != np.uint8:
            raise ValueError(f"PixelBuffer expects uint8 samples, got {px.dtype}")

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.pixels is other.pixels or np.array_equal(self.pixels, other.pixels)

    __hash__ = None

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        """(width, height)"""
        return self.width, self.height

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.pixels.copy())

    def to_bytes(self) -> bytes:
        """Interleaved RGBA bytes, row-major."""
        return np.ascontiguousarray(self.pixels).tobytes()

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes) -> "PixelBuffer":
        expected = width * height * 4
        if len(data) != expected:
            raise ValueError(f"Expected {expected} bytes for {width}x{height} RGBA, got {len(data)}")
        arr = np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4)
        return cls(arr.copy())

    @classmethod
    def blank(cls, width: int, height: int) -> "PixelBuffer":
        """Fully transparent black."""
        return cls(np.zeros((height, width, 4), dtype=np.uint8))

    @classmethod
    def filled(cls, width: int, height: int, rgba: tuple[int, int, int, int]) -> "PixelBuffer":
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[...] = np.asarray(rgba, dtype=np.uint8)
        return cls(arr)
