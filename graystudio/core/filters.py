"""
Kernel convolution with edge-replicated borders.
"""

from __future__ import annotations

import numpy as np

from graystudio.core.pixel_buffer import PixelBuffer
from graystudio.utils.log import get_logger

LOGGER = get_logger(__name__)


# ============================================================================
# Presets (weights are used as given, never normalised)
# ============================================================================

KERNEL_PRESETS: dict[str, tuple[str, np.ndarray]] = {
    "identity": (
        "Identity",
        np.array([[0, 0, 0], [0, 1, 0], [0, 0, 0]], dtype=np.float64),
    ),
    "sharpen": (
        "Sharpen",
        np.array([[0, -1, 0], [-1, 5, -1], [0, -1, 0]], dtype=np.float64),
    ),
    "gaussian_blur": (
        "Gaussian blur",
        np.array([[1, 2, 1], [2, 4, 2], [1, 2, 1]], dtype=np.float64) / 16.0,
    ),
    "box_blur": (
        "Box blur",
        np.full((3, 3), 1.0 / 9.0, dtype=np.float64),
    ),
    "prewitt_x": (
        "Prewitt operator (X)",
        np.array([[-1, 0, 1], [-1, 0, 1], [-1, 0, 1]], dtype=np.float64),
    ),
    "prewitt_y": (
        "Prewitt operator (Y)",
        np.array([[-1, -1, -1], [0, 0, 0], [1, 1, 1]], dtype=np.float64),
    ),
}


def get_kernel(name: str) -> np.ndarray:
    """Return a copy of a preset kernel so callers may edit it freely."""
    try:
        return KERNEL_PRESETS[name][1].copy()
    except KeyError:
        raise ValueError(f"Unknown kernel preset: {name}") from None


def _as_kernel(kernel) -> np.ndarray:
    k = np.asarray(kernel, dtype=np.float64)
    if k.ndim != 2 or k.shape[0] != k.shape[1]:
        raise ValueError(f"Kernel must be square, got shape {k.shape}")
    if k.shape[0] == 0 or k.shape[0] % 2 == 0:
        raise ValueError(f"Kernel side must be odd, got {k.shape[0]}")
    return k


# ============================================================================
# Padding / convolution
# ============================================================================

def edge_padding(buffer: PixelBuffer, pad: int) -> PixelBuffer:
    """Grow every edge by `pad` pixels, repeating the outermost row/column."""
    if pad < 0:
        raise ValueError(f"Padding must be >= 0, got {pad}")
    if buffer.is_empty:
        raise ValueError("Cannot pad an empty buffer")
    padded = np.pad(buffer.pixels, ((pad, pad), (pad, pad), (0, 0)), mode="edge")
    return PixelBuffer(padded)


def apply_kernel(buffer: PixelBuffer, kernel) -> PixelBuffer:
    """
    Convolve R, G and B with `kernel` over an edge-padded copy.

    Output(x, y) = sum over (kx, ky) of padded(x + kx, y + ky) * kernel[ky][kx],
    clamped to 0..255. Alpha is not filtered: each pixel takes the alpha of
    the last tap visited, i.e. the bottom-right corner of its footprint.
    """
    k = _as_kernel(kernel)
    size = k.shape[0]
    half = size // 2
    h, w = buffer.height, buffer.width

    padded = edge_padding(buffer, half).pixels
    rgb = padded[..., :3].astype(np.float64)

    acc = np.zeros((h, w, 3), dtype=np.float64)
    for ky in range(size):
        for kx in range(size):
            acc += rgb[ky:ky + h, kx:kx + w] * k[ky, kx]

    out = np.empty((h, w, 4), dtype=np.uint8)
    out[..., :3] = np.clip(np.rint(acc), 0, 255).astype(np.uint8)
    out[..., 3] = padded[size - 1:size - 1 + h, size - 1:size - 1 + w, 3]

    LOGGER.debug("Applied %dx%d kernel to %dx%d buffer", size, size, w, h)
    return PixelBuffer(out)


def apply_preset(buffer: PixelBuffer, name: str) -> PixelBuffer:
    return apply_kernel(buffer, get_kernel(name))
