"""
Layer compositing.

Layers are drawn bottom to top onto a transparent canvas the size of the
base image. Blending follows the separable blend modes of the W3C
compositing model, followed by source-over:

    Cs' = (1 - ab) * Cs + ab * B(Cb, Cs)
    ao  = as + ab * (1 - as)
    Co  = (as * Cs' + (1 - as) * ab * Cb) / ao

where `as` already includes the layer opacity.
"""

from __future__ import annotations

from typing import Iterable, Optional

import numpy as np
from PIL import ImageColor

from graystudio.core.interpolation import bilinear_interpolation
from graystudio.core.layers import BlendMode, Layer
from graystudio.core.pixel_buffer import PixelBuffer
from graystudio.utils import config
from graystudio.utils.log import get_logger

LOGGER = get_logger(__name__)

ALPHA_PREVIEW_OPACITY = 0.5


# ============================================================================
# Blend functions (all inputs float 0..1)
# ============================================================================

def _blend_normal(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
    return cs


def _blend_multiply(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
    return cb * cs


def _blend_screen(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
    return 1.0 - (1.0 - cb) * (1.0 - cs)


def _blend_overlay(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
    return np.where(
        cb < 0.5,
        2.0 * cb * cs,
        1.0 - 2.0 * (1.0 - cb) * (1.0 - cs),
    )


BLEND_FUNCTIONS = {
    BlendMode.NORMAL: _blend_normal,
    BlendMode.MULTIPLY: _blend_multiply,
    BlendMode.SCREEN: _blend_screen,
    BlendMode.OVERLAY: _blend_overlay,
}


def composite_over(
    dst: np.ndarray,
    src: np.ndarray,
    opacity: float,
    mode: BlendMode = BlendMode.NORMAL,
) -> np.ndarray:
    """
    Draw float RGBA `src` over float RGBA `dst` (both (H, W, 4), 0..1,
    straight alpha) and return the new float canvas.
    """
    blend = BLEND_FUNCTIONS[BlendMode(mode)]

    cb = dst[..., :3]
    ab = dst[..., 3:4]
    cs = src[..., :3]
    a_s = src[..., 3:4] * float(np.clip(opacity, 0.0, 1.0))

    cs_mixed = (1.0 - ab) * cs + ab * blend(cb, cs)
    ao = a_s + ab * (1.0 - a_s)
    co = a_s * cs_mixed + (1.0 - a_s) * ab * cb

    safe_ao = np.where(ao > 0, ao, 1.0)
    # Fully transparent results keep the incoming colour; alpha hides it anyway
    color = np.where(ao > 0, co / safe_ao, cs_mixed)

    out = np.empty_like(dst)
    out[..., :3] = np.clip(color, 0.0, 1.0)
    out[..., 3:4] = np.clip(ao, 0.0, 1.0)
    return out


# ============================================================================
# Layer sources
# ============================================================================

def parse_fill_color(fill_color: str) -> tuple[int, int, int, int]:
    """'#rrggbb' (or any colour Pillow understands) -> opaque RGBA."""
    rgb = ImageColor.getrgb(fill_color)
    if len(rgb) == 4:
        return rgb
    return rgb[0], rgb[1], rgb[2], 255


def _to_float(buffer: PixelBuffer, width: int, height: int) -> np.ndarray:
    if buffer.size != (width, height):
        # Layers are stretched to the canvas, like drawing an image at full size
        buffer = bilinear_interpolation(buffer, width, height)
    return buffer.pixels.astype(np.float64) / 255.0


def _layer_source(layer: Layer, width: int, height: int) -> Optional[np.ndarray]:
    if layer.image is not None and not layer.image.is_empty:
        return _to_float(layer.image, width, height)
    if layer.fill_color is not None:
        fill = PixelBuffer.filled(width, height, parse_fill_color(layer.fill_color))
        return fill.pixels.astype(np.float64) / 255.0
    return None


def canvas_size(layers: Iterable[Layer]) -> tuple[int, int]:
    """Size of the base image, or the configured default canvas."""
    layers = list(layers)
    base = next((layer for layer in layers if layer.is_base), layers[0] if layers else None)
    if base is not None and base.image is not None:
        return base.image.size
    return config.get_default_canvas_size()


def composite_layers(layers: Iterable[Layer]) -> Optional[PixelBuffer]:
    """
    Flatten the stack into a new buffer.

    Returns None when there are no layers or the canvas has no area; the
    caller keeps whatever composite it had before in the latter case.
    """
    layers = list(layers)
    if not layers:
        return None

    width, height = canvas_size(layers)
    if width <= 0 or height <= 0:
        LOGGER.warning("Composite skipped: canvas is %dx%d", width, height)
        return None

    canvas = np.zeros((height, width, 4), dtype=np.float64)
    drawn = 0
    for layer in layers:
        if not layer.visible:
            continue
        src = _layer_source(layer, width, height)
        if src is None:
            continue
        canvas = composite_over(canvas, src, layer.opacity, layer.blend_mode)
        drawn += 1

        if layer.alpha_image is not None and layer.alpha_visible and not layer.alpha_image.is_empty:
            preview = _to_float(layer.alpha_image, width, height)
            canvas = composite_over(
                canvas, preview, layer.opacity * ALPHA_PREVIEW_OPACITY, BlendMode.NORMAL
            )

    LOGGER.debug("Composited %d of %d layers at %dx%d", drawn, len(layers), width, height)
    out = np.clip(np.rint(canvas * 255.0), 0, 255).astype(np.uint8)
    return PixelBuffer(out)
