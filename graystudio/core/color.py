"""
Colour conversions for the eyedropper and contrast checks.

All inputs are 8-bit sRGB (0..255). XYZ is scaled to 0..100 against the
D65 white point, Lab/LCH follow CIE 1976.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

from graystudio.core.pixel_buffer import PixelBuffer
from graystudio.utils.log import get_logger

LOGGER = get_logger(__name__)


# ============================================================================
# Value types
# ============================================================================

class RGB(NamedTuple):
    r: int
    g: int
    b: int


class XYZ(NamedTuple):
    x: float
    y: float
    z: float


class Lab(NamedTuple):
    l: float
    a: float
    b: float


class LCH(NamedTuple):
    l: float
    c: float
    h: float


class OKLCh(NamedTuple):
    l: float
    c: float
    h: float


@dataclass(frozen=True)
class ColorSample:
    """Snapshot of one picked pixel in every supported space."""
    x: int
    y: int
    rgb: RGB
    xyz: XYZ
    lab: Lab
    lch: LCH
    oklch: OKLCh


EMPTY_COLOR_SAMPLE = ColorSample(
    x=0,
    y=0,
    rgb=RGB(0, 0, 0),
    xyz=XYZ(0.0, 0.0, 0.0),
    lab=Lab(0.0, 0.0, 0.0),
    lch=LCH(0.0, 0.0, 0.0),
    oklch=OKLCh(0.0, 0.0, 0.0),
)

D65_WHITE = XYZ(95.047, 100.0, 108.883)

# sRGB (D65) -> XYZ
_SRGB_TO_XYZ = np.array(
    [
        [0.4124, 0.3576, 0.1805],
        [0.2126, 0.7152, 0.0722],
        [0.0193, 0.1192, 0.9505],
    ],
    dtype=np.float64,
)

_LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)

WCAG_AA_RATIO = 4.5


# ============================================================================
# Transfer function
# ============================================================================

def srgb_to_linear(srgb: np.ndarray) -> np.ndarray:
    """Convert sRGB (0..1) to linear RGB (0..1)."""
    srgb = np.asarray(srgb, dtype=np.float64)
    a = 0.055
    threshold = 0.04045
    return np.where(
        srgb > threshold,
        np.power((np.maximum(srgb, threshold) + a) / (1.0 + a), 2.4),
        srgb / 12.92,
    )


# ============================================================================
# Space conversions
# ============================================================================

def rgb_to_xyz(r: float, g: float, b: float) -> XYZ:
    linear = srgb_to_linear(np.array([r, g, b], dtype=np.float64) / 255.0)
    x, y, z = (_SRGB_TO_XYZ @ linear) * 100.0
    return XYZ(float(x), float(y), float(z))


def _lab_f(t: float) -> float:
    return math.cbrt(t) if t > 0.008856 else 7.787 * t + 16.0 / 116.0


def xyz_to_lab(x: float, y: float, z: float) -> Lab:
    fx = _lab_f(x / D65_WHITE.x)
    fy = _lab_f(y / D65_WHITE.y)
    fz = _lab_f(z / D65_WHITE.z)
    return Lab(116.0 * fy - 16.0, 500.0 * (fx - fy), 200.0 * (fy - fz))


def lab_to_lch(l: float, a: float, b: float) -> LCH:
    c = math.sqrt(a * a + b * b)
    h = math.degrees(math.atan2(b, a))
    if h < 0:
        h += 360.0
    # atan2 can land on exactly 360 after the shift for tiny negative angles
    if h >= 360.0:
        h -= 360.0
    return LCH(l, c, h)


def lab_to_oklch(l: float, a: float, b: float) -> OKLCh:
    """
    Placeholder: lightness is passed through, chroma and hue are 0.

    This is not an OKLab transform. Kept as-is until a real OKLab
    conversion is asked for.
    """
    return OKLCh(l, 0.0, 0.0)


# ============================================================================
# Luminance / contrast (WCAG 2.x)
# ============================================================================

def get_luminance(r: float, g: float, b: float) -> float:
    """WCAG relative luminance in [0, 1]."""
    linear = srgb_to_linear(np.array([r, g, b], dtype=np.float64) / 255.0)
    return float(_LUMA_WEIGHTS @ linear)


def get_contrast_ratio(rgb1, rgb2) -> float:
    """(lighter + 0.05) / (darker + 0.05); argument order does not matter."""
    l1 = get_luminance(*rgb1)
    l2 = get_luminance(*rgb2)
    return (max(l1, l2) + 0.05) / (min(l1, l2) + 0.05)


def is_accessible(ratio: float) -> bool:
    return ratio >= WCAG_AA_RATIO


def luminance_map(buffer: PixelBuffer) -> np.ndarray:
    """Per-pixel relative luminance, float64 array of shape (H, W)."""
    linear = srgb_to_linear(buffer.pixels[..., :3].astype(np.float64) / 255.0)
    return linear @ _LUMA_WEIGHTS


@dataclass(frozen=True)
class ContrastReport:
    ratio: float
    accessible: bool


def contrast_report(sample1: ColorSample, sample2: ColorSample) -> ContrastReport:
    ratio = get_contrast_ratio(sample1.rgb, sample2.rgb)
    return ContrastReport(ratio=ratio, accessible=is_accessible(ratio))


# ============================================================================
# Eyedropper
# ============================================================================

def describe_rgb(x: int, y: int, rgb: RGB) -> ColorSample:
    xyz = rgb_to_xyz(*rgb)
    lab = xyz_to_lab(*xyz)
    return ColorSample(
        x=x,
        y=y,
        rgb=rgb,
        xyz=xyz,
        lab=lab,
        lch=lab_to_lch(*lab),
        oklch=lab_to_oklch(*lab),
    )


def sample_color(buffer: PixelBuffer, x: int, y: int) -> ColorSample | None:
    """
    Read one pixel and derive every colour representation.

    Returns None when (x, y) falls outside the buffer.
    """
    if not (0 <= x < buffer.width and 0 <= y < buffer.height):
        LOGGER.debug("Eyedropper at (%d, %d) is outside %dx%d", x, y, buffer.width, buffer.height)
        return None
    r, g, b = (int(v) for v in buffer.pixels[y, x, :3])
    return describe_rgb(x, y, RGB(r, g, b))
