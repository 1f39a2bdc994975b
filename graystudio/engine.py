# engine.py

from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np

from graystudio.core import curves, filters, image_io, interpolation
from graystudio.core.color import (
    EMPTY_COLOR_SAMPLE,
    ColorSample,
    ContrastReport,
    contrast_report,
    sample_color,
)
from graystudio.core.compositor import composite_layers, parse_fill_color
from graystudio.core.curves import CurvePoints
from graystudio.core.image_io import ImageInfo
from graystudio.core.layers import BlendMode, Layer, LayerStack
from graystudio.core.pixel_buffer import PixelBuffer
from graystudio.exceptions import LayerError
from graystudio.utils import config
from graystudio.utils.log import get_logger

LOGGER = get_logger(__name__)

DEFAULT_FILL_COLOR = "#ffffff"


class Engine:
    """
    Editing session around the pixel core.

    Workflow:
        1. load_image() - decode a file into the base layer
        2. add_layer(), apply_curves(), apply_filter(), ... - edit the stack
        3. composite - rebuilt after every stack change
        4. resize() - optional resampled copy of the composite
        5. export() / save() - encode the result

    The layer stack is immutable; each edit replaces it and keeps the
    previous one for undo.
    """

    def __init__(self, max_layers: int | None = None, history_limit: int | None = None) -> None:
        self.max_layers = config.get_max_layers() if max_layers is None else max_layers
        self.history_limit = config.get_history_limit() if history_limit is None else history_limit

        self.image_info: ImageInfo | None = None
        self.layers = LayerStack(max_layers=self.max_layers)
        self.composite: PixelBuffer | None = None

        # Resampled composite (set by resize(), cleared on any stack change)
        self.resized: PixelBuffer | None = None
        self.resize_method: str | None = None

        # Eyedropper picks: primary and secondary (alt-click)
        self.color1: ColorSample = EMPTY_COLOR_SAMPLE
        self.color2: ColorSample = EMPTY_COLOR_SAMPLE

        self._undo: list[LayerStack] = []
        self._redo: list[LayerStack] = []

    # ---------- stack bookkeeping ----------

    def _commit(self, stack: LayerStack, record: bool = True) -> None:
        if stack is self.layers:
            return
        if record:
            self._undo.append(self.layers)
            if len(self._undo) > self.history_limit:
                del self._undo[0]
            self._redo.clear()
        self.layers = stack
        self._recomposite()

    def _recomposite(self) -> None:
        self.resized = None
        self.resize_method = None
        if len(self.layers) == 0:
            self.composite = None
            return
        result = composite_layers(self.layers)
        if result is None:
            LOGGER.debug("Composite not rebuilt; keeping previous result")
            return
        self.composite = result

    def _require_image(self) -> None:
        if self.layers.base is None:
            raise LayerError("No image loaded")

    def _layer_with_image(self, layer_id: str) -> Layer:
        layer = self.layers.get(layer_id)
        if layer.image is None:
            raise LayerError(f"Layer {layer.name!r} has no image data")
        return layer

    # ---------- loading ----------

    def _set_source(self, buffer: PixelBuffer, info: ImageInfo) -> None:
        self.image_info = info
        # A new source image starts a fresh history
        self._undo.clear()
        self._redo.clear()
        self._commit(self.layers.set_base_image(buffer), record=False)
        LOGGER.info("Source image set: %dx%d (%s)", info.width, info.height, info.format)

    def load_image(self, filepath: str | Path) -> ImageInfo:
        buffer, info = image_io.load_image(filepath)
        self._set_source(buffer, info)
        return info

    def load_bytes(self, data: bytes, name: str) -> ImageInfo:
        buffer, info = image_io.load_image_bytes(data, name)
        self._set_source(buffer, info)
        return info

    @property
    def base_layer(self) -> Optional[Layer]:
        return self.layers.base

    # ---------- layer management ----------

    def add_layer(
        self,
        name: str = "New layer",
        path: str | Path | None = None,
        data: bytes | None = None,
        filename: str | None = None,
        fill_color: str | None = None,
    ) -> Layer:
        """
        Add a layer on top of the stack, from a file, from in-memory file
        data (decoder picked by `filename`), or as a flat colour fill.
        """
        self._require_image()
        if self.layers.is_full:
            raise LayerError(f"Layer limit of {self.max_layers} reached")

        if path is not None:
            image, _info = image_io.load_image(path)
            layer = Layer(name=name, image=image)
        elif data is not None:
            image, _info = image_io.load_image_bytes(data, filename or name)
            layer = Layer(name=name, image=image)
        else:
            color = fill_color or DEFAULT_FILL_COLOR
            parse_fill_color(color)
            layer = Layer(name=name, fill_color=color)

        self._commit(self.layers.add(layer))
        LOGGER.info("Added layer %r (%s)", name, layer.id)
        return layer

    def get_layer(self, layer_id: str) -> Layer:
        return self.layers.get(layer_id)

    def remove_layer(self, layer_id: str) -> None:
        self._commit(self.layers.remove(layer_id))

    def move_layer(self, layer_id: str, direction: str) -> None:
        """
        Move a layer one step in the stacking order. "up" raises it towards
        the top (higher index, drawn later); "down" lowers it, but never
        below the base layer. A list shown top-first runs the other way.
        """
        self._commit(self.layers.move(layer_id, direction))

    def set_visible(self, layer_id: str, visible: bool) -> None:
        self._commit(self.layers.update(layer_id, visible=bool(visible)))

    def set_opacity(self, layer_id: str, opacity: float) -> None:
        opacity = float(np.clip(opacity, 0.0, 1.0))
        self._commit(self.layers.update(layer_id, opacity=opacity))

    def set_blend_mode(self, layer_id: str, mode: str | BlendMode) -> None:
        self._commit(self.layers.update(layer_id, blend_mode=BlendMode(mode)))

    def set_alpha_preview(self, layer_id: str, image: PixelBuffer) -> None:
        self._commit(self.layers.update(layer_id, alpha_image=image, alpha_visible=True))

    def set_alpha_visible(self, layer_id: str, visible: bool) -> None:
        self._commit(self.layers.update(layer_id, alpha_visible=bool(visible)))

    def remove_alpha_preview(self, layer_id: str) -> None:
        self._commit(self.layers.update(layer_id, alpha_image=None))

    # ---------- tone curves ----------

    def histograms(self, layer_id: str, channel: str = "rgb") -> list[np.ndarray]:
        layer = self._layer_with_image(layer_id)
        return curves.channel_histograms(layer.image, channel)

    def preview_curves(self, layer_id: str, points: CurvePoints, channel: str = "rgb") -> PixelBuffer:
        """Curve result without touching the stack."""
        layer = self._layer_with_image(layer_id)
        source = layer.original_image if layer.original_image is not None else layer.image
        return curves.apply_curve(source, points, channel)

    def apply_curves(self, layer_id: str, points: CurvePoints, channel: str = "rgb") -> Layer:
        """
        Apply a curve to a layer. The pre-curve image is kept so the curve
        can be edited again or removed; edits always start from it.
        """
        layer = self._layer_with_image(layer_id)
        original = layer.original_image if layer.original_image is not None else layer.image
        corrected = curves.apply_curve(original, points, channel)
        self._commit(
            self.layers.update(layer_id, image=corrected, original_image=original, curves=points)
        )
        LOGGER.info("Curve %s on %s applied to layer %r", points.as_tuple(), channel, layer.name)
        return self.layers.get(layer_id)

    def remove_curves(self, layer_id: str) -> Layer:
        layer = self.layers.get(layer_id)
        if layer.original_image is not None:
            stack = self.layers.update(
                layer_id, image=layer.original_image, original_image=None, curves=None
            )
        else:
            stack = self.layers.update(layer_id, curves=None)
        self._commit(stack)
        return self.layers.get(layer_id)

    # ---------- filters ----------

    def apply_filter(self, layer_id: str, kernel) -> Layer:
        """
        Convolve a layer's image. `kernel` is a matrix or a preset name.
        Any curve on the layer is baked in first.
        """
        layer = self._layer_with_image(layer_id)
        if isinstance(kernel, str):
            kernel = filters.get_kernel(kernel)
        filtered = filters.apply_kernel(layer.image, kernel)
        self._commit(
            self.layers.update(layer_id, image=filtered, original_image=None, curves=None)
        )
        return self.layers.get(layer_id)

    # ---------- resize / export ----------

    @property
    def output(self) -> Optional[PixelBuffer]:
        """What export() writes: the resized image if any, else the composite."""
        return self.resized if self.resized is not None else self.composite

    def resize(self, width: int, height: int, method: str = "bilinear") -> PixelBuffer:
        if self.composite is None:
            raise LayerError("No image loaded")
        limit = config.get_max_dimension()
        if width > limit or height > limit:
            raise ValueError(f"{width}x{height} exceeds the {limit}px limit")

        self.resized = interpolation.resize(self.composite, width, height, method)
        self.resize_method = method
        LOGGER.info(
            "Resized %dx%d -> %dx%d (%s, %.2f MP -> %.2f MP)",
            self.composite.width, self.composite.height, width, height, method,
            interpolation.megapixels(self.composite.width, self.composite.height),
            interpolation.megapixels(width, height),
        )
        return self.resized

    def clear_resize(self) -> None:
        self.resized = None
        self.resize_method = None

    def export(self, fmt: str, quality: int | None = None) -> bytes:
        out = self.output
        if out is None:
            raise LayerError("No image loaded")
        return image_io.encode_image(out, fmt, quality=quality)

    def save(self, path: str | Path, quality: int | None = None) -> Path:
        out = self.output
        if out is None:
            raise LayerError("No image loaded")
        return image_io.save_image(out, path, quality=quality)

    # ---------- eyedropper ----------

    def pick_color(self, x: int, y: int, secondary: bool = False) -> ColorSample | None:
        """Sample the composite. Out-of-range picks leave the slot unchanged."""
        if self.composite is None:
            return None
        sample = sample_color(self.composite, x, y)
        if sample is None:
            return None
        if secondary:
            self.color2 = sample
        else:
            self.color1 = sample
        return sample

    def contrast(self) -> ContrastReport:
        return contrast_report(self.color1, self.color2)

    # ---------- history ----------

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.layers)
        self.layers = self._undo.pop()
        self._recomposite()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.layers)
        self.layers = self._redo.pop()
        self._recomposite()
        return True
