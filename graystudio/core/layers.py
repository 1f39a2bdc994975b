"""
Layer model and the ordered, immutable layer stack.

Index 0 is the bottom of the stack and always holds the base layer once an
image has been loaded. Every edit returns a new LayerStack; an existing stack
is never changed, so a stack can be kept as an undo snapshot as-is.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field, replace
from typing import Iterator, Optional

from graystudio.core.curves import CurvePoints
from graystudio.core.pixel_buffer import PixelBuffer
from graystudio.exceptions import LayerError


class BlendMode(str, enum.Enum):
    NORMAL = "normal"
    MULTIPLY = "multiply"
    SCREEN = "screen"
    OVERLAY = "overlay"


BLEND_MODE_HINTS = {
    BlendMode.NORMAL: "Draws the layer over the ones below unchanged.",
    BlendMode.MULTIPLY: "Multiplies colours, darkening the result.",
    BlendMode.SCREEN: "Inverts, multiplies and inverts again, lightening the result.",
    BlendMode.OVERLAY: "Multiply in the shadows, screen in the highlights, for contrast.",
}


def new_layer_id() -> str:
    return uuid.uuid4().hex[:9]


@dataclass(frozen=True)
class Layer:
    name: str
    id: str = field(default_factory=new_layer_id)
    image: Optional[PixelBuffer] = None
    fill_color: Optional[str] = None          # "#rrggbb", used when image is None
    visible: bool = True
    opacity: float = 1.0                      # [0, 1]
    blend_mode: BlendMode = BlendMode.NORMAL
    alpha_image: Optional[PixelBuffer] = None
    alpha_visible: bool = True
    curves: Optional[CurvePoints] = None
    original_image: Optional[PixelBuffer] = None  # pre-curve snapshot
    is_base: bool = False

    @property
    def has_content(self) -> bool:
        return self.image is not None or self.fill_color is not None


def make_base_layer(image: PixelBuffer, name: str = "Background") -> Layer:
    return Layer(name=name, image=image, is_base=True)


class LayerStack:
    """Ordered tuple of layers with copy-on-write edits."""

    def __init__(self, layers=(), max_layers: int | None = None):
        self._layers: tuple[Layer, ...] = tuple(layers)
        self.max_layers = max_layers

        ids = [layer.id for layer in self._layers]
        if len(set(ids)) != len(ids):
            raise LayerError("Layer ids must be unique")
        bases = [i for i, layer in enumerate(self._layers) if layer.is_base]
        if len(bases) > 1:
            raise LayerError("Only one base layer is allowed")
        if bases and bases[0] != 0:
            raise LayerError("The base layer must be at the bottom of the stack")

    # ---------- read access ----------

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Layer]:
        return iter(self._layers)

    def __getitem__(self, index: int) -> Layer:
        return self._layers[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, LayerStack):
            return NotImplemented
        return self._layers == other._layers

    def __repr__(self) -> str:
        names = ", ".join(layer.name for layer in self._layers)
        return f"LayerStack([{names}])"

    @property
    def layers(self) -> tuple[Layer, ...]:
        return self._layers

    @property
    def base(self) -> Optional[Layer]:
        if self._layers and self._layers[0].is_base:
            return self._layers[0]
        return None

    @property
    def is_full(self) -> bool:
        return self.max_layers is not None and len(self._layers) >= self.max_layers

    def index_of(self, layer_id: str) -> int:
        for i, layer in enumerate(self._layers):
            if layer.id == layer_id:
                return i
        raise LayerError(f"No layer with id {layer_id!r}")

    def get(self, layer_id: str) -> Layer:
        return self._layers[self.index_of(layer_id)]

    # ---------- edits (each returns a new stack) ----------

    def _with(self, layers) -> "LayerStack":
        return LayerStack(layers, max_layers=self.max_layers)

    def set_base_image(self, image: PixelBuffer) -> "LayerStack":
        """Create the base layer, or swap the image of the existing one."""
        base = self.base
        if base is None:
            if self.is_full:
                raise LayerError(f"Layer limit of {self.max_layers} reached")
            return self._with((make_base_layer(image),) + self._layers)
        # A new source image invalidates curves made against the old one
        updated = replace(base, image=image, original_image=None, curves=None)
        return self._with((updated,) + self._layers[1:])

    def add(self, layer: Layer) -> "LayerStack":
        if self.is_full:
            raise LayerError(f"Layer limit of {self.max_layers} reached")
        if layer.is_base:
            raise LayerError("Use set_base_image() for the base layer")
        return self._with(self._layers + (layer,))

    def remove(self, layer_id: str) -> "LayerStack":
        index = self.index_of(layer_id)
        if self._layers[index].is_base:
            raise LayerError("The base layer cannot be removed")
        return self._with(self._layers[:index] + self._layers[index + 1:])

    def move(self, layer_id: str, direction: str) -> "LayerStack":
        """
        Swap a layer with its neighbour. "up" means one step towards the top
        of the stack (higher index). Moving past either end is a no-op.
        """
        if direction not in ("up", "down"):
            raise ValueError(f"Unknown direction: {direction}")
        index = self.index_of(layer_id)
        if self._layers[index].is_base:
            raise LayerError("The base layer cannot be moved")

        target = index + 1 if direction == "up" else index - 1
        if target < 0 or target >= len(self._layers) or self._layers[target].is_base:
            return self
        layers = list(self._layers)
        layers[index], layers[target] = layers[target], layers[index]
        return self._with(layers)

    def update(self, layer_id: str, **changes) -> "LayerStack":
        if "is_base" in changes or "id" in changes:
            raise LayerError("Layer id and base role cannot be changed")
        index = self.index_of(layer_id)
        updated = replace(self._layers[index], **changes)
        layers = list(self._layers)
        layers[index] = updated
        return self._with(layers)
