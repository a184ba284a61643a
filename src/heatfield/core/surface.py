from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

import numpy as np


BlendMode = Literal["source-over", "lighter", "max"]
BLEND_MODES: tuple[str, ...] = ("source-over", "lighter", "max")


@dataclass(frozen=True)
class RenderBoundaries:
    """Half-open pixel rectangle `[min_x, max_x) x [min_y, max_y)`."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int

    @property
    def width(self) -> int:
        return max(0, self.max_x - self.min_x)

    @property
    def height(self) -> int:
        return max(0, self.max_y - self.min_y)

    @property
    def empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def to_dict(self) -> dict[str, int]:
        return {
            "minX": int(self.min_x),
            "minY": int(self.min_y),
            "maxX": int(self.max_x),
            "maxY": int(self.max_y),
            "width": int(self.width),
            "height": int(self.height),
        }


EMPTY_BOUNDS = RenderBoundaries(0, 0, 0, 0)


class RasterSurface(Protocol):
    """Drawing-surface contract the compositor renders through."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def resize(self, width: int, height: int) -> None: ...

    def clear(self, bounds: RenderBoundaries | None = None) -> None: ...

    def draw_template(self, template: np.ndarray, x: int, y: int, alpha: float, blend: BlendMode) -> None: ...

    def read(self, bounds: RenderBoundaries) -> np.ndarray: ...

    def write(self, pixels: np.ndarray, x: int, y: int) -> None: ...


class ArraySurface:
    """numpy-backed surface. `channels == 1` gives a float32 intensity plane in [0, 1];
    `channels == 4` gives a uint8 RGBA image."""

    def __init__(self, width: int, height: int, *, channels: int = 4) -> None:
        if channels not in (1, 4):
            raise ValueError("channels must be 1 or 4")
        self._channels = int(channels)
        self._pixels = self._allocate(width, height)

    def _allocate(self, width: int, height: int) -> np.ndarray:
        w, h = int(width), int(height)
        if w <= 0 or h <= 0:
            raise ValueError("surface width and height must be positive integers")
        if self._channels == 1:
            return np.zeros((h, w), dtype=np.float32)
        return np.zeros((h, w, 4), dtype=np.uint8)

    @property
    def width(self) -> int:
        return int(self._pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self._pixels.shape[0])

    @property
    def pixels(self) -> np.ndarray:
        view = self._pixels.view()
        view.flags.writeable = False
        return view

    def resize(self, width: int, height: int) -> None:
        self._pixels = self._allocate(width, height)

    def clip(self, bounds: RenderBoundaries) -> RenderBoundaries:
        return RenderBoundaries(
            min_x=max(0, min(self.width, int(bounds.min_x))),
            min_y=max(0, min(self.height, int(bounds.min_y))),
            max_x=max(0, min(self.width, int(bounds.max_x))),
            max_y=max(0, min(self.height, int(bounds.max_y))),
        )

    def clear(self, bounds: RenderBoundaries | None = None) -> None:
        if bounds is None:
            self._pixels[...] = 0
            return
        b = self.clip(bounds)
        self._pixels[b.min_y : b.max_y, b.min_x : b.max_x] = 0

    def draw_template(self, template: np.ndarray, x: int, y: int, alpha: float, blend: BlendMode) -> None:
        """Stamp a single-channel template with its top-left corner at `(x, y)`."""

        if self._channels != 1:
            raise ValueError("templates can only be drawn onto intensity surfaces")
        th, tw = template.shape
        x0, y0 = max(0, int(x)), max(0, int(y))
        x1, y1 = min(self.width, int(x) + tw), min(self.height, int(y) + th)
        if x1 <= x0 or y1 <= y0:
            return

        src = template[y0 - int(y) : y1 - int(y), x0 - int(x) : x1 - int(x)] * np.float32(alpha)
        dst = self._pixels[y0:y1, x0:x1]
        if blend == "lighter":
            np.minimum(dst + src, 1.0, out=dst)
        elif blend == "max":
            np.maximum(dst, src, out=dst)
        elif blend == "source-over":
            dst += src * (1.0 - dst)
        else:
            raise ValueError(f"Unknown blend mode {blend!r}. Supported: {list(BLEND_MODES)}")

    def read(self, bounds: RenderBoundaries) -> np.ndarray:
        b = self.clip(bounds)
        return self._pixels[b.min_y : b.max_y, b.min_x : b.max_x].copy()

    def write(self, pixels: np.ndarray, x: int, y: int) -> None:
        arr = np.asarray(pixels)
        h, w = arr.shape[0], arr.shape[1]
        if int(x) < 0 or int(y) < 0 or int(x) + w > self.width or int(y) + h > self.height:
            raise ValueError("write region exceeds the surface")
        self._pixels[int(y) : int(y) + h, int(x) : int(x) + w] = arr.astype(self._pixels.dtype, copy=False)
