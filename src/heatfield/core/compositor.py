from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from .points import RenderablePoint, ValueRange
from .surface import BLEND_MODES, EMPTY_BOUNDS, ArraySurface, BlendMode, RenderBoundaries


logger = logging.getLogger(__name__)


def generate_point_template(radius: float, blur: float) -> np.ndarray:
    """Radial intensity footprint of one point, float32 in [0, 1].

    The template is `2 * ceil(radius)` pixels wide. Intensity is 1 inside the solid
    core of radius `radius * (1 - blur)` and falls linearly to 0 at `radius`, so
    `blur = 0` gives a hard disc and `blur = 1` a full cone. A zero radius
    degenerates to a single opaque pixel.
    """

    r = float(radius)
    b = float(np.clip(blur, 0.0, 1.0))
    if r <= 0.0:
        return np.ones((1, 1), dtype=np.float32)

    size = 2 * int(np.ceil(r))
    c = np.arange(size, dtype=np.float64) + 0.5 - size / 2.0
    d = np.sqrt(c[None, :] ** 2 + c[:, None] ** 2)

    inner = r * (1.0 - b)
    if r - inner <= 0.0:
        out = (d <= r).astype(np.float64)
    else:
        out = np.clip((r - d) / (r - inner), 0.0, 1.0)
    return out.astype(np.float32)


def generate_opacity_lut(min_opacity: float, max_opacity: float) -> np.ndarray:
    """(256,) uint8 table mapping merged intensity to `min + (i / 255) * (max - min)`, scaled to 0..255."""

    i = np.arange(256, dtype=np.float64) / 255.0
    scaled = float(min_opacity) + i * (float(max_opacity) - float(min_opacity))
    return np.clip(np.rint(scaled * 255.0), 0, 255).astype(np.uint8)


def _as_point_array(points: Sequence[RenderablePoint] | np.ndarray) -> np.ndarray:
    if isinstance(points, np.ndarray):
        arr = np.asarray(points, dtype=np.float64)
        if arr.size == 0:
            return np.zeros((0, 3), dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] != 3:
            raise ValueError(f"renderable points array must have shape (n,3), got {arr.shape}")
        return arr
    if len(points) == 0:
        return np.zeros((0, 3), dtype=np.float64)
    return np.asarray([(p.x, p.y, p.alpha) for p in points], dtype=np.float64)


class PointCompositor:
    """Two-pass heatmap renderer.

    Points are first stamped as intensity templates onto a scratch plane and merged
    with the blend rule; the merged intensity is then mapped through the palette.
    Colour is only assigned after merging, never per point.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        palette: np.ndarray,
        radius: float = 25.0,
        blur: float = 0.85,
        min_opacity: float = 0.0,
        max_opacity: float = 0.8,
        blend_mode: BlendMode = "source-over",
    ) -> None:
        if blend_mode not in BLEND_MODES:
            raise ValueError(f"Unknown blend mode {blend_mode!r}. Supported: {list(BLEND_MODES)}")
        self._intensity = ArraySurface(width, height, channels=1)
        self._output = ArraySurface(width, height, channels=4)
        self._template = generate_point_template(radius, blur)
        self._radius = float(radius)
        self._blend: BlendMode = blend_mode
        self._opacity_lut = generate_opacity_lut(min_opacity, max_opacity)
        self._palette = self._check_palette(palette)
        self._color_table = self._build_color_table(self._palette, self._opacity_lut)
        self._bounds = EMPTY_BOUNDS

    @staticmethod
    def _check_palette(palette: np.ndarray) -> np.ndarray:
        arr = np.asarray(palette)
        if arr.shape != (256, 4) or arr.dtype != np.uint8:
            raise ValueError(f"palette must be a (256, 4) uint8 array, got {arr.shape} {arr.dtype}")
        return arr

    @staticmethod
    def _build_color_table(palette: np.ndarray, opacity_lut: np.ndarray) -> np.ndarray:
        table = palette.astype(np.float64)
        table[:, 3] = table[:, 3] * opacity_lut.astype(np.float64) / 255.0
        table[0] = 0.0
        out = np.clip(np.rint(table), 0, 255).astype(np.uint8)
        out.flags.writeable = False
        return out

    @property
    def width(self) -> int:
        return self._output.width

    @property
    def height(self) -> int:
        return self._output.height

    @property
    def radius(self) -> float:
        return self._radius

    @property
    def palette(self) -> np.ndarray:
        return self._palette

    @property
    def opacity_lut(self) -> np.ndarray:
        return self._opacity_lut

    @property
    def boundaries(self) -> RenderBoundaries:
        return self._bounds

    @property
    def pixels(self) -> np.ndarray:
        """Finished (height, width, 4) RGBA frame (read-only view)."""
        return self._output.pixels

    def set_palette(self, palette: np.ndarray) -> None:
        checked = self._check_palette(palette)
        # Swap both tables in one step; readers never see a half-built table.
        self._palette, self._color_table = checked, self._build_color_table(checked, self._opacity_lut)

    def resize(self, width: int, height: int) -> None:
        self._intensity.resize(width, height)
        self._output.resize(width, height)
        self._bounds = EMPTY_BOUNDS

    def clear(self) -> None:
        self._intensity.clear()
        self._output.clear()
        self._bounds = EMPTY_BOUNDS

    def draw_points(self, points: Sequence[RenderablePoint] | np.ndarray) -> RenderBoundaries:
        """Intensity pass. Returns the touched region clipped to the surface."""

        arr = _as_point_array(points)
        if arr.shape[0] == 0:
            return EMPTY_BOUNDS

        th, tw = self._template.shape
        left = np.rint(arr[:, 0]).astype(np.int64) - tw // 2
        top = np.rint(arr[:, 1]).astype(np.int64) - th // 2
        alphas = np.clip(arr[:, 2], 0.0, 1.0)

        for x, y, a in zip(left.tolist(), top.tolist(), alphas.tolist()):
            if a <= 0.0:
                continue
            self._intensity.draw_template(self._template, x, y, a, self._blend)

        bounds = self._intensity.clip(
            RenderBoundaries(
                min_x=int(left.min()),
                min_y=int(top.min()),
                max_x=int(left.max()) + tw,
                max_y=int(top.max()) + th,
            )
        )
        self._bounds = bounds
        return bounds

    def colorize(self, bounds: RenderBoundaries | None = None) -> None:
        """Colour pass: map merged intensity through the palette inside `bounds`."""

        b = self._bounds if bounds is None else bounds
        if b.empty:
            return
        intensity = self._intensity.read(b)
        idx = np.clip(np.rint(intensity * 255.0), 0, 255).astype(np.intp)
        self._output.write(self._color_table[idx], b.min_x, b.min_y)

    def render(self, points: Sequence[RenderablePoint] | np.ndarray) -> RenderBoundaries:
        self.clear()
        if len(points) == 0:
            return EMPTY_BOUNDS
        bounds = self.draw_points(points)
        self.colorize(bounds)
        return bounds

    def dispose(self) -> None:
        self.clear()


def composite(
    points: Sequence[RenderablePoint] | np.ndarray,
    *,
    width: int,
    height: int,
    palette: np.ndarray,
    radius: float = 25.0,
    blur: float = 0.85,
    opacity_range: ValueRange = ValueRange(0.0, 0.8),
    blend_mode: BlendMode = "source-over",
) -> np.ndarray:
    """One-shot render of `points` into a fresh (height, width, 4) uint8 buffer."""

    comp = PointCompositor(
        width,
        height,
        palette=palette,
        radius=radius,
        blur=blur,
        min_opacity=opacity_range.min,
        max_opacity=opacity_range.max,
        blend_mode=blend_mode,
    )
    comp.render(points)
    return np.array(comp.pixels)
