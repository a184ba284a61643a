from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence, Union

import numpy as np


logger = logging.getLogger(__name__)

PALETTE_SIZE = 256

RGBA = tuple[float, float, float, float]
ColorLike = Union[str, Sequence[float]]

_RGBA_RE = re.compile(
    r"^rgba?\s*\(\s*(\d+(?:\.\d+)?)\s*,\s*(\d+(?:\.\d+)?)\s*,\s*(\d+(?:\.\d+)?)\s*(?:,\s*([\d.]+)\s*)?\)$",
    re.IGNORECASE,
)
_HEX_RE = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})?$", re.IGNORECASE)
_SHORT_HEX_RE = re.compile(r"^#?([0-9a-f])([0-9a-f])([0-9a-f])$", re.IGNORECASE)


def parse_color(color: ColorLike) -> RGBA:
    """Parse a colour into `(r, g, b, a)` with channels in 0..255 and alpha in 0..1.

    Accepts `rgb()` / `rgba()` strings, `#rrggbb`, `#rrggbbaa`, `#rgb`, and
    3- or 4-component sequences (alpha in 0..1).
    """

    if isinstance(color, str):
        s = color.strip()
        m = _RGBA_RE.match(s)
        if m:
            a = float(m.group(4)) if m.group(4) is not None else 1.0
            return _clamp_rgba(float(m.group(1)), float(m.group(2)), float(m.group(3)), a)
        m = _HEX_RE.match(s)
        if m:
            a = int(m.group(4), 16) / 255.0 if m.group(4) is not None else 1.0
            return _clamp_rgba(int(m.group(1), 16), int(m.group(2), 16), int(m.group(3), 16), a)
        m = _SHORT_HEX_RE.match(s)
        if m:
            return _clamp_rgba(*(int(g * 2, 16) for g in m.groups()), 1.0)
        raise ValueError(f"Unsupported color {color!r}. Use rgb()/rgba() or hex notation.")

    arr = np.asarray(color, dtype=np.float64).reshape(-1)
    if arr.size not in (3, 4):
        raise ValueError(f"color sequence must have 3 or 4 components, got {arr.size}")
    if not np.all(np.isfinite(arr)):
        raise ValueError("color must contain finite values")
    a = float(arr[3]) if arr.size == 4 else 1.0
    return _clamp_rgba(float(arr[0]), float(arr[1]), float(arr[2]), a)


def _clamp_rgba(r: float, g: float, b: float, a: float) -> RGBA:
    return (
        float(np.clip(r, 0, 255)),
        float(np.clip(g, 0, 255)),
        float(np.clip(b, 0, 255)),
        float(np.clip(a, 0.0, 1.0)),
    )


@dataclass(frozen=True)
class GradientStop:
    offset: float
    color: ColorLike

    @property
    def rgba(self) -> RGBA:
        return parse_color(self.color)

    def to_dict(self) -> dict[str, Any]:
        color = self.color if isinstance(self.color, str) else [float(c) for c in self.color]
        return {"offset": float(self.offset), "color": color}


def coerce_stops(stops: Iterable[GradientStop | Mapping[str, Any] | Sequence[Any]]) -> tuple[GradientStop, ...]:
    """Validate and normalize a gradient into a tuple of stops sorted by offset."""

    out: list[GradientStop] = []
    for s in stops:
        if isinstance(s, GradientStop):
            stop = s
        elif isinstance(s, Mapping):
            if "offset" not in s or "color" not in s:
                raise ValueError("gradient stops need 'offset' and 'color'")
            stop = GradientStop(offset=float(s["offset"]), color=s["color"])
        else:
            offset, color = s
            stop = GradientStop(offset=float(offset), color=color)
        if not np.isfinite(stop.offset) or stop.offset < 0.0 or stop.offset > 1.0:
            raise ValueError(f"gradient stop offset must be within [0, 1], got {stop.offset}")
        parse_color(stop.color)
        out.append(stop)
    if not out:
        raise ValueError("gradient must contain at least one stop")
    # sorted() is stable, so equal offsets keep their given order.
    return tuple(sorted(out, key=lambda st: float(st.offset)))


def generate_palette(stops: Iterable[GradientStop | Mapping[str, Any] | Sequence[Any]]) -> np.ndarray:
    """Build the read-only (256, 4) uint8 lookup table for a gradient.

    Entry `i` is the gradient sampled at `t = i / 255`. Positions before the first
    stop or after the last take that stop's colour unchanged; in between, each
    channel (alpha included) is interpolated linearly within the bracketing pair.
    """

    ordered = coerce_stops(stops)
    offsets = np.asarray([s.offset for s in ordered], dtype=np.float64)
    colors = np.asarray([s.rgba for s in ordered], dtype=np.float64)
    colors[:, 3] *= 255.0

    t = np.arange(PALETTE_SIZE, dtype=np.float64) / (PALETTE_SIZE - 1)
    out = np.empty((PALETTE_SIZE, 4), dtype=np.float64)

    first, last = offsets[0], offsets[-1]
    below = t <= first
    above = t >= last
    out[below] = colors[0]
    out[above & ~below] = colors[-1]

    inside = ~(below | above)
    if np.any(inside):
        ti = t[inside]
        # Upper stop of the bracketing pair: first offset strictly above t.
        hi = np.searchsorted(offsets, ti, side="right")
        lo = hi - 1
        span = offsets[hi] - offsets[lo]
        local = np.where(span > 0, (ti - offsets[lo]) / np.where(span > 0, span, 1.0), 0.0)
        out[inside] = colors[lo] + (colors[hi] - colors[lo]) * local[:, None]

    palette = np.clip(np.rint(out), 0, 255).astype(np.uint8)
    palette.flags.writeable = False
    logger.debug("generated palette from %d stops", len(ordered))
    return palette


def gradient_ramp(
    stops: Iterable[GradientStop | Mapping[str, Any] | Sequence[Any]],
    width: int,
    height: int,
    *,
    horizontal: bool = True,
) -> np.ndarray:
    """Render the gradient as an (height, width, 4) uint8 RGBA strip, e.g. for a legend."""

    width_i, height_i = int(width), int(height)
    if width_i <= 0 or height_i <= 0:
        raise ValueError("width and height must be positive integers")
    palette = generate_palette(stops)
    length = width_i if horizontal else height_i
    idx = np.rint(np.linspace(0.0, PALETTE_SIZE - 1, length)).astype(np.intp) if length > 1 else np.zeros(1, np.intp)
    line = palette[idx]
    if horizontal:
        return np.ascontiguousarray(np.broadcast_to(line[None, :, :], (height_i, width_i, 4)))
    # Vertical ramps put the maximum at the top.
    return np.ascontiguousarray(np.broadcast_to(line[::-1, None, :], (height_i, width_i, 4)))
