from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import numpy as np


@dataclass(frozen=True)
class Point:
    x: float
    y: float
    value: float


@dataclass(frozen=True)
class TemporalPoint(Point):
    timestamp: float


@dataclass(frozen=True)
class RenderablePoint:
    """Compositor-facing point: pixel position plus a normalized alpha in [0, 1]."""

    x: float
    y: float
    alpha: float


@dataclass(frozen=True)
class ValueRange:
    min: float
    max: float

    @property
    def span(self) -> float:
        # Zero-width ranges collapse to a single colour band.
        span = float(self.max) - float(self.min)
        return span if span != 0.0 else 1.0

    def normalize(self, values: np.ndarray | float) -> np.ndarray:
        return np.clip((np.asarray(values, dtype=np.float64) - float(self.min)) / self.span, 0.0, 1.0)

    def to_dict(self) -> dict[str, float]:
        return {"min": float(self.min), "max": float(self.max)}


@dataclass(frozen=True)
class TemporalDataset:
    """Timestamped points, always held sorted ascending by timestamp.

    Build instances with `TemporalDataset.from_points` (or `coerce_temporal_dataset`);
    the constructor trusts its caller on ordering.
    """

    start_time: float
    end_time: float
    points: tuple[TemporalPoint, ...]
    min: float | None = None
    max: float | None = None
    timestamps: np.ndarray = field(default_factory=lambda: np.zeros((0,), dtype=np.float64), repr=False, compare=False)

    @classmethod
    def from_points(
        cls,
        points: Iterable[TemporalPoint],
        *,
        start_time: float | None = None,
        end_time: float | None = None,
        min: float | None = None,
        max: float | None = None,
    ) -> "TemporalDataset":
        ordered = tuple(sorted(points, key=lambda p: float(p.timestamp)))
        ts = np.asarray([float(p.timestamp) for p in ordered], dtype=np.float64)
        ts.flags.writeable = False
        if start_time is None:
            start_time = float(ts[0]) if ts.size else 0.0
        if end_time is None:
            end_time = float(ts[-1]) if ts.size else float(start_time)
        start_v = float(start_time)
        end_v = float(end_time)
        if not np.isfinite(start_v) or not np.isfinite(end_v):
            raise ValueError("start_time and end_time must be finite")
        if end_v < start_v:
            raise ValueError("end_time must be >= start_time")
        return cls(
            start_time=start_v,
            end_time=end_v,
            points=ordered,
            min=None if min is None else float(min),
            max=None if max is None else float(max),
            timestamps=ts,
        )

    @property
    def duration(self) -> float:
        return float(self.end_time) - float(self.start_time)

    def __len__(self) -> int:
        return len(self.points)


def _finite(value: Any, *, name: str) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError) as ex:
        raise ValueError(f"{name} must be a number, got {value!r}") from ex
    if not np.isfinite(v):
        raise ValueError(f"{name} must be finite")
    return v


def coerce_point(item: Point | Mapping[str, Any] | Iterable[float]) -> Point:
    if isinstance(item, Point):
        return item
    if isinstance(item, Mapping):
        return Point(
            x=_finite(item.get("x"), name="x"),
            y=_finite(item.get("y"), name="y"),
            value=_finite(item.get("value", 1.0), name="value"),
        )
    seq = list(item)
    if len(seq) not in (2, 3):
        raise ValueError(f"Expected (x, y) or (x, y, value), got {len(seq)} components")
    value = seq[2] if len(seq) == 3 else 1.0
    return Point(x=_finite(seq[0], name="x"), y=_finite(seq[1], name="y"), value=_finite(value, name="value"))


def coerce_points(points: Iterable[Any] | np.ndarray | None) -> list[Point]:
    """Accept Point objects, `{"x","y","value"}` dicts, tuples or an (n,2)/(n,3) array."""

    if points is None:
        return []
    if isinstance(points, np.ndarray):
        arr = np.asarray(points, dtype=np.float64)
        if arr.size == 0:
            return []
        if arr.ndim != 2 or arr.shape[1] not in (2, 3):
            raise ValueError(f"points array must have shape (n,2) or (n,3), got {arr.shape}")
        if not np.all(np.isfinite(arr)):
            raise ValueError("points array must contain finite values")
        values = arr[:, 2] if arr.shape[1] == 3 else np.ones(arr.shape[0])
        return [Point(float(x), float(y), float(v)) for x, y, v in zip(arr[:, 0], arr[:, 1], values)]
    return [coerce_point(p) for p in points]


def coerce_temporal_point(item: TemporalPoint | Mapping[str, Any] | Iterable[float]) -> TemporalPoint:
    if isinstance(item, TemporalPoint):
        return item
    if isinstance(item, Mapping):
        return TemporalPoint(
            x=_finite(item.get("x"), name="x"),
            y=_finite(item.get("y"), name="y"),
            value=_finite(item.get("value", 1.0), name="value"),
            timestamp=_finite(item.get("timestamp"), name="timestamp"),
        )
    seq = list(item)
    if len(seq) != 4:
        raise ValueError(f"Expected (x, y, value, timestamp), got {len(seq)} components")
    return TemporalPoint(
        x=_finite(seq[0], name="x"),
        y=_finite(seq[1], name="y"),
        value=_finite(seq[2], name="value"),
        timestamp=_finite(seq[3], name="timestamp"),
    )


def coerce_temporal_dataset(data: TemporalDataset | Mapping[str, Any]) -> TemporalDataset:
    """Build a sorted dataset from a `TemporalDataset` or a JSON-style mapping.

    Mapping keys follow the wire format: `startTime`, `endTime`, `min`, `max` and
    `points` (or `data`). Snake-case keys are accepted too.
    """

    if isinstance(data, TemporalDataset):
        if np.all(np.diff(data.timestamps) >= 0) and data.timestamps.size == len(data.points):
            return data
        return TemporalDataset.from_points(
            data.points, start_time=data.start_time, end_time=data.end_time, min=data.min, max=data.max
        )
    if not isinstance(data, Mapping):
        raise TypeError("temporal data must be a TemporalDataset or a mapping")

    raw = data.get("points", data.get("data"))
    if raw is None:
        raise ValueError("temporal data requires a 'points' list")
    points = [coerce_temporal_point(p) for p in raw]

    def _opt(*keys: str) -> float | None:
        for k in keys:
            if data.get(k) is not None:
                return _finite(data[k], name=k)
        return None

    return TemporalDataset.from_points(
        points,
        start_time=_opt("startTime", "start_time"),
        end_time=_opt("endTime", "end_time"),
        min=_opt("min"),
        max=_opt("max"),
    )


def point_to_dict(p: Point) -> dict[str, float]:
    out = {"x": float(p.x), "y": float(p.y), "value": float(p.value)}
    if isinstance(p, TemporalPoint):
        out["timestamp"] = float(p.timestamp)
    return out
