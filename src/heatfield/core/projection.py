from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol

import numpy as np

from .heatmap import Heatmap
from .points import Point


class ProjectionAdapter(Protocol):
    """Maps geographic coordinates to pixels of the current map view."""

    def project(self, lat: float, lng: float) -> tuple[float, float]: ...


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float
    value: float = 1.0


def _coerce_geo(item: GeoPoint | Mapping[str, Any] | Iterable[float]) -> GeoPoint:
    if isinstance(item, GeoPoint):
        return item
    if isinstance(item, Mapping):
        return GeoPoint(lat=float(item["lat"]), lng=float(item["lng"]), value=float(item.get("value", 1.0)))
    seq = list(item)
    if len(seq) not in (2, 3):
        raise ValueError(f"Expected (lat, lng) or (lat, lng, value), got {len(seq)} components")
    return GeoPoint(lat=float(seq[0]), lng=float(seq[1]), value=float(seq[2]) if len(seq) == 3 else 1.0)


class ProjectedLayer:
    """Keeps geographic points and pushes their pixel projection into a heatmap.

    The heatmap never sees latitudes; call `refresh()` whenever the map view changes.
    Points projected outside the heatmap are still passed on, so blobs straddling the
    edge stay visible.
    """

    def __init__(self, heatmap: Heatmap, adapter: ProjectionAdapter) -> None:
        self._heatmap = heatmap
        self._adapter = adapter
        self._points: list[GeoPoint] = []

    @property
    def points(self) -> tuple[GeoPoint, ...]:
        return tuple(self._points)

    def set_data(self, points: Iterable[GeoPoint | Mapping[str, Any] | Iterable[float]]) -> None:
        self._points = [_coerce_geo(p) for p in points]
        self.refresh()

    def add_points(self, points: Iterable[GeoPoint | Mapping[str, Any] | Iterable[float]]) -> None:
        new = [_coerce_geo(p) for p in points]
        if not new:
            return
        self._points.extend(new)
        self._heatmap.add_points(self._project(new))

    def refresh(self) -> None:
        self._heatmap.set_data(self._project(self._points))

    def _project(self, points: list[GeoPoint]) -> list[Point]:
        out: list[Point] = []
        for p in points:
            x, y = self._adapter.project(p.lat, p.lng)
            if not (np.isfinite(x) and np.isfinite(y)):
                continue
            out.append(Point(x=float(x), y=float(y), value=p.value))
        return out
