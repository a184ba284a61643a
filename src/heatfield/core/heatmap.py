from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Iterable, Mapping

import numpy as np

from .compositor import PointCompositor
from .config import HeatmapConfig, stops_from_any, validate_config
from .events import DataChangeEvent, EventEmitter, EventName, GradientChangeEvent, Listener
from .gradient import GradientStop, generate_palette
from .grid import AGGREGATION_MODES, AggregationMode, ValueGrid, effective_range, ingest
from .points import Point, RenderablePoint, TemporalDataset, ValueRange, coerce_points
from .surface import RenderBoundaries

if TYPE_CHECKING:
    from .animation import TemporalAnimationController
    from .features import Feature


logger = logging.getLogger(__name__)


@dataclass
class HeatmapState:
    """Everything a heatmap owns; replaced field-by-field only inside Heatmap methods."""

    points: list[Point] = field(default_factory=list)
    grid: ValueGrid | None = None
    data_range: ValueRange | None = None
    effective_range: ValueRange = field(default_factory=lambda: ValueRange(0.0, 0.0))


@dataclass(frozen=True)
class HeatmapStats:
    point_count: int
    radius: float
    render_boundaries: RenderBoundaries
    canvas_size: tuple[int, int]
    render_coverage_percent: float
    value_grid_size: int
    data_range: ValueRange | None
    effective_range: ValueRange

    def to_dict(self) -> dict[str, Any]:
        return {
            "pointCount": int(self.point_count),
            "radius": float(self.radius),
            "renderBoundaries": self.render_boundaries.to_dict(),
            "canvasSize": {"width": int(self.canvas_size[0]), "height": int(self.canvas_size[1])},
            "renderCoveragePercent": float(self.render_coverage_percent),
            "valueGridSize": int(self.value_grid_size),
            "dataRange": None if self.data_range is None else self.data_range.to_dict(),
            "effectiveRange": self.effective_range.to_dict(),
        }


def _is_temporal_payload(data: Any) -> bool:
    if isinstance(data, TemporalDataset):
        return True
    return isinstance(data, Mapping) and ("startTime" in data or "start_time" in data)


class Heatmap:
    """Static heatmap plus the value-query facade used by features and the HTTP layer.

    Notes:
    - Data is replaced wholesale by `set_data`; `add_points` appends.
    - The grid, the effective range and the frame are rebuilt synchronously on every
      input change, then `datachange` / `gradientchange` fire.
    """

    def __init__(self, config: HeatmapConfig) -> None:
        self._config = validate_config(config)
        self._events = EventEmitter()
        self._stops: tuple[GradientStop, ...] = self._config.gradient
        self._compositor = PointCompositor(
            self._config.width,
            self._config.height,
            palette=generate_palette(self._stops),
            radius=self._config.radius,
            blur=self._config.blur,
            min_opacity=self._config.min_opacity,
            max_opacity=self._config.max_opacity,
            blend_mode=self._config.blend_mode,
        )
        self._state = HeatmapState(grid=ValueGrid(self._config.grid_size, self._config.aggregation_mode))
        self._features: list[Feature] = []
        self._destroyed = False

    # -- accessors ----------------------------------------------------------

    @property
    def config(self) -> HeatmapConfig:
        return self._config

    @property
    def width(self) -> int:
        return int(self._config.width)

    @property
    def height(self) -> int:
        return int(self._config.height)

    @property
    def events(self) -> EventEmitter:
        return self._events

    @property
    def compositor(self) -> PointCompositor:
        return self._compositor

    @property
    def gradient(self) -> tuple[GradientStop, ...]:
        return self._stops

    @property
    def palette(self) -> np.ndarray:
        return self._compositor.palette

    @property
    def pixels(self) -> np.ndarray:
        return self._compositor.pixels

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def effective_range(self) -> ValueRange:
        ctrl = self._animation_or_none()
        if ctrl is not None and ctrl.dataset is not None:
            return ctrl.effective_range
        return self._state.effective_range

    def on(self, event: EventName, listener: Listener) -> None:
        self._events.on(event, listener)

    def off(self, event: EventName, listener: Listener) -> None:
        self._events.off(event, listener)

    # -- features -----------------------------------------------------------

    def attach(self, feature: Feature) -> None:
        if self._destroyed:
            raise RuntimeError("heatmap has been destroyed")
        if any(f.kind == feature.kind for f in self._features):
            raise ValueError(f"A {feature.kind!r} feature is already attached")
        feature.setup(self)
        self._features.append(feature)

    def feature(self, kind: str) -> Feature | None:
        for f in self._features:
            if f.kind == kind:
                return f
        return None

    def _animation_or_none(self) -> TemporalAnimationController | None:
        f = self.feature("animation")
        return getattr(f, "controller", None) if f is not None else None

    @property
    def animation(self) -> TemporalAnimationController:
        ctrl = self._animation_or_none()
        if ctrl is None:
            raise RuntimeError("Animation is not enabled. Build the heatmap with AnimationFeature().")
        return ctrl

    # -- data ---------------------------------------------------------------

    def set_data(self, data: Iterable[Any] | np.ndarray | Mapping[str, Any] | None) -> None:
        """Replace the data set.

        Accepts points (objects, dicts, tuples or an (n,2)/(n,3) array), a mapping with a
        `points`/`data` list, or a temporal dataset, which is handed to the animation.
        """

        if self._destroyed:
            return
        if _is_temporal_payload(data):
            self.animation.set_temporal_data(data)  # type: ignore[arg-type]
            return
        if isinstance(data, Mapping):
            data = data.get("points", data.get("data"))
        points = coerce_points(data)
        grid = ingest(points, self._config.aggregation_mode, self._config.grid_size)
        self._commit(points, grid)

    def add_point(self, point: Any) -> None:
        self.add_points([point])

    def add_points(self, points: Iterable[Any] | np.ndarray) -> None:
        if self._destroyed:
            return
        new_points = coerce_points(points)
        if not new_points:
            return
        grid = self._state.grid
        if grid is None:
            grid = ValueGrid(self._config.grid_size, self._config.aggregation_mode)
        grid.add(new_points)
        self._commit(self._state.points + new_points, grid)

    def set_aggregation_mode(self, mode: AggregationMode) -> None:
        if mode not in AGGREGATION_MODES:
            raise ValueError(f"Unknown aggregation mode {mode!r}. Supported: {list(AGGREGATION_MODES)}")
        if self._destroyed or mode == self._config.aggregation_mode:
            return
        self._config = replace(self._config, aggregation_mode=mode)
        points = self._state.points
        self._commit(points, ingest(points, mode, self._config.grid_size))

    def set_value_range(self, value_min: float | None = None, value_max: float | None = None) -> None:
        if self._destroyed:
            return
        self._config = validate_config(replace(self._config, value_min=value_min, value_max=value_max))
        grid = self._state.grid
        if grid is None:
            grid = ValueGrid(self._config.grid_size, self._config.aggregation_mode)
        ctrl = self._animation_or_none()
        if ctrl is not None:
            ctrl.set_value_bounds(self._config.value_min, self._config.value_max)
            if ctrl.dataset is not None:
                # The controller re-rendered and announced its own range.
                self._commit(self._state.points, grid, notify=False)
                return
        self._commit(self._state.points, grid)

    def _commit(self, points: list[Point], grid: ValueGrid, *, notify: bool = True) -> None:
        detected = grid.range() if points else None
        rng = effective_range(detected, value_min=self._config.value_min, value_max=self._config.value_max)
        self._state = HeatmapState(points=points, grid=grid, data_range=detected, effective_range=rng)
        logger.debug("data set: %d points in %d cells", len(points), grid.cell_count)
        self._render_static()
        if notify:
            self._events.emit("datachange", DataChangeEvent(point_count=len(points), data_range=detected, effective_range=rng))

    def renderable_points(self) -> list[RenderablePoint]:
        """Static points with alpha taken from the aggregate of their grid cell."""
        st = self._state
        if not st.points or st.grid is None:
            return []
        intensity = st.effective_range.normalize(st.grid.values_for(st.points))
        if self._config.intensity_exponent != 1.0:
            intensity = intensity**self._config.intensity_exponent
        return [RenderablePoint(x=float(p.x), y=float(p.y), alpha=float(a)) for p, a in zip(st.points, intensity)]

    def _render_static(self) -> None:
        ctrl = self._animation_or_none()
        if ctrl is not None and ctrl.dataset is not None:
            # Temporal data owns the frame.
            return
        self._compositor.render(self.renderable_points())

    def render(self) -> None:
        if self._destroyed:
            return
        ctrl = self._animation_or_none()
        if ctrl is not None and ctrl.dataset is not None:
            ctrl.render_frame(ctrl.current_time)
            return
        self._render_static()

    # -- gradient -----------------------------------------------------------

    def set_gradient(self, stops: Iterable[Any] | str) -> None:
        if self._destroyed:
            return
        new_stops = stops_from_any(stops)
        palette = generate_palette(new_stops)
        self._stops = new_stops
        self._compositor.set_palette(palette)
        self._config = replace(self._config, gradient=new_stops)
        self.render()
        self._events.emit("gradientchange", GradientChangeEvent(stops=new_stops))

    # -- queries ------------------------------------------------------------

    def get_value_at(self, x: float, y: float) -> float:
        grid = self._state.grid
        if grid is None:
            return 0.0
        return grid.value_at(x, y)

    def get_stats(self) -> HeatmapStats:
        st = self._state
        b = self._compositor.boundaries
        canvas_area = self.width * self.height
        render_area = b.width * b.height
        return HeatmapStats(
            point_count=len(st.points),
            radius=float(self._config.radius),
            render_boundaries=b,
            canvas_size=(self.width, self.height),
            render_coverage_percent=(render_area / canvas_area) * 100.0 if canvas_area > 0 else 0.0,
            value_grid_size=st.grid.cell_count if st.grid is not None else 0,
            data_range=st.data_range,
            effective_range=self.effective_range,
        )

    def to_image(self, mime_type: str = "image/png") -> bytes:
        from ..io.image import encode_frame

        return encode_frame(self.pixels, mime_type=mime_type)

    # -- lifecycle ----------------------------------------------------------

    def clear(self) -> None:
        if self._destroyed:
            return
        ctrl = self._animation_or_none()
        if ctrl is not None:
            ctrl.clear()
        self._state = HeatmapState(grid=ValueGrid(self._config.grid_size, self._config.aggregation_mode))
        self._compositor.clear()
        self._events.emit("clear")

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._events.emit("destroy")
        for feature in self._features:
            feature.teardown()
        self._features = []
        self._events.clear()
        self._compositor.dispose()
        self._state = HeatmapState()
        self._destroyed = True


def create_heatmap(config: HeatmapConfig, *features: Feature, data: Any = None) -> Heatmap:
    """Build a heatmap and apply `features` in order.

    `destroy()` tears the features down in the same order before releasing the core.
    """

    heatmap = Heatmap(config)
    for feature in features:
        heatmap.attach(feature)
    if data is not None:
        heatmap.set_data(data)
    return heatmap
