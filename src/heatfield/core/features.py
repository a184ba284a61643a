from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Literal, Protocol

import numpy as np

from .animation import TemporalAnimationController
from .config import AnimationConfig
from .events import DataChangeEvent, GradientChangeEvent
from .gradient import GradientStop, gradient_ramp
from .scheduler import TickScheduler, VirtualClock

if TYPE_CHECKING:
    from .heatmap import Heatmap


FeatureKind = Literal["animation", "legend", "tooltip"]


class Feature(Protocol):
    """Capability module applied to a heatmap by `create_heatmap`."""

    kind: str

    def setup(self, heatmap: Heatmap) -> None: ...

    def teardown(self) -> None: ...


class AnimationFeature:
    """Adds a `TemporalAnimationController` bound to the heatmap's compositor and events."""

    kind = "animation"

    def __init__(self, config: AnimationConfig | None = None, *, scheduler: TickScheduler | None = None) -> None:
        self._config = config or AnimationConfig()
        self._scheduler: TickScheduler = scheduler if scheduler is not None else VirtualClock()
        self.controller: TemporalAnimationController | None = None

    @property
    def scheduler(self) -> TickScheduler:
        return self._scheduler

    def setup(self, heatmap: Heatmap) -> None:
        cfg = heatmap.config
        self.controller = TemporalAnimationController(
            heatmap.compositor,
            self._scheduler,
            self._config,
            value_min=cfg.value_min,
            value_max=cfg.value_max,
            intensity_exponent=cfg.intensity_exponent,
            events=heatmap.events,
        )

    def teardown(self) -> None:
        if self.controller is not None:
            self.controller.destroy()
        self.controller = None


def _default_label_formatter(value: float, index: int) -> str:  # noqa: ARG001
    return str(int(round(value)))


@dataclass(frozen=True)
class LegendConfig:
    orientation: Literal["horizontal", "vertical"] = "horizontal"
    width: int | None = None
    height: int | None = None
    label_count: int = 5
    show_min_max: bool = True
    formatter: Callable[[float, int], str] = field(default=_default_label_formatter, compare=False)
    min: float | None = None
    max: float | None = None


@dataclass(frozen=True)
class LegendLabel:
    value: float
    text: str


class LegendFeature:
    """Headless legend: keeps labels and the gradient ramp in sync with heatmap events.

    Without fixed bounds the labels span the heatmap's effective range, the same range
    the colours were scaled with.
    """

    kind = "legend"

    def __init__(self, config: LegendConfig | None = None) -> None:
        self.config = config or LegendConfig()
        vertical = self.config.orientation == "vertical"
        self.width = int(self.config.width if self.config.width is not None else (20 if vertical else 150))
        self.height = int(self.config.height if self.config.height is not None else (100 if vertical else 15))
        self.min_value = 0.0 if self.config.min is None else float(self.config.min)
        self.max_value = 100.0 if self.config.max is None else float(self.config.max)
        self.stops: tuple[GradientStop, ...] = ()
        self.ramp: np.ndarray | None = None
        self._heatmap: Heatmap | None = None

    def setup(self, heatmap: Heatmap) -> None:
        self._heatmap = heatmap
        heatmap.on("datachange", self._on_data_change)
        heatmap.on("gradientchange", self._on_gradient_change)
        self._on_gradient_change(GradientChangeEvent(stops=heatmap.gradient))

    def teardown(self) -> None:
        if self._heatmap is not None:
            self._heatmap.off("datachange", self._on_data_change)
            self._heatmap.off("gradientchange", self._on_gradient_change)
        self._heatmap = None
        self.ramp = None

    def _on_data_change(self, event: DataChangeEvent) -> None:
        rng = event.effective_range
        self.min_value = float(self.config.min) if self.config.min is not None else float(rng.min)
        self.max_value = float(self.config.max) if self.config.max is not None else float(rng.max)

    def _on_gradient_change(self, event: GradientChangeEvent) -> None:
        self.stops = event.stops
        self.ramp = gradient_ramp(
            event.stops, self.width, self.height, horizontal=self.config.orientation == "horizontal"
        )

    def label_values(self) -> list[float]:
        count = int(self.config.label_count)
        lo, hi = self.min_value, self.max_value
        if count <= 0:
            return []
        if count == 1:
            return [(lo + hi) / 2.0]
        values = [lo + (i / (count - 1)) * (hi - lo) for i in range(count)]
        if self.config.show_min_max:
            values[0], values[-1] = lo, hi
        return values

    def labels(self) -> list[LegendLabel]:
        """Labels from min to max; vertical legends display them reversed."""
        return [LegendLabel(value=v, text=self.config.formatter(v, i)) for i, v in enumerate(self.label_values())]


def _default_tooltip_formatter(value: float, x: float, y: float) -> str:  # noqa: ARG001
    return f"{value:g}"


class TooltipFeature:
    """Formats the aggregated value under a pixel for display by a host widget."""

    kind = "tooltip"

    def __init__(self, formatter: Callable[[float, float, float], str] | None = None) -> None:
        self.formatter = formatter or _default_tooltip_formatter
        self._heatmap: Heatmap | None = None

    def setup(self, heatmap: Heatmap) -> None:
        self._heatmap = heatmap

    def teardown(self) -> None:
        self._heatmap = None

    def describe(self, x: float, y: float) -> str | None:
        """Text for `(x, y)`, or None when nothing was aggregated there."""
        if self._heatmap is None:
            return None
        value = self._heatmap.get_value_at(x, y)
        if value == 0:
            return None
        return self.formatter(value, float(x), float(y))
