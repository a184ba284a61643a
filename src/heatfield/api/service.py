from __future__ import annotations

import logging
import threading
from typing import Any, Callable, TypeVar

from ..core.config import AnimationConfig, HeatmapConfig
from ..core.features import AnimationFeature, LegendFeature, TooltipFeature
from ..core.heatmap import Heatmap, create_heatmap
from ..core.scheduler import RealtimeScheduler, TickScheduler


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONFIG = HeatmapConfig(width=800, height=600)

# Events that change what a poller would see.
_REVISION_EVENTS = ("datachange", "gradientchange", "clear", "frame")


class HeatmapService:
    """Owns one heatmap for the HTTP layer and serializes access to it.

    Every request handler goes through `call()`, and animation ticks fire under the
    same lock, so the engine never sees two threads at once.
    """

    def __init__(
        self,
        config: HeatmapConfig | None = None,
        *,
        animation: AnimationConfig | None = None,
        scheduler: TickScheduler | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._revision = 0
        if scheduler is None:
            scheduler = RealtimeScheduler(lock=self._lock)
        self.legend = LegendFeature()
        self.tooltip = TooltipFeature()
        self.heatmap: Heatmap = create_heatmap(
            config or DEFAULT_CONFIG,
            AnimationFeature(animation, scheduler=scheduler),
            self.legend,
            self.tooltip,
        )
        for name in _REVISION_EVENTS:
            self.heatmap.on(name, self._bump)
        logger.debug("heatmap service ready (%dx%d)", self.heatmap.width, self.heatmap.height)

    def _bump(self, _event: Any = None) -> None:
        self._revision += 1

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def revision(self) -> int:
        with self._lock:
            return int(self._revision)

    def call(self, fn: Callable[[Heatmap], T]) -> T:
        with self._lock:
            return fn(self.heatmap)

    def close(self) -> None:
        with self._lock:
            self.heatmap.destroy()
