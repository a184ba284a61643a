from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right
from typing import Any, Literal, Mapping

import numpy as np

from .compositor import PointCompositor
from .config import AnimationConfig, clamp_speed, validate_animation_config
from .events import DataChangeEvent, EventEmitter, FrameEvent
from .grid import effective_range
from .points import RenderablePoint, TemporalDataset, ValueRange, coerce_temporal_dataset
from .scheduler import TickHandle, TickScheduler


logger = logging.getLogger(__name__)

AnimationState = Literal["idle", "playing", "paused"]


def ease_out_quad(t: np.ndarray | float) -> np.ndarray | float:
    return t * (2.0 - t)


class TemporalAnimationController:
    """Plays a timestamped dataset through a compositor.

    State machine: `idle -> playing <-> paused`, with `stop()` returning to idle from
    anywhere and `seek*()` never changing the state. Every tick advances the clock
    once, queries the active points once and composites one frame.

    Notes:
    - Points are sorted once on ingestion and never touched afterwards.
    - The search hint is the first-in-window index of the previous query; forward
      playback therefore only binary-searches the tail that is left.
    """

    def __init__(
        self,
        compositor: PointCompositor,
        scheduler: TickScheduler,
        config: AnimationConfig | None = None,
        *,
        value_min: float | None = None,
        value_max: float | None = None,
        intensity_exponent: float = 1.0,
        events: EventEmitter | None = None,
    ) -> None:
        cfg = validate_animation_config(config or AnimationConfig())
        self._compositor: PointCompositor | None = compositor
        self._scheduler = scheduler
        self._events = events
        self._fade_out = float(cfg.fade_out_duration)
        self._time_window = float(cfg.time_window)
        self._speed = float(cfg.playback_speed)
        self._loop = bool(cfg.loop)
        self._on_frame = cfg.on_frame
        self._on_complete = cfg.on_complete
        self._value_min = value_min
        self._value_max = value_max
        self._exponent = float(intensity_exponent)

        self._dataset: TemporalDataset | None = None
        self._xyv: np.ndarray = np.zeros((0, 3), dtype=np.float64)
        self._data_range: ValueRange | None = None
        self._range = ValueRange(0.0, 0.0)
        self._state: AnimationState = "idle"
        self._current_time = 0.0
        self._last_frame_time = 0.0
        self._hint = 0
        self._tick: TickHandle | None = None

    # -- data ---------------------------------------------------------------

    def set_temporal_data(self, data: TemporalDataset | Mapping[str, Any]) -> None:
        if self._compositor is None:
            return
        dataset = coerce_temporal_dataset(data)
        xyv = np.asarray([(p.x, p.y, p.value) for p in dataset.points], dtype=np.float64).reshape(-1, 3)
        detected = ValueRange(float(xyv[:, 2].min()), float(xyv[:, 2].max())) if xyv.shape[0] else None
        rng = effective_range(
            detected,
            value_min=self._value_min if self._value_min is not None else dataset.min,
            value_max=self._value_max if self._value_max is not None else dataset.max,
            zero_floor=False,
        )

        # Swap every derived field together.
        self._dataset, self._xyv, self._data_range, self._range = dataset, xyv, detected, rng
        self._current_time = dataset.start_time
        self._hint = 0
        self._last_frame_time = self._scheduler.now()
        logger.debug(
            "temporal data set: %d points over [%s, %s]", len(dataset), dataset.start_time, dataset.end_time
        )

        self.render_frame(self._current_time)
        if self._events is not None:
            self._events.emit(
                "datachange",
                DataChangeEvent(point_count=len(dataset), data_range=detected, effective_range=rng),
            )

    @property
    def dataset(self) -> TemporalDataset | None:
        return self._dataset

    @property
    def data_range(self) -> ValueRange | None:
        return self._data_range

    @property
    def effective_range(self) -> ValueRange:
        return self._range

    def set_value_bounds(self, value_min: float | None, value_max: float | None) -> None:
        self._value_min, self._value_max = value_min, value_max
        ds = self._dataset
        if ds is None:
            return
        self._range = effective_range(
            self._data_range,
            value_min=value_min if value_min is not None else ds.min,
            value_max=value_max if value_max is not None else ds.max,
            zero_floor=False,
        )
        self.render_frame(self._current_time)
        if self._events is not None:
            self._events.emit(
                "datachange",
                DataChangeEvent(point_count=len(ds), data_range=self._data_range, effective_range=self._range),
            )

    # -- transport ----------------------------------------------------------

    def play(self) -> None:
        if self._state == "playing" or self._dataset is None:
            return
        ds = self._dataset
        if self._state == "idle" and ds.duration > 0 and self._current_time >= ds.end_time:
            # Replaying a finished run starts from the top.
            self._current_time = ds.start_time
            self._hint = 0
        self._state = "playing"
        self._last_frame_time = self._scheduler.now()
        logger.debug("animation playing from %s", self._current_time)
        self._schedule()

    def pause(self) -> None:
        self._cancel_tick()
        if self._state == "playing":
            self._state = "paused"
            logger.debug("animation paused at %s", self._current_time)

    def stop(self) -> None:
        self._cancel_tick()
        self._state = "idle"
        if self._dataset is not None:
            self._current_time = self._dataset.start_time
            self._hint = 0
            self.render_frame(self._current_time)

    def seek(self, timestamp: float) -> None:
        ds = self._dataset
        if ds is None:
            return
        t = float(timestamp)
        if not np.isfinite(t):
            return
        self._current_time = float(min(ds.end_time, max(ds.start_time, t)))
        if self._hint < len(ds) and self._current_time < float(ds.timestamps[self._hint]):
            self._hint = 0
        self.render_frame(self._current_time)

    def seek_progress(self, progress: float) -> None:
        ds = self._dataset
        if ds is None:
            return
        p = float(min(1.0, max(0.0, float(progress))))
        self.seek(ds.start_time + ds.duration * p)

    def set_speed(self, speed: float) -> None:
        self._speed = clamp_speed(speed)

    def set_loop(self, loop: bool) -> None:
        self._loop = bool(loop)

    @property
    def state(self) -> AnimationState:
        return self._state

    @property
    def current_time(self) -> float:
        return self._current_time

    @property
    def playback_speed(self) -> float:
        return self._speed

    @property
    def loop(self) -> bool:
        return self._loop

    @property
    def progress(self) -> float:
        ds = self._dataset
        if ds is None:
            return 0.0
        if ds.duration == 0:
            return 1.0
        return float(min(1.0, max(0.0, (self._current_time - ds.start_time) / ds.duration)))

    # -- frames -------------------------------------------------------------

    def _schedule(self) -> None:
        self._cancel_tick()
        self._tick = self._scheduler.request_tick(self._on_tick)

    def _cancel_tick(self) -> None:
        if self._tick is not None:
            self._tick.cancel()
            self._tick = None

    def _on_tick(self, now: float) -> None:
        self._tick = None
        ds = self._dataset
        if ds is None or self._state != "playing":
            return

        elapsed = max(0.0, float(now) - self._last_frame_time)
        self._last_frame_time = float(now)
        self._current_time += elapsed * self._speed

        if self._current_time >= ds.end_time:
            if self._loop:
                self._current_time = ds.start_time
                self._hint = 0
            else:
                self._current_time = ds.end_time
                self._state = "idle"
                self.render_frame(self._current_time)
                logger.debug("animation complete at %s", self._current_time)
                if self._on_complete is not None:
                    self._on_complete()
                return

        self.render_frame(self._current_time)
        progress = self.progress
        if self._on_frame is not None:
            self._on_frame(self._current_time, progress)
        if self._events is not None:
            self._events.emit("frame", FrameEvent(time=self._current_time, progress=progress))
        # Callbacks above may have paused, stopped or torn us down.
        if self._state == "playing" and self._dataset is not None:
            self._schedule()

    def render_frame(self, timestamp: float) -> None:
        comp = self._compositor
        ds = self._dataset
        if comp is None or ds is None:
            return
        if len(ds) == 0:
            comp.clear()
            return
        comp.render(self.active_points_at(timestamp))

    def _window_start_index(self, window_start: float) -> int:
        ts = self._dataset.timestamps  # type: ignore[union-attr]
        left = self._hint if 0 <= self._hint <= ts.shape[0] else 0
        if left > 0 and ts[left - 1] >= window_start:
            # The hint overshoots (backward seek); search the whole sequence.
            left = 0
        return bisect_left(ts, window_start, lo=left)

    def active_points_at(self, timestamp: float) -> list[RenderablePoint]:
        """Points visible at `timestamp` under the time window and fade-out, with alpha.

        A point qualifies when `timestamp - time_window <= point.timestamp <= timestamp`
        and it is younger than `fade_out_duration`. Its alpha is the normalized value
        times `1 - ease_out_quad(age)`.
        """

        ds = self._dataset
        if ds is None or len(ds) == 0:
            return []
        t = float(timestamp)
        start = self._window_start_index(t - self._time_window)
        stop = bisect_right(ds.timestamps, t, lo=start)
        self._hint = start
        if stop <= start:
            return []

        age = np.clip((t - ds.timestamps[start:stop]) / self._fade_out, 0.0, 1.0)
        keep = age < 1.0
        if not np.any(keep):
            return []
        xyv = self._xyv[start:stop][keep]
        intensity = self._range.normalize(xyv[:, 2])
        if self._exponent != 1.0:
            intensity = intensity**self._exponent
        alpha = intensity * (1.0 - ease_out_quad(age[keep]))
        return [
            RenderablePoint(x=float(x), y=float(y), alpha=float(a))
            for x, y, a in zip(xyv[:, 0], xyv[:, 1], alpha)
        ]

    @property
    def search_hint(self) -> int:
        return self._hint

    # -- teardown -----------------------------------------------------------

    def clear(self) -> None:
        """Drop the dataset and go idle; the controller stays usable."""
        self._cancel_tick()
        self._state = "idle"
        self._dataset = None
        self._xyv = np.zeros((0, 3), dtype=np.float64)
        self._data_range = None
        self._range = ValueRange(0.0, 0.0)
        self._current_time = 0.0
        self._hint = 0

    def destroy(self) -> None:
        self._cancel_tick()
        self._state = "idle"
        self._dataset = None
        self._xyv = np.zeros((0, 3), dtype=np.float64)
        self._data_range = None
        self._compositor = None
        self._events = None
        self._hint = 0
