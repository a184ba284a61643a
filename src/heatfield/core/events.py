from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Literal

from .gradient import GradientStop
from .points import ValueRange


EventName = Literal["datachange", "gradientchange", "clear", "destroy", "frame"]
EVENT_NAMES: tuple[str, ...] = ("datachange", "gradientchange", "clear", "destroy", "frame")

Listener = Callable[..., None]


@dataclass(frozen=True)
class DataChangeEvent:
    point_count: int
    data_range: ValueRange | None
    effective_range: ValueRange


@dataclass(frozen=True)
class GradientChangeEvent:
    stops: tuple[GradientStop, ...]


@dataclass(frozen=True)
class FrameEvent:
    time: float
    progress: float


class EventEmitter:
    """Synchronous pub/sub. Listeners run in subscription order inside `emit`."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: EventName, listener: Listener) -> None:
        if event not in EVENT_NAMES:
            raise ValueError(f"Unknown event {event!r}. Supported: {list(EVENT_NAMES)}")
        bucket = self._listeners.setdefault(event, [])
        if listener not in bucket:
            bucket.append(listener)

    def off(self, event: EventName, listener: Listener) -> None:
        bucket = self._listeners.get(event)
        if bucket and listener in bucket:
            bucket.remove(listener)

    def emit(self, event: EventName, payload: Any = None) -> None:
        # Copy so listeners may unsubscribe while being notified.
        for listener in list(self._listeners.get(event, ())):
            if payload is None:
                listener()
            else:
                listener(payload)

    def listener_count(self, event: EventName) -> int:
        return len(self._listeners.get(event, ()))

    def clear(self) -> None:
        self._listeners.clear()
