from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal

import numpy as np

from .points import Point, ValueRange


AggregationMode = Literal["max", "sum", "mean", "count"]
AGGREGATION_MODES: tuple[str, ...] = ("max", "sum", "mean", "count")

CellKey = tuple[int, int]


@dataclass
class _Cell:
    # `acc` holds the running max (max) or running total (sum, mean).
    acc: float = 0.0
    count: int = 0


@dataclass
class ValueGrid:
    """Per-cell aggregation of point values.

    Cells are keyed by `(floor(x / grid_size), floor(y / grid_size))`, created on the
    first point that falls into them and only dropped by `reset()`.
    """

    grid_size: float
    mode: AggregationMode = "max"
    _cells: dict[CellKey, _Cell] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if self.mode not in AGGREGATION_MODES:
            raise ValueError(f"Unknown aggregation mode {self.mode!r}. Supported: {list(AGGREGATION_MODES)}")
        if not np.isfinite(self.grid_size) or float(self.grid_size) <= 0:
            raise ValueError("grid_size must be a positive number")

    def key_for(self, x: float, y: float) -> CellKey:
        g = float(self.grid_size)
        return int(np.floor(float(x) / g)), int(np.floor(float(y) / g))

    def add(self, points: Iterable[Point]) -> None:
        for p in points:
            self.add_point(p)

    def add_point(self, point: Point) -> None:
        key = self.key_for(point.x, point.y)
        cell = self._cells.get(key)
        value = float(point.value)
        if cell is None:
            cell = _Cell(acc=value if self.mode == "max" else 0.0)
            self._cells[key] = cell
        elif self.mode == "max":
            if value > cell.acc:
                cell.acc = value
        if self.mode in ("sum", "mean"):
            cell.acc += value
        cell.count += 1

    def _cell_value(self, cell: _Cell) -> float:
        if self.mode == "count":
            return float(cell.count)
        if self.mode == "mean":
            return cell.acc / cell.count if cell.count else 0.0
        return float(cell.acc)

    def value_at(self, x: float, y: float) -> float:
        cell = self._cells.get(self.key_for(x, y))
        if cell is None:
            return 0.0
        return self._cell_value(cell)

    def values_for(self, points: Iterable[Point]) -> np.ndarray:
        return np.asarray([self.value_at(p.x, p.y) for p in points], dtype=np.float64)

    def range(self) -> ValueRange | None:
        if not self._cells:
            return None
        values = [self._cell_value(c) for c in self._cells.values()]
        return ValueRange(min=float(min(values)), max=float(max(values)))

    def reset(self) -> None:
        self._cells.clear()

    @property
    def cell_count(self) -> int:
        return len(self._cells)

    def __len__(self) -> int:
        return len(self._cells)


def ingest(points: Iterable[Point], mode: AggregationMode = "max", grid_size: float = 10.0) -> ValueGrid:
    """Build a fresh grid from `points`."""
    grid = ValueGrid(grid_size=float(grid_size), mode=mode)
    grid.add(points)
    return grid


def value_at(grid: ValueGrid, x: float, y: float) -> float:
    return grid.value_at(x, y)


def range_of(
    grid: ValueGrid,
    *,
    value_min: float | None = None,
    value_max: float | None = None,
) -> ValueRange:
    """Detected cell range, with fixed bounds taking precedence when given."""
    detected = grid.range() or ValueRange(0.0, 0.0)
    return ValueRange(
        min=float(value_min) if value_min is not None else detected.min,
        max=float(value_max) if value_max is not None else detected.max,
    )


def effective_range(
    detected: ValueRange | None,
    *,
    value_min: float | None = None,
    value_max: float | None = None,
    zero_floor: bool = True,
) -> ValueRange:
    """The one range used for colour scaling, tooltips and legends.

    Fixed bounds always win. Without a fixed minimum the static scale starts at zero,
    so a value of 50 against a maximum of 100 maps to half intensity; detected negative
    minima still extend the scale downward. With `zero_floor=False` the detected
    minimum is the lower bound, as temporal playback uses it.
    """

    if detected is None:
        detected = ValueRange(0.0, 0.0)
    if value_min is not None:
        lo = float(value_min)
    elif zero_floor:
        lo = min(0.0, float(detected.min))
    else:
        lo = float(detected.min)
    hi = float(value_max) if value_max is not None else float(detected.max)
    return ValueRange(min=lo, max=hi)
