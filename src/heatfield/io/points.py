from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..core.points import Point, TemporalDataset, coerce_points, coerce_temporal_dataset, point_to_dict


def _read_json(path: str | Path) -> Any:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(str(p))
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def load_points(path: str | Path) -> list[Point]:
    """Load static points from JSON.

    Accepts a top-level list of points, or an object with a `points` (or `data`) list.
    """

    doc = _read_json(path)
    if isinstance(doc, dict):
        doc = doc.get("points", doc.get("data"))
    if not isinstance(doc, list):
        raise ValueError(f"{path}: expected a list of points")
    return coerce_points(doc)


def load_temporal_dataset(path: str | Path) -> TemporalDataset:
    """Load a temporal dataset (`startTime`, `endTime`, optional `min`/`max`, `points`)."""

    doc = _read_json(path)
    if isinstance(doc, list):
        doc = {"points": doc}
    if not isinstance(doc, dict):
        raise ValueError(f"{path}: expected a temporal dataset object")
    return coerce_temporal_dataset(doc)


def temporal_dataset_to_dict(dataset: TemporalDataset) -> dict[str, Any]:
    out: dict[str, Any] = {
        "startTime": float(dataset.start_time),
        "endTime": float(dataset.end_time),
        "points": [point_to_dict(p) for p in dataset.points],
    }
    if dataset.min is not None:
        out["min"] = float(dataset.min)
    if dataset.max is not None:
        out["max"] = float(dataset.max)
    return out


def save_temporal_dataset(dataset: TemporalDataset, path: str | Path) -> None:
    with Path(path).open("w", encoding="utf-8") as f:
        json.dump(temporal_dataset_to_dict(dataset), f)
