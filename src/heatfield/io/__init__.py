from __future__ import annotations

from .image import encode_frame
from .points import load_points, load_temporal_dataset, save_temporal_dataset

__all__ = ["encode_frame", "load_points", "load_temporal_dataset", "save_temporal_dataset"]
