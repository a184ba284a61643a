from __future__ import annotations

from .runtime.server import HeatfieldServer, run
from .sdk.client import HeatfieldClient
from .core.config import AnimationConfig, HeatmapConfig
from .core.features import AnimationFeature, LegendConfig, LegendFeature, TooltipFeature
from .core.heatmap import Heatmap, create_heatmap
from .core.points import Point, TemporalDataset, TemporalPoint
from .core.presets import GRADIENT_PRESETS
from .core.projection import ProjectedLayer
from .core.scheduler import RealtimeScheduler, VirtualClock

__all__ = [
    "run",
    "HeatfieldServer",
    "HeatfieldClient",
    "HeatmapConfig",
    "AnimationConfig",
    "Heatmap",
    "create_heatmap",
    "AnimationFeature",
    "LegendFeature",
    "LegendConfig",
    "TooltipFeature",
    "ProjectedLayer",
    "Point",
    "TemporalPoint",
    "TemporalDataset",
    "GRADIENT_PRESETS",
    "VirtualClock",
    "RealtimeScheduler",
]
