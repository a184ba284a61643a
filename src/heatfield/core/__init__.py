from __future__ import annotations

from .animation import AnimationState, TemporalAnimationController, ease_out_quad
from .compositor import PointCompositor, composite, generate_opacity_lut, generate_point_template
from .config import AnimationConfig, HeatmapConfig, config_from_dict, config_to_dict, validate_config
from .events import DataChangeEvent, EventEmitter, FrameEvent, GradientChangeEvent
from .features import AnimationFeature, Feature, LegendConfig, LegendFeature, LegendLabel, TooltipFeature
from .gradient import GradientStop, coerce_stops, generate_palette, gradient_ramp, parse_color
from .grid import AggregationMode, ValueGrid, effective_range, ingest, range_of, value_at
from .heatmap import Heatmap, HeatmapStats, create_heatmap
from .points import Point, RenderablePoint, TemporalDataset, TemporalPoint, ValueRange
from .presets import GRADIENT_DEFAULT, GRADIENT_PRESETS, preset
from .projection import GeoPoint, ProjectedLayer, ProjectionAdapter
from .scheduler import RealtimeScheduler, TickScheduler, VirtualClock
from .surface import ArraySurface, BlendMode, RasterSurface, RenderBoundaries

__all__ = [
    "Point",
    "TemporalPoint",
    "TemporalDataset",
    "RenderablePoint",
    "ValueRange",
    "GradientStop",
    "parse_color",
    "coerce_stops",
    "generate_palette",
    "gradient_ramp",
    "GRADIENT_DEFAULT",
    "GRADIENT_PRESETS",
    "preset",
    "AggregationMode",
    "ValueGrid",
    "ingest",
    "value_at",
    "range_of",
    "effective_range",
    "BlendMode",
    "RasterSurface",
    "ArraySurface",
    "RenderBoundaries",
    "PointCompositor",
    "composite",
    "generate_point_template",
    "generate_opacity_lut",
    "TickScheduler",
    "VirtualClock",
    "RealtimeScheduler",
    "AnimationState",
    "TemporalAnimationController",
    "ease_out_quad",
    "EventEmitter",
    "DataChangeEvent",
    "GradientChangeEvent",
    "FrameEvent",
    "HeatmapConfig",
    "AnimationConfig",
    "validate_config",
    "config_from_dict",
    "config_to_dict",
    "Heatmap",
    "HeatmapStats",
    "create_heatmap",
    "Feature",
    "AnimationFeature",
    "LegendFeature",
    "LegendConfig",
    "LegendLabel",
    "TooltipFeature",
    "GeoPoint",
    "ProjectedLayer",
    "ProjectionAdapter",
]
