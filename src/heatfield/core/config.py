from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable

import numpy as np

from .gradient import GradientStop, coerce_stops
from .grid import AGGREGATION_MODES, AggregationMode
from .presets import GRADIENT_DEFAULT, preset
from .surface import BLEND_MODES, BlendMode


@dataclass(frozen=True)
class HeatmapConfig:
    """Rendering and aggregation options for one heatmap.

    Notes:
    - `width` / `height` define the pixel space the points live in.
    - `blur` is a fraction of `radius`: 0 draws hard discs, 1 fades from the centre.
    - `value_min` / `value_max` pin the colour scale; otherwise it follows the data.
    """

    width: int
    height: int
    radius: float = 25.0
    blur: float = 0.85
    max_opacity: float = 0.8
    min_opacity: float = 0.0
    gradient: tuple[GradientStop, ...] = GRADIENT_DEFAULT
    grid_size: float = 10.0
    aggregation_mode: AggregationMode = "max"
    blend_mode: BlendMode = "source-over"
    intensity_exponent: float = 1.0
    value_min: float | None = None
    value_max: float | None = None


@dataclass(frozen=True)
class AnimationConfig:
    fade_out_duration: float = 2000.0
    time_window: float = 5000.0
    playback_speed: float = 1.0
    loop: bool = False
    on_frame: Callable[[float, float], None] | None = field(default=None, compare=False)
    on_complete: Callable[[], None] | None = field(default=None, compare=False)


MIN_PLAYBACK_SPEED = 0.1
MAX_PLAYBACK_SPEED = 10.0


def clamp_speed(speed: float) -> float:
    return float(min(MAX_PLAYBACK_SPEED, max(MIN_PLAYBACK_SPEED, float(speed))))


def _positive(value: Any, *, name: str, allow_zero: bool = False) -> float:
    v = float(value)
    if not np.isfinite(v) or v < 0 or (v == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        raise ValueError(f"Invalid {name} value: {value}. Must be {bound}.")
    return v


def _unit(value: Any, *, name: str) -> float:
    v = float(value)
    if not np.isfinite(v) or v < 0.0 or v > 1.0:
        raise ValueError(f"Invalid {name} value: {value}. Must be between 0 and 1.")
    return v


def validate_config(config: HeatmapConfig) -> HeatmapConfig:
    """Check every option and return a config with the gradient normalized.

    Raises ValueError with a message naming the offending option.
    """

    width = int(config.width)
    height = int(config.height)
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid size {config.width}x{config.height}. Width and height must be positive.")

    radius = _positive(config.radius, name="radius", allow_zero=True)
    blur = _unit(config.blur, name="blur")
    max_opacity = _unit(config.max_opacity, name="maxOpacity")
    min_opacity = _unit(config.min_opacity, name="minOpacity")
    if min_opacity > max_opacity:
        raise ValueError(
            f"Invalid opacity values: minOpacity ({min_opacity}) cannot be greater than maxOpacity ({max_opacity})."
        )
    grid_size = _positive(config.grid_size, name="gridSize")
    exponent = _positive(config.intensity_exponent, name="intensityExponent")

    if config.aggregation_mode not in AGGREGATION_MODES:
        raise ValueError(f"Unknown aggregation mode {config.aggregation_mode!r}. Supported: {list(AGGREGATION_MODES)}")
    if config.blend_mode not in BLEND_MODES:
        raise ValueError(f"Unknown blend mode {config.blend_mode!r}. Supported: {list(BLEND_MODES)}")

    vmin = None if config.value_min is None else float(config.value_min)
    vmax = None if config.value_max is None else float(config.value_max)
    if vmin is not None and vmax is not None and vmin > vmax:
        raise ValueError(f"valueMin ({vmin}) cannot be greater than valueMax ({vmax}).")

    return replace(
        config,
        width=width,
        height=height,
        radius=radius,
        blur=blur,
        max_opacity=max_opacity,
        min_opacity=min_opacity,
        gradient=coerce_stops(config.gradient),
        grid_size=grid_size,
        intensity_exponent=exponent,
        value_min=vmin,
        value_max=vmax,
    )


def validate_animation_config(config: AnimationConfig) -> AnimationConfig:
    return replace(
        config,
        fade_out_duration=_positive(config.fade_out_duration, name="fadeOutDuration"),
        time_window=_positive(config.time_window, name="timeWindow", allow_zero=True),
        playback_speed=clamp_speed(config.playback_speed),
        loop=bool(config.loop),
    )


_CONFIG_KEYS: dict[str, str] = {
    "width": "width",
    "height": "height",
    "radius": "radius",
    "blur": "blur",
    "maxOpacity": "max_opacity",
    "minOpacity": "min_opacity",
    "gradient": "gradient",
    "gridSize": "grid_size",
    "aggregationMode": "aggregation_mode",
    "blendMode": "blend_mode",
    "intensityExponent": "intensity_exponent",
    "valueMin": "value_min",
    "valueMax": "value_max",
}


def config_from_dict(body: dict[str, Any], *, base: HeatmapConfig | None = None) -> HeatmapConfig:
    """Build a validated config from camelCase (wire) or snake_case keys."""

    values: dict[str, Any] = {}
    for key, value in body.items():
        attr = _CONFIG_KEYS.get(key, key if key in _CONFIG_KEYS.values() else None)
        if attr is None:
            raise ValueError(f"Unknown config option: {key}")
        values[attr] = value
    if "gradient" in values and not isinstance(values["gradient"], tuple):
        values["gradient"] = stops_from_any(values["gradient"])
    if base is None:
        if "width" not in values or "height" not in values:
            raise ValueError("width and height are required")
        return validate_config(HeatmapConfig(**values))
    return validate_config(replace(base, **values))


def config_to_dict(config: HeatmapConfig) -> dict[str, Any]:
    return {
        "width": int(config.width),
        "height": int(config.height),
        "radius": float(config.radius),
        "blur": float(config.blur),
        "maxOpacity": float(config.max_opacity),
        "minOpacity": float(config.min_opacity),
        "gradient": [s.to_dict() for s in config.gradient],
        "gridSize": float(config.grid_size),
        "aggregationMode": config.aggregation_mode,
        "blendMode": config.blend_mode,
        "intensityExponent": float(config.intensity_exponent),
        "valueMin": config.value_min,
        "valueMax": config.value_max,
    }


def stops_from_any(stops: Iterable[Any] | str) -> tuple[GradientStop, ...]:
    """Accept a preset name or a list of stops."""
    if isinstance(stops, str):
        return preset(stops)
    return coerce_stops(stops)
