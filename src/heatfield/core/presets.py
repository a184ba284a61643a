from __future__ import annotations

from .gradient import GradientStop


def _stops(*pairs: tuple[float, str]) -> tuple[GradientStop, ...]:
    return tuple(GradientStop(offset=o, color=c) for o, c in pairs)


# Cold to hot: transparent -> indigo -> teal -> emerald -> amber -> rose.
GRADIENT_DEFAULT = _stops(
    (0.0, "rgba(0, 0, 0, 0)"),
    (0.2, "rgba(79, 70, 229, 1)"),
    (0.4, "rgba(20, 184, 166, 1)"),
    (0.6, "rgba(52, 211, 153, 1)"),
    (0.8, "rgba(251, 191, 36, 1)"),
    (1.0, "rgba(244, 63, 94, 1)"),
)

GRADIENT_THERMAL = _stops(
    (0.0, "rgba(0, 0, 0, 0)"),
    (0.2, "rgba(128, 0, 128, 1)"),
    (0.4, "rgba(255, 0, 0, 1)"),
    (0.6, "rgba(255, 165, 0, 1)"),
    (0.8, "rgba(255, 255, 0, 1)"),
    (1.0, "rgba(255, 255, 255, 1)"),
)

GRADIENT_COOL = _stops(
    (0.0, "rgba(0, 0, 0, 0)"),
    (0.33, "rgba(128, 0, 255, 1)"),
    (0.66, "rgba(0, 255, 255, 1)"),
    (1.0, "rgba(0, 255, 128, 1)"),
)

GRADIENT_FIRE = _stops(
    (0.0, "rgba(0, 0, 0, 0)"),
    (0.25, "rgba(139, 0, 0, 1)"),
    (0.5, "rgba(255, 69, 0, 1)"),
    (0.75, "rgba(255, 165, 0, 1)"),
    (1.0, "rgba(255, 255, 0, 1)"),
)

GRADIENT_OCEAN = _stops(
    (0.0, "rgba(0, 0, 0, 0)"),
    (0.25, "rgba(0, 0, 139, 1)"),
    (0.5, "rgba(0, 139, 139, 1)"),
    (0.75, "rgba(0, 255, 255, 1)"),
    (1.0, "rgba(255, 255, 255, 1)"),
)

GRADIENT_GRAYSCALE = _stops(
    (0.0, "rgba(0, 0, 0, 0)"),
    (0.25, "rgba(64, 64, 64, 1)"),
    (0.5, "rgba(128, 128, 128, 1)"),
    (0.75, "rgba(192, 192, 192, 1)"),
    (1.0, "rgba(255, 255, 255, 1)"),
)

GRADIENT_SUNSET = _stops(
    (0.0, "rgba(0, 0, 0, 0)"),
    (0.25, "rgba(75, 0, 130, 1)"),
    (0.5, "rgba(255, 20, 147, 1)"),
    (0.75, "rgba(255, 140, 0, 1)"),
    (1.0, "rgba(255, 215, 0, 1)"),
)

GRADIENT_VIRIDIS = _stops(
    (0.0, "rgba(0, 0, 0, 0)"),
    (0.25, "rgba(68, 1, 84, 1)"),
    (0.5, "rgba(33, 145, 140, 1)"),
    (0.75, "rgba(94, 201, 98, 1)"),
    (1.0, "rgba(253, 231, 37, 1)"),
)

GRADIENT_PRESETS: dict[str, tuple[GradientStop, ...]] = {
    "default": GRADIENT_DEFAULT,
    "thermal": GRADIENT_THERMAL,
    "cool": GRADIENT_COOL,
    "fire": GRADIENT_FIRE,
    "ocean": GRADIENT_OCEAN,
    "grayscale": GRADIENT_GRAYSCALE,
    "sunset": GRADIENT_SUNSET,
    "viridis": GRADIENT_VIRIDIS,
}


def preset(name: str) -> tuple[GradientStop, ...]:
    key = str(name).strip().lower()
    if key not in GRADIENT_PRESETS:
        raise ValueError(f"Unknown gradient preset {name!r}. Available: {sorted(GRADIENT_PRESETS)}")
    return GRADIENT_PRESETS[key]
