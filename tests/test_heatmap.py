from __future__ import annotations

import numpy as np
import pytest

from heatfield.core.config import AnimationConfig, HeatmapConfig
from heatfield.core.events import EventEmitter
from heatfield.core.features import AnimationFeature, LegendConfig, LegendFeature, TooltipFeature
from heatfield.core.heatmap import Heatmap, create_heatmap
from heatfield.core.points import Point, ValueRange
from heatfield.core.presets import GRADIENT_THERMAL
from heatfield.core.projection import ProjectedLayer
from heatfield.core.scheduler import VirtualClock
from heatfield.core.surface import RenderBoundaries


def _config(**kw) -> HeatmapConfig:
    opts = dict(width=100, height=80, radius=5, grid_size=10)
    opts.update(kw)
    return HeatmapConfig(**opts)


_POINTS = [Point(10, 10, 5.0), Point(50, 40, 10.0)]


def test_set_data_renders_and_reports_stats() -> None:
    hm = create_heatmap(_config(), data=_POINTS)
    stats = hm.get_stats()
    assert stats.point_count == 2
    assert stats.value_grid_size == 2
    assert stats.data_range == ValueRange(5.0, 10.0)
    assert stats.effective_range == ValueRange(0.0, 10.0)
    assert stats.render_boundaries == RenderBoundaries(5, 5, 55, 45)
    assert stats.render_coverage_percent == pytest.approx(25.0)
    assert stats.canvas_size == (100, 80)
    assert hm.pixels[40, 50, 3] > 0

    d = stats.to_dict()
    assert d["pointCount"] == 2
    assert d["renderBoundaries"]["width"] == 50
    assert d["dataRange"] == {"min": 5.0, "max": 10.0}


def test_stats_without_data() -> None:
    stats = create_heatmap(_config()).get_stats()
    assert stats.point_count == 0
    assert stats.data_range is None
    assert stats.render_boundaries.empty
    assert stats.render_coverage_percent == 0.0


def test_points_accept_dicts_tuples_and_arrays() -> None:
    hm = create_heatmap(_config())
    hm.set_data({"points": [{"x": 1, "y": 1, "value": 2}, (25, 25)]})
    assert hm.get_value_at(1, 1) == 2.0
    assert hm.get_value_at(25, 25) == 1.0
    hm.set_data(np.array([[5.0, 5.0, 4.0]]))
    assert hm.get_stats().point_count == 1
    with pytest.raises(ValueError):
        hm.set_data([{"x": "a", "y": 1}])


def test_alpha_comes_from_the_cell_aggregate() -> None:
    hm = create_heatmap(_config(aggregation_mode="sum"), data=[Point(1, 1, 2.0), Point(2, 2, 2.0), Point(51, 51, 2.0)])
    alphas = [p.alpha for p in hm.renderable_points()]
    assert alphas == pytest.approx([1.0, 1.0, 0.5])


def test_intensity_exponent_shapes_alpha() -> None:
    hm = create_heatmap(_config(intensity_exponent=2.0), data=_POINTS)
    alphas = [p.alpha for p in hm.renderable_points()]
    assert alphas == pytest.approx([0.25, 1.0])


def test_add_points_updates_grid_incrementally() -> None:
    changes: list = []
    hm = create_heatmap(_config(aggregation_mode="count"))
    hm.on("datachange", changes.append)
    hm.add_point((1, 1))
    hm.add_points([(2, 2), (3, 3)])
    assert hm.get_value_at(0, 0) == 3.0
    assert [c.point_count for c in changes] == [1, 3]
    hm.add_points([])
    assert len(changes) == 2


def test_set_aggregation_mode_reaggregates() -> None:
    hm = create_heatmap(_config(), data=[Point(1, 1, 3.0), Point(2, 2, 3.0)])
    assert hm.get_value_at(1, 1) == 3.0
    hm.set_aggregation_mode("sum")
    assert hm.get_value_at(1, 1) == 6.0
    with pytest.raises(ValueError):
        hm.set_aggregation_mode("median")  # type: ignore[arg-type]


def test_fixed_value_range_drives_scaling() -> None:
    changes: list = []
    hm = create_heatmap(_config(), data=_POINTS)
    hm.on("datachange", changes.append)
    hm.set_value_range(0.0, 20.0)
    assert hm.effective_range == ValueRange(0.0, 20.0)
    assert changes[-1].effective_range == ValueRange(0.0, 20.0)
    assert [p.alpha for p in hm.renderable_points()] == pytest.approx([0.25, 0.5])
    with pytest.raises(ValueError):
        hm.set_value_range(10.0, 1.0)


def test_set_gradient_emits_and_recolours() -> None:
    seen: list = []
    hm = create_heatmap(_config(), data=_POINTS)
    before = np.array(hm.pixels)
    hm.on("gradientchange", seen.append)
    hm.set_gradient("thermal")
    assert seen[-1].stops == GRADIENT_THERMAL
    assert hm.gradient == GRADIENT_THERMAL
    assert not np.array_equal(before, hm.pixels)
    with pytest.raises(ValueError):
        hm.set_gradient([])


def test_clear_and_destroy_events() -> None:
    calls: list[str] = []
    hm = create_heatmap(_config(), data=_POINTS)
    hm.on("clear", lambda: calls.append("clear"))
    hm.on("destroy", lambda: calls.append("destroy"))
    hm.clear()
    assert hm.get_stats().point_count == 0
    assert hm.pixels.max() == 0
    assert hm.get_value_at(10, 10) == 0.0
    hm.destroy()
    hm.destroy()
    assert calls == ["clear", "destroy"]
    assert hm.destroyed
    hm.set_data(_POINTS)
    assert hm.get_stats().point_count == 0


def test_event_emitter_rejects_unknown_events() -> None:
    ev = EventEmitter()
    with pytest.raises(ValueError):
        ev.on("resize", lambda: None)  # type: ignore[arg-type]


def test_listener_may_unsubscribe_while_notified() -> None:
    ev = EventEmitter()
    calls: list[int] = []

    def once(payload) -> None:
        calls.append(payload)
        ev.off("frame", once)

    ev.on("frame", once)
    ev.emit("frame", 1)
    ev.emit("frame", 2)
    assert calls == [1]
    assert ev.listener_count("frame") == 0


def test_legend_follows_the_effective_range() -> None:
    legend = LegendFeature(LegendConfig(label_count=3))
    hm = create_heatmap(_config(), legend, data=_POINTS)
    assert [lb.value for lb in legend.labels()] == [0.0, 5.0, 10.0]
    assert [lb.text for lb in legend.labels()] == ["0", "5", "10"]
    assert legend.ramp is not None and legend.ramp.shape == (15, 150, 4)

    hm.set_gradient("fire")
    assert legend.stops == hm.gradient


def test_legend_fixed_bounds_and_vertical_layout() -> None:
    legend = LegendFeature(LegendConfig(orientation="vertical", label_count=2, min=-1, max=1))
    create_heatmap(_config(), legend, data=_POINTS)
    assert legend.label_values() == [-1.0, 1.0]
    assert legend.ramp is not None and legend.ramp.shape == (100, 20, 4)


def test_legend_label_count_edges() -> None:
    assert LegendFeature(LegendConfig(label_count=0, min=0, max=10)).label_values() == []
    assert LegendFeature(LegendConfig(label_count=1, min=0, max=10)).label_values() == [5.0]


def test_tooltip_formats_value_under_cursor() -> None:
    tip = TooltipFeature(formatter=lambda v, x, y: f"{v:.1f} @ {x:.0f},{y:.0f}")
    create_heatmap(_config(), tip, data=_POINTS)
    assert tip.describe(12, 12) == "5.0 @ 12,12"
    assert tip.describe(95, 75) is None


def test_features_are_torn_down_on_destroy() -> None:
    anim = AnimationFeature()
    legend = LegendFeature()
    hm = create_heatmap(_config(), anim, legend)
    assert anim.controller is not None
    hm.destroy()
    assert anim.controller is None
    assert legend.ramp is None


def test_duplicate_feature_kinds_are_rejected() -> None:
    with pytest.raises(ValueError):
        create_heatmap(_config(), LegendFeature(), LegendFeature())


def test_temporal_data_is_routed_to_the_animation() -> None:
    clock = VirtualClock()
    hm = create_heatmap(_config(), AnimationFeature(AnimationConfig(fade_out_duration=1000), scheduler=clock))
    changes: list = []
    hm.on("datachange", changes.append)
    hm.set_data(
        {
            "startTime": 0,
            "endTime": 2000,
            "min": 0,
            "points": [{"x": 20, "y": 20, "value": 4, "timestamp": 0}],
        }
    )
    assert hm.animation.dataset is not None
    assert hm.effective_range == ValueRange(0.0, 4.0)
    assert changes[-1].point_count == 1
    assert hm.pixels[20, 20, 3] > 0

    hm.animation.play()
    clock.run_frames(10, frame_ms=100)
    # Faded out after one second.
    assert hm.pixels.max() == 0


def test_temporal_data_without_animation_raises() -> None:
    hm = create_heatmap(_config())
    with pytest.raises(RuntimeError):
        hm.set_data({"startTime": 0, "endTime": 10, "points": []})


def test_invalid_config_is_rejected() -> None:
    with pytest.raises(ValueError):
        Heatmap(_config(blur=2.0))
    with pytest.raises(ValueError):
        Heatmap(_config(min_opacity=0.9, max_opacity=0.1))


class _LinearAdapter:
    def __init__(self, scale: float) -> None:
        self.scale = scale

    def project(self, lat: float, lng: float) -> tuple[float, float]:
        if lat > 90:
            return float("nan"), float("nan")
        return lng * self.scale, lat * self.scale


def test_projected_layer_reprojects_on_refresh() -> None:
    hm = create_heatmap(_config())
    adapter = _LinearAdapter(10.0)
    layer = ProjectedLayer(hm, adapter)
    layer.set_data([{"lat": 1, "lng": 2, "value": 3}, (100, 0)])
    assert hm.get_value_at(20, 10) == 3.0
    assert hm.get_stats().point_count == 1

    adapter.scale = 20.0
    layer.refresh()
    assert hm.get_value_at(20, 10) == 0.0
    assert hm.get_value_at(40, 20) == 3.0

    layer.add_points([(2, 2, 7)])
    assert hm.get_value_at(40, 40) == 7.0
    assert len(layer.points) == 3


def test_value_range_on_temporal_data_announces_the_animation_range() -> None:
    legend = LegendFeature(LegendConfig(label_count=2))
    hm = create_heatmap(_config(), AnimationFeature(scheduler=VirtualClock()), legend)
    hm.set_data({"startTime": 0, "endTime": 10, "min": 0, "points": [{"x": 5, "y": 5, "value": 4, "timestamp": 0}]})
    assert legend.label_values() == [0.0, 4.0]
    hm.set_value_range(None, 8.0)
    assert hm.effective_range == ValueRange(0.0, 8.0)
    assert legend.label_values() == [0.0, 8.0]


def test_clear_drops_temporal_data_too() -> None:
    clock = VirtualClock()
    hm = create_heatmap(_config(), AnimationFeature(scheduler=clock))
    hm.set_data({"startTime": 0, "endTime": 1000, "points": [{"x": 5, "y": 5, "value": 1, "timestamp": 0}]})
    hm.animation.play()
    hm.clear()
    assert hm.animation.dataset is None
    assert hm.animation.state == "idle"
    assert clock.pending == 0
    assert hm.pixels.max() == 0


def test_playback_scale_starts_at_the_detected_minimum() -> None:
    legend = LegendFeature(LegendConfig(label_count=2))
    hm = create_heatmap(_config(), AnimationFeature(scheduler=VirtualClock()), legend)
    hm.set_data([(10, 10, 20.0), (60, 40, 100.0)])
    assert hm.effective_range == ValueRange(0.0, 100.0)

    hm.set_data(
        {
            "startTime": 0,
            "endTime": 10,
            "points": [
                {"x": 10, "y": 10, "value": 20, "timestamp": 0},
                {"x": 60, "y": 40, "value": 100, "timestamp": 0},
            ],
        }
    )
    assert hm.effective_range == ValueRange(20.0, 100.0)
    assert legend.label_values() == [20.0, 100.0]
    assert hm.pixels[10, 10, 3] == 0
    assert hm.pixels[40, 60, 3] > 0
