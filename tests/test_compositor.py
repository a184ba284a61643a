from __future__ import annotations

import numpy as np
import pytest

from heatfield.core.compositor import (
    PointCompositor,
    composite,
    generate_opacity_lut,
    generate_point_template,
)
from heatfield.core.gradient import generate_palette
from heatfield.core.points import RenderablePoint, ValueRange
from heatfield.core.surface import ArraySurface, RenderBoundaries


_GRAY = generate_palette([(0.0, "rgba(0, 0, 0, 1)"), (1.0, "rgba(255, 255, 255, 1)")])


def _compositor(**kw) -> PointCompositor:
    opts = dict(palette=_GRAY, radius=5, blur=0.5, min_opacity=0.0, max_opacity=1.0)
    opts.update(kw)
    return PointCompositor(40, 30, **opts)


def test_template_shape_and_profile() -> None:
    t = generate_point_template(10, 0.5)
    assert t.shape == (20, 20)
    assert t.dtype == np.float32
    assert t.max() == pytest.approx(1.0)
    assert t[0, 0] == 0.0
    # Solid core out to radius * (1 - blur).
    assert t[10, 10] == pytest.approx(1.0)


def test_zero_blur_gives_a_hard_disc() -> None:
    t = generate_point_template(6, 0.0)
    assert set(np.unique(t).tolist()) <= {0.0, 1.0}


def test_zero_radius_template_is_one_pixel() -> None:
    t = generate_point_template(0, 0.85)
    assert t.shape == (1, 1)
    assert t[0, 0] == 1.0


def test_opacity_lut_spans_configured_range() -> None:
    lut = generate_opacity_lut(0.2, 0.8)
    assert lut.shape == (256,)
    assert lut[0] == round(0.2 * 255)
    assert lut[255] == round(0.8 * 255)
    assert np.all(np.diff(lut.astype(int)) >= 0)


def test_zero_points_clears_the_frame() -> None:
    comp = _compositor()
    comp.render([RenderablePoint(20, 15, 1.0)])
    assert comp.pixels[..., 3].max() > 0
    bounds = comp.render([])
    assert bounds.empty
    assert comp.pixels.max() == 0
    assert comp.boundaries.empty


def test_radius_zero_stamps_exactly_one_pixel() -> None:
    comp = _compositor(radius=0)
    comp.render([RenderablePoint(7, 9, 1.0)])
    lit = np.argwhere(comp.pixels[..., 3] > 0)
    assert lit.tolist() == [[9, 7]]


def test_overlap_merges_intensity_before_colouring() -> None:
    single = _compositor(radius=0)
    single.render([RenderablePoint(5, 5, 0.5)])
    double = _compositor(radius=0)
    double.render([RenderablePoint(5, 5, 0.5), RenderablePoint(5, 5, 0.5)])
    # source-over: 0.5 + 0.5 * (1 - 0.5) = 0.75, one palette lookup of the merged value.
    assert single.pixels[5, 5, 0] == pytest.approx(0.5 * 255, abs=1)
    assert double.pixels[5, 5, 0] == pytest.approx(0.75 * 255, abs=1)


def test_lighter_blend_adds_and_saturates() -> None:
    comp = _compositor(radius=0, blend_mode="lighter")
    comp.render([RenderablePoint(5, 5, 0.75), RenderablePoint(5, 5, 0.75)])
    assert comp.pixels[5, 5, 0] == 255


def test_max_blend_keeps_the_strongest() -> None:
    comp = _compositor(radius=0, blend_mode="max")
    comp.render([RenderablePoint(5, 5, 0.3), RenderablePoint(5, 5, 0.6)])
    assert comp.pixels[5, 5, 0] == pytest.approx(0.6 * 255, abs=1)


def test_output_alpha_follows_opacity_range() -> None:
    comp = _compositor(radius=0, min_opacity=0.0, max_opacity=0.5)
    comp.render([RenderablePoint(5, 5, 1.0)])
    assert comp.pixels[5, 5, 3] == pytest.approx(0.5 * 255, abs=1)


def test_zero_intensity_stays_transparent() -> None:
    comp = _compositor(min_opacity=0.4)
    comp.render([RenderablePoint(5, 5, 1.0)])
    assert comp.pixels[29, 39].tolist() == [0, 0, 0, 0]


def test_points_off_surface_are_clipped() -> None:
    comp = _compositor(radius=4)
    bounds = comp.render([RenderablePoint(-2, -2, 1.0)])
    assert bounds.min_x == 0 and bounds.min_y == 0
    assert bounds.max_x <= 40 and bounds.max_y <= 30
    assert comp.pixels[0, 0, 3] > 0


def test_boundaries_cover_the_rendered_blobs() -> None:
    comp = _compositor(radius=3)
    bounds = comp.render([RenderablePoint(10, 10, 1.0), RenderablePoint(20, 12, 1.0)])
    assert bounds == RenderBoundaries(min_x=7, min_y=7, max_x=23, max_y=15)
    outside = np.ones(comp.pixels.shape[:2], dtype=bool)
    outside[bounds.min_y : bounds.max_y, bounds.min_x : bounds.max_x] = False
    assert comp.pixels[outside].max() == 0


def test_set_palette_recolours_next_render() -> None:
    comp = _compositor(radius=0)
    red = generate_palette([(0.0, "#ff0000"), (1.0, "#ff0000")])
    comp.set_palette(red)
    comp.render([RenderablePoint(5, 5, 1.0)])
    assert comp.pixels[5, 5, :3].tolist() == [255, 0, 0]
    with pytest.raises(ValueError):
        comp.set_palette(np.zeros((10, 4), dtype=np.uint8))


def test_composite_returns_an_independent_buffer() -> None:
    frame = composite(
        np.array([[5.0, 5.0, 1.0]]),
        width=12,
        height=10,
        palette=_GRAY,
        radius=2,
        blur=0.0,
        opacity_range=ValueRange(0.0, 1.0),
    )
    assert frame.shape == (10, 12, 4)
    assert frame.flags.writeable
    assert frame[5, 5, 3] == 255


def test_array_surface_region_io() -> None:
    surf = ArraySurface(8, 6, channels=4)
    patch = np.full((2, 3, 4), 7, dtype=np.uint8)
    surf.write(patch, 2, 1)
    region = surf.read(RenderBoundaries(2, 1, 5, 3))
    assert (region == 7).all()
    surf.clear(RenderBoundaries(0, 0, 3, 6))
    assert surf.pixels[1, 2, 0] == 0 and surf.pixels[1, 3, 0] == 7
    with pytest.raises(ValueError):
        surf.write(patch, 7, 5)
