from __future__ import annotations

import json
from io import BytesIO

import numpy as np
import pytest

from heatfield.core.config import HeatmapConfig
from heatfield.core.heatmap import create_heatmap
from heatfield.core.points import Point, TemporalDataset, TemporalPoint
from heatfield.io.image import encode_frame, flatten_alpha
from heatfield.io.points import load_points, load_temporal_dataset, save_temporal_dataset


def _require_encoder() -> None:
    for mod in ("cv2", "PIL"):
        try:
            __import__(mod)
            return
        except ImportError:
            continue
    pytest.skip("neither OpenCV nor Pillow is installed")


def test_encode_png_preserves_size_and_alpha() -> None:
    _require_encoder()
    PIL = pytest.importorskip("PIL.Image")

    frame = np.zeros((6, 9, 4), dtype=np.uint8)
    frame[2, 3] = [255, 0, 0, 128]
    data = encode_frame(frame, "image/png")
    assert data.startswith(b"\x89PNG")

    img = PIL.open(BytesIO(data))
    assert img.size == (9, 6)
    assert img.mode == "RGBA"
    assert img.getpixel((3, 2)) == (255, 0, 0, 128)


def test_encode_jpeg_flattens_transparency() -> None:
    _require_encoder()
    frame = np.zeros((4, 4, 4), dtype=np.uint8)
    data = encode_frame(frame, "image/jpeg")
    assert data[:2] == b"\xff\xd8"


def test_encode_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        encode_frame(np.zeros((4, 4, 4), dtype=np.uint8), "image/gif")
    with pytest.raises(ValueError):
        encode_frame(np.zeros((4, 4), dtype=np.uint8))


def test_flatten_alpha_composites_over_background() -> None:
    rgba = np.array([[[255, 0, 0, 255], [255, 0, 0, 0], [0, 0, 0, 128]]], dtype=np.uint8)
    rgb = flatten_alpha(rgba)
    assert rgb[0, 0].tolist() == [255, 0, 0]
    assert rgb[0, 1].tolist() == [255, 255, 255]
    assert rgb[0, 2].tolist() == [127, 127, 127]


def test_heatmap_to_image() -> None:
    _require_encoder()
    hm = create_heatmap(HeatmapConfig(width=32, height=24, radius=4), data=[Point(10, 10, 1.0)])
    assert hm.to_image().startswith(b"\x89PNG")


def test_load_points_accepts_list_or_object(tmp_path) -> None:
    p1 = tmp_path / "list.json"
    p1.write_text(json.dumps([{"x": 1, "y": 2, "value": 3}, [4, 5]]))
    pts = load_points(p1)
    assert pts == [Point(1.0, 2.0, 3.0), Point(4.0, 5.0, 1.0)]

    p2 = tmp_path / "obj.json"
    p2.write_text(json.dumps({"points": [{"x": 1, "y": 2}]}))
    assert load_points(p2) == [Point(1.0, 2.0, 1.0)]

    p3 = tmp_path / "bad.json"
    p3.write_text(json.dumps({"nothing": 1}))
    with pytest.raises(ValueError):
        load_points(p3)

    with pytest.raises(FileNotFoundError):
        load_points(tmp_path / "missing.json")


def test_temporal_dataset_file_round_trip(tmp_path) -> None:
    ds = TemporalDataset.from_points(
        [TemporalPoint(1, 1, 2, 300), TemporalPoint(2, 2, 4, 100)],
        start_time=0,
        end_time=500,
        max=10,
    )
    path = tmp_path / "ds.json"
    save_temporal_dataset(ds, path)
    loaded = load_temporal_dataset(path)
    assert loaded.start_time == 0.0 and loaded.end_time == 500.0
    assert loaded.max == 10.0 and loaded.min is None
    assert loaded.timestamps.tolist() == [100.0, 300.0]
    assert loaded.points == ds.points
