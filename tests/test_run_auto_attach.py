from __future__ import annotations

import time


def _wait_alive(url: str, timeout_s: float = 5.0) -> None:
    from heatfield.runtime.server import _is_server_alive

    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if _is_server_alive(url.rstrip("/")):
            return
        time.sleep(0.05)
    raise AssertionError(f"server at {url} did not come up")


def test_run_auto_attaches_to_existing_server() -> None:
    """If a server is reachable at host/port, heatfield.run() attaches by default."""

    import heatfield

    server = heatfield.run(host="127.0.0.1", port=0, new_server=True, log_level="warning")
    assert isinstance(server, heatfield.HeatfieldServer)
    _wait_alive(server.url)
    try:
        attached = heatfield.run(host=server.host, port=server.port)

        from heatfield.sdk.client import HeatfieldClient

        assert isinstance(attached, HeatfieldClient)
        assert attached.base_url.rstrip("/") == f"http://{server.host}:{server.port}"
    finally:
        server.shutdown()


def test_run_new_server_forces_start_even_if_env_url_is_set() -> None:
    import os

    import heatfield

    s1 = heatfield.run(host="127.0.0.1", port=0, new_server=True, log_level="warning")
    _wait_alive(s1.url)

    os.environ["HEATFIELD_URL"] = f"http://{s1.host}:{s1.port}"
    try:
        via_env = heatfield.run(host="127.0.0.1", port=0)
        assert isinstance(via_env, heatfield.HeatfieldClient)

        s2 = heatfield.run(host="127.0.0.1", port=0, new_server=True, log_level="warning")
    finally:
        os.environ.pop("HEATFIELD_URL", None)

    from heatfield.runtime.server import HeatfieldServer

    try:
        assert isinstance(s2, HeatfieldServer)
        assert (s2.host, s2.port) != (s1.host, s1.port)
    finally:
        s2.shutdown()
        s1.shutdown()


def test_client_drives_a_live_server() -> None:
    import heatfield
    from heatfield.core.config import HeatmapConfig

    server = heatfield.run(HeatmapConfig(width=64, height=48, radius=4), port=0, new_server=True, log_level="warning")
    _wait_alive(server.url)
    try:
        # Points are loaded in-process; the client only reads and controls.
        server.service.call(lambda hm: hm.set_data([(10, 10, 2.0), (30, 30, 4.0)]))
        server.service.call(lambda hm: hm.add_points([(50, 40, 1.0)]))
        client = server.client()
        assert client.get_stats()["pointCount"] == 3
        assert client.get_value_at(10, 10) == 2.0
        assert client.get_stats()["effectiveRange"] == {"min": 0.0, "max": 4.0}

        stops = client.set_gradient("fire")
        assert stops == client.get_gradient()

        server.service.call(
            lambda hm: hm.set_data(
                {"startTime": 0, "endTime": 1000, "points": [{"x": 5, "y": 5, "value": 1, "timestamp": 100}]}
            )
        )
        assert client.get_animation()["pointCount"] == 1
        assert client.seek_progress(0.5)["currentTime"] == 500.0
        assert client.set_loop(True)["loop"] is True
        assert client.stop()["state"] == "idle"

        client.clear()
        assert client.get_stats()["pointCount"] == 0

        import pytest

        with pytest.raises(RuntimeError):
            client.set_gradient("no-such-preset")
    finally:
        server.shutdown()
