from __future__ import annotations

from typing import Any, Iterable, Mapping


class HeatfieldClient:
    """HTTP client for driving a running heatfield server.

    This is the remote companion to `heatfield.run()`: it reads state and controls
    rendering and playback, while point data is loaded where the server runs. Every
    method opens a short-lived httpx client and raises `RuntimeError` for any
    response with status >= 400.
    """

    def __init__(self, base_url: str = "http://127.0.0.1:8000") -> None:
        self.base_url = base_url.rstrip("/")

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Mapping[str, Any] | None = None,
        timeout_s: float = 10.0,
    ) -> Any:
        # httpx is a lightweight dependency used for requests.
        import httpx

        with httpx.Client(base_url=self.base_url, timeout=timeout_s) as client:
            res = client.request(method, path, json=json, params=params)
        if res.status_code >= 400:
            raise RuntimeError(f"{method} {path} failed: {res.status_code} {res.text}")
        if res.headers.get("content-type", "").startswith("application/json"):
            return res.json()
        return res.content

    # -- data ---------------------------------------------------------------

    def clear(self) -> None:
        self._request("DELETE", "/api/data")

    # -- queries ------------------------------------------------------------

    def revision(self) -> int:
        return int(self._request("GET", "/api/events")["globalRevision"])

    def get_value_at(self, x: float, y: float) -> float:
        data = self._request("GET", "/api/value", params={"x": float(x), "y": float(y)})
        return float(data["value"])

    def get_stats(self) -> dict:
        return self._request("GET", "/api/stats")

    def get_config(self) -> dict:
        return self._request("GET", "/api/config")

    def update_config(
        self,
        *,
        aggregation_mode: str | None = None,
        value_min: float | None = None,
        value_max: float | None = None,
    ) -> dict:
        """Change aggregation mode and/or pin the value range.

        Only the bounds that are given are sent; use `release_value_range()` to go back
        to data-driven scaling.
        """
        body: dict[str, Any] = {}
        if aggregation_mode is not None:
            body["aggregationMode"] = aggregation_mode
        if value_min is not None:
            body["valueMin"] = float(value_min)
        if value_max is not None:
            body["valueMax"] = float(value_max)
        return self._request("PATCH", "/api/config", json=body)

    def release_value_range(self) -> dict:
        return self._request("PATCH", "/api/config", json={"valueMin": None, "valueMax": None})

    def get_gradient(self) -> list[dict]:
        return list(self._request("GET", "/api/gradient")["stops"])

    def set_gradient(self, stops: Iterable[Any] | str) -> list[dict]:
        """Set gradient stops, or a preset by name (e.g. `"thermal"`)."""
        if isinstance(stops, str):
            body: dict[str, Any] = {"preset": stops}
        else:
            body = {"stops": [s.to_dict() if hasattr(s, "to_dict") else s for s in stops]}
        return list(self._request("PUT", "/api/gradient", json=body)["stops"])

    def get_legend(self) -> dict:
        return self._request("GET", "/api/legend")

    def get_frame(self, mime_type: str = "image/png", *, timeout_s: float = 30.0) -> bytes:
        return bytes(self._request("GET", "/api/frame", params={"mime": mime_type}, timeout_s=timeout_s))

    # -- animation ----------------------------------------------------------

    def get_animation(self) -> dict:
        return self._request("GET", "/api/animation")

    def play(self) -> dict:
        return self._request("POST", "/api/animation/play")

    def pause(self) -> dict:
        return self._request("POST", "/api/animation/pause")

    def stop(self) -> dict:
        return self._request("POST", "/api/animation/stop")

    def seek(self, time_ms: float) -> dict:
        return self._request("POST", "/api/animation/seek", json={"time": float(time_ms)})

    def seek_progress(self, progress: float) -> dict:
        return self._request("POST", "/api/animation/seek", json={"progress": float(progress)})

    def set_playback_speed(self, speed: float) -> dict:
        return self._request("PATCH", "/api/animation", json={"speed": float(speed)})

    def set_loop(self, loop: bool) -> dict:
        return self._request("PATCH", "/api/animation", json={"loop": bool(loop)})
