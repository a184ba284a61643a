from __future__ import annotations

import contextlib
import logging
import os
import socket
import threading
import time
from dataclasses import dataclass, field

import uvicorn

from ..api import HeatmapService, create_api_app
from ..core.config import AnimationConfig, HeatmapConfig
from ..sdk.client import HeatfieldClient


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeatfieldServer:
    """A heatfield API served from a background thread of this process."""

    host: str
    port: int
    url: str
    service: HeatmapService = field(repr=False, compare=False)
    _server: uvicorn.Server = field(repr=False, compare=False)
    _thread: threading.Thread = field(repr=False, compare=False)

    def client(self) -> HeatfieldClient:
        return HeatfieldClient(self.url.rstrip("/"))

    def shutdown(self, *, timeout_s: float = 5.0) -> None:
        self._server.should_exit = True
        self._thread.join(timeout=timeout_s)
        self.service.close()


def _find_free_port(host: str) -> int:
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind((host, 0))
        return int(s.getsockname()[1])


def _normalize_base_url(url: str) -> str:
    url = url.strip()
    if not url:
        return ""
    # Allow passing just host:port.
    if "://" not in url:
        url = "http://" + url
    return url.rstrip("/")


def _is_server_alive(base_url: str, *, timeout_s: float = 0.2) -> bool:
    """Best-effort probe to determine if a heatfield server is reachable."""

    import httpx

    try:
        with httpx.Client(base_url=base_url, timeout=timeout_s) as client:
            r = client.get("/healthz")
            if r.status_code != 200:
                return False
            data = r.json()
            return bool(data.get("ok"))
    except (httpx.HTTPError, ValueError):
        return False


def run(
    config: HeatmapConfig | None = None,
    *,
    animation: AnimationConfig | None = None,
    host: str = "127.0.0.1",
    port: int = 0,
    log_level: str = "info",
    access_log: bool = False,
    new_server: bool = False,
    connect_timeout_s: float = 0.2,
) -> HeatfieldServer | HeatfieldClient:
    """Serve a heatmap over HTTP with a single Python call.

    Behavior:
    - If HEATFIELD_URL is set, we attach to that existing server (client mode) unless
      `new_server=True`.
    - Otherwise, if `port != 0` and a server is already reachable at http://{host}:{port},
      we attach to it unless `new_server=True`.
    - Otherwise we start a new local server and return a `HeatfieldServer`.

    Notes:
    - `port=0` means "pick a free port", so there's nothing to attach to.
    - `config` only applies when a new server is started.
    - Uvicorn's per-request access log is off by default because pollers hit
      `/api/events` frequently.
    """

    env_url = _normalize_base_url(os.getenv("HEATFIELD_URL", ""))

    if env_url and not new_server:
        if _is_server_alive(env_url, timeout_s=connect_timeout_s):
            logger.info("attached to heatfield server at %s", env_url)
            return HeatfieldClient(env_url)

    if port != 0 and not new_server:
        default_url = _normalize_base_url(f"http://{host}:{port}")
        if _is_server_alive(default_url, timeout_s=connect_timeout_s):
            logger.info("attached to heatfield server at %s", default_url)
            return HeatfieldClient(default_url)

    if port == 0:
        port = _find_free_port(host)

    service = HeatmapService(config, animation=animation)
    app = create_api_app(service)

    uv_config = uvicorn.Config(app, host=host, port=port, log_level=log_level, access_log=access_log)
    server = uvicorn.Server(uv_config)

    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    # Give it a moment so a subsequent client probe doesn't race with startup.
    time.sleep(0.05)

    url = f"http://{host}:{port}/"
    logger.info("heatfield serving on %s", url)
    return HeatfieldServer(host=host, port=port, url=url, service=service, _server=server, _thread=thread)
