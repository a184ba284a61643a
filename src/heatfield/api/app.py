from __future__ import annotations

from dataclasses import replace
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response

from ..core.config import config_to_dict, validate_config
from ..core.heatmap import Heatmap
from ..io.image import normalize_mime_type
from .service import HeatmapService


def _animation_status(hm: Heatmap) -> dict[str, Any]:
    ctrl = hm.animation
    ds = ctrl.dataset
    return {
        "state": ctrl.state,
        "currentTime": float(ctrl.current_time),
        "progress": float(ctrl.progress),
        "speed": float(ctrl.playback_speed),
        "loop": bool(ctrl.loop),
        "startTime": None if ds is None else float(ds.start_time),
        "endTime": None if ds is None else float(ds.end_time),
        "pointCount": 0 if ds is None else len(ds),
    }


def create_api_app(service: HeatmapService | None = None) -> FastAPI:
    svc = service or HeatmapService()
    app = FastAPI(title="heatfield", version="0.1.0")
    app.state.service = svc

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/api/events")
    def events() -> dict[str, int]:
        # Minimal polling endpoint.
        return {"globalRevision": svc.revision()}

    @app.get("/api/config")
    def get_config() -> dict:
        return svc.call(lambda hm: config_to_dict(hm.config))

    @app.patch("/api/config")
    def update_config(body: dict) -> dict:
        """Change aggregation mode or pin the value range.

        Body: `aggregationMode`, `valueMin`, `valueMax` (null releases the bound).
        """

        allowed = {"aggregationMode", "valueMin", "valueMax"}
        unknown = sorted(set(body) - allowed)
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unsupported config option(s): {unknown}")

        def _apply(hm: Heatmap) -> dict:
            vmin = body.get("valueMin", hm.config.value_min)
            vmax = body.get("valueMax", hm.config.value_max)
            # Check the whole request before touching the heatmap.
            target = validate_config(
                replace(
                    hm.config,
                    aggregation_mode=body.get("aggregationMode", hm.config.aggregation_mode),
                    value_min=None if vmin is None else float(vmin),
                    value_max=None if vmax is None else float(vmax),
                )
            )
            if "aggregationMode" in body:
                hm.set_aggregation_mode(target.aggregation_mode)
            if "valueMin" in body or "valueMax" in body:
                hm.set_value_range(target.value_min, target.value_max)
            return config_to_dict(hm.config)

        try:
            return svc.call(_apply)
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.delete("/api/data")
    def clear_data() -> dict:
        svc.call(lambda hm: hm.clear())
        return {"ok": True, "revision": svc.revision()}

    @app.get("/api/value")
    def get_value(x: float, y: float) -> dict:
        def _read(hm: Heatmap) -> dict:
            value = hm.get_value_at(x, y)
            return {"x": float(x), "y": float(y), "value": float(value), "text": svc.tooltip.describe(x, y)}

        return svc.call(_read)

    @app.get("/api/stats")
    def get_stats() -> dict:
        return svc.call(lambda hm: hm.get_stats().to_dict())

    @app.get("/api/gradient")
    def get_gradient() -> dict:
        return svc.call(lambda hm: {"stops": [s.to_dict() for s in hm.gradient]})

    @app.put("/api/gradient")
    def set_gradient(body: dict) -> dict:
        """Body: `{"stops": [{"offset", "color"}, ...]}` or `{"preset": "thermal"}`."""

        spec = body.get("preset", body.get("stops"))
        if spec is None:
            raise HTTPException(status_code=400, detail="body requires 'stops' or 'preset'")

        def _apply(hm: Heatmap) -> dict:
            hm.set_gradient(spec)
            return {"stops": [s.to_dict() for s in hm.gradient]}

        try:
            return svc.call(_apply)
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.get("/api/legend")
    def get_legend() -> dict:
        def _read(_hm: Heatmap) -> dict:
            legend = svc.legend
            return {
                "orientation": legend.config.orientation,
                "min": float(legend.min_value),
                "max": float(legend.max_value),
                "labels": [{"value": float(lb.value), "text": lb.text} for lb in legend.labels()],
                "stops": [s.to_dict() for s in legend.stops],
            }

        return svc.call(_read)

    @app.get("/api/frame")
    def get_frame(mime: str = "image/png") -> Response:
        try:
            mime_type = normalize_mime_type(mime)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        try:
            data = svc.call(lambda hm: hm.to_image(mime_type))
        except RuntimeError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return Response(content=data, media_type=mime_type)

    @app.get("/api/animation")
    def get_animation() -> dict:
        return svc.call(_animation_status)

    @app.patch("/api/animation")
    def update_animation(body: dict) -> dict:
        def _apply(hm: Heatmap) -> dict:
            if "speed" in body:
                hm.animation.set_speed(float(body["speed"]))
            if "loop" in body:
                hm.animation.set_loop(bool(body["loop"]))
            return _animation_status(hm)

        try:
            return svc.call(_apply)
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.post("/api/animation/seek")
    def seek_animation(body: dict) -> dict:
        def _apply(hm: Heatmap) -> dict:
            if body.get("time") is not None:
                hm.animation.seek(float(body["time"]))
            elif body.get("progress") is not None:
                hm.animation.seek_progress(float(body["progress"]))
            else:
                raise ValueError("body requires 'time' or 'progress'")
            return _animation_status(hm)

        try:
            return svc.call(_apply)
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.post("/api/animation/{action}")
    def animation_action(action: str) -> dict:
        def _apply(hm: Heatmap) -> dict:
            ctrl = hm.animation
            if action == "play":
                ctrl.play()
            elif action == "pause":
                ctrl.pause()
            else:
                ctrl.stop()
            return _animation_status(hm)

        if action not in {"play", "pause", "stop"}:
            raise HTTPException(status_code=404, detail=f"Unknown animation action {action!r}")
        return svc.call(_apply)

    return app
