from __future__ import annotations

from .app import create_api_app
from .service import DEFAULT_CONFIG, HeatmapService

__all__ = ["create_api_app", "HeatmapService", "DEFAULT_CONFIG"]
