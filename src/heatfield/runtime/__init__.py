from __future__ import annotations

from .server import HeatfieldServer, run

__all__ = ["HeatfieldServer", "run"]
