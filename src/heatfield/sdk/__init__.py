from __future__ import annotations

from .client import HeatfieldClient

__all__ = ["HeatfieldClient"]
