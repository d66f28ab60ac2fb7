from __future__ import annotations

from .client import DrugTraceClient

__all__ = ["DrugTraceClient"]
