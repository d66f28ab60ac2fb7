from __future__ import annotations

from .app import create_app, create_registry
from .server import DrugTraceServer, run

__all__ = ["create_app", "create_registry", "DrugTraceServer", "run"]
