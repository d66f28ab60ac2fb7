from __future__ import annotations

from .config import Settings, load_settings
from .core import (
    AuthorizationError,
    ConflictError,
    Drug,
    DrugHistory,
    DrugInfo,
    DrugRegistry,
    DrugStatus,
    NotFoundError,
    RegistryError,
    Role,
    StateError,
    User,
    ValidationError,
)
from .runtime.server import DrugTraceServer, run
from .sdk.client import DrugTraceClient

__all__ = [
    "Settings",
    "load_settings",
    "AuthorizationError",
    "ConflictError",
    "Drug",
    "DrugHistory",
    "DrugInfo",
    "DrugRegistry",
    "DrugStatus",
    "NotFoundError",
    "RegistryError",
    "Role",
    "StateError",
    "User",
    "ValidationError",
    "DrugTraceServer",
    "run",
    "DrugTraceClient",
]
