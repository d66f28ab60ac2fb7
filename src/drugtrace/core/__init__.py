from __future__ import annotations

from .clock import ManualClock, MonotonicClock
from .errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RegistryError,
    StateError,
    ValidationError,
)
from .events import (
    DrugRecalled,
    DrugRegistered,
    Event,
    EventLog,
    OwnershipTransferred,
    QualityVerified,
    StageUpdated,
)
from .records import MANUFACTURING_STAGE, Drug, DrugHistory, DrugInfo, HistoryEntry, User
from .registry import DrugRegistry, derive_drug_id
from .roles import DrugStatus, Role

__all__ = [
    "AuthorizationError",
    "ConflictError",
    "NotFoundError",
    "RegistryError",
    "StateError",
    "ValidationError",
    "DrugRecalled",
    "DrugRegistered",
    "Event",
    "EventLog",
    "OwnershipTransferred",
    "QualityVerified",
    "StageUpdated",
    "MANUFACTURING_STAGE",
    "Drug",
    "DrugHistory",
    "DrugInfo",
    "HistoryEntry",
    "User",
    "DrugRegistry",
    "derive_drug_id",
    "DrugStatus",
    "Role",
    "ManualClock",
    "MonotonicClock",
]
