from __future__ import annotations

from dataclasses import dataclass

from .roles import DrugStatus, Role

MANUFACTURING_STAGE = "Manufacturing"


@dataclass(frozen=True, kw_only=True)
class User:
    address: str
    role: Role
    name: str
    active: bool
    registered_at: float


@dataclass(frozen=True)
class HistoryEntry:
    """One custody step: who held the drug, at which stage, since when."""

    stage: str
    owner: str
    timestamp: float


@dataclass(frozen=True, kw_only=True)
class Drug:
    """A tracked pharmaceutical unit or batch.

    Notes:
    - Records are immutable; the registry swaps in a new instance on every change.
    - `history` is the single source for both the stage and the ownership
      sequences, so the two can never differ in length.
    - `manufacturer` and `expiry_date` never change after creation.
    """

    id: str
    name: str
    batch_number: str
    manufacturer: str
    current_owner: str
    manufacture_date: float
    expiry_date: float
    current_stage: str
    status: DrugStatus
    quality_verified: bool
    history: tuple[HistoryEntry, ...]

    @property
    def stage_history(self) -> list[str]:
        return [h.stage for h in self.history]

    @property
    def ownership_history(self) -> list[str]:
        return [h.owner for h in self.history]

    @property
    def revision(self) -> int:
        return len(self.history)

    def info(self) -> "DrugInfo":
        return DrugInfo(
            id=self.id,
            name=self.name,
            batch_number=self.batch_number,
            manufacturer=self.manufacturer,
            current_owner=self.current_owner,
            manufacture_date=self.manufacture_date,
            expiry_date=self.expiry_date,
            current_stage=self.current_stage,
            status=self.status,
            quality_verified=self.quality_verified,
        )

    def history_view(self) -> "DrugHistory":
        return DrugHistory(
            drug_id=self.id,
            stages=tuple(h.stage for h in self.history),
            owners=tuple(h.owner for h in self.history),
            timestamps=tuple(h.timestamp for h in self.history),
        )


@dataclass(frozen=True, kw_only=True)
class DrugInfo:
    """Drug snapshot without its history."""

    id: str
    name: str
    batch_number: str
    manufacturer: str
    current_owner: str
    manufacture_date: float
    expiry_date: float
    current_stage: str
    status: DrugStatus
    quality_verified: bool


@dataclass(frozen=True, kw_only=True)
class DrugHistory:
    drug_id: str
    stages: tuple[str, ...]
    owners: tuple[str, ...]
    timestamps: tuple[float, ...]
