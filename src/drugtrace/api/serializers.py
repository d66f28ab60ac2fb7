from __future__ import annotations

from typing import Any

from ..core.events import Event
from ..core.records import DrugHistory, DrugInfo, User


def user_to_dict(u: User) -> dict[str, Any]:
    return {
        "address": u.address,
        "role": u.role.value,
        "name": u.name,
        "active": bool(u.active),
        "registeredAt": float(u.registered_at),
    }


def drug_info_to_dict(d: DrugInfo, *, expired: bool | None = None) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": d.id,
        "name": d.name,
        "batchNumber": d.batch_number,
        "manufacturer": d.manufacturer,
        "currentOwner": d.current_owner,
        "manufactureDate": float(d.manufacture_date),
        "expiryDate": float(d.expiry_date),
        "currentStage": d.current_stage,
        "status": d.status.value,
        "qualityVerified": bool(d.quality_verified),
    }
    # Derived only; stored status stays "active" past expiry.
    if expired is not None:
        out["expired"] = bool(expired)
    return out


def drug_history_to_dict(h: DrugHistory) -> dict[str, Any]:
    return {
        "drugId": h.drug_id,
        "stages": list(h.stages),
        "owners": list(h.owners),
        "timestamps": [float(t) for t in h.timestamps],
    }


_EVENT_KEYS = {
    "drug_id": "drugId",
    "from_owner": "from",
    "to_owner": "to",
}


def event_to_dict(e: Event) -> dict[str, Any]:
    return {_EVENT_KEYS.get(k, k): v for k, v in e.to_dict().items()}
