from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request

from ..core.registry import DrugRegistry
from .parsing import parse_bool, require_caller, to_unix_seconds
from .serializers import drug_history_to_dict, drug_info_to_dict, event_to_dict, user_to_dict

logger = logging.getLogger(__name__)


def mount_drug_api(app: FastAPI, registry: DrugRegistry) -> None:
    """Mount user and drug endpoints backed by `registry`.

    Body fields go to the registry as sent, so its check order decides which
    error a bad request gets. Every `RegistryError` is answered by the handler
    installed in `create_api_app`.
    """

    @app.get("/api/events")
    def events(since: int = 0) -> dict[str, Any]:
        # Minimal polling endpoint.
        return {
            "revision": registry.revision(),
            "events": [event_to_dict(e) for e in registry.events_since(since)],
        }

    @app.post("/api/users")
    def register_user(body: dict, request: Request) -> dict[str, Any]:
        caller = require_caller(request)
        # The registry checks the caller before the body fields.
        user = registry.register_user(caller, body.get("address"), body.get("role"), body.get("name"))
        return {"ok": True, "user": user_to_dict(user)}

    @app.get("/api/users/{address}")
    def get_user_info(address: str) -> dict[str, Any]:
        return user_to_dict(registry.get_user_info(address))

    @app.get("/api/users/{address}/drugs")
    def get_user_drugs(address: str) -> dict[str, Any]:
        return {"address": address, "drugIds": registry.get_user_drugs(address)}

    @app.post("/api/drugs")
    def register_drug(body: dict, request: Request) -> dict[str, Any]:
        caller = require_caller(request)
        expiry = body.get("expiryDate")
        if isinstance(expiry, str):
            expiry = to_unix_seconds(expiry)

        drug_id = registry.register_drug(caller, body.get("name"), body.get("batchNumber"), expiry)
        return {"ok": True, "id": drug_id}

    @app.get("/api/drugs")
    def list_drugs() -> dict[str, Any]:
        ids = registry.list_drug_ids()
        return {"total": len(ids), "drugIds": ids}

    @app.get("/api/drugs/count")
    def get_total_drugs() -> dict[str, int]:
        return {"total": registry.get_total_drugs()}

    @app.get("/api/drugs/{drug_id}")
    def get_drug_info(drug_id: str, request: Request) -> dict[str, Any]:
        caller = require_caller(request)
        info, expired = registry.get_drug_snapshot(caller, drug_id)
        return drug_info_to_dict(info, expired=expired)

    @app.get("/api/drugs/{drug_id}/history")
    def get_drug_history(drug_id: str, request: Request) -> dict[str, Any]:
        caller = require_caller(request)
        return drug_history_to_dict(registry.get_drug_history(caller, drug_id))

    @app.get("/api/drugs/{drug_id}/expired")
    def is_drug_expired(drug_id: str) -> dict[str, Any]:
        return {"id": drug_id, "expired": registry.is_drug_expired(drug_id)}

    @app.post("/api/drugs/{drug_id}/transfer")
    def transfer_ownership(drug_id: str, body: dict, request: Request) -> dict[str, Any]:
        caller = require_caller(request)
        drug = registry.transfer_ownership(caller, drug_id, body.get("newOwner"), body.get("newStage"))
        return {"ok": True, "drug": drug_info_to_dict(drug.info()), "revision": int(drug.revision)}

    @app.post("/api/drugs/{drug_id}/verify")
    def verify_quality(drug_id: str, body: dict, request: Request) -> dict[str, Any]:
        caller = require_caller(request)
        passed = body.get("passed")
        if passed is not None and not isinstance(passed, bool):
            passed = parse_bool(passed, field="passed")

        drug = registry.verify_quality(caller, drug_id, passed)
        return {"ok": True, "drug": drug_info_to_dict(drug.info())}

    @app.post("/api/drugs/{drug_id}/recall")
    def recall_drug(drug_id: str, body: dict, request: Request) -> dict[str, Any]:
        caller = require_caller(request)
        drug = registry.recall_drug(caller, drug_id, body.get("reason"))
        return {"ok": True, "drug": drug_info_to_dict(drug.info())}
