"""
Audit trail for registry mutations and denied calls.

Entries are single-line JSON on the `drugtrace.audit` logger so they can be
shipped separately from the application log.
"""

from __future__ import annotations

import json
import logging
from typing import Any

audit_logger = logging.getLogger("drugtrace.audit")


class AuditLog:
    @staticmethod
    def log_action(
        action: str,  # "register_user", "register_drug", "transfer", "verify", "recall"
        caller: str,
        resource_id: str,
        *,
        timestamp: float,
        changes: dict[str, Any] | None = None,
    ) -> None:
        entry: dict[str, Any] = {
            "timestamp": timestamp,
            "event_type": f"registry.{action}",
            "caller": caller,
            "resource_id": resource_id,
        }
        if changes:
            entry["changes"] = changes
        audit_logger.info(json.dumps(entry, default=str))

    @staticmethod
    def log_denied(
        action: str,
        caller: str,
        resource_id: str | None,
        kind: str,
        reason: str,
    ) -> None:
        """Record a rejected call. Repeated authorization failures from one caller are worth alerting on."""
        entry = {
            "event_type": "registry.denied",
            "action": action,
            "caller": caller,
            "resource_id": resource_id,
            "kind": kind,
            "reason": reason,
        }
        audit_logger.warning(json.dumps(entry, default=str))
