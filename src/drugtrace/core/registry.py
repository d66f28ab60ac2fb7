from __future__ import annotations

import contextlib
import hashlib
import logging
import math
import threading
from dataclasses import replace
from typing import Any, Iterator

from .audit import AuditLog
from .clock import Clock, MonotonicClock
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
from .roles import DrugStatus, Role

logger = logging.getLogger(__name__)

FAILED_QUALITY_REASON = "Failed quality verification"


def derive_drug_id(name: str, batch_number: str, manufacturer: str, timestamp: float) -> str:
    """Hex SHA-256 over the length-prefixed (name, batch, manufacturer, timestamp) tuple."""
    h = hashlib.sha256()
    for part in (name, batch_number, manufacturer, repr(float(timestamp))):
        raw = part.encode("utf-8")
        h.update(len(raw).to_bytes(8, "big"))
        h.update(raw)
    return h.hexdigest()


class DrugRegistry:
    """Authorization-gated custody records for serialized drugs.

    Every public method takes the calling principal explicitly and runs as one
    atomic step under a single lock: all checks happen before the first write,
    so a rejected call changes nothing and publishes no events.
    """

    def __init__(
        self,
        admin: str,
        *,
        admin_name: str = "Admin",
        clock: Clock | None = None,
        events: EventLog | None = None,
    ) -> None:
        admin_v = self._require_address(admin, field="admin")
        self._admin = admin_v
        self._admin_name = str(admin_name)
        self._clock: Clock = clock if clock is not None else MonotonicClock()
        self._events = events if events is not None else EventLog()
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._drugs: dict[str, Drug] = {}
        self._user_drugs: dict[str, list[str]] = {}
        self._all_drug_ids: list[str] = []
        self._revision = 0
        self._seed_admin_locked()

    @property
    def admin(self) -> str:
        return self._admin

    @property
    def events(self) -> EventLog:
        return self._events

    def _seed_admin_locked(self) -> None:
        self._users[self._admin] = User(
            address=self._admin,
            role=Role.REGULATOR,
            name=self._admin_name,
            active=True,
            registered_at=self._clock(),
        )

    # ------------------------------------------------------------------
    # helpers

    @staticmethod
    def _require_address(value: Any, *, field: str) -> str:
        if value is None or not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{field} must be a non-empty principal identifier")
        # Addresses are compared verbatim and appear as URL path segments.
        if value != value.strip():
            raise ValidationError(f"{field} cannot have leading or trailing whitespace")
        if "/" in value:
            raise ValidationError(f"{field} cannot contain '/'")
        return value

    @staticmethod
    def _require_text(value: Any, *, field: str, allow_empty: bool = True) -> str:
        if not isinstance(value, str):
            raise ValidationError(f"{field} must be a string")
        if not allow_empty and not value.strip():
            raise ValidationError(f"{field} cannot be empty")
        return value

    @contextlib.contextmanager
    def _operation(self, action: str, caller: str, resource_id: str | None = None) -> Iterator[None]:
        with self._lock:
            try:
                yield
            except RegistryError as e:
                AuditLog.log_denied(action, caller, resource_id, e.kind, e.message)
                raise

    def _commit_locked(self, events: list[Event]) -> None:
        self._revision += 1
        if events:
            self._events.publish(events)

    def _require_drug_locked(self, drug_id: str) -> Drug:
        drug = self._drugs.get(drug_id) if drug_id else None
        if drug is None:
            raise NotFoundError(f"Unknown drug: {drug_id!r}")
        return drug

    def _active_user_locked(self, address: str) -> User | None:
        user = self._users.get(address)
        if user is None or not user.active:
            return None
        return user

    def _is_authorized_for_drug_locked(self, caller: str, drug: Drug) -> bool:
        if caller == drug.current_owner or caller == self._admin:
            return True
        user = self._users.get(caller)
        return user is not None and user.role is Role.REGULATOR

    @staticmethod
    def _require_active_status(drug: Drug) -> None:
        if drug.status is not DrugStatus.ACTIVE:
            raise StateError(f"Drug {drug.id} is {drug.status.value}, not active")

    # ------------------------------------------------------------------
    # authorization predicates

    def is_admin(self, caller: str) -> bool:
        return caller == self._admin

    def is_active_user(self, caller: str) -> bool:
        with self._lock:
            return self._active_user_locked(caller) is not None

    def is_authorized_for_drug(self, caller: str, drug_id: str) -> bool:
        with self._lock:
            drug = self._require_drug_locked(drug_id)
            return self._is_authorized_for_drug_locked(caller, drug)

    # ------------------------------------------------------------------
    # mutations

    def register_user(self, caller: str, address: str, role: Role | str | int, name: str) -> User:
        with self._operation("register_user", caller, address if isinstance(address, str) else None):
            if not self.is_admin(caller):
                raise AuthorizationError("Only the admin can register users")
            address_v = self._require_address(address, field="address")
            role_v = Role.from_any(role)
            if role_v is Role.NONE:
                raise ValidationError("role cannot be none")
            name_v = self._require_text(name, field="name")
            if self._active_user_locked(address_v) is not None:
                raise ConflictError(f"User {address_v} is already registered")

            now = self._clock()
            user = User(address=address_v, role=role_v, name=name_v, active=True, registered_at=now)
            self._users[address_v] = user
            self._commit_locked([])

        AuditLog.log_action("register_user", caller, address_v, timestamp=now, changes={"role": role_v.value})
        return user

    def register_drug(self, caller: str, name: str, batch_number: str, expiry_date: float) -> str:
        with self._operation("register_drug", caller):
            user = self._active_user_locked(caller)
            if user is None or user.role is not Role.MANUFACTURER:
                raise AuthorizationError("Only active manufacturers can register drugs")
            name_v = self._require_text(name, field="name")
            batch_v = self._require_text(batch_number, field="batch_number")
            try:
                expiry_v = float(expiry_date)
            except (TypeError, ValueError) as ex:
                raise ValidationError("expiry_date must be a timestamp") from ex
            if not math.isfinite(expiry_v):
                raise ValidationError("expiry_date must be finite")

            now = self._clock()
            if expiry_v <= now:
                raise ValidationError("expiry_date must be in the future")

            drug_id = derive_drug_id(name_v, batch_v, caller, now)
            if drug_id in self._drugs:
                raise ConflictError(f"Drug id collision: {drug_id}")

            drug = Drug(
                id=drug_id,
                name=name_v,
                batch_number=batch_v,
                manufacturer=caller,
                current_owner=caller,
                manufacture_date=now,
                expiry_date=expiry_v,
                current_stage=MANUFACTURING_STAGE,
                status=DrugStatus.ACTIVE,
                quality_verified=False,
                history=(HistoryEntry(stage=MANUFACTURING_STAGE, owner=caller, timestamp=now),),
            )
            self._drugs[drug_id] = drug
            self._all_drug_ids.append(drug_id)
            self._user_drugs.setdefault(caller, []).append(drug_id)

            rev = self._revision + 1
            self._commit_locked(
                [
                    DrugRegistered(revision=rev, drug_id=drug_id, manufacturer=caller, name=name_v),
                    StageUpdated(revision=rev, drug_id=drug_id, stage=MANUFACTURING_STAGE, timestamp=now),
                ]
            )

        AuditLog.log_action(
            "register_drug", caller, drug_id, timestamp=now, changes={"name": name_v, "batch": batch_v}
        )
        return drug_id

    def transfer_ownership(self, caller: str, drug_id: str, new_owner: str, new_stage: str) -> Drug:
        with self._operation("transfer", caller, drug_id):
            drug = self._require_drug_locked(drug_id)
            if self._active_user_locked(caller) is None:
                raise AuthorizationError("Caller is not an active user")
            if caller != drug.current_owner:
                raise AuthorizationError("Only the current owner can transfer this drug")
            if not isinstance(new_owner, str):
                raise ValidationError("new_owner must be a principal identifier")
            if self._active_user_locked(new_owner) is None:
                raise NotFoundError(f"Recipient {new_owner!r} is not an active user")
            self._require_active_status(drug)

            now = self._clock()
            if now >= drug.expiry_date:
                raise StateError(f"Drug {drug.id} has expired")
            stage_v = self._require_text(new_stage, field="new_stage", allow_empty=False)

            updated = replace(
                drug,
                current_owner=new_owner,
                current_stage=stage_v,
                history=drug.history + (HistoryEntry(stage=stage_v, owner=new_owner, timestamp=now),),
            )
            self._drugs[drug.id] = updated
            self._user_drugs.setdefault(new_owner, []).append(drug.id)

            rev = self._revision + 1
            self._commit_locked(
                [
                    OwnershipTransferred(
                        revision=rev, drug_id=drug.id, from_owner=caller, to_owner=new_owner, stage=stage_v
                    ),
                    StageUpdated(revision=rev, drug_id=drug.id, stage=stage_v, timestamp=now),
                ]
            )

        AuditLog.log_action(
            "transfer", caller, drug_id, timestamp=now, changes={"to": new_owner, "stage": stage_v}
        )
        return updated

    def verify_quality(self, caller: str, drug_id: str, passed: bool) -> Drug:
        with self._operation("verify", caller, drug_id):
            drug = self._require_drug_locked(drug_id)
            user = self._active_user_locked(caller)
            if user is None or user.role is not Role.REGULATOR:
                raise AuthorizationError("Only active regulators can verify quality")
            self._require_active_status(drug)
            if not isinstance(passed, bool):
                raise ValidationError("passed must be a boolean")

            now = self._clock()
            rev = self._revision + 1
            events: list[Event] = []
            if passed:
                updated = replace(drug, quality_verified=True)
            else:
                updated = replace(drug, quality_verified=False, status=DrugStatus.RECALLED)
                events.append(DrugRecalled(revision=rev, drug_id=drug.id, recaller=caller, reason=FAILED_QUALITY_REASON))
            events.append(QualityVerified(revision=rev, drug_id=drug.id, verifier=caller, passed=passed))

            self._drugs[drug.id] = updated
            self._commit_locked(events)

        AuditLog.log_action("verify", caller, drug_id, timestamp=now, changes={"passed": passed})
        return updated

    def recall_drug(self, caller: str, drug_id: str, reason: str) -> Drug:
        with self._operation("recall", caller, drug_id):
            drug = self._require_drug_locked(drug_id)
            user = self._active_user_locked(caller)
            is_regulator = user is not None and user.role is Role.REGULATOR
            if caller != drug.manufacturer and not is_regulator:
                raise AuthorizationError("Only the manufacturer or a regulator can recall this drug")
            self._require_active_status(drug)
            reason_v = self._require_text(reason, field="reason")

            now = self._clock()
            updated = replace(drug, status=DrugStatus.RECALLED)
            self._drugs[drug.id] = updated

            rev = self._revision + 1
            self._commit_locked([DrugRecalled(revision=rev, drug_id=drug.id, recaller=caller, reason=reason_v)])

        AuditLog.log_action("recall", caller, drug_id, timestamp=now, changes={"reason": reason_v})
        return updated

    # ------------------------------------------------------------------
    # reads

    def get_drug_info(self, caller: str, drug_id: str) -> DrugInfo:
        with self._operation("get_drug_info", caller, drug_id):
            drug = self._require_drug_locked(drug_id)
            if not self._is_authorized_for_drug_locked(caller, drug):
                raise AuthorizationError("Caller is not authorized for this drug")
            return drug.info()

    def get_drug_snapshot(self, caller: str, drug_id: str) -> tuple[DrugInfo, bool]:
        """Return `get_drug_info` and `is_drug_expired` read at the same instant."""
        with self._operation("get_drug_info", caller, drug_id):
            drug = self._require_drug_locked(drug_id)
            if not self._is_authorized_for_drug_locked(caller, drug):
                raise AuthorizationError("Caller is not authorized for this drug")
            return drug.info(), self._clock() >= drug.expiry_date

    def get_drug_history(self, caller: str, drug_id: str) -> DrugHistory:
        with self._operation("get_drug_history", caller, drug_id):
            drug = self._require_drug_locked(drug_id)
            if not self._is_authorized_for_drug_locked(caller, drug):
                raise AuthorizationError("Caller is not authorized for this drug")
            return drug.history_view()

    def get_user_info(self, address: str) -> User:
        with self._lock:
            user = self._users.get(address)
            if user is None:
                raise NotFoundError(f"Unknown user: {address!r}")
            return user

    def get_user_drugs(self, address: str) -> list[str]:
        with self._lock:
            return list(self._user_drugs.get(address, ()))

    def get_total_drugs(self) -> int:
        with self._lock:
            return len(self._all_drug_ids)

    def is_drug_expired(self, drug_id: str) -> bool:
        with self._lock:
            drug = self._require_drug_locked(drug_id)
            return self._clock() >= drug.expiry_date

    def list_drug_ids(self) -> list[str]:
        with self._lock:
            return list(self._all_drug_ids)

    def revision(self) -> int:
        with self._lock:
            return self._revision

    def events_since(self, revision: int = 0) -> list[Event]:
        return self._events.since(revision)
