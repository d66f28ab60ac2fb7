from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from ..api.parsing import PRINCIPAL_HEADER, to_unix_seconds
from ..core.errors import RegistryError
from ..core.roles import Role

if TYPE_CHECKING:
    import httpx


def _seg(value: str) -> str:
    # Principals are opaque: '#', '?' and '%' stay inside the path segment.
    return quote(str(value), safe="")


class DrugTraceClient:
    """HTTP client for a running drugtrace server.

    Every call is made as `principal` (sent in the `X-Principal` header). Use
    `as_principal()` to get a sibling client acting for someone else.

    Registry rejections come back as the matching `RegistryError` subclass;
    any other HTTP failure raises `RuntimeError`.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        principal: str | None = None,
        *,
        transport: "httpx.BaseTransport | None" = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.principal = principal
        self._transport = transport

    def as_principal(self, principal: str) -> "DrugTraceClient":
        return DrugTraceClient(self.base_url, principal=principal, transport=self._transport)

    def _client(self, timeout_s: float) -> "httpx.Client":
        import httpx

        headers = {PRINCIPAL_HEADER: self.principal} if self.principal else {}
        return httpx.Client(base_url=self.base_url, timeout=timeout_s, headers=headers, transport=self._transport)

    @staticmethod
    def _check(res: "httpx.Response", what: str) -> dict[str, Any]:
        if res.status_code < 400:
            return dict(res.json())
        try:
            data = res.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and "error" in data:
            raise RegistryError.from_kind(str(data["error"]), str(data.get("detail", "")))
        raise RuntimeError(f"Failed to {what}: {res.status_code} {res.text}")

    def health(self, *, timeout_s: float = 10.0) -> bool:
        with self._client(timeout_s) as client:
            res = client.get("/healthz")
            return res.status_code == 200 and bool(res.json().get("ok"))

    def get_events(self, since: int = 0, *, timeout_s: float = 10.0) -> dict[str, Any]:
        with self._client(timeout_s) as client:
            return self._check(client.get("/api/events", params={"since": int(since)}), "get events")

    # users

    def register_user(self, address: str, role: Role | str, name: str, *, timeout_s: float = 10.0) -> dict[str, Any]:
        role_v = role.value if isinstance(role, Role) else role
        with self._client(timeout_s) as client:
            res = client.post("/api/users", json={"address": address, "role": role_v, "name": name})
            return dict(self._check(res, "register user")["user"])

    def get_user_info(self, address: str, *, timeout_s: float = 10.0) -> dict[str, Any]:
        with self._client(timeout_s) as client:
            return self._check(client.get(f"/api/users/{_seg(address)}"), "get user info")

    def get_user_drugs(self, address: str, *, timeout_s: float = 10.0) -> list[str]:
        with self._client(timeout_s) as client:
            data = self._check(client.get(f"/api/users/{_seg(address)}/drugs"), "get user drugs")
            return [str(x) for x in data.get("drugIds", [])]

    # drugs

    def register_drug(
        self,
        name: str,
        batch_number: str,
        expiry_date: float | datetime,
        *,
        timeout_s: float = 10.0,
    ) -> str:
        """Register a drug as the current principal and return its id."""

        body = {"name": name, "batchNumber": batch_number, "expiryDate": to_unix_seconds(expiry_date)}
        with self._client(timeout_s) as client:
            data = self._check(client.post("/api/drugs", json=body), "register drug")
            drug_id = str(data.get("id") or "")
            if not drug_id:
                raise RuntimeError(f"Register drug returned invalid response: {data}")
            return drug_id

    def list_drug_ids(self, *, timeout_s: float = 10.0) -> list[str]:
        with self._client(timeout_s) as client:
            data = self._check(client.get("/api/drugs"), "list drugs")
            return [str(x) for x in data.get("drugIds", [])]

    def get_total_drugs(self, *, timeout_s: float = 10.0) -> int:
        with self._client(timeout_s) as client:
            return int(self._check(client.get("/api/drugs/count"), "count drugs")["total"])

    def get_drug_info(self, drug_id: str, *, timeout_s: float = 10.0) -> dict[str, Any]:
        with self._client(timeout_s) as client:
            return self._check(client.get(f"/api/drugs/{_seg(drug_id)}"), "get drug info")

    def get_drug_history(self, drug_id: str, *, timeout_s: float = 10.0) -> dict[str, Any]:
        with self._client(timeout_s) as client:
            return self._check(client.get(f"/api/drugs/{_seg(drug_id)}/history"), "get drug history")

    def is_drug_expired(self, drug_id: str, *, timeout_s: float = 10.0) -> bool:
        with self._client(timeout_s) as client:
            data = self._check(client.get(f"/api/drugs/{_seg(drug_id)}/expired"), "check expiry")
            return bool(data["expired"])

    def transfer_ownership(
        self,
        drug_id: str,
        new_owner: str,
        new_stage: str,
        *,
        timeout_s: float = 10.0,
    ) -> dict[str, Any]:
        with self._client(timeout_s) as client:
            body = {"newOwner": new_owner, "newStage": new_stage}
            res = client.post(f"/api/drugs/{_seg(drug_id)}/transfer", json=body)
            return dict(self._check(res, "transfer ownership")["drug"])

    def verify_quality(self, drug_id: str, passed: bool, *, timeout_s: float = 10.0) -> dict[str, Any]:
        with self._client(timeout_s) as client:
            res = client.post(f"/api/drugs/{_seg(drug_id)}/verify", json={"passed": bool(passed)})
            return dict(self._check(res, "verify quality")["drug"])

    def recall_drug(self, drug_id: str, reason: str, *, timeout_s: float = 10.0) -> dict[str, Any]:
        with self._client(timeout_s) as client:
            res = client.post(f"/api/drugs/{_seg(drug_id)}/recall", json={"reason": reason})
            return dict(self._check(res, "recall drug")["drug"])
