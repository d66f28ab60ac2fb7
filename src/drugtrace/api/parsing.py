from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException, Request

from ..core.errors import ValidationError

PRINCIPAL_HEADER = "x-principal"


def to_unix_seconds(timestamp: float | datetime | str | None) -> float | None:
    if timestamp is None:
        return None
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return float(timestamp.timestamp())
    if isinstance(timestamp, bool):
        raise ValidationError("timestamp must be a number or an ISO-8601 string")
    if isinstance(timestamp, str):
        s = timestamp.strip()
        try:
            value = float(s)
        except ValueError:
            try:
                return to_unix_seconds(datetime.fromisoformat(s.replace("Z", "+00:00")))
            except ValueError as ex:
                raise ValidationError(f"Invalid timestamp: {timestamp!r}") from ex
    else:
        try:
            value = float(timestamp)
        except (TypeError, ValueError) as ex:
            raise ValidationError(f"Invalid timestamp: {timestamp!r}") from ex
    if not math.isfinite(value):
        raise ValidationError("timestamp must be finite")
    return value


def parse_bool(value: Any, *, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        raise ValidationError(f"Missing {field}")
    s = str(value).strip().lower()
    if s in {"1", "true", "yes", "on"}:
        return True
    if s in {"0", "false", "no", "off"}:
        return False
    raise ValidationError(f"Invalid {field}")


def require_caller(request: Request) -> str:
    """Return the principal the host's auth layer attached to this request."""
    caller = (request.headers.get(PRINCIPAL_HEADER) or "").strip()
    if not caller:
        raise HTTPException(status_code=401, detail=f"Missing {PRINCIPAL_HEADER} header")
    return caller
