from __future__ import annotations

from enum import Enum
from typing import Any

from .errors import ValidationError


class Role(str, Enum):
    """Supply-chain role of a registered principal.

    `NONE` exists so an unassigned role can be represented, but it can never
    be granted through registration.
    """

    NONE = "none"
    MANUFACTURER = "manufacturer"
    DISTRIBUTOR = "distributor"
    PHARMACY = "pharmacy"
    REGULATOR = "regulator"

    @classmethod
    def from_any(cls, value: Any) -> "Role":
        if isinstance(value, cls):
            return value

        # Integer ordinals follow declaration order (0 = NONE ... 4 = REGULATOR).
        if isinstance(value, int) and not isinstance(value, bool):
            members = list(cls)
            if 0 <= value < len(members):
                return members[value]
            raise ValidationError(f"Unknown role ordinal: {value}")

        v = str(value).strip().lower().replace("-", "_")
        for member in cls:
            if v in {member.value, member.name.lower()}:
                return member
        if v.isdigit():
            return cls.from_any(int(v))

        raise ValidationError(
            "Unsupported role. Use one of: " + ", ".join(m.value for m in cls if m is not cls.NONE)
        )


class DrugStatus(str, Enum):
    """Lifecycle status of a drug record.

    Notes:
    - ACTIVE is the only status that allows transfers, verification or recall.
    - RECALLED is terminal.
    - EXPIRED is reserved; no operation assigns it. Expiry is computed on
      demand by `DrugRegistry.is_drug_expired`.
    """

    ACTIVE = "active"
    RECALLED = "recalled"
    EXPIRED = "expired"
