from __future__ import annotations


class RegistryError(Exception):
    """Base class for every rejection raised by the registry.

    Each subclass names one failure kind so callers can tell causes apart
    without parsing messages. `status_code` is the HTTP status the API layer
    answers with.
    """

    kind: str = "error"
    status_code: int = 400

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    @classmethod
    def from_kind(cls, kind: str, message: str = "") -> "RegistryError":
        for sub in (AuthorizationError, NotFoundError, ConflictError, ValidationError, StateError):
            if sub.kind == kind:
                return sub(message)
        return cls(message)


class AuthorizationError(RegistryError):
    kind = "authorization"
    status_code = 403


class NotFoundError(RegistryError):
    kind = "not_found"
    status_code = 404


class ConflictError(RegistryError):
    kind = "conflict"
    status_code = 409


class ValidationError(RegistryError):
    kind = "validation"
    status_code = 400


class StateError(RegistryError):
    # Same HTTP status as ConflictError; the body's "error" field tells them apart.
    kind = "state"
    status_code = 409
