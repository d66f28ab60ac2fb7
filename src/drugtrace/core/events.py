from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Callable, ClassVar, Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class Event:
    kind: ClassVar[str] = "event"

    revision: int
    drug_id: str

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["kind"] = self.kind
        return out


@dataclass(frozen=True, kw_only=True)
class DrugRegistered(Event):
    kind: ClassVar[str] = "drug_registered"

    manufacturer: str
    name: str


@dataclass(frozen=True, kw_only=True)
class OwnershipTransferred(Event):
    kind: ClassVar[str] = "ownership_transferred"

    from_owner: str
    to_owner: str
    stage: str


@dataclass(frozen=True, kw_only=True)
class QualityVerified(Event):
    kind: ClassVar[str] = "quality_verified"

    verifier: str
    passed: bool


@dataclass(frozen=True, kw_only=True)
class DrugRecalled(Event):
    kind: ClassVar[str] = "drug_recalled"

    recaller: str
    reason: str


@dataclass(frozen=True, kw_only=True)
class StageUpdated(Event):
    kind: ClassVar[str] = "stage_updated"

    stage: str
    timestamp: float


Subscriber = Callable[[Event], None]


class EventLog:
    """Bounded buffer of published notifications plus synchronous fan-out.

    The registry only guarantees that it raises its events in order; getting
    them to remote subscribers is up to whoever polls `since()` or registers a
    subscriber here.
    """

    def __init__(self, maxlen: int = 10_000) -> None:
        if int(maxlen) <= 0:
            raise ValueError("maxlen must be a positive integer")
        self._lock = threading.RLock()
        self._events: deque[Event] = deque(maxlen=int(maxlen))
        self._subscribers: list[Subscriber] = []

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(fn)

        def _unsubscribe() -> None:
            with self._lock:
                if fn in self._subscribers:
                    self._subscribers.remove(fn)

        return _unsubscribe

    def publish(self, events: Iterable[Event]) -> None:
        with self._lock:
            batch = list(events)
            self._events.extend(batch)
            subscribers = list(self._subscribers)

        for event in batch:
            for fn in subscribers:
                try:
                    fn(event)
                except Exception:
                    logger.exception("Event subscriber %r failed on %s", fn, event.kind)

    def since(self, revision: int = 0) -> list[Event]:
        with self._lock:
            return [e for e in self._events if e.revision > int(revision)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
