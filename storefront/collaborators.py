"""
Boundaries the store service talks through, plus the in-process
implementations the app wires in.

- capability check: who may publish and restock products
- value transfer: refunds of overpayment and of returned purchases
- event sink: fire-and-forget notifications after a commit
- logical clock: monotonically increasing tick used by the return window
"""

import threading
from collections import deque
from typing import Optional, Protocol

from pydantic import BaseModel

from storefront.errors import TransferFailed, Unauthorized
from storefront.models import TransferRecord


class Authorizer(Protocol):
    def require_owner(self, caller: str) -> None: ...


class TransferGateway(Protocol):
    def transfer(self, to: str, amount: int) -> None: ...


class EventSink(Protocol):
    def publish(self, event: BaseModel) -> None: ...


class Clock(Protocol):
    def now(self) -> int: ...


# ── Capability ───────────────────────────────────────────────────────────────

class OwnerCapability:
    def __init__(self, owner: str) -> None:
        self.owner = owner

    def require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized(f"Account '{caller}' is not the store owner")


# ── Value transfer ───────────────────────────────────────────────────────────

class InMemoryTransfer:
    """Records the most recent ``maxlen`` transfers it delivers and the
    running total sent to each account.

    Accounts in ``failing`` reject incoming transfers, which is how a
    refund to a broken destination is simulated.
    """

    def __init__(self, clock: Optional[Clock] = None, maxlen: int = 1000) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self.failing: set[str] = set()
        self.records: deque[TransferRecord] = deque(maxlen=maxlen)
        self._totals: dict[str, int] = {}

    def transfer(self, to: str, amount: int) -> None:
        with self._lock:
            if to in self.failing:
                raise TransferFailed(f"Transfer of {amount} to '{to}' was rejected")
            tick = self._clock.now() if self._clock else 0
            self.records.append(TransferRecord(to=to, amount=amount, tick=tick))
            self._totals[to] = self._totals.get(to, 0) + amount

    def total_sent_to(self, account: str) -> int:
        with self._lock:
            return self._totals.get(account, 0)

    def list_records(self) -> list[TransferRecord]:
        with self._lock:
            return list(self.records)

    def clear(self) -> None:
        with self._lock:
            self.failing.clear()
            self.records.clear()
            self._totals.clear()


# ── Events ───────────────────────────────────────────────────────────────────

class EventLog:
    """Keeps the most recent ``maxlen`` events in memory."""

    def __init__(self, maxlen: int = 1000) -> None:
        self._lock = threading.Lock()
        self._events: deque[BaseModel] = deque(maxlen=maxlen)

    def publish(self, event: BaseModel) -> None:
        with self._lock:
            self._events.append(event)

    def list_events(self) -> list[BaseModel]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


# ── Clock ────────────────────────────────────────────────────────────────────

class LogicalClock:
    """Block-height style counter. Only moves forward."""

    def __init__(self, start: int = 0) -> None:
        self._lock = threading.Lock()
        self._tick = start

    def now(self) -> int:
        with self._lock:
            return self._tick

    def advance(self, ticks: int = 1) -> int:
        if ticks < 1:
            raise ValueError(f"ticks must be positive, got {ticks}")
        with self._lock:
            self._tick += ticks
            return self._tick

    def reset(self, start: int = 0) -> None:
        with self._lock:
            self._tick = start
