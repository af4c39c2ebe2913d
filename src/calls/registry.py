"""In-memory registry of calls waiting for a human accept/decline decision."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_AGE_SECONDS = 90.0


@dataclass(frozen=True)
class PendingCall:
    """Immutable snapshot of a ringing call."""

    call_sid: str
    caller: str | None
    registered_at: float
    registered_wall: datetime


class PendingCallRegistry:
    """Lock-guarded map of pending calls with lazy expiry.

    Expired entries are swept before every read instead of by a timer, so the
    registry never owns background tasks. Accept/decline go through
    :meth:`claim`, which moves an entry into a "deciding" set until the
    provider command has completed. A claim that is never released expires
    like a pending entry.

    Note: This is a single-process store. For multi-worker deployments, replace
    with Redis or another shared store.
    """

    def __init__(
        self,
        *,
        max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._lock = threading.Lock()
        self._pending: dict[str, PendingCall] = {}
        self._deciding: dict[str, float] = {}
        self._max_age = max_age_seconds
        self._clock = clock
        self._wall_clock = wall_clock

    def register(self, call_sid: str, caller: str | None) -> PendingCall:
        """Insert or overwrite the entry for ``call_sid`` (a re-ring)."""

        entry = PendingCall(
            call_sid=call_sid,
            caller=caller,
            registered_at=self._clock(),
            registered_wall=self._wall_clock(),
        )
        with self._lock:
            self._sweep_locked(self._max_age)
            self._pending[call_sid] = entry
        LOGGER.info("Registered pending call %s from %s", call_sid, caller or "unknown")
        return entry

    def get(self, call_sid: str) -> PendingCall | None:
        with self._lock:
            self._sweep_locked(self._max_age)
            return self._pending.get(call_sid)

    def list_oldest_first(self) -> list[PendingCall]:
        with self._lock:
            self._sweep_locked(self._max_age)
            entries = list(self._pending.values())
        return sorted(entries, key=lambda entry: entry.registered_at)

    def oldest(self) -> PendingCall | None:
        entries = self.list_oldest_first()
        return entries[0] if entries else None

    def remove(self, call_sid: str) -> None:
        with self._lock:
            self._pending.pop(call_sid, None)

    def sweep_expired(self, max_age_seconds: float | None = None) -> None:
        with self._lock:
            self._sweep_locked(self._max_age if max_age_seconds is None else max_age_seconds)

    def is_tracked(self, call_sid: str) -> bool:
        """True while the call is pending or a decision for it is in flight."""

        with self._lock:
            self._sweep_locked(self._max_age)
            return call_sid in self._pending or call_sid in self._deciding

    def claim(self, call_sid: str) -> PendingCall | None:
        """Atomically take a pending call out of the registry for a decision."""

        with self._lock:
            self._sweep_locked(self._max_age)
            entry = self._pending.pop(call_sid, None)
            if entry is not None:
                self._deciding[call_sid] = self._clock()
        if entry is not None:
            LOGGER.debug("Claimed pending call %s", call_sid)
        return entry

    def release(self, entry: PendingCall, *, restore: bool) -> None:
        """Finish a claim, optionally putting the snapshot back.

        A restored snapshot never replaces a newer registration for the same call.
        """

        with self._lock:
            self._deciding.pop(entry.call_sid, None)
            if restore and entry.call_sid not in self._pending:
                self._pending[entry.call_sid] = entry

    def __len__(self) -> int:
        with self._lock:
            self._sweep_locked(self._max_age)
            return len(self._pending)

    def __contains__(self, call_sid: object) -> bool:
        with self._lock:
            self._sweep_locked(self._max_age)
            return call_sid in self._pending

    def _sweep_locked(self, max_age: float) -> None:
        now = self._clock()
        expired = [
            sid for sid, entry in self._pending.items() if now - entry.registered_at > max_age
        ]
        for sid in expired:
            del self._pending[sid]
            LOGGER.info("Pending call %s expired after %.0fs", sid, max_age)
        stale_claims = [
            sid for sid, claimed_at in self._deciding.items() if now - claimed_at > max_age
        ]
        for sid in stale_claims:
            del self._deciding[sid]
            LOGGER.warning("Decision for call %s never completed; dropping claim", sid)
