"""Fixed-window request admission keyed by client identity."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .errors import QuotaExceeded
from .logging import get_logger
from .models import QuotaRecord


@dataclass(frozen=True)
class QuotaDecision:
    """Outcome of a single admission check."""

    allowed: bool
    remaining: int
    retry_after: float


class QuotaStore:
    """In-memory quota records with lazy expiry.

    Records are reset when touched after their window elapsed. A sweep of all
    expired records runs at most once per window so idle identities do not
    accumulate forever.
    """

    def __init__(self) -> None:
        self._records: Dict[str, QuotaRecord] = {}
        self._lock = threading.Lock()
        self._last_sweep: Optional[float] = None

    def __len__(self) -> int:
        return len(self._records)

    def get(self, identity: str) -> Optional[QuotaRecord]:
        return self._records.get(identity)

    def consume(self, identity: str, *, limit: int, window: float, now: float) -> QuotaDecision:
        """Atomically check and increment the record for ``identity``."""
        with self._lock:
            self._maybe_sweep(window=window, now=now)
            record = self._records.get(identity)
            if record is None or now > record.window_start + window:
                record = QuotaRecord(count=1, window_start=now)
                self._records[identity] = record
                return QuotaDecision(
                    allowed=True,
                    remaining=limit - 1,
                    retry_after=0.0,
                )
            if record.count < limit:
                record.count += 1
                return QuotaDecision(
                    allowed=True,
                    remaining=limit - record.count,
                    retry_after=0.0,
                )
            retry_after = max(0.0, record.window_start + window - now)
            return QuotaDecision(allowed=False, remaining=0, retry_after=retry_after)

    def sweep(self, *, window: float, now: float) -> int:
        """Drop every record whose window has elapsed; return how many were removed."""
        with self._lock:
            return self._sweep(window=window, now=now)

    def _maybe_sweep(self, *, window: float, now: float) -> None:
        if self._last_sweep is not None and now - self._last_sweep < window:
            return
        self._sweep(window=window, now=now)

    def _sweep(self, *, window: float, now: float) -> int:
        expired = [
            identity
            for identity, record in self._records.items()
            if now > record.window_start + window
        ]
        for identity in expired:
            del self._records[identity]
        self._last_sweep = now
        return len(expired)


class QuotaGate:
    """Admits up to ``limit`` requests per identity in each ``window_seconds`` window."""

    def __init__(
        self,
        limit: int = 5,
        window_seconds: float = 1800.0,
        *,
        store: QuotaStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self.store = store if store is not None else QuotaStore()
        self._clock = clock
        self.logger = get_logger("quota")

    def admit(self, identity: str) -> QuotaDecision:
        decision = self.store.consume(
            identity,
            limit=self.limit,
            window=self.window_seconds,
            now=self._clock(),
        )
        if not decision.allowed:
            self.logger.info(
                "Rejected request from %s; retry in %.0fs", identity, decision.retry_after
            )
        return decision

    def check(self, identity: str) -> QuotaDecision:
        """Admit ``identity`` or raise :class:`QuotaExceeded`."""
        decision = self.admit(identity)
        if not decision.allowed:
            raise QuotaExceeded(identity, retry_after=decision.retry_after)
        return decision


__all__ = ["QuotaDecision", "QuotaGate", "QuotaStore"]
