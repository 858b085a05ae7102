"""Short-lived, in-memory ledger of message ids seen per folder."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

DEFAULT_TTL_SECONDS = 86400.0


def normalize_folder(folder: Optional[str]) -> str:
    return (folder or "").strip().lower()


@dataclass
class RecentMessageRecord:
    folder: str
    message_id: str
    first_seen_at: float


class RecentMessageLedger:
    """
    Remembers which message ids were observed in which folder, for a bounded
    time. Used only to notice that a message which just appeared in one folder
    was seen moments ago in another.

    Expiry is checked against the clock on every lookup, so a stale record is
    never reported even if its eviction timer has not fired yet. Nothing is
    persisted: a restart starts from an empty ledger.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._records: dict[tuple[str, str], RecentMessageRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def _key(self, folder: str, message_id: str) -> tuple[str, str]:
        return normalize_folder(folder), message_id.strip()

    def _expired(self, record: RecentMessageRecord, now: float) -> bool:
        return now - record.first_seen_at >= self.ttl_seconds

    def remember(self, folder: str, message_id: Optional[str]) -> None:
        """Record an observation now; a repeat observation refreshes the timestamp."""
        if not message_id or not message_id.strip():
            return
        now = self._clock()
        self.purge_expired(now)

        key = self._key(folder, message_id)
        self._records[key] = RecentMessageRecord(folder=key[0], message_id=key[1], first_seen_at=now)
        logger.debug(f"Ledger: remembered {key[1]} in '{key[0]}'")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # no loop: lazy purge on the next remember()
        loop.call_later(self.ttl_seconds, self._evict, key, now)

    def _evict(self, key: tuple[str, str], armed_at: float) -> None:
        record = self._records.get(key)
        # A refreshed record carries a newer timestamp and its own timer
        if record is not None and record.first_seen_at == armed_at:
            del self._records[key]

    def was_recently_seen(self, folder: str, message_id: Optional[str]) -> bool:
        if not message_id:
            return False
        record = self._records.get(self._key(folder, message_id))
        if record is None:
            return False
        return not self._expired(record, self._clock())

    def consume(self, folder: str, message_id: Optional[str]) -> bool:
        """Drop a record explicitly. Returns True if a live record was removed."""
        if not message_id:
            return False
        record = self._records.pop(self._key(folder, message_id), None)
        return record is not None and not self._expired(record, self._clock())

    def purge_expired(self, now: Optional[float] = None) -> int:
        now = self._clock() if now is None else now
        stale = [key for key, rec in self._records.items() if self._expired(rec, now)]
        for key in stale:
            del self._records[key]
        return len(stale)
