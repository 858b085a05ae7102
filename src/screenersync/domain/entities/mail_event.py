from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class MailEvent:
    """One message observed arriving in a watched folder."""
    folder: str
    sender_name: str
    sender_address: str
    message_id: Optional[str] = None
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class SyncRequest:
    # MailEvent enriched by intake with the move-detection result
    event: MailEvent
    moved_from: Optional[str] = None
