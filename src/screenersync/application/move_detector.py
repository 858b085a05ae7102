"""Detect cross-folder moves by matching message ids in the ledger."""

from __future__ import annotations

from typing import Iterable, Optional

from screenersync.application.recent_messages import RecentMessageLedger, normalize_folder
from screenersync.application.routing import MoveRule


class MoveDetector:
    """Read-only queries against a RecentMessageLedger."""

    def __init__(self, ledger: RecentMessageLedger) -> None:
        self.ledger = ledger

    def detect_move_from(
        self,
        destination_folder: str,
        source_folder: str,
        message_id: Optional[str],
    ) -> Optional[str]:
        """Return ``source_folder`` if the message landing in ``destination_folder``
        was seen there within the ledger TTL, otherwise None."""
        if not message_id or not destination_folder:
            return None
        if normalize_folder(destination_folder) == normalize_folder(source_folder):
            return None
        if self.ledger.was_recently_seen(source_folder, message_id):
            return source_folder
        return None

    def detect(
        self,
        folder: str,
        message_id: Optional[str],
        rules: Iterable[MoveRule],
    ) -> Optional[str]:
        """Check every rule whose destination is ``folder``; first match wins."""
        if not message_id:
            return None
        current = normalize_folder(folder)
        for rule in rules:
            if normalize_folder(rule.destination) != current:
                continue
            source = self.detect_move_from(folder, rule.source, message_id)
            if source is not None:
                return source
        return None
