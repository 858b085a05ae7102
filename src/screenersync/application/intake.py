"""Entry point for observed mail: ledger bookkeeping, move detection, enqueue."""

from __future__ import annotations

from loguru import logger

from screenersync.application.move_detector import MoveDetector
from screenersync.application.recent_messages import RecentMessageLedger
from screenersync.application.routing import RoutingTable
from screenersync.application.sync_worker import SerializedSyncWorker
from screenersync.domain.entities.mail_event import MailEvent, SyncRequest


class MailIntake:
    """Receives MailEvents from folder listeners and feeds the sync worker.

    Runs on the event loop without awaiting, so the ledger write, the move
    lookup and the enqueue for one event are never split by another listener.
    """

    def __init__(
        self,
        ledger: RecentMessageLedger,
        routing: RoutingTable,
        worker: SerializedSyncWorker,
    ) -> None:
        self.ledger = ledger
        self.detector = MoveDetector(ledger)
        self.routing = routing
        self.worker = worker

    def accept(self, event: MailEvent) -> SyncRequest:
        if event.message_id:
            self.ledger.remember(event.folder, event.message_id)

        moved_from = self.detector.detect(event.folder, event.message_id, self.routing.moves)
        if moved_from:
            logger.info(f"Detected move of {event.message_id} from {moved_from} to {event.folder}")

        request = SyncRequest(event=event, moved_from=moved_from)
        self.worker.submit(request)
        return request
