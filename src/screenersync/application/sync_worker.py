"""Single-concurrency FIFO worker for membership sync requests."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from screenersync.application.use_cases.sync_membership import SyncMembershipUseCase
from screenersync.domain.entities.mail_event import SyncRequest
from screenersync.domain.models import SyncOutcome, SyncState


@dataclass
class WorkerStats:
    """Track worker statistics."""
    processed: int = 0
    applied: int = 0
    failed: int = 0
    skipped: int = 0
    dropped: int = 0


class SerializedSyncWorker:
    """
    Consumes SyncRequests strictly in the order they were submitted, one at a
    time. Request N+1 is not started until request N has finished, whatever
    its outcome, so two events for the same contact never interleave.

    Failed requests are logged and not replayed. On stop, pending requests
    are dropped and the in-flight one gets a grace period before it is
    cancelled.
    """

    def __init__(
        self,
        use_case: SyncMembershipUseCase,
        on_outcome: Optional[Callable[[SyncOutcome], None]] = None,
    ) -> None:
        self.use_case = use_case
        self.on_outcome = on_outcome
        self.stats = WorkerStats()
        self._queue: asyncio.Queue[SyncRequest] = asyncio.Queue()
        self._current: Optional[asyncio.Task] = None
        self._runner: Optional[asyncio.Task] = None
        self._stopping = False

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def submit(self, request: SyncRequest) -> None:
        """Enqueue a request. Never blocks; ignored once the worker is stopping."""
        if self._stopping:
            self.stats.dropped += 1
            logger.warning(f"Worker stopping, dropping message {request.event.message_id}")
            return
        self._queue.put_nowait(request)
        logger.debug(
            f"Queued {request.event.sender_address} from '{request.event.folder}' (pending={self._queue.qsize()})"
        )

    async def process_one(self, request: SyncRequest) -> SyncOutcome:
        event = request.event
        logger.info(f"Processing message {event.message_id} from {event.sender_address} in '{event.folder}'")
        try:
            outcome = await self.use_case.execute(request)
        except Exception as e:
            logger.exception(f"Unhandled error processing message {event.message_id}: {e}")
            outcome = SyncOutcome(request=request, state=SyncState.FAILED, error=str(e))

        self._record(outcome)
        if self.on_outcome is not None:
            self.on_outcome(outcome)
        return outcome

    def _record(self, outcome: SyncOutcome) -> None:
        self.stats.processed += 1
        if outcome.state is SyncState.APPLIED:
            self.stats.applied += 1
        elif outcome.state is SyncState.SKIPPED:
            self.stats.skipped += 1
        else:
            self.stats.failed += 1
            logger.error(f"Message {outcome.request.event.message_id} failed: {outcome.error}")

    async def run(self) -> None:
        """Run the worker loop until stop() is called."""
        self._runner = asyncio.current_task()
        logger.info("Sync worker started")
        try:
            while not self._stopping:
                request = await self._queue.get()
                self._current = asyncio.create_task(self.process_one(request))
                try:
                    # Shielded so stop() decides when the in-flight request is abandoned
                    await asyncio.shield(self._current)
                finally:
                    self._queue.task_done()
                    self._current = None
        finally:
            logger.info("Sync worker stopped")
            self._log_stats()

    async def drain(self) -> None:
        """Wait until every submitted request has been processed."""
        await self._queue.join()

    async def stop(self, grace_seconds: float = 10.0) -> None:
        """Drop pending requests, give the in-flight one ``grace_seconds``, then stop."""
        self._stopping = True

        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if dropped:
            self.stats.dropped += dropped
            logger.warning(f"Dropped {dropped} pending message(s) on shutdown")

        current = self._current
        if current is not None and not current.done():
            done, _ = await asyncio.wait({current}, timeout=grace_seconds)
            if not done:
                logger.warning(f"In-flight sync did not finish within {grace_seconds}s, abandoning it")
                current.cancel()
                await asyncio.gather(current, return_exceptions=True)

        if self._runner is not None and not self._runner.done():
            self._runner.cancel()
            await asyncio.gather(self._runner, return_exceptions=True)

    def _log_stats(self) -> None:
        logger.info(
            f"Worker stats: "
            f"processed={self.stats.processed}, "
            f"applied={self.stats.applied}, "
            f"failed={self.stats.failed}, "
            f"skipped={self.stats.skipped}, "
            f"dropped={self.stats.dropped}"
        )
