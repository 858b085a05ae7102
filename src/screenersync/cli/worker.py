"""Screener sync worker - watches IMAP folders and keeps CardDAV groups in sync."""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from screenersync.application.intake import MailIntake
from screenersync.application.ports.directory_store import DirectoryStore
from screenersync.application.ports.mail_source import MailEventSource
from screenersync.application.recent_messages import RecentMessageLedger
from screenersync.application.sync_worker import SerializedSyncWorker
from screenersync.application.use_cases.sync_membership import SyncMembershipUseCase
from screenersync.domain.entities.mail_event import MailEvent
from screenersync.infrastructure import (
    CardDavDirectoryStore,
    CardDavSession,
    DryRunDirectoryStore,
    Settings,
    get_settings,
)
from screenersync.infrastructure.email.providers.imap_idle import ImapConfig, ImapMailSource

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
SIMULATED_SENDER = ("Alice Example", "alice@example.com")
SIMULATED_MESSAGE_ID = "simulated-1@screener-sync.local"


class ScreenerSyncService:
    """
    Wires the pipeline together and owns its lifecycle:
    IMAP watchers → MailIntake (ledger + move detection) → SerializedSyncWorker.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.session: Optional[CardDavSession] = None
        self.store: Optional[DirectoryStore] = None
        self.ledger: Optional[RecentMessageLedger] = None
        self.worker: Optional[SerializedSyncWorker] = None
        self.intake: Optional[MailIntake] = None
        self._stop_event = asyncio.Event()

    def _build_store(self) -> DirectoryStore:
        store: Optional[DirectoryStore] = None
        if self.settings.carddav_base_url:
            self.session = CardDavSession.from_settings(self.settings)
            store = CardDavDirectoryStore(self.session)
        if self.settings.effective_dry_run:
            logger.info("Dry-run mode: directory changes are reported, not written")
            return DryRunDirectoryStore(store)
        return store

    def _init_infrastructure(self) -> None:
        """Initialize shared pipeline components."""
        logger.info("Initializing pipeline...")
        routing = self.settings.routing_table()
        self.store = self._build_store()
        self.ledger = RecentMessageLedger(ttl_seconds=self.settings.move_track_ttl)
        use_case = SyncMembershipUseCase(
            store=self.store,
            routing=routing,
            store_timeout_seconds=self.settings.store_timeout_seconds,
            conflict_retries=self.settings.conflict_retries,
        )
        self.worker = SerializedSyncWorker(use_case)
        self.intake = MailIntake(self.ledger, routing, self.worker)

        for folder, route in routing.folders.items():
            logger.info(f"  route {folder}: add={route.add_group} remove={route.remove_group}")
        for rule in routing.moves:
            logger.info(f"  move {rule.source} -> {rule.destination}: add={rule.add_group} remove={rule.remove_group}")

    def request_stop(self) -> None:
        logger.info("Shutdown requested...")
        self._stop_event.set()

    async def _simulate(self) -> None:
        """Feed a fixed set of events through the intake instead of IMAP."""
        name, address = SIMULATED_SENDER
        logger.info("Running in simulate mode")
        self.intake.accept(MailEvent(folder=self.settings.inbox_folder, sender_name=name, sender_address=address))
        self.intake.accept(MailEvent(
            folder=self.settings.screener_folder,
            sender_name=name,
            sender_address=address,
            message_id=SIMULATED_MESSAGE_ID,
        ))
        self.intake.accept(MailEvent(
            folder=self.settings.trash_folder,
            sender_name=name,
            sender_address=address,
            message_id=SIMULATED_MESSAGE_ID,
        ))
        await self.worker.drain()

    async def run(self) -> int:
        """Run until stopped (or until the simulation has been processed)."""
        if not self.settings.simulate and not self.settings.imap_host:
            logger.error("No IMAP host configured! Set IMAP_HOST or use --simulate")
            return 1

        self._init_infrastructure()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except NotImplementedError:
                pass  # not supported on this platform's loop

        worker_task = asyncio.create_task(self.worker.run())
        source_task: Optional[asyncio.Task] = None
        try:
            if self.settings.simulate:
                await self._simulate()
            else:
                source: MailEventSource = ImapMailSource(
                    ImapConfig.from_settings(self.settings), self.settings.watched_folders
                )
                source_task = asyncio.create_task(source.run(self.intake))
                await self._stop_event.wait()
        finally:
            if source_task is not None:
                source_task.cancel()
                await asyncio.gather(source_task, return_exceptions=True)
            await self.worker.stop(grace_seconds=self.settings.shutdown_grace_seconds)
            await asyncio.gather(worker_task, return_exceptions=True)
            if self.session is not None:
                await self.session.aclose()

        logger.info("Shutdown complete")
        return 1 if self.settings.simulate and self.worker.stats.failed else 0


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level.upper())


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the sync worker."""
    parser = argparse.ArgumentParser(description="Sync contact groups with mail triage folders")
    parser.add_argument("--simulate", action="store_true", help="Process sample events instead of watching IMAP")
    parser.add_argument("--dry-run", action="store_true", help="Report directory changes without writing them")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging("INFO")
        logger.error(f"Invalid configuration: {e}")
        return 1

    updates = {}
    if args.simulate:
        updates["simulate"] = True
    if args.dry_run:
        updates["dry_run"] = True
    if args.log_level:
        updates["log_level"] = args.log_level
    if updates:
        settings = settings.model_copy(update=updates)

    configure_logging(settings.log_level)

    logger.info("=" * 60)
    logger.info(settings.app_name)
    logger.info("=" * 60)

    return asyncio.run(ScreenerSyncService(settings).run())


if __name__ == "__main__":
    raise SystemExit(main())
