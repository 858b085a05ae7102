"""IMAP IDLE folder watchers that feed observed mail into the intake."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from aioimaplib import aioimaplib
from loguru import logger

from screenersync.application.ports.mail_source import MailEventSink, MailEventSource
from screenersync.infrastructure.email.providers.imap_idle.mapper import (
    HEADER_FIELDS,
    header_literal,
    headers_to_mail_event,
    parse_search_uids,
    quote_mailbox,
)
from screenersync.infrastructure.settings import Settings

INITIAL_RETRY_DELAY = 5
MAX_RETRY_DELAY = 300


@dataclass
class ImapConfig:
    host: str
    user: str
    password: str
    port: int = 993
    timeout: float = 60.0
    idle_timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImapConfig":
        return cls(
            host=settings.imap_host,
            user=settings.imap_user,
            password=settings.imap_password.get_secret_value(),
            port=settings.imap_port,
            timeout=settings.imap_timeout_seconds,
            idle_timeout=settings.poll_interval_seconds,
        )


class ImapFolderWatcher:
    """
    Watches ONE folder over its own connection. Messages already in the folder
    at startup are not reported; every message whose UID is above the last one
    seen is mapped to a MailEvent and handed to the sink.

    IDLE is bounded by ``idle_timeout``, after which the folder is searched
    anyway, so a server that never pushes still gets polled.
    """

    def __init__(self, cfg: ImapConfig, folder: str, sink: MailEventSink) -> None:
        self.cfg = cfg
        self.folder = folder
        self.sink = sink
        self._last_uid: Optional[int] = None

    async def run(self) -> None:
        retry_delay = INITIAL_RETRY_DELAY
        while True:
            try:
                await self._watch()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[{self.folder}] IMAP error: {e}")
            logger.info(f"[{self.folder}] Reconnecting in {retry_delay}s")
            await asyncio.sleep(retry_delay)
            retry_delay = min(retry_delay * 2, MAX_RETRY_DELAY)

    async def _watch(self) -> None:
        client = aioimaplib.IMAP4_SSL(host=self.cfg.host, port=self.cfg.port, timeout=self.cfg.timeout)
        await client.wait_hello_from_server()
        try:
            response = await client.login(self.cfg.user, self.cfg.password)
            if response.result != "OK":
                raise RuntimeError(f"Login failed for {self.cfg.user}: {response.lines}")

            response = await client.select(quote_mailbox(self.folder))
            if response.result != "OK":
                raise RuntimeError(f"Failed to select folder {self.folder}: {response.lines}")

            if self._last_uid is None:
                self._last_uid = max(await self._search(client, "ALL"), default=0)
            logger.info(f"Watching folder: {self.folder} (last UID {self._last_uid})")

            while True:
                if client.has_capability("IDLE"):
                    idle = await client.idle_start(timeout=self.cfg.idle_timeout)
                    await client.wait_server_push()
                    client.idle_done()
                    await asyncio.wait_for(idle, timeout=self.cfg.timeout)
                else:
                    await asyncio.sleep(self.cfg.idle_timeout)
                await self._emit_new(client)
        finally:
            try:
                await client.logout()
            except Exception as e:
                logger.debug(f"[{self.folder}] Logout failed: {e}")

    async def _search(self, client: aioimaplib.IMAP4_SSL, *criteria: str) -> list[int]:
        response = await client.uid_search(*criteria, charset=None)
        if response.result != "OK":
            raise RuntimeError(f"UID SEARCH failed in {self.folder}: {response.lines}")
        return parse_search_uids(response.lines)

    async def _emit_new(self, client: aioimaplib.IMAP4_SSL) -> None:
        last = self._last_uid or 0
        # "n:*" always matches the newest message, so filter again
        uids = sorted(u for u in await self._search(client, "UID", f"{last + 1}:*") if u > last)
        if not uids:
            return
        logger.info(f"[{self.folder}] {len(uids)} new message(s)")

        for uid in uids:
            response = await client.uid("fetch", str(uid), HEADER_FIELDS)
            header_bytes = header_literal(response.lines) if response.result == "OK" else None
            self._last_uid = uid
            if header_bytes is None:
                logger.warning(f"[{self.folder}] Could not fetch headers for UID {uid}")
                continue
            event = headers_to_mail_event(self.folder, header_bytes)
            logger.debug(f"[{self.folder}] UID {uid}: {event.sender_address} <{event.message_id}>")
            self.sink.accept(event)


class ImapMailSource(MailEventSource):
    """One watcher per folder, all delivering into the same sink."""

    def __init__(self, cfg: ImapConfig, folders: list[str]) -> None:
        self.cfg = cfg
        self.folders = folders

    async def run(self, sink: MailEventSink) -> None:
        logger.info(f"Watching IMAP folders: {', '.join(self.folders)}")
        watchers = [ImapFolderWatcher(self.cfg, folder, sink) for folder in self.folders]
        await asyncio.gather(*(w.run() for w in watchers))
