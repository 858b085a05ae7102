from __future__ import annotations
from typing import Protocol

from screenersync.domain.entities.mail_event import MailEvent


class MailEventSink(Protocol):
    # Where a mail event source delivers what it observes
    def accept(self, event: MailEvent) -> None: ...


class MailEventSource(Protocol):
    async def run(self, sink: MailEventSink) -> None: ...
