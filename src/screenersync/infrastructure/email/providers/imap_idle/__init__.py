"""IMAP IDLE mail event source."""

from screenersync.infrastructure.email.providers.imap_idle.client import (
    ImapConfig,
    ImapFolderWatcher,
    ImapMailSource,
)
from screenersync.infrastructure.email.providers.imap_idle.mapper import headers_to_mail_event

__all__ = [
    "ImapConfig",
    "ImapFolderWatcher",
    "ImapMailSource",
    "headers_to_mail_event",
]
