# src/screenersync/infrastructure/__init__.py
"""Infrastructure layer - configuration, CardDAV and IMAP adapters."""

from screenersync.infrastructure.carddav_client import CardDavSession
from screenersync.infrastructure.settings import Settings, get_settings
from screenersync.infrastructure.stores import CardDavDirectoryStore, DryRunDirectoryStore

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # CardDAV
    "CardDavSession",
    "CardDavDirectoryStore",
    "DryRunDirectoryStore",
]
