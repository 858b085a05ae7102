"""Store implementations."""

from screenersync.infrastructure.stores.carddav_directory_store import CardDavDirectoryStore
from screenersync.infrastructure.stores.dry_run_store import DryRunDirectoryStore

__all__ = [
    "CardDavDirectoryStore",
    "DryRunDirectoryStore",
]
