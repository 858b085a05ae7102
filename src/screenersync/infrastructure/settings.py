"""Application settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from screenersync.application.routing import FolderRoute, MoveRule, RoutingTable


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "screener-sync"
    log_level: str = "INFO"
    dry_run: bool = False
    simulate: bool = False

    # IMAP
    imap_host: str = ""
    imap_port: int = 993
    imap_user: str = ""
    imap_password: SecretStr = Field(default=SecretStr(""))
    imap_folders: str = "INBOX"
    imap_timeout_seconds: float = 60.0
    poll_interval_seconds: float = 30.0

    # Triage folders
    inbox_folder: str = "INBOX"
    screener_folder: str = "Screener"
    trash_folder: str = "Trash"
    feed_folder: str = "The Feed"
    screened_out_folder: str = "Screened Out"

    # Contact groups
    group_screened_out: str = "Screened Out"
    group_the_feed: str = "The Feed"

    # Optional JSON overrides of the derived routing table
    folder_routes: Optional[dict[str, FolderRoute]] = None
    move_rules: Optional[list[MoveRule]] = None

    # Move detection ledger
    move_track_ttl: float = 86400.0

    # CardDAV
    carddav_base_url: Optional[str] = None
    carddav_username: str = ""
    carddav_password: SecretStr = Field(default=SecretStr(""))
    carddav_addressbook_path: str = "/"
    carddav_timeout_seconds: float = 15.0
    carddav_debug: bool = False

    # Sync worker
    store_timeout_seconds: float = 20.0
    conflict_retries: int = 1
    shutdown_grace_seconds: float = 10.0

    @computed_field
    @property
    def effective_dry_run(self) -> bool:
        """Dry run when asked to, or when there is no directory to write to."""
        return self.dry_run or not self.carddav_base_url

    def routing_table(self) -> RoutingTable:
        """Routing table from the JSON overrides, or derived from folder/group names."""
        folders = self.folder_routes
        if folders is None:
            folders = {
                self.inbox_folder: FolderRoute(remove_group=self.group_screened_out),
                self.screened_out_folder: FolderRoute(add_group=self.group_screened_out),
                self.feed_folder: FolderRoute(
                    add_group=self.group_the_feed,
                    remove_group=self.group_screened_out,
                ),
            }
        moves = self.move_rules
        if moves is None:
            moves = [
                MoveRule(
                    source=self.screener_folder,
                    destination=self.trash_folder,
                    add_group=self.group_screened_out,
                ),
            ]
        return RoutingTable(folders=folders, moves=moves)

    @computed_field
    @property
    def watched_folders(self) -> list[str]:
        """Explicit folders plus every folder routing depends on, de-duplicated."""
        explicit = [f.strip() for f in self.imap_folders.split(",") if f.strip()]
        seen: set[str] = set()
        folders: list[str] = []
        for name in explicit + self.routing_table().folder_names():
            if name.lower() not in seen:
                seen.add(name.lower())
                folders.append(name)
        return folders


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
