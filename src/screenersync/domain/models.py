"""Domain models for screener-sync."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from screenersync.domain.entities.mail_event import SyncRequest


class MembershipAction(str, Enum):
    """Direction of a group membership change."""

    ADD = "add"
    REMOVE = "remove"


class WriteResult(str, Enum):
    """Result of a versioned group record write."""

    OK = "ok"
    CONFLICT = "conflict"


class EditStatus(str, Enum):
    """Outcome of applying one membership edit."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"
    CONFLICT = "conflict"
    FAILED = "failed"
    SKIPPED = "skipped"


class SyncState(str, Enum):
    """Lifecycle of a single mail event inside the sync worker."""

    RECEIVED = "received"
    RESOLVED = "resolved"
    GROUPS_COMPUTED = "groups_computed"
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class MembershipEdit:
    group_identifier: str
    contact_identifier: str
    action: MembershipAction


@dataclass(frozen=True)
class PlannedChange:
    # Group referenced by display name; resolved to an identifier per event
    group_name: str
    action: MembershipAction


class EditReport(BaseModel):
    """What happened to one membership edit."""

    group_name: str
    action: MembershipAction
    status: EditStatus
    group_identifier: Optional[str] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status in (EditStatus.FAILED, EditStatus.CONFLICT)


class SyncOutcome(BaseModel):
    """Result of processing one SyncRequest."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    request: SyncRequest
    state: SyncState = SyncState.RECEIVED
    contact_identifier: Optional[str] = None
    edits: list[EditReport] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.state is SyncState.FAILED
