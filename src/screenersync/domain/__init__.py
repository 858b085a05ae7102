"""Domain models, entities and pure record transforms."""

from screenersync.domain.entities.contact import Contact, Group, GroupRecord
from screenersync.domain.entities.mail_event import MailEvent, SyncRequest
from screenersync.domain.membership_editor import (
    MembershipEditResult,
    apply_membership_edit,
    member_uri,
)
from screenersync.domain.models import (
    EditReport,
    EditStatus,
    MembershipAction,
    MembershipEdit,
    PlannedChange,
    SyncOutcome,
    SyncState,
    WriteResult,
)

__all__ = [
    "Contact",
    "Group",
    "GroupRecord",
    "MailEvent",
    "SyncRequest",
    "MembershipAction",
    "MembershipEdit",
    "PlannedChange",
    "WriteResult",
    "EditStatus",
    "EditReport",
    "SyncState",
    "SyncOutcome",
    "MembershipEditResult",
    "apply_membership_edit",
    "member_uri",
]
