"""Application layer - move detection, routing and the serialized sync pipeline."""

from screenersync.application.intake import MailIntake
from screenersync.application.move_detector import MoveDetector
from screenersync.application.recent_messages import RecentMessageLedger
from screenersync.application.routing import (
    FolderRoute,
    MoveRule,
    RoutingTable,
    plan_membership_changes,
)
from screenersync.application.sync_worker import SerializedSyncWorker, WorkerStats
from screenersync.application.use_cases.resolve_contact import ContactResolver, contact_uid_for
from screenersync.application.use_cases.sync_membership import SyncMembershipUseCase, TimeLimitedStore

__all__ = [
    "RecentMessageLedger",
    "MoveDetector",
    "FolderRoute",
    "MoveRule",
    "RoutingTable",
    "plan_membership_changes",
    "ContactResolver",
    "contact_uid_for",
    "SyncMembershipUseCase",
    "TimeLimitedStore",
    "SerializedSyncWorker",
    "WorkerStats",
    "MailIntake",
]
