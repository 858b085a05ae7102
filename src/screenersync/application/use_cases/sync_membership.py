"""Turn one mail event into idempotent group membership edits."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional

from loguru import logger

from screenersync.application.ports.directory_store import DirectoryStore
from screenersync.application.routing import RoutingTable, plan_membership_changes
from screenersync.application.use_cases.resolve_contact import ContactResolver
from screenersync.domain.entities.contact import Contact, Group, GroupRecord
from screenersync.domain.entities.mail_event import SyncRequest
from screenersync.domain.errors import DirectoryTransportError, SyncError
from screenersync.domain.membership_editor import apply_membership_edit, member_uri
from screenersync.domain.models import (
    EditReport,
    EditStatus,
    MembershipAction,
    MembershipEdit,
    SyncOutcome,
    SyncState,
    WriteResult,
)
from screenersync.domain.vcard import MEMBER_PROPERTY


class TimeLimitedStore:
    """DirectoryStore proxy that puts a deadline on every call.

    A call that runs past the deadline is cancelled and surfaces as
    DirectoryTransportError; it is not retried here.
    """

    def __init__(self, inner: DirectoryStore, timeout_seconds: float) -> None:
        self.inner = inner
        self.timeout_seconds = timeout_seconds

    async def _call(self, name: str, coro: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise DirectoryTransportError(
                f"Directory call {name} timed out after {self.timeout_seconds}s"
            ) from e

    async def find_contact_by_address(self, address: str) -> Optional[Contact]:
        return await self._call("find_contact_by_address", self.inner.find_contact_by_address(address))

    async def create_contact(self, display_name: str, address: str) -> str:
        return await self._call("create_contact", self.inner.create_contact(display_name, address))

    async def find_group_by_name(self, name: str) -> Optional[str]:
        return await self._call("find_group_by_name", self.inner.find_group_by_name(name))

    async def read_group_record(self, identifier: str) -> GroupRecord:
        return await self._call("read_group_record", self.inner.read_group_record(identifier))

    async def write_group_record(
        self, identifier: str, raw_text: str, expected_version: Optional[str]
    ) -> WriteResult:
        return await self._call(
            "write_group_record",
            self.inner.write_group_record(identifier, raw_text, expected_version),
        )


class SyncMembershipUseCase:
    """Process a single SyncRequest.

    Flow:
    1. Plan group changes from the routing table (pure; unmapped → skipped)
    2. Resolve the sender to a contact UID (failure → event failed, no edits)
    3. Resolve group names to group identifiers
    4. Apply each edit independently: read card, edit, versioned write
    """

    def __init__(
        self,
        store: DirectoryStore,
        routing: RoutingTable,
        store_timeout_seconds: float = 20.0,
        conflict_retries: int = 1,
        marker_property: str = MEMBER_PROPERTY,
    ) -> None:
        self.store = TimeLimitedStore(store, store_timeout_seconds)
        self.routing = routing
        self.resolver = ContactResolver(self.store)
        self.conflict_retries = max(0, conflict_retries)
        self.marker_property = marker_property

    async def execute(self, request: SyncRequest) -> SyncOutcome:
        event = request.event
        outcome = SyncOutcome(request=request)

        planned = plan_membership_changes(event.folder, request.moved_from, self.routing)
        if not planned:
            logger.debug(f"No route for folder '{event.folder}', ignoring message {event.message_id}")
            outcome.state = SyncState.SKIPPED
            return outcome

        if not event.sender_address:
            logger.info(f"No sender address on message {event.message_id} in '{event.folder}', skipping")
            outcome.state = SyncState.SKIPPED
            return outcome

        if request.moved_from:
            logger.info(
                f"Message moved from {request.moved_from} to {event.folder}: "
                f"updating groups for {event.sender_address}"
            )

        try:
            outcome.contact_identifier = await self.resolver.resolve(event.sender_address, event.sender_name)
        except SyncError as e:
            logger.error(f"Could not resolve contact for {event.sender_address}: {e}")
            outcome.state = SyncState.FAILED
            outcome.error = str(e)
            return outcome
        outcome.state = SyncState.RESOLVED

        edits: list[tuple[Group, MembershipEdit]] = []
        for change in planned:
            try:
                group_id = await self.store.find_group_by_name(change.group_name)
            except SyncError as e:
                logger.error(f"Group lookup for '{change.group_name}' failed: {e}")
                outcome.edits.append(
                    EditReport(group_name=change.group_name, action=change.action, status=EditStatus.FAILED, error=str(e))
                )
                continue
            if group_id is None:
                logger.warning(f"Group '{change.group_name}' not found in directory, skipping {change.action.value}")
                outcome.edits.append(
                    EditReport(group_name=change.group_name, action=change.action, status=EditStatus.SKIPPED)
                )
                continue
            edits.append((
                Group(identifier=group_id, name=change.group_name),
                MembershipEdit(
                    group_identifier=group_id,
                    contact_identifier=outcome.contact_identifier,
                    action=change.action,
                ),
            ))
        outcome.state = SyncState.GROUPS_COMPUTED

        for group, edit in edits:
            outcome.edits.append(await self._apply(group, edit))

        failed = [r for r in outcome.edits if r.failed]
        if failed:
            outcome.state = SyncState.FAILED
            outcome.error = "; ".join(f"{r.group_name}: {r.error or r.status.value}" for r in failed)
        else:
            outcome.state = SyncState.APPLIED
        return outcome

    async def _apply(self, group: Group, edit: MembershipEdit) -> EditReport:
        report = EditReport(
            group_name=group.name,
            action=edit.action,
            status=EditStatus.FAILED,
            group_identifier=edit.group_identifier,
        )
        member = member_uri(edit.contact_identifier)

        for attempt in range(self.conflict_retries + 1):
            try:
                record = await self.store.read_group_record(edit.group_identifier)
                result = apply_membership_edit(record.raw_text, member, edit.action, self.marker_property)
                if not result.changed:
                    state = "in" if result.found else "absent from"
                    logger.debug(f"{member} already {state} '{group.name}'")
                    report.status = EditStatus.UNCHANGED
                    return report
                written = await self.store.write_group_record(edit.group_identifier, result.text, record.version)
            except SyncError as e:
                logger.error(f"{edit.action.value} {member} on '{group.name}' failed: {e}")
                report.error = str(e)
                return report
            except Exception as e:
                logger.exception(f"Unexpected error applying {edit.action.value} on '{group.name}': {e}")
                report.error = str(e)
                return report

            if written is WriteResult.OK:
                preposition = "to" if edit.action is MembershipAction.ADD else "from"
                logger.info(f"{edit.action.value.capitalize()} {member} {preposition} '{group.name}'")
                report.status = EditStatus.APPLIED
                return report
            logger.warning(
                f"Version conflict writing '{group.name}' (attempt {attempt + 1}/{self.conflict_retries + 1})"
            )

        report.status = EditStatus.CONFLICT
        report.error = "version conflict"
        return report
