"""Directory store that reports mutations instead of performing them."""

from __future__ import annotations

from typing import Optional

from loguru import logger

from screenersync.application.ports.directory_store import DirectoryStore
from screenersync.application.use_cases.resolve_contact import contact_uid_for
from screenersync.domain.entities.contact import Contact, GroupRecord
from screenersync.domain.models import WriteResult
from screenersync.domain.vcard import build_group_card, member_values

DRY_RUN_PREFIX = "dry-run:"


class DryRunDirectoryStore(DirectoryStore):
    """
    Wraps an optional real store. Reads go to the inner store when there is
    one; without it they return synthetic answers so the whole pipeline can be
    exercised offline. Writes are logged with their intended effect and
    reported as successful.
    """

    def __init__(self, inner: Optional[DirectoryStore] = None) -> None:
        self.inner = inner
        self.intended: list[str] = []

    def _report(self, effect: str) -> None:
        self.intended.append(effect)
        logger.info(f"[dry-run] {effect}")

    async def find_contact_by_address(self, address: str) -> Optional[Contact]:
        if self.inner is not None:
            return await self.inner.find_contact_by_address(address)
        return None

    async def create_contact(self, display_name: str, address: str) -> str:
        uid = contact_uid_for(address)
        self._report(f"create contact {uid} name={display_name!r} address={address}")
        return uid

    async def find_group_by_name(self, name: str) -> Optional[str]:
        if self.inner is not None:
            return await self.inner.find_group_by_name(name)
        return f"{DRY_RUN_PREFIX}{name}"

    async def read_group_record(self, identifier: str) -> GroupRecord:
        if self.inner is not None and not identifier.startswith(DRY_RUN_PREFIX):
            return await self.inner.read_group_record(identifier)
        name = identifier[len(DRY_RUN_PREFIX):]
        return GroupRecord(identifier=identifier, raw_text=build_group_card(identifier, name))

    async def write_group_record(
        self, identifier: str, raw_text: str, expected_version: Optional[str]
    ) -> WriteResult:
        members = member_values(raw_text)
        self._report(
            f"write group {identifier} (version={expected_version}) with {len(members)} member(s): {members}"
        )
        return WriteResult.OK
