from __future__ import annotations
from typing import Optional, Protocol

from screenersync.domain.entities.contact import Contact, GroupRecord
from screenersync.domain.models import WriteResult


class DirectoryStore(Protocol):
    # Contact/group directory. Every method is a network round trip.
    async def find_contact_by_address(self, address: str) -> Optional[Contact]: ...
    async def create_contact(self, display_name: str, address: str) -> str: ...
    async def find_group_by_name(self, name: str) -> Optional[str]: ...
    async def read_group_record(self, identifier: str) -> GroupRecord: ...
    async def write_group_record(
        self, identifier: str, raw_text: str, expected_version: Optional[str]
    ) -> WriteResult: ...
