from __future__ import annotations

import asyncio
from typing import Optional

from screenersync.domain.entities.contact import Contact, GroupRecord
from screenersync.domain.models import WriteResult
from screenersync.domain.vcard import MEMBER_PROPERTY, member_values

CRLF = "\r\n"


def group_card(name: str, uid: str, members: tuple[str, ...] = ()) -> str:
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"UID:{uid}",
        f"FN:{name}",
        "X-ADDRESSBOOKSERVER-KIND:group",
    ]
    lines.extend(f"{MEMBER_PROPERTY}:urn:uuid:{m}" for m in members)
    lines.append("END:VCARD")
    return CRLF.join(lines) + CRLF


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryDirectoryStore:
    """DirectoryStore fake with call recording, injected failures and delays."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.contacts: dict[str, Contact] = {}
        self.groups: dict[str, str] = {}
        self.records: dict[str, GroupRecord] = {}
        self.calls: list[tuple] = []
        self.fail_on: dict[str, Exception] = {}
        self.hang_on: set[str] = set()
        self.conflicts = 0
        self.in_flight = 0
        self.max_in_flight = 0

    def add_contact(self, identifier: str, address: str, name: str = "") -> None:
        self.contacts[address.lower()] = Contact(identifier=identifier, display_name=name, address=address)

    def add_group(self, name: str, members: tuple[str, ...] = (), raw_text: Optional[str] = None) -> str:
        identifier = f"/addressbooks/user/default/{name.lower().replace(' ', '-')}.vcf"
        self.groups[name] = identifier
        text = raw_text if raw_text is not None else group_card(name, f"group-{len(self.groups)}", members)
        self.records[identifier] = GroupRecord(identifier=identifier, raw_text=text, version="1")
        return identifier

    def members(self, name: str) -> list[str]:
        return member_values(self.records[self.groups[name]].raw_text)

    async def _op(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if name in self.hang_on:
                await asyncio.sleep(3600)
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        error = self.fail_on.get(name)
        if error is not None:
            raise error

    async def find_contact_by_address(self, address: str) -> Optional[Contact]:
        await self._op("find_contact_by_address", address)
        return self.contacts.get(address.lower())

    async def create_contact(self, display_name: str, address: str) -> str:
        await self._op("create_contact", display_name, address)
        identifier = f"uid-{len(self.contacts) + 1}"
        self.add_contact(identifier, address, display_name)
        return identifier

    async def find_group_by_name(self, name: str) -> Optional[str]:
        await self._op("find_group_by_name", name)
        return self.groups.get(name)

    async def read_group_record(self, identifier: str) -> GroupRecord:
        await self._op("read_group_record", identifier)
        return self.records[identifier]

    async def write_group_record(self, identifier: str, raw_text: str, expected_version: Optional[str]) -> WriteResult:
        await self._op("write_group_record", identifier)
        current = self.records[identifier]
        if self.conflicts > 0:
            self.conflicts -= 1
            return WriteResult.CONFLICT
        if expected_version != current.version:
            return WriteResult.CONFLICT
        self.records[identifier] = GroupRecord(
            identifier=identifier,
            raw_text=raw_text,
            version=str(int(current.version or "0") + 1),
        )
        return WriteResult.OK

