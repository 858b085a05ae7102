"""CardDAV-backed directory store for contacts and contact groups."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional
from xml.sax.saxutils import escape

from loguru import logger
from vobject.base import Component

from screenersync.application.ports.directory_store import DirectoryStore
from screenersync.application.use_cases.resolve_contact import contact_uid_for
from screenersync.domain.entities.contact import Contact, GroupRecord
from screenersync.domain.errors import (
    CardFormatError,
    ContactResolutionError,
    DirectoryTransportError,
    GroupRecordError,
)
from screenersync.domain.models import WriteResult
from screenersync.domain.vcard import build_contact_card, get_value, get_values, is_group_card, parse_card
from screenersync.infrastructure.carddav_client import CardDavSession

DAV_NS = "DAV:"
CARDDAV_NS = "urn:ietf:params:xml:ns:carddav"
VCARD_CONTENT_TYPE = "text/vcard; charset=utf-8"

QUERY_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<C:addressbook-query xmlns:D="DAV:" xmlns:C="urn:ietf:params:xml:ns:carddav">
  <D:prop>
    <D:getetag/>
    <C:address-data/>
  </D:prop>
  <C:filter>
    <C:prop-filter name="{prop}">
      <C:text-match collation="i;unicode-casemap" match-type="equals">{value}</C:text-match>
    </C:prop-filter>
  </C:filter>
</C:addressbook-query>
"""


@dataclass(frozen=True)
class DavCard:
    href: str
    etag: Optional[str]
    data: str


def parse_multistatus(body: str) -> list[DavCard]:
    """Extract (href, etag, address-data) from a 207 multistatus body."""
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise DirectoryTransportError(f"Malformed multistatus response: {e}") from e

    cards: list[DavCard] = []
    for response in root.iter(f"{{{DAV_NS}}}response"):
        href = (response.findtext(f"{{{DAV_NS}}}href") or "").strip()
        for propstat in response.iter(f"{{{DAV_NS}}}propstat"):
            status = propstat.findtext(f"{{{DAV_NS}}}status") or ""
            if " 200 " not in f"{status} ":
                continue
            data = propstat.findtext(f".//{{{CARDDAV_NS}}}address-data")
            if not href or not data:
                continue
            etag = propstat.findtext(f".//{{{DAV_NS}}}getetag")
            cards.append(DavCard(href=href, etag=etag.strip() if etag else None, data=data))
    return cards


def _resource_name(href: str) -> str:
    name = href.rstrip("/").rsplit("/", 1)[-1]
    return name[:-4] if name.lower().endswith(".vcf") else name


class CardDavDirectoryStore(DirectoryStore):
    """Contacts and Apple-style group cards in a single CardDAV address book.

    Group identifiers are the absolute URLs of the group cards; contact
    identifiers are the cards' UIDs, which is what group member URNs refer to.
    """

    def __init__(self, session: CardDavSession) -> None:
        self.session = session

    async def _query(self, prop: str, value: str) -> list[DavCard]:
        response = await self.session.request(
            "REPORT",
            self.session.addressbook_url,
            headers={"Depth": "1", "Content-Type": "application/xml; charset=utf-8"},
            content=QUERY_TEMPLATE.format(prop=prop, value=escape(value)),
        )
        if response.status_code != 207:
            raise DirectoryTransportError(
                f"addressbook-query on {prop} returned HTTP {response.status_code}: {response.text[:200]}"
            )
        return parse_multistatus(response.text)

    async def _cards(self, prop: str, value: str) -> list[tuple[str, Component]]:
        """Query results as (href, parsed card); unreadable cards are skipped."""
        parsed: list[tuple[str, Component]] = []
        for card in await self._query(prop, value):
            try:
                parsed.append((card.href, parse_card(card.data)))
            except CardFormatError as e:
                logger.warning(f"Skipping {card.href}: {e}")
        return parsed

    async def find_contact_by_address(self, address: str) -> Optional[Contact]:
        wanted = address.strip().lower()
        matches: dict[str, Contact] = {}
        for href, card in await self._cards("EMAIL", address.strip()):
            if is_group_card(card):
                continue
            if wanted not in (e.lower() for e in get_values(card, "EMAIL")):
                continue
            identifier = get_value(card, "UID") or _resource_name(href)
            matches[identifier] = Contact(
                identifier=identifier,
                display_name=get_value(card, "FN") or "",
                address=address.strip(),
                href=self.session.resolve(href),
            )

        if len(matches) > 1:
            raise ContactResolutionError(
                f"{len(matches)} contacts share address {address}: {sorted(matches)}"
            )
        if not matches:
            logger.debug(f"No contact found for {address}")
            return None
        return next(iter(matches.values()))

    async def create_contact(self, display_name: str, address: str) -> str:
        uid = contact_uid_for(address)
        url = f"{self.session.addressbook_url}{uid}.vcf"
        response = await self.session.request(
            "PUT",
            url,
            headers={"Content-Type": VCARD_CONTENT_TYPE, "If-None-Match": "*"},
            content=build_contact_card(uid, display_name, address),
        )
        if response.status_code == 412:
            # Same deterministic resource already exists: someone created it first
            logger.info(f"Contact {uid} for {address} already exists")
            return uid
        if not response.is_success:
            raise DirectoryTransportError(f"Creating contact {address} returned HTTP {response.status_code}")
        return uid

    async def find_group_by_name(self, name: str) -> Optional[str]:
        wanted = name.strip().lower()
        for href, card in await self._cards("FN", name.strip()):
            if not is_group_card(card):
                continue
            if (get_value(card, "FN") or "").strip().lower() == wanted:
                return self.session.resolve(href)
        return None

    async def read_group_record(self, identifier: str) -> GroupRecord:
        response = await self.session.request("GET", identifier)
        if response.status_code == 404:
            raise GroupRecordError(f"Group card {identifier} not found")
        if not response.is_success:
            raise DirectoryTransportError(f"Reading group {identifier} returned HTTP {response.status_code}")
        text = response.text
        try:
            card = parse_card(text)
        except CardFormatError as e:
            # Broken folding is what the membership editor repairs
            logger.warning(f"Group card {identifier} does not parse cleanly, editing raw text: {e}")
        else:
            if not is_group_card(card):
                raise GroupRecordError(f"{identifier} is not a group card")
        return GroupRecord(identifier=identifier, raw_text=text, version=response.headers.get("ETag"))

    async def write_group_record(
        self, identifier: str, raw_text: str, expected_version: Optional[str]
    ) -> WriteResult:
        headers = {"Content-Type": VCARD_CONTENT_TYPE}
        if expected_version:
            headers["If-Match"] = expected_version
        response = await self.session.request("PUT", identifier, headers=headers, content=raw_text)
        if response.status_code == 412:
            return WriteResult.CONFLICT
        if not response.is_success:
            raise DirectoryTransportError(f"Writing group {identifier} returned HTTP {response.status_code}")
        return WriteResult.OK
