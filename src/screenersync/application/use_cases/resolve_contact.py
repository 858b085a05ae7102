"""Map a sender address to a directory contact, creating it when missing."""

from __future__ import annotations

import uuid

from loguru import logger

from screenersync.application.ports.directory_store import DirectoryStore
from screenersync.domain.errors import ContactResolutionError


def contact_uid_for(address: str) -> str:
    """Deterministic UID for a contact we create, stable across runs and hosts."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"mailto:{address.strip().lower()}"))


class ContactResolver:
    """
    Lookup-then-create for sender contacts.

    There is no lock around the two steps. Inside one process the serialized
    worker never runs two resolutions at once; across processes the
    deterministic UID makes a duplicate create land on the same card.
    """

    def __init__(self, store: DirectoryStore) -> None:
        self.store = store

    async def resolve(self, address: str, display_name: str = "") -> str:
        address = (address or "").strip()
        if not address or "@" not in address:
            raise ContactResolutionError(f"Not a usable sender address: {address!r}")

        existing = await self.store.find_contact_by_address(address)
        if existing is not None:
            if not existing.identifier:
                raise ContactResolutionError(f"Contact for {address} has no identifier")
            logger.debug(f"Resolved {address} to existing contact {existing.identifier}")
            return existing.identifier

        identifier = await self.store.create_contact(display_name.strip(), address)
        logger.info(f"Created contact {identifier} for {address}")
        return identifier
