"""vCard reading and building on top of vobject.

Cards fetched from the directory are parsed with vobject for identity checks
(UID, FN, EMAIL, group kind). Group membership lines are never rewritten
through vobject: the membership editor works on the stored text so that
everything it does not touch goes back to the server byte-for-byte.
"""

from __future__ import annotations

from typing import Optional

import vobject
from vobject.base import Component, ParseError

from screenersync.domain.errors import CardFormatError

GROUP_KIND_PROPERTY = "X-ADDRESSBOOKSERVER-KIND"
MEMBER_PROPERTY = "X-ADDRESSBOOKSERVER-MEMBER"


def parse_card(text: str) -> Component:
    """Parse the first vCard in ``text``."""
    try:
        return vobject.readOne(text)
    except (ParseError, StopIteration) as e:
        raise CardFormatError(f"Unreadable vCard: {e or 'empty record'}") from e


def get_values(card: Component, name: str) -> list[str]:
    return [str(line.value).strip() for line in card.contents.get(name.lower(), [])]


def get_value(card: Component, name: str) -> Optional[str]:
    values = get_values(card, name)
    return values[0] if values else None


def is_group_card(card: Component) -> bool:
    return any(v.lower() == "group" for v in get_values(card, GROUP_KIND_PROPERTY))


def member_values(text: str) -> list[str]:
    """Member URNs listed on a group card."""
    return get_values(parse_card(text), MEMBER_PROPERTY)


def build_contact_card(uid: str, display_name: str, address: str) -> str:
    """vCard 3.0 for a newly discovered sender."""
    name = display_name or address
    card = vobject.vCard()
    card.add("uid").value = uid
    card.add("fn").value = name
    card.add("n").value = vobject.vcard.Name(given=name)
    email = card.add("email")
    email.value = address
    email.type_param = "INTERNET"
    return card.serialize()


def build_group_card(uid: str, name: str) -> str:
    card = vobject.vCard()
    card.add("uid").value = uid
    card.add("fn").value = name
    card.add("n").value = vobject.vcard.Name(family=name)
    card.add(GROUP_KIND_PROPERTY.lower()).value = "group"
    return card.serialize()
