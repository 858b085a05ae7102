from __future__ import annotations

import pytest

from screenersync.domain.errors import CardFormatError
from screenersync.domain.vcard import (
    GROUP_KIND_PROPERTY,
    build_contact_card,
    build_group_card,
    get_value,
    get_values,
    is_group_card,
    member_values,
    parse_card,
)
from tests.helpers import group_card


class TestBuildContactCard:
    def test_fields(self):
        card = parse_card(build_contact_card("u1", "Alice", "alice@example.com"))

        assert get_value(card, "UID") == "u1"
        assert get_value(card, "FN") == "Alice"
        assert get_values(card, "EMAIL") == ["alice@example.com"]
        assert card.email.type_param == "INTERNET"
        assert not is_group_card(card)

    def test_crlf_terminated(self):
        text = build_contact_card("u1", "Alice", "alice@example.com")

        assert text.startswith("BEGIN:VCARD\r\nVERSION:3.0\r\n")
        assert text.endswith("END:VCARD\r\n")

    def test_special_characters_are_escaped(self):
        text = build_contact_card("u1", "Doe, John; Jr", "x@example.com")

        assert "FN:Doe\\, John\\; Jr\r\n" in text
        assert get_value(parse_card(text), "FN") == "Doe, John; Jr"

    def test_long_names_are_folded(self):
        name = "A" * 120
        text = build_contact_card("u1", name, "x@example.com")

        assert all(len(line.encode()) <= 75 for line in text.split("\r\n"))
        assert get_value(parse_card(text), "FN") == name

    def test_address_is_used_without_display_name(self):
        card = parse_card(build_contact_card("u1", "", "x@example.com"))

        assert get_value(card, "FN") == "x@example.com"


def test_build_group_card():
    card = parse_card(build_group_card("g1", "Screened Out"))

    assert is_group_card(card)
    assert get_value(card, "FN") == "Screened Out"
    assert get_value(card, GROUP_KIND_PROPERTY) == "group"
    assert member_values(build_group_card("g1", "Screened Out")) == []


def test_member_values():
    assert member_values(group_card("Screened Out", "g1", ("A", "B"))) == ["urn:uuid:A", "urn:uuid:B"]


def test_folded_lines_are_unfolded_when_reading():
    text = "BEGIN:VCARD\r\nVERSION:3.0\r\nFN:Scree\r\n ned Out\r\nEND:VCARD\r\n"

    assert get_value(parse_card(text), "FN") == "Screened Out"


@pytest.mark.parametrize(
    "text",
    [
        "",
        "not a vcard",
        "BEGIN:VCARD\r\nFN:Alice\r\n",
    ],
)
def test_unreadable_card(text):
    with pytest.raises(CardFormatError):
        parse_card(text)
