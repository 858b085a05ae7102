"""Folding-safe editing of group membership lines inside a group card.

Group cards list their members as one property line per member, e.g.::

    X-ADDRESSBOOKSERVER-MEMBER:urn:uuid:3f2a...

Servers (and earlier broken writers) may leave lines starting with whitespace
after a member line. The editor classifies every line as a member marker, a
continuation, or anything else. A marker keeps only its own value; the
continuation lines that follow it are dropped and never re-emitted. Everything
that is not a marker or one of its continuations is passed through untouched,
in order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from screenersync.domain.models import MembershipAction
from screenersync.domain.vcard import MEMBER_PROPERTY

CRLF = "\r\n"
LINE_SPLIT = re.compile(r"\r?\n")
CONTINUATION_CHARS = (" ", "\t")
END_LINE = "END:VCARD"


class LineKind(str, Enum):
    MARKER = "marker"
    CONTINUATION = "continuation"
    OTHER = "other"


@dataclass(frozen=True)
class MembershipEditResult:
    text: str
    found: bool
    changed: bool


def split_lines(text: str) -> tuple[list[str], str]:
    """Split a record into lines, returning them with the terminator to rejoin."""
    return LINE_SPLIT.split(text), CRLF if CRLF in text else "\n"


def is_continuation(line: str) -> bool:
    """A folded line: non-empty and starting with a space or tab."""
    return bool(line) and line[0] in CONTINUATION_CHARS


def _is_end(line: str) -> bool:
    return line.strip().upper() == END_LINE


def _name_value_split(line: str) -> int:
    # First colon outside a quoted parameter value
    quoted = False
    for idx, ch in enumerate(line):
        if ch == '"':
            quoted = not quoted
        elif ch == ":" and not quoted:
            return idx
    return -1


def property_name(line: str) -> Optional[str]:
    """Upper-cased property name of a content line, without group prefix or params."""
    if not line or is_continuation(line):
        return None
    idx = _name_value_split(line)
    if idx <= 0:
        return None
    name = line[:idx].split(";", 1)[0]
    if "." in name:
        name = name.rsplit(".", 1)[1]
    return name.strip().upper() or None


def property_value(line: str) -> str:
    idx = _name_value_split(line)
    return line[idx + 1:] if idx >= 0 else ""


def member_uri(contact_identifier: str) -> str:
    """URN used as the member value for a contact UID."""
    if contact_identifier.lower().startswith("urn:"):
        return contact_identifier
    return f"urn:uuid:{contact_identifier}"


def classify_line(line: str, marker_property: str = MEMBER_PROPERTY) -> LineKind:
    if is_continuation(line):
        return LineKind.CONTINUATION
    if property_name(line) == marker_property.upper():
        return LineKind.MARKER
    return LineKind.OTHER


def _end_index(lines: list[str]) -> int:
    for idx, line in enumerate(lines):
        if _is_end(line):
            return idx
    # No END line: append, but keep a trailing terminator last
    if lines and lines[-1] == "":
        return len(lines) - 1
    return len(lines)


def apply_membership_edit(
    raw_text: str,
    member: str,
    action: MembershipAction,
    marker_property: str = MEMBER_PROPERTY,
) -> MembershipEditResult:
    """Add or remove one member marker line.

    Args:
        raw_text: The group card as stored.
        member: Member value to add/remove (usually ``urn:uuid:<uid>``).
        action: ADD or REMOVE.
        marker_property: Property carrying the member list.

    Returns:
        The rewritten card. ``found`` tells whether the member was present
        before the edit; ``changed`` whether the text differs from the input.
    """
    lines, terminator = split_lines(raw_text)
    target = member.strip().lower()

    out: list[str] = []
    emitted: set[str] = set()
    found = False

    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1
        kind = classify_line(line, marker_property)
        if kind is LineKind.CONTINUATION and _is_end(line):
            # An indented boundary line still closes the card
            out.append(END_LINE)
            continue
        if kind is not LineKind.MARKER:
            out.append(line)
            continue

        # Continuations of a marker are dropped, never emitted or joined
        while i < len(lines) and is_continuation(lines[i]) and not _is_end(lines[i]):
            i += 1

        key = property_value(line).strip().lower()
        if not key:
            continue
        if key == target:
            found = True
            if action is MembershipAction.REMOVE:
                continue
        if key in emitted:
            continue
        emitted.add(key)
        out.append(line)

    if action is MembershipAction.ADD and not found:
        out.insert(_end_index(out), f"{marker_property}:{member.strip()}")

    text = terminator.join(out)
    return MembershipEditResult(text=text, found=found, changed=text != raw_text)
