from __future__ import annotations
from datetime import datetime, timezone
from email import policy
from email.parser import BytesParser
from email.utils import parseaddr
from typing import Any, Iterable, Optional

from screenersync.domain.entities.mail_event import MailEvent

HEADER_FIELDS = "(BODY.PEEK[HEADER.FIELDS (FROM MESSAGE-ID)])"


def _first_sender(em) -> tuple[str, str]:
    header = em.get("From")
    if header is None:
        return "", ""
    try:
        addresses = header.addresses
    except AttributeError:
        addresses = ()
    if addresses:
        return addresses[0].display_name.strip(), addresses[0].addr_spec.strip()
    # Malformed From: fall back to the lenient legacy parser
    name, addr = parseaddr(str(header))
    return name.strip().strip('"'), addr.strip()


def headers_to_mail_event(
    folder: str,
    header_bytes: bytes,
    observed_at: Optional[datetime] = None,
) -> MailEvent:
    em = BytesParser(policy=policy.default).parsebytes(header_bytes, headersonly=True)

    sender_name, sender_address = _first_sender(em)

    raw_mid = str(em.get("Message-ID") or "").strip()
    message_id = raw_mid.strip("<>").strip() or None

    return MailEvent(
        folder=folder,
        sender_name=sender_name,
        sender_address=sender_address,
        message_id=message_id,
        observed_at=observed_at or datetime.now(timezone.utc),
    )


def parse_search_uids(lines: Iterable[Any]) -> list[int]:
    # UID SEARCH answers with one line of numbers next to the completion text
    uids: list[int] = []
    for line in lines:
        if isinstance(line, (bytes, bytearray)):
            line = bytes(line).decode("ascii", errors="ignore")
        text = str(line).strip()
        if text.upper().startswith("SEARCH"):
            text = text[len("SEARCH"):].strip()
        tokens = text.split()
        if tokens and all(t.isdigit() for t in tokens):
            uids.extend(int(t) for t in tokens)
    return uids


def header_literal(lines: Iterable[Any]) -> Optional[bytes]:
    """The header block of a FETCH response (the literal arrives as a bytearray)."""
    for line in lines:
        if isinstance(line, bytearray):
            return bytes(line)
    return None


def quote_mailbox(name: str) -> str:
    if name.startswith('"') or not any(c in name for c in ' "\\()'):
        return name
    return '"' + name.replace("\\", "\\\\").replace('"', '\\"') + '"'
