from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Contact:
    identifier: str
    display_name: str
    address: str
    href: Optional[str] = None


@dataclass(frozen=True)
class Group:
    identifier: str
    name: str


@dataclass(frozen=True)
class GroupRecord:
    """Raw group card as read from the directory, with its version tag (ETag)."""
    identifier: str
    raw_text: str
    version: Optional[str] = None
