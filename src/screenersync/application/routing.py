"""Folder → group routing table and the pure planning step of a sync."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from screenersync.application.recent_messages import normalize_folder
from screenersync.domain.models import MembershipAction, PlannedChange


class FolderRoute(BaseModel):
    """Group changes for mail arriving directly in a folder."""

    add_group: Optional[str] = None
    remove_group: Optional[str] = None


class MoveRule(BaseModel):
    """Group changes for mail moved from ``source`` into ``destination``."""

    source: str
    destination: str
    add_group: Optional[str] = None
    remove_group: Optional[str] = None


class RoutingTable(BaseModel):
    folders: dict[str, FolderRoute] = Field(default_factory=dict)
    moves: list[MoveRule] = Field(default_factory=list)

    def route_for(self, folder: str) -> Optional[FolderRoute]:
        wanted = normalize_folder(folder)
        for name, route in self.folders.items():
            if normalize_folder(name) == wanted:
                return route
        return None

    def move_rule_for(self, source: str, destination: str) -> Optional[MoveRule]:
        src, dst = normalize_folder(source), normalize_folder(destination)
        for rule in self.moves:
            if normalize_folder(rule.source) == src and normalize_folder(rule.destination) == dst:
                return rule
        return None

    def folder_names(self) -> list[str]:
        """Every folder the table refers to, in declaration order."""
        names = list(self.folders)
        for rule in self.moves:
            names.extend([rule.source, rule.destination])
        return names


def _changes(add_group: Optional[str], remove_group: Optional[str]) -> list[PlannedChange]:
    changes: list[PlannedChange] = []
    if remove_group:
        changes.append(PlannedChange(group_name=remove_group, action=MembershipAction.REMOVE))
    if add_group:
        changes.append(PlannedChange(group_name=add_group, action=MembershipAction.ADD))
    return changes


def plan_membership_changes(
    folder: str,
    moved_from: Optional[str],
    table: RoutingTable,
) -> list[PlannedChange]:
    """Decide which group changes an event implies.

    A detected move with a matching move rule takes precedence over the plain
    folder route. Unmapped folders yield no changes.
    """
    if moved_from:
        rule = table.move_rule_for(moved_from, folder)
        if rule is not None:
            return _changes(rule.add_group, rule.remove_group)

    route = table.route_for(folder)
    if route is None:
        return []
    return _changes(route.add_group, route.remove_group)
