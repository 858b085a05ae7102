from __future__ import annotations

import pytest

from screenersync.application.routing import FolderRoute, MoveRule, RoutingTable
from tests.helpers import FakeClock, InMemoryDirectoryStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryDirectoryStore:
    s = InMemoryDirectoryStore()
    s.add_group("Screened Out")
    s.add_group("The Feed")
    return s


@pytest.fixture
def routing() -> RoutingTable:
    return RoutingTable(
        folders={
            "INBOX": FolderRoute(remove_group="Screened Out"),
            "Screened Out": FolderRoute(add_group="Screened Out"),
            "The Feed": FolderRoute(add_group="The Feed", remove_group="Screened Out"),
        },
        moves=[MoveRule(source="Screener", destination="Trash", add_group="Screened Out")],
    )
