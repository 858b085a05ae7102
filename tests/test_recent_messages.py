from __future__ import annotations

import asyncio

import pytest

from screenersync.application.move_detector import MoveDetector
from screenersync.application.recent_messages import RecentMessageLedger
from screenersync.application.routing import MoveRule


@pytest.fixture
def ledger(clock) -> RecentMessageLedger:
    return RecentMessageLedger(ttl_seconds=60, clock=clock)


class TestRecentMessageLedger:
    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            RecentMessageLedger(ttl_seconds=0)

    def test_remember_and_lookup(self, ledger):
        ledger.remember("Screener", "m1")

        assert ledger.was_recently_seen("Screener", "m1")
        assert not ledger.was_recently_seen("Trash", "m1")
        assert not ledger.was_recently_seen("Screener", "m2")

    def test_folder_key_is_trimmed_and_case_insensitive(self, ledger):
        ledger.remember("  Screener ", "m1")

        assert ledger.was_recently_seen("screener", "m1")
        assert ledger.was_recently_seen("SCREENER", "m1")

    def test_missing_message_id_is_ignored(self, ledger):
        ledger.remember("Screener", None)
        ledger.remember("Screener", "   ")

        assert len(ledger) == 0
        assert not ledger.was_recently_seen("Screener", None)

    def test_expired_record_is_not_reported_before_eviction(self, ledger, clock):
        ledger.remember("Screener", "m1")
        clock.advance(59)
        assert ledger.was_recently_seen("Screener", "m1")

        clock.advance(1)

        # still stored, but past the TTL
        assert len(ledger) == 1
        assert not ledger.was_recently_seen("Screener", "m1")

    def test_repeat_observation_refreshes_timestamp(self, ledger, clock):
        ledger.remember("Screener", "m1")
        clock.advance(50)
        ledger.remember("Screener", "m1")
        clock.advance(50)

        assert len(ledger) == 1
        assert ledger.was_recently_seen("Screener", "m1")

    def test_remember_purges_expired_records(self, ledger, clock):
        ledger.remember("Screener", "m1")
        clock.advance(61)

        ledger.remember("Screener", "m2")

        assert len(ledger) == 1

    def test_consume(self, ledger, clock):
        ledger.remember("Screener", "m1")

        assert ledger.consume("Screener", "m1") is True
        assert not ledger.was_recently_seen("Screener", "m1")
        assert ledger.consume("Screener", "m1") is False

    def test_consume_expired_record(self, ledger, clock):
        ledger.remember("Screener", "m1")
        clock.advance(120)

        assert ledger.consume("Screener", "m1") is False
        assert len(ledger) == 0

    def test_purge_expired(self, ledger, clock):
        ledger.remember("Screener", "m1")
        clock.advance(30)
        ledger.remember("Screener", "m2")
        clock.advance(30)

        assert ledger.purge_expired() == 1
        assert ledger.was_recently_seen("Screener", "m2")

    @pytest.mark.asyncio
    async def test_timer_evicts_record(self):
        ledger = RecentMessageLedger(ttl_seconds=0.01)
        ledger.remember("Screener", "m1")
        assert len(ledger) == 1

        await asyncio.sleep(0.05)

        assert len(ledger) == 0

    @pytest.mark.asyncio
    async def test_stale_timer_keeps_refreshed_record(self, clock):
        ledger = RecentMessageLedger(ttl_seconds=60, clock=clock)
        ledger.remember("Screener", "m1")
        clock.advance(10)
        ledger.remember("Screener", "m1")

        # timer armed by the first observation
        ledger._evict(("screener", "m1"), 1000.0)

        assert ledger.was_recently_seen("Screener", "m1")


class TestMoveDetector:
    def test_trash_after_screener_within_ttl(self, ledger):
        ledger.remember("Screener", "m1")
        detector = MoveDetector(ledger)

        assert detector.detect_move_from("Trash", "Screener", "m1") == "Screener"

    def test_outside_window(self, ledger, clock):
        ledger.remember("Screener", "m1")
        clock.advance(60)

        assert MoveDetector(ledger).detect_move_from("Trash", "Screener", "m1") is None

    def test_not_seen_in_source(self, ledger):
        ledger.remember("INBOX", "m1")

        assert MoveDetector(ledger).detect_move_from("Trash", "Screener", "m1") is None

    def test_missing_message_id(self, ledger):
        ledger.remember("Screener", "m1")

        assert MoveDetector(ledger).detect_move_from("Trash", "Screener", None) is None
        assert MoveDetector(ledger).detect_move_from("Trash", "Screener", "") is None

    def test_same_folder_is_not_a_move(self, ledger):
        ledger.remember("Screener", "m1")

        assert MoveDetector(ledger).detect_move_from("screener", "Screener", "m1") is None

    def test_does_not_mutate_ledger(self, ledger):
        ledger.remember("Screener", "m1")
        detector = MoveDetector(ledger)

        detector.detect_move_from("Trash", "Screener", "m1")
        detector.detect_move_from("Trash", "Screener", "m1")

        assert len(ledger) == 1
        assert ledger.was_recently_seen("Screener", "m1")

    def test_detect_chains_rules_for_destination(self, ledger):
        rules = [
            MoveRule(source="Screener", destination="Trash", add_group="Screened Out"),
            MoveRule(source="The Feed", destination="Trash", remove_group="The Feed"),
            MoveRule(source="INBOX", destination="Archive"),
        ]
        ledger.remember("The Feed", "m1")
        ledger.remember("INBOX", "m2")
        detector = MoveDetector(ledger)

        assert detector.detect("trash", "m1", rules) == "The Feed"
        assert detector.detect("Trash", "m2", rules) is None
        assert detector.detect("Trash", None, rules) is None
