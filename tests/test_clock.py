"""Tests for the shared session clock."""

from unittest.mock import MagicMock

import pytest
from tests.conftest import SECOND, make_session, rows_by_key

from whodunit.clock import SessionClock
from whodunit.models import Ballot, ScoreRecord
from whodunit.stores.base import StoreError
from whodunit.stores.memory import MemoryStore


class TestElapsed:
    def setup_method(self):
        self.store, self.clock, _ = make_session(window_seconds=20)

    def test_not_started(self):
        assert not self.clock.is_started
        assert self.clock.elapsed_ms(5 * SECOND) is None
        assert not self.clock.is_window_closed(10_000 * SECOND)

    def test_elapsed_after_start(self):
        self.clock.start(1000)
        assert self.clock.elapsed_ms(1000 + 7 * SECOND) == 7 * SECOND

    def test_elapsed_never_negative(self):
        self.clock.start(50_000)
        assert self.clock.elapsed_ms(40_000) == 0

    def test_window_closes_at_w(self):
        self.clock.start(0)
        assert not self.clock.is_window_closed(20 * SECOND - 1)
        assert self.clock.is_window_closed(20 * SECOND)

    def test_rejects_non_positive_window(self):
        with pytest.raises(ValueError):
            SessionClock(MemoryStore(), 0)


class TestStart:
    def setup_method(self):
        self.store, self.clock, self.tracker = make_session()

    def test_start_publishes_epoch(self):
        assert self.clock.start(1234) is True
        assert self.store.select_all("session") == [{"id": 1, "started_at": 1234}]

    def test_start_clears_ballots_and_scores(self):
        self.store.upsert("votes", "user_name", {"user_name": "old", "image_id": 4})
        self.store.upsert("scores", "user_name", {"user_name": "old", "percentage": 50.0})
        self.clock.start(0)
        assert self.store.select_all(Ballot.TABLE) == []
        assert self.store.select_all(ScoreRecord.TABLE) == []
        assert self.tracker.tally() == {i: 0 for i in range(1, 13)}

    def test_second_start_is_noop(self):
        self.clock.start(0)
        self.tracker.cast_vote("alice", 2, 5 * SECOND)
        assert self.clock.start(6 * SECOND) is False
        assert self.clock.started_at == 0
        assert rows_by_key(self.store, "votes")["alice"]["image_id"] == 2

    def test_concurrent_clients_only_one_resets(self):
        other = SessionClock(self.store, 20)
        assert self.clock.start(100) is True
        self.tracker.cast_vote("alice", 3, 200)

        # The other admin device has not seen the start yet
        assert other.started_at is None
        assert other.start(150) is False
        assert other.started_at == 100
        assert rows_by_key(self.store, "votes")["alice"]["image_id"] == 3

    def test_start_after_reset(self):
        self.clock.start(0)
        self.clock.reset()
        assert self.clock.start(99) is True
        assert self.clock.started_at == 99

    def test_store_failure_allows_retry(self):
        store = MagicMock()
        store.write_if_null.side_effect = StoreError("offline")
        clock = SessionClock(store, 20)
        assert clock.start(0) is False
        assert clock.started_at is None

        store.write_if_null.side_effect = None
        store.write_if_null.return_value = True
        assert clock.start(10) is True
        assert clock.started_at == 10

    def test_bind_trigger(self):
        trigger = self.clock.bind_trigger(now_fn=lambda: 4242)
        assert trigger() is True
        assert self.clock.started_at == 4242
        assert trigger() is False


class TestRefresh:
    def setup_method(self):
        self.store = MemoryStore()
        self.admin = SessionClock(self.store, 20)
        self.client = SessionClock(self.store, 20)

    def test_not_started_until_observed(self):
        self.admin.start(500)
        # Not yet polled: no default of "now" or zero
        assert self.client.started_at is None
        assert self.client.refresh() == 500
        assert self.client.elapsed_ms(1500) == 1000

    def test_failed_poll_keeps_last_known(self):
        self.admin.start(500)
        self.client.refresh()
        self.client.store = MagicMock()
        self.client.store.select_all.side_effect = StoreError("timeout")
        assert self.client.refresh() == 500

    def test_malformed_row_is_not_started(self):
        self.store.upsert("session", "id", {"id": 1, "started_at": "yesterday"})
        assert self.client.refresh() is None

    def test_other_session_rows_ignored(self):
        self.store.upsert("session", "id", {"id": 2, "started_at": 77})
        assert self.client.refresh() is None

    def test_observes_reset(self):
        self.admin.start(500)
        self.client.refresh()
        self.admin.reset()
        assert self.client.refresh() is None


class TestReset:
    def test_reset_without_session_is_noop(self):
        store, clock, tracker = make_session()
        clock.reset()
        assert clock.started_at is None
        assert store.select_all("session") == [{"id": 1, "started_at": None}]

    def test_reset_clears_everything(self):
        store, clock, tracker = make_session()
        clock.start(0)
        tracker.cast_vote("alice", 1, 1000)
        store.upsert("scores", "user_name", {"user_name": "alice", "percentage": 5.0})
        clock.reset()
        assert clock.started_at is None
        assert store.select_all("votes") == []
        assert store.select_all("scores") == []

    def test_reset_survives_partial_failure(self):
        store = MagicMock()
        store.upsert.side_effect = StoreError("down")
        clock = SessionClock(store, 20)
        clock.reset()
        assert store.delete_all.call_count == 2
