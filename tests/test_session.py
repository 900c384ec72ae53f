"""Tests for the participant client."""

import threading
from unittest.mock import MagicMock

from tests.conftest import SECOND, rows_by_key

from whodunit.clock import SessionClock
from whodunit.config import Settings
from whodunit.session import ParticipantClient
from whodunit.stores.base import StoreError
from whodunit.stores.memory import MemoryStore


class TestParticipantClient:
    def setup_method(self):
        self.store = MemoryStore()
        self.settings = Settings(window_seconds=20, target_suspect_id=3)
        self.admin = SessionClock(self.store, 20)

    def test_push_delivers_start(self):
        client = ParticipantClient("alice", self.store, self.settings)
        assert client.pushed
        self.admin.start(1000)
        assert client.clock.started_at == 1000

    def test_polls_without_push(self):
        store = MagicMock(wraps=self.store)
        store.subscribe.return_value = False
        client = ParticipantClient("alice", store, self.settings)
        self.admin.start(1000)
        assert client.clock.started_at is None
        client.step(2000)
        assert client.clock.started_at == 1000

    def test_polls_at_poll_interval(self):
        store = MagicMock(wraps=self.store)
        store.subscribe.return_value = False
        settings = Settings(window_seconds=20, target_suspect_id=3, poll_interval=3.0)
        client = ParticipantClient("alice", store, settings)
        assert client.step(0) is None
        self.admin.start(500)
        assert client.step(1000) is None
        assert client.clock.started_at is None
        client.step(3000)
        assert client.clock.started_at == 500

    def test_vote_and_score(self):
        client = ParticipantClient("alice", self.store, self.settings)
        self.admin.start(0)
        assert client.vote(3, 0)
        client.step(10 * SECOND)
        assert rows_by_key(self.store, "scores")["alice"]["percentage"] == 50.0

    def test_join_restores_vote(self):
        first = ParticipantClient("alice", self.store, self.settings)
        self.admin.start(0)
        first.vote(3, 0)

        reloaded = ParticipantClient("alice", self.store, self.settings)
        assert reloaded.join() == 3
        assert reloaded.clock.started_at == 0

    def test_vote_restored_before_start_earns_nothing(self):
        self.store.upsert("votes", "user_name", {"user_name": "alice", "image_id": 3})
        client = ParticipantClient("alice", self.store, self.settings)
        assert client.join() == 3
        self.admin.start(0)
        assert self.store.select_all("votes") == []
        client.step(0)
        client.step(10 * SECOND)
        assert rows_by_key(self.store, "scores")["alice"]["percentage"] == 0.0

    def test_two_clients_score_independently(self):
        alice = ParticipantClient("alice", self.store, self.settings)
        bob = ParticipantClient("bob", self.store, self.settings)
        self.admin.start(0)
        alice.vote(3, 0)
        bob.vote(1, 0)
        for t in (5, 10, 20):
            alice.step(t * SECOND)
            bob.step(t * SECOND)
        scores = rows_by_key(self.store, "scores")
        assert scores["alice"]["percentage"] == 100.0
        assert scores["bob"]["percentage"] == 0.0

    def test_run_stops_when_frozen(self):
        times = iter([0, 5 * SECOND, 25 * SECOND])
        client = ParticipantClient("alice", self.store, self.settings, now_fn=lambda: next(times))
        self.admin.start(0)
        stop = MagicMock(spec=threading.Event)
        stop.is_set.return_value = False
        record = client.run(stop)
        assert client.accumulator.finished
        assert record.participant == "alice"
        assert stop.wait.call_count == 2

    def test_run_honours_stop(self):
        client = ParticipantClient("alice", self.store, self.settings, now_fn=lambda: 0)
        stop = threading.Event()
        stop.set()
        assert client.run(stop) is None

    def test_run_retries_failed_final_publish(self):
        times = iter([0, 10 * SECOND, 20 * SECOND, 21 * SECOND])
        client = ParticipantClient("alice", self.store, self.settings, now_fn=lambda: next(times))
        self.admin.start(0)
        client.vote(3, 0)
        client.accumulator.store = MagicMock()
        client.accumulator.store.upsert.side_effect = [None, None, StoreError("offline"), None]
        stop = MagicMock(spec=threading.Event)
        stop.is_set.return_value = False

        record = client.run(stop)
        assert record.percentage == 100.0
        assert client.accumulator.settled
        assert stop.wait.call_count == 3
        client.accumulator.store.upsert.assert_called_with(
            "scores", "user_name", {"user_name": "alice", "percentage": 100.0}
        )
