"""Shared test helpers."""

from whodunit.ballots import BallotTracker
from whodunit.clock import SessionClock
from whodunit.scoring import ScoreAccumulator
from whodunit.stores.memory import MemoryStore
from whodunit.suspects import RevealSchedule, build_gallery

SECOND = 1000


def make_session(window_seconds: float = 20, store=None, reveal_at=None):
    """Build a store, clock and ballot tracker over the default gallery.

    Returns:
        (store, clock, tracker)
    """
    store = store if store is not None else MemoryStore()
    clock = SessionClock(store, window_seconds)
    tracker = BallotTracker(store, clock, build_gallery(), RevealSchedule(reveal_at))
    return store, clock, tracker


def make_accumulator(participant: str = "alice", target: int = 1, window_seconds: float = 20):
    """Build an accumulator for one participant on a fresh session.

    Returns:
        (store, clock, tracker, accumulator)
    """
    store, clock, tracker = make_session(window_seconds)
    accumulator = ScoreAccumulator(participant, clock, tracker, store, target)
    return store, clock, tracker, accumulator


def rows_by_key(store, table: str, key: str = "user_name") -> dict:
    return {row[key]: row for row in store.select_all(table)}
