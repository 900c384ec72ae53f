"""A participant's client: voting plus the periodic scoring loop."""

import logging
import threading
from typing import Callable

from whodunit.ballots import BallotTracker
from whodunit.clock import SessionClock, now_ms
from whodunit.config import Settings
from whodunit.models import ScoreRecord, SessionState, Suspect
from whodunit.scoring import ScoreAccumulator
from whodunit.stores.base import DataStore
from whodunit.suspects import build_gallery

logger = logging.getLogger(__name__)


class ParticipantClient:
    """Everything one participant's device runs.

    Each client keeps its own clock view, ballot view and score accumulator;
    the only thing shared with other clients is the store. If the store
    supports push, session start changes are picked up as they happen,
    otherwise the clock is polled every ``poll_interval`` seconds.
    """

    def __init__(
        self,
        participant: str,
        store: DataStore,
        settings: Settings,
        gallery: list[Suspect] | None = None,
        now_fn: Callable[[], int] = now_ms,
    ) -> None:
        self.participant = participant
        self.settings = settings
        self.now_fn = now_fn
        self.clock = SessionClock(store, settings.window_seconds, settings.session_id)
        self.tracker = BallotTracker(
            store, self.clock, gallery or build_gallery(), settings.reveal_schedule()
        )
        self.accumulator = ScoreAccumulator(
            participant, self.clock, self.tracker, store, settings.target_suspect_id
        )
        self.pushed = store.subscribe(SessionState.TABLE, self._on_session_change)
        self._next_poll: int | None = None

    def _on_session_change(self, table: str) -> None:
        self.clock.refresh()

    def join(self) -> int | None:
        """Pick up the shared start time and any ballot cast before a reload."""
        self.clock.refresh()
        return self.tracker.load_vote(self.participant)

    def vote(self, suspect_id: int, now: int | None = None) -> bool:
        return self.tracker.cast_vote(
            self.participant, suspect_id, self.now_fn() if now is None else now
        )

    def step(self, now: int | None = None) -> ScoreRecord | None:
        """One iteration of the loop: poll the clock if due, then tick."""
        if now is None:
            now = self.now_fn()
        if not self.pushed and (self._next_poll is None or now >= self._next_poll):
            self.clock.refresh()
            self._next_poll = now + int(self.settings.poll_interval * 1000)
        return self.accumulator.tick(now)

    def run(self, stop: threading.Event) -> ScoreRecord | None:
        """Tick every ``tick_interval`` seconds until the final score is published or ``stop`` is set."""
        record = None
        while not stop.is_set():
            record = self.step()
            if self.accumulator.settled:
                break
            stop.wait(self.settings.tick_interval)
        logger.debug("Scoring loop for %s stopped", self.participant)
        return record
