"""Timed scoring: how long a participant keeps the culprit selected."""

import logging

from whodunit.ballots import BallotTracker
from whodunit.clock import SessionClock
from whodunit.models import ScoreRecord
from whodunit.stores.base import DataStore, StoreError

logger = logging.getLogger(__name__)


def percentage_for(accumulated_ms: int, window_ms: int) -> float:
    """Convert dwell time into a score, clamped to [0, 100]."""
    if window_ms <= 0:
        raise ValueError("window_ms must be positive")
    return min(100.0, max(0.0, accumulated_ms / window_ms * 100))


class ScoreAccumulator:
    """Accumulates one participant's dwell time on the target suspect.

    Dwell time is wall-clock time between accounting steps during which the
    participant's current ballot is the target, restricted to the evaluation
    window ``[started_at, started_at + W]``. Each tick publishes the score as
    a complete snapshot, so re-publishing never double counts. Once the
    window has closed the score is frozen: later ticks no longer accumulate,
    and only republish the final record if publishing it failed.

    The accounting step is registered with the ballot tracker so that a
    vote change settles the time spent on the previous selection before the
    ballot changes.

    State is kept in memory only. If the client restarts mid-window,
    accrual resumes from zero.
    """

    def __init__(
        self,
        participant: str,
        clock: SessionClock,
        tracker: BallotTracker,
        store: DataStore,
        target_suspect_id: int,
    ) -> None:
        self.participant = participant
        self.clock = clock
        self.tracker = tracker
        self.store = store
        self.target_suspect_id = target_suspect_id

        self.accumulated_ms = 0
        self.last_tick_at: int | None = None
        self.finished = False
        self._epoch: int | None = None
        self._final: ScoreRecord | None = None
        self._published = False

        tracker.before_change(self._before_vote)

    def _before_vote(self, participant: str, now: int) -> None:
        if participant == self.participant:
            self.account(now)

    def _sync_epoch(self) -> int | None:
        """Discard local state when the shared start time changes."""
        started_at = self.clock.started_at
        if started_at != self._epoch:
            if self._epoch is not None:
                logger.info("Session restarted; discarding %s's dwell time", self.participant)
                self.tracker.forget(self.participant)
            self._epoch = started_at
            self.accumulated_ms = 0
            self.last_tick_at = None
            self.finished = False
            self._final = None
            self._published = False
        return started_at

    def account(self, now: int) -> None:
        """Add the time since the last step if the target was selected."""
        started_at = self._sync_epoch()
        if started_at is None or self.finished:
            return
        if self.last_tick_at is None:
            # Accrual starts with the first step after the start is known
            self.last_tick_at = now
            return

        window_end = started_at + self.clock.window_ms
        begin = max(self.last_tick_at, started_at)
        end = min(now, window_end)
        if end > begin and self.tracker.current_vote(self.participant) == self.target_suspect_id:
            self.accumulated_ms += end - begin
        self.last_tick_at = max(self.last_tick_at, now)

    @property
    def settled(self) -> bool:
        """True once the window has closed and the final score is in the store."""
        return self.finished and self._published

    @property
    def percentage(self) -> float:
        return percentage_for(self.accumulated_ms, self.clock.window_ms)

    def tick(self, now: int) -> ScoreRecord | None:
        """Account up to ``now`` and publish the current score.

        Returns:
            The published record, the frozen final record once the window
            has closed, or None while the session has not started. The
            final record is published again on each tick until a flush
            succeeds.
        """
        self.account(now)
        if self._epoch is None:
            return None
        if self.finished:
            if not self._published:
                self._published = self.flush(self._final)
            return self._final

        record = ScoreRecord(participant=self.participant, percentage=self.percentage)
        if self.clock.is_window_closed(now):
            self.finished = True
            self._final = record
            logger.info("Final score for %s: %.1f%%", self.participant, record.percentage)
        self._published = self.flush(record)
        return record

    def flush(self, record: ScoreRecord) -> bool:
        """Publish a score snapshot. Failures are logged and left to the next tick."""
        try:
            self.store.upsert(ScoreRecord.TABLE, ScoreRecord.KEY, record.to_dict())
        except StoreError as e:
            logger.warning("Could not publish score for %s: %s", self.participant, e)
            return False
        return True
