"""Shared session clock: when the scored evaluation window starts."""

import logging
import time
from typing import Callable

from whodunit.models import Ballot, ScoreRecord, SessionState
from whodunit.stores.base import DataStore, StoreError

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class SessionClock:
    """A client's view of the single shared session start.

    The store owns ``started_at``; this object caches the last value it
    observed, by polling (``refresh``) or push (``observe``). Until a value
    has been observed the session counts as not started. Elapsed time is
    never derived from a guessed default.

    Starting is guarded twice: a per-client flag stops one client from
    triggering the same start repeatedly, and the store's conditional write
    lets only one client win when several detect playback at once. Only the
    winner clears ballots and scores.
    """

    def __init__(self, store: DataStore, window_seconds: float, session_id: int = 1) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.store = store
        self.window_ms = int(window_seconds * 1000)
        self.session_id = session_id
        self.started_at: int | None = None
        self._start_triggered = False

    @property
    def is_started(self) -> bool:
        return self.started_at is not None

    def observe(self, started_at: int | None) -> None:
        """Record a start time delivered by the store (None after a reset)."""
        if started_at != self.started_at:
            logger.debug("Session %s start observed: %s", self.session_id, started_at)
        if started_at is None:
            self._start_triggered = False
        self.started_at = started_at

    def refresh(self) -> int | None:
        """Poll the shared session row and return the observed start time.

        A failed poll keeps the last-known value.
        """
        try:
            rows = self.store.select_all(SessionState.TABLE)
        except StoreError as e:
            logger.warning("Could not poll session start: %s", e)
            return self.started_at

        state = None
        for row in rows:
            parsed = SessionState.from_row(row)
            if parsed is not None and parsed.session_id == self.session_id:
                state = parsed
                break
        self.observe(state.started_at if state else None)
        return self.started_at

    def start(self, now: int) -> bool:
        """Start the evaluation window at ``now`` unless it already started.

        Returns:
            True if this call set the start time and reset ballots and
            scores; False if the session was already started (here or by
            another client) or the store could not be reached.
        """
        if self._start_triggered or self.started_at is not None:
            return False
        self._start_triggered = True

        record = SessionState(session_id=self.session_id, started_at=now).to_dict()
        try:
            won = self.store.write_if_null(
                SessionState.TABLE, SessionState.KEY, record, "started_at"
            )
        except StoreError as e:
            logger.warning("Could not start session %s: %s", self.session_id, e)
            self._start_triggered = False
            return False

        if not won:
            logger.info("Session %s was already started by another client", self.session_id)
            self.refresh()
            return False

        self.started_at = now
        self._clear_records()
        logger.info("Session %s started at %s", self.session_id, now)
        return True

    def reset(self) -> None:
        """Clear the start time, all ballots and all scores.

        Safe to call when nothing is active. The three writes are independent;
        a failure in one is logged and does not stop the others.
        """
        try:
            self.store.upsert(
                SessionState.TABLE,
                SessionState.KEY,
                SessionState(session_id=self.session_id).to_dict(),
            )
        except StoreError as e:
            logger.warning("Could not clear session %s start: %s", self.session_id, e)
        self._clear_records()
        self.started_at = None
        self._start_triggered = False
        logger.info("Session %s reset", self.session_id)

    def _clear_records(self) -> None:
        for table, key in ((Ballot.TABLE, Ballot.KEY), (ScoreRecord.TABLE, ScoreRecord.KEY)):
            try:
                self.store.delete_all(table, key)
            except StoreError as e:
                logger.warning("Could not clear %s: %s", table, e)

    def elapsed_ms(self, now: int) -> int | None:
        """Milliseconds since the window started, or None if not started."""
        if self.started_at is None:
            return None
        return max(0, now - self.started_at)

    def is_window_closed(self, now: int) -> bool:
        elapsed = self.elapsed_ms(now)
        return elapsed is not None and elapsed >= self.window_ms

    def bind_trigger(self, now_fn: Callable[[], int] = now_ms) -> Callable[..., bool]:
        """Return a callback for the "playback began" event that starts the session."""
        def on_playback_started(now: int | None = None) -> bool:
            return self.start(now_fn() if now is None else now)
        return on_playback_started
