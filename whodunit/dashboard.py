"""Read-only live dashboard: polled tallies, history and the score leaderboard."""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any

from whodunit.ballots import tally_ballots, top_suspects
from whodunit.models import Ballot, ScoreRecord, Suspect, TallyEntry
from whodunit.stores.base import DataStore, StoreError

logger = logging.getLogger(__name__)


@dataclass
class DashboardSnapshot:
    """One poll of the ballots.

    Attributes:
        taken_at: Epoch milliseconds of the poll
        counts: Votes per suspect id, every suspect included
        total: Number of ballots
        top: Most-voted suspects, zero counts excluded
    """
    taken_at: int
    counts: dict[int, int]
    total: int
    top: list[TallyEntry]

    def to_dict(self) -> dict[str, Any]:
        return {
            "taken_at": self.taken_at,
            "counts": {str(k): v for k, v in self.counts.items()},
            "total": self.total,
            "top": [entry.to_dict() for entry in self.top],
        }


class Dashboard:
    """Aggregates the shared tables for display without writing to them.

    Each poll is appended to a bounded history of ``(taken_at, counts)``
    samples for plotting how the vote evolves. A failed poll repeats the
    last counts so the display goes stale rather than blank.
    """

    def __init__(
        self, store: DataStore, gallery: list[Suspect], history_limit: int = 200,
        top_limit: int = 3,
    ) -> None:
        self.store = store
        self.gallery = gallery
        self.top_limit = top_limit
        self._history: deque[tuple[int, dict[int, int]]] = deque(maxlen=history_limit)
        self._last_counts = tally_ballots([], gallery)

    def poll(self, now: int) -> DashboardSnapshot:
        try:
            rows = self.store.select_all(Ballot.TABLE)
        except StoreError as e:
            logger.warning("Dashboard could not poll ballots: %s", e)
            counts = dict(self._last_counts)
        else:
            ballots = [b for b in (Ballot.from_row(r) for r in rows) if b is not None]
            counts = tally_ballots(ballots, self.gallery)
            self._last_counts = counts

        self._history.append((now, counts))
        return DashboardSnapshot(
            taken_at=now,
            counts=counts,
            total=sum(counts.values()),
            top=top_suspects(counts, self.gallery, self.top_limit),
        )

    def history(self) -> list[tuple[int, dict[int, int]]]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()
        self._last_counts = tally_ballots([], self.gallery)

    def leaderboard(self) -> list[ScoreRecord]:
        """Published scores, best first, ties by participant name."""
        try:
            rows = self.store.select_all(ScoreRecord.TABLE)
        except StoreError as e:
            logger.warning("Dashboard could not poll scores: %s", e)
            return []
        records = [r for r in (ScoreRecord.from_row(row) for row in rows) if r is not None]
        return sorted(records, key=lambda r: (-r.percentage, r.participant))
