"""Ballot tracking and vote tallies."""

import logging
from typing import Callable

from whodunit.clock import SessionClock
from whodunit.models import Ballot, Suspect, TallyEntry
from whodunit.stores.base import DataStore, StoreError
from whodunit.suspects import RevealSchedule, find_suspect

logger = logging.getLogger(__name__)


def tally_ballots(ballots: list[Ballot], gallery: list[Suspect]) -> dict[int, int]:
    """Count ballots per suspect.

    Every suspect in the gallery gets an entry, zero included. Ballots for
    suspects outside the gallery are ignored.
    """
    counts = {suspect.id: 0 for suspect in gallery}
    for ballot in ballots:
        if ballot.suspect_id in counts:
            counts[ballot.suspect_id] += 1
    return counts


def top_suspects(
    counts: dict[int, int], gallery: list[Suspect], limit: int = 3
) -> list[TallyEntry]:
    """Return the most-voted suspects.

    Suspects are ranked by descending count, ties broken by ascending id.
    Suspects with no votes are left out entirely, so fewer than ``limit``
    entries come back when fewer suspects have been voted for.
    """
    total = sum(counts.values())
    voted = [s for s in gallery if counts.get(s.id, 0) > 0]
    voted.sort(key=lambda s: (-counts[s.id], s.id))
    return [
        TallyEntry(suspect=s, count=counts[s.id], share=counts[s.id] / total * 100)
        for s in voted[:limit]
    ]


class BallotTracker:
    """Records each participant's current selection.

    Votes are only accepted while the evaluation window is open, and only
    for suspects that have been revealed. Rejected votes are ignored
    silently, not errors.

    Hooks registered with ``before_change`` run before a ballot changes, so
    anything measuring time spent on the previous selection can settle it
    first.
    """

    def __init__(
        self,
        store: DataStore,
        clock: SessionClock,
        gallery: list[Suspect],
        reveal_schedule: RevealSchedule | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.gallery = gallery
        self.reveal_schedule = reveal_schedule or RevealSchedule()
        self._votes: dict[str, int] = {}
        # Start time each local ballot was recorded under
        self._epochs: dict[str, int | None] = {}
        self._ballots: list[Ballot] = []
        self._hooks: list[Callable[[str, int], None]] = []

    def before_change(self, hook: Callable[[str, int], None]) -> None:
        """Register ``hook(participant, now)`` to run before every ballot change."""
        self._hooks.append(hook)

    def cast_vote(self, participant: str, suspect_id: int, now: int) -> bool:
        """Record ``participant``'s selection of ``suspect_id`` at time ``now``.

        Returns:
            True if the vote was accepted, False if a precondition failed.
        """
        if not participant:
            logger.debug("Ignoring vote without a participant name")
            return False
        if find_suspect(self.gallery, suspect_id) is None:
            logger.debug("Ignoring vote for unknown suspect %r", suspect_id)
            return False

        elapsed = self.clock.elapsed_ms(now)
        if elapsed is None:
            logger.debug("Ignoring vote from %s: session not started", participant)
            return False
        if self.clock.is_window_closed(now):
            logger.debug("Ignoring vote from %s: window closed", participant)
            return False
        if not self.reveal_schedule.is_revealed(suspect_id, elapsed / 1000):
            logger.debug("Ignoring vote from %s: suspect %s not revealed yet",
                         participant, suspect_id)
            return False

        for hook in self._hooks:
            hook(participant, now)
        self._votes[participant] = suspect_id
        self._epochs[participant] = self.clock.started_at

        ballot = Ballot(participant=participant, suspect_id=suspect_id)
        try:
            self.store.upsert(Ballot.TABLE, Ballot.KEY, ballot.to_dict())
        except StoreError as e:
            logger.warning("Could not record vote from %s: %s", participant, e)
        return True

    def current_vote(self, participant: str) -> int | None:
        """The last-known selection for a participant, or None.

        A ballot recorded under a different session start than the one now
        observed was cleared by that start, so it is dropped.
        """
        suspect_id = self._votes.get(participant)
        if suspect_id is not None and self._epochs.get(participant) != self.clock.started_at:
            self.forget(participant)
            return None
        return suspect_id

    def forget(self, participant: str | None = None) -> None:
        """Drop the local view of one participant's ballot, or of all of them."""
        if participant is None:
            self._votes.clear()
            self._epochs.clear()
            self._ballots = []
        else:
            self._votes.pop(participant, None)
            self._epochs.pop(participant, None)

    def refresh(self) -> list[Ballot]:
        """Poll all ballots from the store; keeps the last-known set on failure."""
        try:
            rows = self.store.select_all(Ballot.TABLE)
        except StoreError as e:
            logger.warning("Could not poll ballots: %s", e)
            return self._ballots

        ballots = []
        for row in rows:
            ballot = Ballot.from_row(row)
            if ballot is None:
                logger.debug("Skipping malformed ballot row %r", row)
                continue
            ballots.append(ballot)
        self._ballots = ballots
        return ballots

    def load_vote(self, participant: str) -> int | None:
        """Restore a participant's selection from the store, e.g. after a reload."""
        for ballot in self.refresh():
            if ballot.participant == participant:
                self._votes[participant] = ballot.suspect_id
                self._epochs[participant] = self.clock.started_at
                return ballot.suspect_id
        return None

    def tally(self, ballots: list[Ballot] | None = None) -> dict[int, int]:
        """Per-suspect counts over the given ballots, or freshly polled ones."""
        if ballots is None:
            ballots = self.refresh()
        return tally_ballots(ballots, self.gallery)

    def top(self, limit: int = 3) -> list[TallyEntry]:
        return top_suspects(self.tally(), self.gallery, limit)
