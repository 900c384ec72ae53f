"""Core data models for ballots, scores and the shared session clock."""

from dataclasses import dataclass
from typing import Any, Self


def _coerce_int(value: Any) -> int | None:
    """Coerce a store value to int, or None if it isn't one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _coerce_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class Suspect:
    """One of the fixed choices a participant can vote for.

    Attributes:
        id: 1-indexed suspect identifier
        name: Display name
        image: Reference to the portrait shown in the gallery
    """
    id: int
    name: str
    image: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "image": self.image}


@dataclass
class Ballot:
    """A participant's current selection.

    Stored in the ``votes`` table, one row per participant, keyed by
    ``user_name``.
    """
    participant: str
    suspect_id: int

    TABLE = "votes"
    KEY = "user_name"

    def to_dict(self) -> dict[str, Any]:
        return {"user_name": self.participant, "image_id": self.suspect_id}

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Self | None:
        """Build a Ballot from a store row, or None if the row is malformed."""
        participant = row.get("user_name")
        suspect_id = _coerce_int(row.get("image_id"))
        if not isinstance(participant, str) or not participant or suspect_id is None:
            return None
        return cls(participant=participant, suspect_id=suspect_id)


@dataclass
class SessionState:
    """The single shared session record.

    Attributes:
        session_id: Constant identifier of the shared row
        started_at: Epoch milliseconds of the window start, or None if the
            session has not begun
    """
    session_id: int
    started_at: int | None = None

    TABLE = "session"
    KEY = "id"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.session_id, "started_at": self.started_at}

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Self | None:
        session_id = _coerce_int(row.get("id"))
        if session_id is None:
            return None
        raw = row.get("started_at")
        started_at = None if raw is None else _coerce_int(raw)
        return cls(session_id=session_id, started_at=started_at)


@dataclass
class ScoreRecord:
    """A participant's published score, a point-in-time snapshot in [0, 100]."""
    participant: str
    percentage: float

    TABLE = "scores"
    KEY = "user_name"

    def to_dict(self) -> dict[str, Any]:
        return {"user_name": self.participant, "percentage": self.percentage}

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Self | None:
        participant = row.get("user_name")
        percentage = _coerce_float(row.get("percentage"))
        if not isinstance(participant, str) or not participant or percentage is None:
            return None
        return cls(participant=participant, percentage=min(100.0, max(0.0, percentage)))


@dataclass
class TallyEntry:
    """A suspect's position in an aggregated tally.

    Attributes:
        suspect: The suspect being counted
        count: Number of ballots currently pointing at it
        share: Percentage of all ballots (0 when there are none)
    """
    suspect: Suspect
    count: int
    share: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.suspect.id,
            "name": self.suspect.name,
            "image": self.suspect.image,
            "count": self.count,
            "share": round(self.share, 1),
        }
