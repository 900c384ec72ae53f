"""The suspect gallery and the optional reveal schedule."""

from typing import Self

from whodunit.models import Suspect


DEFAULT_SUSPECT_NAMES = [
    "D. Poiré",
    "Jane Blond",
    "D. Doubledork",
    "The Director",
    "Dr. Lafayette",
    "Spiderman",
    "Mew the ripper",
    "Researcher Catnip",
    "QTRobot",
    "Pepper",
    "Freaky Franka",
    "Greta",
]


def build_gallery(
    names: list[str] | None = None, image_pattern: str = "photos/{id}.jpg"
) -> list[Suspect]:
    """Build the gallery of suspects, numbering them from 1 in order.

    Args:
        names: Display names in gallery order (defaults to the standard cast)
        image_pattern: Format string for each portrait, given ``id``

    Returns:
        List of Suspects with ids 1..N.
    """
    if names is None:
        names = DEFAULT_SUSPECT_NAMES
    return [
        Suspect(id=i, name=name, image=image_pattern.format(id=i))
        for i, name in enumerate(names, start=1)
    ]


def find_suspect(gallery: list[Suspect], suspect_id: int) -> Suspect | None:
    """Return the suspect with the given id, or None if it isn't in the gallery."""
    return next((s for s in gallery if s.id == suspect_id), None)


class RevealSchedule:
    """Elapsed time at which each suspect becomes selectable.

    Suspects that are not listed are revealed from the start, so an empty
    schedule gates nothing.
    """

    def __init__(self, reveal_at: dict[int, float] | None = None) -> None:
        self.reveal_at = dict(reveal_at or {})

    def is_revealed(self, suspect_id: int, elapsed_s: float) -> bool:
        threshold = self.reveal_at.get(suspect_id)
        if threshold is None:
            return True
        return elapsed_s >= threshold

    @classmethod
    def parse(cls, text: str) -> Self:
        """Parse a schedule of the form ``"3=120,5=300"``.

        Raises:
            ValueError: If an entry is not ``<suspect id>=<seconds>``
        """
        reveal_at: dict[int, float] = {}
        for item in text.split(","):
            item = item.strip()
            if not item:
                continue
            suspect, sep, seconds = item.partition("=")
            if not sep:
                raise ValueError(f"Invalid reveal entry {item!r}, expected id=seconds")
            try:
                reveal_at[int(suspect)] = float(seconds)
            except ValueError as e:
                raise ValueError(f"Invalid reveal entry {item!r}: {e}") from e
        return cls(reveal_at)
