"""Runtime configuration read from the environment."""

import os
from dataclasses import dataclass, field
from typing import Mapping, Self

from whodunit.suspects import RevealSchedule


class ConfigError(ValueError):
    """Raised when a configuration value cannot be used."""
    pass


ENV_PREFIX = "WHODUNIT_"


@dataclass
class Settings:
    """Settings for one voting session.

    The event revisions differ only in these values (which suspect is the
    culprit, how long the scored window lasts), so they are configuration
    rather than code.

    Attributes:
        store_url: ``memory://`` or the base URL of the hosted backend
        api_key: Anon key sent to the hosted backend
        window_seconds: Length of the evaluation window W
        target_suspect_id: The culprit; time spent voting for it is scored
        tick_interval: Seconds between score accounting steps on a client
        poll_interval: Seconds between dashboard/session polls
        session_id: Id of the shared session row
        history_limit: Tally samples kept by the dashboard
        reveal_times: Optional suspect id -> seconds before it can be picked
        log_level: Name of the logging level for entry points
    """
    store_url: str = "memory://"
    api_key: str = ""
    window_seconds: float = 1200.0
    target_suspect_id: int = 1
    tick_interval: float = 1.0
    poll_interval: float = 3.0
    session_id: int = 1
    history_limit: int = 200
    reveal_times: dict[int, float] = field(default_factory=dict)
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ConfigError("window_seconds must be positive")
        if self.tick_interval <= 0 or self.poll_interval <= 0:
            raise ConfigError("tick_interval and poll_interval must be positive")
        if self.history_limit < 1:
            raise ConfigError("history_limit must be at least 1")

    @property
    def window_ms(self) -> int:
        return int(self.window_seconds * 1000)

    def reveal_schedule(self) -> RevealSchedule:
        return RevealSchedule(self.reveal_times)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Self:
        """Load settings from ``WHODUNIT_*`` environment variables.

        Raises:
            ConfigError: If a variable is present but invalid
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return env.get(ENV_PREFIX + name, default).strip()

        def number(name: str, default: str, kind: type = float):
            raw = get(name, default)
            try:
                return kind(raw)
            except ValueError:
                raise ConfigError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}")

        try:
            reveal_times = RevealSchedule.parse(get("REVEAL_TIMES", "")).reveal_at
        except ValueError as e:
            raise ConfigError(f"{ENV_PREFIX}REVEAL_TIMES: {e}") from e

        return cls(
            store_url=get("STORE_URL", "memory://"),
            api_key=get("API_KEY", ""),
            window_seconds=number("WINDOW_SECONDS", "1200"),
            target_suspect_id=number("TARGET_SUSPECT_ID", "1", int),
            tick_interval=number("TICK_INTERVAL", "1.0"),
            poll_interval=number("POLL_INTERVAL", "3.0"),
            session_id=number("SESSION_ID", "1", int),
            history_limit=number("HISTORY_LIMIT", "200", int),
            reveal_times=reveal_times,
            log_level=get("LOG_LEVEL", "INFO").upper(),
        )
