"""Caller-supplied deadlines for evaluation calls."""

import time
from dataclasses import dataclass

from promo_engine.core.errors import EvaluationTimeout


@dataclass(frozen=True)
class Deadline:
    """A point on the monotonic clock after which evaluation must stop.

    ``expires_at`` of ``None`` never expires.
    """

    expires_at: float | None = None

    @classmethod
    def after(cls, seconds: float | None) -> "Deadline":
        if seconds is None:
            return cls()
        return cls(expires_at=time.monotonic() + seconds)

    @classmethod
    def none(cls) -> "Deadline":
        return cls()

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() >= self.expires_at

    def check(self, stage: str) -> None:
        """Raise EvaluationTimeout if the deadline has passed."""
        if self.expired:
            raise EvaluationTimeout(stage)
