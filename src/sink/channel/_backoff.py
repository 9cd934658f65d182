"""Reconnect delay policy for update observers."""

from dataclasses import dataclass

DEFAULT_RECONNECT_DELAY = 3.0


@dataclass(frozen=True, slots=True)
class FixedBackoff:
    """Constant delay between reconnect attempts, with no attempt limit.

    Attributes:
        base: Delay in seconds before every attempt.
    """

    base: float = DEFAULT_RECONNECT_DELAY

    def delay(self, attempt: int) -> float:  # noqa: ARG002
        """Return the delay before reconnect attempt ``attempt`` (0-indexed)."""
        return self.base
