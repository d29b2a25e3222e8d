"""
Usage Tracker - per-turn and session token usage bookkeeping.

``record`` overwrites the latest usage and accumulates the session totals;
``reset`` zeroes the session only, leaving the latest usage in place.
"""

import logging

from selfprune.domain.model.prune import SessionUsage, TurnUsage

logger = logging.getLogger(__name__)


class UsageTracker:
    """Process-scoped usage counters, owned by the DI container."""

    def __init__(self) -> None:
        self._latest: TurnUsage | None = None
        self._session = SessionUsage()

    def record(self, input_tokens: int, output_tokens: int) -> TurnUsage:
        """Record one model call."""
        usage = TurnUsage(input_tokens=int(input_tokens), output_tokens=int(output_tokens))
        self._latest = usage
        self._session = SessionUsage(
            total_input_tokens=self._session.total_input_tokens + usage.input_tokens,
            total_output_tokens=self._session.total_output_tokens + usage.output_tokens,
            request_count=self._session.request_count + 1,
        )
        logger.debug(
            f"Usage recorded: input={usage.input_tokens} output={usage.output_tokens} "
            f"requests={self._session.request_count}"
        )
        return usage

    def get_latest(self) -> TurnUsage | None:
        return self._latest

    def get_session(self) -> SessionUsage:
        return self._session

    def reset(self) -> None:
        self._session = SessionUsage()

    def to_dict(self) -> dict:
        return {
            "latest": self._latest.to_dict() if self._latest else None,
            "session": self._session.to_dict(),
        }
