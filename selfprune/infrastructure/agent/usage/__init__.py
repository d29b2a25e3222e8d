"""Token usage bookkeeping."""

from selfprune.infrastructure.agent.usage.tracker import UsageTracker

__all__ = ["UsageTracker"]
