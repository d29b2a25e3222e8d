"""selfprune - agent-driven context window pruning."""

__version__ = "0.1.0"
