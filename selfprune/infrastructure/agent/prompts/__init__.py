"""System prompt rendering."""

from selfprune.infrastructure.agent.prompts.system_prompt import (
    DEFAULT_INSTRUCTIONS,
    build_system_prompt,
    render_budget_block,
    render_pruning_protocol,
)

__all__ = [
    "DEFAULT_INSTRUCTIONS",
    "build_system_prompt",
    "render_budget_block",
    "render_pruning_protocol",
]
