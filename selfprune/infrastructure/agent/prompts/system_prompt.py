"""
System prompt builder for self-pruning agents.

The prompt has three parts, always in this order:

1. ``<context_budget>`` block with exact total/used/remaining integers
2. Behavioral instructions (default or operator supplied)
3. The pruning protocol: metadata tag format, when pruning is appropriate,
   the reply-before-proposals rule and the suggestion block grammar

The protocol text is read by the model and must stay in step with
``suggestion_parser``.
"""

from selfprune.domain.model.prune import ContextBudget
from selfprune.domain.model.prune.config import DEFAULT_CONFIDENCE_THRESHOLD
from selfprune.infrastructure.agent.context.suggestion_parser import BLOCK_CLOSE, BLOCK_OPEN

BUDGET_OPEN = "<context_budget>"
BUDGET_CLOSE = "</context_budget>"

DEFAULT_INSTRUCTIONS = """You are a helpful AI assistant that works through problems step by step.

For each task:
1. THINK: Work out what needs to be done
2. ACT: Use the available tools to gather information or take action
3. OBSERVE: Examine the results
4. REPEAT: Continue until the answer is complete

Explain your reasoning clearly."""

PRUNING_PROTOCOL_TEMPLATE = """## Context Management

Your current context budget is shown above. Every message you see carries a tag:
- [msg:NNN] - message id, zero-padded to three digits
- [tokens:N] - token count of that message
- [tally:N] - running token total up to and including that message

After answering you MAY propose messages to prune when:
1. Their information is fully synthesized into your response
2. The topic is closed and the user has moved on
3. Tool results were summarized and the raw data is no longer needed
4. Earlier exploratory reasoning is superseded by conclusions

Propose pruning only when you are confident the content is no longer needed.

**IMPORTANT**: Always write a conversational reply BEFORE any prune proposals.
A response that contains ONLY prune proposals is invalid; the user must always see a helpful message.

Put proposals at the END of your response in exactly this format:

{block_open}
  <suggestion id="msg:NNN" confidence="0.9" tokens="1234" reason="[Short summary of the content]: why it can be pruned" />
{block_close}

Each suggestion has exactly four attributes: id, confidence (0 to 1), tokens (non-negative integer) and reason.
Do not use double quotes inside a reason.

Example reason: "Weather lookup (NYC 72F sunny, LA 85F cloudy): research complete, data synthesized"

Guidelines:
- Only propose pruning at confidence >= {threshold}
- Never prune the system prompt or recent user messages
- A tool call and its result are pruned together
- Prefer large, redundant content (old tool output, exploration)
- Omit {block_open} entirely when there is nothing to propose"""


def render_budget_block(budget: ContextBudget) -> str:
    return (
        f"{BUDGET_OPEN}\n"
        f"  total: {budget.total}\n"
        f"  used: {budget.used}\n"
        f"  remaining: {budget.remaining}\n"
        f"{BUDGET_CLOSE}"
    )


def render_pruning_protocol(confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD) -> str:
    return PRUNING_PROTOCOL_TEMPLATE.format(
        block_open=BLOCK_OPEN,
        block_close=BLOCK_CLOSE,
        threshold=f"{confidence_threshold:g}",
    )


def build_system_prompt(
    budget: ContextBudget,
    base_instructions: str | None = None,
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> str:
    """
    Build the system prompt for one turn.

    Args:
        budget: Live context budget
        base_instructions: Operator instructions; blank falls back to the default
        confidence_threshold: Threshold quoted in the protocol guidelines

    Returns:
        The three-part system prompt
    """
    instructions = base_instructions if base_instructions and base_instructions.strip() else None
    return "\n\n".join(
        [
            render_budget_block(budget),
            instructions or DEFAULT_INSTRUCTIONS,
            render_pruning_protocol(confidence_threshold),
        ]
    )
