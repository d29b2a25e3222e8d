"""
Metadata Tagger - positional ids and token accounting for a conversation.

Each turn the full conversation snapshot is tagged in one left-to-right pass:

    [msg:001][tokens:45][tally:45] <content>
    [msg:002][tokens:12][tally:57] <content>

Ids are positional, so they stay stable across turns while the conversation
prefix is unchanged. Previously pruned ids are dropped from the outbound
sequence, but the running tally keeps counting them so the budget reflects
true consumption.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from selfprune.domain.model.prune import ContextBudget, PruneSummary, TaggedMessage
from selfprune.domain.ports import TokenCounterPort
from selfprune.infrastructure.agent.context.raw_message import extract_text, message_id
from selfprune.infrastructure.llm.token_estimator import TokenEstimator

logger = logging.getLogger(__name__)

BREADCRUMB_HEADER = "[Context Summary - Previously Pruned]"

# Keys copied verbatim to outbound messages so tool call/result wiring survives
_PASSTHROUGH_KEYS = ("tool_calls", "tool_call_id", "name")


def format_with_metadata(message: TaggedMessage) -> str:
    """Prefix a tagged message's content with its metadata tag."""
    prefix = f"[{message.id}][tokens:{message.token_count}][tally:{message.running_tally}]"
    return f"{prefix} {message.content}"


def build_breadcrumb(summaries: Iterable[PruneSummary]) -> dict[str, str] | None:
    """Synthetic system message listing pruned ids, or None if nothing was pruned."""
    lines = [f"[pruned:{summary.id}] {summary.summary}" for summary in summaries]
    if not lines:
        return None
    return {"role": "system", "content": BREADCRUMB_HEADER + "\n" + "\n".join(lines)}


class MessageTagger:
    """Assigns ids and running token tallies to a conversation snapshot."""

    def __init__(self, token_counter: TokenCounterPort | None = None) -> None:
        self._token_counter = token_counter or TokenEstimator()

    def tag(self, conversation: Sequence[dict[str, Any]]) -> list[TaggedMessage]:
        running_tally = 0
        tagged: list[TaggedMessage] = []

        for index, raw in enumerate(conversation):
            text = extract_text(raw)
            token_count = self._token_counter.count(text)
            running_tally += token_count
            tagged.append(
                TaggedMessage(
                    id=message_id(index),
                    role=raw.get("role", "user"),
                    content=text,
                    token_count=token_count,
                    running_tally=running_tally,
                )
            )

        return tagged

    @staticmethod
    def budget_for(tagged: Sequence[TaggedMessage], max_context_tokens: int) -> ContextBudget:
        """Budget from the last running tally (true, unfiltered consumption)."""
        used = tagged[-1].running_tally if tagged else 0
        return ContextBudget.from_usage(total=max_context_tokens, used=used)

    def to_model_messages(
        self,
        conversation: Sequence[dict[str, Any]],
        tagged: Sequence[TaggedMessage],
        pruned_ids: frozenset[str] | set[str],
        summaries: Iterable[PruneSummary] = (),
    ) -> list[dict[str, Any]]:
        """
        Build the outbound message list.

        Args:
            conversation: Raw messages the tags were computed from
            tagged: Output of ``tag(conversation)``
            pruned_ids: Ids suppressed from resend
            summaries: Breadcrumbs for pruned ids

        Returns:
            Messages with metadata-prefixed content, breadcrumb first if any
        """
        outbound: list[dict[str, Any]] = []

        breadcrumb = build_breadcrumb(summaries)
        if breadcrumb is not None:
            outbound.append(breadcrumb)

        for raw, message in zip(conversation, tagged):
            if message.id in pruned_ids:
                logger.debug(f"Skipping {message.id} - previously pruned")
                continue

            item: dict[str, Any] = {"role": message.role, "content": format_with_metadata(message)}
            for key in _PASSTHROUGH_KEYS:
                if raw.get(key) is not None:
                    item[key] = raw[key]
            outbound.append(item)

        return outbound
