"""
Context Pruning Pipeline - one conversation turn, before and after the model call.

    prepare_turn:     tag -> suppress pruned ids + breadcrumb -> system prompt
    (model call, external)
    process_response: parse -> execute (or queue for approval) -> archive -> usage

The pipeline holds no state of its own; everything cross-turn lives in
PruneStateStore and UsageTracker, both injected.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from selfprune.domain.model.prune import ContextBudget, PruneSuggestion, TaggedMessage, TurnUsage
from selfprune.domain.ports import TokenCounterPort
from selfprune.infrastructure.agent.context.metadata_tagger import MessageTagger
from selfprune.infrastructure.agent.context.prune_executor import PruneResult, execute_pruning
from selfprune.infrastructure.agent.context.prune_state import PruneStateStore
from selfprune.infrastructure.agent.context.suggestion_parser import parse_prune_suggestions
from selfprune.infrastructure.agent.prompts.system_prompt import build_system_prompt
from selfprune.infrastructure.agent.usage.tracker import UsageTracker
from selfprune.infrastructure.llm.token_estimator import TokenEstimator

logger = logging.getLogger(__name__)


@dataclass
class PreparedTurn:
    """Model-ready payload for one turn."""

    tagged: list[TaggedMessage]
    messages: list[dict[str, Any]]
    system_prompt: str
    budget: ContextBudget

    def to_dict(self) -> dict[str, Any]:
        return {
            "systemPrompt": self.system_prompt,
            "messages": self.messages,
            "tagged": [message.to_dict() for message in self.tagged],
            "budget": self.budget.to_dict(),
        }


@dataclass
class TurnOutcome:
    """What happened to one model response."""

    clean_text: str
    suggestions: list[PruneSuggestion] = field(default_factory=list)
    result: PruneResult | None = None
    pending: list[PruneSuggestion] = field(default_factory=list)
    usage: TurnUsage | None = None

    def to_dict(self) -> dict[str, Any]:
        result = self.result
        return {
            "text": self.clean_text,
            "suggestions": [s.to_dict() for s in self.suggestions],
            "approved": [s.to_dict() for s in result.approved] if result else [],
            "archived": [entry.to_dict() for entry in result.archived] if result else [],
            "tokensReclaimed": result.tokens_reclaimed if result else 0,
            "pending": [s.to_dict() for s in self.pending],
            "usage": self.usage.to_dict() if self.usage else None,
        }


class ContextPruningPipeline:
    """Runs the pruning protocol around an external model call."""

    def __init__(
        self,
        store: PruneStateStore,
        usage_tracker: UsageTracker,
        token_counter: TokenCounterPort | None = None,
        auto_approve: bool = True,
        base_instructions: str | None = None,
    ) -> None:
        self._store = store
        self._usage = usage_tracker
        self._token_counter = token_counter or TokenEstimator()
        self._tagger = MessageTagger(self._token_counter)
        self._auto_approve = auto_approve
        self._base_instructions = base_instructions

    @property
    def store(self) -> PruneStateStore:
        return self._store

    @property
    def token_counter(self) -> TokenCounterPort:
        return self._token_counter

    @property
    def auto_approve(self) -> bool:
        return self._auto_approve

    def prepare_turn(
        self,
        conversation: Sequence[dict[str, Any]],
        base_instructions: str | None = None,
    ) -> PreparedTurn:
        """Tag the conversation, drop pruned ids and render the system prompt."""
        config = self._store.config
        tagged = self._tagger.tag(conversation)
        budget = self._tagger.budget_for(tagged, config.max_context_tokens)
        messages = self._tagger.to_model_messages(
            conversation,
            tagged,
            self._store.pruned_ids,
            self._store.prune_summaries,
        )
        system_prompt = build_system_prompt(
            budget,
            base_instructions or self._base_instructions,
            confidence_threshold=config.confidence_threshold,
        )

        if budget.is_critical:
            logger.warning(f"Context budget critical: {budget.used}/{budget.total} tokens")

        return PreparedTurn(
            tagged=tagged, messages=messages, system_prompt=system_prompt, budget=budget
        )

    def process_response(
        self,
        conversation: Sequence[dict[str, Any]],
        response_text: str,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        auto_approve: bool | None = None,
    ) -> TurnOutcome:
        """
        Apply the model's pruning proposals for this turn.

        Args:
            conversation: The raw conversation the turn was prepared from
            response_text: Model output, possibly with a suggestion block
            input_tokens: Provider-reported prompt tokens, if known
            output_tokens: Provider-reported completion tokens, if known
            auto_approve: Override the pipeline default for this turn

        Returns:
            TurnOutcome with the clean reply text
        """
        parsed = parse_prune_suggestions(response_text)
        outcome = TurnOutcome(clean_text=parsed.clean_text, suggestions=parsed.suggestions)

        if parsed.suggestions:
            logger.info(f"Received {len(parsed.suggestions)} prune suggestion(s)")
            approve = self._auto_approve if auto_approve is None else auto_approve
            if approve:
                outcome.result = self._execute(conversation, parsed.suggestions, True)
            else:
                fresh = [s for s in parsed.suggestions if not self._store.is_pruned(s.id)]
                self._store.add_pending_suggestions(fresh)
                outcome.pending = fresh
                logger.info(f"Queued {len(fresh)} prune suggestion(s) for approval")

        if input_tokens is not None or output_tokens is not None:
            outcome.usage = self._usage.record(input_tokens or 0, output_tokens or 0)

        return outcome

    def approve_pending(
        self,
        conversation: Sequence[dict[str, Any]],
        ids: Iterable[str] | None = None,
    ) -> PruneResult:
        """Execute operator-approved pending suggestions, regardless of confidence."""
        approved = self._store.take_pending(ids)
        return self._execute(conversation, approved, require_confidence=False)

    def _execute(
        self,
        conversation: Sequence[dict[str, Any]],
        suggestions: Sequence[PruneSuggestion],
        require_confidence: bool,
    ) -> PruneResult:
        result = execute_pruning(
            conversation,
            suggestions,
            self._store.config,
            token_counter=self._token_counter,
            exclude_ids=self._store.pruned_ids,
            require_confidence=require_confidence,
        )
        self._store.add_to_archive(result.archived)
        return result
