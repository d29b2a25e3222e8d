"""Unit tests for prune execution and tool pair validation."""

import pytest

from selfprune.domain.model.prune import PruneConfig, PruneSuggestion
from selfprune.infrastructure.agent.context.prune_executor import (
    execute_pruning,
    expand_tool_pairs,
    validate_tool_pairs,
)
from selfprune.infrastructure.agent.context.prune_state import PruneStateStore
from selfprune.infrastructure.llm.token_estimator import estimate_tokens
from selfprune.tests.conftest import FIXED_TIME, LONG_TEXT_150_TOKENS


def suggest(message_id: str, confidence: float = 0.92, reason: str = "done") -> PruneSuggestion:
    return PruneSuggestion(id=message_id, confidence=confidence, tokens=150, reason=reason)


@pytest.mark.unit
class TestExecutePruning:
    """Tests for the confidence filter and partitioning."""

    def test_approved_suggestion_is_archived(self, conversation):
        result = execute_pruning(
            conversation,
            [suggest("msg:003")],
            PruneConfig(confidence_threshold=0.8),
            now=FIXED_TIME,
        )

        assert result.tokens_reclaimed == 150
        assert result.archived_ids == ["msg:003"]
        assert result.pruned_messages == [conversation[0], conversation[1], conversation[3]]
        entry = result.archived[0]
        assert entry.role == "tool"
        assert entry.content == LONG_TEXT_150_TOKENS
        assert entry.reason == "done"
        assert entry.pruned_at == FIXED_TIME

    def test_below_threshold_is_not_approved(self, conversation):
        result = execute_pruning(
            conversation, [suggest("msg:003")], PruneConfig(confidence_threshold=0.95)
        )

        assert result.approved == []
        assert result.archived == []
        assert result.pruned_messages == conversation
        assert result.tokens_reclaimed == 0

    def test_threshold_boundary_is_inclusive(self, conversation):
        config = PruneConfig(confidence_threshold=0.9)
        assert execute_pruning(conversation, [suggest("msg:003", 0.9)], config).archived_ids == [
            "msg:003"
        ]
        below = execute_pruning(conversation, [suggest("msg:003", 0.9 - 1e-9)], config)
        assert below.archived == []

    def test_pruning_disabled_approves_nothing(self, conversation):
        result = execute_pruning(
            conversation, [suggest("msg:003", 1.0)], PruneConfig(enable_pruning=False)
        )
        assert result.archived == []
        assert result.pruned_messages == conversation

    def test_token_count_is_recomputed_not_trusted(self, conversation):
        suggestion = PruneSuggestion(id="msg:001", confidence=0.9, tokens=9999, reason="r")
        result = execute_pruning(conversation, [suggestion], PruneConfig())
        assert result.tokens_reclaimed == estimate_tokens(conversation[0]["content"])

    def test_stale_ids_are_ignored(self, conversation):
        result = execute_pruning(conversation, [suggest("msg:099")], PruneConfig())
        assert result.archived == []
        assert result.pruned_messages == conversation

    def test_excluded_ids_are_not_archived_twice(self, conversation):
        result = execute_pruning(
            conversation, [suggest("msg:003")], PruneConfig(), exclude_ids={"msg:003"}
        )
        assert result.archived == []

    def test_operator_approval_skips_confidence(self, conversation):
        result = execute_pruning(
            conversation,
            [suggest("msg:002", confidence=0.1)],
            PruneConfig(),
            require_confidence=False,
        )
        assert result.archived_ids == ["msg:002"]

    def test_relative_order_is_preserved(self, conversation):
        result = execute_pruning(
            conversation, [suggest("msg:003"), suggest("msg:001")], PruneConfig()
        )
        assert result.archived_ids == ["msg:001", "msg:003"]
        assert result.pruned_messages == [conversation[1], conversation[3]]

    def test_restore_round_trip_keeps_token_count(self, conversation):
        store = PruneStateStore()
        result = execute_pruning(conversation, [suggest("msg:003")], PruneConfig())
        store.add_to_archive(result.archived)

        restored = store.remove_from_archive("msg:003")

        assert restored is not None
        assert restored.token_count == estimate_tokens(conversation[2]["content"])


@pytest.mark.unit
class TestToolPairs:
    """Tests for atomic tool call/result pruning."""

    def test_result_pulls_in_its_call(self, tool_conversation):
        result = execute_pruning(
            tool_conversation, [suggest("msg:003", reason="raw data")], PruneConfig()
        )

        assert result.archived_ids == ["msg:002", "msg:003"]
        reasons = {entry.id: entry.reason for entry in result.archived}
        assert reasons["msg:003"] == "raw data"
        assert reasons["msg:002"] == "raw data (tool pair of msg:003)"
        assert result.pruned_messages == [tool_conversation[0], tool_conversation[3]]

    def test_call_pulls_in_its_result(self, tool_conversation):
        result = execute_pruning(tool_conversation, [suggest("msg:002")], PruneConfig())
        assert result.archived_ids == ["msg:002", "msg:003"]

    def test_pair_shares_a_group(self, tool_conversation):
        result = execute_pruning(
            tool_conversation, [suggest("msg:003"), suggest("msg:004")], PruneConfig()
        )

        groups = {entry.id: entry.group for entry in result.archived}
        assert groups == {"msg:002": "msg:002", "msg:003": "msg:002", "msg:004": None}

    def test_restoring_either_half_restores_both(self, tool_conversation):
        store = PruneStateStore()
        result = execute_pruning(tool_conversation, [suggest("msg:003")], PruneConfig())
        store.add_to_archive(result.archived)

        restored = store.remove_from_archive("msg:003")

        assert restored.id == "msg:003"
        assert store.archive == []
        assert store.pruned_ids == frozenset()
        assert store.total_tokens_reclaimed == 0

    def test_content_part_tool_links(self):
        messages = [
            {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "Searching."},
                    {"type": "tool_use", "id": "tu_1", "name": "search", "input": {}},
                ],
            },
            {
                "role": "user",
                "content": [{"type": "tool_result", "tool_use_id": "tu_1", "content": "hits"}],
            },
        ]
        assert set(expand_tool_pairs(messages, ["msg:001"])) == {"msg:001", "msg:002"}

    def test_validate_reports_orphans(self, tool_conversation):
        validation = validate_tool_pairs(tool_conversation, ["msg:003"])

        assert validation.valid is False
        assert validation.orphaned_ids == ["msg:002"]
        assert "msg:002" in validation.warning

    def test_validate_complete_pair(self, tool_conversation):
        assert validate_tool_pairs(tool_conversation, ["msg:002", "msg:003"]).valid is True

    def test_validate_plain_messages(self, conversation):
        validation = validate_tool_pairs(conversation, ["msg:001"])
        assert validation.valid is True
        assert validation.orphaned_ids == []
