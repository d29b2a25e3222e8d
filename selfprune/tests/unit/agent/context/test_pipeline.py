"""Scenario tests for the per-turn pruning pipeline."""

import pytest

from selfprune.domain.model.prune import PruneConfig
from selfprune.infrastructure.agent.context.metadata_tagger import BREADCRUMB_HEADER
from selfprune.infrastructure.agent.context.pipeline import ContextPruningPipeline
from selfprune.infrastructure.agent.context.prune_state import PruneStateStore

SCENARIO_RESPONSE = """Here is the summary you asked for.

<prune_suggestions>
  <suggestion id="msg:003" confidence="0.92" tokens="150" reason="done" />
</prune_suggestions>"""


@pytest.fixture
def pipeline(prune_store, usage_tracker) -> ContextPruningPipeline:
    return ContextPruningPipeline(store=prune_store, usage_tracker=usage_tracker)


@pytest.mark.unit
class TestProcessResponse:
    """Tests for parse, execute, archive and usage recording."""

    def test_approved_suggestion_scenario(self, pipeline, prune_store, conversation):
        outcome = pipeline.process_response(conversation, SCENARIO_RESPONSE)

        assert outcome.clean_text == "Here is the summary you asked for."
        assert len(outcome.suggestions) == 1
        assert outcome.result.tokens_reclaimed == 150
        assert "msg:003" in prune_store.pruned_ids
        assert prune_store.total_tokens_reclaimed == 150

    def test_high_threshold_scenario(self, prune_store, usage_tracker, conversation):
        prune_store.update_config({"confidence_threshold": 0.95})
        pipeline = ContextPruningPipeline(store=prune_store, usage_tracker=usage_tracker)

        outcome = pipeline.process_response(conversation, SCENARIO_RESPONSE)

        assert len(outcome.suggestions) == 1
        assert outcome.result.approved == []
        assert outcome.result.pruned_messages == conversation
        assert outcome.result.tokens_reclaimed == 0
        assert prune_store.pruned_ids == frozenset()

    def test_response_without_block(self, pipeline, prune_store, conversation):
        outcome = pipeline.process_response(conversation, "Plain answer.")
        assert outcome.clean_text == "Plain answer."
        assert outcome.result is None
        assert prune_store.archive == []

    def test_repeated_suggestion_is_not_archived_twice(self, pipeline, prune_store, conversation):
        pipeline.process_response(conversation, SCENARIO_RESPONSE)
        pipeline.process_response(conversation, SCENARIO_RESPONSE)

        assert [e.id for e in prune_store.archive] == ["msg:003"]
        assert prune_store.total_tokens_reclaimed == 150

    def test_usage_is_recorded(self, pipeline, usage_tracker, conversation):
        outcome = pipeline.process_response(
            conversation, "Answer.", input_tokens=500, output_tokens=40
        )
        assert outcome.usage.total_tokens == 540
        assert usage_tracker.get_session().request_count == 1

    def test_no_usage_reported(self, pipeline, usage_tracker, conversation):
        pipeline.process_response(conversation, "Answer.")
        assert usage_tracker.get_latest() is None

    def test_config_update_applies_next_turn(self, pipeline, prune_store, conversation):
        prune_store.update_config({"enable_pruning": False})
        outcome = pipeline.process_response(conversation, SCENARIO_RESPONSE)
        assert outcome.result.archived == []


@pytest.mark.unit
class TestManualApproval:
    """Tests for the pending inbox workflow."""

    def test_suggestions_wait_for_approval(self, prune_store, usage_tracker, conversation):
        pipeline = ContextPruningPipeline(prune_store, usage_tracker, auto_approve=False)

        outcome = pipeline.process_response(conversation, SCENARIO_RESPONSE)

        assert outcome.result is None
        assert [s.id for s in outcome.pending] == ["msg:003"]
        assert [s.id for s in prune_store.pending_suggestions] == ["msg:003"]
        assert prune_store.archive == []

    def test_approve_pending_ignores_confidence(self, pipeline, prune_store, conversation):
        low_confidence = SCENARIO_RESPONSE.replace('confidence="0.92"', 'confidence="0.2"')
        pipeline.process_response(conversation, low_confidence, auto_approve=False)

        result = pipeline.approve_pending(conversation)

        assert result.archived_ids == ["msg:003"]
        assert prune_store.pending_suggestions == []
        assert prune_store.is_pruned("msg:003")

    def test_approve_subset(self, pipeline, prune_store, conversation):
        response = (
            "Reply.<prune_suggestions>"
            '<suggestion id="msg:001" confidence="0.9" tokens="8" reason="greeting" />'
            '<suggestion id="msg:003" confidence="0.9" tokens="150" reason="data" />'
            "</prune_suggestions>"
        )
        pipeline.process_response(conversation, response, auto_approve=False)

        pipeline.approve_pending(conversation, ["msg:001"])

        assert [e.id for e in prune_store.archive] == ["msg:001"]
        assert [s.id for s in prune_store.pending_suggestions] == ["msg:003"]


@pytest.mark.unit
class TestPrepareTurn:
    """Tests for suppression, breadcrumbs and the live budget."""

    def test_fresh_conversation(self, pipeline, conversation):
        prepared = pipeline.prepare_turn(conversation)

        assert len(prepared.messages) == 4
        assert prepared.budget.used == 173
        assert "used: 173" in prepared.system_prompt

    def test_pruned_message_never_resurfaces(self, pipeline, conversation):
        pipeline.process_response(conversation, SCENARIO_RESPONSE)
        next_turn = conversation + [{"role": "user", "content": "Thanks!"}]

        prepared = pipeline.prepare_turn(next_turn)

        assert prepared.messages[0]["role"] == "system"
        assert prepared.messages[0]["content"] == f"{BREADCRUMB_HEADER}\n[pruned:msg:003] done"
        outbound = "\n".join(m["content"] for m in prepared.messages[1:])
        assert "[msg:003]" not in outbound
        assert "[msg:005]" in outbound
        # Budget still counts the suppressed message
        assert prepared.budget.used == 173 + 2

    def test_restore_lifts_suppression(self, pipeline, prune_store, conversation):
        pipeline.process_response(conversation, SCENARIO_RESPONSE)
        prune_store.remove_from_archive("msg:003")

        prepared = pipeline.prepare_turn(conversation)

        assert len(prepared.messages) == 4
        assert prepared.messages[0]["role"] == "user"

    def test_restoring_tool_result_resends_its_call(
        self, pipeline, prune_store, tool_conversation
    ):
        response = (
            "Done.\n<prune_suggestions>\n"
            '  <suggestion id="msg:003" confidence="0.95" tokens="4" reason="raw data" />\n'
            "</prune_suggestions>"
        )
        pipeline.process_response(tool_conversation, response)
        assert prune_store.pruned_ids == frozenset({"msg:002", "msg:003"})

        prune_store.remove_from_archive("msg:003")
        prepared = pipeline.prepare_turn(tool_conversation)

        assert prune_store.pruned_ids == frozenset()
        assert [m["role"] for m in prepared.messages] == ["user", "assistant", "tool", "assistant"]
        assert prepared.messages[1]["tool_calls"][0]["id"] == "call_1"
        assert prepared.messages[2]["tool_call_id"] == "call_1"

    def test_budget_uses_live_max_tokens(self, conversation):
        store = PruneStateStore(config=PruneConfig(max_context_tokens=200))
        pipeline = ContextPruningPipeline(store, usage_tracker=None)

        budget = pipeline.prepare_turn(conversation).budget

        assert (budget.total, budget.used, budget.remaining) == (200, 173, 27)
        assert budget.is_warning
        assert not budget.is_critical

    def test_to_dict(self, pipeline, conversation):
        payload = pipeline.prepare_turn(conversation).to_dict()
        assert set(payload) == {"systemPrompt", "messages", "tagged", "budget"}
        assert payload["tagged"][2]["tokenCount"] == 150
