"""Pytest configuration and shared fixtures for testing."""

from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from selfprune.configuration.config import Settings
from selfprune.configuration.di_container import DIContainer
from selfprune.domain.model.prune import ArchivedMessage, PruneConfig
from selfprune.infrastructure.adapters.secondary.storage import InMemoryStorage
from selfprune.infrastructure.agent.context import PruneStateStore
from selfprune.infrastructure.agent.usage import UsageTracker

# 115 plain words estimate to ceil(115 * 1.3) = 150 tokens
LONG_TEXT_150_TOKENS = " ".join(["data"] * 115)

FIXED_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def make_archived(
    message_id: str = "msg:001",
    token_count: int = 100,
    content: str = "archived content",
    reason: str = "done",
) -> ArchivedMessage:
    """Create an ArchivedMessage for testing."""
    return ArchivedMessage(
        id=message_id,
        role="assistant",
        content=content,
        token_count=token_count,
        reason=reason,
        pruned_at=FIXED_TIME,
    )


@pytest.fixture
def conversation():
    """Four-message conversation whose third message is worth 150 tokens."""
    return [
        {"role": "user", "content": "What is the weather in Paris?"},
        {"role": "assistant", "content": "Let me look that up."},
        {"role": "tool", "content": LONG_TEXT_150_TOKENS},
        {"role": "assistant", "content": "It is sunny and 21 degrees."},
    ]


@pytest.fixture
def tool_conversation():
    """Conversation with an OpenAI-style tool call and its result."""
    return [
        {"role": "user", "content": "Weather in Paris?"},
        {
            "role": "assistant",
            "content": "Checking.",
            "tool_calls": [
                {
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": "get_weather", "arguments": "{}"},
                }
            ],
        },
        {"role": "tool", "tool_call_id": "call_1", "content": "sunny, 21C"},
        {"role": "assistant", "content": "It is sunny."},
    ]


@pytest.fixture
def prune_store() -> PruneStateStore:
    return PruneStateStore(config=PruneConfig())


@pytest.fixture
def usage_tracker() -> UsageTracker:
    return UsageTracker()


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings isolated from the environment: memory storage, heuristic counting."""
    return Settings(
        _env_file=None,
        PRUNE_STORAGE_BACKENDS="memory",
        PRUNE_STORAGE_DIR=tmp_path,
        EXACT_TOKEN_COUNTING=False,
    )


@pytest.fixture
def container(test_settings, memory_storage) -> DIContainer:
    return DIContainer(settings=test_settings, storage=memory_storage)


@pytest.fixture
def client(test_settings, container) -> TestClient:
    """TestClient over an app wired to the test container."""
    from selfprune.infrastructure.adapters.primary.web.main import create_app

    app = create_app(app_settings=test_settings, container=container)
    return TestClient(app)
