"""Unit tests for the prune management router."""

from dataclasses import replace

import pytest
from fastapi import status

from selfprune.domain.model.prune import PruneSuggestion
from selfprune.tests.conftest import make_archived


@pytest.mark.unit
class TestArchiveEndpoints:
    """Tests for archive listing, restore and clear."""

    def test_list_archive(self, client, container):
        container.prune_store().add_to_archive([make_archived("msg:002", 40)])

        data = client.get("/api/prune/archive").json()

        assert [e["id"] for e in data["archive"]] == ["msg:002"]
        assert data["totalTokensReclaimed"] == 40
        assert data["prunedIds"] == ["msg:002"]

    def test_restore(self, client, container):
        store = container.prune_store()
        store.add_to_archive([make_archived("msg:002", 40), make_archived("msg:005", 60)])

        response = client.post("/api/prune/archive/msg:002/restore")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["restored"]["id"] == "msg:002"
        assert response.json()["totalTokensReclaimed"] == 60
        assert response.json()["restoredIds"] == ["msg:002"]
        assert not store.is_pruned("msg:002")

    def test_restore_reports_tool_pair_partner(self, client, container):
        call = make_archived("msg:002", 5)
        result = make_archived("msg:003", 7)
        container.prune_store().add_to_archive(
            [replace(call, group="msg:002"), replace(result, group="msg:002")]
        )

        data = client.post("/api/prune/archive/msg:003/restore").json()

        assert data["restored"]["id"] == "msg:003"
        assert data["restoredIds"] == ["msg:002", "msg:003"]
        assert data["totalTokensReclaimed"] == 0

    def test_restore_unknown_id(self, client):
        response = client.post("/api/prune/archive/msg:404/restore")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["category"] == "not_found"

    def test_clear_archive(self, client, container):
        container.prune_store().add_to_archive(
            [make_archived("msg:001", 100), make_archived("msg:002", 200)]
        )

        data = client.delete("/api/prune/archive").json()

        assert data["archive"] == []
        assert data["totalTokensReclaimed"] == 0
        assert data["prunedIds"] == ["msg:001", "msg:002"]

    def test_reset(self, client, container):
        container.prune_store().add_to_archive([make_archived("msg:001", 100)])
        data = client.post("/api/prune/reset").json()
        assert data == {"archive": [], "totalTokensReclaimed": 0, "prunedIds": []}


@pytest.mark.unit
class TestConfigEndpoints:
    """Tests for reading and patching the live config."""

    def test_get_config(self, client):
        assert client.get("/api/prune/config").json() == {
            "confidenceThreshold": 0.8,
            "maxContextTokens": 128000,
            "enablePruning": True,
        }

    def test_patch_config(self, client, container):
        response = client.patch("/api/prune/config", json={"confidenceThreshold": 0.5})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["confidenceThreshold"] == 0.5
        assert container.prune_store().config.confidence_threshold == 0.5

    @pytest.mark.parametrize(
        "body",
        [{"confidenceThreshold": -0.2}, {"maxContextTokens": 0}, {"colour": "blue"}],
    )
    def test_patch_invalid_config(self, client, container, body):
        response = client.patch("/api/prune/config", json=body)

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error_type"] == "PruneConfigError"
        assert detail["category"] == "validation"
        assert container.prune_store().config.confidence_threshold == 0.8


@pytest.mark.unit
class TestPendingEndpoints:
    """Tests for the manual approval inbox."""

    def test_list_and_clear(self, client, container):
        container.prune_store().add_pending_suggestions(
            [PruneSuggestion(id="msg:001", confidence=0.4, tokens=8, reason="r")]
        )

        assert [s["id"] for s in client.get("/api/prune/pending").json()["pending"]] == ["msg:001"]
        assert client.delete("/api/prune/pending").json() == {"pending": []}
        assert container.prune_store().pending_suggestions == []

    def test_approve_pending(self, client, container, conversation):
        container.prune_store().add_pending_suggestions(
            [PruneSuggestion(id="msg:003", confidence=0.3, tokens=150, reason="old data")]
        )

        response = client.post("/api/prune/pending/approve", json={"messages": conversation})

        data = response.json()
        assert response.status_code == status.HTTP_200_OK
        assert [e["id"] for e in data["archived"]] == ["msg:003"]
        assert data["tokensReclaimed"] == 150
        assert data["totalTokensReclaimed"] == 150
        assert data["pending"] == []
