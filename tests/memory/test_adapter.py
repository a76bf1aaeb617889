"""Tests for LongTermMemoryAdapter against a mocked memory service."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import httpx
import pytest

from src.memory._adapter import LongTermMemoryAdapter
from src.memory._exceptions import MemoryServiceError
from src.retrieval._exceptions import AdapterError
from src.retrieval._models import AdapterName

RESULTS = [
    {
        "id": "m-1",
        "memory": "Loves building AI side projects",
        "score": 0.82,
        "metadata": {"app_id": "7", "source": "linkedin"},
        "created_at": "2025-05-01T10:00:00Z",
    },
    {"id": "m-2", "memory": "Prefers tea over coffee", "score": 0.4},
    {"id": "m-3", "memory": "Runs marathons", "score": 0.55},
    {"id": "m-4", "memory": "   ", "score": 0.9},
]


def _adapter(settings, client) -> LongTermMemoryAdapter:
    return LongTermMemoryAdapter(settings, client=client, api_key="m0-test")


class TestSearch:
    @pytest.mark.asyncio
    async def test_app_scoped_search_uses_v2_filter(self, memory_settings, mock_client) -> None:
        captured: list[httpx.Request] = []
        adapter = _adapter(memory_settings, mock_client([(200, {"results": RESULTS})], captured))

        items = await adapter.search("What are you into?", "42", "7")

        request = captured[0]
        assert request.url.path == "/v2/memories/search/"
        assert json.loads(request.content) == {
            "query": "What are you into?",
            "user_id": "42",
            "filters": {"AND": [{"metadata": {"app_id": "7"}}]},
        }
        assert [i.external_ref for i in items] == ["m-1", "m-3"]
        assert all(i.source == AdapterName.MEMORY for i in items)

    @pytest.mark.asyncio
    async def test_unscoped_search_uses_v1(self, memory_settings, mock_client) -> None:
        captured: list[httpx.Request] = []
        adapter = _adapter(memory_settings, mock_client([(200, RESULTS)], captured))

        items = await adapter.search("hobbies", "42")

        assert captured[0].url.path == "/v1/memories/search/"
        assert json.loads(captured[0].content) == {"query": "hobbies", "user_id": "42"}
        assert len(items) == 2

    @pytest.mark.asyncio
    async def test_min_score_is_strict_and_sorted(self, memory_settings, mock_client) -> None:
        adapter = _adapter(memory_settings, mock_client([(200, {"results": RESULTS})]))

        items = await adapter.search("q", "42", "7")

        assert [i.score for i in items] == [0.82, 0.55]

    @pytest.mark.asyncio
    async def test_item_mapping(self, memory_settings, mock_client) -> None:
        adapter = _adapter(memory_settings, mock_client([(200, {"results": RESULTS[:1]})]))

        item = (await adapter.search("q", "42", "7"))[0]

        assert item.text == "Loves building AI side projects"
        assert item.created_at == datetime(2025, 5, 1, 10, 0, tzinfo=UTC)
        assert item.metadata == {"app_id": "7", "source": "linkedin"}

    @pytest.mark.asyncio
    async def test_content_timestamp_preferred_over_ingest_time(self, memory_settings, mock_client) -> None:
        record = {
            "id": "m-9",
            "memory": "Wrote about remote work",
            "score": 0.7,
            "created_at": "2025-06-14T00:00:00Z",
            "metadata": {"app_id": "7", "timestamp": "2021-03-01T08:30:00Z"},
        }
        adapter = _adapter(memory_settings, mock_client([(200, {"results": [record]})]))

        item = (await adapter.search("q", "42", "7"))[0]

        assert item.created_at == datetime(2021, 3, 1, 8, 30, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_unparseable_timestamp_falls_back_to_created_at(self, memory_settings, mock_client) -> None:
        record = {
            "id": "m-10",
            "memory": "Started learning Rust",
            "score": 0.7,
            "created_at": "2025-06-14T00:00:00Z",
            "metadata": {"timestamp": "not a date"},
        }
        adapter = _adapter(memory_settings, mock_client([(200, {"results": [record]})]))

        item = (await adapter.search("q", "42", "7"))[0]

        assert item.created_at == datetime(2025, 6, 14, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_default_client_configuration(self, memory_settings) -> None:
        adapter = LongTermMemoryAdapter(memory_settings, api_key="m0-test")

        client = adapter._ensure_client()

        assert client.headers["Authorization"] == "Token m0-test"
        assert client.base_url.host == "api.mem0.ai"
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_missing_key_returns_empty(self, memory_settings, mock_client) -> None:
        captured: list[httpx.Request] = []
        adapter = LongTermMemoryAdapter(
            memory_settings,
            client=mock_client([(200, RESULTS)], captured),
            api_key="",
        )

        assert await adapter.search("q", "42", "7") == []
        assert captured == []
        assert adapter.is_configured is False

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, memory_settings, mock_client) -> None:
        captured: list[httpx.Request] = []
        client = mock_client([(503, {"error": "busy"}), (200, {"results": RESULTS})], captured)

        items = await _adapter(memory_settings, client).search("q", "42", "7")

        assert len(captured) == 2
        assert len(items) == 2

    @pytest.mark.asyncio
    async def test_search_gives_up_after_three_attempts(self, memory_settings, mock_client) -> None:
        captured: list[httpx.Request] = []
        client = mock_client([(502, {"error": "bad gateway"})], captured)

        with pytest.raises(MemoryServiceError, match="memory_search failed") as info:
            await _adapter(memory_settings, client).search("q", "42", "7")
        assert len(captured) == 3
        assert info.value.status == 502

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, memory_settings, mock_client) -> None:
        captured: list[httpx.Request] = []
        client = mock_client([(400, {"error": "bad filter"})], captured)

        with pytest.raises(MemoryServiceError, match="returned 400") as info:
            await _adapter(memory_settings, client).search("q", "42", "7")
        assert len(captured) == 1
        assert info.value.status == 400
        assert isinstance(info.value, AdapterError)
        assert str(info.value).startswith("memory:")


class TestAdd:
    @pytest.mark.asyncio
    async def test_payload(self, memory_settings, mock_client) -> None:
        captured: list[httpx.Request] = []
        adapter = _adapter(memory_settings, mock_client([(200, {"results": [{"id": "new"}]})], captured))

        result = await adapter.add("I just ran my first ultra", "42", "7", {"source": "twitter"})

        assert result == {"results": [{"id": "new"}]}
        assert captured[0].url.path == "/v1/memories/"
        sent = json.loads(captured[0].content)
        assert sent["messages"] == [{"role": "user", "content": "I just ran my first ultra"}]
        assert sent["user_id"] == "42"
        assert sent["agent_id"] == "7"
        assert sent["async_mode"] is False
        assert sent["metadata"]["app_id"] == "7"
        assert sent["metadata"]["source"] == "twitter"
        assert "ingested_at" in sent["metadata"]
        assert "timestamp" in sent["metadata"]

    @pytest.mark.asyncio
    async def test_metadata_cannot_override_app_id(self, memory_settings, mock_client) -> None:
        captured: list[httpx.Request] = []
        adapter = _adapter(memory_settings, mock_client([(200, {})], captured))

        await adapter.add("text", "42", "7", {"app_id": "999"})

        assert json.loads(captured[0].content)["metadata"]["app_id"] == "7"

    @pytest.mark.asyncio
    async def test_ingest_uses_eight_attempts(self, memory_settings, mock_client) -> None:
        captured: list[httpx.Request] = []
        client = mock_client([(503, {})], captured)

        with pytest.raises(MemoryServiceError, match="memory_add failed"):
            await _adapter(memory_settings, client).add("text", "42", "7")
        assert len(captured) == 8

    @pytest.mark.asyncio
    async def test_missing_key_raises(self, memory_settings) -> None:
        adapter = LongTermMemoryAdapter(memory_settings, api_key="")
        with pytest.raises(MemoryServiceError, match="MEM0_API_KEY"):
            await adapter.add("text", "42", "7")


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_aclose(self, memory_settings, mock_client) -> None:
        adapter = _adapter(memory_settings, mock_client([(200, [])]))
        await adapter.aclose()
        assert adapter._client is None
