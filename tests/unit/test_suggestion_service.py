from unittest.mock import AsyncMock, MagicMock

import pytest

from services.suggestion_service import HistorySuggestionService


@pytest.mark.anyio
async def test_suggestions_complete_past_prompts(memory_store):
    await memory_store.store_conversation_turn("what is the capital of France", "Paris.")
    await memory_store.store_conversation_turn("what is the weather", "Sunny.")
    service = HistorySuggestionService(memory_store)

    suggestions = await service.get_suggestions("What is the ")

    assert suggestions == ["weather", "capital of France"]


@pytest.mark.anyio
async def test_blank_text_returns_nothing():
    store = MagicMock()
    store.recent_prompts = AsyncMock()
    service = HistorySuggestionService(store)

    assert await service.get_suggestions("   ") == []
    store.recent_prompts.assert_not_called()


@pytest.mark.anyio
async def test_exact_matches_and_duplicates_are_dropped():
    store = MagicMock()
    store.recent_prompts = AsyncMock(return_value=["tell me", "tell me a joke", "Tell me  a joke "])
    service = HistorySuggestionService(store, max_suggestions=3)

    assert await service.get_suggestions("tell me") == ["a joke"]
    store.recent_prompts.assert_awaited_once_with("tell me", 3)
