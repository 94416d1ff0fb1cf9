import sqlite3

import pytest

from models.chat_models import MemoryOptions
from services.memory_store import MemoryStore
from utils.errors import PersistenceFailure


@pytest.mark.anyio
async def test_store_and_count_turns(memory_store):
    await memory_store.store_conversation_turn("what is my dog's name", "Your dog is called Biscuit.")
    await memory_store.store_conversation_turn("favourite colour?", "Green.")

    assert await memory_store.count() == 2


@pytest.mark.anyio
async def test_enrich_prompt_without_history_is_unchanged(memory_store):
    result = await memory_store.enrich_prompt("hello there", MemoryOptions())

    assert result == {"enriched_prompt": "hello there", "context_used": False, "context_length": 0, "summaries_used": 0}


@pytest.mark.anyio
async def test_enrich_prompt_uses_related_turns(memory_store):
    """Given a related past turn, it should be embedded in the enriched prompt."""
    await memory_store.store_conversation_turn("what is my dog's name", "Your dog is called Biscuit.")
    await memory_store.store_conversation_turn("how tall is everest", "8849 metres.")

    result = await memory_store.enrich_prompt("remind me about my dog", MemoryOptions())

    assert result["context_used"] is True
    assert result["summaries_used"] == 1
    assert "Biscuit" in result["enriched_prompt"]
    assert "everest" not in result["enriched_prompt"]
    assert result["enriched_prompt"].rstrip().endswith("more informed response.")
    assert "Current question: remind me about my dog" in result["enriched_prompt"]
    assert result["context_length"] == len("User: what is my dog's name\nAssistant: Your dog is called Biscuit.")


@pytest.mark.anyio
async def test_enrich_prompt_respects_context_window(memory_store):
    for i in range(5):
        await memory_store.store_conversation_turn(f"python question {i}", f"python answer {i}")

    result = await memory_store.enrich_prompt("another python question", MemoryOptions(context_window_size=3))

    assert result["summaries_used"] == 3
    # Equal overlap is broken by recency
    assert "python question 4" in result["enriched_prompt"]
    assert "python question 0" not in result["enriched_prompt"]


@pytest.mark.anyio
async def test_smart_filter_skips_identical_prompt(memory_store):
    await memory_store.store_conversation_turn("Tell me a joke", "Why did the chicken cross the road?")

    filtered = await memory_store.enrich_prompt("tell me   a joke", MemoryOptions(smart_filter=True))
    unfiltered = await memory_store.enrich_prompt("tell me   a joke", MemoryOptions(smart_filter=False))

    assert filtered["context_used"] is False
    assert unfiltered["context_used"] is True


@pytest.mark.anyio
async def test_debug_mode_reports_sources(memory_store):
    await memory_store.store_conversation_turn("weather in paris", "Sunny.")

    result = await memory_store.enrich_prompt("paris weather tomorrow", MemoryOptions(debug=True))

    assert result["debug_info"]["original_prompt"] == "paris weather tomorrow"
    assert len(result["debug_info"]["context_sources"]) == 1


@pytest.mark.anyio
async def test_disabled_options_skip_retrieval(memory_store):
    await memory_store.store_conversation_turn("weather in paris", "Sunny.")
    result = await memory_store.enrich_prompt("paris weather", MemoryOptions(enabled=False))
    assert result["context_used"] is False


@pytest.mark.anyio
async def test_recent_prompts_matches_prefix_most_recent_first(memory_store):
    await memory_store.store_conversation_turn("What is Python", "A language.")
    await memory_store.store_conversation_turn("what is rust", "Another language.")
    await memory_store.store_conversation_turn("how are you", "Fine.")
    await memory_store.store_conversation_turn("What is Python", "Still a language.")

    prompts = await memory_store.recent_prompts("what is", limit=5)

    assert prompts == ["What is Python", "what is rust"]


@pytest.mark.anyio
async def test_recent_prompts_treats_wildcards_literally(memory_store):
    await memory_store.store_conversation_turn("100% sure", "ok")
    await memory_store.store_conversation_turn("1000 reasons", "ok")

    assert await memory_store.recent_prompts("100%") == ["100% sure"]


def test_insert_failure_raises_persistence_failure(memory_store):
    memory_store._get_conn().execute("DROP TABLE conversation_turns")

    with pytest.raises(PersistenceFailure) as exc_info:
        memory_store._insert_turn("q", "a")

    assert isinstance(exc_info.value.__cause__, sqlite3.Error)


def test_database_file_is_created_in_missing_directory(tmp_path):
    store = MemoryStore(db_path=str(tmp_path / "nested" / "memory.db"))
    try:
        assert (tmp_path / "nested" / "memory.db").exists()
    finally:
        store.close()
