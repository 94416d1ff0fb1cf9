import asyncio
import logging
from types import SimpleNamespace

import pytest

from services.memory_gateway import MemoryEnrichmentGateway
from tests.fixtures.responses import ENRICHED_MEMORY_RESPONSE, MALFORMED_MEMORY_RESPONSES


@pytest.mark.anyio
async def test_enrich_uses_fixed_retrieval_policy(memory_service):
    """Given any prompt, the memory service should be asked for 3 items with smart filtering and no debug."""
    gateway = MemoryEnrichmentGateway(memory_service)

    await gateway.enrich("hello")

    options = memory_service.enrich_calls[0]["options"]
    assert options.enabled is True
    assert options.context_window_size == 3
    assert options.smart_filter is True
    assert options.debug is False


@pytest.mark.anyio
async def test_enrich_returns_service_context_when_used(memory_service):
    """Given a service answer with context, the enriched prompt should be passed through."""
    memory_service.enrichment = ENRICHED_MEMORY_RESPONSE
    gateway = MemoryEnrichmentGateway(memory_service)

    result = await gateway.enrich("remind me about my dog")

    assert result.context_used is True
    assert result.context_length == 64
    assert "Biscuit" in result.enriched_prompt


@pytest.mark.anyio
async def test_enrich_accepts_attribute_style_responses(memory_service):
    memory_service.enrichment = SimpleNamespace(enriched_prompt="ctx + q", context_used=True, context_length=3)
    result = await MemoryEnrichmentGateway(memory_service).enrich("q")
    assert result.enriched_prompt == "ctx + q"


@pytest.mark.anyio
async def test_unused_context_falls_back_to_base_prompt(memory_service):
    """Given context_used false, the base prompt should be kept even if the service rewrote it."""
    memory_service.enrichment = {"enriched_prompt": "rewritten", "context_used": False, "context_length": 9}

    result = await MemoryEnrichmentGateway(memory_service).enrich("original")

    assert result.enriched_prompt == "original"
    assert result.context_length == 0


@pytest.mark.anyio
@pytest.mark.parametrize("error", [
    RuntimeError("chroma down"),
    asyncio.TimeoutError(),
    ConnectionRefusedError("[Errno 111] Connection refused"),
])
async def test_service_failures_degrade_to_unaugmented_prompt(memory_service, error, caplog):
    """Given a failing memory service, enrich should not raise and should log a warning."""
    memory_service.enrich_error = error
    gateway = MemoryEnrichmentGateway(memory_service)

    with caplog.at_level(logging.WARNING):
        result = await gateway.enrich("hello")

    assert result.enriched_prompt == "hello"
    assert result.context_used is False
    assert result.context_length == 0
    assert any("Memory enrichment failed" in r.getMessage() for r in caplog.records)


@pytest.mark.anyio
@pytest.mark.parametrize("payload", MALFORMED_MEMORY_RESPONSES)
async def test_malformed_responses_degrade_to_unaugmented_prompt(memory_service, payload):
    memory_service.enrichment = payload if payload is not None else {}

    result = await MemoryEnrichmentGateway(memory_service).enrich("hello")

    assert result.enriched_prompt == "hello"
    assert result.context_used is False
