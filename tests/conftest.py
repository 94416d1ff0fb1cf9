import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def mock_ollama_client():
    """Reusable mock for ollama.AsyncClient in non-streaming mode."""
    client = AsyncMock()
    client.generate = AsyncMock(return_value={"model": "llama3.2:3b", "response": "non-streamed response"})
    client.list = AsyncMock(return_value={"models": [{"model": "llama3.2:3b"}, {"model": "mistral:7b"}]})
    return client


@pytest.fixture
def generation_backend():
    from tests.fixtures.mock_clients import FakeGenerationBackend
    return FakeGenerationBackend()


@pytest.fixture
def memory_service():
    from tests.fixtures.mock_clients import FakeMemoryService
    return FakeMemoryService()


@pytest.fixture
def suggestion_service():
    from tests.fixtures.mock_clients import FakeSuggestionService
    return FakeSuggestionService()


@pytest.fixture
def telemetry():
    from utils.telemetry import TurnTelemetry
    return TurnTelemetry(SimpleNamespace(TELEMETRY_ENABLED=True))


@pytest.fixture
def persister(memory_service):
    from services.persister import ConversationPersister
    return ConversationPersister(memory_service)


@pytest.fixture
def orchestrator(generation_backend, memory_service, persister, telemetry):
    """ChatTurnOrchestrator wired to in-memory doubles."""
    from services.chat_service import ChatTurnOrchestrator
    from services.generation import GenerationInvoker
    from services.memory_gateway import MemoryEnrichmentGateway

    return ChatTurnOrchestrator(
        memory_gateway=MemoryEnrichmentGateway(memory_service),
        generation=GenerationInvoker(generation_backend, default_model="tinydolphin:latest"),
        persister=persister,
        telemetry=telemetry
    )


@pytest.fixture
def resilience():
    """Supervisor with no cleanup delay and a recorded exit."""
    from utils.process_resilience import ProcessResilienceLayer
    exit_func = MagicMock()
    layer = ProcessResilienceLayer(cleanup_window=0, exit_func=exit_func)
    layer.exit_func = exit_func
    yield layer
    layer.uninstall()


@pytest.fixture
def memory_store(tmp_path):
    from services.memory_store import MemoryStore
    store = MemoryStore(db_path=str(tmp_path / "memory.db"))
    yield store
    store.close()


@pytest.fixture
def configured_app(orchestrator, generation_backend, suggestion_service, telemetry, resilience):
    """App with every router and doubles on app.state, without the production lifespan."""
    from fastapi import FastAPI
    from fastapi.testclient import TestClient
    from routes import chat, health, models_route, suggestions
    from services.generation import GenerationInvoker
    from utils.suggestion_cache import PredictiveSuggestionCache

    app = FastAPI()
    app.include_router(chat.router)
    app.include_router(models_route.router)
    app.include_router(suggestions.router)
    app.include_router(health.router)

    app.state.orchestrator = orchestrator
    app.state.generation = GenerationInvoker(generation_backend)
    app.state.telemetry = telemetry
    app.state.resilience = resilience
    app.state.suggesters = {
        "predictive": PredictiveSuggestionCache(suggestion_service, debounce_seconds=0.01, min_chars=2),
        "inline": PredictiveSuggestionCache(suggestion_service, debounce_seconds=0.01, min_chars=1),
    }

    with TestClient(app) as client:
        yield client
