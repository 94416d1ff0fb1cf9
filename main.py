"""
Local Chat Core - FastAPI application for chatting with a locally hosted model.
Resilient chat-turn pipeline with long-term memory, predictive suggestions and process supervision.
"""
import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import Config
from routes import chat, health, models_route, suggestions
from services.chat_service import ChatTurnOrchestrator
from services.generation import GenerationInvoker
from services.memory_gateway import MemoryEnrichmentGateway
from services.memory_store import MemoryStore
from services.ollama_backend import OllamaBackend
from services.persister import ConversationPersister
from services.suggestion_service import HistorySuggestionService
from utils.logger import app_logger
from utils.process_resilience import ProcessResilienceLayer
from utils.suggestion_cache import PredictiveSuggestionCache
from utils.telemetry import TurnTelemetry


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build every component once, install process supervision, tear down on exit."""
    resilience = ProcessResilienceLayer()
    resilience.install(asyncio.get_running_loop())

    memory_store = MemoryStore()
    backend = OllamaBackend()
    persister = ConversationPersister(memory_store)
    generation = GenerationInvoker(backend)
    telemetry = TurnTelemetry(Config)
    suggestion_service = HistorySuggestionService(memory_store)

    app.state.resilience = resilience
    app.state.generation = generation
    app.state.telemetry = telemetry
    app.state.orchestrator = ChatTurnOrchestrator(
        memory_gateway=MemoryEnrichmentGateway(memory_store),
        generation=generation,
        persister=persister,
        telemetry=telemetry
    )
    app.state.suggesters = {
        "predictive": PredictiveSuggestionCache(
            suggestion_service,
            debounce_seconds=Config.PREDICTIVE_DEBOUNCE_SECONDS,
            min_chars=Config.PREDICTIVE_MIN_CHARS
        ),
        "inline": PredictiveSuggestionCache(
            suggestion_service,
            debounce_seconds=Config.SUGGESTION_BAR_DEBOUNCE_SECONDS,
            min_chars=Config.SUGGESTION_BAR_MIN_CHARS
        ),
    }

    def cancel_suggestions() -> None:
        for suggester in app.state.suggesters.values():
            suggester.cancel_all()

    resilience.add_recovery_hook(backend.reset)
    resilience.add_cleanup(cancel_suggestions)
    resilience.add_cleanup(persister.drain)
    resilience.add_cleanup(backend.close)
    resilience.add_cleanup(memory_store.close)

    yield

    cancel_suggestions()
    await persister.drain()
    await backend.close()
    memory_store.close()
    resilience.uninstall()


app = FastAPI(title=Config.APP_TITLE, lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with user-friendly messages"""
    errors = exc.errors()
    app_logger.error(f"Validation error for {request.url}: {errors}")

    if errors:
        first_error = errors[0]
        error_type = first_error.get('type', '')
        field = first_error.get('loc', [])[-1] if first_error.get('loc') else 'field'

        if error_type == 'string_too_long':
            max_length = first_error.get('ctx', {}).get('max_length', 'unknown')
            message = f"Field '{field}' exceeds maximum length of {max_length} characters"
        elif error_type == 'literal_error':
            message = f"{field}: role must be one of user, assistant, system"
        else:
            message = f"{field}: {first_error.get('msg', 'Validation error')}"

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": [{
                    "msg": message,
                    "type": error_type,
                    "loc": list(first_error.get('loc', []))
                }]
            },
        )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors},
    )


@app.get("/")
async def root():
    """Root endpoint - liveness check."""
    return {"message": "Local Chat Core is running"}

app.include_router(chat.router, tags=["chat"])
app.include_router(models_route.router, tags=["models"])
app.include_router(suggestions.router, tags=["suggestions"])
app.include_router(health.router, tags=["health"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=Config.HOST, port=Config.PORT)
