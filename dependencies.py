"""
FastAPI dependencies.

Components are built once in the application lifespan and stored on
``app.state``; routes only look them up here.
"""
from fastapi import HTTPException, Request, status

from services.chat_service import ChatTurnOrchestrator
from services.generation import GenerationInvoker
from utils.process_resilience import ProcessResilienceLayer
from utils.suggestion_cache import PredictiveSuggestionCache
from utils.telemetry import TurnTelemetry


def get_orchestrator(request: Request) -> ChatTurnOrchestrator:
    return request.app.state.orchestrator


def get_generation(request: Request) -> GenerationInvoker:
    return request.app.state.generation


def get_suggesters(request: Request) -> dict[str, PredictiveSuggestionCache]:
    return request.app.state.suggesters


def get_suggester(kind: str, request: Request) -> PredictiveSuggestionCache:
    suggester = get_suggesters(request).get(kind)
    if suggester is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown suggestion source '{kind}'")
    return suggester


def get_resilience(request: Request) -> ProcessResilienceLayer:
    return request.app.state.resilience


def get_telemetry(request: Request) -> TurnTelemetry:
    return request.app.state.telemetry
