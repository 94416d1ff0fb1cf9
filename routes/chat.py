"""
Route handlers for chat turns.
Handles the /chat endpoint (non-streaming).
"""
from fastapi import APIRouter, Depends

from dependencies import get_orchestrator
from models.api_models import TurnRequest, TurnResult
from services.chat_service import ChatTurnOrchestrator

router = APIRouter()


@router.post("/chat", response_model=TurnResult)
async def chat(request: TurnRequest, orchestrator: ChatTurnOrchestrator = Depends(get_orchestrator)):
    """
    Run one chat turn. Failures come back as ``success: false`` with metadata, never as HTTP errors.
    """
    return await orchestrator.process_turn(request)
