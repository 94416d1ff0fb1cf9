"""
Route handlers for model listing operations.
"""
from fastapi import APIRouter, Depends

from dependencies import get_generation
from services.generation import GenerationInvoker
from utils.logger import app_logger

router = APIRouter()


@router.get("/list")
async def list_models(generation: GenerationInvoker = Depends(get_generation)):
    """List all locally available models."""
    try:
        return {"models": await generation.list_models()}
    except Exception as e:
        app_logger.error(f"Model listing failed: {e}")
        return {"error": str(e)}
