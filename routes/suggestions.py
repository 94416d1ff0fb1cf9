"""
Route handlers for predictive and inline suggestions.
"""
from fastapi import APIRouter, Depends, Query

from dependencies import get_suggester
from models.api_models import SuggestionResponse
from utils.suggestion_cache import PredictiveSuggestionCache

router = APIRouter()


@router.get("/suggestions/{kind}", response_model=SuggestionResponse)
async def get_suggestions(
    text: str = Query("", max_length=2000),
    session: str = Query("default", max_length=100),
    suggester: PredictiveSuggestionCache = Depends(get_suggester)
):
    """Debounced suggestions for the text typed so far in ``session``."""
    suggestions = await suggester.fetch(text, session)
    return SuggestionResponse(session=session, suggestions=suggestions)


@router.delete("/suggestions/{kind}/{session}", response_model=SuggestionResponse)
async def clear_suggestions(session: str, suggester: PredictiveSuggestionCache = Depends(get_suggester)):
    """Cancel any pending fetch and clear the session's suggestions."""
    suggester.clear(session)
    return SuggestionResponse(session=session, suggestions=[])
