"""
Suggestion service: completes the user's typing from previously sent prompts.
"""
from typing import Protocol

from config import Config
from services.memory_store import MemoryStore


class SuggestionService(Protocol):
    """Contract consumed by the predictive suggestion cache."""

    async def get_suggestions(self, text: str) -> list[str]: ...


class HistorySuggestionService:
    """Suggests the remainder of past prompts that start with the typed text."""

    def __init__(self, memory_store: MemoryStore, max_suggestions: int = Config.MAX_SUGGESTIONS):
        self._memory_store = memory_store
        self._max_suggestions = max_suggestions

    async def get_suggestions(self, text: str) -> list[str]:
        typed = text.strip()
        if not typed:
            return []

        prompts = await self._memory_store.recent_prompts(typed, self._max_suggestions)
        suggestions = []
        for prompt in prompts:
            remainder = prompt.strip()[len(typed):].strip()
            if remainder and remainder not in suggestions:
                suggestions.append(remainder)
        return suggestions
