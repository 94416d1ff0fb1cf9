"""
Optional long-term memory enrichment of the user's prompt.
Failures of the memory service never leave this module.
"""
from typing import Any, Protocol

from pydantic import ValidationError

from config import Config
from models.chat_models import EnrichmentResult, MemoryOptions
from utils.errors import MemoryEnrichmentFailure
from utils.logger import get_logger

logger = get_logger("memory")


class MemoryService(Protocol):
    """Contract consumed from the long-term memory service."""

    async def enrich_prompt(self, text: str, options: MemoryOptions) -> Any: ...

    async def store_conversation_turn(self, prompt: str, response: str) -> None: ...


class MemoryEnrichmentGateway:
    """Augments a prompt with retrieved context, degrading to the plain prompt on any failure."""

    def __init__(self, memory_service: MemoryService, context_window_size: int = Config.MEMORY_CONTEXT_WINDOW):
        self._memory_service = memory_service
        self._options = MemoryOptions(
            enabled=True,
            context_window_size=context_window_size,
            smart_filter=True,
            debug=False
        )

    @staticmethod
    def unaugmented(base_prompt: str) -> EnrichmentResult:
        return EnrichmentResult(enriched_prompt=base_prompt, context_used=False, context_length=0)

    @staticmethod
    def _parse(raw: Any) -> EnrichmentResult:
        try:
            return EnrichmentResult.model_validate(raw, from_attributes=True)
        except ValidationError as e:
            raise MemoryEnrichmentFailure(f"Malformed memory service response: {e.error_count()} invalid field(s)") from e

    async def enrich(self, base_prompt: str) -> EnrichmentResult:
        """
        Enrich the prompt with long-term memory context.

        Args:
            base_prompt: The final user message content

        Returns:
            EnrichmentResult; the unaugmented prompt when no context was used or the service failed
        """
        try:
            raw = await self._memory_service.enrich_prompt(base_prompt, self._options)
            result = self._parse(raw)
        except Exception as e:
            logger.warning(f"Memory enrichment failed, continuing without it: {e}")
            return self.unaugmented(base_prompt)

        if not result.context_used:
            return self.unaugmented(base_prompt)

        logger.info(f"Memory context applied: {result.context_length} characters")
        return result
