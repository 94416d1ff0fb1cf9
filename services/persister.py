"""
Fire-and-forget recording of finished turns in long-term memory.
"""
import asyncio

from services.memory_gateway import MemoryService
from utils.logger import get_logger

logger = get_logger("persister")


class ConversationPersister:
    """Schedules conversation writes without blocking the turn."""

    def __init__(self, memory_service: MemoryService):
        self._memory_service = memory_service
        self._pending: set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def persist(self, prompt: str, response: str) -> None:
        """Schedule the write and return immediately."""
        task = asyncio.get_running_loop().create_task(self._store(prompt, response))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _store(self, prompt: str, response: str) -> None:
        try:
            await self._memory_service.store_conversation_turn(prompt, response)
        except Exception as e:
            logger.warning(f"Failed to store conversation turn: {e}")
            return
        logger.debug(f"Stored conversation turn ({len(prompt)} + {len(response)} characters)")

    async def drain(self) -> None:
        """Wait for every scheduled write to settle."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
