"""
Generation backend backed by a local Ollama daemon.
"""
from typing import Optional

import ollama

from config import Config
from utils.logger import get_logger

logger = get_logger("ollama")


class OllamaBackend:
    """Thin adapter over ``ollama.AsyncClient`` exposing list/generate."""

    def __init__(self, host: str = Config.OLLAMA_HOST, timeout: float = Config.GENERATION_TIMEOUT,
                 client: Optional[ollama.AsyncClient] = None):
        self._host = host
        self._timeout = timeout
        self._client = client

    @property
    def client(self) -> ollama.AsyncClient:
        if self._client is None:
            self._client = ollama.AsyncClient(host=self._host, timeout=self._timeout)
        return self._client

    async def list_models(self) -> list[str]:
        """List all locally available Ollama models."""
        models_response = await self.client.list()
        return [model['model'] for model in models_response['models']]

    async def generate(self, model: str, prompt: str, options: dict) -> dict:
        """Single non-streamed completion."""
        response = await self.client.generate(
            model=model,
            prompt=prompt,
            stream=False,
            options=options
        )
        return {"model": model, "response": response['response']}

    def reset(self) -> None:
        """Drop the current client so the next call opens a fresh connection pool."""
        logger.warning(f"Resetting Ollama client for {self._host}")
        self._client = None

    async def close(self) -> None:
        if self._client is None:
            return
        inner = getattr(self._client, "_client", None)
        if inner is not None:
            await inner.aclose()
        self._client = None
