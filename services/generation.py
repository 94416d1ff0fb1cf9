"""
Generation invoker: resolves the target model, composes the final prompt and
normalizes the backend's answer or failure.
"""
import asyncio
from typing import Any, Protocol

import httpx
import ollama

from config import Config
from models.chat_models import EnrichedPrompt, GenerationResult, SamplingOptions
from utils.constants import ErrorMessages
from utils.errors import GenerationFailed
from utils.logger import get_logger

logger = get_logger("generation")


class GenerationBackend(Protocol):
    """Contract consumed from the inference backend."""

    async def list_models(self) -> list[str]: ...

    async def generate(self, model: str, prompt: str, options: dict) -> Any: ...


class GenerationInvoker:
    """Sends one non-streamed generation call per turn."""

    def __init__(self, backend: GenerationBackend, default_model: str = Config.DEFAULT_MODEL):
        self._backend = backend
        self._default_model = default_model

    async def list_models(self) -> list[str]:
        return await self._backend.list_models()

    async def resolve_model(self, requested: str | None) -> str:
        """Requested model, else the first model the backend reports, else the default."""
        if requested:
            return requested

        try:
            models = await self._backend.list_models()
        except Exception as e:
            logger.warning(f"Could not list models, falling back to {self._default_model}: {e}")
            return self._default_model

        if models:
            return models[0]
        return self._default_model

    @staticmethod
    def compose_prompt(enriched: EnrichedPrompt) -> str:
        """
        Join the history window as ``role: content`` lines and append the user turn.
        The final user message of the window is replaced by the enriched user turn.
        """
        prior = enriched.history_window[:-1]
        if not prior:
            return enriched.user_turn

        history = "\n".join(f"{msg.role}: {msg.content}" for msg in prior)
        return f"{history}\nuser: {enriched.user_turn}"

    @staticmethod
    def build_options(sampling: SamplingOptions) -> dict:
        temperature = sampling.temperature if sampling.temperature is not None else Config.DEFAULT_TEMPERATURE
        max_tokens = sampling.max_tokens if sampling.max_tokens is not None else Config.DEFAULT_MAX_TOKENS
        return {"temperature": temperature, "num_predict": max_tokens}

    @staticmethod
    def describe_error(error: Exception, model: str) -> str:
        """Human-readable message for a backend failure."""
        if isinstance(error, ollama.ResponseError):
            if error.status_code == 404:
                return ErrorMessages.MODEL_NOT_FOUND.format(model=model)
            return ErrorMessages.GENERIC.format(error=error.error)
        if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
            return ErrorMessages.TIMEOUT
        if isinstance(error, (httpx.ConnectError, ConnectionError)):
            return ErrorMessages.CONNECTION_REFUSED
        return ErrorMessages.GENERIC.format(error=error)

    @staticmethod
    def _extract_response(raw: Any) -> str | None:
        if raw is None:
            return None
        try:
            return raw["response"]
        except (KeyError, TypeError):
            return getattr(raw, "response", None)

    async def invoke(self, model: str, enriched: EnrichedPrompt, sampling: SamplingOptions) -> GenerationResult:
        """
        Run the generation call for a turn.

        Args:
            model: Resolved model identifier
            enriched: The turn's prompt state
            sampling: Temperature / max token settings from the request

        Returns:
            GenerationResult with the model output

        Raises:
            GenerationFailed: on transport errors or an empty response
        """
        prompt = self.compose_prompt(enriched)
        options = self.build_options(sampling)
        logger.debug(f"Generating with {model}: {len(prompt)} prompt characters, options={options}")

        try:
            raw = await self._backend.generate(model, prompt, options)
        except Exception as e:
            logger.error(f"Generation call failed for {model}: {e}")
            raise GenerationFailed(self.describe_error(e, model), model=model) from e

        response = self._extract_response(raw)
        if not response:
            raise GenerationFailed(ErrorMessages.EMPTY_RESPONSE, model=model)

        return GenerationResult(model=model, response=response)
