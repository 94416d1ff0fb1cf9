"""
Error taxonomy for the chat-turn pipeline.

Only InvalidRequest and GenerationFailed ever cross the turn boundary; the
memory and persistence failures are raised and caught inside their own stage.
"""


class TurnError(Exception):
    """Base class for failures raised while processing a turn."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(TurnError):
    """Malformed turn input, rejected before any external call."""


class GenerationFailed(TurnError):
    """The inference backend produced no usable output."""

    def __init__(self, message: str, model: str | None = None):
        super().__init__(message)
        self.model = model


class MemoryEnrichmentFailure(TurnError):
    """The memory service failed or answered with a malformed payload."""


class PersistenceFailure(TurnError):
    """Recording a finished turn in long-term storage failed."""
