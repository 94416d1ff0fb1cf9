"""
Constants and prompt templates for the local chat core.
"""

# Template used by the memory store when relevant context was found
MEMORY_ENRICHED_PROMPT = """
Context from previous conversations:
{context}

Current question: {prompt}

Please use the context above to provide a more informed response."""

MEMORY_CONTEXT_SEPARATOR = "\n---\n"


class ErrorMessages:
    """User-facing error strings placed in failed turn results."""
    INVALID_MESSAGE_FORMAT = "Invalid message format"
    EMPTY_RESPONSE = "Empty response from AI model"
    CONNECTION_REFUSED = "Cannot connect to the AI service. Please check if Ollama is running."
    TIMEOUT = "Request timed out. The model might be too large or busy."
    MODEL_NOT_FOUND = 'Model "{model}" was not found. Please check if it\'s installed.'
    GENERIC = "An error occurred while processing your request: {error}"
    UNEXPECTED = "Chat processing failed"


class FaultMarkers:
    """Substrings used to categorize process-level faults."""
    NETWORK = ("ECONN", "Connection reset", "Connection refused", "Connection aborted")
    AI_SERVICE_PACKAGE = "ollama"
    AI_SERVICE_MODULE = "ollama_backend.py"
    RECOVERABLE_TIMEOUT = ("timeout", "timed out")
