"""
Configuration module for the local chat core.
Handles environment variables and application settings.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration class."""

    # Application Settings
    APP_TITLE: str = "Local Chat Core"
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Inference backend
    OLLAMA_HOST: str = os.getenv("OLLAMA_HOST", "http://127.0.0.1:11434")
    DEFAULT_MODEL: str = os.getenv("DEFAULT_MODEL", "tinydolphin:latest")
    DEFAULT_TEMPERATURE: float = 0.7
    DEFAULT_MAX_TOKENS: int = 2048

    # Timeouts (in seconds)
    GENERATION_TIMEOUT: float = float(os.getenv("GENERATION_TIMEOUT", "120"))

    # Turn pipeline
    HISTORY_WINDOW_SIZE: int = 10
    MEMORY_CONTEXT_WINDOW: int = 3

    # Long-term memory store
    MEMORY_DB_PATH: str = os.getenv("MEMORY_DB_PATH", "data/memory.db")
    MEMORY_SCAN_LIMIT: int = 200

    # Suggestions
    SUGGESTION_CACHE_SIZE: int = 50
    PREDICTIVE_DEBOUNCE_SECONDS: float = 0.3
    SUGGESTION_BAR_DEBOUNCE_SECONDS: float = 0.25
    PREDICTIVE_MIN_CHARS: int = 2
    SUGGESTION_BAR_MIN_CHARS: int = 1
    MAX_SUGGESTIONS: int = 5
    SUGGESTION_SESSION_LIMIT: int = 1000

    # Process supervision
    SHUTDOWN_CLEANUP_WINDOW: float = 1.0

    # Telemetry
    TELEMETRY_ENABLED: bool = _env_bool("TELEMETRY_ENABLED", True)

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and print warnings for questionable values."""
        if cls.GENERATION_TIMEOUT <= 0:
            print("   WARNING: GENERATION_TIMEOUT must be positive, generation calls may never time out")

        if not cls.OLLAMA_HOST.startswith(("http://", "https://")):
            print(f"   WARNING: OLLAMA_HOST '{cls.OLLAMA_HOST}' has no scheme")
            print("   Expected something like http://127.0.0.1:11434")

        if cls.SUGGESTION_CACHE_SIZE < 1:
            print("   WARNING: SUGGESTION_CACHE_SIZE below 1, suggestions will never be cached")


Config.validate()
