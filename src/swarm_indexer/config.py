"""Configuration for the indexing pipeline and the embedding service."""

import os

from dotenv import load_dotenv

from swarm_indexer.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_EMBEDDING_DIMENSIONS,
    DEFAULT_EMBEDDING_TIMEOUT,
    DEFAULT_OLLAMA_HOST,
    DEFAULT_RATE_LIMIT,
    DEFAULT_WORKERS,
)

# Load environment variables
load_dotenv()


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


class IndexerConfig:
    """Configuration class for pipeline and embedding settings."""

    @staticmethod
    def get_workers() -> int:
        """Get the worker pool size from environment variables.

        Returns:
            int: Number of indexing workers (default: 8)
        """
        return _positive_int("INDEXER_WORKERS", DEFAULT_WORKERS)

    @staticmethod
    def get_batch_size() -> int:
        """Get the search-index batch size from environment variables.

        Returns:
            int: Records per upsert batch (default: 100)
        """
        return _positive_int("INDEXER_BATCH_SIZE", DEFAULT_BATCH_SIZE)

    @staticmethod
    def get_embedding_service() -> str:
        """Get the embedding backend name ("gemini" or "ollama")."""
        return os.getenv("EMBEDDING_SERVICE", "gemini")

    @staticmethod
    def get_embedding_dimensions() -> int:
        """Get the fixed embedding vector length."""
        return _positive_int("EMBEDDING_DIMENSIONS", DEFAULT_EMBEDDING_DIMENSIONS)

    @staticmethod
    def get_rate_limit() -> int:
        """Get the embedding request budget.

        Returns:
            int: Requests per minute shared by all workers (default: 60)
        """
        return _positive_int("EMBEDDING_RATE_LIMIT", DEFAULT_RATE_LIMIT)

    @staticmethod
    def get_embedding_timeout() -> float:
        """Get the per-request embedding timeout in seconds."""
        raw = os.getenv("EMBEDDING_TIMEOUT")
        if not raw:
            return DEFAULT_EMBEDDING_TIMEOUT
        try:
            value = float(raw)
        except ValueError:
            raise ValueError(f"EMBEDDING_TIMEOUT must be a number, got {raw!r}") from None
        if value <= 0:
            raise ValueError(f"EMBEDDING_TIMEOUT must be positive, got {value}")
        return value

    @staticmethod
    def get_ollama_host() -> str:
        """Get the Ollama server URL (default: http://localhost:11434)."""
        return os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST)

    @staticmethod
    def get_gemini_api_key() -> str | None:
        """Get the Gemini API key, or None to let the SDK resolve it."""
        return os.getenv("GEMINI_API_KEY") or None
