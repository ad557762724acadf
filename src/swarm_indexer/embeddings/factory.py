"""Factory function for creating embedding client instances."""

import logging

from swarm_indexer.config import IndexerConfig
from swarm_indexer.constants import get_embedding_model
from swarm_indexer.embeddings.base import EmbeddingBackend
from swarm_indexer.embeddings.client import EmbeddingClient
from swarm_indexer.embeddings.gemini import GeminiEmbeddingBackend
from swarm_indexer.embeddings.ollama import OllamaEmbeddingBackend

logger = logging.getLogger(__name__)


def get_embedding_backend(config: dict | None = None) -> EmbeddingBackend:
    """Factory function to create an embedding backend.

    Args:
        config: Optional configuration dictionary. If None, uses environment variables.
                Expected keys:
                - 'service': Backend type (default: from EMBEDDING_SERVICE env, or "gemini")
                - 'model': Model name (default: from EMBEDDING_MODEL env)
                - 'dimensions': Vector length (default: from EMBEDDING_DIMENSIONS env)
                - 'host': Ollama host URL (default: from OLLAMA_HOST env)
                - 'timeout': Per-request timeout in seconds

    Returns:
        EmbeddingBackend: An instance implementing the EmbeddingBackend protocol.
    """
    if config is None:
        config = {}

    service_type = config.get("service") or IndexerConfig.get_embedding_service()
    model = config.get("model") or get_embedding_model(service_type)
    dimensions = config.get("dimensions") or IndexerConfig.get_embedding_dimensions()
    timeout = config.get("timeout") or IndexerConfig.get_embedding_timeout()

    if service_type == "gemini":
        return GeminiEmbeddingBackend(
            model=model,
            dimensions=dimensions,
            api_key=config.get("api_key") or IndexerConfig.get_gemini_api_key(),
            timeout=timeout,
        )

    if service_type == "ollama":
        host = config.get("host") or IndexerConfig.get_ollama_host()
        return OllamaEmbeddingBackend(model=model, host=host, dimensions=dimensions, timeout=timeout)

    raise ValueError(f"Unsupported embedding service: {service_type}")


def get_embedding_client(config: dict | None = None) -> EmbeddingClient:
    """Create an EmbeddingClient around the configured backend.

    Args:
        config: Same keys as ``get_embedding_backend`` plus 'rate_limit'
                (requests per minute, default: from EMBEDDING_RATE_LIMIT env)

    Returns:
        EmbeddingClient: Rate-limited, retrying client
    """
    config = config or {}
    backend = get_embedding_backend(config)
    rate_limit = config.get("rate_limit") or IndexerConfig.get_rate_limit()
    return EmbeddingClient(backend, requests_per_minute=rate_limit)
