"""Ollama embedding backend."""

import logging

import httpx
import ollama

from swarm_indexer.constants import (
    DEFAULT_EMBEDDING_DIMENSIONS,
    DEFAULT_EMBEDDING_TIMEOUT,
    DEFAULT_OLLAMA_HOST,
)
from swarm_indexer.errors import UpstreamError

logger = logging.getLogger(__name__)


class OllamaEmbeddingBackend:
    """Embedding backend using a local Ollama server."""

    def __init__(
        self,
        model: str,
        host: str = DEFAULT_OLLAMA_HOST,
        dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS,
        timeout: float = DEFAULT_EMBEDDING_TIMEOUT,
        client: ollama.Client | None = None,
    ) -> None:
        """Initialize the Ollama backend.

        Args:
            model: Embedding model name (e.g., "nomic-embed-text")
            host: The Ollama server host URL (e.g., "http://localhost:11434")
            dimensions: Vector length the model produces
            timeout: Per-request timeout in seconds
            client: Pre-built client, mainly for tests
        """
        self.host = host
        self.model = model
        self.dimensions = dimensions
        logger.info(f"🤖 Initializing OllamaEmbeddingBackend: host={host}, model={model}")
        self.client = client or ollama.Client(host=host, timeout=timeout)

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        try:
            response = self.client.embed(model=self.model, input=texts)
        except ollama.ResponseError as e:
            raise UpstreamError(e.status_code, e.error) from e
        except (ConnectionError, httpx.TransportError) as e:
            raise UpstreamError(None, str(e)) from e

        return [list(vector) for vector in response["embeddings"]]
