"""Google Gemini embedding backend."""

import logging

import httpx
from google import genai
from google.genai import errors, types

from swarm_indexer.constants import DEFAULT_EMBEDDING_DIMENSIONS, DEFAULT_EMBEDDING_TIMEOUT
from swarm_indexer.errors import UpstreamError

logger = logging.getLogger(__name__)


class GeminiEmbeddingBackend:
    """Embedding backend using the Google Gemini API.

    The API key is read from the GEMINI_API_KEY environment variable by the
    SDK unless one is passed explicitly.
    """

    def __init__(
        self,
        model: str,
        dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS,
        api_key: str | None = None,
        timeout: float = DEFAULT_EMBEDDING_TIMEOUT,
        client: genai.Client | None = None,
    ) -> None:
        """Initialize the Gemini backend.

        Args:
            model: Embedding model name (e.g., "gemini-embedding-001")
            dimensions: Requested output dimensionality
            api_key: Optional API key; the SDK falls back to GEMINI_API_KEY
            timeout: Per-request timeout in seconds
            client: Pre-built client, mainly for tests
        """
        self.model = model
        self.dimensions = dimensions
        logger.info(f"🤖 Initializing GeminiEmbeddingBackend: model={model}, dims={dimensions}")
        if client is None:
            # HttpOptions.timeout is in milliseconds
            http_options = types.HttpOptions(timeout=int(timeout * 1000))
            client = genai.Client(api_key=api_key, http_options=http_options)
        self.client = client

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        try:
            response = self.client.models.embed_content(
                model=self.model,
                contents=texts,
                config=types.EmbedContentConfig(output_dimensionality=self.dimensions),
            )
        except errors.APIError as e:
            raise UpstreamError(e.code, e.message or str(e)) from e
        except httpx.TransportError as e:
            raise UpstreamError(None, str(e)) from e

        return [list(embedding.values) for embedding in response.embeddings or []]
