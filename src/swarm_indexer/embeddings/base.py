"""Base protocol for embedding backends."""

from typing import Protocol


class EmbeddingBackend(Protocol):
    """Protocol defining the interface for embedding providers.

    A backend performs exactly one outbound request per call and knows
    nothing about rate limits or retries; the EmbeddingClient wraps it with
    both. Backends report service failures as ``UpstreamError`` so the
    client can decide whether to retry.
    """

    model: str
    dimensions: int

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a list of texts in one request.

        Args:
            texts: Non-empty list of text strings to embed

        Returns:
            list[list[float]]: One vector per input text, in input order

        Raises:
            UpstreamError: If the service returns an error status or
                cannot be reached
        """
        ...
