"""Embedding layer for swarm-indexer.

This package turns text into vectors through pluggable backends:
- GeminiEmbeddingBackend: Google Gemini API
- OllamaEmbeddingBackend: Local models via Ollama

EmbeddingClient wraps a backend with a shared token-bucket rate limiter and
an exponential-backoff retry policy.

Usage:
    from swarm_indexer.embeddings import get_embedding_client

    client = get_embedding_client()
    vectors = client.embed_batch(["def main():", "class Foo:"])
"""

from swarm_indexer.embeddings.base import EmbeddingBackend
from swarm_indexer.embeddings.client import EmbeddingClient, RetryPolicy
from swarm_indexer.embeddings.factory import get_embedding_backend, get_embedding_client
from swarm_indexer.embeddings.gemini import GeminiEmbeddingBackend
from swarm_indexer.embeddings.ollama import OllamaEmbeddingBackend
from swarm_indexer.embeddings.ratelimit import TokenBucket

__all__ = [
    "EmbeddingBackend",
    "EmbeddingClient",
    "RetryPolicy",
    "TokenBucket",
    "GeminiEmbeddingBackend",
    "OllamaEmbeddingBackend",
    "get_embedding_backend",
    "get_embedding_client",
]
