"""Application-wide constants and defaults for swarm-indexer.

This module provides a single source of truth for configuration defaults,
magic numbers, and other constants used throughout the application.
"""

import os

# =============================================================================
# Indexing Pipeline
# =============================================================================
DEFAULT_WORKERS = 8
DEFAULT_BATCH_SIZE = 100  # Records per search-index write
QUEUE_SLOTS_PER_WORKER = 2  # Bounded job queue size = workers * this
WORKER_POLL_INTERVAL = 0.1  # Seconds between cancellation checks while idle

# =============================================================================
# File Handling
# =============================================================================
BINARY_SNIFF_BYTES = 8 * 1024  # A null byte in this prefix marks a file binary
MAX_CHUNK_CHARS = 4000  # Larger chunks are split at line boundaries

# =============================================================================
# Embedding Client
# =============================================================================
DEFAULT_RATE_LIMIT = 60  # Requests per minute
DEFAULT_EMBEDDING_TIMEOUT = 30.0  # Seconds per HTTP call
MAX_ATTEMPTS = 4  # 1 initial call + 3 retries
INITIAL_BACKOFF = 1.0  # Seconds
BACKOFF_MULTIPLIER = 2.0
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# =============================================================================
# Default URLs and Hosts
# =============================================================================
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_RAVENDB_URL = "http://localhost:8080"
DEFAULT_RAVENDB_DATABASE = "swarm-index"

# =============================================================================
# Search Index Layout
# =============================================================================
CHUNK_COLLECTION = "IndexedChunks"
HYBRID_INDEX_NAME = "IndexedChunks/Hybrid"
DEFAULT_SEARCH_LIMIT = 10

# =============================================================================
# Metadata Sidecar
# =============================================================================
METADATA_FILENAME = ".swarm-indexer-metadata.json"
METADATA_FILE_MODE = 0o644
METADATA_TEMP_PREFIX = ".swarm-indexer-metadata-"
METADATA_TEMP_SUFFIX = ".tmp"

# =============================================================================
# Display Settings
# =============================================================================
CONTENT_PREVIEW_LENGTH = 200  # Characters to show in content previews

# =============================================================================
# Embedding Model Defaults
# =============================================================================
EMBEDDING_DEFAULTS = {
    "gemini": "gemini-embedding-001",
    "ollama": "nomic-embed-text",
}

# Default embedding dimensions (for the RavenDB vector field)
DEFAULT_EMBEDDING_DIMENSIONS = 768


def get_embedding_model(service: str | None = None) -> str:
    """Get the default embedding model for a given embedding service.

    Checks the EMBEDDING_MODEL environment variable first, then falls back
    to service-specific defaults.

    Args:
        service: The embedding service name ("gemini" or "ollama").
                If None, uses EMBEDDING_SERVICE env var or defaults to "gemini".

    Returns:
        str: The embedding model name to use.
    """
    env_model = os.getenv("EMBEDDING_MODEL")
    if env_model:
        return env_model

    if service is None:
        service = os.getenv("EMBEDDING_SERVICE", "gemini")

    return EMBEDDING_DEFAULTS.get(service, EMBEDDING_DEFAULTS["gemini"])
