"""Search index layer backed by RavenDB.

This package provides:
- Configuration management (RavenDBConfig)
- The stored document model (ChunkDocument)
- SearchIndexClient: schema bootstrap, batched upsert, hybrid search,
  path-scoped delete and admin helpers

Usage:
    from swarm_indexer.index import SearchIndexClient

    with SearchIndexClient(dimensions=768) as index:
        index.ensure_schema()
        index.upsert_batch(records)
"""

from swarm_indexer.index.client import SearchIndexClient
from swarm_indexer.index.config import RavenDBConfig
from swarm_indexer.index.models import ChunkDocument
from swarm_indexer.index.utils import cosine_similarity

__all__ = [
    "RavenDBConfig",
    "ChunkDocument",
    "SearchIndexClient",
    "cosine_similarity",
]
