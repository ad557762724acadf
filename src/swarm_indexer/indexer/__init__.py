"""Indexing pipeline: worker pool, shared batch buffer and incremental skip."""

from swarm_indexer.indexer.buffer import BatchBuffer
from swarm_indexer.indexer.orchestrator import Orchestrator, index_roots

__all__ = ["BatchBuffer", "Orchestrator", "index_roots"]
