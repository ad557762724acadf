"""File ingestion collaborators: walking, detection, secret scanning and chunking."""

from swarm_indexer.ingest.chunker import Chunker
from swarm_indexer.ingest.detector import Detector, ProjectInfo
from swarm_indexer.ingest.secrets import Finding, ScanResult, SecretsScanner
from swarm_indexer.ingest.walker import Walker, is_binary_content

__all__ = [
    "Chunker",
    "Detector",
    "ProjectInfo",
    "Finding",
    "ScanResult",
    "SecretsScanner",
    "Walker",
    "is_binary_content",
]
