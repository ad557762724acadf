"""Data models shared by the indexing pipeline and its clients."""

import hashlib
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from swarm_indexer.constants import DEFAULT_BATCH_SIZE, DEFAULT_WORKERS


def record_id(relative_path: str, start_line: int) -> str:
    """Compute the stable id of a chunk record.

    The id depends only on the file's path relative to its root and the
    chunk's first line, so re-indexing the same logical chunk overwrites
    the existing record instead of adding a duplicate.

    Args:
        relative_path: POSIX-style path relative to the indexed root
        start_line: 1-indexed first line of the chunk

    Returns:
        str: 32 hex characters of the SHA-256 digest
    """
    digest = hashlib.sha256(f"{relative_path}:{start_line}".encode("utf-8"))
    return digest.hexdigest()[:32]


@dataclass(frozen=True)
class FileEntry:
    """A file discovered by the walker.

    ``mtime_ns`` keeps the full-precision modification time for content
    hashing; ``mod_time`` is the same instant as an aware UTC datetime.
    """

    path: Path
    size: int
    mod_time: datetime
    mtime_ns: int = 0


@dataclass(frozen=True)
class Chunk:
    """A semantic slice of a file (lines are 1-indexed, inclusive)."""

    content: str
    start_line: int
    end_line: int
    chunk_type: str


@dataclass(frozen=True)
class IndexJob:
    """One file queued for processing by exactly one worker."""

    path: Path
    relative_path: str
    root: Path


@dataclass
class IndexedChunkRecord:
    """A chunk with its embedding, ready for the search index.

    Attributes:
        id: Stable record id, see ``record_id``
        path: File path relative to the project root
        project_root: Absolute path of the indexed root
        project_type: Detected project type (go, node, python, ...)
        language: Language tag of the file
        chunk_type: Chunk classification (function, class, paragraph, ...)
        content: Redacted chunk text
        embedding: Vector embedding of the content
        start_line: First line of the chunk (1-indexed)
        end_line: Last line of the chunk (inclusive)
        last_indexed: Unix time the record was built
        score: Relevance score, only set on search results
    """

    id: str
    path: str
    project_root: str
    project_type: str
    language: str
    chunk_type: str
    content: str
    embedding: list[float]
    start_line: int
    end_line: int
    last_indexed: int
    score: float = 0.0


@dataclass(frozen=True)
class IndexOptions:
    """Tuning knobs for one ``index_roots`` call."""

    workers: int = DEFAULT_WORKERS
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.batch_size}")


@dataclass
class SkippedFile:
    """A file left out of the index and why."""

    path: str
    reason: str


@dataclass
class RunStats:
    """Counters for one root's run, safe to update from many workers."""

    files_processed: int = 0
    files_failed: int = 0
    files_skipped: int = 0
    chunks_upserted: int = 0
    batches_failed: int = 0
    languages: set[str] = field(default_factory=set)
    skipped_files: list[SkippedFile] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_processed(self, language: str | None = None) -> None:
        with self._lock:
            self.files_processed += 1
            if language:
                self.languages.add(language)

    def record_failed(self) -> None:
        with self._lock:
            self.files_failed += 1

    def record_skipped(self, path: str, reason: str) -> None:
        with self._lock:
            self.files_skipped += 1
            self.skipped_files.append(SkippedFile(path=path, reason=reason))

    def record_upserted(self, count: int) -> None:
        with self._lock:
            self.chunks_upserted += count

    def record_batch_failed(self) -> None:
        with self._lock:
            self.batches_failed += 1

    def snapshot(self) -> dict:
        """Copy the counters under the lock."""
        with self._lock:
            return {
                "files_processed": self.files_processed,
                "files_failed": self.files_failed,
                "files_skipped": self.files_skipped,
                "chunks_upserted": self.chunks_upserted,
                "batches_failed": self.batches_failed,
                "languages": sorted(self.languages),
                "skipped_files": [
                    {"path": skipped.path, "reason": skipped.reason}
                    for skipped in self.skipped_files
                ],
            }


@dataclass
class RootResult:
    """Outcome of indexing one root."""

    root: Path
    stats: RunStats = field(default_factory=RunStats)
    skipped_unchanged: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
