"""Concurrent, incremental indexing of directory roots."""

import logging
import os
import queue
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from swarm_indexer.constants import QUEUE_SLOTS_PER_WORKER, WORKER_POLL_INTERVAL
from swarm_indexer.embeddings.client import EmbeddingClient
from swarm_indexer.embeddings.factory import get_embedding_client
from swarm_indexer.errors import IndexingCancelled, InvalidInputError
from swarm_indexer.index.client import SearchIndexClient
from swarm_indexer.indexer.buffer import BatchBuffer
from swarm_indexer.ingest.chunker import Chunker
from swarm_indexer.ingest.detector import Detector, ProjectInfo
from swarm_indexer.ingest.secrets import SecretsScanner
from swarm_indexer.ingest.walker import Walker, is_binary_content
from swarm_indexer.metadata import MetadataStore
from swarm_indexer.models import (
    IndexedChunkRecord,
    IndexJob,
    IndexOptions,
    RootResult,
    RunStats,
    record_id,
)

logger = logging.getLogger(__name__)

# Tells a worker to exit once the walk is exhausted
_STOP = object()


@dataclass
class _RootRun:
    """State shared by the producer and the workers of one root."""

    root: Path
    project: ProjectInfo
    options: IndexOptions
    cancel: threading.Event
    stats: RunStats = field(default_factory=RunStats)
    halt: threading.Event = field(default_factory=threading.Event)
    flush_failed: threading.Event = field(default_factory=threading.Event)
    cleanup_failed: bool = False
    built_ids: set[str] = field(default_factory=set)
    failed_paths: set[str] = field(default_factory=set)
    jobs: queue.Queue = field(init=False)
    buffer: BatchBuffer = field(init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def __post_init__(self) -> None:
        self.jobs = queue.Queue(maxsize=self.options.workers * QUEUE_SLOTS_PER_WORKER)
        self.buffer = BatchBuffer(self.options.batch_size)

    def stopped(self) -> bool:
        return self.cancel.is_set() or self.halt.is_set()

    def mark_built(self, records: list[IndexedChunkRecord]) -> None:
        with self._lock:
            self.built_ids.update(record.id for record in records)

    def mark_failed(self, relative_path: str) -> None:
        with self._lock:
            self.failed_paths.add(relative_path)

    def complete(self) -> bool:
        """True when every file and every write of the run succeeded."""
        return (
            not self.flush_failed.is_set()
            and not self.cleanup_failed
            and self.stats.files_failed == 0
        )


class Orchestrator:
    """Drives the walk -> scan -> chunk -> embed -> upsert pipeline.

    A root whose content hash matches the one stored by its last run is
    skipped outright. Otherwise its files are fed through a bounded queue to
    a fixed pool of worker threads. Each worker embeds one file per request
    and appends the resulting records to a shared buffer, flushing every
    full batch to the search index itself. Once the walk is done, records
    the run did not rebuild (deleted files, chunks past a file's new end)
    are removed from the index.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        index: SearchIndexClient,
        walker: Walker | None = None,
        detector: Detector | None = None,
        scanner: SecretsScanner | None = None,
        chunker: Chunker | None = None,
        metadata_store: MetadataStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.embedder = embedder
        self.index = index
        self.walker = walker or Walker()
        self.detector = detector or Detector()
        self.scanner = scanner or SecretsScanner()
        self.chunker = chunker or Chunker()
        self.metadata_store = metadata_store or MetadataStore(walker=self.walker)
        self.clock = clock

    def index_roots(
        self,
        roots: Iterable[Path | str],
        options: IndexOptions | None = None,
        cancel: threading.Event | None = None,
    ) -> list[RootResult]:
        """Index each root in turn.

        Args:
            roots: Directories to index
            options: Worker count and batch size (default: 8 workers, 100 records)
            cancel: Event that stops the run when set

        Returns:
            list[RootResult]: One result per root, in input order. A failed
            root carries its error; other roots are still processed.

        Raises:
            InvalidInputError: If no roots are given or a root is not a
                readable directory (raised before any root is processed)
            IndexingCancelled: If ``cancel`` is set; no metadata is written
                for the root being processed
        """
        options = options or IndexOptions()
        cancel = cancel or threading.Event()
        resolved = self._validate_roots(roots)

        results = []
        for root in resolved:
            if cancel.is_set():
                raise IndexingCancelled("indexing cancelled")
            results.append(self._index_root(root, options, cancel))
        return results

    @staticmethod
    def _validate_roots(roots: Iterable[Path | str]) -> list[Path]:
        resolved = [Path(root).resolve() for root in roots]
        if not resolved:
            raise InvalidInputError("at least one root is required")
        for root in resolved:
            if not root.is_dir():
                raise InvalidInputError(f"root is not a directory: {root}")
            if not os.access(root, os.R_OK | os.X_OK):
                raise InvalidInputError(f"root is not readable: {root}")
        return resolved

    # -------------------------------------------------------------------------
    # Per root
    # -------------------------------------------------------------------------

    def _index_root(self, root: Path, options: IndexOptions, cancel: threading.Event) -> RootResult:
        result = RootResult(root=root)
        logger.info(f"🔍 Indexing {root} (workers={options.workers}, batch={options.batch_size})")
        try:
            stored_hash = self.metadata_store.load_hash(root)
            current_hash = self.metadata_store.compute_hash(root)
            if stored_hash and stored_hash == current_hash:
                logger.info(f"✅ {root} unchanged since last run, skipping")
                result.skipped_unchanged = True
                return result

            project = self.detector.detect_project(root)
            run = _RootRun(root=root, project=project, options=options, cancel=cancel)
            result.stats = run.stats
            self._run_pipeline(run)

            # An incomplete run keeps the old hash so the next run retries the root
            saved_hash = current_hash if run.complete() else stored_hash
            self.metadata_store.save_run(root, saved_hash, run.stats, project.type)
        except IndexingCancelled:
            logger.warning(f"⚠️ Indexing of {root} cancelled")
            raise
        except Exception as e:
            logger.error(f"❌ Failed to index {root}: {e}", exc_info=True)
            result.error = e
            return result

        stats = run.stats
        logger.info(
            f"✅ Indexed {root}: {stats.files_processed} files, "
            f"{stats.chunks_upserted} chunks, {stats.files_failed} failed, "
            f"{stats.files_skipped} skipped, {stats.batches_failed} failed batches"
        )
        return result

    def _run_pipeline(self, run: _RootRun) -> None:
        workers = run.options.workers
        walk_error: Exception | None = None

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="indexer-worker") as pool:
            futures = [pool.submit(self._worker, run) for _ in range(workers)]
            try:
                for entry in self.walker.walk(run.root):
                    job = IndexJob(
                        path=entry.path,
                        relative_path=entry.path.relative_to(run.root).as_posix(),
                        root=run.root,
                    )
                    if not self._enqueue(run, job):
                        break
            except Exception as e:
                walk_error = e
                run.halt.set()

            if not run.stopped():
                for _ in range(workers):
                    if not self._enqueue(run, _STOP):
                        break

            for future in futures:
                future.result()

        if run.cancel.is_set():
            raise IndexingCancelled(f"indexing of {run.root} cancelled")
        if walk_error is not None:
            raise walk_error

        remaining = run.buffer.drain()
        if remaining:
            self._flush(run, remaining)
        self._remove_stale(run)

    @staticmethod
    def _enqueue(run: _RootRun, item: object) -> bool:
        """Block until ``item`` is queued; False if the run stopped first."""
        while not run.stopped():
            try:
                run.jobs.put(item, timeout=WORKER_POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    # -------------------------------------------------------------------------
    # Workers
    # -------------------------------------------------------------------------

    def _worker(self, run: _RootRun) -> None:
        while not run.stopped():
            try:
                job = run.jobs.get(timeout=WORKER_POLL_INTERVAL)
            except queue.Empty:
                continue
            if job is _STOP:
                return
            try:
                self._process_file(run, job)
            except IndexingCancelled:
                return

    def _process_file(self, run: _RootRun, job: IndexJob) -> None:
        try:
            records = self._build_records(run, job)
        except IndexingCancelled:
            raise
        except Exception as e:
            logger.error(f"❌ Failed to index {job.relative_path}: {e}")
            run.stats.record_failed()
            run.mark_failed(job.relative_path)
            return

        if not records:
            return
        run.mark_built(records)
        for batch in run.buffer.add(records):
            self._flush(run, batch)

    def _build_records(self, run: _RootRun, job: IndexJob) -> list[IndexedChunkRecord] | None:
        """Turn one file into records; None when the file is skipped."""
        scan = self.scanner.scan_file(job.path)
        if scan.should_skip:
            logger.debug(f"Skipping {job.relative_path}: {scan.reason}")
            run.stats.record_skipped(job.relative_path, scan.reason)
            return None

        data = job.path.read_bytes()
        if is_binary_content(data):
            run.stats.record_skipped(job.relative_path, "binary file")
            return None
        try:
            content = data.decode("utf-8")
        except UnicodeDecodeError:
            run.stats.record_skipped(job.relative_path, "not valid UTF-8")
            return None

        findings = self.scanner.scan_content(content)
        if findings:
            logger.info(f"🔒 Redacting {len(findings)} secrets in {job.relative_path}")
            content = self.scanner.redact(content, findings)

        language = self.detector.detect_language(job.path)
        chunks = self.chunker.chunk(content, language)
        if not chunks:
            run.stats.record_processed(language)
            return []

        vectors = self.embedder.embed_batch([chunk.content for chunk in chunks], cancel=run.cancel)
        indexed_at = int(self.clock())
        records = [
            IndexedChunkRecord(
                id=record_id(job.relative_path, chunk.start_line),
                path=job.relative_path,
                project_root=str(run.root),
                project_type=run.project.type,
                language=language,
                chunk_type=chunk.chunk_type,
                content=chunk.content,
                embedding=vector,
                start_line=chunk.start_line,
                end_line=chunk.end_line,
                last_indexed=indexed_at,
            )
            for chunk, vector in zip(chunks, vectors)
        ]
        run.stats.record_processed(language)
        return records

    def _flush(self, run: _RootRun, batch: list[IndexedChunkRecord]) -> None:
        try:
            written = self.index.upsert_batch(batch, cancel=run.cancel)
        except IndexingCancelled:
            raise
        except Exception as e:
            logger.warning(f"⚠️ Failed to write batch of {len(batch)} records: {e}")
            run.stats.record_upserted(getattr(e, "written", 0))
            run.stats.record_batch_failed()
            run.flush_failed.set()
            return
        run.stats.record_upserted(written)

    def _remove_stale(self, run: _RootRun) -> None:
        """Delete records of files or chunks this run no longer produced."""
        try:
            self.index.delete_stale(
                str(run.root), keep_ids=run.built_ids, keep_paths=run.failed_paths
            )
        except Exception as e:
            logger.warning(f"⚠️ Failed to remove stale records under {run.root}: {e}")
            run.cleanup_failed = True


def index_roots(
    roots: Iterable[Path | str],
    options: IndexOptions | None = None,
    cancel: threading.Event | None = None,
    embedder: EmbeddingClient | None = None,
    index: SearchIndexClient | None = None,
) -> list[RootResult]:
    """Index roots with clients built from the environment.

    Clients that are not passed in are created from configuration, the
    search schema is ensured, and created clients are closed afterwards.

    Args:
        roots: Directories to index
        options: Worker count and batch size
        cancel: Event that stops the run when set
        embedder: Embedding client (default: from EMBEDDING_* env vars)
        index: Search index client (default: from RAVENDB_* env vars)

    Returns:
        list[RootResult]: One result per root
    """
    options = options or IndexOptions()
    if embedder is None:
        embedder = get_embedding_client()

    owns_index = index is None
    if index is None:
        index = SearchIndexClient(dimensions=embedder.dimensions, batch_size=options.batch_size)

    try:
        index.ensure_schema()
        orchestrator = Orchestrator(embedder=embedder, index=index)
        return orchestrator.index_roots(roots, options=options, cancel=cancel)
    finally:
        if owns_index:
            index.close()
