"""Pytest configuration and shared fixtures for the test suite."""

import threading
import time
from pathlib import Path

import pytest
import requests

from swarm_indexer.errors import UpstreamError
from swarm_indexer.models import IndexedChunkRecord, record_id


# Service availability checks
def ravendb_available() -> bool:
    """Check if RavenDB server is running and accessible.

    Returns:
        True if RavenDB is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:8080/databases", timeout=2)
        return response.status_code == 200 or response.status_code == 401  # Auth required is OK
    except requests.RequestException:
        return False


def ollama_available() -> bool:
    """Check if Ollama server is running and accessible."""
    try:
        response = requests.get("http://localhost:11434/api/tags", timeout=2)
        return response.status_code == 200
    except requests.RequestException:
        return False


# Fakes
class ScriptedBackend:
    """Embedding backend that replays a script of failures before succeeding.

    Each script entry is either an exception to raise or None for a
    successful call.
    """

    def __init__(self, script=None, dimensions: int = 4, model: str = "fake-embed"):
        self.script = list(script or [])
        self.dimensions = dimensions
        self.model = model
        self.calls: list[list[str]] = []

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.script:
            step = self.script.pop(0)
            if step is not None:
                raise step
        return [[float(len(text)), float(i), 0.0, 1.0] for i, text in enumerate(texts)]


class FakeEmbedder:
    """Stands in for EmbeddingClient in pipeline tests.

    Tracks how many calls run at once and can fail for selected texts.
    """

    def __init__(self, dimensions: int = 4, delay: float = 0.0, fail_when=None, on_call=None):
        self.dimensions = dimensions
        self.delay = delay
        self.fail_when = fail_when
        self.on_call = on_call
        self.calls: list[list[str]] = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def embed_batch(self, texts, cancel=None):
        with self._lock:
            self.calls.append(list(texts))
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if self.on_call is not None:
                self.on_call(len(self.calls))
            if self.delay:
                time.sleep(self.delay)
            if self.fail_when is not None and any(self.fail_when(text) for text in texts):
                raise UpstreamError(400, "rejected by fake")
            return [[float(len(text)), 0.0, 0.0, 1.0] for text in texts]
        finally:
            with self._lock:
                self.active -= 1


class FakeIndex:
    """Stands in for SearchIndexClient, remembering every upserted batch.

    ``stored`` holds the records that survived by id, as the real index would.
    """

    def __init__(self, fail_batches: set[int] | None = None, fail_cleanup: bool = False):
        self.fail_batches = fail_batches or set()
        self.fail_cleanup = fail_cleanup
        self.batches: list[list[IndexedChunkRecord]] = []
        self.stored: dict[str, IndexedChunkRecord] = {}
        self._lock = threading.Lock()

    def upsert_batch(self, records, cancel=None):
        with self._lock:
            number = len(self.batches)
            self.batches.append(list(records))
            if number in self.fail_batches:
                raise RuntimeError(f"batch {number} rejected")
            self.stored.update((record.id, record) for record in records)
        return len(records)

    def delete_stale(self, project_root, keep_ids, keep_paths=frozenset()):
        if self.fail_cleanup:
            raise RuntimeError("index unavailable")
        with self._lock:
            stale = [
                doc_id
                for doc_id, record in self.stored.items()
                if record.project_root == project_root
                and doc_id not in keep_ids
                and record.path not in keep_paths
            ]
            for doc_id in stale:
                del self.stored[doc_id]
        return len(stale)

    def stored_chunks(self) -> list[tuple[str, int]]:
        return sorted((record.path, record.start_line) for record in self.stored.values())

    @property
    def batch_sizes(self) -> list[int]:
        return [len(batch) for batch in self.batches]

    @property
    def records(self) -> list[IndexedChunkRecord]:
        return [record for batch in self.batches for record in batch]


@pytest.fixture
def scripted_backend():
    """Factory fixture for ScriptedBackend."""
    return ScriptedBackend


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_index() -> FakeIndex:
    return FakeIndex()


# Test data generators
@pytest.fixture
def create_test_record():
    """Factory fixture to create IndexedChunkRecord instances.

    Returns:
        Function that creates a record with custom parameters
    """

    def _create_record(
        path: str = "src/main.py",
        start_line: int = 1,
        content: str = "def main():\n    pass",
        score: float = 0.0,
    ) -> IndexedChunkRecord:
        return IndexedChunkRecord(
            id=record_id(path, start_line),
            path=path,
            project_root="/tmp/project",
            project_type="python",
            language="python",
            chunk_type="function",
            content=content,
            embedding=[0.1, 0.2, 0.3, 0.4],
            start_line=start_line,
            end_line=start_line + content.count("\n"),
            last_indexed=1_700_000_000,
            score=score,
        )

    return _create_record


@pytest.fixture
def project_tree(tmp_path) -> Path:
    """Create a small Python project with code, docs and a secret file.

    Returns:
        Path to the project root
    """
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "pyproject.toml").write_text('[project]\nname = "demo"\n')
    (root / "src" / "app.py").write_text(
        "import os\n\n\ndef main():\n    return os.getcwd()\n\n\nclass App:\n    pass\n"
    )
    (root / "docs" / "guide.md").write_text("# Guide\n\nIntro text.\n\n## Usage\n\nRun it.\n")
    (root / ".env").write_text("API_KEY=abcdefghijklmnop\n")
    return root


def write_files(root: Path, count: int, lines_per_file: int = 1) -> list[Path]:
    """Write ``count`` plain-text files with one paragraph per line."""
    root.mkdir(parents=True, exist_ok=True)
    paths = []
    for i in range(count):
        path = root / f"file_{i:03d}.txt"
        path.write_text("\n\n".join(f"file {i} paragraph {n}" for n in range(lines_per_file)))
        paths.append(path)
    return paths
