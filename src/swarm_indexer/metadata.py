"""Per-root run metadata stored in a JSON sidecar file."""

import hashlib
import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from swarm_indexer.constants import (
    METADATA_FILE_MODE,
    METADATA_FILENAME,
    METADATA_TEMP_PREFIX,
    METADATA_TEMP_SUFFIX,
)
from swarm_indexer.ingest.walker import Walker
from swarm_indexer.models import RunStats

logger = logging.getLogger(__name__)


@dataclass
class RunMetadata:
    """What the last completed run of a root recorded.

    Attributes:
        content_hash: Stat-based hash of the root when the run started
        last_indexed: ISO-8601 UTC timestamp of the run
        project_type: Detected project type
        files_processed: Files that went through the pipeline
        files_failed: Files whose processing raised
        files_skipped: Files left out (secrets, binary, non-UTF-8)
        chunks_upserted: Records written to the search index
        batches_failed: Search-index flushes that failed
        languages: Sorted language tags seen in the run
        skipped_files: Path and reason for each skipped file
    """

    content_hash: str = ""
    last_indexed: str = ""
    project_type: str = "unknown"
    files_processed: int = 0
    files_failed: int = 0
    files_skipped: int = 0
    chunks_upserted: int = 0
    batches_failed: int = 0
    languages: list[str] = field(default_factory=list)
    skipped_files: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "RunMetadata":
        known = {name for name in cls.__dataclass_fields__}
        return cls(**{key: value for key, value in data.items() if key in known})


class MetadataStore:
    """Reads and writes the metadata sidecar at the top of each root.

    The content hash is built from the same walk the indexer runs, so a
    root counts as changed exactly when a file it would index changed.
    """

    def __init__(self, walker: Walker | None = None) -> None:
        self.walker = walker or Walker()

    def path_for(self, root: Path | str) -> Path:
        return Path(root) / METADATA_FILENAME

    def load(self, root: Path | str) -> RunMetadata | None:
        """Read the sidecar of a root.

        Returns:
            RunMetadata | None: Stored metadata, or None if the root has none

        Raises:
            ValueError: If the sidecar is not valid metadata JSON
        """
        path = self.path_for(root)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"corrupt metadata file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"corrupt metadata file {path}: expected an object")
        return RunMetadata.from_dict(data)

    def load_hash(self, root: Path | str) -> str:
        """Return the stored content hash, or "" when there is none."""
        try:
            metadata = self.load(root)
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Ignoring unreadable metadata for {root}: {e}")
            return ""
        return metadata.content_hash if metadata else ""

    def compute_hash(self, root: Path | str) -> str:
        """Hash the relative path, size and mtime of every file the walker yields.

        Hidden and gitignored paths and the sidecar itself are left out, so
        writing metadata does not change the hash. Files under symlinked
        directories are included, as the walker follows them.

        Raises:
            FileNotFoundError: If ``root`` does not exist
        """
        root = Path(root).resolve()
        if not root.is_dir():
            raise FileNotFoundError(f"root is not a directory: {root}")

        entries = [
            f"{entry.path.relative_to(root).as_posix()}\0{entry.size}\0{entry.mtime_ns}"
            for entry in self.walker.walk(root)
        ]

        digest = hashlib.sha256()
        for entry in sorted(entries):
            digest.update(entry.encode("utf-8", errors="surrogateescape"))
            digest.update(b"\n")
        return digest.hexdigest()

    def save_run(
        self,
        root: Path | str,
        content_hash: str,
        stats: RunStats,
        project_type: str = "unknown",
    ) -> RunMetadata:
        """Persist the outcome of a run atomically.

        Args:
            root: Indexed root directory
            content_hash: Hash to store for the next incremental check
            stats: Counters of the run
            project_type: Detected project type

        Returns:
            RunMetadata: The metadata that was written
        """
        metadata = RunMetadata(
            content_hash=content_hash,
            last_indexed=datetime.now(timezone.utc).isoformat(),
            project_type=project_type,
            **stats.snapshot(),
        )
        self._write(Path(root), metadata)
        logger.info(f"📊 Saved run metadata for {root}")
        return metadata

    def _write(self, root: Path, metadata: RunMetadata) -> None:
        data = json.dumps(asdict(metadata), indent=2)
        fd, tmp_path = tempfile.mkstemp(
            dir=root, prefix=METADATA_TEMP_PREFIX, suffix=METADATA_TEMP_SUFFIX
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.chmod(tmp_path, METADATA_FILE_MODE)
            os.replace(tmp_path, self.path_for(root))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
