"""Lazy directory traversal with .gitignore support."""

import fnmatch
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from swarm_indexer.constants import (
    BINARY_SNIFF_BYTES,
    METADATA_FILENAME,
    METADATA_TEMP_PREFIX,
    METADATA_TEMP_SUFFIX,
)
from swarm_indexer.models import FileEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IgnoreRule:
    """One parsed .gitignore line, relative to the directory that holds it."""

    pattern: str
    base: str  # POSIX path of the .gitignore's directory, "" for the root
    negated: bool = False
    dir_only: bool = False
    anchored: bool = False

    def matches(self, relative_path: str, is_dir: bool) -> bool:
        if self.dir_only and not is_dir:
            return False
        if self.base:
            prefix = self.base + "/"
            if not relative_path.startswith(prefix):
                return False
            relative_path = relative_path[len(prefix) :]
        if self.anchored:
            return fnmatch.fnmatchcase(relative_path, self.pattern)
        name = relative_path.rsplit("/", 1)[-1]
        return fnmatch.fnmatchcase(name, self.pattern) or fnmatch.fnmatchcase(
            relative_path, f"*/{self.pattern}"
        )


def parse_gitignore(text: str, base: str = "") -> list[IgnoreRule]:
    """Parse .gitignore content into rules.

    Supports comments, blank lines, ``!`` negation, trailing ``/`` for
    directory-only rules and leading or inner ``/`` for anchored rules.
    """
    rules = []
    for raw_line in text.splitlines():
        line = raw_line.rstrip()
        if not line or line.startswith("#"):
            continue
        negated = line.startswith("!")
        if negated:
            line = line[1:]
        dir_only = line.endswith("/")
        line = line.rstrip("/")
        anchored = "/" in line
        line = line.lstrip("/")
        if line.startswith("**/"):
            line = line[3:]
            anchored = "/" in line
        if not line:
            continue
        rules.append(
            IgnoreRule(
                pattern=line, base=base, negated=negated, dir_only=dir_only, anchored=anchored
            )
        )
    return rules


def is_ignored(relative_path: str, is_dir: bool, rules: list[IgnoreRule]) -> bool:
    """Return True when the last matching rule excludes the path."""
    ignored = False
    for rule in rules:
        if rule.matches(relative_path, is_dir):
            ignored = not rule.negated
    return ignored


def is_metadata_file(name: str) -> bool:
    """Check whether a root-level file name belongs to the metadata sidecar."""
    return name == METADATA_FILENAME or (
        name.startswith(METADATA_TEMP_PREFIX) and name.endswith(METADATA_TEMP_SUFFIX)
    )


def is_binary_content(data: bytes) -> bool:
    """Check for a null byte in the first 8KB of file content.

    Empty content is not binary.
    """
    return b"\x00" in data[:BINARY_SNIFF_BYTES]


class Walker:
    """Walks a root lazily, honouring nested .gitignore files.

    Hidden directories are skipped, symlinked directories are followed at
    most once per real path, and unreadable directories are skipped. The
    metadata sidecar and its temp files are never yielded.
    """

    def walk(self, root: Path | str) -> Iterator[FileEntry]:
        """Yield every indexable file under ``root``.

        Raises:
            FileNotFoundError: If ``root`` does not exist
            NotADirectoryError: If ``root`` is not a directory
        """
        root = Path(root).resolve()
        if not root.exists():
            raise FileNotFoundError(f"root does not exist: {root}")
        if not root.is_dir():
            raise NotADirectoryError(f"root is not a directory: {root}")

        visited: set[str] = set()
        yield from self._walk_dir(root, root, [], visited)

    def _walk_dir(
        self,
        root: Path,
        directory: Path,
        rules: list[IgnoreRule],
        visited: set[str],
    ) -> Iterator[FileEntry]:
        real_path = os.path.realpath(directory)
        if real_path in visited:
            logger.debug(f"Skipping already visited directory {directory}")
            return
        visited.add(real_path)

        relative_dir = directory.relative_to(root).as_posix()
        if relative_dir == ".":
            relative_dir = ""

        gitignore = directory / ".gitignore"
        if gitignore.is_file():
            try:
                text = gitignore.read_text(encoding="utf-8", errors="replace")
                rules = rules + parse_gitignore(text, base=relative_dir)
            except OSError as e:
                logger.warning(f"⚠️ Could not read {gitignore}: {e}")

        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            logger.warning(f"⚠️ Skipping unreadable directory {directory}: {e}")
            return

        for entry in entries:
            name = entry.name
            relative_path = f"{relative_dir}/{name}" if relative_dir else name
            try:
                is_dir = entry.is_dir()
            except OSError:
                continue

            if is_dir:
                if name.startswith("."):
                    continue
                if is_ignored(relative_path, True, rules):
                    continue
                yield from self._walk_dir(root, Path(entry.path), rules, visited)
                continue

            if not relative_dir and is_metadata_file(name):
                continue
            if is_ignored(relative_path, False, rules):
                continue
            try:
                stat = entry.stat()
            except OSError:
                continue
            if not entry.is_file():
                continue

            yield FileEntry(
                path=Path(entry.path),
                size=stat.st_size,
                mod_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                mtime_ns=stat.st_mtime_ns,
            )
