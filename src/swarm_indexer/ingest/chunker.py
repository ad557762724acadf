"""Semantic chunking of file content by language."""

import logging
import re
from collections.abc import Callable

from swarm_indexer.constants import MAX_CHUNK_CHARS
from swarm_indexer.models import Chunk

logger = logging.getLogger(__name__)

# Lines that open a new code chunk
CODE_BOUNDARIES = {
    "go": re.compile(r"^func\s+"),
    "python": re.compile(r"^(?:async\s+def|def|class)\s+\w+"),
    "javascript": re.compile(
        r"^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*\w+"
        r"|^(?:export\s+)?(?:default\s+)?class\s+\w+"
    ),
    "java": re.compile(
        r"^\s*(?:(?:public|private|protected|static|final|abstract|synchronized)\s+)+"
        r"[\w<>\[\],.? ]+\s+\w+\s*\("
        r"|^\s*(?:(?:public|private|protected|abstract|final|static)\s+)*"
        r"(?:class|interface|enum|record)\s+\w+"
    ),
}
CODE_BOUNDARIES["typescript"] = CODE_BOUNDARIES["javascript"]

CLASS_DECLARATION = re.compile(
    r"^\s*(?:export\s+)?(?:default\s+)?"
    r"(?:(?:public|private|protected|abstract|final|static)\s+)*"
    r"(?:class|interface|enum|record)\s+\w+"
)

MARKDOWN_HEADER = re.compile(r"^#{1,6}\s+")
MARKDOWN_FENCE = re.compile(r"^\s*(```|~~~)")
YAML_TOP_LEVEL_KEY = re.compile(r"^[A-Za-z_][\w.-]*\s*:")
TOML_SECTION = re.compile(r"^\s*\[[^\]]+\]")
JSON_KEY = re.compile(r'^\s*"[^"]+"\s*:')


def _split_lines(content: str) -> list[str]:
    lines = content.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def _code_chunk_type(first_line: str) -> str:
    return "class" if CLASS_DECLARATION.match(first_line) else "function"


class Chunker:
    """Splits file content into chunks at semantic boundaries.

    Code is split at top-level function and class declarations (with a
    "preamble" chunk for imports and package lines), markdown at headers,
    plain text at blank lines, and YAML, TOML and JSON at top-level keys or
    sections. Other languages become one "code" chunk. Any chunk longer than
    ``max_chunk_chars`` is split at line boundaries.
    """

    def __init__(self, max_chunk_chars: int = MAX_CHUNK_CHARS) -> None:
        if max_chunk_chars < 1:
            raise ValueError(f"max_chunk_chars must be at least 1, got {max_chunk_chars}")
        self.max_chunk_chars = max_chunk_chars

    def chunk(self, content: str, language: str) -> list[Chunk]:
        """Split content into chunks in source order.

        Args:
            content: Full file text
            language: Language tag from the detector

        Returns:
            list[Chunk]: Chunks with 1-indexed inclusive line ranges; empty
            for blank content
        """
        if not content.strip():
            return []

        lines = _split_lines(content)

        if language in CODE_BOUNDARIES:
            pattern = CODE_BOUNDARIES[language]
            starts = [i for i, line in enumerate(lines) if pattern.match(line)]
            chunks = self._sections(
                lines, starts, _code_chunk_type, preamble_type="preamble", fallback="code"
            )
        elif language == "markdown":
            chunks = self._sections(
                lines,
                self._markdown_headers(lines),
                lambda _: "header",
                preamble_type="paragraph",
                fallback="paragraph",
            )
        elif language == "text":
            chunks = self._paragraphs(lines)
        elif language == "yaml":
            starts = [i for i, line in enumerate(lines) if YAML_TOP_LEVEL_KEY.match(line)]
            chunks = self._config_sections(lines, starts)
        elif language == "toml":
            starts = [i for i, line in enumerate(lines) if TOML_SECTION.match(line)]
            chunks = self._config_sections(lines, starts)
        elif language == "json":
            chunks = self._config_sections(lines, self._json_keys(lines), preamble=False)
        else:
            chunks = self._whole(lines, "code")

        logger.debug(f"Chunked {len(lines)} lines of {language} into {len(chunks)} chunks")
        return chunks

    # -------------------------------------------------------------------------
    # Boundary finders
    # -------------------------------------------------------------------------

    @staticmethod
    def _markdown_headers(lines: list[str]) -> list[int]:
        starts = []
        in_fence = False
        for i, line in enumerate(lines):
            if MARKDOWN_FENCE.match(line):
                in_fence = not in_fence
            elif not in_fence and MARKDOWN_HEADER.match(line):
                starts.append(i)
        return starts

    @staticmethod
    def _json_keys(lines: list[str]) -> list[int]:
        starts = []
        depth = 0
        in_string = False
        escaped = False
        for i, line in enumerate(lines):
            if depth == 1 and not in_string and JSON_KEY.match(line):
                starts.append(i)
            for char in line:
                if in_string:
                    if escaped:
                        escaped = False
                    elif char == "\\":
                        escaped = True
                    elif char == '"':
                        in_string = False
                elif char == '"':
                    in_string = True
                elif char in "{[":
                    depth += 1
                elif char in "}]":
                    depth -= 1
        return starts

    # -------------------------------------------------------------------------
    # Chunk builders
    # -------------------------------------------------------------------------

    def _sections(
        self,
        lines: list[str],
        starts: list[int],
        type_for: Callable[[str], str],
        preamble_type: str | None,
        fallback: str,
    ) -> list[Chunk]:
        if not starts:
            return self._whole(lines, fallback)

        chunks = []
        if preamble_type is not None and starts[0] > 0:
            chunks.extend(self._build(lines, 0, starts[0], preamble_type))

        for n, start in enumerate(starts):
            stop = starts[n + 1] if n + 1 < len(starts) else len(lines)
            chunks.extend(self._build(lines, start, stop, type_for(lines[start])))
        return chunks

    def _config_sections(
        self, lines: list[str], starts: list[int], preamble: bool = True
    ) -> list[Chunk]:
        return self._sections(
            lines,
            starts,
            lambda _: "config_key",
            preamble_type="config_key" if preamble else None,
            fallback="config_key",
        )

    def _paragraphs(self, lines: list[str]) -> list[Chunk]:
        chunks = []
        start = None
        for i, line in enumerate(lines):
            if line.strip():
                if start is None:
                    start = i
            elif start is not None:
                chunks.extend(self._build(lines, start, i, "paragraph"))
                start = None
        if start is not None:
            chunks.extend(self._build(lines, start, len(lines), "paragraph"))
        return chunks

    def _whole(self, lines: list[str], chunk_type: str) -> list[Chunk]:
        return self._build(lines, 0, len(lines), chunk_type, trim=False)

    def _build(
        self, lines: list[str], start: int, stop: int, chunk_type: str, trim: bool = True
    ) -> list[Chunk]:
        """Build chunks for ``lines[start:stop]`` (0-indexed, exclusive stop)."""
        if trim:
            while stop > start + 1 and not lines[stop - 1].strip():
                stop -= 1
        body = lines[start:stop]
        if not "".join(body).strip():
            return []
        chunk = Chunk(
            content="\n".join(body),
            start_line=start + 1,
            end_line=stop,
            chunk_type=chunk_type,
        )
        return self._split_large(chunk)

    def _split_large(self, chunk: Chunk) -> list[Chunk]:
        if len(chunk.content) <= self.max_chunk_chars:
            return [chunk]

        pieces = []
        buffer: list[str] = []
        buffer_len = 0
        buffer_start = chunk.start_line

        def flush(end_line: int) -> None:
            nonlocal buffer, buffer_len
            if buffer:
                pieces.append(
                    Chunk(
                        content="\n".join(buffer),
                        start_line=buffer_start,
                        end_line=end_line,
                        chunk_type=chunk.chunk_type,
                    )
                )
            buffer = []
            buffer_len = 0

        for offset, line in enumerate(chunk.content.split("\n")):
            line_no = chunk.start_line + offset
            # An overlong line stays whole: chunk ids are keyed by start line
            if len(line) > self.max_chunk_chars:
                flush(line_no - 1)
                pieces.append(
                    Chunk(
                        content=line,
                        start_line=line_no,
                        end_line=line_no,
                        chunk_type=chunk.chunk_type,
                    )
                )
                buffer_start = line_no + 1
                continue

            added = len(line) + (1 if buffer else 0)
            if buffer and buffer_len + added > self.max_chunk_chars:
                flush(line_no - 1)
                buffer_start = line_no
                added = len(line)
            buffer.append(line)
            buffer_len += added

        flush(chunk.end_line)
        return pieces
