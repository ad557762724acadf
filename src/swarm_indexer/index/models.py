"""Document model for chunk records stored in RavenDB."""

from dataclasses import dataclass, field

from swarm_indexer.models import IndexedChunkRecord


@dataclass(eq=False)
class ChunkDocument:
    """An indexed chunk as stored in the IndexedChunks collection.

    Note: eq=False ensures each instance is unique and hashable by identity,
    which is required for RavenDB's session entity tracking.

    Attributes:
        Id: RavenDB document ID, the record's stable id
        path: File path relative to the project root
        project_root: Absolute path of the indexed root
        project_type: Detected project type
        language: Language tag of the file
        chunk_type: Chunk classification
        content: Redacted chunk text
        embedding: Vector embedding of the content
        start_line: First line of the chunk
        end_line: Last line of the chunk
        last_indexed: Unix time the record was built
    """

    Id: str | None = None
    path: str = ""
    project_root: str = ""
    project_type: str = ""
    language: str = ""
    chunk_type: str = ""
    content: str = ""
    embedding: list[float] = field(default_factory=list)
    start_line: int = 0
    end_line: int = 0
    last_indexed: int = 0

    def __hash__(self) -> int:
        """Hash by object identity for RavenDB session tracking."""
        return id(self)

    @classmethod
    def from_record(cls, record: IndexedChunkRecord) -> "ChunkDocument":
        return cls(
            Id=record.id,
            path=record.path,
            project_root=record.project_root,
            project_type=record.project_type,
            language=record.language,
            chunk_type=record.chunk_type,
            content=record.content,
            embedding=list(record.embedding),
            start_line=record.start_line,
            end_line=record.end_line,
            last_indexed=record.last_indexed,
        )


def record_from_result(result: dict, score: float = 0.0) -> IndexedChunkRecord:
    """Build an IndexedChunkRecord from a raw query result dictionary."""
    metadata = result.get("@metadata", {})
    return IndexedChunkRecord(
        id=result.get("Id") or metadata.get("@id", ""),
        path=result.get("path", ""),
        project_root=result.get("project_root", ""),
        project_type=result.get("project_type", ""),
        language=result.get("language", ""),
        chunk_type=result.get("chunk_type", ""),
        content=result.get("content", ""),
        embedding=list(result.get("embedding") or []),
        start_line=int(result.get("start_line", 0)),
        end_line=int(result.get("end_line", 0)),
        last_indexed=int(result.get("last_indexed", 0)),
        score=score,
    )
