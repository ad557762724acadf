"""Helper functions for CLI commands."""

from pathlib import Path

import click
import requests

from swarm_indexer.constants import CONTENT_PREVIEW_LENGTH
from swarm_indexer.index import SearchIndexClient
from swarm_indexer.metadata import RunMetadata
from swarm_indexer.models import IndexedChunkRecord, RootResult


def ensure_database_exists(
    index: SearchIndexClient,
    create_if_missing: bool = False,
    roots: tuple[Path, ...] = (),
) -> bool:
    """Check if database exists, optionally create it.

    Args:
        index: Search index client pointing at the database
        create_if_missing: If True, attempt to create the database
        roots: Roots of the current command, for the hint message

    Returns:
        True if database exists (or was created)

    Raises:
        click.Abort: If database doesn't exist and can't be created
    """
    if index.database_exists():
        return True

    if create_if_missing:
        click.echo("Database does not exist. Creating database...")
        try:
            index.create_database()
            click.echo("✓ Database created successfully!")
            return True
        except requests.RequestException as e:
            click.echo(f"✗ Failed to create database: {e}", err=True)
            click.echo("\nPlease ensure RavenDB is running and accessible.", err=True)
            raise click.Abort()

    # Database doesn't exist and we're not creating it
    click.echo(f"✗ Error: Database '{index.database}' does not exist!", err=True)
    click.echo("\nPlease create the database first using:", err=True)
    if roots:
        click.echo(f"  swarm-index {' '.join(str(root) for root in roots)} --create-database", err=True)
    else:
        click.echo("  swarm-index <root> --create-database", err=True)
    raise click.Abort()


def format_search_result(
    index: int, record: IndexedChunkRecord, max_length: int = CONTENT_PREVIEW_LENGTH
) -> str:
    """Format a search result for display.

    Args:
        index: Result number (1-based)
        record: Matched chunk record
        max_length: Maximum content length before truncation

    Returns:
        Formatted string for display
    """
    content = record.content
    display_content = content[:max_length] + "..." if len(content) > max_length else content

    lines = [
        f"{index}. [{record.path}:{record.start_line}-{record.end_line}] "
        f"{record.language}/{record.chunk_type} (score: {record.score:.4f})",
        f"   {record.project_root}",
        f"   {display_content}",
        "",
    ]
    return "\n".join(lines)


def search_result_to_dict(record: IndexedChunkRecord) -> dict:
    """Serializable view of a search result (without the embedding)."""
    return {
        "id": record.id,
        "path": record.path,
        "project_root": record.project_root,
        "project_type": record.project_type,
        "language": record.language,
        "chunk_type": record.chunk_type,
        "start_line": record.start_line,
        "end_line": record.end_line,
        "score": record.score,
        "content": record.content,
    }


def format_root_result(result: RootResult) -> str:
    """Summarize one root's indexing outcome."""
    if result.error is not None:
        return f"✗ {result.root}: {result.error}"
    if result.skipped_unchanged:
        return f"✓ {result.root}: unchanged since last run, skipped"

    stats = result.stats
    lines = [
        f"✓ {result.root}",
        f"   files processed: {stats.files_processed}",
        f"   files skipped:   {stats.files_skipped}",
        f"   files failed:    {stats.files_failed}",
        f"   chunks indexed:  {stats.chunks_upserted}",
    ]
    if stats.batches_failed:
        lines.append(f"   ⚠️  failed batches: {stats.batches_failed} (root will be re-indexed next run)")
    if stats.languages:
        lines.append(f"   languages: {', '.join(sorted(stats.languages))}")
    return "\n".join(lines)


def format_status(root: Path, metadata: RunMetadata | None, changed: bool) -> str:
    """Describe a root's last run and whether it changed since."""
    if metadata is None:
        return f"{root}\n   never indexed"

    lines = [
        f"{root}",
        f"   last indexed:   {metadata.last_indexed}",
        f"   project type:   {metadata.project_type}",
        f"   files:          {metadata.files_processed} processed, "
        f"{metadata.files_skipped} skipped, {metadata.files_failed} failed",
        f"   chunks indexed: {metadata.chunks_upserted}",
        f"   status:         {'changed since last run' if changed else 'up to date'}",
    ]
    if metadata.languages:
        lines.append(f"   languages:      {', '.join(metadata.languages)}")
    return "\n".join(lines)


def get_document_count(index: SearchIndexClient) -> int | None:
    """Get the number of stored chunk records, or None if RavenDB is unreachable."""
    try:
        return index.count_documents()
    except requests.RequestException:
        return None
