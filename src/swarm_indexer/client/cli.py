"""Command-line interface for swarm-indexer using Click."""

import json
import logging
import os
import signal
import threading
from pathlib import Path

import click
from dotenv import load_dotenv

from swarm_indexer.client.cli_helpers import (
    ensure_database_exists,
    format_root_result,
    format_search_result,
    format_status,
    get_document_count,
    search_result_to_dict,
)
from swarm_indexer.config import IndexerConfig
from swarm_indexer.constants import DEFAULT_SEARCH_LIMIT
from swarm_indexer.embeddings import get_embedding_client
from swarm_indexer.errors import IndexerError, IndexingCancelled, InvalidInputError
from swarm_indexer.index import SearchIndexClient
from swarm_indexer.indexer import index_roots
from swarm_indexer.metadata import MetadataStore
from swarm_indexer.models import IndexOptions

# Load environment variables
load_dotenv()

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@click.command()
@click.argument(
    "roots",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Number of indexing workers (default: from INDEXER_WORKERS env or 8)",
)
@click.option(
    "--batch-size",
    type=click.IntRange(min=1),
    default=None,
    help="Records per search-index write (default: from INDEXER_BATCH_SIZE env or 100)",
)
@click.option(
    "--create-database",
    "create_database_flag",
    is_flag=True,
    default=False,
    help="Create the RavenDB database if it doesn't exist",
)
def index(
    roots: tuple[Path, ...],
    workers: int | None,
    batch_size: int | None,
    create_database_flag: bool,
) -> None:
    """Index every file under ROOTS into the search index.

    Roots whose content did not change since their last run are skipped.
    Press Ctrl+C to stop; the interrupted root is re-indexed next time.

    Example:
        swarm-index ~/projects/api
        swarm-index ~/projects/api ~/notes --workers 4 --create-database
    """
    try:
        options = IndexOptions(
            workers=workers or IndexerConfig.get_workers(),
            batch_size=batch_size or IndexerConfig.get_batch_size(),
        )
        embedder = get_embedding_client()
    except ValueError as e:
        click.echo(f"✗ Configuration error: {e}", err=True)
        raise click.Abort()

    search_index = SearchIndexClient(dimensions=embedder.dimensions, batch_size=options.batch_size)
    cancel = threading.Event()

    def handle_interrupt(signum, frame) -> None:
        click.echo("\n⚠️  Interrupted, stopping workers...", err=True)
        cancel.set()

    previous_handler = signal.signal(signal.SIGINT, handle_interrupt)
    try:
        ensure_database_exists(search_index, create_if_missing=create_database_flag, roots=roots)
        click.echo(f"Indexing {len(roots)} root(s) with {options.workers} worker(s)...\n")
        results = index_roots(
            roots, options=options, cancel=cancel, embedder=embedder, index=search_index
        )
    except IndexingCancelled:
        click.echo("✗ Indexing cancelled; interrupted roots will be re-indexed next run.", err=True)
        raise click.Abort()
    except InvalidInputError as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()
    except IndexerError as e:
        click.echo(f"✗ Indexing failed: {e}", err=True)
        raise click.Abort()
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        search_index.close()

    for result in results:
        click.echo(format_root_result(result))

    if any(not result.ok for result in results):
        raise click.Abort()
    click.echo("\n✓ Indexing complete!")


@click.command()
@click.argument("query", type=str)
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=DEFAULT_SEARCH_LIMIT,
    help=f"Number of results to return (default: {DEFAULT_SEARCH_LIMIT})",
)
@click.option("--json", "json_output", is_flag=True, default=False, help="Print results as JSON")
@click.option(
    "--text-only",
    is_flag=True,
    default=False,
    help="Skip the query embedding and use full-text search only",
)
def search(query: str, limit: int, json_output: bool, text_only: bool) -> None:
    """Search indexed chunks with hybrid text and vector search.

    QUERY is the text to search for.

    Example:
        swarm-search "retry with exponential backoff"
        swarm-search "database config" --limit 3 --json
    """
    search_index = SearchIndexClient()
    try:
        ensure_database_exists(search_index)

        query_vector = None
        if not text_only:
            query_vector = get_embedding_client().embed(query)

        results = search_index.search(query, query_vector, limit)
    except (IndexerError, ValueError) as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()
    except ConnectionError as e:
        click.echo(f"✗ Connection error: {e}", err=True)
        click.echo("\nPlease ensure the embedding service and RavenDB are running.", err=True)
        raise click.Abort()
    finally:
        search_index.close()

    if json_output:
        click.echo(json.dumps([search_result_to_dict(record) for record in results], indent=2))
        return

    if not results:
        click.echo("No results found.")
        return

    click.echo(f"✅ Found {len(results)} result(s) for '{query}':\n")
    for i, record in enumerate(results, 1):
        click.echo(format_search_result(i, record))


@click.command()
@click.argument(
    "roots",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)
def status(roots: tuple[Path, ...]) -> None:
    """Show the last indexing run of each of ROOTS and the index size.

    Example:
        swarm-status ~/projects/api
    """
    store = MetadataStore()
    for root in roots:
        try:
            metadata = store.load(root)
        except ValueError as e:
            click.echo(f"✗ {root}: {e}", err=True)
            continue
        stored_hash = metadata.content_hash if metadata else ""
        changed = store.compute_hash(root) != stored_hash
        click.echo(format_status(root, metadata, changed))
        click.echo("")

    search_index = SearchIndexClient()
    try:
        doc_count = get_document_count(search_index)
    finally:
        search_index.close()

    if doc_count is not None:
        click.echo(f"📊 Search index contains {doc_count} chunk(s)")
    else:
        click.echo("⚠️  Could not reach RavenDB to count indexed chunks", err=True)


if __name__ == "__main__":
    index()
