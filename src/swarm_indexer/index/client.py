"""RavenDB-backed search index: schema, batched upsert, hybrid search, delete."""

import logging
import threading

import requests
from ravendb import DocumentStore
from ravendb.documents.indexes.definitions import (
    FieldIndexing,
    FieldStorage,
    IndexDefinition,
    IndexFieldOptions,
)
from ravendb.documents.indexes.vector.options import VectorOptions
from ravendb.documents.operations.indexes import GetIndexNamesOperation, PutIndexesOperation

from swarm_indexer.constants import (
    CHUNK_COLLECTION,
    DEFAULT_BATCH_SIZE,
    DEFAULT_EMBEDDING_DIMENSIONS,
    DEFAULT_SEARCH_LIMIT,
    HYBRID_INDEX_NAME,
)
from swarm_indexer.errors import (
    BatchUpsertError,
    IndexingCancelled,
    InvalidInputError,
    SearchIndexError,
)
from swarm_indexer.index.config import RavenDBConfig
from swarm_indexer.index.models import ChunkDocument, record_from_result
from swarm_indexer.index.utils import chunked, cosine_similarity
from swarm_indexer.models import IndexedChunkRecord

logger = logging.getLogger(__name__)

# Exact-match fields used for filtering and faceting
EXACT_FIELDS = ("path", "project_root", "project_type", "language", "chunk_type")

HYBRID_INDEX_MAP = f"""from chunk in docs.{CHUNK_COLLECTION}
select new {{
    path = chunk.path,
    project_root = chunk.project_root,
    project_type = chunk.project_type,
    language = chunk.language,
    chunk_type = chunk.chunk_type,
    content = chunk.content,
    start_line = chunk.start_line,
    end_line = chunk.end_line,
    last_indexed = chunk.last_indexed,
    embedding = CreateVector(chunk.embedding)
}}"""

REST_TIMEOUT = 10  # Seconds for admin REST calls


class SearchIndexClient:
    """Client for the chunk collection and its hybrid (text + vector) index.

    Each upsert group and each query opens its own session, so one client
    can be shared by all indexing workers.
    """

    def __init__(
        self,
        url: str | None = None,
        database: str | None = None,
        dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS,
        batch_size: int = DEFAULT_BATCH_SIZE,
        store: DocumentStore | None = None,
    ) -> None:
        """Initialize the search index client.

        Args:
            url: RavenDB server URL (defaults to value from RavenDBConfig.get_url())
            database: Database name (defaults to value from RavenDBConfig.get_database_name())
            dimensions: Fixed embedding vector length
            batch_size: Maximum records per write session
            store: Pre-built DocumentStore, mainly for tests
        """
        if batch_size < 1:
            raise InvalidInputError(f"batch_size must be at least 1, got {batch_size}")
        self.url = (url or RavenDBConfig.get_url()).rstrip("/")
        self.database = database or RavenDBConfig.get_database_name()
        self.dimensions = dimensions
        self.batch_size = batch_size
        if store is None:
            store = DocumentStore([self.url], self.database)
            store.initialize()
        self.store = store
        logger.info(f"🗄️ SearchIndexClient ready: {self.url}/{self.database}")

    def close(self) -> None:
        """Close the underlying document store."""
        self.store.close()

    def __enter__(self) -> "SearchIndexClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def ensure_schema(self) -> bool:
        """Create the hybrid index if it does not exist yet.

        Returns:
            bool: True if the index was created, False if it already existed
        """
        existing_indexes = self.store.maintenance.send(GetIndexNamesOperation(0, 1024))
        if HYBRID_INDEX_NAME in (existing_indexes or []):
            logger.debug(f"Index {HYBRID_INDEX_NAME} already exists")
            return False

        index_definition = IndexDefinition()
        index_definition.name = HYBRID_INDEX_NAME
        index_definition.maps = {HYBRID_INDEX_MAP}

        fields = {
            name: IndexFieldOptions(storage=FieldStorage.YES, indexing=FieldIndexing.EXACT)
            for name in EXACT_FIELDS
        }
        fields["content"] = IndexFieldOptions(
            storage=FieldStorage.YES, indexing=FieldIndexing.SEARCH
        )
        fields["embedding"] = IndexFieldOptions(
            storage=FieldStorage.YES,
            indexing=FieldIndexing.NO,
            vector=VectorOptions(dimensions=self.dimensions),
        )
        index_definition.fields = fields

        self.store.maintenance.send(PutIndexesOperation(index_definition))
        logger.info(f"✅ Created index {HYBRID_INDEX_NAME} (dimensions={self.dimensions})")
        return True

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def upsert_batch(
        self,
        records: list[IndexedChunkRecord],
        cancel: threading.Event | None = None,
    ) -> int:
        """Insert or overwrite records, keyed by record id.

        Records are written in groups of at most ``batch_size``, one session
        and one save per group, in input order.

        Args:
            records: Records to write
            cancel: Optional event checked before each group

        Returns:
            int: Number of records written

        Raises:
            BatchUpsertError: If a group fails; earlier groups stay written
            IndexingCancelled: If ``cancel`` is set between groups
        """
        if not records:
            return 0

        written = 0
        for group_index, group in enumerate(chunked(records, self.batch_size)):
            if cancel is not None and cancel.is_set():
                raise IndexingCancelled(f"cancelled after writing {written} records")
            try:
                self._write_group(group)
            except Exception as e:
                logger.error(f"❌ Upsert group {group_index} failed: {e}")
                raise BatchUpsertError(group_index, written, e) from e
            written += len(group)
            logger.debug(f"Upserted group {group_index} ({len(group)} records)")

        return written

    def _write_group(self, group: list[IndexedChunkRecord]) -> None:
        with self.store.open_session() as session:
            for record in group:
                doc = ChunkDocument.from_record(record)
                session.store(doc, record.id)

                # Set the collection in document metadata
                metadata = session.advanced.get_metadata_for(doc)
                metadata["@collection"] = CHUNK_COLLECTION

            session.save_changes()

    def delete_by_path(self, relative_path: str) -> int:
        """Delete every record whose path equals ``relative_path``.

        Returns:
            int: Number of records deleted (0 is not an error)

        Raises:
            InvalidInputError: If ``relative_path`` is empty
        """
        if not relative_path:
            raise InvalidInputError("path cannot be empty")

        try:
            with self.store.open_session() as session:
                query = (
                    session.advanced.raw_query(
                        f"from {CHUNK_COLLECTION} where path = $path", object_type=dict
                    )
                    .add_parameter("path", relative_path)
                    .wait_for_non_stale_results()
                )
                doc_ids = [
                    result.get("@metadata", {}).get("@id") for result in list(query)
                ]
                doc_ids = [doc_id for doc_id in doc_ids if doc_id]
                for doc_id in doc_ids:
                    session.delete(doc_id)
                if doc_ids:
                    session.save_changes()
        except Exception as e:
            raise SearchIndexError(f"delete by path {relative_path!r} failed: {e}") from e

        logger.info(f"🗑️ Deleted {len(doc_ids)} records for {relative_path}")
        return len(doc_ids)

    def delete_stale(
        self,
        project_root: str,
        keep_ids: set[str],
        keep_paths: set[str] | frozenset[str] = frozenset(),
    ) -> int:
        """Delete the records of a root that its latest run did not produce.

        Covers files removed from the root and chunks whose start line no
        longer exists after a file shrank.

        Args:
            project_root: Absolute root path the records were indexed under
            keep_ids: Record ids built by the latest run
            keep_paths: Relative paths whose records stay untouched (files
                that failed to process and will be retried)

        Returns:
            int: Number of records deleted

        Raises:
            InvalidInputError: If ``project_root`` is empty
            SearchIndexError: If the lookup or a delete fails
        """
        if not project_root:
            raise InvalidInputError("project root cannot be empty")

        try:
            with self.store.open_session() as session:
                query = (
                    session.advanced.raw_query(
                        f"from {CHUNK_COLLECTION} where project_root = $root", object_type=dict
                    )
                    .add_parameter("root", project_root)
                    .wait_for_non_stale_results()
                )
                stale_ids = [
                    result.get("@metadata", {}).get("@id")
                    for result in list(query)
                    if result.get("path") not in keep_paths
                ]
            stale_ids = [doc_id for doc_id in stale_ids if doc_id and doc_id not in keep_ids]

            for group in chunked(stale_ids, self.batch_size):
                with self.store.open_session() as session:
                    for doc_id in group:
                        session.delete(doc_id)
                    session.save_changes()
        except Exception as e:
            raise SearchIndexError(f"stale cleanup for {project_root!r} failed: {e}") from e

        if stale_ids:
            logger.info(f"🗑️ Deleted {len(stale_ids)} stale records under {project_root}")
        return len(stale_ids)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def search(
        self,
        query_text: str,
        query_vector: list[float] | None = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[IndexedChunkRecord]:
        """Run one hybrid query combining full-text and vector similarity.

        Args:
            query_text: Keywords matched against chunk content
            query_vector: Optional query embedding; omitted for text-only search
            limit: Maximum number of results

        Returns:
            list[IndexedChunkRecord]: Matches ordered by descending score

        Raises:
            InvalidInputError: If both query inputs are empty or limit < 1
        """
        if limit < 1:
            raise InvalidInputError(f"limit must be at least 1, got {limit}")
        if not query_text and not query_vector:
            raise InvalidInputError("query text and vector cannot both be empty")

        clauses = []
        parameters: dict = {}
        if query_text:
            clauses.append("search(content, $query)")
            parameters["query"] = query_text
        if query_vector:
            clauses.append("vector.search(embedding, $vector)")
            parameters["vector"] = list(query_vector)

        rql = (
            f"from index '{HYBRID_INDEX_NAME}' where {' or '.join(clauses)} "
            f"limit {int(limit)}"
        )
        logger.debug(f"🔍 Hybrid query: {rql}")

        try:
            with self.store.open_session() as session:
                query = session.advanced.raw_query(rql, object_type=dict)
                for name, value in parameters.items():
                    query = query.add_parameter(name, value)
                results = list(query)
        except Exception as e:
            raise SearchIndexError(f"search failed: {e}") from e

        def get_score(result: dict) -> float:
            index_score = result.get("@metadata", {}).get("@index-score")
            if index_score is not None:
                return float(index_score)
            if query_vector:
                return cosine_similarity(query_vector, result.get("embedding") or [])
            return 0.0

        records = [record_from_result(result, get_score(result)) for result in results]
        records.sort(key=lambda record: record.score, reverse=True)
        return records[:limit]

    # -------------------------------------------------------------------------
    # Admin (REST)
    # -------------------------------------------------------------------------

    def database_exists(self) -> bool:
        """Check if the configured database exists on the server."""
        try:
            response = requests.get(
                f"{self.url}/databases/{self.database}/stats", timeout=REST_TIMEOUT
            )
        except requests.RequestException as e:
            logger.warning(f"⚠️ Could not reach RavenDB at {self.url}: {e}")
            return False
        return response.status_code == 200

    def create_database(self) -> None:
        """Create the configured database.

        Raises:
            requests.HTTPError: If the server rejects the request
        """
        api_url = f"{self.url}/admin/databases"
        payload = {"DatabaseName": self.database, "Settings": {}, "Disabled": False}

        response = requests.put(api_url, json=payload, timeout=REST_TIMEOUT)
        response.raise_for_status()
        logger.info(f"✅ Created database {self.database}")

    def count_documents(self) -> int:
        """Count the documents in the chunk collection.

        Returns:
            int: Number of stored chunk records (0 if the collection is empty)
        """
        response = requests.get(
            f"{self.url}/databases/{self.database}/collections/stats", timeout=REST_TIMEOUT
        )
        response.raise_for_status()
        data = response.json()
        return int(data.get("Collections", {}).get(CHUNK_COLLECTION, 0))
