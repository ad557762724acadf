"""Exception hierarchy for the indexing pipeline and its clients."""


class IndexerError(Exception):
    """Base exception for swarm-indexer errors."""


class InvalidInputError(IndexerError, ValueError):
    """A caller passed an argument the operation cannot accept."""


class IndexingCancelled(IndexerError):
    """The run's cancel event was set before the operation could finish."""


class RateLimitWaitCancelled(IndexingCancelled):
    """Cancelled while blocked on the embedding rate limiter."""


class EmbeddingError(IndexerError):
    """Error during embedding generation."""


class UpstreamError(EmbeddingError):
    """The embedding service answered with an error or could not be reached.

    Attributes:
        status_code: HTTP status returned by the service, or None for
            transport failures (connection refused, timeouts)
        message: Error message reported by the service
        retryable: Explicit override of the retry decision; None leaves it
            to the client's RetryPolicy
    """

    def __init__(
        self,
        status_code: int | None,
        message: str,
        retryable: bool | None = None,
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.retryable = retryable
        if status_code is None:
            super().__init__(f"embedding service unreachable: {message}")
        else:
            super().__init__(f"embedding service error (status={status_code}): {message}")


class RetriesExhaustedError(EmbeddingError):
    """Every attempt allowed by the retry policy failed."""

    def __init__(self, last_error: Exception, attempts: int) -> None:
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"max retries exceeded after {attempts} attempts: {last_error}")


class SearchIndexError(IndexerError):
    """Error during search-index operations."""


class BatchUpsertError(SearchIndexError):
    """One group of an upsert batch failed to write.

    Groups before ``group_index`` were written and stay written.
    """

    def __init__(self, group_index: int, written: int, cause: Exception) -> None:
        self.group_index = group_index
        self.written = written
        self.cause = cause
        super().__init__(
            f"upsert group {group_index} failed after {written} records written: {cause}"
        )
