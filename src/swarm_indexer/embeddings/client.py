"""Rate-limited, retrying embedding client."""

import logging
import threading
from dataclasses import dataclass

from swarm_indexer.constants import (
    BACKOFF_MULTIPLIER,
    DEFAULT_RATE_LIMIT,
    INITIAL_BACKOFF,
    MAX_ATTEMPTS,
    RETRYABLE_STATUS_CODES,
)
from swarm_indexer.embeddings.base import EmbeddingBackend
from swarm_indexer.embeddings.ratelimit import TokenBucket
from swarm_indexer.errors import (
    EmbeddingError,
    IndexingCancelled,
    InvalidInputError,
    RetriesExhaustedError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff settings for one logical embedding request.

    Attributes:
        max_attempts: Total attempts including the first call
        initial_backoff: Seconds to sleep before the first retry
        multiplier: Factor applied to the sleep after each retry
        retryable_statuses: HTTP statuses worth retrying
    """

    max_attempts: int = MAX_ATTEMPTS
    initial_backoff: float = INITIAL_BACKOFF
    multiplier: float = BACKOFF_MULTIPLIER
    retryable_statuses: frozenset[int] = RETRYABLE_STATUS_CODES

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    def is_retryable(self, error: UpstreamError) -> bool:
        """An explicit ``error.retryable`` wins; otherwise transport failures
        (no status) and listed statuses are retried.
        """
        if error.retryable is not None:
            return error.retryable
        return error.status_code is None or error.status_code in self.retryable_statuses


class EmbeddingClient:
    """Turns text into vectors through a backend, within a shared request budget.

    One instance is shared by every worker of a run: its token bucket is the
    global budget, so ``requests_per_minute`` bounds the whole pool rather
    than each worker.
    """

    def __init__(
        self,
        backend: EmbeddingBackend,
        requests_per_minute: int = DEFAULT_RATE_LIMIT,
        retry_policy: RetryPolicy | None = None,
        limiter: TokenBucket | None = None,
    ) -> None:
        """Initialize the embedding client.

        Args:
            backend: Provider that performs the actual HTTP call
            requests_per_minute: Request budget used to build the limiter
            retry_policy: Backoff settings (default: 4 attempts, 1s/2s/4s)
            limiter: Pre-built limiter; overrides ``requests_per_minute``
        """
        self.backend = backend
        self.retry_policy = retry_policy or RetryPolicy()
        self.limiter = limiter or TokenBucket.per_minute(requests_per_minute)
        logger.info(f"🔢 Initializing EmbeddingClient: model={backend.model}")

    @property
    def dimensions(self) -> int:
        return self.backend.dimensions

    def embed(self, text: str, cancel: threading.Event | None = None) -> list[float]:
        """Generate an embedding for a single text.

        Raises:
            InvalidInputError: If ``text`` is empty
        """
        if not text:
            raise InvalidInputError("text cannot be empty")
        return self._request([text], cancel)[0]

    def embed_batch(
        self, texts: list[str], cancel: threading.Event | None = None
    ) -> list[list[float]]:
        """Generate embeddings for many texts with a single request.

        Args:
            texts: Texts to embed
            cancel: Optional event that aborts rate-limit waits and backoff

        Returns:
            list[list[float]]: One vector per text, in input order

        Raises:
            InvalidInputError: If ``texts`` is empty
            UpstreamError: On a non-retryable service error
            RetriesExhaustedError: If every attempt failed
            IndexingCancelled: If ``cancel`` was set while waiting
        """
        if not texts:
            raise InvalidInputError("texts cannot be empty")
        return self._request(list(texts), cancel)

    def _request(
        self, texts: list[str], cancel: threading.Event | None
    ) -> list[list[float]]:
        vectors = self._call_with_retry(texts, cancel)
        if len(vectors) != len(texts):
            raise EmbeddingError(f"expected {len(texts)} embeddings, got {len(vectors)}")
        return vectors

    def _call_with_retry(
        self, texts: list[str], cancel: threading.Event | None
    ) -> list[list[float]]:
        cancel = cancel or threading.Event()
        policy = self.retry_policy
        backoff = policy.initial_backoff
        last_error: UpstreamError | None = None

        for attempt in range(1, policy.max_attempts + 1):
            if attempt > 1:
                logger.warning(
                    f"⚠️ Embedding attempt {attempt - 1}/{policy.max_attempts} failed "
                    f"({last_error}); retrying in {backoff:.1f}s"
                )
                if cancel.wait(backoff):
                    raise IndexingCancelled("cancelled during embedding retry backoff")
                backoff *= policy.multiplier

            self.limiter.wait(cancel)
            try:
                vectors = self.backend.embed_texts(texts)
            except UpstreamError as e:
                if not policy.is_retryable(e):
                    logger.error(f"❌ Embedding request rejected: {e}")
                    raise
                last_error = e
                continue

            logger.debug(f"Embedded {len(texts)} texts with {self.backend.model}")
            return vectors

        logger.error(f"❌ Embedding failed after {policy.max_attempts} attempts: {last_error}")
        raise RetriesExhaustedError(last_error, policy.max_attempts)
