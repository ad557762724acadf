"""Shared record buffer that hands out full batches."""

import threading

from swarm_indexer.models import IndexedChunkRecord


class BatchBuffer:
    """Accumulates records from many workers and detaches full batches.

    The lock only guards appending and slicing; callers write the detached
    batches to the search index after the lock is released.
    """

    def __init__(self, batch_size: int) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.batch_size = batch_size
        self._records: list[IndexedChunkRecord] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def add(self, records: list[IndexedChunkRecord]) -> list[list[IndexedChunkRecord]]:
        """Append records and detach every full batch.

        Returns:
            list[list[IndexedChunkRecord]]: Batches of exactly ``batch_size``
            records, oldest first; empty while the buffer is not full
        """
        with self._lock:
            self._records.extend(records)
            batches = []
            while len(self._records) >= self.batch_size:
                batches.append(self._records[: self.batch_size])
                del self._records[: self.batch_size]
        return batches

    def drain(self) -> list[IndexedChunkRecord]:
        """Detach whatever is left (a partial batch or nothing)."""
        with self._lock:
            remaining, self._records = self._records, []
        return remaining
