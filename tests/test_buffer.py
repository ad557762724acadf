"""Tests for the shared batch buffer."""

import threading

import pytest

from swarm_indexer.indexer import BatchBuffer


class TestBatchBuffer:
    """Tests for BatchBuffer."""

    def test_rejects_zero_batch_size(self):
        with pytest.raises(ValueError):
            BatchBuffer(0)

    def test_holds_records_until_full(self, create_test_record):
        buffer = BatchBuffer(3)

        assert buffer.add([create_test_record(start_line=1), create_test_record(start_line=2)]) == []
        assert len(buffer) == 2

    def test_detaches_full_batches_in_order(self, create_test_record):
        """Test that one add can detach several full batches."""
        buffer = BatchBuffer(2)
        records = [create_test_record(start_line=i) for i in range(1, 6)]

        batches = buffer.add(records)

        assert batches == [records[0:2], records[2:4]]
        assert len(buffer) == 1

    def test_drain_returns_partial_batch_once(self, create_test_record):
        buffer = BatchBuffer(10)
        records = [create_test_record(start_line=i) for i in range(1, 4)]
        buffer.add(records)

        assert buffer.drain() == records
        assert buffer.drain() == []
        assert len(buffer) == 0

    def test_concurrent_adds_lose_no_records(self, create_test_record):
        """Test that records added from many threads all come out exactly once."""
        buffer = BatchBuffer(7)
        detached = []
        lock = threading.Lock()

        def add_many(offset: int) -> None:
            for i in range(50):
                batches = buffer.add([create_test_record(start_line=offset + i)])
                with lock:
                    detached.extend(batches)

        threads = [threading.Thread(target=add_many, args=(n * 1000,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(len(batch) == 7 for batch in detached)
        lines = [r.start_line for batch in detached for r in batch]
        lines += [r.start_line for r in buffer.drain()]
        assert sorted(lines) == sorted(n * 1000 + i for n in range(4) for i in range(50))
