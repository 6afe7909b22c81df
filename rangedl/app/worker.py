import time
import logging
from typing import Callable, Optional

from rangedl.app.aggregator import ResultAggregator
from rangedl.core.entities import Chunk, ChunkId, WorkerOutcome, WorkerState
from rangedl.core.errors import TransferError
from rangedl.core.interfaces import RangeTransport, ProgressSink, NullProgress

logger = logging.getLogger("rangedl.worker")

DEFAULT_MAX_CHUNK_RETRIES = 2
DEFAULT_BASE_DELAY = 0.05  # seconds


class ChunkWorker:
    """Fetches one chunk id, retrying transfer errors with exponential backoff."""

    def __init__(self, transport: RangeTransport, aggregator: ResultAggregator, chunk_size: int,
                 max_chunk_retries: int = DEFAULT_MAX_CHUNK_RETRIES, base_delay: float = DEFAULT_BASE_DELAY,
                 progress: Optional[ProgressSink] = None, sleep: Callable[[float], None] = time.sleep):
        self.transport = transport
        self.aggregator = aggregator
        self.chunk_size = chunk_size
        self.max_chunk_retries = max_chunk_retries
        self.base_delay = base_delay
        self.progress = progress or NullProgress()
        self._sleep = sleep

    def byte_range(self, chunk_id: ChunkId):
        """(start, end) for chunk_id; the server answers with bytes [start, end)."""
        start = chunk_id * self.chunk_size
        return start, start + self.chunk_size

    def backoff(self, attempt: int) -> float:
        return self.base_delay * (2 ** attempt)

    def run(self, chunk_id: ChunkId, worker_index: int = 0) -> WorkerOutcome:
        start, end = self.byte_range(chunk_id)
        attempts = 0

        def report(bytes_so_far: int):
            self.progress.on_worker_progress(worker_index, bytes_so_far)

        while True:
            self.progress.on_worker_reset(worker_index, self.chunk_size)
            try:
                result = self.transport.fetch(start, end, on_progress=report)
            except TransferError as e:
                self.aggregator.append_error(chunk_id, str(e))
                attempts += 1
                if attempts <= self.max_chunk_retries:
                    delay = self.backoff(attempts)
                    logger.debug(f"Chunk {chunk_id} failed ({e}); retrying in {delay * 1000:.0f}ms")
                    self._sleep(delay)
                    continue
                logger.debug(f"Chunk {chunk_id} failed after {attempts} attempts")
                return WorkerOutcome(chunk_id, WorkerState.FAILED, attempts)

            if result.eof:
                logger.debug(f"Chunk {chunk_id} signalled end of resource")
                return WorkerOutcome(chunk_id, WorkerState.EOF_SIGNALED, attempts + 1)

            if self.aggregator.insert_chunk(Chunk(chunk_id, result.body)):
                total = self.aggregator.add_bytes(len(result.body))
                self.progress.on_total_progress(total)
            self.aggregator.mark_processed(chunk_id)
            return WorkerOutcome(chunk_id, WorkerState.SUCCESS, attempts + 1)
