import logging
from concurrent.futures import ThreadPoolExecutor, wait, Future
from typing import Dict, List

from rangedl.app.aggregator import ResultAggregator
from rangedl.app.worker import ChunkWorker
from rangedl.core.entities import ChunkId, RunResult, WorkerOutcome, WorkerState
from rangedl.core.errors import WorkerAbort

logger = logging.getLogger("rangedl.scheduler")

DEFAULT_MAX_BATCH_RETRIES = 3


class ChunkScheduler:
    """
    Drives rounds of concurrent chunk workers until a worker reports EOF.

    Each round covers ids [cursor, cursor + concurrency), skipping ids that
    were already captured, and waits for every worker before looking at the
    results. A round with missing ids is repeated up to max_batch_retries
    times; after that the cursor moves on and the missing ids are lost.

    There is no size limit: against a server that never signals EOF this
    runs forever.
    """

    def __init__(self, worker: ChunkWorker, aggregator: ResultAggregator, concurrency: int,
                 max_batch_retries: int = DEFAULT_MAX_BATCH_RETRIES):
        self.worker = worker
        self.aggregator = aggregator
        self.concurrency = concurrency
        self.max_batch_retries = max_batch_retries

        self.cursor: ChunkId = 0
        self.batch_retry_count = 0
        self.eof = False
        self.rounds = 0

    def expected_ids(self) -> List[ChunkId]:
        return list(range(self.cursor, self.cursor + self.concurrency))

    def pending_ids(self) -> List[ChunkId]:
        processed = self.aggregator.processed_ids()
        return [cid for cid in self.expected_ids() if cid not in processed]

    def run(self) -> RunResult:
        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="rangedl-worker") as executor:
            while not self.eof:
                outcomes = self.run_round(executor)
                self._advance(outcomes)
        logger.info(f"Finished after {self.rounds} rounds; {len(self.aggregator.processed_ids())} chunks captured")
        return self.aggregator.snapshot(eof=self.eof, rounds=self.rounds)

    def run_round(self, executor: ThreadPoolExecutor) -> List[WorkerOutcome]:
        """Runs one batch and returns once every worker in it has finished."""
        self.rounds += 1
        futures: Dict[Future, ChunkId] = {}
        for chunk_id in self.pending_ids():
            worker_index = chunk_id - self.cursor
            futures[executor.submit(self.worker.run, chunk_id, worker_index)] = chunk_id

        logger.debug(f"Round {self.rounds}: chunks {sorted(futures.values())}")
        wait(futures)

        outcomes = []
        for future, chunk_id in futures.items():
            try:
                outcomes.append(future.result())
            except Exception as e:
                abort = WorkerAbort(chunk_id, e)
                logger.error(str(abort))
                self.aggregator.append_error(chunk_id, str(abort))
                outcomes.append(WorkerOutcome(chunk_id, WorkerState.FAILED))
        return outcomes

    def _advance(self, outcomes: List[WorkerOutcome]) -> None:
        eof_ids = [o.chunk_id for o in outcomes if o.is_eof]
        if eof_ids:
            logger.info(f"End of resource signalled at chunk {min(eof_ids)}")
            self.eof = True
            return

        processed = self.aggregator.processed_ids()
        missing = sorted(set(self.expected_ids()) - processed)
        if not missing:
            self.cursor += self.concurrency
            self.batch_retry_count = 0
            return

        self.batch_retry_count += 1
        if self.batch_retry_count > self.max_batch_retries:
            logger.warning(
                f"Giving up on chunks {missing} after {self.max_batch_retries} batch retries; "
                f"moving past batch starting at chunk {self.cursor}"
            )
            self.cursor += self.concurrency
            self.batch_retry_count = 0
        else:
            logger.info(f"Chunks {missing} missing; retrying batch at chunk {self.cursor} "
                        f"({self.batch_retry_count}/{self.max_batch_retries})")
