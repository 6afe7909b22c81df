import time
import logging
from typing import Callable, Optional

from rangedl.app.aggregator import ResultAggregator, assemble
from rangedl.app.scheduler import ChunkScheduler
from rangedl.app.verifier import verify
from rangedl.app.worker import ChunkWorker
from rangedl.core.config import TransferConfig
from rangedl.core.entities import TransferOutcome
from rangedl.core.interfaces import RangeTransport, ProgressSink, NullProgress

logger = logging.getLogger("rangedl.service")


class TransferService:
    """Runs one segmented transfer: schedule, assemble, verify."""

    def __init__(self, transport_factory: Callable[[TransferConfig], RangeTransport],
                 sleep: Callable[[float], None] = time.sleep):
        self.transport_factory = transport_factory
        self._sleep = sleep

    def transfer(self, config: TransferConfig, progress: Optional[ProgressSink] = None) -> TransferOutcome:
        config.validate()
        progress = progress or NullProgress()
        transport = self.transport_factory(config)

        # A fresh aggregator per run; discarded once the outcome is built
        aggregator = ResultAggregator()
        worker = ChunkWorker(
            transport,
            aggregator,
            config.chunk_size,
            max_chunk_retries=config.max_chunk_retries,
            base_delay=config.base_delay,
            progress=progress,
            sleep=self._sleep,
        )
        scheduler = ChunkScheduler(worker, aggregator, config.concurrency,
                                   max_batch_retries=config.max_batch_retries)

        logger.info(f"Starting transfer from {config.host}:{config.port} "
                    f"({config.chunk_size} byte chunks, {config.concurrency} workers)")
        started = time.monotonic()
        try:
            run = scheduler.run()
        finally:
            progress.on_finish()
        elapsed = time.monotonic() - started

        data = assemble(run.chunks.values())
        verification = verify(data, config.expected_checksum)
        if verification.matched is False:
            logger.warning(f"Checksum mismatch: expected {config.expected_checksum}, got {verification.digest_hex}")

        logger.info(f"Transfer finished: {len(data)} bytes in {elapsed:.2f}s, {len(run.errors)} errors")
        return TransferOutcome(
            assembled_bytes=data,
            digest_hex=verification.digest_hex,
            errors=run.errors,
            checksum_matched=verification.matched,
            expected_checksum=config.expected_checksum,
            elapsed_seconds=elapsed,
            eof=run.eof,
            rounds=run.rounds,
        )
