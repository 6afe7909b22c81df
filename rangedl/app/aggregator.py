"""Shared result store for one transfer, and the assembler that reads it."""

import threading
from typing import Dict, Iterable, List, Set

from rangedl.core.entities import Chunk, ChunkError, ChunkId, RunResult


class ResultAggregator:
    """
    Chunk map, processed-id set, error log and byte counter for one run.

    Every method takes the same lock for the in-memory update only; callers
    must never hold it across network I/O.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._chunks: Dict[ChunkId, Chunk] = {}
        self._processed: Set[ChunkId] = set()
        self._errors: List[ChunkError] = []
        self._total_bytes = 0

    def insert_chunk(self, chunk: Chunk) -> bool:
        """Stores chunk unless one with the same id is already stored."""
        with self._lock:
            if chunk.id in self._chunks:
                return False
            self._chunks[chunk.id] = chunk
            return True

    def mark_processed(self, chunk_id: ChunkId) -> None:
        with self._lock:
            self._processed.add(chunk_id)

    def append_error(self, chunk_id: ChunkId, message: str) -> None:
        with self._lock:
            self._errors.append(ChunkError(chunk_id, message))

    def add_bytes(self, count: int) -> int:
        with self._lock:
            self._total_bytes += count
            return self._total_bytes

    def is_processed(self, chunk_id: ChunkId) -> bool:
        with self._lock:
            return chunk_id in self._processed

    def processed_ids(self) -> Set[ChunkId]:
        with self._lock:
            return set(self._processed)

    def errors(self) -> List[ChunkError]:
        with self._lock:
            return list(self._errors)

    @property
    def total_bytes(self) -> int:
        with self._lock:
            return self._total_bytes

    def snapshot(self, eof: bool = False, rounds: int = 0) -> RunResult:
        with self._lock:
            return RunResult(
                chunks=dict(self._chunks),
                errors=list(self._errors),
                eof=eof,
                rounds=rounds,
            )


def assemble(chunks: Iterable[Chunk]) -> bytes:
    """Concatenates chunks in ascending id order. Missing ids leave no padding."""
    ordered = sorted(chunks, key=lambda chunk: chunk.id)
    return b"".join(chunk.data for chunk in ordered)
