from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from rangedl.core.errors import ChecksumMismatch

ChunkId = int


class WorkerState(Enum):
    ATTEMPTING = "ATTEMPTING"
    SUCCESS = "SUCCESS"
    EOF_SIGNALED = "EOF_SIGNALED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Chunk:
    """A captured byte range of the remote resource."""
    id: ChunkId
    data: bytes

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ChunkError:
    chunk_id: ChunkId
    message: str


@dataclass
class FetchResult:
    """What one range request produced."""
    body: bytes
    eof: bool
    headers: str = ""


@dataclass
class WorkerOutcome:
    chunk_id: ChunkId
    state: WorkerState
    attempts: int = 0

    @property
    def is_eof(self) -> bool:
        return self.state == WorkerState.EOF_SIGNALED


@dataclass
class RunResult:
    """Terminal output of the scheduler."""
    chunks: Dict[ChunkId, Chunk] = field(default_factory=dict)
    errors: List[ChunkError] = field(default_factory=list)
    eof: bool = False
    rounds: int = 0


@dataclass
class TransferOutcome:
    """Everything a caller needs to report on a finished transfer."""
    assembled_bytes: bytes
    digest_hex: str
    errors: List[ChunkError] = field(default_factory=list)
    checksum_matched: Optional[bool] = None
    expected_checksum: Optional[str] = None
    elapsed_seconds: float = 0.0
    eof: bool = False
    rounds: int = 0

    @property
    def total_bytes(self) -> int:
        return len(self.assembled_bytes)

    @property
    def average_speed(self) -> float:
        """Bytes per second over the whole run."""
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.total_bytes / self.elapsed_seconds

    @property
    def failed(self) -> bool:
        return self.checksum_matched is False

    def raise_for_checksum(self) -> None:
        if self.checksum_matched is False:
            raise ChecksumMismatch(self.expected_checksum, self.digest_hex)
