from abc import ABC, abstractmethod
from typing import Callable, Optional
from pathlib import Path

from rangedl.core.entities import FetchResult

ProgressCallback = Callable[[int], None]


class RangeTransport(ABC):
    @abstractmethod
    def fetch(self, start: int, end: int, on_progress: Optional[ProgressCallback] = None) -> FetchResult:
        """Fetches the byte range [start, end) over a fresh connection.

        Raises ConnectError or TransferIOError on failure.
        """
        pass


class ProgressSink(ABC):
    @abstractmethod
    def on_worker_reset(self, worker_index: int, expected_total: int) -> None:
        pass

    @abstractmethod
    def on_worker_progress(self, worker_index: int, bytes_so_far: int) -> None:
        pass

    @abstractmethod
    def on_total_progress(self, total_bytes: int) -> None:
        pass

    def on_finish(self) -> None:
        pass


class NullProgress(ProgressSink):
    """Progress sink with no observers."""

    def on_worker_reset(self, worker_index: int, expected_total: int) -> None:
        pass

    def on_worker_progress(self, worker_index: int, bytes_so_far: int) -> None:
        pass

    def on_total_progress(self, total_bytes: int) -> None:
        pass


class FileSink(ABC):
    @abstractmethod
    def write(self, filepath: Path, data: bytes) -> int:
        pass
