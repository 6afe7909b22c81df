from typing import Optional


class RangeDLError(Exception):
    pass


class TransferError(RangeDLError):
    """A single range request failed. Workers retry these."""
    pass


class ConnectError(TransferError):
    pass


class TransferIOError(TransferError):
    pass


class ProtocolError(RangeDLError):
    """Response had no header/body delimiter."""
    pass


class ConfigurationError(RangeDLError):
    pass


class ChecksumMismatch(RangeDLError):
    def __init__(self, expected: Optional[str], actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Checksum mismatch: expected {expected}, got {actual}")


class WorkerAbort(RangeDLError):
    """A worker died on something other than a transfer error."""

    def __init__(self, chunk_id: int, cause: BaseException):
        self.chunk_id = chunk_id
        self.cause = cause
        super().__init__(f"Worker for chunk {chunk_id} aborted: {cause!r}")
