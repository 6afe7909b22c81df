"""
pytest configuration for rangedl tests.

Puts the project root on sys.path and provides:
- ScriptedTransport: in-memory transport answering per chunk id
- RangeServer: threaded localhost server speaking the range protocol
"""

import sys
import time
import threading
import socketserver
from collections import Counter
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from rangedl.core.config import TransferConfig
from rangedl.core.entities import FetchResult
from rangedl.core.interfaces import ProgressSink, RangeTransport

EOF_RESPONSE = FetchResult(body=b"", eof=True, headers="HTTP/1.1 400 Invalid range: out of bounds\r\n\r\n")


class ScriptedTransport(RangeTransport):
    """
    Answers each chunk id from a script of responses.

    A response is bytes, a FetchResult, or an exception instance to raise.
    The last response of a chunk's script repeats; chunks with no script
    answer with the EOF marker.
    """

    def __init__(self, chunk_size, script=None, delays=None):
        self.chunk_size = chunk_size
        self.script = {cid: list(responses) for cid, responses in (script or {}).items()}
        self.delays = delays or {}
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def fetch(self, start, end, on_progress=None):
        chunk_id = start // self.chunk_size
        with self._lock:
            self.calls.append((chunk_id, start, end))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if chunk_id in self.delays:
                time.sleep(self.delays[chunk_id])
            with self._lock:
                queue = self.script.get(chunk_id)
                if not queue:
                    response = EOF_RESPONSE
                elif len(queue) > 1:
                    response = queue.pop(0)
                else:
                    response = queue[0]
        finally:
            with self._lock:
                self.active -= 1

        if isinstance(response, BaseException):
            raise response
        if isinstance(response, FetchResult):
            return response
        if on_progress is not None:
            on_progress(len(response))
        return FetchResult(body=response, eof=not response, headers="HTTP/1.1 206 Partial Content\r\n\r\n")

    def call_count(self, chunk_id):
        return Counter(cid for cid, _, _ in self.calls)[chunk_id]


class RecordingProgress(ProgressSink):
    def __init__(self):
        self.events = []
        self.finished = 0
        self._lock = threading.Lock()

    def on_worker_reset(self, worker_index, expected_total):
        with self._lock:
            self.events.append(("reset", worker_index, expected_total))

    def on_worker_progress(self, worker_index, bytes_so_far):
        with self._lock:
            self.events.append(("progress", worker_index, bytes_so_far))

    def on_total_progress(self, total_bytes):
        with self._lock:
            self.events.append(("total", total_bytes))

    def on_finish(self):
        self.finished += 1

    def of_kind(self, kind):
        return [e for e in self.events if e[0] == kind]


class _RangeHandler(socketserver.StreamRequestHandler):
    def handle(self):
        lines = []
        while True:
            line = self.rfile.readline()
            if not line or line in (b"\r\n", b"\n"):
                break
            lines.append(line.decode("ascii").strip())
        self.server.requests.append(lines)

        range_line = next((l for l in lines if l.lower().startswith("range:")), None)
        payload = self.server.payload
        start, end = (int(v) for v in range_line.split("=", 1)[1].split("-"))
        if start >= len(payload):
            self.wfile.write(b"HTTP/1.1 400 Invalid range: start beyond end of file\r\nConnection: close\r\n\r\n")
            return
        body = payload[start:end]
        header = (
            "HTTP/1.1 206 Partial Content\r\n"
            f"Content-Length: {len(body)}\r\n"
            f"Content-Range: bytes {start}-{start + len(body) - 1}/{len(payload)}\r\n"
            "Connection: close\r\n"
            "\r\n"
        )
        self.wfile.write(header.encode("ascii") + body)


class RangeServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, payload):
        self.payload = payload
        self.requests = []
        super().__init__(("127.0.0.1", 0), _RangeHandler)

    @property
    def port(self):
        return self.server_address[1]


@pytest.fixture
def payload():
    return bytes((i * 7 + 3) % 251 for i in range(10_000))


@pytest.fixture
def range_server(payload):
    server = RangeServer(payload)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


@pytest.fixture
def fast_config():
    return TransferConfig(
        chunk_size=10,
        concurrency=2,
        max_chunk_retries=2,
        max_batch_retries=3,
        base_delay=0.0,
        connect_timeout=1.0,
        read_timeout=1.0,
        write_timeout=1.0,
    )


@pytest.fixture
def no_sleep():
    delays = []
    def _sleep(seconds):
        delays.append(seconds)
    _sleep.delays = delays
    return _sleep


@pytest.fixture
def recording_progress():
    return RecordingProgress()
