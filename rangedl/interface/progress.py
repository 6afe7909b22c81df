import sys
import time
import threading
from typing import Dict, TextIO, Tuple

from colorama import Fore, Style

from rangedl.core.interfaces import ProgressSink


def format_size(v: int) -> str:
    if v >= 1024**3: return f"{v/1024**3:.1f}G"
    if v >= 1024**2: return f"{v/1024**2:.1f}M"
    if v >= 1024: return f"{v/1024:.0f}K"
    return f"{v} B"


def render_bar(done: int, total: int, width: int = 10) -> str:
    pct = (done / total) if total > 0 else 0.0
    filled = min(width, int(pct * width))
    return f"{Fore.GREEN}{'━' * filled}{Style.DIM}{'━' * (width - filled)}{Style.RESET_ALL}"


class ConsoleProgress(ProgressSink):
    """Single-line terminal status: total bytes, speed and one bar per worker slot."""

    def __init__(self, stream: TextIO = None, min_interval: float = 0.1):
        self.stream = stream or sys.stderr
        self.min_interval = min_interval
        self._lock = threading.Lock()
        self._render_lock = threading.Lock()
        self._workers: Dict[int, Tuple[int, int]] = {}  # index -> (bytes, expected)
        self._total = 0
        self._started = time.monotonic()
        self._last_render = 0.0

    def on_worker_reset(self, worker_index: int, expected_total: int) -> None:
        with self._lock:
            self._workers[worker_index] = (0, expected_total)
        self._render()

    def on_worker_progress(self, worker_index: int, bytes_so_far: int) -> None:
        with self._lock:
            _, expected = self._workers.get(worker_index, (0, 0))
            self._workers[worker_index] = (bytes_so_far, expected)
        self._render()

    def on_total_progress(self, total_bytes: int) -> None:
        with self._lock:
            self._total = total_bytes
        self._render()

    def on_finish(self) -> None:
        self._render(force=True)
        self.stream.write("\n")
        self.stream.flush()

    def status_line(self) -> str:
        with self._lock:
            elapsed = max(time.monotonic() - self._started, 1e-6)
            speed = self._total / elapsed
            bars = " ".join(
                f"#{idx:<2}{render_bar(done, expected)}"
                for idx, (done, expected) in sorted(self._workers.items())
            )
            total = self._total
        return f"{Fore.CYAN}{format_size(total):>7}{Style.RESET_ALL} | {format_size(int(speed))}/s | {bars}"

    def _render(self, force: bool = False) -> None:
        with self._render_lock:
            now = time.monotonic()
            if not force and now - self._last_render < self.min_interval:
                return
            self._last_render = now
            line = self.status_line()
            self.stream.write("\r" + line + " " * 4)
            self.stream.flush()
