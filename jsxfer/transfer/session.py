"""
Transfer Session

Process-local bookkeeping for one transfer. The counters live here rather
than on a subscription so that replacing a subscription mid-download does
not reset progress.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..utils import format_size, format_duration


@dataclass
class TransferSession:
    """Bytes moved, timing, and (for downloads) sequence tracking."""
    name: str
    bytes_transferred: int = 0
    chunks: int = 0
    start_time: float = field(default_factory=time.monotonic)
    end_time: Optional[float] = None

    # Upload: file size when known
    total_bytes: Optional[int] = None

    # Download
    expected_sequence: int = 1
    last_sequence: int = 0  # Stream message count at subscription start
    resubscriptions: int = 0

    @property
    def elapsed_seconds(self) -> float:
        """Wall-clock time from start to finish (or to now, while running)."""
        end = self.end_time if self.end_time is not None else time.monotonic()
        return end - self.start_time

    @property
    def is_complete(self) -> bool:
        """Download completion: every sequence up to the target was written."""
        return self.expected_sequence > self.last_sequence

    def record_chunk(self, size: int):
        self.bytes_transferred += size
        self.chunks += 1

    def finish(self):
        self.end_time = time.monotonic()

    def summary(self) -> str:
        return f"{format_size(self.bytes_transferred)} in {format_duration(self.elapsed_seconds)}"


# Progress callback type
ProgressCallback = Callable[[TransferSession], None]
