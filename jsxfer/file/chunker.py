"""
File Chunker

Design Decision: Chunk Size
===========================

NATS performs best with small messages and the default server payload
limit is 1MB, so chunks are kept well below it.

| Size    | Pros                          | Cons                           |
|---------|-------------------------------|--------------------------------|
| 16KB    | Very smooth flow control      | Many messages per file         |
| 64KB    | Good balance for the broker   | -                              |
| 512KB   | Fewer messages                | Slow consumer risk, near limit |

Decision: 64KB (65,536 bytes), and never more.

Chunking Strategy: Fixed-Size
- The last chunk is short, every other chunk is exactly chunk_size
- No framing or per-chunk metadata; stream order is the file order
"""

import logging
from pathlib import Path
from typing import AsyncIterator, Optional, Union

import aiofiles

from ..errors import SourceFileError

logger = logging.getLogger(__name__)

# Chunk size: 64KB
CHUNK_SIZE = 64 * 1024
MAX_CHUNK_SIZE = CHUNK_SIZE


class FileChunker:
    """
    Reads a file as fixed-size chunks for publishing.

    Usage:
        async with FileChunker(path) as chunker:
            async for chunk in chunker.chunks():
                ...

    Opening happens on enter so a missing file fails before any broker
    state is created.
    """

    def __init__(self, file_path: Union[str, Path], chunk_size: int = CHUNK_SIZE):
        if chunk_size <= 0 or chunk_size > MAX_CHUNK_SIZE:
            raise ValueError(f"chunk_size must be in 1..{MAX_CHUNK_SIZE}, got {chunk_size}")
        self.file_path = Path(file_path)
        self.chunk_size = chunk_size
        self._file = None

    @property
    def file_size(self) -> Optional[int]:
        """Size of the source file, or None if it cannot be stat'ed."""
        try:
            return self.file_path.stat().st_size
        except OSError:
            return None

    def get_chunk_count(self, file_size: int) -> int:
        """Calculate number of chunks for a file of given size."""
        return (file_size + self.chunk_size - 1) // self.chunk_size

    async def open(self):
        """Open the source file for reading."""
        try:
            self._file = await aiofiles.open(self.file_path, 'rb')
        except OSError as e:
            raise SourceFileError(f"Error opening {str(self.file_path)!r}: {e}") from e

    async def close(self):
        if self._file is not None:
            await self._file.close()
            self._file = None

    async def __aenter__(self) -> 'FileChunker':
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def chunks(self) -> AsyncIterator[bytes]:
        """
        Yield chunks until end of file.

        An empty file yields nothing.
        """
        if self._file is None:
            raise RuntimeError("FileChunker is not open")

        while True:
            try:
                chunk = await self._file.read(self.chunk_size)
            except OSError as e:
                raise SourceFileError(f"Error reading {str(self.file_path)!r}: {e}") from e
            if not chunk:
                break
            yield chunk
