"""
Chunk Sink

Writes received chunk payloads, in order, to the destination file.

The destination is created with exclusive mode so an existing file is
never truncated, even if it appears between the check and the open.
Chunk boundaries are whatever the broker delivered.
"""

import logging
from pathlib import Path
from typing import Union

import aiofiles

from ..errors import DestinationExistsError, DestinationFileError

logger = logging.getLogger(__name__)


class ChunkSink:
    """
    Append-only writer for a download destination.

    A failed download leaves the partial file behind; it is not removed.
    """

    def __init__(self, file_path: Union[str, Path]):
        self.file_path = Path(file_path)
        self.bytes_written = 0
        self._file = None

    def exists(self) -> bool:
        return self.file_path.exists()

    async def open(self):
        """Create the destination file. Fails if it already exists."""
        if self.exists():
            raise DestinationExistsError(f"Destination file already exists: {self.file_path}")
        try:
            self._file = await aiofiles.open(self.file_path, 'xb')
        except FileExistsError as e:
            raise DestinationExistsError(f"Destination file already exists: {self.file_path}") from e
        except OSError as e:
            raise DestinationFileError(f"Error creating file: {e}") from e
        logger.debug(f"Created destination {self.file_path}")

    async def write(self, data: bytes):
        """Append a chunk."""
        if self._file is None:
            raise RuntimeError("ChunkSink is not open")
        try:
            await self._file.write(data)
        except OSError as e:
            raise DestinationFileError(f"Error writing {self.file_path}: {e}") from e
        self.bytes_written += len(data)

    async def close(self):
        if self._file is not None:
            await self._file.close()
            self._file = None

    async def __aenter__(self) -> 'ChunkSink':
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
