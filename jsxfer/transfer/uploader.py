"""
File Uploader

Design Decision: Publish Strategy
=================================

Options Considered:
1. Publish and wait for each ack
   - Simple, one round trip per chunk, slow on any real link

2. Publish everything, collect acks at the end
   - Fast, but the whole file can end up buffered in the client

3. Sliding window of in-flight publishes
   - Round trip latency is amortized over the window
   - Memory bounded by window * chunk size

Decision: Sliding window (default 8 * 64KB)
- The reader blocks when the window is full
- The first failed publish cancels the rest and aborts the upload
- A half-written stream is left behind; uploads are all-or-nothing

Upload Flow:
1. Open the source file (fail before touching the broker)
2. Refuse if a stream with the transfer name exists
3. Create the stream on a fresh inbox subject
4. Publish chunks through the window
5. Drain the window and report
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Set, Union

from ..config import TransferConfig
from ..errors import (
    PublishError, SourceFileError, StreamExistsError, StreamNotFoundError,
    TransferError,
)
from ..file import FileChunker, canonical_name
from .session import TransferSession, ProgressCallback

logger = logging.getLogger(__name__)


class PublishWindow:
    """
    Bounded set of in-flight publishes to one subject.

    Tasks start in submission order and the NATS client buffers a message
    before its first await, so the stream receives chunks in file order.
    Each ack is also checked against the sequence the chunk should have.
    """

    def __init__(self, broker, subject: str, max_pending: int = 8,
                 first_sequence: int = 1):
        if max_pending <= 0:
            raise ValueError("max_pending must be positive")
        self.broker = broker
        self.subject = subject
        self.max_pending = max_pending

        self._slots = asyncio.Semaphore(max_pending)
        self._pending: Set[asyncio.Task] = set()
        self._error: Optional[BaseException] = None
        self._next_sequence = first_sequence

        # Statistics
        self.in_flight = 0
        self.max_in_flight = 0
        self.acked = 0

    @property
    def failed(self) -> bool:
        return self._error is not None

    async def submit(self, payload: bytes):
        """
        Start publishing a chunk, waiting while the window is full.

        Raises the first publish error seen so far.
        """
        self._raise_if_failed()
        await self._slots.acquire()
        if self._error is not None:
            self._slots.release()
            self._raise_if_failed()

        sequence = self._next_sequence
        self._next_sequence += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)

        task = asyncio.create_task(self._publish(payload, sequence))
        self._pending.add(task)
        task.add_done_callback(self._on_done)

    async def _publish(self, payload: bytes, sequence: int):
        try:
            stored = await self.broker.publish(self.subject, payload)
            if stored != sequence:
                raise PublishError(
                    f"Chunk stored out of order: expected sequence {sequence}, got {stored}"
                )
            self.acked += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Recorded before the slot is released so a blocked reader sees it
            self._fail(e)
        finally:
            self.in_flight -= 1
            self._slots.release()

    def _fail(self, exc: Exception):
        if self._error is not None:
            return
        if not isinstance(exc, TransferError):
            exc = PublishError(f"Error sending chunk to JetStream: {exc!r}")
        self._error = exc
        logger.error(f"{exc}, aborting upload")

        current = asyncio.current_task()
        for task in list(self._pending):
            if task is not current:
                task.cancel()

    def _on_done(self, task: asyncio.Task):
        self._pending.discard(task)

    def _raise_if_failed(self):
        if self._error is not None:
            raise self._error

    async def drain(self):
        """Wait for every outstanding publish to be acknowledged."""
        while self._pending:
            await asyncio.wait(set(self._pending))
        self._raise_if_failed()

    async def cancel(self):
        """Abandon outstanding publishes."""
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


class FileUploader:
    """
    Uploads a file into a new JetStream stream.

    The broker is anything with stream_info, create_stream, new_inbox and
    publish; see jsxfer.broker.JetStreamBroker.
    """

    def __init__(self, broker, config: TransferConfig = None):
        self.broker = broker
        self.config = config or TransferConfig()

        # Statistics
        self.files_uploaded = 0
        self.total_bytes = 0

    async def upload(self, file_path: Union[str, Path],
                     progress_callback: ProgressCallback = None) -> TransferSession:
        """
        Upload a file.

        Returns:
            The finished session (bytes sent, elapsed time)

        Raises:
            SourceFileError, StreamExistsError, PublishError, BrokerError
        """
        async with FileChunker(file_path, self.config.chunk_size) as chunker:
            name = canonical_name(str(file_path))
            if not name:
                raise SourceFileError(f"Cannot derive a transfer name from {str(file_path)!r}")

            await self._ensure_new_stream(name)

            # Delivery subject as an inbox so nothing else publishes to it
            subject = self.broker.new_inbox()
            await self.broker.create_stream(name, [subject], replicas=self.config.replicas)
            logger.info(f"Uploading {chunker.file_path} to stream {name}")

            session = TransferSession(name=name, total_bytes=chunker.file_size)
            window = PublishWindow(self.broker, subject, self.config.max_pending)
            try:
                async for chunk in chunker.chunks():
                    await window.submit(chunk)
                    session.record_chunk(len(chunk))
                    if progress_callback:
                        progress_callback(session)
                await window.drain()
            except BaseException:
                await window.cancel()
                raise

        session.finish()
        self.files_uploaded += 1
        self.total_bytes += session.bytes_transferred
        logger.info(f"Completed transfer of {session.summary()}")
        return session

    async def _ensure_new_stream(self, name: str):
        try:
            await self.broker.stream_info(name)
        except StreamNotFoundError:
            return
        raise StreamExistsError(f"Stream {name!r} already exists")

    def get_stats(self) -> dict:
        """Get uploader statistics."""
        return {
            'files_uploaded': self.files_uploaded,
            'total_bytes': self.total_bytes,
        }


async def upload(broker, file_path: Union[str, Path], config: TransferConfig = None,
                 progress_callback: ProgressCallback = None) -> TransferSession:
    """Upload file_path using a one-off FileUploader."""
    return await FileUploader(broker, config).upload(file_path, progress_callback)
