"""
File Downloader

Design Decision: Loss Recovery
==============================

Options Considered:
1. Acks with broker redelivery
   - Broker keeps retransmission state per message
   - Redelivered chunks arrive out of order and need a reorder buffer

2. Buffer and reorder on the client
   - Unbounded memory if a chunk never shows up

3. Sequence check with resubscription
   - The stream sequence must advance by exactly one per chunk
   - On any mismatch, drop the subscription and replay from the
     first missing sequence

Decision: Sequence check with resubscription
- The consumer is no-ack, max deliver 1, flow controlled
- Counters live in the TransferSession, not the subscription, so a
  replacement subscription continues where the old one stopped

Subscription states:

    SUBSCRIBED --gap--> GAP_DETECTED --> RESUBSCRIBING --> SUBSCRIBED
        |
        +--expected > last--> COMPLETE

The completion target is the stream's message count when the download
starts. Messages appended later are not picked up.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from ..broker.types import StreamState
from ..config import TransferConfig
from ..errors import BrokerError, ReceiveTimeoutError
from ..file import ChunkSink, canonical_name
from .session import TransferSession, ProgressCallback

logger = logging.getLogger(__name__)


class SubscriptionState(Enum):
    """Download subscription states."""
    IDLE = "IDLE"
    SUBSCRIBED = "SUBSCRIBED"
    GAP_DETECTED = "GAP_DETECTED"
    RESUBSCRIBING = "RESUBSCRIBING"
    COMPLETE = "COMPLETE"


class FileDownloader:
    """
    Downloads a transfer from its JetStream stream into a local file.

    The broker is anything with stream_info and subscribe; see
    jsxfer.broker.JetStreamBroker.
    """

    def __init__(self, broker, config: TransferConfig = None):
        self.broker = broker
        self.config = config or TransferConfig()
        self.state = SubscriptionState.IDLE

        # Statistics
        self.files_downloaded = 0
        self.total_bytes = 0

    def destination_for(self, name: str) -> Path:
        return Path(self.config.output_dir) / name

    async def download(self, transfer_name: str,
                       progress_callback: ProgressCallback = None) -> TransferSession:
        """
        Download a transfer.

        Args:
            transfer_name: The transfer name or the original file path
            progress_callback: Called with the session after each chunk

        Returns:
            The finished session (bytes received, elapsed time)

        Raises:
            StreamNotFoundError, DestinationExistsError, ReceiveTimeoutError,
            BrokerError
        """
        name = canonical_name(transfer_name)
        stream = await self.broker.stream_info(name)
        if not stream.subjects:
            raise BrokerError(f"Stream {name} has no subjects")

        sink = ChunkSink(self.destination_for(name))
        async with sink:
            session = TransferSession(name=name, last_sequence=stream.messages)
            logger.info(f"Retrieving {stream.messages} chunks from stream {name}")
            if session.is_complete:
                self.state = SubscriptionState.COMPLETE
            else:
                await self._receive(stream, sink, session, progress_callback)

        session.finish()
        self.files_downloaded += 1
        self.total_bytes += session.bytes_transferred
        logger.info(f"Completed retrieval of {session.summary()}")
        return session

    async def _subscribe(self, stream: StreamState, start_sequence: int):
        sub = await self.broker.subscribe(stream.name, stream.subject, start_sequence)
        self.state = SubscriptionState.SUBSCRIBED
        logger.debug(f"Subscribed to {stream.subject} at sequence {start_sequence}")
        return sub

    async def _receive(self, stream: StreamState, sink: ChunkSink,
                       session: TransferSession,
                       progress_callback: Optional[ProgressCallback]):
        """Consume chunks until the completion target is reached."""
        sub = await self._subscribe(stream, session.expected_sequence)
        timeout = self.config.first_timeout
        try:
            while not session.is_complete:
                try:
                    msg = await sub.next_message(timeout)
                except ReceiveTimeoutError as e:
                    raise ReceiveTimeoutError(
                        f"Timed out waiting for chunk {session.expected_sequence} "
                        f"of {session.last_sequence}"
                    ) from e
                timeout = self.config.next_timeout

                if msg.sequence != session.expected_sequence:
                    self.state = SubscriptionState.GAP_DETECTED
                    logger.warning(
                        f"Missed chunk sequence, expected {session.expected_sequence} "
                        f"but got {msg.sequence}, resetting"
                    )
                    await sub.unsubscribe()
                    self.state = SubscriptionState.RESUBSCRIBING
                    sub = await self._subscribe(stream, session.expected_sequence)
                    session.resubscriptions += 1
                    continue

                await sink.write(msg.data)
                session.record_chunk(len(msg.data))
                session.expected_sequence += 1
                if progress_callback:
                    progress_callback(session)
        finally:
            await sub.unsubscribe()

        self.state = SubscriptionState.COMPLETE

    def get_stats(self) -> dict:
        """Get downloader statistics."""
        return {
            'files_downloaded': self.files_downloaded,
            'total_bytes': self.total_bytes,
        }


async def download(broker, transfer_name: str, config: TransferConfig = None,
                   progress_callback: ProgressCallback = None) -> TransferSession:
    """Download transfer_name using a one-off FileDownloader."""
    return await FileDownloader(broker, config).download(transfer_name, progress_callback)
