"""
NATS JetStream Adapter

Design Decision: Consumer Configuration
=======================================

Options Considered:
1. Explicit acks with redelivery
   - Broker retransmits lost chunks
   - One ack round trip per 64KB chunk, ack bookkeeping on both sides

2. Replay at a controlled rate
   - No acks, but the rate has to be guessed

3. Pull consumer with fetch batches
   - Consumer paces itself, more requests

4. Push consumer, no acks, max deliver 1, flow control
   - Broker paces delivery to the consumer
   - Lost chunks are detected from stream sequence numbers

Decision: Option 4
- Downloads track the stream sequence and resubscribe from the first
  missing sequence, which replaces redelivery entirely
- Flow-controlled push consumers need idle heartbeats on the server side

Connection handling (reconnect wait, attempt budget, credentials) lives
here too; the pipelines never see a raw nats-py object.
"""

import asyncio
import logging
from typing import List, Optional

import nats
from nats.errors import Error as NatsError
from nats.errors import TimeoutError as NatsTimeoutError
from nats.js.api import AckPolicy, ConsumerConfig, DeliverPolicy, StreamConfig
from nats.js.errors import APIError, NotFoundError

from ..config import TransferConfig
from ..errors import (
    BrokerConnectionError, BrokerError, PublishError, ReceiveTimeoutError,
    StreamExistsError, StreamNotFoundError,
)
from .types import ChunkMessage, StreamState

logger = logging.getLogger(__name__)

# JetStream API error code for "stream name already in use"
STREAM_NAME_IN_USE = 10058


class JetStreamSubscription:
    """A single ordered push subscription on a stream subject."""

    def __init__(self, sub, start_sequence: int):
        self._sub = sub
        self.start_sequence = start_sequence

    async def next_message(self, timeout: float) -> ChunkMessage:
        """
        Wait for the next chunk.

        Raises:
            ReceiveTimeoutError: nothing arrived within timeout seconds
        """
        try:
            msg = await self._sub.next_msg(timeout=timeout)
        except NatsTimeoutError as e:
            raise ReceiveTimeoutError(f"No message received within {timeout}s") from e
        except NatsError as e:
            raise BrokerError(f"Error receiving message: {e}") from e

        try:
            sequence = msg.metadata.sequence.stream
        except (NatsError, ValueError, AttributeError) as e:
            raise BrokerError(f"Message has no JetStream metadata: {e}") from e
        return ChunkMessage(data=msg.data, sequence=sequence)

    async def unsubscribe(self):
        try:
            await self._sub.unsubscribe()
        except NatsError as e:
            logger.debug(f"Unsubscribe failed: {e}")


class JetStreamBroker:
    """
    JetStream operations used by uploads and downloads.

    Wraps a connected nats.aio.client.Client.
    """

    def __init__(self, nc, config: TransferConfig = None):
        self.config = config or TransferConfig()
        self._nc = nc
        self._js = nc.jetstream()

    async def stream_info(self, name: str) -> StreamState:
        """
        Look up a stream.

        Raises:
            StreamNotFoundError: no stream with that name
        """
        try:
            info = await self._js.stream_info(name)
        except NotFoundError as e:
            raise StreamNotFoundError(f"Could not find stream: {name}") from e
        except NatsError as e:
            raise BrokerError(f"Error looking up stream {name}: {e}") from e

        return StreamState(
            name=name,
            subjects=list(info.config.subjects or []),
            messages=info.state.messages,
        )

    async def create_stream(self, name: str, subjects: List[str], replicas: int = 1):
        """
        Create a stream bound to the given subjects.

        Raises:
            StreamExistsError: a stream with that name already exists
        """
        config = StreamConfig(name=name, subjects=list(subjects), num_replicas=replicas)
        try:
            await self._js.add_stream(config)
        except APIError as e:
            if e.err_code == STREAM_NAME_IN_USE:
                raise StreamExistsError(f"Stream {name!r} already exists") from e
            raise BrokerError(f"Unexpected error creating stream: {e}") from e
        except NatsError as e:
            raise BrokerError(f"Unexpected error creating stream: {e}") from e
        logger.debug(f"Created stream {name} on {subjects}")

    def new_inbox(self) -> str:
        """A fresh, unguessable subject name."""
        return self._nc.new_inbox()

    async def publish(self, subject: str, payload: bytes) -> int:
        """
        Publish a chunk and wait for the broker to store it.

        Returns:
            Stream sequence assigned to the chunk
        """
        try:
            ack = await self._js.publish(subject, payload)
        except NatsError as e:
            raise PublishError(f"Error sending chunk to JetStream: {e!r}") from e
        return ack.seq

    async def subscribe(self, stream: str, subject: str,
                        start_sequence: int) -> JetStreamSubscription:
        """Open a flow-controlled, no-ack subscription at start_sequence."""
        consumer = ConsumerConfig(
            ack_policy=AckPolicy.NONE,
            max_deliver=1,
            deliver_policy=DeliverPolicy.BY_START_SEQUENCE,
            opt_start_seq=start_sequence,
        )
        try:
            sub = await self._js.subscribe(
                subject,
                stream=stream,
                config=consumer,
                manual_ack=True,
                flow_control=True,
                idle_heartbeat=self.config.idle_heartbeat,
            )
        except NatsError as e:
            raise BrokerError(f"Error creating consumer: {e}") from e
        return JetStreamSubscription(sub, start_sequence)

    async def close(self):
        """Drain and close the connection."""
        if self._nc.is_closed:
            return
        try:
            await self._nc.drain()
        except NatsError as e:
            logger.debug(f"Drain failed: {e}")


async def connect(config: TransferConfig) -> JetStreamBroker:
    """
    Connect to the NATS servers listed in config.

    Reconnects are retried every reconnect_wait seconds, at most
    max_reconnects times; after that the connection closes and any
    pending operation fails.
    """
    total_wait = config.reconnect_wait * config.max_reconnects

    async def disconnected_cb():
        logger.warning(f"Disconnected, will attempt reconnects for {total_wait:.0f}s")

    async def reconnected_cb():
        logger.info(f"Reconnected [{_connected_url(nc)}]")

    async def closed_cb():
        last_error = nc.last_error if nc is not None else None
        logger.error(f"Connection closed: {last_error}")

    async def error_cb(e):
        logger.error(f"NATS error: {e}")

    options = dict(
        servers=config.servers,
        name=config.name,
        reconnect_time_wait=config.reconnect_wait,
        max_reconnect_attempts=config.max_reconnects,
        disconnected_cb=disconnected_cb,
        reconnected_cb=reconnected_cb,
        closed_cb=closed_cb,
        error_cb=error_cb,
    )
    if config.creds:
        options['user_credentials'] = str(config.creds)

    nc = None
    try:
        nc = await nats.connect(**options)
    except (NatsError, OSError, asyncio.TimeoutError) as e:
        raise BrokerConnectionError(
            f"Could not connect to {', '.join(config.servers)}: {e}"
        ) from e

    logger.debug(f"Connected to {_connected_url(nc)}")
    return JetStreamBroker(nc, config)


def _connected_url(nc) -> Optional[str]:
    url = nc.connected_url
    return url.geturl() if url is not None else None
