"""
Broker Module - NATS JetStream Access

The transfer pipelines talk to the broker only through the operations
exposed here, so tests can substitute an in-memory broker.
"""

from .types import StreamState, ChunkMessage
from .jetstream import JetStreamBroker, JetStreamSubscription, connect

__all__ = [
    'StreamState',
    'ChunkMessage',
    'JetStreamBroker',
    'JetStreamSubscription',
    'connect',
]
