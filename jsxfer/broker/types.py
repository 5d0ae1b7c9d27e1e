"""Broker-neutral values returned to the transfer pipelines."""

from dataclasses import dataclass, field
from typing import List


@dataclass
class StreamState:
    """What a download needs to know about a stream."""
    name: str
    subjects: List[str] = field(default_factory=list)
    messages: int = 0  # Total messages when queried

    @property
    def subject(self) -> str:
        """The single delivery subject the stream was created with."""
        return self.subjects[0]


@dataclass
class ChunkMessage:
    """A received chunk and its stream sequence number."""
    data: bytes
    sequence: int
