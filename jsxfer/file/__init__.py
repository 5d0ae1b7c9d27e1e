"""
File Module - Naming, Chunking, and Writing

Local file side of a transfer: the canonical transfer name, the chunk
reader used by uploads and the chunk writer used by downloads.
"""

from .naming import canonical_name
from .chunker import FileChunker, CHUNK_SIZE, MAX_CHUNK_SIZE
from .sink import ChunkSink

__all__ = [
    'canonical_name',
    'FileChunker',
    'CHUNK_SIZE',
    'MAX_CHUNK_SIZE',
    'ChunkSink',
]
