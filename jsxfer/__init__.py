"""
jsxfer - File Transfer over NATS JetStream

Moves a single file through a JetStream stream as a sequence of 64KB chunks,
using the stream itself as durable storage.
"""

__version__ = '0.1.0'
