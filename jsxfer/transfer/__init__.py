"""
Transfer Module - File Upload/Download

Moves files into and out of JetStream streams.
"""

from .session import TransferSession, ProgressCallback
from .uploader import FileUploader, PublishWindow, upload
from .downloader import FileDownloader, SubscriptionState, download

__all__ = [
    'TransferSession',
    'ProgressCallback',
    'FileUploader',
    'PublishWindow',
    'FileDownloader',
    'SubscriptionState',
    'upload',
    'download',
]
