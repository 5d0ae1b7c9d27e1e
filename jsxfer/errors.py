"""Exception hierarchy for transfers.

Every failure in a transfer is fatal to that transfer. Pipelines raise
these; only the command line turns them into an exit status.
"""


class TransferError(Exception):
    """
    Base exception class for all transfer errors.
    """
    pass


class SourceFileError(TransferError):
    """
    Raised when the file to upload cannot be opened or read.
    """
    pass


class DestinationExistsError(TransferError):
    """
    Raised when a download would overwrite an existing local file.
    """
    pass


class DestinationFileError(TransferError):
    """
    Raised when the download destination cannot be created or written.
    """
    pass


class StreamExistsError(TransferError):
    """
    Raised when uploading to a transfer name whose stream already exists.
    """
    pass


class StreamNotFoundError(TransferError):
    """
    Raised when downloading a transfer name that has no stream.
    """
    pass


class PublishError(TransferError):
    """
    Raised when the broker rejects or fails to acknowledge a chunk.
    """
    pass


class ReceiveTimeoutError(TransferError):
    """
    Raised when no chunk arrives within the receive timeout.
    """
    pass


class BrokerError(TransferError):
    """
    Raised for any other failure reported by the broker.
    """
    pass


class BrokerConnectionError(BrokerError):
    """
    Raised when the broker cannot be reached.
    """
    pass
