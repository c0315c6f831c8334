"""Custom exception classes for the upload relay."""


class UploaderException(Exception):
    """
    Base exception class for all upload relay errors.
    """
    pass


class ConfigurationError(UploaderException):
    """
    Raised at startup when a mandatory setting is missing.
    """
    pass


class ClientInputError(UploaderException):
    """
    Raised when a request carries malformed or unsafe input.
    """
    pass


class InvalidIdentifierError(ClientInputError):
    """
    Raised when an upload id, file name or folder name is empty or
    resolves to a path traversal segment.
    """
    pass


class InvalidChunkIndexError(ClientInputError):
    """
    Raised when a chunk index is not a non-negative integer.
    """
    pass


class ChunkTooLargeError(ClientInputError):
    """
    Raised when a single chunk exceeds the per-chunk size cap.
    """
    pass


class InvalidSessionError(ClientInputError):
    """
    Raised when a session registration is malformed.
    """
    pass


class StorageIOError(UploaderException):
    """
    Raised when reading or writing the local scratch area fails.
    """
    pass


class ChunksNotFoundError(StorageIOError):
    """
    Raised when no scratch area exists for an upload id.
    """
    pass


class RemoteBackendError(UploaderException):
    """
    Raised when the WebDAV backend returns a non-success status or cannot
    be reached.
    """
    pass
