"""Exception types raised by the secrecy core."""


class SecrecyError(Exception):
    """Base class for all secrecy errors."""

    pass


class StorageError(SecrecyError):
    """Raised when the persistence substrate cannot be used."""

    pass


class StorageWriteError(StorageError):
    """Raised when a collection could not be written back.

    Callers get this instead of a silent drop so a failed save never looks
    like a successful one.
    """

    def __init__(self, key: str, cause: Exception | None = None) -> None:
        self.key = key
        self.cause = cause
        message = f"Could not write '{key}'"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class CorruptRecordError(StorageError):
    """Raised when a stored record exists but cannot be parsed."""

    def __init__(self, key: str, cause: Exception | None = None) -> None:
        self.key = key
        self.cause = cause
        message = f"Unreadable record '{key}'"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class CompletionError(SecrecyError):
    """Raised when the completion provider fails or returns no candidate."""

    pass


class AnalysisError(SecrecyError):
    """Raised when a competitor analysis request is invalid."""

    pass
