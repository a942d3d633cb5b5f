# exceptions.py


class StorageError(Exception):
    """Base class for every error raised by the adapter."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class ObjectNotFoundError(StorageError):
    """The target object does not exist in the bucket."""
    pass


class ObjectAlreadyExistsError(StorageError):
    """An object already exists where a create-only write was requested."""
    pass


class TransportError(StorageError):
    """
    A network or API level failure reported by the storage client.
    The adapter never retries; `transient` tells the caller whether a retry
    might succeed (e.g., a timeout or a 503).
    """

    TRANSIENT_STATUSES = (408, 429, 500, 502, 503, 504)

    def __init__(self, message: str, path: str | None = None, status: int | None = None):
        super().__init__(message, path)
        self.status = status

    @property
    def transient(self) -> bool:
        # No status means the request never got an HTTP response (socket level).
        return self.status is None or self.status in self.TRANSIENT_STATUSES


class PartialOperationError(StorageError):
    """
    A multi-step operation failed after some of its steps had completed.
    For a rename this means the copy exists at `destination` while the
    source is still present.
    """

    def __init__(
        self,
        message: str,
        source: str,
        destination: str,
        completed: list[str],
        failed: str,
    ):
        super().__init__(message, source)
        self.source = source
        self.destination = destination
        self.completed = completed
        self.failed = failed
