from .exceptions import (
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
    PartialOperationError,
    StorageError,
    TransportError,
)
from .gcs import GcsAdapter
from .storage.base import FilesystemAdapter
from .storage.dto import (
    AdapterOptions,
    FileContents,
    FileStream,
    ObjectMetadata,
    Visibility,
    WriteConfig,
)

__all__ = [
    "AdapterOptions",
    "FileContents",
    "FileStream",
    "FilesystemAdapter",
    "GcsAdapter",
    "ObjectAlreadyExistsError",
    "ObjectMetadata",
    "ObjectNotFoundError",
    "PartialOperationError",
    "StorageError",
    "TransportError",
    "Visibility",
    "WriteConfig",
]
