# storage/dto.py
import posixpath
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

DIRECTORY_MIMETYPE = "application/x-directory"
DEFAULT_MIMETYPE = "application/octet-stream"
# GCS requires resumable chunks to be a multiple of 256 KiB.
CHUNK_GRANULARITY = 256 * 1024

_datetime_adapter = TypeAdapter(datetime)


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class ObjectMetadata(BaseModel):
    """
    A normalized metadata record for an object, independent of the raw
    GCS object resource. Directories have no size or mimetype.
    """

    path: str
    type: Literal["file", "dir"]
    dirname: str = ""
    timestamp: Optional[int] = None
    size: Optional[int] = None
    mimetype: Optional[str] = None
    visibility: Optional[Visibility] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, value: Any) -> Any:
        """Accepts the RFC 3339 strings GCS returns and converts them to epoch seconds."""
        if isinstance(value, str) and not value.isdigit():
            value = _datetime_adapter.validate_python(value)
        if isinstance(value, datetime):
            return int(value.timestamp())
        return value

    @classmethod
    def for_directory(cls, path: str, timestamp: Any = None) -> "ObjectMetadata":
        path = path.rstrip("/")
        return cls(
            path=path,
            type="dir",
            dirname=posixpath.dirname(path),
            timestamp=timestamp,
        )

    @classmethod
    def from_gcs_object(cls, item: Dict[str, Any], path: str) -> "ObjectMetadata":
        """
        Builds the record from a GCS object resource.

        :param item: The object resource as returned by the JSON API.
        :param path: The object's path with the adapter prefix already removed.
        """
        if item["name"].endswith("/"):
            return cls.for_directory(path, item.get("updated"))

        return cls(
            path=path,
            type="file",
            dirname=posixpath.dirname(path),
            timestamp=item.get("updated"),
            size=int(item.get("size", 0)),
            mimetype=item.get("contentType"),
        )


class FileContents(ObjectMetadata):
    contents: bytes


class FileStream(ObjectMetadata):
    # Any readable, seekable binary file object.
    stream: Any


class AdapterOptions(BaseModel):
    """Defaults applied to every write unless a WriteConfig overrides them."""

    model_config = ConfigDict(frozen=True)

    visibility: Optional[Visibility] = None
    mimetype: str = DEFAULT_MIMETYPE
    chunk_size: int = 8 * 1024 * 1024
    overwrite: bool = False
    cache_control: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    page_size: int = Field(1000, ge=1, le=1000)

    @field_validator("chunk_size")
    @classmethod
    def check_chunk_size(cls, value: int) -> int:
        if value <= 0 or value % CHUNK_GRANULARITY:
            raise ValueError(
                f"chunk_size must be a positive multiple of {CHUNK_GRANULARITY} bytes"
            )
        return value


class WriteConfig(BaseModel):
    """Per-call write options. Anything left as None falls back to the adapter defaults."""

    visibility: Optional[Visibility] = None
    mimetype: Optional[str] = None
    overwrite: Optional[bool] = None
    cache_control: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None

    def resolve(self, options: AdapterOptions) -> AdapterOptions:
        return options.model_copy(update=self.model_dump(exclude_none=True))
