# tests/conftest.py
import pytest
from unittest.mock import MagicMock

from googleapiclient.errors import HttpError

from gcs_adapter.config import Settings, get_settings
from gcs_adapter.gcs import GcsAdapter
from gcs_adapter.storage.dto import AdapterOptions


@pytest.fixture
def mock_settings():
    """
    Provides a mock of the application settings for testing.
    This avoids the need for environment variables during tests.
    """
    settings = MagicMock(spec=Settings)
    settings.GCS_BUCKET = "test-bucket"
    settings.GCS_PATH_PREFIX = "prefix"
    settings.GCS_CREDENTIALS_JSON = '{"type": "service_account"}'
    settings.GCS_TOKEN_JSON = None
    settings.GCS_DEFAULT_VISIBILITY = None
    settings.GCS_CHUNK_SIZE = 256 * 1024
    settings.GCS_WRITE_OVERWRITE = False
    settings.GCS_LIST_PAGE_SIZE = 1000
    settings.LOG_LEVEL = "INFO"
    settings.LOG_FILE = None
    settings.adapter_options.return_value = AdapterOptions(chunk_size=256 * 1024)
    return settings


@pytest.fixture(autouse=True)
def patch_settings_class(monkeypatch, mock_settings):
    """
    Replaces the `Settings` class constructor so that any code calling
    `get_settings()` during a test receives `mock_settings`.
    """
    # get_settings might have cached a real instance during test collection.
    get_settings.cache_clear()
    monkeypatch.setattr("gcs_adapter.config.Settings", lambda *args, **kwargs: mock_settings)
    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_service():
    """A stand-in for the `storage/v1` service resource."""
    return MagicMock()


@pytest.fixture
def objects(mock_service):
    """The `objects()` collection of the mock service, without recording a call."""
    return mock_service.objects.return_value


@pytest.fixture
def adapter(mock_service):
    return GcsAdapter(mock_service, "test-bucket", prefix="prefix")


@pytest.fixture
def http_error():
    """Factory for HttpError instances with a given status."""

    def _make(status: int) -> HttpError:
        return HttpError(
            resp=MagicMock(status=status),
            content=b'{"error": {"message": "API error"}}',
        )

    return _make


@pytest.fixture
def make_object():
    """Factory for GCS object resources as returned by the JSON API."""

    def _make(
        name,
        size=5,
        content_type="text/plain",
        updated="2024-01-02T03:04:05.000Z",
        generation="1",
        acl=None,
    ):
        item = {
            "kind": "storage#object",
            "bucket": "test-bucket",
            "name": name,
            "size": str(size),
            "contentType": content_type,
            "updated": updated,
            "generation": generation,
        }
        if acl is not None:
            item["acl"] = acl
        return item

    return _make


@pytest.fixture
def downloader_writing():
    """
    Returns a replacement for MediaIoBaseDownload that writes the given
    content into the target file object in a single chunk.
    """

    def _factory(content: bytes):
        def _downloader(fh, request, chunksize=None):
            downloader = MagicMock()

            def next_chunk():
                fh.write(content)
                return MagicMock(), True

            downloader.next_chunk.side_effect = next_chunk
            return downloader

        return _downloader

    return _factory
