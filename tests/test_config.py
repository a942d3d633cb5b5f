# tests/test_config.py
import pytest
from pydantic import ValidationError
from gcs_adapter.config import Settings
from gcs_adapter.storage.dto import Visibility


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Keeps real GCS_* variables and .env files out of these tests."""
    monkeypatch.chdir(tmp_path)
    for key in [
        "GCS_BUCKET",
        "GCS_PATH_PREFIX",
        "GCS_CREDENTIALS_JSON",
        "GCS_TOKEN_JSON",
        "GCS_DEFAULT_VISIBILITY",
        "GCS_CHUNK_SIZE",
        "GCS_WRITE_OVERWRITE",
        "GCS_LIST_PAGE_SIZE",
        "GCS_DEFAULT_MIMETYPE",
        "GCS_CACHE_CONTROL",
        "LOG_LEVEL",
        "LOG_FILE",
    ]:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def base_settings_data():
    """Provides a base dictionary for valid settings."""
    return {
        "GCS_BUCKET": "test-bucket",
        "GCS_CREDENTIALS_JSON": '{"type": "service_account"}',
    }


def test_settings_valid_config_succeeds(base_settings_data):
    """
    Ensures that a minimal configuration passes validation and gets defaults.
    """
    try:
        settings = Settings(**base_settings_data)
    except ValidationError as e:
        pytest.fail(f"Valid configuration failed validation: {e}")

    assert settings.GCS_PATH_PREFIX is None
    assert settings.GCS_TOKEN_JSON is None
    assert settings.GCS_DEFAULT_VISIBILITY is None
    assert settings.GCS_WRITE_OVERWRITE is False
    assert settings.LOG_LEVEL == "INFO"


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("GCS_BUCKET", "env-bucket")
    monkeypatch.setenv("GCS_CREDENTIALS_JSON", "{}")
    monkeypatch.setenv("GCS_PATH_PREFIX", "media")
    monkeypatch.setenv("GCS_DEFAULT_VISIBILITY", "public")
    monkeypatch.setenv("GCS_WRITE_OVERWRITE", "true")

    settings = Settings()

    assert settings.GCS_BUCKET == "env-bucket"
    assert settings.GCS_PATH_PREFIX == "media"
    assert settings.GCS_DEFAULT_VISIBILITY is Visibility.PUBLIC
    assert settings.GCS_WRITE_OVERWRITE is True


def test_settings_missing_bucket_raises_error(base_settings_data):
    data = base_settings_data.copy()
    data.pop("GCS_BUCKET")

    with pytest.raises(ValidationError):
        Settings(**data)


def test_settings_blank_bucket_raises_error(base_settings_data):
    data = dict(base_settings_data, GCS_BUCKET="   ")

    with pytest.raises(ValueError, match="GCS_BUCKET is required"):
        Settings(**data)


@pytest.mark.parametrize("chunk_size", [0, 1000, 256 * 1024 + 1])
def test_settings_invalid_chunk_size_raises_error(base_settings_data, chunk_size):
    data = dict(base_settings_data, GCS_CHUNK_SIZE=chunk_size)

    with pytest.raises(ValueError, match="GCS_CHUNK_SIZE"):
        Settings(**data)


def test_settings_invalid_page_size_raises_error(base_settings_data):
    data = dict(base_settings_data, GCS_LIST_PAGE_SIZE=0)

    with pytest.raises(ValueError, match="GCS_LIST_PAGE_SIZE"):
        Settings(**data)


def test_settings_invalid_visibility_raises_error(base_settings_data):
    data = dict(base_settings_data, GCS_DEFAULT_VISIBILITY="everyone")

    with pytest.raises(ValidationError):
        Settings(**data)


def test_adapter_options_from_settings(base_settings_data):
    data = dict(
        base_settings_data,
        GCS_DEFAULT_VISIBILITY="private",
        GCS_DEFAULT_MIMETYPE="text/plain",
        GCS_CHUNK_SIZE=512 * 1024,
        GCS_WRITE_OVERWRITE=True,
        GCS_CACHE_CONTROL="public, max-age=60",
        GCS_LIST_PAGE_SIZE=100,
    )

    options = Settings(**data).adapter_options()

    assert options.visibility is Visibility.PRIVATE
    assert options.mimetype == "text/plain"
    assert options.chunk_size == 512 * 1024
    assert options.overwrite is True
    assert options.cache_control == "public, max-age=60"
    assert options.page_size == 100
