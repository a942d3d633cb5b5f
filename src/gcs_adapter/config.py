# config.py
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .storage.dto import CHUNK_GRANULARITY, DEFAULT_MIMETYPE, AdapterOptions, Visibility


class Settings(BaseSettings):
    """
    Centralized adapter configuration with type validation.
    Automatically reads variables from the environment and a .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Bucket Settings ---
    GCS_BUCKET: str
    GCS_PATH_PREFIX: Optional[str] = None

    # --- Credentials ---
    # Either a service account key, or an OAuth client (credentials.json)
    # used together with GCS_TOKEN_JSON.
    GCS_CREDENTIALS_JSON: str
    GCS_TOKEN_JSON: Optional[str] = None

    # --- Write Defaults ---
    GCS_DEFAULT_VISIBILITY: Optional[Visibility] = None
    GCS_DEFAULT_MIMETYPE: str = DEFAULT_MIMETYPE
    GCS_CHUNK_SIZE: int = 8 * 1024 * 1024  # 8 MB default
    GCS_WRITE_OVERWRITE: bool = False
    GCS_CACHE_CONTROL: Optional[str] = None
    GCS_LIST_PAGE_SIZE: int = 1000

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[Path] = None

    @model_validator(mode="after")
    def validate_storage_settings(self):
        if not self.GCS_BUCKET.strip():
            raise ValueError("GCS_BUCKET is required and cannot be empty.")

        if self.GCS_CHUNK_SIZE <= 0 or self.GCS_CHUNK_SIZE % CHUNK_GRANULARITY:
            raise ValueError(
                f"GCS_CHUNK_SIZE must be a positive multiple of {CHUNK_GRANULARITY} bytes."
            )

        if not 1 <= self.GCS_LIST_PAGE_SIZE <= 1000:
            raise ValueError("GCS_LIST_PAGE_SIZE must be between 1 and 1000.")

        if self.GCS_TOKEN_JSON is None:
            logging.info("GCS_TOKEN_JSON not set. Credentials will be treated as a service account key.")

        return self

    def adapter_options(self) -> AdapterOptions:
        return AdapterOptions(
            visibility=self.GCS_DEFAULT_VISIBILITY,
            mimetype=self.GCS_DEFAULT_MIMETYPE,
            chunk_size=self.GCS_CHUNK_SIZE,
            overwrite=self.GCS_WRITE_OVERWRITE,
            cache_control=self.GCS_CACHE_CONTROL,
            page_size=self.GCS_LIST_PAGE_SIZE,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the application settings.
    The first call to this function will initialize the settings.
    """
    return Settings()
