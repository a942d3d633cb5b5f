# main.py
import logging
from typing import Optional

from .config import Settings, get_settings
from .gcs import GcsAdapter
from .gcs_auth import build_storage_service


def setup_logging(settings: Optional[Settings] = None):
    """Configures logging to console and, when LOG_FILE is set, to a file."""
    settings = settings or get_settings()
    log_level_name = settings.LOG_LEVEL.upper()

    # Get the root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_name)

    # Clear any existing handlers to prevent duplicate logs on re-runs or implicit configs
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Add StreamHandler (for console output)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if settings.LOG_FILE:
        try:
            file_handler = logging.FileHandler(settings.LOG_FILE)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except IOError as e:
            # Log to console if file logging fails (e.g., permissions)
            root_logger.error(f"Failed to set up file logging to {settings.LOG_FILE}: {e}")

    # Reducing "noise" from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)
    logging.getLogger("google_auth_httplib2").setLevel(logging.WARNING)


def create_adapter(settings: Optional[Settings] = None) -> GcsAdapter:
    """
    Builds the storage service from settings and returns an adapter scoped
    to the configured bucket and prefix.
    """
    settings = settings or get_settings()
    try:
        service = build_storage_service(
            credentials_json=settings.GCS_CREDENTIALS_JSON,
            token_json=settings.GCS_TOKEN_JSON,
        )
    except Exception as e:
        logging.error(
            f"Could not establish a connection to Google Cloud Storage. Error: {e}",
            exc_info=True,
        )
        raise

    adapter = GcsAdapter(
        service,
        bucket=settings.GCS_BUCKET,
        prefix=settings.GCS_PATH_PREFIX,
        options=settings.adapter_options(),
    )
    logging.info(f"Using Google Cloud Storage bucket '{settings.GCS_BUCKET}'.")
    return adapter
