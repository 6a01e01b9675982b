"""
Configuration management for nanobanana.

This module handles the Gemini API key, endpoint/model selection, upload and
retry limits, and where the local history store lives.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from nanobanana.logging_config import get_logger
from nanobanana.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# Load environment variables from .env file
load_dotenv()

# Default configuration constants
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_RETRY_DELAY_MS = 1000
DEFAULT_HISTORY_LIMIT = 10
DEFAULT_NOTIFICATION_DURATION_MS = 3000
DEFAULT_STORAGE_PATH = Path.home() / ".nanobanana" / "storage.json"


def _int_env(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val.strip() == "":
        return default
    try:
        return int(val)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {val!r}.") from e


@dataclass
class Config:
    """Configuration for the nanobanana application."""

    # API Configuration (gemini_api_key excluded from repr to avoid leaking secrets)
    gemini_api_key: str = field(default="", repr=False)
    gemini_base_url: str = DEFAULT_GEMINI_BASE_URL
    image_model: str = DEFAULT_IMAGE_MODEL

    # Per-attempt request timeout (seconds)
    generation_timeout: int = 120

    # Upload limits
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES

    # Retry policy: total attempts, first backoff delay (doubles after each failure)
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    initial_retry_delay_ms: int = DEFAULT_INITIAL_RETRY_DELAY_MS

    # History / notifications
    history_limit: int = DEFAULT_HISTORY_LIMIT
    notification_duration_ms: int = DEFAULT_NOTIFICATION_DURATION_MS
    storage_path: Path = DEFAULT_STORAGE_PATH

    # Debug: log raw API payload/response with image data truncated
    debug_api: bool = False

    _validated: bool = field(default=False, repr=False)

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create a Config instance from environment variables.

        Environment variables:
            GEMINI_API_KEY: Required for image generation (GOOGLE_API_KEY is used as fallback)
            NANOBANANA_BASE_URL: Optional API base URL
            NANOBANANA_IMAGE_MODEL: Optional image model name
            NANOBANANA_TIMEOUT: Optional per-attempt timeout in seconds (default 120)
            NANOBANANA_MAX_UPLOAD_BYTES: Optional upload size limit (default 5 MiB)
            NANOBANANA_STORAGE_PATH: Optional path of the local history storage file
            NANOBANANA_DEBUG_API: "1"/"true"/"yes" to log request/response bodies

        Returns:
            Config instance populated from environment

        Raises:
            ConfigurationError: If a numeric environment variable is not an integer
        """
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or ""
        debug_api = os.getenv("NANOBANANA_DEBUG_API", "").strip().lower() in ("1", "true", "yes")
        storage_env = os.getenv("NANOBANANA_STORAGE_PATH", "").strip()

        return cls(
            gemini_api_key=api_key,
            gemini_base_url=os.getenv("NANOBANANA_BASE_URL", DEFAULT_GEMINI_BASE_URL).rstrip("/"),
            image_model=os.getenv("NANOBANANA_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            generation_timeout=_int_env("NANOBANANA_TIMEOUT", 120),
            max_upload_bytes=_int_env("NANOBANANA_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
            storage_path=Path(storage_env).expanduser() if storage_env else DEFAULT_STORAGE_PATH,
            debug_api=debug_api,
        )

    def validate(self) -> None:
        """
        Validate the configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        logger.debug("Validating config")

        if not self.gemini_api_key:
            raise ConfigurationError(
                "Gemini API key is required. "
                "Set GEMINI_API_KEY environment variable or provide it explicitly."
            )
        if not self.image_model:
            raise ConfigurationError("Image model cannot be empty.")
        if self.generation_timeout <= 0:
            raise ConfigurationError(
                f"generation_timeout must be positive, got {self.generation_timeout}."
            )
        if self.max_upload_bytes <= 0:
            raise ConfigurationError(
                f"max_upload_bytes must be positive, got {self.max_upload_bytes}."
            )
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be at least 1, got {self.max_attempts}.")
        if self.initial_retry_delay_ms < 0:
            raise ConfigurationError(
                f"initial_retry_delay_ms must not be negative, got {self.initial_retry_delay_ms}."
            )
        if self.history_limit < 1:
            raise ConfigurationError(
                f"history_limit must be at least 1, got {self.history_limit}."
            )

        self._validated = True

    def is_valid(self) -> bool:
        """Return True if validate() has been called successfully."""
        return self._validated

    def set_api_key(self, api_key: str) -> None:
        """
        Set the Gemini API key.

        Raises:
            ConfigurationError: If the key is empty
        """
        if not api_key or not api_key.strip():
            raise ConfigurationError("API key cannot be empty")

        self.gemini_api_key = api_key.strip()
        self._validated = False  # Need to revalidate

    def set_image_model(self, model: str) -> None:
        """
        Set the image model used for edits.

        Raises:
            ConfigurationError: If model is empty
        """
        if not model:
            raise ConfigurationError("Model name cannot be empty")

        self.image_model = model


# Global configuration instance
_global_config: Config | None = None


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        The global Config instance
    """
    global _global_config
    if _global_config is None:
        _global_config = Config.from_env()
    return _global_config


def set_config(config: Config) -> None:
    """
    Set the global configuration instance.

    Args:
        config: The Config instance to use globally
    """
    global _global_config
    _global_config = config
