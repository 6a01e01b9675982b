"""
nanobanana - AI photo editing, banana-style

Upload a photo, describe the edit in words, pick a style, and a Gemini image
model returns the edited picture. Successful edits are kept in a small local
history (the ten most recent).

Library usage:
- ingest() turns a JPEG/PNG (path, bytes or data URL, at most 5 MB) into an UploadedImage.
- generate_edit() sends one edit request with bounded retry and returns a GenerationResult.
- EditorSession wires ingestion, generation, notifications and history together
  behind observable state; the Gradio UI renders it.
- Configuration can be passed per call (config=...) or shared via get_config() / set_config().
- Logging: set_verbosity(0|1|2) or configure_logging(verbose_level, quiet);
  NANOBANANA_VERBOSITY env (0/1/2) is read when the CLI or UI starts.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("nanobanana")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source in development)
    __version__ = "0.0.0.dev"

__author__ = "codeprimate"

from nanobanana.core.config import (
    DEFAULT_GEMINI_BASE_URL,
    DEFAULT_IMAGE_MODEL,
    Config,
    get_config,
    set_config,
)
from nanobanana.core.editor import EditorSession, EditorState
from nanobanana.core.history import (
    HistoryItem,
    HistoryStore,
    JsonFileStorage,
    MemoryStorage,
)
from nanobanana.core.image_gen import (
    STYLES,
    GenerationResult,
    clamp_consistency,
    generate_edit,
)
from nanobanana.core.ingest import UploadedImage, ingest
from nanobanana.core.notifications import Notification, NotificationChannel
from nanobanana.logging_config import configure_logging, set_verbosity
from nanobanana.utils.exceptions import (
    APIError,
    ConfigurationError,
    ContentBlockedError,
    GenerationFailedError,
    GenerationInProgressError,
    ImageProcessingError,
    ImageReadError,
    MissingImageError,
    NanoBananaError,
    NetworkError,
    PersistenceError,
    PromptTooShortError,
    RequestTimeoutError,
    SizeLimitExceededError,
    ValidationError,
)

__all__ = [
    "APIError",
    "Config",
    "ConfigurationError",
    "ContentBlockedError",
    "DEFAULT_GEMINI_BASE_URL",
    "DEFAULT_IMAGE_MODEL",
    "EditorSession",
    "EditorState",
    "GenerationFailedError",
    "GenerationInProgressError",
    "GenerationResult",
    "HistoryItem",
    "HistoryStore",
    "ImageProcessingError",
    "ImageReadError",
    "JsonFileStorage",
    "MemoryStorage",
    "MissingImageError",
    "NanoBananaError",
    "NetworkError",
    "Notification",
    "NotificationChannel",
    "PersistenceError",
    "PromptTooShortError",
    "RequestTimeoutError",
    "STYLES",
    "SizeLimitExceededError",
    "UploadedImage",
    "ValidationError",
    "clamp_consistency",
    "configure_logging",
    "generate_edit",
    "get_config",
    "ingest",
    "set_config",
    "set_verbosity",
]
