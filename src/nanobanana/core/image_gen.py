"""
Image edit generation with bounded retry.

generate_edit() validates the request locally, builds one Gemini payload from
the base image, prompt, style and consistency, then calls the image client up
to config.max_attempts times with exponential backoff (1s, 2s, ...). The first
response carrying an inline image wins; otherwise a single
GenerationFailedError reports the last attempt's error.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

from nanobanana.core.config import Config, get_config
from nanobanana.core.gemini import (
    GeminiClient,
    ImageEditClient,
    build_payload,
    describe_missing_image,
    extract_inline_image,
)
from nanobanana.core.ingest import UploadedImage
from nanobanana.core.prompts_loader import get_system_instruction_template
from nanobanana.logging_config import get_logger, log_prompts, truncate_prompt
from nanobanana.utils.exceptions import (
    APIError,
    ContentBlockedError,
    GenerationFailedError,
    MissingImageError,
    NetworkError,
    PromptTooShortError,
    RequestTimeoutError,
    ValidationError,
)

logger = get_logger(__name__)

STYLES = ("Pixar", "Comic Art", "Animation", "Realistic", "Vintage")
DEFAULT_STYLE = "Realistic"
DEFAULT_CONSISTENCY = 70
MIN_PROMPT_LENGTH = 5
RESULT_FALLBACK_MIME = "image/png"

# Errors that count as a failed attempt and are retried
RETRYABLE_ERRORS = (APIError, NetworkError, RequestTimeoutError)


@dataclass(frozen=True)
class GenerationResult:
    """Result of a successful image edit."""

    image: UploadedImage  # the edited image, embedded inline
    attempts: int  # attempts used, including the successful one
    generation_time: float  # seconds from first request to success, waits included
    model_used: str
    prompt_used: str
    style: str
    consistency: int

    @property
    def data_url(self) -> str:
        return self.image.data_url

    @property
    def image_data(self) -> bytes:
        """Raw image bytes as returned by the API."""
        return self.image.raw_bytes

    @property
    def format(self) -> str:
        """File extension for the returned image (e.g. 'png')."""
        return self.image.extension


def clamp_consistency(value: float | int | str | None) -> int:
    """Round value to an integer and pin it to [0, 100]; unparsable values give the default."""
    try:
        number = round(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_CONSISTENCY
    return max(0, min(100, number))


def validate_edit_request(image: UploadedImage | None, prompt: str | None, style: str) -> None:
    """
    Check edit preconditions without touching the network.

    Raises:
        MissingImageError: If no base image was given
        PromptTooShortError: If the trimmed prompt is shorter than MIN_PROMPT_LENGTH
        ValidationError: If style is not one of STYLES
    """
    if image is None:
        raise MissingImageError()
    if len((prompt or "").strip()) < MIN_PROMPT_LENGTH:
        raise PromptTooShortError(min_length=MIN_PROMPT_LENGTH)
    if style not in STYLES:
        raise ValidationError(
            f"Unknown style: {style!r}. Choose one of: {', '.join(STYLES)}.",
            field="style",
        )


def build_system_instruction(style: str, prompt: str, consistency: int) -> str:
    """Render the system instruction that carries style and consistency to the model."""
    template = get_system_instruction_template()
    return template.format(style=style, prompt=prompt, consistency=consistency)


def _attempt(
    client: ImageEditClient, payload: dict, config: Config
) -> UploadedImage:
    """Run one request; raise ContentBlockedError when the response has no image."""
    result = client.generate_content(payload, config=config)
    found = extract_inline_image(result)
    if found is None:
        raise ContentBlockedError(describe_missing_image(result), status_code=200)
    mime_type, data = found
    return UploadedImage(mime_type=mime_type or RESULT_FALLBACK_MIME, data=data)


def generate_edit(
    image: UploadedImage | None,
    prompt: str,
    style: str = DEFAULT_STYLE,
    consistency: float | int = DEFAULT_CONSISTENCY,
    *,
    config: Config | None = None,
    client: ImageEditClient | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> GenerationResult:
    """
    Edit image according to prompt and style using the Gemini image model.

    Args:
        image: The base image (required)
        prompt: Free-text edit instruction; at least 5 non-whitespace characters
        style: One of STYLES
        consistency: 0-100; low favours creative freedom, high favours fidelity.
            Clamped, not rejected.
        config: Optional config; if None, uses shared config from get_config()
        client: Optional image client (defaults to GeminiClient)
        sleep: Called with the backoff delay in seconds between attempts

    Returns:
        GenerationResult holding the edited image

    Raises:
        MissingImageError, PromptTooShortError, ValidationError: Before any request
        GenerationFailedError: If every attempt failed
    """
    validate_edit_request(image, prompt, style)
    assert image is not None

    config = config or get_config()
    client = client or GeminiClient()
    consistency = clamp_consistency(consistency)

    instruction = build_system_instruction(style, prompt, consistency)
    payload = build_payload(prompt, image, instruction)

    logger.info(
        "Generating edit model=%s style=%s consistency=%d",
        config.image_model,
        style,
        consistency,
    )
    if log_prompts():
        logger.info("Prompt: %s", truncate_prompt(prompt))

    max_attempts = max(1, config.max_attempts)
    delay_ms = config.initial_retry_delay_ms
    last_error: Exception | None = None
    start_time = time.time()

    for attempt in range(1, max_attempts + 1):
        try:
            edited = _attempt(client, payload, config)
        except RETRYABLE_ERRORS as e:
            last_error = e
            if attempt == max_attempts:
                break
            logger.warning(
                "Attempt %d/%d failed: %s; retrying in %dms",
                attempt,
                max_attempts,
                e,
                delay_ms,
            )
            sleep(delay_ms / 1000)
            delay_ms *= 2
            continue

        elapsed = time.time() - start_time
        logger.info("Generated in %.1fs attempts=%d model=%s", elapsed, attempt, config.image_model)
        return GenerationResult(
            image=edited,
            attempts=attempt,
            generation_time=elapsed,
            model_used=config.image_model,
            prompt_used=prompt,
            style=style,
            consistency=consistency,
        )

    logger.error("Generation failed after %d attempts: %s", max_attempts, last_error)
    raise GenerationFailedError(
        f"Image generation failed after multiple attempts. Error: {last_error}",
        attempts=max_attempts,
        last_error=last_error,
    ) from last_error
