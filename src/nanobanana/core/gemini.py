"""
Gemini image edit client.

Handles HTTP communication with the Gemini generateContent endpoint: payload
construction, a single POST per call, status-code mapping, and extraction of
the inline image from the response. Retries live in core.image_gen.
"""

import json
import time
from typing import Any, Protocol

import requests

from nanobanana.core.config import Config
from nanobanana.core.ingest import UploadedImage
from nanobanana.logging_config import get_logger, redact_image_data
from nanobanana.utils.exceptions import APIError, NetworkError, RequestTimeoutError

logger = get_logger(__name__)

RESPONSE_MODALITIES = ["TEXT", "IMAGE"]


class ImageEditClient(Protocol):
    """Protocol for image edit backends.

    Implementations perform exactly one request per call and return the parsed
    JSON response. May raise APIError, NetworkError or RequestTimeoutError.
    """

    def generate_content(self, payload: dict[str, Any], *, config: Config) -> dict[str, Any]:
        ...


def build_payload(prompt: str, image: UploadedImage, system_instruction: str) -> dict[str, Any]:
    """Build the generateContent request body for an image edit."""
    return {
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"text": prompt},
                    {"inlineData": {"mimeType": image.mime_type, "data": image.data}},
                ],
            }
        ],
        "generationConfig": {"responseModalities": list(RESPONSE_MODALITIES)},
        "systemInstruction": {"parts": [{"text": system_instruction}]},
    }


def extract_inline_image(result: Any) -> tuple[str | None, str] | None:
    """
    Find the first inline image in a generateContent response.

    Looks at candidates[0].content.parts[*] for inlineData (or inline_data)
    with a non-empty data field.

    Returns:
        (mime_type or None, base64 data), or None when the response carries no image
    """
    if not isinstance(result, dict):
        return None
    candidates = result.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0]
    content = first.get("content") if isinstance(first, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return None
    for part in parts:
        if not isinstance(part, dict):
            continue
        inline = part.get("inlineData") or part.get("inline_data")
        if isinstance(inline, dict) and inline.get("data"):
            mime_type = inline.get("mimeType") or inline.get("mime_type")
            return mime_type, inline["data"]
    return None


def describe_missing_image(result: Any) -> str:
    """Explain why a successful response carried no image (finish/block reason when present)."""
    reason = ""
    if isinstance(result, dict):
        feedback = result.get("promptFeedback")
        if isinstance(feedback, dict) and feedback.get("blockReason"):
            reason = str(feedback["blockReason"])
        candidates = result.get("candidates")
        if not reason and isinstance(candidates, list) and candidates:
            first = candidates[0]
            if isinstance(first, dict) and first.get("finishReason"):
                reason = str(first["finishReason"])
    message = "Image data not found in response. Generation may have been blocked."
    return f"{message} (reason: {reason})" if reason else message


class GeminiClient:
    """Image edit client for the Gemini generateContent REST endpoint."""

    def endpoint_url(self, config: Config) -> str:
        return f"{config.gemini_base_url}/models/{config.image_model}:generateContent"

    def _raise_for_status(self, response: requests.Response, model: str) -> None:
        """Map non-200 status codes to APIError with a user-facing message."""
        status = response.status_code
        if status == 200:
            return
        if status == 400:
            raise APIError(
                f"The image API rejected the request (400): {response.text[:500]}",
                status_code=400,
                response=response.text,
            )
        if status in (401, 403):
            raise APIError(
                "Authentication failed. Please check your Gemini API key.",
                status_code=status,
                response=response.text,
            )
        if status == 404:
            raise APIError(
                f"Model not found or endpoint unavailable: {model}",
                status_code=404,
                response=response.text,
            )
        if status == 429:
            raise APIError(
                "Rate limit exceeded. Please wait before making more requests.",
                status_code=429,
                response=response.text,
            )
        if status >= 500:
            raise APIError(
                f"Gemini service error: {status}",
                status_code=status,
                response=response.text,
            )
        raise APIError(
            f"API returned status {status}",
            status_code=status,
            response=response.text,
        )

    def _post(
        self, url: str, headers: dict[str, str], payload: dict[str, Any], config: Config
    ) -> requests.Response:
        """POST payload, translating requests exceptions into library errors."""
        timeout = config.generation_timeout
        try:
            return requests.post(url, headers=headers, json=payload, timeout=timeout)
        except requests.exceptions.Timeout as e:
            raise RequestTimeoutError(
                f"Request timed out after {timeout} seconds. "
                "The edit may be taking longer than expected."
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise NetworkError(
                "Failed to connect to the Gemini API. Please check your internet connection.",
                original_error=e,
            ) from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(
                f"Network error during API request: {str(e)}", original_error=e
            ) from e

    def generate_content(self, payload: dict[str, Any], *, config: Config) -> dict[str, Any]:
        """Send one generateContent request and return the parsed JSON body."""
        url = self.endpoint_url(config)
        headers = {
            "x-goog-api-key": config.gemini_api_key,
            "Content-Type": "application/json",
        }
        logger.debug(
            "API request url=%s model=%s timeout=%s",
            url,
            config.image_model,
            config.generation_timeout,
        )
        if config.debug_api:
            logger.info(
                "API request payload (image data truncated): %s",
                json.dumps(redact_image_data(payload), indent=2, default=str),
            )

        start_time = time.time()
        response = self._post(url, headers, payload, config)
        elapsed = time.time() - start_time
        logger.debug(
            "API response status=%s content_type=%s time=%.2fs",
            response.status_code,
            response.headers.get("content-type", ""),
            elapsed,
        )

        self._raise_for_status(response, config.image_model)

        try:
            result = response.json()
        except ValueError as e:
            raise APIError(
                f"Failed to parse API response as JSON: {str(e)}",
                status_code=response.status_code,
                response=response.text,
            ) from e

        if config.debug_api:
            logger.info(
                "API response (image data truncated): %s",
                json.dumps(redact_image_data(result), indent=2, default=str),
            )
        if not isinstance(result, dict):
            raise APIError(
                "Unexpected API response shape (expected a JSON object).",
                status_code=response.status_code,
                response=response.text,
            )
        return result
