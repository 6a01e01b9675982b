"""Unit tests for image edit generation (validation, retry policy, result shape)."""

from typing import Any

import pytest

from nanobanana.core.config import Config
from nanobanana.core.image_gen import (
    STYLES,
    GenerationResult,
    build_system_instruction,
    clamp_consistency,
    generate_edit,
    validate_edit_request,
)
from nanobanana.core.ingest import UploadedImage
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

BASE = UploadedImage(mime_type="image/jpeg", data="QkFTRQ==")
IMAGE_RESPONSE = {
    "candidates": [
        {
            "content": {
                "parts": [
                    {"text": "done"},
                    {"inlineData": {"mimeType": "image/png", "data": "UkVTVUxU"}},
                ]
            }
        }
    ]
}


class FakeClient:
    """Image client that replays a script of responses / exceptions."""

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)
        self.payloads: list[dict] = []

    def generate_content(self, payload: dict, *, config: Config) -> dict:
        self.payloads.append(payload)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def config() -> Config:
    return Config(gemini_api_key="test-key")


@pytest.mark.unit
class TestHelpers:
    @pytest.mark.parametrize(
        "value,expected",
        [(70, 70), (-5, 0), (150, 100), (33.6, 34), ("42", 42), ("abc", 70), (None, 70)],
    )
    def test_clamp_consistency(self, value, expected):
        assert clamp_consistency(value) == expected

    def test_validate_missing_image(self):
        with pytest.raises(MissingImageError) as exc_info:
            validate_edit_request(None, "add a hat", "Pixar")
        assert str(exc_info.value) == "Please upload a base image first."

    @pytest.mark.parametrize("prompt", ["", "   ", "hat", "  abcd  ", None])
    def test_validate_short_prompt(self, prompt):
        with pytest.raises(PromptTooShortError) as exc_info:
            validate_edit_request(BASE, prompt, "Pixar")
        assert str(exc_info.value) == "Prompt is too short. Describe your vision!"

    def test_validate_five_chars_ok(self):
        validate_edit_request(BASE, "  abcde ", "Vintage")

    def test_validate_unknown_style(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_edit_request(BASE, "add a hat", "Cubist")
        assert exc_info.value.field == "style"

    def test_system_instruction(self):
        text = build_system_instruction("Comic Art", "add a hat", 25)
        assert "Comic Art" in text
        assert '"add a hat"' in text
        assert "25%" in text

    def test_styles(self):
        assert STYLES == ("Pixar", "Comic Art", "Animation", "Realistic", "Vintage")


@pytest.mark.unit
class TestGenerateEdit:
    def test_success_first_try(self, config: Config):
        client = FakeClient(IMAGE_RESPONSE)
        sleeps: list[float] = []

        result = generate_edit(
            BASE, "add a hat", "Pixar", 80, config=config, client=client, sleep=sleeps.append
        )

        assert isinstance(result, GenerationResult)
        assert result.image == UploadedImage("image/png", "UkVTVUxU")
        assert result.data_url == "data:image/png;base64,UkVTVUxU"
        assert result.format == "png"
        assert result.attempts == 1
        assert result.style == "Pixar"
        assert result.consistency == 80
        assert result.model_used == config.image_model
        assert sleeps == []

        payload = client.payloads[0]
        parts = payload["contents"][0]["parts"]
        assert parts[0] == {"text": "add a hat"}
        assert parts[1] == {"inlineData": {"mimeType": "image/jpeg", "data": "QkFTRQ=="}}
        instruction = payload["systemInstruction"]["parts"][0]["text"]
        assert "Pixar" in instruction and "80%" in instruction

    def test_fails_twice_then_succeeds(self, config: Config):
        client = FakeClient(
            APIError("Gemini service error: 503", status_code=503),
            NetworkError("down"),
            IMAGE_RESPONSE,
        )
        sleeps: list[float] = []

        result = generate_edit(BASE, "add a hat", config=config, client=client, sleep=sleeps.append)

        assert len(client.payloads) == 3
        assert sleeps == [1.0, 2.0]
        assert result.attempts == 3
        # Same request body on every attempt
        assert client.payloads[0] == client.payloads[1] == client.payloads[2]

    def test_all_attempts_fail(self, config: Config):
        client = FakeClient(RequestTimeoutError("Request timed out"))
        sleeps: list[float] = []

        with pytest.raises(GenerationFailedError) as exc_info:
            generate_edit(BASE, "add a hat", config=config, client=client, sleep=sleeps.append)

        assert len(client.payloads) == 3
        assert sleeps == [1.0, 2.0]
        err = exc_info.value
        assert err.attempts == 3
        assert isinstance(err.last_error, RequestTimeoutError)
        assert str(err) == (
            "Image generation failed after multiple attempts. Error: Request timed out"
        )

    def test_response_without_image_is_retried(self, config: Config):
        blocked = {"candidates": [{"content": {"parts": [{"text": "no"}]}, "finishReason": "SAFETY"}]}
        client = FakeClient(blocked)

        with pytest.raises(GenerationFailedError) as exc_info:
            generate_edit(BASE, "add a hat", config=config, client=client, sleep=lambda _s: None)

        assert len(client.payloads) == 3
        assert isinstance(exc_info.value.last_error, ContentBlockedError)
        assert "Image data not found in response" in str(exc_info.value)

    def test_missing_mime_falls_back_to_png(self, config: Config):
        response = {"candidates": [{"content": {"parts": [{"inlineData": {"data": "UkVT"}}]}}]}
        result = generate_edit(BASE, "add a hat", config=config, client=FakeClient(response))
        assert result.image.mime_type == "image/png"

    def test_configurable_attempts_and_delay(self):
        config = Config(gemini_api_key="k", max_attempts=4, initial_retry_delay_ms=250)
        client = FakeClient(APIError("boom"))
        sleeps: list[float] = []
        with pytest.raises(GenerationFailedError):
            generate_edit(BASE, "add a hat", config=config, client=client, sleep=sleeps.append)
        assert len(client.payloads) == 4
        assert sleeps == [0.25, 0.5, 1.0]

    @pytest.mark.parametrize(
        "image,prompt,exc",
        [(None, "add a hat", MissingImageError), (BASE, "hat", PromptTooShortError)],
    )
    def test_precondition_failures_make_no_request(self, config: Config, image, prompt, exc):
        client = FakeClient(IMAGE_RESPONSE)
        with pytest.raises(exc):
            generate_edit(image, prompt, config=config, client=client)
        assert client.payloads == []

    def test_consistency_clamped(self, config: Config):
        client = FakeClient(IMAGE_RESPONSE)
        result = generate_edit(BASE, "add a hat", consistency=250, config=config, client=client)
        assert result.consistency == 100
        assert "100%" in client.payloads[0]["systemInstruction"]["parts"][0]["text"]
