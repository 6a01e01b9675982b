"""Unit tests for the nanobanana CLI."""

import io
import json
import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner, Result
from PIL import Image

from nanobanana.cli import cli
from nanobanana.cli.handlers import map_exception_to_exit
from nanobanana.cli.utils import (
    EXIT_API_OR_NETWORK,
    EXIT_VALIDATION_OR_CONFIG,
    default_output_path,
)
from nanobanana.core.image_gen import GenerationResult
from nanobanana.core.ingest import UploadedImage
from nanobanana.utils.exceptions import (
    APIError,
    ConfigurationError,
    GenerationFailedError,
    ImageReadError,
    NetworkError,
    PersistenceError,
    ValidationError,
)


def _png_file(tmp_path: Path) -> Path:
    path = tmp_path / "base.png"
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color=(255, 200, 0)).save(buf, format="PNG")
    path.write_bytes(buf.getvalue())
    return path


def _result(style: str = "Realistic", consistency: int = 70) -> GenerationResult:
    return GenerationResult(
        image=UploadedImage("image/png", "UkVTVUxU"),
        attempts=1,
        generation_time=1.2,
        model_used="test-model",
        prompt_used="add a banana hat",
        style=style,
        consistency=consistency,
    )


def _run_edit(*args: str) -> Result:
    runner = CliRunner()
    return runner.invoke(cli, ["edit", *args])


def _storage_path() -> Path:
    return Path(os.environ["NANOBANANA_STORAGE_PATH"])


@pytest.mark.unit
class TestEditCommand:
    def test_required_options(self):
        result = _run_edit("--prompt", "add a banana hat")
        assert result.exit_code != 0
        assert "image" in result.output.lower()

    @patch("nanobanana.cli.commands.generate_edit")
    def test_success_writes_image_and_history(self, mock_generate: MagicMock, tmp_path: Path):
        mock_generate.return_value = _result("Pixar", 40)
        out_file = tmp_path / "out.png"

        result = _run_edit(
            "--image", str(_png_file(tmp_path)),
            "--prompt", "add a banana hat",
            "--style", "pixar",
            "--consistency", "40",
            "--out", str(out_file),
            "--api-key", "test-key",
        )

        assert result.exit_code == 0, result.output
        assert out_file.read_bytes() == b"RESULT"
        assert str(out_file) in result.output
        args, kwargs = mock_generate.call_args
        assert args[1:] == ("add a banana hat", "Pixar", 40)
        assert kwargs["config"].gemini_api_key == "test-key"

        stored = json.loads(_storage_path().read_text(encoding="utf-8"))
        history = json.loads(stored["nanoBananaHistory"])
        assert len(history) == 1
        assert history[0]["style"] == "Pixar"
        assert history[0]["resultUrl"] == "data:image/png;base64,UkVTVUxU"
        assert history[0]["baseImage"].startswith("data:image/png;base64,")

    @patch("nanobanana.cli.commands.generate_edit")
    def test_no_history(self, mock_generate: MagicMock, tmp_path: Path):
        mock_generate.return_value = _result()
        result = _run_edit(
            "--image", str(_png_file(tmp_path)),
            "--prompt", "add a banana hat",
            "--out", str(tmp_path / "out.png"),
            "--api-key", "test-key",
            "--no-history",
            "--quiet",
        )
        assert result.exit_code == 0, result.output
        assert not _storage_path().exists()

    @patch("nanobanana.cli.commands.generate_edit")
    def test_consistency_clamped(self, mock_generate: MagicMock, tmp_path: Path):
        mock_generate.return_value = _result()
        result = _run_edit(
            "-i", str(_png_file(tmp_path)),
            "-p", "add a banana hat",
            "-c", "250",
            "-o", str(tmp_path / "out.png"),
            "--api-key", "test-key",
            "-q",
        )
        assert result.exit_code == 0, result.output
        assert mock_generate.call_args[0][3] == 100

    @patch("nanobanana.cli.commands.generate_edit")
    def test_missing_api_key_exit_2(self, mock_generate: MagicMock, tmp_path: Path):
        result = _run_edit("--image", str(_png_file(tmp_path)), "--prompt", "add a banana hat")
        assert result.exit_code == EXIT_VALIDATION_OR_CONFIG
        assert "API key" in result.output
        mock_generate.assert_not_called()

    @patch("nanobanana.cli.commands.generate_edit")
    def test_short_prompt_exit_2(self, mock_generate: MagicMock, tmp_path: Path):
        result = _run_edit(
            "--image", str(_png_file(tmp_path)), "--prompt", "hat", "--api-key", "test-key"
        )
        assert result.exit_code == EXIT_VALIDATION_OR_CONFIG
        assert "too short" in result.output
        mock_generate.assert_not_called()

    @patch("nanobanana.cli.commands.generate_edit")
    def test_missing_image_file_exit_2(self, mock_generate: MagicMock, tmp_path: Path):
        result = _run_edit(
            "--image", str(tmp_path / "nope.png"),
            "--prompt", "add a banana hat",
            "--api-key", "test-key",
        )
        assert result.exit_code == EXIT_VALIDATION_OR_CONFIG
        mock_generate.assert_not_called()

    @patch("nanobanana.cli.commands.generate_edit")
    def test_generation_failure_exit_1(self, mock_generate: MagicMock, tmp_path: Path):
        mock_generate.side_effect = GenerationFailedError(
            "Image generation failed after multiple attempts. Error: boom", attempts=3
        )
        result = _run_edit(
            "--image", str(_png_file(tmp_path)),
            "--prompt", "add a banana hat",
            "--api-key", "test-key",
            "--quiet",
        )
        assert result.exit_code == EXIT_API_OR_NETWORK
        assert "failed after multiple attempts" in result.output

    def test_unknown_style_is_usage_error(self, tmp_path: Path):
        result = _run_edit(
            "--image", str(_png_file(tmp_path)), "--prompt", "add a hat", "--style", "Cubist"
        )
        assert result.exit_code == 2
        assert "Cubist" in result.output


@pytest.mark.unit
class TestHistoryCommand:
    @patch("nanobanana.cli.commands.generate_edit")
    def test_json_lists_saved_edits(self, mock_generate: MagicMock, tmp_path: Path):
        mock_generate.return_value = _result()
        _run_edit(
            "--image", str(_png_file(tmp_path)),
            "--prompt", "add a banana hat",
            "--out", str(tmp_path / "out.png"),
            "--api-key", "test-key",
            "--quiet",
        )
        result = CliRunner().invoke(cli, ["history", "--json"])
        assert result.exit_code == 0, result.output
        items = json.loads(result.stdout)
        assert [i["prompt"] for i in items] == ["add a banana hat"]

    def test_empty_history_table(self):
        result = CliRunner().invoke(cli, ["history"])
        assert result.exit_code == 0


@pytest.mark.unit
class TestCliHelpers:
    @pytest.mark.parametrize(
        "exc,code",
        [
            (ValidationError("bad", field="prompt"), EXIT_VALIDATION_OR_CONFIG),
            (ConfigurationError("no key"), EXIT_VALIDATION_OR_CONFIG),
            (ImageReadError("unreadable"), EXIT_VALIDATION_OR_CONFIG),
            (GenerationFailedError("failed"), EXIT_API_OR_NETWORK),
            (APIError("rate limited"), EXIT_API_OR_NETWORK),
            (NetworkError("offline"), EXIT_API_OR_NETWORK),
            (PersistenceError("disk"), EXIT_API_OR_NETWORK),
            (RuntimeError("surprise"), EXIT_API_OR_NETWORK),
        ],
    )
    def test_map_exception_to_exit(self, exc, code):
        assert map_exception_to_exit(exc)[0] == code

    def test_validation_message_includes_field(self):
        _, msg = map_exception_to_exit(ValidationError("bad", field="prompt"))
        assert msg == "bad (field: prompt)"

    def test_default_output_path(self):
        path = default_output_path("jpg")
        assert path.startswith("nanobanana_")
        assert path.endswith(".jpg")
        assert default_output_path("").endswith(".png")

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "nanobanana" in result.output.lower() or "cli" in result.output.lower()
