"""Unit tests for prompts_loader (YAML-loaded prompt templates)."""

from unittest.mock import mock_open, patch

import pytest
import yaml

import nanobanana.core.prompts_loader as prompts_loader
from nanobanana.core.prompts_loader import (
    _load_prompts,
    get_prompt,
    get_system_instruction_template,
)
from nanobanana.utils.exceptions import ConfigurationError


@pytest.mark.unit
class TestPromptsLoader:
    def setup_method(self):
        prompts_loader._prompts_data = None

    def test_system_instruction_has_all_placeholders(self):
        template = get_system_instruction_template()
        for placeholder in ("{style}", "{prompt}", "{consistency}"):
            assert placeholder in template
        assert "NanoBananaPi" in template

    def test_template_formats(self):
        text = get_system_instruction_template().format(
            style="Pixar", prompt="add a hat", consistency=70
        )
        assert "Pixar" in text
        assert '"add a hat"' in text
        assert "70%" in text

    def test_get_prompt_unknown_key_returns_none(self):
        assert get_prompt("nonexistent_key") is None
        assert get_prompt("edit", "nonexistent_subkey") is None


@pytest.mark.unit
class TestYAMLValidation:
    """Test YAML validation with the pydantic schema."""

    def setup_method(self):
        prompts_loader._prompts_data = None

    def teardown_method(self):
        prompts_loader._prompts_data = None

    def _load_with(self, text: str):
        with patch("importlib.resources.files") as mock_files:
            mock_file = mock_open(read_data=text)
            mock_files.return_value.joinpath.return_value.open.return_value = mock_file()
            return _load_prompts()

    def test_valid_yaml_loads_successfully(self):
        data = _load_prompts()
        assert "system_instruction" in data["edit"]

    def test_malformed_yaml_raises_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            self._load_with("edit:\n  system_instruction: |\n    foo\n  bar:\nbad indentation")
        assert "Failed to parse prompts.yaml" in str(exc_info.value)

    def test_empty_yaml_raises_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            self._load_with("")
        assert "empty" in str(exc_info.value).lower()

    def test_missing_required_keys_raises_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            self._load_with(yaml.dump({"some_other_key": "value"}))
        assert "Invalid prompts.yaml structure" in str(exc_info.value)

    def test_missing_file_raises_configuration_error(self):
        with patch("importlib.resources.files") as mock_files:
            mock_files.return_value.joinpath.return_value.open.side_effect = FileNotFoundError()
            with pytest.raises(ConfigurationError) as exc_info:
                _load_prompts()
        assert "not found" in str(exc_info.value)

    def test_template_without_placeholders_rejected(self):
        self._load_with(yaml.dump({"edit": {"system_instruction": "Just edit it."}}))
        with pytest.raises(ConfigurationError) as exc_info:
            get_system_instruction_template()
        assert "{style}" in str(exc_info.value)
