"""
Load prompt templates from the bundled prompts.yaml file.

Prompts are defined in src/nanobanana/prompts.yaml and loaded once per process.
"""

import importlib.resources
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from nanobanana.utils.exceptions import ConfigurationError

# Module-level cache for parsed prompts
_prompts_data: dict[str, Any] | None = None

SYSTEM_INSTRUCTION_PLACEHOLDERS = ("{style}", "{prompt}", "{consistency}")


class EditPrompt(BaseModel):
    """Schema for the edit prompt section."""

    system_instruction: str = Field(
        ..., min_length=1, description="System instruction template for image edits"
    )


class PromptsSchema(BaseModel):
    """Schema for prompts.yaml configuration file."""

    model_config = {"extra": "allow"}

    edit: EditPrompt


def _load_prompts() -> dict[str, Any]:
    """Load and parse prompts.yaml from the package. Cached after first call.

    Raises:
        ConfigurationError: If YAML is missing, malformed, or fails validation.
    """
    global _prompts_data
    if _prompts_data is not None:
        return _prompts_data

    try:
        with (
            importlib.resources.files("nanobanana")
            .joinpath("prompts.yaml")
            .open(encoding="utf-8") as f
        ):
            raw = f.read()
    except FileNotFoundError as e:
        raise ConfigurationError(
            "prompts.yaml not found. This file is required and should be bundled with the package."
        ) from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse prompts.yaml: {e}. Check YAML syntax and formatting."
        ) from e

    if data is None:
        raise ConfigurationError("prompts.yaml is empty. Expected configuration with 'edit' section.")

    try:
        PromptsSchema(**data)
    except ValidationError as e:
        errors = "\n".join([f"  - {'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()])
        raise ConfigurationError(
            f"Invalid prompts.yaml structure:\n{errors}\n"
            "Expected 'edit' section with 'system_instruction' key."
        ) from e

    _prompts_data = data
    return _prompts_data


def get_prompt(key: str, subkey: str | None = None) -> str | None:
    """
    Get a prompt string from prompts.yaml.

    Args:
        key: Top-level key (e.g. "edit").
        subkey: Optional subkey (e.g. "system_instruction") for nested value.

    Returns:
        The prompt string, or None if not found.
    """
    data = _load_prompts()
    value = data.get(key)
    if value is None:
        return None
    if subkey is not None:
        value = value.get(subkey) if isinstance(value, dict) else None
    return value if isinstance(value, str) else None


def get_system_instruction_template() -> str:
    """
    Return the edit system instruction template.

    Raises:
        ConfigurationError: If the template is missing or lacks a placeholder.
    """
    template = get_prompt("edit", "system_instruction")
    if not template:
        raise ConfigurationError(
            "edit.system_instruction not found in prompts.yaml. This key is required."
        )
    missing = [p for p in SYSTEM_INSTRUCTION_PLACEHOLDERS if p not in template]
    if missing:
        raise ConfigurationError(
            f"edit.system_instruction must contain placeholders: {', '.join(missing)}."
        )
    return template
