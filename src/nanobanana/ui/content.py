"""
Static page copy for the web UI, loaded from the bundled ui_content.yaml.

Parsed and validated once per process.
"""

import importlib.resources

import yaml
from pydantic import BaseModel, Field, ValidationError

from nanobanana.utils.exceptions import ConfigurationError


class Brand(BaseModel):
    name: str = Field(..., min_length=1)
    tagline: str = ""


class NavItem(BaseModel):
    name: str
    anchor: str


class Hero(BaseModel):
    title: str
    highlight: str = ""
    subtitle: str = ""
    cta: str = "Start Editing"


class GalleryExample(BaseModel):
    before: str
    after: str


class Testimonial(BaseModel):
    quote: str
    author: str


class Newsletter(BaseModel):
    title: str
    text: str = ""


class UIContent(BaseModel):
    """Schema for ui_content.yaml."""

    brand: Brand
    nav: list[NavItem] = Field(default_factory=list)
    hero: Hero
    gallery: list[GalleryExample] = Field(default_factory=list)
    testimonials: list[Testimonial] = Field(default_factory=list)
    newsletter: Newsletter | None = None
    disclaimer: str = ""


_content: UIContent | None = None


def load_ui_content() -> UIContent:
    """Return the parsed page copy. Cached after first call.

    Raises:
        ConfigurationError: If the file is missing, malformed, or fails validation.
    """
    global _content
    if _content is not None:
        return _content

    try:
        with (
            importlib.resources.files("nanobanana")
            .joinpath("ui_content.yaml")
            .open(encoding="utf-8") as f
        ):
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(
            "ui_content.yaml not found. It should be bundled with the package."
        ) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse ui_content.yaml: {e}") from e

    try:
        _content = UIContent(**(data or {}))
    except (ValidationError, TypeError) as e:
        raise ConfigurationError(f"Invalid ui_content.yaml structure: {e}") from e
    return _content
