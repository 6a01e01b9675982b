"""
Command-line interface for nanobanana.

This package contains CLI implementations using Click.
Uses only the public API: from nanobanana import ...
"""

from nanobanana.cli.commands import cli, main

__all__ = ["cli", "main"]
