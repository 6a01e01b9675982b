"""
Click command definitions for the nanobanana CLI.

This module contains the Click command group and all CLI commands
(edit, history, ui).
"""

import json
import os
import time
from pathlib import Path

import click

from nanobanana import (
    STYLES,
    Config,
    GenerationResult,
    HistoryItem,
    HistoryStore,
    JsonFileStorage,
    PersistenceError,
    __version__,
    generate_edit,
    ingest,
)
from nanobanana.cli import progress
from nanobanana.cli.handlers import run_with_error_handling
from nanobanana.cli.utils import default_output_path
from nanobanana.core.history import next_history_id
from nanobanana.core.image_gen import DEFAULT_CONSISTENCY, DEFAULT_STYLE, validate_edit_request
from nanobanana.logging_config import configure_logging, get_verbosity_from_env


def _history_store(config: Config) -> HistoryStore:
    return HistoryStore(JsonFileStorage(config.storage_path), limit=config.history_limit)


@click.group(
    help=f"""NanoBananaPi: AI photo editing, banana-style (Gemini image models).

\b
Version: {__version__}
"""
)
@click.version_option(
    version=__version__,
    package_name="nanobanana",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(ctx: click.Context) -> None:
    ctx.color = True


@cli.command()
@click.option(
    "--image",
    "-i",
    "image_path",
    required=True,
    type=click.Path(path_type=Path),
    help="Base image to edit (JPG or PNG, max 5MB).",
)
@click.option("--prompt", "-p", required=True, help="Describe the edit (at least 5 characters).")
@click.option(
    "--style",
    "-s",
    type=click.Choice(list(STYLES), case_sensitive=False),
    default=DEFAULT_STYLE,
    show_default=True,
    help="Style preset.",
)
@click.option(
    "--consistency",
    "-c",
    type=click.IntRange(0, 100, clamp=True),
    default=DEFAULT_CONSISTENCY,
    show_default=True,
    help="Fidelity to the original: 0 = creative freedom, 100 = high fidelity.",
)
@click.option("--out", "-o", type=click.Path(path_type=Path), help="Output file path.")
@click.option(
    "--api-key",
    envvar="GEMINI_API_KEY",
    help="Gemini API key (overrides GEMINI_API_KEY environment variable).",
)
@click.option("--no-history", is_flag=True, help="Do not add this edit to the local history.")
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Minimize progress messages; only print result path or errors.",
)
@click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help="Increase verbosity: -v also show prompts, -vv show API detail.",
)
@click.option(
    "--debug-api",
    is_flag=True,
    help="Log raw API request payload and response (image data truncated) for debugging.",
)
def edit(
    image_path: Path,
    prompt: str,
    style: str,
    consistency: int,
    out: Path | None,
    api_key: str | None,
    no_history: bool,
    quiet: bool,
    verbose_count: int,
    debug_api: bool,
) -> None:
    """Edit a photo from a text prompt and a style preset."""
    # CLI flags override NANOBANANA_VERBOSITY
    verbose_level = min(verbose_count, 2) if verbose_count > 0 else get_verbosity_from_env()
    configure_logging(verbose_level=verbose_level, quiet=quiet)

    def do_edit() -> None:
        # 1. Load and validate config
        config = Config.from_env()
        if api_key is not None:
            config.set_api_key(api_key)
        if debug_api:
            config.debug_api = True
        config.validate()

        # 2. Base image
        image = ingest(image_path, config=config)

        # 3. Request checks before any network activity
        validate_edit_request(image, prompt, style)

        # 4. Generate
        result: GenerationResult
        if not quiet:
            with progress.generation_progress(
                model=config.image_model, style=style, consistency=consistency
            ):
                result = generate_edit(image, prompt, style, consistency, config=config)
        else:
            result = generate_edit(image, prompt, style, consistency, config=config)

        # 5. Save
        out_path = out
        if out_path is None:
            out_path = Path(default_output_path(result.format))
        out_path.write_bytes(result.image_data)

        # 6. History
        history_saved = False
        if not no_history:
            store = _history_store(config)
            item = HistoryItem(
                id=next_history_id((i.id for i in store.load()), int(time.time() * 1000)),
                prompt=prompt,
                style=style,
                result_url=result.data_url,
                base_image=image.data_url,
            )
            try:
                store.append(item)
                history_saved = True
            except PersistenceError as e:
                if quiet:
                    click.echo(f"Warning: Could not save history: {e}", err=True)
                else:
                    progress.print_warning(f"Could not save history: {e}")

        # 7. Print result
        if not quiet:
            progress.print_success_result(
                output_path=out_path,
                generation_time=result.generation_time,
                model_used=result.model_used,
                prompt_used=prompt,
                style=result.style,
                consistency=result.consistency,
                attempts=result.attempts,
                history_saved=history_saved,
            )
        # Path on stdout for scriptability
        click.echo(str(out_path))

    run_with_error_handling(do_edit, quiet=quiet)


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print the raw history as JSON on stdout.")
def history(as_json: bool) -> None:
    """List past generations, most recent first."""
    configure_logging(verbose_level=get_verbosity_from_env(), quiet=as_json)

    def do_history() -> None:
        config = Config.from_env()
        items = _history_store(config).load()
        if as_json:
            click.echo(json.dumps([item.to_dict() for item in items], indent=2))
        else:
            progress.print_history_table(items)

    run_with_error_handling(do_history, quiet=as_json)


@cli.command()
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    envvar="NANOBANANA_UI_PORT",
    help="Port for the Gradio server (default: 7860 or NANOBANANA_UI_PORT).",
)
@click.option(
    "--host",
    "host",
    type=str,
    default=None,
    envvar="NANOBANANA_UI_HOST",
    help="Host to bind (default: 127.0.0.1 or NANOBANANA_UI_HOST). Use 0.0.0.0 for LAN.",
)
@click.option(
    "--share",
    is_flag=True,
    default=None,
    envvar="NANOBANANA_UI_SHARE",
    help="Create a public share link (e.g. gradio.live).",
)
@click.option(
    "--api-key",
    envvar="GEMINI_API_KEY",
    help="Gemini API key (overrides GEMINI_API_KEY environment variable).",
)
@click.option(
    "--debug-api",
    is_flag=True,
    help="Log raw API request/response (image data truncated) when generating from the UI.",
)
def ui(
    port: int | None,
    host: str | None,
    share: bool | None,
    api_key: str | None,
    debug_api: bool,
) -> None:
    """Launch the Gradio web UI."""
    from nanobanana.ui.gradio_app import launch as launch_ui

    configure_logging(verbose_level=get_verbosity_from_env(), quiet=False)

    # The UI session reads its config from the environment
    if api_key is not None:
        os.environ["GEMINI_API_KEY"] = api_key
    if debug_api:
        os.environ["NANOBANANA_DEBUG_API"] = "1"

    # Resolve env for share: env var "1" or "true" => True
    share_val = share
    if share_val is None:
        env_share = os.environ.get("NANOBANANA_UI_SHARE", "").lower()
        share_val = env_share in ("1", "true", "yes")
    launch_ui(server_name=host, server_port=port, share=share_val)


def main() -> None:
    """Entry point for the nanobanana console script."""
    cli()


__all__ = ["cli", "main", "edit", "history", "ui"]
