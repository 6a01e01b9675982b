"""
Gradio web UI for nanobanana.

Single page: header navigation, hero, the editor (upload, prompt, style,
consistency, generate, result preview, past generations), a static
before/after gallery with testimonials, and a footer. Editor behaviour lives
in core.editor.EditorSession; handlers here only forward inputs to the
session and render its state.
"""

import argparse
import html
import os
from collections.abc import Generator
from typing import Any, cast

import gradio as gr
from PIL import Image

from nanobanana import (
    STYLES,
    Config,
    ConfigurationError,
    EditorSession,
    EditorState,
    ImageProcessingError,
    NanoBananaError,
    Notification,
    UploadedImage,
    ValidationError,
    __version__,
)
from nanobanana.core.history import HistoryItem
from nanobanana.logging_config import configure_logging, get_logger, get_verbosity_from_env
from nanobanana.ui.content import UIContent, load_ui_content

logger = get_logger(__name__)

# Default server port; overridable via NANOBANANA_UI_PORT
DEFAULT_UI_PORT = 7860
DEFAULT_UI_HOST = "127.0.0.1"

PAGE_TITLE = "NanoBananaPi – AI photo editing"
GENERATE_LABEL = "Generate Magic! ✨"
LOADING_LABEL = "Bananas are brewing..."
STATUS_REFRESH_SECONDS = 0.5

# Shared queue so upload/generate/re-edit run serially against the one session
_UI_CONCURRENCY_ID = "nanobanana_ui"

_session: EditorSession | None = None


def get_session() -> EditorSession:
    """Return the process-wide editor session, creating it on first use."""
    global _session
    if _session is None:
        _session = EditorSession(config=Config.from_env())
    return _session


def set_session(session: EditorSession | None) -> None:
    """Replace the process-wide editor session (None recreates it lazily)."""
    global _session
    _session = session


def _exception_to_message(exc: BaseException) -> str:
    """Map library and known exceptions to a short user-facing message (same as CLI)."""
    if isinstance(exc, ValidationError):
        msg = exc.args[0] if exc.args else "Validation failed."
        if getattr(exc, "field", None):
            msg = f"{msg} (field: {exc.field})"
        return msg
    if isinstance(exc, ConfigurationError):
        return exc.args[0] if exc.args else "Invalid configuration."
    if isinstance(exc, ImageProcessingError):
        return exc.args[0] if exc.args else "Image processing failed."
    if isinstance(exc, NanoBananaError):
        return exc.args[0] if exc.args else "An error occurred."
    return str(exc) if exc.args else "An unexpected error occurred."


def _format_status(message: str, status_type: str = "info") -> str:
    """
    Format a toast message with color and icon.

    Args:
        message: The message text (HTML-escaped here).
        status_type: One of "info", "success", "error", "warning", "idle".

    Returns:
        HTML-formatted status string ("" for idle).
    """
    if status_type == "success":
        icon = "✅"
        color = "#16a34a"  # green-600
        bg_color = "#dcfce7"  # green-100
    elif status_type == "error":
        icon = "❌"
        color = "#dc2626"  # red-600
        bg_color = "#fee2e2"  # red-100
    elif status_type == "warning":
        icon = "⚠️"
        color = "#f59e0b"  # amber-500
        bg_color = "#fef3c7"  # amber-100
    elif status_type == "info":
        icon = "🍌"
        color = "#2563eb"  # blue-600
        bg_color = "#dbeafe"  # blue-100
    else:  # idle
        return ""

    return f"""<div style="padding: 12px 16px; border-radius: 12px; background-color: {bg_color}; border-left: 4px solid {color}; margin: 8px 0;">
    <span style="font-size: 16px; margin-right: 8px;">{icon}</span>
    <span style="color: {color}; font-weight: 500;">{html.escape(message)}</span>
</div>"""


def _status_html(notification: Notification | None) -> str:
    if notification is None:
        return ""
    return _format_status(notification.message, notification.kind)


def _to_pil(image: UploadedImage | None) -> Image.Image | None:
    if image is None:
        return None
    try:
        return image.to_pil()
    except ImageProcessingError as e:
        logger.error("Cannot display image: %s", e)
        return None


def _history_gallery(history: tuple[HistoryItem, ...]) -> list[tuple[Image.Image, str]]:
    """Gallery value for past generations: (result image, 'style · prompt')."""
    items: list[tuple[Image.Image, str]] = []
    for item in history:
        try:
            pil = UploadedImage.from_data_url(item.result_url).to_pil()
        except NanoBananaError as e:
            logger.warning("Skipping unreadable history item id=%s: %s", item.id, e)
            continue
        items.append((pil, f"{item.style} · {item.prompt}"))
    return items


def _history_label(state: EditorState) -> str:
    return f"### Past Generations ({len(state.history)})"


def _generate_button_update(state: EditorState) -> Any:
    return gr.update(
        interactive=state.can_generate,
        value=LOADING_LABEL if state.is_loading else GENERATE_LABEL,
    )


def _result_placeholder(state: EditorState) -> str:
    if state.generated_image is not None:
        return ""
    if state.uploaded_image is not None:
        return "Ready to generate. Click the button!"
    return "Upload an image to begin the magic."


# -- event handlers -----------------------------------------------------------


def _upload_handler(path: str | None) -> tuple[Any, Any, str, str, Any]:
    """
    Ingest an uploaded file.

    Returns (base image preview, result image, result hint, status html, generate button).
    On rejection the preview falls back to the previously accepted image.
    """
    session = get_session()
    if path:
        session.upload(path)
    state = session.state
    return (
        _to_pil(state.uploaded_image),
        _to_pil(state.generated_image),
        _result_placeholder(state),
        _status_html(session.notifications.current),
        _generate_button_update(state),
    )


def _clear_handler() -> tuple[str, Any]:
    """Base image removed in the browser: drop it from the session. Returns (result hint, generate button)."""
    session = get_session()
    session.clear_upload()
    state = session.state
    return _result_placeholder(state), _generate_button_update(state)


def _prompt_change_handler(text: str) -> Any:
    session = get_session()
    session.set_prompt(text or "")
    return _generate_button_update(session.state)


def _style_change_handler(style: str) -> str:
    session = get_session()
    try:
        session.set_style(style)
    except ValidationError as e:
        return _format_status(_exception_to_message(e), "error")
    return _status_html(session.notifications.current)


def _consistency_change_handler(value: float) -> None:
    get_session().set_consistency(value)


def _generate_click_handler(
    prompt: str, style: str, consistency: float
) -> Generator[tuple[Any, str, str, Any, Any, str], None, None]:
    """
    Run one edit. Yields (result image, result hint, status html, generate button,
    history gallery, history label): once with the loading state, once when done.
    """
    session = get_session()
    session.set_prompt(prompt or "")
    session.set_consistency(consistency)
    try:
        session.set_style(style)
    except ValidationError as e:
        state = session.state
        yield (
            _to_pil(state.generated_image),
            _result_placeholder(state),
            _format_status(_exception_to_message(e), "error"),
            _generate_button_update(state),
            gr.update(),
            _history_label(state),
        )
        return

    loading = session.state
    if loading.can_generate:
        yield (
            None,
            "",
            _format_status(LOADING_LABEL, "info"),
            gr.update(interactive=False, value=LOADING_LABEL),
            gr.update(),
            _history_label(loading),
        )

    status: str | None = None
    try:
        session.generate()
    except NanoBananaError as e:
        logger.exception("Generation failed unexpectedly")
        status = _format_status(_exception_to_message(e), "error")

    state = session.state
    yield (
        _to_pil(state.generated_image),
        _result_placeholder(state),
        status if status is not None else _status_html(session.notifications.current),
        _generate_button_update(state),
        _history_gallery(state.history),
        _history_label(state),
    )


def _history_select_handler(evt: gr.SelectData) -> tuple[Any, str, str, Any, str, str, Any]:
    """
    Re-edit the selected history entry.

    Returns (base image preview, prompt, style, result image, result hint,
    status html, generate button).
    """
    session = get_session()
    index = evt.index if isinstance(evt.index, int) else evt.index[0]
    item = session.history_item(index)
    if item is not None:
        try:
            session.re_edit(item)
        except ValidationError as e:
            state = session.state
            return (
                _to_pil(state.uploaded_image),
                state.prompt,
                state.style,
                _to_pil(state.generated_image),
                _result_placeholder(state),
                _format_status(_exception_to_message(e), "error"),
                _generate_button_update(state),
            )
    state = session.state
    return (
        _to_pil(state.uploaded_image),
        state.prompt,
        state.style,
        None,
        _result_placeholder(state),
        _format_status("Loaded a past edit. Tweak it and generate again!", "info"),
        _generate_button_update(state),
    )


def _status_tick_handler() -> str:
    return _status_html(get_session().notifications.current)


def _initial_view() -> tuple[Any, Any, str, str, Any, Any, str]:
    """Values rendered on page load, so a refreshed page shows the session's state."""
    state = get_session().state
    return (
        _to_pil(state.uploaded_image),
        _to_pil(state.generated_image),
        _result_placeholder(state),
        state.prompt,
        _generate_button_update(state),
        _history_gallery(state.history),
        _history_label(state),
    )


# -- static sections ----------------------------------------------------------


def _header_html(content: UIContent) -> str:
    links = "".join(
        f'<a href="#{html.escape(item.anchor)}" style="color: #d1d5db; text-decoration: none; '
        f'font-weight: 500; margin-left: 24px;">{html.escape(item.name)}</a>'
        for item in content.nav
    )
    return f"""
<div style="display: flex; justify-content: space-between; align-items: center; padding: 12px 24px; background: #0f172a; border-radius: 12px;">
    <a href="#hero" style="text-decoration: none; display: flex; align-items: center;">
        <span style="font-size: 2em; margin-right: 8px;">🍌</span>
        <span style="font-size: 1.8em; font-weight: 900; color: white;">{html.escape(content.brand.name)}</span>
    </a>
    <nav>{links}</nav>
</div>
"""


def _hero_html(content: UIContent) -> str:
    hero = content.hero
    return f"""
<section id="hero" style="padding: 60px 24px; background: #0f172a; color: white; border-radius: 12px; text-align: center;">
    <h2 style="font-size: 3em; font-weight: 800; margin: 0 0 16px 0;">
        {html.escape(hero.title)} <span style="color: #fbbf24;">{html.escape(hero.highlight)}</span>
    </h2>
    <p style="font-size: 1.2em; color: #9ca3af; max-width: 720px; margin: 0 auto 32px auto;">{html.escape(hero.subtitle)}</p>
    <a href="#editor" style="background: #fbbf24; color: #111827; padding: 14px 28px; border-radius: 12px; font-weight: 800; text-decoration: none;">{html.escape(hero.cta)} 🍌</a>
</section>
"""


def _gallery_html(content: UIContent) -> str:
    examples = "".join(
        f"""<div style="display: grid; grid-template-columns: 1fr 1fr; border-radius: 12px; overflow: hidden;">
        <div style="position: relative;"><img src="{html.escape(ex.before)}" alt="Before AI Edit" style="width: 100%;"/>
            <span style="position: absolute; top: 8px; left: 8px; background: rgba(0,0,0,.7); color: white; font-size: .75em; font-weight: 700; padding: 2px 8px; border-radius: 8px;">BEFORE</span></div>
        <div style="position: relative;"><img src="{html.escape(ex.after)}" alt="After AI Edit" style="width: 100%;"/>
            <span style="position: absolute; top: 8px; right: 8px; background: rgba(251,191,36,.9); color: #111827; font-size: .75em; font-weight: 700; padding: 2px 8px; border-radius: 8px;">AFTER AI</span></div>
    </div>"""
        for ex in content.gallery
    )
    quotes = "".join(
        f"""<div style="padding: 24px; background: #0f172a; border-top: 4px solid #fbbf24; border-radius: 12px;">
        <p style="font-style: italic; color: #d1d5db;">"{html.escape(t.quote)}"</p>
        <p style="text-align: right; color: #fb923c; font-weight: 600;">— {html.escape(t.author)}</p>
    </div>"""
        for t in content.testimonials
    )
    newsletter = ""
    if content.newsletter is not None:
        newsletter = f"""
    <div style="text-align: center; padding: 32px; margin-top: 32px; border: 1px solid #334155; border-radius: 12px;">
        <h3 style="color: white; font-size: 1.8em; margin: 0 0 12px 0;">{html.escape(content.newsletter.title)}</h3>
        <p style="color: #9ca3af;">{html.escape(content.newsletter.text)}</p>
        <p style="margin-top: 24px; font-size: .8em; font-style: italic; color: #6b7280;">Disclaimer: {html.escape(content.disclaimer)}</p>
    </div>"""
    return f"""
<section id="gallery" style="padding: 48px 24px; background: #1e293b; border-radius: 12px;">
    <h2 style="text-align: center; color: white; font-size: 2.5em; font-weight: 800;">The <span style="color: #fbbf24;">Banana</span> Gallery</h2>
    <div style="display: grid; grid-template-columns: repeat(auto-fit, minmax(260px, 1fr)); gap: 24px; margin: 32px 0;">{examples}</div>
    <h3 style="text-align: center; color: #fb923c; font-size: 1.8em;">What People Say</h3>
    <div style="display: grid; grid-template-columns: repeat(auto-fit, minmax(260px, 1fr)); gap: 24px; margin-top: 24px;">{quotes}</div>{newsletter}
</section>
"""


def _footer_html(content: UIContent) -> str:
    return f"""
<div style="text-align: center; margin: 40px 0 20px 0; padding-top: 20px; border-top: 1px solid #e5e7eb;">
    <p style="font-size: 0.9em; color: #9ca3af; margin: 0 0 5px 0;">🍌 {html.escape(content.brand.name)} v{__version__}: {html.escape(content.brand.tagline)}</p>
    <p style="font-size: 0.8em; color: #f87171; font-weight: 600; margin: 0;">DISCLAIMER: {html.escape(content.disclaimer)}</p>
</div>
"""


def _build_blocks() -> gr.Blocks:
    """Build the full page."""
    content = load_ui_content()
    initial = get_session().state

    with gr.Blocks(title=PAGE_TITLE) as app:
        gr.HTML(_header_html(content))
        gr.HTML(_hero_html(content))

        with gr.Column(elem_id="editor"):
            gr.Markdown("## The Nano Editor")
            status_html = gr.HTML(value="", elem_id="nanobanana-status")
            with gr.Row():
                with gr.Column(scale=2):
                    gr.Markdown("### 1. Upload Base Image")
                    base_image = gr.Image(
                        label="Base image (JPG/PNG, max 5MB)",
                        type="filepath",
                        sources=["upload", "clipboard"],
                        height=260,
                    )
                    gr.Markdown("### 2. Describe Your Vision")
                    prompt_tb = gr.Textbox(
                        label="Prompt",
                        value=initial.prompt,
                        lines=4,
                        placeholder="E.g., 'Turn this into a comic book hero in a palace wearing a banana suit'",
                    )
                    gr.Markdown("### 3. Select Style & Options")
                    style_radio = gr.Radio(
                        label="Style",
                        choices=list(STYLES),
                        value=initial.style,
                    )
                    with gr.Accordion("Advanced Options", open=False):
                        consistency_slider = gr.Slider(
                            label="Consistency Boost (Fidelity to Original)",
                            minimum=0,
                            maximum=100,
                            step=1,
                            value=initial.consistency,
                            info="Creative Freedom (0) ↔ High Fidelity (100)",
                        )
                    generate_btn = gr.Button(
                        GENERATE_LABEL, variant="primary", interactive=initial.can_generate
                    )
                with gr.Column(scale=1):
                    gr.Markdown("### 4. Result Preview")
                    result_image = gr.Image(
                        label="AI Generated Result",
                        type="pil",
                        format="png",
                        interactive=False,
                        height=360,
                    )
                    result_hint = gr.Markdown(_result_placeholder(initial))
                    history_label = gr.Markdown(_history_label(initial))
                    history_gallery = gr.Gallery(
                        label="Click an entry to re-edit it",
                        columns=2,
                        height=320,
                        allow_preview=False,
                    )

        gr.HTML(_gallery_html(content))
        gr.HTML(_footer_html(content))

        base_image.upload(
            fn=_upload_handler,
            inputs=[base_image],
            outputs=[base_image, result_image, result_hint, status_html, generate_btn],
            concurrency_id=_UI_CONCURRENCY_ID,
        )
        base_image.clear(
            fn=_clear_handler,
            inputs=None,
            outputs=[result_hint, generate_btn],
            concurrency_id=_UI_CONCURRENCY_ID,
        )
        prompt_tb.change(
            fn=_prompt_change_handler,
            inputs=[prompt_tb],
            outputs=[generate_btn],
            concurrency_id=_UI_CONCURRENCY_ID,
        )
        style_radio.change(
            fn=_style_change_handler,
            inputs=[style_radio],
            outputs=[status_html],
            concurrency_id=_UI_CONCURRENCY_ID,
        )
        consistency_slider.release(
            fn=_consistency_change_handler,
            inputs=[consistency_slider],
            outputs=None,
            concurrency_id=_UI_CONCURRENCY_ID,
        )
        generate_btn.click(
            fn=_generate_click_handler,
            inputs=[prompt_tb, style_radio, consistency_slider],
            outputs=[
                result_image,
                result_hint,
                status_html,
                generate_btn,
                history_gallery,
                history_label,
            ],
            concurrency_id=_UI_CONCURRENCY_ID,
        )
        history_gallery.select(
            fn=_history_select_handler,
            inputs=None,
            outputs=[
                base_image,
                prompt_tb,
                style_radio,
                result_image,
                result_hint,
                status_html,
                generate_btn,
            ],
            concurrency_id=_UI_CONCURRENCY_ID,
        )

        # Toasts dismiss themselves; poll so the page catches up
        status_timer = gr.Timer(STATUS_REFRESH_SECONDS)
        status_timer.tick(fn=_status_tick_handler, inputs=None, outputs=[status_html])

        app.load(
            fn=_initial_view,
            inputs=None,
            outputs=[
                base_image,
                result_image,
                result_hint,
                prompt_tb,
                generate_btn,
                history_gallery,
                history_label,
            ],
        )

    return cast(gr.Blocks, app)


def launch(
    server_name: str | None = None,
    server_port: int | None = None,
    share: bool = False,
) -> None:
    """
    Build the Gradio app and launch the server.

    Args:
        server_name: Host to bind (default: NANOBANANA_UI_HOST or 127.0.0.1).
        server_port: Port (default: NANOBANANA_UI_PORT or 7860).
        share: If True, create a public share link (e.g. gradio.live).
    """
    host = server_name or os.getenv("NANOBANANA_UI_HOST", DEFAULT_UI_HOST)
    port = server_port
    if port is None:
        try:
            port = int(os.getenv("NANOBANANA_UI_PORT", str(DEFAULT_UI_PORT)))
        except ValueError:
            port = DEFAULT_UI_PORT
    print(f"nanobanana ui is starting (v{__version__}) on http://{host}:{port}...")
    app = _build_blocks()
    app.launch(server_name=host, server_port=port, share=share, inbrowser=True)


def main() -> None:
    """Entry point for the nanobanana-ui console script. Parses --port, --host, --share."""
    parser = argparse.ArgumentParser(
        description="Launch the NanoBananaPi web UI for AI photo editing.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        metavar="PORT",
        help=f"Port to bind (default: NANOBANANA_UI_PORT or {DEFAULT_UI_PORT}).",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        metavar="HOST",
        help=f"Host to bind (default: NANOBANANA_UI_HOST or {DEFAULT_UI_HOST}). Use 0.0.0.0 for LAN.",
    )
    parser.add_argument(
        "--share",
        action="store_true",
        default=None,
        help="Create a public share link (e.g. gradio.live). Overrides NANOBANANA_UI_SHARE.",
    )
    args = parser.parse_args()
    configure_logging(verbose_level=get_verbosity_from_env(), quiet=False)
    share_val = args.share
    if share_val is None:
        env_share = os.environ.get("NANOBANANA_UI_SHARE", "").lower()
        share_val = env_share in ("1", "true", "yes")
    launch(
        server_name=args.host,
        server_port=args.port,
        share=share_val,
    )
