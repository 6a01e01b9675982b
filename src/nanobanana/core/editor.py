"""
Editor session: the observable state behind the editor panel.

EditorSession owns the uploaded image, the prompt/style/consistency inputs,
the displayed result and the history list. Every change replaces the
immutable EditorState snapshot and notifies subscribers once, so a view layer
only has to re-render what it is given. Failures never propagate out of the
session; they end as notifications and the session returns to idle.
"""

import dataclasses
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from nanobanana.core.config import Config, get_config
from nanobanana.core.gemini import ImageEditClient
from nanobanana.core.history import (
    HistoryItem,
    HistoryStore,
    JsonFileStorage,
    next_history_id,
    push_history,
)
from nanobanana.core.image_gen import (
    DEFAULT_CONSISTENCY,
    DEFAULT_STYLE,
    MIN_PROMPT_LENGTH,
    STYLES,
    clamp_consistency,
    generate_edit,
    validate_edit_request,
)
from nanobanana.core.ingest import UploadedImage, ingest
from nanobanana.core.notifications import NotificationChannel
from nanobanana.logging_config import get_logger
from nanobanana.utils.exceptions import (
    ConfigurationError,
    GenerationFailedError,
    GenerationInProgressError,
    ImageProcessingError,
    PersistenceError,
    SizeLimitExceededError,
    ValidationError,
)

logger = get_logger(__name__)

MSG_UPLOAD_OK = "Image uploaded successfully!"
MSG_READ_ERROR = "Error reading file."
MSG_GENERATED = "✨ Magic Generated! Check out your new photo."
MSG_IN_PROGRESS = "Bananas are already brewing. Please wait for the current edit."

StateListener = Callable[["EditorState"], None]


@dataclass(frozen=True)
class EditorState:
    uploaded_image: UploadedImage | None = None
    prompt: str = ""
    style: str = DEFAULT_STYLE
    consistency: int = DEFAULT_CONSISTENCY
    generated_image: UploadedImage | None = None
    is_loading: bool = False
    history: tuple[HistoryItem, ...] = ()

    @property
    def can_generate(self) -> bool:
        """True when the generate control should be enabled."""
        return (
            not self.is_loading
            and self.uploaded_image is not None
            and len(self.prompt.strip()) >= MIN_PROMPT_LENGTH
        )


class EditorSession:
    """Upload / generate / re-edit workflow over an observable EditorState."""

    def __init__(
        self,
        config: Config | None = None,
        history_store: HistoryStore | None = None,
        notifications: NotificationChannel | None = None,
        client: ImageEditClient | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or get_config()
        self.history_store = history_store or HistoryStore(
            JsonFileStorage(self.config.storage_path), limit=self.config.history_limit
        )
        self.notifications = notifications or NotificationChannel(
            default_duration_ms=self.config.notification_duration_ms
        )
        self._client = client
        self._sleep = sleep
        self._clock = clock
        self._generate_lock = threading.Lock()
        self._listeners: list[StateListener] = []
        self._state = EditorState(history=tuple(self.history_store.load()))

    @property
    def state(self) -> EditorState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register listener for state snapshots; return an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes: Any) -> EditorState:
        self._state = dataclasses.replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    # -- inputs -------------------------------------------------------------

    def upload(self, source: str | Path | bytes) -> UploadedImage | None:
        """
        Ingest source as the new base image.

        On success the image replaces the current one and any displayed result
        is cleared. On failure an error notification is shown and state is
        left untouched.
        """
        try:
            image = ingest(source, config=self.config)
        except SizeLimitExceededError as e:
            self.notifications.notify(str(e), "error")
            return None
        except ImageProcessingError as e:
            logger.error("File reading error: %s", e)
            self.notifications.notify(MSG_READ_ERROR, "error")
            return None
        except ValidationError as e:
            self.notifications.notify(str(e), "error")
            return None

        self._update(uploaded_image=image, generated_image=None)
        self.notifications.notify(MSG_UPLOAD_OK, "success")
        return image

    def set_prompt(self, prompt: str) -> None:
        self._update(prompt=prompt or "")

    def set_style(self, style: str) -> None:
        """
        Raises:
            ValidationError: If style is not one of STYLES
        """
        if style not in STYLES:
            raise ValidationError(f"Unknown style: {style!r}", field="style")
        self._update(style=style)

    def set_consistency(self, value: float | int | str) -> None:
        self._update(consistency=clamp_consistency(value))

    # -- workflow -----------------------------------------------------------

    def _begin_generation(self) -> None:
        if not self._generate_lock.acquire(blocking=False):
            raise GenerationInProgressError(MSG_IN_PROGRESS)

    def _new_history_item(
        self, request: EditorState, base: UploadedImage, result: UploadedImage
    ) -> HistoryItem:
        item_id = next_history_id(
            (item.id for item in self._state.history), int(self._clock() * 1000)
        )
        return HistoryItem(
            id=item_id,
            prompt=request.prompt,
            style=request.style,
            result_url=result.data_url,
            base_image=base.data_url,
        )

    def _persist_history(self, items: list[HistoryItem]) -> None:
        try:
            self.history_store.save(items)
        except PersistenceError as e:
            logger.warning("History not saved: %s", e)

    def generate(self) -> UploadedImage | None:
        """
        Run one edit with the current inputs.

        Returns the edited image, or None when the request was rejected or
        every attempt failed (the reason is in the notification channel).
        """
        try:
            self._begin_generation()
        except GenerationInProgressError as e:
            self.notifications.notify(str(e), "info")
            return None

        try:
            state = self._state
            try:
                validate_edit_request(state.uploaded_image, state.prompt, state.style)
            except ValidationError as e:
                self.notifications.notify(str(e), "info")
                return None
            base = state.uploaded_image
            assert base is not None
            try:
                self.config.validate()
            except ConfigurationError as e:
                self.notifications.notify(str(e), "error")
                return None

            self._update(is_loading=True, generated_image=None)
            try:
                result = generate_edit(
                    base,
                    state.prompt,
                    state.style,
                    state.consistency,
                    config=self.config,
                    client=self._client,
                    sleep=self._sleep,
                )
            except GenerationFailedError as e:
                self._update(is_loading=False)
                self.notifications.notify(str(e), "error")
                return None

            item = self._new_history_item(state, base, result.image)
            history = push_history(self._state.history, item, self.history_store.limit)
            self._update(
                generated_image=result.image,
                history=tuple(history),
                is_loading=False,
            )
            self.notifications.notify(MSG_GENERATED, "success")
            self._persist_history(history)
            return result.image
        finally:
            if self._state.is_loading:
                self._update(is_loading=False)
            self._generate_lock.release()

    def clear_upload(self) -> None:
        """Drop the base image; the displayed result is kept."""
        if self._state.uploaded_image is None:
            return
        self._update(uploaded_image=None)

    def re_edit(self, item: HistoryItem) -> None:
        """
        Load a past edit's base image, prompt and style; clear the displayed result.

        Raises:
            ValidationError: If the stored style is unknown or the base image is unusable
        """
        if item.style not in STYLES:
            raise ValidationError(f"Unknown style: {item.style!r}", field="style")
        self._update(
            uploaded_image=UploadedImage.from_data_url(item.base_image),
            prompt=item.prompt,
            style=item.style,
            generated_image=None,
        )

    def history_item(self, index: int) -> HistoryItem | None:
        """Return the history entry at index (0 = most recent), or None if out of range."""
        history = self._state.history
        if 0 <= index < len(history):
            return history[index]
        return None
