"""Data models for Flux Gallery UI state."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

# Everything up to and including this marker is hidden when a prompt is shown.
PROMPT_DELIMITER = "English Prompt:"


class GalleryStatus(str, Enum):
    """Lifecycle of a gallery controller."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    LOADED = "loaded"
    UNAUTHENTICATED = "unauthenticated"


def display_prompt(prompt: str) -> str:
    """Return the part of *prompt* shown to the user.

    When *prompt* embeds the ``English Prompt:`` marker, only the text after
    the first occurrence (stripped) is shown; otherwise the prompt is shown
    as is.
    """
    if PROMPT_DELIMITER in prompt:
        return prompt.split(PROMPT_DELIMITER)[1].strip()
    return prompt


@dataclass
class UIState:
    """Session state for the Gradio UI.

    Each browser session gets its own UIState, holding the gallery controller
    bound to that session's user.

    Attributes
    ----------
    user_id : str | None
        User the session is bound to (``None`` until resolved or when
        anonymous)
    controller : Any | None
        GalleryController instance for this session
    clipboard : Any | None
        BrowserClipboard the controller writes to
    opener : Any | None
        BrowserOpener the controller opens URLs with
    revision : int
        Controller revision last rendered by the page
    tile_ids : list[str]
        Image id of each tile in the last rendered gallery, by tile index
    """

    user_id: str | None = None
    controller: Any | None = None  # GalleryController instance
    clipboard: Any | None = None  # BrowserClipboard instance
    opener: Any | None = None  # BrowserOpener instance
    revision: int = -1
    tile_ids: list[str] = field(default_factory=list)

    def is_initialized(self) -> bool:
        return self.controller is not None

    def close(self) -> None:
        """Tear down the controller (session ended)."""
        if self.controller is not None:
            self.controller.close()
            self.controller = None

    def __repr__(self) -> str:
        return f"UIState(initialized={self.is_initialized()}, user={self.user_id})"
