"""Adapters between the gallery controller and its host environment.

The controller never touches Gradio, the clipboard, or a browser directly.
It is handed three small collaborators:

- a :class:`Clipboard` that accepts text
- a :class:`Notifier` that shows transient messages (toasts)
- an :class:`Opener` that opens a URL in a new viewing context

The implementations here cover the Gradio front end (where the clipboard
write and toasts happen in the user's browser) and plain server-side use.
"""

from __future__ import annotations

import logging
import webbrowser
from typing import Literal, Protocol

import gradio as gr

logger = logging.getLogger(__name__)

Variant = Literal["default", "destructive"]


class Clipboard(Protocol):
    async def write_text(self, text: str) -> None: ...


class Notifier(Protocol):
    def notify(self, title: str, description: str, variant: Variant = "default") -> None: ...


class Opener(Protocol):
    def open(self, url: str) -> None: ...


class BrowserClipboard:
    """Clipboard whose write is carried out by the browser.

    Gradio handlers run on the server, so the text is queued here and
    returned to the page, where a ``navigator.clipboard.writeText`` snippet
    attached to the button performs the actual copy.  The snippet reports
    its outcome back, which is then passed to
    :meth:`~fluxgallery.ui.gallery.GalleryController.finish_copy`.
    """

    deferred = True

    def __init__(self) -> None:
        self.pending_text: str | None = None

    async def write_text(self, text: str) -> None:
        self.pending_text = text

    def take(self) -> str:
        """Return and clear the queued text."""
        text, self.pending_text = self.pending_text or "", None
        return text


class GradioNotifier:
    """Show notifications as Gradio toasts."""

    def notify(self, title: str, description: str, variant: Variant = "default") -> None:
        message = f"{title}: {description}"
        if variant == "destructive":
            gr.Warning(message)
        else:
            gr.Info(message)


class LoggingNotifier:
    """Notifier for headless use; writes notifications to the log."""

    def notify(self, title: str, description: str, variant: Variant = "default") -> None:
        level = logging.WARNING if variant == "destructive" else logging.INFO
        logger.log(level, f"{title}: {description}")


class BrowserOpener:
    """Opener whose work is carried out by the user's browser.

    The URL is queued here and returned to the page, where a
    ``window.open`` snippet attached to the button opens it in a new tab.
    """

    def __init__(self) -> None:
        self.pending_url: str | None = None

    def open(self, url: str) -> None:
        self.pending_url = url

    def take(self) -> str:
        """Return and clear the queued URL."""
        url, self.pending_url = self.pending_url or "", None
        return url


class WebbrowserOpener:
    """Open URLs with the system's default browser.

    Only meaningful when the controller runs on the user's own machine.

    Raises:
        RuntimeError: If no browser could be launched.
    """

    def open(self, url: str) -> None:
        if not webbrowser.open_new_tab(url):
            raise RuntimeError(f"No browser available to open {url[:80]}")
