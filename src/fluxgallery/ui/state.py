"""State management utilities for the Flux Gallery UI.

This module handles the initialization and teardown of per-session UI state:
resolving which user a session belongs to and building the gallery
controller bound to that user.
"""

import logging
from dataclasses import dataclass

from fluxgallery.core.config import FluxGalleryConfig
from fluxgallery.core.events import BroadcastChannel
from fluxgallery.core.gallery_store import GalleryStore

from .adapters import BrowserClipboard, BrowserOpener, GradioNotifier, LoggingNotifier, Notifier
from .gallery import GalleryController
from .models import UIState

logger = logging.getLogger(__name__)

# Path under which the server exposes transient files made from data URLs.
TRANSIENT_URL_PREFIX = "/api/transient"


@dataclass
class GalleryServices:
    """Application-wide collaborators shared by every UI session."""

    store: GalleryStore
    channel: BroadcastChannel
    config: FluxGalleryConfig
    gradio: bool = True


def resolve_user_id(username: str | None, query_params: dict | None) -> str | None:
    """Pick the session's user id.

    The authenticated username wins; otherwise a ``user_id`` query parameter
    is used.  Blank values count as anonymous.
    """
    candidate = username or (query_params or {}).get("user_id")
    if candidate and str(candidate).strip():
        return str(candidate).strip()
    return None


async def initialize_ui_state(
    state: UIState | None,
    user_id: str | None,
    services: GalleryServices,
) -> UIState:
    """Initialize or ensure UI state is ready.

    Creates the session's :class:`GalleryController` on first use and mounts
    it (subscribe + initial load).  If the session's user changed, the old
    controller is closed and a new one is built.

    Args:
        state: Existing UIState or None
        user_id: User the session belongs to
        services: Shared store, channel, and configuration

    Returns:
        Initialized UIState instance
    """
    if state is None:
        logger.info("Creating new UIState")
        state = UIState()

    if state.is_initialized() and state.user_id == user_id:
        logger.debug("UIState already initialized")
        return state

    if state.is_initialized():
        logger.info(f"Session user changed from {state.user_id} to {user_id}")
        state.close()

    cfg = services.config
    notifier: Notifier = GradioNotifier() if services.gradio else LoggingNotifier()
    state.user_id = user_id
    state.clipboard = BrowserClipboard()
    state.opener = BrowserOpener()
    state.controller = GalleryController(
        user_id,
        services.store,
        services.channel,
        clipboard=state.clipboard,
        notifier=notifier,
        opener=state.opener,
        downloads_dir=cfg.downloads_dir,
        image_hosts=cfg.image_hosts,
        locale=cfg.locale,
        copy_feedback_seconds=cfg.copy_feedback_seconds,
        object_url_ttl_seconds=cfg.object_url_ttl_seconds,
        transient_dir=cfg.transient_dir,
        transient_url_prefix=TRANSIENT_URL_PREFIX,
    )
    state.revision = -1
    state.tile_ids = []
    await state.controller.mount()
    logger.info(f"UIState initialization complete: {state}")
    return state


def cleanup_ui_state(state: UIState | None) -> None:
    """Release a session's resources when Gradio discards its state."""
    if state is None:
        return
    logger.info(f"Cleaning up {state}")
    state.close()
