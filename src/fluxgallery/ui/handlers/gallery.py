"""Gallery tab handlers.

Every handler takes the session :class:`UIState` and returns the values for
the gallery tab's components followed by the (possibly updated) state, in the
order given by :data:`GALLERY_OUTPUTS`.  The work itself is delegated to the
session's :class:`~fluxgallery.ui.gallery.GalleryController`; the handlers
only translate between Gradio values and controller calls.
"""

import logging
from io import BytesIO

import gradio as gr
from PIL import Image

from fluxgallery.core.media import decode_data_url, is_data_url
from fluxgallery.core.messages import get_message

from ..gallery import format_created_at
from ..models import GalleryStatus, UIState, display_prompt
from ..state import GalleryServices, initialize_ui_state

logger = logging.getLogger(__name__)

# Component order shared by the handlers and ui.app.
GALLERY_OUTPUTS = (
    "message",
    "gallery",
    "detail",
    "detail_image",
    "detail_meta",
    "detail_prompt",
    "copy_button",
    "delete_button",
)


def _gallery_item(url: str):
    """Gradio cannot display data URLs directly; decode them to PIL images."""
    if is_data_url(url):
        try:
            _, data = decode_data_url(url)
            return Image.open(BytesIO(data))
        except Exception as e:
            logger.warning(f"Cannot decode embedded image: {e}")
            return None
    return url


def render_gallery(state: UIState) -> tuple:
    """Build component values from the session's controller.

    Returns:
        Tuple of values for :data:`GALLERY_OUTPUTS` followed by ``state``.
    """
    controller = state.controller if state is not None else None
    if controller is None:
        return (
            gr.update(value="", visible=False),
            [],
            gr.update(visible=False),
            None,
            "",
            "",
            gr.update(),
            gr.update(interactive=False),
            state,
        )

    locale = controller.locale
    if controller.status == GalleryStatus.UNAUTHENTICATED:
        message = f"### {get_message('login_required', locale)}"
    elif controller.status == GalleryStatus.LOADING and not controller.images:
        message = "*Loading...*"
    elif not controller.images:
        message = controller.error or get_message("gallery_empty", locale)
    else:
        message = controller.error

    items = []
    tile_ids = []
    for image in controller.images:
        item = _gallery_item(image.image_url)
        if item is not None:
            items.append((item, display_prompt(image.prompt)[:80]))
            tile_ids.append(image.id)
    state.tile_ids = tile_ids

    state.revision = controller.revision
    selected = controller.selected
    copy_label = "✓ Copied" if controller.copied else "📋 Copy"

    if selected is None:
        return (
            gr.update(value=message, visible=bool(message)),
            items,
            gr.update(visible=False),
            None,
            "",
            "",
            gr.update(value=copy_label),
            gr.update(interactive=False),
            state,
        )

    deleting = controller.is_deleting(selected.id)
    return (
        gr.update(value=message, visible=bool(message)),
        items,
        gr.update(visible=True),
        _gallery_item(selected.image_url),
        f"Created: {format_created_at(selected.created_at, locale)}",
        display_prompt(selected.prompt),
        gr.update(value=copy_label),
        gr.update(interactive=not deleting, value="⏳ Deleting..." if deleting else "🗑 Delete"),
        state,
    )


def _unchanged(state: UIState) -> tuple:
    return tuple(gr.update() for _ in GALLERY_OUTPUTS) + (state,)


async def initialize_gallery(
    state: UIState, user_id: str | None, services: GalleryServices
) -> tuple:
    """Bind the session to *user_id* and load its gallery.

    Args:
        state: UI state
        user_id: User resolved from the request (``None`` if anonymous)
        services: Shared store, channel, and configuration

    Returns:
        Rendered gallery values followed by the updated state
    """
    try:
        state = await initialize_ui_state(state, user_id, services)
    except Exception as e:
        logger.error(f"Error initializing gallery: {e}", exc_info=True)
    return render_gallery(state)


async def refresh_gallery(state: UIState) -> tuple:
    """Reload the gallery from the backend."""
    if state is None or not state.is_initialized():
        return render_gallery(state)
    await state.controller.load()
    return render_gallery(state)


def select_gallery_image(evt: gr.SelectData, state: UIState) -> tuple:
    """Open the detail view for the clicked gallery tile.

    Args:
        evt: Gradio SelectData event containing selected index
        state: UI state
    """
    if state is None or not state.is_initialized():
        return render_gallery(state)

    controller = state.controller
    index = evt.index
    if isinstance(index, (list, tuple)):
        index = index[0]
    if index is None or not 0 <= index < len(state.tile_ids):
        return render_gallery(state)

    # Tiles skip undecodable images, so the index maps through tile_ids.
    image = controller.find(state.tile_ids[index])
    if image is not None:
        controller.select(image)
    return render_gallery(state)


def close_image_detail(state: UIState) -> tuple:
    if state is not None and state.is_initialized():
        state.controller.deselect()
    return render_gallery(state)


async def delete_selected_image(state: UIState) -> tuple:
    """Delete the image shown in the detail view."""
    if state is None or not state.is_initialized() or state.controller.selected is None:
        return render_gallery(state)
    await state.controller.delete(state.controller.selected.id)
    return render_gallery(state)


async def copy_selected_prompt(state: UIState) -> tuple:
    """Copy the selected image's prompt.

    The page performs the clipboard write and reports back through
    :func:`confirm_copied_prompt`.

    Returns:
        Rendered gallery values, the state, and the text the page should
        write to the clipboard (empty when nothing was copied).
    """
    if state is None or not state.is_initialized() or state.controller.selected is None:
        return render_gallery(state) + ("",)
    await state.controller.copy_prompt(state.controller.selected.prompt)
    return render_gallery(state) + (state.clipboard.take(),)


async def confirm_copied_prompt(status: str, state: UIState) -> tuple:
    """Apply the outcome of the page's clipboard write.

    Args:
        status: ``"ok"`` or ``"error"`` as reported by the page; empty when
            there was nothing to write
        state: UI state
    """
    if status and state is not None and state.is_initialized():
        state.controller.finish_copy(status == "ok")
    return render_gallery(state)


async def download_selected_image(state: UIState) -> tuple:
    """Save the selected image and offer the file to the browser.

    Returns:
        Tuple of (file_update, state)
    """
    if state is None or not state.is_initialized() or state.controller.selected is None:
        return gr.update(value=None, visible=False), state
    selected = state.controller.selected
    path = await state.controller.download(selected.image_url, selected.prompt)
    if path is None:
        return gr.update(value=None, visible=False), state
    return gr.update(value=str(path), visible=True), state


async def open_selected_image(state: UIState) -> tuple:
    """Open the selected image in a new tab.

    Returns:
        Rendered gallery values, the state, and the URL the page should
        open (empty when nothing is to be opened).
    """
    if state is None or not state.is_initialized() or state.controller.selected is None:
        return render_gallery(state) + ("",)
    await state.controller.open_external(state.controller.selected.image_url)
    url = state.opener.take() if state.opener is not None else ""
    return render_gallery(state) + (url,)


def poll_gallery(state: UIState) -> tuple:
    """Re-render only when the controller changed since the last render.

    Picks up reloads triggered by broadcast events and the end of the
    "copied" indicator.
    """
    if state is None or not state.is_initialized():
        return _unchanged(state)
    if state.revision == state.controller.revision:
        return _unchanged(state)
    return render_gallery(state)
