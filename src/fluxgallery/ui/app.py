"""Gradio UI for the Flux Gallery.

The UI is mounted into the FastAPI application (see
:mod:`fluxgallery.api.main`) so that it shares the application's broadcast
channel and gallery store.  Each browser session gets its own
:class:`~fluxgallery.ui.models.UIState`, and with it its own gallery
controller, which is closed when Gradio discards the session.
"""

import logging

import gradio as gr

from .handlers import (
    close_image_detail,
    confirm_copied_prompt,
    copy_selected_prompt,
    delete_selected_image,
    download_selected_image,
    initialize_gallery,
    open_selected_image,
    poll_gallery,
    refresh_gallery,
    select_gallery_image,
)
from .models import UIState
from .state import GalleryServices, cleanup_ui_state, resolve_user_id

logger = logging.getLogger(__name__)

# Runs in the browser after the copy handler returns the text to copy.  The
# result ("ok", "error", or "" when there was nothing to copy) is handed to
# confirm_copied_prompt.
_CLIPBOARD_JS = """
async (text) => {
    if (!text) { return ""; }
    try {
        await navigator.clipboard.writeText(text);
        return "ok";
    } catch (e) {
        return "error";
    }
}
"""

# Runs in the browser after the open handler returns the URL to open.
_OPEN_JS = "(url) => { if (url) { window.open(url, '_blank'); } return url; }"

# Seconds between checks for reloads triggered by gallery update events.
POLL_INTERVAL = 2.0


def create_ui(services: GalleryServices) -> gr.Blocks:
    """Create the Gradio gallery UI.

    Args:
        services: Shared store, channel, and configuration

    Returns:
        Gradio Blocks app
    """
    app = gr.Blocks(title="Flux Gallery")

    with app:
        # Session state - one instance per user session
        ui_state = gr.State(UIState(), delete_callback=cleanup_ui_state)

        gr.Markdown(
            """
            # Flux Gallery
            ### Your generated images
            """
        )

        components = create_gallery_tab(ui_state)
        outputs = [
            components["message"],
            components["gallery"],
            components["detail"],
            components["detail_image"],
            components["detail_meta"],
            components["detail_prompt"],
            components["copy_button"],
            components["delete_button"],
            ui_state,
        ]

        async def on_load(state: UIState, request: gr.Request):
            user_id = resolve_user_id(
                getattr(request, "username", None),
                dict(request.query_params) if request is not None else None,
            )
            return await initialize_gallery(state, user_id, services)

        app.load(fn=on_load, inputs=[ui_state], outputs=outputs)

        timer = gr.Timer(POLL_INTERVAL)
        timer.tick(fn=poll_gallery, inputs=[ui_state], outputs=outputs, show_progress="hidden")

        wire_gallery_events(components, ui_state, outputs)

    return app


def create_gallery_tab(ui_state) -> dict:
    """Create the gallery components.

    Args:
        ui_state: UI state component

    Returns:
        Dictionary of gallery components for event handling
    """
    with gr.Row():
        refresh_btn = gr.Button("Refresh", size="sm", scale=0)

    message = gr.Markdown(value="", visible=False)

    gallery = gr.Gallery(
        label="Images",
        columns=4,
        height=600,
        object_fit="cover",
        allow_preview=False,
        show_label=False,
    )

    with gr.Column(visible=False) as detail:
        with gr.Row():
            gr.Markdown("### Image details")
            close_btn = gr.Button("✕", size="sm", scale=0)

        with gr.Row():
            with gr.Column(scale=1):
                detail_image = gr.Image(label="Selected Image", height=400, interactive=False)
                open_btn = gr.Button("↗ Open", size="sm")

            with gr.Column(scale=1):
                detail_meta = gr.Markdown("")
                detail_prompt = gr.Textbox(label="Prompt", lines=6, interactive=False)
                with gr.Row():
                    copy_btn = gr.Button("📋 Copy", size="sm")
                    download_btn = gr.Button("⬇ Download", size="sm")
                    delete_btn = gr.Button("🗑 Delete", size="sm", variant="stop")
                download_file = gr.File(label="Download", visible=False, interactive=False)

    clipboard_text = gr.Textbox(visible=False)
    copy_status = gr.Textbox(visible=False)
    open_url = gr.Textbox(visible=False)

    return {
        "refresh_button": refresh_btn,
        "message": message,
        "gallery": gallery,
        "detail": detail,
        "close_button": close_btn,
        "detail_image": detail_image,
        "open_button": open_btn,
        "detail_meta": detail_meta,
        "detail_prompt": detail_prompt,
        "copy_button": copy_btn,
        "download_button": download_btn,
        "delete_button": delete_btn,
        "download_file": download_file,
        "clipboard_text": clipboard_text,
        "copy_status": copy_status,
        "open_url": open_url,
    }


def wire_gallery_events(components: dict, ui_state, outputs: list) -> None:
    """Attach the gallery handlers to their components."""
    components["refresh_button"].click(fn=refresh_gallery, inputs=[ui_state], outputs=outputs)

    # Image selection - uses gr.SelectData for event
    components["gallery"].select(fn=select_gallery_image, inputs=[ui_state], outputs=outputs)

    components["close_button"].click(fn=close_image_detail, inputs=[ui_state], outputs=outputs)

    components["delete_button"].click(
        fn=delete_selected_image, inputs=[ui_state], outputs=outputs
    )

    # The handler queues the URL; the browser opens the new tab.
    components["open_button"].click(
        fn=open_selected_image,
        inputs=[ui_state],
        outputs=outputs + [components["open_url"]],
    ).then(
        fn=None,
        inputs=[components["open_url"]],
        outputs=None,
        js=_OPEN_JS,
    )

    components["download_button"].click(
        fn=download_selected_image,
        inputs=[ui_state],
        outputs=[components["download_file"], ui_state],
    )

    # The handler queues the text, the browser performs the clipboard write,
    # and its outcome decides whether the copy is reported as done.
    components["copy_button"].click(
        fn=copy_selected_prompt,
        inputs=[ui_state],
        outputs=outputs + [components["clipboard_text"]],
    ).then(
        fn=None,
        inputs=[components["clipboard_text"]],
        outputs=[components["copy_status"]],
        js=_CLIPBOARD_JS,
    ).then(
        fn=confirm_copied_prompt,
        inputs=[components["copy_status"], ui_state],
        outputs=outputs,
    )
