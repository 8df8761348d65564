"""UI event handlers organized by feature area.

- gallery: Gallery loading, selection, deletion, copy, download, and open
"""

from .gallery import (
    GALLERY_OUTPUTS,
    close_image_detail,
    confirm_copied_prompt,
    copy_selected_prompt,
    delete_selected_image,
    download_selected_image,
    initialize_gallery,
    open_selected_image,
    poll_gallery,
    refresh_gallery,
    render_gallery,
    select_gallery_image,
)

__all__ = [
    "GALLERY_OUTPUTS",
    "close_image_detail",
    "confirm_copied_prompt",
    "copy_selected_prompt",
    "delete_selected_image",
    "download_selected_image",
    "initialize_gallery",
    "open_selected_image",
    "poll_gallery",
    "refresh_gallery",
    "render_gallery",
    "select_gallery_image",
]
