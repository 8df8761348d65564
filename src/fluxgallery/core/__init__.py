"""Core functionality shared by the API and the gallery UI.

- **FluxGalleryConfig** / **config**: Pydantic Settings configuration
  (``FLUXGALLERY_`` environment variables)
- **completion**: Completion service client (OpenAI)
- **gallery_store**: Backend data services (Supabase, local JSON)
- **events**: Broadcast channel for gallery update notifications
- **media**: Data URL decoding and download naming
- **messages**: Localized user-facing messages
"""

from fluxgallery.core.config import FluxGalleryConfig, config
from fluxgallery.core.events import BroadcastChannel, GalleryUpdateEvent
from fluxgallery.core.gallery_store import GalleryImage, GalleryServiceError

__all__ = [
    "BroadcastChannel",
    "FluxGalleryConfig",
    "GalleryImage",
    "GalleryServiceError",
    "GalleryUpdateEvent",
    "config",
]
