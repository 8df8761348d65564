"""Flux Gallery - AI prompt enhancement and per-user image gallery."""

__version__ = "0.1.0"

from fluxgallery.core.config import FluxGalleryConfig, config

__all__ = [
    "FluxGalleryConfig",
    "config",
]
