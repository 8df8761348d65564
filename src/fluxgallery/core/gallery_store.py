"""Gallery data services.

The gallery controller talks to a backend data service through the
:class:`GalleryStore` protocol:

- ``get_user_images(user_id)`` returns the user's images, newest first
- ``delete_user_image(image_id)`` removes one image

Both raise :class:`GalleryServiceError` on failure.  Rows coming back from a
backend are validated into :class:`GalleryImage` models at this boundary, so
the rest of the application never handles untyped JSON.

Two implementations are provided:

:class:`SupabaseGalleryStore`
    The hosted database, reached through Supabase's PostgREST interface
    (``/rest/v1/<table>``) with ``httpx``.
:class:`JsonGalleryStore`
    A single ``gallery.json`` file for local development.  Entries that are
    not objects or fail validation are dropped on load and the cleaned list is
    persisted, so later reads observe the corrected counts.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class GalleryServiceError(Exception):
    """A backend data-service request failed.

    The message is safe to log; it is not meant to be shown to the user.
    """


class GalleryImage(BaseModel):
    """One stored image.

    Attributes:
        id: Backend-assigned unique identifier.
        image_url: Absolute URL or ``data:`` URL of the image.
        prompt: Full enhancement text; may embed an ``English Prompt:`` marker.
        created_at: Creation timestamp as stored by the backend.
        user_id: Owner, when the backend projection includes it.
    """

    # Hosted tables may use integer primary keys.
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    image_url: str
    prompt: str = ""
    created_at: str
    user_id: str | None = Field(default=None)


def parse_gallery_images(rows: object) -> list[GalleryImage]:
    """Validate a backend payload into a list of :class:`GalleryImage`.

    Raises:
        GalleryServiceError: If *rows* is not a list or any row is malformed.
    """
    if not isinstance(rows, list):
        raise GalleryServiceError(f"Expected a list of images, got {type(rows).__name__}")
    try:
        return [GalleryImage.model_validate(row) for row in rows]
    except ValidationError as e:
        raise GalleryServiceError(f"Malformed gallery row: {e}") from e


class GalleryStore(Protocol):
    """Backend data service used by the gallery controller."""

    async def get_user_images(self, user_id: str) -> list[GalleryImage]: ...

    async def delete_user_image(self, image_id: str) -> None: ...


class SupabaseGalleryStore:
    """Gallery store backed by a Supabase table.

    Args:
        url: Project URL, e.g. ``https://xyzcompany.supabase.co``.
        key: Anon or service-role key.
        table: Table name.
        client: Optional pre-built ``httpx.AsyncClient`` (used by tests).
    """

    def __init__(
        self,
        url: str,
        key: str,
        table: str = "images",
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.table = table
        self._client = client or httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )

    async def get_user_images(self, user_id: str) -> list[GalleryImage]:
        try:
            response = await self._client.get(
                f"/{self.table}",
                params={
                    "select": "*",
                    "user_id": f"eq.{user_id}",
                    "order": "created_at.desc",
                },
            )
            response.raise_for_status()
            rows = response.json()
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            raise GalleryServiceError(f"Failed to load images for {user_id}: {e}") from e

        images = parse_gallery_images(rows)
        logger.info(f"Loaded {len(images)} images for user {user_id}")
        return images

    async def delete_user_image(self, image_id: str) -> None:
        try:
            response = await self._client.delete(
                f"/{self.table}",
                params={"id": f"eq.{image_id}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise GalleryServiceError(f"Failed to delete image {image_id}: {e}") from e
        logger.info(f"Deleted image {image_id}")

    async def aclose(self) -> None:
        await self._client.aclose()


class JsonGalleryStore:
    """Gallery store kept in a single JSON file.

    The file holds a list of image objects, each carrying a ``user_id``.  New
    entries are inserted at the front, so persisted order is newest first.

    Args:
        gallery_db: Path to ``gallery.json``.
    """

    def __init__(self, gallery_db: Path) -> None:
        self.gallery_db = Path(gallery_db)

    def load_entries(self) -> list[GalleryImage]:
        """Load and reconcile the stored entries.

        - missing or unreadable file: empty gallery
        - non-object entries or entries failing validation: dropped

        When entries are dropped, the cleaned list is written back.

        Raises:
            GalleryServiceError: If the file exists but cannot be read.
        """
        if not self.gallery_db.exists():
            return []

        try:
            with open(self.gallery_db, encoding="utf-8") as handle:
                raw_entries = json.load(handle)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring unreadable gallery file {self.gallery_db}")
            raw_entries = []
        except OSError as e:
            raise GalleryServiceError(f"Cannot read {self.gallery_db}: {e}") from e

        if not isinstance(raw_entries, list):
            raw_entries = []

        entries: list[GalleryImage] = []
        for raw in raw_entries:
            if not isinstance(raw, dict):
                continue
            try:
                entries.append(GalleryImage.model_validate(raw))
            except ValidationError:
                logger.warning(f"Dropping malformed gallery entry {raw.get('id')!r}")

        if len(entries) != len(raw_entries):
            self.save_entries(entries)

        return entries

    def save_entries(self, entries: list[GalleryImage]) -> None:
        """Persist *entries* to disk.

        Raises:
            GalleryServiceError: If the file cannot be written.
        """
        try:
            self.gallery_db.parent.mkdir(parents=True, exist_ok=True)
            with open(self.gallery_db, "w", encoding="utf-8") as handle:
                json.dump([entry.model_dump() for entry in entries], handle, indent=2)
        except OSError as e:
            raise GalleryServiceError(f"Cannot write {self.gallery_db}: {e}") from e

    def add_image(self, image: GalleryImage) -> None:
        """Insert *image* at the front of the gallery."""
        entries = self.load_entries()
        entries.insert(0, image)
        self.save_entries(entries)

    async def get_user_images(self, user_id: str) -> list[GalleryImage]:
        images = [entry for entry in self.load_entries() if entry.user_id == user_id]
        logger.info(f"Loaded {len(images)} images for user {user_id}")
        return images

    async def delete_user_image(self, image_id: str) -> None:
        entries = self.load_entries()
        remaining = [entry for entry in entries if entry.id != image_id]
        if len(remaining) != len(entries):
            self.save_entries(remaining)
            logger.info(f"Deleted image {image_id}")


def create_gallery_store(cfg) -> SupabaseGalleryStore | JsonGalleryStore:
    """Build the store selected by ``cfg.gallery_backend``.

    Args:
        cfg: A :class:`~fluxgallery.core.config.FluxGalleryConfig`.

    Raises:
        ValueError: If the Supabase backend is selected without a URL or key.
    """
    if cfg.gallery_backend == "supabase":
        if not cfg.supabase_url or not cfg.supabase_key:
            raise ValueError(
                "FLUXGALLERY_SUPABASE_URL and FLUXGALLERY_SUPABASE_KEY are required "
                "for the supabase gallery backend"
            )
        return SupabaseGalleryStore(cfg.supabase_url, cfg.supabase_key, cfg.supabase_table)
    return JsonGalleryStore(cfg.gallery_db)
