"""Per-user gallery controller.

:class:`GalleryController` owns the in-memory gallery of one user for the
lifetime of one UI session.  It loads the user's images from a
:class:`~fluxgallery.core.gallery_store.GalleryStore`, tracks the selected
image, deletes images, copies prompts, downloads and opens images, and
reloads itself when a ``gallery:update`` event for its user is published on
the application's :class:`~fluxgallery.core.events.BroadcastChannel`.

State machine::

    UNINITIALIZED -> LOADING -> LOADED(images) <-> LOADED(images, selected)
                                  LOADED(images) -> LOADED(images') (delete)
    UNINITIALIZED -> UNAUTHENTICATED (no user id)

Backend failures never escape the controller.  They are logged and stored in
:attr:`GalleryController.error` for inline display, and the image list keeps
its last-known-good value.  Clipboard, download and open failures are
reported through the notifier only.

Loads are not serialized: if a reload triggered by an event overlaps the
initial load, whichever response lands last wins.

Timers (the "copied" indicator reset and the release of transient files made
from data URLs) are asyncio tasks owned by the controller.  :meth:`close`
cancels them and releases every transient file immediately.
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
import tempfile
from collections.abc import Coroutine
from datetime import datetime
from pathlib import Path
from typing import Any

from fluxgallery.core.events import GALLERY_UPDATE, BroadcastChannel
from fluxgallery.core.gallery_store import GalleryImage, GalleryStore
from fluxgallery.core.media import (
    decode_data_url,
    download_filename,
    extension_for,
    fetch_image_bytes,
    is_allowed_image_url,
    is_data_url,
)
from fluxgallery.core.messages import get_message

from .adapters import Clipboard, LoggingNotifier, Notifier, Opener, WebbrowserOpener
from .models import GalleryStatus, display_prompt

logger = logging.getLogger(__name__)


_TIMESTAMP_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2})?)?)"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}(?::?\d{2})?)?$"
)


def parse_created_at(created_at: str) -> datetime:
    """Parse a backend timestamp.

    Accepts what hosted databases emit and ``datetime.fromisoformat`` rejects
    on older interpreters: a ``Z`` suffix, 1 to 9 fractional digits, and
    ``+HH`` or ``+HHMM`` offsets.

    Raises:
        ValueError: If *created_at* is not an ISO 8601 timestamp.
    """
    match = _TIMESTAMP_RE.match(created_at.strip())
    if match is None:
        raise ValueError(f"Not an ISO timestamp: {created_at!r}")

    text = match["base"]
    if match["fraction"]:
        text += "." + match["fraction"][:6].ljust(6, "0")
    offset = match["offset"]
    if offset:
        if offset in ("Z", "z"):
            offset = "+00:00"
        digits = offset[1:].replace(":", "")
        text += f"{offset[0]}{digits[:2]}:{digits[2:4] or '00'}"
    return datetime.fromisoformat(text)


def format_created_at(created_at: str, locale: str = "en") -> str:
    """Format a stored timestamp for the detail view, in local time.

    Timestamps without an offset are taken as already local.  Unparseable
    values are returned unchanged.
    """
    try:
        moment = parse_created_at(created_at)
    except ValueError:
        return created_at
    if moment.tzinfo is not None:
        moment = moment.astimezone()

    if locale == "ko":
        meridiem = "오전" if moment.hour < 12 else "오후"
        hour = moment.hour % 12 or 12
        return (
            f"{moment.year}년 {moment.month}월 {moment.day}일 "
            f"{meridiem} {hour:02d}:{moment.minute:02d}"
        )
    return moment.strftime("%B %d, %Y, %I:%M %p")


class GalleryController:
    """In-memory gallery of one user.

    Args:
        user_id: User the controller is bound to.  ``None`` means nobody is
            logged in; :meth:`load` then moves to ``UNAUTHENTICATED``.
        store: Backend data service.
        channel: Application broadcast channel.
        clipboard: Destination of :meth:`copy_prompt`.
        notifier: Transient notifications.  Defaults to the log.
        opener: Opens URLs for :meth:`open_external`.  Defaults to the
            system browser.
        downloads_dir: Where :meth:`download` writes files.
        image_hosts: Remote hosts :meth:`download` may fetch from.
        locale: Language of user-facing messages.
        copy_feedback_seconds: How long :attr:`copied` stays ``True``.
        object_url_ttl_seconds: How long a transient file made from a data
            URL is kept before it is deleted.
        transient_dir: Where transient files are written.  Defaults to a
            private temporary directory removed on :meth:`close`.
        transient_url_prefix: URL path under which *transient_dir* is
            served.  When set, the opener receives
            ``<prefix>/<file name>`` instead of a ``file://`` URI.
    """

    def __init__(
        self,
        user_id: str | None,
        store: GalleryStore,
        channel: BroadcastChannel,
        *,
        clipboard: Clipboard,
        notifier: Notifier | None = None,
        opener: Opener | None = None,
        downloads_dir: Path | None = None,
        image_hosts: list[str] | None = None,
        locale: str = "en",
        copy_feedback_seconds: float = 1.0,
        object_url_ttl_seconds: float = 60.0,
        transient_dir: Path | None = None,
        transient_url_prefix: str | None = None,
    ) -> None:
        self.user_id = user_id
        self.store = store
        self.channel = channel
        self.clipboard = clipboard
        self.notifier = notifier or LoggingNotifier()
        self.opener = opener or WebbrowserOpener()
        self.downloads_dir = Path(downloads_dir) if downloads_dir else Path("downloads")
        self.image_hosts = list(image_hosts or [])
        self.locale = locale
        self.copy_feedback_seconds = copy_feedback_seconds
        self.object_url_ttl_seconds = object_url_ttl_seconds

        self.status = GalleryStatus.UNINITIALIZED
        self.images: list[GalleryImage] = []
        self.selected: GalleryImage | None = None
        self.deleting: set[str] = set()
        self.error = ""
        self.copied = False
        # Bumped on every visible change so views can skip redundant renders.
        self.revision = 0

        self._unsubscribe = None
        self._tasks: set[asyncio.Task] = set()
        self._copy_reset: asyncio.Task | None = None
        self._transient_dir: Path | None = Path(transient_dir) if transient_dir else None
        self._owns_transient_dir = False
        self._transient_url_prefix = transient_url_prefix.rstrip("/") if transient_url_prefix else None
        self._transient_files: dict[Path, asyncio.Task | None] = {}
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> None:
        """Start listening for gallery updates and perform the initial load."""
        if self._unsubscribe is None:
            self._unsubscribe = self.channel.subscribe(GALLERY_UPDATE, self.on_external_update)
        await self.load()

    def close(self) -> None:
        """Stop listening, cancel pending work, and release transient files.

        Safe to call more than once.
        """
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

        if self._copy_reset is not None:
            self._copy_reset.cancel()
            self._copy_reset = None
        self.copied = False

        for path in list(self._transient_files):
            self._release_transient(path)
        if self._owns_transient_dir and self._transient_dir is not None:
            shutil.rmtree(self._transient_dir, ignore_errors=True)
            self._transient_dir = None
            self._owns_transient_dir = False

        self._closed = True
        logger.debug(f"Gallery controller for {self.user_id} closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def _touch(self) -> None:
        self.revision += 1

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Loading and selection
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Fetch the bound user's images.

        Without a user id the controller becomes ``UNAUTHENTICATED`` and no
        request is made.  On failure the error message is set and the list
        keeps its previous contents.
        """
        if not self.user_id:
            self.status = GalleryStatus.UNAUTHENTICATED
            self._touch()
            return

        self.status = GalleryStatus.LOADING
        self._touch()
        try:
            images = await self.store.get_user_images(self.user_id)
        except Exception as e:
            logger.error(f"Error loading gallery for {self.user_id}: {e}", exc_info=True)
            self.error = get_message("gallery_load_failed", self.locale)
        else:
            self.images = self._own_images(images)
            self.error = ""
            if self.selected is not None and self.find(self.selected.id) is None:
                self.selected = None
        finally:
            self.status = GalleryStatus.LOADED
            self._touch()

    def _own_images(self, images: list[GalleryImage]) -> list[GalleryImage]:
        own = [img for img in images if img.user_id is None or img.user_id == self.user_id]
        if len(own) != len(images):
            logger.warning(
                f"Dropped {len(images) - len(own)} images not owned by {self.user_id}"
            )
        return own

    def find(self, image_id: str) -> GalleryImage | None:
        return next((img for img in self.images if img.id == image_id), None)

    def select(self, image: GalleryImage) -> None:
        self.selected = image
        self._touch()

    def deselect(self) -> None:
        if self.selected is not None:
            self.selected = None
            self._touch()

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def is_deleting(self, image_id: str) -> bool:
        """Whether a delete of *image_id* is in flight (its control is disabled)."""
        return image_id in self.deleting

    async def delete(self, image_id: str) -> bool:
        """Delete an image from the backend and from the in-memory list.

        A call for an id that is already being deleted is ignored.

        Returns:
            ``True`` if the image was deleted.
        """
        if image_id in self.deleting:
            logger.debug(f"Delete of {image_id} already in progress")
            return False

        self.deleting.add(image_id)
        self._touch()
        try:
            await self.store.delete_user_image(image_id)
        except Exception as e:
            logger.error(f"Error deleting image {image_id}: {e}", exc_info=True)
            self.error = get_message("gallery_delete_failed", self.locale)
            return False
        else:
            self.images = [img for img in self.images if img.id != image_id]
            if self.selected is not None and self.selected.id == image_id:
                self.selected = None
            return True
        finally:
            self.deleting.discard(image_id)
            self._touch()

    # ------------------------------------------------------------------
    # Clipboard, download, external viewing
    # ------------------------------------------------------------------

    async def copy_prompt(self, prompt: str) -> bool:
        """Copy the displayed form of *prompt* to the clipboard.

        On success :attr:`copied` turns on and is switched off again after
        ``copy_feedback_seconds``.  A new copy restarts that timer.

        A clipboard with a true ``deferred`` attribute only queues the text
        for another party to write; the outcome is then reported later via
        :meth:`finish_copy` and nothing is shown until that happens.

        Returns:
            ``True`` if the clipboard write succeeded or was queued.
        """
        text = display_prompt(prompt)
        try:
            await self.clipboard.write_text(text)
        except Exception as e:
            logger.error(f"Error copying prompt: {e}", exc_info=True)
            self.finish_copy(False)
            return False

        if not getattr(self.clipboard, "deferred", False):
            self.finish_copy(True)
        return True

    def finish_copy(self, succeeded: bool) -> None:
        """Report the outcome of a clipboard write and notify the user."""
        if not succeeded:
            self._set_copied(False)
            self.notifier.notify(
                get_message("copy_failed_title", self.locale),
                get_message("copy_failed_body", self.locale),
                "destructive",
            )
            return

        self._set_copied(True)
        self._copy_reset = self._spawn(self._clear_copied_later())
        self.notifier.notify(
            get_message("copy_succeeded_title", self.locale),
            get_message("copy_succeeded_body", self.locale),
        )

    def _set_copied(self, value: bool) -> None:
        if self._copy_reset is not None:
            self._copy_reset.cancel()
            self._copy_reset = None
        self.copied = value
        self._touch()

    async def _clear_copied_later(self) -> None:
        await asyncio.sleep(self.copy_feedback_seconds)
        self._copy_reset = None
        self.copied = False
        self._touch()

    async def download(self, url: str, prompt: str) -> Path | None:
        """Save the image behind *url* into the downloads directory.

        The filename is derived from the start of *prompt* and the current
        time (see :func:`~fluxgallery.core.media.download_filename`).

        Returns:
            Path of the saved file, or ``None`` if the download failed.
        """
        try:
            if not is_allowed_image_url(url, self.image_hosts):
                raise ValueError(f"Image host not allowed: {url[:80]}")
            data = await fetch_image_bytes(url)
            self.downloads_dir.mkdir(parents=True, exist_ok=True)
            path = self.downloads_dir / download_filename(prompt)
            path.write_bytes(data)
        except Exception as e:
            logger.error(f"Error downloading image: {e}", exc_info=True)
            self.notifier.notify(
                get_message("download_failed_title", self.locale),
                get_message("download_failed_body", self.locale),
                "destructive",
            )
            return None

        logger.info(f"Downloaded image to {path}")
        return path

    async def open_external(self, url: str) -> bool:
        """Open *url* in a new viewing context.

        Data URLs are first written to a transient file, which is deleted
        after ``object_url_ttl_seconds`` or when the controller closes,
        whichever comes first.

        Returns:
            ``True`` if the URL was handed to the opener.
        """
        path: Path | None = None
        try:
            if is_data_url(url):
                path = self._write_transient(url)
                self.opener.open(self._transient_url(path))
                self._transient_files[path] = self._spawn(self._release_later(path))
            else:
                self.opener.open(url)
        except Exception as e:
            logger.error(f"Error opening image: {e}", exc_info=True)
            if path is not None:
                self._release_transient(path)
            self.notifier.notify(
                get_message("open_failed_title", self.locale),
                get_message("open_failed_body", self.locale),
                "destructive",
            )
            return False
        return True

    def _write_transient(self, url: str) -> Path:
        media_type, data = decode_data_url(url)
        if self._transient_dir is None:
            self._transient_dir = Path(tempfile.mkdtemp(prefix="fluxgallery-"))
            self._owns_transient_dir = True
        else:
            self._transient_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            dir=self._transient_dir, suffix=extension_for(media_type), delete=False
        ) as handle:
            handle.write(data)
        path = Path(handle.name)
        self._transient_files[path] = None
        return path

    def _transient_url(self, path: Path) -> str:
        if self._transient_url_prefix:
            return f"{self._transient_url_prefix}/{path.name}"
        return path.as_uri()

    async def _release_later(self, path: Path) -> None:
        await asyncio.sleep(self.object_url_ttl_seconds)
        self._transient_files[path] = None
        self._release_transient(path)

    def _release_transient(self, path: Path) -> None:
        timer = self._transient_files.pop(path, None)
        if timer is not None and not timer.done():
            timer.cancel()
        path.unlink(missing_ok=True)

    @property
    def transient_files(self) -> list[Path]:
        return list(self._transient_files)

    # ------------------------------------------------------------------
    # Broadcast
    # ------------------------------------------------------------------

    def on_external_update(self, event: object) -> asyncio.Task | None:
        """Reload when *event* concerns this controller's user.

        Returns:
            The scheduled reload task, or ``None`` if the event was ignored.
        """
        if self._closed or getattr(event, "user_id", None) != self.user_id:
            return None
        logger.info(f"Gallery update received for {self.user_id}; reloading")
        return self._spawn(self.load())
