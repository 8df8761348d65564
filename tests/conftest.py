"""Shared pytest fixtures for Flux Gallery tests."""

import asyncio
import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

# The module-level config is built on import; keep its directories out of the
# working tree.
_SESSION_DIR = Path(tempfile.mkdtemp(prefix="fluxgallery-tests-"))
os.environ.setdefault("FLUXGALLERY_DATA_DIR", str(_SESSION_DIR / "data"))
os.environ.setdefault("FLUXGALLERY_DOWNLOADS_DIR", str(_SESSION_DIR / "downloads"))
os.environ.setdefault("FLUXGALLERY_GALLERY_BACKEND", "local")

import pytest  # noqa: E402

from fluxgallery.core.config import FluxGalleryConfig  # noqa: E402
from fluxgallery.core.events import BroadcastChannel  # noqa: E402
from fluxgallery.core.gallery_store import GalleryImage, GalleryServiceError  # noqa: E402
from fluxgallery.ui.gallery import GalleryController  # noqa: E402


class FakeCompletionClient:
    """Completion client returning a canned answer or raising a canned error."""

    def __init__(self, response: str | None = "", error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    async def complete(self, *, model, messages, temperature, max_tokens):
        self.calls.append(
            {
                "model": model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if self.error is not None:
            raise self.error
        return self.response


class InMemoryGalleryStore:
    """Gallery store keeping images per user in a dict."""

    def __init__(self, images: dict[str, list[GalleryImage]] | None = None):
        self.images = {user: list(items) for user, items in (images or {}).items()}
        self.load_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.load_calls: list[str] = []
        self.delete_calls: list[str] = []

    async def get_user_images(self, user_id: str) -> list[GalleryImage]:
        self.load_calls.append(user_id)
        if self.load_error is not None:
            raise self.load_error
        return list(self.images.get(user_id, []))

    async def delete_user_image(self, image_id: str) -> None:
        self.delete_calls.append(image_id)
        # Yield once so callers can observe the in-flight state.
        await asyncio.sleep(0)
        if self.delete_error is not None:
            raise self.delete_error
        for user, items in self.images.items():
            self.images[user] = [img for img in items if img.id != image_id]


class FakeClipboard:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.text: str | None = None

    async def write_text(self, text: str) -> None:
        if self.fail:
            raise PermissionError("clipboard access denied")
        self.text = text


class RecordingNotifier:
    def __init__(self):
        self.notifications: list[tuple[str, str, str]] = []

    def notify(self, title, description, variant="default"):
        self.notifications.append((title, description, variant))


class RecordingOpener:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.opened: list[str] = []

    def open(self, url: str) -> None:
        if self.fail:
            raise RuntimeError("no browser")
        self.opened.append(url)


def make_image(image_id: str, user_id: str | None = "u1", **overrides) -> GalleryImage:
    """Build a GalleryImage with sensible defaults."""
    fields = {
        "id": image_id,
        "image_url": f"https://fal.media/files/{image_id}.png",
        "prompt": f"A detailed prompt for image {image_id}",
        "created_at": "2024-05-01T12:34:00+00:00",
        "user_id": user_id,
    }
    fields.update(overrides)
    return GalleryImage(**fields)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> FluxGalleryConfig:
    """Create a test configuration with temporary directories."""
    return FluxGalleryConfig(
        _env_file=None,
        data_dir=temp_dir / "data",
        downloads_dir=temp_dir / "downloads",
        gallery_backend="local",
        copy_feedback_seconds=0.01,
        object_url_ttl_seconds=0.01,
    )


@pytest.fixture
def channel() -> BroadcastChannel:
    """An isolated broadcast channel."""
    return BroadcastChannel()


@pytest.fixture
def store() -> InMemoryGalleryStore:
    """A store holding two images for u1 and one for u2."""
    return InMemoryGalleryStore(
        {
            "u1": [make_image("a"), make_image("b")],
            "u2": [make_image("c", user_id="u2")],
        }
    )


@pytest.fixture
def clipboard() -> FakeClipboard:
    return FakeClipboard()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def opener() -> RecordingOpener:
    return RecordingOpener()


@pytest.fixture
def make_controller(store, channel, clipboard, notifier, opener, temp_dir):
    """Factory building controllers wired to the fake collaborators."""
    controllers: list[GalleryController] = []

    def factory(user_id: str | None = "u1", **overrides) -> GalleryController:
        kwargs = {
            "clipboard": clipboard,
            "notifier": notifier,
            "opener": opener,
            "downloads_dir": temp_dir / "downloads",
            "image_hosts": ["fal.media", "v3.fal.media"],
            "copy_feedback_seconds": 0.01,
            "object_url_ttl_seconds": 0.01,
        }
        kwargs.update(overrides)
        controller = GalleryController(user_id, kwargs.pop("store", store), channel, **kwargs)
        controllers.append(controller)
        return controller

    yield factory

    for controller in controllers:
        controller.close()


@pytest.fixture
def service_error() -> GalleryServiceError:
    return GalleryServiceError("backend unavailable")


@pytest.fixture
def image_factory():
    """Expose :func:`make_image` to tests."""
    return make_image


@pytest.fixture
def completion_factory():
    """Build FakeCompletionClient instances."""
    return FakeCompletionClient
