"""Tests for fluxgallery.core.config — configuration management.

Tests cover:
- Default values for the configuration fields.
- Environment variable overrides via the FLUXGALLERY_ prefix.
- Automatic directory creation on initialisation.
- Pydantic validation constraints (port range, locale and backend literals).
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from fluxgallery.core.config import FluxGalleryConfig


def _config(temp_dir: Path, **overrides) -> FluxGalleryConfig:
    return FluxGalleryConfig(
        _env_file=None,
        data_dir=temp_dir / "data",
        downloads_dir=temp_dir / "downloads",
        **overrides,
    )


class TestConfigDefaults:
    """Verify that FluxGalleryConfig provides sensible defaults."""

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch):
        for name in (
            "FLUXGALLERY_COMPLETION_MODEL",
            "FLUXGALLERY_LOCALE",
            "FLUXGALLERY_SERVER_PORT",
            "FLUXGALLERY_IMAGE_HOSTS",
        ):
            monkeypatch.delenv(name, raising=False)

    def test_completion_defaults(self, temp_dir):
        cfg = _config(temp_dir)
        assert cfg.completion_model == "gpt-4o"
        assert cfg.completion_temperature == 0.7
        assert cfg.completion_max_tokens == 300

    def test_default_style(self, temp_dir):
        assert _config(temp_dir).default_style == "Hyper-realism"

    def test_default_image_hosts(self, temp_dir):
        assert _config(temp_dir).image_hosts == ["avatar.vercel.sh", "v3.fal.media", "fal.media"]

    def test_default_timers(self, temp_dir):
        cfg = _config(temp_dir)
        assert cfg.copy_feedback_seconds == 1.0
        assert cfg.object_url_ttl_seconds == 60.0

    def test_default_server_port(self, temp_dir):
        assert _config(temp_dir).server_port == 7860

    def test_default_locale(self, temp_dir):
        assert _config(temp_dir).locale == "en"


class TestEnvironmentOverrides:
    """Verify FLUXGALLERY_* environment variables override defaults."""

    def test_model_override(self, monkeypatch, temp_dir):
        monkeypatch.setenv("FLUXGALLERY_COMPLETION_MODEL", "gpt-4o-mini")
        assert _config(temp_dir).completion_model == "gpt-4o-mini"

    def test_locale_override(self, monkeypatch, temp_dir):
        monkeypatch.setenv("FLUXGALLERY_LOCALE", "ko")
        assert _config(temp_dir).locale == "ko"

    def test_image_hosts_from_json(self, monkeypatch, temp_dir):
        monkeypatch.setenv("FLUXGALLERY_IMAGE_HOSTS", '["cdn.example.com"]')
        assert _config(temp_dir).image_hosts == ["cdn.example.com"]


class TestDirectories:
    def test_directories_are_created(self, temp_dir):
        cfg = _config(temp_dir)
        assert cfg.data_dir.is_dir()
        assert cfg.downloads_dir.is_dir()

    def test_gallery_db_path(self, temp_dir):
        assert _config(temp_dir).gallery_db == temp_dir / "data" / "gallery.json"

    def test_transient_dir_path(self, temp_dir):
        assert _config(temp_dir).transient_dir == temp_dir / "data" / "transient"


class TestValidation:
    """Verify Pydantic constraints reject bad values."""

    @pytest.mark.parametrize("port", [80, 70000])
    def test_port_out_of_range(self, temp_dir, port):
        with pytest.raises(ValidationError):
            _config(temp_dir, server_port=port)

    def test_unknown_locale(self, temp_dir):
        with pytest.raises(ValidationError):
            _config(temp_dir, locale="fr")

    def test_unknown_backend(self, temp_dir):
        with pytest.raises(ValidationError):
            _config(temp_dir, gallery_backend="firebase")

    def test_negative_temperature(self, temp_dir):
        with pytest.raises(ValidationError):
            _config(temp_dir, completion_temperature=-0.1)
