"""Tests for fluxgallery.core.gallery_store — gallery data services.

Tests cover:
- Validation of backend rows into GalleryImage models.
- The JSON file store: filtering, ordering, deletion, reconciliation.
- The Supabase store's PostgREST requests and error wrapping (httpx mock
  transport).
- Backend selection from configuration.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from fluxgallery.core.gallery_store import (
    GalleryImage,
    GalleryServiceError,
    JsonGalleryStore,
    SupabaseGalleryStore,
    create_gallery_store,
    parse_gallery_images,
)

ROW = {
    "id": "img-1",
    "image_url": "https://fal.media/files/1.png",
    "prompt": "A cat",
    "created_at": "2024-05-01T12:34:00+00:00",
    "user_id": "u1",
}


class TestParseGalleryImages:
    """Test parse_gallery_images()."""

    def test_valid_rows(self):
        images = parse_gallery_images([ROW])
        assert images == [GalleryImage(**ROW)]

    def test_missing_prompt_defaults_to_empty(self):
        row = {k: v for k, v in ROW.items() if k != "prompt"}
        assert parse_gallery_images([row])[0].prompt == ""

    def test_integer_id_is_coerced(self):
        assert parse_gallery_images([{**ROW, "id": 42}])[0].id == "42"

    def test_non_list_payload_raises(self):
        with pytest.raises(GalleryServiceError):
            parse_gallery_images({"message": "nope"})

    def test_malformed_row_raises(self):
        with pytest.raises(GalleryServiceError):
            parse_gallery_images([{"id": "x"}])


class TestJsonGalleryStore:
    """Test the local JSON gallery store."""

    @pytest.fixture
    def json_store(self, temp_dir):
        return JsonGalleryStore(temp_dir / "gallery.json")

    def test_missing_file_is_empty(self, json_store):
        assert json_store.load_entries() == []
        assert asyncio.run(json_store.get_user_images("u1")) == []

    def test_add_image_inserts_newest_first(self, json_store, image_factory):
        json_store.add_image(image_factory("old"))
        json_store.add_image(image_factory("new"))
        assert [e.id for e in json_store.load_entries()] == ["new", "old"]

    def test_get_user_images_filters_by_owner(self, json_store, image_factory):
        json_store.add_image(image_factory("a", user_id="u1"))
        json_store.add_image(image_factory("c", user_id="u2"))

        images = asyncio.run(json_store.get_user_images("u1"))
        assert [img.id for img in images] == ["a"]

    def test_delete_user_image(self, json_store, image_factory):
        json_store.add_image(image_factory("a"))
        json_store.add_image(image_factory("b"))

        asyncio.run(json_store.delete_user_image("a"))
        assert [e.id for e in json_store.load_entries()] == ["b"]

    def test_delete_unknown_id_is_noop(self, json_store, image_factory):
        json_store.add_image(image_factory("a"))
        asyncio.run(json_store.delete_user_image("zzz"))
        assert len(json_store.load_entries()) == 1

    def test_malformed_entries_are_dropped_and_persisted(self, json_store):
        json_store.gallery_db.write_text(json.dumps([ROW, "junk", {"id": "no-url"}]))

        entries = json_store.load_entries()
        assert [e.id for e in entries] == ["img-1"]
        assert len(json.loads(json_store.gallery_db.read_text())) == 1

    def test_unreadable_json_is_empty(self, json_store):
        json_store.gallery_db.write_text("{not json")
        assert json_store.load_entries() == []

    def test_non_list_document_is_empty(self, json_store):
        json_store.gallery_db.write_text(json.dumps({"images": []}))
        assert json_store.load_entries() == []


class TestSupabaseGalleryStore:
    """Test the Supabase store against an httpx mock transport."""

    def _store(self, handler) -> SupabaseGalleryStore:
        client = httpx.AsyncClient(
            base_url="https://project.supabase.co/rest/v1",
            transport=httpx.MockTransport(handler),
        )
        return SupabaseGalleryStore("https://project.supabase.co", "key", client=client)

    def test_get_user_images_query(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[ROW])

        images = asyncio.run(self._store(handler).get_user_images("u1"))

        assert [img.id for img in images] == ["img-1"]
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/images"
        assert request.url.params["user_id"] == "eq.u1"
        assert request.url.params["order"] == "created_at.desc"
        assert request.url.params["select"] == "*"

    def test_delete_user_image_query(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        asyncio.run(self._store(handler).delete_user_image("img-1"))

        assert seen[0].method == "DELETE"
        assert seen[0].url.params["id"] == "eq.img-1"

    def test_http_error_is_wrapped(self):
        store = self._store(lambda request: httpx.Response(500, json={"message": "boom"}))
        with pytest.raises(GalleryServiceError):
            asyncio.run(store.get_user_images("u1"))

    def test_delete_error_is_wrapped(self):
        store = self._store(lambda request: httpx.Response(403))
        with pytest.raises(GalleryServiceError):
            asyncio.run(store.delete_user_image("img-1"))

    def test_invalid_json_is_wrapped(self):
        store = self._store(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(GalleryServiceError):
            asyncio.run(store.get_user_images("u1"))

    def test_connection_error_is_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(GalleryServiceError):
            asyncio.run(self._store(handler).get_user_images("u1"))

    def test_default_client_sends_auth_headers(self):
        store = SupabaseGalleryStore("https://project.supabase.co/", "secret")
        headers = store._client.headers
        assert headers["apikey"] == "secret"
        assert headers["Authorization"] == "Bearer secret"
        assert str(store._client.base_url).startswith("https://project.supabase.co/rest/v1")
        asyncio.run(store.aclose())


class TestCreateGalleryStore:
    def test_local_backend(self, test_config):
        store = create_gallery_store(test_config)
        assert isinstance(store, JsonGalleryStore)
        assert store.gallery_db == test_config.gallery_db

    def test_supabase_backend(self, test_config):
        test_config.gallery_backend = "supabase"
        test_config.supabase_url = "https://project.supabase.co"
        test_config.supabase_key = "key"
        store = create_gallery_store(test_config)
        assert isinstance(store, SupabaseGalleryStore)
        asyncio.run(store.aclose())

    def test_supabase_without_credentials_raises(self, test_config):
        test_config.gallery_backend = "supabase"
        with pytest.raises(ValueError):
            create_gallery_store(test_config)
