"""Unit tests for fluxgallery.core.events."""

from fluxgallery.core.events import GALLERY_UPDATE, BroadcastChannel, GalleryUpdateEvent


class TestBroadcastChannel:
    """Test subscribe/publish/unsubscribe behavior."""

    def test_publish_reaches_all_listeners_in_order(self, channel):
        received = []
        channel.subscribe(GALLERY_UPDATE, lambda e: received.append(("first", e)))
        channel.subscribe(GALLERY_UPDATE, lambda e: received.append(("second", e)))

        event = GalleryUpdateEvent(user_id="u1")
        assert channel.publish(GALLERY_UPDATE, event) == 2
        assert received == [("first", event), ("second", event)]

    def test_publish_without_listeners(self, channel):
        assert channel.publish(GALLERY_UPDATE, GalleryUpdateEvent()) == 0

    def test_events_are_scoped_by_name(self, channel):
        received = []
        channel.subscribe("other", received.append)
        channel.publish(GALLERY_UPDATE, GalleryUpdateEvent())
        assert received == []

    def test_unsubscribe_callable(self, channel):
        received = []
        unsubscribe = channel.subscribe(GALLERY_UPDATE, received.append)
        unsubscribe()
        unsubscribe()

        channel.publish(GALLERY_UPDATE, GalleryUpdateEvent())
        assert received == []
        assert channel.listener_count(GALLERY_UPDATE) == 0

    def test_unsubscribe_unknown_listener_is_harmless(self, channel):
        channel.unsubscribe(GALLERY_UPDATE, print)

    def test_failing_listener_does_not_block_others(self, channel):
        received = []

        def broken(event):
            raise RuntimeError("listener bug")

        channel.subscribe(GALLERY_UPDATE, broken)
        channel.subscribe(GALLERY_UPDATE, received.append)

        assert channel.publish(GALLERY_UPDATE, GalleryUpdateEvent(user_id="u1")) == 2
        assert len(received) == 1

    def test_listener_may_unsubscribe_during_dispatch(self, channel):
        calls = []

        def once(event):
            calls.append(event)
            unsubscribe()

        unsubscribe = channel.subscribe(GALLERY_UPDATE, once)
        channel.publish(GALLERY_UPDATE, GalleryUpdateEvent())
        channel.publish(GALLERY_UPDATE, GalleryUpdateEvent())
        assert len(calls) == 1

    def test_channels_are_independent(self):
        first, second = BroadcastChannel(), BroadcastChannel()
        received = []
        second.subscribe(GALLERY_UPDATE, received.append)

        first.publish(GALLERY_UPDATE, GalleryUpdateEvent())
        assert received == []


class TestGalleryUpdateEvent:
    def test_user_id_defaults_to_none(self):
        assert GalleryUpdateEvent().user_id is None

    def test_events_compare_by_value(self):
        assert GalleryUpdateEvent("u1") == GalleryUpdateEvent(user_id="u1")
