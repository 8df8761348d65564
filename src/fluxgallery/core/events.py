"""In-process publish/subscribe channel for gallery notifications.

A :class:`BroadcastChannel` is created once per application (it lives on
``app.state``) and handed to every component that needs it.  There is no
module-level singleton, so each test can build its own isolated channel.

Dispatch is synchronous: :meth:`BroadcastChannel.publish` calls every
listener registered at the moment of the call, in registration order, and
returns how many listeners were reached.  A listener that raises is logged
and skipped; it never prevents delivery to the remaining listeners.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

GALLERY_UPDATE = "gallery:update"


@dataclass(frozen=True)
class GalleryUpdateEvent:
    """Notification that a user's gallery changed.

    Attributes:
        user_id: Owner of the changed gallery, or ``None`` when unknown.
            Listeners bound to a specific user ignore events for anyone else.
    """

    user_id: str | None = None


Listener = Callable[[object], object]


class BroadcastChannel:
    """Named-event publish/subscribe registry."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def subscribe(self, name: str, listener: Listener) -> Callable[[], None]:
        """Register *listener* for events called *name*.

        Returns:
            A callable that removes this registration.  Calling it more than
            once is harmless.
        """
        self._listeners.setdefault(name, []).append(listener)
        logger.debug(f"Listener subscribed to {name!r}")

        def unsubscribe() -> None:
            self.unsubscribe(name, listener)

        return unsubscribe

    def unsubscribe(self, name: str, listener: Listener) -> None:
        listeners = self._listeners.get(name, [])
        if listener in listeners:
            listeners.remove(listener)
            logger.debug(f"Listener unsubscribed from {name!r}")

    def publish(self, name: str, event: object) -> int:
        """Deliver *event* to the current listeners of *name*.

        Returns:
            Number of listeners the event was handed to.
        """
        # Snapshot so listeners may unsubscribe while being dispatched.
        listeners = list(self._listeners.get(name, []))
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Listener for {name!r} failed: {e}", exc_info=True)
        return len(listeners)

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, []))
