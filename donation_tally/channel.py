"""One "donations may have changed" channel fed by several signal sources."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from .storage import OriginStorage

logger = logging.getLogger(__name__)


class ChangeSource(str, Enum):
    STORAGE = "storage"
    SAME_DOCUMENT = "donationsUpdated"
    VISIBILITY = "visibilitychange"


Listener = Callable[[ChangeSource], None]


class ChangeChannel:
    """Fan-out of reload signals to every subscribed view of one tab.

    Signals carry no payload and no ordering. Listeners are expected to
    re-read the store on every signal.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, source: ChangeSource) -> None:
        logger.debug("Donations changed (%s); notifying %d listener(s)", source.value, len(self._listeners))
        for listener in list(self._listeners):
            listener(source)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


class StorageChangeWatcher:
    """Turns changes committed by other tabs into channel signals."""

    def __init__(self, storage: OriginStorage, channel: ChangeChannel, key: str) -> None:
        self.storage = storage
        self.channel = channel
        self.key = key

    def poll(self) -> bool:
        events = self.storage.poll_changes()
        # A cleared storage reports key None, which also affects our key.
        if any(event.key in (self.key, None) for event in events):
            self.channel.publish(ChangeSource.STORAGE)
            return True
        return False


class VisibilityWatcher:
    def __init__(self, channel: ChangeChannel, hidden: bool = False) -> None:
        self.channel = channel
        self.hidden = hidden

    def set_hidden(self, hidden: bool) -> None:
        was_hidden = self.hidden
        self.hidden = hidden
        if was_hidden and not hidden:
            self.channel.publish(ChangeSource.VISIBILITY)


def dispatch_donations_updated(channel: ChangeChannel) -> None:
    channel.publish(ChangeSource.SAME_DOCUMENT)
