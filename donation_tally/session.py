"""Wiring for one open tab: storage handle, store, channel and views."""

from __future__ import annotations

import weakref

from .channel import ChangeChannel, StorageChangeWatcher, VisibilityWatcher
from .config import TallySettings
from .storage import OriginStorage
from .store import Clock, DonationStore, utc_now
from .views import Alert, Confirm, DisplayView, MutationView


class TallySession:
    def __init__(self, settings: TallySettings, *, now: Clock = utc_now) -> None:
        self.settings = settings
        self.now = now
        self.storage = OriginStorage(settings.db_path)
        # Streamlit drops session state without a hook, so close on collection too.
        self._finalizer = weakref.finalize(self, self.storage.close)
        self.store = DonationStore(self.storage, key=settings.storage_key)
        self.channel = ChangeChannel()
        self.storage_watcher = StorageChangeWatcher(self.storage, self.channel, settings.storage_key)
        self.visibility = VisibilityWatcher(self.channel)
        self.display = DisplayView(
            self.store,
            self.channel,
            goal=settings.monthly_goal,
            duration=settings.animation_duration,
            steps=settings.animation_steps,
            threshold=settings.visibility_threshold,
        )

    def open_mutation_view(self, *, alert: Alert, confirm: Confirm) -> MutationView:
        view = MutationView(self.store, self.channel, alert=alert, confirm=confirm, now=self.now)
        view.mount()
        return view

    def poll(self) -> bool:
        """Pick up writes other tabs committed since the last poll."""
        return self.storage_watcher.poll()

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def close(self) -> None:
        self.display.unmount()
        self._finalizer()

