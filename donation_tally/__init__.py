"""Donation records, live totals and the tab-to-tab sync that keeps them current."""

from .channel import ChangeChannel, ChangeSource, StorageChangeWatcher, VisibilityWatcher
from .config import TallySettings, configure_logging
from .counter import AnimatedCounter, CounterState
from .session import TallySession
from .storage import OriginStorage, StorageEvent
from .store import (
    DonationRecord,
    DonationStore,
    DonationTotals,
    format_amount_input,
    format_currency,
    format_number,
    summarize,
)
from .views import DisplayView, MutationView

__all__ = [
    "AnimatedCounter",
    "ChangeChannel",
    "ChangeSource",
    "CounterState",
    "DisplayView",
    "DonationRecord",
    "DonationStore",
    "DonationTotals",
    "format_amount_input",
    "format_currency",
    "format_number",
    "configure_logging",
    "MutationView",
    "OriginStorage",
    "StorageChangeWatcher",
    "StorageEvent",
    "summarize",
    "TallySession",
    "TallySettings",
    "VisibilityWatcher",
]
