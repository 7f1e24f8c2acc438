"""The two views over the donation collection: manage and display."""

from __future__ import annotations

import logging
from typing import Callable

from .channel import ChangeChannel, ChangeSource, dispatch_donations_updated
from .counter import (
    DEFAULT_DURATION_SECONDS,
    DEFAULT_STEPS,
    DEFAULT_VISIBILITY_THRESHOLD,
    AnimatedCounter,
)
from .store import (
    Clock,
    DonationRecord,
    DonationStore,
    DonationTotals,
    build_donation,
    format_amount_input,
    newest_first,
    summarize,
    utc_now,
)

logger = logging.getLogger(__name__)

Alert = Callable[[str], None]
Confirm = Callable[[str], bool]

DELETE_PROMPT = "Are you sure you want to delete this donation?"
ADDED_MESSAGE = "Donation added successfully!"


class MutationView:
    """Form state plus add/delete against the store.

    Works on the copy loaded at mount time; every write replaces the whole
    persisted collection with that copy.
    """

    def __init__(
        self,
        store: DonationStore,
        channel: ChangeChannel,
        *,
        alert: Alert,
        confirm: Confirm,
        now: Clock = utc_now,
    ) -> None:
        self.store = store
        self.channel = channel
        self.alert = alert
        self.confirm = confirm
        self.now = now
        self.donations: list[DonationRecord] = []
        self.amount_text = ""
        self.donor = ""
        self.message = ""

    def mount(self) -> None:
        self.donations = self.store.load()

    def set_amount_input(self, value: str) -> str:
        self.amount_text = format_amount_input(value)
        return self.amount_text

    def clear_form(self) -> None:
        self.amount_text = ""
        self.donor = ""
        self.message = ""

    def add_donation(
        self,
        amount_text: str | None = None,
        donor: str | None = None,
        message: str | None = None,
    ) -> DonationRecord | None:
        """Validate and append one donation; returns None when the input is rejected."""
        if amount_text is None:
            amount_text = self.amount_text
        if donor is None:
            donor = self.donor
        if message is None:
            message = self.message

        try:
            donation = build_donation(
                amount_text=amount_text,
                donor=donor,
                message=message,
                existing=self.donations,
                now=self.now(),
            )
        except ValueError as exc:
            self.alert(str(exc))
            return None

        self.donations = [*self.donations, donation]
        self.store.save(self.donations)
        dispatch_donations_updated(self.channel)
        self.clear_form()
        logger.info("Recorded donation %s of %d from %s", donation.id, donation.amount, donation.donor)
        self.alert(ADDED_MESSAGE)
        return donation

    def delete_donation(self, donation_id: str) -> bool:
        if not self.confirm(DELETE_PROMPT):
            return False

        remaining = [donation for donation in self.donations if donation.id != donation_id]
        if len(remaining) == len(self.donations):
            return False

        self.donations = remaining
        self.store.save(self.donations)
        dispatch_donations_updated(self.channel)
        logger.info("Deleted donation %s", donation_id)
        return True

    def listed_donations(self) -> list[DonationRecord]:
        return newest_first(self.donations)

    @property
    def total_amount(self) -> int:
        return sum(donation.amount for donation in self.donations)


class DisplayView:
    """Cached copy of the collection, reloaded whenever the channel signals."""

    def __init__(
        self,
        store: DonationStore,
        channel: ChangeChannel,
        *,
        goal: int,
        duration: float = DEFAULT_DURATION_SECONDS,
        steps: int = DEFAULT_STEPS,
        threshold: float = DEFAULT_VISIBILITY_THRESHOLD,
    ) -> None:
        self.store = store
        self.channel = channel
        self.goal = goal
        self.donations: list[DonationRecord] = []
        self.reload_count = 0
        counter_options = {"duration": duration, "steps": steps, "threshold": threshold}
        self.total_counter = AnimatedCounter("Total Donations", is_currency=True, **counter_options)
        self.donor_counter = AnimatedCounter("Total Donors", show_plus=True, **counter_options)
        self.goal_counter = AnimatedCounter("Monthly Goal", is_currency=True, **counter_options)
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def counters(self) -> list[AnimatedCounter]:
        return [self.total_counter, self.donor_counter, self.goal_counter]

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    def mount(self) -> None:
        self.reload_donations()
        if self._unsubscribe is None:
            self._unsubscribe = self.channel.subscribe(self._on_change)

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, source: ChangeSource) -> None:
        logger.debug("Reloading donations after %s signal", source.value)
        self.reload_donations()

    def reload_donations(self) -> list[DonationRecord]:
        self.donations = self.store.load()
        self.reload_count += 1
        totals = self.totals
        self.total_counter.set_target(totals.total_amount)
        self.donor_counter.set_target(totals.donor_count)
        self.goal_counter.set_target(totals.goal)
        return self.donations

    @property
    def totals(self) -> DonationTotals:
        return summarize(self.donations, self.goal)
