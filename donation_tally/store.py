"""Donation records and their persistence in origin storage."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable

from .storage import OriginStorage

logger = logging.getLogger(__name__)

DONATIONS_KEY = "donations"
MESSAGE_MAX_LENGTH = 200

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

Clock = Callable[[], datetime]


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def digits_only(value: str | None) -> str:
    if value is None:
        return ""
    return re.sub(r"\D", "", value)


def amount_from_text(value: str | None) -> int | None:
    digits = digits_only(value)
    if not digits:
        return None
    return int(digits)


def format_number(value: int) -> str:
    # id-ID groups thousands with dots.
    return f"{value:,}".replace(",", ".")


def format_currency(amount: int) -> str:
    return f"Rp {format_number(amount)}"


def format_amount_input(value: str | None) -> str:
    """Re-render whatever was typed into the amount field with separators."""
    return format_number(amount_from_text(value) or 0)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _truncate_to_millis(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.replace(microsecond=moment.microsecond // 1000 * 1000)


def format_timestamp(moment: datetime) -> str:
    moment = _truncate_to_millis(moment)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    return _truncate_to_millis(parsed)


@dataclass(frozen=True)
class DonationRecord:
    id: str
    amount: int
    donor: str
    message: str | None
    timestamp: datetime

    def __post_init__(self) -> None:
        amount = self.amount
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValueError(f"Invalid donation amount: {amount!r}")
        donor = _clean(self.donor) if isinstance(self.donor, str) else None
        if donor is None:
            raise ValueError("Donation record has an empty donor.")
        message = _clean(self.message) if isinstance(self.message, str) else None
        # Stored form is canonical so a save/load round trip compares equal.
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "donor", donor)
        object.__setattr__(self, "message", message)
        object.__setattr__(self, "timestamp", _truncate_to_millis(self.timestamp))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "amount": self.amount,
            "donor": self.donor,
        }
        if self.message is not None:
            payload["message"] = self.message
        payload["timestamp"] = format_timestamp(self.timestamp)
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> DonationRecord:
        return cls(
            id=str(payload["id"]),
            amount=payload["amount"],
            donor=payload["donor"],
            message=payload.get("message"),
            timestamp=parse_timestamp(str(payload["timestamp"])),
        )


@dataclass(frozen=True)
class DonationTotals:
    total_amount: int
    donor_count: int
    goal: int

    @property
    def progress_percent(self) -> float:
        if self.goal <= 0:
            return 0.0
        return round(self.total_amount / self.goal * 100, 1)

    @property
    def remaining(self) -> int:
        return max(self.goal - self.total_amount, 0)


def summarize(records: Iterable[DonationRecord], goal: int) -> DonationTotals:
    total_amount = 0
    donor_count = 0
    for record in records:
        total_amount += record.amount
        donor_count += 1
    return DonationTotals(total_amount=total_amount, donor_count=donor_count, goal=goal)


def newest_first(records: Iterable[DonationRecord]) -> list[DonationRecord]:
    return sorted(records, key=lambda record: record.timestamp, reverse=True)


def new_donation_id(existing: Iterable[DonationRecord], now: datetime) -> str:
    """Epoch milliseconds of ``now``, bumped past any id already taken."""
    taken = {record.id for record in existing}
    candidate = (_truncate_to_millis(now) - _EPOCH) // timedelta(milliseconds=1)
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)


def build_donation(
    *,
    amount_text: str | None,
    donor: str | None,
    message: str | None,
    existing: Iterable[DonationRecord],
    now: datetime,
) -> DonationRecord:
    amount = amount_from_text(amount_text)
    cleaned_donor = _clean(donor)
    if not amount or cleaned_donor is None:
        raise ValueError("Please fill in amount and donor name.")

    cleaned_message = _clean(message)
    if cleaned_message is not None and len(cleaned_message) > MESSAGE_MAX_LENGTH:
        raise ValueError(f"Message must be {MESSAGE_MAX_LENGTH} characters or fewer.")

    return DonationRecord(
        id=new_donation_id(existing, now),
        amount=amount,
        donor=cleaned_donor,
        message=cleaned_message,
        timestamp=_truncate_to_millis(now),
    )


class DonationStore:
    """Reads and writes the whole donation collection under one storage key."""

    def __init__(self, storage: OriginStorage, key: str = DONATIONS_KEY) -> None:
        self.storage = storage
        self.key = key

    def load(self) -> list[DonationRecord]:
        """Read the collection; unreadable storage yields an empty list, bad records are skipped."""
        raw = self.storage.get_item(self.key)
        if raw is None:
            return []
        try:
            payload = json.loads(raw)
        except (ValueError, RecursionError):
            logger.exception("Error loading donations from storage key %r", self.key)
            return []
        if not isinstance(payload, list):
            logger.error(
                "Error loading donations from storage key %r: expected a list, got %s",
                self.key,
                type(payload).__name__,
            )
            return []

        records: list[DonationRecord] = []
        for index, item in enumerate(payload):
            try:
                records.append(DonationRecord.from_dict(item))
            except (ValueError, KeyError, TypeError, AttributeError):
                logger.exception(
                    "Error loading donations: skipping record %d under storage key %r",
                    index,
                    self.key,
                )
        return records

    def save(self, records: Iterable[DonationRecord]) -> None:
        payload = [record.to_dict() for record in records]
        self.storage.set_item(self.key, json.dumps(payload))
        logger.debug("Saved %d donation(s) under %r", len(payload), self.key)

    def clear(self) -> None:
        self.storage.remove_item(self.key)
