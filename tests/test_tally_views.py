from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from donation_tally.channel import ChangeChannel, ChangeSource
from donation_tally.config import TallySettings
from donation_tally.session import TallySession
from donation_tally.store import DonationRecord
from donation_tally.views import ADDED_MESSAGE, DELETE_PROMPT


class _Clock:
    def __init__(self) -> None:
        self.current = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def _open_tab(tmp_path, goal: int = 50_000_000) -> TallySession:  # type: ignore[no-untyped-def]
    settings = TallySettings(db_path=tmp_path / "tally_views_test.db", monthly_goal=goal)
    session = TallySession(settings, now=_Clock())
    session.display.mount()
    return session


def _seed(session: TallySession, *entries: tuple[str, str]) -> list[DonationRecord]:
    alerts: list[str] = []
    view = session.open_mutation_view(alert=alerts.append, confirm=lambda prompt: True)
    return [view.add_donation(amount, donor) for amount, donor in entries]  # type: ignore[misc]


def test_add_donation_from_empty_collection(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path)
    alerts: list[str] = []
    view = session.open_mutation_view(alert=alerts.append, confirm=lambda prompt: True)

    donation = view.add_donation("50.000", "Alice")

    assert donation is not None
    assert donation.amount == 50_000
    assert donation.donor == "Alice"
    assert [record.id for record in session.store.load()] == [donation.id]
    assert alerts == [ADDED_MESSAGE]


def test_add_donation_uses_form_fields_and_clears_them(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path)
    view = session.open_mutation_view(alert=lambda message: None, confirm=lambda prompt: True)

    assert view.set_amount_input("125000") == "125.000"
    view.donor = "Budi"
    view.message = "Semangat!"
    donation = view.add_donation()

    assert donation is not None
    assert donation.amount == 125_000
    assert donation.message == "Semangat!"
    assert (view.amount_text, view.donor, view.message) == ("", "", "")


def test_invalid_donation_alerts_and_writes_nothing(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path)
    alerts: list[str] = []
    signals: list[ChangeSource] = []
    session.channel.subscribe(signals.append)
    view = session.open_mutation_view(alert=alerts.append, confirm=lambda prompt: True)
    view.set_amount_input("75000")

    assert view.add_donation(donor="  ") is None

    assert alerts == ["Please fill in amount and donor name."]
    assert session.storage.get_item("donations") is None
    assert signals == []
    assert view.amount_text == "75.000"


def test_add_donation_refreshes_display_in_the_same_tab(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path)
    signals: list[ChangeSource] = []
    session.channel.subscribe(signals.append)

    _seed(session, ("50.000", "Alice"), ("20.000", "Budi"))

    assert signals == [ChangeSource.SAME_DOCUMENT, ChangeSource.SAME_DOCUMENT]
    totals = session.display.totals
    assert totals.total_amount == 70_000
    assert totals.donor_count == 2
    assert totals.goal == 50_000_000


def test_delete_donation_keeps_the_other_record(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path)
    first, second = _seed(session, ("10.000", "Alice"), ("20.000", "Budi"))
    prompts: list[str] = []

    def confirm(prompt: str) -> bool:
        prompts.append(prompt)
        return True

    view = session.open_mutation_view(alert=lambda message: None, confirm=confirm)

    assert view.delete_donation(first.id) is True

    assert prompts == [DELETE_PROMPT]
    assert session.store.load() == [second]
    assert session.display.donations == [second]


def test_declined_delete_has_no_side_effects(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path)
    first, second = _seed(session, ("10.000", "Alice"), ("20.000", "Budi"))
    signals: list[ChangeSource] = []
    session.channel.subscribe(signals.append)
    view = session.open_mutation_view(alert=lambda message: None, confirm=lambda prompt: False)

    assert view.delete_donation(first.id) is False

    assert session.store.load() == [first, second]
    assert signals == []


def test_delete_unknown_id_is_silent(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path)
    _seed(session, ("10.000", "Alice"))
    signals: list[ChangeSource] = []
    session.channel.subscribe(signals.append)
    alerts: list[str] = []
    view = session.open_mutation_view(alert=alerts.append, confirm=lambda prompt: True)

    assert view.delete_donation("does-not-exist") is False

    assert len(session.store.load()) == 1
    assert signals == []
    assert alerts == []


def test_listed_donations_are_newest_first(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path)
    _seed(session, ("10.000", "Alice"), ("20.000", "Budi"), ("30.000", "Citra"))
    view = session.open_mutation_view(alert=lambda message: None, confirm=lambda prompt: True)

    assert [record.donor for record in view.listed_donations()] == ["Citra", "Budi", "Alice"]
    assert view.total_amount == 60_000


def test_reload_is_idempotent(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path)
    _seed(session, ("10.000", "Alice"))

    first = session.display.reload_donations()
    second = session.display.reload_donations()

    assert first == second
    assert session.display.totals.total_amount == 10_000


def test_write_in_another_tab_reaches_display_on_storage_signal(tmp_path) -> None:  # type: ignore[no-untyped-def]
    tab_a = _open_tab(tmp_path)
    tab_b = _open_tab(tmp_path)
    signals_a: list[ChangeSource] = []
    signals_b: list[ChangeSource] = []
    tab_a.channel.subscribe(signals_a.append)
    tab_b.channel.subscribe(signals_b.append)

    _seed(tab_a, ("50.000", "Alice"), ("5.000", "Budi"))

    assert tab_b.display.donations == []
    assert tab_a.poll() is False
    assert tab_b.poll() is True
    assert tab_b.display.donations == tab_a.store.load()
    assert tab_b.display.totals.total_amount == 55_000
    assert signals_b == [ChangeSource.STORAGE]
    assert ChangeSource.STORAGE not in signals_a


def test_unrelated_storage_keys_do_not_trigger_reload(tmp_path) -> None:  # type: ignore[no-untyped-def]
    tab_a = _open_tab(tmp_path)
    tab_b = _open_tab(tmp_path)
    reloads_before = tab_b.display.reload_count

    tab_a.storage.set_item("theme", "dark")

    assert tab_b.poll() is False
    assert tab_b.display.reload_count == reloads_before


def test_becoming_visible_reloads_missed_writes(tmp_path) -> None:  # type: ignore[no-untyped-def]
    tab_a = _open_tab(tmp_path)
    tab_b = _open_tab(tmp_path)
    tab_b.visibility.set_hidden(True)

    _seed(tab_a, ("42.000", "Alice"))
    tab_b.visibility.set_hidden(True)
    assert tab_b.display.donations == []

    tab_b.visibility.set_hidden(False)

    assert tab_b.display.totals.total_amount == 42_000


def test_last_full_write_wins_between_tabs(tmp_path) -> None:  # type: ignore[no-untyped-def]
    tab_a = _open_tab(tmp_path)
    tab_b = _open_tab(tmp_path)
    view_a = tab_a.open_mutation_view(alert=lambda message: None, confirm=lambda prompt: True)
    view_b = tab_b.open_mutation_view(alert=lambda message: None, confirm=lambda prompt: True)

    view_a.add_donation("10.000", "Alice")
    written_by_b = view_b.add_donation("20.000", "Budi")

    assert tab_a.store.load() == [written_by_b]


def test_unmounted_display_ignores_signals(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path)
    session.display.unmount()

    _seed(session, ("10.000", "Alice"))

    assert session.display.donations == []
    assert session.display.mounted is False


def test_counters_follow_reloaded_totals(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path, goal=1_000_000)
    _seed(session, ("10.000", "Alice"), ("15.000", "Budi"))

    targets = [counter.target for counter in session.display.counters]

    assert targets == [25_000, 2, 1_000_000]


def test_channel_unsubscribe_stops_delivery() -> None:
    channel = ChangeChannel()
    received: list[ChangeSource] = []
    unsubscribe = channel.subscribe(received.append)

    channel.publish(ChangeSource.VISIBILITY)
    unsubscribe()
    unsubscribe()
    channel.publish(ChangeSource.VISIBILITY)

    assert received == [ChangeSource.VISIBILITY]
    assert channel.listener_count == 0


def test_adding_after_a_bad_stored_record_keeps_the_valid_ones(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path)
    session.storage.set_item(
        "donations",
        json.dumps(
            [
                {"id": "1", "amount": 10_000, "donor": "Alice", "timestamp": "2024-05-01T08:00:00.000Z"},
                {"id": "2", "amount": 5_000, "donor": " ", "timestamp": "2024-05-01T08:01:00.000Z"},
            ]
        ),
    )
    view = session.open_mutation_view(alert=lambda message: None, confirm=lambda prompt: True)

    added = view.add_donation("5.000", "Citra")

    assert added is not None
    assert [record.id for record in session.store.load()] == ["1", added.id]
    assert session.display.totals.total_amount == 15_000


def test_close_releases_the_storage_connection(tmp_path) -> None:  # type: ignore[no-untyped-def]
    session = _open_tab(tmp_path)

    session.close()
    session.close()

    assert session.closed is True
    assert session.display.mounted is False
    with pytest.raises(sqlite3.ProgrammingError):
        session.storage.get_item("donations")
