"""Streamlit app for the live donation tally and donation entry."""

from __future__ import annotations

import time
from typing import Iterable

import pandas as pd
import streamlit as st

from donation_tally import (
    AnimatedCounter,
    CounterState,
    DonationRecord,
    MutationView,
    TallySession,
    TallySettings,
    configure_logging,
    format_currency,
)
from donation_tally.store import MESSAGE_MAX_LENGTH
from donation_tally.views import ADDED_MESSAGE, DELETE_PROMPT

SETTINGS = TallySettings.from_env()
configure_logging(SETTINGS.log_level)


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
          :root {
            --tally-ink: #222831;
            --tally-rose: #D20062;
            --tally-blush: #FFD0EC;
          }

          .stApp {
            background: var(--tally-ink);
          }

          .stApp h1, .stApp h2, .stApp h3, .stApp h4,
          .stApp p, .stApp label, .stApp span {
            color: var(--tally-blush);
          }

          .counter-card {
            background: var(--tally-rose);
            border-radius: 25px;
            padding: 1.5rem;
            text-align: center;
            margin-bottom: 1rem;
          }

          .counter-value {
            font-size: 3rem;
            font-weight: 700;
            margin: 0;
          }

          .counter-label {
            font-size: 1.25rem;
            margin: 0.4rem 0 0;
          }

          .section-note {
            opacity: 0.8;
          }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _session() -> TallySession:
    if "tally_session" not in st.session_state:
        session = TallySession(SETTINGS)
        session.display.mount()
        st.session_state.tally_session = session
    return st.session_state.tally_session


def _flash(message: str) -> None:
    st.session_state.setdefault("tally_flash", []).append(message)


def _render_flash() -> None:
    for message in st.session_state.pop("tally_flash", []):
        if message == ADDED_MESSAGE:
            st.success(message)
        else:
            st.error(message)


def _render_counter_card(counter: AnimatedCounter) -> str:
    return f"""
        <div class="counter-card">
          <p class="counter-value">{counter.formatted()}</p>
          <p class="counter-label">{counter.label}</p>
        </div>
        """


def _play_counters(counters: list[AnimatedCounter], placeholders: list) -> None:
    for counter in counters:
        # Everything the fragment renders is on screen.
        counter.observe(1.0)

    started = time.monotonic()
    while True:
        elapsed = time.monotonic() - started
        for counter, placeholder in zip(counters, placeholders):
            counter.advance(elapsed)
            placeholder.markdown(_render_counter_card(counter), unsafe_allow_html=True)
        if all(counter.state is not CounterState.ANIMATING for counter in counters):
            return
        time.sleep(min(counter.step_interval for counter in counters))


@st.fragment(run_every=SETTINGS.poll_interval)
def _render_live_counters() -> None:
    session = _session()
    session.poll()
    view = session.display

    placeholders = [st.empty() for _ in view.counters]
    _play_counters(view.counters, placeholders)

    totals = view.totals
    if totals.goal > 0:
        st.progress(
            min(totals.progress_percent / 100, 1.0),
            text=f"{totals.progress_percent}% of goal, {format_currency(totals.remaining)} to go",
        )


def render_dashboard() -> None:
    _session().visibility.set_hidden(False)
    _render_live_counters()


def _donations_frame(donations: Iterable[DonationRecord]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Donor": donation.donor,
                "Amount": format_currency(donation.amount),
                "Message": donation.message or "",
                "Recorded": donation.timestamp.astimezone().strftime("%d/%m/%Y %H.%M"),
            }
            for donation in donations
        ],
        columns=["Donor", "Amount", "Message", "Recorded"],
    )


def _confirm_pending_delete(prompt: str) -> bool:
    return bool(st.session_state.get("tally_delete_confirmed"))


def _mutation_view() -> MutationView:
    return _session().open_mutation_view(alert=_flash, confirm=_confirm_pending_delete)


def _on_amount_change() -> None:
    view = _mutation_view()
    st.session_state["donation-amount"] = view.set_amount_input(st.session_state["donation-amount"])


def _on_add_donation() -> None:
    view = _mutation_view()
    view.amount_text = st.session_state.get("donation-amount", "")
    view.donor = st.session_state.get("donation-donor", "")
    view.message = st.session_state.get("donation-message", "")
    if view.add_donation() is not None:
        st.session_state["donation-amount"] = view.amount_text
        st.session_state["donation-donor"] = view.donor
        st.session_state["donation-message"] = view.message


def _on_request_delete() -> None:
    st.session_state.tally_pending_delete = st.session_state.get("donation-delete-target")


def _on_resolve_delete(confirmed: bool) -> None:
    donation_id = st.session_state.pop("tally_pending_delete", None)
    if donation_id is None:
        return
    st.session_state.tally_delete_confirmed = confirmed
    try:
        _mutation_view().delete_donation(donation_id)
    finally:
        st.session_state.tally_delete_confirmed = False


def render_manage_donations() -> None:
    _session().visibility.set_hidden(True)

    st.markdown("## Manage Donations")
    st.markdown("### Add a New Donation")
    st.markdown(
        "<p class='section-note'>Help us reach our goals by recording your donation.</p>",
        unsafe_allow_html=True,
    )

    st.text_input(
        "Donation Amount (Rp) *",
        key="donation-amount",
        placeholder="0",
        on_change=_on_amount_change,
    )
    st.text_input("Donor Name *", key="donation-donor", placeholder="Enter donor name")
    st.text_area(
        "Message (Optional)",
        key="donation-message",
        placeholder="Add a message from the donor...",
        max_chars=MESSAGE_MAX_LENGTH,
    )
    st.button("Add Donation", on_click=_on_add_donation, use_container_width=True)
    _render_flash()

    view = _mutation_view()
    donations = view.listed_donations()
    if not donations:
        return

    st.markdown(f"### Recorded Donations ({len(donations)})")
    st.markdown(f"**Total: {format_currency(view.total_amount)}**")
    st.dataframe(_donations_frame(donations), use_container_width=True, hide_index=True)

    donation_map = {donation.id: donation for donation in donations}
    pending_id = st.session_state.get("tally_pending_delete")
    if pending_id in donation_map:
        pending = donation_map[pending_id]
        st.warning(f"{DELETE_PROMPT} ({pending.donor}, {format_currency(pending.amount)})")
        confirm_col, cancel_col = st.columns(2)
        with confirm_col:
            st.button("Yes, delete", on_click=_on_resolve_delete, args=(True,), use_container_width=True)
        with cancel_col:
            st.button("Cancel", on_click=_on_resolve_delete, args=(False,), use_container_width=True)
        return

    delete_cols = st.columns([3, 1])
    with delete_cols[0]:
        st.selectbox(
            "Donation",
            options=list(donation_map.keys()),
            format_func=lambda item_id: (
                f"{donation_map[item_id].donor} - {format_currency(donation_map[item_id].amount)}"
            ),
            key="donation-delete-target",
        )
    with delete_cols[1]:
        st.markdown("<br>", unsafe_allow_html=True)
        st.button("Delete", on_click=_on_request_delete, use_container_width=True)


def main() -> None:
    st.set_page_config(
        page_title="Donation Tally",
        page_icon=":money_with_wings:",
        layout="centered",
    )
    _inject_styles()

    page = st.navigation(
        [
            st.Page(render_dashboard, title="Dashboard", default=True),
            st.Page(render_manage_donations, title="Manage Donations", url_path="add-donation"),
        ]
    )
    page.run()


if __name__ == "__main__":
    main()
