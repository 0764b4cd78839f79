# app.py
import logging
import time
from typing import Mapping

import streamlit as st
from streamlit.errors import StreamlitAPIException

from controller import DashboardController, DashboardStatus, DashboardView
from dashboard_config import DashboardSettings, load_settings
from plot_functions import build_power_figure
from telemetry_cache import TelemetryCache
from telemetry_source import CollectorClient

LOADING_TEXT = "Loading data..."
ERROR_TEXT = "Error fetching data. Are you connected to the Wifi?"
START_KEY = "range_start_date"
END_KEY = "range_end_date"


def _read_secrets() -> Mapping:
    try:
        return dict(st.secrets)
    except (FileNotFoundError, StreamlitAPIException):
        # no secrets.toml: defaults and SUNNY_* environment variables only
        return {}


def _make_controller(settings: DashboardSettings) -> DashboardController:
    client = CollectorClient(
        base_url=settings.collector_url,
        timeout=settings.request_timeout_s,
        retries=settings.http_retries,
    )
    cache = TelemetryCache(client, max_workers=settings.max_workers)
    controller = DashboardController(cache, tz=settings.tz)
    controller.start()
    return controller


def _sync_date_widgets(controller: DashboardController) -> None:
    """Keep the date pickers aligned with the controller's current range."""
    st.session_state[START_KEY] = controller.time_range.start_date(controller.tz)
    st.session_state[END_KEY] = controller.time_range.end_date(controller.tz)


def _on_start_picked() -> None:
    controller = st.session_state.controller
    controller.select_start(st.session_state[START_KEY])


def _on_end_picked() -> None:
    controller = st.session_state.controller
    controller.select_end(st.session_state[END_KEY])


def _on_shift(days: int) -> None:
    controller = st.session_state.controller
    controller.shift_days(days)
    _sync_date_widgets(controller)


def _on_today() -> None:
    controller = st.session_state.controller
    controller.show_today()
    _sync_date_widgets(controller)


def _on_reload() -> None:
    st.session_state.controller.reload()


def render_chart(view: DashboardView, settings: DashboardSettings) -> None:
    if view.status in (DashboardStatus.IDLE, DashboardStatus.LOADING):
        st.info(LOADING_TEXT)
    elif view.status is DashboardStatus.FAILED:
        st.error(ERROR_TEXT)
    elif not view.has_samples:
        st.warning("No samples in the selected time range.")
    else:
        fig = build_power_figure(view.columns, view.axis_formatter, tz=settings.timezone)
        st.plotly_chart(fig, use_container_width=True)


def render_summaries(view: DashboardView) -> None:
    if view.status in (DashboardStatus.IDLE, DashboardStatus.LOADING):
        st.info(LOADING_TEXT)
        return
    if view.status is DashboardStatus.FAILED:
        st.error(ERROR_TEXT)
        return
    for summary in view.summaries:
        st.subheader(summary.title)
        items = list(summary.labels.items())
        for row in (items[:2], items[2:]):
            for col, (caption, label) in zip(st.columns(2), row):
                col.metric(caption, label)


# ---------------------------------------------------------
# Page config
# ---------------------------------------------------------
settings = load_settings(_read_secrets())
logging.basicConfig(level=settings.log_level)

st.set_page_config(page_title="Sunny", page_icon="☀️", layout="centered")
st.title("☀️ Welcome to Sunny!")
st.caption(f"Collector: {settings.collector_url}")

if "controller" not in st.session_state:
    st.session_state.controller = _make_controller(settings)
    _sync_date_widgets(st.session_state.controller)
controller: DashboardController = st.session_state.controller

# ---------------------------------------------------------
# Time range controls
# ---------------------------------------------------------
col_start, col_end = st.columns(2)
col_start.date_input("Start", key=START_KEY, format="DD.MM.YYYY", on_change=_on_start_picked)
col_end.date_input("End", key=END_KEY, format="DD.MM.YYYY", on_change=_on_end_picked)

col_prev, col_today, col_next, col_reload = st.columns(4)
col_prev.button("⟲ –1 day", on_click=_on_shift, args=(-1,), use_container_width=True)
col_today.button("Today", on_click=_on_today, use_container_width=True)
col_next.button("+1 day ⟳", on_click=_on_shift, args=(1,), use_container_width=True)
col_reload.button("Reload", on_click=_on_reload, use_container_width=True)

view = controller.view()
st.caption(f"Selected range: {view.time_range.describe(controller.tz)}")
if view.time_range.is_inverted:
    st.warning("The start date lies after the end date.")

# ---------------------------------------------------------
# Chart and summaries
# ---------------------------------------------------------
render_chart(view, settings)
render_summaries(view)

# Pull-based refresh while the current range is still in flight
if view.status in (DashboardStatus.IDLE, DashboardStatus.LOADING):
    time.sleep(settings.poll_interval_s)
    st.rerun()
