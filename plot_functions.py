import logging
from typing import Callable, Dict, Any, Optional

import numpy as np
import plotly.graph_objects as go

from telemetry import SeriesColumns

logger = logging.getLogger(__name__)

COLOR_PV = "#F4840B"
COLOR_FROM_GRID = "#FD5F3D"
COLOR_TO_GRID = "#9EDD61"
COLOR_POWER_USED = "#cdd0dc"

# Trace order matches the legend order of the chart
SERIES_PARAMS: Dict[str, Dict[str, Any]] = {
    "power_pv": dict(name="Power PV", line=dict(color=COLOR_PV, width=1.5)),
    "power_used": dict(name="Power Used", line=dict(color=COLOR_POWER_USED, width=1.5)),
    "power_from_grid": dict(name="Power from Grid", line=dict(color=COLOR_FROM_GRID, width=1.2)),
    "power_to_grid": dict(name="Power into Grid", line=dict(color=COLOR_TO_GRID, width=1.2)),
}


def tick_indices(n_points: int, max_ticks: int = 8) -> list[int]:
    """Evenly spread, de-duplicated sample indices used as x-axis tick positions."""
    if n_points <= 0:
        return []
    count = min(n_points, max_ticks)
    return sorted({int(i) for i in np.linspace(0, n_points - 1, num=count).round()})


def build_power_figure(
    columns: SeriesColumns,
    axis_formatter: Callable[[int], str],
    tz: str = "Europe/Berlin",
    *,
    height: int = 500,
    max_ticks: int = 8,
    fig: Optional[go.Figure] = None,
) -> go.Figure:
    """
    Draw the four power series (kW) over time.

    Tick labels and hover labels both come from `axis_formatter`, so the chart shows
    the same granularity (time only, date, or date with year) everywhere.
    """
    df = columns.to_frame(tz)
    # plotly renders naive datetimes as wall-clock time
    x = df["ts"].dt.tz_localize(None)
    hover_labels = [axis_formatter(ts) for ts in columns.timestamps]

    fig = fig or go.Figure()
    for col, params in SERIES_PARAMS.items():
        fig.add_trace(go.Scatter(
            x=x,
            y=df[col],
            mode="lines",
            customdata=hover_labels,
            hovertemplate=f"{params['name']}: %{{y:.2f}} kW<br>%{{customdata}}<extra></extra>",
            **params,
        ))

    idx = tick_indices(len(columns), max_ticks)
    if not idx:
        logger.debug("No samples to plot, rendering empty axes")
    fig.update_layout(
        height=height,
        margin=dict(l=10, r=10, t=10, b=10),
        xaxis=dict(
            title="Time",
            type="date",
            tickmode="array",
            tickvals=[x.iloc[i] for i in idx],
            ticktext=[hover_labels[i] for i in idx],
        ),
        yaxis=dict(title="kW", rangemode="tozero"),
        hovermode="x unified",
        legend=dict(
            orientation="h",
            yanchor="bottom",
            y=1.02,
            xanchor="right",
            x=1.0,
        ),
        hoverlabel=dict(bgcolor="rgba(255,255,255,0.9)", namelength=-1),
    )
    return fig
