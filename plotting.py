from typing import Sequence

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from config import LEGEND_DEATH_SIZES
from map_view import radius_scale
from pipeline import CountySeries


def plot_radius_legend(sizes: Sequence[int] = LEGEND_DEATH_SIZES) -> go.Figure:
    """Reference bubbles for the death counts, drawn with the map's radius scale."""
    positions = list(range(len(sizes)))
    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=[0] * len(sizes),
            y=positions,
            mode="markers+text",
            text=[str(size) for size in sizes],
            textposition="middle left",
            # Plotly marker size is a diameter
            marker=dict(
                size=[2 * radius_scale(size) for size in sizes],
                color="white",
                line=dict(color="black", width=1),
            ),
            hoverinfo="skip",
            showlegend=False,
        )
    )
    fig.update_layout(
        title="# Deaths",
        xaxis=dict(visible=False, range=[-1, 0.5]),
        yaxis=dict(visible=False, autorange="reversed"),
        template="plotly_white",
        font=dict(size=14),
        height=300,
        margin=dict(l=10, r=10, t=40, b=10),
    )
    return fig


def plot_county_series(series: CountySeries, county_name: str, series_index: int) -> go.Figure:
    """Cases and deaths for one county over the month, with the slider date marked."""
    dates = [point.date for point in series]
    fig = make_subplots(specs=[[{"secondary_y": True}]])
    fig.add_trace(
        go.Scatter(
            x=dates,
            y=[point.cases for point in series],
            mode="lines+markers",
            name="Cases",
            line=dict(color="orange"),
        ),
        secondary_y=False,
    )
    fig.add_trace(
        go.Scatter(
            x=dates,
            y=[point.deaths for point in series],
            mode="lines+markers",
            name="Deaths",
            line=dict(color="navy", width=2.5),
        ),
        secondary_y=True,
    )
    if 0 <= series_index < len(series) and series[series_index].date is not None:
        selected = series[series_index].date
        fig.add_shape(
            type="line",
            x0=selected,
            x1=selected,
            y0=0,
            y1=1,
            yref="paper",
            line=dict(color="red", dash="dash"),
        )

    fig.update_layout(
        title=f"{county_name} County",
        xaxis_title="Date",
        legend=dict(x=0.01, y=0.99, bordercolor="Black", borderwidth=1),
        template="plotly_white",
        font=dict(size=14),
        height=400,
    )
    fig.update_yaxes(title_text="Cases", secondary_y=False)
    fig.update_yaxes(title_text="Deaths", secondary_y=True)
    return fig
