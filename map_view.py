import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

import branca.colormap as cm
import folium
import pandas as pd
import streamlit as st
from folium.features import GeoJson, GeoJsonTooltip
from shapely.geometry import shape
from streamlit_folium import st_folium

from config import RADIUS_DOMAIN, RADIUS_RANGE, MapVariant
from pipeline import CombinedRecord

# --- Constants ---
CA_MAP_LOCATION = [37.25, -119.5]
DEFAULT_ZOOM = 6
NO_DATA_COLOR = "#808080"
TOOLTIP_STYLE = """
    background-color: #D3D3D3;
    border: 1px solid black;
    border-radius: 3px;
"""

# --- Scales ---

def get_colormap(variant: MapVariant) -> cm.LinearColormap:
    """Sequential colormap for case counts, also used as the map legend."""
    vmin, vmax = variant.color_domain
    colormap = getattr(cm.linear, variant.color_scheme).scale(vmin, vmax)
    colormap.caption = "# Cases"
    return colormap


def _signed_sqrt(x: float) -> float:
    return math.copysign(math.sqrt(abs(x)), x)


def radius_scale(
    deaths: float,
    domain: Tuple[float, float] = RADIUS_DOMAIN,
    output_range: Tuple[float, float] = RADIUS_RANGE,
) -> float:
    """
    Square-root scale from a death count to a bubble radius in pixels.
    Values outside the domain extrapolate; the scale is not clamped.
    """
    d0, d1 = (_signed_sqrt(d) for d in domain)
    r0, r1 = output_range
    return r0 + (_signed_sqrt(deaths) - d0) / (d1 - d0) * (r1 - r0)


def _format_count(value: Optional[int]) -> str:
    return f"{value:,}" if value is not None else "n/a"


def county_style(
    record: CombinedRecord, series_index: int, colormap: cm.LinearColormap
) -> Dict[str, Any]:
    """
    Bubble fill and radius for a county at a 0-based series index.
    Counties without a value at that index get the no-data color and the smallest radius.
    """
    cases = deaths = None
    if record.has_series and 0 <= series_index < len(record.data):
        point = record.point(series_index)
        cases, deaths = point.cases, point.deaths

    return {
        "label": f"{record.name} County",
        "cases": _format_count(cases),
        "deaths": _format_count(deaths),
        "fill": colormap(cases) if pd.notna(cases) else NO_DATA_COLOR,
        "radius": radius_scale(deaths) if pd.notna(deaths) else RADIUS_RANGE[0],
    }


def bubble_features(
    combined: Sequence[CombinedRecord], series_index: int, colormap: cm.LinearColormap
) -> List[Dict[str, Any]]:
    """One point feature per county, placed on the centroid of its boundary."""
    features = []
    for record in combined:
        centroid = shape(record.geometry).centroid
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [centroid.x, centroid.y]},
                "properties": {
                    "GEOID": record.geoid,
                    **county_style(record, series_index, colormap),
                },
            }
        )
    return features


# --- Main Map Creation Function ---

def create_bubble_map(
    combined: Sequence[CombinedRecord],
    series_index: int,
    variant: MapVariant,
) -> folium.Map:
    """
    Creates a Folium map with county outlines and one bubble per county.

    Args:
        combined: Joined boundary and series records.
        series_index: 0-based position in each county's series.
        variant: Color scheme and hover settings.

    Returns:
        The assembled map, ready to display or save.
    """
    m = folium.Map(location=CA_MAP_LOCATION, zoom_start=DEFAULT_ZOOM, tiles=None)

    colormap = get_colormap(variant)
    m.add_child(colormap)

    # 1. County outlines
    outline_tooltip = None
    outline_highlight = None
    if variant.hover_source == "county":
        outline_tooltip = GeoJsonTooltip(
            fields=["label", "cases", "deaths"],
            aliases=["", "Cases:", "Deaths:"],
            sticky=False,
            style=TOOLTIP_STYLE,
        )
        outline_highlight = lambda feature: {"weight": 2.5, "fillColor": "#D3D3D3"}

    outlines = {
        "type": "FeatureCollection",
        "features": [
            record.to_feature(**county_style(record, series_index, colormap))
            for record in combined
        ],
    }
    GeoJson(
        outlines,
        name="Counties",
        style_function=lambda feature: {
            "fillColor": "white",
            "color": "black",
            "weight": 0.8,
            "fillOpacity": 0.6,
        },
        highlight_function=outline_highlight,
        tooltip=outline_tooltip,
    ).add_to(m)

    # 2. Bubbles, doubled in size while hovered
    bubbles = {
        "type": "FeatureCollection",
        "features": bubble_features(combined, series_index, colormap),
    }
    GeoJson(
        bubbles,
        name="Cases and deaths",
        marker=folium.CircleMarker(),
        style_function=lambda feature: {
            "fillColor": feature["properties"]["fill"],
            "radius": feature["properties"]["radius"],
            "color": "black",
            "weight": 0.5,
            "fillOpacity": 0.9,
        },
        highlight_function=lambda feature: {"radius": feature["properties"]["radius"] * 2},
        tooltip=GeoJsonTooltip(
            fields=["label", "cases", "deaths"],
            aliases=["", "Cases:", "Deaths:"],
            sticky=False,
            style=TOOLTIP_STYLE,
        ),
    ).add_to(m)

    return m


def display_map(m: folium.Map) -> None:
    """Renders the map in the Streamlit page."""
    st_folium(m, width="100%", height=600, returned_objects=[])
