# -*- coding: utf-8 -*-
"""
This module contains the UI components for the Streamlit application.
"""
from typing import List, Optional, Tuple

import pandas as pd
import streamlit as st

from config import DEFAULT_VARIANT, VARIANTS, MapVariant


def setup_page_config():
    """Sets the Streamlit page configuration."""
    st.set_page_config(
        page_title="California COVID-19 by County",
        page_icon="🦠",
        layout="wide",
    )

def display_header_and_about(month: str):
    """Displays the main title and the 'About' expander."""
    st.title("California COVID-19 Cases and Deaths by County")
    st.markdown(
        f"Daily county-level cases and deaths for **{month}**. "
        "Move the slider to step through the month and hover a county for its numbers."
    )
    with st.expander("About the Map"):
        st.markdown(
            """
            - **Bubble color:** number of new cases reported that day.
            - **Bubble size:** number of deaths reported that day.
            - Statewide totals, out-of-state and unknown-county rows are left out.
            """
        )

def display_sidebar(county_names: List[str]) -> Tuple[MapVariant, Optional[str]]:
    """
    Renders the sidebar controls.

    Args:
        county_names (list): Counties that have records, for the detail chart.

    Returns:
        tuple: The selected map variant and the county chosen for the detail chart.
    """
    with st.sidebar:
        st.header("Map Controls")

        variant_key = st.selectbox(
            "1. Map Style:",
            options=list(VARIANTS),
            index=list(VARIANTS).index(DEFAULT_VARIANT),
            format_func=lambda key: VARIANTS[key].label,
            key="variant_selectbox",
        )

        county_choice = st.selectbox(
            "2. County Detail:",
            options=county_names,
            index=None,
            placeholder="Choose a county",
            key="county_selectbox",
        )

        return VARIANTS[variant_key], county_choice

def to_series_index(ui_value: int, index_base: int) -> int:
    """Converts a slider position to a 0-based series index."""
    return int(ui_value) - index_base

def select_series_index(length: int, index_base: int) -> int:
    """
    Renders the time slider and returns the selected 0-based series index.

    Args:
        length (int): Number of observations in the reference series.
        index_base (int): Value shown for the first observation (0 or 1).
    """
    if length < 2:
        st.caption("Only one day of data is available.")
        return 0

    ui_value = st.slider(
        "Day",
        min_value=index_base,
        max_value=length - 1 + index_base,
        value=index_base,
        step=1,
        key=f"day_slider_{index_base}",
    )
    return to_series_index(ui_value, index_base)

def format_date_label(date: Optional[pd.Timestamp]) -> str:
    """Formats a date as M/D/YYYY using its UTC calendar components."""
    if date is None or pd.isna(date):
        return "Unknown date"
    utc = date.tz_convert("UTC") if date.tzinfo is not None else date
    return f"{utc.month}/{utc.day}/{utc.year}"

def display_date_label(date: Optional[pd.Timestamp]):
    """Shows the date that the map currently displays."""
    st.subheader(format_date_label(date))

def display_download_button(data: pd.DataFrame, month: str):
    """
    Renders the download button in the sidebar.

    Args:
        data (pd.DataFrame): The per-county, per-day rows to be downloaded.
        month (str): The month shown on the map, used in the file name.
    """
    if not data.empty:
        st.sidebar.download_button(
            label="Download County Data (CSV)",
            data=data.to_csv(index=False).encode("utf-8"),
            file_name=f"ca_covid_counties_{month}.csv",
            mime="text/csv",
            key="download_button",
        )
