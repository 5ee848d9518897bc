# -*- coding: utf-8 -*-
import logging
import os

import streamlit as st

# --- Custom Modules ---
from config import DATA_MONTH
from data_loader import DataFetchError, load_combined_records
from map_view import create_bubble_map, display_map
from pipeline import MissingSeriesError, combined_to_frame, reference_series
from plotting import plot_county_series, plot_radius_legend
from ui import (
    setup_page_config,
    display_header_and_about,
    display_sidebar,
    select_series_index,
    display_date_label,
    display_download_button,
)

logger = logging.getLogger(__name__)


def get_session_records():
    """
    Loads the joined county records once per browser session. Slider and hover
    reruns reuse them instead of downloading again.
    """
    if "combined_records" not in st.session_state:
        with st.spinner("Fetching county boundaries and health records..."):
            st.session_state["combined_records"] = load_combined_records()
    return st.session_state["combined_records"]


def main() -> None:
    """Main function to run the Streamlit application."""
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    setup_page_config()
    display_header_and_about(DATA_MONTH)

    try:
        combined = get_session_records()
    except DataFetchError as e:
        logger.error("Startup aborted: %s", e)
        st.error(f"Failed to load the map data. {e}")
        st.stop()

    try:
        reference = reference_series(combined)
    except MissingSeriesError:
        st.warning(f"No county records were found for {DATA_MONTH}.")
        st.stop()

    county_names = [record.name for record in combined if record.has_series]
    variant, county_choice = display_sidebar(county_names)

    series_index = select_series_index(len(reference), variant.index_base)
    display_date_label(reference[series_index].date)

    map_col, legend_col = st.columns([4, 1])
    with map_col:
        display_map(create_bubble_map(combined, series_index, variant))
    with legend_col:
        st.plotly_chart(plot_radius_legend(), use_container_width=True)

    if county_choice:
        record = next(r for r in combined if r.name == county_choice)
        st.plotly_chart(
            plot_county_series(record.data, county_choice, series_index),
            use_container_width=True,
        )

    display_download_button(combined_to_frame(combined), DATA_MONTH)
    st.markdown("---")
    st.markdown("Data Source: [California Health and Human Services Open Data](https://data.chhs.ca.gov/)")

if __name__ == "__main__":
    main()
