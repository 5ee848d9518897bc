# config.py

"""
Central configuration file for the California County COVID-19 map.
This file stores constants and settings to make the application more maintainable.
"""

import os
from dataclasses import dataclass
from datetime import timedelta, timezone
from typing import Dict, Final, FrozenSet, Literal, Tuple

# Month window of the health records, as YYYY-MM. The API query uses the whole
# prefix, the normalizer filters on the MM part.
DATA_MONTH: Final[str] = os.environ.get("CA_COVID_MONTH", "2021-01")
MONTH_FILTER: Final[str] = DATA_MONTH[5:7]

# County boundaries as a TopoJSON topology
CA_MAP_URL: Final[str] = os.environ.get(
    "CA_COVID_MAP_URL",
    "https://raw.githubusercontent.com/deldersveld/topojson/master/countries/us-states/CA-06-california-counties.json",
)
CA_MAP_LAYER: Final[str] = "cb_2015_california_county_20m"

# California Health and Human Services open data portal (CKAN datastore)
DATA_URL: Final[str] = os.environ.get(
    "CA_COVID_DATA_URL",
    "https://data.chhs.ca.gov/api/3/action/datastore_search",
)
DATA_RESOURCE_ID: Final[str] = "046cdd2b-31e5-4d34-9ed3-b48cdbc4be7a"
DATA_LIMIT: Final[int] = 10000
REQUEST_TIMEOUT_SECONDS: Final[int] = 60

# Aggregate rows that are not counties
EXCLUDED_AREAS: Final[FrozenSet[str]] = frozenset({"Unknown", "Out of state", "California"})

# Dates are anchored to a fixed UTC-8 offset, daylight saving is ignored
PACIFIC_STANDARD_TIME: Final[timezone] = timezone(timedelta(hours=-8), "PST")

# Bubble radius: square-root scale, in pixels
RADIUS_DOMAIN: Final[Tuple[float, float]] = (0, 250)
RADIUS_RANGE: Final[Tuple[float, float]] = (2, 10)
LEGEND_DEATH_SIZES: Final[Tuple[int, ...]] = (250, 200, 100, 50, 20, 1)


@dataclass(frozen=True)
class MapVariant:
    """Presentation settings that distinguish the two map layouts."""
    label: str
    color_scheme: str
    color_domain: Tuple[float, float]
    index_base: Literal[0, 1]
    hover_source: Literal["bubble", "county"]


VARIANTS: Final[Dict[str, MapVariant]] = {
    "bubbles": MapVariant(
        label="Bubbles (yellow-red)",
        color_scheme="YlOrRd_09",
        color_domain=(0, 1000),
        index_base=0,
        hover_source="bubble",
    ),
    "outlines": MapVariant(
        label="Bubbles and outlines (blue)",
        color_scheme="Blues_09",
        color_domain=(-200, 1000),
        index_base=1,
        hover_source="county",
    ),
}
DEFAULT_VARIANT: Final[str] = "bubbles"
