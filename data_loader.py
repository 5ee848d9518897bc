import logging
from io import BytesIO
from typing import Any, Dict, List, Optional

import geopandas as gpd
import requests

from config import (
    CA_MAP_LAYER,
    CA_MAP_URL,
    DATA_LIMIT,
    DATA_MONTH,
    DATA_RESOURCE_ID,
    DATA_URL,
    MONTH_FILTER,
    REQUEST_TIMEOUT_SECONDS,
)
from pipeline import CombinedRecord, join, normalize

logger = logging.getLogger(__name__)


class DataFetchError(RuntimeError):
    """Raised when a remote resource cannot be downloaded or understood."""


def _get(url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
    try:
        response = requests.get(url, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.HTTPError as e:
        raise DataFetchError(f"Server error ({e.response.status_code}) while fetching {url}") from e
    except requests.RequestException as e:
        raise DataFetchError(f"Could not reach {url}: {e}") from e
    return response


def fetch_health_records(
    url: str = DATA_URL,
    month: str = DATA_MONTH,
    limit: int = DATA_LIMIT,
) -> List[Dict[str, Any]]:
    """
    Downloads the county case and death records for one month from the
    CHHS datastore API.
    """
    params = {"resource_id": DATA_RESOURCE_ID, "q": month, "limit": limit}
    logger.info("Fetching health records for %s", month)
    response = _get(url, params=params)

    try:
        payload = response.json()
        records = payload["result"]["records"]
    except (ValueError, KeyError, TypeError) as e:
        raise DataFetchError(f"Unexpected response from {url}: {e}") from e

    if not isinstance(records, list):
        raise DataFetchError(f"Unexpected response from {url}: 'records' is not a list")

    logger.info("Received %d health records", len(records))
    return records


def fetch_county_boundaries(url: str = CA_MAP_URL, layer: str = CA_MAP_LAYER) -> gpd.GeoDataFrame:
    """Downloads the county TopoJSON and expands it into polygon features."""
    logger.info("Fetching county boundaries from %s", url)
    response = _get(url)

    try:
        gdf = gpd.read_file(BytesIO(response.content), layer=layer)
    except Exception as e:
        raise DataFetchError(f"Could not read layer {layer!r} from {url}: {e}") from e

    if gdf.crs is not None:
        gdf = gdf.to_crs(epsg=4326)
    logger.info("Loaded %d county boundaries", len(gdf))
    return gdf


def county_features(gdf: gpd.GeoDataFrame) -> List[Dict[str, Any]]:
    """GeoJSON features of a GeoDataFrame, in row order."""
    return gdf.__geo_interface__["features"]


def load_combined_records(
    map_url: str = CA_MAP_URL,
    data_url: str = DATA_URL,
    month: str = DATA_MONTH,
    month_filter: str = MONTH_FILTER,
) -> List[CombinedRecord]:
    """
    Fetches the county boundaries, then the health records, and joins them.
    The two downloads run one after the other; any failure aborts the load.
    """
    boundaries = fetch_county_boundaries(map_url)
    records = fetch_health_records(data_url, month=month)

    series_map = normalize(records, month_filter)
    combined = join(series_map, county_features(boundaries))

    missing = [record.name for record in combined if not record.has_series]
    if missing:
        logger.info("%d counties have no records: %s", len(missing), ", ".join(map(str, missing)))
    return combined
