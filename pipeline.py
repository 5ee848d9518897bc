# pipeline.py
"""
Reshapes raw county health records into per-county time series and joins them
onto county boundary features.

    raw records -> normalize() -> {county: series} -> join() -> [CombinedRecord]
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from config import EXCLUDED_AREAS, MONTH_FILTER, PACIFIC_STANDARD_TIME
from schemas import ObservationSchema, raw_record_schema

logger = logging.getLogger(__name__)

RAW_COLUMNS = ["date", "area", "cases", "deaths"]


class MissingSeriesError(LookupError):
    """Raised when a county has no time series to index into."""

    def __init__(self, county: Optional[str]):
        super().__init__(f"missing series for county {county!r}")
        self.county = county


@dataclass(frozen=True)
class ObservationPoint:
    date: Optional[pd.Timestamp]
    cases: Optional[int]
    deaths: Optional[int]


CountySeries = Tuple[ObservationPoint, ...]


@dataclass(frozen=True)
class MissingSeries:
    """Join result for a county that has no records. Behaves like an empty series
    except that indexing fails with MissingSeriesError."""
    county: Optional[str]

    def __len__(self) -> int:
        return 0

    def __bool__(self) -> bool:
        return False

    def __iter__(self):
        return iter(())

    def __getitem__(self, index):
        raise MissingSeriesError(self.county)


@dataclass(frozen=True)
class CombinedRecord:
    feature: Mapping[str, Any] = field(repr=False)
    data: Union[CountySeries, MissingSeries]

    @property
    def properties(self) -> Mapping[str, Any]:
        return self.feature["properties"]

    @property
    def geometry(self) -> Any:
        return self.feature.get("geometry")

    @property
    def name(self) -> Optional[str]:
        return self.properties.get("NAME")

    @property
    def geoid(self) -> Optional[str]:
        return self.properties.get("GEOID")

    @property
    def has_series(self) -> bool:
        return not isinstance(self.data, MissingSeries)

    def point(self, index: int) -> ObservationPoint:
        """Returns the observation at a 0-based series index."""
        return self.data[index]

    def to_feature(self, **properties: Any) -> Dict[str, Any]:
        """GeoJSON feature for this county, with extra properties merged in."""
        feature = dict(self.feature)
        feature["properties"] = {**self.properties, **properties}
        return feature


def _as_count(value) -> Optional[int]:
    if pd.isna(value) or not np.isfinite(value):
        return None
    return int(value)


def _as_date(value) -> Optional[pd.Timestamp]:
    return None if pd.isna(value) else value


def _records_frame(records: Union[pd.DataFrame, Iterable[Mapping[str, Any]]]) -> pd.DataFrame:
    if isinstance(records, pd.DataFrame):
        frame = records
    else:
        frame = pd.DataFrame.from_records(list(records))
    if frame.empty and not set(RAW_COLUMNS).issubset(frame.columns):
        frame = pd.DataFrame(columns=RAW_COLUMNS)
    return raw_record_schema.validate(frame)


def parse_record_dates(dates: pd.Series) -> pd.Series:
    """Parses YYYY-MM-DD strings as midnight in fixed Pacific Standard Time."""
    parsed = pd.to_datetime(dates, format="%Y-%m-%d", errors="coerce")
    return parsed.dt.tz_localize(PACIFIC_STANDARD_TIME)


def normalize(
    records: Union[pd.DataFrame, Iterable[Mapping[str, Any]]],
    month_filter: str = MONTH_FILTER,
    *,
    by_full_date: bool = False,
) -> Dict[str, CountySeries]:
    """
    Filters raw health records to one calendar month and groups them into
    per-county time series.

    Args:
        records: Raw API rows with at least 'date', 'area', 'cases' and 'deaths'.
        month_filter: Two-digit month, compared against characters 5-6 of 'date'.
        by_full_date: Sort each series by the full date instead of the day of month.

    Returns:
        A dict of county name to a tuple of ObservationPoint, in order of first
        appearance of each county.
    """
    frame = _records_frame(records)

    month = frame["date"].astype("string").str.slice(5, 7)
    in_month = (month == month_filter).fillna(False).astype(bool)
    is_county = frame["area"].notna() & ~frame["area"].isin(EXCLUDED_AREAS)
    kept = frame[in_month & is_county]

    observations = pd.DataFrame(
        {
            "area": kept["area"].astype(str),
            "date": parse_record_dates(kept["date"]),
            # Non-numeric placeholders become NaN instead of raising
            "cases": pd.to_numeric(kept["cases"], errors="coerce").astype("float64"),
            "deaths": pd.to_numeric(kept["deaths"], errors="coerce").astype("float64"),
        }
    )
    observations = ObservationSchema.validate(observations)
    observations["sort_key"] = observations["date"] if by_full_date else observations["date"].dt.day

    output: Dict[str, CountySeries] = {}
    for area, group in observations.groupby("area", sort=False):
        ordered = group.sort_values("sort_key", kind="stable", na_position="last")
        output[area] = tuple(
            ObservationPoint(
                date=_as_date(row.date),
                cases=_as_count(row.cases),
                deaths=_as_count(row.deaths),
            )
            for row in ordered.itertuples(index=False)
        )

    logger.debug("Normalized %d records into %d county series", len(observations), len(output))
    return output


def join(
    series_map: Mapping[str, CountySeries],
    geometry: Sequence[Mapping[str, Any]],
) -> List[CombinedRecord]:
    """
    Attaches each county's series to its boundary feature by the 'NAME' property.
    Counties without records get a MissingSeries instead of a series.
    """
    combined = []
    for feature in geometry:
        name = feature["properties"].get("NAME")
        series = series_map.get(name)
        if series is None:
            logger.warning("No records for county %r", name)
            data = MissingSeries(name)
        else:
            data = series
        combined.append(CombinedRecord(feature=dict(feature), data=data))
    return combined


def reference_series(combined: Sequence[CombinedRecord]) -> CountySeries:
    """The series that drives the slider range and the date label."""
    for record in combined:
        if record.has_series:
            return record.data
    raise MissingSeriesError(None)


def combined_to_frame(combined: Sequence[CombinedRecord]) -> pd.DataFrame:
    """Flattens combined records into one row per county and date."""
    rows = [
        {
            "county": record.name,
            "geoid": record.geoid,
            "date": point.date,
            "cases": point.cases,
            "deaths": point.deaths,
        }
        for record in combined
        for point in record.data
    ]
    return pd.DataFrame(rows, columns=["county", "geoid", "date", "cases", "deaths"])
