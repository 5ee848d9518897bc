# schemas.py
"""Data validation schemas for the county COVID-19 map."""

import pandera.pandas as pa
from pandera.typing import Series

# Raw API rows arrive as strings, numbers or nulls. Only the columns are checked here,
# values are coerced by the normalizer.
raw_record_schema = pa.DataFrameSchema(
    {
        "date": pa.Column(None, nullable=True),
        "area": pa.Column(None, nullable=True),
        "cases": pa.Column(None, nullable=True),
        "deaths": pa.Column(None, nullable=True),
    },
    strict=False,
)


class ObservationSchema(pa.DataFrameModel):
    """Schema for the normalized, one-row-per-observation DataFrame."""
    area: Series[str] = pa.Field(nullable=False)
    cases: Series[float] = pa.Field(nullable=True)
    deaths: Series[float] = pa.Field(nullable=True)

    class Config:
        strict = False
        coerce = True
