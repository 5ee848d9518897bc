import logging
from datetime import timedelta

import pandas as pd
import pytest
from pandera.errors import SchemaError

from config import PACIFIC_STANDARD_TIME
from pipeline import (
    MissingSeries,
    MissingSeriesError,
    combined_to_frame,
    join,
    normalize,
    reference_series,
)


def _record(date, area, cases="0", deaths="0", **extra):
    return {"date": date, "area": area, "cases": cases, "deaths": deaths, **extra}


def _feature(name, geoid):
    return {
        "type": "Feature",
        "id": geoid,
        "properties": {"NAME": name, "GEOID": geoid},
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[-122, 37], [-121, 37], [-121, 38], [-122, 38], [-122, 37]]],
        },
    }


@pytest.fixture
def raw_records():
    return [
        _record("2021-01-12", "Los Angeles", "150", "12", _id=2, area_type="County"),
        _record("2021-01-05", "Los Angeles", "100", "10", _id=1, area_type="County"),
        _record("2021-01-05", "Alameda", "40", "1"),
        _record("2021-01-05", "California", "9000", "300"),
        _record("2021-01-05", "Out of state", "3", "0"),
        _record("2021-01-05", "Unknown", "7", "0"),
        _record("2021-02-01", "Alameda", "55", "2"),
        _record("2020-12-31", "Alameda", "38", "1"),
        _record("2021-01-05", None, "12", "0"),
    ]


def test_normalize_round_trip_scenario():
    """Two Los Angeles rows come back as one chronological series."""
    records = [
        _record("2021-01-05", "Los Angeles", "100", "10"),
        _record("2021-01-12", "Los Angeles", "150", "12"),
    ]
    output = normalize(records, "01")

    assert list(output) == ["Los Angeles"]
    series = output["Los Angeles"]
    assert [(p.cases, p.deaths) for p in series] == [(100, 10), (150, 12)]
    assert series[0].date == pd.Timestamp("2021-01-05", tz=PACIFIC_STANDARD_TIME)
    assert series[1].date == pd.Timestamp("2021-01-12", tz=PACIFIC_STANDARD_TIME)


def test_normalize_drops_sentinel_areas(raw_records):
    for month in ("01", "02", "12"):
        output = normalize(raw_records, month)
        assert not {"Unknown", "Out of state", "California"} & set(output)


def test_normalize_keeps_only_requested_month(raw_records):
    output = normalize(raw_records, "01")

    # The row without an area is dropped rather than grouped under a null key
    assert set(output) == {"Los Angeles", "Alameda"}
    assert all(p.date.month == 1 for series in output.values() for p in series)
    assert len(output["Alameda"]) == 1


def test_normalize_dates_use_fixed_pst_offset():
    # July is daylight saving time in California; the offset stays at -8 hours
    output = normalize([_record("2021-07-04", "Marin", "1", "0")], "07")
    date = output["Marin"][0].date

    assert date.utcoffset() == timedelta(hours=-8)
    assert date.tz_convert("UTC").day == 4


def test_normalize_sorts_by_day_of_month():
    records = [
        _record("2021-01-20", "Fresno", "3", "0"),
        _record("2021-01-02", "Fresno", "1", "0"),
        _record("2021-01-11", "Fresno", "2", "0"),
    ]
    series = normalize(records, "01")["Fresno"]
    days = [p.date.day for p in series]

    assert days == sorted(days)
    assert [p.cases for p in series] == [1, 2, 3]


def test_normalize_day_of_month_ignores_year():
    records = [
        _record("2021-01-03", "Kern", "21", "0"),
        _record("2020-01-05", "Kern", "20", "0"),
    ]
    by_day = normalize(records, "01")["Kern"]
    by_date = normalize(records, "01", by_full_date=True)["Kern"]

    assert [p.cases for p in by_day] == [21, 20]
    assert [p.cases for p in by_date] == [20, 21]


def test_normalize_malformed_values_become_missing():
    records = [
        _record("2021-01-06", "Napa", "N/A", "2"),
        _record("2021-01-xx", "Napa", "5", ""),
        _record("2021-01-04", "Napa", "4", None),
    ]
    series = normalize(records, "01")["Napa"]

    assert [p.cases for p in series] == [4, None, 5]
    assert series[0].deaths is None
    assert series[1].deaths == 2
    # Unparseable dates are kept and sort last
    assert series[2].date is None
    assert series[2].deaths is None


def test_normalize_accepts_dataframe(raw_records):
    from_frame = normalize(pd.DataFrame(raw_records), "01")
    from_list = normalize(raw_records, "01")
    assert from_frame == from_list


def test_normalize_empty_input():
    assert normalize([], "01") == {}


def test_normalize_missing_column_fails_validation():
    with pytest.raises(SchemaError):
        normalize([{"date": "2021-01-05", "area": "Yolo", "cases": "1"}], "01")


def test_join_preserves_geometry_order():
    series_map = normalize(
        [_record("2021-01-05", "Alameda", "1", "0"), _record("2021-01-05", "Butte", "2", "0")],
        "01",
    )
    geometry = [_feature("Butte", "06007"), _feature("Alameda", "06001"), _feature("Colusa", "06011")]
    combined = join(series_map, geometry)

    assert len(combined) == len(geometry)
    for record, feature in zip(combined, geometry):
        assert record.properties is feature["properties"]
        assert record.geometry == feature["geometry"]
    assert combined[0].data is series_map["Butte"]


def test_join_is_pure():
    series_map = normalize([_record("2021-01-05", "Alameda", "1", "0")], "01")
    geometry = [_feature("Alameda", "06001"), _feature("Alpine", "06003")]
    before = [dict(f) for f in geometry]

    assert join(series_map, geometry) == join(series_map, geometry)
    assert geometry == before


def test_join_missing_series_is_explicit():
    combined = join({}, [_feature("Alpine", "06003")])
    record = combined[0]

    assert not record.has_series
    assert not record.data
    assert isinstance(record.data, MissingSeries)
    with pytest.raises(MissingSeriesError, match="missing series for county 'Alpine'"):
        record.data[0]
    with pytest.raises(MissingSeriesError):
        record.point(0)


def test_join_logs_missing_county_as_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="pipeline"):
        join({}, [_feature("Alpine", "06003")])

    assert [r.levelno for r in caplog.records] == [logging.WARNING]
    assert "Alpine" in caplog.records[0].getMessage()


def test_join_is_case_sensitive():
    series_map = normalize([_record("2021-01-05", "alameda", "1", "0")], "01")
    combined = join(series_map, [_feature("Alameda", "06001")])
    assert not combined[0].has_series


def test_to_feature_merges_properties():
    record = join({}, [_feature("Alpine", "06003")])[0]
    feature = record.to_feature(label="Alpine County")

    assert feature["properties"] == {"NAME": "Alpine", "GEOID": "06003", "label": "Alpine County"}
    assert "label" not in record.properties


def test_reference_series_skips_missing_counties():
    series_map = normalize([_record("2021-01-05", "Butte", "2", "0")], "01")
    combined = join(series_map, [_feature("Alpine", "06003"), _feature("Butte", "06007")])

    assert reference_series(combined) is series_map["Butte"]
    with pytest.raises(MissingSeriesError):
        reference_series(combined[:1])


def test_combined_to_frame(raw_records):
    series_map = normalize(raw_records, "01")
    combined = join(series_map, [_feature("Los Angeles", "06037"), _feature("Alpine", "06003")])
    df = combined_to_frame(combined)

    assert list(df.columns) == ["county", "geoid", "date", "cases", "deaths"]
    assert len(df) == 2
    assert df["county"].tolist() == ["Los Angeles", "Los Angeles"]
    assert df["cases"].tolist() == [100, 150]
