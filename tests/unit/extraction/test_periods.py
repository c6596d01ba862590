import pandas as pd
import pytest

from src.feature_engineering.extraction.periods import (
    bucket_records,
    growth_rate,
    is_month_end,
    month_key,
    parse_date,
    quarter_of,
    week_key,
    week_of_year,
)


@pytest.mark.unit
@pytest.mark.parametrize("value", [None, "", "not a date", float("nan")])
def test_parse_date_returns_none_for_unusable_values(value):
    assert parse_date(value) is None


@pytest.mark.unit
def test_parse_date_normalizes_timezones_to_naive_utc():
    ts = parse_date("2024-03-01T02:00:00+02:00")
    assert ts.tzinfo is None
    assert ts == pd.Timestamp("2024-03-01 00:00:00")


@pytest.mark.unit
def test_calendar_helpers():
    assert [quarter_of(m) for m in (1, 3, 4, 9, 12)] == [1, 1, 2, 3, 4]
    assert is_month_end(pd.Timestamp("2024-02-29"))
    assert not is_month_end(pd.Timestamp("2023-02-27"))
    assert month_key(pd.Timestamp("2024-03-15")) == "2024-03"


@pytest.mark.unit
def test_week_of_year_rolls_over_on_sunday():
    # 2023-01-01 is a Sunday, so the week counter starts fresh that day
    assert week_of_year(pd.Timestamp("2023-01-01")) == 1
    assert week_of_year(pd.Timestamp("2023-01-07")) == 1
    assert week_of_year(pd.Timestamp("2023-01-08")) == 2
    # 2024-01-01 is a Monday; Sunday 2024-01-07 starts week 2
    assert week_of_year(pd.Timestamp("2024-01-06")) == 1
    assert week_of_year(pd.Timestamp("2024-01-07")) == 2
    assert week_key(pd.Timestamp("2024-01-31")) == "2024-W5"


@pytest.mark.unit
def test_week_of_year_ignores_time_of_day():
    assert week_of_year(pd.Timestamp("2024-01-06 23:59")) == week_of_year(pd.Timestamp("2024-01-06"))


@pytest.mark.unit
def test_growth_rate_with_zero_previous():
    assert growth_rate(50, 0) == 0.0
    assert growth_rate(150, 100) == pytest.approx(0.5)


@pytest.mark.unit
def test_bucket_records_orders_chronologically_and_skips_bad_dates():
    records = [
        {"d": "2024-02-03", "v": 1},
        {"d": "2024-01-15", "v": 2},
        {"d": None, "v": 3},
        {"d": "2024-01-02", "v": 4},
    ]

    def accumulate(bucket, record):
        bucket.add_amount("v", record["v"])

    buckets = bucket_records(records, "d", month_key, accumulate)

    assert list(buckets) == ["2024-01", "2024-02"]
    january = buckets["2024-01"]
    assert january.count == 2
    assert january.values("v") == [4, 2]
    assert january.first_date == pd.Timestamp("2024-01-02")
    assert buckets["2024-02"].total("v") == 1.0
