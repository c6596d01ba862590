"""
Period Bucketing

Calendar helpers and the per-period accumulator used to turn chronologically
ordered records into one feature row per month or week.
"""

import math
import logging
from collections import OrderedDict
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)


def parse_date(value: Any) -> Optional[pd.Timestamp]:
    """
    Parse a record date.

    Returns:
        A naive Timestamp, or None when the value is missing or unparsable
    """
    if value is None or value == '':
        return None
    ts = pd.to_datetime(value, errors='coerce')
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert('UTC').tz_localize(None)
    return ts


def quarter_of(month: int) -> int:
    return math.ceil(month / 3)


def is_holiday_season(month: int) -> bool:
    return month in (11, 12)


def is_month_end(ts: pd.Timestamp) -> bool:
    """True when the following day starts a new month."""
    return (ts + pd.Timedelta(days=1)).day == 1


def week_of_year(ts: pd.Timestamp) -> int:
    """
    Week number counted from January 1st, shifted by the weekday of January 1st
    (Sunday = 0), so weeks roll over on Sundays.
    """
    jan_first = pd.Timestamp(year=ts.year, month=1, day=1)
    jan_first_weekday = (jan_first.weekday() + 1) % 7
    days_past = ts.dayofyear - 1
    return math.ceil((days_past + jan_first_weekday + 1) / 7)


def month_key(ts: pd.Timestamp) -> str:
    return f"{ts.year}-{ts.month:02d}"


def week_key(ts: pd.Timestamp) -> str:
    return f"{ts.year}-W{week_of_year(ts)}"


def growth_rate(current: float, previous: float) -> float:
    """Relative change against the previous bucket; 0 when previous is 0."""
    if previous == 0:
        return 0.0
    return (current - previous) / previous


class PeriodAggregate:
    """Raw counts and sums for one period, finalized into a feature row."""

    def __init__(self, key: str, first_date: pd.Timestamp):
        self.key = key
        self.first_date = first_date
        self.records: List[Dict[str, Any]] = []
        self.amounts: Dict[str, List[float]] = {}
        self.entities: Dict[str, set] = {}

    @property
    def count(self) -> int:
        return len(self.records)

    def add(self, record: Dict[str, Any]):
        self.records.append(record)

    def add_amount(self, name: str, amount: float):
        self.amounts.setdefault(name, []).append(amount)

    def add_entity(self, name: str, entity: Hashable):
        if entity is not None:
            self.entities.setdefault(name, set()).add(entity)

    def values(self, name: str) -> List[float]:
        return self.amounts.get(name, [])

    def total(self, name: str) -> float:
        return float(sum(self.values(name)))

    def distinct(self, name: str) -> set:
        return self.entities.get(name, set())


def bucket_records(records: Iterable[Dict[str, Any]],
                   date_field: str,
                   key_func: Callable[[pd.Timestamp], str],
                   accumulate: Callable[[PeriodAggregate, Dict[str, Any]], None]) -> 'OrderedDict[str, PeriodAggregate]':
    """
    Group records into period buckets in chronological order.

    Args:
        records: Domain records (dicts)
        date_field: Name of the date field used for bucketing
        key_func: Maps a timestamp to its period key
        accumulate: Adds one record's contribution to its bucket

    Returns:
        Ordered mapping of period key to aggregate, oldest period first
    """
    dated: List[Tuple[pd.Timestamp, int, Dict[str, Any]]] = []
    skipped = 0
    for position, record in enumerate(records):
        ts = parse_date(record.get(date_field))
        if ts is None:
            skipped += 1
            continue
        dated.append((ts, position, record))

    if skipped:
        logger.debug(f"Skipped {skipped} records with missing or unparsable '{date_field}'")

    dated.sort(key=lambda item: (item[0], item[1]))

    buckets: 'OrderedDict[str, PeriodAggregate]' = OrderedDict()
    for ts, _, record in dated:
        key = key_func(ts)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = PeriodAggregate(key, ts)
            buckets[key] = bucket
        bucket.add(record)
        accumulate(bucket, record)

    return buckets
