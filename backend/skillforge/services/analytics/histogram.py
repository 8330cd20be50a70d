"""Fixed-width time buckets shared by every activity report.

Bucket ``i`` of ``N`` starts ``N - 1 - i`` units before ``now``, truncated to
midnight (day, week) or to the first of the month (month), and spans one unit.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from skillforge.models.analytics import BucketUnit, Histogram
from skillforge.models.common import as_utc, utcnow


def _midnight(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _shift_months(value: datetime, months: int) -> datetime:
    year, month = divmod(value.year * 12 + value.month - 1 + months, 12)
    return _midnight(value.replace(year=year, month=month + 1, day=1))


def bucket_start(now: datetime, offset: int, unit: BucketUnit) -> datetime:
    """Start of the bucket ``offset`` units before the one holding ``now``."""
    if unit == BucketUnit.day:
        return _midnight(now - timedelta(days=offset))
    if unit == BucketUnit.week:
        return _midnight(now - timedelta(weeks=offset))
    return _shift_months(now, -offset)


def bucket_end(start: datetime, unit: BucketUnit) -> datetime:
    if unit == BucketUnit.day:
        return start + timedelta(days=1)
    if unit == BucketUnit.week:
        return start + timedelta(weeks=1)
    return _shift_months(start, 1)


def bucket_label(start: datetime, unit: BucketUnit) -> str:
    if unit == BucketUnit.month:
        return f"{start.month}/{start.year}"
    return f"{start.month}/{start.day}"


def buckets(
    bucket_count: int, unit: BucketUnit, now: datetime
) -> List[Tuple[datetime, datetime]]:
    bounds = []
    for i in range(bucket_count):
        start = bucket_start(now, bucket_count - 1 - i, unit)
        bounds.append((start, bucket_end(start, unit)))
    return bounds


def histogram(
    events: Iterable[datetime],
    bucket_count: int,
    unit: BucketUnit,
    now: Optional[datetime] = None,
) -> Histogram:
    """Count events per bucket.

    An event lands in the first bucket whose half-open ``[start, end)``
    interval holds it; events outside the window are dropped.
    """
    now = as_utc(now or utcnow())
    bounds = buckets(bucket_count, unit, now)
    counts = [0] * bucket_count

    for event in events:
        event = as_utc(event)
        for i, (start, end) in enumerate(bounds):
            if start <= event < end:
                counts[i] += 1
                break

    return Histogram(
        unit=unit,
        labels=[bucket_label(start, unit) for start, _ in bounds],
        counts=counts,
        starts=[start for start, _ in bounds],
    )
