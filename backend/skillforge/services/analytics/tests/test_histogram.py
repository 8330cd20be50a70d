from datetime import datetime, timedelta, timezone

from skillforge.models.analytics import BucketUnit
from skillforge.services.analytics.histogram import bucket_start, buckets, histogram

NOW = datetime(2024, 3, 20, 15, 30, tzinfo=timezone.utc)


def test_bucket_starts_are_truncated():
    assert bucket_start(NOW, 0, BucketUnit.day) == datetime(2024, 3, 20, tzinfo=timezone.utc)
    assert bucket_start(NOW, 1, BucketUnit.week) == datetime(2024, 3, 13, tzinfo=timezone.utc)
    assert bucket_start(NOW, 3, BucketUnit.month) == datetime(2023, 12, 1, tzinfo=timezone.utc)


def test_buckets_are_contiguous_and_end_at_now():
    bounds = buckets(8, BucketUnit.month, NOW)

    assert len(bounds) == 8
    for (_, end), (start, _) in zip(bounds, bounds[1:]):
        assert end == start
    assert bounds[-1][0] <= NOW < bounds[-1][1]


def test_counts_sum_to_in_window_events():
    events = [
        NOW,
        NOW - timedelta(days=1),
        NOW - timedelta(days=1, hours=2),
        NOW - timedelta(days=7),
        NOW - timedelta(days=8),  # before the first bucket
        NOW + timedelta(days=2),  # after the last bucket
    ]

    result = histogram(events, 8, BucketUnit.day, NOW)

    assert sum(result.counts) == 4
    assert result.counts[-1] == 1
    assert result.counts[-2] == 2
    assert result.counts[0] == 1


def test_weekly_signups_one_per_bucket():
    signups = [NOW - timedelta(weeks=i) for i in range(8)]

    result = histogram(signups, 8, BucketUnit.week, NOW)

    assert result.counts == [1] * 8


def test_labels():
    daily = histogram([], 2, BucketUnit.day, NOW)
    monthly = histogram([], 2, BucketUnit.month, NOW)

    assert daily.labels == ["3/19", "3/20"]
    assert monthly.labels == ["2/2024", "3/2024"]
    assert daily.counts == [0, 0]


def test_naive_events_are_counted_as_utc():
    result = histogram([NOW.replace(tzinfo=None)], 1, BucketUnit.day, NOW)
    assert result.counts == [1]
