from datetime import datetime, timedelta, timezone

import pytest

from skillforge.models.content import Course, Topic
from skillforge.models.user import Role, User, ViewedTopic
from skillforge.services.analytics.reports import (
    AnalyticsService,
    learners_who_finished,
    retention,
)

NOW = datetime(2024, 3, 20, 15, 30, tzinfo=timezone.utc)


def learner(user_id, viewed=(), **fields):
    return User(
        id=user_id,
        username=user_id,
        email=f"{user_id}@example.com",
        viewed_topics=[ViewedTopic(topic_id=t, viewed_at=NOW) for t in viewed],
        **fields,
    )


@pytest.fixture
def service(mock_db):
    return AnalyticsService(mock_db)


def test_retention_long_time_learner_counts_everywhere():
    user = learner(
        "u1",
        created_at=NOW - timedelta(days=40),
        last_login=NOW - timedelta(days=1),
    )

    report = retention([user])

    assert (report.day1, report.day7, report.day30) == (100, 100, 100)
    assert report.total == 1


def test_retention_prefers_updated_at():
    user = learner(
        "u1",
        created_at=NOW - timedelta(days=10),
        last_login=NOW - timedelta(days=1),
        updated_at=NOW - timedelta(days=9, hours=12),
    )

    report = retention([user, learner("u2", created_at=NOW)])

    assert (report.day1, report.day7, report.day30) == (0, 0, 0)
    assert report.total == 2


def test_retention_of_nobody_is_zero():
    report = retention([])
    assert (report.day1, report.day7, report.day30, report.total) == (0, 0, 0, 1)


def test_course_completion_needs_every_topic_viewed():
    course = Course(id="c1", title="Course", topics=["a", "b"])
    users = [learner("u1", ["a", "b", "x"]), learner("u2", ["a"])]

    assert learners_who_finished(course, users) == 1
    assert learners_who_finished(Course(id="c2", title="Empty"), users) == 0


@pytest.mark.asyncio
async def test_signups_count_every_account(service, mock_db):
    mock_db.list_users.return_value = [
        learner(f"u{i}", created_at=NOW - timedelta(weeks=i)) for i in range(8)
    ]

    result = await service.signups(NOW)

    mock_db.list_users.assert_awaited_once_with()
    assert result.counts == [1] * 8


@pytest.mark.asyncio
async def test_popular_topics_sorted_and_joined(service, mock_db):
    mock_db.list_users.return_value = [
        learner("u1", ["a", "b"]),
        learner("u2", ["b", "gone"]),
        learner("u3", ["b"]),
    ]
    mock_db.get_topics.return_value = [
        Topic(id="a", title="Alpha"),
        Topic(id="b", title="Beta"),
    ]

    popular = await service.popular_topics()

    mock_db.list_users.assert_awaited_once_with()
    assert [(p.id, p.count) for p in popular] == [("b", 3), ("a", 1)]


@pytest.mark.asyncio
async def test_engagement_buckets_views(service, mock_db):
    mock_db.list_users.return_value = [learner("u1", ["a", "b"]), learner("u2", ["a"])]

    report = await service.engagement(NOW)

    assert report.daily.counts[-1] == 3
    assert sum(report.weekly.counts) == 3
    assert report.monthly.counts[-1] == 3


@pytest.mark.asyncio
async def test_reports_include_admin_accounts(service, mock_db):
    mock_db.list_users.return_value = [
        learner("u1", ["t1"], created_at=NOW - timedelta(days=10), last_login=NOW),
        learner("a1", ["t1"], role=Role.admin, created_at=NOW),
    ]
    mock_db.get_topics.return_value = [Topic(id="t1", title="Intro")]

    popular = await service.popular_topics()
    report = await service.retention()

    assert [(p.id, p.count) for p in popular] == [("t1", 2)]
    assert report.total == 2
    assert (report.day1, report.day7, report.day30) == (50, 50, 0)
    for call in mock_db.list_users.await_args_list:
        assert call.args == ()
