from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional

from skillforge.models.analytics import (
    BucketUnit,
    CourseCompletion,
    EngagementReport,
    Histogram,
    PopularTopic,
    RetentionReport,
)
from skillforge.models.common import as_utc
from skillforge.models.content import Course
from skillforge.models.user import User
from skillforge.services.analytics.histogram import histogram
from skillforge.services.progression.progress import percentage
from skillforge.services.storage.database import DatabaseClient

REPORT_BUCKETS = 8
SECONDS_PER_DAY = 24 * 60 * 60


def viewed_topic_counts(users: Iterable[User]) -> Counter:
    """How many learners viewed each topic."""
    counts: Counter = Counter()
    for user in users:
        for viewed in user.viewed_topics:
            counts[viewed.topic_id] += 1
    return counts


def learners_who_finished(course: Course, users: Iterable[User]) -> int:
    """Learners whose viewed topics cover the whole course."""
    course_topics = set(course.topics)
    if not course_topics:
        return 0
    return sum(1 for user in users if course_topics <= user.viewed_ids)


def retention(users: List[User]) -> RetentionReport:
    day1 = day7 = day30 = 0
    for user in users:
        gap_days = (
            user.last_activity - as_utc(user.created_at)
        ).total_seconds() / SECONDS_PER_DAY
        if gap_days >= 1:
            day1 += 1
        if gap_days >= 7:
            day7 += 1
        if gap_days >= 30:
            day30 += 1

    total = len(users) or 1
    return RetentionReport(
        day1=percentage(total, day1),
        day7=percentage(total, day7),
        day30=percentage(total, day30),
        total=total,
    )


def engagement(users: Iterable[User], now: Optional[datetime] = None) -> EngagementReport:
    views = [viewed.viewed_at for user in users for viewed in user.viewed_topics]
    return EngagementReport(
        daily=histogram(views, REPORT_BUCKETS, BucketUnit.day, now),
        weekly=histogram(views, REPORT_BUCKETS, BucketUnit.week, now),
        monthly=histogram(views, REPORT_BUCKETS, BucketUnit.month, now),
    )


class AnalyticsService:
    """Admin reports over every account, recomputed from a full scan per request."""

    def __init__(self, db_client: DatabaseClient):
        self.db = db_client

    async def signups(self, now: Optional[datetime] = None) -> Histogram:
        users = await self.db.list_users()
        return histogram(
            [user.created_at for user in users], REPORT_BUCKETS, BucketUnit.week, now
        )

    async def popular_topics(self, limit: int = 10) -> List[PopularTopic]:
        counts = viewed_topic_counts(await self.db.list_users())
        topics = await self.db.get_topics(list(counts))
        ranked = sorted(
            (
                PopularTopic(id=topic.id, title=topic.title, count=counts[topic.id])
                for topic in topics
            ),
            key=lambda item: item.count,
            reverse=True,
        )
        return ranked[:limit]

    async def course_completion(self) -> List[CourseCompletion]:
        courses = await self.db.list_courses()
        users = await self.db.list_users()
        return [
            CourseCompletion(
                id=course.id,
                title=course.title,
                total_topics=len(course.topics),
                completed_users=learners_who_finished(course, users),
            )
            for course in courses
        ]

    async def retention(self) -> RetentionReport:
        return retention(await self.db.list_users())

    async def engagement(self, now: Optional[datetime] = None) -> EngagementReport:
        return engagement(await self.db.list_users(), now)
