import logging
from datetime import datetime
from typing import List, Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from skillforge.config import Settings
from skillforge.errors import ConcurrentUpdateError, NotFoundError
from skillforge.models.common import as_utc, utcnow
from skillforge.models.content import (
    Course,
    EdgeKind,
    LearningPath,
    PathRating,
    PublishStatus,
    Topic,
)
from skillforge.models.progress import (
    CompletedTopicItem,
    CourseProgress,
    LearnerExport,
    PathProgress,
    PathUnlockMap,
    QuizScoreResult,
    RecentActivityItem,
    RecentView,
    TopicSeen,
    UnlockStatus,
)
from skillforge.models.user import (
    ActivityEntry,
    ActivityStatus,
    CompletedTopic,
    User,
    ViewedTopic,
)
from skillforge.services.notifications.notification_service import (
    NotificationService,
)
from skillforge.services.progression.activity import RecentActivity
from skillforge.services.progression.content_graph import path_roots
from skillforge.services.progression.progress import course_progress, path_progress
from skillforge.services.progression.unlock import (
    is_unlocked,
    subject_unlocked_in_course,
    topic_unlocked_in_path,
)
from skillforge.services.storage.database import DatabaseClient

logger = logging.getLogger(__name__)


class LearnerService:
    """Learner-facing reads (unlock, progress) and writes (views, completions)."""

    def __init__(
        self,
        db_client: DatabaseClient,
        notifications: NotificationService,
        settings: Settings,
    ):
        self.db = db_client
        self.notifications = notifications
        self.activity_capacity = settings.recent_activity_capacity

    async def get_user(self, user_id: str) -> User:
        user = await self.db.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def _require_topic(self, topic_id: str) -> Topic:
        topic = await self.db.get_topic(topic_id)
        if topic is None:
            raise NotFoundError("Topic", topic_id)
        return topic

    async def _require_course(self, course_id: str) -> Course:
        course = await self.db.get_course(course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        return course

    async def _require_path(self, path_id: str) -> LearningPath:
        path = await self.db.get_path(path_id)
        if path is None:
            raise NotFoundError("Learning path", path_id)
        return path

    # Unlock queries
    async def topic_unlocked_in_path(
        self, user: User, path_id: str, topic_id: str
    ) -> UnlockStatus:
        path = await self._require_path(path_id)
        if topic_id in path_roots(path):
            unlocked = True
        else:
            topic = await self._require_topic(topic_id)
            unlocked = topic_unlocked_in_path(path, topic, user.completed_ids)

        return UnlockStatus(
            node_id=topic_id,
            container_id=path.id,
            kind=EdgeKind.topic_path,
            unlocked=unlocked,
        )

    async def path_unlock_map(self, user: User, path_id: str) -> PathUnlockMap:
        """Unlock state of every topic in a path; dangling references stay locked."""
        path = await self._require_path(path_id)
        topics = {t.id: t for t in await self.db.get_topics(path.topic_ids)}
        roots = path_roots(path)
        completed = user.completed_ids

        states = {}
        for topic_id in path.topic_ids:
            topic = topics.get(topic_id)
            if topic is None and topic_id not in roots:
                logger.warning(f"Path {path.id} references missing topic {topic_id}")
                states[topic_id] = False
                continue
            states[topic_id] = is_unlocked(
                topic_id,
                completed,
                required=set(topic.prerequisites) if topic else set(),
                roots=roots,
            )
        return PathUnlockMap(path_id=path.id, topics=states)

    async def subject_unlocked_in_course(
        self, user: User, course_id: str, subject_id: str
    ) -> UnlockStatus:
        course = await self._require_course(course_id)
        if subject_id not in course.topics:
            raise NotFoundError("Subject", subject_id)

        course_topics = await self.db.get_topics(course.topics)
        return UnlockStatus(
            node_id=subject_id,
            container_id=course.id,
            kind=EdgeKind.course_subject,
            unlocked=subject_unlocked_in_course(
                course, subject_id, user.completed_ids, course_topics
            ),
        )

    # Progress queries
    async def course_progress(self, user: User, course_id: str) -> CourseProgress:
        course = await self._require_course(course_id)
        return course_progress(course, user.viewed_ids)

    async def all_course_progress(self, user: User) -> List[CourseProgress]:
        viewed = user.viewed_ids
        return [course_progress(c, viewed) for c in await self.db.list_courses()]

    async def path_progress(self, user: User, path_id: str) -> PathProgress:
        path = await self._require_path(path_id)
        return path_progress(path, user.completed_ids)

    async def assigned_path_progress(self, user: User) -> List[PathProgress]:
        """Progress on every assigned path; deleted paths are left out."""
        completed = user.completed_ids
        paths = await self.db.get_paths(user.learning_paths)
        return [path_progress(path, completed) for path in paths]

    async def assigned_paths(self, user: User) -> List[LearningPath]:
        return await self.db.get_paths(user.learning_paths, PublishStatus.published)

    # Activity recording
    async def record_view(
        self, user: User, topic_id: str, short_description: Optional[str] = None
    ) -> bool:
        """Mark a topic viewed. Returns False when it had been viewed before."""
        await self._require_topic(topic_id)

        appended = await self.db.append_viewed_topic(
            user.id,
            ViewedTopic(topic_id=topic_id, short_description=short_description),
        )
        await self._touch_activity(user.id, topic_id, ActivityStatus.in_progress)

        if appended:
            logger.info(f"User {user.id} viewed topic {topic_id}")
            await self.notifications.evaluate_achievement(await self.get_user(user.id))
        return appended

    async def record_completion(self, user: User, topic_id: str) -> bool:
        """Mark a topic completed. Returns False when it was already completed."""
        await self._require_topic(topic_id)

        appended = await self.db.append_completed_topic(
            user.id, CompletedTopic(topic_id=topic_id)
        )
        await self._touch_activity(user.id, topic_id, ActivityStatus.completed)

        if appended:
            logger.info(f"User {user.id} completed topic {topic_id}")
        return appended

    @retry(
        retry=retry_if_exception_type(ConcurrentUpdateError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, max=1),
        reraise=True,
    )
    async def _touch_activity(
        self, user_id: str, topic_id: str, status: ActivityStatus
    ) -> None:
        """Move the topic to the front of the learner's recent activity."""
        user = await self.get_user(user_id)
        path = await self.db.find_path_containing_topic(topic_id)

        activity = RecentActivity(self.activity_capacity, user.recent_activity)
        activity.upsert_most_recent(
            topic_id,
            ActivityEntry(
                topic_id=topic_id,
                learning_path_id=path.id if path else None,
                status=status,
            ),
        )

        if not await self.db.replace_recent_activity(
            user_id, activity.entries(), user.activity_version
        ):
            logger.info(f"Recent activity of user {user_id} changed underneath, retrying")
            raise ConcurrentUpdateError(user_id)

    async def recent_activity(self, user: User) -> List[RecentActivityItem]:
        entries = RecentActivity(self.activity_capacity, user.recent_activity).entries()
        topics = {t.id: t for t in await self.db.get_topics([e.topic_id for e in entries])}
        path_ids = [e.learning_path_id for e in entries if e.learning_path_id]
        paths = {p.id: p for p in await self.db.get_paths(path_ids)}

        items = [
            RecentActivityItem(
                topic_id=entry.topic_id,
                topic_title=topics[entry.topic_id].title
                if entry.topic_id in topics
                else None,
                learning_path_id=entry.learning_path_id,
                learning_path_title=paths[entry.learning_path_id].title
                if entry.learning_path_id in paths
                else None,
                last_accessed=entry.last_accessed,
                status=entry.status,
            )
            for entry in entries
        ]
        return sorted(items, key=lambda item: as_utc(item.last_accessed), reverse=True)

    async def recent_views(self, user: User, limit: int = 5) -> List[RecentView]:
        latest = sorted(
            user.viewed_topics, key=lambda v: as_utc(v.viewed_at), reverse=True
        )[:limit]
        topics = {t.id: t for t in await self.db.get_topics([v.topic_id for v in latest])}
        return [
            RecentView(
                topic_id=viewed.topic_id,
                title=topics[viewed.topic_id].title if viewed.topic_id in topics else None,
                viewed_at=viewed.viewed_at,
            )
            for viewed in latest
        ]

    async def completed_topics(self, user: User) -> List[CompletedTopicItem]:
        """Completed topics, most recent first. Deleted topics are left out."""
        latest = sorted(
            user.completed_topics, key=lambda c: as_utc(c.completed_at), reverse=True
        )
        topics = {t.id: t for t in await self.db.get_topics([c.topic_id for c in latest])}
        return [
            CompletedTopicItem(
                topic_id=completed.topic_id,
                title=topics[completed.topic_id].title,
                completed_at=completed.completed_at,
            )
            for completed in latest
            if completed.topic_id in topics
        ]

    def topic_seen(self, user: User, topic_id: str) -> TopicSeen:
        return TopicSeen(topic_id=topic_id, seen=topic_id in user.viewed_ids)

    async def rate_path(
        self, user: User, path_id: str, score: int, review: str = ""
    ) -> LearningPath:
        """Rate a path. A learner has one rating per path; rating again replaces it."""
        rating = PathRating(user_id=user.id, score=score, review=review)
        if not await self.db.rate_path(path_id, rating):
            raise NotFoundError("Learning path", path_id)
        logger.info(f"User {user.id} rated learning path {path_id} with {score}")
        return await self._require_path(path_id)

    async def export_data(self, user: User) -> LearnerExport:
        return LearnerExport(
            user=user,
            completed_topics=await self.completed_topics(user),
            learning_paths=await self.db.get_paths(user.learning_paths),
        )

    async def save_quiz_score(
        self, user: User, course_id: str, score: float
    ) -> QuizScoreResult:
        """Keep the best score per course; lower or equal scores are ignored."""
        await self._require_course(course_id)

        if await self.db.raise_quiz_score(user.id, course_id, score):
            previous = user.best_score(course_id)
            message = "Quiz score saved" if previous is None else "Quiz score updated (new high score)"
            return QuizScoreResult(
                course_id=course_id, score=score, updated=True, message=message
            )

        best = (await self.get_user(user.id)).best_score(course_id)
        return QuizScoreResult(
            course_id=course_id,
            score=best if best is not None else score,
            updated=False,
            message="Quiz score not updated (lower than previous)",
        )

    async def record_login(self, user: User) -> datetime:
        now = utcnow()
        if not await self.db.set_last_login(user.id, now):
            raise NotFoundError("User", user.id)
        return now
