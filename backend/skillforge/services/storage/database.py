import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import pymongo
from motor.motor_asyncio import AsyncIOMotorClient

from skillforge.models.common import utcnow
from skillforge.models.content import (
    Course,
    LearningPath,
    PathRating,
    PublishStatus,
    Topic,
)
from skillforge.models.notification import Notification, NotificationType
from skillforge.models.user import (
    ActivityEntry,
    CompletedTopic,
    Role,
    User,
    ViewedTopic,
)

logger = logging.getLogger(__name__)


class DatabaseClient:
    """MongoDB access for content, learners and notifications.

    Per-learner arrays are only ever changed through conditional updates so
    two requests for the same learner cannot overwrite each other.
    """

    def __init__(self, mongo_uri: str, db_name: str = "skillforge"):
        self.client = AsyncIOMotorClient(mongo_uri, tz_aware=True)
        self.db = self.client[db_name]

    async def init_indexes(self):
        """Initialize database indexes."""

        await self.db.users.create_index("username", unique=True)
        await self.db.users.create_index("email", unique=True)
        await self.db.users.create_index("role")

        await self.db.courses.create_index("title", unique=True)

        await self.db.learning_paths.create_index("title", unique=True)
        await self.db.learning_paths.create_index("topics")

        # Feed lookups and trigger deduplication
        await self.db.notifications.create_index(
            [("recipients", pymongo.ASCENDING), ("created_at", pymongo.DESCENDING)]
        )
        await self.db.notifications.create_index(
            [
                ("type", pymongo.ASCENDING),
                ("recipients", pymongo.ASCENDING),
                ("milestone", pymongo.ASCENDING),
            ]
        )

    def close(self):
        self.client.close()

    # Topic methods
    async def get_topic(self, topic_id: str) -> Optional[Topic]:
        doc = await self.db.topics.find_one({"_id": topic_id})
        return Topic.model_validate(doc) if doc else None

    async def get_topics(self, topic_ids: List[str]) -> List[Topic]:
        if not topic_ids:
            return []
        cursor = self.db.topics.find({"_id": {"$in": list(topic_ids)}})
        return [Topic.model_validate(doc) for doc in await cursor.to_list(None)]

    async def list_topics(self) -> List[Topic]:
        cursor = self.db.topics.find({}).sort("order", pymongo.ASCENDING)
        return [Topic.model_validate(doc) for doc in await cursor.to_list(None)]

    async def insert_topic(self, topic: Topic) -> str:
        try:
            await self.db.topics.insert_one(topic.to_document())
            return topic.id
        except Exception as e:
            logger.error(f"Error storing topic: {str(e)}")
            raise

    async def update_topic(self, topic_id: str, fields: Dict[str, Any]) -> bool:
        result = await self.db.topics.update_one({"_id": topic_id}, {"$set": fields})
        return result.matched_count > 0

    async def delete_topic(self, topic_id: str) -> bool:
        """Delete a topic and pull every reference to it from courses and paths."""

        result = await self.db.topics.delete_one({"_id": topic_id})
        if not result.deleted_count:
            return False

        await self.db.topics.update_many(
            {"prerequisites": topic_id}, {"$pull": {"prerequisites": topic_id}}
        )
        await self.db.courses.update_many(
            {},
            {
                "$pull": {
                    "topics": topic_id,
                    "dependencies": {"subject": topic_id},
                }
            },
        )
        await self.db.courses.update_many(
            {"dependencies.required_subjects": topic_id},
            {"$pull": {"dependencies.$[].required_subjects": topic_id}},
        )
        await self.db.courses.update_many(
            {"first_topic": topic_id}, {"$set": {"first_topic": None}}
        )
        await self.db.learning_paths.update_many(
            {"topics": topic_id}, {"$pull": {"topics": topic_id}}
        )
        return True

    # Course methods
    async def get_course(self, course_id: str) -> Optional[Course]:
        doc = await self.db.courses.find_one({"_id": course_id})
        return Course.model_validate(doc) if doc else None

    async def list_courses(self) -> List[Course]:
        cursor = self.db.courses.find({})
        return [Course.model_validate(doc) for doc in await cursor.to_list(None)]

    async def count_courses(self) -> int:
        return await self.db.courses.count_documents({})

    async def insert_course(self, course: Course) -> str:
        try:
            await self.db.courses.insert_one(course.to_document())
            return course.id
        except Exception as e:
            logger.error(f"Error storing course: {str(e)}")
            raise

    async def update_course(self, course_id: str, fields: Dict[str, Any]) -> bool:
        result = await self.db.courses.update_one({"_id": course_id}, {"$set": fields})
        return result.matched_count > 0

    async def add_topic_to_course(
        self, course_id: str, topic_id: str, max_topics: int
    ) -> bool:
        """Add a topic unless the course already holds ``max_topics``.

        The cap is part of the update filter, so concurrent additions cannot
        overshoot it.
        """
        result = await self.db.courses.update_one(
            {"_id": course_id, f"topics.{max_topics - 1}": {"$exists": False}},
            {"$addToSet": {"topics": topic_id}},
        )
        return result.matched_count > 0

    async def delete_course(self, course_id: str) -> bool:
        result = await self.db.courses.delete_one({"_id": course_id})
        if result.deleted_count:
            await self.db.learning_paths.update_many(
                {"courses": course_id}, {"$pull": {"courses": course_id}}
            )
        return result.deleted_count > 0

    # Learning path methods
    async def get_path(self, path_id: str) -> Optional[LearningPath]:
        doc = await self.db.learning_paths.find_one({"_id": path_id})
        return LearningPath.model_validate(doc) if doc else None

    async def get_paths(
        self, path_ids: List[str], status: Optional[PublishStatus] = None
    ) -> List[LearningPath]:
        if not path_ids:
            return []
        query: Dict[str, Any] = {"_id": {"$in": list(path_ids)}}
        if status:
            query["status"] = status.value
        cursor = self.db.learning_paths.find(query)
        return [LearningPath.model_validate(doc) for doc in await cursor.to_list(None)]

    async def list_paths(self) -> List[LearningPath]:
        cursor = self.db.learning_paths.find({})
        return [LearningPath.model_validate(doc) for doc in await cursor.to_list(None)]

    async def insert_path(self, path: LearningPath) -> str:
        try:
            await self.db.learning_paths.insert_one(path.to_document())
            return path.id
        except Exception as e:
            logger.error(f"Error storing learning path: {str(e)}")
            raise

    async def update_path(self, path_id: str, update: Dict[str, Any]) -> bool:
        """Apply a raw update document (``$set``, ``$addToSet``, ``$pull``...)."""
        result = await self.db.learning_paths.update_one({"_id": path_id}, update)
        return result.matched_count > 0

    async def find_path_containing_topic(
        self, topic_id: str
    ) -> Optional[LearningPath]:
        doc = await self.db.learning_paths.find_one({"topics": topic_id})
        return LearningPath.model_validate(doc) if doc else None

    async def rate_path(self, path_id: str, rating: PathRating) -> bool:
        """Store a learner's rating, replacing their earlier one. False if no path."""

        doc = rating.model_dump()
        replaced = await self.db.learning_paths.update_one(
            {"_id": path_id, "ratings.user_id": rating.user_id},
            {"$set": {"ratings.$": doc}},
        )
        if replaced.matched_count:
            return True

        added = await self.db.learning_paths.update_one(
            {"_id": path_id, "ratings.user_id": {"$ne": rating.user_id}},
            {"$push": {"ratings": doc}},
        )
        if added.matched_count:
            return True

        # A concurrent first rating by the same learner landed in between
        replaced = await self.db.learning_paths.update_one(
            {"_id": path_id, "ratings.user_id": rating.user_id},
            {"$set": {"ratings.$": doc}},
        )
        return replaced.matched_count > 0

    async def delete_path(self, path_id: str) -> bool:
        """Delete a path and unassign it from every user."""

        result = await self.db.learning_paths.delete_one({"_id": path_id})
        if not result.deleted_count:
            return False
        await self.db.users.update_many(
            {"learning_paths": path_id}, {"$pull": {"learning_paths": path_id}}
        )
        return True

    # User methods
    async def get_user(self, user_id: str) -> Optional[User]:
        doc = await self.db.users.find_one({"_id": user_id})
        return User.model_validate(doc) if doc else None

    async def list_users(self, role: Optional[Role] = None) -> List[User]:
        query = {"role": role.value} if role else {}
        cursor = self.db.users.find(query)
        return [User.model_validate(doc) for doc in await cursor.to_list(None)]

    async def count_users(self, role: Optional[Role] = None) -> int:
        query = {"role": role.value} if role else {}
        return await self.db.users.count_documents(query)

    async def find_user_by_login(self, username: str, email: str) -> Optional[User]:
        doc = await self.db.users.find_one(
            {"$or": [{"username": username}, {"email": email}]}
        )
        return User.model_validate(doc) if doc else None

    async def insert_user(self, user: User) -> str:
        try:
            await self.db.users.insert_one(user.to_document())
            return user.id
        except Exception as e:
            logger.error(f"Error storing user: {str(e)}")
            raise

    async def update_user(self, user_id: str, fields: Dict[str, Any]) -> bool:
        result = await self.db.users.update_one(
            {"_id": user_id}, {"$set": {**fields, "updated_at": utcnow()}}
        )
        return result.matched_count > 0

    async def delete_user(self, user_id: str) -> bool:
        result = await self.db.users.delete_one({"_id": user_id})
        return result.deleted_count > 0

    async def append_viewed_topic(self, user_id: str, viewed: ViewedTopic) -> bool:
        """Append a viewed topic unless it is already there. True if appended."""

        result = await self.db.users.update_one(
            {"_id": user_id, "viewed_topics.topic_id": {"$ne": viewed.topic_id}},
            {
                "$push": {"viewed_topics": viewed.model_dump()},
                "$set": {"updated_at": utcnow()},
            },
        )
        return result.modified_count > 0

    async def append_completed_topic(
        self, user_id: str, completed: CompletedTopic
    ) -> bool:
        """Append a completed topic unless it is already there. True if appended."""

        result = await self.db.users.update_one(
            {"_id": user_id, "completed_topics.topic_id": {"$ne": completed.topic_id}},
            {
                "$push": {"completed_topics": completed.model_dump()},
                "$set": {"updated_at": utcnow()},
            },
        )
        return result.modified_count > 0

    async def replace_recent_activity(
        self, user_id: str, entries: List[ActivityEntry], expected_version: int
    ) -> bool:
        """Compare-and-set the recent activity buffer on ``activity_version``."""

        version_filter: Any = expected_version
        if expected_version == 0:
            # Documents written before the counter existed have no field at all
            version_filter = {"$in": [0, None]}

        result = await self.db.users.update_one(
            {"_id": user_id, "activity_version": version_filter},
            {
                "$set": {
                    "recent_activity": [entry.model_dump() for entry in entries],
                    "updated_at": utcnow(),
                },
                "$inc": {"activity_version": 1},
            },
        )
        return result.modified_count > 0

    async def raise_quiz_score(self, user_id: str, course_id: str, score: float) -> bool:
        """Store ``score`` only if it beats the learner's best for the course."""

        now = utcnow()
        improved = await self.db.users.update_one(
            {
                "_id": user_id,
                "quiz_scores": {
                    "$elemMatch": {"course_id": course_id, "score": {"$lt": score}}
                },
            },
            {"$set": {"quiz_scores.$.score": score, "updated_at": now}},
        )
        if improved.modified_count:
            return True

        first = await self.db.users.update_one(
            {"_id": user_id, "quiz_scores.course_id": {"$ne": course_id}},
            {
                "$push": {"quiz_scores": {"course_id": course_id, "score": score}},
                "$set": {"updated_at": now},
            },
        )
        return first.modified_count > 0

    async def set_last_login(self, user_id: str, when: datetime) -> bool:
        return await self.update_user(user_id, {"last_login": when})

    async def assign_path(self, user_id: str, path_id: str) -> bool:
        """Add a path to a user's assignments. True if it was not there yet."""

        result = await self.db.users.update_one(
            {"_id": user_id, "learning_paths": {"$ne": path_id}},
            {"$push": {"learning_paths": path_id}, "$set": {"updated_at": utcnow()}},
        )
        return result.modified_count > 0

    async def unassign_path(self, user_id: str, path_id: str) -> bool:
        result = await self.db.users.update_one(
            {"_id": user_id, "learning_paths": path_id},
            {"$pull": {"learning_paths": path_id}, "$set": {"updated_at": utcnow()}},
        )
        return result.modified_count > 0

    # Notification methods
    async def insert_notification(self, notification: Notification) -> str:
        try:
            await self.db.notifications.insert_one(notification.to_document())
            return notification.id
        except Exception as e:
            logger.error(f"Error storing notification: {str(e)}")
            raise

    async def get_notification(self, notification_id: str) -> Optional[Notification]:
        doc = await self.db.notifications.find_one({"_id": notification_id})
        return Notification.model_validate(doc) if doc else None

    async def list_notifications(self) -> List[Notification]:
        cursor = self.db.notifications.find({}).sort("created_at", pymongo.DESCENDING)
        return [Notification.model_validate(doc) for doc in await cursor.to_list(None)]

    async def get_feed(self, user_id: str, since: datetime) -> List[Notification]:
        """Unread notifications addressed to the user or broadcast after ``since``."""

        cursor = self.db.notifications.find(
            {
                "$or": [{"recipients": user_id}, {"recipients": {"$size": 0}}],
                "read_by": {"$ne": user_id},
                "created_at": {"$gt": since},
            }
        ).sort("created_at", pymongo.DESCENDING)
        return [Notification.model_validate(doc) for doc in await cursor.to_list(None)]

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        """Add the user to ``read_by``. False if the notification does not exist."""

        result = await self.db.notifications.update_one(
            {"_id": notification_id}, {"$addToSet": {"read_by": user_id}}
        )
        return result.matched_count > 0

    async def find_notification_since(
        self,
        user_id: str,
        notification_type: NotificationType,
        since: datetime,
    ) -> Optional[Notification]:
        doc = await self.db.notifications.find_one(
            {
                "type": notification_type.value,
                "recipients": user_id,
                "created_at": {"$gt": since},
            }
        )
        return Notification.model_validate(doc) if doc else None

    async def find_achievement(
        self, user_id: str, milestone: int
    ) -> Optional[Notification]:
        doc = await self.db.notifications.find_one(
            {
                "type": NotificationType.achievement.value,
                "recipients": user_id,
                "milestone": milestone,
            }
        )
        return Notification.model_validate(doc) if doc else None
