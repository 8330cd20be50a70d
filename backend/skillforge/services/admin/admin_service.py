import logging
from typing import Any, Dict, List, Optional

from skillforge.config import Settings
from skillforge.errors import (
    LimitExceededError,
    NotFoundError,
    ValidationFailedError,
)
from skillforge.models.content import (
    Course,
    CourseDependency,
    EdgeKind,
    LearningPath,
    PublishStatus,
    Topic,
)
from skillforge.models.user import Role, User
from skillforge.services.notifications.notification_service import (
    NotificationService,
)
from skillforge.services.progression.content_graph import ContentGraph
from skillforge.services.storage.database import DatabaseClient

logger = logging.getLogger(__name__)


class AdminService:
    """Content authoring, user management and path assignment.

    Caps on users, admins, courses and topics per course come from
    ``Settings``. Prerequisite edits that would close a cycle are rejected
    before anything is written.
    """

    def __init__(
        self,
        db_client: DatabaseClient,
        notifications: NotificationService,
        settings: Settings,
    ):
        self.db = db_client
        self.notifications = notifications
        self.settings = settings

    # Users
    async def register_user(
        self,
        username: str,
        email: str,
        role: Role = Role.user,
        about: str = "",
        interests: Optional[List[str]] = None,
    ) -> User:
        if await self.db.count_users() >= self.settings.max_users:
            raise LimitExceededError(
                f"User limit reached. No more than {self.settings.max_users} users allowed."
            )
        if role == Role.admin:
            await self._check_admin_cap()
        if await self.db.find_user_by_login(username, email):
            raise ValidationFailedError("Username or email already in use")

        user = User(
            username=username,
            email=email,
            role=role,
            about=about,
            interests=interests or [],
        )
        await self.db.insert_user(user)
        logger.info(f"Registered {role.value} {user.id} ({username})")
        await self.notifications.welcome(user)
        return user

    async def list_users(self) -> List[User]:
        return await self.db.list_users()

    async def update_user(self, user_id: str, fields: Dict[str, Any]) -> User:
        """Edit profile fields (username, email, about, interests)."""
        if fields and not await self.db.update_user(user_id, fields):
            raise NotFoundError("User", user_id)
        return await self._require_user(user_id)

    async def change_role(self, user_id: str, role: Role) -> User:
        user = await self._require_user(user_id)
        if role == Role.admin and user.role != Role.admin:
            await self._check_admin_cap()

        await self.db.update_user(user_id, {"role": role.value})
        logger.info(f"User {user_id} role changed from {user.role.value} to {role.value}")
        return user.model_copy(update={"role": role})

    async def delete_user(self, user_id: str) -> None:
        if not await self.db.delete_user(user_id):
            raise NotFoundError("User", user_id)
        logger.info(f"Deleted user {user_id}")

    async def _check_admin_cap(self) -> None:
        if await self.db.count_users(Role.admin) >= self.settings.max_admins:
            raise LimitExceededError(
                f"Admin limit reached. No more than {self.settings.max_admins} admins allowed."
            )

    async def _require_user(self, user_id: str) -> User:
        user = await self.db.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    # Topics
    async def create_topic(self, topic: Topic, course_id: Optional[str] = None) -> Topic:
        """Store a topic, optionally adding it to a course.

        The per-course cap is checked inside the course update itself, so a
        topic that loses the race for the last slot is removed again.
        """
        course = await self._require_course(course_id) if course_id else None
        if course and len(course.topics) >= self.settings.max_topics_per_course:
            raise self._topic_cap_error()
        await self._check_topics_exist(topic.prerequisites)

        await self.db.insert_topic(topic)
        if course:
            added = await self.db.add_topic_to_course(
                course.id, topic.id, self.settings.max_topics_per_course
            )
            if not added:
                await self.db.delete_topic(topic.id)
                raise self._topic_cap_error()
            if not course.first_topic:
                await self.db.update_course(course.id, {"first_topic": topic.id})

        logger.info(f"Created topic {topic.id} ({topic.title})")
        return topic

    async def update_topic(self, topic_id: str, fields: Dict[str, Any]) -> Topic:
        if "prerequisites" in fields:
            await self.set_prerequisites(topic_id, fields.pop("prerequisites"))
        if fields and not await self.db.update_topic(topic_id, fields):
            raise NotFoundError("Topic", topic_id)
        return await self._require_topic(topic_id)

    async def set_prerequisites(self, topic_id: str, prerequisites: List[str]) -> Topic:
        topic = await self._require_topic(topic_id)
        prerequisites = list(dict.fromkeys(prerequisites))
        await self._check_topics_exist(prerequisites)

        graph = ContentGraph.from_content(topics=await self.db.list_topics())
        graph.replace_requirements(topic_id, prerequisites, EdgeKind.topic_path)
        graph.ensure_acyclic(EdgeKind.topic_path)

        await self.db.update_topic(topic_id, {"prerequisites": prerequisites})
        return topic.model_copy(update={"prerequisites": prerequisites})

    async def delete_topic(self, topic_id: str) -> None:
        if not await self.db.delete_topic(topic_id):
            raise NotFoundError("Topic", topic_id)
        logger.info(f"Deleted topic {topic_id}")

    async def _require_topic(self, topic_id: str) -> Topic:
        topic = await self.db.get_topic(topic_id)
        if topic is None:
            raise NotFoundError("Topic", topic_id)
        return topic

    async def _check_topics_exist(self, topic_ids: List[str]) -> None:
        found = {t.id for t in await self.db.get_topics(topic_ids)}
        missing = [topic_id for topic_id in topic_ids if topic_id not in found]
        if missing:
            raise ValidationFailedError("Unknown topics", topics=missing)

    def _topic_cap_error(self) -> LimitExceededError:
        return LimitExceededError(
            f"Topic limit reached. No more than {self.settings.max_topics_per_course} "
            "topics per course allowed."
        )

    # Courses
    async def create_course(self, course: Course) -> Course:
        if await self.db.count_courses() >= self.settings.max_courses:
            raise LimitExceededError(
                f"Course limit reached. No more than {self.settings.max_courses} courses allowed."
            )
        if len(course.topics) > self.settings.max_topics_per_course:
            raise self._topic_cap_error()
        await self._check_topics_exist(course.topics)

        if course.topics and not course.first_topic:
            course = course.model_copy(update={"first_topic": course.topics[0]})
        await self.db.insert_course(course)
        logger.info(f"Created course {course.id} ({course.title})")
        return course

    async def update_course(self, course_id: str, fields: Dict[str, Any]) -> Course:
        """Edit title, description or level."""
        if fields and not await self.db.update_course(course_id, fields):
            raise NotFoundError("Course", course_id)
        return await self._require_course(course_id)

    async def set_dependency(
        self, course_id: str, subject: str, required_subjects: List[str]
    ) -> Course:
        """Replace the requirements of one subject within a course."""
        course = await self._require_course(course_id)
        required_subjects = list(dict.fromkeys(required_subjects))
        outside = [s for s in [subject, *required_subjects] if s not in course.topics]
        if outside:
            raise ValidationFailedError("Subjects are not part of the course", topics=outside)

        graph = ContentGraph.from_content(courses=[course])
        graph.replace_requirements(subject, required_subjects, EdgeKind.course_subject)
        graph.ensure_acyclic(EdgeKind.course_subject)

        dependencies = [d for d in course.dependencies if d.subject != subject]
        if required_subjects:
            dependencies.append(
                CourseDependency(subject=subject, required_subjects=required_subjects)
            )
        await self.db.update_course(
            course_id, {"dependencies": [d.model_dump() for d in dependencies]}
        )
        return course.model_copy(update={"dependencies": dependencies})

    async def list_courses(self) -> List[Course]:
        return await self.db.list_courses()

    async def delete_course(self, course_id: str) -> None:
        """Delete a course together with its topics."""
        course = await self._require_course(course_id)
        for topic_id in course.topics:
            await self.db.delete_topic(topic_id)
        await self.db.delete_course(course_id)
        logger.info(f"Deleted course {course_id} and {len(course.topics)} topics")

    async def _require_course(self, course_id: str) -> Course:
        course = await self.db.get_course(course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        return course

    # Learning paths
    async def create_path(
        self, title: str, description: str = "", courses: Optional[List[str]] = None
    ) -> LearningPath:
        if not title or not title.strip():
            raise ValidationFailedError("title is required")
        path = LearningPath(title=title, description=description, courses=courses or [])
        await self.db.insert_path(path)
        logger.info(f"Created learning path {path.id} ({title})")
        return path

    async def list_paths(self) -> List[LearningPath]:
        return await self.db.list_paths()

    async def set_path_status(self, path_id: str, status: PublishStatus) -> LearningPath:
        if not await self.db.update_path(path_id, {"$set": {"status": status.value}}):
            raise NotFoundError("Learning path", path_id)
        return await self._require_path(path_id)

    async def add_course_to_path(self, path_id: str, course_id: str) -> LearningPath:
        await self._require_path(path_id)
        await self._require_course(course_id)
        await self.db.update_path(path_id, {"$addToSet": {"courses": course_id}})
        return await self._require_path(path_id)

    async def remove_course_from_path(self, path_id: str, course_id: str) -> LearningPath:
        if not await self.db.update_path(path_id, {"$pull": {"courses": course_id}}):
            raise NotFoundError("Learning path", path_id)
        return await self._require_path(path_id)

    async def add_topic_to_path(self, path_id: str, topic_id: str) -> LearningPath:
        await self._require_path(path_id)
        await self._require_topic(topic_id)
        await self.db.update_path(path_id, {"$addToSet": {"topics": topic_id}})
        await self.db.update_topic(topic_id, {"learning_path": path_id})
        return await self._require_path(path_id)

    async def delete_path(self, path_id: str) -> None:
        if not await self.db.delete_path(path_id):
            raise NotFoundError("Learning path", path_id)
        logger.info(f"Deleted learning path {path_id}")

    async def assign_path(self, user_id: str, path_id: str) -> bool:
        """Assign a path to a learner. False when it was already assigned."""
        await self._require_user(user_id)
        await self._require_path(path_id)
        assigned = await self.db.assign_path(user_id, path_id)
        if assigned:
            logger.info(f"Assigned learning path {path_id} to user {user_id}")
        return assigned

    async def unassign_path(self, user_id: str, path_id: str) -> bool:
        await self._require_user(user_id)
        removed = await self.db.unassign_path(user_id, path_id)
        if removed:
            logger.info(f"Removed learning path {path_id} from user {user_id}")
        return removed

    async def _require_path(self, path_id: str) -> LearningPath:
        path = await self.db.get_path(path_id)
        if path is None:
            raise NotFoundError("Learning path", path_id)
        return path
