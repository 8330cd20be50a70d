from datetime import datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query

from skillforge.api.dependencies import (
    get_current_user,
    get_learner_service,
    get_notification_service,
)
from skillforge.models.content import LearningPath
from skillforge.models.notification import Notification
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
from skillforge.models.requests import (
    QuizScoreRequest,
    RatePathRequest,
    ViewTopicRequest,
)
from skillforge.models.user import User
from skillforge.services.notifications.notification_service import (
    NotificationService,
)
from skillforge.services.progression.learner_service import LearnerService

router = APIRouter(prefix="/api/me", tags=["learner"])

CurrentUser = Annotated[User, Depends(get_current_user)]
Learner = Annotated[LearnerService, Depends(get_learner_service)]
Notifications = Annotated[NotificationService, Depends(get_notification_service)]


# Learning paths
@router.get("/paths", response_model=List[LearningPath])
async def assigned_paths(user: CurrentUser, service: Learner):
    """Published learning paths assigned to the caller."""
    return await service.assigned_paths(user)


@router.get("/paths/progress", response_model=List[PathProgress])
async def assigned_path_progress(user: CurrentUser, service: Learner):
    return await service.assigned_path_progress(user)


@router.get("/paths/{path_id}/progress", response_model=PathProgress)
async def path_progress(path_id: str, user: CurrentUser, service: Learner):
    return await service.path_progress(user, path_id)


@router.get("/paths/{path_id}/unlocked", response_model=PathUnlockMap)
async def path_unlock_map(path_id: str, user: CurrentUser, service: Learner):
    return await service.path_unlock_map(user, path_id)


@router.get("/paths/{path_id}/topics/{topic_id}/unlocked", response_model=UnlockStatus)
async def topic_unlocked(
    path_id: str, topic_id: str, user: CurrentUser, service: Learner
):
    return await service.topic_unlocked_in_path(user, path_id, topic_id)


@router.post("/paths/{path_id}/rating", response_model=LearningPath)
async def rate_path(
    path_id: str, request: RatePathRequest, user: CurrentUser, service: Learner
):
    """Rate a learning path from 1 to 5; rating again replaces the earlier rating."""
    return await service.rate_path(user, path_id, request.score, request.review)


# Courses
@router.get("/courses/progress", response_model=List[CourseProgress])
async def all_course_progress(user: CurrentUser, service: Learner):
    return await service.all_course_progress(user)


@router.get("/courses/{course_id}/progress", response_model=CourseProgress)
async def course_progress(course_id: str, user: CurrentUser, service: Learner):
    return await service.course_progress(user, course_id)


@router.get(
    "/courses/{course_id}/subjects/{subject_id}/unlocked",
    response_model=UnlockStatus,
)
async def subject_unlocked(
    course_id: str, subject_id: str, user: CurrentUser, service: Learner
):
    return await service.subject_unlocked_in_course(user, course_id, subject_id)


# Activity
@router.post("/topics/{topic_id}/view")
async def record_view(
    topic_id: str,
    user: CurrentUser,
    service: Learner,
    request: Optional[ViewTopicRequest] = None,
):
    short_description = request.short_description if request else None
    viewed = await service.record_view(user, topic_id, short_description)
    return {"topic_id": topic_id, "newly_viewed": viewed}


@router.post("/topics/{topic_id}/complete")
async def record_completion(topic_id: str, user: CurrentUser, service: Learner):
    completed = await service.record_completion(user, topic_id)
    return {"topic_id": topic_id, "newly_completed": completed}


@router.get("/topics/{topic_id}/seen", response_model=TopicSeen)
async def topic_seen(topic_id: str, user: CurrentUser, service: Learner):
    return service.topic_seen(user, topic_id)


@router.get("/completed-topics", response_model=List[CompletedTopicItem])
async def completed_topics(user: CurrentUser, service: Learner):
    return await service.completed_topics(user)


@router.get("/recent-activity", response_model=List[RecentActivityItem])
async def recent_activity(user: CurrentUser, service: Learner):
    return await service.recent_activity(user)


@router.get("/recent-views", response_model=List[RecentView])
async def recent_views(
    user: CurrentUser,
    service: Learner,
    limit: Annotated[int, Query(ge=1, le=50)] = 5,
):
    return await service.recent_views(user, limit)


@router.post("/quiz-scores", response_model=QuizScoreResult)
async def save_quiz_score(request: QuizScoreRequest, user: CurrentUser, service: Learner):
    return await service.save_quiz_score(user, request.course_id, request.score)


@router.post("/last-login")
async def record_login(user: CurrentUser, service: Learner):
    last_login: datetime = await service.record_login(user)
    return {"last_login": last_login}


@router.get("/export", response_model=LearnerExport)
async def export_data(user: CurrentUser, service: Learner):
    """The caller's stored data, completed topics and paths expanded."""
    return await service.export_data(user)


# Notifications
@router.get("/notifications", response_model=List[Notification])
async def notification_feed(user: CurrentUser, service: Notifications):
    """Unread notifications created since the caller's last login."""
    return await service.feed(user)


@router.post("/notifications/{notification_id}/read", response_model=Notification)
async def mark_notification_read(
    notification_id: str, user: CurrentUser, service: Notifications
):
    return await service.mark_read(notification_id, user.id)


@router.post("/notifications/reminder", response_model=Optional[Notification])
async def evaluate_reminder(user: CurrentUser, service: Notifications):
    return await service.evaluate_reminder(user)


@router.post("/notifications/achievement", response_model=Optional[Notification])
async def evaluate_achievement(user: CurrentUser, service: Notifications):
    return await service.evaluate_achievement(user)
