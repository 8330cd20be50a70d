from typing import Annotated, List

from fastapi import APIRouter, Depends, Query

from skillforge.api.dependencies import (
    get_admin_service,
    get_analytics_service,
    get_notification_service,
    require_admin,
)
from skillforge.models.analytics import (
    CourseCompletion,
    EngagementReport,
    Histogram,
    PopularTopic,
    RetentionReport,
)
from skillforge.models.content import Course, LearningPath, Topic
from skillforge.models.notification import Notification
from skillforge.models.requests import (
    AssignPathRequest,
    BroadcastRequest,
    CourseCreateRequest,
    CourseUpdateRequest,
    DependencyRequest,
    PathCourseRequest,
    PathCreateRequest,
    PathStatusRequest,
    PathTopicRequest,
    PrerequisitesRequest,
    RegisterUserRequest,
    RoleRequest,
    TopicCreateRequest,
    TopicUpdateRequest,
    UpdateUserRequest,
)
from skillforge.models.user import User
from skillforge.services.admin.admin_service import AdminService
from skillforge.services.analytics.reports import AnalyticsService
from skillforge.services.notifications.notification_service import (
    NotificationService,
)

router = APIRouter(
    prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)]
)

Admin = Annotated[AdminService, Depends(get_admin_service)]
Analytics = Annotated[AnalyticsService, Depends(get_analytics_service)]
Notifications = Annotated[NotificationService, Depends(get_notification_service)]


# Users
@router.get("/users", response_model=List[User])
async def list_users(service: Admin):
    return await service.list_users()


@router.post("/users", response_model=User, status_code=201)
async def register_user(request: RegisterUserRequest, service: Admin):
    return await service.register_user(**request.model_dump())


@router.patch("/users/{user_id}", response_model=User)
async def update_user(user_id: str, request: UpdateUserRequest, service: Admin):
    return await service.update_user(user_id, request.model_dump(exclude_none=True))


@router.post("/users/{user_id}/role", response_model=User)
async def change_role(user_id: str, request: RoleRequest, service: Admin):
    return await service.change_role(user_id, request.role)


@router.delete("/users/{user_id}")
async def delete_user(user_id: str, service: Admin):
    await service.delete_user(user_id)
    return {"message": "User deleted"}


@router.post("/users/{user_id}/paths")
async def assign_path(user_id: str, request: AssignPathRequest, service: Admin):
    assigned = await service.assign_path(user_id, request.path_id)
    return {"assigned": assigned}


@router.delete("/users/{user_id}/paths/{path_id}")
async def unassign_path(user_id: str, path_id: str, service: Admin):
    removed = await service.unassign_path(user_id, path_id)
    return {"removed": removed}


# Topics
@router.post("/topics", response_model=Topic, status_code=201)
async def create_topic(request: TopicCreateRequest, service: Admin):
    topic = Topic(**request.model_dump(exclude={"course_id"}))
    return await service.create_topic(topic, request.course_id)


@router.patch("/topics/{topic_id}", response_model=Topic)
async def update_topic(topic_id: str, request: TopicUpdateRequest, service: Admin):
    return await service.update_topic(topic_id, request.model_dump(exclude_none=True))


@router.put("/topics/{topic_id}/prerequisites", response_model=Topic)
async def set_prerequisites(
    topic_id: str, request: PrerequisitesRequest, service: Admin
):
    return await service.set_prerequisites(topic_id, request.prerequisites)


@router.delete("/topics/{topic_id}")
async def delete_topic(topic_id: str, service: Admin):
    await service.delete_topic(topic_id)
    return {"message": "Topic deleted"}


# Courses
@router.get("/courses", response_model=List[Course])
async def list_courses(service: Admin):
    return await service.list_courses()


@router.post("/courses", response_model=Course, status_code=201)
async def create_course(request: CourseCreateRequest, service: Admin):
    return await service.create_course(Course(**request.model_dump()))


@router.patch("/courses/{course_id}", response_model=Course)
async def update_course(course_id: str, request: CourseUpdateRequest, service: Admin):
    return await service.update_course(course_id, request.model_dump(exclude_none=True))


@router.put("/courses/{course_id}/dependencies", response_model=Course)
async def set_dependency(course_id: str, request: DependencyRequest, service: Admin):
    return await service.set_dependency(
        course_id, request.subject, request.required_subjects
    )


@router.delete("/courses/{course_id}")
async def delete_course(course_id: str, service: Admin):
    await service.delete_course(course_id)
    return {"message": "Course and its topics deleted"}


# Learning paths
@router.get("/paths", response_model=List[LearningPath])
async def list_paths(service: Admin):
    return await service.list_paths()


@router.post("/paths", response_model=LearningPath, status_code=201)
async def create_path(request: PathCreateRequest, service: Admin):
    return await service.create_path(request.title, request.description, request.courses)


@router.put("/paths/{path_id}/status", response_model=LearningPath)
async def set_path_status(path_id: str, request: PathStatusRequest, service: Admin):
    return await service.set_path_status(path_id, request.status)


@router.post("/paths/{path_id}/courses", response_model=LearningPath)
async def add_course_to_path(path_id: str, request: PathCourseRequest, service: Admin):
    return await service.add_course_to_path(path_id, request.course_id)


@router.delete("/paths/{path_id}/courses/{course_id}", response_model=LearningPath)
async def remove_course_from_path(path_id: str, course_id: str, service: Admin):
    return await service.remove_course_from_path(path_id, course_id)


@router.post("/paths/{path_id}/topics", response_model=LearningPath)
async def add_topic_to_path(path_id: str, request: PathTopicRequest, service: Admin):
    return await service.add_topic_to_path(path_id, request.topic_id)


@router.delete("/paths/{path_id}")
async def delete_path(path_id: str, service: Admin):
    await service.delete_path(path_id)
    return {"message": "Learning path deleted and removed from all users"}


# Notifications
@router.post("/notifications/broadcast", response_model=Notification, status_code=201)
async def broadcast(request: BroadcastRequest, service: Notifications):
    return await service.broadcast(request.message, request.type)


@router.get("/notifications", response_model=List[Notification])
async def list_notifications(service: Notifications):
    return await service.list_all()


# Analytics
@router.get("/analytics/user-signups", response_model=Histogram)
async def user_signups(service: Analytics):
    return await service.signups()


@router.get("/analytics/popular-topics", response_model=List[PopularTopic])
async def popular_topics(
    service: Analytics, limit: Annotated[int, Query(ge=1, le=100)] = 10
):
    return await service.popular_topics(limit)


@router.get("/analytics/course-completion", response_model=List[CourseCompletion])
async def course_completion(service: Analytics):
    return await service.course_completion()


@router.get("/analytics/retention", response_model=RetentionReport)
async def retention(service: Analytics):
    return await service.retention()


@router.get("/analytics/engagement", response_model=EngagementReport)
async def engagement(service: Analytics):
    return await service.engagement()
