from typing import List, Optional

from pydantic import BaseModel, Field

from skillforge.models.content import (
    CourseLevel,
    Difficulty,
    PublishStatus,
    TopicType,
)
from skillforge.models.notification import NotificationType
from skillforge.models.user import Role


class ViewTopicRequest(BaseModel):
    short_description: Optional[str] = None


class QuizScoreRequest(BaseModel):
    course_id: str
    score: float = Field(ge=0, le=100)


class RatePathRequest(BaseModel):
    score: int = Field(ge=1, le=5)
    review: str = ""


class QuizGenerateRequest(BaseModel):
    course_id: str


class BroadcastRequest(BaseModel):
    message: str
    type: NotificationType = NotificationType.info


class RegisterUserRequest(BaseModel):
    username: str = Field(min_length=1)
    email: str = Field(min_length=3)
    role: Role = Role.user
    about: str = ""
    interests: List[str] = Field(default_factory=list)


class UpdateUserRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    about: Optional[str] = None
    interests: Optional[List[str]] = None


class RoleRequest(BaseModel):
    role: Role


class TopicCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    content: str = ""
    difficulty: Difficulty = Difficulty.beginner
    type: TopicType = TopicType.core
    status: PublishStatus = PublishStatus.published
    tags: List[str] = Field(default_factory=list)
    estimated_minutes: Optional[int] = None
    prerequisites: List[str] = Field(default_factory=list)
    order: Optional[int] = None
    is_root: bool = False
    course_id: Optional[str] = Field(
        default=None, description="Course the new topic joins"
    )


class TopicUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    type: Optional[TopicType] = None
    status: Optional[PublishStatus] = None
    tags: Optional[List[str]] = None
    estimated_minutes: Optional[int] = None
    prerequisites: Optional[List[str]] = None
    order: Optional[int] = None
    is_root: Optional[bool] = None


class PrerequisitesRequest(BaseModel):
    prerequisites: List[str] = Field(default_factory=list)


class CourseCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    level: CourseLevel = CourseLevel.beginner
    topics: List[str] = Field(default_factory=list)
    first_topic: Optional[str] = None


class CourseUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    level: Optional[CourseLevel] = None


class DependencyRequest(BaseModel):
    subject: str
    required_subjects: List[str] = Field(default_factory=list)


class PathCreateRequest(BaseModel):
    title: str
    description: str = ""
    courses: List[str] = Field(default_factory=list)


class PathStatusRequest(BaseModel):
    status: PublishStatus


class PathCourseRequest(BaseModel):
    course_id: str


class PathTopicRequest(BaseModel):
    topic_id: str


class AssignPathRequest(BaseModel):
    path_id: str
