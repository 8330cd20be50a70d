from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from skillforge.models.content import EdgeKind, LearningPath
from skillforge.models.user import ActivityStatus, User


class UnlockStatus(BaseModel):
    node_id: str
    container_id: str = Field(description="Course or learning path the node sits in")
    kind: EdgeKind
    unlocked: bool


class PathUnlockMap(BaseModel):
    path_id: str
    topics: Dict[str, bool] = Field(default_factory=dict)


class CourseProgress(BaseModel):
    id: str
    title: str
    description: str = ""
    total_topics: int
    viewed_topics: int
    percentage: int


class PathProgress(BaseModel):
    id: str
    title: str
    total_topics: int
    completed_topics: int
    percentage: int
    skipped_references: int = 0


class RecentActivityItem(BaseModel):
    topic_id: str
    topic_title: Optional[str] = None
    learning_path_id: Optional[str] = None
    learning_path_title: Optional[str] = None
    last_accessed: datetime
    status: ActivityStatus


class RecentView(BaseModel):
    topic_id: str
    title: Optional[str] = None
    viewed_at: datetime


class QuizScoreResult(BaseModel):
    course_id: str
    score: float
    updated: bool
    message: str


class CompletedTopicItem(BaseModel):
    topic_id: str
    title: str
    completed_at: datetime


class TopicSeen(BaseModel):
    topic_id: str
    seen: bool


class LearnerExport(BaseModel):
    """Everything stored about a learner, references expanded."""

    user: User
    completed_topics: List[CompletedTopicItem] = Field(default_factory=list)
    learning_paths: List[LearningPath] = Field(default_factory=list)
