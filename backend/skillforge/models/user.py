from datetime import datetime
from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, Field

from skillforge.models.common import IdStr, MongoModel, as_utc, utcnow


class Role(str, Enum):
    user = "user"
    admin = "admin"


class ActivityStatus(str, Enum):
    in_progress = "In Progress"
    completed = "Completed"


class CompletedTopic(BaseModel):
    topic_id: IdStr
    completed_at: datetime = Field(default_factory=utcnow)


class ViewedTopic(BaseModel):
    topic_id: IdStr
    viewed_at: datetime = Field(default_factory=utcnow)
    short_description: Optional[str] = None


class ActivityEntry(BaseModel):
    """One line of a learner's recent activity, keyed by topic."""

    topic_id: IdStr
    learning_path_id: Optional[IdStr] = None
    last_accessed: datetime = Field(default_factory=utcnow)
    status: ActivityStatus = ActivityStatus.in_progress


class QuizScore(BaseModel):
    course_id: IdStr
    score: float


class User(MongoModel):
    username: str
    email: str
    role: Role = Role.user
    about: str = ""
    interests: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
    completed_topics: List[CompletedTopic] = Field(default_factory=list)
    viewed_topics: List[ViewedTopic] = Field(default_factory=list)
    recent_activity: List[ActivityEntry] = Field(default_factory=list)
    activity_version: int = 0
    learning_paths: List[IdStr] = Field(default_factory=list)
    quiz_scores: List[QuizScore] = Field(default_factory=list)

    @property
    def completed_ids(self) -> Set[str]:
        return {entry.topic_id for entry in self.completed_topics}

    @property
    def viewed_ids(self) -> Set[str]:
        return {entry.topic_id for entry in self.viewed_topics}

    @property
    def last_viewed_at(self) -> Optional[datetime]:
        if not self.viewed_topics:
            return None
        return max(as_utc(entry.viewed_at) for entry in self.viewed_topics)

    @property
    def last_activity(self) -> datetime:
        """Latest known sign of life, used for retention."""
        return as_utc(self.updated_at or self.last_login or self.created_at)

    def best_score(self, course_id: str) -> Optional[float]:
        for entry in self.quiz_scores:
            if entry.course_id == course_id:
                return entry.score
        return None


class Identity(BaseModel):
    """Verified caller identity handed over by the identity provider."""

    id: str
    role: Role = Role.user

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin
