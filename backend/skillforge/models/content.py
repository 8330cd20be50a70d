import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, Field, model_validator

from skillforge.models.common import IdStr, MongoModel, utcnow

logger = logging.getLogger(__name__)


class Difficulty(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class TopicType(str, Enum):
    core = "core"
    advanced = "advanced"
    optional = "optional"


class PublishStatus(str, Enum):
    draft = "draft"
    published = "published"
    archived = "archived"


class CourseLevel(str, Enum):
    beginner = "Beginner"
    intermediate = "Intermediate"
    advanced = "Advanced"


class EdgeKind(str, Enum):
    """Which prerequisite relation an edge belongs to."""

    topic_path = "topic_path"
    course_subject = "course_subject"


class Topic(MongoModel):
    title: str
    description: str = ""
    content: str = ""
    difficulty: Difficulty = Difficulty.beginner
    type: TopicType = TopicType.core
    status: PublishStatus = PublishStatus.published
    tags: List[str] = Field(default_factory=list)
    estimated_minutes: Optional[int] = None
    prerequisites: List[IdStr] = Field(
        default_factory=list, description="Topics that must be completed first"
    )
    learning_path: Optional[IdStr] = None
    order: Optional[int] = None
    is_root: bool = Field(
        default=False, description="Always unlocked, whatever the dependencies say"
    )
    created_at: datetime = Field(default_factory=utcnow)


class CourseDependency(BaseModel):
    subject: IdStr
    required_subjects: List[IdStr] = Field(default_factory=list)


class Course(MongoModel):
    title: str
    description: str = ""
    level: CourseLevel = CourseLevel.beginner
    topics: List[IdStr] = Field(default_factory=list)
    dependencies: List[CourseDependency] = Field(default_factory=list)
    first_topic: Optional[IdStr] = None
    created_at: datetime = Field(default_factory=utcnow)


class PathRating(BaseModel):
    """One learner's rating of a learning path; a later rating replaces it."""

    user_id: IdStr
    score: int = Field(ge=1, le=5)
    review: str = ""
    rated_at: datetime = Field(default_factory=utcnow)


class RefKind(str, Enum):
    raw_id = "raw_id"
    populated = "populated"


class TopicRef(BaseModel):
    """A learning path's reference to a topic, resolved once on load."""

    kind: RefKind
    id: IdStr
    title: Optional[str] = None


def resolve_topic_ref(raw: Any) -> Optional[TopicRef]:
    """Resolve a stored topic reference, or return None when it is malformed.

    Valid references are a non-empty id (string or ObjectId) or an object
    carrying ``_id`` or ``topic``.
    """
    if isinstance(raw, TopicRef):
        return raw
    if isinstance(raw, ObjectId):
        return TopicRef(kind=RefKind.raw_id, id=str(raw))
    if isinstance(raw, str):
        return TopicRef(kind=RefKind.raw_id, id=raw) if raw.strip() else None
    if isinstance(raw, dict):
        if "kind" in raw and "id" in raw:
            return TopicRef.model_validate(raw)
        ref_id = raw.get("_id") or raw.get("topic")
        if ref_id:
            title = raw.get("title")
            return TopicRef(
                kind=RefKind.populated,
                id=str(ref_id),
                title=title if isinstance(title, str) else None,
            )
    return None


class LearningPath(MongoModel):
    title: str
    description: str = ""
    courses: List[IdStr] = Field(default_factory=list)
    topics: List[TopicRef] = Field(default_factory=list)
    status: PublishStatus = PublishStatus.published
    ratings: List[PathRating] = Field(default_factory=list)
    skipped_references: int = Field(default=0, exclude=True)
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="before")
    @classmethod
    def _resolve_topic_refs(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "topics" not in data:
            return data

        refs = []
        skipped = 0
        for raw in data.get("topics") or []:
            ref = resolve_topic_ref(raw)
            if ref is None:
                logger.warning(
                    f"Bad topic reference in learning path {data.get('title')!r}: {raw!r}"
                )
                skipped += 1
                continue
            refs.append(ref)

        return {**data, "topics": refs, "skipped_references": skipped}

    @property
    def topic_ids(self) -> List[str]:
        return [ref.id for ref in self.topics]

    def to_document(self) -> Dict[str, Any]:
        doc = super().to_document()
        doc["topics"] = self.topic_ids
        return doc
