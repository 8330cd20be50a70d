import logging
import math
from typing import AbstractSet

from skillforge.models.content import Course, LearningPath
from skillforge.models.progress import CourseProgress, PathProgress

logger = logging.getLogger(__name__)


def percentage(total: int, completed: int) -> int:
    """Whole-number share of ``completed`` in ``total``, rounded half up.

    Always within [0, 100]; an empty total yields 0.
    """
    if total <= 0:
        return 0
    completed = min(max(completed, 0), total)
    return int(math.floor(completed * 100 / total + 0.5))


def course_progress(course: Course, viewed: AbstractSet[str]) -> CourseProgress:
    """Course progress follows what the learner has viewed."""
    total = len(course.topics)
    viewed_count = sum(1 for topic_id in course.topics if topic_id in viewed)
    return CourseProgress(
        id=course.id,
        title=course.title,
        description=course.description,
        total_topics=total,
        viewed_topics=viewed_count,
        percentage=percentage(total, viewed_count),
    )


def path_progress(path: LearningPath, completed: AbstractSet[str]) -> PathProgress:
    """Path progress follows completions over the path's valid topic references."""
    if path.skipped_references:
        logger.warning(
            f"Learning path {path.id} ({path.title}) has "
            f"{path.skipped_references} malformed topic reference(s); "
            "they are left out of its progress"
        )
    total = len(path.topics)
    done = sum(1 for ref in path.topics if ref.id in completed)
    return PathProgress(
        id=path.id,
        title=path.title,
        total_topics=total,
        completed_topics=done,
        percentage=percentage(total, done),
        skipped_references=path.skipped_references,
    )
