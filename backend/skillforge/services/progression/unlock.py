from typing import AbstractSet, Iterable, Optional

from skillforge.models.content import Course, EdgeKind, LearningPath, Topic
from skillforge.services.progression.content_graph import (
    ContentGraph,
    course_roots,
    path_roots,
)


def is_unlocked(
    node_id: str,
    completed: AbstractSet[str],
    *,
    required: AbstractSet[str],
    roots: AbstractSet[str] = frozenset(),
) -> bool:
    """Roots are always open; anything else needs every requirement completed."""
    if node_id in roots:
        return True
    return set(required) <= set(completed)


def topic_unlocked_in_path(
    path: LearningPath, topic: Topic, completed: AbstractSet[str]
) -> bool:
    graph = ContentGraph.from_content(topics=[topic])
    return is_unlocked(
        topic.id,
        completed,
        required=graph.requirements(topic.id, EdgeKind.topic_path),
        roots=path_roots(path),
    )


def subject_unlocked_in_course(
    course: Course,
    subject_id: str,
    completed: AbstractSet[str],
    topics: Optional[Iterable[Topic]] = None,
) -> bool:
    graph = ContentGraph.from_content(courses=[course])
    return is_unlocked(
        subject_id,
        completed,
        required=graph.requirements(subject_id, EdgeKind.course_subject),
        roots=course_roots(course, topics or ()),
    )
