"""Prerequisite graph over topics, courses and learning paths.

Both prerequisite relations live in one ``networkx.DiGraph``: an edge
``required -> node`` carries ``kind`` (``topic_path`` for
``Topic.prerequisites``, ``course_subject`` for ``Course.dependencies``).
"""

import logging
from typing import Iterable, List, Optional, Set, Tuple

import networkx as nx

from skillforge.errors import PrerequisiteCycleError
from skillforge.models.content import Course, EdgeKind, LearningPath, Topic

logger = logging.getLogger(__name__)


class ContentGraph:
    """Prerequisite edges of both kinds, queried per kind."""

    def __init__(self, edges: Iterable[Tuple[str, str, EdgeKind]] = ()):
        self.graph = nx.MultiDiGraph()
        for required, node, kind in edges:
            self.add_edge(required, node, kind)

    @classmethod
    def from_content(
        cls,
        topics: Iterable[Topic] = (),
        courses: Iterable[Course] = (),
    ) -> "ContentGraph":
        graph = cls()
        for topic in topics:
            graph.graph.add_node(topic.id)
            for required in topic.prerequisites:
                graph.add_edge(required, topic.id, EdgeKind.topic_path)
        for course in courses:
            for dependency in course.dependencies:
                for required in dependency.required_subjects:
                    graph.add_edge(
                        required, dependency.subject, EdgeKind.course_subject
                    )
        return graph

    def add_edge(self, required: str, node: str, kind: EdgeKind) -> None:
        self.graph.add_edge(required, node, key=kind.value, kind=kind)

    def replace_requirements(
        self, node: str, required: Iterable[str], kind: EdgeKind
    ) -> None:
        """Swap the incoming edges of one kind for ``node``."""
        if node in self.graph:
            stale = [
                (src, node, key)
                for src, _, key in self.graph.in_edges(node, keys=True)
                if key == kind.value
            ]
            self.graph.remove_edges_from(stale)
        else:
            self.graph.add_node(node)
        for req in required:
            self.add_edge(req, node, kind)

    def requirements(self, node: str, kind: EdgeKind) -> Set[str]:
        if node not in self.graph:
            return set()
        return {
            src
            for src, _, key in self.graph.in_edges(node, keys=True)
            if key == kind.value
        }

    def _kind_view(self, kind: EdgeKind) -> nx.DiGraph:
        view = nx.DiGraph()
        view.add_nodes_from(self.graph.nodes)
        view.add_edges_from(
            (src, dst)
            for src, dst, key in self.graph.edges(keys=True)
            if key == kind.value
        )
        return view

    def find_cycle(self, kind: EdgeKind) -> Optional[List[str]]:
        """Return the nodes of one cycle in order, or None when acyclic."""
        try:
            cycle = nx.find_cycle(self._kind_view(kind), orientation="original")
        except nx.NetworkXNoCycle:
            return None
        nodes = [src for src, _, _ in cycle]
        nodes.append(cycle[-1][1])
        return nodes

    def ensure_acyclic(self, kind: EdgeKind) -> None:
        cycle = self.find_cycle(kind)
        if cycle:
            logger.warning(f"Rejected {kind.value} prerequisites, cycle: {cycle}")
            raise PrerequisiteCycleError(cycle)


def path_roots(path: LearningPath) -> Set[str]:
    """The first topic of a learning path is always unlocked."""
    return {path.topics[0].id} if path.topics else set()


def course_roots(course: Course, topics: Iterable[Topic] = ()) -> Set[str]:
    """A course's first topic and any of its topics flagged as roots."""
    roots = {topic.id for topic in topics if topic.is_root and topic.id in course.topics}
    if course.first_topic:
        roots.add(course.first_topic)
    return roots
