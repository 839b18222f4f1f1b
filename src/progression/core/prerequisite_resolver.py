"""Prerequisite resolution over the content catalog.

The prerequisite graph is never stored; edges are derived on demand from
catalog fields:

- explicit ``lesson.prerequisites`` lists (each required lesson must be
  completed, and its mandatory assessment passed)
- the mandatory assessment of the preceding lesson (by order_index) gates
  the next lesson and the next lesson-level assessment
- a lesson-level assessment requires its owning lesson (completed when the
  assessment is mandatory, merely accessible otherwise)
- a mandatory final assessment requires every lesson of its course

Edges must form a DAG. ``transitive_closure`` detects cycles and raises
CyclicPrerequisiteGraph instead of looping.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

import structlog

from progression.core.errors import ContentNotFound, CyclicPrerequisiteGraph
from progression.core.interfaces import ContentCatalog
from progression.core.models import (
    CatalogEntry,
    ContentKind,
    ContentNode,
    CycleReport,
    Prerequisite,
    Requirement,
)

logger = structlog.get_logger(__name__)

NodeKey = tuple[str, str]


def _label(key: NodeKey) -> str:
    return f"{key[0]}:{key[1]}"


class PrerequisiteResolver:
    """Computes direct, transitive and inverse prerequisite relations."""

    def __init__(self, catalog: ContentCatalog, cache_dependents: bool = True):
        self.catalog = catalog
        self.cache_dependents = cache_dependents
        # course_id -> ({course_id: revision}, prerequisite key -> [(dependent, requirement)])
        self._index_cache: dict[
            str, tuple[dict[str, int], dict[NodeKey, list[Prerequisite]]]
        ] = {}

    # =========================================================================
    # CATALOG ACCESS
    # =========================================================================

    def get_entry(self, content_id: str, kind: ContentKind) -> CatalogEntry | None:
        return self.catalog.get_node(content_id, ContentKind(kind))

    def require_entry(self, node: ContentNode | CatalogEntry) -> CatalogEntry:
        if isinstance(node, CatalogEntry):
            return node
        entry = self.get_entry(node.id, node.kind)
        if entry is None:
            raise ContentNotFound(node.id, node.kind.value)
        return entry

    def _mandatory_assessment(self, lesson: CatalogEntry) -> CatalogEntry | None:
        if not lesson.assessment_id:
            return None
        assessment = self.get_entry(lesson.assessment_id, ContentKind.ASSESSMENT)
        if assessment is None or not assessment.is_mandatory:
            return None
        return assessment

    def _course_lessons(self, course_id: str) -> list[CatalogEntry]:
        return [
            e for e in self.catalog.list_course_nodes(course_id) if e.kind == ContentKind.LESSON
        ]

    def _previous_lesson(self, lesson: CatalogEntry) -> CatalogEntry | None:
        previous = None
        for candidate in self._course_lessons(lesson.course_id):
            if candidate.id == lesson.id:
                break
            if candidate.order_index <= lesson.order_index:
                previous = candidate
        return previous

    # =========================================================================
    # DIRECT PREREQUISITES
    # =========================================================================

    def direct_prerequisites(self, node: ContentNode | CatalogEntry) -> list[Prerequisite]:
        """Directly required nodes, in stable order.

        Enrollment is not returned as a node; the engine checks it
        separately before evaluating these.

        Raises:
            ContentNotFound: If the node itself is not in the catalog
        """
        entry = self.require_entry(node)
        result: list[Prerequisite] = []
        seen: set[NodeKey] = set()

        def add(required: CatalogEntry, requirement: Requirement) -> None:
            key = required.node.key
            if key in seen:
                return
            seen.add(key)
            result.append(Prerequisite(node=required.node, requirement=requirement))

        if entry.kind == ContentKind.LESSON:
            for prereq_id in entry.prerequisites:
                prereq = self.get_entry(prereq_id, ContentKind.LESSON)
                if prereq is None:
                    logger.warning(
                        "prerequisite.missing_lesson",
                        lesson_id=entry.id,
                        prerequisite_id=prereq_id,
                    )
                    continue
                add(prereq, Requirement.COMPLETED)
                gating = self._mandatory_assessment(prereq)
                if gating is not None:
                    add(gating, Requirement.PASSED)

            previous = self._previous_lesson(entry)
            if previous is not None:
                gating = self._mandatory_assessment(previous)
                if gating is not None:
                    add(gating, Requirement.PASSED)

        elif entry.kind == ContentKind.ASSESSMENT:
            if entry.lesson_id:
                owner = self.get_entry(entry.lesson_id, ContentKind.LESSON)
                if owner is not None:
                    add(
                        owner,
                        Requirement.COMPLETED if entry.is_mandatory else Requirement.ACCESSIBLE,
                    )
                    previous = self._previous_lesson(owner)
                    if previous is not None:
                        gating = self._mandatory_assessment(previous)
                        if gating is not None:
                            add(gating, Requirement.PASSED)
            elif entry.is_mandatory:
                for lesson in self._course_lessons(entry.course_id):
                    add(lesson, Requirement.COMPLETED)
                    gating = self._mandatory_assessment(lesson)
                    if gating is not None:
                        add(gating, Requirement.PASSED)

        return result

    # =========================================================================
    # TRANSITIVE CLOSURE
    # =========================================================================

    def transitive_closure(self, node: ContentNode | CatalogEntry) -> list[ContentNode]:
        """All nodes reachable through prerequisite edges, deepest first.

        Depth-first expansion with an explicit stack. Unpublished nodes are
        excluded and not expanded.

        Raises:
            CyclicPrerequisiteGraph: If a node is reached again while still
                being expanded
        """
        root = self.require_entry(node)
        closure: list[ContentNode] = []
        done: set[NodeKey] = set()
        path: list[NodeKey] = [root.node.key]
        on_path: set[NodeKey] = {root.node.key}
        frames = [(root, iter(self.direct_prerequisites(root)))]

        while frames:
            entry, pending = frames[-1]
            prereq = next(pending, None)

            if prereq is None:
                frames.pop()
                key = path.pop()
                on_path.discard(key)
                done.add(key)
                if frames:
                    closure.append(entry.node)
                continue

            key = prereq.node.key
            if key in on_path:
                cycle = [_label(k) for k in path[path.index(key):]] + [_label(key)]
                logger.error("prerequisite.cycle_detected", root=_label(root.node.key), cycle=cycle)
                raise CyclicPrerequisiteGraph(cycle)
            if key in done:
                continue
            if not prereq.node.published:
                done.add(key)
                continue

            child = self.get_entry(prereq.node.id, prereq.node.kind)
            if child is None:
                done.add(key)
                continue
            path.append(key)
            on_path.add(key)
            frames.append((child, iter(self.direct_prerequisites(child))))

        return closure

    def validate_course(self, course_id: str) -> list[CycleReport]:
        """Check every node of a course for prerequisite cycles.

        Returns:
            One report per distinct cycle found (empty when the course is a DAG)
        """
        reports: list[CycleReport] = []
        seen_cycles: set[frozenset[str]] = set()

        for entry in self.catalog.list_course_nodes(course_id):
            try:
                self.transitive_closure(entry)
            except CyclicPrerequisiteGraph as e:
                signature = frozenset(e.cycle)
                if signature in seen_cycles:
                    continue
                seen_cycles.add(signature)
                reports.append(CycleReport(node=entry.node, cycle=e.cycle))

        logger.info("prerequisite.course_validated", course_id=course_id, cycles=len(reports))
        return reports

    # =========================================================================
    # INVERSE INDEX
    # =========================================================================

    def _course_index(self, course_id: str) -> dict[NodeKey, list[Prerequisite]]:
        cached = self._index_cache.get(course_id)
        if cached is not None and all(
            self.catalog.course_revision(c) == r for c, r in cached[0].items()
        ):
            return cached[1]

        # Revisions of this course and of every course its lessons require
        revisions = {course_id: self.catalog.course_revision(course_id)}
        cacheable = True
        index: dict[NodeKey, list[Prerequisite]] = defaultdict(list)
        for entry in self.catalog.list_course_nodes(course_id):
            for prereq_id in entry.prerequisites:
                required = self.get_entry(prereq_id, ContentKind.LESSON)
                if required is None:
                    cacheable = False
                elif required.course_id not in revisions:
                    revisions[required.course_id] = self.catalog.course_revision(
                        required.course_id
                    )
            for prereq in self.direct_prerequisites(entry):
                index[prereq.node.key].append(
                    Prerequisite(node=entry.node, requirement=prereq.requirement)
                )

        index = dict(index)
        if self.cache_dependents and cacheable:
            self._index_cache[course_id] = (revisions, index)
        logger.debug(
            "prerequisite.index_built",
            course_id=course_id,
            revisions=revisions,
            cached=self.cache_dependents and cacheable,
            edges=sum(len(v) for v in index.values()),
        )
        return index

    def dependents(
        self, node: ContentNode, course_ids: Iterable[str]
    ) -> list[Prerequisite]:
        """Nodes whose direct prerequisites include ``node``.

        Each returned Prerequisite carries the *dependent* node and the
        requirement it places on ``node``.

        Args:
            node: The required node
            course_ids: Courses whose edges are scanned (node's own course
                plus any course that may reference it)
        """
        result: list[Prerequisite] = []
        seen: set[NodeKey] = set()
        for course_id in dict.fromkeys(course_ids):
            for dependent in self._course_index(course_id).get(node.key, []):
                if dependent.node.key in seen:
                    continue
                seen.add(dependent.node.key)
                result.append(dependent)
        return result

    def invalidate(self, course_id: str | None = None) -> None:
        """Drop cached inverse indexes (all courses when ``course_id`` is None)."""
        if course_id is None:
            self._index_cache.clear()
        else:
            self._index_cache.pop(course_id, None)
