"""Collaborator interfaces injected into the engine.

SQLite-backed implementations live in ``progression.db``.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Protocol

from progression.core.models import (
    AssessmentAttempt,
    AuditEvent,
    CatalogEntry,
    ContentKind,
    ProgressionOverride,
    StudentProgress,
)


class ContentCatalog(Protocol):
    """Read-only access to course/lesson/assessment authoring data."""

    def get_node(self, content_id: str, kind: ContentKind) -> CatalogEntry | None: ...

    def list_course_nodes(self, course_id: str) -> list[CatalogEntry]:
        """All lessons (by order_index) then assessments of a course."""
        ...

    def course_revision(self, course_id: str) -> int:
        """Counter bumped on every catalog write touching the course."""
        ...


class EnrollmentDirectory(Protocol):
    """Enrollment lookups."""

    def is_enrolled(self, student_id: str, course_id: str) -> bool: ...

    def enrolled_course_ids(self, student_id: str) -> list[str]: ...


class ProgressTransaction(Protocol):
    """Unit of work bound to one store transaction."""

    def get_progress(
        self, student_id: str, content_id: str, kind: ContentKind
    ) -> StudentProgress | None: ...

    def insert_progress(self, progress: StudentProgress) -> StudentProgress: ...

    def save_progress(self, progress: StudentProgress) -> StudentProgress: ...

    def list_attempts(self, student_id: str, assessment_id: str) -> list[AssessmentAttempt]: ...

    def append_attempt(self, attempt: AssessmentAttempt) -> AssessmentAttempt: ...

    def active_override(self, student_id: str, content_id: str) -> ProgressionOverride | None: ...

    def insert_override(self, override: ProgressionOverride) -> ProgressionOverride: ...

    def clear_override(
        self, student_id: str, content_id: str, cleared_by: str
    ) -> ProgressionOverride | None: ...

    def record_audit(
        self,
        event_type: str,
        student_id: str,
        content_id: str,
        content_kind: str,
        actor_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None: ...


class ProgressStore(Protocol):
    """Transactional persistence for progress, attempts and overrides."""

    def transaction(self) -> AbstractContextManager[ProgressTransaction]: ...

    def get_progress(
        self, student_id: str, content_id: str, kind: ContentKind
    ) -> StudentProgress | None: ...

    def list_progress(
        self, student_id: str, status: str | None = None
    ) -> list[StudentProgress]: ...

    def list_attempts(self, student_id: str, assessment_id: str) -> list[AssessmentAttempt]: ...

    def active_override(self, student_id: str, content_id: str) -> ProgressionOverride | None: ...

    def list_audit(
        self, student_id: str, content_id: str | None = None
    ) -> list[AuditEvent]: ...
