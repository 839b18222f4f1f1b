"""Domain models for progression control.

Dataclasses shared by the resolver, the assessment gate, the override
authority and the engine. Every record exposes ``to_dict()`` for API and
CLI serialization.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# =============================================================================
# ENUMS
# =============================================================================


class ContentKind(str, Enum):
    """Kinds of content a student can be gated on."""

    COURSE = "course"
    LESSON = "lesson"
    ASSESSMENT = "assessment"


class ProgressStatus(str, Enum):
    """Per-content progress status of a student."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class OverrideAction(str, Enum):
    """Instructor override actions."""

    UNLOCK = "unlock"
    BLOCK = "block"


class Requirement(str, Enum):
    """What a prerequisite node must reach to count as met."""

    COMPLETED = "completed"
    PASSED = "passed"
    ACCESSIBLE = "accessible"


class AccessReason(str, Enum):
    """Reason codes returned with access decisions."""

    INSTRUCTOR_UNLOCK = "instructor_unlock"
    INSTRUCTOR_BLOCK = "instructor_block"
    NOT_FOUND = "not_found"
    NOT_ENROLLED = "not_enrolled"
    UNPUBLISHED = "unpublished"
    PREREQUISITES_NOT_MET = "prerequisites_not_met"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"


# =============================================================================
# CATALOG RECORDS
# =============================================================================


@dataclass(frozen=True)
class ContentNode:
    """Polymorphic reference to a course, lesson or assessment."""

    id: str
    kind: ContentKind
    published: bool = True
    title: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind.value, self.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "published": self.published,
            "title": self.title,
        }


@dataclass
class CatalogEntry:
    """Authoring data for one node, as returned by the content catalog.

    Fields that do not apply to a kind keep their defaults: lessons use
    ``prerequisites``/``assessment_id``/``order_index``; assessments use
    ``lesson_id`` and the requirement fields; courses use
    ``final_assessment_id``.
    """

    id: str
    kind: ContentKind
    course_id: str
    published: bool = False
    title: str = ""
    prerequisites: list[str] = field(default_factory=list)
    assessment_id: str | None = None
    order_index: int = 0
    lesson_id: str | None = None
    is_mandatory: bool = True
    minimum_passing_score: int = 70
    max_attempts: int | None = None
    time_limit_minutes: int | None = None
    final_assessment_id: str | None = None

    @property
    def node(self) -> ContentNode:
        return ContentNode(
            id=self.id, kind=self.kind, published=self.published, title=self.title
        )

    @property
    def requirement(self) -> AssessmentRequirement:
        """Assessment requirement view (assessments only)."""
        return AssessmentRequirement(
            assessment_id=self.id,
            is_mandatory=self.is_mandatory,
            minimum_passing_score=self.minimum_passing_score,
            max_attempts=self.max_attempts,
            time_limit_minutes=self.time_limit_minutes,
        )


@dataclass(frozen=True)
class AssessmentRequirement:
    """Pass/attempt configuration of an assessment."""

    assessment_id: str
    is_mandatory: bool = True
    minimum_passing_score: int = 70
    max_attempts: int | None = None
    time_limit_minutes: int | None = None


@dataclass
class Enrollment:
    """A student's enrollment in a course."""

    student_id: str
    course_id: str
    enrolled_at: str
    completed_at: str | None = None


@dataclass(frozen=True)
class Prerequisite:
    """A required node together with what it must reach."""

    node: ContentNode
    requirement: Requirement


# =============================================================================
# PROGRESS RECORDS
# =============================================================================


@dataclass
class StudentProgress:
    """Current progress state of one student on one content node."""

    id: str
    student_id: str
    course_id: str
    content_id: str
    content_kind: ContentKind
    status: ProgressStatus = ProgressStatus.NOT_STARTED
    completion_percentage: int = 0
    attempts_count: int = 0
    best_score: int | None = None
    last_accessed: str | None = None
    time_spent: int = 0
    version: int = 0

    @property
    def lesson_id(self) -> str | None:
        return self.content_id if self.content_kind == ContentKind.LESSON else None

    @property
    def assessment_id(self) -> str | None:
        return self.content_id if self.content_kind == ContentKind.ASSESSMENT else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "student_id": self.student_id,
            "course_id": self.course_id,
            "lesson_id": self.lesson_id,
            "assessment_id": self.assessment_id,
            "content_id": self.content_id,
            "content_kind": self.content_kind.value,
            "status": self.status.value,
            "completion_percentage": self.completion_percentage,
            "attempts_count": self.attempts_count,
            "best_score": self.best_score,
            "last_accessed": self.last_accessed,
            "time_spent": self.time_spent,
        }


@dataclass
class AssessmentAttempt:
    """One submitted attempt at an assessment."""

    id: str
    assessment_id: str
    student_id: str
    attempt_number: int
    score: int
    passed: bool
    submitted_at: str
    started_at: str | None = None
    time_spent: int = 0
    is_late: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "assessment_id": self.assessment_id,
            "student_id": self.student_id,
            "attempt_number": self.attempt_number,
            "score": self.score,
            "passed": self.passed,
            "started_at": self.started_at,
            "submitted_at": self.submitted_at,
            "time_spent": self.time_spent,
            "is_late": self.is_late,
        }


@dataclass
class ProgressionOverride:
    """Instructor exception for one (student, content) pair."""

    id: str
    student_id: str
    content_id: str
    content_kind: ContentKind
    action: OverrideAction
    reason: str
    issued_by: str
    issued_at: str
    cleared_at: str | None = None
    cleared_by: str | None = None

    @property
    def is_active(self) -> bool:
        return self.cleared_at is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "student_id": self.student_id,
            "content_id": self.content_id,
            "content_kind": self.content_kind.value,
            "action": self.action.value,
            "reason": self.reason,
            "issued_by": self.issued_by,
            "issued_at": self.issued_at,
            "cleared_at": self.cleared_at,
            "cleared_by": self.cleared_by,
        }


@dataclass
class AuditEvent:
    """Append-only audit record for instructor and blocking actions."""

    id: int
    event_type: str
    student_id: str
    content_id: str
    content_kind: str
    actor_id: str | None
    details: dict[str, Any]
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "student_id": self.student_id,
            "content_id": self.content_id,
            "content_kind": self.content_kind,
            "actor_id": self.actor_id,
            "details": self.details,
            "created_at": self.created_at,
        }


# =============================================================================
# RESULTS
# =============================================================================


@dataclass
class GateResult:
    """Pass/attempt state of one student on one assessment."""

    assessment_id: str
    passed: bool
    attempts_used: int
    attempts_remaining: int | None  # None means unlimited
    best_score: int
    minimum_passing_score: int

    @property
    def exhausted(self) -> bool:
        return not self.passed and self.attempts_remaining == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "assessment_id": self.assessment_id,
            "passed": self.passed,
            "attempts_used": self.attempts_used,
            "attempts_remaining": self.attempts_remaining,
            "best_score": self.best_score,
            "minimum_passing_score": self.minimum_passing_score,
            "exhausted": self.exhausted,
        }


@dataclass
class PrerequisiteStatus:
    """Evaluation of one prerequisite for an access decision."""

    node: ContentNode
    requirement: Requirement
    completed: bool
    score: int | None = None
    required_score: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "node": self.node.to_dict(),
            "requirement": self.requirement.value,
            "completed": self.completed,
            "score": self.score,
            "required_score": self.required_score,
        }


@dataclass
class AccessResult:
    """Structured answer to "can this student access this content?"."""

    can_access: bool
    reason: AccessReason | None = None
    blocked_by: ContentNode | None = None
    prerequisites: list[PrerequisiteStatus] = field(default_factory=list)
    override: ProgressionOverride | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_access": self.can_access,
            "reason": self.reason.value if self.reason else None,
            "blocked_by": self.blocked_by.to_dict() if self.blocked_by else None,
            "prerequisites": [p.to_dict() for p in self.prerequisites],
            "override": self.override.to_dict() if self.override else None,
        }


@dataclass
class UnlockedContent:
    """Content that became reachable as a side effect of one update."""

    lessons: list[str] = field(default_factory=list)
    assessments: list[str] = field(default_factory=list)
    courses: list[str] = field(default_factory=list)

    def add(self, node: ContentNode) -> None:
        bucket = {
            ContentKind.LESSON: self.lessons,
            ContentKind.ASSESSMENT: self.assessments,
            ContentKind.COURSE: self.courses,
        }[node.kind]
        if node.id not in bucket:
            bucket.append(node.id)

    def is_empty(self) -> bool:
        return not (self.lessons or self.assessments or self.courses)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "lessons": list(self.lessons),
            "assessments": list(self.assessments),
            "courses": list(self.courses),
        }


@dataclass
class ProgressUpdate:
    """Incoming progress update from the API/UI layer."""

    student_id: str
    content_id: str
    content_kind: ContentKind
    status: ProgressStatus
    completion_percentage: int = 0
    time_spent: int = 0


@dataclass
class ProgressUpdateResult:
    """Outcome of ``update_progress``.

    Rejected updates are no-ops: ``accepted`` is False and ``code`` explains
    why. ``progress`` always reflects the stored row after the call.
    """

    accepted: bool
    progress: StudentProgress | None
    unlocked: UnlockedContent = field(default_factory=UnlockedContent)
    code: str | None = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.accepted,
            "unlocked_content": self.unlocked.to_dict(),
            "progress": self.progress.to_dict() if self.progress else None,
            "code": self.code,
            "message": self.message,
        }


@dataclass
class SubmissionResult:
    """Outcome of recording an assessment attempt."""

    attempt: AssessmentAttempt
    gate: GateResult
    progress: StudentProgress
    unlocked: UnlockedContent = field(default_factory=UnlockedContent)

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempt": self.attempt.to_dict(),
            "gate": self.gate.to_dict(),
            "progress": self.progress.to_dict(),
            "unlocked_content": self.unlocked.to_dict(),
        }


@dataclass
class CycleReport:
    """Diagnostic for a content node that participates in a cycle."""

    node: ContentNode
    cycle: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"node": self.node.to_dict(), "cycle": list(self.cycle)}


@dataclass
class AssessmentOverview:
    """Per-assessment line of a course overview."""

    assessment_id: str
    can_access: bool
    passed: bool
    progress: StudentProgress | None = None
    gate: GateResult | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.assessment_id,
            "can_access": self.can_access,
            "passed": self.passed,
            "progress": self.progress.to_dict() if self.progress else None,
            "gate": self.gate.to_dict() if self.gate else None,
        }


@dataclass
class LessonOverview:
    """Per-lesson line of a course overview."""

    lesson: ContentNode
    access: AccessResult
    progress: StudentProgress | None = None
    assessment: AssessmentOverview | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "lesson": self.lesson.to_dict(),
            "can_access": self.access.can_access,
            "reason": self.access.reason.value if self.access.reason else None,
            "blocked_by": self.access.blocked_by.to_dict() if self.access.blocked_by else None,
            "progress": self.progress.to_dict() if self.progress else None,
            "assessment": self.assessment.to_dict() if self.assessment else None,
        }


@dataclass
class CourseOverview:
    """Read-only progress summary of one student in one course."""

    course_id: str
    student_id: str
    lessons: list[LessonOverview] = field(default_factory=list)
    final_assessment: AssessmentOverview | None = None

    @property
    def total_lessons(self) -> int:
        return len(self.lessons)

    @property
    def completed_lessons(self) -> int:
        return sum(
            1
            for lo in self.lessons
            if lo.progress is not None and lo.progress.status == ProgressStatus.COMPLETED
        )

    @property
    def overall_progress(self) -> int:
        if not self.lessons:
            return 0
        return round(self.completed_lessons * 100 / self.total_lessons)

    @property
    def is_completed(self) -> bool:
        final_ok = self.final_assessment is None or self.final_assessment.passed
        return self.completed_lessons == self.total_lessons and final_ok

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "student_id": self.student_id,
            "overall_progress": self.overall_progress,
            "total_lessons": self.total_lessons,
            "completed_lessons": self.completed_lessons,
            "lessons": [lo.to_dict() for lo in self.lessons],
            "final_assessment": (
                self.final_assessment.to_dict() if self.final_assessment else None
            ),
            "is_completed": self.is_completed,
        }
