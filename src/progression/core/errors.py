"""Error taxonomy for progression control.

Access denials are normally returned as structured ``AccessResult`` values;
the denial exceptions below are only raised by operations that cannot
proceed without access (assessment submission). Cycles, conflicts and
persistence faults always propagate.
"""

from __future__ import annotations


class ProgressionError(Exception):
    """Base class for all progression engine errors."""

    code = "progression_error"


class ContentNotFound(ProgressionError):
    """Raised when the catalog has no node with the given id and kind."""

    code = "not_found"

    def __init__(self, content_id: str, kind: str):
        self.content_id = content_id
        self.kind = kind
        super().__init__(f"{kind} '{content_id}' not found")


class NotEnrolled(ProgressionError):
    """Student is not enrolled in the course that owns the content."""

    code = "not_enrolled"

    def __init__(self, student_id: str, course_id: str):
        self.student_id = student_id
        self.course_id = course_id
        super().__init__(f"Student '{student_id}' is not enrolled in course '{course_id}'")


class ContentUnpublished(ProgressionError):
    """Content exists but is not published."""

    code = "unpublished"

    def __init__(self, content_id: str):
        self.content_id = content_id
        super().__init__(f"Content '{content_id}' is not published")


class PrerequisitesNotMet(ProgressionError):
    """At least one direct prerequisite is unmet."""

    code = "prerequisites_not_met"

    def __init__(self, content_id: str, blocked_by: str | None = None):
        self.content_id = content_id
        self.blocked_by = blocked_by
        message = f"Prerequisites not met for '{content_id}'"
        if blocked_by:
            message += f" (next step: '{blocked_by}')"
        super().__init__(message)


class InstructorBlocked(ProgressionError):
    """A standing block override denies the content."""

    code = "instructor_block"

    def __init__(self, content_id: str):
        self.content_id = content_id
        super().__init__(f"Content '{content_id}' is blocked by an instructor")


class AssessmentAttemptsExhausted(ProgressionError):
    """No attempts remain on an assessment (passed or not)."""

    code = "assessment_attempts_exhausted"

    def __init__(self, assessment_id: str, max_attempts: int):
        self.assessment_id = assessment_id
        self.max_attempts = max_attempts
        super().__init__(
            f"Maximum attempts ({max_attempts}) reached for assessment '{assessment_id}'"
        )


class InvalidStateTransition(ProgressionError):
    """Requested status change is not allowed by the progress state machine."""

    code = "invalid_state_transition"

    def __init__(self, current: str, target: str, detail: str = ""):
        self.current = current
        self.target = target
        message = f"Invalid transition {current} -> {target}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class CyclicPrerequisiteGraph(ProgressionError):
    """Prerequisite edges form a cycle (content authoring defect)."""

    code = "cyclic_prerequisite_graph"

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__("Prerequisite cycle detected: " + " -> ".join(self.cycle))


class ConcurrentUpdateConflict(ProgressionError):
    """Another request modified the same progress row first (retryable)."""

    code = "concurrent_update_conflict"


class PersistenceError(ProgressionError):
    """Underlying store failed for a reason other than a write conflict."""

    code = "persistence_error"
