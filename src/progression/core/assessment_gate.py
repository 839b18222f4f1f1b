"""Assessment gate.

Determines the pass/attempt state of one student on one assessment from the
recorded attempts and the assessment's *current* configuration, so raising
``max_attempts`` un-blocks a student on the next evaluation.

Rules:
- best score = max score over all attempts (a later low score never erases
  an earlier pass)
- passed = at least one attempt and best score >= minimum passing score
- with ``max_attempts`` set, attempts_used >= max_attempts and not passed
  is a terminal failure (attempts_remaining = 0)
- time limits are advisory: late submissions are scored and tagged
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog

from progression.core.errors import ContentNotFound
from progression.core.interfaces import ContentCatalog, ProgressStore
from progression.core.models import (
    AssessmentAttempt,
    AssessmentRequirement,
    ContentKind,
    GateResult,
)

logger = structlog.get_logger(__name__)


def evaluate_attempts(
    requirement: AssessmentRequirement, attempts: list[AssessmentAttempt]
) -> GateResult:
    """Pure gate evaluation over a list of attempts."""
    attempts_used = len(attempts)
    best_score = max((a.score for a in attempts), default=0)
    passed = attempts_used > 0 and best_score >= requirement.minimum_passing_score

    attempts_remaining = (
        None
        if requirement.max_attempts is None
        else max(0, requirement.max_attempts - attempts_used)
    )

    return GateResult(
        assessment_id=requirement.assessment_id,
        passed=passed,
        attempts_used=attempts_used,
        attempts_remaining=attempts_remaining,
        best_score=best_score,
        minimum_passing_score=requirement.minimum_passing_score,
    )


def _as_utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def is_late(
    requirement: AssessmentRequirement,
    started_at: str | None,
    submitted_at: str,
) -> bool:
    """Whether a submission arrived after the assessment's time limit.

    Returns False when there is no time limit or no start time.
    """
    if requirement.time_limit_minutes is None or not started_at:
        return False
    started = _as_utc(datetime.fromisoformat(started_at))
    submitted = _as_utc(datetime.fromisoformat(submitted_at))
    return submitted - started > timedelta(minutes=requirement.time_limit_minutes)


class AssessmentGate:
    """Evaluates assessment requirements for students."""

    def __init__(self, catalog: ContentCatalog, store: ProgressStore):
        self.catalog = catalog
        self.store = store

    def requirement(self, assessment_id: str) -> AssessmentRequirement:
        """Current requirement of an assessment.

        Raises:
            ContentNotFound: If the assessment does not exist
        """
        entry = self.catalog.get_node(assessment_id, ContentKind.ASSESSMENT)
        if entry is None:
            raise ContentNotFound(assessment_id, ContentKind.ASSESSMENT.value)
        return entry.requirement

    def evaluate(self, student_id: str, assessment_id: str) -> GateResult:
        """Evaluate one student's state on one assessment."""
        requirement = self.requirement(assessment_id)
        attempts = self.store.list_attempts(student_id, assessment_id)
        result = evaluate_attempts(requirement, attempts)

        logger.debug(
            "gate.evaluated",
            student_id=student_id,
            assessment_id=assessment_id,
            passed=result.passed,
            attempts_used=result.attempts_used,
            attempts_remaining=result.attempts_remaining,
            best_score=result.best_score,
        )
        return result
