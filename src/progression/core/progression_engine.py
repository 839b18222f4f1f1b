"""Progression control engine.

Orchestrates the prerequisite resolver, the assessment gate and the override
authority to:

- answer "can student S access content C?" (read-only, never raises for
  ordinary denials)
- apply progress updates and assessment submissions inside one store
  transaction, then compute the unlock cascade
- compose read-only views (course overview, blocked content)

Collaborators are injected through the constructor; the engine keeps no
global state beyond the resolver's per-course dependents cache.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, TypeVar

import structlog

from progression.core.assessment_gate import AssessmentGate, evaluate_attempts, is_late
from progression.core.errors import (
    AssessmentAttemptsExhausted,
    ConcurrentUpdateConflict,
    ContentNotFound,
    ContentUnpublished,
    CyclicPrerequisiteGraph,
    InstructorBlocked,
    InvalidStateTransition,
    NotEnrolled,
    PrerequisitesNotMet,
    ProgressionError,
)
from progression.core.interfaces import ContentCatalog, EnrollmentDirectory, ProgressStore
from progression.core.models import (
    AccessReason,
    AccessResult,
    AssessmentAttempt,
    AssessmentOverview,
    CatalogEntry,
    ContentKind,
    ContentNode,
    CourseOverview,
    LessonOverview,
    OverrideAction,
    PrerequisiteStatus,
    ProgressionOverride,
    ProgressStatus,
    ProgressUpdate,
    ProgressUpdateResult,
    Requirement,
    StudentProgress,
    SubmissionResult,
    UnlockedContent,
)
from progression.core.override_authority import OverrideAuthority
from progression.core.prerequisite_resolver import PrerequisiteResolver
from progression.core.state_machine import transition_path
from progression.utils.ids import new_id, utc_now

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Rejection codes for update_progress (besides AccessReason values)
CODE_INVALID_TRANSITION = InvalidStateTransition.code
CODE_BLOCKED_RESERVED = "blocked_status_reserved"
CODE_ASSESSMENT_NOT_PASSED = "assessment_not_passed"

EVENT_PROGRESS_BLOCKED = "progress_blocked"
EVENT_PROGRESS_UNBLOCKED = "progress_unblocked"
EVENT_PROGRESS_RESET = "progress_reset"


class ProgressionControlEngine:
    """Access decisions, progress updates and unlock cascades."""

    def __init__(
        self,
        catalog: ContentCatalog,
        enrollments: EnrollmentDirectory,
        store: ProgressStore,
        conflict_retries: int = 1,
        cache_dependents: bool = True,
    ):
        self.catalog = catalog
        self.enrollments = enrollments
        self.store = store
        self.conflict_retries = conflict_retries
        self.resolver = PrerequisiteResolver(catalog, cache_dependents=cache_dependents)
        self.gate = AssessmentGate(catalog, store)
        self.overrides = OverrideAuthority(store)

    # =========================================================================
    # ACCESS QUERY
    # =========================================================================

    def can_access_content(
        self, student_id: str, content_id: str, content_kind: ContentKind | str
    ) -> AccessResult:
        """Decide whether a student can access a content node.

        Denials are returned as ``AccessResult(can_access=False, reason=...)``.

        Raises:
            CyclicPrerequisiteGraph: If the node's prerequisite graph has a cycle
        """
        return self._access(student_id, content_id, ContentKind(content_kind), validate=True)

    def _standing_override(
        self, student_id: str, content_id: str, kind: ContentKind
    ) -> ProgressionOverride | None:
        override = self.overrides.current(student_id, content_id)
        if override is not None and override.content_kind == kind:
            return override
        return None

    def _access(
        self, student_id: str, content_id: str, kind: ContentKind, validate: bool
    ) -> AccessResult:
        entry = self.resolver.get_entry(content_id, kind)

        override = self._standing_override(student_id, content_id, kind)
        if override is not None:
            prerequisites = self._evaluate_prerequisites(student_id, entry) if entry else []
            if override.action == OverrideAction.UNLOCK:
                return AccessResult(
                    can_access=True,
                    reason=AccessReason.INSTRUCTOR_UNLOCK,
                    prerequisites=prerequisites,
                    override=override,
                )
            return AccessResult(
                can_access=False,
                reason=AccessReason.INSTRUCTOR_BLOCK,
                prerequisites=prerequisites,
                override=override,
            )

        if entry is None:
            return AccessResult(can_access=False, reason=AccessReason.NOT_FOUND)

        if not self.enrollments.is_enrolled(student_id, entry.course_id):
            return AccessResult(
                can_access=False,
                reason=AccessReason.NOT_ENROLLED,
                prerequisites=self._evaluate_prerequisites(student_id, entry),
            )

        if not entry.published:
            return AccessResult(
                can_access=False,
                reason=AccessReason.UNPUBLISHED,
                prerequisites=self._evaluate_prerequisites(student_id, entry),
            )

        if validate:
            self.resolver.transitive_closure(entry)

        prerequisites = self._evaluate_prerequisites(student_id, entry)
        unmet = next((p for p in prerequisites if not p.completed), None)
        if unmet is not None:
            return AccessResult(
                can_access=False,
                reason=AccessReason.PREREQUISITES_NOT_MET,
                blocked_by=unmet.node,
                prerequisites=prerequisites,
            )

        if kind == ContentKind.ASSESSMENT and self.gate.evaluate(student_id, entry.id).exhausted:
            return AccessResult(
                can_access=False,
                reason=AccessReason.ATTEMPTS_EXHAUSTED,
                prerequisites=prerequisites,
            )

        return AccessResult(can_access=True, prerequisites=prerequisites)

    def _evaluate_prerequisites(
        self, student_id: str, entry: CatalogEntry
    ) -> list[PrerequisiteStatus]:
        statuses: list[PrerequisiteStatus] = []

        for prereq in self.resolver.direct_prerequisites(entry):
            node = prereq.node

            if prereq.requirement == Requirement.PASSED:
                gate = self.gate.evaluate(student_id, node.id)
                statuses.append(
                    PrerequisiteStatus(
                        node=node,
                        requirement=prereq.requirement,
                        completed=node.published and gate.passed,
                        score=gate.best_score if gate.attempts_used else None,
                        required_score=gate.minimum_passing_score,
                    )
                )
            elif prereq.requirement == Requirement.ACCESSIBLE:
                # Closure of the dependent already covers this node
                reachable = self._access(student_id, node.id, node.kind, validate=False)
                statuses.append(
                    PrerequisiteStatus(
                        node=node,
                        requirement=prereq.requirement,
                        completed=node.published and reachable.can_access,
                    )
                )
            else:
                progress = self.store.get_progress(student_id, node.id, node.kind)
                done = progress is not None and progress.status == ProgressStatus.COMPLETED
                statuses.append(
                    PrerequisiteStatus(
                        node=node,
                        requirement=prereq.requirement,
                        completed=node.published and done,
                    )
                )

        return statuses

    def _require_access(self, student_id: str, entry: CatalogEntry) -> AccessResult:
        """Access check that raises the matching denial error."""
        access = self.can_access_content(student_id, entry.id, entry.kind)
        if access.can_access:
            return access

        if access.reason == AccessReason.INSTRUCTOR_BLOCK:
            raise InstructorBlocked(entry.id)
        if access.reason == AccessReason.NOT_ENROLLED:
            raise NotEnrolled(student_id, entry.course_id)
        if access.reason == AccessReason.UNPUBLISHED:
            raise ContentUnpublished(entry.id)
        if access.reason == AccessReason.ATTEMPTS_EXHAUSTED:
            raise AssessmentAttemptsExhausted(entry.id, entry.requirement.max_attempts)
        raise PrerequisitesNotMet(
            entry.id, access.blocked_by.id if access.blocked_by else None
        )

    # =========================================================================
    # PROGRESS UPDATE
    # =========================================================================

    def update_progress(self, update: ProgressUpdate) -> ProgressUpdateResult:
        """Apply a progress update and compute newly unlocked content.

        Invalid or disallowed updates are rejected as no-ops (``accepted``
        False with a code) rather than raised.

        Raises:
            ContentNotFound: If the content does not exist
            ValueError: If percentage or time are out of range
            ConcurrentUpdateConflict: If the write conflicts twice in a row
        """
        kind = ContentKind(update.content_kind)
        target = ProgressStatus(update.status)
        if not 0 <= update.completion_percentage <= 100:
            raise ValueError("completion_percentage must be between 0 and 100")
        if update.time_spent < 0:
            raise ValueError("time_spent must not be negative")

        entry = self.resolver.get_entry(update.content_id, kind)
        if entry is None:
            raise ContentNotFound(update.content_id, kind.value)

        if target == ProgressStatus.BLOCKED:
            return self._rejected(
                update,
                self.store.get_progress(update.student_id, entry.id, kind),
                CODE_BLOCKED_RESERVED,
                "blocked is set by assessment outcomes or instructor overrides only",
            )

        candidates = self._cascade_candidates(update.student_id, entry)
        before = self._accessibility(update.student_id, candidates)

        result, changed = self._with_conflict_retry(
            "update_progress", lambda: self._apply_update(update, entry, target)
        )
        if not result.accepted:
            return result

        if changed:
            result.unlocked = self._unlock_cascade(update.student_id, candidates, before)

        logger.info(
            "progress.updated",
            student_id=update.student_id,
            content_id=entry.id,
            content_kind=kind.value,
            status=result.progress.status.value if result.progress else None,
            completion_percentage=(
                result.progress.completion_percentage if result.progress else None
            ),
            unlocked=result.unlocked.to_dict(),
        )
        return result

    def _apply_update(
        self, update: ProgressUpdate, entry: CatalogEntry, target: ProgressStatus
    ) -> tuple[ProgressUpdateResult, bool]:
        student_id = update.student_id

        with self.store.transaction() as tx:
            progress = tx.get_progress(student_id, entry.id, entry.kind)
            override = tx.active_override(student_id, entry.id)
            if override is not None and override.content_kind != entry.kind:
                override = None

            if override is not None and override.action == OverrideAction.BLOCK:
                return (
                    self._rejected(
                        update,
                        progress,
                        AccessReason.INSTRUCTOR_BLOCK.value,
                        override.reason,
                    ),
                    False,
                )
            unlock_active = override is not None and override.action == OverrideAction.UNLOCK

            current = progress.status if progress else ProgressStatus.NOT_STARTED
            # A first row is only created for accessible content
            if (
                current == ProgressStatus.NOT_STARTED
                and (target != current or progress is None)
                and not unlock_active
            ):
                access = self._access(student_id, entry.id, entry.kind, validate=True)
                if not access.can_access:
                    return (
                        self._rejected(
                            update,
                            progress,
                            access.reason.value if access.reason else "access_denied",
                            "content is not accessible yet",
                        ),
                        False,
                    )

            if (
                entry.kind == ContentKind.ASSESSMENT
                and target == ProgressStatus.COMPLETED
                and current != ProgressStatus.COMPLETED
            ):
                gate = evaluate_attempts(
                    entry.requirement, tx.list_attempts(student_id, entry.id)
                )
                if not gate.passed:
                    return (
                        self._rejected(
                            update,
                            progress,
                            CODE_ASSESSMENT_NOT_PASSED,
                            "an assessment is completed by a passing attempt",
                        ),
                        False,
                    )

            try:
                path = transition_path(current, target, override_active=unlock_active)
            except InvalidStateTransition as e:
                logger.info(
                    "progress.transition_rejected",
                    student_id=student_id,
                    content_id=entry.id,
                    current=current.value,
                    target=target.value,
                )
                return self._rejected(update, progress, e.code, str(e)), False

            if progress is None:
                progress = tx.insert_progress(
                    StudentProgress(
                        id=new_id(),
                        student_id=student_id,
                        course_id=entry.course_id,
                        content_id=entry.id,
                        content_kind=entry.kind,
                    )
                )

            new_status = path[-1] if path else current
            percentage = max(progress.completion_percentage, update.completion_percentage)
            if new_status == ProgressStatus.COMPLETED:
                percentage = 100

            saved = tx.save_progress(
                replace(
                    progress,
                    status=new_status,
                    completion_percentage=percentage,
                    time_spent=max(progress.time_spent, update.time_spent),
                    last_accessed=utc_now(),
                )
            )

            if current == ProgressStatus.BLOCKED and new_status != ProgressStatus.BLOCKED:
                tx.record_audit(
                    EVENT_PROGRESS_UNBLOCKED,
                    student_id,
                    entry.id,
                    entry.kind.value,
                    actor_id=override.issued_by if override else None,
                    details={"override_id": override.id if override else None},
                )

        return ProgressUpdateResult(accepted=True, progress=saved), bool(path)

    def _rejected(
        self,
        update: ProgressUpdate,
        progress: StudentProgress | None,
        code: str,
        message: str,
    ) -> ProgressUpdateResult:
        logger.info(
            "progress.update_rejected",
            student_id=update.student_id,
            content_id=update.content_id,
            requested_status=ProgressStatus(update.status).value,
            code=code,
        )
        return ProgressUpdateResult(
            accepted=False, progress=progress, code=code, message=message
        )

    # =========================================================================
    # ASSESSMENT SUBMISSION
    # =========================================================================

    def submit_assessment_attempt(
        self,
        student_id: str,
        assessment_id: str,
        score: int,
        started_at: str | None = None,
        submitted_at: str | None = None,
        time_spent: int = 0,
    ) -> SubmissionResult:
        """Record a scored attempt and update the assessment progress row.

        A passing best score completes the assessment; a failed mandatory
        assessment with no attempts left becomes blocked.

        Raises:
            ContentNotFound: If the assessment does not exist
            InstructorBlocked, NotEnrolled, ContentUnpublished,
                PrerequisitesNotMet: If the student cannot access it
            AssessmentAttemptsExhausted: If no attempts remain and no unlock
                override stands
            ValueError: If score is outside 0..100
        """
        if not 0 <= score <= 100:
            raise ValueError("score must be between 0 and 100")
        if time_spent < 0:
            raise ValueError("time_spent must not be negative")

        entry = self.resolver.get_entry(assessment_id, ContentKind.ASSESSMENT)
        if entry is None:
            raise ContentNotFound(assessment_id, ContentKind.ASSESSMENT.value)

        access = self._require_access(student_id, entry)
        unlock_active = (
            access.override is not None and access.override.action == OverrideAction.UNLOCK
        )

        candidates = self._cascade_candidates(student_id, entry)
        before = self._accessibility(student_id, candidates)

        def apply() -> tuple[SubmissionResult, bool]:
            return self._apply_submission(
                student_id,
                entry,
                score,
                started_at,
                submitted_at or utc_now(),
                time_spent,
                unlock_active,
                access.override,
            )

        result, changed = self._with_conflict_retry("submit_assessment_attempt", apply)
        if changed:
            result.unlocked = self._unlock_cascade(student_id, candidates, before)

        logger.info(
            "assessment.attempt_submitted",
            student_id=student_id,
            assessment_id=assessment_id,
            attempt_number=result.attempt.attempt_number,
            score=score,
            passed=result.gate.passed,
            is_late=result.attempt.is_late,
            status=result.progress.status.value,
            unlocked=result.unlocked.to_dict(),
        )
        return result

    def _apply_submission(
        self,
        student_id: str,
        entry: CatalogEntry,
        score: int,
        started_at: str | None,
        submitted_at: str,
        time_spent: int,
        unlock_active: bool,
        override: ProgressionOverride | None,
    ) -> tuple[SubmissionResult, bool]:
        requirement = entry.requirement

        with self.store.transaction() as tx:
            attempts = tx.list_attempts(student_id, entry.id)
            if (
                requirement.max_attempts is not None
                and len(attempts) >= requirement.max_attempts
                and not unlock_active
            ):
                raise AssessmentAttemptsExhausted(entry.id, requirement.max_attempts)

            attempt = tx.append_attempt(
                AssessmentAttempt(
                    id=new_id(),
                    assessment_id=entry.id,
                    student_id=student_id,
                    attempt_number=len(attempts) + 1,
                    score=score,
                    passed=score >= requirement.minimum_passing_score,
                    started_at=started_at,
                    submitted_at=submitted_at,
                    time_spent=time_spent,
                    is_late=is_late(requirement, started_at, submitted_at),
                )
            )
            gate = evaluate_attempts(requirement, attempts + [attempt])

            progress = tx.get_progress(student_id, entry.id, entry.kind)
            if progress is None:
                progress = tx.insert_progress(
                    StudentProgress(
                        id=new_id(),
                        student_id=student_id,
                        course_id=entry.course_id,
                        content_id=entry.id,
                        content_kind=entry.kind,
                    )
                )
            current = progress.status

            if gate.passed:
                target = ProgressStatus.COMPLETED
            elif gate.exhausted and requirement.is_mandatory:
                target = ProgressStatus.BLOCKED
            else:
                target = ProgressStatus.IN_PROGRESS

            start = ProgressStatus.IN_PROGRESS if current == ProgressStatus.NOT_STARTED else current
            # A pass after the limit was raised releases a blocked row
            release = unlock_active or (current == ProgressStatus.BLOCKED and gate.passed)
            try:
                path = transition_path(start, target, override_active=release)
                if start != current:
                    path = [start] + path
            except InvalidStateTransition:
                # Counters are still recorded; status keeps its current value
                logger.info(
                    "assessment.status_kept",
                    student_id=student_id,
                    assessment_id=entry.id,
                    current=current.value,
                    target=target.value,
                )
                path = []

            new_status = path[-1] if path else current
            saved = tx.save_progress(
                replace(
                    progress,
                    status=new_status,
                    completion_percentage=(
                        100
                        if new_status == ProgressStatus.COMPLETED
                        else progress.completion_percentage
                    ),
                    attempts_count=gate.attempts_used,
                    best_score=gate.best_score,
                    time_spent=progress.time_spent + time_spent,
                    last_accessed=utc_now(),
                )
            )

            if new_status == ProgressStatus.BLOCKED and current != ProgressStatus.BLOCKED:
                tx.record_audit(
                    EVENT_PROGRESS_BLOCKED,
                    student_id,
                    entry.id,
                    entry.kind.value,
                    details={
                        "reason": "attempts_exhausted",
                        "attempts_used": gate.attempts_used,
                        "max_attempts": requirement.max_attempts,
                        "best_score": gate.best_score,
                    },
                )
            elif current == ProgressStatus.BLOCKED and new_status != ProgressStatus.BLOCKED:
                tx.record_audit(
                    EVENT_PROGRESS_UNBLOCKED,
                    student_id,
                    entry.id,
                    entry.kind.value,
                    actor_id=override.issued_by if override else None,
                    details={"override_id": override.id if override else None},
                )

        result = SubmissionResult(attempt=attempt, gate=gate, progress=saved)
        return result, new_status != current

    # =========================================================================
    # UNLOCK CASCADE
    # =========================================================================

    def _cascade_candidates(self, student_id: str, entry: CatalogEntry) -> list[ContentNode]:
        """Dependents of ``entry``, plus nodes that only need those to be reachable."""
        course_ids = [entry.course_id] + self.enrollments.enrolled_course_ids(student_id)
        first = self.resolver.dependents(entry.node, course_ids)

        nodes = [d.node for d in first]
        seen = {n.key for n in nodes}
        for dependent in first:
            for second in self.resolver.dependents(dependent.node, course_ids):
                if second.requirement == Requirement.ACCESSIBLE and second.node.key not in seen:
                    seen.add(second.node.key)
                    nodes.append(second.node)
        return nodes

    def _reachable(self, student_id: str, node: ContentNode) -> bool:
        try:
            return self.can_access_content(student_id, node.id, node.kind).can_access
        except CyclicPrerequisiteGraph as e:
            logger.error(
                "cascade.cyclic_candidate",
                student_id=student_id,
                content_id=node.id,
                cycle=e.cycle,
            )
            return False

    def _accessibility(
        self, student_id: str, nodes: list[ContentNode]
    ) -> dict[tuple[str, str], bool]:
        return {node.key: self._reachable(student_id, node) for node in nodes}

    def _unlock_cascade(
        self,
        student_id: str,
        candidates: list[ContentNode],
        before: dict[tuple[str, str], bool],
    ) -> UnlockedContent:
        unlocked = UnlockedContent()
        for node in candidates:
            if before.get(node.key, False):
                continue
            if not self._reachable(student_id, node):
                continue
            progress = self.store.get_progress(student_id, node.id, node.kind)
            if progress is not None and progress.status != ProgressStatus.NOT_STARTED:
                continue
            unlocked.add(node)
        return unlocked

    def _with_conflict_retry(self, operation: str, fn: Callable[[], T]) -> T:
        attempt = 0
        while True:
            try:
                return fn()
            except ConcurrentUpdateConflict as e:
                if attempt >= self.conflict_retries:
                    logger.warning("engine.conflict_surfaced", operation=operation, error=str(e))
                    raise
                attempt += 1
                logger.info("engine.conflict_retry", operation=operation, retry=attempt)

    # =========================================================================
    # INSTRUCTOR OPERATIONS
    # =========================================================================

    def grant_override(
        self,
        instructor_id: str,
        student_id: str,
        content_id: str,
        content_kind: ContentKind | str,
        action: OverrideAction | str,
        reason: str,
    ) -> ProgressionOverride:
        """Record an instructor override (see OverrideAuthority).

        Raises:
            ContentNotFound: If the content does not exist
        """
        kind = ContentKind(content_kind)
        if self.resolver.get_entry(content_id, kind) is None:
            raise ContentNotFound(content_id, kind.value)
        return self.overrides.grant_override(
            instructor_id, student_id, content_id, kind, OverrideAction(action), reason
        )

    def clear_override(
        self, instructor_id: str, student_id: str, content_id: str, reason: str = ""
    ) -> ProgressionOverride | None:
        return self.overrides.clear_override(instructor_id, student_id, content_id, reason)

    def reset_progress(
        self,
        instructor_id: str,
        student_id: str,
        content_id: str,
        content_kind: ContentKind | str,
        reason: str,
    ) -> StudentProgress | None:
        """Explicitly reset a progress row to not_started.

        Attempt history and counters are kept; only status and completion
        percentage are reset.

        Returns:
            The reset row, or None if the student had no progress on it
        """
        if not reason or not reason.strip():
            raise ValueError("A reset requires a reason")
        kind = ContentKind(content_kind)

        def apply() -> StudentProgress | None:
            with self.store.transaction() as tx:
                progress = tx.get_progress(student_id, content_id, kind)
                if progress is None:
                    return None
                saved = tx.save_progress(
                    replace(
                        progress,
                        status=ProgressStatus.NOT_STARTED,
                        completion_percentage=0,
                        last_accessed=utc_now(),
                    )
                )
                tx.record_audit(
                    EVENT_PROGRESS_RESET,
                    student_id,
                    content_id,
                    kind.value,
                    actor_id=instructor_id,
                    details={"previous_status": progress.status.value, "reason": reason.strip()},
                )
                return saved

        saved = self._with_conflict_retry("reset_progress", apply)
        logger.info(
            "progress.reset",
            student_id=student_id,
            content_id=content_id,
            content_kind=kind.value,
            reset_by=instructor_id,
            found=saved is not None,
        )
        return saved

    # =========================================================================
    # READ-ONLY VIEWS
    # =========================================================================

    def course_progress_overview(self, student_id: str, course_id: str) -> CourseOverview:
        """Access and progress of every lesson/assessment of a course.

        Raises:
            ContentNotFound: If the course does not exist
            CyclicPrerequisiteGraph: If any node of the course is in a cycle
        """
        course = self.resolver.get_entry(course_id, ContentKind.COURSE)
        if course is None:
            raise ContentNotFound(course_id, ContentKind.COURSE.value)

        overview = CourseOverview(course_id=course_id, student_id=student_id)
        for entry in self.catalog.list_course_nodes(course_id):
            if entry.kind != ContentKind.LESSON:
                continue
            lesson_overview = LessonOverview(
                lesson=entry.node,
                access=self.can_access_content(student_id, entry.id, ContentKind.LESSON),
                progress=self.store.get_progress(student_id, entry.id, ContentKind.LESSON),
            )
            if entry.assessment_id:
                lesson_overview.assessment = self._assessment_overview(
                    student_id, entry.assessment_id
                )
            overview.lessons.append(lesson_overview)

        if course.final_assessment_id:
            overview.final_assessment = self._assessment_overview(
                student_id, course.final_assessment_id
            )

        logger.debug(
            "course.overview_built",
            student_id=student_id,
            course_id=course_id,
            overall_progress=overview.overall_progress,
        )
        return overview

    def _assessment_overview(self, student_id: str, assessment_id: str) -> AssessmentOverview:
        access = self.can_access_content(student_id, assessment_id, ContentKind.ASSESSMENT)
        try:
            gate = self.gate.evaluate(student_id, assessment_id)
        except ContentNotFound:
            gate = None
        return AssessmentOverview(
            assessment_id=assessment_id,
            can_access=access.can_access,
            passed=gate.passed if gate else False,
            progress=self.store.get_progress(student_id, assessment_id, ContentKind.ASSESSMENT),
            gate=gate,
        )

    def blocked_content(self, student_id: str) -> list[StudentProgress]:
        """Progress rows currently in ``blocked`` for a student."""
        return self.store.list_progress(student_id, status=ProgressStatus.BLOCKED.value)


__all__ = ["ProgressionControlEngine", "ProgressionError"]
