"""Fixtures for F4 tests - Progression engine."""

from typing import Callable

import pytest

from progression.core.models import ContentKind, ProgressStatus, ProgressUpdate, ProgressUpdateResult


@pytest.fixture
def update(engine) -> Callable[..., ProgressUpdateResult]:
    """Shortcut for engine.update_progress on lessons."""

    def _update(
        content_id: str,
        status: str,
        percentage: int = 0,
        student_id: str = "student-1",
        kind: ContentKind = ContentKind.LESSON,
        time_spent: int = 0,
    ) -> ProgressUpdateResult:
        return engine.update_progress(
            ProgressUpdate(
                student_id=student_id,
                content_id=content_id,
                content_kind=kind,
                status=ProgressStatus(status),
                completion_percentage=percentage,
                time_spent=time_spent,
            )
        )

    return _update


@pytest.fixture
def lesson_one_passed(engine, update, sample_course) -> None:
    """student-1 completed lesson-1 and passed quiz-1."""
    update("lesson-1", "completed", 100)
    engine.submit_assessment_attempt("student-1", "quiz-1", 85)


@pytest.fixture
def lesson_two_done(engine, update, lesson_one_passed) -> None:
    """student-1 additionally completed lesson-2."""
    update("lesson-2", "completed", 100)
