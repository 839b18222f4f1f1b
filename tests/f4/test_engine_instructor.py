"""Tests for overrides, resets and read-only views of the engine."""

import pytest

from progression.core.errors import ContentNotFound
from progression.core.models import AccessReason, ContentKind, OverrideAction, ProgressStatus


class TestOverrides:
    """Override precedence over computed access."""

    def test_block_denies_open_content(self, engine, sample_course):
        engine.grant_override(
            "instructor-1", "student-1", "lesson-1", ContentKind.LESSON, OverrideAction.BLOCK, "pause"
        )
        result = engine.can_access_content("student-1", "lesson-1", ContentKind.LESSON)

        assert result.can_access is False
        assert result.reason == AccessReason.INSTRUCTOR_BLOCK
        assert result.override.issued_by == "instructor-1"

    def test_unlock_bypasses_prerequisites(self, engine, update, sample_course):
        engine.grant_override(
            "instructor-1", "student-1", "lesson-3", ContentKind.LESSON, "unlock", "transfer credit"
        )
        result = engine.can_access_content("student-1", "lesson-3", ContentKind.LESSON)

        assert result.can_access is True
        assert result.reason == AccessReason.INSTRUCTOR_UNLOCK
        assert len(result.prerequisites) == 3
        assert not all(p.completed for p in result.prerequisites)

        started = update("lesson-3", "in_progress", 10)
        assert started.accepted is True

    def test_block_rejects_updates(self, engine, update, sample_course):
        update("lesson-1", "in_progress", 10)
        engine.grant_override(
            "instructor-1", "student-1", "lesson-1", ContentKind.LESSON, "block", "pause"
        )

        result = update("lesson-1", "completed", 100)
        assert result.accepted is False
        assert result.code == "instructor_block"

    def test_clearing_restores_computed_access(self, engine, lesson_one_passed):
        engine.grant_override(
            "instructor-1", "student-1", "lesson-2", ContentKind.LESSON, "block", "pause"
        )
        assert not engine.can_access_content("student-1", "lesson-2", "lesson").can_access

        cleared = engine.clear_override("instructor-1", "student-1", "lesson-2", "resolved")

        assert cleared is not None
        assert cleared.cleared_by == "instructor-1"
        assert engine.can_access_content("student-1", "lesson-2", "lesson").can_access

    def test_latest_override_wins(self, engine, sample_course):
        engine.grant_override("instructor-1", "student-1", "lesson-2", "lesson", "unlock", "first")
        engine.grant_override("instructor-2", "student-1", "lesson-2", "lesson", "block", "second")

        current = engine.overrides.current("student-1", "lesson-2")
        assert current.action == OverrideAction.BLOCK

        events = [e.event_type for e in engine.overrides.history("student-1", "lesson-2")]
        assert events == ["override_granted", "override_cleared", "override_granted"]

    def test_clear_without_override(self, engine, sample_course):
        assert engine.clear_override("instructor-1", "student-1", "lesson-2") is None

    def test_reason_required(self, engine, sample_course):
        with pytest.raises(ValueError):
            engine.grant_override("instructor-1", "student-1", "lesson-2", "lesson", "unlock", " ")

    def test_unknown_content(self, engine, sample_course):
        with pytest.raises(ContentNotFound):
            engine.grant_override("instructor-1", "student-1", "ghost", "lesson", "unlock", "x")

    def test_unlocked_content_not_reported_again(self, engine, update, sample_course):
        """Content already open through an override is not a new unlock."""
        engine.grant_override("instructor-1", "student-1", "lesson-2", "lesson", "unlock", "fast track")
        update("lesson-1", "completed", 100)

        result = engine.submit_assessment_attempt("student-1", "quiz-1", 90)

        assert result.gate.passed is True
        assert "lesson-2" not in result.unlocked.lessons


class TestResetProgress:
    """Explicit resets are the only way back from completed."""

    def test_reset_keeps_attempts(self, engine, store, lesson_one_passed):
        reset = engine.reset_progress(
            "instructor-1", "student-1", "quiz-1", ContentKind.ASSESSMENT, "retake requested"
        )

        assert reset.status == ProgressStatus.NOT_STARTED
        assert reset.completion_percentage == 0
        assert len(store.list_attempts("student-1", "quiz-1")) == 1
        events = [e.event_type for e in engine.overrides.history("student-1", "quiz-1")]
        assert events == ["progress_reset"]

    def test_reset_without_progress(self, engine, sample_course):
        assert (
            engine.reset_progress("instructor-1", "student-1", "lesson-2", "lesson", "cleanup")
            is None
        )

    def test_reset_requires_reason(self, engine, lesson_one_passed):
        with pytest.raises(ValueError):
            engine.reset_progress("instructor-1", "student-1", "lesson-1", "lesson", "")


class TestCourseOverview:
    """Tests for course_progress_overview."""

    def test_overview_after_first_lesson(self, engine, lesson_one_passed):
        overview = engine.course_progress_overview("student-1", "course-py")

        assert overview.total_lessons == 3
        assert overview.completed_lessons == 1
        assert overview.overall_progress == 33
        assert overview.is_completed is False

        first, second, third = overview.lessons
        assert first.progress.status == ProgressStatus.COMPLETED
        assert first.assessment.passed is True
        assert second.access.can_access is True
        assert second.progress is None
        assert third.access.can_access is False
        assert overview.final_assessment.can_access is False

    def test_overview_dict(self, engine, sample_course):
        data = engine.course_progress_overview("student-1", "course-py").to_dict()

        assert data["overall_progress"] == 0
        assert [line["lesson"]["id"] for line in data["lessons"]] == [
            "lesson-1",
            "lesson-2",
            "lesson-3",
        ]
        assert data["final_assessment"]["id"] == "final"

    def test_unknown_course(self, engine, sample_course):
        with pytest.raises(ContentNotFound):
            engine.course_progress_overview("student-1", "ghost")


class TestBlockedContent:
    def test_nothing_blocked(self, engine, sample_course):
        assert engine.blocked_content("student-1") == []
