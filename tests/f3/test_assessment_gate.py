"""Tests for assessment gate evaluation."""

import pytest

from progression.core.assessment_gate import AssessmentGate, evaluate_attempts, is_late
from progression.core.errors import ContentNotFound
from progression.core.models import AssessmentAttempt, AssessmentRequirement


def _attempts(*scores: int) -> list[AssessmentAttempt]:
    return [
        AssessmentAttempt(
            id=f"a{i}",
            assessment_id="quiz",
            student_id="s",
            attempt_number=i,
            score=score,
            passed=score >= 70,
            submitted_at="2024-01-01T10:00:00+00:00",
        )
        for i, score in enumerate(scores, start=1)
    ]


class TestEvaluateAttempts:
    """Tests for the pure gate rules."""

    def test_no_attempts(self):
        result = evaluate_attempts(AssessmentRequirement("quiz", max_attempts=3), [])

        assert result.passed is False
        assert result.attempts_used == 0
        assert result.attempts_remaining == 3
        assert result.best_score == 0

    def test_best_score_wins(self):
        """A later low score does not erase an earlier pass."""
        result = evaluate_attempts(AssessmentRequirement("quiz"), _attempts(80, 40))

        assert result.passed is True
        assert result.best_score == 80

    def test_exact_threshold_passes(self):
        result = evaluate_attempts(
            AssessmentRequirement("quiz", minimum_passing_score=70), _attempts(70)
        )
        assert result.passed is True

    def test_zero_threshold_needs_an_attempt(self):
        requirement = AssessmentRequirement("quiz", minimum_passing_score=0)

        assert evaluate_attempts(requirement, []).passed is False
        assert evaluate_attempts(requirement, _attempts(0)).passed is True

    def test_exhausted_after_max_failures(self):
        result = evaluate_attempts(
            AssessmentRequirement("quiz", max_attempts=2), _attempts(30, 50)
        )

        assert result.passed is False
        assert result.attempts_remaining == 0
        assert result.exhausted is True

    def test_unlimited_attempts(self):
        result = evaluate_attempts(AssessmentRequirement("quiz"), _attempts(10, 20, 30))

        assert result.attempts_remaining is None
        assert result.exhausted is False

    def test_raised_limit_restores_attempts(self):
        """The current configuration decides remaining attempts."""
        attempts = _attempts(30, 50)

        assert evaluate_attempts(AssessmentRequirement("quiz", max_attempts=2), attempts).exhausted
        raised = evaluate_attempts(AssessmentRequirement("quiz", max_attempts=4), attempts)
        assert raised.attempts_remaining == 2
        assert raised.exhausted is False


class TestIsLate:
    """Tests for advisory time limits."""

    def test_no_limit(self):
        requirement = AssessmentRequirement("quiz")
        assert is_late(requirement, "2024-01-01T10:00:00+00:00", "2024-01-01T12:00:00+00:00") is False

    def test_within_limit(self):
        requirement = AssessmentRequirement("quiz", time_limit_minutes=30)
        assert is_late(requirement, "2024-01-01T10:00:00+00:00", "2024-01-01T10:29:00+00:00") is False

    def test_over_limit(self):
        requirement = AssessmentRequirement("quiz", time_limit_minutes=30)
        assert is_late(requirement, "2024-01-01T10:00:00+00:00", "2024-01-01T10:31:00+00:00") is True

    def test_missing_start(self):
        requirement = AssessmentRequirement("quiz", time_limit_minutes=30)
        assert is_late(requirement, None, "2024-01-01T10:31:00+00:00") is False


class TestAssessmentGate:
    """Tests for the store-backed gate."""

    def test_requirement_from_catalog(self, catalog, store, sample_course):
        gate = AssessmentGate(catalog, store)
        requirement = gate.requirement("quiz-1")

        assert requirement.max_attempts == 3
        assert requirement.minimum_passing_score == 70

    def test_unknown_assessment(self, catalog, store, sample_course):
        gate = AssessmentGate(catalog, store)
        with pytest.raises(ContentNotFound):
            gate.evaluate("student-1", "ghost")

    def test_evaluate_without_attempts(self, catalog, store, sample_course):
        result = AssessmentGate(catalog, store).evaluate("student-1", "quiz-2")

        assert result.passed is False
        assert result.attempts_remaining == 2
