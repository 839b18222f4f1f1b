"""Tests for the progression CLI."""

from typer.testing import CliRunner

from progression.cli.commands import app

runner = CliRunner()


def _invoke(cli_db, *args: str):
    return runner.invoke(app, [*args, "--db", str(cli_db)])


class TestSetupCommands:
    """Tests for init-db, import-catalog and enroll."""

    def test_init_db(self, cli_db):
        result = _invoke(cli_db, "init-db")

        assert result.exit_code == 0
        assert cli_db.exists()

    def test_import_catalog(self, cli_db, catalog_file):
        result = _invoke(cli_db, "import-catalog", str(catalog_file))

        assert result.exit_code == 0
        assert "course-py" in result.stdout
        assert "lessons:" in result.stdout

    def test_import_missing_file(self, cli_db, tmp_path):
        result = _invoke(cli_db, "import-catalog", str(tmp_path / "missing.yaml"))
        assert result.exit_code == 1

    def test_enroll_unknown_course(self, cli_db):
        result = _invoke(cli_db, "enroll", "student-2", "ghost")
        assert result.exit_code == 1


class TestStudentCommands:
    """Tests for check-access, update-progress and submit-attempt."""

    def test_progress_flow(self, cli_db, catalog_file):
        _invoke(cli_db, "import-catalog", str(catalog_file))

        denied = _invoke(cli_db, "check-access", "student-1", "lesson-2")
        assert denied.exit_code == 0
        assert "Access denied" in denied.stdout

        updated = _invoke(cli_db, "update-progress", "student-1", "lesson-1", "completed")
        assert updated.exit_code == 0
        assert "quiz-1" in updated.stdout

        submitted = _invoke(cli_db, "submit-attempt", "student-1", "quiz-1", "90")
        assert submitted.exit_code == 0
        assert "passed" in submitted.stdout
        assert "lesson-2" in submitted.stdout

        granted = _invoke(cli_db, "check-access", "student-1", "lesson-2")
        assert "Access granted" in granted.stdout

    def test_rejected_update_exits_nonzero(self, cli_db, catalog_file):
        _invoke(cli_db, "import-catalog", str(catalog_file))

        result = _invoke(cli_db, "update-progress", "student-1", "lesson-2", "in_progress")

        assert result.exit_code == 1
        assert "prerequisites_not_met" in result.stdout

    def test_locked_submission_exits_nonzero(self, cli_db, catalog_file):
        _invoke(cli_db, "import-catalog", str(catalog_file))

        result = _invoke(cli_db, "submit-attempt", "student-1", "quiz-1", "90")
        assert result.exit_code == 1


class TestInstructorAndViews:
    """Tests for override, reset and the read-only views."""

    def test_override_and_history(self, cli_db, catalog_file):
        _invoke(cli_db, "import-catalog", str(catalog_file))

        granted = _invoke(
            cli_db, "override", "instructor-1", "student-1", "lesson-2", "unlock", "--reason", "credit"
        )
        assert granted.exit_code == 0

        access = _invoke(cli_db, "check-access", "student-1", "lesson-2")
        assert "instructor_unlock" in access.stdout

        cleared = _invoke(cli_db, "clear-override", "instructor-1", "student-1", "lesson-2")
        assert cleared.exit_code == 0

        history = _invoke(cli_db, "history", "student-1")
        assert "override_granted" in history.stdout
        assert "override_cleared" in history.stdout

    def test_blocked_after_exhausting_attempts(self, cli_db, catalog_file):
        _invoke(cli_db, "import-catalog", str(catalog_file))
        _invoke(cli_db, "update-progress", "student-1", "lesson-1", "completed")
        _invoke(cli_db, "submit-attempt", "student-1", "quiz-1", "20")
        _invoke(cli_db, "submit-attempt", "student-1", "quiz-1", "30")

        result = _invoke(cli_db, "blocked", "student-1")

        assert result.exit_code == 0
        assert "quiz-1" in result.stdout

    def test_reset(self, cli_db, catalog_file):
        _invoke(cli_db, "import-catalog", str(catalog_file))
        _invoke(cli_db, "update-progress", "student-1", "lesson-1", "completed")

        result = _invoke(
            cli_db, "reset", "instructor-1", "student-1", "lesson-1", "--reason", "redo"
        )

        assert result.exit_code == 0
        assert "not_started" in result.stdout

    def test_overview(self, cli_db, catalog_file):
        _invoke(cli_db, "import-catalog", str(catalog_file))

        result = _invoke(cli_db, "overview", "student-1", "course-py")

        assert result.exit_code == 0
        assert "lesson-1" in result.stdout
        assert "0/2" in result.stdout

    def test_validate_graph(self, cli_db, catalog_file):
        _invoke(cli_db, "import-catalog", str(catalog_file))

        result = _invoke(cli_db, "validate-graph", "course-py")

        assert result.exit_code == 0
        assert "no prerequisite cycles" in result.stdout
