"""Tests for database schema and connection handling."""

import sqlite3

import pytest

from progression.db.database import Database


class TestInitialize:
    """Tests for schema creation."""

    def test_creates_file_and_tables(self, tmp_path):
        """initialize() creates the file and every table."""
        db = Database(tmp_path / "nested" / "progression.db")
        db.initialize()

        assert db.path.exists()
        with db.connect() as conn:
            tables = {
                r["name"]
                for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }
        assert {
            "courses",
            "lessons",
            "assessments",
            "enrollments",
            "student_progress",
            "assessment_attempts",
            "progression_overrides",
            "progression_audit",
        } <= tables

    def test_initialize_is_idempotent(self, tmp_path):
        """Running initialize() twice keeps existing rows."""
        db = Database(tmp_path / "progression.db")
        db.initialize()
        with db.connect() as conn:
            conn.execute("INSERT INTO courses (course_id) VALUES ('c1')")
        db.initialize()

        with db.connect() as conn:
            count = conn.execute("SELECT COUNT(*) FROM courses").fetchone()[0]
        assert count == 1


class TestConstraints:
    """Schema-level invariants."""

    def test_completed_requires_full_percentage(self, db):
        """A completed row with less than 100% is rejected."""
        with pytest.raises(sqlite3.IntegrityError):
            with db.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO student_progress
                        (id, student_id, course_id, content_id, content_kind, status,
                         completion_percentage)
                    VALUES ('p1', 's1', 'c1', 'l1', 'lesson', 'completed', 80)
                    """
                )

    def test_one_active_override_per_pair(self, db):
        """Only one non-cleared override may exist per student and content."""
        insert = """
            INSERT INTO progression_overrides
                (id, student_id, content_id, content_kind, action, reason, issued_by, issued_at)
            VALUES (?, 's1', 'l1', 'lesson', 'unlock', 'r', 'i1', '2024-01-01')
        """
        with db.connect() as conn:
            conn.execute(insert, ("o1",))

        with pytest.raises(sqlite3.IntegrityError):
            with db.connect() as conn:
                conn.execute(insert, ("o2",))

    def test_immediate_rolls_back_on_error(self, db):
        """immediate() discards writes when the block raises."""
        with pytest.raises(RuntimeError):
            with db.immediate() as conn:
                conn.execute("INSERT INTO courses (course_id) VALUES ('c1')")
                raise RuntimeError("boom")

        with db.connect() as conn:
            assert conn.execute("SELECT COUNT(*) FROM courses").fetchone()[0] == 0
