"""SQLite database connection and schema management.

Provides connection management and schema initialization for the
progression engine. A ``Database`` instance is created by the caller and
injected into the repositories; there is no module-level connection.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import structlog

logger = structlog.get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("db/progression.db")


class Database:
    """Handle on one SQLite database file."""

    def __init__(self, path: Path | str | None = None, busy_timeout_ms: int = 5000):
        self.path = Path(path) if path is not None else DEFAULT_DB_PATH
        self.busy_timeout_ms = busy_timeout_ms

    def initialize(self) -> None:
        """Create the database file and all required tables if missing."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        with self.connect() as conn:
            _create_schema(conn)

        logger.info("database.initialized", path=str(self.path))

    def _open(self, autocommit: bool = False) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            self.path,
            timeout=self.busy_timeout_ms / 1000,
            isolation_level=None if autocommit else "DEFERRED",
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connect(self) -> Generator[sqlite3.Connection, None, None]:
        """Get database connection as context manager.

        Commits on success, rolls back on any exception.

        Example:
            with db.connect() as conn:
                rows = conn.execute("SELECT * FROM courses").fetchall()
        """
        conn = self._open()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def immediate(self) -> Generator[sqlite3.Connection, None, None]:
        """Connection inside a ``BEGIN IMMEDIATE`` transaction.

        The write lock is taken before the first read, so two writers on the
        same database serialize their read-modify-write sequences.
        """
        conn = self._open(autocommit=True)
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
        finally:
            conn.close()


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency.
    """
    conn.executescript(
        """
        -- Catalog (written by authoring/import, read by the engine)
        CREATE TABLE IF NOT EXISTS courses (
            course_id TEXT PRIMARY KEY,
            title TEXT NOT NULL DEFAULT '',
            is_published INTEGER NOT NULL DEFAULT 0,
            final_assessment_id TEXT,
            revision INTEGER NOT NULL DEFAULT 0
        );

        CREATE TABLE IF NOT EXISTS lessons (
            lesson_id TEXT PRIMARY KEY,
            course_id TEXT NOT NULL REFERENCES courses(course_id) ON DELETE CASCADE,
            title TEXT NOT NULL DEFAULT '',
            order_index INTEGER NOT NULL DEFAULT 0,
            assessment_id TEXT,
            prerequisites TEXT NOT NULL DEFAULT '[]',
            is_published INTEGER NOT NULL DEFAULT 0
        );

        -- lesson_id NULL means a course-level (final) assessment
        CREATE TABLE IF NOT EXISTS assessments (
            assessment_id TEXT PRIMARY KEY,
            course_id TEXT NOT NULL REFERENCES courses(course_id) ON DELETE CASCADE,
            lesson_id TEXT REFERENCES lessons(lesson_id) ON DELETE CASCADE,
            title TEXT NOT NULL DEFAULT '',
            is_mandatory INTEGER NOT NULL DEFAULT 1,
            minimum_passing_score INTEGER NOT NULL DEFAULT 70
                CHECK(minimum_passing_score BETWEEN 0 AND 100),
            max_attempts INTEGER CHECK(max_attempts IS NULL OR max_attempts > 0),
            time_limit_minutes INTEGER,
            is_published INTEGER NOT NULL DEFAULT 1
        );

        CREATE TABLE IF NOT EXISTS enrollments (
            student_id TEXT NOT NULL,
            course_id TEXT NOT NULL REFERENCES courses(course_id) ON DELETE CASCADE,
            enrolled_at TEXT NOT NULL DEFAULT (datetime('now')),
            completed_at TEXT,
            UNIQUE(student_id, course_id)
        );

        -- Progress (engine is the sole writer)
        CREATE TABLE IF NOT EXISTS student_progress (
            id TEXT PRIMARY KEY,
            student_id TEXT NOT NULL,
            course_id TEXT NOT NULL,
            content_id TEXT NOT NULL,
            content_kind TEXT NOT NULL CHECK(content_kind IN ('course', 'lesson', 'assessment')),
            status TEXT NOT NULL DEFAULT 'not_started'
                CHECK(status IN ('not_started', 'in_progress', 'completed', 'blocked')),
            completion_percentage INTEGER NOT NULL DEFAULT 0
                CHECK(completion_percentage BETWEEN 0 AND 100),
            attempts_count INTEGER NOT NULL DEFAULT 0,
            best_score INTEGER CHECK(best_score IS NULL OR best_score BETWEEN 0 AND 100),
            last_accessed TEXT,
            time_spent INTEGER NOT NULL DEFAULT 0,
            version INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at TEXT NOT NULL DEFAULT (datetime('now')),
            UNIQUE(student_id, content_kind, content_id),
            CHECK(status != 'completed' OR completion_percentage = 100)
        );

        CREATE TABLE IF NOT EXISTS assessment_attempts (
            id TEXT PRIMARY KEY,
            assessment_id TEXT NOT NULL,
            student_id TEXT NOT NULL,
            attempt_number INTEGER NOT NULL,
            score INTEGER NOT NULL CHECK(score BETWEEN 0 AND 100),
            passed INTEGER NOT NULL,
            started_at TEXT,
            submitted_at TEXT NOT NULL,
            time_spent INTEGER NOT NULL DEFAULT 0,
            is_late INTEGER NOT NULL DEFAULT 0,
            UNIQUE(assessment_id, student_id, attempt_number)
        );

        -- Overrides are soft-deleted via cleared_at
        CREATE TABLE IF NOT EXISTS progression_overrides (
            id TEXT PRIMARY KEY,
            student_id TEXT NOT NULL,
            content_id TEXT NOT NULL,
            content_kind TEXT NOT NULL,
            action TEXT NOT NULL CHECK(action IN ('unlock', 'block')),
            reason TEXT NOT NULL,
            issued_by TEXT NOT NULL,
            issued_at TEXT NOT NULL,
            cleared_at TEXT,
            cleared_by TEXT
        );

        CREATE TABLE IF NOT EXISTS progression_audit (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            event_type TEXT NOT NULL,
            student_id TEXT NOT NULL,
            content_id TEXT NOT NULL,
            content_kind TEXT NOT NULL,
            actor_id TEXT,
            details TEXT NOT NULL DEFAULT '{}',
            created_at TEXT NOT NULL
        );

        -- Indexes
        CREATE INDEX IF NOT EXISTS idx_lessons_course ON lessons(course_id, order_index);
        CREATE INDEX IF NOT EXISTS idx_assessments_course ON assessments(course_id);
        CREATE INDEX IF NOT EXISTS idx_enrollments_student ON enrollments(student_id);
        CREATE INDEX IF NOT EXISTS idx_progress_student_status ON student_progress(student_id, status);
        CREATE INDEX IF NOT EXISTS idx_attempts_student_assessment
            ON assessment_attempts(student_id, assessment_id);
        CREATE UNIQUE INDEX IF NOT EXISTS idx_overrides_active
            ON progression_overrides(student_id, content_id) WHERE cleared_at IS NULL;
        CREATE INDEX IF NOT EXISTS idx_audit_student ON progression_audit(student_id, content_id);
        """
    )
