"""Repository functions for the content catalog and enrollments.

The engine only reads through ``get_node``/``list_course_nodes``/
``course_revision`` and ``is_enrolled``/``enrolled_course_ids``. The write
helpers exist for the catalog importer, the CLI and tests; every write
touching a course bumps its revision so cached prerequisite indexes are
rebuilt.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone

import structlog

from progression.core.models import CatalogEntry, ContentKind, Enrollment
from progression.db.database import Database

logger = structlog.get_logger(__name__)


class SqliteContentCatalog:
    """Content catalog backed by the courses/lessons/assessments tables."""

    def __init__(self, db: Database):
        self.db = db

    # =========================================================================
    # READS
    # =========================================================================

    def get_node(self, content_id: str, kind: ContentKind) -> CatalogEntry | None:
        """Get one node by id and kind.

        Returns:
            CatalogEntry if found, None otherwise
        """
        kind = ContentKind(kind)
        with self.db.connect() as conn:
            if kind == ContentKind.COURSE:
                row = conn.execute(
                    "SELECT * FROM courses WHERE course_id = ?", (content_id,)
                ).fetchone()
                return _course_from_row(row) if row else None

            if kind == ContentKind.LESSON:
                row = conn.execute(
                    "SELECT * FROM lessons WHERE lesson_id = ?", (content_id,)
                ).fetchone()
                return _lesson_from_row(row) if row else None

            row = conn.execute(
                "SELECT * FROM assessments WHERE assessment_id = ?", (content_id,)
            ).fetchone()
            return _assessment_from_row(row) if row else None

    def list_course_nodes(self, course_id: str) -> list[CatalogEntry]:
        """All lessons ordered by order_index, then the course's assessments."""
        with self.db.connect() as conn:
            lessons = conn.execute(
                "SELECT * FROM lessons WHERE course_id = ? ORDER BY order_index, lesson_id",
                (course_id,),
            ).fetchall()
            assessments = conn.execute(
                """
                SELECT a.* FROM assessments a
                LEFT JOIN lessons l ON l.lesson_id = a.lesson_id
                WHERE a.course_id = ?
                ORDER BY a.lesson_id IS NULL, l.order_index, a.assessment_id
                """,
                (course_id,),
            ).fetchall()

        return [_lesson_from_row(r) for r in lessons] + [
            _assessment_from_row(r) for r in assessments
        ]

    def course_revision(self, course_id: str) -> int:
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT revision FROM courses WHERE course_id = ?", (course_id,)
            ).fetchone()
        return row["revision"] if row else 0

    def list_course_ids(self) -> list[str]:
        with self.db.connect() as conn:
            rows = conn.execute("SELECT course_id FROM courses ORDER BY course_id").fetchall()
        return [r["course_id"] for r in rows]

    # =========================================================================
    # WRITES (authoring / import)
    # =========================================================================

    def upsert_course(self, course_id: str, title: str = "", published: bool = True) -> None:
        with self.db.connect() as conn:
            conn.execute(
                """
                INSERT INTO courses (course_id, title, is_published)
                VALUES (?, ?, ?)
                ON CONFLICT(course_id) DO UPDATE SET
                    title = excluded.title,
                    is_published = excluded.is_published,
                    revision = courses.revision + 1
                """,
                (course_id, title, int(published)),
            )
        logger.debug("catalog.course_upserted", course_id=course_id)

    def upsert_lesson(
        self,
        lesson_id: str,
        course_id: str,
        title: str = "",
        order_index: int = 0,
        prerequisites: list[str] | None = None,
        published: bool = True,
    ) -> None:
        with self.db.connect() as conn:
            conn.execute(
                """
                INSERT INTO lessons (lesson_id, course_id, title, order_index, prerequisites, is_published)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(lesson_id) DO UPDATE SET
                    course_id = excluded.course_id,
                    title = excluded.title,
                    order_index = excluded.order_index,
                    prerequisites = excluded.prerequisites,
                    is_published = excluded.is_published
                """,
                (
                    lesson_id,
                    course_id,
                    title,
                    order_index,
                    json.dumps(prerequisites or []),
                    int(published),
                ),
            )
            _bump_revision(conn, course_id)
        logger.debug("catalog.lesson_upserted", lesson_id=lesson_id, course_id=course_id)

    def upsert_assessment(
        self,
        assessment_id: str,
        course_id: str,
        lesson_id: str | None = None,
        title: str = "",
        is_mandatory: bool = True,
        minimum_passing_score: int = 70,
        max_attempts: int | None = None,
        time_limit_minutes: int | None = None,
        published: bool = True,
    ) -> None:
        """Insert or update an assessment and link it to its owner.

        With ``lesson_id`` the assessment becomes that lesson's assessment;
        without it, the course's final assessment.
        """
        with self.db.connect() as conn:
            conn.execute(
                """
                INSERT INTO assessments (
                    assessment_id, course_id, lesson_id, title, is_mandatory,
                    minimum_passing_score, max_attempts, time_limit_minutes, is_published
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(assessment_id) DO UPDATE SET
                    course_id = excluded.course_id,
                    lesson_id = excluded.lesson_id,
                    title = excluded.title,
                    is_mandatory = excluded.is_mandatory,
                    minimum_passing_score = excluded.minimum_passing_score,
                    max_attempts = excluded.max_attempts,
                    time_limit_minutes = excluded.time_limit_minutes,
                    is_published = excluded.is_published
                """,
                (
                    assessment_id,
                    course_id,
                    lesson_id,
                    title,
                    int(is_mandatory),
                    minimum_passing_score,
                    max_attempts,
                    time_limit_minutes,
                    int(published),
                ),
            )
            if lesson_id:
                conn.execute(
                    "UPDATE lessons SET assessment_id = ? WHERE lesson_id = ?",
                    (assessment_id, lesson_id),
                )
            else:
                conn.execute(
                    "UPDATE courses SET final_assessment_id = ? WHERE course_id = ?",
                    (assessment_id, course_id),
                )
            _bump_revision(conn, course_id)
        logger.debug(
            "catalog.assessment_upserted",
            assessment_id=assessment_id,
            lesson_id=lesson_id,
            course_id=course_id,
        )

    def set_published(self, content_id: str, kind: ContentKind, published: bool) -> bool:
        """Publish or unpublish a node.

        Returns:
            True if the node exists
        """
        kind = ContentKind(kind)
        table, key = _TABLES[kind]
        with self.db.connect() as conn:
            cursor = conn.execute(
                f"UPDATE {table} SET is_published = ? WHERE {key} = ?",
                (int(published), content_id),
            )
            if cursor.rowcount == 0:
                return False
            if kind == ContentKind.COURSE:
                _bump_revision(conn, content_id)
            else:
                row = conn.execute(
                    f"SELECT course_id FROM {table} WHERE {key} = ?", (content_id,)
                ).fetchone()
                _bump_revision(conn, row["course_id"])

        logger.info(
            "catalog.publication_changed",
            content_id=content_id,
            kind=kind.value,
            published=published,
        )
        return True


class SqliteEnrollmentDirectory:
    """Enrollment directory backed by the enrollments table."""

    def __init__(self, db: Database):
        self.db = db

    def is_enrolled(self, student_id: str, course_id: str) -> bool:
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM enrollments WHERE student_id = ? AND course_id = ?",
                (student_id, course_id),
            ).fetchone()
        return row is not None

    def enrolled_course_ids(self, student_id: str) -> list[str]:
        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT course_id FROM enrollments WHERE student_id = ? ORDER BY enrolled_at, course_id",
                (student_id,),
            ).fetchall()
        return [r["course_id"] for r in rows]

    def get_enrollment(self, student_id: str, course_id: str) -> Enrollment | None:
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM enrollments WHERE student_id = ? AND course_id = ?",
                (student_id, course_id),
            ).fetchone()
        if row is None:
            return None
        return Enrollment(
            student_id=row["student_id"],
            course_id=row["course_id"],
            enrolled_at=row["enrolled_at"],
            completed_at=row["completed_at"],
        )

    def enroll(self, student_id: str, course_id: str) -> None:
        """Enroll a student (no-op if already enrolled).

        Raises:
            sqlite3.IntegrityError: If the course does not exist
        """
        with self.db.connect() as conn:
            conn.execute(
                """
                INSERT INTO enrollments (student_id, course_id, enrolled_at)
                VALUES (?, ?, ?)
                ON CONFLICT(student_id, course_id) DO NOTHING
                """,
                (student_id, course_id, datetime.now(timezone.utc).isoformat()),
            )
        logger.debug("enrollment.created", student_id=student_id, course_id=course_id)

    def unenroll(self, student_id: str, course_id: str) -> bool:
        with self.db.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM enrollments WHERE student_id = ? AND course_id = ?",
                (student_id, course_id),
            )
        return cursor.rowcount > 0


# =============================================================================
# HELPERS
# =============================================================================

_TABLES = {
    ContentKind.COURSE: ("courses", "course_id"),
    ContentKind.LESSON: ("lessons", "lesson_id"),
    ContentKind.ASSESSMENT: ("assessments", "assessment_id"),
}


def _bump_revision(conn: sqlite3.Connection, course_id: str) -> None:
    conn.execute(
        "UPDATE courses SET revision = revision + 1 WHERE course_id = ?", (course_id,)
    )


def _course_from_row(row: sqlite3.Row) -> CatalogEntry:
    return CatalogEntry(
        id=row["course_id"],
        kind=ContentKind.COURSE,
        course_id=row["course_id"],
        published=bool(row["is_published"]),
        title=row["title"],
        final_assessment_id=row["final_assessment_id"],
    )


def _lesson_from_row(row: sqlite3.Row) -> CatalogEntry:
    return CatalogEntry(
        id=row["lesson_id"],
        kind=ContentKind.LESSON,
        course_id=row["course_id"],
        published=bool(row["is_published"]),
        title=row["title"],
        prerequisites=json.loads(row["prerequisites"] or "[]"),
        assessment_id=row["assessment_id"],
        order_index=row["order_index"],
    )


def _assessment_from_row(row: sqlite3.Row) -> CatalogEntry:
    return CatalogEntry(
        id=row["assessment_id"],
        kind=ContentKind.ASSESSMENT,
        course_id=row["course_id"],
        published=bool(row["is_published"]),
        title=row["title"],
        lesson_id=row["lesson_id"],
        is_mandatory=bool(row["is_mandatory"]),
        minimum_passing_score=row["minimum_passing_score"],
        max_attempts=row["max_attempts"],
        time_limit_minutes=row["time_limit_minutes"],
    )
