"""Transactional progress store.

Persists StudentProgress rows, AssessmentAttempt rows (append-only),
ProgressionOverride rows (soft-deleted) and the audit log.

Concurrency discipline:
- ``transaction()`` runs inside ``BEGIN IMMEDIATE`` so read-modify-write
  sequences on progress rows serialize.
- Progress updates check the row ``version`` (optimistic concurrency).
- Attempt numbers are UNIQUE per (assessment, student).
Any of these failing surfaces as ConcurrentUpdateConflict; other sqlite
errors surface as PersistenceError.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Generator

import structlog

from progression.core.errors import ConcurrentUpdateConflict, PersistenceError
from progression.core.models import (
    AssessmentAttempt,
    AuditEvent,
    ContentKind,
    OverrideAction,
    ProgressionOverride,
    ProgressStatus,
    StudentProgress,
)
from progression.db.database import Database
from progression.utils.ids import utc_now

logger = structlog.get_logger(__name__)


# =============================================================================
# ERROR TRANSLATION
# =============================================================================


@contextmanager
def _translate_errors(operation: str) -> Generator[None, None, None]:
    try:
        yield
    except ConcurrentUpdateConflict:
        raise
    except sqlite3.IntegrityError as e:
        logger.warning("store.integrity_conflict", operation=operation, error=str(e))
        raise ConcurrentUpdateConflict(f"{operation}: {e}") from e
    except sqlite3.OperationalError as e:
        message = str(e).lower()
        if "locked" in message or "busy" in message:
            logger.warning("store.lock_conflict", operation=operation, error=str(e))
            raise ConcurrentUpdateConflict(f"{operation}: {e}") from e
        raise PersistenceError(f"{operation}: {e}") from e
    except sqlite3.Error as e:
        raise PersistenceError(f"{operation}: {e}") from e


# =============================================================================
# TRANSACTION
# =============================================================================


class SqliteProgressTransaction:
    """Unit of work sharing one connection inside ``BEGIN IMMEDIATE``."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get_progress(
        self, student_id: str, content_id: str, kind: ContentKind
    ) -> StudentProgress | None:
        return _get_progress(self.conn, student_id, content_id, ContentKind(kind))

    def insert_progress(self, progress: StudentProgress) -> StudentProgress:
        now = utc_now()
        self.conn.execute(
            """
            INSERT INTO student_progress (
                id, student_id, course_id, content_id, content_kind, status,
                completion_percentage, attempts_count, best_score, last_accessed,
                time_spent, version, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
            """,
            (
                progress.id,
                progress.student_id,
                progress.course_id,
                progress.content_id,
                progress.content_kind.value,
                progress.status.value,
                progress.completion_percentage,
                progress.attempts_count,
                progress.best_score,
                progress.last_accessed or now,
                progress.time_spent,
                now,
                now,
            ),
        )
        return replace(progress, version=0, last_accessed=progress.last_accessed or now)

    def save_progress(self, progress: StudentProgress) -> StudentProgress:
        """Write a progress row guarded by its version.

        Raises:
            ConcurrentUpdateConflict: If the row changed since it was read
        """
        now = utc_now()
        cursor = self.conn.execute(
            """
            UPDATE student_progress SET
                status = ?, completion_percentage = ?, attempts_count = ?,
                best_score = ?, last_accessed = ?, time_spent = ?,
                version = version + 1, updated_at = ?
            WHERE id = ? AND version = ?
            """,
            (
                progress.status.value,
                progress.completion_percentage,
                progress.attempts_count,
                progress.best_score,
                progress.last_accessed or now,
                progress.time_spent,
                now,
                progress.id,
                progress.version,
            ),
        )
        if cursor.rowcount == 0:
            raise ConcurrentUpdateConflict(
                f"progress row {progress.id} changed (expected version {progress.version})"
            )
        return replace(progress, version=progress.version + 1)

    def list_attempts(self, student_id: str, assessment_id: str) -> list[AssessmentAttempt]:
        return _list_attempts(self.conn, student_id, assessment_id)

    def append_attempt(self, attempt: AssessmentAttempt) -> AssessmentAttempt:
        self.conn.execute(
            """
            INSERT INTO assessment_attempts (
                id, assessment_id, student_id, attempt_number, score, passed,
                started_at, submitted_at, time_spent, is_late
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                attempt.id,
                attempt.assessment_id,
                attempt.student_id,
                attempt.attempt_number,
                attempt.score,
                int(attempt.passed),
                attempt.started_at,
                attempt.submitted_at,
                attempt.time_spent,
                int(attempt.is_late),
            ),
        )
        return attempt

    def active_override(self, student_id: str, content_id: str) -> ProgressionOverride | None:
        return _active_override(self.conn, student_id, content_id)

    def insert_override(self, override: ProgressionOverride) -> ProgressionOverride:
        self.conn.execute(
            """
            INSERT INTO progression_overrides (
                id, student_id, content_id, content_kind, action, reason, issued_by, issued_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                override.id,
                override.student_id,
                override.content_id,
                override.content_kind.value,
                override.action.value,
                override.reason,
                override.issued_by,
                override.issued_at,
            ),
        )
        return override

    def clear_override(
        self, student_id: str, content_id: str, cleared_by: str
    ) -> ProgressionOverride | None:
        current = _active_override(self.conn, student_id, content_id)
        if current is None:
            return None
        cleared_at = utc_now()
        self.conn.execute(
            "UPDATE progression_overrides SET cleared_at = ?, cleared_by = ? WHERE id = ?",
            (cleared_at, cleared_by, current.id),
        )
        return replace(current, cleared_at=cleared_at, cleared_by=cleared_by)

    def record_audit(
        self,
        event_type: str,
        student_id: str,
        content_id: str,
        content_kind: str,
        actor_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.conn.execute(
            """
            INSERT INTO progression_audit (
                event_type, student_id, content_id, content_kind, actor_id, details, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event_type,
                student_id,
                content_id,
                content_kind,
                actor_id,
                json.dumps(details or {}, ensure_ascii=False, sort_keys=True),
                utc_now(),
            ),
        )


# =============================================================================
# STORE
# =============================================================================


class SqliteProgressStore:
    """ProgressStore implementation over a ``Database``."""

    def __init__(self, db: Database):
        self.db = db

    @contextmanager
    def transaction(self) -> Generator[SqliteProgressTransaction, None, None]:
        """Open a write transaction.

        Example:
            with store.transaction() as tx:
                row = tx.get_progress(student_id, lesson_id, ContentKind.LESSON)
                tx.save_progress(row)
        """
        with _translate_errors("transaction"):
            with self.db.immediate() as conn:
                yield SqliteProgressTransaction(conn)

    def get_progress(
        self, student_id: str, content_id: str, kind: ContentKind
    ) -> StudentProgress | None:
        with _translate_errors("get_progress"), self.db.connect() as conn:
            return _get_progress(conn, student_id, content_id, ContentKind(kind))

    def list_progress(
        self, student_id: str, status: str | None = None
    ) -> list[StudentProgress]:
        query = "SELECT * FROM student_progress WHERE student_id = ?"
        params: list[Any] = [student_id]
        if status is not None:
            query += " AND status = ?"
            params.append(ProgressStatus(status).value)
        query += " ORDER BY course_id, content_kind, content_id"

        with _translate_errors("list_progress"), self.db.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_progress_from_row(r) for r in rows]

    def list_attempts(self, student_id: str, assessment_id: str) -> list[AssessmentAttempt]:
        with _translate_errors("list_attempts"), self.db.connect() as conn:
            return _list_attempts(conn, student_id, assessment_id)

    def active_override(self, student_id: str, content_id: str) -> ProgressionOverride | None:
        with _translate_errors("active_override"), self.db.connect() as conn:
            return _active_override(conn, student_id, content_id)

    def list_overrides(self, student_id: str) -> list[ProgressionOverride]:
        """All overrides of a student, cleared ones included, oldest first."""
        with _translate_errors("list_overrides"), self.db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM progression_overrides WHERE student_id = ? ORDER BY issued_at, rowid",
                (student_id,),
            ).fetchall()
        return [_override_from_row(r) for r in rows]

    def list_audit(
        self, student_id: str, content_id: str | None = None
    ) -> list[AuditEvent]:
        query = "SELECT * FROM progression_audit WHERE student_id = ?"
        params: list[Any] = [student_id]
        if content_id is not None:
            query += " AND content_id = ?"
            params.append(content_id)
        query += " ORDER BY id"

        with _translate_errors("list_audit"), self.db.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            AuditEvent(
                id=r["id"],
                event_type=r["event_type"],
                student_id=r["student_id"],
                content_id=r["content_id"],
                content_kind=r["content_kind"],
                actor_id=r["actor_id"],
                details=json.loads(r["details"] or "{}"),
                created_at=r["created_at"],
            )
            for r in rows
        ]


# =============================================================================
# ROW HELPERS
# =============================================================================


def _get_progress(
    conn: sqlite3.Connection, student_id: str, content_id: str, kind: ContentKind
) -> StudentProgress | None:
    row = conn.execute(
        """
        SELECT * FROM student_progress
        WHERE student_id = ? AND content_kind = ? AND content_id = ?
        """,
        (student_id, kind.value, content_id),
    ).fetchone()
    return _progress_from_row(row) if row else None


def _list_attempts(
    conn: sqlite3.Connection, student_id: str, assessment_id: str
) -> list[AssessmentAttempt]:
    rows = conn.execute(
        """
        SELECT * FROM assessment_attempts
        WHERE student_id = ? AND assessment_id = ?
        ORDER BY attempt_number
        """,
        (student_id, assessment_id),
    ).fetchall()
    return [
        AssessmentAttempt(
            id=r["id"],
            assessment_id=r["assessment_id"],
            student_id=r["student_id"],
            attempt_number=r["attempt_number"],
            score=r["score"],
            passed=bool(r["passed"]),
            started_at=r["started_at"],
            submitted_at=r["submitted_at"],
            time_spent=r["time_spent"],
            is_late=bool(r["is_late"]),
        )
        for r in rows
    ]


def _active_override(
    conn: sqlite3.Connection, student_id: str, content_id: str
) -> ProgressionOverride | None:
    row = conn.execute(
        """
        SELECT * FROM progression_overrides
        WHERE student_id = ? AND content_id = ? AND cleared_at IS NULL
        ORDER BY issued_at DESC, rowid DESC
        LIMIT 1
        """,
        (student_id, content_id),
    ).fetchone()
    return _override_from_row(row) if row else None


def _progress_from_row(row: sqlite3.Row) -> StudentProgress:
    return StudentProgress(
        id=row["id"],
        student_id=row["student_id"],
        course_id=row["course_id"],
        content_id=row["content_id"],
        content_kind=ContentKind(row["content_kind"]),
        status=ProgressStatus(row["status"]),
        completion_percentage=row["completion_percentage"],
        attempts_count=row["attempts_count"],
        best_score=row["best_score"],
        last_accessed=row["last_accessed"],
        time_spent=row["time_spent"],
        version=row["version"],
    )


def _override_from_row(row: sqlite3.Row) -> ProgressionOverride:
    return ProgressionOverride(
        id=row["id"],
        student_id=row["student_id"],
        content_id=row["content_id"],
        content_kind=ContentKind(row["content_kind"]),
        action=OverrideAction(row["action"]),
        reason=row["reason"],
        issued_by=row["issued_by"],
        issued_at=row["issued_at"],
        cleared_at=row["cleared_at"],
        cleared_by=row["cleared_by"],
    )
