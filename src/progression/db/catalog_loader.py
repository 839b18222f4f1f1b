"""Import course definitions from YAML into the catalog tables.

Expected document shape::

    course:
      id: course-python
      title: Python 101
      published: true
    lessons:
      - id: lesson-1
        title: Variables
        order_index: 1
        prerequisites: []
        assessment:
          id: quiz-1
          minimum_passing_score: 70
          max_attempts: 3
    final_assessment:
      id: final
      minimum_passing_score: 75
    enrollments:
      - student-1

A file may also hold a top-level ``courses:`` list of such documents.
Importing is idempotent: nodes are upserted by id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from progression.db.catalog_repository import SqliteContentCatalog, SqliteEnrollmentDirectory

logger = structlog.get_logger(__name__)


class CatalogImportError(Exception):
    """Raised when a catalog file is malformed."""


@dataclass
class ImportResult:
    """Counts of imported records."""

    courses: list[str] = field(default_factory=list)
    lessons: int = 0
    assessments: int = 0
    enrollments: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "courses": list(self.courses),
            "lessons": self.lessons,
            "assessments": self.assessments,
            "enrollments": self.enrollments,
        }


def _require_id(item: dict[str, Any], what: str) -> str:
    value = item.get("id")
    if not value or not isinstance(value, str):
        raise CatalogImportError(f"{what} without an 'id'")
    return value


def _import_assessment(
    catalog: SqliteContentCatalog,
    data: dict[str, Any],
    course_id: str,
    lesson_id: str | None,
) -> None:
    assessment_id = _require_id(data, "assessment")
    score = int(data.get("minimum_passing_score", 70))
    if not 0 <= score <= 100:
        raise CatalogImportError(
            f"assessment '{assessment_id}': minimum_passing_score must be 0..100"
        )
    max_attempts = data.get("max_attempts")
    if max_attempts is not None and int(max_attempts) < 1:
        raise CatalogImportError(f"assessment '{assessment_id}': max_attempts must be >= 1")

    catalog.upsert_assessment(
        assessment_id,
        course_id,
        lesson_id=lesson_id,
        title=data.get("title", ""),
        is_mandatory=bool(data.get("is_mandatory", True)),
        minimum_passing_score=score,
        max_attempts=int(max_attempts) if max_attempts is not None else None,
        time_limit_minutes=data.get("time_limit_minutes"),
        published=bool(data.get("published", True)),
    )


def _import_course(
    data: dict[str, Any],
    catalog: SqliteContentCatalog,
    enrollments: SqliteEnrollmentDirectory | None,
    result: ImportResult,
) -> None:
    course = data.get("course")
    if not isinstance(course, dict):
        raise CatalogImportError("document without a 'course' mapping")
    course_id = _require_id(course, "course")

    catalog.upsert_course(
        course_id,
        title=course.get("title", ""),
        published=bool(course.get("published", True)),
    )
    result.courses.append(course_id)

    for position, lesson in enumerate(data.get("lessons") or [], start=1):
        lesson_id = _require_id(lesson, "lesson")
        catalog.upsert_lesson(
            lesson_id,
            course_id,
            title=lesson.get("title", ""),
            order_index=int(lesson.get("order_index", position)),
            prerequisites=list(lesson.get("prerequisites") or []),
            published=bool(lesson.get("published", True)),
        )
        result.lessons += 1

        if lesson.get("assessment"):
            _import_assessment(catalog, lesson["assessment"], course_id, lesson_id)
            result.assessments += 1

    if data.get("final_assessment"):
        _import_assessment(catalog, data["final_assessment"], course_id, None)
        result.assessments += 1

    students = data.get("enrollments") or []
    if students and enrollments is None:
        logger.warning("catalog_import.enrollments_skipped", course_id=course_id)
    elif enrollments is not None:
        for student_id in students:
            enrollments.enroll(str(student_id), course_id)
            result.enrollments += 1


def import_catalog(
    path: Path,
    catalog: SqliteContentCatalog,
    enrollments: SqliteEnrollmentDirectory | None = None,
) -> ImportResult:
    """Import one YAML catalog file.

    Args:
        path: YAML file with one course document or a ``courses`` list
        catalog: Catalog repository to write into
        enrollments: Enrollment directory; enrollments are skipped when None

    Returns:
        ImportResult with imported counts

    Raises:
        FileNotFoundError: If the file does not exist
        CatalogImportError: If the document is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise CatalogImportError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise CatalogImportError(f"{path}: top level must be a mapping")

    documents = data["courses"] if "courses" in data else [data]
    result = ImportResult()
    for document in documents:
        _import_course(document, catalog, enrollments, result)

    logger.info("catalog_imported", path=str(path), **result.to_dict())
    return result
