"""Progression endpoints.

Domain errors raised by the engine are mapped to HTTP responses by the
exception handlers registered in ``progression.web.api``.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request

from progression.core.models import ProgressUpdate
from progression.core.progression_engine import ProgressionControlEngine
from progression.web.schemas import (
    AccessCheckRequest,
    AccessResponse,
    AttemptSubmitRequest,
    AuditHistoryResponse,
    BlockedContentResponse,
    GraphCheckResponse,
    OverrideClearRequest,
    OverrideRequest,
    OverrideResultResponse,
    ProgressResetRequest,
    ProgressResponse,
    ProgressUpdateRequest,
    ProgressUpdateResponse,
    SubmissionResponse,
)

router = APIRouter(prefix="/api/progression", tags=["progression"])


def get_engine(request: Request) -> ProgressionControlEngine:
    """Engine stored on the application at startup."""
    return request.app.state.engine


@router.post("/check-access", response_model=AccessResponse)
def check_access(
    body: AccessCheckRequest, engine: ProgressionControlEngine = Depends(get_engine)
) -> dict[str, Any]:
    """Decide whether a student can access a content node."""
    result = engine.can_access_content(body.student_id, body.content_id, body.content_kind)
    return result.to_dict()


@router.post("/update-progress", response_model=ProgressUpdateResponse)
def update_progress(
    body: ProgressUpdateRequest, engine: ProgressionControlEngine = Depends(get_engine)
) -> dict[str, Any]:
    """Apply a progress update; rejected updates return success=false."""
    result = engine.update_progress(
        ProgressUpdate(
            student_id=body.student_id,
            content_id=body.content_id,
            content_kind=body.content_kind,
            status=body.status,
            completion_percentage=body.completion_percentage,
            time_spent=body.time_spent,
        )
    )
    return result.to_dict()


@router.post("/submit-attempt", response_model=SubmissionResponse)
def submit_attempt(
    body: AttemptSubmitRequest, engine: ProgressionControlEngine = Depends(get_engine)
) -> dict[str, Any]:
    """Record a scored assessment attempt."""
    result = engine.submit_assessment_attempt(
        body.student_id,
        body.assessment_id,
        body.score,
        started_at=body.started_at,
        submitted_at=body.submitted_at,
        time_spent=body.time_spent,
    )
    return result.to_dict()


@router.post("/override", response_model=OverrideResultResponse)
def grant_override(
    body: OverrideRequest, engine: ProgressionControlEngine = Depends(get_engine)
) -> dict[str, Any]:
    """Grant an instructor unlock/block override."""
    override = engine.grant_override(
        body.instructor_id,
        body.student_id,
        body.content_id,
        body.content_kind,
        body.action,
        body.reason,
    )
    return {"success": True, "override": override.to_dict()}


@router.post("/override/clear", response_model=OverrideResultResponse)
def clear_override(
    body: OverrideClearRequest, engine: ProgressionControlEngine = Depends(get_engine)
) -> dict[str, Any]:
    """Clear the standing override; success is false when none was standing."""
    cleared = engine.clear_override(
        body.instructor_id, body.student_id, body.content_id, body.reason
    )
    return {"success": cleared is not None, "override": cleared.to_dict() if cleared else None}


@router.post("/reset", response_model=ProgressResponse | None)
def reset_progress(
    body: ProgressResetRequest, engine: ProgressionControlEngine = Depends(get_engine)
) -> dict[str, Any] | None:
    """Reset a progress row to not_started."""
    progress = engine.reset_progress(
        body.instructor_id,
        body.student_id,
        body.content_id,
        body.content_kind,
        body.reason,
    )
    return progress.to_dict() if progress else None


@router.get("/course-overview/{course_id}")
def course_overview(
    course_id: str,
    student_id: str,
    engine: ProgressionControlEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Per-lesson access and progress of a student in a course."""
    return engine.course_progress_overview(student_id, course_id).to_dict()


@router.get("/blocked-content/{student_id}", response_model=BlockedContentResponse)
def blocked_content(
    student_id: str, engine: ProgressionControlEngine = Depends(get_engine)
) -> dict[str, Any]:
    """Progress rows of a student currently blocked."""
    rows = engine.blocked_content(student_id)
    return {"blocked": [r.to_dict() for r in rows], "count": len(rows)}


@router.get("/overrides/{student_id}/history", response_model=AuditHistoryResponse)
def override_history(
    student_id: str,
    content_id: str | None = None,
    engine: ProgressionControlEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Audit trail of overrides and blocking events for a student."""
    events = engine.overrides.history(student_id, content_id)
    return {"events": [e.to_dict() for e in events], "count": len(events)}


@router.get("/courses/{course_id}/graph-check", response_model=GraphCheckResponse)
def graph_check(
    course_id: str, engine: ProgressionControlEngine = Depends(get_engine)
) -> dict[str, Any]:
    """Validate a course's prerequisite graph for cycles."""
    reports = engine.resolver.validate_course(course_id)
    return {
        "course_id": course_id,
        "valid": not reports,
        "cycles": [r.to_dict() for r in reports],
    }
