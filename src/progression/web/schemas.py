"""Pydantic schemas for the Web API.

Request bodies are validated here; response models mirror the ``to_dict()``
shape of the core result dataclasses.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from progression.core.models import ContentKind, OverrideAction, ProgressStatus


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================


class AccessCheckRequest(BaseModel):
    """Request body for an access check."""

    student_id: str = Field(..., min_length=1)
    content_id: str = Field(..., min_length=1)
    content_kind: ContentKind = Field(
        ..., validation_alias=AliasChoices("content_kind", "content_type")
    )


class ProgressUpdateRequest(BaseModel):
    """Request body for a progress update."""

    student_id: str = Field(..., min_length=1)
    content_id: str = Field(..., min_length=1)
    content_kind: ContentKind = Field(
        ..., validation_alias=AliasChoices("content_kind", "content_type")
    )
    status: ProgressStatus
    completion_percentage: int = Field(default=0, ge=0, le=100)
    time_spent: int = Field(default=0, ge=0)


class AttemptSubmitRequest(BaseModel):
    """Request body for a scored assessment attempt."""

    student_id: str = Field(..., min_length=1)
    assessment_id: str = Field(..., min_length=1)
    score: int = Field(..., ge=0, le=100)
    started_at: str | None = None
    submitted_at: str | None = None
    time_spent: int = Field(default=0, ge=0)


class OverrideRequest(BaseModel):
    """Request body for granting an instructor override."""

    instructor_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    content_id: str = Field(..., min_length=1)
    content_kind: ContentKind
    action: OverrideAction
    reason: str = Field(..., min_length=1, max_length=1000)


class OverrideClearRequest(BaseModel):
    """Request body for clearing an instructor override."""

    instructor_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    content_id: str = Field(..., min_length=1)
    reason: str = Field(default="", max_length=1000)


class ProgressResetRequest(BaseModel):
    """Request body for an explicit progress reset."""

    instructor_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    content_id: str = Field(..., min_length=1)
    content_kind: ContentKind
    reason: str = Field(..., min_length=1, max_length=1000)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================


class ContentNodeResponse(BaseModel):
    """Reference to a content node."""

    id: str
    kind: str
    published: bool
    title: str = ""


class PrerequisiteStatusResponse(BaseModel):
    """One evaluated prerequisite."""

    node: ContentNodeResponse
    requirement: str
    completed: bool
    score: int | None = None
    required_score: int | None = None


class OverrideResponse(BaseModel):
    """An instructor override."""

    id: str
    student_id: str
    content_id: str
    content_kind: str
    action: str
    reason: str
    issued_by: str
    issued_at: str
    cleared_at: str | None = None
    cleared_by: str | None = None


class OverrideResultResponse(BaseModel):
    """Outcome of granting or clearing an override."""

    success: bool
    override: OverrideResponse | None = None


class AccessResponse(BaseModel):
    """Access decision."""

    can_access: bool
    reason: str | None = None
    blocked_by: ContentNodeResponse | None = None
    prerequisites: list[PrerequisiteStatusResponse] = Field(default_factory=list)
    override: OverrideResponse | None = None


class ProgressResponse(BaseModel):
    """A student progress row."""

    id: str
    student_id: str
    course_id: str
    lesson_id: str | None = None
    assessment_id: str | None = None
    content_id: str
    content_kind: str
    status: str
    completion_percentage: int
    attempts_count: int
    best_score: int | None = None
    last_accessed: str | None = None
    time_spent: int


class UnlockedContentResponse(BaseModel):
    """Content unlocked by an update."""

    lessons: list[str] = Field(default_factory=list)
    assessments: list[str] = Field(default_factory=list)
    courses: list[str] = Field(default_factory=list)


class ProgressUpdateResponse(BaseModel):
    """Outcome of a progress update."""

    success: bool
    unlocked_content: UnlockedContentResponse
    progress: ProgressResponse | None = None
    code: str | None = None
    message: str = ""


class AttemptResponse(BaseModel):
    """A recorded attempt."""

    id: str
    assessment_id: str
    student_id: str
    attempt_number: int
    score: int
    passed: bool
    started_at: str | None = None
    submitted_at: str
    time_spent: int
    is_late: bool


class GateResponse(BaseModel):
    """Assessment gate evaluation."""

    assessment_id: str
    passed: bool
    attempts_used: int
    attempts_remaining: int | None = None
    best_score: int
    minimum_passing_score: int
    exhausted: bool


class SubmissionResponse(BaseModel):
    """Outcome of an attempt submission."""

    attempt: AttemptResponse
    gate: GateResponse
    progress: ProgressResponse
    unlocked_content: UnlockedContentResponse


class AuditEventResponse(BaseModel):
    """Audit trail entry."""

    id: int
    event_type: str
    student_id: str
    content_id: str
    content_kind: str
    actor_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: str


class AuditHistoryResponse(BaseModel):
    """Audit trail of a student."""

    events: list[AuditEventResponse]
    count: int


class BlockedContentResponse(BaseModel):
    """Blocked progress rows of a student."""

    blocked: list[ProgressResponse]
    count: int


class CycleReportResponse(BaseModel):
    """One detected prerequisite cycle."""

    node: ContentNodeResponse
    cycle: list[str]


class GraphCheckResponse(BaseModel):
    """Result of validating a course's prerequisite graph."""

    course_id: str
    valid: bool
    cycles: list[CycleReportResponse]


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
