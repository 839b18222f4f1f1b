"""Instructor overrides.

An override is a standing exception for one (student, content) pair:
``unlock`` grants access regardless of computed prerequisites, ``block``
denies it. Overrides are consulted live by the engine and never rewrite
progress rows, so clearing one immediately restores the computed result.
The most recent override for a pair wins; granting a new one clears the
previous. Cleared overrides are soft-deleted and every grant/clear is
written to the audit log.
"""

from __future__ import annotations

import structlog

from progression.core.interfaces import ProgressStore
from progression.core.models import (
    AuditEvent,
    ContentKind,
    OverrideAction,
    ProgressionOverride,
)
from progression.utils.ids import new_id, utc_now

logger = structlog.get_logger(__name__)

EVENT_OVERRIDE_GRANTED = "override_granted"
EVENT_OVERRIDE_CLEARED = "override_cleared"


class OverrideAuthority:
    """Grants, clears and looks up instructor overrides."""

    def __init__(self, store: ProgressStore):
        self.store = store

    def current(self, student_id: str, content_id: str) -> ProgressionOverride | None:
        """Standing override for the pair, if any."""
        return self.store.active_override(student_id, content_id)

    def grant_override(
        self,
        instructor_id: str,
        student_id: str,
        content_id: str,
        content_kind: ContentKind,
        action: OverrideAction,
        reason: str,
    ) -> ProgressionOverride:
        """Record a new standing override.

        Raises:
            ValueError: If reason or instructor_id is empty
        """
        if not reason or not reason.strip():
            raise ValueError("An override requires a reason")
        if not instructor_id:
            raise ValueError("An override requires the issuing instructor")

        override = ProgressionOverride(
            id=new_id(),
            student_id=student_id,
            content_id=content_id,
            content_kind=ContentKind(content_kind),
            action=OverrideAction(action),
            reason=reason.strip(),
            issued_by=instructor_id,
            issued_at=utc_now(),
        )

        with self.store.transaction() as tx:
            previous = tx.clear_override(student_id, content_id, cleared_by=instructor_id)
            if previous is not None:
                tx.record_audit(
                    EVENT_OVERRIDE_CLEARED,
                    student_id,
                    content_id,
                    previous.content_kind.value,
                    actor_id=instructor_id,
                    details={
                        "override_id": previous.id,
                        "action": previous.action.value,
                        "superseded_by": override.id,
                    },
                )
            tx.insert_override(override)
            tx.record_audit(
                EVENT_OVERRIDE_GRANTED,
                student_id,
                content_id,
                override.content_kind.value,
                actor_id=instructor_id,
                details={
                    "override_id": override.id,
                    "action": override.action.value,
                    "reason": override.reason,
                },
            )

        logger.info(
            "override.granted",
            override_id=override.id,
            student_id=student_id,
            content_id=content_id,
            action=override.action.value,
            issued_by=instructor_id,
        )
        return override

    def clear_override(
        self,
        instructor_id: str,
        student_id: str,
        content_id: str,
        reason: str = "",
    ) -> ProgressionOverride | None:
        """Soft-delete the standing override for the pair.

        Returns:
            The cleared override, or None if none was standing
        """
        with self.store.transaction() as tx:
            cleared = tx.clear_override(student_id, content_id, cleared_by=instructor_id)
            if cleared is not None:
                tx.record_audit(
                    EVENT_OVERRIDE_CLEARED,
                    student_id,
                    content_id,
                    cleared.content_kind.value,
                    actor_id=instructor_id,
                    details={
                        "override_id": cleared.id,
                        "action": cleared.action.value,
                        "reason": reason,
                    },
                )

        if cleared is None:
            logger.info("override.clear_noop", student_id=student_id, content_id=content_id)
        else:
            logger.info(
                "override.cleared",
                override_id=cleared.id,
                student_id=student_id,
                content_id=content_id,
                cleared_by=instructor_id,
            )
        return cleared

    def history(self, student_id: str, content_id: str | None = None) -> list[AuditEvent]:
        """Audit trail for a student, optionally limited to one content node."""
        return self.store.list_audit(student_id, content_id)
