"""Progress state machine.

    not_started -> in_progress -> completed
                        |  ^
                        v  | (override only)
                      blocked

``completed -> completed`` is an idempotent no-op. Forward jumps walk the
chain (``not_started -> completed`` passes through ``in_progress``).
``completed`` is only re-entered through an explicit reset, which bypasses
this module.
"""

from __future__ import annotations

from progression.core.errors import InvalidStateTransition
from progression.core.models import ProgressStatus

NOT_STARTED = ProgressStatus.NOT_STARTED
IN_PROGRESS = ProgressStatus.IN_PROGRESS
COMPLETED = ProgressStatus.COMPLETED
BLOCKED = ProgressStatus.BLOCKED

# (from, to) -> requires an active unlock override
ALLOWED_TRANSITIONS: dict[tuple[ProgressStatus, ProgressStatus], bool] = {
    (NOT_STARTED, IN_PROGRESS): False,
    (IN_PROGRESS, COMPLETED): False,
    (IN_PROGRESS, BLOCKED): False,
    (BLOCKED, IN_PROGRESS): True,
    (COMPLETED, COMPLETED): False,
}

# Forward order used to expand jumps
_CHAIN = [NOT_STARTED, IN_PROGRESS, COMPLETED]


def transition_path(
    current: ProgressStatus,
    target: ProgressStatus,
    override_active: bool = False,
) -> list[ProgressStatus]:
    """Statuses visited when moving from ``current`` to ``target``.

    Returns an empty list when the status does not change.

    Raises:
        InvalidStateTransition: If no allowed path exists
    """
    current = ProgressStatus(current)
    target = ProgressStatus(target)

    if current == target:
        return []

    path: list[ProgressStatus] = []
    state = current

    if state == BLOCKED:
        if not override_active:
            raise InvalidStateTransition(
                current.value, target.value, "blocked content requires an unlock override"
            )
        state = IN_PROGRESS
        path.append(state)
        if target == IN_PROGRESS:
            return path

    if target == BLOCKED:
        if state == IN_PROGRESS:
            return path + [BLOCKED]
        raise InvalidStateTransition(current.value, target.value)

    if state not in _CHAIN or _CHAIN.index(target) < _CHAIN.index(state):
        raise InvalidStateTransition(current.value, target.value, "backward transition")

    for step in _CHAIN[_CHAIN.index(state) + 1 : _CHAIN.index(target) + 1]:
        needs_override = ALLOWED_TRANSITIONS.get((state, step))
        if needs_override is None or (needs_override and not override_active):
            raise InvalidStateTransition(current.value, target.value)
        path.append(step)
        state = step

    return path


def can_transition(
    current: ProgressStatus,
    target: ProgressStatus,
    override_active: bool = False,
) -> bool:
    try:
        transition_path(current, target, override_active)
    except InvalidStateTransition:
        return False
    return True
