"""Core progression logic.

Modules:
- models: domain dataclasses and enums
- errors: error taxonomy
- interfaces: collaborator protocols (catalog, enrollments, progress store)
- prerequisite_resolver: derived prerequisite graph, cycle detection
- assessment_gate: pass/attempt evaluation
- state_machine: allowed progress status transitions
- override_authority: instructor unlock/block overrides
- progression_engine: access decisions, updates and unlock cascades
"""

from progression.core.progression_engine import ProgressionControlEngine

__all__ = [
    "ProgressionControlEngine",
    "models",
    "errors",
    "interfaces",
    "prerequisite_resolver",
    "assessment_gate",
    "state_machine",
    "override_authority",
    "progression_engine",
]
