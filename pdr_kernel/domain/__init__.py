"""
Pure domain layer.

This module contains the PDR aggregate, the transition table, the
requirement checks, the permission resolver and the state machine
evaluator, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Configuration files
- I/O

All domain objects are immutable; time is injected through ``Clock``.
"""

from pdr_kernel.domain.aggregate import (
    PDR,
    Actor,
    Behavior,
    EndYearReview,
    Goal,
    MidYearReview,
    PDRDelta,
    ReviewChange,
)
from pdr_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from pdr_kernel.domain.dtos import (
    ActionInput,
    AuditInstruction,
    EndYearSubmission,
    FinalReview,
    MeetingBooking,
    MidYearApproval,
    MidYearSubmission,
    NotificationRequest,
    TransitionOutcome,
    ValidationError,
    ValidationResult,
)
from pdr_kernel.domain.financial_year import (
    FinancialYear,
    compute_financial_year,
    financial_year_from_label,
    is_valid_fy_label,
)
from pdr_kernel.domain.permissions import (
    PDRPermissions,
    filter_visible_fields,
    permissions_for,
    resolve_permissions,
)
from pdr_kernel.domain.requirements import (
    RatingScale,
    known_requirements,
    validate_transition_requirements,
)
from pdr_kernel.domain.state_machine import (
    PDRStateMachine,
    attempt_transition,
    validate_state_transition,
)
from pdr_kernel.domain.values import (
    AuditAction,
    NotificationType,
    PDRAction,
    PDRStatus,
    Priority,
    UserRole,
)
from pdr_kernel.domain.workflow import PDR_WORKFLOW, Transition, Workflow

__all__ = [
    # Aggregate
    "PDR",
    "Actor",
    "Behavior",
    "EndYearReview",
    "Goal",
    "MidYearReview",
    "PDRDelta",
    "ReviewChange",
    # Time
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # DTOs
    "ActionInput",
    "AuditInstruction",
    "EndYearSubmission",
    "FinalReview",
    "MeetingBooking",
    "MidYearApproval",
    "MidYearSubmission",
    "NotificationRequest",
    "TransitionOutcome",
    "ValidationError",
    "ValidationResult",
    # Financial year
    "FinancialYear",
    "compute_financial_year",
    "financial_year_from_label",
    "is_valid_fy_label",
    # Permissions
    "PDRPermissions",
    "filter_visible_fields",
    "permissions_for",
    "resolve_permissions",
    # Requirements
    "RatingScale",
    "known_requirements",
    "validate_transition_requirements",
    # State machine
    "PDRStateMachine",
    "attempt_transition",
    "validate_state_transition",
    # Values
    "AuditAction",
    "NotificationType",
    "PDRAction",
    "PDRStatus",
    "Priority",
    "UserRole",
    # Workflow
    "PDR_WORKFLOW",
    "Transition",
    "Workflow",
]
