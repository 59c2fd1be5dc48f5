"""
Domain DTOs (``pdr_kernel.domain.dtos``).

Responsibility
--------------
Pure value objects that cross the boundary between the state machine and
its caller: validation results, typed action inputs, notification and audit
instructions, and the ``TransitionOutcome`` returned by the evaluator.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Union
from uuid import UUID

from pdr_kernel.domain.aggregate import PDR, PDRDelta
from pdr_kernel.domain.values import AuditAction, NotificationType, PDRAction, UserRole
from pdr_kernel.exceptions import PDRKernelError


# =========================================================================
# Validation
# =========================================================================


@dataclass(frozen=True)
class ValidationError:
    """
    One reason a transition cannot happen.

    ``code`` is machine-readable (``GOALS_REQUIRED``, ``RATING_OUT_OF_RANGE``),
    ``message`` is shown to the user verbatim, ``field`` points at the
    offending part of the PDR when there is one.
    """

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ValidationResult:
    """
    ``{isValid, errors}`` for a transition check.

    Truthy when valid.  ``messages[0]`` is the reason a caller shows when
    it can only show one.
    """

    is_valid: bool
    errors: tuple[ValidationError, ...] = ()

    @classmethod
    def success(cls) -> ValidationResult:
        return cls(True)

    @classmethod
    def failure(cls, *errors: ValidationError) -> ValidationResult:
        return cls(False, errors)

    @classmethod
    def collect(cls, errors: Iterable[ValidationError]) -> ValidationResult:
        found = tuple(errors)
        return cls(not found, found)

    @property
    def messages(self) -> tuple[str, ...]:
        return tuple(e.message for e in self.errors)

    def __bool__(self) -> bool:
        return self.is_valid


# =========================================================================
# Action inputs
# =========================================================================


@dataclass(frozen=True)
class MidYearSubmission:
    progress_summary: str
    blockers_challenges: str | None = None
    support_needed: str | None = None
    employee_comments: str | None = None


@dataclass(frozen=True)
class MidYearApproval:
    ceo_feedback: str
    ceo_rating: int | None = None


@dataclass(frozen=True)
class EndYearSubmission:
    achievements_summary: str
    learnings_growth: str | None = None
    challenges_faced: str | None = None
    next_year_goals: str | None = None
    employee_overall_rating: int | None = None


@dataclass(frozen=True)
class FinalReview:
    ceo_overall_rating: int | None = None
    ceo_final_comments: str | None = None


@dataclass(frozen=True)
class MeetingBooking:
    """``meeting_date`` may be a datetime, a date, or ``dd/mm/yyyy``."""

    meeting_date: datetime | date | str | None = None


ActionInput = Union[
    MidYearSubmission,
    MidYearApproval,
    EndYearSubmission,
    FinalReview,
    MeetingBooking,
]


# =========================================================================
# Side-effect instructions
# =========================================================================


@dataclass(frozen=True)
class NotificationRequest:
    """
    A notification the caller should deliver.

    Exactly one of ``recipient_id`` (a specific user) or ``recipient_role``
    (every active user holding the role) is set.
    """

    pdr_id: UUID
    type: NotificationType
    title: str
    message: str
    recipient_id: UUID | None = None
    recipient_role: UserRole | None = None

    def __post_init__(self) -> None:
        if (self.recipient_id is None) == (self.recipient_role is None):
            raise ValueError("NotificationRequest needs exactly one recipient")


@dataclass(frozen=True)
class AuditInstruction:
    """Before/after snapshot for the external audit sink."""

    table_name: str
    record_id: UUID
    action: AuditAction
    actor_id: UUID
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None


# =========================================================================
# Transition outcome
# =========================================================================


@dataclass(frozen=True)
class TransitionOutcome:
    """
    Result of ``attempt_transition``.

    Contract:
        ``success`` is True for accepted transitions and for idempotent
        no-ops (``no_op=True``, empty delta, no notifications).  On failure
        ``error`` holds the typed exception; nothing has been raised.
    """

    action: PDRAction | str
    success: bool
    pdr: PDR | None = None
    delta: PDRDelta | None = None
    notifications: tuple[NotificationRequest, ...] = ()
    audit: tuple[AuditInstruction, ...] = ()
    error: PDRKernelError | None = None
    no_op: bool = False

    @classmethod
    def accepted(
        cls,
        action: PDRAction,
        pdr: PDR,
        delta: PDRDelta,
        notifications: tuple[NotificationRequest, ...],
        audit: tuple[AuditInstruction, ...],
    ) -> TransitionOutcome:
        return cls(
            action=action,
            success=True,
            pdr=pdr,
            delta=delta,
            notifications=notifications,
            audit=audit,
        )

    @classmethod
    def unchanged(cls, action: PDRAction, pdr: PDR) -> TransitionOutcome:
        return cls(
            action=action,
            success=True,
            pdr=pdr,
            delta=PDRDelta(pdr_id=pdr.pdr_id),
            no_op=True,
        )

    @classmethod
    def rejected(cls, action: PDRAction | str, error: PDRKernelError) -> TransitionOutcome:
        return cls(action=action, success=False, error=error)

    def raise_for_error(self) -> TransitionOutcome:
        """Raise the carried error, or return self when successful."""
        if self.error is not None:
            raise self.error
        return self
