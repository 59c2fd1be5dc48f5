"""
PDR aggregate (``pdr_kernel.domain.aggregate``).

Responsibility
--------------
Immutable snapshot of one employee's review for one financial year: the
root record plus owned goals, behaviors and the two review sub-records.
The state machine reads these snapshots and answers with a ``PDRDelta``;
``PDR.apply`` folds a delta back into a new snapshot.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``current_step`` is within 1..5.
* At most one behavior per company value.
* Goal and behavior ids are unique within the PDR.
* A locked PDR never becomes unlocked (``apply`` refuses such a delta).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Union
from uuid import UUID, uuid4

from pdr_kernel.domain.clock import Clock
from pdr_kernel.domain.financial_year import FinancialYear
from pdr_kernel.domain.values import (
    MAX_STEP,
    MIN_STEP,
    AuditAction,
    PDRStatus,
    Priority,
    UserRole,
)
from pdr_kernel.exceptions import DuplicateBehaviorError, LockInvariantError


def has_text(value: str | None) -> bool:
    return bool(value and value.strip())


@dataclass(frozen=True)
class Actor:
    """An already-authenticated user acting on a PDR."""

    user_id: UUID
    role: UserRole
    display_name: str = ""

    def owns(self, pdr: PDR) -> bool:
        return pdr.user_id == self.user_id


@dataclass(frozen=True)
class Goal:
    goal_id: UUID
    title: str
    description: str | None = None
    target_outcome: str | None = None
    success_criteria: str | None = None
    priority: Priority = Priority.MEDIUM
    weighting: int | None = None
    employee_progress: str | None = None
    employee_rating: int | None = None
    ceo_rating: int | None = None
    ceo_comments: str | None = None

    @property
    def ceo_reviewed(self) -> bool:
        return self.ceo_rating is not None or has_text(self.ceo_comments)


@dataclass(frozen=True)
class Behavior:
    behavior_id: UUID
    company_value_id: UUID
    description: str
    company_value_name: str = ""
    examples: str | None = None
    employee_self_assessment: str | None = None
    employee_rating: int | None = None
    ceo_rating: int | None = None
    ceo_comments: str | None = None
    ceo_adjusted_initiative: str | None = None

    @property
    def label(self) -> str:
        return self.company_value_name or str(self.company_value_id)

    @property
    def ceo_reviewed(self) -> bool:
        return self.ceo_rating is not None or has_text(self.ceo_comments)


@dataclass(frozen=True)
class MidYearReview:
    review_id: UUID
    progress_summary: str = ""
    blockers_challenges: str | None = None
    support_needed: str | None = None
    employee_comments: str | None = None
    ceo_feedback: str | None = None
    ceo_rating: int | None = None
    submitted_at: datetime | None = None


@dataclass(frozen=True)
class EndYearReview:
    review_id: UUID
    achievements_summary: str = ""
    learnings_growth: str | None = None
    challenges_faced: str | None = None
    next_year_goals: str | None = None
    employee_overall_rating: int | None = None
    ceo_overall_rating: int | None = None
    ceo_final_comments: str | None = None
    submitted_at: datetime | None = None


Review = Union[MidYearReview, EndYearReview]


@dataclass(frozen=True)
class ReviewChange:
    """Creation or update of one review sub-record."""

    kind: AuditAction
    before: Review | None
    after: Review


@dataclass(frozen=True)
class PDRDelta:
    """
    Everything a single accepted action changes on the aggregate.

    ``changes`` holds root fields with their new values and ``previous``
    the same keys with their old values, so the pair doubles as the audit
    before/after snapshot.
    """

    pdr_id: UUID
    changes: dict[str, Any] = field(default_factory=dict)
    previous: dict[str, Any] = field(default_factory=dict)
    mid_year_review: ReviewChange | None = None
    end_year_review: ReviewChange | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.changes or self.mid_year_review or self.end_year_review)

    @property
    def new_status(self) -> PDRStatus | None:
        return self.changes.get("status")


# Root fields a delta may touch
ROOT_FIELDS: tuple[str, ...] = (
    "status",
    "current_step",
    "is_locked",
    "locked_at",
    "locked_by",
    "meeting_booked",
    "meeting_booked_at",
    "submitted_at",
    "completed_at",
    "calibrated_at",
    "calibrated_by",
)


@dataclass(frozen=True)
class PDR:
    """
    Root of the PDR aggregate.

    Contract: frozen; every mutation returns a new snapshot.
    Guarantees: see module invariants.
    """

    pdr_id: UUID
    user_id: UUID
    fy_label: str
    fy_start_date: date
    fy_end_date: date
    status: PDRStatus = PDRStatus.CREATED
    current_step: int = MIN_STEP
    is_locked: bool = False
    locked_at: datetime | None = None
    locked_by: UUID | None = None
    meeting_booked: bool = False
    meeting_booked_at: datetime | None = None
    submitted_at: datetime | None = None
    completed_at: datetime | None = None
    calibrated_at: datetime | None = None
    calibrated_by: UUID | None = None
    goals: tuple[Goal, ...] = ()
    behaviors: tuple[Behavior, ...] = ()
    mid_year_review: MidYearReview | None = None
    end_year_review: EndYearReview | None = None
    created_at: datetime | None = None
    version: int = 1

    def __post_init__(self) -> None:
        if not MIN_STEP <= self.current_step <= MAX_STEP:
            raise ValueError(
                f"current_step must be between {MIN_STEP} and {MAX_STEP}, "
                f"got {self.current_step}"
            )
        seen_values: set[UUID] = set()
        for behavior in self.behaviors:
            if behavior.company_value_id in seen_values:
                raise DuplicateBehaviorError(
                    str(self.pdr_id), str(behavior.company_value_id)
                )
            seen_values.add(behavior.company_value_id)
        goal_ids = [g.goal_id for g in self.goals]
        if len(goal_ids) != len(set(goal_ids)):
            raise ValueError(f"PDR {self.pdr_id} has duplicate goal ids")
        behavior_ids = [b.behavior_id for b in self.behaviors]
        if len(behavior_ids) != len(set(behavior_ids)):
            raise ValueError(f"PDR {self.pdr_id} has duplicate behavior ids")

    @classmethod
    def open(
        cls,
        user_id: UUID,
        financial_year: FinancialYear,
        clock: Clock,
        pdr_id: UUID | None = None,
    ) -> PDR:
        """Start a new, unlocked PDR in CREATED."""
        return cls(
            pdr_id=pdr_id or uuid4(),
            user_id=user_id,
            fy_label=financial_year.label,
            fy_start_date=financial_year.start_date,
            fy_end_date=financial_year.end_date,
            created_at=clock.now(),
        )

    @property
    def is_calibrated(self) -> bool:
        return self.calibrated_at is not None

    def root_values(self, names: tuple[str, ...] = ROOT_FIELDS) -> dict[str, Any]:
        return {name: getattr(self, name) for name in names}

    # -- child collections ------------------------------------------------

    def goal(self, goal_id: UUID) -> Goal | None:
        return next((g for g in self.goals if g.goal_id == goal_id), None)

    def behavior(self, behavior_id: UUID) -> Behavior | None:
        return next((b for b in self.behaviors if b.behavior_id == behavior_id), None)

    def with_goal(self, goal: Goal) -> PDR:
        """Add or replace a goal (matched by id), preserving order."""
        if self.goal(goal.goal_id) is None:
            return replace(self, goals=self.goals + (goal,))
        return replace(
            self,
            goals=tuple(goal if g.goal_id == goal.goal_id else g for g in self.goals),
        )

    def without_goal(self, goal_id: UUID) -> PDR:
        return replace(self, goals=tuple(g for g in self.goals if g.goal_id != goal_id))

    def with_behavior(self, behavior: Behavior) -> PDR:
        """Add or replace a behavior (matched by id), preserving order.

        Raises:
            DuplicateBehaviorError: another behavior already covers the value.
        """
        if self.behavior(behavior.behavior_id) is None:
            return replace(self, behaviors=self.behaviors + (behavior,))
        return replace(
            self,
            behaviors=tuple(
                behavior if b.behavior_id == behavior.behavior_id else b
                for b in self.behaviors
            ),
        )

    def without_behavior(self, behavior_id: UUID) -> PDR:
        return replace(
            self,
            behaviors=tuple(b for b in self.behaviors if b.behavior_id != behavior_id),
        )

    # -- lifecycle -------------------------------------------------------------

    def apply(self, delta: PDRDelta) -> PDR:
        """Return the snapshot that results from ``delta``.

        Raises:
            ValueError: delta belongs to a different PDR or names unknown fields.
            LockInvariantError: delta would unlock a locked PDR.
        """
        if delta.pdr_id != self.pdr_id:
            raise ValueError(f"Delta for {delta.pdr_id} applied to PDR {self.pdr_id}")
        unknown = set(delta.changes) - set(ROOT_FIELDS)
        if unknown:
            raise ValueError(f"Delta changes unknown PDR fields: {sorted(unknown)}")
        if self.is_locked and delta.changes.get("is_locked", True) is False:
            raise LockInvariantError(str(self.pdr_id))

        updates: dict[str, Any] = dict(delta.changes)
        if delta.mid_year_review is not None:
            updates["mid_year_review"] = delta.mid_year_review.after
        if delta.end_year_review is not None:
            updates["end_year_review"] = delta.end_year_review.after
        return replace(self, **updates)
