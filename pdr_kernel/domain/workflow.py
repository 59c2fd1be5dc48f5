"""
PDR workflow definition (``pdr_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the lifecycle state machine and the canonical
transition table ``PDR_WORKFLOW``.  One row per action: source statuses,
target status (``None`` for side-flag actions that leave the status alone),
allowed roles, named requirements and the notification the action raises.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* Each action has exactly one row.
* Terminal states have no outgoing status-changing transitions.
* Every row allows at least one role.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Mapping

from pdr_kernel.domain.values import (
    PLANNING_STATUSES,
    TERMINAL_STATUSES,
    NotificationType,
    PDRAction,
    PDRStatus,
    UserRole,
)


class AlreadyAppliedPolicy(str, Enum):
    """What to do when an action's effect is already present."""

    NO_OP = "no_op"
    ERROR = "error"


@dataclass(frozen=True)
class Guard:
    """A named condition checked before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the state machine does.
    """

    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """
    A single row of the transition table.

    ``status_gated=True`` reports a wrong source status as INVALID_STATUS
    instead of INVALID_STATE_TRANSITION.  ``already_applied`` names a guard
    that detects the action's effect on the snapshot; ``on_already_applied``
    decides whether that is a silent success or a conflict.
    """

    action: PDRAction
    from_states: tuple[PDRStatus, ...]
    to_state: PDRStatus | None
    allowed_roles: frozenset[UserRole]
    requirements: tuple[str, ...] = ()
    denied_message: str = ""
    notification: NotificationType | None = None
    status_gated: bool = False
    already_applied: Guard | None = None
    on_already_applied: AlreadyAppliedPolicy = AlreadyAppliedPolicy.NO_OP

    @property
    def changes_status(self) -> bool:
        return self.to_state is not None

    def allows_role(self, role: UserRole) -> bool:
        return role in self.allowed_roles

    def applies_from(self, status: PDRStatus) -> bool:
        return status in self.from_states


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for the PDR lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``.
    """

    name: str
    description: str
    initial_state: PDRStatus
    states: tuple[PDRStatus, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[PDRStatus, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(f"Initial state {self.initial_state} not in states")
        actions = [t.action for t in self.transitions]
        if len(actions) != len(set(actions)):
            raise ValueError(f"Workflow {self.name} defines an action twice")
        for t in self.transitions:
            if not t.allowed_roles:
                raise ValueError(f"Transition {t.action.value} allows no roles")
            for state in t.from_states:
                if state not in self.states:
                    raise ValueError(f"Transition {t.action.value} from unknown state {state}")
            if t.to_state is not None and t.to_state not in self.states:
                raise ValueError(f"Transition {t.action.value} to unknown state {t.to_state}")
            if t.changes_status and set(t.from_states) & set(self.terminal_states):
                raise ValueError(f"Transition {t.action.value} leaves a terminal state")

    def transition_for(self, action: PDRAction | str) -> Transition | None:
        for t in self.transitions:
            if t.action == action:
                return t
        return None

    def available_actions(
        self, status: PDRStatus, role: UserRole
    ) -> tuple[PDRAction, ...]:
        """Actions ``role`` may attempt from ``status`` (ignoring requirements)."""
        return tuple(
            t.action
            for t in self.transitions
            if t.applies_from(status) and t.allows_role(role)
        )

    def next_states(self, status: PDRStatus, role: UserRole) -> tuple[PDRStatus, ...]:
        return tuple(
            t.to_state
            for t in self.transitions
            if t.changes_status and t.applies_from(status) and t.allows_role(role)
        )

    def with_requirements(
        self, overrides: Mapping[PDRAction, tuple[str, ...]]
    ) -> Workflow:
        """Copy with the requirement lists of the given actions replaced."""
        return replace(
            self,
            transitions=tuple(
                replace(t, requirements=tuple(overrides[t.action]))
                if t.action in overrides
                else t
                for t in self.transitions
            ),
        )

    def with_from_states(
        self, action: PDRAction, from_states: tuple[PDRStatus, ...]
    ) -> Workflow:
        return replace(
            self,
            transitions=tuple(
                replace(t, from_states=from_states) if t.action == action else t
                for t in self.transitions
            ),
        )


MEETING_BOOKED = Guard(
    name="meeting_booked",
    description="The plan meeting has already been booked",
)

CALIBRATED = Guard(
    name="calibrated",
    description="Calibration has already been closed",
)

_EMPLOYEE = frozenset({UserRole.EMPLOYEE})
_CEO = frozenset({UserRole.CEO})


PDR_WORKFLOW = Workflow(
    name="pdr_lifecycle",
    description="Annual plan, mid-year check-in, end-year review, calibration",
    initial_state=PDRStatus.CREATED,
    states=tuple(PDRStatus),
    transitions=(
        Transition(
            action=PDRAction.SUBMIT_FOR_REVIEW,
            from_states=(PDRStatus.CREATED,),
            to_state=PDRStatus.SUBMITTED,
            allowed_roles=_EMPLOYEE,
            requirements=(
                "owner_match",
                "has_goals",
                "goal_fields",
                "has_behaviors",
                "behavior_fields",
            ),
            denied_message="Only employees can submit PDRs for review",
            notification=NotificationType.PDR_SUBMITTED,
        ),
        Transition(
            action=PDRAction.SUBMIT_CEO_REVIEW,
            from_states=(PDRStatus.SUBMITTED,),
            to_state=PDRStatus.PLAN_LOCKED,
            allowed_roles=_CEO,
            requirements=("ceo_reviewed_items", "rating_scale"),
            denied_message="Only CEOs can submit reviews",
            notification=NotificationType.PDR_LOCKED,
        ),
        Transition(
            action=PDRAction.MARK_BOOKED,
            from_states=tuple(s for s in PDRStatus if s in PLANNING_STATUSES),
            to_state=None,
            allowed_roles=_CEO,
            denied_message="Only CEOs can mark meetings as booked",
            notification=NotificationType.PDR_MEETING_BOOKED,
            already_applied=MEETING_BOOKED,
            on_already_applied=AlreadyAppliedPolicy.NO_OP,
        ),
        Transition(
            action=PDRAction.SUBMIT_MID_YEAR,
            from_states=(PDRStatus.PLAN_LOCKED,),
            to_state=PDRStatus.MID_YEAR_SUBMITTED,
            allowed_roles=_EMPLOYEE,
            requirements=("owner_match", "mid_year_progress"),
            denied_message="Only employees can submit mid-year reviews",
            notification=NotificationType.MID_YEAR_SUBMITTED,
        ),
        Transition(
            action=PDRAction.APPROVE_MID_YEAR,
            from_states=(PDRStatus.MID_YEAR_SUBMITTED, PDRStatus.PLAN_LOCKED),
            to_state=PDRStatus.MID_YEAR_APPROVED,
            allowed_roles=_CEO,
            requirements=("mid_year_ceo_feedback", "rating_scale"),
            denied_message="Only CEOs can approve mid-year reviews",
            notification=NotificationType.MID_YEAR_APPROVED,
        ),
        Transition(
            action=PDRAction.SUBMIT_END_YEAR,
            from_states=(PDRStatus.MID_YEAR_APPROVED,),
            to_state=PDRStatus.END_YEAR_SUBMITTED,
            allowed_roles=_EMPLOYEE,
            requirements=(
                "owner_match",
                "end_year_review",
                "employee_item_ratings",
                "rating_scale",
            ),
            denied_message="Only employees can submit end-year reviews",
            notification=NotificationType.END_YEAR_SUBMITTED,
        ),
        Transition(
            action=PDRAction.COMPLETE_REVIEW,
            from_states=(PDRStatus.END_YEAR_SUBMITTED,),
            to_state=PDRStatus.COMPLETED,
            allowed_roles=_CEO,
            requirements=("ceo_overall_rating", "rating_scale"),
            denied_message="Only CEOs can complete final reviews",
            notification=NotificationType.PDR_COMPLETED,
        ),
        Transition(
            action=PDRAction.CLOSE_CALIBRATION,
            from_states=(PDRStatus.COMPLETED,),
            to_state=None,
            allowed_roles=_CEO,
            denied_message="Only CEOs can close calibration",
            notification=NotificationType.CALIBRATION_CLOSED,
            status_gated=True,
            already_applied=CALIBRATED,
            on_already_applied=AlreadyAppliedPolicy.ERROR,
        ),
    ),
    terminal_states=tuple(TERMINAL_STATUSES),
)
