"""
Values -- closed enumerations for the PDR lifecycle.

Responsibility:
    Single source of truth for statuses, roles, actions, priorities,
    notification types and audit actions.  Internal tags are consistent
    UPPER_SNAKE names; the labels stored by the existing database (which
    mix ``Created`` with ``SUBMITTED``) are kept as serialization labels
    only, via ``PDRStatus.to_label()`` / ``PDRStatus.from_label()``.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Imported by every other domain module.
"""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    """The two actor roles.  Adding a role must be handled in every resolver."""

    EMPLOYEE = "EMPLOYEE"
    CEO = "CEO"


class PDRStatus(str, Enum):
    """Lifecycle position of a PDR."""

    CREATED = "CREATED"
    SUBMITTED = "SUBMITTED"
    PLAN_LOCKED = "PLAN_LOCKED"
    MID_YEAR_SUBMITTED = "MID_YEAR_SUBMITTED"
    MID_YEAR_APPROVED = "MID_YEAR_APPROVED"
    END_YEAR_SUBMITTED = "END_YEAR_SUBMITTED"
    COMPLETED = "COMPLETED"

    def to_label(self) -> str:
        """Storage/wire label for this status."""
        return _STATUS_LABELS[self]

    @classmethod
    def from_label(cls, label: str) -> PDRStatus:
        """Parse a storage/wire label (current or legacy) into a status.

        Raises:
            ValueError: if the label is not recognised.
        """
        try:
            return _LABEL_TO_STATUS[label]
        except KeyError:
            raise ValueError(f"Unknown PDR status label: {label!r}") from None

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def step(self) -> int:
        """UI step cursor that corresponds to reaching this status."""
        return _STEPS[self]


_STATUS_LABELS: dict[PDRStatus, str] = {
    PDRStatus.CREATED: "Created",
    PDRStatus.SUBMITTED: "SUBMITTED",
    PDRStatus.PLAN_LOCKED: "PLAN_LOCKED",
    PDRStatus.MID_YEAR_SUBMITTED: "MID_YEAR_SUBMITTED",
    PDRStatus.MID_YEAR_APPROVED: "MID_YEAR_APPROVED",
    PDRStatus.END_YEAR_SUBMITTED: "END_YEAR_SUBMITTED",
    PDRStatus.COMPLETED: "COMPLETED",
}

# Legacy labels still present in older rows
_LABEL_TO_STATUS: dict[str, PDRStatus] = {
    **{label: status for status, label in _STATUS_LABELS.items()},
    "DRAFT": PDRStatus.CREATED,
    "OPEN_FOR_REVIEW": PDRStatus.SUBMITTED,
}

_DISPLAY_NAMES: dict[PDRStatus, str] = {
    PDRStatus.CREATED: "Draft",
    PDRStatus.SUBMITTED: "Submitted for Review",
    PDRStatus.PLAN_LOCKED: "Plan Approved",
    PDRStatus.MID_YEAR_SUBMITTED: "Mid-Year Submitted",
    PDRStatus.MID_YEAR_APPROVED: "Mid-Year Approved",
    PDRStatus.END_YEAR_SUBMITTED: "End-Year Submitted",
    PDRStatus.COMPLETED: "Completed",
}

_STEPS: dict[PDRStatus, int] = {
    PDRStatus.CREATED: 1,
    PDRStatus.SUBMITTED: 2,
    PDRStatus.PLAN_LOCKED: 3,
    PDRStatus.MID_YEAR_SUBMITTED: 3,
    PDRStatus.MID_YEAR_APPROVED: 4,
    PDRStatus.END_YEAR_SUBMITTED: 4,
    PDRStatus.COMPLETED: 5,
}

MIN_STEP = 1
MAX_STEP = 5

EMPLOYEE_EDITABLE_STATUSES: frozenset[PDRStatus] = frozenset({
    PDRStatus.CREATED,
    PDRStatus.PLAN_LOCKED,
    PDRStatus.MID_YEAR_APPROVED,
})

CEO_EDITABLE_STATUSES: frozenset[PDRStatus] = frozenset({
    PDRStatus.SUBMITTED,
    PDRStatus.PLAN_LOCKED,
    PDRStatus.MID_YEAR_SUBMITTED,
    PDRStatus.MID_YEAR_APPROVED,
    PDRStatus.END_YEAR_SUBMITTED,
    PDRStatus.COMPLETED,
})

# Statuses before the mid-year stage; the plan meeting can be booked here.
PLANNING_STATUSES: frozenset[PDRStatus] = frozenset({
    PDRStatus.CREATED,
    PDRStatus.SUBMITTED,
    PDRStatus.PLAN_LOCKED,
})

TERMINAL_STATUSES: frozenset[PDRStatus] = frozenset({PDRStatus.COMPLETED})


class PDRAction(str, Enum):
    """Lifecycle actions.  ``wire_name`` is the camelCase route-level name."""

    SUBMIT_FOR_REVIEW = "submit_for_review"
    SUBMIT_CEO_REVIEW = "submit_ceo_review"
    MARK_BOOKED = "mark_booked"
    SUBMIT_MID_YEAR = "submit_mid_year"
    APPROVE_MID_YEAR = "approve_mid_year"
    SUBMIT_END_YEAR = "submit_end_year"
    COMPLETE_REVIEW = "complete_review"
    CLOSE_CALIBRATION = "close_calibration"

    @property
    def wire_name(self) -> str:
        head, *rest = self.value.split("_")
        return head + "".join(part.capitalize() for part in rest)

    @classmethod
    def parse(cls, name: str) -> PDRAction:
        """Accept either the snake_case value or the camelCase wire name.

        Raises:
            ValueError: if the name matches no action.
        """
        for action in cls:
            if name in (action.value, action.wire_name):
                return action
        raise ValueError(f"Unknown PDR action: {name!r}")


class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class NotificationType(str, Enum):
    PDR_SUBMITTED = "PDR_SUBMITTED"
    PDR_LOCKED = "PDR_LOCKED"
    PDR_MEETING_BOOKED = "PDR_MEETING_BOOKED"
    MID_YEAR_SUBMITTED = "MID_YEAR_SUBMITTED"
    MID_YEAR_APPROVED = "MID_YEAR_APPROVED"
    END_YEAR_SUBMITTED = "END_YEAR_SUBMITTED"
    PDR_COMPLETED = "PDR_COMPLETED"
    CALIBRATION_CLOSED = "CALIBRATION_CLOSED"
    PDR_REMINDER = "PDR_REMINDER"


class AuditAction(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
