"""
Permission resolver (``pdr_kernel.domain.permissions``).

Responsibility
--------------
One function, ``resolve_permissions``, maps (status, role, ownership,
lock flag) to a capability set.  The same resolver gates mutation
endpoints and filters the fields serialized back to a requester
(``filter_visible_fields``), so the two can never disagree.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.

Invariants enforced
-------------------
* A CEO can always view every field of every PDR.
* A non-owner employee has no capability at all.
* Whenever ``can_edit`` is False, ``read_only_reason`` explains why.
* An employee never sees CEO-authored fields before the plan is locked.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from pdr_kernel.domain.aggregate import PDR, Behavior, Goal
from pdr_kernel.domain.values import (
    CEO_EDITABLE_STATUSES,
    EMPLOYEE_EDITABLE_STATUSES,
    PDRAction,
    PDRStatus,
    UserRole,
)
from pdr_kernel.domain.workflow import PDR_WORKFLOW, Workflow
from pdr_kernel.exceptions import AuthorizationError

NO_ACCESS_REASON = "You do not have access to this PDR"
LOCKED_REASON = "PDR is locked and cannot be modified"
STATUS_READ_ONLY_REASON = "PDR status does not allow editing"
NOT_SUBMITTED_REASON = "PDR not yet submitted for review"

# Employees see CEO ratings and comments once the plan has been approved
_EMPLOYEE_SEES_CEO_FIELDS: frozenset[PDRStatus] = frozenset({
    PDRStatus.PLAN_LOCKED,
    PDRStatus.MID_YEAR_SUBMITTED,
    PDRStatus.MID_YEAR_APPROVED,
    PDRStatus.END_YEAR_SUBMITTED,
    PDRStatus.COMPLETED,
})


@dataclass(frozen=True)
class PDRPermissions:
    can_view: bool = False
    can_edit: bool = False
    can_view_employee_fields: bool = False
    can_view_ceo_fields: bool = False
    can_edit_employee_fields: bool = False
    can_edit_ceo_fields: bool = False
    can_modify_plan: bool = False
    available_actions: tuple[PDRAction, ...] = ()
    read_only_reason: str | None = None


NO_ACCESS = PDRPermissions(read_only_reason=NO_ACCESS_REASON)


def resolve_permissions(
    status: PDRStatus,
    role: UserRole,
    is_owner: bool,
    is_locked: bool = False,
    workflow: Workflow = PDR_WORKFLOW,
) -> PDRPermissions:
    """Capability set for ``role`` on a PDR in ``status``."""
    match role:
        case UserRole.CEO:
            return _ceo_permissions(status, workflow)
        case UserRole.EMPLOYEE:
            if not is_owner:
                return NO_ACCESS
            return _employee_permissions(status, is_locked, workflow)
        case _:
            raise ValueError(f"Unhandled role: {role!r}")


def permissions_for(
    pdr: PDR, role: UserRole, is_owner: bool, workflow: Workflow = PDR_WORKFLOW
) -> PDRPermissions:
    return resolve_permissions(pdr.status, role, is_owner, pdr.is_locked, workflow)


def _employee_permissions(
    status: PDRStatus, is_locked: bool, workflow: Workflow
) -> PDRPermissions:
    # The lock only restricts the pre-submission draft
    locked_draft = status is PDRStatus.CREATED and is_locked
    can_edit = status in EMPLOYEE_EDITABLE_STATUSES and not locked_draft

    if can_edit:
        reason = None
    elif locked_draft:
        reason = LOCKED_REASON
    else:
        reason = STATUS_READ_ONLY_REASON

    return PDRPermissions(
        can_view=True,
        can_edit=can_edit,
        can_view_employee_fields=True,
        can_view_ceo_fields=status in _EMPLOYEE_SEES_CEO_FIELDS,
        can_edit_employee_fields=can_edit,
        can_edit_ceo_fields=False,
        can_modify_plan=status is PDRStatus.CREATED and not is_locked,
        available_actions=workflow.available_actions(status, UserRole.EMPLOYEE),
        read_only_reason=reason,
    )


def _ceo_permissions(status: PDRStatus, workflow: Workflow) -> PDRPermissions:
    can_edit = status in CEO_EDITABLE_STATUSES
    return PDRPermissions(
        can_view=True,
        can_edit=can_edit,
        can_view_employee_fields=True,
        can_view_ceo_fields=True,
        can_edit_employee_fields=False,
        can_edit_ceo_fields=can_edit,
        can_modify_plan=False,
        available_actions=workflow.available_actions(status, UserRole.CEO),
        read_only_reason=None if can_edit else NOT_SUBMITTED_REASON,
    )


# =========================================================================
# Read-side filtering
# =========================================================================


def _hide_goal(goal: Goal) -> Goal:
    return replace(goal, ceo_rating=None, ceo_comments=None)


def _hide_behavior(behavior: Behavior) -> Behavior:
    return replace(
        behavior,
        ceo_rating=None,
        ceo_comments=None,
        ceo_adjusted_initiative=None,
    )


def filter_visible_fields(pdr: PDR, permissions: PDRPermissions) -> PDR:
    """Return ``pdr`` with the fields ``permissions`` hides blanked out.

    Raises:
        AuthorizationError: if the permissions do not allow viewing at all.
    """
    if not permissions.can_view:
        raise AuthorizationError(permissions.read_only_reason or NO_ACCESS_REASON)
    if permissions.can_view_ceo_fields:
        return pdr

    mid_year = pdr.mid_year_review
    if mid_year is not None:
        mid_year = replace(mid_year, ceo_feedback=None, ceo_rating=None)
    end_year = pdr.end_year_review
    if end_year is not None:
        end_year = replace(end_year, ceo_overall_rating=None, ceo_final_comments=None)

    return replace(
        pdr,
        goals=tuple(_hide_goal(g) for g in pdr.goals),
        behaviors=tuple(_hide_behavior(b) for b in pdr.behaviors),
        mid_year_review=mid_year,
        end_year_review=end_year,
    )
