"""
pdr_services.pdr_service -- PDR creation, reads, and goal/behavior editing.

Responsibility:
    Creates the one PDR an employee holds per financial year, returns
    field-filtered views, and edits goals and behaviors.  Every mutation is
    gated by ``resolve_permissions``, the same resolver that decides what a
    reader is shown.

Architecture position:
    Services layer.  Reads through ``PDRSelector``, writes through
    ``PDRWriter``, records every change with ``AuditorService``.

Invariants enforced:
    - Plan fields (title, description, priority, ...) change only while the
      owner may modify the plan (CREATED and unlocked).
    - Employee progress fields change only when the employee may edit.
    - CEO fields change only when the CEO may edit.
    - Ratings lie within the configured scale.
    - At most one behavior per company value.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Iterable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from pdr_config.bridges import build_rating_scale, build_workflow
from pdr_config.schema import WorkflowPolicy
from pdr_kernel.domain.aggregate import PDR, Actor, Behavior, Goal, has_text
from pdr_kernel.domain.audit import PDRS_TABLE, audit_values, build_record_audit
from pdr_kernel.domain.clock import Clock, SystemClock
from pdr_kernel.domain.dtos import AuditInstruction
from pdr_kernel.domain.financial_year import DEFAULT_TIMEZONE, compute_financial_year
from pdr_kernel.domain.permissions import (
    LOCKED_REASON,
    STATUS_READ_ONLY_REASON,
    PDRPermissions,
    filter_visible_fields,
    permissions_for,
)
from pdr_kernel.domain.requirements import RatingScale
from pdr_kernel.domain.values import AuditAction, Priority, UserRole
from pdr_kernel.domain.workflow import PDR_WORKFLOW, Workflow
from pdr_kernel.exceptions import (
    AuthorizationError,
    BehaviorNotFoundError,
    CompanyValueNotFoundError,
    GoalNotFoundError,
    PDRAlreadyExistsError,
    PDRReadOnlyError,
    TransitionValidationError,
)
from pdr_kernel.logging_config import LogContext, get_logger
from pdr_kernel.models.pdr import PDRModel
from pdr_kernel.selectors.pdr_selector import PDRSelector
from pdr_kernel.services.auditor_service import AuditorService
from pdr_kernel.services.pdr_writer import PDRWriter

logger = get_logger("services.pdr")


class FieldGroup(str, Enum):
    PLAN = "plan"
    EMPLOYEE = "employee"
    CEO = "ceo"


GOAL_FIELDS: dict[str, FieldGroup] = {
    "title": FieldGroup.PLAN,
    "description": FieldGroup.PLAN,
    "target_outcome": FieldGroup.PLAN,
    "success_criteria": FieldGroup.PLAN,
    "priority": FieldGroup.PLAN,
    "weighting": FieldGroup.PLAN,
    "employee_progress": FieldGroup.EMPLOYEE,
    "employee_rating": FieldGroup.EMPLOYEE,
    "ceo_rating": FieldGroup.CEO,
    "ceo_comments": FieldGroup.CEO,
}

BEHAVIOR_FIELDS: dict[str, FieldGroup] = {
    "description": FieldGroup.PLAN,
    "examples": FieldGroup.PLAN,
    "employee_self_assessment": FieldGroup.EMPLOYEE,
    "employee_rating": FieldGroup.EMPLOYEE,
    "ceo_rating": FieldGroup.CEO,
    "ceo_comments": FieldGroup.CEO,
    "ceo_adjusted_initiative": FieldGroup.CEO,
}

_RATING_FIELDS = ("employee_rating", "ceo_rating")

# Which role may ever write each group; the other role gets a plain 403.
_GROUP_ROLES: dict[FieldGroup, UserRole] = {
    FieldGroup.PLAN: UserRole.EMPLOYEE,
    FieldGroup.EMPLOYEE: UserRole.EMPLOYEE,
    FieldGroup.CEO: UserRole.CEO,
}


@dataclass(frozen=True)
class PDRView:
    """A PDR as one reader may see it, with that reader's capabilities."""

    pdr: PDR
    permissions: PDRPermissions


def field_groups(fields: Iterable[str], catalogue: dict[str, FieldGroup]) -> set[FieldGroup]:
    """
    Raises:
        ValueError: a field is not editable through this service.
    """
    groups: set[FieldGroup] = set()
    for name in fields:
        try:
            groups.add(catalogue[name])
        except KeyError:
            raise ValueError(f"Field {name!r} cannot be edited") from None
    return groups


class PDRService:
    """PDR lifecycle CRUD outside the state machine's actions."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._selector = PDRSelector(session)
        self._writer = PDRWriter(session)
        self._auditor = AuditorService(session, self._clock)
        if policy is not None:
            self._workflow: Workflow = build_workflow(policy)
            self._rating_scale = build_rating_scale(policy)
            self._timezone = policy.timezone
        else:
            self._workflow = PDR_WORKFLOW
            self._rating_scale = RatingScale()
            self._timezone = DEFAULT_TIMEZONE

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def rating_scale(self) -> RatingScale:
        return self._rating_scale

    # -- permission plumbing -------------------------------------------------

    def load(self, pdr_id: UUID, actor: Actor) -> tuple[PDRModel, PDR, PDRPermissions]:
        model = self._selector.get_model_for_actor(pdr_id, actor)
        pdr = model.to_dto()
        permissions = permissions_for(pdr, actor.role, actor.owns(pdr), self._workflow)
        return model, pdr, permissions

    def require(
        self,
        pdr: PDR,
        actor: Actor,
        permissions: PDRPermissions,
        groups: Iterable[FieldGroup],
    ) -> None:
        """
        Raises:
            AuthorizationError: the actor's role never edits this group.
            PDRReadOnlyError: the PDR's status or lock forbids it right now.
        """
        allowed = {
            FieldGroup.PLAN: permissions.can_modify_plan,
            FieldGroup.EMPLOYEE: permissions.can_edit_employee_fields,
            FieldGroup.CEO: permissions.can_edit_ceo_fields,
        }
        for group in sorted(groups, key=lambda g: g.value):
            if allowed[group]:
                continue
            if _GROUP_ROLES[group] is not actor.role:
                raise AuthorizationError(
                    f"{actor.role.value} users cannot edit {group.value} fields"
                )
            reason = permissions.read_only_reason
            if reason is None:
                reason = LOCKED_REASON if pdr.is_locked else STATUS_READ_ONLY_REASON
            raise PDRReadOnlyError(str(pdr.pdr_id), reason)

    def _check_ratings(self, operation: str, values: dict[str, Any]) -> None:
        errors = [
            f"{name}: {self._rating_scale.range_message}"
            for name in _RATING_FIELDS
            if values.get(name) is not None and not self._rating_scale.contains(values[name])
        ]
        weighting = values.get("weighting")
        if weighting is not None and not 0 <= weighting <= 100:
            errors.append("weighting: Weighting must be between 0 and 100")
        if errors:
            raise TransitionValidationError(operation, errors)

    def audit(self, instruction: AuditInstruction) -> None:
        self._auditor.record(instruction)

    # -- PDR -------------------------------------------------------------------

    def create_pdr(self, actor: Actor, at: datetime | None = None) -> PDR:
        """
        Open the actor's PDR for the financial year containing ``at``.

        Raises:
            AuthorizationError: the actor is not an employee.
            PDRAlreadyExistsError: the actor already has a PDR for that year.
        """
        if actor.role is not UserRole.EMPLOYEE:
            raise AuthorizationError("Only employees can create a PDR")

        financial_year = compute_financial_year(at or self._clock.now(), self._timezone)
        with LogContext.bind_actor(actor, action="create_pdr"):
            if self._selector.find_for_year(actor.user_id, financial_year.label) is not None:
                raise PDRAlreadyExistsError(str(actor.user_id), financial_year.label)

            pdr = PDR.open(actor.user_id, financial_year, self._clock)
            self._writer.insert_pdr(pdr)
            self.audit(
                AuditInstruction(
                    table_name=PDRS_TABLE,
                    record_id=pdr.pdr_id,
                    action=AuditAction.INSERT,
                    actor_id=actor.user_id,
                    new_values=audit_values(
                        {
                            "user_id": pdr.user_id,
                            "fy_label": pdr.fy_label,
                            "fy_start_date": pdr.fy_start_date,
                            "fy_end_date": pdr.fy_end_date,
                            **pdr.root_values(("status", "current_step", "is_locked")),
                        }
                    ),
                )
            )
        return pdr

    def get_pdr(self, pdr_id: UUID, actor: Actor) -> PDRView:
        """
        Raises:
            PDRNotFoundError: missing, or another employee's PDR.
        """
        _, pdr, permissions = self.load(pdr_id, actor)
        return PDRView(pdr=filter_visible_fields(pdr, permissions), permissions=permissions)

    def list_pdrs(self, actor: Actor) -> list[PDRView]:
        views = []
        for pdr in self._selector.list_for_actor(actor):
            permissions = permissions_for(pdr, actor.role, actor.owns(pdr), self._workflow)
            views.append(
                PDRView(pdr=filter_visible_fields(pdr, permissions), permissions=permissions)
            )
        return views

    # -- goals -----------------------------------------------------------------

    def add_goal(
        self,
        pdr_id: UUID,
        actor: Actor,
        title: str,
        description: str | None = None,
        target_outcome: str | None = None,
        success_criteria: str | None = None,
        priority: Priority = Priority.MEDIUM,
        weighting: int | None = None,
    ) -> Goal:
        model, pdr, permissions = self.load(pdr_id, actor)
        self.require(pdr, actor, permissions, [FieldGroup.PLAN])
        if not has_text(title):
            raise TransitionValidationError("add_goal", ["Goal title is required"])
        self._check_ratings("add_goal", {"weighting": weighting})

        goal = Goal(
            goal_id=uuid4(),
            title=title.strip(),
            description=description,
            target_outcome=target_outcome,
            success_criteria=success_criteria,
            priority=Priority(priority),
            weighting=weighting,
        )
        self._writer.add_goal(model, goal, self._clock.now())
        self.audit(build_record_audit(AuditAction.INSERT, actor.user_id, after=goal))
        logger.info("goal_added", extra={"pdr_id": str(pdr_id), "goal_id": str(goal.goal_id)})
        return goal

    def update_goal(self, pdr_id: UUID, goal_id: UUID, actor: Actor, **changes: Any) -> Goal:
        """
        Change the named goal fields.

        Raises:
            GoalNotFoundError: the goal is not part of this PDR.
            PDRReadOnlyError / AuthorizationError: a field group is not editable.
            TransitionValidationError: a rating or weighting is out of range.
        """
        model, pdr, permissions = self.load(pdr_id, actor)
        before = pdr.goal(goal_id)
        if before is None:
            raise GoalNotFoundError(str(goal_id))
        self.require(pdr, actor, permissions, field_groups(changes, GOAL_FIELDS))
        self._check_ratings("update_goal", changes)
        if "title" in changes and not has_text(changes["title"]):
            raise TransitionValidationError("update_goal", ["Goal title is required"])
        if "priority" in changes:
            changes["priority"] = Priority(changes["priority"])

        after = replace(before, **changes)
        if after == before:
            return before
        self._writer.update_goal(model, after, self._clock.now())
        self.audit(build_record_audit(AuditAction.UPDATE, actor.user_id, before, after))
        return after

    def delete_goal(self, pdr_id: UUID, goal_id: UUID, actor: Actor) -> None:
        model, pdr, permissions = self.load(pdr_id, actor)
        goal = pdr.goal(goal_id)
        if goal is None:
            raise GoalNotFoundError(str(goal_id))
        self.require(pdr, actor, permissions, [FieldGroup.PLAN])
        self._writer.delete_goal(model, goal_id)
        self.audit(build_record_audit(AuditAction.DELETE, actor.user_id, before=goal))
        logger.info("goal_deleted", extra={"pdr_id": str(pdr_id), "goal_id": str(goal_id)})

    # -- behaviors -------------------------------------------------------------

    def add_behavior(
        self,
        pdr_id: UUID,
        actor: Actor,
        company_value_id: UUID,
        description: str,
        examples: str | None = None,
    ) -> Behavior:
        """
        Raises:
            CompanyValueNotFoundError: unknown or inactive company value.
            DuplicateBehaviorError: the PDR already assesses this value.
        """
        model, pdr, permissions = self.load(pdr_id, actor)
        self.require(pdr, actor, permissions, [FieldGroup.PLAN])
        if not has_text(description):
            raise TransitionValidationError(
                "add_behavior", ["Behavior description is required"]
            )
        value = self._selector.get_company_value(company_value_id)
        if value is None or not value.is_active:
            raise CompanyValueNotFoundError(str(company_value_id))

        behavior = Behavior(
            behavior_id=uuid4(),
            company_value_id=company_value_id,
            description=description.strip(),
            company_value_name=value.name,
            examples=examples,
        )
        # Raises DuplicateBehaviorError before touching the database
        pdr.with_behavior(behavior)
        self._writer.add_behavior(model, behavior, self._clock.now())
        self.audit(build_record_audit(AuditAction.INSERT, actor.user_id, after=behavior))
        logger.info(
            "behavior_added",
            extra={"pdr_id": str(pdr_id), "behavior_id": str(behavior.behavior_id)},
        )
        return behavior

    def update_behavior(
        self, pdr_id: UUID, behavior_id: UUID, actor: Actor, **changes: Any
    ) -> Behavior:
        model, pdr, permissions = self.load(pdr_id, actor)
        before = pdr.behavior(behavior_id)
        if before is None:
            raise BehaviorNotFoundError(str(behavior_id))
        self.require(pdr, actor, permissions, field_groups(changes, BEHAVIOR_FIELDS))
        self._check_ratings("update_behavior", changes)
        if "description" in changes and not has_text(changes["description"]):
            raise TransitionValidationError(
                "update_behavior", ["Behavior description is required"]
            )

        after = replace(before, **changes)
        if after == before:
            return before
        self._writer.update_behavior(model, after, self._clock.now())
        self.audit(build_record_audit(AuditAction.UPDATE, actor.user_id, before, after))
        return after

    def delete_behavior(self, pdr_id: UUID, behavior_id: UUID, actor: Actor) -> None:
        model, pdr, permissions = self.load(pdr_id, actor)
        behavior = pdr.behavior(behavior_id)
        if behavior is None:
            raise BehaviorNotFoundError(str(behavior_id))
        self.require(pdr, actor, permissions, [FieldGroup.PLAN])
        self._writer.delete_behavior(model, behavior_id)
        self.audit(build_record_audit(AuditAction.DELETE, actor.user_id, before=behavior))
