"""
pdr_services.rating_service -- Batch rating saves.

Responsibility:
    Saves the employee's or the CEO's ratings and comments for many goals
    or behaviors in one call, reporting exactly which records were saved
    and which failed.

Architecture position:
    Services layer.  Shares the permission gating of ``PDRService``.

Invariants enforced:
    - Every id in a batch belongs to the PDR and appears once, or nothing
      is written (INVALID_RATING_IDS).
    - Every rating lies within the configured scale, or nothing is written.
    - Each record is saved in its own savepoint: one failure rolls back
      that record only, and the result lists it as failed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pdr_config.schema import WorkflowPolicy
from pdr_kernel.domain.aggregate import PDR, Actor, Behavior, Goal
from pdr_kernel.domain.audit import build_record_audit
from pdr_kernel.domain.clock import Clock
from pdr_kernel.domain.values import AuditAction, UserRole
from pdr_kernel.exceptions import (
    InvalidRatingIdsError,
    PartialUpdateFailureError,
    PDRKernelError,
    TransitionValidationError,
)
from pdr_kernel.logging_config import LogContext, get_logger
from pdr_kernel.models.pdr import PDRModel
from pdr_kernel.services.pdr_writer import PDRWriter
from pdr_services.pdr_service import FieldGroup, PDRService

logger = get_logger("services.rating")

GOAL_RECORDS = "goal"
BEHAVIOR_RECORDS = "behavior"


@dataclass(frozen=True)
class RatingUpdate:
    """Rating and comment for one goal or behavior.

    ``rating``/``comments`` land in the employee or CEO columns depending on
    who saves them.
    """

    record_id: UUID
    rating: int | None = None
    comments: str | None = None


@dataclass(frozen=True)
class BatchSaveResult:
    record_type: str
    succeeded: tuple[UUID, ...] = ()
    failed: dict[UUID, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failed

    def raise_for_failures(self) -> BatchSaveResult:
        if self.failed:
            raise PartialUpdateFailureError(
                self.record_type,
                [str(i) for i in self.succeeded],
                {str(k): v for k, v in self.failed.items()},
            )
        return self


def _changes(rating_field: str, comment_field: str, update: RatingUpdate) -> dict:
    # Omitted values leave the stored ones untouched
    changes = {rating_field: update.rating, comment_field: update.comments}
    return {k: v for k, v in changes.items() if v is not None}


def _goal_changes(role: UserRole, update: RatingUpdate) -> dict:
    if role is UserRole.CEO:
        return _changes("ceo_rating", "ceo_comments", update)
    return _changes("employee_rating", "employee_progress", update)


def _behavior_changes(role: UserRole, update: RatingUpdate) -> dict:
    if role is UserRole.CEO:
        return _changes("ceo_rating", "ceo_comments", update)
    return _changes("employee_rating", "employee_self_assessment", update)


class RatingService:
    """Saves ratings for many goals or behaviors of one PDR."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
    ):
        self._pdrs = PDRService(session, clock, policy)
        self._clock = self._pdrs.clock
        self._writer = PDRWriter(session)

    def _prepare(
        self,
        record_type: str,
        known_ids: Iterable[UUID],
        updates: Sequence[RatingUpdate],
    ) -> None:
        known = set(known_ids)
        invalid = [u.record_id for u in updates if u.record_id not in known]
        seen: set[UUID] = set()
        for u in updates:
            # Each update is applied to the pre-batch record
            if u.record_id in seen and u.record_id not in invalid:
                invalid.append(u.record_id)
            seen.add(u.record_id)
        if invalid:
            raise InvalidRatingIdsError(record_type, [str(i) for i in invalid])
        scale = self._pdrs.rating_scale
        errors = [
            f"{record_type} {u.record_id}: {scale.range_message}"
            for u in updates
            if u.rating is not None and not scale.contains(u.rating)
        ]
        if errors:
            raise TransitionValidationError(f"save_{record_type}_ratings", errors)

    def _load(self, pdr_id: UUID, actor: Actor) -> tuple[PDRModel, PDR]:
        model, pdr, permissions = self._pdrs.load(pdr_id, actor)
        group = FieldGroup.CEO if actor.role is UserRole.CEO else FieldGroup.EMPLOYEE
        self._pdrs.require(pdr, actor, permissions, [group])
        return model, pdr

    def save_goal_ratings(
        self, pdr_id: UUID, actor: Actor, updates: Sequence[RatingUpdate]
    ) -> BatchSaveResult:
        """
        Raises:
            InvalidRatingIdsError: an id is not a goal of this PDR.
            TransitionValidationError: a rating is outside the scale.
            PDRReadOnlyError: the actor may not edit ratings now.
        """
        with LogContext.bind_actor(actor, pdr_id=pdr_id):
            model, pdr = self._load(pdr_id, actor)
            self._prepare(GOAL_RECORDS, (g.goal_id for g in pdr.goals), updates)
            return self._save_each(
                model,
                actor,
                GOAL_RECORDS,
                [
                    (u.record_id, pdr.goal(u.record_id), _goal_changes(actor.role, u))
                    for u in updates
                ],
            )

    def save_behavior_ratings(
        self, pdr_id: UUID, actor: Actor, updates: Sequence[RatingUpdate]
    ) -> BatchSaveResult:
        with LogContext.bind_actor(actor, pdr_id=pdr_id):
            model, pdr = self._load(pdr_id, actor)
            self._prepare(
                BEHAVIOR_RECORDS, (b.behavior_id for b in pdr.behaviors), updates
            )
            return self._save_each(
                model,
                actor,
                BEHAVIOR_RECORDS,
                [
                    (u.record_id, pdr.behavior(u.record_id), _behavior_changes(actor.role, u))
                    for u in updates
                ],
            )

    def _save_each(
        self,
        model: PDRModel,
        actor: Actor,
        record_type: str,
        items: list[tuple[UUID, Goal | Behavior | None, dict]],
    ) -> BatchSaveResult:
        succeeded: list[UUID] = []
        failed: dict[UUID, str] = {}
        for record_id, before, changes in items:
            after = replace(before, **changes)
            try:
                with self._writer.savepoint():
                    self._write(model, after)
            except (SQLAlchemyError, PDRKernelError) as exc:
                failed[record_id] = str(exc)
                logger.warning(
                    "rating_save_failed",
                    extra={"record_type": record_type, "record_id": str(record_id)},
                    exc_info=True,
                )
                continue
            succeeded.append(record_id)
            self._pdrs.audit(
                build_record_audit(AuditAction.UPDATE, actor.user_id, before, after)
            )

        logger.info(
            "ratings_saved",
            extra={
                "record_type": record_type,
                "succeeded_count": len(succeeded),
                "failed_count": len(failed),
            },
        )
        return BatchSaveResult(record_type, tuple(succeeded), failed)

    def _write(self, model: PDRModel, record: Goal | Behavior) -> None:
        now = self._clock.now()
        if isinstance(record, Goal):
            self._writer.update_goal(model, record, now)
        else:
            self._writer.update_behavior(model, record, now)
