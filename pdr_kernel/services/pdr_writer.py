"""
PDRWriter -- persists PDR snapshots, deltas and child records.

Responsibility:
    Translates domain values (``PDR``, ``PDRDelta``, ``Goal``, ``Behavior``)
    into ORM rows.  The only code that writes the ``pdrs``, ``goals``,
    ``behaviors`` and review tables.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the workflow
    coordinator and the PDR/rating services in ``pdr_services``.

Invariants enforced:
    - Flush only, never commit.
    - Statuses are written as storage labels.
    - A version mismatch on UPDATE surfaces as OptimisticLockError.
    - Unique-constraint races surface as PDRAlreadyExistsError or
      DuplicateBehaviorError; the failed insert is rolled back to a
      savepoint so the rest of the transaction survives.

Failure modes:
    - OptimisticLockError: another writer updated the PDR row first.
    - PDRAlreadyExistsError: (user, FY) already has a PDR.
    - DuplicateBehaviorError: (PDR, company value) already has a behavior.
"""

from __future__ import annotations

from dataclasses import fields
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from pdr_kernel.domain.aggregate import (
    PDR,
    Behavior,
    EndYearReview,
    Goal,
    MidYearReview,
    PDRDelta,
)
from pdr_kernel.domain.values import PDRStatus
from pdr_kernel.exceptions import (
    DuplicateBehaviorError,
    OptimisticLockError,
    PDRAlreadyExistsError,
)
from pdr_kernel.logging_config import get_logger
from pdr_kernel.models.pdr import BehaviorModel, GoalModel, PDRModel
from pdr_kernel.models.review import EndYearReviewModel, MidYearReviewModel
from pdr_kernel.services.base import BaseService

logger = get_logger("services.pdr_writer")


def _column_value(value: Any) -> Any:
    if isinstance(value, PDRStatus):
        return value.to_label()
    return value


def _goal_columns(goal: Goal) -> dict[str, Any]:
    return {
        "title": goal.title,
        "description": goal.description,
        "target_outcome": goal.target_outcome,
        "success_criteria": goal.success_criteria,
        "priority": goal.priority.value,
        "weighting": goal.weighting,
        "employee_progress": goal.employee_progress,
        "employee_rating": goal.employee_rating,
        "ceo_rating": goal.ceo_rating,
        "ceo_comments": goal.ceo_comments,
    }


def _behavior_columns(behavior: Behavior) -> dict[str, Any]:
    return {
        "company_value_id": behavior.company_value_id,
        "description": behavior.description,
        "examples": behavior.examples,
        "employee_self_assessment": behavior.employee_self_assessment,
        "employee_rating": behavior.employee_rating,
        "ceo_rating": behavior.ceo_rating,
        "ceo_comments": behavior.ceo_comments,
        "ceo_adjusted_initiative": behavior.ceo_adjusted_initiative,
    }


def _review_columns(review: MidYearReview | EndYearReview) -> dict[str, Any]:
    return {
        f.name: getattr(review, f.name) for f in fields(review) if f.name != "review_id"
    }


class PDRWriter(BaseService[PDRModel]):
    """Write side of the PDR aggregate."""

    def _flush(self, pdr_id: UUID) -> None:
        try:
            self.session.flush()
        except StaleDataError:
            logger.warning("pdr_version_conflict", extra={"pdr_id": str(pdr_id)})
            raise OptimisticLockError(str(pdr_id)) from None

    # -- root ----------------------------------------------------------------

    def insert_pdr(self, pdr: PDR) -> PDRModel:
        """
        Insert a freshly opened PDR.

        Raises:
            PDRAlreadyExistsError: the user already has a PDR for the year.
        """
        model = PDRModel(
            id=pdr.pdr_id,
            user_id=pdr.user_id,
            fy_label=pdr.fy_label,
            fy_start_date=pdr.fy_start_date,
            fy_end_date=pdr.fy_end_date,
            status=pdr.status.to_label(),
            current_step=pdr.current_step,
            is_locked=pdr.is_locked,
            meeting_booked=pdr.meeting_booked,
        )
        if pdr.created_at is not None:
            model.created_at = pdr.created_at
            model.updated_at = pdr.created_at

        try:
            with self.savepoint():
                self.session.add(model)
        except IntegrityError:
            raise PDRAlreadyExistsError(str(pdr.user_id), pdr.fy_label) from None

        logger.info(
            "pdr_created",
            extra={"pdr_id": str(pdr.pdr_id), "fy_label": pdr.fy_label},
        )
        return model

    def apply_delta(self, model: PDRModel, delta: PDRDelta, at: datetime) -> None:
        """
        Write an accepted transition's delta onto the loaded row.

        Raises:
            OptimisticLockError: the row's version moved since it was loaded.
        """
        if model.id != delta.pdr_id:
            raise ValueError(f"Delta for {delta.pdr_id} applied to row {model.id}")

        for name, value in delta.changes.items():
            setattr(model, name, _column_value(value))

        if delta.mid_year_review is not None:
            review = delta.mid_year_review.after
            if model.mid_year_review is None:
                model.mid_year_review = MidYearReviewModel(
                    id=review.review_id, created_at=at, updated_at=at, **_review_columns(review)
                )
            else:
                for name, value in _review_columns(review).items():
                    setattr(model.mid_year_review, name, value)

        if delta.end_year_review is not None:
            review = delta.end_year_review.after
            if model.end_year_review is None:
                model.end_year_review = EndYearReviewModel(
                    id=review.review_id, created_at=at, updated_at=at, **_review_columns(review)
                )
            else:
                for name, value in _review_columns(review).items():
                    setattr(model.end_year_review, name, value)

        model.updated_at = at
        self._flush(model.id)

    # -- goals ---------------------------------------------------------------

    def _goal_model(self, model: PDRModel, goal_id: UUID) -> GoalModel | None:
        return next((g for g in model.goals if g.id == goal_id), None)

    def add_goal(self, model: PDRModel, goal: Goal, at: datetime) -> GoalModel:
        position = max((g.position for g in model.goals), default=-1) + 1
        row = GoalModel(
            id=goal.goal_id,
            position=position,
            created_at=at,
            updated_at=at,
            **_goal_columns(goal),
        )
        model.goals.append(row)
        self._flush(model.id)
        return row

    def update_goal(self, model: PDRModel, goal: Goal, at: datetime) -> GoalModel:
        row = self._goal_model(model, goal.goal_id)
        if row is None:
            raise ValueError(f"Goal {goal.goal_id} is not part of PDR {model.id}")
        for name, value in _goal_columns(goal).items():
            setattr(row, name, value)
        row.updated_at = at
        self._flush(model.id)
        return row

    def delete_goal(self, model: PDRModel, goal_id: UUID) -> None:
        row = self._goal_model(model, goal_id)
        if row is not None:
            model.goals.remove(row)
            self._flush(model.id)

    # -- behaviors -----------------------------------------------------------

    def _behavior_model(self, model: PDRModel, behavior_id: UUID) -> BehaviorModel | None:
        return next((b for b in model.behaviors if b.id == behavior_id), None)

    def add_behavior(self, model: PDRModel, behavior: Behavior, at: datetime) -> BehaviorModel:
        """
        Raises:
            DuplicateBehaviorError: the PDR already assesses this company value.
        """
        position = max((b.position for b in model.behaviors), default=-1) + 1
        row = BehaviorModel(
            id=behavior.behavior_id,
            pdr_id=model.id,
            position=position,
            created_at=at,
            updated_at=at,
            **_behavior_columns(behavior),
        )
        try:
            with self.savepoint():
                self.session.add(row)
        except IntegrityError:
            raise DuplicateBehaviorError(
                str(model.id), str(behavior.company_value_id)
            ) from None
        self.session.refresh(model, attribute_names=["behaviors"])
        return row

    def update_behavior(
        self, model: PDRModel, behavior: Behavior, at: datetime
    ) -> BehaviorModel:
        row = self._behavior_model(model, behavior.behavior_id)
        if row is None:
            raise ValueError(f"Behavior {behavior.behavior_id} is not part of PDR {model.id}")
        for name, value in _behavior_columns(behavior).items():
            setattr(row, name, value)
        row.updated_at = at
        self._flush(model.id)
        return row

    def delete_behavior(self, model: PDRModel, behavior_id: UUID) -> None:
        row = self._behavior_model(model, behavior_id)
        if row is not None:
            model.behaviors.remove(row)
            self._flush(model.id)
