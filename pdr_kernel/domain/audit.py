"""
Audit instruction builders.

Turns a ``PDRDelta`` (or a child-record change) into ``AuditInstruction``
rows for the external audit sink.  Values are converted to JSON-friendly
primitives here so the sink can store them verbatim; statuses are written
with their storage labels.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pdr_kernel.domain.aggregate import (
    Behavior,
    EndYearReview,
    Goal,
    MidYearReview,
    PDRDelta,
    Review,
    ReviewChange,
)
from pdr_kernel.domain.dtos import AuditInstruction
from pdr_kernel.domain.values import AuditAction, PDRStatus

PDRS_TABLE = "pdrs"
GOALS_TABLE = "goals"
BEHAVIORS_TABLE = "behaviors"
MID_YEAR_REVIEWS_TABLE = "mid_year_reviews"
END_YEAR_REVIEWS_TABLE = "end_year_reviews"


def to_audit_value(value: Any) -> Any:
    if isinstance(value, PDRStatus):
        return value.to_label()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def audit_values(values: dict[str, Any]) -> dict[str, Any]:
    return {key: to_audit_value(value) for key, value in values.items()}


def record_values(record: Goal | Behavior | Review) -> dict[str, Any]:
    """Flat, JSON-friendly field map of a child record."""
    if not is_dataclass(record):
        raise TypeError(f"Not a domain record: {record!r}")
    return audit_values({f.name: getattr(record, f.name) for f in fields(record)})


def _record_id(record: Goal | Behavior | Review) -> UUID:
    if isinstance(record, Goal):
        return record.goal_id
    if isinstance(record, Behavior):
        return record.behavior_id
    return record.review_id


def _review_table(review: Review) -> str:
    if isinstance(review, MidYearReview):
        return MID_YEAR_REVIEWS_TABLE
    if isinstance(review, EndYearReview):
        return END_YEAR_REVIEWS_TABLE
    raise TypeError(f"Not a review record: {review!r}")


def _review_instruction(change: ReviewChange, actor_id: UUID) -> AuditInstruction:
    return AuditInstruction(
        table_name=_review_table(change.after),
        record_id=change.after.review_id,
        action=change.kind,
        actor_id=actor_id,
        old_values=record_values(change.before) if change.before is not None else None,
        new_values=record_values(change.after),
    )


def build_transition_audit(delta: PDRDelta, actor_id: UUID) -> tuple[AuditInstruction, ...]:
    """One UPDATE on ``pdrs`` plus one row per created or changed review."""
    instructions: list[AuditInstruction] = []
    if delta.changes:
        instructions.append(
            AuditInstruction(
                table_name=PDRS_TABLE,
                record_id=delta.pdr_id,
                action=AuditAction.UPDATE,
                actor_id=actor_id,
                old_values=audit_values(delta.previous),
                new_values=audit_values(delta.changes),
            )
        )
    for change in (delta.mid_year_review, delta.end_year_review):
        if change is not None:
            instructions.append(_review_instruction(change, actor_id))
    return tuple(instructions)


def build_record_audit(
    action: AuditAction,
    actor_id: UUID,
    before: Goal | Behavior | None = None,
    after: Goal | Behavior | None = None,
) -> AuditInstruction:
    """Audit row for a goal or behavior insert, update or delete."""
    record = after if after is not None else before
    if record is None:
        raise ValueError("build_record_audit needs a before or after record")
    table = GOALS_TABLE if isinstance(record, Goal) else BEHAVIORS_TABLE
    return AuditInstruction(
        table_name=table,
        record_id=_record_id(record),
        action=action,
        actor_id=actor_id,
        old_values=record_values(before) if before is not None else None,
        new_values=record_values(after) if after is not None else None,
    )
