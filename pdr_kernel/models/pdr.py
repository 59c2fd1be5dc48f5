"""
Module: pdr_kernel.models.pdr
Responsibility: ORM persistence for the PDR aggregate root and its owned
    goals and behaviors.
Architecture position: Kernel > Models.  May import from db/base.py only
    (domain types are imported lazily inside ``to_dto``).

Invariants enforced:
    - One PDR per (user, financial year): uq_pdr_user_fy.
    - One behavior per (PDR, company value): uq_behavior_pdr_value.
    - ``version`` is the SQLAlchemy version counter; every UPDATE checks and
      bumps it, so two writers working from the same snapshot cannot both
      succeed (StaleDataError, surfaced as OptimisticLockError).
    - ``status`` stores the storage label (``Created``, ``SUBMITTED``, ...).

Audit relevance:
    Column names match the keys of ``PDRDelta.changes`` so audit rows and
    persisted values line up one-to-one.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pdr_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from pdr_kernel.domain.aggregate import PDR, Behavior, Goal
    from pdr_kernel.models.company_value import CompanyValue
    from pdr_kernel.models.review import EndYearReviewModel, MidYearReviewModel


class PDRModel(TrackedBase):
    """
    One employee's review for one financial year.

    Guarantees:
        - goals and behaviors load in ``position`` order.
        - at most one mid-year and one end-year review (unique pdr_id on
          the review tables).
    """

    __tablename__ = "pdrs"

    __table_args__ = (
        UniqueConstraint("user_id", "fy_label", name="uq_pdr_user_fy"),
        Index("idx_pdr_status", "status"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False
    )
    fy_label: Mapped[str] = mapped_column(String(9), nullable=False)
    fy_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    fy_end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Created")
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    locked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    locked_by: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=True
    )

    meeting_booked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    meeting_booked_at: Mapped[datetime | None] = mapped_column(nullable=True)

    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    calibrated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    calibrated_by: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=True
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    goals: Mapped[list[GoalModel]] = relationship(
        "GoalModel",
        back_populates="pdr",
        cascade="all, delete-orphan",
        order_by="GoalModel.position",
        lazy="selectin",
    )
    behaviors: Mapped[list[BehaviorModel]] = relationship(
        "BehaviorModel",
        back_populates="pdr",
        cascade="all, delete-orphan",
        order_by="BehaviorModel.position",
        lazy="selectin",
    )
    mid_year_review: Mapped[MidYearReviewModel | None] = relationship(
        "MidYearReviewModel",
        back_populates="pdr",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin",
    )
    end_year_review: Mapped[EndYearReviewModel | None] = relationship(
        "EndYearReviewModel",
        back_populates="pdr",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<PDR {self.id} {self.fy_label} status={self.status}>"

    def to_dto(self) -> PDR:
        """Convert ORM model to the frozen domain aggregate."""
        from pdr_kernel.domain.aggregate import PDR
        from pdr_kernel.domain.values import PDRStatus

        return PDR(
            pdr_id=self.id,
            user_id=self.user_id,
            fy_label=self.fy_label,
            fy_start_date=self.fy_start_date,
            fy_end_date=self.fy_end_date,
            status=PDRStatus.from_label(self.status),
            current_step=self.current_step,
            is_locked=self.is_locked,
            locked_at=self.locked_at,
            locked_by=self.locked_by,
            meeting_booked=self.meeting_booked,
            meeting_booked_at=self.meeting_booked_at,
            submitted_at=self.submitted_at,
            completed_at=self.completed_at,
            calibrated_at=self.calibrated_at,
            calibrated_by=self.calibrated_by,
            goals=tuple(g.to_dto() for g in self.goals),
            behaviors=tuple(b.to_dto() for b in self.behaviors),
            mid_year_review=(
                self.mid_year_review.to_dto() if self.mid_year_review else None
            ),
            end_year_review=(
                self.end_year_review.to_dto() if self.end_year_review else None
            ),
            created_at=self.created_at,
            version=self.version,
        )


class GoalModel(TrackedBase):
    __tablename__ = "goals"

    __table_args__ = (Index("idx_goal_pdr", "pdr_id"),)

    pdr_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("pdrs.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_outcome: Mapped[str | None] = mapped_column(Text, nullable=True)
    success_criteria: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="MEDIUM")
    weighting: Mapped[int | None] = mapped_column(Integer, nullable=True)

    employee_progress: Mapped[str | None] = mapped_column(Text, nullable=True)
    employee_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ceo_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ceo_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    pdr: Mapped[PDRModel] = relationship("PDRModel", back_populates="goals")

    def __repr__(self) -> str:
        return f"<Goal {self.id} {self.title!r}>"

    def to_dto(self) -> Goal:
        from pdr_kernel.domain.aggregate import Goal
        from pdr_kernel.domain.values import Priority

        return Goal(
            goal_id=self.id,
            title=self.title,
            description=self.description,
            target_outcome=self.target_outcome,
            success_criteria=self.success_criteria,
            priority=Priority(self.priority),
            weighting=self.weighting,
            employee_progress=self.employee_progress,
            employee_rating=self.employee_rating,
            ceo_rating=self.ceo_rating,
            ceo_comments=self.ceo_comments,
        )


class BehaviorModel(TrackedBase):
    __tablename__ = "behaviors"

    __table_args__ = (
        UniqueConstraint("pdr_id", "company_value_id", name="uq_behavior_pdr_value"),
        Index("idx_behavior_pdr", "pdr_id"),
    )

    pdr_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("pdrs.id", ondelete="CASCADE"), nullable=False
    )
    company_value_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("company_values.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    description: Mapped[str] = mapped_column(Text, nullable=False)
    examples: Mapped[str | None] = mapped_column(Text, nullable=True)
    employee_self_assessment: Mapped[str | None] = mapped_column(Text, nullable=True)
    employee_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ceo_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ceo_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    ceo_adjusted_initiative: Mapped[str | None] = mapped_column(Text, nullable=True)

    pdr: Mapped[PDRModel] = relationship("PDRModel", back_populates="behaviors")
    company_value: Mapped[CompanyValue] = relationship("CompanyValue", lazy="joined")

    def __repr__(self) -> str:
        return f"<Behavior {self.id} value={self.company_value_id}>"

    def to_dto(self) -> Behavior:
        from pdr_kernel.domain.aggregate import Behavior

        return Behavior(
            behavior_id=self.id,
            company_value_id=self.company_value_id,
            description=self.description,
            company_value_name=self.company_value.name if self.company_value else "",
            examples=self.examples,
            employee_self_assessment=self.employee_self_assessment,
            employee_rating=self.employee_rating,
            ceo_rating=self.ceo_rating,
            ceo_comments=self.ceo_comments,
            ceo_adjusted_initiative=self.ceo_adjusted_initiative,
        )
