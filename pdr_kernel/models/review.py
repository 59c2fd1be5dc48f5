"""
Module: pdr_kernel.models.review
Responsibility: ORM persistence for the mid-year and end-year review
    sub-records of a PDR.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one review of each kind per PDR (unique pdr_id).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pdr_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from pdr_kernel.domain.aggregate import EndYearReview, MidYearReview
    from pdr_kernel.models.pdr import PDRModel


class MidYearReviewModel(TrackedBase):
    __tablename__ = "mid_year_reviews"

    __table_args__ = (UniqueConstraint("pdr_id", name="uq_mid_year_review_pdr"),)

    pdr_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("pdrs.id", ondelete="CASCADE"), nullable=False
    )
    progress_summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    blockers_challenges: Mapped[str | None] = mapped_column(Text, nullable=True)
    support_needed: Mapped[str | None] = mapped_column(Text, nullable=True)
    employee_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    ceo_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    ceo_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    pdr: Mapped[PDRModel] = relationship("PDRModel", back_populates="mid_year_review")

    def to_dto(self) -> MidYearReview:
        from pdr_kernel.domain.aggregate import MidYearReview

        return MidYearReview(
            review_id=self.id,
            progress_summary=self.progress_summary,
            blockers_challenges=self.blockers_challenges,
            support_needed=self.support_needed,
            employee_comments=self.employee_comments,
            ceo_feedback=self.ceo_feedback,
            ceo_rating=self.ceo_rating,
            submitted_at=self.submitted_at,
        )


class EndYearReviewModel(TrackedBase):
    __tablename__ = "end_year_reviews"

    __table_args__ = (UniqueConstraint("pdr_id", name="uq_end_year_review_pdr"),)

    pdr_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("pdrs.id", ondelete="CASCADE"), nullable=False
    )
    achievements_summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    learnings_growth: Mapped[str | None] = mapped_column(Text, nullable=True)
    challenges_faced: Mapped[str | None] = mapped_column(Text, nullable=True)
    next_year_goals: Mapped[str | None] = mapped_column(Text, nullable=True)
    employee_overall_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ceo_overall_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ceo_final_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    pdr: Mapped[PDRModel] = relationship("PDRModel", back_populates="end_year_review")

    def to_dto(self) -> EndYearReview:
        from pdr_kernel.domain.aggregate import EndYearReview

        return EndYearReview(
            review_id=self.id,
            achievements_summary=self.achievements_summary,
            learnings_growth=self.learnings_growth,
            challenges_faced=self.challenges_faced,
            next_year_goals=self.next_year_goals,
            employee_overall_rating=self.employee_overall_rating,
            ceo_overall_rating=self.ceo_overall_rating,
            ceo_final_comments=self.ceo_final_comments,
            submitted_at=self.submitted_at,
        )
