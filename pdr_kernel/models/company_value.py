"""
Module: pdr_kernel.models.company_value
Responsibility: ORM persistence for the organisation's company values.
    Each PDR behavior assesses exactly one value.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import Boolean, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pdr_kernel.db.base import TrackedBase


class CompanyValue(TrackedBase):
    __tablename__ = "company_values"

    __table_args__ = (UniqueConstraint("name", name="uq_company_value_name"),)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<CompanyValue {self.name}>"
