"""
Module: pdr_kernel.models.user
Responsibility: ORM persistence for application users (employees and CEOs).
Architecture position: Kernel > Models.  May import from db/base.py only.

Authentication lives outside this system; rows here carry only what the
workflow needs: role, display name and whether the user is active.
"""

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pdr_kernel.db.base import TrackedBase


class User(TrackedBase):
    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
        Index("idx_user_role", "role"),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    # "EMPLOYEE" or "CEO"
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="EMPLOYEE")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.email

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"
