"""
Module: pdr_kernel.models.notification
Responsibility: Notifications outbox.  One row per delivered
    ``NotificationRequest`` recipient; role-addressed requests are fanned
    out to one row per active user holding the role.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pdr_kernel.db.base import TrackedBase, UUIDString


class NotificationModel(TrackedBase):
    __tablename__ = "notifications"

    __table_args__ = (Index("idx_notification_user_read", "user_id", "is_read"),)

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False
    )
    pdr_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("pdrs.id", ondelete="CASCADE"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Notification {self.type} user={self.user_id} read={self.is_read}>"
