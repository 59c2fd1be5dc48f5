"""
Module: pdr_kernel.models.audit_log
Responsibility: Append-only audit rows, one per ``AuditInstruction``:
    table name, record id, action kind, old/new value snapshots and actor.
Architecture position: Kernel > Models.  May import from db/base.py only.

Audit relevance:
    Written best-effort by AuditorService; a failed audit write never
    rolls back the mutation it describes.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from pdr_kernel.db.base import TrackedBase, UUIDString


class AuditLog(TrackedBase):
    __tablename__ = "audit_logs"

    __table_args__ = (
        Index("idx_audit_record", "table_name", "record_id"),
        Index("idx_audit_user", "user_id"),
    )

    table_name: Mapped[str] = mapped_column(String(50), nullable=False)
    record_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    # INSERT / UPDATE / DELETE
    action: Mapped[str] = mapped_column(String(10), nullable=False)
    old_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    new_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.table_name}:{self.record_id}>"
