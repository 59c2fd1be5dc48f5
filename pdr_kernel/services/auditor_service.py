"""
AuditorService -- best-effort audit trail writer.

Responsibility:
    Persists ``AuditInstruction`` values produced by the domain layer as
    ``audit_logs`` rows, and reads the trail back for a record.

Architecture position:
    Kernel > Services -- imperative shell, called by the workflow
    coordinator and the PDR/rating services after their primary write.

Invariants enforced:
    - Best-effort side channel: every instruction is written inside its own
      savepoint.  A failed write rolls back only that savepoint and is
      logged as ``audit_write_failed``; it never raises and never rolls back
      the mutation being audited.

Audit relevance:
    This IS the audit writer.  Values arrive already JSON-friendly
    (``pdr_kernel.domain.audit``), so rows store them verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from pdr_kernel.domain.dtos import AuditInstruction
from pdr_kernel.logging_config import get_logger
from pdr_kernel.models.audit_log import AuditLog
from pdr_kernel.services.base import BaseService

logger = get_logger("services.auditor")


@dataclass(frozen=True)
class AuditWriteSummary:
    written: int
    failed: int

    @property
    def complete(self) -> bool:
        return self.failed == 0


class AuditorService(BaseService[AuditLog]):
    """Writes and reads the audit trail."""

    def record(self, instruction: AuditInstruction) -> bool:
        """Write one instruction.  Returns False (and logs) on failure."""
        now = self._clock.now()
        where = {
            "table_name": instruction.table_name,
            "record_id": str(instruction.record_id),
            "audit_action": instruction.action.value,
        }
        try:
            with self.savepoint():
                self.session.add(
                    AuditLog(
                        table_name=instruction.table_name,
                        record_id=instruction.record_id,
                        action=instruction.action.value,
                        old_values=instruction.old_values,
                        new_values=instruction.new_values,
                        user_id=instruction.actor_id,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except SQLAlchemyError:
            logger.warning("audit_write_failed", extra=where, exc_info=True)
            return False

        logger.debug("audit_written", extra=where)
        return True

    def record_all(self, instructions: Iterable[AuditInstruction]) -> AuditWriteSummary:
        written = failed = 0
        for instruction in instructions:
            if self.record(instruction):
                written += 1
            else:
                failed += 1
        return AuditWriteSummary(written=written, failed=failed)

    def get_trail(self, table_name: str, record_id: UUID) -> list[AuditLog]:
        """Audit rows for one record, oldest first."""
        return list(
            self.session.scalars(
                select(AuditLog)
                .where(AuditLog.table_name == table_name, AuditLog.record_id == record_id)
                .order_by(AuditLog.created_at, AuditLog.id)
            )
        )
