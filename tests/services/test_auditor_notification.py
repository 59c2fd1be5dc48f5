"""Tests for the audit writer and the notifications outbox."""

from uuid import uuid4

import pytest
from sqlalchemy import update

from pdr_kernel.domain.dtos import AuditInstruction, NotificationRequest
from pdr_kernel.domain.values import AuditAction, NotificationType, UserRole
from pdr_kernel.exceptions import NotificationNotFoundError
from pdr_kernel.services.auditor_service import AuditorService
from pdr_kernel.services.notification_service import NotificationService


@pytest.fixture
def auditor(session, deterministic_clock):
    return AuditorService(session, deterministic_clock)


@pytest.fixture
def outbox(session, deterministic_clock):
    return NotificationService(session, deterministic_clock)


class TestAuditorService:
    def test_record_and_read_back(self, auditor, employee):
        record_id = uuid4()
        instruction = AuditInstruction(
            table_name="goals",
            record_id=record_id,
            action=AuditAction.UPDATE,
            actor_id=employee.user_id,
            old_values={"title": "Old"},
            new_values={"title": "New"},
        )

        assert auditor.record(instruction)

        (row,) = auditor.get_trail("goals", record_id)
        assert row.user_id == employee.user_id
        assert row.new_values == {"title": "New"}

    def test_failed_write_is_logged_not_raised(self, auditor, employee, captured_logs):
        good = AuditInstruction("goals", uuid4(), AuditAction.INSERT, employee.user_id)
        # Not JSON serializable, so the insert fails inside its savepoint
        bad = AuditInstruction(
            "goals", uuid4(), AuditAction.INSERT, employee.user_id, new_values={"x": object()}
        )

        summary = auditor.record_all([bad, good])

        assert (summary.written, summary.failed) == (1, 1)
        assert not summary.complete
        assert auditor.get_trail("goals", good.record_id)
        assert any(r["message"] == "audit_write_failed" for r in captured_logs())


class TestNotificationService:
    def _request(self, pdr_id, **recipient):
        return NotificationRequest(
            pdr_id=pdr_id,
            type=NotificationType.PDR_SUBMITTED,
            title="PDR Submitted for Review",
            message="Jamie Lee has submitted their 2025-2026 PDR for review.",
            **recipient,
        )

    def test_role_fan_out_skips_inactive_users(
        self, outbox, draft_pdr, ceo_user, session, deterministic_clock
    ):
        from pdr_kernel.models.user import User

        now = deterministic_clock.now()
        session.add_all(
            [
                User(email="deputy@example.com", role="CEO", created_at=now, updated_at=now),
                User(
                    email="former@example.com",
                    role="CEO",
                    is_active=False,
                    created_at=now,
                    updated_at=now,
                ),
            ]
        )
        session.flush()

        rows = outbox.enqueue(self._request(draft_pdr.pdr_id, recipient_role=UserRole.CEO))

        assert len(rows) == 2
        assert ceo_user.id in {r.user_id for r in rows}

    def test_no_recipients_is_logged(self, outbox, draft_pdr, session, captured_logs):
        from pdr_kernel.models.user import User

        session.execute(update(User).where(User.role == "CEO").values(is_active=False))

        assert outbox.enqueue(self._request(draft_pdr.pdr_id, recipient_role=UserRole.CEO)) == []
        assert any(
            r["message"] == "notification_without_recipients" for r in captured_logs()
        )

    def test_mark_read_by_recipient_only(
        self, outbox, draft_pdr, employee, ceo, deterministic_clock
    ):
        (row,) = outbox.enqueue(self._request(draft_pdr.pdr_id, recipient_id=employee.user_id))

        with pytest.raises(NotificationNotFoundError):
            outbox.mark_read(row.id, ceo.user_id)

        deterministic_clock.advance(30)
        read = outbox.mark_read(row.id, employee.user_id)
        again = outbox.mark_read(row.id, employee.user_id)

        assert read.is_read
        assert again.read_at == deterministic_clock.now()
        assert outbox.unread_for(employee.user_id) == []

    def test_missing_notification(self, outbox, employee):
        with pytest.raises(NotificationNotFoundError):
            outbox.mark_read(uuid4(), employee.user_id)
