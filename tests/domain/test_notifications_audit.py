"""
Tests for notification and audit instruction builders.

Covers:
- Recipient routing by acting role
- Acting user named in messages
- Audit rows for transitions and child records
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from pdr_kernel.domain.aggregate import Actor, MidYearReview, PDRDelta, ReviewChange
from pdr_kernel.domain.audit import (
    GOALS_TABLE,
    MID_YEAR_REVIEWS_TABLE,
    PDRS_TABLE,
    build_record_audit,
    build_transition_audit,
    record_values,
)
from pdr_kernel.domain.dtos import NotificationRequest
from pdr_kernel.domain.notifications import build_notification, build_reminder
from pdr_kernel.domain.values import AuditAction, NotificationType, PDRStatus, UserRole


class TestNotifications:
    def test_employee_action_goes_to_ceo_role(self, make_pdr, employee):
        pdr = make_pdr()

        request = build_notification(NotificationType.PDR_SUBMITTED, pdr, employee)

        assert request.recipient_role is UserRole.CEO
        assert request.recipient_id is None
        assert request.message == "Jamie Lee has submitted their 2025-2026 PDR for review."

    def test_ceo_action_goes_to_owner(self, make_pdr, ceo):
        pdr = make_pdr()

        request = build_notification(NotificationType.PDR_LOCKED, pdr, ceo)

        assert request.recipient_id == pdr.user_id
        assert request.title == "PDR Locked"
        assert request.message.startswith("Alex Chief has locked")

    def test_unnamed_ceo_falls_back(self, make_pdr):
        anonymous = Actor(user_id=uuid4(), role=UserRole.CEO)

        request = build_notification(NotificationType.PDR_COMPLETED, make_pdr(), anonymous)

        assert request.message.startswith("Your manager")

    def test_reminder_is_not_a_transition_template(self, make_pdr, employee):
        pdr = make_pdr()
        with pytest.raises(ValueError):
            build_notification(NotificationType.PDR_REMINDER, pdr, employee)

        assert build_reminder(pdr).recipient_id == pdr.user_id

    def test_exactly_one_recipient(self):
        with pytest.raises(ValueError):
            NotificationRequest(uuid4(), NotificationType.PDR_SUBMITTED, "t", "m")


class TestAudit:
    def test_transition_audit_uses_storage_labels(self, make_pdr, employee):
        pdr = make_pdr()
        delta = PDRDelta(
            pdr.pdr_id,
            changes={"status": PDRStatus.SUBMITTED},
            previous={"status": PDRStatus.CREATED},
        )

        (row,) = build_transition_audit(delta, employee.user_id)

        assert row.table_name == PDRS_TABLE
        assert row.action is AuditAction.UPDATE
        assert row.old_values == {"status": "Created"}
        assert row.new_values == {"status": "SUBMITTED"}

    def test_review_creation_is_an_insert(self, make_pdr, employee):
        pdr = make_pdr()
        review = MidYearReview(
            uuid4(), "On track", submitted_at=datetime(2026, 1, 5, tzinfo=timezone.utc)
        )
        delta = PDRDelta(
            pdr.pdr_id,
            mid_year_review=ReviewChange(AuditAction.INSERT, None, review),
        )

        (row,) = build_transition_audit(delta, employee.user_id)

        assert row.table_name == MID_YEAR_REVIEWS_TABLE
        assert row.old_values is None
        assert row.new_values["submitted_at"] == "2026-01-05T00:00:00+00:00"

    def test_empty_delta_has_no_rows(self, make_pdr, employee):
        assert build_transition_audit(PDRDelta(make_pdr().pdr_id), employee.user_id) == ()

    def test_goal_delete(self, make_goal, employee):
        goal = make_goal()

        row = build_record_audit(AuditAction.DELETE, employee.user_id, before=goal)

        assert row.table_name == GOALS_TABLE
        assert row.record_id == goal.goal_id
        assert row.new_values is None
        assert row.old_values["priority"] == "MEDIUM"

    def test_record_audit_needs_a_record(self, employee):
        with pytest.raises(ValueError):
            build_record_audit(AuditAction.INSERT, employee.user_id)

    def test_record_values_rejects_non_records(self):
        with pytest.raises(TypeError):
            record_values({"title": "x"})
