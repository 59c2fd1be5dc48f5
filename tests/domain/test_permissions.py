"""Tests for the permission resolver and read-side field filtering."""

from dataclasses import replace
from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from pdr_kernel.domain.aggregate import EndYearReview, MidYearReview
from pdr_kernel.domain.permissions import (
    LOCKED_REASON,
    NO_ACCESS_REASON,
    NOT_SUBMITTED_REASON,
    STATUS_READ_ONLY_REASON,
    filter_visible_fields,
    permissions_for,
    resolve_permissions,
)
from pdr_kernel.domain.values import PDRAction, PDRStatus, UserRole
from pdr_kernel.exceptions import AuthorizationError


class TestResolvePermissions:
    @given(status=st.sampled_from(list(PDRStatus)), locked=st.booleans())
    def test_ceo_always_sees_everything(self, status, locked):
        perms = resolve_permissions(status, UserRole.CEO, is_owner=False, is_locked=locked)

        assert perms.can_view
        assert perms.can_view_employee_fields
        assert perms.can_view_ceo_fields
        assert not perms.can_edit_employee_fields
        assert not perms.can_modify_plan

    @given(status=st.sampled_from(list(PDRStatus)), locked=st.booleans())
    def test_non_owner_employee_has_nothing(self, status, locked):
        perms = resolve_permissions(status, UserRole.EMPLOYEE, is_owner=False, is_locked=locked)

        assert not perms.can_view
        assert not perms.can_edit
        assert perms.available_actions == ()
        assert perms.read_only_reason == NO_ACCESS_REASON

    @given(
        status=st.sampled_from(list(PDRStatus)),
        role=st.sampled_from(list(UserRole)),
        owner=st.booleans(),
        locked=st.booleans(),
    )
    def test_read_only_always_has_a_reason(self, status, role, owner, locked):
        perms = resolve_permissions(status, role, owner, locked)

        if not perms.can_edit:
            assert perms.read_only_reason

    def test_owner_draft_is_fully_editable(self):
        perms = resolve_permissions(PDRStatus.CREATED, UserRole.EMPLOYEE, True)

        assert perms.can_edit
        assert perms.can_modify_plan
        assert not perms.can_view_ceo_fields
        assert perms.available_actions == (PDRAction.SUBMIT_FOR_REVIEW,)
        assert perms.read_only_reason is None

    def test_locked_draft_is_read_only(self):
        perms = resolve_permissions(PDRStatus.CREATED, UserRole.EMPLOYEE, True, is_locked=True)

        assert not perms.can_edit
        assert not perms.can_modify_plan
        assert perms.read_only_reason == LOCKED_REASON

    def test_submitted_plan_is_read_only_for_employee(self):
        perms = resolve_permissions(PDRStatus.SUBMITTED, UserRole.EMPLOYEE, True)

        assert not perms.can_edit
        assert perms.read_only_reason == STATUS_READ_ONLY_REASON

    def test_locked_plan_allows_employee_progress_but_not_plan_changes(self):
        perms = resolve_permissions(PDRStatus.PLAN_LOCKED, UserRole.EMPLOYEE, True, is_locked=True)

        assert perms.can_edit_employee_fields
        assert not perms.can_modify_plan
        assert perms.can_view_ceo_fields
        assert perms.available_actions == (PDRAction.SUBMIT_MID_YEAR,)

    def test_ceo_cannot_edit_unsubmitted_pdr(self):
        perms = resolve_permissions(PDRStatus.CREATED, UserRole.CEO, False)

        assert not perms.can_edit_ceo_fields
        assert perms.read_only_reason == NOT_SUBMITTED_REASON
        assert perms.available_actions == (PDRAction.MARK_BOOKED,)

    def test_ceo_actions_on_locked_plan(self):
        perms = resolve_permissions(PDRStatus.PLAN_LOCKED, UserRole.CEO, False, is_locked=True)

        assert set(perms.available_actions) == {
            PDRAction.MARK_BOOKED,
            PDRAction.APPROVE_MID_YEAR,
        }

    def test_unknown_role_is_rejected(self):
        with pytest.raises(ValueError):
            resolve_permissions(PDRStatus.CREATED, "ADMIN", True)


class TestFilterVisibleFields:
    def _rated_pdr(self, make_pdr, status):
        pdr = make_pdr(status=status, current_step=2)
        return replace(
            pdr,
            goals=tuple(replace(g, ceo_rating=5, ceo_comments="Great") for g in pdr.goals),
            behaviors=tuple(
                replace(b, ceo_rating=4, ceo_adjusted_initiative="Lead the guild")
                for b in pdr.behaviors
            ),
            mid_year_review=MidYearReview(uuid4(), "Progress", ceo_feedback="Nice", ceo_rating=4),
            end_year_review=EndYearReview(uuid4(), "Done", ceo_overall_rating=5),
        )

    def test_employee_does_not_see_ceo_fields_before_plan_lock(self, make_pdr, employee):
        pdr = self._rated_pdr(make_pdr, PDRStatus.SUBMITTED)
        perms = permissions_for(pdr, employee.role, employee.owns(pdr))

        visible = filter_visible_fields(pdr, perms)

        assert all(g.ceo_rating is None and g.ceo_comments is None for g in visible.goals)
        assert all(b.ceo_adjusted_initiative is None for b in visible.behaviors)
        assert visible.mid_year_review.ceo_feedback is None
        assert visible.end_year_review.ceo_overall_rating is None
        assert visible.goals[0].title == pdr.goals[0].title

    def test_ceo_sees_unfiltered_snapshot(self, make_pdr, ceo):
        pdr = self._rated_pdr(make_pdr, PDRStatus.SUBMITTED)
        perms = permissions_for(pdr, ceo.role, ceo.owns(pdr))

        assert filter_visible_fields(pdr, perms) is pdr

    def test_non_owner_cannot_view(self, make_pdr, other_employee):
        pdr = make_pdr()
        perms = permissions_for(pdr, other_employee.role, other_employee.owns(pdr))

        with pytest.raises(AuthorizationError, match=NO_ACCESS_REASON):
            filter_visible_fields(pdr, perms)
