"""
Tests for the PDR aggregate.

Covers:
- Construction invariants (step bounds, one behavior per company value)
- Child collection helpers
- Delta application and the lock invariant
"""

from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from pdr_kernel.domain.aggregate import PDR, PDRDelta
from pdr_kernel.domain.clock import DeterministicClock
from pdr_kernel.domain.financial_year import FinancialYear
from pdr_kernel.domain.values import PDRStatus
from pdr_kernel.exceptions import DuplicateBehaviorError, LockInvariantError


class TestConstruction:
    def test_open_starts_unlocked_in_created(self, employee_id):
        clock = DeterministicClock(datetime(2025, 8, 1, tzinfo=timezone.utc))

        pdr = PDR.open(employee_id, FinancialYear.starting(2025), clock)

        assert pdr.status is PDRStatus.CREATED
        assert pdr.current_step == 1
        assert not pdr.is_locked
        assert pdr.fy_label == "2025-2026"
        assert pdr.created_at == clock.now()

    @pytest.mark.parametrize("step", [0, 6])
    def test_step_out_of_bounds(self, make_pdr, step):
        with pytest.raises(ValueError, match="current_step"):
            make_pdr(current_step=step)

    def test_one_behavior_per_company_value(self, make_pdr, make_behavior):
        first = make_behavior("Ownership")
        clash = replace(make_behavior("Ownership"), company_value_id=first.company_value_id)

        with pytest.raises(DuplicateBehaviorError):
            make_pdr(behaviors=(first, clash))

    def test_duplicate_goal_ids(self, make_pdr, make_goal):
        goal = make_goal()
        with pytest.raises(ValueError, match="duplicate goal ids"):
            make_pdr(goals=(goal, goal))


class TestChildren:
    def test_with_goal_adds_then_replaces(self, make_pdr, make_goal):
        pdr = make_pdr(goals=())
        goal = make_goal("Draft title")

        added = pdr.with_goal(goal)
        renamed = added.with_goal(replace(goal, title="Final title"))

        assert len(added.goals) == 1
        assert renamed.goal(goal.goal_id).title == "Final title"
        assert pdr.goals == ()

    def test_without_goal(self, make_pdr):
        pdr = make_pdr()
        assert pdr.without_goal(pdr.goals[0].goal_id).goals == ()

    def test_without_behavior(self, make_pdr):
        pdr = make_pdr()
        assert pdr.without_behavior(pdr.behaviors[0].behavior_id).behaviors == ()

    def test_with_behavior_rejects_second_for_same_value(self, make_pdr, make_behavior):
        pdr = make_pdr()
        clash = replace(make_behavior(), company_value_id=pdr.behaviors[0].company_value_id)

        with pytest.raises(DuplicateBehaviorError):
            pdr.with_behavior(clash)

    def test_lookup_missing_returns_none(self, make_pdr):
        pdr = make_pdr()
        assert pdr.goal(uuid4()) is None
        assert pdr.behavior(uuid4()) is None


class TestApply:
    def test_apply_changes_root_fields(self, make_pdr):
        pdr = make_pdr()
        delta = PDRDelta(
            pdr.pdr_id,
            changes={"status": PDRStatus.SUBMITTED, "current_step": 2},
            previous={"status": PDRStatus.CREATED, "current_step": 1},
        )

        after = pdr.apply(delta)

        assert after.status is PDRStatus.SUBMITTED
        assert after.current_step == 2
        assert delta.new_status is PDRStatus.SUBMITTED

    def test_apply_refuses_to_unlock(self, make_pdr):
        pdr = make_pdr(is_locked=True)
        delta = PDRDelta(pdr.pdr_id, changes={"is_locked": False})

        with pytest.raises(LockInvariantError):
            pdr.apply(delta)

    def test_apply_other_pdr(self, make_pdr):
        with pytest.raises(ValueError):
            make_pdr().apply(PDRDelta(uuid4()))

    def test_apply_unknown_field(self, make_pdr):
        pdr = make_pdr()
        with pytest.raises(ValueError, match="unknown PDR fields"):
            pdr.apply(PDRDelta(pdr.pdr_id, changes={"fy_label": "2030-2031"}))

    def test_empty_delta(self, make_pdr):
        pdr = make_pdr()
        delta = PDRDelta(pdr.pdr_id)

        assert delta.is_empty
        assert pdr.apply(delta) == pdr
