"""
Integration tests for RatingService batch saves.

Covers:
- Role-specific columns for ratings and comments
- All-or-nothing id and range validation
- Per-record savepoints and partial failure reporting
"""

from uuid import uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError

from pdr_kernel.domain.audit import GOALS_TABLE
from pdr_kernel.domain.values import PDRAction
from pdr_kernel.exceptions import (
    InvalidRatingIdsError,
    PartialUpdateFailureError,
    PDRReadOnlyError,
    TransitionValidationError,
)
from pdr_kernel.services.auditor_service import AuditorService
from pdr_kernel.services.pdr_writer import PDRWriter
from pdr_services.error_mapping import to_error_response
from pdr_services.rating_service import RatingUpdate


@pytest.fixture
def submitted_pdr(draft_pdr, workflow, employee):
    return workflow.execute(draft_pdr.pdr_id, PDRAction.SUBMIT_FOR_REVIEW, employee).pdr


class TestCeoRatings:
    def test_ratings_land_in_ceo_columns(self, submitted_pdr, rating_service, pdr_service, ceo):
        goal = submitted_pdr.goals[0]
        behavior = submitted_pdr.behaviors[0]

        goals = rating_service.save_goal_ratings(
            submitted_pdr.pdr_id, ceo, [RatingUpdate(goal.goal_id, 4, "Ambitious but fair")]
        )
        behaviors = rating_service.save_behavior_ratings(
            submitted_pdr.pdr_id, ceo, [RatingUpdate(behavior.behavior_id, 5)]
        )

        stored = pdr_service.get_pdr(submitted_pdr.pdr_id, ceo).pdr
        assert goals.complete and behaviors.complete
        assert goals.succeeded == (goal.goal_id,)
        assert stored.goals[0].ceo_rating == 4
        assert stored.goals[0].ceo_comments == "Ambitious but fair"
        assert stored.goals[0].employee_rating is None
        assert stored.behaviors[0].ceo_rating == 5

    def test_omitted_comment_keeps_stored_one(self, submitted_pdr, rating_service, pdr_service, ceo):
        goal_id = submitted_pdr.goals[0].goal_id
        rating_service.save_goal_ratings(
            submitted_pdr.pdr_id, ceo, [RatingUpdate(goal_id, 3, "Needs a metric")]
        )
        rating_service.save_goal_ratings(submitted_pdr.pdr_id, ceo, [RatingUpdate(goal_id, 4)])

        goal = pdr_service.get_pdr(submitted_pdr.pdr_id, ceo).pdr.goals[0]
        assert (goal.ceo_rating, goal.ceo_comments) == (4, "Needs a metric")

    def test_each_saved_record_is_audited(
        self, submitted_pdr, rating_service, ceo, session, deterministic_clock
    ):
        goal_id = submitted_pdr.goals[0].goal_id
        deterministic_clock.advance(60)

        rating_service.save_goal_ratings(submitted_pdr.pdr_id, ceo, [RatingUpdate(goal_id, 2)])

        trail = AuditorService(session).get_trail(GOALS_TABLE, goal_id)
        assert trail[-1].action == "UPDATE"
        assert trail[-1].new_values["ceo_rating"] == 2


class TestEmployeeRatings:
    def test_employee_columns(self, draft_pdr, rating_service, pdr_service, employee):
        goal_id = draft_pdr.goals[0].goal_id
        behavior_id = draft_pdr.behaviors[0].behavior_id

        rating_service.save_goal_ratings(
            draft_pdr.pdr_id, employee, [RatingUpdate(goal_id, 3, "Halfway there")]
        )
        rating_service.save_behavior_ratings(
            draft_pdr.pdr_id, employee, [RatingUpdate(behavior_id, 4, "Led two incidents")]
        )

        stored = pdr_service.get_pdr(draft_pdr.pdr_id, employee).pdr
        assert stored.goals[0].employee_rating == 3
        assert stored.goals[0].employee_progress == "Halfway there"
        assert stored.behaviors[0].employee_self_assessment == "Led two incidents"

    def test_employee_cannot_rate_submitted_plan(self, submitted_pdr, rating_service, employee):
        goal_id = submitted_pdr.goals[0].goal_id

        with pytest.raises(PDRReadOnlyError):
            rating_service.save_goal_ratings(
                submitted_pdr.pdr_id, employee, [RatingUpdate(goal_id, 3)]
            )


class TestBatchValidation:
    def test_foreign_ids_reject_the_whole_batch(
        self, submitted_pdr, rating_service, pdr_service, ceo
    ):
        goal_id = submitted_pdr.goals[0].goal_id
        stranger = uuid4()

        with pytest.raises(InvalidRatingIdsError) as exc_info:
            rating_service.save_goal_ratings(
                submitted_pdr.pdr_id,
                ceo,
                [RatingUpdate(goal_id, 4), RatingUpdate(stranger, 4)],
            )

        assert exc_info.value.invalid_ids == (str(stranger),)
        assert pdr_service.get_pdr(submitted_pdr.pdr_id, ceo).pdr.goals[0].ceo_rating is None

    def test_behavior_id_is_not_a_goal_id(self, submitted_pdr, rating_service, ceo):
        behavior_id = submitted_pdr.behaviors[0].behavior_id

        with pytest.raises(InvalidRatingIdsError, match="Invalid goal IDs"):
            rating_service.save_goal_ratings(
                submitted_pdr.pdr_id, ceo, [RatingUpdate(behavior_id, 4)]
            )

    def test_repeated_id_rejects_the_whole_batch(
        self, draft_pdr, rating_service, pdr_service, employee
    ):
        goal_id = draft_pdr.goals[0].goal_id

        with pytest.raises(InvalidRatingIdsError) as exc_info:
            rating_service.save_goal_ratings(
                draft_pdr.pdr_id,
                employee,
                [RatingUpdate(goal_id, rating=2), RatingUpdate(goal_id, comments="On track")],
            )

        assert exc_info.value.invalid_ids == (str(goal_id),)
        goal = pdr_service.get_pdr(draft_pdr.pdr_id, employee).pdr.goals[0]
        assert goal.employee_rating is None
        assert goal.employee_progress is None

    def test_out_of_range_rejects_the_whole_batch(self, submitted_pdr, rating_service, ceo):
        goal_id = submitted_pdr.goals[0].goal_id

        with pytest.raises(TransitionValidationError) as exc_info:
            rating_service.save_goal_ratings(
                submitted_pdr.pdr_id, ceo, [RatingUpdate(goal_id, 0)]
            )

        assert exc_info.value.errors == (f"goal {goal_id}: Rating must be between 1 and 5",)


class TestPartialFailure:
    def test_failed_record_is_reported_and_others_saved(
        self, draft_pdr, pdr_service, rating_service, workflow, employee, ceo, monkeypatch,
        deterministic_clock,
    ):
        second = pdr_service.add_goal(draft_pdr.pdr_id, employee, "Cut build times in half")
        workflow.execute(draft_pdr.pdr_id, PDRAction.SUBMIT_FOR_REVIEW, employee)
        first_id = draft_pdr.goals[0].goal_id
        original = PDRWriter.update_goal

        def flaky_update(self, model, goal, at):
            if goal.goal_id == second.goal_id:
                raise SQLAlchemyError("connection reset")
            return original(self, model, goal, at)

        monkeypatch.setattr(PDRWriter, "update_goal", flaky_update)

        result = rating_service.save_goal_ratings(
            draft_pdr.pdr_id,
            ceo,
            [RatingUpdate(first_id, 4), RatingUpdate(second.goal_id, 5)],
        )

        assert not result.complete
        assert result.succeeded == (first_id,)
        assert result.failed == {second.goal_id: "connection reset"}
        with pytest.raises(PartialUpdateFailureError) as exc_info:
            result.raise_for_failures()

        body = to_error_response(exc_info.value).to_dict(deterministic_clock)
        assert body["timestamp"] == deterministic_clock.now().isoformat()
        assert body["code"] == "PARTIAL_UPDATE_FAILURE"
        assert body["succeeded"] == [str(first_id)]
        assert body["failed"] == [str(second.goal_id)]
        stored = pdr_service.get_pdr(draft_pdr.pdr_id, ceo).pdr
        assert [g.ceo_rating for g in stored.goals] == [4, None]
