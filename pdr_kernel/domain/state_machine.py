"""
PDR state machine evaluator (``pdr_kernel.domain.state_machine``).

Responsibility
--------------
The single entry point a request handler calls to attempt a lifecycle
action.  Given a freshly loaded snapshot, the action, the acting user and
the action's input, it decides whether the action is allowed and answers
with a ``TransitionOutcome``: the delta to persist, the resulting snapshot,
and the notification and audit instructions the caller must forward.

Evaluation order:

1. Action resolution (no row)                        -> UNKNOWN_ACTION
2. Stale snapshot (caller's expected status differs)  -> STALE_PDR_SNAPSHOT
3. Role check (role not allowed, any status)         -> INSUFFICIENT_PERMISSIONS
4. Status check (wrong source status)                -> INVALID_STATE_TRANSITION
                                                        or INVALID_STATUS
5. Already-applied guard                              -> no-op, or ALREADY_CALIBRATED
6. Apply input to a proposed snapshot
7. Requirements on the proposed snapshot (all errors) -> VALIDATION_FAILED
8. Delta, notifications, audit

Architecture position
---------------------
**Kernel domain layer** -- pure decision logic.  ZERO I/O.  Time comes
from an injected ``Clock``; record ids from an injected factory.  Business
failures are returned, never raised.

Invariants enforced
-------------------
* Status changes only along ``Workflow`` rows.
* ``is_locked`` is set at SUBMITTED -> PLAN_LOCKED and never cleared.
* ``current_step`` never decreases.
* At most one mid-year and one end-year review per PDR: actions update the
  existing record instead of creating a second.
* An idempotent action whose effect is already present yields an empty
  delta and no notifications.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timezone
from typing import Any, Callable
from uuid import UUID, uuid4

from pdr_kernel.domain.aggregate import (
    PDR,
    Actor,
    EndYearReview,
    MidYearReview,
    PDRDelta,
    ReviewChange,
)
from pdr_kernel.domain.audit import build_transition_audit
from pdr_kernel.domain.clock import Clock
from pdr_kernel.domain.dtos import (
    ActionInput,
    EndYearSubmission,
    FinalReview,
    MeetingBooking,
    MidYearApproval,
    MidYearSubmission,
    TransitionOutcome,
    ValidationError,
    ValidationResult,
)
from pdr_kernel.domain.notifications import build_notification
from pdr_kernel.domain.requirements import RatingScale, validate_transition_requirements
from pdr_kernel.domain.values import AuditAction, PDRAction, PDRStatus, UserRole
from pdr_kernel.domain.workflow import (
    CALIBRATED,
    MEETING_BOOKED,
    PDR_WORKFLOW,
    AlreadyAppliedPolicy,
    Guard,
    Transition,
    Workflow,
)
from pdr_kernel.exceptions import (
    ActorNotPermittedError,
    AlreadyCalibratedError,
    ConflictError,
    InvalidStateTransitionError,
    InvalidStatusError,
    PDRKernelError,
    StaleSnapshotError,
    TransitionValidationError,
    UnknownActionError,
)

DIRECT_APPROVAL_SUMMARY = "Mid-year review approved directly by CEO"

MEETING_DATE_FORMAT = "%d/%m/%Y"

# ValidationError codes produced by validate_state_transition
ROLE_NOT_ALLOWED = "INSUFFICIENT_PERMISSIONS"
WRONG_STATUS = "INVALID_STATE_TRANSITION"
STATUS_GATED = "INVALID_STATUS"
WRONG_TARGET = "INVALID_TARGET_STATUS"
UNKNOWN_ACTION = "UNKNOWN_ACTION"


# =========================================================================
# State legality
# =========================================================================


def _resolve_action(action: PDRAction | str) -> PDRAction | None:
    if isinstance(action, PDRAction):
        return action
    try:
        return PDRAction.parse(action)
    except ValueError:
        return None


def validate_state_transition(
    from_status: PDRStatus,
    to_status: PDRStatus | None,
    action: PDRAction | str,
    role: UserRole,
    workflow: Workflow = PDR_WORKFLOW,
) -> ValidationResult:
    """Check the (status, action, role) triple against the transition table.

    ``to_status`` may be None for side-flag actions, or to skip the target
    check.  On rejection ``messages[0]`` is the caller-facing reason and
    ``errors[0].code`` tells role denials apart from status mismatches.
    """
    resolved = _resolve_action(action)
    transition = workflow.transition_for(resolved) if resolved is not None else None
    if transition is None:
        return ValidationResult.failure(
            ValidationError(UNKNOWN_ACTION, f"Unknown PDR action: {action}", "action")
        )

    if not transition.allows_role(role):
        return ValidationResult.failure(
            ValidationError(ROLE_NOT_ALLOWED, transition.denied_message, "role")
        )

    if not transition.applies_from(from_status):
        code = STATUS_GATED if transition.status_gated else WRONG_STATUS
        return ValidationResult.failure(
            ValidationError(
                code,
                _wrong_status_message(transition, from_status),
                "status",
                {"allowed": [s.to_label() for s in transition.from_states]},
            )
        )

    if to_status is not None and to_status != transition.to_state:
        return ValidationResult.failure(
            ValidationError(
                WRONG_TARGET,
                f"Cannot move from {from_status.to_label()} to {to_status.to_label()} "
                f"with {transition.action.wire_name}",
                "status",
            )
        )

    return ValidationResult.success()


def _wrong_status_message(transition: Transition, from_status: PDRStatus) -> str:
    allowed = " or ".join(s.to_label() for s in transition.from_states)
    if transition.status_gated:
        return f"PDR must be {allowed} to {transition.action.wire_name}"
    return (
        f"Cannot {transition.action.wire_name} when PDR status is "
        f"{from_status.to_label()} (expected {allowed})"
    )


# =========================================================================
# Already-applied guards
# =========================================================================

_GUARD_PREDICATES: dict[str, Callable[[PDR], bool]] = {
    MEETING_BOOKED.name: lambda pdr: pdr.meeting_booked,
    CALIBRATED.name: lambda pdr: pdr.is_calibrated,
}

_GUARD_ERRORS: dict[str, Callable[[PDR], ConflictError]] = {
    CALIBRATED.name: lambda pdr: AlreadyCalibratedError(str(pdr.pdr_id)),
}


def _already_applied(guard: Guard, pdr: PDR) -> bool:
    return _GUARD_PREDICATES[guard.name](pdr)


def _already_applied_error(guard: Guard, pdr: PDR) -> PDRKernelError:
    factory = _GUARD_ERRORS.get(guard.name)
    if factory is not None:
        return factory(pdr)
    return ConflictError(f"{guard.description} for PDR {pdr.pdr_id}")


# =========================================================================
# Evaluator
# =========================================================================


@dataclass(frozen=True)
class _Proposal:
    """Snapshot with the action input applied, plus review changes."""

    pdr: PDR
    mid_year_review: ReviewChange | None = None
    end_year_review: ReviewChange | None = None
    meeting_booked_at: datetime | None = None


class PDRStateMachine:
    """
    Evaluates lifecycle actions against one workflow definition.

    Collaborators are injected: the workflow (possibly rebuilt from
    configuration), the clock, the rating scale and the id factory used
    for review records the evaluator synthesizes.
    """

    def __init__(
        self,
        workflow: Workflow = PDR_WORKFLOW,
        clock: Clock | None = None,
        rating_scale: RatingScale | None = None,
        placeholder_summary: str = DIRECT_APPROVAL_SUMMARY,
        id_factory: Callable[[], UUID] = uuid4,
    ):
        if clock is None:
            raise ValueError("PDRStateMachine requires a clock")
        self._workflow = workflow
        self._clock = clock
        self._rating_scale = rating_scale or RatingScale()
        self._placeholder_summary = placeholder_summary
        self._id_factory = id_factory

    @property
    def workflow(self) -> Workflow:
        return self._workflow

    @property
    def rating_scale(self) -> RatingScale:
        return self._rating_scale

    def attempt_transition(
        self,
        pdr: PDR,
        action: PDRAction | str,
        actor: Actor,
        action_input: ActionInput | None = None,
        expected_status: PDRStatus | None = None,
    ) -> TransitionOutcome:
        resolved = _resolve_action(action)
        transition = (
            self._workflow.transition_for(resolved) if resolved is not None else None
        )
        if transition is None:
            return TransitionOutcome.rejected(action, UnknownActionError(str(action)))

        if expected_status is not None and pdr.status != expected_status:
            return TransitionOutcome.rejected(
                transition.action,
                StaleSnapshotError(
                    str(pdr.pdr_id),
                    expected_status.to_label(),
                    pdr.status.to_label(),
                ),
            )

        state_check = validate_state_transition(
            pdr.status, None, transition.action, actor.role, self._workflow
        )
        if not state_check:
            return TransitionOutcome.rejected(
                transition.action,
                self._state_error(state_check.errors[0], transition, pdr, actor),
            )

        guard = transition.already_applied
        if guard is not None and _already_applied(guard, pdr):
            if transition.on_already_applied is AlreadyAppliedPolicy.NO_OP:
                return TransitionOutcome.unchanged(transition.action, pdr)
            return TransitionOutcome.rejected(
                transition.action, _already_applied_error(guard, pdr)
            )

        now = self._clock.now()
        try:
            proposal = self._propose(pdr, transition, action_input, now)
        except TransitionValidationError as exc:
            return TransitionOutcome.rejected(transition.action, exc)

        requirements = validate_transition_requirements(
            proposal.pdr, transition, actor, self._rating_scale
        )
        if not requirements:
            return TransitionOutcome.rejected(
                transition.action,
                TransitionValidationError(
                    transition.action.value, requirements.messages
                ),
            )

        delta = self._build_delta(pdr, proposal, transition, actor, now)
        updated = pdr.apply(delta)
        notifications = (
            (build_notification(transition.notification, updated, actor),)
            if transition.notification is not None
            else ()
        )
        return TransitionOutcome.accepted(
            transition.action,
            updated,
            delta,
            notifications,
            build_transition_audit(delta, actor.user_id),
        )

    # -- rejection mapping -------------------------------------------------

    @staticmethod
    def _state_error(
        error: ValidationError, transition: Transition, pdr: PDR, actor: Actor
    ) -> InvalidStateTransitionError:
        args = (
            error.message,
            transition.action.value,
            pdr.status.to_label(),
            actor.role.value,
        )
        if error.code == ROLE_NOT_ALLOWED:
            return ActorNotPermittedError(*args)
        if error.code == STATUS_GATED:
            return InvalidStatusError(*args)
        return InvalidStateTransitionError(*args)

    # -- proposed snapshot ---------------------------------------------------

    def _propose(
        self,
        pdr: PDR,
        transition: Transition,
        action_input: ActionInput | None,
        now: datetime,
    ) -> _Proposal:
        """Apply ``action_input`` to ``pdr``.

        Raises:
            TransitionValidationError: the input does not fit the action.
        """
        if action_input is None:
            if transition.action is PDRAction.MARK_BOOKED:
                return _Proposal(pdr=pdr, meeting_booked_at=now)
            return _Proposal(pdr=pdr)

        match (transition.action, action_input):
            case (PDRAction.SUBMIT_MID_YEAR, MidYearSubmission()):
                change = self._submit_mid_year(pdr.mid_year_review, action_input, now)
                return _Proposal(
                    pdr=replace(pdr, mid_year_review=change.after),
                    mid_year_review=change,
                )
            case (PDRAction.APPROVE_MID_YEAR, MidYearApproval()):
                change = self._approve_mid_year(pdr.mid_year_review, action_input, now)
                return _Proposal(
                    pdr=replace(pdr, mid_year_review=change.after),
                    mid_year_review=change,
                )
            case (PDRAction.SUBMIT_END_YEAR, EndYearSubmission()):
                change = self._submit_end_year(pdr.end_year_review, action_input, now)
                return _Proposal(
                    pdr=replace(pdr, end_year_review=change.after),
                    end_year_review=change,
                )
            case (PDRAction.COMPLETE_REVIEW, FinalReview()):
                change = self._final_review(pdr.end_year_review, action_input)
                return _Proposal(
                    pdr=replace(pdr, end_year_review=change.after),
                    end_year_review=change,
                )
            case (PDRAction.MARK_BOOKED, MeetingBooking()):
                return _Proposal(
                    pdr=pdr,
                    meeting_booked_at=_meeting_datetime(action_input, transition, now),
                )
            case _:
                raise TransitionValidationError(
                    transition.action.value,
                    [
                        f"{transition.action.wire_name} does not accept "
                        f"{type(action_input).__name__}"
                    ],
                )

    def _submit_mid_year(
        self, existing: MidYearReview | None, data: MidYearSubmission, now: datetime
    ) -> ReviewChange:
        employee_fields: dict[str, Any] = {
            "progress_summary": data.progress_summary,
            "blockers_challenges": data.blockers_challenges,
            "support_needed": data.support_needed,
            "employee_comments": data.employee_comments,
            "submitted_at": now,
        }
        if existing is None:
            return ReviewChange(
                kind=AuditAction.INSERT,
                before=None,
                after=MidYearReview(review_id=self._id_factory(), **employee_fields),
            )
        return ReviewChange(
            kind=AuditAction.UPDATE,
            before=existing,
            after=replace(existing, **employee_fields),
        )

    def _approve_mid_year(
        self, existing: MidYearReview | None, data: MidYearApproval, now: datetime
    ) -> ReviewChange:
        if existing is None:
            # Direct approval: the employee never submitted a mid-year review
            return ReviewChange(
                kind=AuditAction.INSERT,
                before=None,
                after=MidYearReview(
                    review_id=self._id_factory(),
                    progress_summary=self._placeholder_summary,
                    ceo_feedback=data.ceo_feedback,
                    ceo_rating=data.ceo_rating,
                    submitted_at=now,
                ),
            )
        return ReviewChange(
            kind=AuditAction.UPDATE,
            before=existing,
            after=replace(
                existing, ceo_feedback=data.ceo_feedback, ceo_rating=data.ceo_rating
            ),
        )

    def _submit_end_year(
        self, existing: EndYearReview | None, data: EndYearSubmission, now: datetime
    ) -> ReviewChange:
        employee_fields: dict[str, Any] = {
            "achievements_summary": data.achievements_summary,
            "learnings_growth": data.learnings_growth,
            "challenges_faced": data.challenges_faced,
            "next_year_goals": data.next_year_goals,
            "employee_overall_rating": data.employee_overall_rating,
            "submitted_at": now,
        }
        if existing is None:
            return ReviewChange(
                kind=AuditAction.INSERT,
                before=None,
                after=EndYearReview(review_id=self._id_factory(), **employee_fields),
            )
        return ReviewChange(
            kind=AuditAction.UPDATE,
            before=existing,
            after=replace(existing, **employee_fields),
        )

    def _final_review(
        self, existing: EndYearReview | None, data: FinalReview
    ) -> ReviewChange:
        ceo_fields: dict[str, Any] = {
            "ceo_overall_rating": data.ceo_overall_rating,
            "ceo_final_comments": data.ceo_final_comments,
        }
        if existing is None:
            return ReviewChange(
                kind=AuditAction.INSERT,
                before=None,
                after=EndYearReview(review_id=self._id_factory(), **ceo_fields),
            )
        return ReviewChange(
            kind=AuditAction.UPDATE,
            before=existing,
            after=replace(existing, **ceo_fields),
        )

    # -- delta ---------------------------------------------------------------

    def _build_delta(
        self,
        pdr: PDR,
        proposal: _Proposal,
        transition: Transition,
        actor: Actor,
        now: datetime,
    ) -> PDRDelta:
        target: dict[str, Any] = {}
        if transition.to_state is not None:
            target["status"] = transition.to_state
            target["current_step"] = max(pdr.current_step, transition.to_state.step)

        match transition.action:
            case PDRAction.SUBMIT_FOR_REVIEW:
                target["submitted_at"] = now
            case PDRAction.SUBMIT_CEO_REVIEW:
                if not pdr.is_locked:
                    target["is_locked"] = True
                    target["locked_at"] = now
                    target["locked_by"] = actor.user_id
            case PDRAction.MARK_BOOKED:
                target["meeting_booked"] = True
                target["meeting_booked_at"] = proposal.meeting_booked_at or now
            case PDRAction.COMPLETE_REVIEW:
                target["completed_at"] = now
            case PDRAction.CLOSE_CALIBRATION:
                target["calibrated_at"] = now
                target["calibrated_by"] = actor.user_id

        changes = {k: v for k, v in target.items() if getattr(pdr, k) != v}
        return PDRDelta(
            pdr_id=pdr.pdr_id,
            changes=changes,
            previous={k: getattr(pdr, k) for k in changes},
            mid_year_review=proposal.mid_year_review,
            end_year_review=proposal.end_year_review,
        )


def _meeting_datetime(
    booking: MeetingBooking, transition: Transition, now: datetime
) -> datetime:
    """Meeting time from the booking input; falls back to ``now``.

    Raises:
        TransitionValidationError: ``dd/mm/yyyy`` string could not be parsed.
    """
    value = booking.meeting_date
    if value is None:
        return now
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    try:
        parsed = datetime.strptime(value.strip(), MEETING_DATE_FORMAT)
    except ValueError:
        raise TransitionValidationError(
            transition.action.value,
            ["Invalid meeting date format. Expected dd/mm/yyyy"],
        ) from None
    return parsed.replace(tzinfo=timezone.utc)


def attempt_transition(
    pdr: PDR,
    action: PDRAction | str,
    actor: Actor,
    action_input: ActionInput | None = None,
    *,
    clock: Clock,
    workflow: Workflow = PDR_WORKFLOW,
    rating_scale: RatingScale | None = None,
    expected_status: PDRStatus | None = None,
) -> TransitionOutcome:
    """Evaluate one action with a throwaway ``PDRStateMachine``."""
    machine = PDRStateMachine(workflow=workflow, clock=clock, rating_scale=rating_scale)
    return machine.attempt_transition(
        pdr, action, actor, action_input=action_input, expected_status=expected_status
    )
