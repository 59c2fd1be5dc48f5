"""
pdr_services.workflow_executor -- Lifecycle action execution.

Responsibility:
    Runs one lifecycle action end to end: load the snapshot the actor may
    see, evaluate the action with the pure state machine, persist the
    delta, enqueue notifications and write the audit trail.  Thin
    coordinator -- every decision is made by ``PDRStateMachine``.

Architecture position:
    Services layer.  May import from pdr_config/ (policy, bridges) and
    pdr_kernel/ (domain, selectors, services, models).

Invariants enforced:
    - The evaluator sees a snapshot loaded inside the caller's transaction;
      the version counter on the PDR row rejects a concurrent writer.
    - Rejections are raised as the typed error the evaluator carried.
    - Idempotent no-ops write nothing and notify nobody.
    - Audit writes are best-effort and never undo the transition.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from pdr_config.bridges import build_state_machine
from pdr_config.schema import WorkflowPolicy
from pdr_kernel.domain.aggregate import PDR, Actor
from pdr_kernel.domain.clock import Clock, SystemClock
from pdr_kernel.domain.dtos import ActionInput, TransitionOutcome
from pdr_kernel.domain.state_machine import PDRStateMachine
from pdr_kernel.domain.values import PDRAction, PDRStatus
from pdr_kernel.logging_config import LogContext, get_logger
from pdr_kernel.models.notification import NotificationModel
from pdr_kernel.models.pdr import PDRModel
from pdr_kernel.selectors.pdr_selector import PDRSelector
from pdr_kernel.services.auditor_service import AuditorService
from pdr_kernel.services.notification_service import NotificationService
from pdr_kernel.services.pdr_writer import PDRWriter

logger = get_logger("services.workflow_executor")

# Trace message and outcome codes for structured logging
TRACE_TYPE_PDR_TRANSITION = "PDR_TRANSITION"
OUTCOME_ACCEPTED = "accepted"
OUTCOME_NO_OP = "no_op"
OUTCOME_REJECTED = "rejected"


def _emit_transition_trace(
    pdr: PDR,
    action: str,
    outcome: str,
    duration_ms: float,
    to_status: PDRStatus | None = None,
    reason: str | None = None,
    outcome_sink: Callable[[dict], None] | None = None,
) -> None:
    """Emit one structured record per attempted action."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_PDR_TRANSITION,
        "action": action,
        "pdr_id": str(pdr.pdr_id),
        "from_status": pdr.status.to_label(),
        "outcome": outcome,
        "duration_ms": round(duration_ms, 3),
    }
    if to_status is not None:
        record["to_status"] = to_status.to_label()
    if reason is not None:
        record["reason"] = reason
    record.update(LogContext.get_all())
    logger.info("pdr_transition", extra=record)
    if outcome_sink is not None:
        outcome_sink(record)


@dataclass(frozen=True)
class TransitionReceipt:
    """What the caller gets back from an executed action."""

    pdr: PDR
    notifications: tuple[NotificationModel, ...] = ()
    no_op: bool = False
    audit_complete: bool = True


class PDRWorkflowService:
    """
    Executes lifecycle actions against persisted PDRs.

    The state machine is built from ``policy`` when one is given, otherwise
    the built-in transition table is used.  Passing ``state_machine``
    directly overrides both.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
        state_machine: PDRStateMachine | None = None,
        outcome_sink: Callable[[dict], None] | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        if state_machine is None:
            if policy is not None:
                state_machine = build_state_machine(policy, self._clock)
            else:
                state_machine = PDRStateMachine(clock=self._clock)
        self._machine = state_machine
        self._selector = PDRSelector(session)
        self._writer = PDRWriter(session)
        self._notifications = NotificationService(session, self._clock)
        self._auditor = AuditorService(session, self._clock)
        self._outcome_sink = outcome_sink

    @property
    def state_machine(self) -> PDRStateMachine:
        return self._machine

    def _named(self, actor: Actor) -> Actor:
        if actor.display_name:
            return actor
        user = self._selector.get_user(actor.user_id)
        if user is None:
            return actor
        return replace(actor, display_name=user.display_name)

    def execute(
        self,
        pdr_id: UUID,
        action: PDRAction | str,
        actor: Actor,
        action_input: ActionInput | None = None,
        expected_status: PDRStatus | None = None,
    ) -> TransitionReceipt:
        """
        Attempt ``action`` on the PDR as ``actor``.

        Raises:
            PDRNotFoundError: missing, or not visible to the actor.
            PDRKernelError: whatever typed error the evaluator rejected with.
            OptimisticLockError: another writer updated the PDR first.
        """
        action_name = action.value if isinstance(action, PDRAction) else str(action)
        with LogContext.bind_actor(actor, pdr_id=pdr_id, action=action_name):
            t0 = time.perf_counter()
            model = self._selector.get_model_for_actor(pdr_id, actor)
            snapshot = model.to_dto()
            actor = self._named(actor)

            outcome = self._machine.attempt_transition(
                snapshot,
                action,
                actor,
                action_input=action_input,
                expected_status=expected_status,
            )

            if not outcome.success:
                error = outcome.error
                _emit_transition_trace(
                    snapshot,
                    action_name,
                    OUTCOME_REJECTED,
                    (time.perf_counter() - t0) * 1000,
                    reason=error.code if error is not None else None,
                    outcome_sink=self._outcome_sink,
                )
                logger.warning(
                    "transition_rejected",
                    extra={
                        "error_code": error.code if error is not None else None,
                        "error_message": str(error),
                    },
                )
                outcome.raise_for_error()

            if outcome.no_op:
                _emit_transition_trace(
                    snapshot,
                    action_name,
                    OUTCOME_NO_OP,
                    (time.perf_counter() - t0) * 1000,
                    outcome_sink=self._outcome_sink,
                )
                return TransitionReceipt(pdr=snapshot, no_op=True)

            return self._persist(model, snapshot, outcome, action_name, t0)

    def _persist(
        self,
        model: PDRModel,
        snapshot: PDR,
        outcome: TransitionOutcome,
        action_name: str,
        t0: float,
    ) -> TransitionReceipt:
        now = self._clock.now()
        self._writer.apply_delta(model, outcome.delta, now)
        rows = self._notifications.enqueue_all(outcome.notifications)
        audit = self._auditor.record_all(outcome.audit)

        to_status = outcome.delta.new_status
        _emit_transition_trace(
            snapshot,
            action_name,
            OUTCOME_ACCEPTED,
            (time.perf_counter() - t0) * 1000,
            to_status=to_status,
            outcome_sink=self._outcome_sink,
        )
        logger.info(
            "transition_accepted",
            extra={
                "from_status": snapshot.status.to_label(),
                "to_status": (to_status or snapshot.status).to_label(),
                "notification_count": len(rows),
                "audit_written": audit.written,
                "audit_failed": audit.failed,
            },
        )
        return TransitionReceipt(
            pdr=model.to_dto(),
            notifications=tuple(rows),
            audit_complete=audit.complete,
        )
