"""
Config -> Kernel Bridges.

Functions that convert a ``WorkflowPolicy`` into kernel inputs.  These
live in pdr_config (the producer) because the kernel must NEVER import
pdr_config.

Usage:
    from pdr_config import get_active_config
    from pdr_config.bridges import build_state_machine

    policy = get_active_config()
    machine = build_state_machine(policy, clock)
"""

from __future__ import annotations

from pdr_config.schema import WorkflowPolicy
from pdr_kernel.domain.clock import Clock
from pdr_kernel.domain.requirements import RatingScale
from pdr_kernel.domain.state_machine import PDRStateMachine
from pdr_kernel.domain.values import PDRAction, PDRStatus
from pdr_kernel.domain.workflow import PDR_WORKFLOW, Workflow


def build_workflow(policy: WorkflowPolicy, base: Workflow = PDR_WORKFLOW) -> Workflow:
    """Transition table with the policy's requirement lists applied."""
    overrides = {
        PDRAction.parse(a.action): a.requirements for a in policy.actions
    }
    workflow = base.with_requirements(overrides)
    if not policy.allow_direct_mid_year_approval:
        workflow = workflow.with_from_states(
            PDRAction.APPROVE_MID_YEAR, (PDRStatus.MID_YEAR_SUBMITTED,)
        )
    return workflow


def build_rating_scale(policy: WorkflowPolicy) -> RatingScale:
    return RatingScale(
        minimum=policy.rating_scale.minimum,
        maximum=policy.rating_scale.maximum,
    )


def build_state_machine(policy: WorkflowPolicy, clock: Clock) -> PDRStateMachine:
    return PDRStateMachine(
        workflow=build_workflow(policy),
        clock=clock,
        rating_scale=build_rating_scale(policy),
        placeholder_summary=policy.direct_approval_summary,
    )
