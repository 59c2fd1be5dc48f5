"""
Policy validation (``pdr_config.validator``).

Checks a parsed ``WorkflowPolicy`` against what the kernel can actually
run: action names must be lifecycle actions, requirement names must be
registered checks, the rating scale must be well formed and the timezone
must exist.  Returns every problem found, not just the first.
"""

from __future__ import annotations

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pdr_config.schema import WorkflowPolicy
from pdr_kernel.domain.requirements import known_requirements
from pdr_kernel.domain.values import PDRAction


def validate_policy(policy: WorkflowPolicy) -> list[str]:
    errors: list[str] = []
    known = known_requirements()

    for action_policy in policy.actions:
        try:
            PDRAction.parse(action_policy.action)
        except ValueError:
            errors.append(f"Unknown action: {action_policy.action}")
            continue
        for name in action_policy.requirements:
            if name not in known:
                errors.append(
                    f"Unknown requirement {name!r} for action {action_policy.action}"
                )
        if len(set(action_policy.requirements)) != len(action_policy.requirements):
            errors.append(f"Duplicate requirement for action {action_policy.action}")

    scale = policy.rating_scale
    if scale.minimum > scale.maximum:
        errors.append(
            f"Rating scale minimum {scale.minimum} exceeds maximum {scale.maximum}"
        )

    try:
        ZoneInfo(policy.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"Unknown timezone: {policy.timezone}")

    if not policy.direct_approval_summary.strip():
        errors.append("direct_approval_summary must not be blank")

    return errors
