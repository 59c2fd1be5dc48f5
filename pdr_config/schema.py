"""
Configuration schema (``pdr_config.schema``).

Responsibility
--------------
Frozen dataclasses describing a workflow policy as authored in YAML:
which requirements each lifecycle action checks, the rating scale, the
organisation timezone used for financial years, and the direct mid-year
approval switch.

Architecture position
---------------------
**Config layer** -- pure data.  No dependency on the kernel.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RatingScaleDef:
    minimum: int = 1
    maximum: int = 5


@dataclass(frozen=True)
class ActionPolicy:
    """Requirement list for one action, keyed by the action's snake_case name."""

    action: str
    requirements: tuple[str, ...] = ()


@dataclass(frozen=True)
class WorkflowPolicy:
    """
    One complete workflow policy.

    ``actions`` lists only the actions whose requirements the policy
    overrides; actions not listed keep the built-in defaults.
    """

    config_id: str
    version: int
    description: str = ""
    timezone: str = "Australia/Adelaide"
    rating_scale: RatingScaleDef = field(default_factory=RatingScaleDef)
    allow_direct_mid_year_approval: bool = True
    direct_approval_summary: str = "Mid-year review approved directly by CEO"
    actions: tuple[ActionPolicy, ...] = ()
    checksum: str = ""

    def action_policy(self, action: str) -> ActionPolicy | None:
        return next((a for a in self.actions if a.action == action), None)
