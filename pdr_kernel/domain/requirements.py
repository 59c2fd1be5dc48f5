"""
Transition requirement checks (``pdr_kernel.domain.requirements``).

Responsibility
--------------
Named, pure checks over a *proposed* PDR snapshot (the loaded snapshot with
the action's input already applied).  Transition rows list requirement
names; ``validate_transition_requirements`` runs every listed check and
collects all violations so the caller can show a complete checklist.

Checks register themselves with ``@requirement("name")``.  The workflow
policy in ``pdr_config`` refers to them by the same names.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from pdr_kernel.domain.aggregate import PDR, Actor, has_text
from pdr_kernel.domain.dtos import ValidationError, ValidationResult
from pdr_kernel.domain.workflow import Transition


@dataclass(frozen=True)
class RatingScale:
    minimum: int = 1
    maximum: int = 5

    def __post_init__(self) -> None:
        if self.minimum > self.maximum:
            raise ValueError(
                f"Rating scale minimum {self.minimum} exceeds maximum {self.maximum}"
            )

    def contains(self, rating: int) -> bool:
        return self.minimum <= rating <= self.maximum

    @property
    def range_message(self) -> str:
        return f"Rating must be between {self.minimum} and {self.maximum}"


@dataclass(frozen=True)
class RequirementContext:
    pdr: PDR
    actor: Actor
    rating_scale: RatingScale = field(default_factory=RatingScale)


RequirementCheck = Callable[[RequirementContext], list[ValidationError]]

REQUIREMENTS: dict[str, RequirementCheck] = {}


def requirement(name: str) -> Callable[[RequirementCheck], RequirementCheck]:
    """Register a requirement check under ``name``."""

    def register(check: RequirementCheck) -> RequirementCheck:
        if name in REQUIREMENTS:
            raise ValueError(f"Requirement {name!r} registered twice")
        REQUIREMENTS[name] = check
        return check

    return register


def known_requirements() -> frozenset[str]:
    return frozenset(REQUIREMENTS)


def validate_transition_requirements(
    pdr: PDR,
    transition: Transition,
    actor: Actor,
    rating_scale: RatingScale | None = None,
) -> ValidationResult:
    """Run every requirement the transition declares against ``pdr``.

    Returns all violations, in requirement order.

    Raises:
        KeyError: the transition names an unregistered requirement.
    """
    if not transition.requirements:
        return ValidationResult.success()

    ctx = RequirementContext(pdr=pdr, actor=actor, rating_scale=rating_scale or RatingScale())
    errors: list[ValidationError] = []
    for name in transition.requirements:
        try:
            check = REQUIREMENTS[name]
        except KeyError:
            raise KeyError(f"Unknown requirement {name!r} on {transition.action.value}") from None
        errors.extend(check(ctx))
    return ValidationResult.collect(errors)


# =========================================================================
# Plan submission
# =========================================================================


@requirement("owner_match")
def _owner_match(ctx: RequirementContext) -> list[ValidationError]:
    if ctx.actor.owns(ctx.pdr):
        return []
    return [ValidationError("OWNER_MISMATCH", "You can only submit your own PDR", "user_id")]


@requirement("has_goals")
def _has_goals(ctx: RequirementContext) -> list[ValidationError]:
    if ctx.pdr.goals:
        return []
    return [
        ValidationError(
            "GOALS_REQUIRED",
            "At least one goal is required before submitting for review",
            "goals",
        )
    ]


@requirement("goal_fields")
def _goal_fields(ctx: RequirementContext) -> list[ValidationError]:
    return [
        ValidationError(
            "GOAL_TITLE_REQUIRED",
            f"Goal {index} must have a title",
            f"goals.{goal.goal_id}.title",
        )
        for index, goal in enumerate(ctx.pdr.goals, start=1)
        if not has_text(goal.title)
    ]


@requirement("has_behaviors")
def _has_behaviors(ctx: RequirementContext) -> list[ValidationError]:
    if ctx.pdr.behaviors:
        return []
    return [
        ValidationError(
            "BEHAVIORS_REQUIRED",
            "At least one behavior assessment is required before submitting for review",
            "behaviors",
        )
    ]


@requirement("behavior_fields")
def _behavior_fields(ctx: RequirementContext) -> list[ValidationError]:
    return [
        ValidationError(
            "BEHAVIOR_DESCRIPTION_REQUIRED",
            f"Behavior for '{behavior.label}' must have a description",
            f"behaviors.{behavior.behavior_id}.description",
        )
        for behavior in ctx.pdr.behaviors
        if not has_text(behavior.description)
    ]


@requirement("goal_weighting")
def _goal_weighting(ctx: RequirementContext) -> list[ValidationError]:
    weights = [g.weighting for g in ctx.pdr.goals]
    if not weights or any(w is None for w in weights):
        return []
    total = sum(weights)
    if total == 100:
        return []
    return [
        ValidationError(
            "GOAL_WEIGHTING_TOTAL",
            f"Goal weightings must total 100, got {total}",
            "goals",
            {"total": total},
        )
    ]


# =========================================================================
# CEO plan review
# =========================================================================


@requirement("ceo_reviewed_items")
def _ceo_reviewed_items(ctx: RequirementContext) -> list[ValidationError]:
    errors = [
        ValidationError(
            "GOAL_CEO_REVIEW_REQUIRED",
            f"Goal '{goal.title}' needs a CEO rating or comment",
            f"goals.{goal.goal_id}",
        )
        for goal in ctx.pdr.goals
        if not goal.ceo_reviewed
    ]
    errors.extend(
        ValidationError(
            "BEHAVIOR_CEO_REVIEW_REQUIRED",
            f"Behavior '{behavior.label}' needs a CEO rating or comment",
            f"behaviors.{behavior.behavior_id}",
        )
        for behavior in ctx.pdr.behaviors
        if not behavior.ceo_reviewed
    )
    return errors


# =========================================================================
# Mid-year
# =========================================================================


@requirement("mid_year_progress")
def _mid_year_progress(ctx: RequirementContext) -> list[ValidationError]:
    review = ctx.pdr.mid_year_review
    if review is None:
        return [ValidationError("MID_YEAR_REVIEW_REQUIRED", "Mid-year review is required", "mid_year_review")]
    if not has_text(review.progress_summary):
        return [
            ValidationError(
                "PROGRESS_SUMMARY_REQUIRED",
                "Progress summary is required",
                "mid_year_review.progress_summary",
            )
        ]
    return []


@requirement("mid_year_ceo_feedback")
def _mid_year_ceo_feedback(ctx: RequirementContext) -> list[ValidationError]:
    review = ctx.pdr.mid_year_review
    if review is not None and has_text(review.ceo_feedback):
        return []
    return [
        ValidationError(
            "CEO_FEEDBACK_REQUIRED",
            "CEO feedback is required",
            "mid_year_review.ceo_feedback",
        )
    ]


# =========================================================================
# End-year
# =========================================================================


@requirement("end_year_review")
def _end_year_review(ctx: RequirementContext) -> list[ValidationError]:
    review = ctx.pdr.end_year_review
    if review is None:
        return [ValidationError("END_YEAR_REVIEW_REQUIRED", "End-year review is required", "end_year_review")]
    if not has_text(review.achievements_summary):
        return [
            ValidationError(
                "ACHIEVEMENTS_SUMMARY_REQUIRED",
                "Achievements summary is required",
                "end_year_review.achievements_summary",
            )
        ]
    return []


@requirement("employee_item_ratings")
def _employee_item_ratings(ctx: RequirementContext) -> list[ValidationError]:
    errors = [
        ValidationError(
            "GOAL_EMPLOYEE_RATING_REQUIRED",
            f"Goal '{goal.title}' needs an employee rating",
            f"goals.{goal.goal_id}.employee_rating",
        )
        for goal in ctx.pdr.goals
        if goal.employee_rating is None
    ]
    errors.extend(
        ValidationError(
            "BEHAVIOR_EMPLOYEE_RATING_REQUIRED",
            f"Behavior '{behavior.label}' needs an employee rating",
            f"behaviors.{behavior.behavior_id}.employee_rating",
        )
        for behavior in ctx.pdr.behaviors
        if behavior.employee_rating is None
    )
    return errors


@requirement("ceo_item_ratings")
def _ceo_item_ratings(ctx: RequirementContext) -> list[ValidationError]:
    errors = [
        ValidationError(
            "GOAL_CEO_RATING_REQUIRED",
            f"Goal '{goal.title}' needs a CEO rating",
            f"goals.{goal.goal_id}.ceo_rating",
        )
        for goal in ctx.pdr.goals
        if goal.ceo_rating is None
    ]
    errors.extend(
        ValidationError(
            "BEHAVIOR_CEO_RATING_REQUIRED",
            f"Behavior '{behavior.label}' needs a CEO rating",
            f"behaviors.{behavior.behavior_id}.ceo_rating",
        )
        for behavior in ctx.pdr.behaviors
        if behavior.ceo_rating is None
    )
    return errors


@requirement("ceo_overall_rating")
def _ceo_overall_rating(ctx: RequirementContext) -> list[ValidationError]:
    review = ctx.pdr.end_year_review
    if review is not None and review.ceo_overall_rating is not None:
        return []
    return [
        ValidationError(
            "CEO_OVERALL_RATING_REQUIRED",
            "CEO overall rating is required",
            "end_year_review.ceo_overall_rating",
        )
    ]


# =========================================================================
# Rating scale
# =========================================================================


def _rated_fields(pdr: PDR) -> list[tuple[str, int | None]]:
    rated: list[tuple[str, int | None]] = []
    for goal in pdr.goals:
        rated.append((f"goals.{goal.goal_id}.employee_rating", goal.employee_rating))
        rated.append((f"goals.{goal.goal_id}.ceo_rating", goal.ceo_rating))
    for behavior in pdr.behaviors:
        rated.append((f"behaviors.{behavior.behavior_id}.employee_rating", behavior.employee_rating))
        rated.append((f"behaviors.{behavior.behavior_id}.ceo_rating", behavior.ceo_rating))
    if pdr.mid_year_review is not None:
        rated.append(("mid_year_review.ceo_rating", pdr.mid_year_review.ceo_rating))
    if pdr.end_year_review is not None:
        rated.append(
            ("end_year_review.employee_overall_rating", pdr.end_year_review.employee_overall_rating)
        )
        rated.append(("end_year_review.ceo_overall_rating", pdr.end_year_review.ceo_overall_rating))
    return rated


@requirement("rating_scale")
def _rating_scale(ctx: RequirementContext) -> list[ValidationError]:
    scale = ctx.rating_scale
    return [
        ValidationError(
            "RATING_OUT_OF_RANGE",
            scale.range_message,
            path,
            {"value": value},
        )
        for path, value in _rated_fields(ctx.pdr)
        if value is not None and not scale.contains(value)
    ]
