"""
Notification request builders.

Employee actions notify the CEO side (every active CEO, resolved by the
services layer); CEO actions notify the PDR's owner.  Messages name the
acting user.  Nothing here delivers anything.
"""

from __future__ import annotations

from typing import Callable

from pdr_kernel.domain.aggregate import PDR, Actor
from pdr_kernel.domain.dtos import NotificationRequest
from pdr_kernel.domain.values import NotificationType, UserRole

_Template = tuple[str, Callable[[str, PDR], str]]

_TEMPLATES: dict[NotificationType, _Template] = {
    NotificationType.PDR_SUBMITTED: (
        "PDR Submitted for Review",
        lambda name, pdr: f"{name} has submitted their {pdr.fy_label} PDR for review.",
    ),
    NotificationType.PDR_LOCKED: (
        "PDR Locked",
        lambda name, pdr: f"{name} has locked your review pending PDR meeting.",
    ),
    NotificationType.PDR_MEETING_BOOKED: (
        "PDR Meeting Booked",
        lambda name, pdr: f"{name} has booked your {pdr.fy_label} PDR meeting.",
    ),
    NotificationType.MID_YEAR_SUBMITTED: (
        "Mid-Year Review Submitted",
        lambda name, pdr: f"{name} has submitted their mid-year review.",
    ),
    NotificationType.MID_YEAR_APPROVED: (
        "Mid-Year Review Approved",
        lambda name, pdr: (
            f"{name} has approved your mid-year review. "
            "The end-year review is now available."
        ),
    ),
    NotificationType.END_YEAR_SUBMITTED: (
        "End-Year Review Submitted",
        lambda name, pdr: f"{name} has submitted their end-year review.",
    ),
    NotificationType.PDR_COMPLETED: (
        "PDR Completed",
        lambda name, pdr: f"{name} has completed your {pdr.fy_label} final review.",
    ),
    NotificationType.CALIBRATION_CLOSED: (
        "Calibration Closed",
        lambda name, pdr: f"{name} has closed calibration for your {pdr.fy_label} PDR.",
    ),
}


def _display_name(actor: Actor) -> str:
    if actor.display_name:
        return actor.display_name
    return "Your manager" if actor.role is UserRole.CEO else "An employee"


def build_notification(
    notification_type: NotificationType, pdr: PDR, actor: Actor
) -> NotificationRequest:
    """Build the request an accepted transition raises.

    Raises:
        ValueError: for types no transition emits (use ``build_reminder``).
    """
    try:
        title, render = _TEMPLATES[notification_type]
    except KeyError:
        raise ValueError(f"No transition template for {notification_type.value}") from None

    message = render(_display_name(actor), pdr)
    if actor.role is UserRole.CEO:
        return NotificationRequest(
            pdr_id=pdr.pdr_id,
            type=notification_type,
            title=title,
            message=message,
            recipient_id=pdr.user_id,
        )
    return NotificationRequest(
        pdr_id=pdr.pdr_id,
        type=notification_type,
        title=title,
        message=message,
        recipient_role=UserRole.CEO,
    )


def build_reminder(pdr: PDR) -> NotificationRequest:
    return NotificationRequest(
        pdr_id=pdr.pdr_id,
        type=NotificationType.PDR_REMINDER,
        title="PDR Reminder",
        message="Don't forget to complete your PDR before the deadline.",
        recipient_id=pdr.user_id,
    )
