"""
NotificationService -- notifications outbox.

Responsibility:
    Stores ``NotificationRequest`` values as ``notifications`` rows,
    fanning role-addressed requests out to every active user with that
    role, and lets recipients mark them read.

Architecture position:
    Kernel > Services -- imperative shell.  Delivery (email, push) is an
    external concern that reads this outbox.

Invariants enforced:
    - Flush only, never commit.
    - A notification is marked read only by its recipient.
"""

from __future__ import annotations

from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pdr_kernel.domain.clock import Clock
from pdr_kernel.domain.dtos import NotificationRequest
from pdr_kernel.exceptions import NotificationNotFoundError
from pdr_kernel.logging_config import get_logger
from pdr_kernel.models.notification import NotificationModel
from pdr_kernel.selectors.pdr_selector import PDRSelector
from pdr_kernel.services.base import BaseService

logger = get_logger("services.notification")


class NotificationService(BaseService[NotificationModel]):
    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._selector = PDRSelector(session)

    def recipients(self, request: NotificationRequest) -> list[UUID]:
        if request.recipient_id is not None:
            return [request.recipient_id]
        return self._selector.active_user_ids(request.recipient_role)

    def enqueue(self, request: NotificationRequest) -> list[NotificationModel]:
        """Store one row per recipient.  An empty recipient list is logged."""
        now = self._clock.now()
        recipients = self.recipients(request)
        rows = [
            NotificationModel(
                user_id=user_id,
                pdr_id=request.pdr_id,
                type=request.type.value,
                title=request.title,
                message=request.message,
                created_at=now,
                updated_at=now,
            )
            for user_id in recipients
        ]
        self.session.add_all(rows)
        self.session.flush()

        if not rows:
            logger.warning(
                "notification_without_recipients",
                extra={
                    "notification_type": request.type.value,
                    "recipient_role": request.recipient_role,
                },
            )
        else:
            logger.info(
                "notification_enqueued",
                extra={
                    "notification_type": request.type.value,
                    "recipient_count": len(rows),
                },
            )
        return rows

    def enqueue_all(
        self, requests: Iterable[NotificationRequest]
    ) -> list[NotificationModel]:
        rows: list[NotificationModel] = []
        for request in requests:
            rows.extend(self.enqueue(request))
        return rows

    def unread_for(self, user_id: UUID) -> list[NotificationModel]:
        return list(
            self.session.scalars(
                select(NotificationModel)
                .where(
                    NotificationModel.user_id == user_id,
                    NotificationModel.is_read.is_(False),
                )
                .order_by(NotificationModel.created_at, NotificationModel.id)
            )
        )

    def mark_read(self, notification_id: UUID, user_id: UUID) -> NotificationModel:
        """
        Raises:
            NotificationNotFoundError: missing, or addressed to someone else.
        """
        row = self.session.get(NotificationModel, notification_id)
        if row is None or row.user_id != user_id:
            raise NotificationNotFoundError(str(notification_id))
        if not row.is_read:
            row.is_read = True
            row.read_at = self._clock.now()
            self.session.flush()
        return row
