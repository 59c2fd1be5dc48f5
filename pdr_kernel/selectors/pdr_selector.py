"""
Module: pdr_kernel.selectors.pdr_selector
Responsibility: Read access to PDR aggregates, users and company values.
    Loads ORM rows and hands back frozen ``PDR`` snapshots.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Ownership-filtered not-found: an employee asking for another
      employee's PDR gets the same PDRNotFoundError as for a missing id,
      so existence is never leaked.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pdr_kernel.domain.aggregate import PDR, Actor
from pdr_kernel.domain.values import UserRole
from pdr_kernel.exceptions import PDRNotFoundError
from pdr_kernel.models.company_value import CompanyValue
from pdr_kernel.models.pdr import PDRModel
from pdr_kernel.models.user import User


class PDRSelector:
    """Queries over the ``pdrs`` aggregate and its reference data."""

    def __init__(self, session: Session):
        self.session = session

    def get_model(self, pdr_id: UUID) -> PDRModel | None:
        return self.session.get(PDRModel, pdr_id)

    def get(self, pdr_id: UUID) -> PDR | None:
        model = self.get_model(pdr_id)
        return model.to_dto() if model is not None else None

    def get_model_for_actor(self, pdr_id: UUID, actor: Actor) -> PDRModel:
        """
        Load the row if ``actor`` may see it.

        Raises:
            PDRNotFoundError: missing, or owned by someone else and the actor
                is an employee.
        """
        model = self.get_model(pdr_id)
        if model is None:
            raise PDRNotFoundError(str(pdr_id))
        if actor.role is UserRole.EMPLOYEE and model.user_id != actor.user_id:
            raise PDRNotFoundError(str(pdr_id))
        return model

    def list_for_actor(self, actor: Actor) -> list[PDR]:
        """Every PDR for a CEO; the actor's own PDRs for an employee."""
        stmt = select(PDRModel).order_by(PDRModel.fy_start_date.desc(), PDRModel.created_at)
        if actor.role is UserRole.EMPLOYEE:
            stmt = stmt.where(PDRModel.user_id == actor.user_id)
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def find_for_year(self, user_id: UUID, fy_label: str) -> PDR | None:
        model = self.session.scalars(
            select(PDRModel).where(
                PDRModel.user_id == user_id, PDRModel.fy_label == fy_label
            )
        ).first()
        return model.to_dto() if model is not None else None

    # -- reference data ------------------------------------------------------

    def get_user(self, user_id: UUID) -> User | None:
        return self.session.get(User, user_id)

    def active_user_ids(self, role: UserRole) -> list[UUID]:
        return list(
            self.session.scalars(
                select(User.id)
                .where(User.role == role.value, User.is_active.is_(True))
                .order_by(User.email)
            )
        )

    def get_company_value(self, company_value_id: UUID) -> CompanyValue | None:
        return self.session.get(CompanyValue, company_value_id)
