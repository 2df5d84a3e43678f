"""
Service layer for User operations.

Manages BU Heads, HR Heads, Admins and HR Executives, and resolves the
``Actor`` a command runs as.  Returns ``UserInfo`` DTOs instead of ORM
entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from hiring_kernel.domain.payloads import parse_amount, require_text
from hiring_kernel.domain.request_state import Actor, Role
from hiring_kernel.exceptions import DuplicateUserError, UserNotFoundError
from hiring_kernel.logging_config import get_logger
from hiring_kernel.models.user import User
from hiring_kernel.services.base import BaseService

logger = get_logger("services.user")


@dataclass(frozen=True)
class UserInfo:
    """Immutable DTO for user data."""

    id: UUID
    name: str
    email: str
    role: Role
    business_unit: str | None
    team_cost: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "business_unit": self.business_unit,
            "team_cost": self.team_cost,
        }


class UserService(BaseService):
    """
    Service for managing users.

    Emails are unique (case-insensitive) and roles are folded to their
    canonical spelling on the way in, so ``"HR HEAD"`` is stored as
    ``"HR Head"``.
    """

    def _to_dto(self, user: User) -> UserInfo:
        return UserInfo(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role_enum,
            business_unit=user.business_unit,
            team_cost=user.team_cost,
        )

    def _get_by_id(self, user_id: UUID, for_update: bool = False) -> User:
        """Get user by ID, raising if not found."""
        if for_update:
            stmt = (
                select(User)
                .where(User.id == user_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            user = self.session.execute(stmt).scalar_one_or_none()
        else:
            user = self.session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def create_user(
        self,
        name: str,
        email: str,
        role: Role | str,
        business_unit: str | None = None,
        team_cost: Decimal | int | str | None = None,
    ) -> UserInfo:
        """
        Register a user.

        Raises:
            MissingFieldError: If name or email is blank.
            InvalidFieldValueError: If the role or team_cost is invalid.
            DuplicateUserError: If the email is already registered.
        """
        fields = {"name": name, "email": email}
        clean_name = require_text(fields, "name", "create user")
        clean_email = require_text(fields, "email", "create user").lower()
        role_enum = Role.parse(role)
        budget = parse_amount("team_cost", team_cost) or Decimal("0")

        existing = self.session.execute(
            select(User.id).where(User.email == clean_email)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateUserError(clean_email)

        now = self.clock.now()
        user = User(
            name=clean_name,
            email=clean_email,
            role=role_enum.value,
            business_unit=business_unit.strip() if business_unit else None,
            team_cost=budget,
            team_budget_allocated=budget,
            created_at=now,
            updated_at=now,
        )
        self.session.add(user)
        self.session.flush()

        logger.info(
            "user_created",
            extra={
                "user_id": str(user.id),
                "role": role_enum.value,
                "business_unit": user.business_unit,
            },
        )
        return self._to_dto(user)

    def get_user(self, user_id: UUID) -> UserInfo:
        """
        Get user by ID.

        Raises:
            UserNotFoundError: If the user doesn't exist.
        """
        return self._to_dto(self._get_by_id(user_id))

    def get_actor(self, user_id: UUID) -> Actor:
        """Resolve the acting user for a command."""
        return self._get_by_id(user_id).to_actor()

    def list_users(
        self, business_unit: str | None = None, role: Role | str | None = None
    ) -> list[UserInfo]:
        stmt = select(User).order_by(User.name)
        if business_unit is not None:
            stmt = stmt.where(User.business_unit == business_unit)
        if role is not None:
            stmt = stmt.where(User.role == Role.parse(role).value)
        return [self._to_dto(u) for u in self.session.execute(stmt).scalars()]
