"""
Module: hiring_kernel.models.user
Responsibility: ORM persistence for users (BU Heads, HR Heads, Admins and
    HR Executives) and each manager's cached team budget.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - role is one of the canonical Role values (CHECK constraint).
    - team_cost never goes negative (CHECK constraint; the ledger clamps).
    - email is unique.
    - version_id detects lost updates on the budget columns.

Audit relevance:
    team_cost is a cached running balance.  team_budget_allocated records
    the allocation it is measured against, so the balance can always be
    recomputed from the joined requests (see services/budget_ledger.py).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from hiring_kernel.db.base import Base
from hiring_kernel.domain.request_state import Actor, Role

_ROLE_VALUES = ", ".join(f"'{r.value}'" for r in Role)


class User(Base):
    """A person who submits, approves or tracks hiring requests."""

    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(f"role IN ({_ROLE_VALUES})", name="ck_users_valid_role"),
        CheckConstraint("team_cost >= 0", name="ck_users_team_cost_non_negative"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    business_unit: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    team_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    team_budget_allocated: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role} bu={self.business_unit}>"

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    def to_actor(self) -> Actor:
        return Actor(user_id=self.id, role=self.role_enum, business_unit=self.business_unit)
