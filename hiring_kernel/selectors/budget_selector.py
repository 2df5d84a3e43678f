"""
Module: hiring_kernel.selectors.budget_selector
Responsibility: Derived views of team-budget consumption.  The breakdown is
    recomputed from Joined requests on every read rather than kept in a
    ledger table, so it always agrees with the request store.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - A request's share is ``round(hired_value * debit_rate)``, the same
      figure ``BudgetLedger`` debited when the request joined.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from hiring_kernel.domain.budget import DEFAULT_DEBIT_RATE, hired_value, join_debit
from hiring_kernel.domain.money import ZERO
from hiring_kernel.domain.request_state import JoinStatus
from hiring_kernel.models.hiring_request import HiringRequestBase
from hiring_kernel.models.user import User
from hiring_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class BreakdownLine:
    request_id: UUID
    request_type: str
    name: str | None
    position_title: str
    hired_value: Decimal
    twenty_percent: Decimal
    exact_join_date: date | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "request_type": self.request_type,
            "name": self.name,
            "position_title": self.position_title,
            "hired_value": self.hired_value,
            "twenty_percent": self.twenty_percent,
            "exact_join_date": self.exact_join_date,
        }


@dataclass(frozen=True)
class BudgetBreakdown:
    manager_id: UUID | None
    candidates: tuple[BreakdownLine, ...] = field(default_factory=tuple)

    @property
    def total(self) -> Decimal:
        return sum((line.twenty_percent for line in self.candidates), ZERO)

    @property
    def total_hired_value(self) -> Decimal:
        return sum((line.hired_value for line in self.candidates), ZERO)

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidates": [line.to_dict() for line in self.candidates],
            "total": self.total,
            "totalHiredValue": self.total_hired_value,
        }


@dataclass(frozen=True)
class BusinessUnitCost:
    business_unit: str
    remaining_budget: Decimal
    consumed: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "business_unit": self.business_unit,
            "remaining_budget": self.remaining_budget,
            "consumed": self.consumed,
        }


class BudgetSelector(BaseSelector):
    """Budget consumption derived from Joined requests."""

    def __init__(
        self,
        session,
        debit_rate: Decimal = DEFAULT_DEBIT_RATE,
        currency_places: int = 2,
    ):
        super().__init__(session)
        self.debit_rate = debit_rate
        self.currency_places = currency_places

    def _line(self, record: HiringRequestBase) -> BreakdownLine:
        return BreakdownLine(
            request_id=record.id,
            request_type=record.request_type.value,
            name=record.display_candidate_name,
            position_title=record.display_title,
            hired_value=hired_value(record.exact_salary, record.ctc_offered),
            twenty_percent=join_debit(
                record.exact_salary, record.ctc_offered, self.debit_rate, self.currency_places
            ),
            exact_join_date=record.exact_join_date,
        )

    def _joined(self, *criteria) -> list[HiringRequestBase]:
        rows = list(self._requests(
            lambda m: m.join_confirmation_status == JoinStatus.JOINED.value,
            *criteria,
        ))
        rows.sort(
            key=lambda r: (r.join_confirmation_date or r.updated_at, r.updated_at),
            reverse=True,
        )
        return rows

    def get_breakdown(self, manager_id: UUID) -> BudgetBreakdown:
        """Per-candidate debits behind a manager's consumed budget."""
        self._user(manager_id)
        rows = self._joined(lambda m: m.hiring_manager_id == manager_id)
        return BudgetBreakdown(
            manager_id=manager_id,
            candidates=tuple(self._line(r) for r in rows),
        )

    def total_consumed(self, manager_id: UUID) -> Decimal:
        return self.get_breakdown(manager_id).total

    def existing_team(self, business_unit: str) -> BudgetBreakdown:
        """Joined requests in a unit with their hired value and share, newest join first."""
        rows = self._joined(lambda m: m.business_unit == business_unit)
        return BudgetBreakdown(manager_id=None, candidates=tuple(self._line(r) for r in rows))

    def business_unit_cost(self, business_unit: str) -> BusinessUnitCost:
        """Remaining budgets of the unit's users plus the total share consumed."""
        remaining = self.session.execute(
            select(User.team_cost).where(User.business_unit == business_unit)
        ).scalars()
        return BusinessUnitCost(
            business_unit=business_unit,
            remaining_budget=sum(remaining, ZERO),
            consumed=self.existing_team(business_unit).total,
        )
