"""
BudgetLedger -- each manager's remaining team budget.

Responsibility:
    Debits the owning manager's ``team_cost`` when a request moves into
    Joined, lets an administrator re-base a manager's budget, and
    reconciles the cached balance against the balance recomputed from
    Joined requests.

Architecture position:
    Kernel > Services.  Called by ``WorkflowService.confirm_join`` inside
    the same transaction that records the join outcome.

Invariants enforced:
    - A debit is ``round(hired_value * debit_rate)`` where hired_value is
      the exact salary when positive, else the offered CTC.
    - ``team_cost`` never goes below zero.  A debit larger than the balance
      is clamped and logged as ``team_budget_clamped``, not raised.
    - The manager row is locked (``SELECT ... FOR UPDATE``) before it is
      read, so debits against one manager serialize.  Callers lock the
      request row first, then the manager row.
    - The cached balance always equals
      ``max(team_budget_allocated - consumed, 0)`` where consumed is the sum
      of debits over the manager's Joined requests.

Failure modes:
    - ``UserNotFoundError`` when the manager does not exist.
    - ``InvalidBudgetError`` when a budget write is negative, non-finite or
      not a number.
    - ``OptimisticLockError`` when a concurrent writer bumped the user row.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from hiring_kernel.domain.budget import (
    DEFAULT_DEBIT_RATE,
    DebitOutcome,
    apply_debit,
    derived_balance,
    join_debit,
)
from hiring_kernel.domain.clock import Clock
from hiring_kernel.domain.money import ZERO, round_money, to_money
from hiring_kernel.domain.request_state import JoinStatus
from hiring_kernel.exceptions import InvalidBudgetError
from hiring_kernel.logging_config import get_logger
from hiring_kernel.models.hiring_request import REQUEST_MODELS, HiringRequestBase
from hiring_kernel.models.user import User
from hiring_kernel.services.base import BaseService
from hiring_kernel.services.user_service import UserService

logger = get_logger("services.budget_ledger")


@dataclass(frozen=True)
class LedgerReconciliation:
    """Cached balance versus the balance recomputed from Joined requests."""

    manager_id: UUID
    cached_balance: Decimal
    allocated: Decimal
    consumed: Decimal
    derived_balance: Decimal

    @property
    def is_consistent(self) -> bool:
        return self.cached_balance == self.derived_balance

    @property
    def drift(self) -> Decimal:
        return self.cached_balance - self.derived_balance


class BudgetLedger(BaseService):
    """
    Team-budget debits and re-basing.

    Contract:
        ``on_join_confirmed`` must only be called for the first transition
        of a request into Joined.  The workflow engine decides that under
        the request row lock; this class does not re-check it.

    Non-goals:
        - No ledger table: consumption is always derived from Joined
          requests (see ``selectors/budget_selector.py``).
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        debit_rate: Decimal = DEFAULT_DEBIT_RATE,
        currency_places: int = 2,
    ):
        super().__init__(session, clock)
        self.debit_rate = debit_rate
        self.currency_places = currency_places
        self._users = UserService(session, self.clock)

    def debit_for(self, request: HiringRequestBase) -> Decimal:
        return join_debit(
            request.exact_salary, request.ctc_offered, self.debit_rate, self.currency_places
        )

    def on_join_confirmed(self, request: HiringRequestBase) -> DebitOutcome:
        """Debit the owning manager for a request that just joined."""
        manager = self._users._get_by_id(request.hiring_manager_id, for_update=True)
        debit = self.debit_for(request)
        outcome = apply_debit(manager.team_cost, debit)

        manager.team_cost = outcome.new_balance
        manager.updated_at = self.clock.now()
        self._flush("User", manager.id)

        extra = {
            "manager_id": str(manager.id),
            "request_id": str(request.id),
            "request_type": request.request_type.value,
            "debit": str(debit),
            "previous_balance": str(outcome.previous_balance),
            "new_balance": str(outcome.new_balance),
        }
        if outcome.clamped:
            logger.warning(
                "team_budget_clamped",
                extra={**extra, "shortfall": str(outcome.shortfall)},
            )
        else:
            logger.info("team_budget_debited", extra=extra)
        return outcome

    def _parse_budget(self, manager_id: UUID, value: Any) -> Decimal:
        if value is None or isinstance(value, bool):
            raise InvalidBudgetError(manager_id, value)
        try:
            amount = to_money(value)
        except ValueError as exc:
            raise InvalidBudgetError(manager_id, value) from exc
        if not amount.is_finite() or amount < 0:
            raise InvalidBudgetError(manager_id, value)
        return round_money(amount, self.currency_places)

    def consumed(self, manager_id: UUID) -> Decimal:
        """Sum of debits over every Joined request owned by the manager."""
        total = ZERO
        for model in REQUEST_MODELS.values():
            stmt = select(model).where(
                model.hiring_manager_id == manager_id,
                model.join_confirmation_status == JoinStatus.JOINED.value,
            )
            for request in self.session.execute(stmt).scalars():
                total += self.debit_for(request)
        return total

    def set_team_budget(self, manager_id: UUID, value: Any) -> Decimal:
        """
        Set the manager's remaining budget to ``value``.

        The allocation is re-based to ``value + consumed`` so reconciliation
        keeps holding after the write.
        """
        amount = self._parse_budget(manager_id, value)
        manager = self._users._get_by_id(manager_id, for_update=True)
        previous = manager.team_cost
        consumed = self.consumed(manager_id)

        manager.team_cost = amount
        manager.team_budget_allocated = amount + consumed
        manager.updated_at = self.clock.now()
        self._flush("User", manager.id)

        logger.info(
            "team_budget_set",
            extra={
                "manager_id": str(manager_id),
                "previous_balance": str(previous),
                "new_balance": str(amount),
                "allocated": str(manager.team_budget_allocated),
            },
        )
        return manager.team_cost

    def get_team_budget(self, manager_id: UUID) -> Decimal:
        return self._users._get_by_id(manager_id).team_cost

    def reconcile(self, manager_id: UUID) -> LedgerReconciliation:
        manager: User = self._users._get_by_id(manager_id)
        consumed = self.consumed(manager_id)
        result = LedgerReconciliation(
            manager_id=manager_id,
            cached_balance=manager.team_cost,
            allocated=manager.team_budget_allocated,
            consumed=consumed,
            derived_balance=derived_balance(manager.team_budget_allocated, consumed),
        )
        log = logger.info if result.is_consistent else logger.warning
        log(
            "team_budget_reconciled",
            extra={
                "manager_id": str(manager_id),
                "cached_balance": str(result.cached_balance),
                "derived_balance": str(result.derived_balance),
                "consistent": result.is_consistent,
            },
        )
        return result
