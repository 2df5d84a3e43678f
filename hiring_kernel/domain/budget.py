"""
Team budget arithmetic (``hiring_kernel.domain.budget``).

Pure functions behind the budget ledger: what a join costs, how a debit
lands on a balance, and what the balance should be when recomputed from
the joined requests.

The cached ``team_cost`` and the recomputed balance agree because the
floor at zero composes: for non-negative debits,
``max(max(b - d1, 0) - d2, 0) == max(b - d1 - d2, 0)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from hiring_kernel.domain.money import ZERO, round_money

DEFAULT_DEBIT_RATE = Decimal("0.20")


def hired_value(exact_salary: Decimal | None, ctc_offered: Decimal | None) -> Decimal:
    """Final compensation, falling back to the offered CTC."""
    if exact_salary is not None and exact_salary > 0:
        return exact_salary
    return ctc_offered if ctc_offered is not None else ZERO


def join_debit(
    exact_salary: Decimal | None,
    ctc_offered: Decimal | None,
    rate: Decimal,
    places: int = 2,
) -> Decimal:
    return round_money(hired_value(exact_salary, ctc_offered) * rate, places)


@dataclass(frozen=True)
class DebitOutcome:
    previous_balance: Decimal
    debit: Decimal
    new_balance: Decimal

    @property
    def clamped(self) -> bool:
        return self.previous_balance - self.debit < 0

    @property
    def shortfall(self) -> Decimal:
        return max(self.debit - self.previous_balance, ZERO)


def apply_debit(balance: Decimal, debit: Decimal) -> DebitOutcome:
    """Subtract ``debit`` from ``balance``, flooring at zero."""
    if debit < 0:
        raise ValueError(f"Debit must not be negative: {debit}")
    return DebitOutcome(
        previous_balance=balance,
        debit=debit,
        new_balance=max(balance - debit, ZERO),
    )


def derived_balance(allocated: Decimal, consumed: Decimal) -> Decimal:
    return max(allocated - consumed, ZERO)
