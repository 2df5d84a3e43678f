"""
Money helpers (``hiring_kernel.domain.money``).

Budgets, offers and salaries are Decimals end to end.  ``to_money`` is the
single conversion point for user-supplied amounts and ``round_money`` the
only sanctioned rounding for figures written to ``team_cost`` or shown to
users.  Floats are converted through their repr so that a budget of 0.1
never becomes 0.1000000000000000055511151231257827.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")

DEFAULT_ROUNDING = ROUND_HALF_UP


def to_money(value: object) -> Decimal:
    """
    Convert a user-supplied amount into a Decimal.

    Accepts Decimal, int, float and numeric strings (thousands separators
    allowed).

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip().replace(",", ""))
        except InvalidOperation as exc:
            raise ValueError(f"Not a monetary amount: {value!r}") from exc
    else:
        raise ValueError(f"Not a monetary amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = 2,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a monetary amount to ``decimal_places`` (half-up by default)."""
    quantum = Decimal(10) ** -decimal_places
    return value.quantize(quantum, rounding=rounding)
