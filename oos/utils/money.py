"""Fixed-point money helpers.

All ledger amounts are ``Decimal`` quantized to two places with banker's
rounding (ROUND_HALF_EVEN).  Binary floats never reach the ledger: values
arriving as float are converted through ``str()`` first.
"""

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_money(value) -> Decimal:
    """Coerce *value* to a 2-place Decimal.

    Raises:
        ValueError: if the value is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_EVEN)


def percentage_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """Return ``amount * percentage / 100`` rounded half-even to cents."""
    return (amount * percentage / HUNDRED).quantize(CENT, rounding=ROUND_HALF_EVEN)


def from_minor_units(value) -> Decimal:
    """Convert a gateway amount in kobo/cents to major units."""
    try:
        minor = Decimal(str(int(value)))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Not a minor-unit amount: {value!r}") from exc
    return (minor / HUNDRED).quantize(CENT, rounding=ROUND_HALF_EVEN)
