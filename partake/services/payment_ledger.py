"""Payment ledger — pure derivation of payment status from amounts.

Every code path that changes `payment_amount` or `amount_paid` on an
attendee recomputes the status through `derive_payment_status`; nothing
else assigns `payment_status`.
"""
from decimal import Decimal, InvalidOperation
from typing import Any

from partake.exceptions import ValidationError
from partake.models.attendee import PaymentStatus

ZERO = Decimal("0.00")
_CENTS = Decimal("0.01")


def to_amount(value: Any) -> Decimal:
    """Normalize a money value to a two-decimal Decimal.

    Values with sub-cent precision are rejected rather than rounded.
    """
    if value is None:
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    try:
        cents = amount.quantize(_CENTS)
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value!r}")
    if cents != amount:
        raise ValidationError(f"Amounts are limited to whole cents: {value!r}")
    return cents


def derive_payment_status(
    payment_amount: Decimal,
    amount_paid: Decimal,
    current: PaymentStatus = PaymentStatus.unpaid,
) -> PaymentStatus:
    """Status implied by what is owed and what has been paid.

    A zero `payment_amount` never advances the status, so a zero-cost
    attendee stays at `current` (UNPAID unless set otherwise).
    """
    payment_amount = to_amount(payment_amount)
    amount_paid = to_amount(amount_paid)
    if payment_amount <= ZERO:
        return current
    if amount_paid >= payment_amount:
        return PaymentStatus.paid
    if amount_paid > ZERO:
        return PaymentStatus.partial
    return current


def remaining(payment_amount: Decimal, amount_paid: Decimal) -> Decimal:
    """Amount still owed; never negative."""
    return max(to_amount(payment_amount) - to_amount(amount_paid), ZERO)


def add_payment(amount_paid: Decimal, amount: Any) -> Decimal:
    """New running total after a payment; non-positive amounts change nothing."""
    amount = to_amount(amount)
    if amount <= ZERO:
        return to_amount(amount_paid)
    return to_amount(amount_paid) + amount
