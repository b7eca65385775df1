"""Tests for the pure payment-status derivation rules."""
from decimal import Decimal

import pytest

from partake.exceptions import ValidationError
from partake.models.attendee import PaymentStatus
from partake.services import payment_ledger


class TestDerivePaymentStatus:

    def test_nothing_paid_stays_unpaid(self):
        assert payment_ledger.derive_payment_status(Decimal("100"), Decimal("0")) == PaymentStatus.unpaid

    def test_partial(self):
        assert payment_ledger.derive_payment_status(Decimal("100"), Decimal("40")) == PaymentStatus.partial

    def test_exact_amount_is_paid(self):
        assert payment_ledger.derive_payment_status(Decimal("100"), Decimal("100")) == PaymentStatus.paid

    def test_overpayment_is_paid(self):
        assert payment_ledger.derive_payment_status(Decimal("100"), Decimal("120")) == PaymentStatus.paid

    def test_zero_cost_never_advances(self):
        """A zero-cost attendee keeps its current status even after paying."""
        assert payment_ledger.derive_payment_status(Decimal("0"), Decimal("25")) == PaymentStatus.unpaid

    def test_raised_amount_drops_paid_to_partial(self):
        status = payment_ledger.derive_payment_status(Decimal("150"), Decimal("100"), PaymentStatus.paid)
        assert status == PaymentStatus.partial


class TestAmounts:

    def test_remaining_never_negative(self):
        assert payment_ledger.remaining(Decimal("50"), Decimal("80")) == Decimal("0.00")
        assert payment_ledger.remaining(Decimal("50"), Decimal("20")) == Decimal("30.00")

    def test_add_payment_ignores_non_positive(self):
        assert payment_ledger.add_payment(Decimal("10"), Decimal("0")) == Decimal("10.00")
        assert payment_ledger.add_payment(Decimal("10"), Decimal("-5")) == Decimal("10.00")
        assert payment_ledger.add_payment(Decimal("10"), "2.50") == Decimal("12.50")

    def test_to_amount_normalizes_to_cents(self):
        assert payment_ledger.to_amount("19.9") == Decimal("19.90")
        assert payment_ledger.to_amount("1.500") == Decimal("1.50")
        assert payment_ledger.to_amount(7) == Decimal("7.00")
        assert payment_ledger.to_amount(None) == Decimal("0.00")

    @pytest.mark.parametrize("sub_cent", ["19.999", "0.004", Decimal("0.001")])
    def test_to_amount_rejects_sub_cent_values(self, sub_cent):
        with pytest.raises(ValidationError):
            payment_ledger.to_amount(sub_cent)

    @pytest.mark.parametrize("bad", ["abc", "NaN", "Infinity", "1E+40"])
    def test_to_amount_rejects_garbage(self, bad):
        with pytest.raises(ValidationError):
            payment_ledger.to_amount(bad)
