"""
Unit tests for money helpers.
"""
from decimal import Decimal

import pytest

from charge_system.core.money import from_minor_units, quantize_amount, to_minor_units
from charge_system.core.types import ChargeStatus, NewCharge, PaymentMethod


class TestMoney:
    """Test suite for Decimal <-> minor unit conversion."""

    @pytest.mark.unit
    def test_quantize_rounds_half_up(self) -> None:
        assert quantize_amount(Decimal("10.005")) == Decimal("10.01")
        assert quantize_amount(Decimal("10.004")) == Decimal("10.00")

    @pytest.mark.unit
    def test_quantize_accepts_int_and_str(self) -> None:
        assert quantize_amount(5) == Decimal("5.00")
        assert quantize_amount("0.1") == Decimal("0.10")

    @pytest.mark.unit
    def test_to_minor_units(self) -> None:
        assert to_minor_units(Decimal("150.50")) == 15050
        assert to_minor_units(Decimal("0.01")) == 1

    @pytest.mark.unit
    def test_from_minor_units(self) -> None:
        amount = from_minor_units(15050)

        assert amount == Decimal("150.50")
        assert str(amount) == "150.50"

    @pytest.mark.unit
    def test_new_charge_quantizes_amount(self) -> None:
        """NewCharge always carries a two-place amount."""
        import uuid

        charge = NewCharge(
            customer_id=uuid.uuid4(),
            amount=Decimal("99.999"),
            currency="BRL",
            payment_method=PaymentMethod.PIX,
        )

        assert charge.amount == Decimal("100.00")
        assert charge.status is ChargeStatus.PENDING
