"""Credit card strategy: authorizes with the acquirer and settles immediately."""
import re
from typing import Optional

import structlog

from charge_system.core.errors import InvalidPaymentError
from charge_system.core.repositories import PaymentArtifactRepository
from charge_system.core.strategies.base import Clock, coerce_metadata, utcnow
from charge_system.core.types import (
    ChargeStatus,
    CreditCardMetadata,
    PaymentData,
    PaymentMethod,
    PaymentResult,
)
from charge_system.integrations.acquirer import SimulatedAcquirer

logger = structlog.get_logger(__name__)

# Checked in order; the first match wins.
CARD_BRAND_PATTERNS = (
    ("visa", re.compile(r"^4")),
    ("mastercard", re.compile(r"^5[1-5]")),
    ("amex", re.compile(r"^3[47]")),
    (
        "elo",
        re.compile(
            r"^(4011|4312|4389|4514|4576|5041|5066|5090|6277|6362|6363|6504|6505|6516)"
        ),
    ),
)

MIN_INSTALLMENTS = 1
MAX_INSTALLMENTS = 12


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value)


def luhn_check(card_number: str) -> bool:
    """
    Validate a card number with the Luhn checksum.

    Non-digit characters are ignored; numbers must have 13 to 19 digits.
    """
    digits = digits_only(card_number)
    if len(digits) < 13 or len(digits) > 19:
        return False

    total = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def detect_card_brand(card_number: str) -> str:
    digits = digits_only(card_number)
    for brand, pattern in CARD_BRAND_PATTERNS:
        if pattern.match(digits):
            return brand
    return "unknown"


class CreditCardStrategy:
    """Card payment authorized through the (simulated) acquirer."""

    def __init__(
        self,
        artifacts: PaymentArtifactRepository,
        acquirer: SimulatedAcquirer,
        clock: Optional[Clock] = None,
    ):
        self.artifacts = artifacts
        self.acquirer = acquirer
        self.clock = clock or utcnow

    @property
    def method(self) -> PaymentMethod:
        return PaymentMethod.CREDIT_CARD

    def _is_expired(self, month: str, year: str) -> bool:
        """Expiry is valid through the end of its month."""
        try:
            expiry_month = int(month)
            expiry_year = int(year)
        except ValueError:
            return True

        if expiry_month < 1 or expiry_month > 12:
            return True
        if expiry_year < 100:
            expiry_year += 2000

        now = self.clock()
        return (expiry_year, expiry_month) < (now.year, now.month)

    async def validate(self, data: PaymentData) -> None:
        card = coerce_metadata(CreditCardMetadata, data.metadata, self.method)

        if not card.card_number:
            raise InvalidPaymentError("card_number is required")

        if not luhn_check(card.card_number):
            raise InvalidPaymentError("Invalid card number (Luhn check failed)")

        if not re.fullmatch(r"\d{3,4}", card.cvv or ""):
            raise InvalidPaymentError("CVV must be 3 or 4 digits")

        if self._is_expired(card.expiry_month, card.expiry_year):
            raise InvalidPaymentError("Card is expired or invalid expiry date")

        if card.installments < MIN_INSTALLMENTS or card.installments > MAX_INSTALLMENTS:
            raise InvalidPaymentError(
                f"Installments must be between {MIN_INSTALLMENTS} and {MAX_INSTALLMENTS}"
            )

    async def process(self, data: PaymentData) -> PaymentResult:
        await self.validate(data)

        card = coerce_metadata(CreditCardMetadata, data.metadata, self.method)
        card_number = digits_only(card.card_number)
        brand = detect_card_brand(card_number)

        response = await self.acquirer.authorize(
            charge_id=data.charge_id,
            card_number=card_number,
            amount=data.amount,
            currency=data.currency,
            installments=card.installments,
        )

        # Only non-sensitive card data is stored
        payment = await self.artifacts.create_credit_card_payment(
            charge_id=data.charge_id,
            card_last4=card_number[-4:],
            brand=brand,
            installments=card.installments,
            authorization_code=response.authorization_code,
            transaction_id=response.transaction_id,
        )

        status = ChargeStatus.PAID if response.approved else ChargeStatus.FAILED
        if not response.approved:
            logger.warning(
                "card_payment_declined",
                charge_id=str(data.charge_id),
                brand=brand,
                reason=response.decline_reason,
            )

        return PaymentResult(charge_id=data.charge_id, status=status, payment=payment)
