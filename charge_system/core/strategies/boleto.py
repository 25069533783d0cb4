"""Boleto strategy: issues a payable document settled on or before its due date."""
import secrets
from datetime import date
from typing import Optional

import structlog

from charge_system.config import Settings
from charge_system.core.errors import InvalidPaymentError
from charge_system.core.money import to_minor_units
from charge_system.core.repositories import PaymentArtifactRepository
from charge_system.core.strategies.base import Clock, coerce_metadata, utcnow
from charge_system.core.types import (
    BoletoMetadata,
    ChargeStatus,
    PaymentData,
    PaymentMethod,
    PaymentResult,
)

logger = structlog.get_logger(__name__)

# Due factors count days from this date
DUE_FACTOR_BASE_DATE = date(1997, 10, 7)
BOLETO_CURRENCY_CODE = "9"  # BRL
RANDOM_FIELD_LENGTH = 25


def calculate_due_factor(due_date: date) -> str:
    """Days between the base date and the due date, zero-padded to 4 digits."""
    return str((due_date - DUE_FACTOR_BASE_DATE).days).zfill(4)


class BoletoStrategy:
    """Payment by boleto bancario."""

    def __init__(
        self,
        artifacts: PaymentArtifactRepository,
        settings: Settings,
        clock: Optional[Clock] = None,
    ):
        self.artifacts = artifacts
        self.settings = settings
        self.clock = clock or utcnow

    @property
    def method(self) -> PaymentMethod:
        return PaymentMethod.BOLETO

    async def validate(self, data: PaymentData) -> None:
        metadata = coerce_metadata(BoletoMetadata, data.metadata, self.method)

        if metadata.due_date < self.clock().date():
            raise InvalidPaymentError("due_date cannot be in the past")

    async def process(self, data: PaymentData) -> PaymentResult:
        await self.validate(data)

        metadata = coerce_metadata(BoletoMetadata, data.metadata, self.method)
        bank_code = self.settings.boleto_bank_code

        payment = await self.artifacts.create_boleto_payment(
            charge_id=data.charge_id,
            barcode_number=self.build_barcode(data, metadata.due_date),
            due_date=metadata.due_date,
            document_url=f"{self.settings.boleto_document_base_url}/{data.charge_id}.pdf",
            bank_code=bank_code,
            bank_name=self.settings.boleto_bank_name,
        )

        logger.info(
            "boleto_issued",
            charge_id=str(data.charge_id),
            due_date=metadata.due_date.isoformat(),
            bank_code=bank_code,
        )

        return PaymentResult(
            charge_id=data.charge_id,
            status=ChargeStatus.PENDING,
            payment=payment,
        )

    def build_barcode(self, data: PaymentData, due_date: date) -> str:
        """
        Bank code + currency code + due factor + amount in cents (10 digits)
        + random free field.
        """
        amount = str(to_minor_units(data.amount)).zfill(10)
        free_field = str(secrets.randbelow(10**RANDOM_FIELD_LENGTH)).zfill(RANDOM_FIELD_LENGTH)
        return (
            f"{self.settings.boleto_bank_code}{BOLETO_CURRENCY_CODE}"
            f"{calculate_due_factor(due_date)}{amount}{free_field}"
        )
