"""PIX strategy: issues an instant transfer code that settles asynchronously."""
from datetime import timedelta
from typing import Optional

import structlog

from charge_system.config import Settings
from charge_system.core.errors import InvalidPaymentError
from charge_system.core.money import quantize_amount
from charge_system.core.repositories import PaymentArtifactRepository
from charge_system.core.strategies.base import Clock, coerce_metadata, utcnow
from charge_system.core.types import (
    ChargeStatus,
    PaymentData,
    PaymentMethod,
    PaymentResult,
    PixMetadata,
)

logger = structlog.get_logger(__name__)

MERCHANT_ACCOUNT_INFO = "br.gov.bcb.pix"

# 1x1 transparent PNG used until a QR renderer is wired in
PLACEHOLDER_QR_CODE_IMAGE = (
    "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAA"
    "AAYAAjCB0C8AAAAASUVORK5CYII="
)


class PixStrategy:
    """Instant transfer via PIX code."""

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
        return PaymentMethod.PIX

    def _expires_in(self, metadata: PixMetadata) -> int:
        if metadata.expires_in_minutes is None:
            return self.settings.pix_default_expiry_minutes
        return metadata.expires_in_minutes

    async def validate(self, data: PaymentData) -> None:
        if data.amount <= 0:
            raise InvalidPaymentError("Amount must be greater than zero")

        metadata = coerce_metadata(PixMetadata, data.metadata, self.method)
        expires_in = self._expires_in(metadata)
        low = self.settings.pix_min_expiry_minutes
        high = self.settings.pix_max_expiry_minutes
        if expires_in < low or expires_in > high:
            raise InvalidPaymentError(
                f"expires_in_minutes must be between {low} and {high}"
            )

    async def process(self, data: PaymentData) -> PaymentResult:
        await self.validate(data)

        metadata = coerce_metadata(PixMetadata, data.metadata, self.method)
        expires_at = self.clock() + timedelta(minutes=self._expires_in(metadata))

        qr_code = self.build_pix_code(data)
        payment = await self.artifacts.create_pix_payment(
            charge_id=data.charge_id,
            qr_code=qr_code,
            qr_code_base64=PLACEHOLDER_QR_CODE_IMAGE,
            expires_at=expires_at,
        )

        logger.info(
            "pix_code_issued",
            charge_id=str(data.charge_id),
            expires_at=expires_at.isoformat(),
        )

        return PaymentResult(
            charge_id=data.charge_id,
            status=ChargeStatus.PENDING,
            payment=payment,
        )

    def build_pix_code(self, data: PaymentData) -> str:
        """
        Build a simplified EMV "copy and paste" payload for the charge.

        Not a complete BR Code: field lengths and the CRC16 are fixed
        placeholders.
        """
        amount = f"{quantize_amount(data.amount):.2f}"
        merchant_name = self.settings.pix_merchant_name
        merchant_city = self.settings.pix_merchant_city
        return (
            f"00020126580014{MERCHANT_ACCOUNT_INFO}0114{data.charge_id}"
            f"520400005303986540{amount}5802BR5913{merchant_name}"
            f"6009{merchant_city}62070503***6304"
        )
