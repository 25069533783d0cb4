"""
Charge domain types.

Entities returned by the repositories (Charge, Customer and the three payment
artifacts), the inbound charge request with its per-method metadata, and the
carriers exchanged between the orchestrator and the payment strategies.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from charge_system.core.money import quantize_amount


class ChargeStatus(str, Enum):
    """Charge lifecycle states."""

    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class PaymentMethod(str, Enum):
    """Payment methods a charge can be settled with."""

    PIX = "PIX"
    CREDIT_CARD = "CREDIT_CARD"
    BOLETO = "BOLETO"


class Customer(BaseModel):
    """Customer as seen by the charge pipeline (read-only)."""

    id: uuid.UUID
    name: str
    email: str
    document: str
    phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# Payment artifacts


class PixPayment(BaseModel):
    """Instant transfer code issued for a charge."""

    payment_method: Literal[PaymentMethod.PIX] = PaymentMethod.PIX
    id: uuid.UUID
    charge_id: uuid.UUID
    qr_code: str
    qr_code_base64: str
    expires_at: datetime
    created_at: datetime


class CreditCardPayment(BaseModel):
    """Card authorization summary. Holds the last four digits only."""

    payment_method: Literal[PaymentMethod.CREDIT_CARD] = PaymentMethod.CREDIT_CARD
    id: uuid.UUID
    charge_id: uuid.UUID
    card_last4: str
    brand: str
    installments: int
    authorization_code: Optional[str] = None
    transaction_id: Optional[str] = None
    created_at: datetime


class BoletoPayment(BaseModel):
    """Boleto document issued for a charge."""

    payment_method: Literal[PaymentMethod.BOLETO] = PaymentMethod.BOLETO
    id: uuid.UUID
    charge_id: uuid.UUID
    barcode_number: str
    due_date: date
    document_url: str
    bank_code: Optional[str] = None
    bank_name: Optional[str] = None
    created_at: datetime


PaymentArtifact = Annotated[
    Union[PixPayment, CreditCardPayment, BoletoPayment],
    Field(discriminator="payment_method"),
]


class Charge(BaseModel):
    """A request to move money, optionally hydrated with artifact and customer."""

    id: uuid.UUID
    customer_id: uuid.UUID
    amount: Decimal
    currency: str
    payment_method: PaymentMethod
    status: ChargeStatus
    idempotency_key: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    payment: Optional[PaymentArtifact] = None
    customer: Optional[Customer] = None

    @property
    def in_progress(self) -> bool:
        """
        True while the request that created the charge is still running.

        PIX and boleto charges settle asynchronously and stay PENDING once
        their artifact exists; card charges always leave PENDING. Only
        meaningful on a hydrated charge.
        """
        if self.status is not ChargeStatus.PENDING:
            return False
        return self.payment is None or self.payment_method is PaymentMethod.CREDIT_CARD


# Method metadata


class PixMetadata(BaseModel):
    """PIX options. expires_in_minutes falls back to the configured default."""

    expires_in_minutes: Optional[int] = None


class CreditCardMetadata(BaseModel):
    """Card data. Used for validation and authorization, never persisted whole."""

    card_number: str = Field(..., repr=False)
    card_holder_name: str
    expiry_month: str
    expiry_year: str
    cvv: str = Field(..., repr=False)
    installments: int = 1


class BoletoMetadata(BaseModel):
    due_date: date


PaymentMetadata = Union[PixMetadata, CreditCardMetadata, BoletoMetadata]


class CreateChargeRequest(BaseModel):
    """Validated charge creation request handed to the orchestrator."""

    customer_id: uuid.UUID
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    payment_method: PaymentMethod
    pix_data: Optional[PixMetadata] = None
    credit_card_data: Optional[CreditCardMetadata] = None
    boleto_data: Optional[BoletoMetadata] = None

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        """Normalise currency codes to upper case."""
        return v.upper() if v else v

    def payment_metadata(self) -> Optional[PaymentMetadata]:
        """Return the metadata block matching the requested payment method."""
        if self.payment_method is PaymentMethod.PIX:
            return self.pix_data
        if self.payment_method is PaymentMethod.CREDIT_CARD:
            return self.credit_card_data
        if self.payment_method is PaymentMethod.BOLETO:
            return self.boleto_data
        return None


# Orchestrator <-> repository / strategy carriers


@dataclass(frozen=True)
class NewCharge:
    """Fields needed to insert a charge record."""

    customer_id: uuid.UUID
    amount: Decimal
    currency: str
    payment_method: PaymentMethod
    status: ChargeStatus = ChargeStatus.PENDING
    idempotency_key: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", quantize_amount(self.amount))


@dataclass(frozen=True)
class PaymentData:
    """Input handed to a payment strategy."""

    charge_id: uuid.UUID
    amount: Decimal
    currency: str
    metadata: Optional[Union[PaymentMetadata, dict[str, Any]]] = None


@dataclass(frozen=True)
class PaymentResult:
    """Outcome reported by a payment strategy."""

    charge_id: uuid.UUID
    status: ChargeStatus
    payment: Union[PixPayment, CreditCardPayment, BoletoPayment]
