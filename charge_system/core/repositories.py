"""
Persistence contracts consumed by the charge pipeline.

Implementations raise PersistenceError for storage failures, classified as
CONFLICT (uniqueness violation), NOT_FOUND or OTHER.
"""
import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import List, Optional

from charge_system.core.types import (
    BoletoPayment,
    Charge,
    ChargeStatus,
    CreditCardPayment,
    Customer,
    NewCharge,
    PixPayment,
)


class ChargeRepository(ABC):
    """Charge store. The idempotency key is unique across all charges."""

    @abstractmethod
    async def create(self, data: NewCharge) -> Charge:
        ...

    @abstractmethod
    async def find_by_id(self, charge_id: uuid.UUID) -> Optional[Charge]:
        ...

    @abstractmethod
    async def find_by_customer(self, customer_id: uuid.UUID) -> List[Charge]:
        ...

    @abstractmethod
    async def find_by_idempotency_key(self, idempotency_key: str) -> Optional[Charge]:
        ...

    @abstractmethod
    async def update_status(self, charge_id: uuid.UUID, status: ChargeStatus) -> Charge:
        ...


class CustomerRepository(ABC):
    """Read-only customer lookup."""

    @abstractmethod
    async def find_by_id(self, customer_id: uuid.UUID) -> Optional[Customer]:
        ...


class PaymentArtifactRepository(ABC):
    """Artifact writes used by the payment strategies, one artifact per charge."""

    @abstractmethod
    async def create_pix_payment(
        self,
        charge_id: uuid.UUID,
        qr_code: str,
        qr_code_base64: str,
        expires_at: datetime,
    ) -> PixPayment:
        ...

    @abstractmethod
    async def create_credit_card_payment(
        self,
        charge_id: uuid.UUID,
        card_last4: str,
        brand: str,
        installments: int,
        authorization_code: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> CreditCardPayment:
        ...

    @abstractmethod
    async def create_boleto_payment(
        self,
        charge_id: uuid.UUID,
        barcode_number: str,
        due_date: date,
        document_url: str,
        bank_code: Optional[str] = None,
        bank_name: Optional[str] = None,
    ) -> BoletoPayment:
        ...
