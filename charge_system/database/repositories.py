"""
SQLAlchemy implementations of the charge pipeline repositories.

Every call runs in its own short transaction, so concurrent requests never
share a session and the database constraints are the only synchronization
point between them.
"""
import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from charge_system.core.errors import PersistenceError, PersistenceErrorKind
from charge_system.core.money import from_minor_units, to_minor_units
from charge_system.core.repositories import (
    ChargeRepository,
    CustomerRepository,
    PaymentArtifactRepository,
)
from charge_system.core.types import (
    BoletoPayment,
    Charge,
    ChargeStatus,
    CreditCardPayment,
    Customer,
    NewCharge,
    PaymentMethod,
    PixPayment,
)
from charge_system.database.models import (
    BoletoPaymentModel,
    ChargeModel,
    CreditCardPaymentModel,
    CustomerModel,
    PixPaymentModel,
    utcnow,
)

logger = structlog.get_logger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(error: SQLAlchemyError) -> bool:
    """Check whether an error is a uniqueness constraint violation."""
    if not isinstance(error, IntegrityError):
        return False

    orig = error.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code == UNIQUE_VIOLATION_SQLSTATE:
            return True

    message = str(orig)
    return "UNIQUE constraint failed" in message or "duplicate key value" in message


def to_persistence_error(error: SQLAlchemyError, message: str) -> PersistenceError:
    kind = (
        PersistenceErrorKind.CONFLICT
        if is_unique_violation(error)
        else PersistenceErrorKind.OTHER
    )
    logger.warning("persistence_error", message=message, kind=kind.value, error=str(error))
    return PersistenceError(f"{message}: {error}", kind=kind, cause=error)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops the offset)."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# Row -> domain conversions


def customer_to_domain(row: CustomerModel) -> Customer:
    return Customer(
        id=row.id,
        name=row.name,
        email=row.email,
        document=row.document,
        phone=row.phone,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def pix_to_domain(row: PixPaymentModel) -> PixPayment:
    return PixPayment(
        id=row.id,
        charge_id=row.charge_id,
        qr_code=row.qr_code,
        qr_code_base64=row.qr_code_base64,
        expires_at=as_utc(row.expires_at),
        created_at=as_utc(row.created_at),
    )


def credit_card_to_domain(row: CreditCardPaymentModel) -> CreditCardPayment:
    return CreditCardPayment(
        id=row.id,
        charge_id=row.charge_id,
        card_last4=row.card_last4,
        brand=row.brand,
        installments=row.installments,
        authorization_code=row.authorization_code,
        transaction_id=row.transaction_id,
        created_at=as_utc(row.created_at),
    )


def boleto_to_domain(row: BoletoPaymentModel) -> BoletoPayment:
    return BoletoPayment(
        id=row.id,
        charge_id=row.charge_id,
        barcode_number=row.barcode_number,
        due_date=row.due_date,
        document_url=row.document_url,
        bank_code=row.bank_code,
        bank_name=row.bank_name,
        created_at=as_utc(row.created_at),
    )


def charge_to_domain(row: ChargeModel, hydrated: bool = False) -> Charge:
    """
    Convert a charge row.

    Relationships are only read when hydrated is set; they must have been
    eager loaded by the query.
    """
    charge = Charge(
        id=row.id,
        customer_id=row.customer_id,
        amount=from_minor_units(row.amount_cents),
        currency=row.currency,
        payment_method=PaymentMethod(row.payment_method),
        status=ChargeStatus(row.status),
        idempotency_key=row.idempotency_key,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )
    if not hydrated:
        return charge

    payment = None
    if row.pix_payment is not None:
        payment = pix_to_domain(row.pix_payment)
    elif row.credit_card_payment is not None:
        payment = credit_card_to_domain(row.credit_card_payment)
    elif row.boleto_payment is not None:
        payment = boleto_to_domain(row.boleto_payment)

    customer = customer_to_domain(row.customer) if row.customer is not None else None
    return charge.model_copy(update={"payment": payment, "customer": customer})


def _hydrated_charges():
    return select(ChargeModel).options(
        selectinload(ChargeModel.pix_payment),
        selectinload(ChargeModel.credit_card_payment),
        selectinload(ChargeModel.boleto_payment),
        selectinload(ChargeModel.customer),
    )


class SqlChargeRepository(ChargeRepository):
    """Charge store backed by SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(self, data: NewCharge) -> Charge:
        now = utcnow()
        row = ChargeModel(
            id=uuid.uuid4(),
            customer_id=data.customer_id,
            amount_cents=to_minor_units(data.amount),
            currency=data.currency,
            payment_method=data.payment_method.value,
            status=data.status.value,
            idempotency_key=data.idempotency_key,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self._session_factory() as session, session.begin():
                session.add(row)
                await session.flush()
                charge = charge_to_domain(row)
        except SQLAlchemyError as e:
            raise to_persistence_error(e, "Failed to create charge") from e
        return charge

    async def _find_one(self, *criteria) -> Optional[Charge]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(_hydrated_charges().where(*criteria))
                row = result.scalar_one_or_none()
                return charge_to_domain(row, hydrated=True) if row is not None else None
        except SQLAlchemyError as e:
            raise to_persistence_error(e, "Failed to load charge") from e

    async def find_by_id(self, charge_id: uuid.UUID) -> Optional[Charge]:
        return await self._find_one(ChargeModel.id == charge_id)

    async def find_by_idempotency_key(self, idempotency_key: str) -> Optional[Charge]:
        return await self._find_one(ChargeModel.idempotency_key == idempotency_key)

    async def find_by_customer(self, customer_id: uuid.UUID) -> List[Charge]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    _hydrated_charges()
                    .where(ChargeModel.customer_id == customer_id)
                    .order_by(ChargeModel.created_at.desc())
                )
                return [charge_to_domain(row, hydrated=True) for row in result.scalars()]
        except SQLAlchemyError as e:
            raise to_persistence_error(e, "Failed to list charges") from e

    async def update_status(self, charge_id: uuid.UUID, status: ChargeStatus) -> Charge:
        try:
            async with self._session_factory() as session, session.begin():
                row = await session.get(ChargeModel, charge_id)
                if row is None:
                    raise PersistenceError(
                        f"Charge {charge_id} not found",
                        kind=PersistenceErrorKind.NOT_FOUND,
                    )
                row.status = status.value
                row.updated_at = utcnow()
                await session.flush()
                charge = charge_to_domain(row)
        except SQLAlchemyError as e:
            raise to_persistence_error(e, "Failed to update charge status") from e

        logger.info(
            "charge_status_updated",
            charge_id=str(charge_id),
            status=status.value,
        )
        return charge


class SqlCustomerRepository(CustomerRepository):
    """Read-only customer lookup."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_by_id(self, customer_id: uuid.UUID) -> Optional[Customer]:
        try:
            async with self._session_factory() as session:
                row = await session.get(CustomerModel, customer_id)
                return customer_to_domain(row) if row is not None else None
        except SQLAlchemyError as e:
            raise to_persistence_error(e, "Failed to load customer") from e


class SqlPaymentArtifactRepository(PaymentArtifactRepository):
    """Writes payment artifacts, each scoped to its charge."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _insert(self, row, to_domain, message: str):
        try:
            async with self._session_factory() as session, session.begin():
                session.add(row)
                await session.flush()
                artifact = to_domain(row)
        except SQLAlchemyError as e:
            raise to_persistence_error(e, message) from e
        return artifact

    async def create_pix_payment(
        self,
        charge_id: uuid.UUID,
        qr_code: str,
        qr_code_base64: str,
        expires_at: datetime,
    ) -> PixPayment:
        return await self._insert(
            PixPaymentModel(
                id=uuid.uuid4(),
                charge_id=charge_id,
                qr_code=qr_code,
                qr_code_base64=qr_code_base64,
                expires_at=expires_at,
                created_at=utcnow(),
            ),
            pix_to_domain,
            "Failed to store PIX payment",
        )

    async def create_credit_card_payment(
        self,
        charge_id: uuid.UUID,
        card_last4: str,
        brand: str,
        installments: int,
        authorization_code: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> CreditCardPayment:
        return await self._insert(
            CreditCardPaymentModel(
                id=uuid.uuid4(),
                charge_id=charge_id,
                card_last4=card_last4,
                brand=brand,
                installments=installments,
                authorization_code=authorization_code,
                transaction_id=transaction_id,
                created_at=utcnow(),
            ),
            credit_card_to_domain,
            "Failed to store credit card payment",
        )

    async def create_boleto_payment(
        self,
        charge_id: uuid.UUID,
        barcode_number: str,
        due_date: date,
        document_url: str,
        bank_code: Optional[str] = None,
        bank_name: Optional[str] = None,
    ) -> BoletoPayment:
        return await self._insert(
            BoletoPaymentModel(
                id=uuid.uuid4(),
                charge_id=charge_id,
                barcode_number=barcode_number,
                due_date=due_date,
                document_url=document_url,
                bank_code=bank_code,
                bank_name=bank_name,
                created_at=utcnow(),
            ),
            boleto_to_domain,
            "Failed to store boleto payment",
        )
