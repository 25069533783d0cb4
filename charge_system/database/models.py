"""SQLAlchemy database models for the charge system."""
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class CustomerModel(Base):
    """
    Customers table.

    Owned by customer management; the charge pipeline only reads it.
    """

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    document: Mapped[str] = mapped_column(String(14), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        """String representation of Customer."""
        return f"<Customer(id={self.id}, email={self.email})>"


class ChargeModel(Base):
    """
    Charges table.

    One row per charge request. The unique idempotency key is what keeps
    concurrent retries from creating duplicate charges.
    """

    __tablename__ = "charges"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customers.id"), nullable=False, index=True
    )
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="BRL")
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    idempotency_key: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    customer: Mapped[CustomerModel] = relationship()
    pix_payment: Mapped[Optional["PixPaymentModel"]] = relationship(back_populates="charge")
    credit_card_payment: Mapped[Optional["CreditCardPaymentModel"]] = relationship(
        back_populates="charge"
    )
    boleto_payment: Mapped[Optional["BoletoPaymentModel"]] = relationship(
        back_populates="charge"
    )

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="positive_amount"),
        CheckConstraint(
            "status IN ('PENDING', 'PAID', 'FAILED')",
            name="valid_status",
        ),
        CheckConstraint(
            "payment_method IN ('PIX', 'CREDIT_CARD', 'BOLETO')",
            name="valid_payment_method",
        ),
        CheckConstraint("length(currency) = 3", name="valid_currency"),
        Index("idx_charges_customer_created", "customer_id", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation of Charge."""
        return (
            f"<Charge(id={self.id}, customer_id={self.customer_id}, "
            f"amount={self.amount_cents}, method={self.payment_method}, status={self.status})>"
        )


class PixPaymentModel(Base):
    """PIX codes, one per PIX charge. Immutable once written."""

    __tablename__ = "pix_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    charge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("charges.id"), unique=True, nullable=False
    )
    qr_code: Mapped[str] = mapped_column(Text, nullable=False)
    qr_code_base64: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    charge: Mapped[ChargeModel] = relationship(back_populates="pix_payment")


class CreditCardPaymentModel(Base):
    """
    Card authorizations, one per card charge.

    Stores the last four digits only; full card numbers and CVVs never
    reach the database.
    """

    __tablename__ = "credit_card_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    charge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("charges.id"), unique=True, nullable=False
    )
    card_last4: Mapped[str] = mapped_column(String(4), nullable=False)
    brand: Mapped[str] = mapped_column(String(20), nullable=False)
    installments: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    authorization_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    transaction_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    charge: Mapped[ChargeModel] = relationship(back_populates="credit_card_payment")

    __table_args__ = (
        CheckConstraint("installments BETWEEN 1 AND 12", name="valid_installments"),
    )


class BoletoPaymentModel(Base):
    """Boleto documents, one per boleto charge. Immutable once written."""

    __tablename__ = "boleto_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    charge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("charges.id"), unique=True, nullable=False
    )
    barcode_number: Mapped[str] = mapped_column(String(64), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    document_url: Mapped[str] = mapped_column(Text, nullable=False)
    bank_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    bank_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    charge: Mapped[ChargeModel] = relationship(back_populates="boleto_payment")
