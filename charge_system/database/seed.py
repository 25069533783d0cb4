"""
Sample data for local environments.

Inserts a pair of customers (the charge API has no customer endpoints) and,
optionally, one charge per payment method created through the charge service.
Safe to run repeatedly: existing customers are kept and sample charges carry
fixed idempotency keys.
"""
import asyncio
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from charge_system.api.dependencies import build_charge_service
from charge_system.config import Settings
from charge_system.core.types import Charge, CreateChargeRequest, Customer, PaymentMethod
from charge_system.database.connection import close_db, get_session_factory, init_db
from charge_system.database.models import CustomerModel
from charge_system.database.repositories import customer_to_domain
from charge_system.monitoring.logging import setup_logging

logger = structlog.get_logger(__name__)

SAMPLE_CUSTOMERS = [
    {
        "id": uuid.UUID("6f1c2a4e-8b1d-4c3e-9a57-2d0f5e1b7c01"),
        "name": "João Silva",
        "email": "joao.silva@email.com",
        "document": "12345678901",
        "phone": "+5511999999999",
    },
    {
        "id": uuid.UUID("6f1c2a4e-8b1d-4c3e-9a57-2d0f5e1b7c02"),
        "name": "Maria Santos",
        "email": "maria.santos@email.com",
        "document": "98765432100",
        "phone": "+5511988888888",
    },
]


async def seed_customers(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> List[Customer]:
    """
    Insert the sample customers that are not present yet.

    Returns:
        List[Customer]: All sample customers, new and existing
    """
    session_factory = session_factory or get_session_factory()
    emails = [data["email"] for data in SAMPLE_CUSTOMERS]

    async with session_factory() as session, session.begin():
        result = await session.execute(
            select(CustomerModel).where(CustomerModel.email.in_(emails))
        )
        rows = {row.email: row for row in result.scalars()}

        for data in SAMPLE_CUSTOMERS:
            if data["email"] in rows:
                continue
            row = CustomerModel(**data)
            session.add(row)
            rows[row.email] = row
            logger.info("seed_customer_created", customer_id=str(row.id), email=row.email)

    return [customer_to_domain(rows[email]) for email in emails]


def sample_charge_requests(
    customers: List[Customer], today: Optional[date] = None
) -> List[tuple[str, CreateChargeRequest]]:
    """One request per payment method, keyed for idempotent re-runs."""
    today = today or datetime.now(timezone.utc).date()
    first, second = customers[0], customers[1]
    card_expiry = today + timedelta(days=2 * 365)

    return [
        (
            "seed-pix-1",
            CreateChargeRequest(
                customer_id=first.id,
                amount=Decimal("150.50"),
                payment_method=PaymentMethod.PIX,
                pix_data={"expires_in_minutes": 30},
            ),
        ),
        (
            "seed-card-1",
            CreateChargeRequest(
                customer_id=second.id,
                amount=Decimal("500.00"),
                payment_method=PaymentMethod.CREDIT_CARD,
                credit_card_data={
                    "card_number": "4111111111111111",
                    "card_holder_name": second.name.upper(),
                    "expiry_month": f"{card_expiry.month:02d}",
                    "expiry_year": f"{card_expiry.year % 100:02d}",
                    "cvv": "123",
                    "installments": 3,
                },
            ),
        ),
        (
            "seed-boleto-1",
            CreateChargeRequest(
                customer_id=first.id,
                amount=Decimal("250.00"),
                payment_method=PaymentMethod.BOLETO,
                boleto_data={"due_date": today + timedelta(days=1)},
            ),
        ),
    ]


async def seed_charges(
    customers: List[Customer],
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    settings: Optional[Settings] = None,
) -> List[Charge]:
    """Create the sample charges through the charge pipeline."""
    service = build_charge_service(session_factory or get_session_factory(), settings)
    charges = []
    for key, request in sample_charge_requests(customers):
        charge = await service.create_charge(request, idempotency_key=key)
        charges.append(charge)
    logger.info("seed_charges_created", count=len(charges))
    return charges


async def seed(with_charges: bool = False) -> None:
    """Create tables and load the sample data into the configured database."""
    logger.info("seed_started", with_charges=with_charges)
    try:
        await init_db()
        customers = await seed_customers()
        if with_charges:
            await seed_charges(customers)
        logger.info("seed_completed", customers=[str(c.id) for c in customers])
    finally:
        await close_db()


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="Load sample customers and charges")
    parser.add_argument(
        "--with-charges",
        action="store_true",
        help="Also create one sample charge per payment method",
    )
    args = parser.parse_args()

    setup_logging()
    asyncio.run(seed(with_charges=args.with_charges))


if __name__ == "__main__":
    main()
