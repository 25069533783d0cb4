"""
Pytest configuration and fixtures.
"""
import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from charge_system.config import Settings
from charge_system.core.charge_service import ChargeService
from charge_system.core.errors import PersistenceError, PersistenceErrorKind
from charge_system.core.repositories import (
    ChargeRepository,
    CustomerRepository,
    PaymentArtifactRepository,
)
from charge_system.core.strategies.registry import build_default_registry
from charge_system.core.types import (
    BoletoPayment,
    Charge,
    ChargeStatus,
    CreditCardPayment,
    Customer,
    NewCharge,
    PixPayment,
)
from charge_system.database.connection import create_session_factory, init_db
from charge_system.database.models import CustomerModel

FIXED_NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


def pytest_configure(config: Any) -> None:
    config.addinivalue_line("markers", "unit: fast tests without I/O")
    config.addinivalue_line("markers", "race: concurrent request scenarios")
    config.addinivalue_line("markers", "integration: tests against a real database")


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        database_url="sqlite+aiosqlite://",
        app_name="charge-system-test",
        app_env="test",
        log_level="DEBUG",
        idempotency_refetch_attempts=3,
        idempotency_refetch_wait=0,
    )


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2026-10-18 12:00 UTC."""
    return lambda: FIXED_NOW


@pytest.fixture
def customer() -> Customer:
    return Customer(
        id=uuid.UUID("123e4567-e89b-12d3-a456-426614174000"),
        name="Maria Silva",
        email="maria@example.com",
        document="12345678900",
        phone="+5511999999999",
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


# In-memory repositories


class InMemoryChargeStore(ChargeRepository):
    """
    Charge store enforcing idempotency key uniqueness like the database does.

    Every call yields to the event loop first so concurrent requests
    interleave between lookup and insert.
    """

    def __init__(self, customers: Optional["InMemoryCustomerStore"] = None):
        self.charges: Dict[uuid.UUID, Charge] = {}
        self.artifacts: Dict[uuid.UUID, Any] = {}
        self.customers = customers

    async def create(self, data: NewCharge) -> Charge:
        await asyncio.sleep(0)
        if data.idempotency_key is not None and any(
            c.idempotency_key == data.idempotency_key for c in self.charges.values()
        ):
            raise PersistenceError(
                "duplicate idempotency key", kind=PersistenceErrorKind.CONFLICT
            )

        created_at = FIXED_NOW + timedelta(seconds=len(self.charges))
        charge = Charge(
            id=uuid.uuid4(),
            customer_id=data.customer_id,
            amount=data.amount,
            currency=data.currency,
            payment_method=data.payment_method,
            status=data.status,
            idempotency_key=data.idempotency_key,
            created_at=created_at,
            updated_at=created_at,
        )
        self.charges[charge.id] = charge
        return charge

    def _hydrate(self, charge: Charge) -> Charge:
        customer = None
        if self.customers is not None:
            customer = self.customers.customers.get(charge.customer_id)
        return charge.model_copy(
            update={"payment": self.artifacts.get(charge.id), "customer": customer}
        )

    async def find_by_id(self, charge_id: uuid.UUID) -> Optional[Charge]:
        await asyncio.sleep(0)
        charge = self.charges.get(charge_id)
        return self._hydrate(charge) if charge is not None else None

    async def find_by_idempotency_key(self, idempotency_key: str) -> Optional[Charge]:
        await asyncio.sleep(0)
        for charge in self.charges.values():
            if charge.idempotency_key == idempotency_key:
                return self._hydrate(charge)
        return None

    async def find_by_customer(self, customer_id: uuid.UUID) -> List[Charge]:
        found = [c for c in self.charges.values() if c.customer_id == customer_id]
        found.sort(key=lambda c: c.created_at, reverse=True)
        return [self._hydrate(c) for c in found]

    async def update_status(self, charge_id: uuid.UUID, status: ChargeStatus) -> Charge:
        await asyncio.sleep(0)
        charge = self.charges.get(charge_id)
        if charge is None:
            raise PersistenceError(
                f"Charge {charge_id} not found", kind=PersistenceErrorKind.NOT_FOUND
            )
        updated = charge.model_copy(update={"status": status})
        self.charges[charge_id] = updated
        return updated


class InMemoryCustomerStore(CustomerRepository):
    def __init__(self, *customers: Customer):
        self.customers = {c.id: c for c in customers}

    async def find_by_id(self, customer_id: uuid.UUID) -> Optional[Customer]:
        return self.customers.get(customer_id)


class InMemoryArtifactStore(PaymentArtifactRepository):
    """Writes artifacts into the charge store, one per charge."""

    def __init__(self, store: InMemoryChargeStore):
        self.store = store

    def _save(self, artifact: Any) -> Any:
        if artifact.charge_id in self.store.artifacts:
            raise PersistenceError(
                "charge already has a payment", kind=PersistenceErrorKind.CONFLICT
            )
        self.store.artifacts[artifact.charge_id] = artifact
        return artifact

    async def create_pix_payment(self, charge_id, qr_code, qr_code_base64, expires_at):
        return self._save(
            PixPayment(
                id=uuid.uuid4(),
                charge_id=charge_id,
                qr_code=qr_code,
                qr_code_base64=qr_code_base64,
                expires_at=expires_at,
                created_at=FIXED_NOW,
            )
        )

    async def create_credit_card_payment(
        self,
        charge_id,
        card_last4,
        brand,
        installments,
        authorization_code=None,
        transaction_id=None,
    ):
        return self._save(
            CreditCardPayment(
                id=uuid.uuid4(),
                charge_id=charge_id,
                card_last4=card_last4,
                brand=brand,
                installments=installments,
                authorization_code=authorization_code,
                transaction_id=transaction_id,
                created_at=FIXED_NOW,
            )
        )

    async def create_boleto_payment(
        self,
        charge_id,
        barcode_number,
        due_date,
        document_url,
        bank_code=None,
        bank_name=None,
    ):
        return self._save(
            BoletoPayment(
                id=uuid.uuid4(),
                charge_id=charge_id,
                barcode_number=barcode_number,
                due_date=due_date,
                document_url=document_url,
                bank_code=bank_code,
                bank_name=bank_name,
                created_at=FIXED_NOW,
            )
        )


@pytest.fixture
def customer_store(customer: Customer) -> InMemoryCustomerStore:
    return InMemoryCustomerStore(customer)


@pytest.fixture
def charge_store(customer_store: InMemoryCustomerStore) -> InMemoryChargeStore:
    return InMemoryChargeStore(customer_store)


@pytest.fixture
def artifact_store(charge_store: InMemoryChargeStore) -> InMemoryArtifactStore:
    return InMemoryArtifactStore(charge_store)


@pytest.fixture
def charge_service(
    charge_store: InMemoryChargeStore,
    customer_store: InMemoryCustomerStore,
    artifact_store: InMemoryArtifactStore,
    test_settings: Settings,
    fixed_clock: Any,
) -> ChargeService:
    """Charge service over in-memory repositories."""
    return ChargeService(
        charges=charge_store,
        customers=customer_store,
        strategies=build_default_registry(artifact_store, test_settings, clock=fixed_clock),
        settings=test_settings,
    )


# SQLite database


@pytest_asyncio.fixture
async def test_engine(tmp_path: Any) -> AsyncGenerator[AsyncEngine, Any]:
    """Create a file-backed SQLite engine with all tables."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'charges.db'}",
        poolclass=NullPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_customer(
    session_factory: async_sessionmaker[AsyncSession], customer: Customer
) -> Customer:
    """Insert the sample customer into the test database."""
    async with session_factory() as session, session.begin():
        session.add(
            CustomerModel(
                id=customer.id,
                name=customer.name,
                email=customer.email,
                document=customer.document,
                phone=customer.phone,
                created_at=customer.created_at,
                updated_at=customer.updated_at,
            )
        )
    return customer


@pytest.fixture
def sample_card_data() -> Dict[str, Any]:
    """Valid visa card expiring 12/26."""
    return {
        "card_number": "4111111111111111",
        "card_holder_name": "MARIA SILVA",
        "expiry_month": "12",
        "expiry_year": "26",
        "cvv": "123",
        "installments": 3,
    }

