"""
API tests for the charge endpoints.
"""
import uuid
from decimal import Decimal
from typing import Any, AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from charge_system.api.dependencies import build_charge_service, get_charge_service
from charge_system.api.main import create_app
from charge_system.api.routes import to_http_error
from charge_system.core.errors import (
    ChargeNotFoundError,
    ChargeProcessingError,
    CustomerNotFoundError,
    InvalidPaymentError,
    PersistenceError,
    PersistenceErrorKind,
    UnsupportedMethodError,
)


@pytest_asyncio.fixture
async def client(
    session_factory: Any, test_settings: Any, fixed_clock: Any
) -> AsyncGenerator[AsyncClient, Any]:
    """Create test HTTP client backed by the SQLite database."""
    app = create_app(session_factory=session_factory, settings=test_settings)
    service = build_charge_service(session_factory, test_settings, clock=fixed_clock)
    app.dependency_overrides[get_charge_service] = lambda: service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def card_payload(db_customer: Any, sample_card_data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "customer_id": str(db_customer.id),
        "amount": "150.50",
        "payment_method": "CREDIT_CARD",
        "credit_card_data": sample_card_data,
    }


class TestCreateChargeEndpoint:
    """Test suite for POST /charges."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_create_credit_card_charge(
        self, client: AsyncClient, card_payload: Dict[str, Any]
    ) -> None:
        response = await client.post("/charges", json=card_payload)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PAID"
        assert Decimal(body["amount"]) == Decimal("150.50")
        assert body["currency"] == "BRL"
        assert body["payment"]["payment_method"] == "CREDIT_CARD"
        assert body["payment"]["card_last4"] == "1111"
        assert body["payment"]["brand"] == "visa"
        assert "4111111111111111" not in response.text
        assert "X-Request-ID" in response.headers

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_idempotency_key_replays_charge(
        self, client: AsyncClient, card_payload: Dict[str, Any]
    ) -> None:
        headers = {"Idempotency-Key": "order-42"}

        first = await client.post("/charges", json=card_payload, headers=headers)
        card_payload["amount"] = "999.00"
        second = await client.post("/charges", json=card_payload, headers=headers)

        assert first.status_code == 201
        assert second.status_code == 201
        assert second.json()["id"] == first.json()["id"]
        assert Decimal(second.json()["amount"]) == Decimal("150.50")
        assert second.json()["idempotency_key"] == "order-42"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_pix_charge(self, client: AsyncClient, db_customer: Any) -> None:
        response = await client.post(
            "/charges",
            json={
                "customer_id": str(db_customer.id),
                "amount": "150.50",
                "payment_method": "PIX",
                "pix_data": {"expires_in_minutes": 30},
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert "br.gov.bcb.pix" in body["payment"]["qr_code"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unknown_customer(
        self, client: AsyncClient, card_payload: Dict[str, Any]
    ) -> None:
        card_payload["customer_id"] = str(uuid.uuid4())

        response = await client.post("/charges", json=card_payload)

        assert response.status_code == 404
        assert "not found" in response.json()["detail"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_invalid_payment_data(self, client: AsyncClient, db_customer: Any) -> None:
        response = await client.post(
            "/charges",
            json={
                "customer_id": str(db_customer.id),
                "amount": "10.00",
                "payment_method": "BOLETO",
                "boleto_data": {"due_date": "2026-10-17"},
            },
        )

        assert response.status_code == 400
        assert "past" in response.json()["detail"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field,value",
        [("payment_method", "BITCOIN"), ("amount", "0"), ("amount", "-5.00"), ("currency", "R$")],
    )
    async def test_request_validation(
        self, client: AsyncClient, card_payload: Dict[str, Any], field: str, value: str
    ) -> None:
        card_payload[field] = value

        response = await client.post("/charges", json=card_payload)

        assert response.status_code == 422


class TestQueryEndpoints:
    """Test suite for charge lookups and status changes."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_list_methods(self, client: AsyncClient) -> None:
        response = await client.get("/charges/methods")

        assert response.status_code == 200
        assert set(response.json()["methods"]) == {"PIX", "CREDIT_CARD", "BOLETO"}

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_get_charge(self, client: AsyncClient, card_payload: Dict[str, Any]) -> None:
        created = (await client.post("/charges", json=card_payload)).json()

        response = await client.get(f"/charges/{created['id']}")

        assert response.status_code == 200
        assert response.json()["id"] == created["id"]
        assert response.json()["customer"]["id"] == card_payload["customer_id"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_get_charge_not_found(self, client: AsyncClient) -> None:
        response = await client.get(f"/charges/{uuid.uuid4()}")

        assert response.status_code == 404

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_get_charge_malformed_id(self, client: AsyncClient) -> None:
        response = await client.get("/charges/not-a-uuid")

        assert response.status_code == 422

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_list_customer_charges(
        self, client: AsyncClient, card_payload: Dict[str, Any]
    ) -> None:
        await client.post("/charges", json=card_payload)
        await client.post("/charges", json=card_payload)

        response = await client.get(f"/charges/customer/{card_payload['customer_id']}")

        assert response.status_code == 200
        assert len(response.json()) == 2

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_list_unknown_customer(self, client: AsyncClient) -> None:
        response = await client.get(f"/charges/customer/{uuid.uuid4()}")

        assert response.status_code == 404

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_update_status(self, client: AsyncClient, db_customer: Any) -> None:
        created = (
            await client.post(
                "/charges",
                json={
                    "customer_id": str(db_customer.id),
                    "amount": "20.00",
                    "payment_method": "PIX",
                    "pix_data": {},
                },
            )
        ).json()

        response = await client.patch(f"/charges/{created['id']}/status", json={"status": "PAID"})

        assert response.status_code == 200
        assert response.json()["status"] == "PAID"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_update_status_not_found(self, client: AsyncClient) -> None:
        response = await client.patch(f"/charges/{uuid.uuid4()}/status", json={"status": "PAID"})

        assert response.status_code == 404

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_update_status_rejects_unknown_status(
        self, client: AsyncClient
    ) -> None:
        response = await client.patch(
            f"/charges/{uuid.uuid4()}/status", json={"status": "REFUNDED"}
        )

        assert response.status_code == 422


class TestMonitoringEndpoints:
    """Test suite for health and metrics."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["checks"]["database"]["status"] == "healthy"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_liveness(self, client: AsyncClient) -> None:
        response = await client.get("/health/live")

        assert response.json()["status"] == "healthy"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_metrics(self, client: AsyncClient, card_payload: Dict[str, Any]) -> None:
        await client.post("/charges", json=card_payload)

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "charges_total" in response.text

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_root(self, client: AsyncClient, test_settings: Any) -> None:
        response = await client.get("/")

        assert response.json()["service"] == test_settings.app_name


class TestErrorMapping:
    """Test suite for charge error to HTTP status mapping."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "error,status_code",
        [
            (CustomerNotFoundError(uuid.uuid4()), 404),
            (ChargeNotFoundError(uuid.uuid4()), 404),
            (InvalidPaymentError("bad"), 400),
            (UnsupportedMethodError("BITCOIN"), 400),
            (PersistenceError("dup", kind=PersistenceErrorKind.CONFLICT), 409),
            (PersistenceError("db down"), 500),
            (ChargeProcessingError(uuid.uuid4()), 500),
        ],
    )
    def test_status_codes(self, error: Exception, status_code: int) -> None:
        assert to_http_error(error).status_code == status_code

    @pytest.mark.unit
    def test_internal_errors_are_opaque(self) -> None:
        error = PersistenceError("password authentication failed for user postgres")

        assert "postgres" not in to_http_error(error).detail


class TestAppFactory:
    """Test suite for create_app."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_docs_served_outside_production(self, client: AsyncClient) -> None:
        response = await client.get("/docs")

        assert response.status_code == 200

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_docs_hidden_in_production(self, test_settings: Any) -> None:
        settings = test_settings.model_copy(update={"app_env": "production"})
        app = create_app(settings=settings)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            docs = await ac.get("/docs")
            openapi = await ac.get("/openapi.json")
            root = await ac.get("/")

        assert docs.status_code == 404
        assert openapi.status_code == 404
        assert root.json()["docs"] is None
