"""
API routes for charge processing.
"""
import asyncio
import uuid
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from charge_system.core.charge_service import ChargeService
from charge_system.core.errors import (
    ChargeError,
    ChargeNotFoundError,
    CustomerNotFoundError,
    InvalidPaymentError,
    PersistenceError,
    UnsupportedMethodError,
)
from charge_system.core.types import Charge, CreateChargeRequest
from charge_system.monitoring.health import HealthCheck

from .dependencies import get_charge_service
from .schemas import (
    ErrorResponse,
    HealthCheckResponse,
    PaymentMethodsResponse,
    UpdateChargeStatusRequest,
)

logger = structlog.get_logger(__name__)

charge_router = APIRouter(prefix="/charges", tags=["charges"])
monitoring_router = APIRouter(tags=["monitoring"])


def to_http_error(error: ChargeError) -> HTTPException:
    """Map charge errors to HTTP responses; unexpected failures stay opaque."""
    if isinstance(error, (CustomerNotFoundError, ChargeNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, (InvalidPaymentError, UnsupportedMethodError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, PersistenceError) and error.is_conflict:
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Charge conflicts with an existing charge",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Charge processing failed",
    )


@charge_router.post(
    "",
    response_model=Charge,
    status_code=status.HTTP_201_CREATED,
    summary="Create a charge",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid payment data or method"},
        404: {"model": ErrorResponse, "description": "Customer not found"},
        409: {"model": ErrorResponse, "description": "Idempotency conflict"},
    },
    description="Create a charge; repeated requests with the same Idempotency-Key "
    "return the original charge",
)
async def create_charge(
    request: CreateChargeRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    service: ChargeService = Depends(get_charge_service),
) -> Charge:
    """Create a new charge."""
    if idempotency_key:
        structlog.contextvars.bind_contextvars(idempotency_key=idempotency_key)
    logger.info(
        "api_create_charge_request",
        customer_id=str(request.customer_id),
        payment_method=request.payment_method.value,
    )

    try:
        # A disconnecting client must not leave the pipeline half-way
        return await asyncio.shield(service.create_charge(request, idempotency_key))
    except ChargeError as e:
        logger.warning("api_create_charge_error", error=str(e), error_type=type(e).__name__)
        raise to_http_error(e)


@charge_router.get(
    "/methods",
    response_model=PaymentMethodsResponse,
    summary="List payment methods",
)
async def list_payment_methods(
    service: ChargeService = Depends(get_charge_service),
) -> Dict[str, Any]:
    return {"methods": service.available_methods()}


@charge_router.get(
    "/customer/{customer_id}",
    response_model=List[Charge],
    summary="List a customer's charges",
)
async def list_customer_charges(
    customer_id: uuid.UUID,
    service: ChargeService = Depends(get_charge_service),
) -> List[Charge]:
    try:
        return await service.list_customer_charges(customer_id)
    except ChargeError as e:
        raise to_http_error(e)


@charge_router.get(
    "/{charge_id}",
    response_model=Charge,
    summary="Get a charge",
)
async def get_charge(
    charge_id: uuid.UUID,
    service: ChargeService = Depends(get_charge_service),
) -> Charge:
    try:
        return await service.get_charge(charge_id)
    except ChargeError as e:
        raise to_http_error(e)


@charge_router.patch(
    "/{charge_id}/status",
    response_model=Charge,
    summary="Update charge status",
    description="Manual status correction",
)
async def update_charge_status(
    charge_id: uuid.UUID,
    body: UpdateChargeStatusRequest,
    service: ChargeService = Depends(get_charge_service),
) -> Charge:
    try:
        return await service.update_status(charge_id, body.status)
    except ChargeError as e:
        logger.warning("api_update_status_error", charge_id=str(charge_id), error=str(e))
        raise to_http_error(e)


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
)
async def health(request: Request) -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    return await HealthCheck(request.app.state.session_factory).check_all()


@monitoring_router.get(
    "/health/live",
    response_model=HealthCheckResponse,
    summary="Liveness probe",
)
async def liveness() -> Dict[str, Any]:
    return await HealthCheck().liveness()


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    include_in_schema=False,
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
