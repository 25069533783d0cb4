"""FastAPI dependencies wiring the charge service to the database."""
from fastapi import Request

from charge_system.config import get_settings
from charge_system.core.charge_service import ChargeService
from charge_system.core.strategies.registry import build_default_registry
from charge_system.database.connection import get_session_factory
from charge_system.database.repositories import (
    SqlChargeRepository,
    SqlCustomerRepository,
    SqlPaymentArtifactRepository,
)


def build_charge_service(session_factory, settings=None, clock=None) -> ChargeService:
    """Assemble the charge service on top of SQLAlchemy repositories."""
    settings = settings or get_settings()
    strategies = build_default_registry(
        SqlPaymentArtifactRepository(session_factory),
        settings,
        clock=clock,
    )
    return ChargeService(
        charges=SqlChargeRepository(session_factory),
        customers=SqlCustomerRepository(session_factory),
        strategies=strategies,
        settings=settings,
    )


def get_charge_service(request: Request) -> ChargeService:
    """Return the application's charge service, building it on first use."""
    state = request.app.state
    if getattr(state, "charge_service", None) is None:
        session_factory = state.session_factory or get_session_factory()
        state.charge_service = build_charge_service(session_factory, state.settings)
    return state.charge_service
