"""
Charge orchestrator.

Runs a charge request through:
1. Resolve idempotency key (return the existing charge once it has settled)
2. Check that the customer exists
3. Create the charge record in PENDING
4. Execute the payment strategy (validates, persists the artifact)
5. Update the charge status from the strategy result
6. Return the hydrated charge

Any failure in steps 4-5 marks the charge FAILED before the error is raised.
The unique constraint on the idempotency key is the only guard against
duplicate submissions: a request that loses the creation race returns the
winner's charge and never executes a strategy.
"""
import time
import uuid
from typing import Any, List, Optional

import structlog
from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_fixed

from charge_system.config import Settings, get_settings
from charge_system.core.errors import (
    ChargeError,
    ChargeNotFoundError,
    ChargeProcessingError,
    CustomerNotFoundError,
    InvalidPaymentError,
    PersistenceError,
    PersistenceErrorKind,
)
from charge_system.core.money import to_minor_units
from charge_system.core.repositories import ChargeRepository, CustomerRepository
from charge_system.core.strategies.base import PaymentStrategy
from charge_system.core.strategies.registry import StrategyRegistry
from charge_system.core.types import (
    Charge,
    ChargeStatus,
    CreateChargeRequest,
    NewCharge,
    PaymentData,
)
from charge_system.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class ChargeService:
    """
    Main charge processing orchestrator.

    Stateless between calls; safe to share across concurrent requests.
    """

    def __init__(
        self,
        charges: ChargeRepository,
        customers: CustomerRepository,
        strategies: StrategyRegistry,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize charge service.

        Args:
            charges: Charge store
            customers: Customer lookup
            strategies: Registry of payment strategies
            settings: Optional settings (defaults to the cached settings)
        """
        self.charges = charges
        self.customers = customers
        self.strategies = strategies
        self.settings = settings or get_settings()

    async def create_charge(
        self,
        request: CreateChargeRequest,
        idempotency_key: Optional[str] = None,
    ) -> Charge:
        """
        Create a charge and settle it with the requested payment method.

        Args:
            request: Validated charge request
            idempotency_key: Optional caller-supplied key

        Returns:
            Charge: The charge with its payment artifact and customer

        Raises:
            CustomerNotFoundError: If the customer does not exist
            InvalidPaymentError: If amount or payment data is invalid
            UnsupportedMethodError: If no strategy handles the method
            PersistenceError: If storage fails
            ChargeProcessingError: If strategy execution fails unexpectedly
        """
        start_time = time.time()
        log = logger.bind(
            customer_id=str(request.customer_id),
            payment_method=request.payment_method.value,
            idempotency_key=idempotency_key,
        )
        log.info("charge_creation_started")

        if idempotency_key:
            existing = await self.charges.find_by_idempotency_key(idempotency_key)
            if existing is not None:
                if existing.in_progress:
                    log.info("charge_idempotent_in_progress", charge_id=str(existing.id))
                    existing = await self._fetch_settled(idempotency_key, log)
                self._log_replay(log, existing, request, source="lookup")
                return existing

        if request.amount <= 0:
            raise InvalidPaymentError("Amount must be greater than zero")

        customer = await self.customers.find_by_id(request.customer_id)
        if customer is None:
            log.warning("charge_customer_not_found")
            raise CustomerNotFoundError(request.customer_id)

        strategy = self.strategies.select(request.payment_method)

        try:
            charge = await self.charges.create(
                NewCharge(
                    customer_id=request.customer_id,
                    amount=request.amount,
                    currency=request.currency or self.settings.default_currency,
                    payment_method=request.payment_method,
                    status=ChargeStatus.PENDING,
                    idempotency_key=idempotency_key,
                )
            )
        except PersistenceError as e:
            if idempotency_key and e.is_conflict:
                log.info("charge_idempotency_conflict")
                existing = await self._fetch_settled(idempotency_key, log)
                self._log_replay(log, existing, request, source="conflict")
                return existing
            raise

        log = log.bind(charge_id=str(charge.id))
        log.info("charge_record_created")

        status = await self._execute_strategy(strategy, charge, request, log)

        hydrated = await self.charges.find_by_id(charge.id)
        if hydrated is None:
            raise ChargeNotFoundError(charge.id)

        duration = time.time() - start_time
        metrics.record_charge(
            payment_method=charge.payment_method.value,
            status=status.value,
            amount_cents=to_minor_units(charge.amount),
            duration_seconds=duration,
        )
        log.info(
            "charge_created_successfully",
            status=status.value,
            duration_seconds=duration,
        )
        return hydrated

    async def _execute_strategy(
        self,
        strategy: PaymentStrategy,
        charge: Charge,
        request: CreateChargeRequest,
        log: Any,
    ) -> ChargeStatus:
        """Run the strategy and record its status; mark FAILED on any error."""
        try:
            result = await strategy.process(
                PaymentData(
                    charge_id=charge.id,
                    amount=charge.amount,
                    currency=charge.currency,
                    metadata=request.payment_metadata(),
                )
            )
            await self.charges.update_status(charge.id, result.status)
            return result.status

        except Exception as e:
            metrics.record_strategy_failure(charge.payment_method.value, type(e).__name__)
            if isinstance(e, InvalidPaymentError):
                log.warning("charge_payment_invalid", error=str(e))
            else:
                log.error(
                    "charge_processing_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

            await self._mark_failed(charge.id, log)

            if isinstance(e, ChargeError):
                raise
            raise ChargeProcessingError(charge.id) from e

    async def _mark_failed(self, charge_id: uuid.UUID, log: Any) -> None:
        """Best-effort status correction; never masks the original error."""
        try:
            await self.charges.update_status(charge_id, ChargeStatus.FAILED)
        except Exception as e:
            log.error("charge_mark_failed_error", error=str(e))

    async def _fetch_settled(self, idempotency_key: str, log: Any) -> Charge:
        """
        Fetch the charge owned by another request once that request finishes.

        Re-reads while the charge is missing (the winner's insert is not yet
        visible) or still in progress, bounded by the refetch settings. An
        in-progress charge is returned as-is once the attempts run out.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, self.settings.idempotency_refetch_attempts)),
            wait=wait_fixed(self.settings.idempotency_refetch_wait),
            retry=retry_if_result(lambda charge: charge is None or charge.in_progress),
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
        )
        existing = await retrying(self.charges.find_by_idempotency_key, idempotency_key)

        if existing is None:
            log.error("charge_idempotency_conflict_unresolved")
            raise PersistenceError(
                f"Charge for idempotency key {idempotency_key} conflicted but was not found",
                kind=PersistenceErrorKind.CONFLICT,
            )
        if existing.in_progress:
            log.warning("charge_idempotent_still_in_progress", charge_id=str(existing.id))
        return existing

    @staticmethod
    def _log_replay(
        log: Any, existing: Charge, request: CreateChargeRequest, source: str
    ) -> None:
        metrics.record_idempotent_replay(source)
        log.info(
            "charge_idempotent_return",
            charge_id=str(existing.id),
            status=existing.status.value,
            source=source,
        )

        mismatched = [
            field
            for field, requested, stored in (
                ("customer_id", request.customer_id, existing.customer_id),
                ("amount", request.amount, existing.amount),
                ("payment_method", request.payment_method, existing.payment_method),
            )
            if requested != stored
        ]
        if request.currency and request.currency != existing.currency:
            mismatched.append("currency")
        if mismatched:
            log.warning(
                "idempotent_payload_mismatch",
                charge_id=str(existing.id),
                fields=mismatched,
            )

    async def get_charge(self, charge_id: uuid.UUID) -> Charge:
        """
        Get a charge by ID.

        Raises:
            ChargeNotFoundError: If the charge does not exist
        """
        charge = await self.charges.find_by_id(charge_id)
        if charge is None:
            raise ChargeNotFoundError(charge_id)
        return charge

    async def list_customer_charges(self, customer_id: uuid.UUID) -> List[Charge]:
        """
        List a customer's charges, newest first.

        Raises:
            CustomerNotFoundError: If the customer does not exist
        """
        customer = await self.customers.find_by_id(customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id)
        return await self.charges.find_by_customer(customer_id)

    async def update_status(self, charge_id: uuid.UUID, status: ChargeStatus) -> Charge:
        """
        Set a charge's status directly (external correction flows).

        Raises:
            ChargeNotFoundError: If the charge does not exist
        """
        await self.get_charge(charge_id)
        logger.info(
            "charge_status_override",
            charge_id=str(charge_id),
            status=status.value,
        )
        try:
            return await self.charges.update_status(charge_id, status)
        except PersistenceError as e:
            if e.kind is PersistenceErrorKind.NOT_FOUND:
                raise ChargeNotFoundError(charge_id) from e
            raise

    def available_methods(self) -> List[str]:
        return [strategy.method.value for strategy in self.strategies.list_available()]
