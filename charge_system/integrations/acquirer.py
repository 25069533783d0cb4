"""
Simulated card acquirer.

Stands in for the acquiring gateway: every authorization is approved except
for the configured decline test numbers. Approved and declined responses both
carry a transaction id; only approvals carry an authorization code.
"""
import secrets
import string
import time
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from charge_system.core.money import to_minor_units

logger = structlog.get_logger(__name__)

_AUTH_ALPHABET = string.ascii_uppercase + string.digits
_TXN_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class AcquirerResponse:
    """Result of an authorization request."""

    approved: bool
    transaction_id: str
    authorization_code: Optional[str] = None
    decline_reason: Optional[str] = None


class SimulatedAcquirer:
    """In-process acquirer used instead of a real card network."""

    def __init__(self, declined_cards: Iterable[str] = ()):
        """
        Initialize simulated acquirer.

        Args:
            declined_cards: Card numbers that are always declined
        """
        self.declined_cards = frozenset(declined_cards)

    @staticmethod
    def _random(alphabet: str, length: int) -> str:
        return "".join(secrets.choice(alphabet) for _ in range(length))

    async def authorize(
        self,
        charge_id: uuid.UUID,
        card_number: str,
        amount: Decimal,
        currency: str,
        installments: int = 1,
    ) -> AcquirerResponse:
        """
        Authorize a card payment.

        Args:
            charge_id: Charge being paid
            card_number: Full card number (digits only)
            amount: Charge amount
            currency: Currency code
            installments: Number of installments

        Returns:
            AcquirerResponse: Authorization outcome
        """
        transaction_id = f"TXN{int(time.time() * 1000)}{self._random(_TXN_ALPHABET, 4)}"

        if card_number in self.declined_cards:
            logger.info(
                "acquirer_authorization_declined",
                charge_id=str(charge_id),
                transaction_id=transaction_id,
            )
            return AcquirerResponse(
                approved=False,
                transaction_id=transaction_id,
                decline_reason="card_declined",
            )

        authorization_code = f"AUTH{self._random(_AUTH_ALPHABET, 6)}"
        logger.info(
            "acquirer_authorization_approved",
            charge_id=str(charge_id),
            amount_cents=to_minor_units(amount),
            currency=currency,
            installments=installments,
            transaction_id=transaction_id,
        )
        return AcquirerResponse(
            approved=True,
            transaction_id=transaction_id,
            authorization_code=authorization_code,
        )
