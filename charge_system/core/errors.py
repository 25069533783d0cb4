"""Exception hierarchy for charge processing."""
from enum import Enum
from typing import Optional


class ChargeError(Exception):
    """Base exception for charge processing errors."""

    pass


class CustomerNotFoundError(ChargeError):
    """Raised when a charge references a customer that does not exist."""

    def __init__(self, customer_id: object):
        super().__init__(f"Customer {customer_id} not found")
        self.customer_id = customer_id


class ChargeNotFoundError(ChargeError):
    """Raised when a charge id does not resolve to a charge."""

    def __init__(self, charge_id: object):
        super().__init__(f"Charge {charge_id} not found")
        self.charge_id = charge_id


class UnsupportedMethodError(ChargeError):
    """Raised when no strategy is registered for a payment method."""

    def __init__(self, payment_method: object):
        super().__init__(f"Unsupported payment method: {payment_method}")
        self.payment_method = payment_method


class InvalidPaymentError(ChargeError):
    """Raised when payment data fails method-specific validation."""

    pass


class PersistenceErrorKind(Enum):
    """Classification of storage errors the orchestrator acts upon."""

    CONFLICT = "conflict"  # uniqueness violation
    NOT_FOUND = "not_found"
    OTHER = "other"


class PersistenceError(ChargeError):
    """Raised when a storage operation fails."""

    def __init__(
        self,
        message: str,
        kind: PersistenceErrorKind = PersistenceErrorKind.OTHER,
        cause: Optional[BaseException] = None,
    ):
        """
        Initialize persistence error.

        Args:
            message: Error message
            kind: Classification of the failure
            cause: Underlying driver/ORM exception
        """
        super().__init__(message)
        self.kind = kind
        self.cause = cause

    @property
    def is_conflict(self) -> bool:
        return self.kind is PersistenceErrorKind.CONFLICT


class ChargeProcessingError(ChargeError):
    """Opaque failure raised for unexpected errors during strategy execution."""

    def __init__(self, charge_id: object):
        super().__init__(f"Charge {charge_id} could not be processed")
        self.charge_id = charge_id
