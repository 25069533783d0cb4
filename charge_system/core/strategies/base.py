"""
Payment strategy interface.

A strategy owns validation and artifact generation for one payment method.
Strategies satisfy the PaymentStrategy protocol structurally; new methods are
added by writing another strategy and registering it, not by subclassing.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol, Type, TypeVar, runtime_checkable

from pydantic import BaseModel, ValidationError

from charge_system.core.errors import InvalidPaymentError
from charge_system.core.types import PaymentData, PaymentMethod, PaymentResult

Clock = Callable[[], datetime]

M = TypeVar("M", bound=BaseModel)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@runtime_checkable
class PaymentStrategy(Protocol):
    """Validation + processing behaviour for one payment method."""

    @property
    def method(self) -> PaymentMethod:
        ...

    async def validate(self, data: PaymentData) -> None:
        """Raise InvalidPaymentError when the data cannot be processed."""
        ...

    async def process(self, data: PaymentData) -> PaymentResult:
        """Validate, persist the artifact and report the resulting status."""
        ...


def coerce_metadata(
    model: Type[M], metadata: Optional[Any], method: PaymentMethod
) -> M:
    """
    Turn strategy metadata into the method's metadata model.

    Accepts an instance of the model or a mapping with its fields.

    Raises:
        InvalidPaymentError: If metadata is missing or has the wrong shape
    """
    if metadata is None:
        raise InvalidPaymentError(f"{method.value} payment data is required")
    if isinstance(metadata, model):
        return metadata
    if isinstance(metadata, BaseModel):
        raise InvalidPaymentError(
            f"{type(metadata).__name__} is not valid payment data for {method.value}"
        )
    try:
        return model.model_validate(metadata)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidPaymentError(
            f"Invalid {method.value} payment data: {fields}"
        ) from e
