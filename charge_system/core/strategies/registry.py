"""Maps payment method tags to strategy instances."""
from typing import Dict, List, Mapping, Optional

from charge_system.config import Settings
from charge_system.core.errors import UnsupportedMethodError
from charge_system.core.repositories import PaymentArtifactRepository
from charge_system.core.strategies.base import Clock, PaymentStrategy
from charge_system.core.strategies.boleto import BoletoStrategy
from charge_system.core.strategies.credit_card import CreditCardStrategy
from charge_system.core.strategies.pix import PixStrategy
from charge_system.core.types import PaymentMethod
from charge_system.integrations.acquirer import SimulatedAcquirer


class StrategyRegistry:
    """Explicit registry of the payment strategies available to the pipeline."""

    def __init__(self, strategies: Mapping[PaymentMethod, PaymentStrategy]):
        for method, strategy in strategies.items():
            if strategy.method is not method:
                raise ValueError(
                    f"{type(strategy).__name__} handles {strategy.method.value}, "
                    f"not {method.value}"
                )
        self._strategies: Dict[PaymentMethod, PaymentStrategy] = dict(strategies)

    @staticmethod
    def _normalize(method: PaymentMethod | str) -> Optional[PaymentMethod]:
        if isinstance(method, PaymentMethod):
            return method
        try:
            return PaymentMethod(str(method).upper())
        except ValueError:
            return None

    def select(self, method: PaymentMethod | str) -> PaymentStrategy:
        """
        Get the strategy registered for a payment method.

        Raises:
            UnsupportedMethodError: If no strategy handles the method
        """
        normalized = self._normalize(method)
        if normalized is None or normalized not in self._strategies:
            raise UnsupportedMethodError(getattr(method, "value", method))
        return self._strategies[normalized]

    def list_available(self) -> List[PaymentStrategy]:
        return list(self._strategies.values())

    def supports(self, method: PaymentMethod | str) -> bool:
        normalized = self._normalize(method)
        return normalized is not None and normalized in self._strategies


def build_default_registry(
    artifacts: PaymentArtifactRepository,
    settings: Settings,
    acquirer: Optional[SimulatedAcquirer] = None,
    clock: Optional[Clock] = None,
) -> StrategyRegistry:
    """Wire the PIX, credit card and boleto strategies."""
    acquirer = acquirer or SimulatedAcquirer(settings.acquirer_declined_cards)
    return StrategyRegistry(
        {
            PaymentMethod.PIX: PixStrategy(artifacts, settings, clock),
            PaymentMethod.CREDIT_CARD: CreditCardStrategy(artifacts, acquirer, clock),
            PaymentMethod.BOLETO: BoletoStrategy(artifacts, settings, clock),
        }
    )
