"""Payment strategies, one per payment method."""
from .base import PaymentStrategy
from .boleto import BoletoStrategy
from .credit_card import CreditCardStrategy
from .pix import PixStrategy
from .registry import StrategyRegistry, build_default_registry

__all__ = [
    "PaymentStrategy",
    "PixStrategy",
    "CreditCardStrategy",
    "BoletoStrategy",
    "StrategyRegistry",
    "build_default_registry",
]
