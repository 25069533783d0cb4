"""Database package for the charge system."""
from .connection import close_db, create_session_factory, get_engine, get_session_factory, init_db
from .models import (
    Base,
    BoletoPaymentModel,
    ChargeModel,
    CreditCardPaymentModel,
    CustomerModel,
    PixPaymentModel,
)

__all__ = [
    "Base",
    "ChargeModel",
    "CustomerModel",
    "PixPaymentModel",
    "CreditCardPaymentModel",
    "BoletoPaymentModel",
    "close_db",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "init_db",
]
