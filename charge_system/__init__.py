"""
Charge System - multi-method charge creation with idempotency guarantees.

Accepts charges paid by PIX, credit card or boleto, makes retried requests
resolve to a single charge, and tracks each charge through
PENDING -> PAID / FAILED.
"""

__version__ = "1.0.0"
