"""Course purchase module.

Provides:
- Purchase initiation with a price snapshot
- Idempotent fulfillment (unlock lectures, enroll, complete)
- Failure recording and purchase status lookups
"""

from .models import PURCHASES_TABLES_CQL, PaymentEvent, Purchase, PurchaseStatus


__all__ = [
    "PURCHASES_TABLES_CQL",
    "PaymentEvent",
    "Purchase",
    "PurchaseStatus",
]
