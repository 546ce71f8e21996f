"""Course purchase models and Cassandra schema.

A purchase moves through ``pending -> completed`` or ``pending -> failed``;
both end states are terminal. Transitions are conditional writes
(``IF status = 'pending'``) so duplicate provider deliveries settle on a
single winner.

Tables:
- purchases: keyed by the opaque purchase reference given to the provider
  (``fulfilling_at`` marks a pending purchase claimed by a fulfiller; a
  failure can only be recorded while it is unset)
- purchases_by_user: lookup for "has this user bought this course?"
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from learnhub.utils.dates import ensure_utc_aware, utcnow


if TYPE_CHECKING:
    from cassandra.cluster import Row


class PurchaseStatus(str, Enum):
    """Purchase lifecycle state."""

    PENDING = "pending"  # Awaiting provider confirmation
    COMPLETED = "completed"  # Paid; course unlocked and user enrolled
    FAILED = "failed"  # Provider reported failure


class PaymentMethod(str, Enum):
    STRIPE = "stripe"
    RAZORPAY = "razorpay"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

PURCHASES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.purchases (
    purchase_reference TEXT PRIMARY KEY,
    purchase_id UUID,
    user_id UUID,
    course_id UUID,
    amount DECIMAL,
    currency TEXT,
    status TEXT,
    payment_method TEXT,
    failure_reason TEXT,
    fulfilling_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    completed_at TIMESTAMP
)
"""

PURCHASES_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.purchases_by_user (
    user_id UUID,
    course_id UUID,
    purchase_reference TEXT,
    purchase_id UUID,
    amount DECIMAL,
    currency TEXT,
    status TEXT,
    payment_method TEXT,
    failure_reason TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    completed_at TIMESTAMP,
    PRIMARY KEY ((user_id), course_id, purchase_reference)
)
"""

PURCHASES_TABLES_CQL = [
    PURCHASES_TABLE_CQL,
    PURCHASES_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entities
# ==============================================================================


def new_purchase_reference() -> str:
    """Opaque reference handed to the payment provider."""
    return f"pur_{uuid4().hex}"


@dataclass
class Purchase:
    """A user's purchase of a course.

    ``amount`` starts as the course price at initiation and is overwritten by
    the amount the provider actually settled once the purchase completes.
    """

    user_id: UUID
    course_id: UUID
    amount: Decimal
    currency: str = "INR"
    status: PurchaseStatus = PurchaseStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.STRIPE
    purchase_reference: str = field(default_factory=new_purchase_reference)
    purchase_id: UUID = field(default_factory=uuid4)
    failure_reason: str | None = None
    fulfilling_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == PurchaseStatus.COMPLETED

    @classmethod
    def from_row(cls, row: "Row") -> "Purchase":
        """Create instance from a row of either purchase table."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            amount=row.amount if row.amount is not None else Decimal(0),
            currency=row.currency or "INR",
            status=PurchaseStatus(row.status),
            payment_method=PaymentMethod(row.payment_method or PaymentMethod.STRIPE.value),
            purchase_reference=row.purchase_reference,
            purchase_id=row.purchase_id,
            failure_reason=row.failure_reason,
            # Only the purchases table carries the claim
            fulfilling_at=ensure_utc_aware(getattr(row, "fulfilling_at", None)),
            created_at=ensure_utc_aware(row.created_at) or utcnow(),
            updated_at=ensure_utc_aware(row.updated_at) or utcnow(),
            completed_at=ensure_utc_aware(row.completed_at),
        )


@dataclass(frozen=True)
class FulfillmentResult:
    """Outcome of fulfilling a purchase.

    ``already_fulfilled`` is True when the purchase had completed before this
    call; no side effects were applied in that case.
    """

    purchase: Purchase
    already_fulfilled: bool
    enrollment_created: bool = False
    lectures_unlocked: int = 0


@dataclass(frozen=True)
class PaymentEvent:
    """Verified payment outcome delivered by the provider integration."""

    purchase_reference: str
    succeeded: bool
    settled_amount: Decimal | None = None
    reason: str | None = None


@dataclass(frozen=True)
class CoursePurchaseStatus:
    course_id: UUID
    is_purchased: bool
    purchase_reference: str | None = None
