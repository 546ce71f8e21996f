"""Pydantic schemas for course purchases."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from .models import (
    CoursePurchaseStatus,
    FulfillmentResult,
    PaymentEvent,
    PaymentMethod,
    Purchase,
    PurchaseStatus,
)


# ==============================================================================
# Requests
# ==============================================================================


class InitiatePurchaseRequest(BaseModel):
    """Start buying a course."""

    course_id: UUID
    payment_method: PaymentMethod | None = Field(
        default=None, description="Provider; server default when omitted"
    )


class PaymentEventRequest(BaseModel):
    """Verified payment outcome posted by the provider integration."""

    purchase_reference: str = Field(..., min_length=1, max_length=100)
    succeeded: bool
    settled_amount: Decimal | None = Field(default=None, ge=0)
    reason: str | None = Field(default=None, max_length=500)

    def to_event(self) -> PaymentEvent:
        return PaymentEvent(
            purchase_reference=self.purchase_reference,
            succeeded=self.succeeded,
            settled_amount=self.settled_amount,
            reason=self.reason,
        )


# ==============================================================================
# Responses
# ==============================================================================


class PurchaseResponse(BaseModel):
    purchase_reference: str
    course_id: UUID
    amount: Decimal
    currency: str
    status: PurchaseStatus
    payment_method: PaymentMethod
    failure_reason: str | None = None
    created_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Purchase) -> "PurchaseResponse":
        """Create response from entity."""
        return cls(
            purchase_reference=entity.purchase_reference,
            course_id=entity.course_id,
            amount=entity.amount,
            currency=entity.currency,
            status=entity.status,
            payment_method=entity.payment_method,
            failure_reason=entity.failure_reason,
            created_at=entity.created_at,
            completed_at=entity.completed_at,
        )


class PaymentEventResponse(BaseModel):
    """Result of applying a payment event."""

    purchase: PurchaseResponse
    already_fulfilled: bool = False
    enrollment_created: bool = False
    lectures_unlocked: int = 0

    @classmethod
    def from_outcome(cls, outcome: FulfillmentResult | Purchase) -> "PaymentEventResponse":
        if isinstance(outcome, Purchase):
            return cls(purchase=PurchaseResponse.from_entity(outcome))
        return cls(
            purchase=PurchaseResponse.from_entity(outcome.purchase),
            already_fulfilled=outcome.already_fulfilled,
            enrollment_created=outcome.enrollment_created,
            lectures_unlocked=outcome.lectures_unlocked,
        )


class PurchaseStatusResponse(BaseModel):
    course_id: UUID
    is_purchased: bool
    purchase_reference: str | None = None

    @classmethod
    def from_entity(cls, entity: CoursePurchaseStatus) -> "PurchaseStatusResponse":
        return cls(
            course_id=entity.course_id,
            is_purchased=entity.is_purchased,
            purchase_reference=entity.purchase_reference,
        )


class PurchasedCoursesResponse(BaseModel):
    course_ids: list[UUID]
    total: int
