"""Course purchase API endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from learnhub.auth.dependencies import CurrentUserId, PaymentEventsKey

from .dependencies import PurchaseCoordinatorDep
from .schemas import (
    InitiatePurchaseRequest,
    PaymentEventRequest,
    PaymentEventResponse,
    PurchasedCoursesResponse,
    PurchaseResponse,
    PurchaseStatusResponse,
)


router = APIRouter(prefix="/v1/purchases", tags=["purchases"])


@router.post(
    "",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Initiate course purchase",
)
async def initiate_purchase(
    data: InitiatePurchaseRequest,
    coordinator: PurchaseCoordinatorDep,
    user_id: CurrentUserId,
) -> PurchaseResponse:
    """Create a pending purchase.

    The returned ``purchase_reference`` must be attached to the provider
    checkout session so the payment event can be matched back.
    """
    purchase = await coordinator.initiate_purchase(
        user_id, data.course_id, payment_method=data.payment_method
    )
    return PurchaseResponse.from_entity(purchase)


@router.get(
    "/courses",
    response_model=PurchasedCoursesResponse,
    summary="List purchased courses",
)
async def list_purchased_courses(
    coordinator: PurchaseCoordinatorDep,
    user_id: CurrentUserId,
) -> PurchasedCoursesResponse:
    course_ids = await coordinator.list_purchased_courses(user_id)
    return PurchasedCoursesResponse(course_ids=course_ids, total=len(course_ids))


@router.get(
    "/courses/{course_id}/status",
    response_model=PurchaseStatusResponse,
    summary="Course purchase status",
)
async def get_purchase_status(
    course_id: UUID,
    coordinator: PurchaseCoordinatorDep,
    user_id: CurrentUserId,
) -> PurchaseStatusResponse:
    result = await coordinator.purchase_status(user_id, course_id)
    return PurchaseStatusResponse.from_entity(result)


@router.post(
    "/events",
    response_model=PaymentEventResponse,
    dependencies=[PaymentEventsKey],
    summary="Apply verified payment event",
)
async def handle_payment_event(
    data: PaymentEventRequest,
    coordinator: PurchaseCoordinatorDep,
) -> PaymentEventResponse:
    """Fulfill or fail a purchase. Replayed events return the recorded outcome."""
    outcome = await coordinator.handle_payment_event(data.to_event())
    return PaymentEventResponse.from_outcome(outcome)
