"""Purchase fulfillment coordinator.

Turns a confirmed payment into course access. Providers may deliver the same
outcome more than once and concurrently, so:

- a fulfiller first claims the pending purchase with a conditional write;
  only the claim holder unlocks lectures and enrolls, and a failure cannot
  be recorded once a claim exists
- unlocking lectures and enrolling are idempotent and run before the status
  change; a fulfiller that dies mid-way leaves its claim behind, and a
  redelivery takes it over once it is older than ``claim_timeout``
- the ``pending -> completed`` write is conditional on the claim; every
  other caller reports the purchase as already fulfilled or in progress
"""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from learnhub.core.context import PurchaseContext
from learnhub.core.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from learnhub.core.logging import get_logger
from learnhub.courses.service import CourseCatalog
from learnhub.enrollments.service import EnrollmentLedger
from learnhub.utils.dates import utcnow

from .models import (
    CoursePurchaseStatus,
    FulfillmentResult,
    PaymentEvent,
    PaymentMethod,
    Purchase,
    PurchaseStatus,
)
from .repository import PurchaseRepository


logger = get_logger(__name__)


class PurchaseNotFoundError(NotFoundError):
    """No purchase matches the reference."""

    def __init__(self, message: str = "Purchase not found"):
        super().__init__(message)


class PurchaseAlreadyCompletedError(ConflictError):
    """User already owns the course."""

    def __init__(self, message: str = "Course already purchased"):
        super().__init__(message)


class PurchaseFailedError(InvalidStateError):
    """Purchase already failed and cannot be fulfilled."""

    def __init__(self, message: str = "Purchase has failed and cannot be fulfilled"):
        super().__init__(message)


class FulfillmentInProgressError(ConflictError):
    """Another delivery holds the fulfillment claim; retry later."""

    def __init__(self, message: str = "Purchase fulfillment is in progress"):
        super().__init__(message)


class PurchaseCoordinator:
    """Service for the purchase lifecycle."""

    def __init__(
        self,
        repository: PurchaseRepository,
        catalog: CourseCatalog,
        ledger: EnrollmentLedger,
        default_payment_method: PaymentMethod | str = PaymentMethod.STRIPE,
        currency: str = "INR",
        claim_timeout: timedelta = timedelta(minutes=5),
    ):
        self.repository = repository
        self.catalog = catalog
        self.ledger = ledger
        self.default_payment_method = PaymentMethod(default_payment_method)
        self.currency = currency
        self.claim_timeout = claim_timeout

    async def initiate_purchase(
        self,
        user_id: UUID,
        course_id: UUID,
        payment_method: PaymentMethod | str | None = None,
    ) -> Purchase:
        """Create a pending purchase for the course at its current price.

        The returned ``purchase_reference`` is what the payment provider
        echoes back in its payment event.

        Raises:
            CourseNotFoundError: If the course does not exist
            PurchaseAlreadyCompletedError: If the user already bought it
        """
        course = await self.catalog.get_course(course_id)

        if await self._completed_purchase(user_id, course_id) is not None:
            raise PurchaseAlreadyCompletedError

        purchase = Purchase(
            user_id=user_id,
            course_id=course_id,
            amount=course.price,
            currency=self.currency,
            payment_method=PaymentMethod(payment_method or self.default_payment_method),
        )
        await self.repository.insert(purchase)
        await self.repository.index(purchase)

        logger.info(
            "purchase_initiated",
            purchase_reference=purchase.purchase_reference,
            user_id=str(user_id),
            course_id=str(course_id),
            amount=str(purchase.amount),
            payment_method=purchase.payment_method.value,
        )
        return purchase

    async def fulfill(
        self,
        purchase_reference: str,
        settled_amount: Decimal | None = None,
    ) -> FulfillmentResult:
        """Complete a purchase after a confirmed payment.

        Args:
            purchase_reference: Reference issued by ``initiate_purchase``
            settled_amount: Amount the provider settled; defaults to the
                price snapshot

        Raises:
            PurchaseNotFoundError: Unknown reference
            PurchaseFailedError: The purchase already failed
            FulfillmentInProgressError: Another delivery holds the claim
            ValidationError: Negative settled amount
        """
        if settled_amount is not None and settled_amount < 0:
            raise ValidationError("Settled amount cannot be negative")

        purchase = await self._get(purchase_reference)
        if purchase.status != PurchaseStatus.PENDING:
            return await self._lost_to(purchase)

        claimed_at = utcnow()
        if not await self._claim(purchase, claimed_at):
            return await self._lost_to(await self._get(purchase_reference))

        unlocked = await self.catalog.unlock_lectures(purchase.course_id)
        enrollment = await self.ledger.enroll(
            purchase.user_id,
            purchase.course_id,
            purchase_reference=purchase_reference,
        )

        amount = settled_amount if settled_amount is not None else purchase.amount
        now = utcnow()
        if not await self.repository.complete(purchase_reference, amount, now, claimed_at):
            # Claim went stale and was taken over
            return await self._lost_to(await self._get(purchase_reference))

        purchase.status = PurchaseStatus.COMPLETED
        purchase.amount = amount
        purchase.fulfilling_at = claimed_at
        purchase.completed_at = now
        purchase.updated_at = now
        await self.repository.index(purchase)

        logger.info(
            "purchase_fulfilled",
            purchase_reference=purchase_reference,
            user_id=str(purchase.user_id),
            course_id=str(purchase.course_id),
            amount=str(amount),
            enrollment_created=enrollment.created,
            lectures_unlocked=unlocked,
        )
        return FulfillmentResult(
            purchase=purchase,
            already_fulfilled=False,
            enrollment_created=enrollment.created,
            lectures_unlocked=unlocked,
        )

    async def fail(self, purchase_reference: str, reason: str) -> Purchase:
        """Record a failed payment.

        Replaying a failure is a no-op. A completed purchase is never
        downgraded and is reported as not found among pending purchases.

        Raises:
            PurchaseNotFoundError: Unknown reference or already completed
            FulfillmentInProgressError: A success for this purchase is
                being applied
        """
        purchase = await self._get(purchase_reference)
        if purchase.status == PurchaseStatus.PENDING and purchase.fulfilling_at is None:
            now = utcnow()
            if await self.repository.mark_failed(purchase_reference, reason, now):
                purchase.status = PurchaseStatus.FAILED
                purchase.failure_reason = reason
                purchase.updated_at = now
                await self.repository.index(purchase)

                logger.warning(
                    "purchase_failed",
                    purchase_reference=purchase_reference,
                    user_id=str(purchase.user_id),
                    course_id=str(purchase.course_id),
                    reason=reason,
                )
                return purchase
            purchase = await self._get(purchase_reference)

        if purchase.status == PurchaseStatus.FAILED:
            return purchase
        if purchase.is_completed:
            raise PurchaseNotFoundError("No pending purchase matches the reference")
        logger.warning(
            "purchase_failure_rejected",
            purchase_reference=purchase_reference,
            reason=reason,
        )
        raise FulfillmentInProgressError

    async def purchase_status(self, user_id: UUID, course_id: UUID) -> CoursePurchaseStatus:
        purchase = await self._completed_purchase(user_id, course_id)
        return CoursePurchaseStatus(
            course_id=course_id,
            is_purchased=purchase is not None,
            purchase_reference=purchase.purchase_reference if purchase else None,
        )

    async def list_purchased_courses(self, user_id: UUID) -> list[UUID]:
        """Course ids the user has a completed purchase for, oldest first."""
        purchases = [
            await self._confirmed(p) for p in await self.repository.list_by_user(user_id)
        ]
        completed = sorted(
            (p for p in purchases if p.is_completed),
            key=lambda p: p.completed_at or p.created_at,
        )
        course_ids: list[UUID] = []
        for purchase in completed:
            if purchase.course_id not in course_ids:
                course_ids.append(purchase.course_id)
        return course_ids

    async def handle_payment_event(self, event: PaymentEvent) -> FulfillmentResult | Purchase:
        """Dispatch a verified provider event to ``fulfill`` or ``fail``."""
        with PurchaseContext(event.purchase_reference):
            logger.info(
                "payment_event_received",
                purchase_reference=event.purchase_reference,
                succeeded=event.succeeded,
            )
            if event.succeeded:
                return await self.fulfill(event.purchase_reference, event.settled_amount)
            return await self.fail(event.purchase_reference, event.reason or "payment_failed")

    async def _get(self, purchase_reference: str) -> Purchase:
        purchase = await self.repository.get(purchase_reference)
        if purchase is None:
            raise PurchaseNotFoundError
        return purchase

    async def _claim(self, purchase: Purchase, at: datetime) -> bool:
        """Take the fulfillment claim, or an abandoned one."""
        previous = purchase.fulfilling_at
        if previous is not None:
            if at - previous < self.claim_timeout:
                return False
            logger.warning(
                "purchase_claim_taken_over",
                purchase_reference=purchase.purchase_reference,
                claimed_at=previous.isoformat(),
            )
        return await self.repository.claim(purchase.purchase_reference, previous, at)

    async def _lost_to(self, current: Purchase) -> FulfillmentResult:
        """Outcome for a caller that did not hold the claim."""
        if current.is_completed:
            return await self._already_fulfilled(current)
        if current.status == PurchaseStatus.FAILED:
            raise PurchaseFailedError
        raise FulfillmentInProgressError

    async def _already_fulfilled(self, purchase: Purchase) -> FulfillmentResult:
        # Rewriting the lookup row repairs an index write lost after completion
        await self.repository.index(purchase)
        logger.debug(
            "purchase_already_fulfilled",
            purchase_reference=purchase.purchase_reference,
        )
        return FulfillmentResult(purchase=purchase, already_fulfilled=True)

    async def _confirmed(self, purchase: Purchase) -> Purchase:
        """Lookup row, or the authoritative row when the lookup lags behind it."""
        if purchase.status != PurchaseStatus.PENDING:
            return purchase
        current = await self.repository.get(purchase.purchase_reference)
        if current is None or current.status == PurchaseStatus.PENDING:
            return purchase
        await self.repository.index(current)
        return current

    async def _completed_purchase(self, user_id: UUID, course_id: UUID) -> Purchase | None:
        for purchase in await self.repository.list_by_user(user_id, course_id):
            confirmed = await self._confirmed(purchase)
            if confirmed.is_completed:
                return confirmed
        return None
