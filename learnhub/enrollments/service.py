"""Enrollment ledger.

Records which user may access which course. Enrollment is created by
purchase fulfillment and never deleted here; creation is idempotent so a
redelivered payment event cannot create a second record.
"""

from uuid import UUID

from learnhub.core.logging import get_logger
from learnhub.courses.service import CourseCatalog

from .models import Enrollment, EnrollResult
from .repository import EnrollmentRepository


logger = get_logger(__name__)


class EnrollmentLedger:
    """Service for the user/course access relation."""

    def __init__(self, repository: EnrollmentRepository, catalog: CourseCatalog):
        self.repository = repository
        self.catalog = catalog

    async def enroll(
        self,
        user_id: UUID,
        course_id: UUID,
        purchase_reference: str | None = None,
    ) -> EnrollResult:
        """Enroll a user in a course.

        The course-side record is claimed atomically; the user-side record is
        written after it, and written again on a replay, so an interrupted
        enroll converges when retried.

        Args:
            user_id: User being granted access
            course_id: Course to grant
            purchase_reference: Purchase that paid for the enrollment

        Returns:
            EnrollResult with ``created`` False when already enrolled

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        await self.catalog.get_course(course_id)

        created, enrollment = await self.repository.claim(
            Enrollment(
                user_id=user_id,
                course_id=course_id,
                purchase_reference=purchase_reference,
            )
        )
        await self.repository.add_user_facet(enrollment)

        if created:
            logger.info(
                "user_enrolled",
                user_id=str(user_id),
                course_id=str(course_id),
                purchase_reference=purchase_reference,
            )
        else:
            logger.debug(
                "enrollment_exists",
                user_id=str(user_id),
                course_id=str(course_id),
            )

        return EnrollResult(created=created, enrollment=enrollment)

    async def is_enrolled(self, user_id: UUID, course_id: UUID) -> bool:
        return await self.repository.get(user_id, course_id) is not None

    async def list_user_courses(self, user_id: UUID) -> list[UUID]:
        """Course ids the user is enrolled in."""
        return [e.course_id for e in await self.repository.list_by_user(user_id)]

    async def list_course_students(self, course_id: UUID) -> list[UUID]:
        """User ids enrolled in the course."""
        return [e.user_id for e in await self.repository.list_by_course(course_id)]
