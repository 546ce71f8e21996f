"""Course catalog read service.

Answers the questions enrollment, progress and purchases ask about a course
and applies the one write they need: unlocking lectures after a purchase.
"""

from uuid import UUID

from learnhub.core.errors import NotFoundError
from learnhub.core.logging import get_logger

from .models import Course, Lecture
from .repository import CourseRepository


logger = get_logger(__name__)


class CourseNotFoundError(NotFoundError):
    """Course does not exist."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message)


class LectureNotFoundError(NotFoundError):
    """Lecture does not exist or belongs to another course."""

    def __init__(self, message: str = "Lecture not found in course"):
        super().__init__(message)


class CourseCatalog:
    """Read model over courses and their lectures."""

    def __init__(self, repository: CourseRepository):
        self.repository = repository

    async def get_course(self, course_id: UUID) -> Course:
        """Get a course or raise CourseNotFoundError."""
        course = await self.repository.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    async def lecture_belongs_to_course(self, course_id: UUID, lecture_id: UUID) -> bool:
        course = await self.repository.get_course(course_id)
        return course is not None and course.has_lecture(lecture_id)

    async def list_lectures(self, course_id: UUID) -> list[Lecture]:
        """List lectures in the course's lecture order.

        Rows whose id is no longer part of the course are left out.
        """
        course = await self.get_course(course_id)
        by_id = {
            lecture.lecture_id: lecture
            for lecture in await self.repository.list_lectures(course_id)
        }
        return [by_id[lid] for lid in course.lecture_ids if lid in by_id]

    async def unlock_lectures(self, course_id: UUID) -> int:
        """Grant preview access to every lecture of the course.

        Idempotent and permanent. Returns the number of lectures touched.
        """
        course = await self.get_course(course_id)
        if not course.lecture_ids:
            return 0

        await self.repository.set_preview(course_id, list(course.lecture_ids))

        logger.info(
            "lectures_unlocked",
            course_id=str(course_id),
            lectures=len(course.lecture_ids),
        )
        return len(course.lecture_ids)
