"""Lecture progress tracking service layer.

Business logic for:
- Lazy creation of a user's course progress
- Per-lecture completion and watch time
- Completing or resetting a whole course
- Recomputing derived completion fields after every mutation

Progress is independent of enrollment: a user can be enrolled with no
progress, and enrollment never creates progress.
"""

from decimal import Decimal
from uuid import UUID

from learnhub.core.errors import NotFoundError, ValidationError
from learnhub.core.locks import KeyedLock
from learnhub.core.logging import get_logger
from learnhub.courses.models import Course
from learnhub.courses.service import CourseCatalog, LectureNotFoundError
from learnhub.utils.dates import utcnow

from .aggregator import aggregate
from .models import CourseProgress
from .repository import ProgressRepository


logger = get_logger(__name__)


class ProgressNotFoundError(NotFoundError):
    """No progress record exists for the user and course."""

    def __init__(self, message: str = "Course progress not found"):
        super().__init__(message)


class ProgressTracker:
    """Service for per-user course progress.

    Mutations for one (user, course) pair are serialized with a keyed lock
    so the recompute-and-save of the derived fields always reflects every
    lecture write that preceded it.
    """

    def __init__(
        self,
        repository: ProgressRepository,
        catalog: CourseCatalog,
        locks: KeyedLock | None = None,
    ):
        self.repository = repository
        self.catalog = catalog
        self.locks = locks or KeyedLock()

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_progress(self, user_id: UUID, course_id: UUID) -> CourseProgress:
        """Read progress without creating it.

        A user who never touched the course gets an unsaved empty progress.
        Derived fields are recomputed against the course's current lectures.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        course = await self.catalog.get_course(course_id)
        summary = await self.repository.get_summary(user_id, course_id)
        if summary is None:
            return CourseProgress(user_id=user_id, course_id=course_id)
        return await self._derive(course, summary)

    async def get_or_create_progress(
        self, user_id: UUID, course_id: UUID
    ) -> CourseProgress:
        """Return the user's progress, creating an empty record if absent.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        course = await self.catalog.get_course(course_id)
        async with self.locks.hold((user_id, course_id)):
            summary = await self._ensure_summary(user_id, course_id)
            return await self._derive(course, summary)

    # ==========================================================================
    # Lecture Operations
    # ==========================================================================

    async def mark_lecture(
        self,
        user_id: UUID,
        course_id: UUID,
        lecture_id: UUID,
        completed: bool,
    ) -> CourseProgress:
        """Set the completion state of one lecture.

        Raises:
            CourseNotFoundError: If the course does not exist
            LectureNotFoundError: If the lecture is not part of the course
        """
        course = await self._get_course_with_lecture(course_id, lecture_id)

        async with self.locks.hold((user_id, course_id)):
            summary = await self._ensure_summary(user_id, course_id)
            await self.repository.set_completion(
                user_id, course_id, lecture_id, completed, utcnow()
            )
            progress = await self._recompute(course, summary)

        logger.info(
            "lecture_marked",
            user_id=str(user_id),
            course_id=str(course_id),
            lecture_id=str(lecture_id),
            completed=completed,
            completion_percentage=progress.completion_percentage,
        )
        return progress

    async def record_watch_time(
        self,
        user_id: UUID,
        course_id: UUID,
        lecture_id: UUID,
        watch_time: Decimal,
    ) -> CourseProgress:
        """Record seconds watched for a lecture.

        Stored watch time only moves forward; a smaller value than the
        stored one is ignored but still refreshes ``last_watched``.

        Raises:
            ValidationError: If watch_time is negative
            CourseNotFoundError: If the course does not exist
            LectureNotFoundError: If the lecture is not part of the course
        """
        watch_time = Decimal(str(watch_time))
        if watch_time < 0:
            raise ValidationError("Watch time cannot be negative")

        course = await self._get_course_with_lecture(course_id, lecture_id)

        async with self.locks.hold((user_id, course_id)):
            summary = await self._ensure_summary(user_id, course_id)
            existing = await self.repository.get_entry(user_id, course_id, lecture_id)
            if existing is not None:
                watch_time = max(existing.watch_time, watch_time)
            await self.repository.set_watch_time(
                user_id, course_id, lecture_id, watch_time, utcnow()
            )
            return await self._recompute(course, summary)

    # ==========================================================================
    # Course Operations
    # ==========================================================================

    async def mark_all_completed(
        self, user_id: UUID, course_id: UUID
    ) -> CourseProgress:
        """Mark every lecture of the course completed.

        Entries are written for all lectures currently in the course as well
        as for every existing entry.

        Raises:
            CourseNotFoundError: If the course does not exist
            ProgressNotFoundError: If the user never started the course
        """
        course = await self.catalog.get_course(course_id)

        async with self.locks.hold((user_id, course_id)):
            summary = await self._require_summary(user_id, course_id)
            lecture_ids = list(course.lecture_ids)
            for entry in await self.repository.list_entries(user_id, course_id):
                if entry.lecture_id not in lecture_ids:
                    lecture_ids.append(entry.lecture_id)

            now = utcnow()
            for lecture_id in lecture_ids:
                await self.repository.set_completion(
                    user_id, course_id, lecture_id, True, now
                )
            progress = await self._recompute(course, summary)

        logger.info(
            "course_marked_completed",
            user_id=str(user_id),
            course_id=str(course_id),
            lectures=len(lecture_ids),
        )
        return progress

    async def reset(self, user_id: UUID, course_id: UUID) -> CourseProgress:
        """Mark every existing entry incomplete.

        Watch time is kept. Calling reset twice leaves the same state.

        Raises:
            CourseNotFoundError: If the course does not exist
            ProgressNotFoundError: If the user never started the course
        """
        course = await self.catalog.get_course(course_id)

        async with self.locks.hold((user_id, course_id)):
            summary = await self._require_summary(user_id, course_id)
            now = utcnow()
            for entry in await self.repository.list_entries(user_id, course_id):
                await self.repository.set_completion(
                    user_id, course_id, entry.lecture_id, False, now
                )
            progress = await self._recompute(course, summary)

        logger.info("course_progress_reset", user_id=str(user_id), course_id=str(course_id))
        return progress

    # ==========================================================================
    # Private Helpers
    # ==========================================================================

    async def _get_course_with_lecture(self, course_id: UUID, lecture_id: UUID) -> Course:
        course = await self.catalog.get_course(course_id)
        if not course.has_lecture(lecture_id):
            raise LectureNotFoundError
        return course

    async def _ensure_summary(self, user_id: UUID, course_id: UUID) -> CourseProgress:
        summary = await self.repository.get_summary(user_id, course_id)
        if summary is not None:
            return summary

        fresh = CourseProgress(user_id=user_id, course_id=course_id)
        if await self.repository.create_if_absent(fresh):
            logger.info(
                "course_progress_created",
                user_id=str(user_id),
                course_id=str(course_id),
            )
            return fresh

        # Another process created it between the read and the insert
        return await self._require_summary(user_id, course_id)

    async def _require_summary(self, user_id: UUID, course_id: UUID) -> CourseProgress:
        summary = await self.repository.get_summary(user_id, course_id)
        if summary is None:
            raise ProgressNotFoundError
        return summary

    async def _derive(self, course: Course, summary: CourseProgress) -> CourseProgress:
        """Build the full progress view with freshly derived fields."""
        entries = await self.repository.list_entries(summary.user_id, summary.course_id)
        result = aggregate(entries, course.total_lectures)
        return CourseProgress(
            user_id=summary.user_id,
            course_id=summary.course_id,
            lecture_progress=entries,
            completion_percentage=result.completion_percentage,
            is_completed=result.is_completed,
            last_accessed=summary.last_accessed,
            created_at=summary.created_at,
        )

    async def _recompute(self, course: Course, summary: CourseProgress) -> CourseProgress:
        """Derive completion fields after a mutation and persist them."""
        summary.last_accessed = utcnow()
        progress = await self._derive(course, summary)
        await self.repository.save_summary(progress)
        return progress
