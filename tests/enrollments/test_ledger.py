"""Tests for EnrollmentLedger."""

import asyncio
from uuid import UUID, uuid4

import pytest

from learnhub.courses.models import Course
from learnhub.courses.service import CourseNotFoundError
from learnhub.enrollments.models import Enrollment
from learnhub.enrollments.repository import InMemoryEnrollmentRepository
from learnhub.enrollments.service import EnrollmentLedger


class TestEnroll:
    """Tests for enroll."""

    @pytest.mark.asyncio
    async def test_enroll_creates_record(
        self, ledger: EnrollmentLedger, course: Course, user_id: UUID
    ) -> None:
        result = await ledger.enroll(user_id, course.course_id, purchase_reference="pur_1")

        assert result.created is True
        assert result.enrollment.purchase_reference == "pur_1"
        assert await ledger.is_enrolled(user_id, course.course_id)

    @pytest.mark.asyncio
    async def test_second_enroll_is_noop(
        self, ledger: EnrollmentLedger, course: Course, user_id: UUID
    ) -> None:
        first = await ledger.enroll(user_id, course.course_id, purchase_reference="pur_1")
        second = await ledger.enroll(user_id, course.course_id, purchase_reference="pur_2")

        assert second.created is False
        assert second.enrollment.enrolled_at == first.enrollment.enrolled_at
        assert second.enrollment.purchase_reference == "pur_1"
        assert await ledger.list_course_students(course.course_id) == [user_id]

    @pytest.mark.asyncio
    async def test_concurrent_enrolls_create_one_record(
        self, ledger: EnrollmentLedger, course: Course, user_id: UUID
    ) -> None:
        results = await asyncio.gather(
            *(ledger.enroll(user_id, course.course_id) for _ in range(5))
        )

        assert sum(result.created for result in results) == 1
        assert await ledger.list_user_courses(user_id) == [course.course_id]
        assert await ledger.list_course_students(course.course_id) == [user_id]

    @pytest.mark.asyncio
    async def test_unknown_course(self, ledger: EnrollmentLedger, user_id: UUID) -> None:
        with pytest.raises(CourseNotFoundError):
            await ledger.enroll(user_id, uuid4())

    @pytest.mark.asyncio
    async def test_replay_repairs_missing_user_facet(
        self,
        ledger: EnrollmentLedger,
        enrollment_repository: InMemoryEnrollmentRepository,
        course: Course,
        user_id: UUID,
    ) -> None:
        """A crash after the course-side claim leaves only one facet."""
        await enrollment_repository.claim(Enrollment(user_id=user_id, course_id=course.course_id))
        assert await ledger.list_user_courses(user_id) == []

        result = await ledger.enroll(user_id, course.course_id)

        assert result.created is False
        assert await ledger.list_user_courses(user_id) == [course.course_id]


class TestQueries:
    """Tests for enrollment lookups."""

    @pytest.mark.asyncio
    async def test_not_enrolled(
        self, ledger: EnrollmentLedger, course: Course, user_id: UUID
    ) -> None:
        assert await ledger.is_enrolled(user_id, course.course_id) is False
        assert await ledger.list_user_courses(user_id) == []
