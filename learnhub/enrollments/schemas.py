"""Pydantic schemas for enrollments."""

from uuid import UUID

from pydantic import BaseModel


class EnrolledCoursesResponse(BaseModel):
    """Courses the current user can access."""

    course_ids: list[UUID]
    total: int


class EnrollmentStatusResponse(BaseModel):
    course_id: UUID
    is_enrolled: bool
