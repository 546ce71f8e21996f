"""Enrollment API endpoints.

Enrollments are created by purchase fulfillment only; these routes are
read-only.
"""

from uuid import UUID

from fastapi import APIRouter

from learnhub.auth.dependencies import CurrentUserId

from .dependencies import EnrollmentLedgerDep
from .schemas import EnrolledCoursesResponse, EnrollmentStatusResponse


router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


@router.get(
    "",
    response_model=EnrolledCoursesResponse,
    summary="List my enrollments",
)
async def list_my_enrollments(
    ledger: EnrollmentLedgerDep,
    user_id: CurrentUserId,
) -> EnrolledCoursesResponse:
    course_ids = await ledger.list_user_courses(user_id)
    return EnrolledCoursesResponse(course_ids=course_ids, total=len(course_ids))


@router.get(
    "/{course_id}",
    response_model=EnrollmentStatusResponse,
    summary="Check enrollment",
)
async def get_enrollment_status(
    course_id: UUID,
    ledger: EnrollmentLedgerDep,
    user_id: CurrentUserId,
) -> EnrollmentStatusResponse:
    return EnrollmentStatusResponse(
        course_id=course_id,
        is_enrolled=await ledger.is_enrolled(user_id, course_id),
    )
