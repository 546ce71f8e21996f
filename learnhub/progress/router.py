"""Course progress API endpoints.

Domain errors raised by the tracker are converted to HTTP responses by the
application's DomainError handler.
"""

from uuid import UUID

from fastapi import APIRouter

from learnhub.auth.dependencies import CurrentUserId

from .dependencies import ProgressTrackerDep
from .schemas import CourseProgressResponse, MarkLectureRequest, RecordWatchTimeRequest


router = APIRouter(prefix="/v1/progress", tags=["progress"])


@router.get(
    "/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: UUID,
    tracker: ProgressTrackerDep,
    user_id: CurrentUserId,
) -> CourseProgressResponse:
    """Current user's progress; empty when the course was never started."""
    progress = await tracker.get_progress(user_id, course_id)
    return CourseProgressResponse.from_entity(progress)


@router.post(
    "/{course_id}/lectures/{lecture_id}",
    response_model=CourseProgressResponse,
    summary="Mark lecture completion",
)
async def mark_lecture(
    course_id: UUID,
    lecture_id: UUID,
    tracker: ProgressTrackerDep,
    user_id: CurrentUserId,
    data: MarkLectureRequest | None = None,
) -> CourseProgressResponse:
    """Mark a lecture completed (default) or not completed."""
    completed = data.completed if data is not None else True
    progress = await tracker.mark_lecture(user_id, course_id, lecture_id, completed)
    return CourseProgressResponse.from_entity(progress)


@router.put(
    "/{course_id}/lectures/{lecture_id}/watch-time",
    response_model=CourseProgressResponse,
    summary="Record lecture watch time",
)
async def record_watch_time(
    course_id: UUID,
    lecture_id: UUID,
    data: RecordWatchTimeRequest,
    tracker: ProgressTrackerDep,
    user_id: CurrentUserId,
) -> CourseProgressResponse:
    progress = await tracker.record_watch_time(
        user_id, course_id, lecture_id, data.watch_time
    )
    return CourseProgressResponse.from_entity(progress)


@router.post(
    "/{course_id}/complete",
    response_model=CourseProgressResponse,
    summary="Mark course completed",
)
async def mark_course_completed(
    course_id: UUID,
    tracker: ProgressTrackerDep,
    user_id: CurrentUserId,
) -> CourseProgressResponse:
    progress = await tracker.mark_all_completed(user_id, course_id)
    return CourseProgressResponse.from_entity(progress)


@router.post(
    "/{course_id}/reset",
    response_model=CourseProgressResponse,
    summary="Reset course progress",
)
async def reset_course_progress(
    course_id: UUID,
    tracker: ProgressTrackerDep,
    user_id: CurrentUserId,
) -> CourseProgressResponse:
    progress = await tracker.reset(user_id, course_id)
    return CourseProgressResponse.from_entity(progress)
