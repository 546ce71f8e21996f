"""Pydantic schemas for course progress tracking."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from .models import CourseProgress, LectureProgress


# ==============================================================================
# Requests
# ==============================================================================


class MarkLectureRequest(BaseModel):
    """Set a lecture's completion state."""

    completed: bool = Field(default=True, description="Completion state")


class RecordWatchTimeRequest(BaseModel):
    """Report seconds watched for a lecture."""

    watch_time: Decimal = Field(..., ge=0, description="Seconds watched")


# ==============================================================================
# Responses
# ==============================================================================


class LectureProgressResponse(BaseModel):
    lecture_id: UUID
    is_completed: bool
    watch_time: Decimal
    last_watched: datetime

    @classmethod
    def from_entity(cls, entity: LectureProgress) -> "LectureProgressResponse":
        return cls(
            lecture_id=entity.lecture_id,
            is_completed=entity.is_completed,
            watch_time=entity.watch_time,
            last_watched=entity.last_watched,
        )


class CourseProgressResponse(BaseModel):
    """A user's progress through a course."""

    course_id: UUID
    completion_percentage: int = Field(ge=0, le=100, description="0-100 percentage")
    is_completed: bool
    last_accessed: datetime
    lecture_progress: list[LectureProgressResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, entity: CourseProgress) -> "CourseProgressResponse":
        """Create response from entity."""
        return cls(
            course_id=entity.course_id,
            completion_percentage=entity.completion_percentage,
            is_completed=entity.is_completed,
            last_accessed=entity.last_accessed,
            lecture_progress=[
                LectureProgressResponse.from_entity(lp) for lp in entity.lecture_progress
            ],
        )
