"""Database models for course progress tracking.

Cassandra table definitions for:
- course_progress: one summary row per (user, course) holding the derived
  completion fields
- lecture_progress: one row per lecture the user has interacted with

Lecture entries are separate rows keyed by lecture_id, so writes for
different lectures of the same course never overwrite each other.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from learnhub.utils.dates import ensure_utc_aware, utcnow


if TYPE_CHECKING:
    from cassandra.cluster import Row


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition key: user_id, to list every course a user has progress in
COURSE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_progress (
    user_id UUID,
    course_id UUID,
    completion_percentage INT,
    is_completed BOOLEAN,
    last_accessed TIMESTAMP,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id), course_id)
)
"""

# Partition key: (user_id, course_id) to read a course's entries in one query
LECTURE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lecture_progress (
    user_id UUID,
    course_id UUID,
    lecture_id UUID,
    is_completed BOOLEAN,
    watch_time DECIMAL,
    last_watched TIMESTAMP,
    PRIMARY KEY ((user_id, course_id), lecture_id)
)
"""

PROGRESS_TABLES_CQL = [
    COURSE_PROGRESS_TABLE_CQL,
    LECTURE_PROGRESS_TABLE_CQL,
]


# ==============================================================================
# Entities
# ==============================================================================


@dataclass
class LectureProgress:
    """Completion and watch time for one lecture.

    Attributes:
        lecture_id: Lecture UUID
        is_completed: Whether the user finished the lecture
        watch_time: Seconds watched, never decreases
        last_watched: Last time the entry was touched
    """

    lecture_id: UUID
    is_completed: bool = False
    watch_time: Decimal = Decimal(0)
    last_watched: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: "Row") -> "LectureProgress":
        """Create instance from Cassandra row."""
        return cls(
            lecture_id=row.lecture_id,
            is_completed=bool(row.is_completed),
            watch_time=row.watch_time or Decimal(0),
            last_watched=ensure_utc_aware(row.last_watched) or utcnow(),
        )


@dataclass
class CourseProgress:
    """A user's progress through one course.

    ``completion_percentage`` and ``is_completed`` are derived by
    ``learnhub.progress.aggregator`` from the lecture entries and the
    course's current lecture count.
    """

    user_id: UUID
    course_id: UUID
    lecture_progress: list[LectureProgress] = field(default_factory=list)
    completion_percentage: int = 0
    is_completed: bool = False
    last_accessed: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)

    def entry(self, lecture_id: UUID) -> LectureProgress | None:
        for lp in self.lecture_progress:
            if lp.lecture_id == lecture_id:
                return lp
        return None

    @classmethod
    def from_row(cls, row: "Row") -> "CourseProgress":
        """Create summary instance (without entries) from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            completion_percentage=row.completion_percentage or 0,
            is_completed=bool(row.is_completed),
            last_accessed=ensure_utc_aware(row.last_accessed) or utcnow(),
            created_at=ensure_utc_aware(row.created_at) or utcnow(),
        )

    def __repr__(self) -> str:
        return (
            f"<CourseProgress user={self.user_id} course={self.course_id} "
            f"{self.completion_percentage}% completed={self.is_completed}>"
        )
