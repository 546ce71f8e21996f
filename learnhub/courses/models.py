"""Course and lecture read model.

Courses and lectures are authored by the catalog service; this module only
reads them and flips the lecture preview flag when a purchase unlocks a
course.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from learnhub.core.errors import ValidationError
from learnhub.utils.dates import ensure_utc_aware, utcnow


if TYPE_CHECKING:
    from cassandra.cluster import Row


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# lecture_ids keeps the externally assigned lecture order
COURSES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    price DECIMAL,
    is_published BOOLEAN,
    lecture_ids LIST<UUID>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

LECTURES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lectures (
    course_id UUID,
    lecture_id UUID,
    title TEXT,
    duration DECIMAL,
    is_preview BOOLEAN,
    position INT,
    created_at TIMESTAMP,
    PRIMARY KEY ((course_id), lecture_id)
)
"""

COURSES_TABLES_CQL = [
    COURSES_TABLE_CQL,
    LECTURES_TABLE_CQL,
]


# ==============================================================================
# Entities
# ==============================================================================

_DURATION_QUANTUM = Decimal("0.01")


@dataclass
class Course:
    """Course as seen by enrollment, progress and purchases."""

    course_id: UUID
    title: str
    price: Decimal
    is_published: bool = False
    lecture_ids: list[UUID] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def total_lectures(self) -> int:
        return len(self.lecture_ids)

    def has_lecture(self, lecture_id: UUID) -> bool:
        return lecture_id in self.lecture_ids

    @classmethod
    def from_row(cls, row: "Row") -> "Course":
        """Create instance from Cassandra row."""
        return cls(
            course_id=row.id,
            title=row.title or "",
            price=row.price if row.price is not None else Decimal(0),
            is_published=bool(row.is_published),
            lecture_ids=list(row.lecture_ids or []),
            created_at=ensure_utc_aware(row.created_at) or utcnow(),
            updated_at=ensure_utc_aware(row.updated_at) or utcnow(),
        )


@dataclass
class Lecture:
    """Lecture of a course.

    Duration is stored in seconds rounded to two decimals and must not be
    negative.
    """

    lecture_id: UUID
    course_id: UUID
    title: str = ""
    duration: Decimal = Decimal(0)
    is_preview: bool = False
    position: int = 0
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        duration = Decimal(str(self.duration))
        if duration < 0:
            raise ValidationError("Lecture duration cannot be negative")
        self.duration = duration.quantize(_DURATION_QUANTUM, rounding=ROUND_HALF_UP)

    @classmethod
    def from_row(cls, row: "Row") -> "Lecture":
        """Create instance from Cassandra row."""
        return cls(
            lecture_id=row.lecture_id,
            course_id=row.course_id,
            title=row.title or "",
            duration=row.duration or Decimal(0),
            is_preview=bool(row.is_preview),
            position=row.position or 0,
            created_at=ensure_utc_aware(row.created_at) or utcnow(),
        )
