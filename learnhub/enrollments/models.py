"""Enrollment ledger models and Cassandra schema.

An enrollment is the durable grant of access from a user to a course. The
relation is stored twice (dual-write pattern):
- enrollments: partitioned by course_id ("who is enrolled in this course?")
- enrollments_by_user: partitioned by user_id ("which courses does this user have?")

The course-partitioned row is the authority and is claimed with a
lightweight transaction so concurrent fulfillments create at most one record.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from learnhub.utils.dates import ensure_utc_aware, utcnow


if TYPE_CHECKING:
    from cassandra.cluster import Row


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id UUID,
    user_id UUID,
    enrolled_at TIMESTAMP,
    purchase_reference TEXT,
    PRIMARY KEY ((course_id), user_id)
)
"""

ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    enrolled_at TIMESTAMP,
    purchase_reference TEXT,
    PRIMARY KEY ((user_id), course_id)
)
"""

ENROLLMENTS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entities
# ==============================================================================


@dataclass
class Enrollment:
    """Access grant for a (user, course) pair."""

    user_id: UUID
    course_id: UUID
    enrolled_at: datetime = field(default_factory=utcnow)
    purchase_reference: str | None = None

    @classmethod
    def from_row(cls, row: "Row") -> "Enrollment":
        """Create instance from a row of either enrollment table."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            enrolled_at=ensure_utc_aware(row.enrolled_at) or utcnow(),
            purchase_reference=row.purchase_reference,
        )


@dataclass(frozen=True)
class EnrollResult:
    """Outcome of an enroll call; ``created`` is False on a replay."""

    created: bool
    enrollment: Enrollment
