# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Enrollment storage."""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from .models import Enrollment


if TYPE_CHECKING:
    from cassandra.cluster import Session


class EnrollmentRepository(Protocol):
    async def claim(self, enrollment: Enrollment) -> tuple[bool, Enrollment]: ...
    async def add_user_facet(self, enrollment: Enrollment) -> None: ...
    async def get(self, user_id: UUID, course_id: UUID) -> Enrollment | None: ...
    async def list_by_user(self, user_id: UUID) -> list[Enrollment]: ...
    async def list_by_course(self, course_id: UUID) -> list[Enrollment]: ...


class CassandraEnrollmentRepository:
    """Satisfies the EnrollmentRepository Protocol using Cassandra."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        # Authority row: lightweight transaction, at most one per pair
        self._claim = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (course_id, user_id, enrolled_at, purchase_reference)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._add_user_facet = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user
            (user_id, course_id, enrolled_at, purchase_reference)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE course_id = ? AND user_id = ?
        """)

        self._list_by_user = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ?
        """)

        self._list_by_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE course_id = ?
        """)

    async def claim(self, enrollment: Enrollment) -> tuple[bool, Enrollment]:
        """Insert the authority row unless one exists.

        Returns:
            (applied, stored enrollment)
        """
        result = await self.session.aexecute(
            self._claim,
            [
                enrollment.course_id,
                enrollment.user_id,
                enrollment.enrolled_at,
                enrollment.purchase_reference,
            ],
        )
        if result.was_applied:
            return True, enrollment

        existing = await self.get(enrollment.user_id, enrollment.course_id)
        return False, existing or enrollment

    async def add_user_facet(self, enrollment: Enrollment) -> None:
        await self.session.aexecute(
            self._add_user_facet,
            [
                enrollment.user_id,
                enrollment.course_id,
                enrollment.enrolled_at,
                enrollment.purchase_reference,
            ],
        )

    async def get(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        result = await self.session.aexecute(self._get, [course_id, user_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]:
        rows = await self.session.aexecute(self._list_by_user, [user_id])
        return [Enrollment.from_row(row) for row in rows]

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        return [Enrollment.from_row(row) for row in rows]


class InMemoryEnrollmentRepository:
    def __init__(self) -> None:
        self._by_course: dict[UUID, dict[UUID, Enrollment]] = {}
        self._by_user: dict[UUID, dict[UUID, Enrollment]] = {}

    async def claim(self, enrollment: Enrollment) -> tuple[bool, Enrollment]:
        students = self._by_course.setdefault(enrollment.course_id, {})
        existing = students.get(enrollment.user_id)
        if existing is not None:
            return False, existing
        students[enrollment.user_id] = enrollment
        return True, enrollment

    async def add_user_facet(self, enrollment: Enrollment) -> None:
        courses = self._by_user.setdefault(enrollment.user_id, {})
        courses.setdefault(enrollment.course_id, enrollment)

    async def get(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        return self._by_course.get(course_id, {}).get(user_id)

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]:
        return list(self._by_user.get(user_id, {}).values())

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        return list(self._by_course.get(course_id, {}).values())
