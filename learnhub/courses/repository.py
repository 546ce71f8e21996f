# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Course read model storage.

``CourseRepository`` is the storage contract; ``CassandraCourseRepository``
is used in deployed environments and ``InMemoryCourseRepository`` in the
``testing`` environment.
"""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from .models import Course, Lecture


if TYPE_CHECKING:
    from cassandra.cluster import Session


class CourseRepository(Protocol):
    async def get_course(self, course_id: UUID) -> Course | None: ...
    async def list_lectures(self, course_id: UUID) -> list[Lecture]: ...
    async def set_preview(self, course_id: UUID, lecture_ids: list[UUID]) -> None: ...


class CassandraCourseRepository:
    """Satisfies the CourseRepository Protocol using Cassandra."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE id = ?
        """)

        self._list_lectures = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lectures WHERE course_id = ?
        """)

        # UPDATE is an upsert in CQL; the WHERE clause limits it to known rows
        # because lecture ids come from the course row.
        self._set_preview = self.session.prepare(f"""
            UPDATE {self.keyspace}.lectures
            SET is_preview = true
            WHERE course_id = ? AND lecture_id = ?
        """)

    async def get_course(self, course_id: UUID) -> Course | None:
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def list_lectures(self, course_id: UUID) -> list[Lecture]:
        rows = await self.session.aexecute(self._list_lectures, [course_id])
        return [Lecture.from_row(row) for row in rows]

    async def set_preview(self, course_id: UUID, lecture_ids: list[UUID]) -> None:
        for lecture_id in lecture_ids:
            await self.session.aexecute(self._set_preview, [course_id, lecture_id])


class InMemoryCourseRepository:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._lectures: dict[UUID, dict[UUID, Lecture]] = {}

    # Seeding helpers (course authoring lives in the catalog service)
    def add_course(self, course: Course) -> Course:
        self._courses[course.course_id] = course
        self._lectures.setdefault(course.course_id, {})
        return course

    def add_lecture(self, lecture: Lecture) -> Lecture:
        course = self._courses[lecture.course_id]
        self._lectures[lecture.course_id][lecture.lecture_id] = lecture
        if lecture.lecture_id not in course.lecture_ids:
            course.lecture_ids.append(lecture.lecture_id)
        return lecture

    def remove_lecture(self, course_id: UUID, lecture_id: UUID) -> None:
        course = self._courses[course_id]
        course.lecture_ids = [lid for lid in course.lecture_ids if lid != lecture_id]
        self._lectures[course_id].pop(lecture_id, None)

    async def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def list_lectures(self, course_id: UUID) -> list[Lecture]:
        return list(self._lectures.get(course_id, {}).values())

    async def set_preview(self, course_id: UUID, lecture_ids: list[UUID]) -> None:
        lectures = self._lectures.get(course_id, {})
        for lecture_id in lecture_ids:
            if lecture_id in lectures:
                lectures[lecture_id].is_preview = True
