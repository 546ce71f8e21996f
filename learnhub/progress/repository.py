# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Course progress storage.

Lecture writes are single-row upserts keyed by lecture_id and only name the
columns they change, so concurrent writes for different lectures (or for
completion and watch time of the same lecture) never clobber each other.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from .models import CourseProgress, LectureProgress


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ProgressRepository(Protocol):
    async def get_summary(self, user_id: UUID, course_id: UUID) -> CourseProgress | None: ...
    async def create_if_absent(self, progress: CourseProgress) -> bool: ...
    async def save_summary(self, progress: CourseProgress) -> None: ...
    async def list_entries(self, user_id: UUID, course_id: UUID) -> list[LectureProgress]: ...
    async def get_entry(
        self, user_id: UUID, course_id: UUID, lecture_id: UUID
    ) -> LectureProgress | None: ...
    async def set_completion(
        self,
        user_id: UUID,
        course_id: UUID,
        lecture_id: UUID,
        completed: bool,
        at: datetime,
    ) -> None: ...
    async def set_watch_time(
        self,
        user_id: UUID,
        course_id: UUID,
        lecture_id: UUID,
        watch_time: Decimal,
        at: datetime,
    ) -> None: ...


class CassandraProgressRepository:
    """Satisfies the ProgressRepository Protocol using Cassandra."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        # Course summary
        self._get_summary = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_progress
            WHERE user_id = ? AND course_id = ?
        """)

        self._create_summary = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_progress
            (user_id, course_id, completion_percentage, is_completed,
             last_accessed, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._save_summary = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_progress
            SET completion_percentage = ?, is_completed = ?, last_accessed = ?
            WHERE user_id = ? AND course_id = ?
        """)

        # Lecture entries
        self._list_entries = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lecture_progress
            WHERE user_id = ? AND course_id = ?
        """)

        self._get_entry = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lecture_progress
            WHERE user_id = ? AND course_id = ? AND lecture_id = ?
        """)

        self._set_completion = self.session.prepare(f"""
            UPDATE {self.keyspace}.lecture_progress
            SET is_completed = ?, last_watched = ?
            WHERE user_id = ? AND course_id = ? AND lecture_id = ?
        """)

        self._set_watch_time = self.session.prepare(f"""
            UPDATE {self.keyspace}.lecture_progress
            SET watch_time = ?, last_watched = ?
            WHERE user_id = ? AND course_id = ? AND lecture_id = ?
        """)

    async def get_summary(self, user_id: UUID, course_id: UUID) -> CourseProgress | None:
        result = await self.session.aexecute(self._get_summary, [user_id, course_id])
        row = result.one()
        return CourseProgress.from_row(row) if row else None

    async def create_if_absent(self, progress: CourseProgress) -> bool:
        result = await self.session.aexecute(
            self._create_summary,
            [
                progress.user_id,
                progress.course_id,
                progress.completion_percentage,
                progress.is_completed,
                progress.last_accessed,
                progress.created_at,
            ],
        )
        return bool(result.was_applied)

    async def save_summary(self, progress: CourseProgress) -> None:
        await self.session.aexecute(
            self._save_summary,
            [
                progress.completion_percentage,
                progress.is_completed,
                progress.last_accessed,
                progress.user_id,
                progress.course_id,
            ],
        )

    async def list_entries(self, user_id: UUID, course_id: UUID) -> list[LectureProgress]:
        rows = await self.session.aexecute(self._list_entries, [user_id, course_id])
        return [LectureProgress.from_row(row) for row in rows]

    async def get_entry(
        self, user_id: UUID, course_id: UUID, lecture_id: UUID
    ) -> LectureProgress | None:
        result = await self.session.aexecute(
            self._get_entry, [user_id, course_id, lecture_id]
        )
        row = result.one()
        return LectureProgress.from_row(row) if row else None

    async def set_completion(
        self,
        user_id: UUID,
        course_id: UUID,
        lecture_id: UUID,
        completed: bool,
        at: datetime,
    ) -> None:
        await self.session.aexecute(
            self._set_completion, [completed, at, user_id, course_id, lecture_id]
        )

    async def set_watch_time(
        self,
        user_id: UUID,
        course_id: UUID,
        lecture_id: UUID,
        watch_time: Decimal,
        at: datetime,
    ) -> None:
        await self.session.aexecute(
            self._set_watch_time, [watch_time, at, user_id, course_id, lecture_id]
        )


class InMemoryProgressRepository:
    def __init__(self) -> None:
        self._summaries: dict[tuple[UUID, UUID], CourseProgress] = {}
        self._entries: dict[tuple[UUID, UUID], dict[UUID, LectureProgress]] = {}

    async def get_summary(self, user_id: UUID, course_id: UUID) -> CourseProgress | None:
        summary = self._summaries.get((user_id, course_id))
        if summary is None:
            return None
        return CourseProgress(
            user_id=summary.user_id,
            course_id=summary.course_id,
            completion_percentage=summary.completion_percentage,
            is_completed=summary.is_completed,
            last_accessed=summary.last_accessed,
            created_at=summary.created_at,
        )

    async def create_if_absent(self, progress: CourseProgress) -> bool:
        key = (progress.user_id, progress.course_id)
        if key in self._summaries:
            return False
        self._summaries[key] = progress
        self._entries.setdefault(key, {})
        return True

    async def save_summary(self, progress: CourseProgress) -> None:
        summary = self._summaries[(progress.user_id, progress.course_id)]
        summary.completion_percentage = progress.completion_percentage
        summary.is_completed = progress.is_completed
        summary.last_accessed = progress.last_accessed

    async def list_entries(self, user_id: UUID, course_id: UUID) -> list[LectureProgress]:
        return [
            LectureProgress(
                lecture_id=e.lecture_id,
                is_completed=e.is_completed,
                watch_time=e.watch_time,
                last_watched=e.last_watched,
            )
            for e in self._entries.get((user_id, course_id), {}).values()
        ]

    async def get_entry(
        self, user_id: UUID, course_id: UUID, lecture_id: UUID
    ) -> LectureProgress | None:
        return self._entries.get((user_id, course_id), {}).get(lecture_id)

    def _upsert(self, user_id: UUID, course_id: UUID, lecture_id: UUID) -> LectureProgress:
        entries = self._entries.setdefault((user_id, course_id), {})
        return entries.setdefault(lecture_id, LectureProgress(lecture_id=lecture_id))

    async def set_completion(
        self,
        user_id: UUID,
        course_id: UUID,
        lecture_id: UUID,
        completed: bool,
        at: datetime,
    ) -> None:
        entry = self._upsert(user_id, course_id, lecture_id)
        entry.is_completed = completed
        entry.last_watched = at

    async def set_watch_time(
        self,
        user_id: UUID,
        course_id: UUID,
        lecture_id: UUID,
        watch_time: Decimal,
        at: datetime,
    ) -> None:
        entry = self._upsert(user_id, course_id, lecture_id)
        entry.watch_time = watch_time
        entry.last_watched = at
