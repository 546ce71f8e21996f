"""Tests for CassandraProgressRepository with a mocked session."""

from datetime import UTC, datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from learnhub.progress.models import CourseProgress
from learnhub.progress.repository import CassandraProgressRepository


@pytest.fixture
def mock_session():
    """Mock Cassandra session; prepared statements keep their query text."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda query: Mock(query=query))
    session.aexecute = AsyncMock(return_value=Mock())
    return session


@pytest.fixture
def repository(mock_session) -> CassandraProgressRepository:
    return CassandraProgressRepository(session=mock_session, keyspace="test_keyspace")


def _executed_query(mock_session) -> str:
    statement = mock_session.aexecute.call_args.args[0]
    return statement.query


class TestSummary:
    """Tests for course summary statements."""

    @pytest.mark.asyncio
    async def test_create_if_absent_uses_lightweight_transaction(
        self, repository, mock_session
    ) -> None:
        mock_session.aexecute.return_value = Mock(was_applied=True)
        progress = CourseProgress(user_id=uuid4(), course_id=uuid4())

        created = await repository.create_if_absent(progress)

        assert created is True
        assert "IF NOT EXISTS" in _executed_query(mock_session)
        assert "test_keyspace.course_progress" in _executed_query(mock_session)

    @pytest.mark.asyncio
    async def test_create_if_absent_reports_lost_race(self, repository, mock_session) -> None:
        mock_session.aexecute.return_value = Mock(was_applied=False)

        created = await repository.create_if_absent(
            CourseProgress(user_id=uuid4(), course_id=uuid4())
        )

        assert created is False

    @pytest.mark.asyncio
    async def test_get_summary_maps_row(self, repository, mock_session) -> None:
        user_id, course_id = uuid4(), uuid4()
        row = SimpleNamespace(
            user_id=user_id,
            course_id=course_id,
            completion_percentage=50,
            is_completed=False,
            last_accessed=datetime(2026, 1, 1, 12, 0),
            created_at=datetime(2026, 1, 1, 11, 0),
        )
        mock_session.aexecute.return_value = Mock(one=Mock(return_value=row))

        summary = await repository.get_summary(user_id, course_id)

        assert summary.completion_percentage == 50
        assert summary.last_accessed.tzinfo == UTC

    @pytest.mark.asyncio
    async def test_get_summary_missing(self, repository, mock_session) -> None:
        mock_session.aexecute.return_value = Mock(one=Mock(return_value=None))

        assert await repository.get_summary(uuid4(), uuid4()) is None

    @pytest.mark.asyncio
    async def test_save_summary_updates_derived_fields(self, repository, mock_session) -> None:
        progress = CourseProgress(
            user_id=uuid4(), course_id=uuid4(), completion_percentage=75
        )

        await repository.save_summary(progress)

        query = _executed_query(mock_session)
        assert query.strip().startswith("UPDATE")
        params = mock_session.aexecute.call_args.args[1]
        assert params[:2] == [75, False]
        assert params[3:] == [progress.user_id, progress.course_id]


class TestLectureEntries:
    """Tests for lecture entry statements."""

    @pytest.mark.asyncio
    async def test_set_completion_touches_only_completion_columns(
        self, repository, mock_session
    ) -> None:
        user_id, course_id, lecture_id = uuid4(), uuid4(), uuid4()
        now = datetime.now(UTC)

        await repository.set_completion(user_id, course_id, lecture_id, True, now)

        query = _executed_query(mock_session)
        assert "is_completed = ?" in query
        assert "watch_time" not in query
        assert mock_session.aexecute.call_args.args[1] == [
            True,
            now,
            user_id,
            course_id,
            lecture_id,
        ]

    @pytest.mark.asyncio
    async def test_set_watch_time_touches_only_watch_columns(
        self, repository, mock_session
    ) -> None:
        now = datetime.now(UTC)

        await repository.set_watch_time(uuid4(), uuid4(), uuid4(), Decimal("42.5"), now)

        query = _executed_query(mock_session)
        assert "watch_time = ?" in query
        assert "is_completed" not in query

    @pytest.mark.asyncio
    async def test_list_entries_maps_rows(self, repository, mock_session) -> None:
        rows = [
            SimpleNamespace(
                lecture_id=uuid4(),
                is_completed=True,
                watch_time=Decimal(10),
                last_watched=datetime(2026, 1, 1),
            ),
            SimpleNamespace(
                lecture_id=uuid4(),
                is_completed=None,
                watch_time=None,
                last_watched=None,
            ),
        ]
        mock_session.aexecute.return_value = rows

        entries = await repository.list_entries(uuid4(), uuid4())

        assert [e.is_completed for e in entries] == [True, False]
        assert entries[1].watch_time == Decimal(0)
