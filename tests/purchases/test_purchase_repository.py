"""Tests for CassandraPurchaseRepository with a mocked session."""

from datetime import UTC, datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from learnhub.purchases.models import Purchase, PurchaseStatus
from learnhub.purchases.repository import CassandraPurchaseRepository


@pytest.fixture
def mock_session():
    """Mock Cassandra session; prepared statements keep their query text."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda query: Mock(query=query))
    session.aexecute = AsyncMock(return_value=Mock())
    return session


@pytest.fixture
def repository(mock_session) -> CassandraPurchaseRepository:
    return CassandraPurchaseRepository(session=mock_session, keyspace="test_keyspace")


def _executed(mock_session) -> tuple[str, list]:
    call = mock_session.aexecute.call_args
    return call.args[0].query, call.args[1]


def _row(**overrides) -> SimpleNamespace:
    """A purchases_by_user row; it has no fulfilling_at column."""
    values = {
        "user_id": uuid4(),
        "course_id": uuid4(),
        "purchase_reference": "pur_abc",
        "purchase_id": uuid4(),
        "amount": Decimal("499.00"),
        "currency": "INR",
        "status": "pending",
        "payment_method": "stripe",
        "failure_reason": None,
        "created_at": datetime(2026, 1, 1, 10, 0),
        "updated_at": datetime(2026, 1, 1, 10, 0),
        "completed_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestInsertAndGet:
    """Tests for creating and reading purchases."""

    @pytest.mark.asyncio
    async def test_insert_uses_lightweight_transaction(
        self, repository, mock_session
    ) -> None:
        purchase = Purchase(user_id=uuid4(), course_id=uuid4(), amount=Decimal("499.00"))

        await repository.insert(purchase)

        query, params = _executed(mock_session)
        assert "test_keyspace.purchases" in query
        assert "IF NOT EXISTS" in query
        assert params[0] == purchase.purchase_reference
        assert params[6] == "pending"

    @pytest.mark.asyncio
    async def test_get_maps_claim_timestamp(self, repository, mock_session) -> None:
        row = _row(fulfilling_at=datetime(2026, 1, 1, 10, 5))
        mock_session.aexecute.return_value = Mock(one=Mock(return_value=row))

        purchase = await repository.get("pur_abc")

        assert purchase.status == PurchaseStatus.PENDING
        assert purchase.fulfilling_at == datetime(2026, 1, 1, 10, 5, tzinfo=UTC)
        assert mock_session.aexecute.call_args.args[1] == ["pur_abc"]

    @pytest.mark.asyncio
    async def test_get_missing(self, repository, mock_session) -> None:
        mock_session.aexecute.return_value = Mock(one=Mock(return_value=None))

        assert await repository.get("pur_missing") is None


class TestTransitions:
    """Tests for the conditional status writes."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("applied", [True, False])
    async def test_claim_is_compare_and_set(
        self, repository, mock_session, applied: bool
    ) -> None:
        mock_session.aexecute.return_value = Mock(was_applied=applied)
        now = datetime.now(UTC)

        won = await repository.claim("pur_abc", None, now)

        query, params = _executed(mock_session)
        assert won is applied
        assert "SET fulfilling_at = ?" in query
        assert "IF status = ? AND fulfilling_at = ?" in query
        assert params == [now, now, "pur_abc", "pending", None]

    @pytest.mark.asyncio
    async def test_claim_takes_over_observed_claim(self, repository, mock_session) -> None:
        mock_session.aexecute.return_value = Mock(was_applied=True)
        abandoned = datetime(2026, 1, 1, 10, 0, tzinfo=UTC)
        now = datetime.now(UTC)

        await repository.claim("pur_abc", abandoned, now)

        assert mock_session.aexecute.call_args.args[1][-1] == abandoned

    @pytest.mark.asyncio
    @pytest.mark.parametrize("applied", [True, False])
    async def test_complete_is_guarded_on_claim(
        self, repository, mock_session, applied: bool
    ) -> None:
        mock_session.aexecute.return_value = Mock(was_applied=applied)
        claimed_at = datetime(2026, 1, 1, 10, 0, tzinfo=UTC)
        now = datetime.now(UTC)

        won = await repository.complete("pur_abc", Decimal("499.99"), now, claimed_at)

        query, params = _executed(mock_session)
        assert won is applied
        assert "IF status = ? AND fulfilling_at = ?" in query
        assert params == [
            "completed",
            Decimal("499.99"),
            now,
            now,
            "pur_abc",
            "pending",
            claimed_at,
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("applied", [True, False])
    async def test_mark_failed_requires_unclaimed_pending(
        self, repository, mock_session, applied: bool
    ) -> None:
        mock_session.aexecute.return_value = Mock(was_applied=applied)
        now = datetime.now(UTC)

        won = await repository.mark_failed("pur_abc", "card_declined", now)

        query, params = _executed(mock_session)
        assert won is applied
        assert "IF status = ? AND fulfilling_at = null" in query
        assert params == ["failed", "card_declined", now, "pur_abc", "pending"]


class TestLookup:
    """Tests for the purchases_by_user lookup table."""

    @pytest.mark.asyncio
    async def test_index_writes_lookup_row(self, repository, mock_session) -> None:
        purchase = Purchase(user_id=uuid4(), course_id=uuid4(), amount=Decimal("499.00"))

        await repository.index(purchase)

        query, params = _executed(mock_session)
        assert "test_keyspace.purchases_by_user" in query
        assert params[:3] == [
            purchase.user_id,
            purchase.course_id,
            purchase.purchase_reference,
        ]

    @pytest.mark.asyncio
    async def test_list_by_user(self, repository, mock_session) -> None:
        user_id = uuid4()
        mock_session.aexecute.return_value = [_row(user_id=user_id)]

        purchases = await repository.list_by_user(user_id)

        query, params = _executed(mock_session)
        assert params == [user_id]
        assert "course_id = ?" not in query
        assert purchases[0].user_id == user_id
        assert purchases[0].fulfilling_at is None

    @pytest.mark.asyncio
    async def test_list_by_user_filters_course(self, repository, mock_session) -> None:
        user_id, course_id = uuid4(), uuid4()
        mock_session.aexecute.return_value = [
            _row(user_id=user_id, course_id=course_id, status="completed")
        ]

        purchases = await repository.list_by_user(user_id, course_id)

        query, params = _executed(mock_session)
        assert params == [user_id, course_id]
        assert "AND course_id = ?" in query
        assert purchases[0].status == PurchaseStatus.COMPLETED
