# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Purchase storage.

State transitions are lightweight transactions guarded on the current
status and the fulfillment claim; ``claim``, ``complete`` and
``mark_failed`` return whether this caller won.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from .models import Purchase, PurchaseStatus


if TYPE_CHECKING:
    from cassandra.cluster import Session


class PurchaseRepository(Protocol):
    async def insert(self, purchase: Purchase) -> None: ...
    async def get(self, purchase_reference: str) -> Purchase | None: ...
    async def claim(
        self, purchase_reference: str, expected: datetime | None, at: datetime
    ) -> bool: ...
    async def complete(
        self, purchase_reference: str, amount: Decimal, at: datetime, claimed_at: datetime
    ) -> bool: ...
    async def mark_failed(
        self, purchase_reference: str, reason: str, at: datetime
    ) -> bool: ...
    async def index(self, purchase: Purchase) -> None: ...
    async def list_by_user(
        self, user_id: UUID, course_id: UUID | None = None
    ) -> list[Purchase]: ...


class CassandraPurchaseRepository:
    """Satisfies the PurchaseRepository Protocol using Cassandra."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.purchases
            (purchase_reference, purchase_id, user_id, course_id, amount, currency,
             status, payment_method, failure_reason, created_at, updated_at,
             completed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.purchases
            WHERE purchase_reference = ?
        """)

        # Compare-and-set on the claim; a stale claim is taken over by
        # passing the observed timestamp as ``expected``
        self._claim = self.session.prepare(f"""
            UPDATE {self.keyspace}.purchases
            SET fulfilling_at = ?, updated_at = ?
            WHERE purchase_reference = ?
            IF status = ? AND fulfilling_at = ?
        """)

        self._complete = self.session.prepare(f"""
            UPDATE {self.keyspace}.purchases
            SET status = ?, amount = ?, completed_at = ?, updated_at = ?
            WHERE purchase_reference = ?
            IF status = ? AND fulfilling_at = ?
        """)

        self._mark_failed = self.session.prepare(f"""
            UPDATE {self.keyspace}.purchases
            SET status = ?, failure_reason = ?, updated_at = ?
            WHERE purchase_reference = ?
            IF status = ? AND fulfilling_at = null
        """)

        # Lookup table mirrors the main row (dual-write pattern)
        self._index = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.purchases_by_user
            (user_id, course_id, purchase_reference, purchase_id, amount, currency,
             status, payment_method, failure_reason, created_at, updated_at,
             completed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._list_by_user = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.purchases_by_user
            WHERE user_id = ?
        """)

        self._list_by_user_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.purchases_by_user
            WHERE user_id = ? AND course_id = ?
        """)

    async def insert(self, purchase: Purchase) -> None:
        await self.session.aexecute(
            self._insert,
            [
                purchase.purchase_reference,
                purchase.purchase_id,
                purchase.user_id,
                purchase.course_id,
                purchase.amount,
                purchase.currency,
                purchase.status.value,
                purchase.payment_method.value,
                purchase.failure_reason,
                purchase.created_at,
                purchase.updated_at,
                purchase.completed_at,
            ],
        )

    async def get(self, purchase_reference: str) -> Purchase | None:
        result = await self.session.aexecute(self._get, [purchase_reference])
        row = result.one()
        return Purchase.from_row(row) if row else None

    async def claim(
        self, purchase_reference: str, expected: datetime | None, at: datetime
    ) -> bool:
        result = await self.session.aexecute(
            self._claim,
            [at, at, purchase_reference, PurchaseStatus.PENDING.value, expected],
        )
        return bool(result.was_applied)

    async def complete(
        self, purchase_reference: str, amount: Decimal, at: datetime, claimed_at: datetime
    ) -> bool:
        result = await self.session.aexecute(
            self._complete,
            [
                PurchaseStatus.COMPLETED.value,
                amount,
                at,
                at,
                purchase_reference,
                PurchaseStatus.PENDING.value,
                claimed_at,
            ],
        )
        return bool(result.was_applied)

    async def mark_failed(self, purchase_reference: str, reason: str, at: datetime) -> bool:
        result = await self.session.aexecute(
            self._mark_failed,
            [
                PurchaseStatus.FAILED.value,
                reason,
                at,
                purchase_reference,
                PurchaseStatus.PENDING.value,
            ],
        )
        return bool(result.was_applied)

    async def index(self, purchase: Purchase) -> None:
        await self.session.aexecute(
            self._index,
            [
                purchase.user_id,
                purchase.course_id,
                purchase.purchase_reference,
                purchase.purchase_id,
                purchase.amount,
                purchase.currency,
                purchase.status.value,
                purchase.payment_method.value,
                purchase.failure_reason,
                purchase.created_at,
                purchase.updated_at,
                purchase.completed_at,
            ],
        )

    async def list_by_user(
        self, user_id: UUID, course_id: UUID | None = None
    ) -> list[Purchase]:
        if course_id is None:
            rows = await self.session.aexecute(self._list_by_user, [user_id])
        else:
            rows = await self.session.aexecute(
                self._list_by_user_course, [user_id, course_id]
            )
        return [Purchase.from_row(row) for row in rows]


class InMemoryPurchaseRepository:
    def __init__(self) -> None:
        self._by_reference: dict[str, Purchase] = {}
        self._by_user: dict[UUID, dict[str, Purchase]] = {}

    async def insert(self, purchase: Purchase) -> None:
        self._by_reference.setdefault(purchase.purchase_reference, purchase)

    async def get(self, purchase_reference: str) -> Purchase | None:
        stored = self._by_reference.get(purchase_reference)
        return _copy(stored) if stored else None

    async def claim(
        self, purchase_reference: str, expected: datetime | None, at: datetime
    ) -> bool:
        stored = self._by_reference.get(purchase_reference)
        if (
            stored is None
            or stored.status != PurchaseStatus.PENDING
            or stored.fulfilling_at != expected
        ):
            return False
        stored.fulfilling_at = at
        stored.updated_at = at
        return True

    async def complete(
        self, purchase_reference: str, amount: Decimal, at: datetime, claimed_at: datetime
    ) -> bool:
        stored = self._by_reference.get(purchase_reference)
        if (
            stored is None
            or stored.status != PurchaseStatus.PENDING
            or stored.fulfilling_at != claimed_at
        ):
            return False
        stored.status = PurchaseStatus.COMPLETED
        stored.amount = amount
        stored.completed_at = at
        stored.updated_at = at
        return True

    async def mark_failed(self, purchase_reference: str, reason: str, at: datetime) -> bool:
        stored = self._by_reference.get(purchase_reference)
        if (
            stored is None
            or stored.status != PurchaseStatus.PENDING
            or stored.fulfilling_at is not None
        ):
            return False
        stored.status = PurchaseStatus.FAILED
        stored.failure_reason = reason
        stored.updated_at = at
        return True

    async def index(self, purchase: Purchase) -> None:
        self._by_user.setdefault(purchase.user_id, {})[purchase.purchase_reference] = _copy(
            purchase
        )

    async def list_by_user(
        self, user_id: UUID, course_id: UUID | None = None
    ) -> list[Purchase]:
        return [
            _copy(p)
            for p in self._by_user.get(user_id, {}).values()
            if course_id is None or p.course_id == course_id
        ]


def _copy(purchase: Purchase) -> Purchase:
    return Purchase(**vars(purchase))
