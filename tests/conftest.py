"""Shared fixtures.

The environment is switched to ``testing`` before the application is
imported so the app wires in-memory repositories instead of Cassandra.
"""

import os
import tempfile
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest


os.environ["ENVIRONMENT"] = "testing"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="learnhub-logs-")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["PAYMENT_EVENTS_API_KEY"] = "test-payment-events-key"

from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from learnhub.config import get_settings  # noqa: E402
from learnhub.courses.models import Course, Lecture  # noqa: E402
from learnhub.courses.repository import InMemoryCourseRepository  # noqa: E402
from learnhub.courses.service import CourseCatalog  # noqa: E402
from learnhub.enrollments.repository import InMemoryEnrollmentRepository  # noqa: E402
from learnhub.enrollments.service import EnrollmentLedger  # noqa: E402
from learnhub.progress.repository import InMemoryProgressRepository  # noqa: E402
from learnhub.progress.service import ProgressTracker  # noqa: E402
from learnhub.purchases.repository import InMemoryPurchaseRepository  # noqa: E402
from learnhub.purchases.service import PurchaseCoordinator  # noqa: E402


PAYMENT_EVENTS_KEY = "test-payment-events-key"


def seed_course(
    repository: InMemoryCourseRepository,
    lectures: int = 4,
    price: Decimal = Decimal("499.00"),
) -> Course:
    """Add a published course with ``lectures`` lectures."""
    course = repository.add_course(
        Course(course_id=uuid4(), title="Python Basics", price=price, is_published=True)
    )
    for position in range(lectures):
        repository.add_lecture(
            Lecture(
                lecture_id=uuid4(),
                course_id=course.course_id,
                title=f"Lecture {position + 1}",
                duration=Decimal("600"),
                position=position,
            )
        )
    return course


# ==============================================================================
# Services over in-memory repositories
# ==============================================================================


@pytest.fixture
def course_repository() -> InMemoryCourseRepository:
    return InMemoryCourseRepository()


@pytest.fixture
def course(course_repository: InMemoryCourseRepository) -> Course:
    """Course with four lectures."""
    return seed_course(course_repository)


@pytest.fixture
def catalog(course_repository: InMemoryCourseRepository) -> CourseCatalog:
    return CourseCatalog(course_repository)


@pytest.fixture
def enrollment_repository() -> InMemoryEnrollmentRepository:
    return InMemoryEnrollmentRepository()


@pytest.fixture
def ledger(
    enrollment_repository: InMemoryEnrollmentRepository, catalog: CourseCatalog
) -> EnrollmentLedger:
    return EnrollmentLedger(enrollment_repository, catalog)


@pytest.fixture
def progress_repository() -> InMemoryProgressRepository:
    return InMemoryProgressRepository()


@pytest.fixture
def tracker(
    progress_repository: InMemoryProgressRepository, catalog: CourseCatalog
) -> ProgressTracker:
    return ProgressTracker(progress_repository, catalog)


@pytest.fixture
def purchase_repository() -> InMemoryPurchaseRepository:
    return InMemoryPurchaseRepository()


@pytest.fixture
def coordinator(
    purchase_repository: InMemoryPurchaseRepository,
    catalog: CourseCatalog,
    ledger: EnrollmentLedger,
) -> PurchaseCoordinator:
    return PurchaseCoordinator(purchase_repository, catalog, ledger)


@pytest.fixture
def user_id() -> UUID:
    """Test user ID."""
    return uuid4()


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client with the lifespan run (in-memory services wired)."""
    from learnhub.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def api_course(client: TestClient) -> Course:
    """Course seeded into the running app's repository."""
    return seed_course(client.app.state.course_repository)


def make_access_token(user_id: UUID, expires_in: timedelta = timedelta(minutes=15)) -> str:
    settings = get_settings()
    now = datetime.now(UTC)
    return jwt.encode(
        {"sub": str(user_id), "type": "access", "iat": now, "exp": now + expires_in},
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


@pytest.fixture
def auth_headers(user_id: UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_access_token(user_id)}"}


@pytest.fixture
def token_for():
    """Factory for bearer headers of arbitrary users."""

    def _headers(uid: UUID) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_access_token(uid)}"}

    return _headers


@pytest.fixture
def events_headers() -> dict[str, str]:
    """Headers the payment integration sends with verified events."""
    return {"X-API-Key": PAYMENT_EVENTS_KEY}
