"""Enrollment ledger: durable user/course access grants."""

from .models import ENROLLMENTS_TABLES_CQL, Enrollment, EnrollResult
from .service import EnrollmentLedger


__all__ = [
    "ENROLLMENTS_TABLES_CQL",
    "EnrollResult",
    "Enrollment",
    "EnrollmentLedger",
]
