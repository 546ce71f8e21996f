"""FastAPI dependencies for enrollments."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import EnrollmentLedger


async def get_enrollment_ledger(request: Request) -> EnrollmentLedger:
    """Get enrollment ledger from app state."""
    ledger = getattr(request.app.state, "enrollment_ledger", None)
    if ledger is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Enrollment service not available",
        )
    return ledger


EnrollmentLedgerDep = Annotated[EnrollmentLedger, Depends(get_enrollment_ledger)]
