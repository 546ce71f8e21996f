"""FastAPI dependencies for purchases."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import PurchaseCoordinator


async def get_purchase_coordinator(request: Request) -> PurchaseCoordinator:
    """Get purchase coordinator from app state."""
    coordinator = getattr(request.app.state, "purchase_coordinator", None)
    if coordinator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Purchase service not available",
        )
    return coordinator


PurchaseCoordinatorDep = Annotated[PurchaseCoordinator, Depends(get_purchase_coordinator)]
