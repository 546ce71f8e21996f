"""FastAPI dependencies for progress tracking."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ProgressTracker


async def get_progress_tracker(request: Request) -> ProgressTracker:
    """Get progress tracker from app state."""
    tracker = getattr(request.app.state, "progress_tracker", None)
    if tracker is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return tracker


# Type alias for dependency injection
ProgressTrackerDep = Annotated[ProgressTracker, Depends(get_progress_tracker)]
