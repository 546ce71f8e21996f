"""FastAPI dependencies for caller identity.

Provides:
- Current user id extraction from a bearer access token
- API key check for the payment integration posting verified events
"""

import secrets
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from learnhub.auth.security import decode_access_token
from learnhub.config.settings import get_settings
from learnhub.core.context import set_user_id


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_user_id(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> UUID:
    """Get the authenticated user's id from the access token.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
        user_id = UUID(str(payload["sub"]))
    except (JWTError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    # Set user_id in context for logging
    set_user_id(user_id)
    return user_id


CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]


async def verify_payment_events_key(request: Request) -> None:
    """Verify the X-API-Key header of the payment integration.

    The integration has already verified the provider's webhook signature;
    this key only proves the event comes from that integration.

    Raises:
        HTTPException(401): If API key is missing
        HTTPException(403): If API key is invalid
        HTTPException(503): If API key is not configured
    """
    settings = get_settings()
    if not settings.payment_events_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment events are not configured",
        )

    api_key = request.headers.get("X-API-Key")
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key not provided",
        )

    # Compared as bytes; str comparison raises on non-ASCII input
    if not secrets.compare_digest(
        api_key.encode(), settings.payment_events_api_key.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )


PaymentEventsKey = Depends(verify_payment_events_key)
