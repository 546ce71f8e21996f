# Core infrastructure
from learnhub.core.context import (
    PurchaseContext,
    clear_context,
    get_context,
    get_request_id,
    set_request_id,
    set_user_id,
)
from learnhub.core.errors import (
    ConflictError,
    DomainError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from learnhub.core.logging import configure_structlog, get_logger


__all__ = [
    "ConflictError",
    "DomainError",
    "InvalidStateError",
    "NotFoundError",
    "PurchaseContext",
    "ValidationError",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "set_request_id",
    "set_user_id",
]
