"""Per-request identifiers that every log line picks up.

The logging processor merges ``get_context()`` into each event, so code deep
in a service never has to pass request or purchase ids around. Payment
events bind the purchase reference, which ties fulfillment logs to the
provider transaction that triggered them.
"""

from contextvars import ContextVar, Token
from uuid import UUID, uuid4


request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
purchase_reference_var: ContextVar[str | None] = ContextVar(
    "purchase_reference", default=None
)

# Log field name -> variable, in the order fields appear in log output
_LOG_FIELDS: dict[str, ContextVar[str | None]] = {
    "request_id": request_id_var,
    "trace_id": trace_id_var,
    "user_id": user_id_var,
    "purchase_reference": purchase_reference_var,
}


def get_request_id() -> str:
    return request_id_var.get() or ""


def set_request_id(request_id: str | None = None) -> str:
    """Bind the caller's request id, or a fresh one, and return it."""
    rid = request_id or str(uuid4())
    request_id_var.set(rid)
    return rid


def set_user_id(user_id: str | UUID | None) -> None:
    user_id_var.set(None if user_id is None else str(user_id))


def get_user_id() -> str | None:
    return user_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    trace_id_var.set(trace_id)


def get_purchase_reference() -> str | None:
    return purchase_reference_var.get()


def get_context() -> dict[str, str]:
    """Bound identifiers, skipping unset ones."""
    return {name: value for name, var in _LOG_FIELDS.items() if (value := var.get())}


def clear_context() -> None:
    """Unbind everything; run when a request finishes."""
    for var in _LOG_FIELDS.values():
        var.set(None)


class PurchaseContext:
    """Bind a purchase reference for the duration of a ``with`` block.

    The previous value is restored on exit, so nesting is safe.
    """

    def __init__(self, purchase_reference: str) -> None:
        self.purchase_reference = purchase_reference
        self._token: Token[str | None] | None = None

    def __enter__(self) -> "PurchaseContext":
        self._token = purchase_reference_var.set(self.purchase_reference)
        return self

    def __exit__(self, *_: object) -> None:
        if self._token is not None:
            purchase_reference_var.reset(self._token)
            self._token = None
