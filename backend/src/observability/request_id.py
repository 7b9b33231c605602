"""Request ID management for log correlation.

Every exposed operation runs inside a request context so all log lines of one
invocation, including those emitted from embedding worker threads, share an id.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Current request ID, or "no-request-id" outside a request context."""
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


@contextmanager
def request_context(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request ID for the duration of the block.

    An ID already bound by the caller (e.g. an upstream gateway) is kept.

    Example:
        with request_context() as rid:
            search_by_text(db, requester, "blue shoes")
    """
    current = request_id_var.get()
    if current and request_id is None:
        yield current
        return

    token = request_id_var.set(request_id or generate_request_id())
    try:
        yield request_id_var.get()
    finally:
        request_id_var.reset(token)
