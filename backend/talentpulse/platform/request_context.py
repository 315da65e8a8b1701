from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def set_request_id(request_id: str):
    return _request_id_ctx.set(request_id)


def reset_request_id(token) -> None:
    _request_id_ctx.reset(token)


def get_request_id() -> Optional[str]:
    return _request_id_ctx.get()


@contextmanager
def bound_request_id(request_id: Optional[str]) -> Iterator[None]:
    """Tag log records emitted inside the block with ``request_id``.

    Celery workers use this so a PDF job's logs carry the id of the API
    request that queued it.
    """
    if not request_id:
        yield
        return
    token = set_request_id(request_id)
    try:
        yield
    finally:
        reset_request_id(token)
