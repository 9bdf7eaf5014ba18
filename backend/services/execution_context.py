"""Marks code running inside out-of-band logging or batch work.

The inbound record-change entry point refuses to dispatch while this
marker is set, so work the core does in the background can never feed
back into a new record-change cycle.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_in_async_context: ContextVar[bool] = ContextVar("in_async_context", default=False)


def in_async_context() -> bool:
    """True inside an async logging unit or a historical sync run."""
    return _in_async_context.get()


@contextmanager
def async_context() -> Iterator[None]:
    """Mark the enclosed block as async/batch execution."""
    token = _in_async_context.set(True)
    try:
        yield
    finally:
        _in_async_context.reset(token)
