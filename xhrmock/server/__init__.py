"""Route matching mock server answering MockXhr requests."""

from .handlers import (
    CallbackHandler,
    FixedResponse,
    NetworkErrorHandler,
    TimeoutHandler,
    as_handler,
)
from .server import MockXhrServer

__all__ = [
    'CallbackHandler',
    'FixedResponse',
    'MockXhrServer',
    'NetworkErrorHandler',
    'TimeoutHandler',
    'as_handler',
]
