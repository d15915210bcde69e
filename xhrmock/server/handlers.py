"""Request handler variants used by MockXhrServer routes."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional, Union

from xhrmock.request.mock_request import MockXhrRequest
from xhrmock.types import FixedResponseDict


@dataclass(frozen=True)
class FixedResponse:
    """Respond with the same status, headers and body every time."""

    status: Optional[int] = None
    headers: Optional[Mapping[str, str]] = None
    body: Any = None
    status_text: Optional[str] = None


@dataclass(frozen=True)
class CallbackHandler:
    """Hand the request to a callable that responds to it."""

    callback: Callable[[MockXhrRequest], Any]


@dataclass(frozen=True)
class NetworkErrorHandler:
    """Fail the request with a network error."""


@dataclass(frozen=True)
class TimeoutHandler:
    """
    Time the request out right away, whether or not timeouts are enabled.

    The request's ``timeout`` attribute must be set: with a timeout of 0 the
    request raises MockUsageError.
    """


Handler = Union[FixedResponse, CallbackHandler, NetworkErrorHandler, TimeoutHandler]

SingleHandlerLike = Union[
    Handler,
    FixedResponseDict,
    Callable[[MockXhrRequest], Any],
    Literal['error', 'timeout'],
]
HandlerLike = Union[SingleHandlerLike, Sequence[SingleHandlerLike]]


def as_handler(value: SingleHandlerLike) -> Handler:
    """
    Coerce a handler shorthand into a handler variant.

    Args:
        value: A handler variant, a dict of FixedResponse fields, a callable
            taking the request, ``'error'`` or ``'timeout'``.

    Returns:
        The matching handler variant.

    Raises:
        TypeError: The value is not a supported handler.
    """
    if isinstance(value, (FixedResponse, CallbackHandler, NetworkErrorHandler, TimeoutHandler)):
        return value
    if value == 'error':
        return NetworkErrorHandler()
    if value == 'timeout':
        return TimeoutHandler()
    if isinstance(value, Mapping):
        return FixedResponse(**value)
    if callable(value):
        return CallbackHandler(value)
    raise TypeError(f'Unsupported request handler: {value!r}')


def as_handlers(value: HandlerLike) -> tuple[Handler, ...]:
    """
    Coerce a handler or a list of handlers.

    Raises:
        ValueError: The list is empty.
    """
    if isinstance(value, (list, tuple)):
        if not value:
            raise ValueError('A handler list needs at least one handler')
        return tuple(as_handler(item) for item in value)
    return (as_handler(value),)
