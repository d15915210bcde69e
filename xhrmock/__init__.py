"""
Deterministic mock of the browser's XMLHttpRequest for testing code that
makes HTTP requests without a network.
"""

from xhrmock.body import Blob, FormData
from xhrmock.config import XhrConfig
from xhrmock.constants import ReadyState
from xhrmock.events import ListenerOptions, XhrEvent, XhrEventTarget, XhrProgressEvent
from xhrmock.exceptions import (
    DOMException,
    InvalidStateError,
    MockUsageError,
    NotSupportedError,
    SecurityError,
    XhrMockException,
    XhrSyntaxError,
)
from xhrmock.factories import new_mock_xhr, new_server
from xhrmock.http import HeadersContainer
from xhrmock.request import MockXhrRequest, RequestData
from xhrmock.scheduler import AsyncioTaskQueue, TaskQueue
from xhrmock.server import (
    CallbackHandler,
    FixedResponse,
    MockXhrServer,
    NetworkErrorHandler,
    TimeoutHandler,
)
from xhrmock.xhr import MockXhr, MockXhrFactory

__all__ = [
    'AsyncioTaskQueue',
    'Blob',
    'CallbackHandler',
    'DOMException',
    'FixedResponse',
    'FormData',
    'HeadersContainer',
    'InvalidStateError',
    'ListenerOptions',
    'MockUsageError',
    'MockXhr',
    'MockXhrFactory',
    'MockXhrRequest',
    'MockXhrServer',
    'NetworkErrorHandler',
    'NotSupportedError',
    'ReadyState',
    'RequestData',
    'SecurityError',
    'TaskQueue',
    'TimeoutHandler',
    'XhrConfig',
    'XhrEvent',
    'XhrEventTarget',
    'XhrMockException',
    'XhrProgressEvent',
    'XhrSyntaxError',
    'new_mock_xhr',
    'new_server',
]
