from enum import IntEnum
from typing import Literal


class ReadyState(IntEnum):
    """Coarse lifecycle phase of a request (the ``readyState`` attribute)."""

    UNSENT = 0
    OPENED = 1
    HEADERS_RECEIVED = 2
    LOADING = 3
    DONE = 4


XhrProgressEventName = Literal[
    'loadstart',
    'progress',
    'abort',
    'error',
    'load',
    'timeout',
    'loadend',
]

XHR_PROGRESS_EVENT_NAMES: tuple[XhrProgressEventName, ...] = (
    'loadstart',
    'progress',
    'abort',
    'error',
    'load',
    'timeout',
    'loadend',
)

READY_STATE_CHANGE = 'readystatechange'

RESPONSE_TYPES = frozenset({'', 'arraybuffer', 'blob', 'document', 'json', 'text'})

FORM_DATA_CONTENT_TYPE = 'multipart/form-data; boundary=-----MockXhr1234'
TEXT_CONTENT_TYPE = 'text/plain;charset=UTF-8'
