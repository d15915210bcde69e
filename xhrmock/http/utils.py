"""HTTP grammar checks, method and header policies, and body size helpers."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Optional

from xhrmock.body import Blob, FormData
from xhrmock.constants import FORM_DATA_CONTENT_TYPE, TEXT_CONTENT_TYPE

HTTP_WHITESPACE = ' \t\r\n'

_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

# https://fetch.spec.whatwg.org/#forbidden-request-header
_FORBIDDEN_REQUEST_HEADERS = (
    'Accept-Charset',
    'Accept-Encoding',
    'Access-Control-Request-Headers',
    'Access-Control-Request-Method',
    'Connection',
    'Content-Length',
    'Cookie',
    'Cookie2',
    'Date',
    'DNT',
    'Expect',
    'Host',
    'Keep-Alive',
    'Origin',
    'Referer',
    'TE',
    'Trailer',
    'Transfer-Encoding',
    'Upgrade',
    'Via',
)
_FORBIDDEN_REQUEST_HEADER_RE = re.compile(
    rf'^({"|".join(_FORBIDDEN_REQUEST_HEADERS)}|Proxy-.*|Sec-.*)$', re.IGNORECASE
)

_FORBIDDEN_METHOD_RE = re.compile(r'^(CONNECT|TRACE|TRACK)$', re.IGNORECASE)

UPPER_CASE_METHODS = ('DELETE', 'GET', 'HEAD', 'OPTIONS', 'POST', 'PUT')
_UPPER_CASE_METHOD_RE = re.compile(rf'^({"|".join(UPPER_CASE_METHODS)})$', re.IGNORECASE)

# Reason phrases from RFC 7231 §6.1, RFC 4918, RFC 5842, RFC 6585 and RFC 7538
STATUS_TEXTS: dict[int, str] = {
    100: 'Continue',
    101: 'Switching Protocols',
    200: 'OK',
    201: 'Created',
    202: 'Accepted',
    203: 'Non-Authoritative Information',
    204: 'No Content',
    205: 'Reset Content',
    206: 'Partial Content',
    207: 'Multi-Status',
    208: 'Already Reported',
    300: 'Multiple Choices',
    301: 'Moved Permanently',
    302: 'Found',
    303: 'See Other',
    304: 'Not Modified',
    305: 'Use Proxy',
    307: 'Temporary Redirect',
    308: 'Permanent Redirect',
    400: 'Bad Request',
    401: 'Unauthorized',
    402: 'Payment Required',
    403: 'Forbidden',
    404: 'Not Found',
    405: 'Method Not Allowed',
    406: 'Not Acceptable',
    407: 'Proxy Authentication Required',
    408: 'Request Timeout',
    409: 'Conflict',
    410: 'Gone',
    411: 'Length Required',
    412: 'Precondition Failed',
    413: 'Payload Too Large',
    414: 'URI Too Long',
    415: 'Unsupported Media Type',
    416: 'Range Not Satisfiable',
    417: 'Expectation Failed',
    422: 'Unprocessable Entity',
    423: 'Locked',
    424: 'Failed Dependency',
    426: 'Upgrade Required',
    428: 'Precondition Required',
    429: 'Too Many Requests',
    431: 'Request Header Fields Too Large',
    500: 'Internal Server Error',
    501: 'Not Implemented',
    502: 'Bad Gateway',
    503: 'Service Unavailable',
    504: 'Gateway Timeout',
    505: 'HTTP Version Not Supported',
    507: 'Insufficient Storage',
    511: 'Network Authentication Required',
}

UNKNOWN_STATUS_TEXT = 'Unknown Status'


def is_token(value: Any) -> bool:
    """Whether ``value`` is an RFC 7230 token."""
    return isinstance(value, str) and _TOKEN_RE.match(value) is not None


def is_request_method(method: Any) -> bool:
    """Whether ``method`` is syntactically a valid HTTP method."""
    return is_token(method)


def is_header_name(name: Any) -> bool:
    """Whether ``name`` is syntactically a valid HTTP header name."""
    return is_token(name)


def is_header_value(value: Any) -> bool:
    """
    Whether ``value`` is a valid, already normalized, HTTP header value.

    A header value has no leading or trailing HTTP whitespace and contains
    no NUL, CR or LF.
    """
    if not isinstance(value, str):
        return False
    if value != value.strip(HTTP_WHITESPACE):
        return False
    return not any(char in value for char in '\0\r\n')


def is_request_method_forbidden(method: str) -> bool:
    """
    See https://fetch.spec.whatwg.org/#forbidden-method

    Args:
        method: HTTP method name.

    Returns:
        Whether XMLHttpRequest must refuse the method.
    """
    return _FORBIDDEN_METHOD_RE.match(method) is not None


def is_request_header_forbidden(name: str) -> bool:
    """
    See https://fetch.spec.whatwg.org/#forbidden-header-name

    Args:
        name: Header name.

    Returns:
        Whether setRequestHeader() must silently drop the header.
    """
    return _FORBIDDEN_REQUEST_HEADER_RE.match(name) is not None


def normalize_http_method_name(method: str) -> str:
    """Upper-case the standard methods; every other method keeps its casing."""
    if _UPPER_CASE_METHOD_RE.match(method):
        return method.upper()
    return method


def get_status_text(status: int) -> str:
    """Return the reason phrase for ``status``, or ``'Unknown Status'``."""
    return STATUS_TEXTS.get(status, UNKNOWN_STATUS_TEXT)


def is_form_data(body: Any) -> bool:
    """Whether ``body`` should be treated as multipart form data."""
    return isinstance(body, FormData) or type(body).__name__ == 'FormData'


def get_body_byte_size(body: Any) -> int:
    """
    Compute the byte size of a request or response body.

    Strings count their UTF-8 encoded length. Form data only sums the sizes of
    its values; the multipart framing is not reproduced, so the result is a
    floor for the real request body size.

    Args:
        body: str, bytes-like, Blob-like, FormData or None.

    Returns:
        Body size in bytes, 0 for unknown body types.
    """
    if body is None:
        return 0
    if isinstance(body, str):
        return _string_byte_length(body)
    if isinstance(body, (bytes, bytearray)):
        return len(body)
    if isinstance(body, memoryview):
        return body.nbytes
    if is_form_data(body):
        return sum(_form_value_size(value) for value in body.values())

    size = body.get('size') if isinstance(body, Mapping) else getattr(body, 'size', None)
    if isinstance(size, int) and not isinstance(size, bool):
        return size
    return 0


def extract_content_type(body: Any) -> Optional[str]:
    """
    Content type implied by a request body.

    See https://fetch.spec.whatwg.org/#concept-bodyinit-extract

    Returns:
        The MIME type, or None when the body does not imply one.
    """
    if isinstance(body, str):
        return TEXT_CONTENT_TYPE
    if is_form_data(body):
        return FORM_DATA_CONTENT_TYPE

    mime_type = body.get('type') if isinstance(body, Mapping) else getattr(body, 'type', None)
    if isinstance(mime_type, str) and mime_type:
        return mime_type
    return None


def _form_value_size(value: Any) -> int:
    if isinstance(value, Blob):
        return value.size
    size = getattr(value, 'size', None)
    if isinstance(size, int) and size:
        return size
    return _string_byte_length(str(value))


def _string_byte_length(value: str) -> int:
    return len(value.encode('utf-8', errors='surrogatepass'))
