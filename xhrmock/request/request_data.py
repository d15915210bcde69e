from __future__ import annotations

from typing import Any

from xhrmock.http.headers import HeadersContainer
from xhrmock.http.utils import get_body_byte_size


class RequestData:
    """
    Request parameters captured by MockXhr.send().

    Each accepted send() creates a new instance and the request mock compares
    instances by identity: a response given through a RequestData that is no
    longer current is ignored.
    """

    __slots__ = ('_request_headers', '_method', '_url', '_body', '_credentials_mode')

    def __init__(
        self,
        request_headers: HeadersContainer,
        method: str,
        url: str,
        body: Any = None,
        credentials_mode: bool = False,
    ):
        self._request_headers = HeadersContainer(request_headers)
        self._method = method
        self._url = url
        self._body = body
        self._credentials_mode = credentials_mode

    @property
    def request_headers(self) -> HeadersContainer:
        """Copy of the request headers."""
        return HeadersContainer(self._request_headers)

    @property
    def method(self) -> str:
        return self._method

    @property
    def url(self) -> str:
        return self._url

    @property
    def body(self) -> Any:
        return self._body

    @property
    def with_credentials(self) -> bool:
        return self._credentials_mode

    def get_request_body_size(self) -> int:
        """
        Return the request body's total byte size.

        For a FormData body this is a floor value: the multipart encoding is
        not reproduced. It is still enough to simulate upload progress events.
        """
        return get_body_byte_size(self._body)

    def __repr__(self) -> str:
        return f'RequestData({self._method!r}, {self._url!r})'
