from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from xhrmock.http.headers import HeadersContainer
from xhrmock.request.request_data import RequestData


class ResponseReceiver(Protocol):
    """Mock-response methods a request mock exposes to MockXhrRequest."""

    def upload_progress(self, request: RequestData, transmitted: int) -> None: ...

    def set_response_headers(
        self,
        request: RequestData,
        status: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
        status_text: Optional[str] = None,
    ) -> None: ...

    def download_progress(self, request: RequestData, transmitted: int, length: int) -> None: ...

    def set_response_body(self, request: RequestData, body: Any = None) -> None: ...

    def set_network_error(self, request: RequestData) -> None: ...

    def set_request_timeout(self, request: RequestData) -> None: ...


class MockXhrRequest:
    """
    A request produced by MockXhr.send() and the methods to respond to it.

    Each send() on a MockXhr creates a new MockXhrRequest. When several of them
    exist for the same MockXhr, only responses to the latest one have an
    effect; the others are silently ignored.
    """

    def __init__(self, request_data: RequestData, response_receiver: ResponseReceiver):
        self._request_data = request_data
        self._response_receiver = response_receiver

    @property
    def request_data(self) -> RequestData:
        return self._request_data

    @property
    def request_headers(self) -> HeadersContainer:
        """Copy of the request headers."""
        return self._request_data.request_headers

    @property
    def method(self) -> str:
        return self._request_data.method

    @property
    def url(self) -> str:
        return self._request_data.url

    @property
    def body(self) -> Any:
        return self._request_data.body

    @property
    def with_credentials(self) -> bool:
        return self._request_data.with_credentials

    def get_request_body_size(self) -> int:
        return self._request_data.get_request_body_size()

    def upload_progress(self, transmitted: int) -> None:
        """
        Fire a request upload progress event.

        Args:
            transmitted: Bytes transmitted so far.
        """
        self._response_receiver.upload_progress(self._request_data, transmitted)

    def respond(
        self,
        status: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
        status_text: Optional[str] = None,
    ) -> None:
        """
        Set the response headers and body. Changes the request's ready state to DONE.

        Args:
            status: HTTP status, 200 when omitted.
            headers: Response headers.
            body: Response body.
            status_text: Reason phrase, derived from ``status`` when omitted.
        """
        self.set_response_headers(status, headers, status_text)
        self.set_response_body(body)

    def set_response_headers(
        self,
        status: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
        status_text: Optional[str] = None,
    ) -> None:
        """Set the response headers. Changes the request's ready state to HEADERS_RECEIVED."""
        self._response_receiver.set_response_headers(
            self._request_data, status, headers, status_text
        )

    def download_progress(self, transmitted: int, length: int) -> None:
        """Fire a response progress event. Changes the request's ready state to LOADING."""
        self._response_receiver.download_progress(self._request_data, transmitted, length)

    def set_response_body(self, body: Any = None) -> None:
        """Set the response body. Changes the request's ready state to DONE."""
        self._response_receiver.set_response_body(self._request_data, body)

    def set_network_error(self) -> None:
        self._response_receiver.set_network_error(self._request_data)

    def set_request_timeout(self) -> None:
        self._response_receiver.set_request_timeout(self._request_data)

    def __repr__(self) -> str:
        return f'MockXhrRequest({self.method!r}, {self.url!r})'
