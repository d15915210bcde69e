"""
XMLHttpRequest mock for testing.

Based on https://xhr.spec.whatwg.org (version '18 August 2020').

Supports:
    - Events and states
    - open(), set_request_header(), send() and abort()
    - Upload and download progress events
    - Response status, status text, headers and body
    - The timeout attribute (can be disabled)
    - Simulating a network error (see set_network_error())
    - Simulating a request timeout (see set_request_timeout())

Partial support:
    - override_mime_type() raises when required, but has no other effect.
    - response_type: '', 'text' and 'json' are fully supported. The other values
      return the response body as given to set_response_body().
    - response_url is not set after redirects. A request handler can set it.

Not supported:
    - Synchronous requests (``async_=False`` in open())
    - Parsing the request URL in open()
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from xhrmock.config import OnCreateCallback, OnSendCallback, XhrConfig
from xhrmock.constants import READY_STATE_CHANGE, RESPONSE_TYPES, ReadyState, XhrProgressEventName
from xhrmock.events.event import XhrEvent, XhrProgressEvent
from xhrmock.events.target import XhrEventTarget, property_handler
from xhrmock.exceptions import (
    InvalidStateError,
    MockUsageError,
    NotSupportedError,
    SecurityError,
    XhrSyntaxError,
)
from xhrmock.http.headers import HeadersContainer
from xhrmock.http.utils import (
    HTTP_WHITESPACE,
    extract_content_type,
    get_body_byte_size,
    get_status_text,
    is_header_name,
    is_header_value,
    is_request_header_forbidden,
    is_request_method,
    is_request_method_forbidden,
    normalize_http_method_name,
)
from xhrmock.request.mock_request import MockXhrRequest
from xhrmock.request.request_data import RequestData
from xhrmock.scheduler import Scheduler, TaskHandle

logger = logging.getLogger(__name__)


@dataclass
class MockXhrResponse:
    status: int
    status_message: str
    headers: HeadersContainer = field(default_factory=HeadersContainer)
    body: Any = None
    is_error: bool = False

    @classmethod
    def network_error(cls) -> MockXhrResponse:
        return cls(status=0, status_message='', is_error=True)


class MockXhr(XhrEventTarget):
    """
    Mock of the browser's XMLHttpRequest object.

    Requests never leave the process. Code under test drives the object through
    its public API (open(), send(), ...), and the test responds through the
    MockXhrRequest handed to the send hooks (or ``current_request``).
    """

    UNSENT = ReadyState.UNSENT
    OPENED = ReadyState.OPENED
    HEADERS_RECEIVED = ReadyState.HEADERS_RECEIVED
    LOADING = ReadyState.LOADING
    DONE = ReadyState.DONE

    onreadystatechange = property_handler(READY_STATE_CHANGE)

    def __init__(self, config: Optional[XhrConfig] = None):
        """
        Args:
            config: Shared settings and hooks. A private config is created when
                omitted.
        """
        super().__init__()
        self._config = config if config is not None else XhrConfig()
        self._request_headers = HeadersContainer()
        self._method: Optional[str] = None
        self._url: Optional[str] = None
        self._ready_state = ReadyState.UNSENT
        self._timeout = 0
        self._with_credentials = False
        self._current_request: Optional[MockXhrRequest] = None
        self._upload = XhrEventTarget(self)
        self.response_url = ''
        self._response_type = ''
        self._response = MockXhrResponse.network_error()
        self._send_flag = False
        self._upload_listener_flag = False
        self._upload_complete_flag = False
        self._timed_out_flag = False
        self._timeout_reference = 0.0
        self._timeout_task: Optional[TaskHandle] = None

        self.timeout_enabled = True
        """Per-instance switch for the effects of the timeout attribute."""
        self.on_send: Optional[OnSendCallback] = None
        """Per-instance send hook, called after the config's hooks."""

        for hook in self._config.on_create_hooks():
            hook(self)

    @property
    def config(self) -> XhrConfig:
        return self._config

    @property
    def scheduler(self) -> Scheduler:
        return self._config.get_scheduler()

    @property
    def current_request(self) -> Optional[MockXhrRequest]:
        """Request of the send() in flight, None when there is none."""
        return self._current_request

    def get_response_headers_hash(self) -> dict[str, str]:
        """Return all response headers as a dict keyed by lower-case name."""
        return self._response.headers.get_hash()

    # ── Mock response API ──

    def upload_progress(self, request: RequestData, transmitted: int) -> None:
        """
        Fire a request upload progress event.

        Args:
            request: Originating request.
            transmitted: Bytes transmitted.

        Raises:
            MockUsageError: The request body was already fully sent.
        """
        if not self._is_current(request):
            return
        if not self._send_flag or self._upload_complete_flag:
            raise MockUsageError('upload_progress() called after the request body was sent.')
        if self._upload_listener_flag:
            self._fire_upload_event('progress', transmitted, get_body_byte_size(request.body))

    def set_response_headers(
        self,
        request: RequestData,
        status: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
        status_text: Optional[str] = None,
    ) -> None:
        """
        Set the response headers. Changes the ready state to HEADERS_RECEIVED.

        Completes the upload first when the request body is still being sent.

        Args:
            request: Originating request.
            status: HTTP status, 200 when omitted.
            headers: Response headers.
            status_text: Reason phrase, looked up from ``status`` when omitted.

        Raises:
            MockUsageError: The response headers were already set.
        """
        if not self._is_current(request):
            return
        if self._ready_state != ReadyState.OPENED or not self._send_flag:
            raise MockUsageError('set_response_headers() called after the response headers.')
        if not self._upload_complete_flag:
            self._request_end_of_body(get_body_byte_size(request.body))
            if not self._is_current(request):
                return
        status = 200 if status is None else status
        status_message = status_text if status_text is not None else get_status_text(status)
        self._process_response(
            MockXhrResponse(status, status_message, HeadersContainer(headers))
        )

    def download_progress(self, request: RequestData, transmitted: int, length: int) -> None:
        """
        Fire a response progress event. Changes the ready state to LOADING.

        Raises:
            MockUsageError: The response headers are not set or the body is complete.
        """
        if not self._is_current(request):
            return
        if self._ready_state not in {ReadyState.HEADERS_RECEIVED, ReadyState.LOADING}:
            raise MockUsageError('download_progress() requires the response headers.')
        self._ready_state = ReadyState.LOADING
        # readystatechange fires on every progress step, as browsers do
        self._fire_ready_state_change()
        self._fire_event('progress', transmitted, length)

    def set_response_body(self, request: RequestData, body: Any = None) -> None:
        """
        Set the response body. Changes the ready state to DONE.

        Sends default "200 OK" headers first if none were set.

        Args:
            request: Originating request.
            body: Response body.

        Raises:
            MockUsageError: The request is not waiting for a response.
        """
        if not self._is_current(request):
            return
        if not self._send_flag or self._ready_state not in {
            ReadyState.OPENED,
            ReadyState.HEADERS_RECEIVED,
            ReadyState.LOADING,
        }:
            raise MockUsageError('set_response_body() called on a completed request.')

        if self._ready_state == ReadyState.OPENED:
            self.set_response_headers(
                request, headers={'content-length': str(get_body_byte_size(body))}
            )
            if not self._is_current(request):
                return

        self._ready_state = ReadyState.LOADING
        self._fire_ready_state_change()
        if not self._is_current(request):
            return

        self._response.body = body
        self._handle_response_end_of_body()

    def set_network_error(self, request: RequestData) -> None:
        """
        Simulate a network error. Changes the ready state to DONE.

        Raises:
            MockUsageError: The request is not in flight.
        """
        if not self._is_current(request):
            return
        if not self._send_flag:
            raise MockUsageError('set_network_error() called on a completed request.')
        logger.debug(f'Network error for {request!r}')
        self._process_response(MockXhrResponse.network_error())

    def set_request_timeout(self, request: RequestData) -> None:
        """
        Simulate a request timeout. Changes the ready state to DONE.

        Raises:
            MockUsageError: The request is not in flight or the timeout attribute is 0.
        """
        if not self._is_current(request):
            return
        if not self._send_flag:
            raise MockUsageError('set_request_timeout() called on a completed request.')
        if self._timeout == 0:
            raise MockUsageError('set_request_timeout() called with the timeout attribute at 0.')
        logger.debug(f'Request timeout for {request!r}')
        self._terminate_request()
        self._timed_out_flag = True
        self._process_response(MockXhrResponse.network_error())

    # ── Request ──

    @property
    def ready_state(self) -> ReadyState:
        return self._ready_state

    def open(self, method: str, url: Any, async_: bool = True) -> None:
        """
        Set the request method and URL.

        See https://xhr.spec.whatwg.org/#the-open()-method

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Request URL, converted with ``str()``.
            async_: Only True is supported.

        Raises:
            NotSupportedError: ``async_`` is False.
            XhrSyntaxError: ``method`` is not a valid HTTP method.
            SecurityError: ``method`` is forbidden.
        """
        if not async_:
            raise NotSupportedError('Synchronous requests are not supported.')
        if not is_request_method(method):
            raise XhrSyntaxError(f'Invalid method "{method}".')
        if is_request_method_forbidden(method):
            raise SecurityError(f'Method "{method}" forbidden.')
        method = normalize_http_method_name(method)

        self._terminate_request()

        self._send_flag = False
        self._upload_listener_flag = False
        self._method = method
        self._url = str(url)
        self._request_headers.reset()
        self._response = MockXhrResponse.network_error()
        if self._ready_state != ReadyState.OPENED:
            self._set_ready_state(ReadyState.OPENED)

    def set_request_header(self, name: str, value: str) -> None:
        """
        Add a request header value.

        Forbidden request headers (Cookie, Host, Sec-*, ...) are silently dropped.
        See https://xhr.spec.whatwg.org/#the-setrequestheader()-method

        Raises:
            InvalidStateError: The request is not opened or was already sent.
            XhrSyntaxError: The name or the value is not valid.
        """
        if self._ready_state != ReadyState.OPENED or self._send_flag:
            raise InvalidStateError('set_request_header() requires an opened, unsent request.')
        if not isinstance(name, str) or not isinstance(value, str):
            raise XhrSyntaxError('Header name and value must be strings.')

        value = value.strip(HTTP_WHITESPACE)
        if not is_header_name(name):
            raise XhrSyntaxError(f'Invalid header name "{name}".')
        if not is_header_value(value):
            raise XhrSyntaxError(f'Invalid value for header "{name}".')

        if is_request_header_forbidden(name):
            logger.debug(f'Dropping forbidden request header {name}')
            return
        self._request_headers.add_header(name, value)

    @property
    def timeout(self) -> int:
        """Request timeout in milliseconds, 0 for none."""
        return self._timeout

    @timeout.setter
    def timeout(self, value: int) -> None:
        self._timeout = value
        if self._send_flag:
            self._schedule_request_timeout()

    @property
    def with_credentials(self) -> bool:
        return self._with_credentials

    @with_credentials.setter
    def with_credentials(self, value: bool) -> None:
        if (
            self._ready_state not in {ReadyState.UNSENT, ReadyState.OPENED}
            or self._send_flag
        ):
            raise InvalidStateError('with_credentials can only change before send().')
        self._with_credentials = bool(value)

    @property
    def upload(self) -> XhrEventTarget:
        """Event target for the request body upload."""
        return self._upload

    def send(self, body: Any = None) -> None:
        """
        Initiate the request.

        The send hooks run later, from the scheduler, with the new MockXhrRequest.
        See https://xhr.spec.whatwg.org/#the-send()-method

        Args:
            body: Request body. Ignored for GET and HEAD requests.

        Raises:
            InvalidStateError: The request is not opened or was already sent.
        """
        if self._ready_state != ReadyState.OPENED or self._send_flag:
            raise InvalidStateError('send() requires an opened, unsent request.')
        if self._method in {'GET', 'HEAD'}:
            body = None

        if body is not None and self._request_headers.get_header('Content-Type') is None:
            content_type = extract_content_type(body)
            if content_type is not None:
                self._request_headers.add_header('Content-Type', content_type)

        self._upload_listener_flag = self._upload.has_listeners()
        self._upload_complete_flag = body is None
        self._timed_out_flag = False
        self._send_flag = True

        request = MockXhrRequest(
            RequestData(
                self._request_headers,
                self._method or '',
                self._url or '',
                body,
                self._with_credentials,
            ),
            self,
        )
        self._current_request = request
        logger.debug(f'Sending {request!r}')

        self._fire_event('loadstart', 0, 0)
        if not self._upload_complete_flag and self._upload_listener_flag:
            self._fire_upload_event('loadstart', 0, get_body_byte_size(body))

        # A loadstart listener may have re-opened, aborted or re-sent the request
        if (
            self._ready_state != ReadyState.OPENED
            or not self._send_flag
            or self._current_request is not request
        ):
            return

        self._timeout_reference = self.scheduler.now()
        self._schedule_request_timeout()

        hooks = self._config.on_send_hooks()
        if self.on_send is not None:
            hooks.append(self.on_send)
        for hook in hooks:
            self.scheduler.call_soon(hook, request, self)

    def abort(self) -> None:
        """
        Abort the request.

        See https://xhr.spec.whatwg.org/#the-abort()-method
        """
        self._terminate_request()

        if (
            (self._ready_state == ReadyState.OPENED and self._send_flag)
            or self._ready_state == ReadyState.HEADERS_RECEIVED
            or self._ready_state == ReadyState.LOADING
        ):
            logger.debug('Aborting request in flight')
            self._request_error_steps('abort')

        if self._ready_state == ReadyState.DONE:
            # No readystatechange event is dispatched.
            self._ready_state = ReadyState.UNSENT
            self._response = MockXhrResponse.network_error()

    # ── Response ──

    @property
    def status(self) -> int:
        return self._response.status

    @property
    def status_text(self) -> str:
        return self._response.status_message

    def get_response_header(self, name: str) -> Optional[str]:
        return self._response.headers.get_header(name)

    def get_all_response_headers(self) -> str:
        """
        Return all response headers as one string.

        See https://xhr.spec.whatwg.org/#dom-xmlhttprequest-getallresponseheaders
        """
        return self._response.headers.get_all()

    def override_mime_type(self, mime: str) -> None:
        """Raise when required, no other effect."""
        if self._ready_state in {ReadyState.LOADING, ReadyState.DONE}:
            raise InvalidStateError('override_mime_type() called after the response started.')

    @property
    def response_type(self) -> str:
        return self._response_type

    @response_type.setter
    def response_type(self, value: str) -> None:
        if self._ready_state in {ReadyState.LOADING, ReadyState.DONE}:
            raise InvalidStateError('response_type can only change before the response body.')
        # Browsers ignore unknown values
        if value in RESPONSE_TYPES:
            self._response_type = value

    @property
    def response(self) -> Any:
        """
        The response body, as defined for the current response type.

        See https://xhr.spec.whatwg.org/#the-response-attribute
        """
        if self._response_type in {'', 'text'}:
            if self._ready_state not in {ReadyState.LOADING, ReadyState.DONE}:
                return ''
            return self._response.body if self._response.body is not None else ''

        if self._ready_state != ReadyState.DONE:
            return None

        if self._response_type == 'json':
            if self._response.body is None:
                return None
            try:
                return json.loads(self._response.body)
            except (TypeError, ValueError):
                return None

        return self._response.body

    @property
    def response_text(self) -> Union[str, Any]:
        """
        See https://xhr.spec.whatwg.org/#the-responsetext-attribute

        Raises:
            InvalidStateError: ``response_type`` is not '' or 'text'.
        """
        if self._response_type not in {'', 'text'}:
            raise InvalidStateError('response_text requires a text response type.')
        if self._ready_state not in {ReadyState.LOADING, ReadyState.DONE}:
            return ''
        return self._response.body if self._response.body is not None else ''

    @property
    def response_xml(self) -> Any:
        """
        The body given to set_response_body(); it is not parsed into a document.

        Raises:
            InvalidStateError: ``response_type`` is not '' or 'document'.
        """
        if self._response_type not in {'', 'document'}:
            raise InvalidStateError('response_xml requires a document response type.')
        if self._ready_state != ReadyState.DONE:
            return None
        return self._response.body if self._response.body is not None else ''

    # ── Request and response processing ──

    def _is_current(self, request: RequestData) -> bool:
        if self._current_request is not None and self._current_request.request_data is request:
            return True
        logger.debug(f'Ignoring response to stale request {request!r}')
        return False

    def _request_end_of_body(self, body_size: int) -> None:
        self._upload_complete_flag = True
        # Listeners registered after send() do not enable upload events
        if self._upload_listener_flag:
            self._fire_upload_event('progress', body_size, body_size)
            self._fire_upload_event('load', body_size, body_size)
            self._fire_upload_event('loadend', body_size, body_size)

    def _process_response(self, response: MockXhrResponse) -> None:
        """
        Process response step, run when the response headers are received.

        Later steps are driven by download_progress() and set_response_body().
        """
        self._response = response
        self._handle_response_errors()
        if self._response.is_error:
            return
        self._set_ready_state(ReadyState.HEADERS_RECEIVED)

    def _handle_response_end_of_body(self) -> None:
        self._handle_response_errors()
        if self._response.is_error:
            return
        length = get_body_byte_size(self._response.body)
        self._fire_event('progress', length, length)
        self._ready_state = ReadyState.DONE
        self._send_flag = False
        self._terminate_request()
        self._fire_ready_state_change()
        self._fire_event('load', length, length)
        self._fire_event('loadend', length, length)

    def _handle_response_errors(self) -> None:
        if not self._send_flag:
            return
        if self._timed_out_flag:
            self._request_error_steps('timeout')
        elif self._response.is_error:
            self._request_error_steps('error')

    def _request_error_steps(self, event_type: XhrProgressEventName) -> None:
        """
        Request error steps shared by abort, network error and timeout.

        See https://xhr.spec.whatwg.org/#request-error-steps
        """
        self._ready_state = ReadyState.DONE
        self._send_flag = False
        self._response = MockXhrResponse.network_error()
        self._fire_ready_state_change()
        if not self._upload_complete_flag:
            self._upload_complete_flag = True
            if self._upload_listener_flag:
                self._fire_upload_event(event_type, 0, 0)
                self._fire_upload_event('loadend', 0, 0)
        self._fire_event(event_type, 0, 0)
        self._fire_event('loadend', 0, 0)

    def _terminate_request(self) -> None:
        self._current_request = None
        self._cancel_timeout_task()

    def _set_ready_state(self, state: ReadyState) -> None:
        logger.debug(f'readyState {self._ready_state.name} -> {state.name}')
        self._ready_state = state
        self._fire_ready_state_change()

    def _fire_event(self, event_type: XhrProgressEventName, loaded: int, total: int) -> None:
        self.dispatch_event(XhrProgressEvent(event_type, loaded, total))

    def _fire_upload_event(self, event_type: XhrProgressEventName, loaded: int, total: int) -> None:
        self._upload.dispatch_event(XhrProgressEvent(event_type, loaded, total))

    def _fire_ready_state_change(self) -> None:
        self.dispatch_event(XhrEvent(READY_STATE_CHANGE))

    # ── Timeout ──

    def _timeouts_active(self) -> bool:
        return self.timeout_enabled and self._config.timeouts_enabled()

    def _schedule_request_timeout(self) -> None:
        self._cancel_timeout_task()
        if self._timeout <= 0 or not self._timeouts_active():
            return
        # Measured from send(), see https://xhr.spec.whatwg.org/#the-timeout-attribute
        elapsed = self.scheduler.now() - self._timeout_reference
        delay = max(0, self._timeout - elapsed)
        self._timeout_task = self.scheduler.call_later(
            delay, self._on_timeout, self._current_request
        )
        logger.debug(f'Timeout check scheduled in {delay} ms')

    def _cancel_timeout_task(self) -> None:
        if self._timeout_task is not None:
            self._timeout_task.cancel()
            self._timeout_task = None

    def _on_timeout(self, request: Optional[MockXhrRequest]) -> None:
        self._timeout_task = None
        if self._send_flag and request is not None and self._current_request is request:
            request.set_request_timeout()


class MockXhrFactory:
    """
    Callable creating MockXhr instances that share one XhrConfig.

    Drop-in replacement for the XMLHttpRequest constructor: ``factory()``
    returns a new request mock.
    """

    def __init__(self, config: Optional[XhrConfig] = None):
        self.config = config if config is not None else XhrConfig()

    def __call__(self) -> MockXhr:
        return MockXhr(self.config)

    @property
    def scheduler(self) -> Scheduler:
        return self.config.get_scheduler()

    @property
    def on_create(self) -> Optional[OnCreateCallback]:
        return self.config.on_create

    @on_create.setter
    def on_create(self, hook: Optional[OnCreateCallback]) -> None:
        self.config.on_create = hook

    @property
    def on_send(self) -> Optional[OnSendCallback]:
        return self.config.on_send

    @on_send.setter
    def on_send(self, hook: Optional[OnSendCallback]) -> None:
        self.config.on_send = hook

    @property
    def timeout_enabled(self) -> bool:
        return self.config.timeout_enabled

    @timeout_enabled.setter
    def timeout_enabled(self, enabled: bool) -> None:
        self.config.timeout_enabled = enabled
