from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

import aiofiles

from xhrmock.body import Blob, FormData
from xhrmock.config import XhrConfig
from xhrmock.exceptions import MockUsageError
from xhrmock.http.utils import get_body_byte_size, normalize_http_method_name
from xhrmock.request.mock_request import MockXhrRequest
from xhrmock.scheduler import Scheduler
from xhrmock.server.handlers import (
    CallbackHandler,
    FixedResponse,
    Handler,
    HandlerLike,
    NetworkErrorHandler,
    TimeoutHandler,
    as_handlers,
)
from xhrmock.types import RequestLogEntry, RequestLogExport
from xhrmock.xhr import MockXhr, MockXhrFactory

logger = logging.getLogger(__name__)

UrlMatcher = Union[str, re.Pattern[str], Callable[[str], bool]]

_MISSING = object()


@dataclass
class _Route:
    handlers: tuple[Handler, ...]
    url_matcher: Optional[UrlMatcher] = None
    count: int = 0

    def matches(self, url: str) -> bool:
        matcher = self.url_matcher
        if isinstance(matcher, re.Pattern):
            return matcher.search(url) is not None
        if callable(matcher):
            return bool(matcher(url))
        return matcher == url

    def next_handler(self) -> Handler:
        """Each handler is used once, the last one for every request after that."""
        handler = self.handlers[min(len(self.handlers) - 1, self.count)]
        self.count += 1
        return handler


class MockXhrServer:
    """
    Mock server responding to the requests of MockXhr instances.

    Registers itself as the send hook of its factory's config, then answers
    each request with the handler of the first matching route, or the default
    handler. Requests matching nothing stay unanswered.

    Example:
        server = new_server({'GET': ('/users', {'status': 200, 'body': '[]'})})
        xhr = server.xhr_factory()
        xhr.open('GET', '/users')
        xhr.send()
        server.scheduler.flush()
    """

    def __init__(
        self,
        xhr_factory: Union[MockXhrFactory, XhrConfig, None] = None,
        routes: Optional[Mapping[str, tuple[UrlMatcher, HandlerLike]]] = None,
    ):
        """
        Args:
            xhr_factory: Factory (or config) of the request mocks to serve.
                A new factory is created when omitted.
            routes: Routes keyed by HTTP method, each a (url matcher, handler)
                pair.
        """
        if isinstance(xhr_factory, XhrConfig):
            xhr_factory = MockXhrFactory(xhr_factory)
        self._xhr_factory = xhr_factory if xhr_factory is not None else MockXhrFactory()

        self.progress_rate = 0
        """
        When greater than 0, fixed responses generate upload and download
        progress events in increments of ``progress_rate`` bytes, one step per
        scheduler turn.
        """

        self._requests: list[RequestLogEntry] = []
        self._routes: dict[str, list[_Route]] = {}
        self._default_route: Optional[_Route] = None
        self._saved_namespace: Any = None
        self._saved_attribute = ''
        self._saved_value: Any = _MISSING

        for method, (url_matcher, handler) in (routes or {}).items():
            self.add_handler(method, url_matcher, handler)

        self._xhr_factory.on_send = self._handle_request

    @property
    def xhr_factory(self) -> MockXhrFactory:
        return self._xhr_factory

    @property
    def config(self) -> XhrConfig:
        return self._xhr_factory.config

    @property
    def scheduler(self) -> Scheduler:
        return self._xhr_factory.scheduler

    def install(self, namespace: Any, attribute: str = 'XMLHttpRequest') -> MockXhrServer:
        """
        Replace ``namespace.<attribute>`` by this server's request factory.

        Revert with remove().

        Args:
            namespace: Module or object to patch.
            attribute: Attribute to replace.
        """
        self._saved_namespace = namespace
        self._saved_attribute = attribute
        self._saved_value = getattr(namespace, attribute, _MISSING)
        setattr(namespace, attribute, self._xhr_factory)
        logger.info(f'Mock server installed on {namespace!r}.{attribute}')
        return self

    def remove(self) -> None:
        """
        Revert the changes made by install().

        Raises:
            MockUsageError: install() was not called.
        """
        if self._saved_namespace is None:
            raise MockUsageError('remove() called without a matching install().')

        if self._saved_value is _MISSING:
            delattr(self._saved_namespace, self._saved_attribute)
        else:
            setattr(self._saved_namespace, self._saved_attribute, self._saved_value)
        logger.info(f'Mock server removed from {self._saved_namespace!r}.{self._saved_attribute}')
        self._saved_namespace = None
        self._saved_value = _MISSING

    def disable_timeout(self) -> MockXhrServer:
        """Disable the effects of the timeout attribute on the served requests."""
        self.config.timeout_enabled = False
        return self

    def enable_timeout(self) -> MockXhrServer:
        """Enable the effects of the timeout attribute on the served requests."""
        self.config.timeout_enabled = True
        return self

    def get(self, url_matcher: UrlMatcher, handler: HandlerLike) -> MockXhrServer:
        return self.add_handler('GET', url_matcher, handler)

    def post(self, url_matcher: UrlMatcher, handler: HandlerLike) -> MockXhrServer:
        return self.add_handler('POST', url_matcher, handler)

    def put(self, url_matcher: UrlMatcher, handler: HandlerLike) -> MockXhrServer:
        return self.add_handler('PUT', url_matcher, handler)

    def delete(self, url_matcher: UrlMatcher, handler: HandlerLike) -> MockXhrServer:
        return self.add_handler('DELETE', url_matcher, handler)

    def add_handler(
        self, method: str, url_matcher: UrlMatcher, handler: HandlerLike
    ) -> MockXhrServer:
        """
        Add a route.

        Args:
            method: HTTP method, normalized the way MockXhr.open() does.
            url_matcher: Exact URL, compiled regex (searched) or predicate on the URL.
            handler: Handler, handler shorthand, or list of them. Each handler of
                a list is used once, then the last one is used for every request.
        """
        method = normalize_http_method_name(method)
        self._routes.setdefault(method, []).append(_Route(as_handlers(handler), url_matcher))
        return self

    def set_default_handler(self, handler: HandlerLike) -> MockXhrServer:
        """Set the handler for requests that match no route."""
        self._default_route = _Route(as_handlers(handler))
        return self

    def set_default_404(self) -> MockXhrServer:
        """Respond 404 to requests that match no route."""
        return self.set_default_handler(FixedResponse(status=404))

    def get_request_log(self) -> list[RequestLogEntry]:
        """Return the requests received so far, oldest first."""
        return list(self._requests)

    async def save_request_log(self, path: Union[str, Path]) -> None:
        """
        Save the request log as a JSON file.

        Bodies that are not JSON values are written as text.

        Args:
            path: File path to write the log to.
        """
        export: RequestLogExport = {'version': '1.0', 'requests': self.get_request_log()}
        file_path = Path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(file_path, 'w', encoding='utf-8') as file:
            await file.write(
                json.dumps(export, indent=2, ensure_ascii=False, default=_json_default)
            )
        logger.info(f'Request log saved to: {path} ({len(export["requests"])} requests)')

    def _handle_request(self, request: MockXhrRequest, xhr: Optional[MockXhr] = None) -> None:
        self._requests.append({
            'method': request.method,
            'url': request.url,
            'headers': request.request_headers.get_hash(),
            'body': request.body,
        })

        route = self._find_first_matching_route(request) or self._default_route
        if route is None:
            logger.debug(f'No route for {request.method} {request.url}')
            return

        handler = route.next_handler()
        logger.debug(f'{request.method} {request.url} handled by {type(handler).__name__}')
        if isinstance(handler, CallbackHandler):
            handler.callback(request)
        elif isinstance(handler, NetworkErrorHandler):
            request.set_network_error()
        elif isinstance(handler, TimeoutHandler):
            request.set_request_timeout()
        else:
            self._respond(request, handler)

    def _respond(self, request: MockXhrRequest, response: FixedResponse) -> None:
        headers = dict(response.headers or {})
        response_body_size = get_body_byte_size(response.body)
        if not any(name.upper() == 'CONTENT-LENGTH' for name in headers):
            headers['content-length'] = str(response_body_size)

        if self.progress_rate <= 0:
            request.respond(response.status, headers, response.body, response.status_text)
            return

        scheduler = self.scheduler
        response_transmitted = 0

        def response_phase():
            nonlocal response_transmitted
            if response_transmitted == 0:
                request.set_response_headers(response.status, headers, response.status_text)
            if self.progress_rate <= 0:
                request.set_response_body(response.body)
                return
            next_transmitted = response_transmitted + self.progress_rate
            if next_transmitted < response_body_size:
                response_transmitted = next_transmitted
                request.download_progress(response_transmitted, response_body_size)
                scheduler.call_soon(response_phase)
            else:
                request.set_response_body(response.body)

        request_body_size = request.get_request_body_size()
        if request_body_size == 0:
            response_phase()
            return

        request_transmitted = 0

        def request_phase():
            nonlocal request_transmitted
            if self.progress_rate <= 0:
                request.respond(response.status, headers, response.body, response.status_text)
                return
            next_transmitted = request_transmitted + self.progress_rate
            if next_transmitted < request_body_size:
                request_transmitted = next_transmitted
                request.upload_progress(request_transmitted)
                scheduler.call_soon(request_phase)
            else:
                response_phase()

        request_phase()

    def _find_first_matching_route(self, request: MockXhrRequest) -> Optional[_Route]:
        routes = self._routes.get(normalize_http_method_name(request.method), [])
        return next((route for route in routes if route.matches(request.url)), None)


def _json_default(value: Any) -> Any:
    if isinstance(value, Blob):
        return value.content.decode('utf-8', errors='replace')
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode('utf-8', errors='replace')
    if isinstance(value, FormData):
        return [
            [name, _json_default(item) if isinstance(item, Blob) else item]
            for name, item in value.items()
        ]
    return str(value)
