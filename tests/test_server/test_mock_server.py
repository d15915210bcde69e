"""Tests for xhrmock.server module."""

import json
import re
import types
from unittest.mock import Mock

import pytest

from xhrmock import (
    Blob,
    CallbackHandler,
    FixedResponse,
    MockUsageError,
    MockXhr,
    MockXhrServer,
    NetworkErrorHandler,
    ReadyState,
    TimeoutHandler,
    XhrConfig,
    new_mock_xhr,
)
from xhrmock.server import as_handler


@pytest.fixture
def factory(scheduler):
    return new_mock_xhr(scheduler=scheduler)


@pytest.fixture
def server(factory):
    return MockXhrServer(factory)


def do_request(server, method='GET', url='/path', body=None, headers=None):
    xhr = server.xhr_factory()
    xhr.open(method, url)
    for name, value in (headers or {}).items():
        xhr.set_request_header(name, value)
    xhr.send(body)
    return xhr


def assert_network_error(xhr):
    assert xhr.ready_state == ReadyState.DONE
    assert xhr.status == 0
    assert xhr.response == ''


# ── Handler variants ──────────────────────────────────────────────────


class TestAsHandler:
    """Test handler shorthand coercion."""

    def test_variants_unchanged(self):
        handler = FixedResponse(status=201)
        assert as_handler(handler) is handler

    def test_dict(self):
        handler = as_handler({'status': 201, 'body': 'b', 'status_text': 'Made'})
        assert handler == FixedResponse(status=201, body='b', status_text='Made')

    def test_dict_with_unknown_key(self):
        with pytest.raises(TypeError):
            as_handler({'statusCode': 201})

    def test_callable(self):
        def callback(request):
            return None

        assert as_handler(callback) == CallbackHandler(callback)

    def test_strings(self):
        assert as_handler('error') == NetworkErrorHandler()
        assert as_handler('timeout') == TimeoutHandler()

    def test_unsupported(self):
        with pytest.raises(TypeError):
            as_handler('unknown')


# ── Routing ───────────────────────────────────────────────────────────


class TestRouting:
    """Test route matching."""

    def test_fixed_response(self, server, scheduler):
        server.add_handler('GET', '/path', {
            'status': 201,
            'headers': {'X-Header': 'value'},
            'body': 'body',
            'status_text': 'Made',
        })
        xhr = do_request(server)
        assert xhr.ready_state == ReadyState.OPENED
        scheduler.run_pending()
        assert xhr.ready_state == ReadyState.DONE
        assert xhr.status == 201
        assert xhr.status_text == 'Made'
        assert xhr.response == 'body'
        assert xhr.get_response_headers_hash() == {'x-header': 'value', 'content-length': '4'}

    def test_fixed_response_defaults(self, server, scheduler):
        server.get('/path', {})
        xhr = do_request(server)
        scheduler.run_pending()
        assert xhr.status == 200
        assert xhr.status_text == 'OK'
        assert xhr.get_response_header('content-length') == '0'

    def test_content_length_not_overridden(self, server, scheduler):
        server.get('/path', {'headers': {'Content-Length': '42'}, 'body': 'body'})
        xhr = do_request(server)
        scheduler.run_pending()
        assert xhr.get_response_headers_hash() == {'content-length': '42'}

    def test_routes_in_constructor(self, factory, scheduler):
        server = MockXhrServer(factory, {
            'get': ('/path', {'status': 201}),
            'POST': ('/path', {'status': 202}),
        })
        get_xhr = do_request(server)
        post_xhr = do_request(server, 'POST')
        scheduler.run_pending()
        assert get_xhr.status == 201
        assert post_xhr.status == 202

    def test_routes_from_constructor_and_methods(self, factory, scheduler):
        server = MockXhrServer(factory, {'GET': ('/a', {'status': 201})})
        server.get('/b', {'status': 202})
        first = do_request(server, url='/a')
        second = do_request(server, url='/b')
        scheduler.run_pending()
        assert (first.status, second.status) == (201, 202)

    @pytest.mark.parametrize('method', ['get', 'post', 'put', 'delete'])
    def test_method_helpers(self, server, scheduler, method):
        getattr(server, method)('/path', {'status': 201})
        xhr = do_request(server, method.upper(), body='body')
        scheduler.run_pending()
        assert xhr.status == 201

    def test_method_names_normalized(self, server, scheduler):
        server.add_handler('Delete', '/path', {'status': 201})
        xhr = do_request(server, 'dElEtE')
        scheduler.run_pending()
        assert xhr.status == 201

    def test_custom_method_case_sensitive(self, server, scheduler):
        server.add_handler('PATCH', '/path', {'status': 201})
        xhr = do_request(server, 'patch')
        scheduler.run_pending()
        assert xhr.ready_state == ReadyState.OPENED

    def test_regex_matcher(self, server, scheduler):
        server.get(re.compile(r'/users/\d+'), {'status': 201})
        xhr = do_request(server, url='http://host/users/42?x=1')
        scheduler.run_pending()
        assert xhr.status == 201

    def test_callable_matcher(self, server, scheduler):
        server.get(lambda url: 'object' in url, {'status': 201})
        xhr = do_request(server, url='/my/object/somewhere')
        scheduler.run_pending()
        assert xhr.status == 201

    def test_first_matching_route_wins(self, server, scheduler):
        server.get('/path', {'status': 201})
        server.get('/path', {'status': 202})
        xhr = do_request(server)
        scheduler.run_pending()
        assert xhr.status == 201

    def test_unmatched_request_not_answered(self, server, scheduler):
        server.get('/other', {'status': 201})
        xhr = do_request(server)
        scheduler.run_pending()
        assert xhr.ready_state == ReadyState.OPENED
        assert xhr.current_request is not None

    def test_default_handler(self, server, scheduler):
        server.set_default_handler({'status': 201})
        xhr = do_request(server, url='/anything')
        scheduler.run_pending()
        assert xhr.status == 201

    def test_default_404(self, server, scheduler):
        server.set_default_404()
        xhr = do_request(server)
        scheduler.run_pending()
        assert xhr.status == 404
        assert xhr.status_text == 'Not Found'


class TestHandlers:
    """Test the handler variants."""

    def test_callback(self, server, scheduler):
        callback = Mock(side_effect=lambda request: request.respond(201))
        server.get('/path', callback)
        xhr = do_request(server)
        scheduler.run_pending()
        callback.assert_called_once()
        assert callback.call_args.args[0].url == '/path'
        assert xhr.status == 201

    def test_network_error(self, server, scheduler):
        server.get('/path', 'error')
        xhr = do_request(server)
        on_error = Mock()
        xhr.onerror = on_error
        scheduler.run_pending()
        assert_network_error(xhr)
        on_error.assert_called_once()

    def test_timeout(self, server, scheduler):
        server.get('/path', 'timeout')
        xhr = do_request(server)
        on_timeout = Mock()
        xhr.ontimeout = on_timeout
        xhr.timeout = 10_000
        scheduler.run_pending()
        assert scheduler.now() == 0
        assert_network_error(xhr)
        on_timeout.assert_called_once()

    def test_timeout_with_timeouts_disabled(self, server, scheduler, record_events):
        server.get('/slow', 'timeout').disable_timeout()
        xhr = server.xhr_factory()
        events = record_events(xhr)
        xhr.open('GET', '/slow')
        xhr.timeout = 10
        xhr.send()
        scheduler.advance(1000)
        assert_network_error(xhr)
        assert events[-3:] == ['readystatechange(4)', 'timeout(0,0,False)', 'loadend(0,0,False)']

    def test_timeout_requires_timeout_attribute(self, server, scheduler):
        server.get('/path', 'timeout')
        xhr = do_request(server)
        with pytest.raises(MockUsageError):
            scheduler.run_pending()
        assert xhr.ready_state == ReadyState.OPENED

    def test_default_timeout_handler(self, server, scheduler):
        server.set_default_handler(TimeoutHandler())
        xhr = do_request(server)
        xhr.timeout = 1
        scheduler.run_pending()
        assert_network_error(xhr)

    def test_handler_list(self, server, scheduler):
        response = {
            'status': 201,
            'headers': {'header': '123'},
            'body': 'some body',
            'status_text': 'Status Text',
        }
        server.get('/path', ['timeout', lambda request: request.respond(404), response])
        first = do_request(server)
        on_timeout = Mock()
        first.ontimeout = on_timeout
        first.timeout = 1
        others = [do_request(server) for _ in range(3)]
        scheduler.advance(1)
        on_timeout.assert_called_once()
        assert_network_error(first)
        assert others[0].status == 404
        for xhr in others[1:]:
            assert xhr.status == 201
            assert xhr.status_text == 'Status Text'
            assert xhr.response == 'some body'

    def test_empty_handler_list(self, server):
        with pytest.raises(ValueError):
            server.get('/path', [])


# ── Progress events ───────────────────────────────────────────────────


class TestProgressRate:
    """Test progress events generated by fixed responses."""

    def test_upload_and_download_progress(self, server, scheduler, record_events):
        server.progress_rate = 3
        server.post('/path', {'body': 'response'})
        xhr = server.xhr_factory()
        events = record_events(xhr)
        xhr.open('POST', '/path')
        xhr.send('request body')
        scheduler.run_pending()
        assert events == [
            'readystatechange(1)',
            'loadstart(0,0,False)',
            'upload.loadstart(0,12,True)',
            'upload.progress(3,12,True)',
            'upload.progress(6,12,True)',
            'upload.progress(9,12,True)',
            'upload.progress(12,12,True)',
            'upload.load(12,12,True)',
            'upload.loadend(12,12,True)',
            'readystatechange(2)',
            'readystatechange(3)',
            'progress(3,8,True)',
            'readystatechange(3)',
            'progress(6,8,True)',
            'readystatechange(3)',
            'progress(8,8,True)',
            'readystatechange(4)',
            'load(8,8,True)',
            'loadend(8,8,True)',
        ]

    def test_one_step_per_turn(self, server, scheduler):
        server.progress_rate = 1
        server.get('/path', {'body': 'abc'})
        xhr = do_request(server)
        # send hook, then one task per remaining download step
        assert scheduler.run_pending() == 3
        assert xhr.response == 'abc'

    def test_progress_rate_reset_midway(self, server, scheduler, record_events):
        server.progress_rate = 2
        server.get('/path', {'body': 'abcdefgh'})
        xhr = server.xhr_factory()
        events = record_events(xhr)
        xhr.open('GET', '/path')
        xhr.send()
        xhr.onprogress = lambda event: setattr(server, 'progress_rate', 0)
        scheduler.run_pending()
        assert events[-7:] == [
            'readystatechange(3)',
            'progress(2,8,True)',
            'readystatechange(3)',
            'progress(8,8,True)',
            'readystatechange(4)',
            'load(8,8,True)',
            'loadend(8,8,True)',
        ]
        assert xhr.response == 'abcdefgh'

    def test_abort_during_progress(self, server, scheduler):
        server.progress_rate = 1
        server.get('/path', {'body': 'abcdef'})
        xhr = do_request(server)
        xhr.onprogress = lambda event: xhr.abort()
        scheduler.run_pending()
        assert xhr.ready_state == ReadyState.UNSENT
        assert not scheduler.has_pending()


# ── Request log ───────────────────────────────────────────────────────


class TestRequestLog:
    """Test the request log and its export."""

    def test_log_entries(self, server, scheduler):
        do_request(server, 'POST', '/a', 'body', {'X-Id': '1'})
        do_request(server, 'GET', '/b')
        scheduler.run_pending()
        assert server.get_request_log() == [
            {
                'method': 'POST',
                'url': '/a',
                'headers': {'x-id': '1', 'content-type': 'text/plain;charset=UTF-8'},
                'body': 'body',
            },
            {'method': 'GET', 'url': '/b', 'headers': {}, 'body': None},
        ]

    def test_log_is_a_copy(self, server, scheduler):
        do_request(server)
        scheduler.run_pending()
        server.get_request_log().clear()
        assert len(server.get_request_log()) == 1

    @pytest.mark.asyncio
    async def test_save_request_log(self, server, scheduler, tmp_path):
        do_request(server, 'POST', '/a', Blob(b'blob', 'text/plain'))
        do_request(server, 'GET', '/b')
        scheduler.run_pending()
        path = tmp_path / 'logs' / 'requests.json'
        await server.save_request_log(path)
        saved = json.loads(path.read_text(encoding='utf-8'))
        assert saved['version'] == '1.0'
        assert [entry['url'] for entry in saved['requests']] == ['/a', '/b']
        assert saved['requests'][0]['body'] == 'blob'
        assert saved['requests'][0]['headers'] == {'content-type': 'text/plain'}


# ── Install, remove and timeouts ──────────────────────────────────────


class TestInstall:
    """Test patching a namespace with the server's factory."""

    def test_install_and_remove(self, server):
        original = object()
        namespace = types.SimpleNamespace(XMLHttpRequest=original)
        assert server.install(namespace) is server
        assert namespace.XMLHttpRequest is server.xhr_factory
        assert isinstance(namespace.XMLHttpRequest(), MockXhr)
        server.remove()
        assert namespace.XMLHttpRequest is original

    def test_install_on_missing_attribute(self, server):
        namespace = types.SimpleNamespace()
        server.install(namespace, 'Request')
        assert namespace.Request is server.xhr_factory
        server.remove()
        assert not hasattr(namespace, 'Request')

    def test_remove_without_install(self, server):
        with pytest.raises(MockUsageError):
            server.remove()

    def test_remove_twice(self, server):
        server.install(types.SimpleNamespace())
        server.remove()
        with pytest.raises(MockUsageError):
            server.remove()


class TestServerTimeoutSwitch:
    """Test disable_timeout() and enable_timeout()."""

    def test_disable_timeout(self, server, scheduler):
        assert server.disable_timeout() is server
        xhr = do_request(server)
        xhr.timeout = 1
        scheduler.advance(10)
        assert xhr.ready_state == ReadyState.OPENED

    def test_enable_timeout(self, server, scheduler):
        server.disable_timeout()
        assert server.enable_timeout() is server
        xhr = do_request(server)
        xhr.timeout = 1
        scheduler.advance(10)
        assert_network_error(xhr)

    def test_server_on_config(self, scheduler):
        config = XhrConfig(scheduler=scheduler)
        server = MockXhrServer(config, {'GET': ('/path', {'status': 201})})
        assert server.config is config
        assert config.on_send is not None
        xhr = MockXhr(config)
        xhr.open('GET', '/path')
        xhr.send()
        scheduler.run_pending()
        assert xhr.status == 201
