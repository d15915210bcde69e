import pytest

from xhrmock import MockXhr, TaskQueue, XhrConfig, XhrProgressEvent

EVENT_TYPES = (
    'loadstart',
    'progress',
    'abort',
    'error',
    'load',
    'timeout',
    'loadend',
)


def _record_events(xhr: MockXhr) -> list[str]:
    """
    Record the events fired by ``xhr`` and its upload target.

    Progress events are written 'type(loaded,total,length_computable)', upload
    events get an 'upload.' prefix, and readystatechange events are written
    'readystatechange(<ready state>)'.
    """
    events: list[str] = []

    def make_listener(prefix):
        def listener(event):
            if isinstance(event, XhrProgressEvent):
                events.append(
                    f'{prefix}{event.type}({event.loaded},{event.total},'
                    f'{event.length_computable})'
                )
            else:
                events.append(f'{prefix}{event.type}')

        return listener

    for event_type in EVENT_TYPES:
        xhr.add_event_listener(event_type, make_listener(''))
        xhr.upload.add_event_listener(event_type, make_listener('upload.'))
    xhr.add_event_listener(
        'readystatechange',
        lambda event: events.append(f'readystatechange({int(xhr.ready_state)})'),
    )
    return events


@pytest.fixture
def record_events():
    """Helper recording the events of a request mock as strings."""
    return _record_events


@pytest.fixture
def scheduler():
    """Deterministic task queue driving the deferred work."""
    return TaskQueue()


@pytest.fixture
def config(scheduler):
    return XhrConfig(scheduler=scheduler)


@pytest.fixture
def xhr(config):
    """Fresh request mock on the test's task queue."""
    return MockXhr(config)


@pytest.fixture
def events(xhr, record_events):
    """Events fired by the ``xhr`` fixture."""
    return record_events(xhr)
