"""Helpers creating isolated request mock factories and servers."""

from __future__ import annotations

from typing import Mapping, Optional

from xhrmock.config import XhrConfig
from xhrmock.scheduler import Scheduler
from xhrmock.server.handlers import HandlerLike
from xhrmock.server.server import MockXhrServer, UrlMatcher
from xhrmock.xhr import MockXhrFactory

__all__ = ['MockXhrFactory', 'new_mock_xhr', 'new_server']


def new_mock_xhr(
    parent: Optional[XhrConfig] = None,
    scheduler: Optional[Scheduler] = None,
) -> MockXhrFactory:
    """
    Create a MockXhr factory with its own config.

    Hooks and timeout switches set through the factory only affect the
    requests it creates, so tests do not leak state into each other.

    Args:
        parent: Config whose hooks and timeout switch also apply.
        scheduler: Task queue for the deferred work. Defaults to the parent's,
            or a new TaskQueue.
    """
    return MockXhrFactory(XhrConfig(scheduler=scheduler, parent=parent))


def new_server(
    routes: Optional[Mapping[str, tuple[UrlMatcher, HandlerLike]]] = None,
    parent: Optional[XhrConfig] = None,
    scheduler: Optional[Scheduler] = None,
) -> MockXhrServer:
    """
    Create a MockXhrServer serving a new isolated MockXhr factory.

    Args:
        routes: Routes keyed by HTTP method, each a (url matcher, handler) pair.
        parent: Parent config of the factory.
        scheduler: Task queue for the deferred work.
    """
    return MockXhrServer(new_mock_xhr(parent, scheduler), routes)
