from __future__ import annotations

from typing import Any


class XhrEvent:
    """
    Event dispatched by an XMLHttpRequest mock (e.g. ``readystatechange``).

    ``target`` is set by the dispatching target to its event context before
    any listener runs: the request object for events fired on the request
    itself and on its ``upload`` target.
    """

    def __init__(self, event_type: str):
        self.type = event_type
        self.target: Any = None

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.type!r})'


class XhrProgressEvent(XhrEvent):
    """Progress event (``loadstart``, ``progress``, ``load``, ``loadend``, ...)."""

    def __init__(self, event_type: str, loaded: int = 0, total: int = 0):
        super().__init__(event_type)
        self.loaded = loaded
        self.total = total
        self.length_computable = total > 0

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.type!r}, loaded={self.loaded}, total={self.total})'
