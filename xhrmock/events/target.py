"""Event target shared by the request mock and its upload sub-target."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Union, runtime_checkable

from xhrmock.constants import XHR_PROGRESS_EVENT_NAMES
from xhrmock.events.event import XhrEvent


@runtime_checkable
class EventListenerObject(Protocol):
    """Listener object in the DOM ``handleEvent`` style."""

    def handle_event(self, event: XhrEvent) -> Any: ...


EventListener = Union[Callable[[XhrEvent], Any], EventListenerObject]


@dataclass(frozen=True)
class ListenerOptions:
    """Options accepted by add_event_listener() and remove_event_listener()."""

    capture: bool = False
    once: bool = False


ListenerOptionsArg = Union[bool, ListenerOptions, Mapping[str, bool], None]


@dataclass
class _ListenerEntry:
    listener: EventListener
    use_capture: bool
    once: bool


def _make_listener_entry(listener: EventListener, options: ListenerOptionsArg) -> _ListenerEntry:
    if isinstance(options, bool):
        return _ListenerEntry(listener, use_capture=options, once=False)
    if isinstance(options, ListenerOptions):
        return _ListenerEntry(listener, use_capture=options.capture, once=options.once)
    if isinstance(options, Mapping):
        return _ListenerEntry(
            listener,
            use_capture=bool(options.get('capture', False)),
            once=bool(options.get('once', False)),
        )
    return _ListenerEntry(listener, use_capture=False, once=False)


def property_handler(event_type: str) -> property:
    """
    Build an ``on<event>`` attribute backed by the target's property handler slot.

    Args:
        event_type: Event type served by the attribute.
    """

    def getter(self: XhrEventTarget) -> Optional[EventListener]:
        return self.get_property_handler(event_type)

    def setter(self: XhrEventTarget, handler: Optional[EventListener]) -> None:
        self.set_property_handler(event_type, handler)

    return property(getter, setter, doc=f'Property event handler for "{event_type}" events.')


class XhrEventTarget:
    """
    Target for dispatching XMLHttpRequest events.

    Listeners come from two sources: explicit listeners registered with
    add_event_listener(), and a single property handler per event type
    (``target.onload = ...``). Dispatch calls the explicit listeners in
    registration order, then the property handler.

    See https://xhr.spec.whatwg.org/#xmlhttprequesteventtarget
    """

    onloadstart = property_handler('loadstart')
    onprogress = property_handler('progress')
    onabort = property_handler('abort')
    onerror = property_handler('error')
    onload = property_handler('load')
    ontimeout = property_handler('timeout')
    onloadend = property_handler('loadend')

    def __init__(self, event_context: Optional[Any] = None):
        """
        Args:
            event_context: Object exposed as ``event.target`` to listeners.
                Defaults to this target.
        """
        self._event_context = event_context if event_context is not None else self
        self._listeners: dict[str, list[_ListenerEntry]] = {}
        self._property_handlers: dict[str, EventListener] = {}

    def has_listeners(self) -> bool:
        """Whether any explicit listener or progress event property handler is registered."""
        if any(self._listeners.values()):
            return True
        return any(name in self._property_handlers for name in XHR_PROGRESS_EVENT_NAMES)

    def add_event_listener(
        self,
        event_type: str,
        listener: Optional[EventListener],
        options: ListenerOptionsArg = None,
    ) -> None:
        """
        Add an event listener.

        Adding a listener that is already registered with the same capture flag
        has no effect. See https://dom.spec.whatwg.org/#add-an-event-listener

        Args:
            event_type: Event type ('load', 'abort', etc).
            listener: Callable taking the event, or object with handle_event().
            options: The capture flag, or ListenerOptions / a mapping with
                ``capture`` and ``once``.
        """
        if listener is None:
            return
        entry = _make_listener_entry(listener, options)
        listeners = self._listeners.setdefault(event_type, [])
        if all(
            existing.listener != entry.listener or existing.use_capture != entry.use_capture
            for existing in listeners
        ):
            listeners.append(entry)

    def remove_event_listener(
        self,
        event_type: str,
        listener: Optional[EventListener],
        options: ListenerOptionsArg = None,
    ) -> None:
        """
        Remove an event listener registered with the same capture flag.

        See https://dom.spec.whatwg.org/#dom-eventtarget-removeeventlistener
        """
        if listener is None:
            return
        listeners = self._listeners.get(event_type)
        if not listeners:
            return
        entry = _make_listener_entry(listener, options)
        for index, existing in enumerate(listeners):
            if existing.listener == entry.listener and existing.use_capture == entry.use_capture:
                del listeners[index]
                return

    def get_property_handler(self, event_type: str) -> Optional[EventListener]:
        return self._property_handlers.get(event_type)

    def set_property_handler(self, event_type: str, handler: Optional[EventListener]) -> None:
        """Replace the property handler for ``event_type``; None clears it."""
        if handler is None:
            self._property_handlers.pop(event_type, None)
        else:
            self._property_handlers[event_type] = handler

    def dispatch_event(self, event: XhrEvent) -> bool:
        """
        Call all the listeners registered for the event.

        Only the listeners registered when dispatch starts are called: listeners
        added or removed by a callback take effect from the next dispatch.

        Args:
            event: Event to dispatch.

        Returns:
            Always True since no XMLHttpRequest event is cancelable.
        """
        listeners: list[EventListener] = []

        registered = self._listeners.get(event.type)
        if registered:
            listeners.extend(entry.listener for entry in registered)
            self._listeners[event.type] = [entry for entry in registered if not entry.once]

        handler = self._property_handlers.get(event.type)
        if handler is not None:
            listeners.append(handler)

        event.target = self._event_context
        for listener in listeners:
            if callable(listener):
                listener(event)
            else:
                listener.handle_event(event)
        return True
