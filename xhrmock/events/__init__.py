from .event import XhrEvent, XhrProgressEvent
from .target import ListenerOptions, XhrEventTarget

__all__ = ['ListenerOptions', 'XhrEvent', 'XhrEventTarget', 'XhrProgressEvent']
