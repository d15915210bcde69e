"""Minimal stand-ins for the browser's Blob and FormData request body types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Optional, Union


@dataclass(frozen=True)
class Blob:
    """Immutable binary payload with a MIME type."""

    content: bytes = b''
    type: str = ''

    def __post_init__(self):
        if isinstance(self.content, str):
            object.__setattr__(self, 'content', self.content.encode('utf-8'))

    @property
    def size(self) -> int:
        return len(self.content)

    def text(self) -> str:
        return self.content.decode('utf-8')


class FormData:
    """
    Ordered collection of form fields.

    Values are strings or Blob instances. Only the values matter to the mock:
    they set the multipart Content-Type of a request and add up to its body size.
    """

    def __init__(self, fields: Optional[list[tuple[str, Union[str, Blob]]]] = None):
        self._fields: list[tuple[str, Union[str, Blob]]] = list(fields or [])

    def append(self, name: str, value: Union[str, Blob, Any]) -> None:
        if not isinstance(value, (str, Blob)):
            value = str(value)
        self._fields.append((name, value))

    def get(self, name: str) -> Optional[Union[str, Blob]]:
        return next((value for key, value in self._fields if key == name), None)

    def get_all(self, name: str) -> list[Union[str, Blob]]:
        return [value for key, value in self._fields if key == name]

    def keys(self) -> Iterator[str]:
        return (key for key, _ in self._fields)

    def values(self) -> Iterator[Union[str, Blob]]:
        return (value for _, value in self._fields)

    def items(self) -> Iterator[tuple[str, Union[str, Blob]]]:
        return iter(list(self._fields))
