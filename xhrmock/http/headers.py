"""Case-insensitive HTTP header container used for request and response headers."""

from __future__ import annotations

from typing import Mapping, Optional, Union


class HeadersContainer:
    """
    HTTP header multimap with case-insensitive names.

    Adding a value for a name that is already present combines both values
    with ``', '`` so a name is only ever stored once.
    """

    def __init__(self, headers: Optional[Union[HeadersContainer, Mapping[str, str]]] = None):
        """
        Args:
            headers: Initial headers. A HeadersContainer is copied; a mapping is
                added pair by pair, so names differing only in case combine.
        """
        self._headers: dict[str, str] = {}
        if isinstance(headers, HeadersContainer):
            self._headers = dict(headers._headers)
        elif headers:
            for name, value in headers.items():
                self.add_header(name, value)

    def reset(self) -> HeadersContainer:
        """Remove every header."""
        self._headers.clear()
        return self

    def get_header(self, name: str) -> Optional[str]:
        """
        Args:
            name: Header name (case insensitive).

        Returns:
            The combined header value, or None if the header is absent.
        """
        return self._headers.get(name.upper())

    def get_all(self) -> str:
        """
        Serialize all headers, one ``name: value\\r\\n`` line per header.

        Lines are sorted on the lower-cased name, which is also how names
        are written.
        """
        names = sorted(self._headers, key=str.lower)
        return ''.join(f'{name.lower()}: {self._headers[name]}\r\n' for name in names)

    def get_hash(self) -> dict[str, str]:
        """Return all headers as a dict keyed by lower-case name."""
        return {name.lower(): value for name, value in self._headers.items()}

    def add_header(self, name: str, value: str) -> HeadersContainer:
        """
        Add a header value, combining it with any previous value for the same name.

        Args:
            name: Header name.
            value: Header value.
        """
        key = name.upper()
        current_value = self._headers.get(key)
        if current_value is not None:
            value = f'{current_value}, {value}'
        self._headers[key] = value
        return self

    def __len__(self) -> int:
        return len(self._headers)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.upper() in self._headers

    def __repr__(self) -> str:
        return f'HeadersContainer({self.get_hash()!r})'
