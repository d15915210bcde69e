from __future__ import annotations

from typing import Any

from typing_extensions import NotRequired, TypedDict


class RequestLogEntry(TypedDict):
    """Request received by a MockXhrServer."""

    method: str
    url: str
    headers: dict[str, str]
    body: Any


class FixedResponseDict(TypedDict):
    """Plain dict form of a fixed response handler."""

    status: NotRequired[int]
    headers: NotRequired[dict[str, str]]
    body: NotRequired[Any]
    status_text: NotRequired[str]


class RequestLogExport(TypedDict):
    """Document written by MockXhrServer.save_request_log()."""

    version: str
    requests: list[RequestLogEntry]
