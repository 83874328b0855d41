"""Paste error taxonomy.

Every failure of a paste operation is one of four kinds:

- NotFound(key): fetch of a key with no stored value -> 404 "not found: {key}"
- StoreError: the backing store rejected or failed a command -> 500, empty body
- ConnectionTimeout: no pooled connection became free in time -> 500, empty body
- DecodeError: stored bytes are not valid UTF-8 text -> 400, empty body

Only NotFound puts client-supplied data in the response body; the other kinds
are logged server-side and answered with an empty body.
"""
from __future__ import annotations

from typing import Optional, Tuple


class PasteError(Exception):
    """Base for the closed set of paste failures."""


class NotFound(PasteError):
    def __init__(self, key: str) -> None:
        super().__init__(f"paste not found: {key}")
        self.key = key


class StoreError(PasteError):
    def __init__(self, cause: Optional[BaseException] = None) -> None:
        super().__init__("error communicating with store")
        self.cause = cause


class ConnectionTimeout(PasteError):
    def __init__(self) -> None:
        super().__init__("connection timeout")


class DecodeError(PasteError):
    def __init__(self, cause: Optional[BaseException] = None) -> None:
        super().__init__("string decode error")
        self.cause = cause


def error_response(err: PasteError) -> Tuple[int, str]:
    """Map a paste error to (http_status, body)."""
    if isinstance(err, NotFound):
        return 404, f"not found: {err.key}"
    if isinstance(err, StoreError):
        return 500, ""
    if isinstance(err, ConnectionTimeout):
        return 500, ""
    if isinstance(err, DecodeError):
        return 400, ""
    raise TypeError(f"unmapped paste error: {type(err).__name__}")
