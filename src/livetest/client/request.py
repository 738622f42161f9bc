"""
RequestBuilder - fluent, single-use request specification.

Every configuration method returns the builder so calls chain:

    res = await client.post("/items").header("x-id", 7).json({"a": 1}).send()

Once send() has been awaited the builder is spent.
"""

from __future__ import annotations

import json
import re
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Mapping
from typing import Any

import httpx
from typing_extensions import Self

from ..errors import HeaderError, RequestAlreadySent, TransportError
from .response import TestResponse

Content = bytes | bytearray | str | Iterable[bytes] | AsyncIterable[bytes]

_TOKEN = re.compile(rb"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_FORBIDDEN_VALUE_BYTES = (b"\r", b"\n", b"\x00")


def header_name(name: str | bytes) -> str:
    """Validate and normalize a header name."""
    if isinstance(name, str):
        try:
            raw = name.encode("ascii")
        except UnicodeEncodeError as e:
            raise HeaderError(f"invalid header name {name!r}: not ASCII") from e
    elif isinstance(name, (bytes, bytearray)):
        raw = bytes(name)
    else:
        raise HeaderError(f"invalid header name type: {type(name).__name__}")
    if not _TOKEN.match(raw):
        raise HeaderError(f"invalid header name {name!r}")
    return raw.decode("ascii")


def header_value(value: str | bytes | int) -> str:
    """Validate and normalize a header value."""
    if isinstance(value, bool):
        raise HeaderError("invalid header value type: bool")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        try:
            raw = value.encode("latin-1")
        except UnicodeEncodeError as e:
            raise HeaderError(f"invalid header value {value!r}: not latin-1") from e
    elif isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        raise HeaderError(f"invalid header value type: {type(value).__name__}")
    if any(b in raw for b in _FORBIDDEN_VALUE_BYTES):
        raise HeaderError(f"invalid header value {value!r}: contains CR, LF or NUL")
    return raw.decode("latin-1")


async def _aiter(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    # httpx.AsyncClient only streams async iterables
    for chunk in chunks:
        yield chunk


class Form:
    """
    Multipart form body.

    Text fields and files are both sent as multipart/form-data parts, in the
    order they were added.
    """

    def __init__(self):
        self._parts: list[tuple[str, tuple[str | None, bytes, str | None]]] = []

    def text(self, name: str, value: str) -> Self:
        self._parts.append((name, (None, value.encode("utf-8"), None)))
        return self

    def file(
        self,
        name: str,
        content: bytes | str,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> Self:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._parts.append((name, (filename, content, content_type)))
        return self

    @property
    def parts(self) -> list[tuple[str, tuple[str | None, bytes, str | None]]]:
        return list(self._parts)

    def __len__(self) -> int:
        return len(self._parts)


class RequestBuilder:
    """Accumulates method, URL, headers and body, then dispatches once."""

    def __init__(self, http: httpx.AsyncClient, method: str, url: str):
        self._http = http
        self._method = method.upper()
        self._url = url
        self._headers: list[tuple[str, str]] = []
        self._params: list[tuple[str, str]] = []
        self._content: Content | None = None
        self._files: list[tuple[str, tuple[str | None, bytes, str | None]]] | None = None
        self._sent = False

    def __repr__(self) -> str:
        return f"<RequestBuilder {self._method} {self._url}>"

    @property
    def method(self) -> str:
        return self._method

    @property
    def url(self) -> str:
        return self._url

    def _check(self) -> None:
        if self._sent:
            raise RequestAlreadySent(f"{self._method} {self._url} was already sent")

    def body(self, content: Content) -> Self:
        """Raw body: bytes, str, or a (sync or async) iterable of bytes."""
        self._check()
        if isinstance(content, bytearray):
            content = bytes(content)
        elif not isinstance(content, (bytes, str, AsyncIterable)):
            content = _aiter(content)
        self._content = content
        self._files = None
        return self

    def json(self, value: Any) -> Self:
        """Serialize `value` as the JSON body and set the content type."""
        self._check()
        self._content = json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        self._files = None
        return self.header("content-type", "application/json")

    def header(self, name: str | bytes, value: str | bytes | int) -> Self:
        """Set a header, replacing earlier values for the same name."""
        self._check()
        key = header_name(name)
        val = header_value(value)
        self._headers = [(k, v) for k, v in self._headers if k.lower() != key.lower()]
        self._headers.append((key, val))
        return self

    def headers(self, headers: Mapping[str, str | bytes | int]) -> Self:
        for name, value in headers.items():
            self.header(name, value)
        return self

    def query(self, params: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> Self:
        """Append query string parameters."""
        self._check()
        items = params.items() if isinstance(params, Mapping) else params
        self._params.extend((str(k), str(v)) for k, v in items)
        return self

    def multipart(self, form: Form) -> Self:
        """Send `form` as a multipart/form-data body."""
        self._check()
        self._files = form.parts
        self._content = None
        self._headers = [(k, v) for k, v in self._headers if k.lower() != "content-type"]
        return self

    def build(self) -> httpx.Request:
        """The httpx request this builder would send."""
        return self._http.build_request(
            self._method,
            self._url,
            content=self._content,
            files=self._files,
            headers=self._headers,
            params=self._params or None,
        )

    async def send(self) -> TestResponse:
        """
        Dispatch the request and wait for the response headers.

        The body is not read yet; consume it through the returned TestResponse.
        Redirects are returned as-is.
        """
        self._check()
        self._sent = True
        request = self.build()
        try:
            response = await self._http.send(request, stream=True, follow_redirects=False)
        except httpx.TransportError as e:
            raise TransportError(f"{self._method} {self._url} failed: {e!r}") from e
        return TestResponse(response)
