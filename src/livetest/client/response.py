"""
TestResponse - wrapper around a streamed httpx response.

Status and headers can be read any number of times. The body is consumed
either whole (text/bytes/json, one-shot) or chunk by chunk.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any, AsyncIterator, Callable, TypeVar, overload

import httpx

from ..errors import DecodeError, ResponseConsumed, TransportError

T = TypeVar("T")


class TestResponse:
    __test__ = False

    def __init__(self, response: httpx.Response):
        self._response = response
        self._chunks: AsyncIterator[bytes] | None = None
        self._consumed = False

    def __repr__(self) -> str:
        return f"<TestResponse [{self.status} {self.reason}]>"

    @property
    def status(self) -> int:
        return self._response.status_code

    @property
    def reason(self) -> str:
        return self._response.reason_phrase

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def url(self) -> str:
        return str(self._response.url)

    @property
    def raw(self) -> httpx.Response:
        """The underlying httpx response."""
        return self._response

    def _take(self) -> None:
        if self._consumed:
            raise ResponseConsumed("response body was already consumed")
        if self._chunks is not None:
            raise ResponseConsumed("response body is being streamed with chunk()")
        self._consumed = True

    async def bytes(self) -> bytes:
        """Whole body. Fails only on transport errors."""
        self._take()
        try:
            return await self._response.aread()
        except httpx.TransportError as e:
            raise TransportError(f"failed reading body from {self.url}: {e}") from e

    async def text(self) -> str:
        """Whole body decoded as UTF-8."""
        body = await self.bytes()
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"body is not valid UTF-8: {e}") from e

    @overload
    async def json(self) -> Any: ...
    @overload
    async def json(self, shape: Callable[..., T]) -> T: ...

    async def json(self, shape: Callable[..., Any] | None = None) -> Any:
        """
        Decode the body as JSON.

        With `shape`, the payload is converted: dataclasses are built from a
        JSON object by keyword, any other callable receives the payload.
        """
        body = await self.bytes()
        try:
            payload = json.loads(body)
        except ValueError as e:
            raise DecodeError(f"body is not valid JSON: {e}") from e
        if shape is None:
            return payload
        try:
            if dataclasses.is_dataclass(shape) and isinstance(payload, dict):
                return shape(**payload)
            return shape(payload)
        except (TypeError, ValueError, KeyError) as e:
            raise DecodeError(f"JSON payload does not match {getattr(shape, '__name__', shape)!r}: {e}") from e

    async def chunk(self) -> bytes | None:
        """Next chunk of the body, or None once the stream is exhausted."""
        if self._consumed:
            raise ResponseConsumed("response body was already consumed")
        if self._chunks is None:
            self._chunks = self._response.aiter_bytes()
        try:
            return await anext(self._chunks)
        except StopAsyncIteration:
            return None
        except httpx.TransportError as e:
            raise TransportError(f"failed reading body from {self.url}: {e}") from e

    async def chunk_text(self) -> str | None:
        """
        Next chunk decoded as UTF-8.

        Returns None both when the stream is exhausted and when the chunk is not
        valid UTF-8; the two cases are not distinguished. A multi-byte character
        split across chunks therefore also yields None.
        """
        data = await self.chunk()
        if data is None:
            return None
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            return None

    async def aclose(self) -> None:
        """Release the connection without reading the rest of the body."""
        self._consumed = True
        await self._response.aclose()
