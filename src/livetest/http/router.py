"""Tiny routing ASGI application.

Maps (METHOD, path) pairs to async handlers. It is the router-specific
integration for TestClient: small apps for tests can be written as a dict of
handlers instead of pulling in a web framework.

Features:
- Exact (method, path) matching, 404 for unknown paths, 405 for known paths
- HEAD falls back to the GET handler
- Request bodies are buffered up to max_body_bytes (413 beyond that)
- Streaming response bodies (async iterables of bytes)
- Lifespan events acknowledged so uvicorn runs it in any lifespan mode
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, Awaitable, Callable, Iterable, Mapping


HeaderMap = dict[str, str]
Handler = Callable[["HttpRequest"], Awaitable["HttpResponse"]]
Body = bytes | AsyncIterable[bytes]

Scope = dict[str, Any]
Receive = Callable[[], Awaitable[dict[str, Any]]]
Send = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class HttpRequest:
    method: str
    path: str
    version: str
    headers: HeaderMap
    body: bytes
    query: str = ""

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding)

    def json(self) -> Any:
        return json.loads(self.body)


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status: int = 200
    headers: Mapping[str, str] | None = None
    body: Body = field(default=b"")

    @staticmethod
    def text(
        text: str,
        *,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
        encoding: str = "utf-8",
    ) -> "HttpResponse":
        body = text.encode(encoding)
        merged: dict[str, str] = {"content-type": f"text/plain; charset={encoding}"}
        if headers:
            merged.update({k.lower(): v for k, v in headers.items()})
        return HttpResponse(status=status, headers=merged, body=body)

    @staticmethod
    def json(
        obj: Any,
        *,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> "HttpResponse":
        body = json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        merged: dict[str, str] = {"content-type": "application/json"}
        if headers:
            merged.update({k.lower(): v for k, v in headers.items()})
        return HttpResponse(status=status, headers=merged, body=body)

    @staticmethod
    def redirect(location: str, *, status: int = 302) -> "HttpResponse":
        return HttpResponse(status=status, headers={"location": location})

    @staticmethod
    def empty(status: int = 204) -> "HttpResponse":
        return HttpResponse(status=status)

    @staticmethod
    def stream(
        chunks: AsyncIterable[bytes],
        *,
        status: int = 200,
        content_type: str = "application/octet-stream",
    ) -> "HttpResponse":
        """Response whose body is sent chunk by chunk (no content-length)."""
        return HttpResponse(status=status, headers={"content-type": content_type}, body=chunks)


class PayloadTooLarge(ValueError):
    pass


def _normalize_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {k.lower(): v for k, v in headers.items()}


def _decode_headers(raw: Iterable[tuple[bytes, bytes]]) -> HeaderMap:
    headers: HeaderMap = {}
    for k, v in raw:
        headers[k.decode("latin-1").lower()] = v.decode("latin-1")
    return headers


async def _read_body(receive: Receive, max_bytes: int) -> bytes:
    buf = bytearray()
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        buf.extend(message.get("body", b""))
        if len(buf) > max_bytes:
            raise PayloadTooLarge("request too large")
        if not message.get("more_body", False):
            break
    return bytes(buf)


async def _write_response(send: Send, response: HttpResponse) -> None:
    headers = _normalize_headers(response.headers)
    body = response.body

    if isinstance(body, (bytes, bytearray)):
        headers.setdefault("content-length", str(len(body)))

    await send({
        "type": "http.response.start",
        "status": response.status,
        "headers": [(k.encode("latin-1"), v.encode("latin-1")) for k, v in headers.items()],
    })

    if isinstance(body, (bytes, bytearray)):
        await send({"type": "http.response.body", "body": bytes(body)})
        return

    async for chunk in body:
        await send({"type": "http.response.body", "body": chunk, "more_body": True})
    await send({"type": "http.response.body", "body": b""})


class HttpRouter:
    """
    ASGI application dispatching (method, path) to async handlers.

    Usage:
        router = HttpRouter({("GET", "/health"): health})
        client = await TestClient.start(router, task_group=tg)
    """

    def __init__(
        self,
        routes: Mapping[tuple[str, str], Handler] | None = None,
        *,
        max_body_bytes: int = 1 * 1024 * 1024,
    ):
        self._routes: dict[tuple[str, str], Handler] = {
            (method.upper(), path): handler for (method, path), handler in (routes or {}).items()
        }
        self._max_body_bytes = max_body_bytes

    def route(self, method: str, path: str) -> Callable[[Handler], Handler]:
        """Decorator registering a handler."""
        def register(handler: Handler) -> Handler:
            self._routes[(method.upper(), path)] = handler
            return handler
        return register

    def resolve(self, method: str, path: str) -> Handler | None:
        handler = self._routes.get((method, path))
        if handler is None and method == "HEAD":
            handler = self._routes.get(("GET", path))
        return handler

    def allowed_methods(self, path: str) -> list[str]:
        """Methods routed for `path`, HEAD included wherever GET is."""
        methods = {method for method, p in self._routes if p == path}
        if "GET" in methods:
            methods.add("HEAD")
        return sorted(methods)

    async def dispatch(self, req: HttpRequest) -> HttpResponse:
        handler = self.resolve(req.method.upper(), req.path)
        if handler is None:
            allowed = self.allowed_methods(req.path)
            if allowed:
                return HttpResponse.text(
                    "method not allowed", status=405, headers={"allow": ", ".join(allowed)}
                )
            return HttpResponse.text("not found", status=404)
        try:
            return await handler(req)
        except Exception as e:
            return HttpResponse.text(f"handler error: {e!r}", status=500)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        match scope["type"]:
            case "http":
                await self._handle_http(scope, receive, send)
            case "lifespan":
                await self._handle_lifespan(receive, send)
            case other:
                raise ValueError(f"unsupported scope type: {other!r}")

    async def _handle_http(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            body = await _read_body(receive, self._max_body_bytes)
        except PayloadTooLarge:
            await _write_response(send, HttpResponse.text("payload too large", status=413))
            return

        req = HttpRequest(
            method=scope["method"],
            path=scope["path"],
            version=f"HTTP/{scope.get('http_version', '1.1')}",
            headers=_decode_headers(scope.get("headers", [])),
            body=body,
            query=scope.get("query_string", b"").decode("latin-1"),
        )
        await _write_response(send, await self.dispatch(req))

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            match message["type"]:
                case "lifespan.startup":
                    await send({"type": "lifespan.startup.complete"})
                case "lifespan.shutdown":
                    await send({"type": "lifespan.shutdown.complete"})
                    return
