"""
Router App Example

Serves a small HttpRouter app on an ephemeral port and drives it with
TestClient, the same way a test would.

Run:
  python examples/01_router_app.py
"""

from __future__ import annotations

import logging

import anyio

from livetest import HttpRequest, HttpResponse, HttpRouter, TestClient


async def handle_root(_req: HttpRequest) -> HttpResponse:
    return HttpResponse.text("hello from livetest\n")


async def handle_health(_req: HttpRequest) -> HttpResponse:
    return HttpResponse.json({"ok": True})


async def handle_echo(req: HttpRequest) -> HttpResponse:
    # Echo the raw body bytes back.
    return HttpResponse(
        status=200,
        headers={"content-type": req.headers.get("content-type", "application/octet-stream")},
        body=req.body,
    )


async def main() -> None:
    routes = {
        ("GET", "/"): handle_root,
        ("GET", "/health"): handle_health,
        ("POST", "/echo"): handle_echo,
    }

    async with TestClient.serve(HttpRouter(routes)) as client:
        print(f"Serving on {client.base_url}")

        res = await client.get("/health").send()
        print(res.status, await res.json())

        res = await client.post("/echo").header("content-type", "text/plain").body("hello there").send()
        print(res.status, await res.text())

        res = await client.get("/missing").send()
        print(res.status, await res.text())


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    anyio.run(main)
