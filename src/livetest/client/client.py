"""
TestClient - serve an ASGI application on a local port and talk to it.

    async with anyio.create_task_group() as tg:
        client = await TestClient.start(app, task_group=tg)
        res = await client.get("/health").send()
        assert res.status == 200
        tg.cancel_scope.cancel()

The server runs as a task in the given task group for as long as the group
lives. TestClient.serve() is the self-contained variant that owns its task
group and shuts the server down when the block exits.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping

import anyio
import httpx
from anyio.abc import TaskGroup

from ..config import HarnessConfig
from ..http.router import Handler, HttpRouter
from ..server.launcher import ServerLauncher
from ..server.prober import wait_until_started
from .request import RequestBuilder

logger = logging.getLogger(__name__)


def _format_host(host: str) -> str:
    return f"[{host}]" if ":" in host else host


class TestClient:
    """Client bound to one running server. The address never changes."""

    __test__ = False

    def __init__(
        self,
        http: httpx.AsyncClient,
        addr: tuple[str, int],
        *,
        launcher: ServerLauncher | None = None,
    ):
        self._http = http
        self._addr = addr
        self._launcher = launcher
        self._base_url = f"http://{_format_host(addr[0])}:{addr[1]}"

    def __repr__(self) -> str:
        return f"<TestClient {self._base_url}>"

    @classmethod
    async def start(
        cls,
        app: Any,
        *,
        task_group: TaskGroup | None,
        config: HarnessConfig | None = None,
    ) -> "TestClient":
        """
        Serve `app` (any ASGI application) and return a client once it answers.

        Raises:
            ServerBindError: the listening socket could not be bound
            ServerStartupError: the server stopped before answering the probe
            TimeoutError: config.startup_timeout elapsed
        """
        if task_group is None:
            raise RuntimeError("TestClient requires a task_group (structured concurrency)")
        config = config or HarnessConfig()

        launcher = ServerLauncher(app, config=config)
        addr = await task_group.start(launcher.run)

        http = httpx.AsyncClient(
            follow_redirects=False,
            trust_env=False,
            timeout=config.request_timeout,
            # unread streamed responses hold their connection until closed
            limits=httpx.Limits(max_connections=None, max_keepalive_connections=20),
        )
        client = cls(http, addr, launcher=launcher)
        try:
            await wait_until_started(
                http,
                client.url(config.probe_path),
                interval=config.probe_interval,
                timeout=config.startup_timeout,
                launcher=launcher,
            )
        except BaseException:
            with anyio.CancelScope(shield=True):
                await http.aclose()
            launcher.cancel()
            raise
        logger.debug("server at %s is ready", client.base_url)
        return client

    @classmethod
    async def for_routes(
        cls,
        routes: Mapping[tuple[str, str], Handler],
        *,
        task_group: TaskGroup | None,
        config: HarnessConfig | None = None,
    ) -> "TestClient":
        """Serve an HttpRouter built from `routes`."""
        return await cls.start(HttpRouter(routes), task_group=task_group, config=config)

    @classmethod
    @asynccontextmanager
    async def serve(cls, app: Any, *, config: HarnessConfig | None = None) -> AsyncIterator["TestClient"]:
        """
        Serve `app` for the duration of the block, then shut it down.

        Errors from startup or from the block are raised as-is, not wrapped in
        the task group's exception group.
        """
        error: BaseException | None = None
        try:
            async with anyio.create_task_group() as tg:
                client = await cls.start(app, task_group=tg, config=config)
                try:
                    yield client
                finally:
                    await client.aclose()
                    client.shutdown()
        except BaseExceptionGroup as group:
            if len(group.exceptions) != 1:
                raise
            error = group.exceptions[0]
        if error is not None:
            raise error

    @property
    def addr(self) -> tuple[str, int]:
        return self._addr

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def server_error(self) -> BaseException | None:
        """Error raised by the background server, if any."""
        return self._launcher.error if self._launcher is not None else None

    def url(self, path: str) -> str:
        return self._base_url + path

    def request(self, method: str, path: str) -> RequestBuilder:
        return RequestBuilder(self._http, method, self.url(path))

    def get(self, path: str) -> RequestBuilder:
        return self.request("GET", path)

    def head(self, path: str) -> RequestBuilder:
        return self.request("HEAD", path)

    def post(self, path: str) -> RequestBuilder:
        return self.request("POST", path)

    def put(self, path: str) -> RequestBuilder:
        return self.request("PUT", path)

    def patch(self, path: str) -> RequestBuilder:
        return self.request("PATCH", path)

    def delete(self, path: str) -> RequestBuilder:
        return self.request("DELETE", path)

    def shutdown(self) -> None:
        """Ask the background server to exit. Requests after this will fail."""
        if self._launcher is not None:
            self._launcher.shutdown()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "TestClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
