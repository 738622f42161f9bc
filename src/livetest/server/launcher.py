"""
Server launcher.

Binds the listening socket up front, then serves an ASGI application with
uvicorn as a background task in the caller's AnyIO task group.
"""

from __future__ import annotations

import logging
from typing import Any

import anyio
import uvicorn
from anyio.abc import TaskStatus

from ..config import HarnessConfig
from ..ports import bind_ephemeral, socket_address

logger = logging.getLogger(__name__)


class ServerLauncher:
    """
    Serves one application on one local port.

    Start it with TaskGroup.start() so a bind failure surfaces in the caller:

        host, port = await tg.start(launcher.run)

    The task then keeps serving until the task group is cancelled or
    shutdown() is called. Errors raised while serving are logged and kept in
    `error`; they do not propagate into the task group.
    """

    def __init__(self, app: Any, *, config: HarnessConfig | None = None):
        self._app = app
        self._config = config or HarnessConfig()
        self._server: uvicorn.Server | None = None
        self._scope: anyio.CancelScope | None = None
        self.address: tuple[str, int] | None = None
        self.error: BaseException | None = None
        self.finished = False

    @property
    def started(self) -> bool:
        """True once uvicorn is accepting connections."""
        return self._server is not None and self._server.started

    def _make_server(self) -> uvicorn.Server:
        uv_config = uvicorn.Config(
            self._app,
            log_level=self._config.log_level,
            lifespan=self._config.lifespan,
            log_config=None,
            access_log=False,
        )
        return uvicorn.Server(uv_config)

    async def run(self, *, task_status: TaskStatus[tuple[str, int]] = anyio.TASK_STATUS_IGNORED) -> None:
        self._server = self._make_server()
        sock = bind_ephemeral(self._config.host, self._config.port)
        try:
            self.address = socket_address(sock)
            logger.info("Listening on %s:%d", *self.address)
            task_status.started(self.address)

            try:
                with anyio.CancelScope() as self._scope:
                    await self._server.serve(sockets=[sock])
            except Exception as e:
                self.error = e
                logger.exception("server on %s:%d failed", *self.address)
        finally:
            self.finished = True
            sock.close()
            logger.debug("server on %s:%d stopped", *self.address)

    def shutdown(self) -> None:
        """Ask the server to exit gracefully; the run() task then returns."""
        if self._server is not None:
            self._server.should_exit = True

    def cancel(self) -> None:
        """Stop serving immediately, without a graceful shutdown."""
        if self._scope is not None:
            self._scope.cancel()
