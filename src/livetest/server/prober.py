"""Startup prober: poll the server until it answers."""

from __future__ import annotations

import logging

import anyio
import httpx

from ..errors import ServerStartupError
from .launcher import ServerLauncher

logger = logging.getLogger(__name__)


async def wait_until_started(
    http: httpx.AsyncClient,
    url: str,
    *,
    interval: float = 0.05,
    timeout: float | None = None,
    launcher: ServerLauncher | None = None,
) -> int:
    """
    GET `url` every `interval` seconds until any response arrives.

    Any HTTP status counts, 4xx and 5xx included: the socket accepted the
    connection and the application answered. Only connection-level failures
    are retried. Returns the status of the first response.

    Raises:
        TimeoutError: `timeout` elapsed first (no bound when None)
        ServerStartupError: `launcher` stopped serving before answering
    """
    with anyio.fail_after(timeout):
        attempt = 0
        while True:
            if launcher is not None and launcher.finished:
                raise ServerStartupError(
                    f"server exited before answering {url}"
                ) from launcher.error
            attempt += 1
            try:
                response = await http.get(url)
            except httpx.TransportError as e:
                logger.debug("probe %d of %s failed: %r", attempt, url, e)
                await anyio.sleep(interval)
                continue
            logger.debug("probe %d of %s answered %d", attempt, url, response.status_code)
            return response.status_code
