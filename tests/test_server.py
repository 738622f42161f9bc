"""Tests for the server launcher and the startup prober."""

from __future__ import annotations

import anyio
import httpx
import pytest

from livetest import (
    HarnessConfig,
    HttpResponse,
    HttpRouter,
    ServerBindError,
    ServerLauncher,
    bind_ephemeral,
    find_free_port,
    wait_until_started,
)
from livetest.ports import socket_address

pytestmark = pytest.mark.anyio


async def ok(_req):
    return HttpResponse.text("ok")


class TestLauncher:
    """Test ServerLauncher lifecycle."""

    async def test_start_reports_address_and_serves(self):
        launcher = ServerLauncher(HttpRouter({("GET", "/"): ok}))
        async with anyio.create_task_group() as tg:
            host, port = await tg.start(launcher.run)
            assert (host, port) == launcher.address
            async with httpx.AsyncClient(trust_env=False) as http:
                status = await wait_until_started(http, f"http://{host}:{port}/", launcher=launcher)
            assert status == 200
            assert launcher.started
            launcher.shutdown()
        assert launcher.finished
        assert launcher.error is None

    async def test_cancel_stops_serving(self):
        launcher = ServerLauncher(HttpRouter({("GET", "/"): ok}))
        async with anyio.create_task_group() as tg:
            await tg.start(launcher.run)
            launcher.cancel()
        assert launcher.finished

    async def test_bind_error_surfaces_from_start(self):
        occupied = bind_ephemeral()
        try:
            port = socket_address(occupied)[1]
            launcher = ServerLauncher(HttpRouter(), config=HarnessConfig(port=port))
            async with anyio.create_task_group() as tg:
                with pytest.raises(ServerBindError):
                    await tg.start(launcher.run)
        finally:
            occupied.close()


    async def test_server_construction_failure_leaves_port_free(self):
        class BrokenLauncher(ServerLauncher):
            def _make_server(self):
                raise KeyError("bogus")

        port = find_free_port()
        launcher = BrokenLauncher(HttpRouter(), config=HarnessConfig(port=port))
        async with anyio.create_task_group() as tg:
            with pytest.raises(KeyError):
                await tg.start(launcher.run)
        sock = bind_ephemeral(port=port)
        sock.close()


class TestProber:
    """Test wait_until_started."""

    async def test_times_out_when_nothing_answers(self):
        # Listening but never accepting: every probe ends in a read timeout.
        silent = bind_ephemeral()
        try:
            host, port = socket_address(silent)
            async with httpx.AsyncClient(trust_env=False, timeout=0.05) as http:
                with pytest.raises(TimeoutError):
                    await wait_until_started(http, f"http://{host}:{port}/", interval=0.01, timeout=0.3)
        finally:
            silent.close()

    async def test_retries_until_server_appears(self):
        """Probing starts before the server is listening and keeps retrying."""
        router = HttpRouter({("GET", "/"): ok})
        result: dict[str, int] = {}

        async with anyio.create_task_group() as tg:
            # Reserve an address the server will use, but serve it only later.
            reserved = bind_ephemeral()
            host, port = socket_address(reserved)
            reserved.close()

            async def probe():
                async with httpx.AsyncClient(trust_env=False) as http:
                    result["status"] = await wait_until_started(
                        http, f"http://{host}:{port}/", interval=0.02, timeout=5.0
                    )

            tg.start_soon(probe)
            await anyio.sleep(0.1)
            launcher = ServerLauncher(router, config=HarnessConfig(port=port))
            await tg.start(launcher.run)
            with anyio.fail_after(5):
                while "status" not in result:
                    await anyio.sleep(0.02)
            launcher.shutdown()

        assert result["status"] == 200
