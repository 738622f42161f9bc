"""Tests for port allocation."""

import socket

import pytest

from livetest import ServerBindError, bind_ephemeral, find_free_port
from livetest.ports import socket_address


class TestPorts:
    """Test ephemeral binding and the free-port helper."""

    def test_bind_ephemeral_assigns_port(self):
        sock = bind_ephemeral()
        try:
            host, port = socket_address(sock)
            assert host == "127.0.0.1"
            assert 0 < port <= 65535
        finally:
            sock.close()

    def test_bound_socket_accepts_connections(self):
        sock = bind_ephemeral()
        try:
            with socket.create_connection(socket_address(sock), timeout=1.0):
                pass
        finally:
            sock.close()

    def test_find_free_port_is_bindable(self):
        port = find_free_port()
        sock = bind_ephemeral(port=port)
        try:
            assert socket_address(sock)[1] == port
        finally:
            sock.close()

    def test_bind_conflict_raises(self):
        first = bind_ephemeral()
        try:
            port = socket_address(first)[1]
            with pytest.raises(ServerBindError) as info:
                bind_ephemeral(port=port)
            assert isinstance(info.value, OSError)
            assert str(port) in str(info.value)
        finally:
            first.close()
