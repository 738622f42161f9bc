"""In-process HTTP server harness for async tests."""

from .config import HarnessConfig
from .errors import (
    HarnessError,
    ServerBindError,
    ServerStartupError,
    TransportError,
    DecodeError,
    HeaderError,
    RequestAlreadySent,
    ResponseConsumed,
)
from .ports import bind_ephemeral, find_free_port
from .server import ServerLauncher, wait_until_started
from .client import TestClient, RequestBuilder, TestResponse, Form
from .http import HttpRequest, HttpResponse, HttpRouter

__all__ = [
    # Client
    "TestClient",
    "RequestBuilder",
    "TestResponse",
    "Form",
    # Server lifecycle
    "ServerLauncher",
    "wait_until_started",
    "bind_ephemeral",
    "find_free_port",
    "HarnessConfig",
    # Routing app
    "HttpRequest",
    "HttpResponse",
    "HttpRouter",
    # Errors
    "HarnessError",
    "ServerBindError",
    "ServerStartupError",
    "TransportError",
    "DecodeError",
    "HeaderError",
    "RequestAlreadySent",
    "ResponseConsumed",
]
