"""Minimal routing application for tests served through TestClient."""

from .router import HttpRequest, HttpResponse, HttpRouter

__all__ = [
    "HttpRequest",
    "HttpResponse",
    "HttpRouter",
]
