"""Fluent HTTP client for the served application."""

from .client import TestClient
from .request import Form, RequestBuilder
from .response import TestResponse

__all__ = [
    "TestClient",
    "Form",
    "RequestBuilder",
    "TestResponse",
]
