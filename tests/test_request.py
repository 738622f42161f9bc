"""Tests for RequestBuilder configuration that need no server."""

from __future__ import annotations

import json

import httpx
import pytest

from livetest import Form, HeaderError, RequestBuilder
from livetest.client.request import header_name, header_value


@pytest.fixture
async def http():
    async with httpx.AsyncClient() as client:
        yield client


class TestHeaders:
    """Test header name/value conversion."""

    def test_accepts_str_and_bytes(self):
        assert header_name("X-Token") == "X-Token"
        assert header_name(b"x-token") == "x-token"
        assert header_value("abc") == "abc"
        assert header_value(b"abc") == "abc"
        assert header_value(42) == "42"

    @pytest.mark.parametrize("name", ["", "bad name", "x:y", "café", b"new\nline"])
    def test_invalid_names(self, name):
        with pytest.raises(HeaderError):
            header_name(name)

    @pytest.mark.parametrize("value", ["a\r\nb", b"nul\x00", "☃", True, 1.5])
    def test_invalid_values(self, value):
        with pytest.raises(HeaderError):
            header_value(value)

    @pytest.mark.anyio
    async def test_builder_rejects_at_set_time(self, http):
        builder = RequestBuilder(http, "GET", "http://127.0.0.1:1/")
        with pytest.raises(HeaderError):
            builder.header("bad name", "x")

    @pytest.mark.anyio
    async def test_header_replaces_same_name(self, http):
        request = (
            RequestBuilder(http, "GET", "http://127.0.0.1:1/")
            .header("X-A", "1")
            .header("x-a", "2")
            .build()
        )
        assert request.headers.get_list("x-a") == ["2"]


@pytest.mark.anyio
class TestBodies:
    """Test the request httpx would send."""

    async def test_method_is_uppercased(self, http):
        builder = RequestBuilder(http, "options", "http://127.0.0.1:1/")
        assert builder.method == "OPTIONS"
        assert builder.build().method == "OPTIONS"

    async def test_json_sets_content_type(self, http):
        request = RequestBuilder(http, "POST", "http://127.0.0.1:1/x").json({"id": 7}).build()
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {"id": 7}

    async def test_bytearray_body(self, http):
        request = RequestBuilder(http, "POST", "http://127.0.0.1:1/x").body(bytearray(b"abc")).build()
        assert request.content == b"abc"

    async def test_query_appends_params(self, http):
        request = (
            RequestBuilder(http, "GET", "http://127.0.0.1:1/search")
            .query({"q": "a b"})
            .query([("page", 3)])
            .build()
        )
        assert request.url.params.get("q") == "a b"
        assert request.url.params.get("page") == "3"

    async def test_multipart_drops_explicit_content_type(self, http):
        form = Form().text("field", "value").file("upload", "data", filename="a.txt")
        assert len(form) == 2
        request = (
            RequestBuilder(http, "POST", "http://127.0.0.1:1/upload")
            .header("content-type", "text/plain")
            .multipart(form)
            .build()
        )
        assert request.headers["content-type"].startswith("multipart/form-data")
