"""Tests for EngineApp — ASGI dispatch, error mapping, handler results."""

import logging

import httpx
import pytest

from perch.engine.app import EngineApp, to_response
from perch.engine.request import Request
from perch.engine.response import Response, json_response, text_response
from perch.errors import InvalidMethod


def _client(app: EngineApp) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


class TestRouting:
    async def test_json_route(self) -> None:
        app = EngineApp()
        app.route("get", "/api/health", lambda request: json_response({"status": "ok"}))

        async with _client(app) as client:
            response = await client.get("/api/health")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json; charset=utf-8"
        assert response.json() == {"status": "ok"}

    async def test_async_handler(self) -> None:
        app = EngineApp()

        async def hello(request: Request) -> Response:
            return text_response("hi")

        app.route("post", "/hello", hello)

        async with _client(app) as client:
            response = await client.post("/hello")

        assert response.text == "hi"

    async def test_route_added_while_serving(self) -> None:
        app = EngineApp()
        app.route("get", "/a", lambda request: "a")

        async with _client(app) as client:
            before = await client.get("/b")
            app.route("get", "/b", lambda request: "b")
            after = await client.get("/b")

        assert before.status_code == 404
        assert after.text == "b"

    async def test_not_found(self) -> None:
        async with _client(EngineApp()) as client:
            response = await client.get("/missing")

        assert response.status_code == 404
        assert response.text == "No route matches GET '/missing'"

    async def test_method_not_allowed(self) -> None:
        app = EngineApp()
        app.route("get", "/a", lambda request: "a")

        async with _client(app) as client:
            response = await client.delete("/a")

        assert response.status_code == 405
        assert response.headers["allow"] == "GET"

    async def test_head_uses_get_handler(self) -> None:
        app = EngineApp()
        app.route("get", "/a", lambda request: "hello")

        async with _client(app) as client:
            response = await client.head("/a")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["content-length"] == "5"

    async def test_no_content_has_no_length(self) -> None:
        app = EngineApp()
        app.route("delete", "/a", lambda request: Response(status=204))

        async with _client(app) as client:
            response = await client.delete("/a")

        assert response.status_code == 204
        assert "content-length" not in response.headers

    def test_invalid_method_rejected(self) -> None:
        with pytest.raises(InvalidMethod):
            EngineApp().route("brew", "/coffee", lambda request: "")


class TestErrors:
    async def test_handler_exception_is_500(self, caplog) -> None:
        app = EngineApp()

        def broken(request: Request) -> Response:
            raise RuntimeError("boom")

        app.route("get", "/boom", broken)

        with caplog.at_level(logging.ERROR, logger="perch.engine"):
            async with _client(app) as client:
                response = await client.get("/boom")

        assert response.status_code == 500
        assert response.text == "Internal Server Error"
        assert "500 GET /boom" in caplog.text

    async def test_bad_json_body_is_400(self) -> None:
        app = EngineApp()

        async def echo(request: Request) -> dict:
            return {"got": await request.json()}

        app.route("post", "/echo", echo)

        async with _client(app) as client:
            ok = await client.post("/echo", content=b'{"a": 1}')
            empty = await client.post("/echo")
            bad = await client.post("/echo", content=b"{nope")

        assert ok.json() == {"got": {"a": 1}}
        assert empty.json() == {"got": None}
        assert bad.status_code == 400

    async def test_request_metadata(self) -> None:
        app = EngineApp()
        seen: list[Request] = []

        def capture(request: Request) -> str:
            seen.append(request)
            return "ok"

        app.route("get", "/meta", capture)

        async with _client(app) as client:
            await client.get("/meta/", headers={"X-Token": "abc"})

        assert seen[0].method == "GET"
        assert seen[0].path == "/meta/"
        assert seen[0].headers["x-token"] == "abc"


class TestToResponse:
    def test_response_passes_through(self) -> None:
        response = Response(body="x")
        assert to_response(response) is response

    def test_str(self) -> None:
        assert to_response("hi").content_type == "text/plain; charset=utf-8"

    def test_bytes(self) -> None:
        assert to_response(b"\x00").content_type == "application/octet-stream"

    def test_dict_and_list(self) -> None:
        assert to_response({"a": 1}).text == '{"a":1}'
        assert to_response([1, 2]).text == "[1,2]"

    def test_unsupported(self) -> None:
        with pytest.raises(TypeError, match="int"):
            to_response(42)


class TestResponseHelpers:
    def test_json_keeps_unicode(self) -> None:
        assert json_response({"name": "café"}).text == '{"name":"café"}'

    def test_json_rejects_non_finite_floats(self) -> None:
        with pytest.raises(ValueError):
            json_response({"v": float("nan")})
        with pytest.raises(ValueError):
            json_response([float("inf")])

    def test_json_status(self) -> None:
        assert json_response({}, status=201).status == 201

    def test_text_charset_appended(self) -> None:
        assert text_response("<b>", content_type="text/html").content_type == (
            "text/html; charset=utf-8"
        )

    def test_text_explicit_charset_kept(self) -> None:
        response = text_response("x", content_type="text/plain; charset=latin-1")
        assert response.content_type == "text/plain; charset=latin-1"

    def test_non_text_type_untouched(self) -> None:
        assert text_response("{}", content_type="application/xml").content_type == (
            "application/xml"
        )

    def test_with_header_chains(self) -> None:
        response = Response().with_header("X-A", "1").with_headers({"X-B": "2"}).with_status(201)
        assert response.headers == (("X-A", "1"), ("X-B", "2"))
        assert response.status == 201
