"""Tests for static directory serving on the bundled engine."""

import anyio.to_thread
import httpx
import pytest

from perch.engine.app import EngineApp
from perch.engine.request import Request
from perch.engine.response import Response, text_response
from perch.engine.static import StaticFiles


@pytest.fixture
def static_dir(tmp_path):
    """Create temporary static files for testing."""
    static = tmp_path / "site"
    static.mkdir()

    (static / "style.css").write_text("body { color: red; }")
    (static / "index.html").write_text("<h1>Home</h1>")
    (static / "data.bin").write_bytes(b"\x00\x01\x02\x03")

    docs = static / "docs"
    docs.mkdir()
    (docs / "index.html").write_text("<h1>Docs</h1>")

    empty = static / "empty"
    empty.mkdir()

    return static


def _client(app: EngineApp) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


def _request(method: str, path: str) -> Request:
    async def receive() -> dict:
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request(
        method=method, path=path, headers={}, _receive=receive
    )


async def _fallthrough(_request: Request) -> Response:
    return text_response("next", status=418)


class TestStaticFileServing:
    async def test_serves_file_under_prefix(self, static_dir) -> None:
        app = EngineApp()
        app.serve_static("/static", static_dir)

        async with _client(app) as client:
            response = await client.get("/static/style.css")

        assert response.status_code == 200
        assert "text/css" in response.headers["content-type"]
        assert response.text == "body { color: red; }"
        assert response.headers["cache-control"] == "public, max-age=0"

    async def test_unknown_type_is_octet_stream(self, static_dir) -> None:
        app = EngineApp()
        app.serve_static("/static", static_dir)

        async with _client(app) as client:
            response = await client.get("/static/data.bin")

        assert response.headers["content-type"] == "application/octet-stream"
        assert response.content == b"\x00\x01\x02\x03"

    async def test_directory_index(self, static_dir) -> None:
        app = EngineApp()
        app.serve_static("/static", static_dir)

        async with _client(app) as client:
            response = await client.get("/static/docs/")

        assert response.status_code == 200
        assert response.text == "<h1>Docs</h1>"

    async def test_directory_without_slash_redirects(self, static_dir) -> None:
        app = EngineApp()
        app.serve_static("/static", static_dir)

        async with _client(app) as client:
            response = await client.get("/static/docs")

        assert response.status_code == 301
        assert response.headers["location"] == "/static/docs/"

    async def test_head_has_no_body(self, static_dir) -> None:
        app = EngineApp()
        app.serve_static("/static", static_dir)

        async with _client(app) as client:
            response = await client.head("/static/style.css")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["content-length"] == str(len("body { color: red; }"))

    async def test_root_prefix(self, static_dir) -> None:
        app = EngineApp()
        app.serve_static("/", static_dir)

        async with _client(app) as client:
            index = await client.get("/")
            css = await client.get("/style.css")

        assert index.text == "<h1>Home</h1>"
        assert css.status_code == 200

    async def test_custom_cache_control(self, static_dir) -> None:
        mount = StaticFiles(static_dir, "/static", cache_control="no-store")
        response = await mount(_request("GET", "/static/style.css"), _fallthrough)
        assert ("Cache-Control", "no-store") in response.headers


class TestFallThrough:
    async def test_missing_file_reaches_router(self, static_dir) -> None:
        app = EngineApp()
        app.serve_static("/static", static_dir)
        app.route("get", "/static/generated.js", lambda request: text_response("dynamic"))

        async with _client(app) as client:
            response = await client.get("/static/generated.js")

        assert response.status_code == 200
        assert response.text == "dynamic"

    async def test_missing_file_without_route_is_404(self, static_dir) -> None:
        app = EngineApp()
        app.serve_static("/static", static_dir)

        async with _client(app) as client:
            response = await client.get("/static/nope.css")

        assert response.status_code == 404

    async def test_directory_without_index_falls_through(self, static_dir) -> None:
        mount = StaticFiles(static_dir, "/static")
        response = await mount(_request("GET", "/static/empty/"), _fallthrough)
        assert response.status == 418

    async def test_other_prefix_falls_through(self, static_dir) -> None:
        mount = StaticFiles(static_dir, "/static")
        response = await mount(_request("GET", "/staticky/style.css"), _fallthrough)
        assert response.status == 418

    async def test_post_falls_through(self, static_dir) -> None:
        mount = StaticFiles(static_dir, "/static")
        response = await mount(_request("POST", "/static/style.css"), _fallthrough)
        assert response.status == 418

    async def test_missing_directory_falls_through(self, tmp_path) -> None:
        mount = StaticFiles(tmp_path / "does-not-exist", "/static")
        response = await mount(_request("GET", "/static/style.css"), _fallthrough)
        assert response.status == 418


class TestMountOrder:
    async def test_first_mount_wins(self, tmp_path) -> None:
        first = tmp_path / "first"
        second = tmp_path / "second"
        first.mkdir()
        second.mkdir()
        (first / "a.txt").write_text("first")
        (second / "a.txt").write_text("second")
        (second / "b.txt").write_text("only second")

        app = EngineApp()
        app.serve_static("/files", first)
        app.serve_static("/files", second)

        async with _client(app) as client:
            a = await client.get("/files/a.txt")
            b = await client.get("/files/b.txt")

        assert a.text == "first"
        assert b.text == "only second"

    async def test_mount_shadows_route(self, static_dir) -> None:
        app = EngineApp()
        app.route("get", "/static/style.css", lambda request: text_response("route"))
        app.serve_static("/static", static_dir)

        async with _client(app) as client:
            response = await client.get("/static/style.css")

        assert response.text == "body { color: red; }"


class TestSecurity:
    async def test_traversal_is_forbidden(self, static_dir) -> None:
        (static_dir.parent / "secret.txt").write_text("secret")
        mount = StaticFiles(static_dir, "/static")

        response = await mount(_request("GET", "/static/../secret.txt"), _fallthrough)

        assert response.status == 403

    async def test_symlink_escape_is_forbidden(self, static_dir) -> None:
        outside = static_dir.parent / "outside.txt"
        outside.write_text("outside")
        (static_dir / "link.txt").symlink_to(outside)
        mount = StaticFiles(static_dir, "/static")

        response = await mount(_request("GET", "/static/link.txt"), _fallthrough)

        assert response.status == 403

    async def test_nul_byte_in_path_falls_through(self, static_dir) -> None:
        app = EngineApp()
        app.serve_static("/static", static_dir)

        async with _client(app) as client:
            response = await client.get("/static/a%00b")

        assert response.status_code == 404

    async def test_nul_byte_reaches_next_layer(self, static_dir) -> None:
        mount = StaticFiles(static_dir, "/static")
        response = await mount(_request("GET", "/static/a\x00b"), _fallthrough)
        assert response.status == 418


class TestWorkerThread:
    async def test_lookup_and_read_run_off_the_event_loop(self, static_dir, monkeypatch) -> None:
        offloaded: list[str] = []
        run_sync = anyio.to_thread.run_sync

        async def spy(func, *args, **kwargs):
            offloaded.append(func.__name__)
            return await run_sync(func, *args, **kwargs)

        monkeypatch.setattr(anyio.to_thread, "run_sync", spy)
        mount = StaticFiles(static_dir, "/static")

        response = await mount(_request("GET", "/static/style.css"), _fallthrough)

        assert response.status == 200
        assert offloaded == ["_locate", "read_bytes"]


class TestProperties:
    def test_prefix_normalized(self, static_dir) -> None:
        assert StaticFiles(static_dir, "static/").prefix == "/static"
        assert StaticFiles(static_dir, "/").prefix == "/"

    def test_directory_resolved(self, static_dir) -> None:
        assert StaticFiles(static_dir / "docs" / "..", "/s").directory == static_dir.resolve()
