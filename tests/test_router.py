"""Tests for perch.engine.router — live exact-path route table."""

import pytest

from perch.engine.response import Response
from perch.engine.router import SUPPORTED_METHODS, Router, normalize_path
from perch.errors import InvalidMethod, MethodNotAllowed, NotFound


def _handler(_request: object) -> Response:
    return Response(body="ok")


def _other(_request: object) -> Response:
    return Response(body="other")


class TestNormalizePath:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("/", "/"),
            ("", "/"),
            ("/api/health", "/api/health"),
            ("/api/health/", "/api/health"),
            ("api/health", "/api/health"),
        ],
    )
    def test_normalize(self, raw: str, expected: str) -> None:
        assert normalize_path(raw) == expected


class TestAdd:
    def test_method_is_uppercased(self) -> None:
        router = Router()
        route = router.add("get", "/a", _handler)
        assert route.method == "GET"
        assert route.path == "/a"

    def test_unsupported_method_raises(self) -> None:
        router = Router()
        with pytest.raises(InvalidMethod) as exc_info:
            router.add("fetch", "/a", _handler)
        assert exc_info.value.method == "fetch"
        assert exc_info.value.supported == SUPPORTED_METHODS
        assert len(router) == 0

    def test_routes_can_be_added_after_matching(self) -> None:
        router = Router()
        router.add("get", "/a", _handler)
        router.match("GET", "/a")
        router.add("get", "/b", _handler)
        assert router.match("GET", "/b").handler is _handler

    def test_last_registration_wins(self) -> None:
        router = Router()
        router.add("get", "/a", _handler)
        router.add("GET", "/a/", _other)
        assert router.match("GET", "/a").handler is _other
        assert len(router) == 1


class TestMatch:
    def test_exact_match(self) -> None:
        router = Router()
        router.add("post", "/hello", _handler)
        assert router.match("POST", "/hello").handler is _handler

    def test_trailing_slash_ignored(self) -> None:
        router = Router()
        router.add("get", "/api/health", _handler)
        assert router.match("GET", "/api/health/").handler is _handler

    def test_root(self) -> None:
        router = Router()
        router.add("get", "/", _handler)
        assert router.match("GET", "/").handler is _handler

    def test_not_found(self) -> None:
        router = Router()
        router.add("get", "/a", _handler)
        with pytest.raises(NotFound):
            router.match("GET", "/b")

    def test_method_not_allowed(self) -> None:
        router = Router()
        router.add("get", "/a", _handler)
        router.add("delete", "/a", _handler)
        with pytest.raises(MethodNotAllowed) as exc_info:
            router.match("POST", "/a")
        assert exc_info.value.headers == (("Allow", "DELETE, GET"),)

    def test_head_falls_back_to_get(self) -> None:
        router = Router()
        router.add("get", "/a", _handler)
        assert router.match("HEAD", "/a").handler is _handler

    def test_explicit_head_preferred(self) -> None:
        router = Router()
        router.add("get", "/a", _handler)
        router.add("head", "/a", _other)
        assert router.match("HEAD", "/a").handler is _other

    def test_routes_listing(self) -> None:
        router = Router()
        router.add("get", "/a", _handler)
        router.add("post", "/a", _handler)
        router.add("get", "/b", _handler)
        assert [(r.method, r.path) for r in router.routes] == [
            ("GET", "/a"),
            ("POST", "/a"),
            ("GET", "/b"),
        ]
