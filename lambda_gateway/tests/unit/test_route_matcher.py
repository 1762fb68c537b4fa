from unittest.mock import Mock

import pytest

from lambda_gateway.models.function import FunctionEntity
from lambda_gateway.services.function_registry import FunctionRegistry
from lambda_gateway.services.route_matcher import RouteMatcher, match_route


def fn(path: str, entry: str = "entry.py") -> FunctionEntity:
    return FunctionEntity(path=path, entry=entry)


def test_exact_route_matches_only_itself():
    hello = fn("/hello")
    other = fn("/other")
    functions = [hello, other]

    assert match_route(functions, "/hello") is hello
    assert match_route(functions, "/other") is other
    assert match_route(functions, "/hello/") is None
    assert match_route(functions, "/hell") is None


@pytest.mark.parametrize("suffix", ["x", "/x", "x/y/z", "-"])
def test_proxy_route_requires_non_empty_suffix(suffix):
    api = fn("/api/{proxy+}")
    assert api.prefix == "/api/"

    assert match_route([api], "/api/") is None
    assert match_route([api], "/api/" + suffix) is api


def test_proxy_prefix_uses_last_brace():
    nested = fn("/v1/{stage}/{proxy+}")
    assert nested.is_proxy
    assert nested.prefix == "/v1/{stage}/"


def test_first_registered_match_wins():
    wildcard = fn("/{proxy+}", entry="wildcard.py")
    exact = fn("/hello", entry="exact.py")

    assert match_route([wildcard, exact], "/hello") is wildcard
    assert match_route([exact, wildcard], "/hello") is exact


def test_no_match_returns_none():
    assert match_route([fn("/hello")], "/nope") is None
    assert match_route([], "/") is None


def test_route_matcher_reads_registry_order():
    registry = Mock(spec=FunctionRegistry)
    first = fn("/a/{proxy+}")
    second = fn("/a/b")
    registry.functions = [first, second]

    matcher = RouteMatcher(registry)

    assert matcher.match_route("/a/b") is first
    assert matcher.match_route("/b") is None
