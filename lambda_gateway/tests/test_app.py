"""
Where: lambda_gateway/tests/test_app.py
What: HTTP surface of the gateway app with worker invocations patched out.
Why: Pin status codes, headers and error bodies without spawning processes.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from conftest import make_result
from lambda_gateway.core.event_builder import V1ProxyEventBuilder
from lambda_gateway.core.exceptions import (
    ProtocolViolationError,
    WorkerCrashError,
    WorkerSpawnError,
)
from lambda_gateway.main import create_app
from lambda_gateway.models.function import FunctionEntity
from lambda_gateway.services.dispatcher import Dispatcher
from lambda_gateway.services.function_registry import FunctionRegistry
from lambda_gateway.services.processor import GatewayRequestProcessor


@pytest.fixture
def registry(tmp_dir):
    return FunctionRegistry(tmp=tmp_dir, silent=True)


@pytest.fixture
def worker(registry):
    return registry.register(FunctionEntity(path="/hello", entry="hello.py"))


def build_client(registry, enable_cors=False, hook=None, **kwargs):
    processor = GatewayRequestProcessor(Dispatcher(registry), V1ProxyEventBuilder(), hook)
    app = create_app(processor, enable_cors=enable_cors)
    return TestClient(app, base_url="http://localhost", **kwargs)


def test_routed_request_returns_function_result(registry, worker):
    result = make_result(headers={"Content-Type": "text/plain"}, body="hi")
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock(return_value=result)) as invoke:
        response = client.get("/hello")

    assert response.status_code == 200
    assert response.text == "hi"
    assert response.headers["content-type"] == "text/plain"
    invoke.assert_awaited_once()


def test_event_carries_request_details(registry, worker):
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock(return_value=make_result())) as invoke:
        client.post(
            "/hello?name=a&name=b",
            content=b'{"k": 1}',
            headers=[("X-Tag", "one"), ("X-Tag", "two")],
        )

    request_id, event = invoke.await_args.args
    assert len(request_id) == 36
    assert event.httpMethod == "POST"
    assert event.path == "/hello?name=a&name=b"
    assert event.queryStringParameters == {"name": "a"}
    assert event.multiValueQueryStringParameters == {"name": ["a", "b"]}
    assert event.headers["x-tag"] == "one"
    assert event.multiValueHeaders["x-tag"] == ["one", "two"]
    assert event.body == '{"k": 1}'


@pytest.mark.parametrize(
    "method", ["GET", "POST", "PUT", "DELETE", "PATCH", "XMODIFY", "PROPFIND"]
)
def test_any_method_reaches_the_function(registry, worker, method):
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock(return_value=make_result())) as invoke:
        response = client.request(method, "/hello")

    assert response.status_code == 200
    assert invoke.await_args.args[1].httpMethod == method


def test_unrouted_path_is_forbidden(registry, worker):
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock()) as invoke:
        response = client.get("/nope")

    assert response.status_code == 403
    assert response.json() == {"message": "Forbidden"}
    invoke.assert_not_called()


def test_foreign_host_is_rejected(registry, worker):
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock()) as invoke:
        response = client.get("/hello", headers={"Host": "evil.com"})

    assert response.status_code == 403
    assert response.json() == {"message": "unexpected host header"}
    assert response.text == json.dumps({"message": "unexpected host header"}, indent=2)
    invoke.assert_not_called()


def test_foreign_referer_is_rejected(registry, worker):
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock()) as invoke:
        response = client.get("/hello", headers={"Referer": "https://evil.com/page"})

    assert response.status_code == 403
    assert response.json() == {"message": "expected request from localhost"}
    invoke.assert_not_called()


def test_local_referer_on_another_port_is_allowed(registry, worker):
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock(return_value=make_result())):
        response = client.get("/hello", headers={"Referer": "http://localhost:3000/app"})

    assert response.status_code == 200


def test_preflight_with_cors(registry, worker):
    client = build_client(registry, enable_cors=True)

    with patch.object(worker, "invoke", AsyncMock()) as invoke:
        response = client.options("/anything", headers={"Origin": "http://localhost:3000"})

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert response.headers["access-control-allow-credentials"] == "true"
    assert response.headers["access-control-max-age"] == "86400"
    invoke.assert_not_called()


def test_cors_headers_do_not_override_function_headers(registry, worker):
    result = make_result(headers={"Access-Control-Allow-Origin": "https://app.example"})
    client = build_client(registry, enable_cors=True)

    with patch.object(worker, "invoke", AsyncMock(return_value=result)):
        response = client.get("/hello", headers={"Referer": "https://app.example/"})

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "https://app.example"
    assert "XMODIFY" in response.headers["access-control-allow-methods"]


def test_without_cors_no_cors_headers(registry, worker):
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock(return_value=make_result())):
        response = client.get("/hello")

    assert "access-control-allow-origin" not in response.headers


def test_multi_value_headers_are_repeated(registry, worker):
    result = make_result(multiValueHeaders={"Set-Cookie": ["a=1", "b=2"]})
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock(return_value=result)):
        response = client.get("/hello")

    assert response.headers.get_list("set-cookie") == ["a=1", "b=2"]


def test_base64_result_becomes_400(registry, worker):
    result = make_result(isBase64Encoded=True, body="aGk=")
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock(return_value=result)):
        response = client.get("/hello")

    assert response.status_code == 400
    assert response.json() == {"message": "Forbidden"}


def test_worker_crash_returns_stack(registry, worker):
    error = WorkerCrashError(stack_lines=["Traceback (most recent call last):", "RuntimeError: boom"])
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock(side_effect=error)):
        response = client.get("/hello")

    assert response.status_code == 500
    assert response.json() == {
        "message": "Internal Server Error",
        "stack": ["Traceback (most recent call last):", "RuntimeError: boom"],
    }


def test_spawn_failure_returns_500(registry, worker):
    error = WorkerSpawnError("hello.py", FileNotFoundError("no such interpreter"))
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock(side_effect=error)):
        response = client.get("/hello")

    assert response.status_code == 500
    body = response.json()
    assert "no such interpreter" in body["message"]
    assert body["stack"] == []


def test_protocol_violation_returns_502(registry, worker):
    error = ProtocolViolationError("statusCode: Input should be a valid integer", "req-1")
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock(side_effect=error)):
        response = client.get("/hello")

    assert response.status_code == 502
    assert response.json() == {
        "message": "Bad Gateway",
        "detail": "statusCode: Input should be a valid integer",
    }


def test_failing_context_hook_returns_500(registry, worker):
    def hook(event):
        raise ValueError("no session")

    client = build_client(registry, hook=hook)

    with patch.object(worker, "invoke", AsyncMock()) as invoke:
        response = client.get("/hello")

    assert response.status_code == 500
    assert "no session" in response.json()["message"]
    invoke.assert_not_called()


def test_unexpected_error_returns_500(registry, worker):
    client = build_client(registry, raise_server_exceptions=False)

    with patch.object(worker, "invoke", AsyncMock(side_effect=RuntimeError("unexpected"))):
        response = client.get("/hello")

    assert response.status_code == 500
    assert response.json() == {"message": "Internal Server Error", "detail": "unexpected"}


def test_docs_routes_belong_to_functions(registry, worker):
    client = build_client(registry)

    with patch.object(worker, "invoke", AsyncMock()):
        assert client.get("/docs").status_code == 403
        assert client.get("/openapi.json").status_code == 403
