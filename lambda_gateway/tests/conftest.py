import io
import os
from pathlib import Path

import pytest

from lambda_gateway.models.aws_v1 import APIGatewayProxyEvent, ProxyResult

FUNCTIONS_DIR = Path(__file__).parent / "fixtures" / "functions"


def function_path(name: str) -> str:
    """Absolute path of a fixture handler module."""
    return str(FUNCTIONS_DIR / f"{name}.py")


def make_event(path: str = "/hello", method: str = "GET", **kwargs) -> APIGatewayProxyEvent:
    return APIGatewayProxyEvent(path=path, httpMethod=method, **kwargs)


def make_result(status_code: int = 200, body: str = "ok", **kwargs) -> ProxyResult:
    data = {"isBase64Encoded": False, "statusCode": status_code, "headers": {}, "body": body}
    data.update(kwargs)
    return ProxyResult(**data)


@pytest.fixture
def tmp_dir(tmp_path) -> str:
    """Directory for the worker bootstrap and TLS material."""
    path = tmp_path / "gateway-tmp"
    path.mkdir()
    return str(path)


@pytest.fixture
def sinks():
    """In-memory stdout/stderr sinks for worker output."""
    return io.StringIO(), io.StringIO()


@pytest.fixture
def process_alive():
    def _alive(pid: int) -> bool:
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        return True

    return _alive
