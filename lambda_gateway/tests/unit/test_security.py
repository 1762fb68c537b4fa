from lambda_gateway.core.security import (
    HOST_REJECTED,
    REFERER_REJECTED,
    check_host,
    check_referer,
    cors_headers,
    is_preflight,
    verify_local_request,
)


def test_cors_headers_echo_origin():
    headers = cors_headers("http://localhost:3000")
    assert headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
    assert headers["Access-Control-Allow-Credentials"] == "true"
    assert headers["Access-Control-Max-Age"] == "86400"
    assert "XMODIFY" in headers["Access-Control-Allow-Methods"]


def test_cors_headers_default_origin():
    assert cors_headers(None)["Access-Control-Allow-Origin"] == "*"


def test_preflight_detection():
    assert is_preflight("OPTIONS")
    assert is_preflight("options")
    assert not is_preflight("GET")


def test_referer_must_be_localhost():
    assert check_referer(None) is None
    assert check_referer("http://localhost:8080/app") is None
    assert check_referer("https://evil.com/page") == REFERER_REJECTED
    assert check_referer("http://127.0.0.1/") == REFERER_REJECTED


def test_host_must_be_localhost_any_port():
    assert check_host(None) is None
    assert check_host("localhost") is None
    assert check_host("localhost:9000") is None
    assert check_host("evil.com") == HOST_REJECTED
    assert check_host("evil.com:80") == HOST_REJECTED


def test_referer_check_skipped_when_cors_enabled():
    assert verify_local_request("https://evil.com", "localhost", enable_cors=True) is None
    assert (
        verify_local_request("https://evil.com", "localhost", enable_cors=False)
        == REFERER_REJECTED
    )


def test_host_check_applies_with_cors():
    assert verify_local_request(None, "evil.com", enable_cors=True) == HOST_REJECTED
