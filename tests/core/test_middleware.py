"""Tests for request header parsing in the context middleware."""

from starlette.requests import Request

from learnhub.core.middleware import trace_id_from_headers


def _request(headers: dict[str, str]) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
    }
    return Request(scope)


class TestTraceIdFromHeaders:
    def test_explicit_header_wins(self) -> None:
        request = _request(
            {
                "X-Trace-ID": "explicit",
                "traceparent": "00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01",
            }
        )
        assert trace_id_from_headers(request) == "explicit"

    def test_traceparent(self) -> None:
        request = _request(
            {"traceparent": "00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01"}
        )
        assert trace_id_from_headers(request) == "4bf92f3577b34da6a3ce929d0e0e4736"

    def test_malformed_traceparent(self) -> None:
        assert trace_id_from_headers(_request({"traceparent": "garbage"})) is None

    def test_no_headers(self) -> None:
        assert trace_id_from_headers(_request({})) is None
