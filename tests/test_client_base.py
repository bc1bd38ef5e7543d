import pytest

from statskit.bucket import SECTION_REQUEST, MetricOperation, Request
from statskit.client_base import Client, method_not_allowed
from statskit.timer import MemoryTimer


class RecordingClient(Client):
    def __init__(self):
        super().__init__()
        self.calls = []

    def close(self):
        self.calls.append("close")

    def track_request(self, request, timer, success):
        self.calls.append(("request", request.method))
        return self

    def track_operation(self, section, operation, timer, success):
        return self

    def track_operation_n(self, section, operation, timer, n, success):
        return self

    def track_metric(self, section, operation):
        return self

    def track_metric_n(self, section, operation, n):
        return self

    def track_state(self, section, operation, value):
        return self


def test_client_is_abstract():
    with pytest.raises(TypeError):
        Client()


def test_default_section_is_request():
    client = RecordingClient()
    assert client.http_request_section == SECTION_REQUEST
    assert client.http_metric_callback is None
    Client.set_http_request_section(client, "other")
    assert Client.reset_http_request_section(client) is client
    assert client.http_request_section == "request"


def test_set_and_reset_http_request_section():
    client = RecordingClient()
    assert Client.set_http_request_section(client, "test-section") is client
    assert client.http_request_section == "test-section"
    assert Client.reset_http_request_section(client) is client
    assert client.http_request_section == SECTION_REQUEST


def test_set_http_metric_callback_keeps_same_function():
    client = RecordingClient()

    def callback(operation, request):
        return operation

    assert Client.set_http_metric_callback(client, callback) is client
    assert client.http_metric_callback is callback
    Client.set_http_metric_callback(client, None)
    assert client.http_metric_callback is None


def test_build_timer_returns_fresh_memory_timer():
    client = RecordingClient()
    first = Client.build_timer(client)
    second = Client.build_timer(client)
    assert isinstance(first, MemoryTimer)
    assert first is not second
    assert first.start().finish().total_seconds() >= 0


def test_subclass_tracking_returns_client():
    client = RecordingClient()
    result = client.track_request(Request("GET", "/"), None, True)
    assert result is client
    assert client.track_metric("s", MetricOperation("a")) is client
    assert client.calls == [("request", "GET")]


def test_handler_answers_method_not_allowed():
    client = RecordingClient()
    app = Client.handler(client)
    statuses = []

    def start_response(status, headers):
        statuses.append((status, headers))

    body = app({"REQUEST_METHOD": "GET", "PATH_INFO": "/metrics"}, start_response)
    assert app is method_not_allowed
    assert statuses[0][0] == "405 Method Not Allowed"
    assert b"".join(body) == b""
    assert dict(statuses[0][1])["Content-Length"] == "0"


def test_method_not_allowed_directly():
    statuses = []
    body = method_not_allowed({}, lambda status, headers: statuses.append(status))
    assert statuses == ["405 Method Not Allowed"]
    assert b"".join(body) == b""