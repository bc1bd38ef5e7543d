from statskit.bucket import (
    SECTION_REQUEST,
    HTTPRequestBucket,
    MetricOperation,
    PlainBucket,
    Request,
)
from statskit.memory_client import MemoryClient, TimerMetric
from statskit.timer import MemoryTimer


def test_build_timer_returns_memory_timer():
    client = MemoryClient(True)
    timer = client.build_timer()
    assert isinstance(timer, MemoryTimer)
    assert timer.start().finish().total_seconds() >= 0


def test_track_request():
    client = MemoryClient(True)
    timer = client.build_timer().start()
    request = Request(method="GET", path="/hello/memory/test")
    bucket = HTTPRequestBucket(
        client.http_request_section, request, True, client.http_metric_callback, False
    )

    assert client.track_request(request, timer, True) is client

    assert len(client.timer_metrics) == 1
    assert len(client.count_metrics) == 4
    assert client.timer_metrics[0].bucket == bucket.metric()
    assert client.timer_metrics[0].bucket == "request.get.hello.memory"
    assert client.count_metrics[bucket.metric()] == 1
    assert client.count_metrics[bucket.metric_with_suffix()] == 1
    assert client.count_metrics[bucket.metric_total()] == 1
    assert client.count_metrics[bucket.metric_total_with_suffix()] == 1

    client.close()

    assert len(client.timer_metrics) == 0
    assert len(client.count_metrics) == 0


def test_track_operation():
    client = MemoryClient(True)
    timer = client.build_timer().start()
    section = "test-section"
    operation = MetricOperation("01", "02", "o3")
    bucket = PlainBucket(section, operation, True, True)

    client.track_operation(section, operation, timer, True)

    assert len(client.timer_metrics) == 1
    assert len(client.count_metrics) == 4
    assert client.timer_metrics[0].bucket == bucket.metric_with_suffix()
    assert client.count_metrics[bucket.metric()] == 1
    assert client.count_metrics[bucket.metric_with_suffix()] == 1
    assert client.count_metrics[bucket.metric_total()] == 1
    assert client.count_metrics[bucket.metric_total_with_suffix()] == 1

    client.close()

    assert len(client.timer_metrics) == 0
    assert len(client.count_metrics) == 0


def test_track_operation_n():
    client = MemoryClient(True)
    timer = client.build_timer().start()
    section = "test-section"
    operation = MetricOperation("01", "02", "o3")
    n = 5
    bucket = PlainBucket(section, operation, True, True)

    client.track_operation_n(section, operation, timer, n, True)

    assert len(client.timer_metrics) == 1
    assert len(client.count_metrics) == 4
    assert client.timer_metrics[0].bucket == bucket.metric_with_suffix()
    assert client.count_metrics[bucket.metric()] == n
    assert client.count_metrics[bucket.metric_with_suffix()] == n
    assert client.count_metrics[bucket.metric_total()] == n
    assert client.count_metrics[bucket.metric_total_with_suffix()] == n

    client.close()

    assert len(client.timer_metrics) == 0
    assert len(client.count_metrics) == 0


def test_track_metric():
    client = MemoryClient(True)
    section = "test-section"
    operation = MetricOperation("01", "02", "o3")
    bucket = PlainBucket(section, operation, True, True)

    client.track_metric(section, operation)

    assert len(client.timer_metrics) == 0
    assert len(client.count_metrics) == 2
    assert client.count_metrics[bucket.metric()] == 1
    assert client.count_metrics.get(bucket.metric_with_suffix(), 0) == 0
    assert client.count_metrics[bucket.metric_total()] == 1
    assert client.count_metrics.get(bucket.metric_total_with_suffix(), 0) == 0

    client.close()

    assert len(client.timer_metrics) == 0
    assert len(client.count_metrics) == 0


def test_track_metric_n():
    client = MemoryClient(True)
    section = "test-section"
    operation = MetricOperation("01", "02", "o3")
    n = 5
    bucket = PlainBucket(section, operation, True, True)

    client.track_metric_n(section, operation, n)

    assert len(client.timer_metrics) == 0
    assert len(client.count_metrics) == 2
    assert client.count_metrics[bucket.metric()] == n
    assert client.count_metrics.get(bucket.metric_with_suffix(), 0) == 0
    assert client.count_metrics[bucket.metric_total()] == n
    assert client.count_metrics.get(bucket.metric_total_with_suffix(), 0) == 0

    client.close()

    assert len(client.timer_metrics) == 0
    assert len(client.count_metrics) == 0


def test_counts_accumulate():
    client = MemoryClient(True)
    operation = MetricOperation("a")
    client.track_metric("s", operation)
    client.track_metric_n("s", operation, 4)

    assert client.count_metrics["s.a.-.-"] == 5
    assert client.count_metrics["total.s"] == 5


def test_track_state():
    client = MemoryClient(True)
    section = "test-section"
    operation1 = MetricOperation("01", "02", "o3")
    operation2 = MetricOperation("p1", "p2", "p3")

    client.track_state(section, operation1, 13)
    client.track_state(section, operation2, 66)

    assert len(client.state_metrics) == 2
    assert client.state_metrics[PlainBucket(section, operation1, True, True).metric()] == 13
    assert client.state_metrics[PlainBucket(section, operation2, True, True).metric()] == 66

    client.track_state(section, operation1, 77)
    assert len(client.state_metrics) == 2
    assert client.state_metrics[PlainBucket(section, operation1, True, True).metric()] == 77
    assert client.state_metrics[PlainBucket(section, operation2, True, True).metric()] == 66


def test_set_http_metric_callback():
    client = MemoryClient(True)

    def callback(operation, request):
        return operation

    client.set_http_metric_callback(callback)
    assert client.http_metric_callback is callback


def test_set_http_request_section():
    client = MemoryClient(True)
    assert client.http_request_section == SECTION_REQUEST

    client.set_http_request_section("test-section")
    assert client.http_request_section == "test-section"

    client.reset_http_request_section()
    assert client.http_request_section == SECTION_REQUEST


def test_timer_metric_holds_values():
    client = MemoryClient(False)
    timer = client.build_timer().start()
    client.track_operation("sec", MetricOperation("op"), timer, False)

    metric = client.timer_metrics[0]
    assert metric == TimerMetric(metric.bucket, metric.elapsed)
    assert metric.bucket == "sec-fail.op.-.-"