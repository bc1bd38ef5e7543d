import math

import pytest

from statskit.registry import (
    CounterVec,
    GaugeVec,
    HistogramVec,
    Registry,
    RegistrationError,
)


def test_counter_accumulates():
    vec = CounterVec("requests", "help", ["action"])
    counter = vec.with_label_values("GET")
    counter.inc()
    counter.add(2.5)
    assert counter.value == pytest.approx(1 + 2.5)


def test_counter_rejects_negative_amount():
    counter = CounterVec("requests", "help", []).with_label_values()
    with pytest.raises(ValueError):
        counter.add(-1)
    assert counter.value == 0


def test_children_are_cached_per_label_values():
    vec = CounterVec("requests", "help", ["action"])
    first = vec.with_label_values("GET")
    first.inc()
    assert vec.with_label_values("GET") is first
    assert vec.with_label_values("POST").value == 0
    assert vec.with_label_values("GET").value == first.value


def test_wrong_number_of_label_values():
    vec = GaugeVec("load", "help", ["host", "zone"])
    with pytest.raises(ValueError):
        vec.with_label_values("only-one")


def test_gauge_set_overwrites():
    gauge = GaugeVec("load", "help", []).with_label_values()
    gauge.set(10)
    gauge.set(33)
    assert gauge.value == 33


def test_histogram_invariants():
    histogram = HistogramVec("latency", "help", ["success"]).with_label_values("true")
    observations = [0.001, 0.2, 0.2, 3.0, 50.0]
    for value in observations:
        histogram.observe(value)
    assert histogram.count == len(observations)
    assert histogram.sum == pytest.approx(sum(observations))
    counts = list(histogram.bucket_counts.values())
    assert counts == sorted(counts)
    assert histogram.bucket_counts[math.inf] == len(observations)


def test_histogram_rejects_unsorted_buckets():
    with pytest.raises(ValueError):
        HistogramVec("latency", "help", [], buckets=[1.0, 0.5])


def test_register_duplicate_name():
    registry = Registry()
    registry.register(CounterVec("requests", "help", []))
    with pytest.raises(RegistrationError):
        registry.register(CounterVec("requests", "other", []))


@pytest.mark.parametrize(
    "collector",
    [
        CounterVec("bad-name", "help", []),
        CounterVec("ok_name", "help", ["__reserved"]),
        HistogramVec("ok_name", "help", ["le"]),
        GaugeVec("ok_name", "help", ["a", "a"]),
    ],
)
def test_register_invalid_collector(collector):
    registry = Registry()
    with pytest.raises(RegistrationError):
        registry.register(collector)
    assert collector.name not in registry.render()


def test_render_counter():
    registry = Registry()
    vec = CounterVec("requests", "help", ["action"])
    registry.register(vec)
    vec.with_label_values("GET").inc()
    lines = registry.render().splitlines()
    assert "# TYPE requests counter" in lines
    assert 'requests{action="GET"} 1' in lines


def test_render_skips_empty_families():
    registry = Registry()
    registry.register(GaugeVec("idle", "help", []))
    assert registry.render() == ""


def test_render_histogram_has_infinite_bucket():
    registry = Registry()
    vec = HistogramVec("latency", "help", [])
    registry.register(vec)
    child = vec.with_label_values()
    child.observe(0.3)
    child.observe(42.0)
    text = registry.render()
    inf_line = next(line for line in text.splitlines() if 'le="+Inf"' in line)
    assert inf_line.split()[-1] == str(child.count)


def test_unregister():
    registry = Registry()
    vec = CounterVec("requests", "help", [])
    registry.register(vec)
    vec.with_label_values().inc()
    assert registry.unregister(vec) is True
    assert "requests" not in registry.render()
    assert registry.unregister(vec) is False