"""Tests for the prometheus_client bridge."""
import pytest
from prometheus_client import CollectorRegistry, generate_latest

from labelmetrics import Counter, Gauge, Histogram, Summary
from labelmetrics.prom_exporter import PrometheusBridge


@pytest.fixture
def bridge():
    return PrometheusBridge()


def render(bridge):
    registry = CollectorRegistry()
    registry.register(bridge)
    return generate_latest(registry).decode("utf-8")


def test_counter_exposition(bridge):
    counter = Counter("requests_total", docstring="Total requests", labels=["code"])
    counter.increment(by=3, labels={"code": "200"})
    bridge.register_metric(counter)

    output = render(bridge)

    assert "# HELP requests_total Total requests" in output
    assert "# TYPE requests_total counter" in output
    assert 'requests_total{code="200"} 3.0' in output


def test_gauge_exposition(bridge):
    gauge = Gauge("queue_depth", docstring="Queue depth")
    gauge.set(4)
    bridge.register_metric(gauge)

    assert "queue_depth 4.0" in render(bridge)


def test_histogram_exposition(bridge):
    histogram = Histogram("latency_seconds", docstring="Latency", labels=["route"], buckets=[2.5, 5, 10])
    for value in (3, 5.2, 13, 4):
        histogram.observe(value, labels={"route": "/"})
    bridge.register_metric(histogram)

    registry = CollectorRegistry()
    registry.register(bridge)

    def sample(name, **labels):
        return registry.get_sample_value(name, {"route": "/", **labels})

    assert sample("latency_seconds_bucket", le="2.5") == 0.0
    assert sample("latency_seconds_bucket", le="5") == 2.0
    assert sample("latency_seconds_bucket", le="10") == 3.0
    assert sample("latency_seconds_bucket", le="+Inf") == 4.0
    assert sample("latency_seconds_count") == 4.0
    assert sample("latency_seconds_sum") == 25.2
    assert 'latency_seconds_sum{route="/"} 25.2' in render(bridge)


def test_summary_exposition(bridge):
    summary = Summary("payload_bytes", docstring="Payload size")
    summary.observe(100)
    summary.observe(50)
    bridge.register_metric(summary)

    output = render(bridge)

    assert "payload_bytes_count 2.0" in output
    assert "payload_bytes_sum 150.0" in output


def test_prefix():
    bridge = PrometheusBridge(prefix="app_")
    bridge.register_metric(Counter("jobs_total", docstring="Jobs"))

    assert "app_jobs_total 0.0" in render(bridge)


def test_duplicate_registration(bridge):
    bridge.register_metric(Counter("jobs_total", docstring="Jobs"))

    with pytest.raises(ValueError):
        bridge.register_metric(Counter("jobs_total", docstring="Jobs"))


def test_purged_label_sets_disappear(bridge):
    counter = Counter("requests_total", docstring="Total requests", labels=["code"])
    counter.increment(labels={"code": "200"})
    counter.increment(labels={"code": "500"})
    bridge.register_metric(counter)

    counter.purge_label_set({"code": "500"})
    output = render(bridge)

    assert 'requests_total{code="200"} 1.0' in output
    assert 'code="500"' not in output
