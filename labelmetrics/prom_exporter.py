"""Prometheus exposition bridge using prometheus_client."""
from typing import Dict, Iterable, List
import logging
import threading

from prometheus_client.core import (
    CounterMetricFamily,
    GaugeMetricFamily,
    HistogramMetricFamily,
    Metric as MetricFamily,
    SummaryMetricFamily,
)
from prometheus_client.registry import Collector

from labelmetrics.label_set import LabelSet
from labelmetrics.metrics import Metric

logger = logging.getLogger(__name__)


class PrometheusBridge(Collector):
    """
    Collector that renders labelmetrics metrics as Prometheus metric families.

    Register it on a ``CollectorRegistry`` and use ``generate_latest`` or
    ``start_http_server`` from prometheus_client to expose the values.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self.metrics: Dict[str, Metric] = {}
        self._lock = threading.Lock()

    def register_metric(self, metric: Metric):
        """Add a metric to the exposition."""
        with self._lock:
            if metric.name in self.metrics:
                raise ValueError(f"Metric '{metric.name}' is already registered")
            self.metrics[metric.name] = metric

        logger.info(f"Registered Prometheus metric: {self.prefix}{metric.name} with labels {list(metric.labels)}")

    def collect(self) -> Iterable[MetricFamily]:
        with self._lock:
            metrics = list(self.metrics.values())

        for metric in metrics:
            yield self._build_family(metric)

    def _build_family(self, metric: Metric) -> MetricFamily:
        name = f"{self.prefix}{metric.name}"
        values = metric.values
        label_names = self._label_names(metric, values)

        if metric.type == "counter":
            family = CounterMetricFamily(name, metric.docstring, labels=label_names)
            for labels, value in values.items():
                family.add_metric(self._label_values(labels, label_names), value)

        elif metric.type == "gauge":
            family = GaugeMetricFamily(name, metric.docstring, labels=label_names)
            for labels, value in values.items():
                family.add_metric(self._label_values(labels, label_names), value)

        elif metric.type == "histogram":
            family = HistogramMetricFamily(name, metric.docstring, labels=label_names)
            for labels, value in values.items():
                buckets = [(le, count) for le, count in value.items() if le != "sum"]
                family.add_metric(
                    self._label_values(labels, label_names),
                    buckets=buckets,
                    sum_value=value["sum"]
                )

        elif metric.type == "summary":
            family = SummaryMetricFamily(name, metric.docstring, labels=label_names)
            for labels, value in values.items():
                family.add_metric(
                    self._label_values(labels, label_names),
                    count_value=value["count"],
                    sum_value=value["sum"]
                )

        else:
            raise ValueError(f"Unknown metric type: {metric.type}")

        return family

    @staticmethod
    def _label_names(metric: Metric, values: Dict[LabelSet, object]) -> List[str]:
        # The multi-process store may add a pid label on read
        names = list(metric.labels)
        if any("pid" in labels for labels in values):
            names.append("pid")
        return names

    @staticmethod
    def _label_values(labels: LabelSet, label_names: List[str]) -> List[str]:
        return [labels.get(name, "") for name in label_names]
