"""Thread-safe in-memory store, the default backend."""
import threading
from typing import Dict, Optional

from labelmetrics.data_stores.base import DataStore, MetricStore
from labelmetrics.label_set import LabelSet


class SynchronizedStore(DataStore):
    """In-memory store with one lock per metric."""

    def for_metric(self, metric_name: str, metric_type: str, metric_settings: Optional[dict] = None):
        self._reject_settings(metric_settings)
        return SynchronizedMetricStore()


class SynchronizedMetricStore(MetricStore):

    def __init__(self):
        self._values: Dict[LabelSet, float] = {}
        self._lock = threading.RLock()

    def synchronize(self):
        return self._lock

    def set(self, labels: LabelSet, value: float) -> None:
        with self._lock:
            self._values[labels] = float(value)

    def increment(self, labels: LabelSet, by: float = 1.0) -> float:
        with self._lock:
            new_value = self._values.get(labels, 0.0) + by
            self._values[labels] = new_value
            return new_value

    def get(self, labels: LabelSet) -> float:
        with self._lock:
            return self._values.get(labels, 0.0)

    def all_values(self) -> Dict[LabelSet, float]:
        with self._lock:
            return dict(self._values)

    def delete(self, labels: LabelSet) -> None:
        with self._lock:
            self._values.pop(labels, None)
