"""Lock-free store for programs that never record from more than one thread."""
from contextlib import nullcontext
from typing import Dict, Optional

from labelmetrics.data_stores.base import DataStore, MetricStore
from labelmetrics.label_set import LabelSet


class SingleThreadedStore(DataStore):

    def for_metric(self, metric_name: str, metric_type: str, metric_settings: Optional[dict] = None):
        self._reject_settings(metric_settings)
        return SingleThreadedMetricStore()


class SingleThreadedMetricStore(MetricStore):

    def __init__(self):
        self._values: Dict[LabelSet, float] = {}

    def synchronize(self):
        return nullcontext()

    def set(self, labels: LabelSet, value: float) -> None:
        self._values[labels] = float(value)

    def increment(self, labels: LabelSet, by: float = 1.0) -> float:
        new_value = self._values.get(labels, 0.0) + by
        self._values[labels] = new_value
        return new_value

    def get(self, labels: LabelSet) -> float:
        return self._values.get(labels, 0.0)

    def all_values(self) -> Dict[LabelSet, float]:
        return dict(self._values)

    def delete(self, labels: LabelSet) -> None:
        self._values.pop(labels, None)
