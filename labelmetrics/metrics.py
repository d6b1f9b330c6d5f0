"""Metric kinds sharing one label-set-addressed storage path."""
from abc import ABC
from bisect import bisect_left
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import copy
import logging
import math
import numbers
import re

from labelmetrics import buckets as bucket_generators
from labelmetrics import config
from labelmetrics.config import MetricConfig
from labelmetrics.label_set import LabelSet
from labelmetrics.label_set_validator import (
    InvalidLabelSetError,
    LabelSetValidator,
    stringify_values,
)

logger = logging.getLogger(__name__)

METRIC_NAME_PATTERN = re.compile(r'^[a-zA-Z_:][a-zA-Z0-9_:]*$')

Labels = Optional[Mapping[str, Any]]
Value = Union[float, Dict[str, float]]


class Metric(ABC):
    """
    Base class for all metric kinds.

    A metric holds no values itself. It validates label sets and routes
    reads and writes to the store handle obtained from the process-wide
    data store at construction time.

    Compound kinds (histograms, summaries) keep one scalar per component
    in the store, addressed by an extra internal label named
    ``component_label``.
    """

    type: str = ""
    reserved_labels: Tuple[str, ...] = ()
    component_label: Optional[str] = None

    def __init__(
        self,
        name: str,
        docstring: str,
        labels: Sequence[str] = (),
        preset_labels: Labels = None,
        store_settings: Optional[dict] = None
    ):
        self._validate_name(name)
        self._validate_docstring(docstring)

        labels = tuple(labels)
        self._validator = LabelSetValidator(expected_labels=labels, reserved_labels=self.reserved_labels)
        self._validator.validate_symbols(labels)
        if len(set(labels)) != len(labels):
            raise ValueError(f"Duplicate label names in {list(labels)}")

        preset_labels = dict(preset_labels or {})
        self._validator.validate_symbols(preset_labels)

        self.name = name
        self.docstring = docstring
        self.labels = labels
        self.store_settings = dict(store_settings or {})
        self._set_preset_labels(stringify_values(preset_labels))

        self._store = config.settings.data_store.for_metric(
            name, self.type, metric_settings=self.store_settings or None
        )

        if not labels:
            self.init_label_set({})

        logger.debug(f"Created {self.type} '{name}' with labels {list(labels)}")

    def _validate_name(self, name: str):
        if not isinstance(name, str):
            raise ValueError(f"Metric name must be a string, got {type(name).__name__}")
        if not METRIC_NAME_PATTERN.match(name):
            raise ValueError(f"Metric name must match {METRIC_NAME_PATTERN.pattern}, got {name!r}")

    def _validate_docstring(self, docstring: str):
        if not isinstance(docstring, str) or not docstring.strip():
            raise ValueError("Docstring must be a non-empty string")

    def _set_preset_labels(self, preset_labels: Dict[str, str]):
        unknown = set(preset_labels) - set(self.labels)
        if unknown:
            raise InvalidLabelSetError(
                f"Preset labels {sorted(unknown)} are not declared on metric '{self.name}'"
            )

        self.preset_labels = preset_labels
        # Validated eagerly when nothing is left for the call site to supply
        self._preset_label_set = None
        if len(preset_labels) == len(self.labels):
            self._preset_label_set = self._validator.validate_labelset(preset_labels)

    def with_labels(self, labels: Mapping[str, Any]) -> "Metric":
        """
        Return a view of this metric with ``labels`` pre-set.

        The view shares this metric's store, so observations made through
        it show up in ``values`` of the original. The original is not
        modified.
        """
        self._validator.validate_symbols(labels)

        view = copy.copy(self)
        view._set_preset_labels({**self.preset_labels, **stringify_values(labels)})
        return view

    def label_set_for(self, labels: Labels = None) -> LabelSet:
        """Merge preset and call-site labels and validate the result."""
        if not labels and self._preset_label_set is not None:
            return self._preset_label_set

        return self._validator.validate_labelset({**self.preset_labels, **(labels or {})})

    def component_names(self) -> List[str]:
        """Names of the stored components of a compound value."""
        return []

    def _keys_for(self, label_set: LabelSet) -> List[LabelSet]:
        if self.component_label is None:
            return [label_set]

        return [
            label_set.merge({self.component_label: component})
            for component in self.component_names()
        ]

    def init_label_set(self, labels: Mapping[str, Any]):
        """Create the zero record for ``labels`` unless one exists already."""
        label_set = self.label_set_for(labels)

        with self._store.synchronize():
            for key in self._keys_for(label_set):
                self._store.increment(key, 0.0)

    def purge_label_set(self, labels: Mapping[str, Any]):
        """Remove the record for ``labels``. Absent label sets are ignored."""
        label_set = self.label_set_for(labels)

        with self._store.synchronize():
            for key in self._keys_for(label_set):
                self._store.delete(key)

        logger.debug(f"Purged {dict(label_set)} from '{self.name}'")

    def get(self, labels: Labels = None) -> Value:
        """Return the current value for a label set, or the zero default."""
        label_set = self.label_set_for(labels)

        if self.component_label is None:
            return self._store.get(label_set)

        with self._store.synchronize():
            return {
                component: self._store.get(key)
                for component, key in zip(self.component_names(), self._keys_for(label_set))
            }

    @property
    def values(self) -> Dict[LabelSet, Value]:
        """Snapshot of every stored label set and its value."""
        stored = self._store.all_values()
        if self.component_label is None:
            return stored

        grouped: Dict[LabelSet, Dict[str, float]] = {}
        for labels, value in stored.items():
            base = labels.without(self.component_label)
            if base not in grouped:
                grouped[base] = dict.fromkeys(self.component_names(), 0.0)
            grouped[base][labels[self.component_label]] = value

        return grouped


class Counter(Metric):
    """Monotonically increasing value."""

    type = "counter"

    def increment(self, by: float = 1.0, labels: Labels = None) -> float:
        """
        Add ``by`` to the counter and return the new value.

        With a multi-process store the returned value is this process's
        own count; ``get`` returns the aggregate.
        """
        if not by >= 0:
            raise ValueError(f"Increment must be a non-negative number, got {by}")

        label_set = self.label_set_for(labels)
        return self._store.increment(label_set, float(by))


class Gauge(Metric):
    """Value that can go up and down."""

    type = "gauge"

    def set(self, value: float, labels: Labels = None):
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise ValueError(f"Value must be a number, got {value!r}")

        label_set = self.label_set_for(labels)
        self._store.set(label_set, float(value))

    def increment(self, by: float = 1.0, labels: Labels = None) -> float:
        label_set = self.label_set_for(labels)
        return self._store.increment(label_set, float(by))

    def decrement(self, by: float = 1.0, labels: Labels = None) -> float:
        label_set = self.label_set_for(labels)
        return self._store.increment(label_set, -float(by))


class Histogram(Metric):
    """
    Cumulative bucketed distribution of observed values.

    ``get`` returns one entry per configured bound (keyed by the bound's
    string form), followed by ``"+Inf"`` and ``"sum"``.
    """

    type = "histogram"
    reserved_labels = ("le",)
    component_label = "le"

    def __init__(
        self,
        name: str,
        docstring: str,
        labels: Sequence[str] = (),
        preset_labels: Labels = None,
        buckets: Iterable[float] = bucket_generators.DEFAULT_BUCKETS,
        store_settings: Optional[dict] = None
    ):
        buckets = list(buckets)
        self._validate_buckets(buckets)
        self.buckets = buckets
        self._bucket_names = [str(b) for b in buckets]

        super().__init__(
            name,
            docstring,
            labels=labels,
            preset_labels=preset_labels,
            store_settings=store_settings
        )

    @staticmethod
    def _validate_buckets(buckets: List[float]):
        for bound in buckets:
            if isinstance(bound, bool) or not isinstance(bound, numbers.Real) or not math.isfinite(bound):
                raise ValueError(f"Bucket bounds must be finite numbers, got {bound!r}")

        if any(lower >= upper for lower, upper in zip(buckets, buckets[1:])):
            raise ValueError(f"Bucket bounds must be in strictly increasing order: {buckets}")

    linear_buckets = staticmethod(bucket_generators.linear_buckets)
    exponential_buckets = staticmethod(bucket_generators.exponential_buckets)

    def component_names(self) -> List[str]:
        return self._bucket_names + ["+Inf", "sum"]

    def observe(self, value: float, labels: Labels = None):
        """Record ``value`` in every bucket whose bound is >= value."""
        value = float(value)
        if math.isnan(value):
            raise ValueError("Cannot observe NaN")

        label_set = self.label_set_for(labels)
        first = bisect_left(self.buckets, value)

        with self._store.synchronize():
            for name in self._bucket_names[first:]:
                self._store.increment(label_set.merge({"le": name}), 1.0)
            self._store.increment(label_set.merge({"le": "+Inf"}), 1.0)
            self._store.increment(label_set.merge({"le": "sum"}), value)


class Summary(Metric):
    """Count and sum of observed values. No quantiles are estimated."""

    type = "summary"
    reserved_labels = ("quantile",)
    component_label = "quantile"

    def component_names(self) -> List[str]:
        return ["count", "sum"]

    def observe(self, value: float, labels: Labels = None):
        label_set = self.label_set_for(labels)
        value = float(value)

        with self._store.synchronize():
            self._store.increment(label_set.merge({"quantile": "count"}), 1.0)
            self._store.increment(label_set.merge({"quantile": "sum"}), value)


def create_metric(metric_config: MetricConfig) -> Metric:
    """Factory function to create the appropriate metric kind."""
    metric_type = metric_config.type
    kwargs = dict(
        labels=metric_config.labels,
        preset_labels=metric_config.preset_labels,
        store_settings=metric_config.store_settings
    )

    if metric_type == "counter":
        return Counter(metric_config.name, metric_config.docstring, **kwargs)
    elif metric_type == "gauge":
        return Gauge(metric_config.name, metric_config.docstring, **kwargs)
    elif metric_type == "histogram":
        if metric_config.buckets is not None:
            kwargs["buckets"] = metric_config.buckets
        return Histogram(metric_config.name, metric_config.docstring, **kwargs)
    elif metric_type == "summary":
        return Summary(metric_config.name, metric_config.docstring, **kwargs)
    else:
        raise ValueError(f"Unknown metric type: {metric_type}")
