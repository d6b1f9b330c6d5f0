"""Label-set-addressed metrics instrumentation core."""
from labelmetrics.buckets import DEFAULT_BUCKETS, exponential_buckets, linear_buckets
from labelmetrics.config import Config, MetricConfig, configure, load_config, settings
from labelmetrics.label_set import LabelSet
from labelmetrics.label_set_validator import (
    InvalidLabelError,
    InvalidLabelSetError,
    LabelSetError,
    ReservedLabelError,
)
from labelmetrics.metrics import Counter, Gauge, Histogram, Metric, Summary, create_metric

__version__ = "0.1.0"

__all__ = [
    "Config",
    "Counter",
    "DEFAULT_BUCKETS",
    "Gauge",
    "Histogram",
    "InvalidLabelError",
    "InvalidLabelSetError",
    "LabelSet",
    "LabelSetError",
    "Metric",
    "MetricConfig",
    "ReservedLabelError",
    "Summary",
    "configure",
    "create_metric",
    "exponential_buckets",
    "linear_buckets",
    "load_config",
    "settings",
]
