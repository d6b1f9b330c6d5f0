"""Pluggable value stores."""
from labelmetrics.data_stores.base import DataStore, InvalidStoreSettingsError, MetricStore
from labelmetrics.data_stores.direct_file import DirectFileStore
from labelmetrics.data_stores.single_threaded import SingleThreadedStore
from labelmetrics.data_stores.synchronized import SynchronizedStore

__all__ = [
    "DataStore",
    "DirectFileStore",
    "InvalidStoreSettingsError",
    "MetricStore",
    "SingleThreadedStore",
    "SynchronizedStore",
]
