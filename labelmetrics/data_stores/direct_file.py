"""Multi-process store backed by one JSON file per metric per process.

Each process only ever writes its own file; readers load every process's
file for a metric and aggregate them. Files are replaced atomically, so a
reader sees either the previous or the next state of a sibling process,
never a partial write.
"""
import json
import logging
import os
import re
import threading
from collections import defaultdict
from typing import Dict, List, Optional

from labelmetrics.data_stores.base import DataStore, InvalidStoreSettingsError, MetricStore
from labelmetrics.label_set import LabelSet

logger = logging.getLogger(__name__)

SUM = "sum"
MAX = "max"
MIN = "min"
ALL = "all"
AGGREGATIONS = (SUM, MAX, MIN, ALL)

DEFAULT_METRIC_SETTINGS = {"aggregation": SUM}
DEFAULT_GAUGE_SETTINGS = {"aggregation": ALL}


class DirectFileStore(DataStore):
    """
    Store for pre-fork servers and other multi-process deployments.

    Args:
        dir: Directory shared by every process. It should be emptied
            between runs (see ``clear``), otherwise counts from dead
            processes keep being aggregated.
    """

    def __init__(self, dir: str):
        self.dir = str(dir)
        os.makedirs(self.dir, exist_ok=True)

    def for_metric(self, metric_name: str, metric_type: str, metric_settings: Optional[dict] = None):
        defaults = DEFAULT_GAUGE_SETTINGS if metric_type == "gauge" else DEFAULT_METRIC_SETTINGS
        settings = dict(defaults)
        settings.update(metric_settings or {})
        self._validate_metric_settings(settings)

        return FileMetricStore(metric_name, self.dir, settings["aggregation"])

    def _validate_metric_settings(self, settings: dict):
        unknown = set(settings) - set(DEFAULT_METRIC_SETTINGS)
        if unknown:
            raise InvalidStoreSettingsError(
                f"Only 'aggregation' is allowed in metric_settings, got {sorted(unknown)}"
            )

        if settings["aggregation"] not in AGGREGATIONS:
            raise InvalidStoreSettingsError(
                f"Invalid aggregation {settings['aggregation']!r}, expected one of {AGGREGATIONS}"
            )

    def clear(self):
        """Remove every metric file in the store directory."""
        removed = 0
        for filename in os.listdir(self.dir):
            if filename.startswith("metric_") and filename.endswith(".json"):
                os.remove(os.path.join(self.dir, filename))
                removed += 1
        logger.info(f"Removed {removed} metric files from {self.dir}")


class FileMetricStore(MetricStore):

    def __init__(self, metric_name: str, store_dir: str, aggregation: str):
        self.metric_name = metric_name
        self.store_dir = store_dir
        self.aggregation = aggregation
        self._file_pattern = re.compile(rf'^metric_{re.escape(metric_name)}___(\d+)\.json$')
        self._lock = threading.RLock()
        self._values: Dict[LabelSet, float] = {}
        self._pid: Optional[int] = None

    def synchronize(self):
        return self._lock

    def set(self, labels: LabelSet, value: float) -> None:
        with self._lock:
            self._ensure_process()
            self._values[labels] = float(value)
            self._flush()

    def increment(self, labels: LabelSet, by: float = 1.0) -> float:
        with self._lock:
            self._ensure_process()
            new_value = self._values.get(labels, 0.0) + by
            self._values[labels] = new_value
            self._flush()
            return new_value

    def get(self, labels: LabelSet) -> float:
        with self._lock:
            self._ensure_process()
            if self.aggregation == ALL:
                return self._values.get(labels, 0.0)
            return self._aggregate(self._read_all_files()).get(labels, 0.0)

    def all_values(self) -> Dict[LabelSet, float]:
        with self._lock:
            self._ensure_process()
            return self._aggregate(self._read_all_files())

    def delete(self, labels: LabelSet) -> None:
        # Only this process's contribution is removed.
        with self._lock:
            self._ensure_process()
            if self._values.pop(labels, None) is not None:
                self._flush()

    def _ensure_process(self):
        """Switch to this process's file, e.g. after a fork."""
        pid = os.getpid()
        if pid == self._pid:
            return

        if self._pid is not None:
            logger.debug(f"Process {pid} forked from {self._pid}, new file for {self.metric_name}")
        self._pid = pid
        # Another handle for the same metric may already have written in this process
        self._values = self._load(self._path(pid)) or {}

    def _path(self, pid: int) -> str:
        return os.path.join(self.store_dir, f"metric_{self.metric_name}___{pid}.json")

    @staticmethod
    def _load(path: str) -> Optional[Dict[LabelSet, float]]:
        try:
            with open(path, "r") as f:
                payload = json.load(f)
        except FileNotFoundError:
            return None

        return {
            LabelSet((name, value) for name, value in items): float(stored)
            for items, stored in payload
        }

    def _flush(self):
        path = self._path(self._pid)
        tmp_path = f"{path}.tmp"
        payload = [[list(labels.items()), value] for labels, value in self._values.items()]
        with open(tmp_path, "w") as f:
            json.dump(payload, f)
        os.replace(tmp_path, path)

    def _read_all_files(self) -> Dict[int, Dict[LabelSet, float]]:
        per_process: Dict[int, Dict[LabelSet, float]] = {}
        for filename in sorted(os.listdir(self.store_dir)):
            match = self._file_pattern.match(filename)
            if not match:
                continue

            pid = int(match.group(1))
            if pid == self._pid:
                per_process[pid] = dict(self._values)
                continue

            values = self._load(os.path.join(self.store_dir, filename))
            # None when removed by clear() between listdir and open
            if values is not None:
                per_process[pid] = values

        if self._pid not in per_process and self._values:
            per_process[self._pid] = dict(self._values)

        return per_process

    def _aggregate(self, per_process: Dict[int, Dict[LabelSet, float]]) -> Dict[LabelSet, float]:
        if self.aggregation == ALL:
            return {
                labels.merge({"pid": str(pid)}): value
                for pid, values in per_process.items()
                for labels, value in values.items()
            }

        collected: Dict[LabelSet, List[float]] = defaultdict(list)
        for values in per_process.values():
            for labels, value in values.items():
                collected[labels].append(value)

        reduce = {SUM: sum, MAX: max, MIN: min}[self.aggregation]
        return {labels: float(reduce(values)) for labels, values in collected.items()}
