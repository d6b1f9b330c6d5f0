"""Abstract interfaces for pluggable value stores."""
from abc import ABC, abstractmethod
from typing import ContextManager, Dict, Optional

from labelmetrics.label_set import LabelSet


class InvalidStoreSettingsError(ValueError):
    """Raised when a metric asks a store for settings it does not support."""


class MetricStore(ABC):
    """Per-metric accessor handed out by a DataStore.

    Every operation on a single label set is atomic. ``synchronize()``
    groups several operations into one atomic unit and is re-entrant.
    """

    @abstractmethod
    def synchronize(self) -> ContextManager:
        pass

    @abstractmethod
    def set(self, labels: LabelSet, value: float) -> None:
        """Overwrite the stored value."""
        pass

    @abstractmethod
    def increment(self, labels: LabelSet, by: float = 1.0) -> float:
        """
        Add ``by`` to the stored value, creating it at zero first.

        Returns the new value as held by this process. Multi-process stores
        may aggregate a different value in ``get``.
        """
        pass

    @abstractmethod
    def get(self, labels: LabelSet) -> float:
        """Return the stored value, or 0.0 without creating a record."""
        pass

    @abstractmethod
    def all_values(self) -> Dict[LabelSet, float]:
        pass

    @abstractmethod
    def delete(self, labels: LabelSet) -> None:
        pass


class DataStore(ABC):
    """Process-wide factory of per-metric stores."""

    @abstractmethod
    def for_metric(
        self,
        metric_name: str,
        metric_type: str,
        metric_settings: Optional[dict] = None
    ) -> MetricStore:
        pass

    def _reject_settings(self, metric_settings: Optional[dict]):
        if metric_settings:
            raise InvalidStoreSettingsError(
                f"{type(self).__name__} doesn't allow any metric_settings, "
                f"got {sorted(metric_settings)}"
            )
