"""Validation and normalization of label names and label sets."""
import re
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence, Tuple

from labelmetrics.label_set import LabelSet

# Reserved for every metric kind; the multi-process store adds it on read.
BASE_RESERVED_LABELS: Tuple[str, ...] = ("pid",)

LABEL_NAME_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')


class LabelSetError(ValueError):
    """Base class for label related errors."""


class InvalidLabelError(LabelSetError):
    """Raised when a label name is not a valid identifier."""


class InvalidLabelSetError(LabelSetError):
    """Raised when a label set does not match the declared label names."""


class ReservedLabelError(LabelSetError):
    """Raised when a label name is reserved for internal use."""


def stringify_value(value: Any) -> str:
    """Coerce a label value to its canonical string form."""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def stringify_values(labels: Mapping[str, Any]) -> dict:
    return {name: stringify_value(value) for name, value in labels.items()}


class LabelSetValidator:
    """Validates label sets against a metric's declared label names."""

    def __init__(self, expected_labels: Sequence[str], reserved_labels: Iterable[str] = ()):
        self.expected_labels = tuple(expected_labels)
        self.reserved_labels = BASE_RESERVED_LABELS + tuple(reserved_labels)
        self._expected = frozenset(self.expected_labels)

    def validate_symbols(self, labels: Iterable[str]) -> bool:
        """
        Validate label names.

        Names must be strings matching [a-zA-Z_][a-zA-Z0-9_]*, must not
        start with ``__`` and must not be reserved for this metric kind.
        """
        for label in labels:
            if not isinstance(label, str):
                raise InvalidLabelError(f"label {label!r} is not a string")

            if not LABEL_NAME_PATTERN.match(label):
                raise InvalidLabelError(
                    f"label name must match {LABEL_NAME_PATTERN.pattern}, got {label!r}"
                )

            if label.startswith("__"):
                raise ReservedLabelError(f"label {label} must not start with __")

            if label in self.reserved_labels:
                raise ReservedLabelError(f"{label} is reserved")

        return True

    def validate_labelset(self, labelset: Mapping[str, Any]) -> LabelSet:
        """
        Check that ``labelset`` has exactly the declared keys.

        Returns:
            Normalized label set with string values in declared order
        """
        if set(labelset.keys()) != self._expected:
            raise InvalidLabelSetError(
                "labels must have the same signature "
                f"(keys given: {sorted(map(str, labelset.keys()))} vs. "
                f"keys expected: {sorted(self.expected_labels)})"
            )

        return LabelSet(
            (name, stringify_value(labelset[name])) for name in self.expected_labels
        )
