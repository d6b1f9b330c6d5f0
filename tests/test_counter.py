"""Tests for Counter."""
import threading
from enum import Enum

import pytest

from labelmetrics import Counter, InvalidLabelSetError, LabelSet


class Status(Enum):
    LABEL = "label"


@pytest.fixture
def counter():
    return Counter("foo", docstring="foo description")


@pytest.fixture
def labelled_counter():
    return Counter("foo", docstring="foo description", labels=["test"])


def test_increment(counter):
    """Default increment adds one."""
    before = counter.get()
    counter.increment()
    assert counter.get() == before + 1.0


def test_increment_by_value(counter):
    counter.increment(by=5)
    assert counter.get() == 5.0


def test_increment_returns_new_value(counter):
    assert counter.increment() == 1.0
    assert counter.increment(by=2.5) == 3.5


def test_negative_increment_rejected(counter):
    counter.increment(by=2)

    with pytest.raises(ValueError):
        counter.increment(by=-1)

    assert counter.get() == 2.0


def test_unexpected_labels_rejected(counter):
    with pytest.raises(InvalidLabelSetError):
        counter.increment(labels={"test": "label"})


def test_increment_for_label_set(labelled_counter):
    """Only the addressed label set changes."""
    labelled_counter.increment(labels={"test": "label"})

    assert labelled_counter.get(labels={"test": "label"}) == 1.0
    assert labelled_counter.get(labels={"test": "other"}) == 0.0


def test_with_labels(labelled_counter):
    with pytest.raises(InvalidLabelSetError):
        labelled_counter.increment()

    labelled_counter.with_labels({"test": "label"}).increment()
    assert labelled_counter.get(labels={"test": "label"}) == 1.0


def test_thread_safety(counter):
    """10 threads x 10 increments lose no updates."""
    before = counter.get()

    def work():
        for _ in range(10):
            counter.increment()

    threads = [threading.Thread(target=work) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert counter.get() == before + 100.0


def test_non_string_label_values_are_coerced():
    counter = Counter("foo", docstring="Labels", labels=["foo"])

    counter.increment(labels={"foo": Status.LABEL})
    counter.increment(labels={"foo": b"label"})

    assert counter.get(labels={"foo": "label"}) == 2.0


def test_numeric_label_values_are_coerced():
    counter = Counter("foo", docstring="Labels", labels=["code"])

    counter.increment(labels={"code": 200})

    assert counter.get(labels={"code": "200"}) == 1.0


def test_non_string_preset_labels_are_coerced():
    counter = Counter(
        "foo",
        docstring="Labels",
        labels=["foo", "bar"],
        preset_labels={"foo": Status.LABEL}
    )

    counter.increment(labels={"bar": Status.LABEL})

    assert counter.get(labels={"foo": "label", "bar": "label"}) == 1.0


def test_init_label_set(labelled_counter):
    assert labelled_counter.values == {}

    labelled_counter.init_label_set({"test": "value"})

    assert labelled_counter.values == {LabelSet({"test": "value"}): 0.0}


def test_init_label_set_keeps_existing_value(labelled_counter):
    labelled_counter.increment(by=3, labels={"test": "value"})

    labelled_counter.init_label_set({"test": "value"})
    labelled_counter.init_label_set({"test": "value"})

    assert labelled_counter.get(labels={"test": "value"}) == 3.0


def test_purge_label_set(labelled_counter):
    labelled_counter.increment(labels={"test": "label"})
    labelled_counter.increment(labels={"test": "other"})
    assert labelled_counter.values[LabelSet({"test": "label"})] == 1.0

    labelled_counter.purge_label_set({"test": "label"})

    assert labelled_counter.values == {LabelSet({"test": "other"}): 1.0}
    assert labelled_counter.get(labels={"test": "label"}) == 0.0


def test_purge_absent_label_set_is_noop(labelled_counter):
    labelled_counter.increment(labels={"test": "label"})

    labelled_counter.purge_label_set({"test": "missing"})

    assert labelled_counter.values == {LabelSet({"test": "label"}): 1.0}


def test_nan_increment_rejected(counter):
    counter.increment(by=2)

    with pytest.raises(ValueError):
        counter.increment(by=float("nan"))

    assert counter.get() == 2.0
