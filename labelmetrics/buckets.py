"""Histogram bucket boundary generators."""
from typing import List

import numpy as np

DEFAULT_BUCKETS = [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10]


def linear_buckets(start: float, width: float, count: int) -> List[float]:
    """Generate ``count`` boundaries spaced ``width`` apart, starting at ``start``."""
    if count < 1:
        raise ValueError(f"count must be at least 1, got {count}")

    bounds = float(start) + float(width) * np.arange(count)
    return [float(b) for b in bounds]


def exponential_buckets(start: float, factor: float, count: int) -> List[float]:
    """Generate ``count`` boundaries, each ``factor`` times the previous one."""
    if count < 1:
        raise ValueError(f"count must be at least 1, got {count}")
    if start <= 0:
        raise ValueError(f"start must be positive, got {start}")
    if factor <= 1:
        raise ValueError(f"factor must be greater than 1, got {factor}")

    bounds = float(start) * np.power(float(factor), np.arange(count))
    return [float(b) for b in bounds]
