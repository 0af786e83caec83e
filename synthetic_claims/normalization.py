"""Exact-sum normalization of sampled vectors.

Both payment allocators sample an "unnormalized" vector and must then
make it add up to a known total (the claim size, or the settlement
delay). Scaling every entry by ``total / sum`` leaves floating-point
drift in the sum; instead all entries except the last are rescaled and
the last entry is set to the exact remainder.
"""

import math
from typing import Sequence, Union

import numpy as np

from .exceptions import InvalidParameterError


def rescale_to_total(values: Union[Sequence[float], np.ndarray], total: float) -> np.ndarray:
    """Rescale a positive vector so it sums to ``total``.

    The first ``n - 1`` entries are multiplied by ``total / sum(values)``
    and the last entry becomes ``total - fsum(first n - 1)``.

    Args:
        values: Non-negative weights with a positive sum.
        total: Target total.

    Returns:
        New float array of the same length as ``values``.

    Raises:
        InvalidParameterError: If ``values`` is empty or does not have a
            positive finite sum.

    Examples:
        >>> out = rescale_to_total([1.0, 1.0, 2.0], 10.0)
        >>> out[:2].tolist()
        [2.5, 2.5]
        >>> out[-1] == 10.0 - math.fsum(out[:-1])
        True
    """
    arr = np.asarray(values, dtype=float)
    if arr.ndim != 1 or arr.size == 0:
        raise InvalidParameterError("Cannot normalize an empty vector")

    weight = math.fsum(arr)
    if not np.isfinite(weight) or weight <= 0:
        raise InvalidParameterError(f"Vector must have a positive finite sum, got {weight}")

    result = np.empty_like(arr)
    result[:-1] = arr[:-1] / weight * total
    result[-1] = total - math.fsum(result[:-1])
    return result
