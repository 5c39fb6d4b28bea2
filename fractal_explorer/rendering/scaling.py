"""
Scaling of raw fractal pixel values to the range [0, 1].

The scaled values are what the colour lookup tables expect. None of the
functions modify their input.
"""

import numpy as np
from enum import Enum
from typing import Callable, Dict, List
import logging

logger = logging.getLogger(__name__)

# Number of colour bands used for valid values in logarithmic scaling; one
# extra band at zero is reserved for values that have no logarithm.
LOG_BANDS = 256


def _min_max(data: np.ndarray):
    if data.size == 0:
        raise ValueError("Cannot scale an empty array")
    return data.min(), data.max()


def scale_linear(data: np.ndarray) -> np.ndarray:
    """
    Scale data linearly: (v - min) / (max - min).

    A constant array has no range; the range is then taken to be 1, which
    maps every value to 0.
    """
    data = np.asarray(data, dtype=np.float64)
    low, high = _min_max(data)
    value_range = high - low
    if value_range <= 0.0:
        value_range = 1.0
    return (data - low) / value_range


def scale_sqrt(data: np.ndarray) -> np.ndarray:
    """Scale the square root of the data shifted to a minimum of zero."""
    data = np.asarray(data, dtype=np.float64)
    low, high = _min_max(data)
    value_range = np.sqrt(high - low)
    if value_range <= 0.0:
        value_range = 1.0
    return np.sqrt(data - low) / value_range


def scale_log(data: np.ndarray) -> np.ndarray:
    """
    Scale the base-10 logarithm of the data shifted to a minimum of zero.

    Values equal to the minimum have no logarithm after the shift and map to
    0. The logarithms of all other values are spread over LOG_BANDS bands in
    (0, 1], so the smallest of them stays clear of 0.
    """
    data = np.asarray(data, dtype=np.float64)
    low, _ = _min_max(data)
    shifted = data - low
    valid = shifted > 0.0

    scaled = np.zeros_like(shifted)
    if not np.any(valid):
        return scaled

    logs = np.log10(shifted[valid])
    min_log = logs.min()
    log_range = logs.max() - min_log
    if log_range <= 0.0:
        log_range = 1.0
    scaled[valid] = ((LOG_BANDS - 1) * (logs - min_log) / log_range + 1.0) / LOG_BANDS
    return scaled


class ImageScaling(Enum):
    """Ways of scaling image data to [0, 1]."""

    LINEAR = "Linear scaling"
    SQUAREROOT = "Sqrt scaling"
    LOGARITHMIC = "Log scaling"

    def __str__(self) -> str:
        return self.value

    def scale_data(self, data: np.ndarray) -> np.ndarray:
        """
        Scale the data to [0, 1].

        Args:
            data: Array of raw pixel values, any shape

        Returns:
            New array of the same shape with values in [0, 1]
        """
        return _SCALERS[self](data)

    @classmethod
    def from_name(cls, name: str) -> 'ImageScaling':
        aliases = {'sqrt': cls.SQUAREROOT, 'log': cls.LOGARITHMIC}
        key = name.lower()
        if key in aliases:
            return aliases[key]
        try:
            return cls[name.upper()]
        except KeyError:
            available = ', '.join(list_scalings())
            raise ValueError(f"Unknown image scaling '{name}'. Available: {available}") from None


_SCALERS: Dict[ImageScaling, Callable[[np.ndarray], np.ndarray]] = {
    ImageScaling.LINEAR: scale_linear,
    ImageScaling.SQUAREROOT: scale_sqrt,
    ImageScaling.LOGARITHMIC: scale_log,
}


def list_scalings() -> List[str]:
    return [member.name.lower() for member in ImageScaling]
