"""
Core mathematical functions for fractal iteration.

This module provides the generic bounded iteration of an arbitrary complex
function, which is the building block for all the configurable fractal
generators.
"""

import numpy as np
from typing import Callable, List
import logging

logger = logging.getLogger(__name__)

ComplexFunction = Callable[[complex], complex]


def validate_max_iterations(max_iterations: int) -> int:
    """Check a maximum iteration count and return it as an int."""
    if isinstance(max_iterations, bool) or not isinstance(max_iterations, (int, np.integer)):
        raise ValueError(f"Maximum number of iterations must be an integer, got {max_iterations!r}")
    if max_iterations < 1:
        raise ValueError(f"At least one iteration is required, got {max_iterations}")
    return int(max_iterations)


def validate_stopping_radius(stopping_radius: float) -> float:
    """Check a stopping radius and return it as a float."""
    try:
        radius = float(stopping_radius)
    except (TypeError, ValueError):
        raise ValueError(f"Stopping radius must be a number, got {stopping_radius!r}") from None
    if not (radius > 0.0 and np.isfinite(radius)):
        raise ValueError(f"Value of stopping radius should be positive and finite, got {stopping_radius}")
    return radius


def iterate_function(z_start: complex, function: ComplexFunction, max_iterations: int,
                     stopping_radius: float, conjugate: bool = False) -> List[complex]:
    """
    Iterate a complex function until the iterates leave the stopping radius.

    The returned list starts with z_start. Each following element is the
    function applied to the previous one (or to its conjugate). Iteration stops
    after max_iterations applications, or as soon as an iterate has a magnitude
    larger than stopping_radius; that iterate is the last element of the list.

    Args:
        z_start: Starting value z0
        function: Function f to iterate
        max_iterations: Maximum number of applications of f
        stopping_radius: Bailout radius
        conjugate: If True iterate z -> f(conjugate(z))

    Returns:
        List of iterates [z0, z1, ..., zn] with n <= max_iterations
    """
    radius_sq = stopping_radius * stopping_radius
    z = complex(z_start)
    iterates = [z]
    iteration = 0
    while z.real * z.real + z.imag * z.imag <= radius_sq and iteration < max_iterations:
        if conjugate:
            z = function(z.conjugate())
        else:
            z = function(z)
        iterates.append(z)
        iteration += 1
    return iterates


class ComplexFunctionIterator:
    """
    Iterator of a complex function with a maximum iteration count and a
    stopping radius.

    The iterations f^n(z) stop when n reaches the maximum number of iterations
    or when |f^n(z)| exceeds the stopping radius.
    """

    def __init__(self, max_iterations: int, stopping_radius: float, function: ComplexFunction):
        """
        Initialize the iterator.

        Args:
            max_iterations: Maximum number of iterations (at least 1)
            stopping_radius: Positive, finite bailout radius
            function: Complex function to iterate
        """
        self.max_iterations = max_iterations
        self.stopping_radius = stopping_radius
        self.function = function

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, value: int) -> None:
        self._max_iterations = validate_max_iterations(value)

    @property
    def stopping_radius(self) -> float:
        return self._stopping_radius

    @stopping_radius.setter
    def stopping_radius(self, value: float) -> None:
        self._stopping_radius = validate_stopping_radius(value)

    @property
    def function(self) -> ComplexFunction:
        return self._function

    @function.setter
    def function(self, value: ComplexFunction) -> None:
        if not callable(value):
            raise ValueError("Function to iterate must be callable")
        self._function = value

    def iterate(self, z_start: complex) -> List[complex]:
        """Iterate the function from z_start and return the list of iterates."""
        return iterate_function(z_start, self._function, self._max_iterations,
                                self._stopping_radius)

    def iterate_conjugate(self, z_start: complex) -> List[complex]:
        """Iterate z -> f(conjugate(z)) from z_start and return the list of iterates."""
        return iterate_function(z_start, self._function, self._max_iterations,
                                self._stopping_radius, conjugate=True)

    def __repr__(self) -> str:
        return (f"ComplexFunctionIterator(max_iterations={self._max_iterations}, "
                f"stopping_radius={self._stopping_radius})")
