"""
Closed-form escape-time fractal sets.

This module implements the quadratic fractal sets (Mandelbrot, Julia and
Tricorn) with the recurrence z -> z^2 + c unrolled into updates of the real
and imaginary parts, which avoids the overhead of complex objects. The sets
are collected in a registry from which they can be selected by name.
"""

import inspect
import numpy as np
from typing import Dict, List, Optional, Tuple, Union
from abc import ABC, abstractmethod
import logging

from .complex_plane import ComplexPlaneView
from .math_functions import validate_max_iterations

logger = logging.getLogger(__name__)

# Once |z| > 2 the iterates of z^2 + c diverge
BOUND = 2.0
BOUND_SQUARE = BOUND * BOUND

MU_SYMBOL = "μ"


def escape_quadratic(z_real: float, z_imag: float, c_real: float, c_imag: float,
                     max_iter: int, conjugate: bool = False) -> Tuple[int, float, float]:
    """
    Iterate z -> z^2 + c (or conjugate(z)^2 + c) on real and imaginary parts.

    Args:
        z_real, z_imag: Starting value of z
        c_real, c_imag: Constant c
        max_iter: Maximum number of iterations
        conjugate: Square the conjugate of z instead of z

    Returns:
        Tuple of (iterations, final_real, final_imag)
    """
    cross = -2.0 if conjugate else 2.0
    iteration = 0
    while z_real * z_real + z_imag * z_imag <= BOUND_SQUARE and iteration < max_iter:
        real_temp = z_real * z_real - z_imag * z_imag + c_real
        z_imag = cross * z_real * z_imag + c_imag
        z_real = real_temp
        iteration += 1
    return iteration, z_real, z_imag


def escape_quadratic_array(z: np.ndarray, c: Union[np.ndarray, complex], max_iter: int,
                           conjugate: bool = False) -> np.ndarray:
    """
    Vectorized version of escape_quadratic.

    The per-element arithmetic is the same as in escape_quadratic, so the
    counts are identical to evaluating each point separately.

    Args:
        z: Array of starting values
        c: Array of constants with the shape of z, or a single constant
        max_iter: Maximum number of iterations
        conjugate: Square the conjugate of z instead of z

    Returns:
        Integer array of iteration counts with the shape of z
    """
    cross = -2.0 if conjugate else 2.0
    z_real = np.array(z.real, dtype=np.float64)
    z_imag = np.array(z.imag, dtype=np.float64)
    c = np.broadcast_to(np.asarray(c, dtype=np.complex128), z_real.shape)
    c_real = np.ascontiguousarray(c.real, dtype=np.float64)
    c_imag = np.ascontiguousarray(c.imag, dtype=np.float64)

    iterations = np.zeros(z_real.shape, dtype=np.int64)
    active = np.ones(z_real.shape, dtype=bool)

    for _ in range(max_iter):
        active &= (z_real * z_real + z_imag * z_imag) <= BOUND_SQUARE
        if not np.any(active):
            break

        zr = z_real[active]
        zi = z_imag[active]
        z_real[active] = zr * zr - zi * zi + c_real[active]
        z_imag[active] = cross * zr * zi + c_imag[active]
        iterations[active] += 1

    return iterations


class FractalSet(ABC):
    """
    Abstract base class for closed-form escape-time fractal sets.

    Points for which the maximum number of iterations is reached are
    considered to be part of the set.
    """

    name = "Fractal set"

    @abstractmethod
    def escape_state(self, real: float, imaginary: float, max_iter: int) -> Tuple[int, complex]:
        """
        Iterate the recurrence for one point.

        Args:
            real: Real part of the point
            imaginary: Imaginary part of the point
            max_iter: Maximum number of iterations

        Returns:
            Tuple of (iterations completed, last value of z)
        """
        pass

    @abstractmethod
    def compute_iterations(self, view: ComplexPlaneView, max_iter: int) -> np.ndarray:
        """
        Compute the iteration count for every pixel of a view.

        Returns:
            Integer array of shape (height, width), row 0 at the top
        """
        pass

    def iteration_count(self, real: float, imaginary: float, max_iter: int) -> int:
        """Number of iterations completed before bailout or reaching max_iter."""
        return self.escape_state(real, imaginary, max_iter)[0]

    def is_member(self, real: float, imaginary: float, max_iter: int) -> bool:
        """True if the point does not escape within max_iter iterations."""
        return self.iteration_count(real, imaginary, max_iter) >= max_iter

    def get_info_lines(self) -> List[str]:
        """Lines describing the set parameters (may be empty)."""
        return []

    def get_description(self) -> str:
        return self.name


class MandelbrotSet(FractalSet):
    """Mandelbrot set: z_{n+1} = z_n^2 + c with z_0 = 0, c varied over the plane."""

    name = "Mandelbrot set"

    def escape_state(self, real: float, imaginary: float, max_iter: int) -> Tuple[int, complex]:
        validate_max_iterations(max_iter)
        # z_1 = c, since z_0 = 0
        count, z_real, z_imag = escape_quadratic(real, imaginary, real, imaginary, max_iter)
        return count, complex(z_real, z_imag)

    def compute_iterations(self, view: ComplexPlaneView, max_iter: int) -> np.ndarray:
        validate_max_iterations(max_iter)
        c = view.create_complex_array()
        return escape_quadratic_array(c, c, max_iter)

    def get_description(self) -> str:
        return "Mandelbrot set: z_{n+1} = z_n^2 + c, where c is the complex coordinate and z_0 = 0"


class JuliaSet(FractalSet):
    """Julia set of z^2 + mu: mu is fixed, the starting value z_0 is varied over the plane."""

    name = "Julia set"

    def __init__(self, mu: complex = complex(-0.75, 0.1)):
        """
        Initialize Julia set.

        Args:
            mu: The fixed constant of the iterated polynomial
        """
        self.mu = complex(mu)

    def escape_state(self, real: float, imaginary: float, max_iter: int) -> Tuple[int, complex]:
        validate_max_iterations(max_iter)
        count, z_real, z_imag = escape_quadratic(real, imaginary, self.mu.real, self.mu.imag,
                                                 max_iter)
        return count, complex(z_real, z_imag)

    def compute_iterations(self, view: ComplexPlaneView, max_iter: int) -> np.ndarray:
        validate_max_iterations(max_iter)
        return escape_quadratic_array(view.create_complex_array(), self.mu, max_iter)

    def get_info_lines(self) -> List[str]:
        return [f"Re({MU_SYMBOL}) = {self.mu.real}", f"Im({MU_SYMBOL}) = {self.mu.imag}"]

    def get_description(self) -> str:
        return f"Julia set: z_{{n+1}} = z_n^2 + mu, where mu = {self.mu} and z_0 is the complex coordinate"


class Tricorn(FractalSet):
    """Tricorn (Mandelbar) set: z_{n+1} = conjugate(z_n)^2 + c with z_0 = 0."""

    name = "Tricorn"

    def escape_state(self, real: float, imaginary: float, max_iter: int) -> Tuple[int, complex]:
        validate_max_iterations(max_iter)
        count, z_real, z_imag = escape_quadratic(real, imaginary, real, imaginary, max_iter,
                                                 conjugate=True)
        return count, complex(z_real, z_imag)

    def compute_iterations(self, view: ComplexPlaneView, max_iter: int) -> np.ndarray:
        validate_max_iterations(max_iter)
        c = view.create_complex_array()
        return escape_quadratic_array(c, c, max_iter, conjugate=True)

    def get_description(self) -> str:
        return "Tricorn: z_{n+1} = conjugate(z_n)^2 + c, where c is the complex coordinate and z_0 = 0"


class FractalRegistry:
    """Registry of the fractal sets that can be selected at runtime."""

    _fractals: Dict[str, type] = {
        'mandelbrot': MandelbrotSet,
        'julia': JuliaSet,
        'tricorn': Tricorn,
    }

    @classmethod
    def register(cls, name: str, fractal_class: type) -> None:
        """
        Register a new fractal set.

        Args:
            name: Unique identifier for the fractal
            fractal_class: Concrete subclass of FractalSet
        """
        if not (inspect.isclass(fractal_class) and issubclass(fractal_class, FractalSet)):
            raise ValueError("Fractal class must inherit from FractalSet")
        if inspect.isabstract(fractal_class):
            raise ValueError(f"Fractal class {fractal_class.__name__} does not implement "
                             f"all FractalSet methods")
        cls._fractals[name.lower()] = fractal_class
        logger.info(f"Registered fractal set: {name}")

    @classmethod
    def get(cls, name: str) -> type:
        fractal_class = cls._fractals.get(name.lower())
        if fractal_class is None:
            available = ', '.join(cls._fractals.keys())
            raise ValueError(f"Unknown fractal set '{name}'. Available: {available}")
        return fractal_class

    @classmethod
    def names(cls) -> List[str]:
        return list(cls._fractals.keys())

    @classmethod
    def list_fractals(cls) -> Dict[str, str]:
        """Get a dictionary of available fractal sets and their descriptions."""
        return {name: fractal_class().get_description()
                for name, fractal_class in cls._fractals.items()}

    @classmethod
    def create_fractal(cls, name: str, mu: Optional[Union[complex, str]] = None) -> FractalSet:
        """
        Create a fractal set instance.

        Args:
            name: Fractal set name
            mu: Julia constant, either a complex number or a JULIA_PRESETS name

        Returns:
            Configured fractal set
        """
        fractal_class = cls.get(name)
        if fractal_class is JuliaSet and mu is not None:
            return JuliaSet(resolve_julia_constant(mu))
        return fractal_class()


# Predefined interesting Julia set constants
JULIA_PRESETS = {
    'dragon': complex(-0.75, 0.1),
    'spiral': complex(-0.4, 0.6),
    'dendrite': complex(-0.235125, 0.827215),
    'lightning': complex(-0.8, 0.156),
    'rabbit': complex(-0.123, 0.745),
    'airplane': complex(-1.25, 0.0),
    'san_marco': complex(-0.75, 0.0),
    'siegel_disk': complex(-0.391, -0.587),
}


def resolve_julia_constant(mu: Union[complex, str]) -> complex:
    """Turn a preset name or a number into a Julia constant."""
    if isinstance(mu, str):
        if mu.lower() in JULIA_PRESETS:
            return JULIA_PRESETS[mu.lower()]
        available = ', '.join(JULIA_PRESETS.keys())
        raise ValueError(f"Unknown Julia preset '{mu}'. Available: {available}")
    return complex(mu)
