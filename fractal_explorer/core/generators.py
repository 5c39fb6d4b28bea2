"""
Configurable fractal image generators based on complex dynamics.

A generator iterates a complex function for every pixel of a view on the
complex plane and reduces the iterates of each pixel to a single value with
its coloring algorithm. Mandelbrot-style generators vary the constant c added
to the function; Julia/Fatou-style generators vary the starting value z0.

The per-pixel constant is captured in a function built for that pixel only,
so a generator holds no per-pixel state. Generators whose generating function
is defined at module level can be pickled and computed by worker processes.
"""

import numpy as np
import pickle
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional
from abc import ABC, abstractmethod
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
import logging

from .complex_plane import ComplexPlaneView
from .math_functions import (ComplexFunction, iterate_function, validate_max_iterations,
                             validate_stopping_radius)
from ..rendering.coloring import (ColoringAlgorithm, SmoothIterationCountColoring,
                                  create_coloring_algorithm)

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 256
DEFAULT_STOPPING_RADIUS = 2.0

MU_SYMBOL = "μ"

ProgressCallback = Callable[[int], None]


def square(z: complex) -> complex:
    """The base function z^2 of the classic Mandelbrot and Julia sets."""
    return z * z


@dataclass(frozen=True)
class GeneratorConfig:
    """
    Validated, immutable configuration of a fractal generator.

    Attributes:
        coloring_algorithm: Algorithm turning the iterates into a pixel value
        max_iterations: Maximum number of iterations (at least 1)
        stopping_radius: Positive, finite bailout radius
        generating_function: Base function f(z) of the dynamical system
        use_conjugate: Iterate f(conjugate(z)) instead of f(z)
    """

    coloring_algorithm: Optional[ColoringAlgorithm] = None
    max_iterations: Optional[int] = None
    stopping_radius: Optional[float] = None
    generating_function: Optional[ComplexFunction] = None
    use_conjugate: bool = False

    def __post_init__(self):
        self.validate()
        object.__setattr__(self, 'max_iterations', validate_max_iterations(self.max_iterations))
        object.__setattr__(self, 'stopping_radius', validate_stopping_radius(self.stopping_radius))
        object.__setattr__(self, 'use_conjugate', bool(self.use_conjugate))

    def validate(self) -> None:
        """Check that every field is present and valid."""
        if self.coloring_algorithm is None:
            raise ValueError("A coloring algorithm is required")
        if not isinstance(self.coloring_algorithm, ColoringAlgorithm):
            raise ValueError("coloring_algorithm must be a ColoringAlgorithm instance")
        if self.max_iterations is None:
            raise ValueError("The maximum number of iterations is required")
        validate_max_iterations(self.max_iterations)
        if self.stopping_radius is None:
            raise ValueError("A stopping radius is required")
        validate_stopping_radius(self.stopping_radius)
        if self.generating_function is None:
            raise ValueError("A generating function is required")
        if not callable(self.generating_function):
            raise ValueError("generating_function must be callable")
        if (isinstance(self.coloring_algorithm, SmoothIterationCountColoring)
                and self.coloring_algorithm.bailout != float(self.stopping_radius)):
            raise ValueError(f"Smooth coloring bailout {self.coloring_algorithm.bailout} does not match "
                             f"the stopping radius {self.stopping_radius}")

    def replace(self, **changes) -> 'GeneratorConfig':
        """Create a new configuration with some fields changed."""
        return replace(self, **changes)


class FractalGenerator(ABC):
    """
    Abstract base class for fractal image generators.

    Subclasses define how the iterates for a point of the complex plane are
    obtained; the pixel value and the full image follow from that.
    """

    name = "Fractal generator"

    def __init__(self, config: GeneratorConfig):
        """
        Initialize generator.

        Args:
            config: Generator configuration
        """
        if not isinstance(config, GeneratorConfig):
            raise ValueError("Generator requires a GeneratorConfig")
        self.config = config

    @abstractmethod
    def iterates(self, z: complex) -> List[complex]:
        """Iterates of the generating function for the point z of the complex plane."""
        pass

    def generate_pixel_value(self, z: complex) -> float:
        """Value of the pixel at the point z of the complex plane."""
        return self.config.coloring_algorithm.get_pixel_value(self.iterates(z))

    def get_info_lines(self) -> List[str]:
        """Lines describing the generator parameters (may be empty)."""
        return []

    def with_conjugate(self, use_conjugate: bool = True) -> 'FractalGenerator':
        """Create a copy of this generator with conjugate iteration switched on or off."""
        return self._with_config(self.config.replace(use_conjugate=use_conjugate))

    def _with_config(self, config: GeneratorConfig) -> 'FractalGenerator':
        return type(self)(config)

    def _iterate(self, z_start: complex, function: ComplexFunction) -> List[complex]:
        return iterate_function(z_start, function, self.config.max_iterations,
                                self.config.stopping_radius, conjugate=self.config.use_conjugate)

    def generate_row(self, view: ComplexPlaneView, row: int) -> np.ndarray:
        """Pixel values of one image row (row 0 is the top of the image)."""
        imag = view.value_at_imaginary_pixel(row)
        values = np.empty(view.width, dtype=np.float64)
        for i in range(view.width):
            values[i] = self.generate_pixel_value(complex(view.value_at_real_pixel(i), imag))
        return values

    def generate_image(self, view: ComplexPlaneView,
                       progress_callback: Optional[ProgressCallback] = None,
                       workers: int = 1) -> np.ndarray:
        """
        Generate the raw pixel values for a complete view.

        With more than one worker the rows are computed by a process pool when
        the generator can be pickled. Generators built on a lambda or a local
        function fall back to a thread pool, which gives no speed-up for this
        CPU-bound work.

        Args:
            view: View on the complex plane
            progress_callback: Called with the percentage of rows completed
            workers: Number of processes (or threads) computing rows in parallel

        Returns:
            Flat array of width*height values in row-major order: the value of
            pixel (i, j) is at index j*width + i
        """
        if workers < 1:
            raise ValueError(f"Number of workers must be at least 1, got {workers}")

        width, height = view.width, view.height
        image = np.empty(width * height, dtype=np.float64)
        logger.info(f"Generating {self.name} image: {width}x{height}, "
                    f"max_iterations={self.config.max_iterations}, workers={workers}")

        def report(rows_done: int) -> None:
            logger.debug(f"{rows_done}/{height} rows done")
            if progress_callback:
                progress_callback(int(round(100.0 * rows_done / height)))

        if workers == 1:
            for j in range(height):
                image[j * width:(j + 1) * width] = self.generate_row(view, j)
                report(j + 1)
        else:
            executor_class = ProcessPoolExecutor if self.is_picklable() else ThreadPoolExecutor
            with executor_class(max_workers=workers) as executor:
                futures = {executor.submit(_generate_row, self, view, j): j for j in range(height)}
                for rows_done, future in enumerate(as_completed(futures), start=1):
                    j = futures[future]
                    image[j * width:(j + 1) * width] = future.result()
                    report(rows_done)

        return image

    def is_picklable(self) -> bool:
        """Whether this generator can be sent to worker processes."""
        try:
            pickle.dumps(self)
        except (pickle.PicklingError, AttributeError, TypeError) as e:
            logger.debug(f"{self.name} generator cannot be pickled, computing rows in threads: {e}")
            return False
        return True


def _generate_row(generator: FractalGenerator, view: ComplexPlaneView, row: int) -> np.ndarray:
    """Compute one image row (worker entry point)."""
    return generator.generate_row(view, row)


class MandelbrotGenerator(FractalGenerator):
    """
    General Mandelbrot generator: iterates f(z) + c from z0 = 0 and varies c
    over the complex plane.
    """

    name = "Mandelbrot"

    def iterates(self, c: complex) -> List[complex]:
        base = self.config.generating_function

        def step(z: complex) -> complex:
            return base(z) + c

        return self._iterate(0j, step)


class ModifiedMandelbrotGenerator(FractalGenerator):
    """Mandelbrot generator with the starting value z0 equal to the constant c."""

    name = "Modified Mandelbrot"

    def iterates(self, c: complex) -> List[complex]:
        base = self.config.generating_function

        def step(z: complex) -> complex:
            return base(z) + c

        return self._iterate(c, step)


class JuliaFatouGenerator(FractalGenerator):
    """
    General Julia/Fatou generator: iterates f(z) + mu with mu fixed and varies
    the starting value z0 over the complex plane.
    """

    name = "Julia-Fatou"

    def __init__(self, config: GeneratorConfig, mu: complex = 0j):
        super().__init__(config)
        self.mu = complex(mu)

    def _with_config(self, config: GeneratorConfig) -> 'JuliaFatouGenerator':
        return JuliaFatouGenerator(config, self.mu)

    def iterates(self, z: complex) -> List[complex]:
        base = self.config.generating_function
        mu = self.mu

        def step(w: complex) -> complex:
            return base(w) + mu

        return self._iterate(z, step)

    def get_info_lines(self) -> List[str]:
        return [f"Re({MU_SYMBOL}) = {self.mu.real}", f"Im({MU_SYMBOL}) = {self.mu.imag}"]


@dataclass(frozen=True)
class GeneratorPreset:
    """A named, pre-configured kind of generator."""

    generator_class: type
    generating_function: ComplexFunction
    stopping_radius: float
    power: float
    description: str
    use_conjugate: bool = False
    needs_mu: bool = False


# Coefficient of the linear term in Rudy's cubic z^3 + d*z
RUDY_COEFFICIENT = complex(-0.7198, 0.9111)


def rudy_cubic(z: complex) -> complex:
    return z * z * z + z * RUDY_COEFFICIENT


GENERATOR_PRESETS: Dict[str, GeneratorPreset] = {
    'mandelbrot': GeneratorPreset(
        MandelbrotGenerator, square, DEFAULT_STOPPING_RADIUS, 2.0,
        "Mandelbrot: z -> z^2 + c from z0 = 0, c varied over the plane"),
    'modified_mandelbrot': GeneratorPreset(
        ModifiedMandelbrotGenerator, square, DEFAULT_STOPPING_RADIUS, 2.0,
        "Modified Mandelbrot: z -> z^2 + c from z0 = c"),
    'rudy_cubic': GeneratorPreset(
        ModifiedMandelbrotGenerator, rudy_cubic, 1.0e10, 3.0,
        f"Rudy's cubic Mandelbrot: z -> z^3 + d*z + c from z0 = c, d = {RUDY_COEFFICIENT}"),
    'tricorn': GeneratorPreset(
        MandelbrotGenerator, square, DEFAULT_STOPPING_RADIUS, 2.0,
        "Tricorn: z -> conjugate(z)^2 + c from z0 = 0", use_conjugate=True),
    'julia': GeneratorPreset(
        JuliaFatouGenerator, square, DEFAULT_STOPPING_RADIUS, 2.0,
        "Julia/Fatou: z -> z^2 + mu, z0 varied over the plane", needs_mu=True),
}


def get_preset(name: str) -> GeneratorPreset:
    preset = GENERATOR_PRESETS.get(name.lower())
    if preset is None:
        available = ', '.join(GENERATOR_PRESETS.keys())
        raise ValueError(f"Unknown generator '{name}'. Available: {available}")
    return preset


def create_generator(name: str, max_iterations: int = DEFAULT_ITERATIONS,
                     stopping_radius: Optional[float] = None, coloring: str = 'escape_time',
                     use_conjugate: Optional[bool] = None,
                     mu: Optional[complex] = None,
                     power: Optional[float] = None) -> FractalGenerator:
    """
    Create a generator from one of the GENERATOR_PRESETS.

    Args:
        name: Preset name
        max_iterations: Maximum number of iterations
        stopping_radius: Bailout radius (preset default if None)
        coloring: Name of the coloring algorithm
        use_conjugate: Conjugate iteration toggle (preset default if None)
        mu: Julia constant, required by presets that vary z0
        power: Power used by smooth coloring (preset default if None)

    Returns:
        Configured generator
    """
    preset = get_preset(name)
    radius = preset.stopping_radius if stopping_radius is None else stopping_radius
    conjugate = preset.use_conjugate if use_conjugate is None else use_conjugate
    smooth_power = preset.power if power is None else power
    config = GeneratorConfig(
        coloring_algorithm=create_coloring_algorithm(coloring, smooth_power, radius),
        max_iterations=max_iterations,
        stopping_radius=radius,
        generating_function=preset.generating_function,
        use_conjugate=conjugate,
    )

    if preset.needs_mu:
        if mu is None:
            raise ValueError(f"Generator '{name}' requires the constant mu")
        return preset.generator_class(config, mu)
    return preset.generator_class(config)


def get_mandelbrot_escape_time() -> MandelbrotGenerator:
    """Classic Mandelbrot generator with escape-time coloring."""
    return create_generator('mandelbrot')


def get_modified_mandelbrot_escape_time() -> ModifiedMandelbrotGenerator:
    return create_generator('modified_mandelbrot')


def get_rudy_cubic_mandelbrot_escape_time() -> ModifiedMandelbrotGenerator:
    return create_generator('rudy_cubic')


def get_julia_classic_escape_time(mu: complex) -> JuliaFatouGenerator:
    """Classic Julia generator iterating z^2 + mu, with escape-time coloring."""
    return create_generator('julia', mu=mu)


def julia_from_view(view: ComplexPlaneView, max_iterations: int = DEFAULT_ITERATIONS) -> JuliaFatouGenerator:
    """Classic Julia generator with mu taken from the centre of a view."""
    return create_generator('julia', max_iterations=max_iterations, mu=view.centre)


def list_generators() -> Dict[str, str]:
    """Get a dictionary of the generator presets and their descriptions."""
    return {name: preset.description for name, preset in GENERATOR_PRESETS.items()}
