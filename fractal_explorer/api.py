"""
Main API classes for fractal rendering.

This module ties the view, the generators or closed-form sets, the image
scaling and the colour tables together into a single rendering pipeline.
"""

import numpy as np
from typing import Any, Callable, Dict, List, Optional, Union
from dataclasses import dataclass, asdict, fields
from concurrent.futures import ThreadPoolExecutor, Future
from pathlib import Path
import json
import logging
import threading
import time

from .core.complex_plane import ComplexPlaneView, DEFAULT_CENTRE_REAL, DEFAULT_CENTRE_IMAGINARY
from .core.fractal_types import BOUND, FractalRegistry, FractalSet, JULIA_PRESETS
from .core.generators import (DEFAULT_ITERATIONS, FractalGenerator, GENERATOR_PRESETS,
                              ProgressCallback, create_generator, get_preset)
from .core.math_functions import validate_max_iterations, validate_stopping_radius
from .rendering.coloring import COLORING_ALGORITHMS, ColourLut
from .rendering.image_output import ImageExporter, RenderMetadata
from .rendering.scaling import ImageScaling

logger = logging.getLogger(__name__)


def parse_complex(text: str) -> complex:
    """
    Parse a complex number written as "re,im".

    Args:
        text: Real and imaginary part separated by a comma

    Returns:
        The complex number
    """
    parts = [part.strip() for part in str(text).split(',')]
    if len(parts) != 2:
        raise ValueError(f"Expected a complex number as 're,im', got '{text}'")
    try:
        return complex(float(parts[0]), float(parts[1]))
    except ValueError:
        raise ValueError(f"Expected a complex number as 're,im', got '{text}'") from None


def resolve_mu(value: Union[str, complex]) -> complex:
    """Turn a Julia preset name, an 're,im' string or a number into a constant."""
    if isinstance(value, str):
        key = value.lower()
        if key in JULIA_PRESETS:
            return JULIA_PRESETS[key]
        return parse_complex(value)
    return complex(value)


@dataclass
class RenderConfig:
    """Configuration for fractal rendering."""

    # View
    width: int = 800
    height: int = 600
    centre_real: float = DEFAULT_CENTRE_REAL
    centre_imaginary: float = DEFAULT_CENTRE_IMAGINARY
    zoom: float = 1.0

    # Fractal
    fractal: str = 'mandelbrot'
    max_iterations: int = DEFAULT_ITERATIONS
    stopping_radius: Optional[float] = None  # preset default if None
    use_conjugate: Optional[bool] = None  # preset default if None
    julia_mu: Optional[str] = None  # preset name or "re,im"; view centre if None
    closed_form: bool = False

    # Coloring
    coloring_algorithm: str = 'escape_time'
    smooth_power: Optional[float] = None
    image_scaling: str = 'logarithmic'
    colour_lut: str = 'greyscale'

    # Performance
    workers: int = 1

    # Output
    jpeg_quality: int = 95
    save_metadata: bool = True
    save_raw_data: bool = False

    def validate(self):
        """Validate configuration parameters."""
        if self.width < 2 or self.height < 2:
            raise ValueError(f"Width and height must be at least 2, got {self.width}x{self.height}")

        if not (self.zoom > 0 and np.isfinite(self.zoom)):
            raise ValueError(f"zoom must be finite and larger than 0, got {self.zoom}")

        validate_max_iterations(self.max_iterations)
        if self.stopping_radius is not None:
            validate_stopping_radius(self.stopping_radius)

        if self.closed_form:
            FractalRegistry.get(self.fractal)
            if self.stopping_radius is not None and self.stopping_radius != BOUND:
                raise ValueError(f"Closed-form sets use a fixed bailout of {BOUND}, "
                                 f"got stopping_radius={self.stopping_radius}")
            if self.use_conjugate:
                raise ValueError("Closed-form sets do not support conjugate iteration; "
                                 "use the closed-form 'tricorn' set instead")
            if self.coloring_algorithm != 'escape_time':
                raise ValueError(f"Closed-form sets only support 'escape_time' coloring, "
                                 f"got '{self.coloring_algorithm}'")
        else:
            get_preset(self.fractal)

        if self.coloring_algorithm not in COLORING_ALGORITHMS:
            available = ', '.join(COLORING_ALGORITHMS.keys())
            raise ValueError(f"Unknown coloring algorithm '{self.coloring_algorithm}'. "
                             f"Available: {available}")

        ImageScaling.from_name(self.image_scaling)
        ColourLut.from_name(self.colour_lut)

        if self.julia_mu is not None:
            resolve_mu(self.julia_mu)

        if self.workers < 1:
            raise ValueError("workers must be >= 1")

        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be between 1 and 100")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderConfig':
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)

    def update(self, **kwargs) -> 'RenderConfig':
        """Set several fields at once and validate the result."""
        for key, value in kwargs.items():
            if not hasattr(self, key):
                raise ValueError(f"Unknown config parameter: {key}")
            setattr(self, key, value)
        self.validate()
        return self


def load_config(path: Union[str, Path]) -> RenderConfig:
    """Load a render configuration from a JSON file."""
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a JSON object")
    config = RenderConfig.from_dict(data)
    config.validate()
    logger.info(f"Loaded configuration from {path}")
    return config


def save_config(config: RenderConfig, path: Union[str, Path]) -> None:
    """Save a render configuration as JSON."""
    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent=2)
    logger.info(f"Saved configuration to {path}")


class FractalRenderer:
    """Main fractal rendering engine."""

    def __init__(self, config: Optional[RenderConfig] = None):
        """
        Initialize fractal renderer.

        Args:
            config: Rendering configuration (uses defaults if None)
        """
        self.config = config or RenderConfig()
        self.config.validate()
        self.image_exporter = ImageExporter()

        logger.info(f"FractalRenderer initialized: {self.config.width}x{self.config.height}, "
                    f"fractal={self.config.fractal}")

    def create_view(self) -> ComplexPlaneView:
        """Create the view on the complex plane described by the configuration."""
        view = ComplexPlaneView(self.config.width, self.config.height)
        view.set_centre(self.config.centre_real, self.config.centre_imaginary)
        if self.config.zoom != 1.0:
            view.set_zoom_factor(self.config.zoom)
        return view

    def julia_constant(self, view: ComplexPlaneView) -> complex:
        """Julia constant from the configuration, or the view centre if none is set."""
        if self.config.julia_mu is not None:
            return resolve_mu(self.config.julia_mu)
        return view.centre

    def create_generator(self, view: Optional[ComplexPlaneView] = None) -> FractalGenerator:
        view = view or self.create_view()
        preset = get_preset(self.config.fractal)
        return create_generator(
            self.config.fractal,
            max_iterations=self.config.max_iterations,
            stopping_radius=self.config.stopping_radius,
            coloring=self.config.coloring_algorithm,
            use_conjugate=self.config.use_conjugate,
            mu=self.julia_constant(view) if preset.needs_mu else None,
            power=self.config.smooth_power,
        )

    def create_fractal_set(self) -> FractalSet:
        mu = resolve_mu(self.config.julia_mu) if self.config.julia_mu is not None else None
        return FractalRegistry.create_fractal(self.config.fractal, mu)

    def compute_raw(self, view: Optional[ComplexPlaneView] = None,
                    progress_callback: Optional[ProgressCallback] = None) -> np.ndarray:
        """
        Compute the raw pixel values of a view.

        Args:
            view: View to compute (created from the configuration if None)
            progress_callback: Called with the percentage of rows completed

        Returns:
            Flat row-major array of width*height values
        """
        view = view or self.create_view()
        if self.config.closed_form:
            fractal_set = self.create_fractal_set()
            logger.info(f"Computing closed-form {fractal_set.name}: {view.width}x{view.height}")
            counts = fractal_set.compute_iterations(view, self.config.max_iterations)
            if progress_callback:
                progress_callback(100)
            return counts.astype(np.float64).ravel()

        generator = self.create_generator(view)
        return generator.generate_image(view, progress_callback, workers=self.config.workers)

    def scale(self, raw: np.ndarray) -> np.ndarray:
        return ImageScaling.from_name(self.config.image_scaling).scale_data(raw)

    def colorize(self, scaled: np.ndarray) -> np.ndarray:
        """Convert flat scaled values into an RGB image of shape (height, width, 3)."""
        image = np.asarray(scaled).reshape(self.config.height, self.config.width)
        return ColourLut.from_name(self.config.colour_lut).apply(image)

    def get_info_lines(self) -> List[str]:
        """Info lines of the configured generator or fractal set."""
        if self.config.closed_form:
            return self.create_fractal_set().get_info_lines()
        return self.create_generator().get_info_lines()

    def render(self, output_path: Optional[Path] = None,
               progress_callback: Optional[ProgressCallback] = None) -> np.ndarray:
        """
        Render the configured fractal to an image.

        Args:
            output_path: Optional output file path
            progress_callback: Optional progress callback function

        Returns:
            RGB image array (0-1 range)
        """
        start_time = time.time()
        logger.info(f"Starting render: {self.config.fractal}")

        view = self.create_view()
        raw = self.compute_raw(view, progress_callback)
        rgb_image = self.colorize(self.scale(raw))

        if output_path:
            self._save_image(rgb_image, raw, Path(output_path), time.time() - start_time)

        logger.info(f"Render complete: {time.time() - start_time:.2f}s")
        return rgb_image

    def create_metadata(self, render_time: float = 0.0) -> RenderMetadata:
        config = self.config
        radius = config.stopping_radius
        if radius is None:
            radius = BOUND if config.closed_form else GENERATOR_PRESETS[config.fractal.lower()].stopping_radius
        return RenderMetadata(
            fractal_type=config.fractal,
            centre=[config.centre_real, config.centre_imaginary],
            zoom_factor=config.zoom,
            resolution=[config.width, config.height],
            max_iterations=config.max_iterations,
            stopping_radius=radius,
            coloring_algorithm=config.coloring_algorithm,
            image_scaling=config.image_scaling,
            colour_lut=config.colour_lut,
            render_time_seconds=render_time,
            info_lines=self.get_info_lines(),
        )

    def _save_image(self, rgb_image: np.ndarray, raw: np.ndarray, output_path: Path,
                    render_time: float):
        """Save rendered image with metadata."""
        metadata = self.create_metadata(render_time)

        if self.config.save_metadata:
            self.image_exporter.save_image(rgb_image, output_path, metadata, self.config.jpeg_quality)
        else:
            self.image_exporter.save_image(rgb_image, output_path, quality=self.config.jpeg_quality)

        if self.config.save_raw_data:
            raw_path = output_path.with_suffix('.npy')
            self.image_exporter.save_raw_data(raw, raw_path, metadata)


class FractalCalculationTask:
    """
    Computation of a full image in a background thread.

    Progress is the percentage of image rows completed. Cancelling does not
    interrupt the computation; the result is discarded when it finishes.
    """

    def __init__(self, generator: FractalGenerator, view: ComplexPlaneView, workers: int = 1):
        """
        Initialize the task.

        Args:
            generator: Generator computing the pixel values
            view: View to compute; a copy is taken so the caller may keep changing it
            workers: Number of workers computing rows (see FractalGenerator.generate_image)
        """
        if workers < 1:
            raise ValueError(f"Number of workers must be at least 1, got {workers}")
        self.generator = generator
        self.view = view.copy()
        self.workers = workers
        self._progress = 0
        self._cancelled = False
        self._future: Optional[Future] = None
        self._listeners: List[Callable[[int], None]] = []
        self._lock = threading.Lock()

    @property
    def progress(self) -> int:
        return self._progress

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def add_progress_listener(self, listener: Callable[[int], None]) -> None:
        with self._lock:
            self._listeners.append(listener)

    def _on_progress(self, percent: int) -> None:
        self._progress = percent
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(percent)

    def start(self) -> 'FractalCalculationTask':
        """Start the computation in a background thread."""
        if self._future is not None:
            raise RuntimeError("Calculation task has already been started")
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='fractal-calculation')
        self._future = executor.submit(self.generator.generate_image, self.view,
                                       self._on_progress, self.workers)
        # The submitted computation still runs to completion
        executor.shutdown(wait=False)
        logger.info(f"Started background calculation: {self.generator.name}")
        return self

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def cancel(self) -> None:
        """Discard the result; a running computation is left to finish."""
        self._cancelled = True
        if self._future is not None:
            self._future.cancel()
        logger.info("Background calculation cancelled")

    def result(self, timeout: Optional[float] = None) -> Optional[np.ndarray]:
        """
        Wait for the computation and return its pixel values.

        Returns:
            Flat row-major array of pixel values, or None if the task was cancelled
        """
        if self._future is None:
            raise RuntimeError("Calculation task has not been started")
        if self._cancelled:
            return None
        values = self._future.result(timeout)
        if self._cancelled:
            return None
        return values
