"""
Escape-time fractal exploration library.

This library maps a pixel grid onto a zoomable window of the complex plane,
iterates complex functions for every pixel and turns the iterates into images.

Key Features:
- Configurable Mandelbrot-style and Julia/Fatou-style generators for any
  generating function, with optional conjugate iteration
- Closed-form Mandelbrot, Julia and Tricorn sets
- Escape-time and smooth iteration count coloring
- Linear, square-root and logarithmic image scaling with colour tables

Example usage:
    >>> from fractal_explorer import ComplexPlaneView, get_mandelbrot_escape_time
    >>> view = ComplexPlaneView(640, 480)
    >>> values = get_mandelbrot_escape_time().generate_image(view)
"""

__version__ = "1.0.0"
__author__ = "Fractal Explorer Team"

from fractal_explorer.core.complex_plane import ComplexPlaneView
from fractal_explorer.core.math_functions import ComplexFunctionIterator, iterate_function
from fractal_explorer.core.fractal_types import MandelbrotSet, JuliaSet, Tricorn, FractalRegistry
from fractal_explorer.core.generators import (
    GeneratorConfig,
    MandelbrotGenerator,
    ModifiedMandelbrotGenerator,
    JuliaFatouGenerator,
    create_generator,
    get_mandelbrot_escape_time,
    get_julia_classic_escape_time,
)
from fractal_explorer.rendering.coloring import (
    EscapeTimeColoring,
    SmoothIterationCountColoring,
    ColourLut,
)
from fractal_explorer.rendering.scaling import ImageScaling
from fractal_explorer.rendering.image_output import ImageExporter

# Main API classes
from fractal_explorer.api import FractalRenderer, RenderConfig, FractalCalculationTask

__all__ = [
    "FractalRenderer",
    "RenderConfig",
    "FractalCalculationTask",
    "ComplexPlaneView",
    "ComplexFunctionIterator",
    "iterate_function",
    "MandelbrotSet",
    "JuliaSet",
    "Tricorn",
    "FractalRegistry",
    "GeneratorConfig",
    "MandelbrotGenerator",
    "ModifiedMandelbrotGenerator",
    "JuliaFatouGenerator",
    "create_generator",
    "get_mandelbrot_escape_time",
    "get_julia_classic_escape_time",
    "EscapeTimeColoring",
    "SmoothIterationCountColoring",
    "ColourLut",
    "ImageScaling",
    "ImageExporter",
]
