"""
View on the complex plane for fractal rendering.

This module maps a rectangular pixel grid onto a window of the complex plane
and keeps track of the pan/zoom state of that window.
"""

import numpy as np
from typing import Tuple, Union
import logging

logger = logging.getLogger(__name__)

# Default view, chosen so the whole Mandelbrot set fits in the window
DEFAULT_CENTRE_REAL = -0.5
DEFAULT_CENTRE_IMAGINARY = 0.0
DEFAULT_SIZE_REAL = 3.0
DEFAULT_SIZE_IMAGINARY = 2.0
PREFERRED_ASPECT_RATIO = DEFAULT_SIZE_IMAGINARY / DEFAULT_SIZE_REAL

Number = Union[int, float]


class ComplexPlaneView:
    """
    Pixel grid mapped onto a rectangular window of the complex plane.

    The pixel dimensions are fixed for the life of the view. The centre and
    zoom factor are mutable; the window extents, its lower-left corner and the
    pixel spacing are derived from them. Pixel row 0 is the top of the image
    and corresponds to the largest imaginary value in the window.
    """

    def __init__(self, width: int, height: int):
        """
        Initialize the view to the default window for the given image size.

        Args:
            width: Number of pixels along the real axis (at least 2)
            height: Number of pixels along the imaginary axis (at least 2)
        """
        if width < 2 or height < 2:
            raise ValueError(f"View needs at least 2x2 pixels, got {width}x{height}")

        self._width = int(width)
        self._height = int(height)

        # Which axis gets stretched to match the image aspect ratio is decided once
        self._resize_imaginary = PREFERRED_ASPECT_RATIO > self._height / self._width

        self._initialize()

    def _initialize(self) -> None:
        """Put the view in its default state."""
        self._centre_real = DEFAULT_CENTRE_REAL
        self._centre_imaginary = DEFAULT_CENTRE_IMAGINARY
        if self._resize_imaginary:
            self._size_real = DEFAULT_SIZE_REAL
            self._size_imaginary = self._size_real * self._height / self._width
        else:
            self._size_imaginary = DEFAULT_SIZE_IMAGINARY
            self._size_real = self._size_imaginary * self._width / self._height
        self._zoom_factor = 1.0
        self._reconfigure()

    def _reconfigure(self) -> None:
        """Recompute the derived window fields after a change of centre or zoom."""
        self._re_min = self._centre_real - 0.5 * self._size_real
        self._im_min = self._centre_imaginary - 0.5 * self._size_imaginary
        self._delta_re = self._size_real / (self._width - 1)
        self._delta_im = self._size_imaginary / (self._height - 1)

    @property
    def width(self) -> int:
        """Number of pixels along the real axis."""
        return self._width

    @property
    def height(self) -> int:
        """Number of pixels along the imaginary axis."""
        return self._height

    @property
    def resize_imaginary(self) -> bool:
        return self._resize_imaginary

    @property
    def centre_real(self) -> float:
        return self._centre_real

    @property
    def centre_imaginary(self) -> float:
        return self._centre_imaginary

    @property
    def centre(self) -> complex:
        return complex(self._centre_real, self._centre_imaginary)

    @property
    def zoom_factor(self) -> float:
        return self._zoom_factor

    @property
    def size_real(self) -> float:
        """Length of the window along the real axis."""
        return self._size_real

    @property
    def size_imaginary(self) -> float:
        """Length of the window along the imaginary axis."""
        return self._size_imaginary

    @property
    def re_min(self) -> float:
        return self._re_min

    @property
    def im_min(self) -> float:
        return self._im_min

    @property
    def delta_real(self) -> float:
        """Pixel spacing along the real axis."""
        return self._delta_re

    @property
    def delta_imaginary(self) -> float:
        """Pixel spacing along the imaginary axis."""
        return self._delta_im

    def get_bounds(self) -> Tuple[float, float, float, float]:
        """Get the window as (re_min, re_max, im_min, im_max)."""
        return (self._re_min, self._re_min + self._size_real,
                self._im_min, self._im_min + self._size_imaginary)

    def set_centre(self, centre_real: float, centre_imaginary: float) -> None:
        """
        Move the centre of the view. Zoom factor and window size are unchanged.

        Args:
            centre_real: New centre along the real axis
            centre_imaginary: New centre along the imaginary axis
        """
        self._centre_real = float(centre_real)
        self._centre_imaginary = float(centre_imaginary)
        self._reconfigure()
        logger.debug(f"View centre set to ({self._centre_real}, {self._centre_imaginary})")

    def set_zoom_factor(self, zoom: float) -> None:
        """
        Change the zoom factor. Doubling the zoom halves the window extents.

        Args:
            zoom: New zoom factor, must be larger than zero
        """
        if not (zoom > 0.0 and np.isfinite(zoom)):
            raise ValueError(f"Zoom factor should be finite and larger than 0, got {zoom}")
        change = self._zoom_factor / zoom
        self._size_real = self._size_real * change
        self._size_imaginary = self._size_imaginary * change
        self._zoom_factor = float(zoom)
        self._reconfigure()
        logger.debug(f"View zoom factor set to {self._zoom_factor}")

    def double_zoom_factor(self) -> None:
        self.set_zoom_factor(self._zoom_factor * 2)

    def halve_zoom_factor(self) -> None:
        self.set_zoom_factor(self._zoom_factor * 0.5)

    def reset(self) -> None:
        """Return to the default centre and zoom for this image size."""
        self._initialize()

    def value_at_real_pixel(self, x: Number) -> float:
        """Real coordinate at (possibly fractional) pixel position x."""
        return self._re_min + x * self._delta_re

    def value_at_imaginary_pixel(self, y: Number) -> float:
        """Imaginary coordinate at (possibly fractional) pixel row y, row 0 at the top."""
        return self._im_min + (self._height - y - 1) * self._delta_im

    def pixel_to_complex(self, x: Number, y: Number) -> complex:
        """Convert pixel coordinates to a complex number."""
        return complex(self.value_at_real_pixel(x), self.value_at_imaginary_pixel(y))

    def complex_to_pixel(self, c: complex) -> Tuple[float, float]:
        """
        Convert a complex number to continuous pixel coordinates.

        Args:
            c: Point in the complex plane

        Returns:
            Tuple of (x, y) pixel coordinates, not rounded or clipped
        """
        x = (c.real - self._re_min) / self._delta_re
        y = self._height - 1 - (c.imag - self._im_min) / self._delta_im
        return x, y

    def create_complex_array(self) -> np.ndarray:
        """
        Create the complex coordinates of every pixel.

        Returns:
            Array of shape (height, width); element [j, i] equals pixel_to_complex(i, j)
        """
        real = self._re_min + np.arange(self._width, dtype=np.float64) * self._delta_re
        rows = (self._height - 1) - np.arange(self._height, dtype=np.float64)
        imag = self._im_min + rows * self._delta_im
        re_grid, im_grid = np.meshgrid(real, imag)
        grid = np.empty(re_grid.shape, dtype=np.complex128)
        grid.real = re_grid
        grid.imag = im_grid
        return grid

    def copy(self) -> 'ComplexPlaneView':
        """Create an independent copy of this view."""
        view = ComplexPlaneView(self._width, self._height)
        view._centre_real = self._centre_real
        view._centre_imaginary = self._centre_imaginary
        view._size_real = self._size_real
        view._size_imaginary = self._size_imaginary
        view._zoom_factor = self._zoom_factor
        view._reconfigure()
        return view

    def __copy__(self) -> 'ComplexPlaneView':
        return self.copy()

    def __deepcopy__(self, memo) -> 'ComplexPlaneView':
        return self.copy()

    def __eq__(self, other) -> bool:
        if not isinstance(other, ComplexPlaneView):
            return NotImplemented
        return (self._width == other._width and self._height == other._height
                and self._centre_real == other._centre_real
                and self._centre_imaginary == other._centre_imaginary
                and self._zoom_factor == other._zoom_factor)

    # Mutable, so not usable as a dict key
    __hash__ = None

    def __repr__(self) -> str:
        return (f"ComplexPlaneView(width={self._width}, height={self._height}, "
                f"centre=({self._centre_real}, {self._centre_imaginary}), "
                f"zoom={self._zoom_factor})")
