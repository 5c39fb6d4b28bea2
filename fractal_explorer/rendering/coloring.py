"""
Coloring algorithms and colour lookup tables for fractal rendering.

Coloring algorithms do not assign colours: they reduce the list of iterates
f^n(z) of a pixel to a single pixel value. The values of a whole image are
then scaled to [0, 1] (see scaling.py) and converted to RGB with a colour
lookup table.
"""

import math
import numpy as np
from enum import Enum
from typing import Callable, Dict, List, Sequence
from abc import ABC, abstractmethod
import logging

import matplotlib
from matplotlib.colors import hsv_to_rgb

from ..core.math_functions import validate_stopping_radius

logger = logging.getLogger(__name__)


class ColoringAlgorithm(ABC):
    """Abstract base class for coloring algorithms."""

    name = "coloring"

    @abstractmethod
    def get_pixel_value(self, iterates: Sequence[complex]) -> float:
        """
        Derive a pixel value from the list of iterates.

        Args:
            iterates: Iterates [z0, z1, ..., zn] of the generating function

        Returns:
            Value to assign to the pixel
        """
        pass


class EscapeTimeColoring(ColoringAlgorithm):
    """Pixel value is the number of iterates computed before the iteration stopped."""

    name = "escape_time"

    def get_pixel_value(self, iterates: Sequence[complex]) -> float:
        return float(len(iterates))

    def __repr__(self) -> str:
        return "EscapeTimeColoring()"


class SmoothIterationCountColoring(ColoringAlgorithm):
    """
    Smooth (continuous) iteration count for fractals based on z^p + c.

    The value is n + 1 + log(log(R) / log|z_n|) / log(p), with n the number of
    iterates, z_n the last iterate and R the bailout radius. It interpolates
    between the integer escape times and removes colour banding.

    The iterates include z0, so n is the iteration count plus one and equals the
    escape-time pixel value. For R < |z_n| < R**p the smooth value lies in
    (n, n + 1], one above the textbook (count, count + 1] interval. R must be
    the stopping radius of the iterations; GeneratorConfig checks this.

    Sequences that did not escape (|z_n| <= R), and sequences for which the
    logarithm is undefined (|z_n| <= 1 or R <= 1), get the plain escape-time
    value n instead.
    """

    name = "smooth"

    def __init__(self, power: float = 2.0, bailout: float = 2.0):
        """
        Initialize smooth iteration count coloring.

        Args:
            power: Power p of z in the iterated function z^p + c (larger than 1)
            bailout: Stopping radius used for the iterations
        """
        if not (power > 1.0 and np.isfinite(power)):
            raise ValueError(f"Power of the generating function must be finite and larger than 1, got {power}")
        self.power = float(power)
        self.bailout = validate_stopping_radius(bailout)
        self._inv_ln_power = 1.0 / math.log(self.power)
        self._ln_bailout = math.log(self.bailout)

    def get_pixel_value(self, iterates: Sequence[complex]) -> float:
        n = len(iterates)
        magnitude = abs(iterates[-1])
        escaped = magnitude > self.bailout and not math.isinf(magnitude)
        if not escaped or magnitude <= 1.0 or self._ln_bailout <= 0.0:
            return float(n)
        return n + 1 + self._inv_ln_power * math.log(self._ln_bailout / math.log(magnitude))

    def __repr__(self) -> str:
        return f"SmoothIterationCountColoring(power={self.power}, bailout={self.bailout})"


COLORING_ALGORITHMS: Dict[str, type] = {
    EscapeTimeColoring.name: EscapeTimeColoring,
    SmoothIterationCountColoring.name: SmoothIterationCountColoring,
}


def create_coloring_algorithm(name: str, power: float = 2.0, bailout: float = 2.0) -> ColoringAlgorithm:
    """
    Create a coloring algorithm by name.

    Args:
        name: 'escape_time' or 'smooth'
        power: Power of the generating function (smooth coloring only)
        bailout: Stopping radius of the iterations (smooth coloring only)
    """
    if name not in COLORING_ALGORITHMS:
        available = ', '.join(COLORING_ALGORITHMS.keys())
        raise ValueError(f"Unknown coloring algorithm '{name}'. Available: {available}")
    if name == SmoothIterationCountColoring.name:
        return SmoothIterationCountColoring(power, bailout)
    return COLORING_ALGORITHMS[name]()


def _greyscale(values: np.ndarray) -> np.ndarray:
    return np.stack([values, values, values], axis=-1)


def _rainbow_hsb(values: np.ndarray) -> np.ndarray:
    hsv = np.stack([5.0 / 6.0 * (1.0 - values), np.ones_like(values), np.ones_like(values)], axis=-1)
    return hsv_to_rgb(hsv)


def _rainbow_hsb_step(values: np.ndarray) -> np.ndarray:
    hue = 5.0 / 6.0 * np.floor((1.0 - values) * 8.0) / 7.0
    hsv = np.stack([np.clip(hue, 0.0, 1.0), np.ones_like(values), np.ones_like(values)], axis=-1)
    return hsv_to_rgb(hsv)


def _knot_lut(red, green, blue) -> Callable[[np.ndarray], np.ndarray]:
    """Colour table interpolating each channel linearly between (value, level) knots."""
    channels = [tuple(zip(*knots)) for knots in (red, green, blue)]

    def lut(values: np.ndarray) -> np.ndarray:
        return np.stack([np.interp(values, xs, ys) for xs, ys in channels], axis=-1)
    return lut


def _hipparcos(values: np.ndarray) -> np.ndarray:
    hue = np.where(values <= 0.1, 2.0 / 3.0, 2.0 / 3.0 * (1.0 - values) / 0.9)
    brightness = np.where(values <= 0.1, 0.5 * (1.0 + values / 0.1), 1.0)
    hsv = np.stack([hue, np.ones_like(values), brightness], axis=-1)
    return hsv_to_rgb(hsv)


def _hipparcos_top_white(values: np.ndarray) -> np.ndarray:
    rgb = _hipparcos(values)
    rgb[values >= 1.0] = 1.0
    return rgb


_idl_grn_red_blu_wht = _knot_lut(
    [(0.0, 0.0), (0.113725, 0.0), (0.305882, 250.0 / 255.0), (0.862745, 148.0 / 255.0), (1.0, 1.0)],
    [(0.0, 0.0), (0.109804, 252.0 / 255.0), (0.282353, 0.0), (0.862745, 0.0), (1.0, 1.0)],
    [(0.0, 0.0), (0.294118, 0.0), (0.784314, 1.0), (1.0, 1.0)])


def _grn_yel_red_blu_wht(values: np.ndarray) -> np.ndarray:
    # green restarts from zero at 0.109804 and drops back to zero after 0.282353
    rgb = _idl_grn_red_blu_wht(values)
    rgb[..., 1] = np.select(
        [values < 0.109804, values < 0.282353, values <= 0.862745],
        [values / 0.109804 * 252.0 / 255.0,
         252.0 / 255.0 * (values - 0.109804) / (0.282353 - 0.109804),
         0.0],
        (values - 0.862745) / (1.0 - 0.862745))
    return rgb


_idl_blue_green_red_yellow_rb = _knot_lut(
    [(0.0, 0.0), (112.0 / 255.0, 0.0), (144.0 / 255.0, 200.0 / 255.0), (1.0, 1.0)],
    [(0.0, 0.0), (1.0, 0.0)],
    [(0.0, 0.0), (48.0 / 255.0, 100.0 / 255.0), (80.0 / 255.0, 100.0 / 255.0),
     (112.0 / 255.0, 0.0), (1.0, 0.0)])


def _idl_blue_green_red_yellow(values: np.ndarray) -> np.ndarray:
    g1, g2, g3 = 32.0 / 255.0, 80.0 / 255.0, 144.0 / 255.0
    level = 150.0 / 255.0
    rgb = _idl_blue_green_red_yellow_rb(values)
    rgb[..., 1] = np.select(
        [values <= g1, values < g2, values <= g3],
        [0.0,
         level * (values - g1) / (g2 - g1),
         level * (1.0 - ((values - g2) / (g3 - g2)) ** 2)],
        (values - g3) / (1.0 - g3))
    return rgb


# black, blue, cyan, red, yellow, magenta, green, white
_PRIMARY_COLOURS = np.array([
    [0.0, 0.0, 0.0], [0.0, 0.0, 1.0], [0.0, 1.0, 1.0], [1.0, 0.0, 0.0],
    [1.0, 1.0, 0.0], [1.0, 0.0, 1.0], [0.0, 1.0, 0.0], [1.0, 1.0, 1.0],
])


def _primary_steps(values: np.ndarray) -> np.ndarray:
    index = np.clip(np.ceil(values * 8.0).astype(int) - 1, 0, 7)
    return _PRIMARY_COLOURS[index]


def _matplotlib_lut(cmap_name: str) -> Callable[[np.ndarray], np.ndarray]:
    def lut(values: np.ndarray) -> np.ndarray:
        cmap = matplotlib.colormaps[cmap_name]
        return cmap(values)[..., :3]
    return lut


class ColourLut(Enum):
    """Colour lookup tables mapping values in [0, 1] to RGB colours."""

    GREYSCALE = "Black to white colour table"
    RAINBOW_HSB = "HSB-interpolated rainbow colour table"
    RAINBOW_HSB_STEP = "HSB-interpolated rainbow colour table in steps"
    IDL_RAINBOW = "IDL's Rainbow colour table"
    HIPPARCOS = "Colour table used in the Hipparcos Catalogue"
    HIPPARCOS_TOP_WHITE = "Colour table used in the Hipparcos Catalogue, with a white top colour"
    PRISM_WHITE = "Variation on IDL's PRISM colour table"
    IDL_BLUE_WHITE = "IDL's BLUE/WHITE colour table"
    IDL_RED_TEMPERATURE = "IDL's RED TEMPERATURE colour table"
    IDL_GRN_RED_BLU_WHT = "IDL's GRN-RED-BLU-WHT colour table"
    GRN_YEL_RED_BLU_WHT = "Variation of IDL's GRN-RED-BLU-WHT colour table"
    RED_WHITE_BLUE = "Red-white-blue colour table"
    IDL_BLUE_RED = "IDL's Blue-Red colour table"
    IDL_BLUE_GREEN_RED_YELLOW = "IDL's BLUE/GREEN/RED/YELLOW colour table"
    IDL_STERN_SPECIAL = "IDL's STERN SPECIAL colour table"
    PRIMARY_STEPS = "The six primary RGB colours plus black and white"
    IDL_GREEN_WHITE = "IDL's GREEN/WHITE LINEAR colour table"
    BLK_CYA_BLU_MAG_RED = "IDL's BLUE-RED colour table (black-cyan-blue-magenta-red)"
    HOT = "Black-red-yellow-white colour table"
    INFERNO = "Perceptually uniform black-red-yellow colour table"
    VIRIDIS = "Perceptually uniform blue-green-yellow colour table"

    def __str__(self) -> str:
        return self.value

    def apply(self, values: np.ndarray) -> np.ndarray:
        """
        Convert scaled pixel values to colours.

        Args:
            values: Array of values in [0, 1]; values outside are clipped

        Returns:
            Float array with an extra trailing axis of length 3 (RGB in [0, 1])
        """
        values = np.clip(np.asarray(values, dtype=np.float64), 0.0, 1.0)
        return _LUT_FUNCTIONS[self](values)

    @classmethod
    def from_name(cls, name: str) -> 'ColourLut':
        try:
            return cls[name.upper()]
        except KeyError:
            available = ', '.join(member.name.lower() for member in cls)
            raise ValueError(f"Unknown colour table '{name}'. Available: {available}") from None


_LUT_FUNCTIONS: Dict[ColourLut, Callable[[np.ndarray], np.ndarray]] = {
    ColourLut.GREYSCALE: _greyscale,
    ColourLut.RAINBOW_HSB: _rainbow_hsb,
    ColourLut.RAINBOW_HSB_STEP: _rainbow_hsb_step,
    ColourLut.IDL_RAINBOW: _knot_lut(
        [(0.0, 0.486), (0.11, 0.0), (0.56, 0.0), (0.78, 1.0), (1.0, 1.0)],
        [(0.0, 0.0), (0.11, 0.0), (0.34, 1.0), (0.78, 1.0), (1.0, 0.0)],
        [(0.0, 1.0), (0.33, 1.0), (0.56, 0.0), (1.0, 0.0)]),
    ColourLut.HIPPARCOS: _hipparcos,
    ColourLut.HIPPARCOS_TOP_WHITE: _hipparcos_top_white,
    ColourLut.PRISM_WHITE: _knot_lut(
        [(0.0, 0.0), (0.25, 1.0), (0.5, 0.0), (0.75, 0.0), (1.0, 1.0)],
        [(0.0, 0.0), (0.25, 0.0), (0.5, 1.0), (0.75, 0.0), (1.0, 1.0)],
        [(0.0, 0.0), (0.5, 0.0), (0.75, 1.0), (1.0, 1.0)]),
    ColourLut.IDL_BLUE_WHITE: _knot_lut(
        [(0.0, 0.0), (192.0 / 255.0, 0.0), (1.0, 1.0)],
        [(0.0, 0.0), (96.0 / 255.0, 0.0), (1.0, 1.0)],
        [(0.0, 0.0), (188.0 / 255.0, 1.0), (1.0, 1.0)]),
    ColourLut.IDL_RED_TEMPERATURE: _knot_lut(
        [(0.0, 0.0), (176.0 / 255.0, 1.0), (1.0, 1.0)],
        [(0.0, 0.0), (120.0 / 255.0, 0.0), (1.0, 1.0)],
        [(0.0, 0.0), (190.0 / 255.0, 0.0), (1.0, 1.0)]),
    ColourLut.IDL_GRN_RED_BLU_WHT: _idl_grn_red_blu_wht,
    ColourLut.GRN_YEL_RED_BLU_WHT: _grn_yel_red_blu_wht,
    ColourLut.RED_WHITE_BLUE: _knot_lut(
        [(0.0, 1.0), (0.5, 1.0), (1.0, 0.0)],
        [(0.0, 0.0), (0.5, 1.0), (1.0, 0.0)],
        [(0.0, 0.0), (0.5, 1.0), (1.0, 1.0)]),
    ColourLut.IDL_BLUE_RED: _knot_lut(
        [(0.0, 0.0), (98.0 / 255.0, 0.0), (162.0 / 255.0, 1.0), (226.0 / 255.0, 1.0), (1.0, 131.0 / 255.0)],
        [(0.0, 0.0), (33.0 / 255.0, 0.0), (97.0 / 255.0, 1.0), (162.0 / 255.0, 1.0), (226.0 / 255.0, 0.0),
         (1.0, 0.0)],
        [(0.0, 131.0 / 255.0), (32.0 / 255.0, 1.0), (98.0 / 255.0, 1.0), (162.0 / 255.0, 0.0), (1.0, 0.0)]),
    ColourLut.IDL_BLUE_GREEN_RED_YELLOW: _idl_blue_green_red_yellow,
    ColourLut.IDL_STERN_SPECIAL: _knot_lut(
        [(0.0, 0.0), (14.0 / 255.0, 1.0), (63.0 / 255.0, 0.0), (64.0 / 255.0, 64.0 / 255.0), (1.0, 1.0)],
        [(0.0, 0.0), (1.0, 1.0)],
        [(0.0, 0.0), (128.0 / 255.0, 1.0), (188.0 / 255.0, 0.0), (1.0, 1.0)]),
    ColourLut.PRIMARY_STEPS: _primary_steps,
    ColourLut.IDL_GREEN_WHITE: _knot_lut(
        [(0.0, 0.0), (97.0 / 255.0, 0.0), (1.0, 1.0)],
        [(0.0, 0.0), (1.0, 1.0)],
        [(0.0, 0.0), (181.0 / 255.0, 0.0), (1.0, 1.0)]),
    ColourLut.BLK_CYA_BLU_MAG_RED: _knot_lut(
        [(0.0, 0.0), (128.0 / 255.0, 0.0), (191.0 / 255.0, 1.0), (1.0, 1.0)],
        [(0.0, 0.0), (64.0 / 255.0, 1.0), (128.0 / 255.0, 0.0), (1.0, 0.0)],
        [(0.0, 0.0), (64.0 / 255.0, 1.0), (191.0 / 255.0, 1.0), (1.0, 0.0)]),
    ColourLut.HOT: _matplotlib_lut('hot'),
    ColourLut.INFERNO: _matplotlib_lut('inferno'),
    ColourLut.VIRIDIS: _matplotlib_lut('viridis'),
}


def list_colour_luts() -> List[str]:
    """Get the names of the available colour tables."""
    return [member.name.lower() for member in ColourLut]
