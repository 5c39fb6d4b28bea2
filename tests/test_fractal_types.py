import numpy as np
import pytest

from fractal_explorer.core.complex_plane import ComplexPlaneView
from fractal_explorer.core.fractal_types import (
    FractalRegistry,
    FractalSet,
    JULIA_PRESETS,
    JuliaSet,
    MandelbrotSet,
    Tricorn,
    escape_quadratic,
    resolve_julia_constant,
)
from fractal_explorer.core.generators import create_generator
from fractal_explorer.core.math_functions import iterate_function


@pytest.mark.parametrize("max_iter", [1, 2, 10, 256, 1000])
def test_origin_is_in_mandelbrot_set(max_iter):
    mandelbrot = MandelbrotSet()
    assert mandelbrot.is_member(0.0, 0.0, max_iter)
    assert mandelbrot.iteration_count(0.0, 0.0, max_iter) == max_iter


def test_far_point_escapes_mandelbrot_set():
    mandelbrot = MandelbrotSet()
    assert mandelbrot.iteration_count(2.0, 2.0, 256) < 256
    assert not mandelbrot.is_member(2.0, 2.0, 256)


def test_known_mandelbrot_points():
    mandelbrot = MandelbrotSet()
    assert mandelbrot.is_member(-1.0, 0.0, 500)
    assert mandelbrot.is_member(0.25, 0.0, 500)
    assert not mandelbrot.is_member(0.5, 0.5, 500)


def test_mandelbrot_matches_modified_mandelbrot_generator():
    mandelbrot = MandelbrotSet()
    generator = create_generator('modified_mandelbrot', max_iterations=64)
    for c in [complex(0.1, 0.1), complex(-1.8, 0.0), complex(0.5, 0.5), complex(1.0, 1.0),
              complex(-0.5, 0.3)]:
        count = mandelbrot.iteration_count(c.real, c.imag, 64)
        assert generator.generate_pixel_value(c) == count + 1


def test_julia_count_is_monotonic_in_max_iter():
    julia = JuliaSet(complex(-0.8, 0.156))
    for z in [complex(0.1, 0.2), complex(-0.5, 0.5), complex(0.9, -0.3), 0j]:
        counts = [julia.iteration_count(z.real, z.imag, m) for m in (1, 5, 20, 100, 400)]
        assert counts == sorted(counts)


def test_julia_uses_mu_as_constant():
    mu = complex(0.3, -0.1)
    julia = JuliaSet(mu)
    count, z = julia.escape_state(0.2, 0.4, 1)
    assert count == 1
    assert z == pytest.approx(complex(0.2, 0.4) ** 2 + mu)


@pytest.mark.parametrize("c", [complex(0.05, -0.1), complex(0.1, 0.2), complex(0.5, 0.5),
                               complex(-1.0, 1.0), complex(1.5, 1.5)])
def test_tricorn_matches_conjugate_iteration(c):
    tricorn = Tricorn()
    count, z_last = tricorn.escape_state(c.real, c.imag, 100)
    iterates = iterate_function(c, lambda z: z * z + c, 100, 2.0, conjugate=True)
    assert count == len(iterates) - 1
    assert z_last == pytest.approx(iterates[-1])


def test_tricorn_is_symmetric_under_conjugation():
    tricorn = Tricorn()
    assert tricorn.iteration_count(0.3, 0.5, 200) == tricorn.iteration_count(0.3, -0.5, 200)


def test_conjugate_changes_the_recurrence():
    straight = escape_quadratic(0.2, 0.3, 0.2, 0.3, 1)
    conjugate = escape_quadratic(0.2, 0.3, 0.2, 0.3, 1, conjugate=True)
    assert straight[1] == conjugate[1]
    assert straight[2] == pytest.approx(-conjugate[2] + 2 * 0.3)


@pytest.mark.parametrize("fractal", [MandelbrotSet(), JuliaSet(), Tricorn()])
def test_compute_iterations_matches_pointwise_counts(fractal):
    view = ComplexPlaneView(24, 16)
    counts = fractal.compute_iterations(view, 50)
    assert counts.shape == (16, 24)
    for j in range(view.height):
        for i in range(view.width):
            c = view.pixel_to_complex(i, j)
            assert counts[j, i] == fractal.iteration_count(c.real, c.imag, 50)


@pytest.mark.parametrize("fractal", [MandelbrotSet(), JuliaSet(), Tricorn()])
def test_invalid_max_iter(fractal):
    with pytest.raises(ValueError):
        fractal.iteration_count(0.0, 0.0, 0)
    with pytest.raises(ValueError):
        fractal.compute_iterations(ComplexPlaneView(4, 4), -1)


def test_julia_info_lines():
    julia = JuliaSet(complex(-0.123, 0.745))
    assert julia.get_info_lines() == ["Re(μ) = -0.123", "Im(μ) = 0.745"]
    assert MandelbrotSet().get_info_lines() == []


def test_registry_lists_concrete_sets():
    assert set(FractalRegistry.names()) >= {'mandelbrot', 'julia', 'tricorn'}
    descriptions = FractalRegistry.list_fractals()
    assert 'conjugate' in descriptions['tricorn']


def test_registry_creates_sets():
    assert isinstance(FractalRegistry.create_fractal('Mandelbrot'), MandelbrotSet)
    julia = FractalRegistry.create_fractal('julia', 'rabbit')
    assert julia.mu == JULIA_PRESETS['rabbit']
    assert FractalRegistry.create_fractal('julia', complex(0.1, 0.2)).mu == complex(0.1, 0.2)


def test_registry_rejects_unknown_names():
    with pytest.raises(ValueError, match="Available"):
        FractalRegistry.get('burning_ship')
    with pytest.raises(ValueError):
        resolve_julia_constant('no_such_preset')


def test_registry_rejects_incomplete_classes():
    class HalfDone(FractalSet):
        def escape_state(self, real, imaginary, max_iter):
            return 0, 0j

    with pytest.raises(ValueError):
        FractalRegistry.register('half_done', HalfDone)
    with pytest.raises(ValueError):
        FractalRegistry.register('not_a_set', dict)
    assert 'half_done' not in FractalRegistry.names()


def test_registry_accepts_complete_classes():
    class Cardioid(MandelbrotSet):
        name = "Cardioid"

    try:
        FractalRegistry.register('cardioid', Cardioid)
        assert FractalRegistry.get('cardioid') is Cardioid
    finally:
        FractalRegistry._fractals.pop('cardioid', None)


def test_counts_are_integers():
    counts = MandelbrotSet().compute_iterations(ComplexPlaneView(8, 6), 20)
    assert np.issubdtype(counts.dtype, np.integer)
    assert counts.min() >= 0 and counts.max() <= 20
