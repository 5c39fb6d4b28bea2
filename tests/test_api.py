import json

import numpy as np
import pytest

from fractal_explorer.api import (
    FractalCalculationTask,
    FractalRenderer,
    RenderConfig,
    load_config,
    parse_complex,
    resolve_mu,
    save_config,
)
from fractal_explorer.core.complex_plane import ComplexPlaneView
from fractal_explorer.core.fractal_types import JULIA_PRESETS, Tricorn
from fractal_explorer.core.generators import get_mandelbrot_escape_time
from fractal_explorer.rendering.image_output import ImageExporter, RenderMetadata


@pytest.fixture
def small_config():
    return RenderConfig(width=40, height=30, max_iterations=30)


def test_default_config_is_valid():
    RenderConfig().validate()


@pytest.mark.parametrize("changes", [
    {'width': 1},
    {'zoom': 0.0},
    {'zoom': float('nan')},
    {'max_iterations': 0},
    {'stopping_radius': -2.0},
    {'fractal': 'burning_ship'},
    {'coloring_algorithm': 'histogram'},
    {'image_scaling': 'cubic'},
    {'colour_lut': 'sepia'},
    {'julia_mu': 'not-a-number'},
    {'workers': 0},
    {'jpeg_quality': 0},
    {'closed_form': True, 'fractal': 'rudy_cubic'},
    {'closed_form': True, 'stopping_radius': 3.0},
    {'closed_form': True, 'use_conjugate': True},
    {'closed_form': True, 'fractal': 'julia', 'coloring_algorithm': 'smooth'},
])
def test_invalid_config(changes):
    config = RenderConfig(**changes)
    with pytest.raises(ValueError):
        config.validate()


def test_config_round_trip_through_json(tmp_path):
    config = RenderConfig(width=64, height=48, fractal='julia', julia_mu='rabbit',
                          coloring_algorithm='smooth', colour_lut='rainbow_hsb')
    path = tmp_path / 'view.json'
    save_config(config, path)
    assert json.loads(path.read_text())['julia_mu'] == 'rabbit'
    assert load_config(path) == config


def test_config_rejects_unknown_keys(tmp_path):
    with pytest.raises(ValueError, match="bounds"):
        RenderConfig.from_dict({'width': 10, 'bounds': [0, 1, 0, 1]})
    path = tmp_path / 'list.json'
    path.write_text('[1, 2]')
    with pytest.raises(ValueError):
        load_config(path)


def test_config_update_validates(small_config):
    small_config.update(zoom=2.0)
    assert small_config.zoom == 2.0
    with pytest.raises(ValueError):
        small_config.update(colour=3)


def test_parse_complex():
    assert parse_complex("-0.4, 0.6") == complex(-0.4, 0.6)
    assert resolve_mu('Rabbit') == JULIA_PRESETS['rabbit']
    assert resolve_mu(0.25) == complex(0.25, 0.0)
    with pytest.raises(ValueError):
        parse_complex("1,2,3")


def test_renderer_view(small_config):
    small_config.update(centre_real=0.3, centre_imaginary=-0.1, zoom=4.0)
    view = FractalRenderer(small_config).create_view()
    assert (view.width, view.height) == (40, 30)
    assert view.centre == complex(0.3, -0.1)
    assert view.zoom_factor == 4.0


def test_compute_raw_matches_generator(small_config):
    renderer = FractalRenderer(small_config)
    view = renderer.create_view()
    raw = renderer.compute_raw(view)
    assert raw.shape == (40 * 30,)
    expected = renderer.create_generator(view).generate_image(view)
    np.testing.assert_array_equal(raw, expected)


def test_closed_form_raw_values(small_config):
    small_config.update(fractal='tricorn', closed_form=True)
    renderer = FractalRenderer(small_config)
    progress = []
    raw = renderer.compute_raw(progress_callback=progress.append)
    counts = Tricorn().compute_iterations(renderer.create_view(), 30)
    np.testing.assert_array_equal(raw, counts.ravel())
    assert progress == [100]


def test_closed_form_accepts_explicit_settings_it_honours(small_config):
    small_config.update(closed_form=True, use_conjugate=False, stopping_radius=2.0)
    metadata = FractalRenderer(small_config).create_metadata()
    assert metadata.coloring_algorithm == 'escape_time'
    assert metadata.stopping_radius == 2.0


def test_julia_uses_view_centre_without_mu(small_config):
    small_config.update(fractal='julia', centre_real=-0.4, centre_imaginary=0.6)
    renderer = FractalRenderer(small_config)
    assert renderer.create_generator().mu == complex(-0.4, 0.6)
    assert renderer.get_info_lines() == ["Re(μ) = -0.4", "Im(μ) = 0.6"]


def test_julia_preset_info_lines(small_config):
    small_config.update(fractal='julia', julia_mu='airplane', closed_form=True)
    assert FractalRenderer(small_config).get_info_lines() == ["Re(μ) = -1.25", "Im(μ) = 0.0"]


@pytest.mark.parametrize("changes", [
    {},
    {'coloring_algorithm': 'smooth', 'image_scaling': 'linear', 'colour_lut': 'inferno'},
    {'fractal': 'julia', 'julia_mu': 'dendrite', 'workers': 3, 'image_scaling': 'squareroot'},
    {'fractal': 'mandelbrot', 'closed_form': True, 'colour_lut': 'idl_rainbow'},
])
def test_render_rgb_image(small_config, changes):
    small_config.update(**changes)
    image = FractalRenderer(small_config).render()
    assert image.shape == (30, 40, 3)
    assert image.min() >= 0.0
    assert image.max() <= 1.0


def test_render_writes_image_with_metadata(small_config, tmp_path):
    small_config.update(save_raw_data=True)
    output = tmp_path / 'mandelbrot.png'
    FractalRenderer(small_config).render(output)
    assert output.exists()
    assert (tmp_path / 'mandelbrot.npy').exists()
    assert np.load(tmp_path / 'mandelbrot.npy').shape == (40 * 30,)

    metadata = ImageExporter().read_metadata(output)
    assert metadata.fractal_type == 'mandelbrot'
    assert metadata.resolution == [40, 30]
    assert metadata.stopping_radius == 2.0


@pytest.mark.parametrize("suffix", ['.jpg', '.tiff'])
def test_other_image_formats(small_config, tmp_path, suffix):
    output = tmp_path / f'fractal{suffix}'
    FractalRenderer(small_config).render(output)
    assert output.stat().st_size > 0


def test_exporter_rejects_bad_input(tmp_path):
    exporter = ImageExporter()
    with pytest.raises(ValueError, match="Unsupported"):
        exporter.save_image(np.zeros((4, 4, 3)), tmp_path / 'image.bmp')
    with pytest.raises(ValueError):
        exporter.save_image(np.zeros((4, 4)), tmp_path / 'image.png')


def test_metadata_json_round_trip():
    metadata = RenderMetadata('julia', [0.0, 0.0], 2.0, [10, 10], 50, 2.0,
                              'smooth', 'logarithmic', 'greyscale', info_lines=["Re(μ) = 0.1"])
    assert RenderMetadata.from_json(metadata.to_json()) == metadata


def test_calculation_task_result():
    generator = get_mandelbrot_escape_time()
    view = ComplexPlaneView(20, 12)
    progress = []
    task = FractalCalculationTask(generator, view)
    task.add_progress_listener(progress.append)
    values = task.start().result(timeout=60)
    assert task.done()
    np.testing.assert_array_equal(values, generator.generate_image(view))
    assert task.progress == 100
    assert progress[-1] == 100


def test_calculation_task_uses_view_snapshot():
    view = ComplexPlaneView(20, 12)
    task = FractalCalculationTask(get_mandelbrot_escape_time(), view)
    view.set_centre(5.0, 5.0)
    assert task.view.centre != view.centre


def test_cancelled_task_discards_result():
    task = FractalCalculationTask(get_mandelbrot_escape_time(), ComplexPlaneView(20, 12), workers=2)
    task.start()
    task.cancel()
    assert task.cancelled
    assert task.result(timeout=60) is None


def test_calculation_task_lifecycle_errors():
    task = FractalCalculationTask(get_mandelbrot_escape_time(), ComplexPlaneView(8, 8))
    with pytest.raises(RuntimeError):
        task.result()
    task.start()
    with pytest.raises(RuntimeError):
        task.start()
    task.result(timeout=60)
    with pytest.raises(ValueError):
        FractalCalculationTask(get_mandelbrot_escape_time(), ComplexPlaneView(8, 8), workers=0)
