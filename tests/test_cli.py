import json

import pytest
from click.testing import CliRunner

from fractal_explorer import __version__
from fractal_explorer.cli.main import main


@pytest.fixture
def runner():
    return CliRunner()


def test_version(runner):
    result = runner.invoke(main, ['--version'])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_list_fractals(runner):
    result = runner.invoke(main, ['list-fractals'])
    assert result.exit_code == 0
    for name in ('mandelbrot', 'rudy_cubic', 'tricorn', 'rabbit'):
        assert name in result.output


def test_list_fractals_json(runner):
    result = runner.invoke(main, ['list-fractals', '--json'])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert 'julia' in data['generators']
    assert 'tricorn' in data['closed_form']
    assert data['julia_presets']['airplane'] == [-1.25, 0.0]


def test_list_palettes(runner):
    result = runner.invoke(main, ['list-palettes'])
    assert result.exit_code == 0
    assert 'smooth' in result.output
    assert 'logarithmic' in result.output
    assert 'rainbow_hsb_step' in result.output


def test_render_png(runner, tmp_path):
    output = tmp_path / 'mandelbrot.png'
    result = runner.invoke(main, ['render', str(output), '-w', '32', '-h', '24',
                                  '--max-iter', '20', '--lut', 'rainbow_hsb'])
    assert result.exit_code == 0, result.output
    assert output.exists()
    assert 'Saved' in result.output


def test_render_closed_form_julia(runner, tmp_path):
    output = tmp_path / 'julia.png'
    result = runner.invoke(main, ['render', str(output), '--fractal', 'julia', '--julia-mu', 'rabbit',
                                  '--closed-form', '-w', '20', '-h', '16', '--max-iter', '40'])
    assert result.exit_code == 0, result.output
    assert 'Re(μ) = -0.123' in result.output


@pytest.mark.parametrize("extra", [
    ['--conjugate'],
    ['--coloring', 'smooth'],
])
def test_render_closed_form_rejects_unsupported_options(runner, tmp_path, extra):
    output = tmp_path / 'mandelbrot.png'
    result = runner.invoke(main, ['render', str(output), '--closed-form',
                                  '-w', '20', '-h', '16'] + extra)
    assert result.exit_code == 1
    assert 'Closed-form sets' in result.output
    assert not output.exists()


def test_render_with_workers_and_smooth_coloring(runner, tmp_path):
    output = tmp_path / 'tricorn.jpg'
    result = runner.invoke(main, ['render', str(output), '--fractal', 'tricorn', '--coloring', 'smooth',
                                  '--workers', '2', '-w', '24', '-h', '18', '--max-iter', '25'])
    assert result.exit_code == 0, result.output
    assert output.exists()


def test_render_rejects_invalid_zoom(runner, tmp_path):
    result = runner.invoke(main, ['render', str(tmp_path / 'out.png'), '--zoom', '-1'])
    assert result.exit_code == 1
    assert 'Error' in result.output
    assert not (tmp_path / 'out.png').exists()


def test_render_rejects_bad_centre(runner, tmp_path):
    result = runner.invoke(main, ['render', str(tmp_path / 'out.png'), '--centre', 'origin'])
    assert result.exit_code == 1


def test_info(runner):
    result = runner.invoke(main, ['info', '--fractal', 'julia', '--julia-mu', '0.285,0.01',
                                  '--centre', '0,0', '--zoom', '2'])
    assert result.exit_code == 0, result.output
    assert 'Re(μ) = 0.285' in result.output
    assert 'Im(μ) = 0.01' in result.output
    assert 'Zoom: 2.0' in result.output


def test_config_file_with_overrides(runner, tmp_path):
    config_path = tmp_path / 'view.json'
    result = runner.invoke(main, ['init-config', str(config_path), '--fractal', 'julia',
                                  '--julia-mu', 'dendrite', '-w', '16', '-h', '12'])
    assert result.exit_code == 0, result.output
    assert json.loads(config_path.read_text())['julia_mu'] == 'dendrite'

    result = runner.invoke(main, ['info', '--config', str(config_path), '--max-iter', '77'])
    assert result.exit_code == 0, result.output
    assert 'Image: 16x12' in result.output
    assert 'Max iterations: 77' in result.output
    assert 'Re(μ) = -0.235125' in result.output
