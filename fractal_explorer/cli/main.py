"""
Command-line interface for fractal rendering.

This module provides a CLI for rendering fractal images and inspecting the
available fractals, coloring algorithms, scalings and colour tables.
"""

import click
import sys
import json
from pathlib import Path
from typing import Any, Dict
import logging
import time

from .. import __version__
from ..api import FractalRenderer, RenderConfig, load_config, parse_complex, save_config
from ..core.fractal_types import FractalRegistry, JULIA_PRESETS
from ..core.generators import list_generators
from ..rendering.coloring import COLORING_ALGORITHMS, list_colour_luts
from ..rendering.scaling import list_scalings

logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, verbose, quiet):
    """
    Fractal Explorer - escape-time fractal rendering tool.

    Render Mandelbrot, Julia and related fractals of arbitrary generating
    functions, with escape-time or smooth coloring.
    """
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.WARNING,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"Fractal Explorer v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)
    elif ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


def render_options(command):
    """Options shared by the commands that build a render configuration."""
    options = [
        click.option('--config', 'config_file', type=click.Path(exists=True),
                     help='JSON configuration file'),
        click.option('--fractal', '-f', help='Generator preset, or closed-form set with --closed-form'),
        click.option('--width', '-w', type=int, help='Image width in pixels'),
        click.option('--height', '-h', type=int, help='Image height in pixels'),
        click.option('--centre', help='View centre as "re,im"'),
        click.option('--zoom', type=float, help='Zoom factor'),
        click.option('--max-iter', 'max_iterations', type=int, help='Maximum iterations'),
        click.option('--radius', 'stopping_radius', type=float, help='Stopping radius'),
        click.option('--coloring', 'coloring_algorithm',
                     type=click.Choice(list(COLORING_ALGORITHMS.keys())), help='Coloring algorithm'),
        click.option('--power', 'smooth_power', type=float,
                     help='Power of the generating function for smooth coloring'),
        click.option('--scaling', 'image_scaling', type=click.Choice(list_scalings()),
                     help='Image scaling'),
        click.option('--lut', 'colour_lut', type=click.Choice(list_colour_luts()),
                     help='Colour table'),
        click.option('--conjugate/--no-conjugate', 'use_conjugate', default=None,
                     help='Iterate f(conjugate(z))'),
        click.option('--julia-mu', help='Julia constant as "re,im" or preset name'),
        click.option('--closed-form/--iterated', 'closed_form', default=None,
                     help='Use the closed-form Mandelbrot/Julia/Tricorn sets'),
        click.option('--workers', type=int, help='Number of worker processes computing rows'),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def build_config(config_file, centre, **overrides) -> RenderConfig:
    """Load the configuration file (if any) and apply command-line overrides."""
    config = load_config(config_file) if config_file else RenderConfig()

    values: Dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
    if centre:
        point = parse_complex(centre)
        values['centre_real'] = point.real
        values['centre_imaginary'] = point.imag

    return config.update(**values)


@main.command()
@click.argument('output', type=click.Path())
@render_options
@click.option('--save-raw', is_flag=True, help='Also save the raw pixel values as .npy')
@click.option('--no-metadata', is_flag=True, help='Do not embed render metadata')
@click.option('--quality', type=int, help='JPEG quality')
@click.pass_context
def render(ctx, output, config_file, centre, save_raw, no_metadata, quality, **kwargs):
    """
    Render a single fractal image.

    OUTPUT: Output image file path (.png, .tiff or .jpg)
    """
    try:
        if save_raw:
            kwargs['save_raw_data'] = True
        if no_metadata:
            kwargs['save_metadata'] = False
        kwargs['jpeg_quality'] = quality
        render_config = build_config(config_file, centre, **kwargs)

        renderer = FractalRenderer(render_config)
        last_reported = {'percent': -10}

        def progress_callback(percent: int):
            if ctx.obj.get('verbose') and percent - last_reported['percent'] >= 10:
                last_reported['percent'] = percent
                click.echo(f"Progress: {percent}%")

        if not ctx.obj.get('quiet'):
            click.echo(f"Rendering {render_config.fractal} "
                       f"({render_config.width}x{render_config.height})...")
        start_time = time.time()

        renderer.render(Path(output), progress_callback)

        if not ctx.obj.get('quiet'):
            click.echo(f"Render complete: {time.time() - start_time:.2f}s")
            for line in renderer.get_info_lines():
                click.echo(f"  {line}")
            click.echo(f"Saved: {output}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if ctx.obj.get('verbose'):
            import traceback
            traceback.print_exc()
        sys.exit(1)


@main.command()
@render_options
@click.pass_context
def info(ctx, config_file, centre, **kwargs):
    """Show the view and the fractal parameters of a configuration."""
    try:
        render_config = build_config(config_file, centre, **kwargs)
        renderer = FractalRenderer(render_config)
        view = renderer.create_view()
        re_min, re_max, im_min, im_max = view.get_bounds()

        click.echo(f"Fractal: {render_config.fractal}"
                   f"{' (closed form)' if render_config.closed_form else ''}")
        click.echo(f"Image: {view.width}x{view.height}")
        click.echo(f"Centre: {view.centre_real}, {view.centre_imaginary}")
        click.echo(f"Zoom: {view.zoom_factor}")
        click.echo(f"Real axis: [{re_min}, {re_max}]")
        click.echo(f"Imaginary axis: [{im_min}, {im_max}]")
        click.echo(f"Max iterations: {render_config.max_iterations}")
        for line in renderer.get_info_lines():
            click.echo(line)

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument('output', type=click.Path())
@render_options
@click.pass_context
def init_config(ctx, output, config_file, centre, **kwargs):
    """
    Write a JSON configuration file.

    OUTPUT: Path of the configuration file to create
    """
    try:
        render_config = build_config(config_file, centre, **kwargs)
        save_config(render_config, output)
        click.echo(f"Configuration written: {output}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.option('--json', 'as_json', is_flag=True, help='Output as JSON')
@click.pass_context
def list_fractals(ctx, as_json):
    """List generator presets, closed-form sets and Julia presets."""
    try:
        generators = list_generators()
        closed_form = FractalRegistry.list_fractals()

        if as_json:
            click.echo(json.dumps({
                'generators': generators,
                'closed_form': closed_form,
                'julia_presets': {name: [mu.real, mu.imag] for name, mu in JULIA_PRESETS.items()},
            }, indent=2))
            return

        click.echo("Generators:")
        for name, description in generators.items():
            click.echo(f"  {name}")
            if ctx.obj.get('verbose'):
                click.echo(f"    {description}")

        click.echo("\nClosed-form sets (--closed-form):")
        for name, description in closed_form.items():
            click.echo(f"  {name}")
            if ctx.obj.get('verbose'):
                click.echo(f"    {description}")

        click.echo("\nJulia presets:")
        for name, mu in JULIA_PRESETS.items():
            click.echo(f"  {name}: mu = {mu.real},{mu.imag}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.pass_context
def list_palettes(ctx):
    """List coloring algorithms, image scalings and colour tables."""
    click.echo("Coloring algorithms:")
    for name in COLORING_ALGORITHMS:
        click.echo(f"  {name}")

    click.echo("\nImage scalings:")
    for name in list_scalings():
        click.echo(f"  {name}")

    click.echo("\nColour tables:")
    for name in list_colour_luts():
        click.echo(f"  {name}")


if __name__ == '__main__':
    main()
