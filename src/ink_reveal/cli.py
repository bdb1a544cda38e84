"""Command-line interface for InkReveal."""

import json
import logging
import sys
import time
from pathlib import Path

import click
import numpy as np

from . import __version__
from .core.blob_mask import BlobMaskRenderer
from .core.compositor import FitMode
from .core.config import RevealConfiguration
from .core.easing import Easing
from .core.patterns import CustomBlob, RevealPattern
from .core.render import HeadlessRenderer, save_animation
from .errors import ImageLoadFailure
from .utils.image import load_image, validate_image_dimensions
from .utils.profiler import PerformanceProfiler


class ProgressBar:
    """Simple progress bar for CLI operations."""

    def __init__(self, total_steps: int, description: str = "Processing"):
        self.total_steps = total_steps
        self.current_step = 0
        self.description = description
        self.start_time = time.time()

    def update(self, step_name: str) -> None:
        """Update progress bar with current step."""
        self.current_step = min(self.current_step + 1, self.total_steps)
        self.render(self.current_step / self.total_steps, step_name)

    def render(self, fraction: float, step_name: str) -> None:
        """Draw the bar at an explicit completion fraction."""
        fraction = max(0.0, min(1.0, fraction))
        elapsed = time.time() - self.start_time

        bar_length = 30
        filled_length = int(bar_length * fraction)
        bar = "█" * filled_length + "░" * (bar_length - filled_length)

        click.echo(
            f"\r{self.description}: [{bar}] {fraction * 100:.1f}% - {step_name}",
            nl=False,
        )

        if fraction >= 1.0:
            click.echo(f" ✓ Complete ({elapsed:.1f}s)")


def load_custom_blobs(path: Path):
    """Read a JSON list of {x, y, size?, delay?} objects."""
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Invalid JSON in {path}: {e}")

    if not isinstance(data, list) or not data:
        raise click.BadParameter(f"{path} must contain a non-empty JSON list")
    try:
        return tuple(CustomBlob.from_dict(item) for item in data)
    except (ValueError, TypeError, AttributeError) as e:
        raise click.BadParameter(f"Invalid custom blob in {path}: {e}")


@click.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("--frame", default=0, help="Source frame for animated inputs (default: 0)", type=int)
@click.option(
    "--pattern",
    default=RevealPattern.RANDOM.value,
    help="Reveal pattern (default: random)",
    type=click.Choice([p.value for p in RevealPattern]),
)
@click.option(
    "--blobs",
    default=14,
    help="Blob count (default: 14)",
    type=click.IntRange(1, 500),
)
@click.option("--size-min", default=0.12, help="Minimum blob size (default: 0.12)", type=click.FloatRange(0.01, 2.0))
@click.option("--size-max", default=0.30, help="Maximum blob size (default: 0.30)", type=click.FloatRange(0.01, 2.0))
@click.option("--stagger", default=0.15, help="Maximum blob start delay (default: 0.15)", type=click.FloatRange(0.0, 1.0))
@click.option("--roughness", default=0.3, help="Blob edge roughness (default: 0.3)", type=click.FloatRange(0.0, 2.0))
@click.option("--complexity", default=60, help="Points per blob outline (default: 60)", type=click.IntRange(3, 1000))
@click.option(
    "--easing",
    default=Easing.EASE_OUT.value,
    help="Blob growth easing (default: ease_out)",
    type=click.Choice([e.value for e in Easing]),
)
@click.option("--duration", default=2500, help="Reveal duration in ms (default: 2500)", type=click.IntRange(1, 600000))
@click.option("--delay", default=0, help="Start delay in ms (default: 0)", type=click.IntRange(0, 600000))
@click.option("--fade-in-start", default=0.7, help="Cross-fade start progress (default: 0.7)", type=click.FloatRange(0.0, 1.0, max_open=True))
@click.option(
    "--fit",
    default=FitMode.COVER.value,
    help="Image fit mode (default: cover)",
    type=click.Choice([f.value for f in FitMode]),
)
@click.option("--width", default=None, help="Output width (default: image width)", type=click.IntRange(2, 8192))
@click.option("--height", default=None, help="Output height (default: image height)", type=click.IntRange(2, 8192))
@click.option("--dpr", default=1.0, help="Device pixel ratio (default: 1.0)", type=click.FloatRange(0.25, 4.0))
@click.option("--fps", default=30, help="Frames per second (default: 30)", type=click.IntRange(1, 120))
@click.option("--hold", default=500, help="Hold on the final frame in ms (default: 500)", type=click.IntRange(0, 60000))
@click.option("--background", default="#e5e7eb", help="Background color (default: #e5e7eb)")
@click.option("--placeholder-blur", default=20.0, help="Placeholder blur in px (default: 20)", type=click.FloatRange(0.0, 200.0))
@click.option("--seed", default=None, help="Random seed for a reproducible layout", type=int)
@click.option(
    "--custom-blobs",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with explicit blob positions",
)
@click.option(
    "--layout-preview",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also save a PNG preview of the blob layout",
)
@click.option("--profile", is_flag=True, help="Print frame timing and memory usage")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option(
    "-o",
    "--output",
    required=True,
    type=click.Path(path_type=Path),
    help="Output animation (.gif or .png)",
)
def main(
    input_file: Path,
    output: Path,
    frame: int,
    pattern: str,
    blobs: int,
    size_min: float,
    size_max: float,
    stagger: float,
    roughness: float,
    complexity: int,
    easing: str,
    duration: int,
    delay: int,
    fade_in_start: float,
    fit: str,
    width,
    height,
    dpr: float,
    fps: int,
    hold: int,
    background: str,
    placeholder_blur: float,
    seed,
    custom_blobs,
    layout_preview,
    profile: bool,
    verbose: bool,
) -> None:
    """Render an ink-blob reveal of an image as an animated GIF or PNG.

    Examples:
        ink-reveal photo.jpg -o reveal.gif
        ink-reveal photo.jpg --pattern spiral --blobs 24 -o spiral.gif
        ink-reveal photo.png --easing ease_out_bounce --fps 60 -o bounce.png
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format='%(levelname)s: %(message)s',
    )

    click.echo(f"🎨 InkReveal v{__version__} - Ink Blob Image Reveal Renderer")
    click.echo()

    if output.exists():
        if not click.confirm(f"Output file {output} exists. Overwrite?"):
            click.echo("Aborted.")
            return

    output.parent.mkdir(parents=True, exist_ok=True)

    progress = ProgressBar(4, "Rendering")
    profiler = PerformanceProfiler() if profile else None

    try:
        # Step 1: Load image
        progress.update("Loading image")
        image, (image_height, image_width) = load_image(input_file, frame)
        validate_image_dimensions(image)

        if verbose:
            click.echo(f"\nImage dimensions: {image_width}x{image_height}")

        # Step 2: Build configuration and layout
        progress.update("Generating blobs")
        config = RevealConfiguration(
            pattern=pattern,
            blob_count=blobs,
            blob_size_min=size_min,
            blob_size_max=size_max,
            blob_stagger=stagger,
            blob_roughness=roughness,
            blob_complexity=complexity,
            custom_blobs=load_custom_blobs(custom_blobs) if custom_blobs else None,
            easing=easing,
            duration_ms=duration,
            delay_ms=delay,
            fade_in_start=fade_in_start,
            fit_mode=fit,
            device_pixel_ratio=dpr,
            background_color=background,
            placeholder_blur=placeholder_blur,
            trigger_on_viewport=False,
        )
        size = (width or image_width, height or image_height)
        renderer = HeadlessRenderer(
            image,
            config,
            size=size,
            fps=fps,
            rng=np.random.default_rng(seed),
            profiler=profiler,
        )

        if verbose:
            click.echo(f"\nBlobs: {len(renderer.driver.blobs)} ({config.pattern.value})")

        if layout_preview:
            from .utils.visualization import visualize_blob_layout

            visualize_blob_layout(
                renderer.driver.blobs,
                size[0],
                size[1],
                renderer=BlobMaskRenderer(roughness, complexity, easing),
                title=f"{config.pattern.value} layout",
                save_path=str(layout_preview),
            )

        # Step 3: Render frames
        frames = renderer.render(
            on_frame=lambda count, value: progress.render(
                0.5 + value * 0.25, f"Frame {count}"
            )
        )
        progress.current_step = 3

        # Step 4: Save output
        progress.update("Saving file")
        save_animation(frames, output, fps=fps, hold_ms=hold)

        file_size_mb = output.stat().st_size / (1024 * 1024)
        click.echo(f"\n✅ Successfully created {output}")
        click.echo("📊 Final statistics:")
        click.echo(f"   Frames: {len(frames)}")
        click.echo(f"   Blobs: {len(renderer.driver.blobs)}")
        click.echo(f"   File size: {file_size_mb:.2f} MB")

        if profiler is not None:
            click.echo()
            click.echo(profiler.format_summary("Render Profile"))

    except ImageLoadFailure as e:
        click.echo(f"\n❌ Failed to load image: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        if verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
