"""Command-line interface for MiniScan."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from miniscan.enhance.modes import EnhanceMode
from miniscan.errors import ScanError
from miniscan.export import generate_pdf, save_png
from miniscan.geometry.corners import CornerSet
from miniscan.pipeline import ScanConfig, Scanner
from miniscan.preprocessing.loader import load_image
from miniscan.protocol import handle_message
from miniscan.raster import ScanResult

# Load environment variables from .env
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%H:%M:%S'
)

logger = logging.getLogger(__name__)


def _parse_corners(value: Optional[str]) -> CornerSet:
    if not value:
        return CornerSet.default()
    try:
        coords = [float(part) for part in value.split(',')]
        return CornerSet.from_sequence(coords).clamped()
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--corners') from e


@click.group()
@click.version_option(version='0.1.0')
def main() -> None:
    """MiniScan - turn document photos into clean, flat page scans."""
    pass


@main.command()
@click.argument('image_path', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--corners',
    '-c',
    type=str,
    help='Normalized corners "tlx,tly,trx,try,brx,bry,blx,bly" in [0, 1] '
         '(default: 10% inset on every side)'
)
@click.option(
    '--mode',
    '-m',
    type=click.Choice([m.value for m in EnhanceMode]),
    default=EnhanceMode.BLACK_WHITE.value,
    show_default=True,
    help='Enhancement mode'
)
@click.option(
    '--output',
    '-o',
    'output_dir',
    type=click.Path(file_okay=False),
    default='./scans',
    show_default=True,
    help='Output directory for scans'
)
@click.option(
    '--pdf',
    is_flag=True,
    help='Also write an A4 PDF next to the PNG'
)
@click.option(
    '--debug',
    is_flag=True,
    help='Save debug visualizations for each step'
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging'
)
def scan(
    image_path: str,
    corners: Optional[str],
    mode: str,
    output_dir: str,
    pdf: bool,
    debug: bool,
    verbose: bool
) -> None:
    """Rectify and enhance the document in IMAGE_PATH."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    corner_set = _parse_corners(corners)

    debug_dir = None
    if debug:
        debug_dir = str(Path(output_dir) / 'debug')
        logger.info(f"Debug output will be saved to: {debug_dir}")

    try:
        scanner = Scanner(ScanConfig.from_env())
        source, metadata = load_image(image_path)
        page = scanner.process_raster(source, corner_set, mode, debug_output_dir=debug_dir)
        result = ScanResult(
            image_bytes=scanner.encoder(page),
            width=page.width,
            height=page.height,
        )
    except (ScanError, ValueError) as e:
        logger.error(f"Error processing {image_path}: {e}", exc_info=verbose)
        sys.exit(1)

    png_path = save_png(result, output_dir)
    click.echo(f"Saved: {png_path} ({result.width}x{result.height})")

    if pdf:
        pdf_path = generate_pdf(result, png_path.with_suffix('.pdf'))
        click.echo(f"Saved: {pdf_path}")

    logger.info(f"Source format: {metadata.format}, "
                f"original size {metadata.original_size[0]}x{metadata.original_size[1]}")


@main.command()
def message() -> None:
    """Answer one JSON process request read from stdin."""
    raw = sys.stdin.read()
    response = handle_message(raw, Scanner(ScanConfig.from_env()))
    if response is not None:
        click.echo(response)


if __name__ == '__main__':
    main()
