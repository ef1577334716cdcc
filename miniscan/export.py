"""Writing scan results to disk as PNG files or single-page PDFs."""

import io
import logging
import time
from pathlib import Path
from typing import Union

from PIL import Image

from miniscan.raster import ScanResult

logger = logging.getLogger(__name__)

# A4 portrait in PDF points
A4_WIDTH_PT = 595
A4_HEIGHT_PT = 842
PAGE_MARGIN_PT = 40


def save_png(result: ScanResult, scans_dir: Union[str, Path]) -> Path:
    """Write the result as scans_dir/scan_<epoch millis>.png.

    Returns:
        Path of the written file.
    """
    scans_dir = Path(scans_dir)
    scans_dir.mkdir(parents=True, exist_ok=True)

    output_path = scans_dir / f"scan_{int(time.time() * 1000)}.png"
    output_path.write_bytes(result.image_bytes)

    logger.info(f"Saved PNG: {output_path} ({result.width}x{result.height})")

    return output_path


def generate_pdf(result: ScanResult, output_path: Union[str, Path]) -> Path:
    """Place the scan on an A4-width PDF page.

    The image spans the page width minus a 40pt margin on each side, keeps
    its aspect ratio and is anchored at the top. Pages grow taller than A4
    when the image would not otherwise fit.

    Args:
        result: Scan result with encoded image bytes
        output_path: Destination .pdf path

    Returns:
        Path of the written PDF.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    aspect = result.width / result.height
    img_width_pt = A4_WIDTH_PT - PAGE_MARGIN_PT * 2
    img_height_pt = img_width_pt / aspect
    page_height_pt = max(A4_HEIGHT_PT, img_height_pt + PAGE_MARGIN_PT * 2)

    # Render at (at least) the scan's native resolution
    px_per_pt = max(1.0, result.width / img_width_pt)

    page = Image.new(
        'RGB',
        (round(A4_WIDTH_PT * px_per_pt), round(page_height_pt * px_per_pt)),
        (255, 255, 255),
    )

    with Image.open(io.BytesIO(result.image_bytes)) as img:
        scaled = img.convert('RGB').resize(
            (round(img_width_pt * px_per_pt), round(img_height_pt * px_per_pt)),
            Image.Resampling.LANCZOS,
        )

    offset = round(PAGE_MARGIN_PT * px_per_pt)
    page.paste(scaled, (offset, offset))
    page.save(output_path, format='PDF', resolution=72.0 * px_per_pt)

    logger.info(
        f"Saved PDF: {output_path} (page {A4_WIDTH_PT}x{page_height_pt:.0f}pt, "
        f"{px_per_pt * 72:.0f} dpi)"
    )

    return output_path
