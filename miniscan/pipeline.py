"""Scan orchestrator: corners in, rectified and enhanced page out."""

import logging
import os
import time
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Union

from miniscan.enhance.modes import EnhanceMode, apply_enhancement
from miniscan.errors import SingularMatrixError, SingularTransformError, UninvertibleTransformError
from miniscan.geometry.corners import CornerSet, compute_output_dimensions, destination_rectangle
from miniscan.geometry.homography import compute_homography
from miniscan.geometry.linalg import invert_3x3
from miniscan.geometry.warp import warp_perspective
from miniscan.preprocessing.encoder import encode_png
from miniscan.preprocessing.loader import decode_image
from miniscan.raster import Raster, ScanResult

logger = logging.getLogger(__name__)

Decoder = Callable[[bytes], Raster]
Encoder = Callable[[Raster], bytes]

_ENV_PREFIX = "MINISCAN_"


@dataclass
class ScanConfig:
    """All tunable parameters in one place."""

    # Geometry
    min_dimension: int = 100  # px, each side
    max_dimension: int = 3000  # px, longest side
    singular_epsilon: float = 1e-10
    warp_band_rows: int = 256

    # Black & white
    threshold_offset: float = 10.0
    min_block_size: int = 15
    block_size_divisor: int = 8

    # Grayscale / color
    low_percentile: float = 0.01
    high_percentile: float = 0.99
    color_gamma: float = 0.85

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ScanConfig":
        """Build a config, overriding defaults with MINISCAN_<FIELD> variables."""
        environ = os.environ if environ is None else environ
        overrides = {}

        for field in fields(cls):
            env_var = _ENV_PREFIX + field.name.upper()
            raw = environ.get(env_var, "").strip()
            if not raw:
                continue
            try:
                overrides[field.name] = field.type(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {env_var}: {raw!r}") from e
            logger.debug(f"Config override from {env_var}: {field.name}={overrides[field.name]}")

        return cls(**overrides)


class Scanner:
    """Perspective-correct and enhance a document photo.

    The scanner keeps no state between calls, so a single instance may be
    shared across threads. Step timings travel with each result.
    """

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        decoder: Decoder = decode_image,
        encoder: Encoder = encode_png,
    ) -> None:
        """Initialize scanner.

        Args:
            config: Scan configuration. If None, uses defaults.
            decoder: Callable turning encoded image bytes into a Raster.
            encoder: Callable turning a Raster into encoded image bytes.
        """
        self.config = config or ScanConfig()
        self.decoder = decoder
        self.encoder = encoder

    def process(
        self,
        image_bytes: bytes,
        corners: Union[CornerSet, Mapping],
        mode: Union[EnhanceMode, str] = EnhanceMode.BLACK_WHITE,
        debug_output_dir: Optional[str] = None,
    ) -> ScanResult:
        """Decode, rectify, enhance and re-encode a document photo.

        Args:
            image_bytes: Encoded source image (PNG, JPEG, ...)
            corners: Normalized corners, as a CornerSet or {tl, tr, br, bl} mapping
            mode: Enhancement mode or its tag ("bw", "gray", "color")
            debug_output_dir: Optional directory for debug images

        Returns:
            ScanResult with PNG bytes, final dimensions and per-step timings

        Raises:
            DecodeError: If the source cannot be decoded
            SingularTransformError: If no homography fits the corners
            UninvertibleTransformError: If the homography cannot be inverted
            ValueError: If corners or mode are malformed
        """
        start_time = time.time()
        timings: Dict[str, float] = {}

        step_start = time.time()
        source = self.decoder(image_bytes)
        timings['decode'] = time.time() - step_start
        logger.info(f"Decode time: {timings['decode']:.3f}s")

        page = self.process_raster(source, corners, mode, debug_output_dir, step_times=timings)

        step_start = time.time()
        encoded = self.encoder(page)
        timings['encode'] = time.time() - step_start
        logger.info(f"Encode time: {timings['encode']:.3f}s")

        logger.info(f"Total processing time: {time.time() - start_time:.3f}s")

        return ScanResult(
            image_bytes=encoded,
            width=page.width,
            height=page.height,
            step_times=timings,
        )

    def process_raster(
        self,
        source: Raster,
        corners: Union[CornerSet, Mapping],
        mode: Union[EnhanceMode, str] = EnhanceMode.BLACK_WHITE,
        debug_output_dir: Optional[str] = None,
        step_times: Optional[Dict[str, float]] = None,
    ) -> Raster:
        """Rectify and enhance an already decoded raster.

        The source raster is never modified; a new raster is returned. Pass a
        dict as ``step_times`` to collect the duration of each step.
        """
        timings = {} if step_times is None else step_times
        if not isinstance(corners, CornerSet):
            corners = CornerSet.from_dict(corners)
        if not isinstance(mode, EnhanceMode):
            mode = EnhanceMode.from_tag(mode)

        cfg = self.config
        debug_dir: Optional[Path] = None
        if debug_output_dir:
            debug_dir = Path(debug_output_dir)
            debug_dir.mkdir(parents=True, exist_ok=True)

        # Step 1: Destination geometry
        step_start = time.time()
        src_points = corners.to_absolute(source.width, source.height)
        width, height = compute_output_dimensions(src_points, cfg.min_dimension, cfg.max_dimension)
        dst_points = destination_rectangle(width, height)

        try:
            homography = compute_homography(src_points, dst_points, epsilon=cfg.singular_epsilon)
        except SingularMatrixError as e:
            raise SingularTransformError(f"Failed to compute transform: {e}") from e

        try:
            inverse = invert_3x3(homography, epsilon=cfg.singular_epsilon)
        except SingularMatrixError as e:
            raise UninvertibleTransformError(f"Failed to invert transform: {e}") from e

        timings['geometry'] = time.time() - step_start
        logger.info(
            f"Geometry: {source.width}x{source.height} source -> {width}x{height} page "
            f"({timings['geometry']:.3f}s)"
        )

        if debug_dir:
            from miniscan.utils.debug import draw_corners, save_debug_image
            save_debug_image(
                draw_corners(source, src_points),
                debug_dir / "01_source_corners.jpg",
                "Source with selected corners"
            )

        # Step 2: Perspective warp
        step_start = time.time()
        page = warp_perspective(source, inverse, width, height, band_rows=cfg.warp_band_rows)
        timings['warp'] = time.time() - step_start
        logger.info(f"Warp time: {timings['warp']:.3f}s")

        if debug_dir:
            from miniscan.utils.debug import save_debug_image
            save_debug_image(page, debug_dir / "02_warped.jpg", "After perspective correction")

        # Step 3: Enhancement
        step_start = time.time()
        apply_enhancement(
            page,
            mode,
            threshold_offset=cfg.threshold_offset,
            min_block=cfg.min_block_size,
            block_divisor=cfg.block_size_divisor,
            low_percentile=cfg.low_percentile,
            high_percentile=cfg.high_percentile,
            gamma=cfg.color_gamma,
        )
        timings['enhance'] = time.time() - step_start
        logger.info(f"Enhance ({mode.value}) time: {timings['enhance']:.3f}s")

        if debug_dir:
            from miniscan.utils.debug import save_debug_image
            save_debug_image(page, debug_dir / "03_enhanced.jpg", f"After {mode.value} enhancement")

        return page


def scan(
    image_bytes: bytes,
    corners: Union[CornerSet, Mapping],
    mode: Union[EnhanceMode, str] = EnhanceMode.BLACK_WHITE,
    config: Optional[ScanConfig] = None,
) -> ScanResult:
    """One-shot convenience wrapper around Scanner.process."""
    return Scanner(config).process(image_bytes, corners, mode)
