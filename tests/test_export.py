"""Tests for PNG and PDF export."""

import re

import numpy as np

from miniscan.export import generate_pdf, save_png
from miniscan.preprocessing.encoder import encode_png
from miniscan.raster import Raster, ScanResult


def _result(width: int = 120, height: int = 160) -> ScanResult:
    rgb = np.full((height, width, 3), 255, dtype=np.uint8)
    rgb[40:50, 10:110] = 0
    return ScanResult(image_bytes=encode_png(Raster.from_rgb(rgb)), width=width, height=height)


class TestSavePng:

    def test_writes_timestamped_file(self, tmp_path) -> None:
        result = _result()
        path = save_png(result, tmp_path / "scans")

        assert path.parent == tmp_path / "scans"
        assert re.fullmatch(r"scan_\d+\.png", path.name)
        assert path.read_bytes() == result.image_bytes


class TestGeneratePdf:

    def test_writes_pdf(self, tmp_path) -> None:
        path = generate_pdf(_result(), tmp_path / "out" / "scan.pdf")
        assert path.exists()
        assert path.read_bytes().startswith(b"%PDF")

    def test_very_tall_scan(self, tmp_path) -> None:
        path = generate_pdf(_result(100, 2000), tmp_path / "tall.pdf")
        assert path.read_bytes().startswith(b"%PDF")

    def test_wide_scan(self, tmp_path) -> None:
        path = generate_pdf(_result(1500, 300), tmp_path / "wide.pdf")
        assert path.stat().st_size > 0


def test_scan_result_base64() -> None:
    result = ScanResult(image_bytes=b"\x00\xffabc", width=1, height=1)
    assert result.to_base64() == "AP9hYmM="
