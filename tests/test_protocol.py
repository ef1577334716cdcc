"""Tests for the JSON message boundary."""

import base64
import io
import json

import numpy as np
from PIL import Image

from miniscan.enhance.modes import EnhanceMode
from miniscan.geometry.corners import CornerSet
from miniscan.pipeline import Scanner
from miniscan.preprocessing.encoder import encode_png
from miniscan.protocol import ScanRequest, handle_message, ready_message
from miniscan.raster import Raster


def _page_png(width: int = 300, height: int = 200) -> bytes:
    rgb = np.full((height, width, 3), 60, dtype=np.uint8)
    rgb[20:180, 30:270] = 240
    rgb[60:66, 60:240] = 20
    return encode_png(Raster.from_rgb(rgb))


def _process_message(**overrides) -> str:
    message = {
        "type": "process",
        "base64": base64.b64encode(_page_png()).decode("ascii"),
        "corners": CornerSet.default().to_dict(),
        "mode": "bw",
    }
    message.update(overrides)
    return json.dumps(message)


class TestHandleMessage:

    def test_result_response(self) -> None:
        response = json.loads(handle_message(_process_message()))

        assert response["type"] == "result"
        assert (response["width"], response["height"]) == (240, 160)
        assert set(response) == {"type", "base64", "width", "height"}

        png = base64.b64decode(response["base64"])
        with Image.open(io.BytesIO(png)) as img:
            assert img.size == (240, 160)
            values = np.unique(np.array(img)[:, :, :3])
        assert set(values) <= {0, 255}

    def test_data_uri_payload(self) -> None:
        payload = "data:image/png;base64," + base64.b64encode(_page_png()).decode("ascii")
        response = json.loads(handle_message(_process_message(base64=payload, mode="gray")))
        assert response["type"] == "result"

    def test_missing_corners_use_default(self) -> None:
        message = json.loads(_process_message())
        del message["corners"]
        response = json.loads(handle_message(json.dumps(message)))
        assert (response["width"], response["height"]) == (240, 160)

    def test_undecodable_image_is_error(self) -> None:
        bogus = base64.b64encode(b"not an image").decode("ascii")
        response = json.loads(handle_message(_process_message(base64=bogus)))
        assert response == {"type": "error", "message": response["message"]}
        assert "Failed to load image" in response["message"]

    def test_singular_corners_are_error(self) -> None:
        line = {key: {"x": x, "y": 0.5} for key, x in zip(("tl", "tr", "br", "bl"), (0.1, 0.9, 0.6, 0.3))}
        response = json.loads(handle_message(_process_message(corners=line)))
        assert response["type"] == "error"
        assert "Failed to compute transform" in response["message"]
        assert "base64" not in response

    def test_unknown_mode_is_error(self) -> None:
        response = json.loads(handle_message(_process_message(mode="sepia")))
        assert response["type"] == "error"
        assert "sepia" in response["message"]

    def test_invalid_json(self) -> None:
        response = json.loads(handle_message("{not json"))
        assert response["type"] == "error"
        assert response["message"].startswith("Invalid message:")

    def test_out_of_range_corners_are_clamped(self) -> None:
        corners = {
            "tl": {"x": -0.5, "y": -0.5},
            "tr": {"x": 1.5, "y": -0.5},
            "br": {"x": 1.5, "y": 1.5},
            "bl": {"x": -0.5, "y": 1.5},
        }
        response = json.loads(handle_message(_process_message(corners=corners)))
        assert response["type"] == "result"
        assert (response["width"], response["height"]) == (300, 200)

    def test_huge_corner_gets_a_response(self) -> None:
        corners = CornerSet.default().to_dict()
        corners["tl"] = {"x": 1e306, "y": 0.1}
        response = json.loads(handle_message(_process_message(corners=corners)))
        assert response["type"] == "result"

    def test_decompression_bomb_is_error(self, monkeypatch) -> None:
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        response = json.loads(handle_message(_process_message()))
        assert response["type"] == "error"
        assert "Failed to load image" in response["message"]

    def test_unexpected_failure_is_error(self) -> None:
        def _broken_decoder(data: bytes) -> Raster:
            raise RuntimeError("decoder crashed")

        response = json.loads(handle_message(_process_message(), Scanner(decoder=_broken_decoder)))
        assert response == {"type": "error", "message": "Processing failed"}

    def test_other_messages_ignored(self) -> None:
        assert handle_message(json.dumps({"type": "ping"})) is None
        assert handle_message(json.dumps([1, 2, 3])) is None


class TestScanRequest:

    def test_message_round_trip(self) -> None:
        request = ScanRequest(image_bytes=b"\x89PNG...", corners=CornerSet.default(), mode=EnhanceMode.COLOR)
        parsed = ScanRequest.from_message(request.to_message())
        assert parsed == request

    def test_ready_message(self) -> None:
        assert json.loads(ready_message()) == {"type": "ready"}
