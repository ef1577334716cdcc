"""JSON message boundary around the scanner.

Request:   {"type": "process", "base64": <image>, "corners": {tl, tr, br, bl}, "mode": "bw"|"gray"|"color"}
Responses: {"type": "result", "base64": <png>, "width": W, "height": H}
           {"type": "error", "message": <text>}
           {"type": "ready"}

Every process request yields exactly one of result or error.
"""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from miniscan.enhance.modes import EnhanceMode
from miniscan.errors import ScanError
from miniscan.geometry.corners import CornerSet
from miniscan.pipeline import Scanner
from miniscan.preprocessing.loader import decode_base64
from miniscan.raster import ScanResult

logger = logging.getLogger(__name__)


@dataclass
class ScanRequest:
    """A parsed process request.

    Corners are clamped into [0, 1], the same as the corner handles in the UI.
    """

    image_bytes: bytes
    corners: CornerSet
    mode: EnhanceMode

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> "ScanRequest":
        payload = message.get("base64")
        if not isinstance(payload, str) or not payload:
            raise ValueError("Request is missing the 'base64' image payload")

        corners = message.get("corners")
        if corners is None:
            corner_set = CornerSet.default()
        elif isinstance(corners, Mapping):
            corner_set = CornerSet.from_dict(corners).clamped()
        else:
            raise ValueError(f"'corners' must be an object, got {type(corners).__name__}")

        mode = EnhanceMode.from_tag(message.get("mode", EnhanceMode.BLACK_WHITE.value))

        return cls(image_bytes=decode_base64(payload), corners=corner_set, mode=mode)

    def to_message(self) -> Dict[str, Any]:
        return {
            "type": "process",
            "base64": base64.b64encode(self.image_bytes).decode("ascii"),
            "corners": self.corners.to_dict(),
            "mode": self.mode.value,
        }


def ready_message() -> str:
    return json.dumps({"type": "ready"})


def result_message(result: ScanResult) -> str:
    return json.dumps({
        "type": "result",
        "base64": result.to_base64(),
        "width": result.width,
        "height": result.height,
    })


def error_message(message: str) -> str:
    return json.dumps({"type": "error", "message": message or "Processing failed"})


def handle_message(raw: str, scanner: Optional[Scanner] = None) -> Optional[str]:
    """Handle one incoming JSON message.

    Args:
        raw: Message text
        scanner: Scanner to use. If None, a default one is created.

    Returns:
        Response JSON, or None for messages that need no reply.
    """
    try:
        message = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Rejected malformed message: {e}")
        return error_message(f"Invalid message: {e}")

    if not isinstance(message, dict) or message.get("type") != "process":
        logger.debug(f"Ignoring message: {str(raw)[:80]}")
        return None

    scanner = scanner or Scanner()

    try:
        request = ScanRequest.from_message(message)
        result = scanner.process(request.image_bytes, request.corners, request.mode)
    except (ScanError, ValueError) as e:
        logger.error(f"Scan failed: {e}")
        return error_message(str(e))
    except Exception as e:
        logger.error(f"Unexpected failure while scanning: {e}", exc_info=True)
        return error_message("Processing failed")

    logger.info(f"Scan succeeded: {result.width}x{result.height}, {len(result.image_bytes)} bytes")

    return result_message(result)
