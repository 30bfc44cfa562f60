"""
Traffic Capture

Writes every proxied request and response body to the data directory:
1. Decode URL-encoded HVAC form data (``data=...``)
2. Record metrics from /status request bodies
3. Strip <update> blocks if BLOCK_UPDATES is enabled
4. Indent XML for readability
5. Save under a name derived from method and path
"""

import logging
import os
import re
import tempfile
from enum import Enum
from typing import Optional
from urllib.parse import unquote_to_bytes

from .exceptions import ExtractionError
from .filenames import STRICT, build_identifier
from .telemetry import TelemetryRecorder
from .xml_utils import is_xml, prettify_xml

logger = logging.getLogger(__name__)

FORM_PREFIX = b"data="
STATUS_ENDPOINT = "/status"
XML_EXTENSION = ".xml"
RESPONSE_SUFFIX = "response"
CAPTURE_FILE_MODE = 0o644

# '%' not followed by two hex digits
_BAD_ESCAPE = re.compile(rb"%(?![0-9A-Fa-f]{2})")

# <update .../> or <update ...>...</update>, but never <updates>
UPDATE_BLOCK = re.compile(rb"<update(?:\s[^>]*?)?/>|<update(?:\s[^>]*)?>.*?</update>", re.DOTALL)


class Direction(str, Enum):
    """Which side of the exchange a body belongs to."""

    REQUEST = "request"
    RESPONSE = "response"


def decode_form_body(body: bytes) -> bytes:
    """Decode a ``data=<urlencoded>`` body, the form the thermostat posts.

    Bodies without the prefix, or with a malformed escape, are returned as is.
    """
    if not body.startswith(FORM_PREFIX):
        return body

    encoded = body[len(FORM_PREFIX):]
    if _BAD_ESCAPE.search(encoded):
        logger.warning("Form body has an invalid escape, keeping it encoded")
        return body
    return unquote_to_bytes(encoded.replace(b"+", b" "))


def strip_updates(body: bytes) -> bytes:
    """Remove every <update> element (firmware update offers)."""
    return UPDATE_BLOCK.sub(b"", body)


class CaptureSink:
    """Persists proxied bodies and feeds /status requests to the recorder."""

    def __init__(
        self,
        data_dir: str,
        recorder: Optional[TelemetryRecorder] = None,
        block_updates: bool = False,
        filename_style: str = STRICT,
    ):
        """Initialize capture sink.

        Args:
            data_dir: Directory for captured files (created on demand)
            recorder: Metrics recorder for /status requests, None disables it
            block_updates: Strip <update> elements before saving
            filename_style: Sanitizer style passed to build_identifier
        """
        self.data_dir = data_dir
        self.recorder = recorder
        self.block_updates = block_updates
        self.filename_style = filename_style

    def capture(
        self,
        method: str,
        path: str,
        body: bytes,
        direction: Direction,
        raw_query: str = "",
        request_target: Optional[str] = None,
    ) -> None:
        """Save one body to disk. Never raises; failures are logged.

        Args:
            method: HTTP method of the request
            path: URL path of the request
            body: Raw body bytes
            direction: Direction.REQUEST or Direction.RESPONSE
            raw_query: Query string without '?'
            request_target: Path and query as received, if known
        """
        if not body:
            return

        try:
            self._capture(method, path, body, direction, raw_query, request_target)
        except Exception as e:
            logger.exception(f"Failed to capture {direction.value} body for {method} {path}: {e}")

    def _capture(self, method, path, body, direction, raw_query, request_target):
        content = decode_form_body(body)

        if direction is Direction.REQUEST and path.endswith(STATUS_ENDPOINT) and self.recorder:
            try:
                self.recorder.record(content)
            except ExtractionError as e:
                logger.warning(f"[HVAC] Metrics not updated: {e}")

        extension = XML_EXTENSION if is_xml(content) else ""

        if self.block_updates:
            content = strip_updates(content)

        content = prettify_xml(content)

        suffix = RESPONSE_SUFFIX if direction is Direction.RESPONSE else ""
        filename = build_identifier(
            method,
            path,
            raw_query=raw_query,
            suffix=suffix,
            extension=extension,
            request_target=request_target,
            style=self.filename_style,
        )
        self._write(filename, content)

    def _write(self, filename: str, content: bytes) -> None:
        try:
            os.makedirs(self.data_dir, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create directory {self.data_dir}: {e}")
            return

        file_path = os.path.join(self.data_dir, filename)
        # Rename over the target; a file always holds one complete body
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=".capture-")
        except OSError as e:
            logger.error(f"Failed to create temp file in {self.data_dir}: {e}")
            return
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            os.chmod(tmp_path, CAPTURE_FILE_MODE)
            os.replace(tmp_path, file_path)
        except OSError as e:
            logger.error(f"Failed to write file {file_path}: {e}")
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            return
        logger.debug(f"Saved {len(content)} bytes to {file_path}")
