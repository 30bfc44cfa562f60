"""
Status Telemetry Extraction

Turns a captured /status request body into a metrics snapshot and, when
configured, an MQTT message.
"""

import logging
from typing import Optional

from .exceptions import NotRecognizedError
from .exposition import render_exposition
from .metrics import MetricsSnapshot
from .models import TelemetryDocument
from .publisher import PublishDispatcher
from .xml_utils import is_status_xml

logger = logging.getLogger(__name__)


def parse_status(data: bytes) -> TelemetryDocument:
    """Parse a status document.

    Raises:
        NotRecognizedError: If the payload is not a status document
        ParseFailureError: If the status document is malformed
    """
    if not is_status_xml(data):
        raise NotRecognizedError("not HVAC status XML")
    return TelemetryDocument.from_xml(data)


def extract(data: bytes) -> tuple[TelemetryDocument, str]:
    """Parse a status document and render its metrics.

    Returns:
        (document, exposition text)

    Raises:
        ExtractionError: If the payload is not usable for metrics
    """
    document = parse_status(data)
    return document, render_exposition(document)


class TelemetryRecorder:
    """Records metrics from status documents."""

    def __init__(self, snapshot: MetricsSnapshot, dispatcher: Optional[PublishDispatcher] = None):
        self.snapshot = snapshot
        self.dispatcher = dispatcher or PublishDispatcher()

    def record(self, data: bytes) -> TelemetryDocument:
        """Extract metrics, update the snapshot and queue a publish.

        Nothing is recorded or published when extraction fails.

        Raises:
            ExtractionError: If the payload is not usable for metrics
        """
        document, text = extract(data)
        self.snapshot.update(document, text)
        self.dispatcher.submit(document)

        zone = document.first_zone
        logger.info(
            f"[HVAC] oat={document.outdoor_air_temp} rt={zone.current_temp} "
            f"htsp={zone.heat_set_point} clsp={zone.cool_set_point} opstat={document.operation_status!r}"
        )
        return document
