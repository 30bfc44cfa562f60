"""HVAC proxy capture and metrics package."""

__version__ = "0.1.0"

# Define public API
__all__ = [
    "CaptureSink",
    "Direction",
    "MetricsSnapshot",
    "ProxySettings",
    "TelemetryDocument",
    "TelemetryRecorder",
    "Zone",
    "build_identifier",
    "is_status_xml",
    "is_xml",
    "load_settings",
    "prettify_xml",
    "render_exposition",
]

# Import settings
from .settings import ProxySettings, load_settings

# Import models
from .models import TelemetryDocument, Zone

# Import pipeline
from .capture import CaptureSink, Direction
from .exposition import render_exposition
from .filenames import build_identifier
from .metrics import MetricsSnapshot
from .telemetry import TelemetryRecorder
from .xml_utils import is_status_xml, is_xml, prettify_xml
