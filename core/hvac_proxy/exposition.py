"""
Prometheus Exposition

Renders a status document as Prometheus text format. Metric names, help
strings and block order are consumed by existing dashboards and must not
change.
"""

import logging
import re
from datetime import datetime

from .exceptions import NoZoneDataError
from .models import TelemetryDocument

logger = logging.getLogger(__name__)

# Length of "2006-01-02T15:04:05"; only a colon after it can be an offset colon
DATETIME_PREFIX_LENGTH = 19
LOCALTIME_FORMAT = "%Y%m%d%H%M%S"
ISO_FORMATS = ("%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%dT%H:%M:%S.%f%z")

_INTEGER = re.compile(r"[+-]?\d+")
# strptime %f takes at most microseconds
_EXTRA_FRACTION_DIGITS = re.compile(r"(\.\d{6})\d+")


def parse_local_time(value: str) -> int:
    """Convert the device timestamp to a YYYYMMDDhhmmss integer.

    Wall-clock time is kept in the offset the device reported. Some firmware
    sends a mangled offset such as ``-055:8``; the last colon past the
    datetime part is removed and parsing is retried as ``-0558``.

    Returns:
        The numeric timestamp, or 0 if the value cannot be parsed
    """
    value = _EXTRA_FRACTION_DIGITS.sub(r"\1", value.strip())
    parsed = _parse_iso(value)

    if parsed is None:
        i = value.rfind(":")
        if i > DATETIME_PREFIX_LENGTH:
            parsed = _parse_iso(value[:i] + value[i + 1:], ISO_FORMATS[:1])

    if parsed is None:
        logger.debug(f"Unparseable localTime {value!r}, reporting 0")
        return 0
    return int(parsed.strftime(LOCALTIME_FORMAT))


def _parse_iso(value: str, formats=ISO_FORMATS):
    for fmt in formats:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def format_stage(opstat: str) -> str:
    """Numeric stages are rendered as integers, anything else verbatim."""
    token = opstat.strip()
    if not token:
        return "0"
    if _INTEGER.fullmatch(token):
        return str(int(token))
    return token


def _block(lines: list[str], name: str, help_text: str, value: str, sample_name: str = "") -> None:
    lines.append(f"# HELP {name} {help_text}")
    lines.append(f"# TYPE {name} gauge")
    lines.append(f"{sample_name or name} {value}")


def render_exposition(doc: TelemetryDocument) -> str:
    """Render a status document as Prometheus text exposition.

    Only the first zone is reported.

    Raises:
        NoZoneDataError: If the document contains no zones
    """
    zone = doc.first_zone
    if zone is None:
        raise NoZoneDataError("status document has no zones")

    lines: list[str] = []
    _block(lines, "outdoorAirTemp", "degrees in F", f"{doc.outdoor_air_temp:.1f}")
    _block(lines, "fanSpeed", "cubic feet minute", f"{doc.fan_cfm:d}")
    # Header and sample names differ in case, dashboards query "stage"
    _block(lines, "Stage", "StageName", format_stage(doc.operation_status), sample_name="stage")
    _block(lines, "filter", "percent of filter life", f"{doc.filter_level:d}")
    _block(lines, "temperature", "indoor temp", f"{zone.current_temp:.1f}")
    _block(lines, "relativeHumidity", "indoor relative humidity", f"{zone.relative_humidity:d}")
    _block(lines, "heatSetPoint", "heat set point", f"{zone.heat_set_point:.1f}")
    _block(lines, "coolingSetPoint", "cooling set point", f"{zone.cool_set_point:.1f}")
    _block(lines, "localtime", "last refreshed time", str(parse_local_time(doc.local_time)))
    return "\n".join(lines) + "\n"
