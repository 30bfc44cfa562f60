"""
HVAC Proxy Custom Exceptions

Simple exception hierarchy for error handling.
"""


class HVACProxyError(Exception):
    """Base exception for HVAC proxy."""

    pass


class ConfigurationError(HVACProxyError):
    """Configuration is invalid."""

    pass


class UpstreamError(HVACProxyError):
    """Forwarded request to the upstream service failed."""

    pass


class ExtractionError(HVACProxyError):
    """Status document could not be turned into metrics."""

    pass


class NotRecognizedError(ExtractionError):
    """Payload is not an HVAC status document."""

    pass


class ParseFailureError(ExtractionError):
    """Status document is malformed."""

    pass


class NoZoneDataError(ExtractionError):
    """Status document has no zones to report."""

    pass
