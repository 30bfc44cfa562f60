"""
Upstream Client

Forwards a buffered request to the host the thermostat addressed and returns
the buffered response.
"""

import logging
from dataclasses import dataclass, field

import requests

from .exceptions import UpstreamError

logger = logging.getLogger(__name__)

# Connection-scoped headers, never forwarded (RFC 7230 section 6.1)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
}

# Recomputed by requests/the server for the forwarded message
_REQUEST_SKIP = HOP_BY_HOP_HEADERS | {"host", "content-length"}
# Bodies are relayed decoded, so the encoding headers no longer apply
_RESPONSE_SKIP = HOP_BY_HOP_HEADERS | {"content-length", "content-encoding"}


@dataclass
class UpstreamResponse:
    """Buffered upstream response."""

    status_code: int
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""


def forwardable_headers(headers, skip=_REQUEST_SKIP) -> list[tuple[str, str]]:
    """Filter (name, value) pairs, dropping connection-scoped headers."""
    return [(name, value) for name, value in headers if name.lower() not in skip]


class UpstreamClient:
    """Relays requests with a pooled requests session."""

    def __init__(self, timeout: float = 30.0):
        """Initialize upstream client.

        Args:
            timeout: Connect/read timeout in seconds
        """
        self.timeout = timeout
        # Create a session for connection pooling
        self.session = requests.Session()
        # The device's own headers are forwarded, nothing is added
        self.session.headers.clear()
        # Never pick up HTTP(S)_PROXY from the environment, we are the proxy
        self.session.trust_env = False

    def forward(self, method: str, url: str, headers, body: bytes) -> UpstreamResponse:
        """Send the request upstream without following redirects.

        Args:
            method: HTTP method
            url: Absolute target URL
            headers: Iterable of (name, value) pairs from the inbound request
            body: Request body

        Returns:
            Buffered upstream response

        Raises:
            UpstreamError: If the request could not be completed
        """
        outbound = {}
        for name, value in forwardable_headers(headers):
            # requests takes a mapping, repeated headers are folded
            outbound[name] = f"{outbound[name]}, {value}" if name in outbound else value

        try:
            response = self.session.request(
                method,
                url,
                headers=outbound,
                data=body or None,
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.exceptions.RequestException as e:
            raise UpstreamError(str(e)) from e

        return UpstreamResponse(
            status_code=response.status_code,
            headers=forwardable_headers(response.raw.headers.items(), _RESPONSE_SKIP),
            body=response.content,
        )

    def close(self) -> None:
        self.session.close()
