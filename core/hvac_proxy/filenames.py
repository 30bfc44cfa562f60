"""
Capture File Names

Turns a request method and target into a single, filesystem-safe path
segment so every captured body lands directly inside the data directory.
"""

import posixpath
import re
from typing import Optional

from .exceptions import ConfigurationError

# Filesystem limit, counted in encoded bytes
MAX_FILENAME_LENGTH = 255

# Characters replaced one by one in the strict style
UNSAFE_CHARACTERS = ("/", "\\", ":", "*", "?", '"', "<", ">", "|", "&", "=")

# Legacy style: any run of these becomes a single underscore
UNSAFE_PATTERN = re.compile(r'[<>:"/\\|?*]+')

STRICT = "strict"
PATTERN = "pattern"
FILENAME_STYLES = (STRICT, PATTERN)


def sanitize_string(value: str) -> str:
    """Replace every unsafe filename character with an underscore."""
    value = value.strip()
    for char in UNSAFE_CHARACTERS:
        value = value.replace(char, "_")
    return value


def sanitize_pattern(value: str) -> str:
    """Collapse runs of reserved filename characters into one underscore.

    Keeps ``=`` and ``&``, which matches the file names written by older
    releases.
    """
    return UNSAFE_PATTERN.sub("_", value)


def request_target_for(path: str, raw_query: str = "", request_target: Optional[str] = None) -> str:
    """Return path plus query, preferring the target as sent on the wire."""
    if request_target:
        return request_target
    if raw_query:
        return f"{path}?{raw_query}"
    return path


def build_identifier(
    method: str,
    path: str,
    raw_query: str = "",
    suffix: str = "",
    extension: str = "",
    request_target: Optional[str] = None,
    style: str = STRICT,
) -> str:
    """Build the file name used to store a captured body.

    Args:
        method: HTTP method (e.g., "POST")
        path: URL path of the request
        raw_query: Query string without the leading '?'
        suffix: "response" for response bodies, empty for requests
        extension: ".xml" for XML content, empty otherwise
        request_target: Path and query exactly as received, if known
        style: "strict" (per character) or "pattern" (legacy regex)

    Returns:
        A name of at most 255 characters with no path separators

    Raises:
        ConfigurationError: If style is unknown
    """
    if style not in FILENAME_STYLES:
        raise ConfigurationError(f"Unknown filename style: {style}")

    target = request_target_for(path, raw_query, request_target)
    if target.startswith("/"):
        target = target[1:]

    sanitize = sanitize_string if style == STRICT else sanitize_pattern
    filename = f"{method}-{sanitize(target)}"
    if suffix:
        filename += f"-{suffix}"
    filename += extension

    # Collapse '.' and '..' segments, the result must stay a single segment
    filename = posixpath.normpath(filename).replace("/", "_")

    return truncate_filename(filename.strip())


def truncate_filename(name: str, limit: int = MAX_FILENAME_LENGTH) -> str:
    """Cut a name to at most ``limit`` bytes once encoded.

    A multi-byte character straddling the limit is dropped whole.
    """
    encoded = name.encode("utf-8")
    if len(encoded) <= limit:
        return name
    return encoded[:limit].decode("utf-8", errors="ignore")
