"""
XML Helpers

Classifies captured payloads and re-indents XML bodies before they are
written to disk. Parsing is done with the expat tokenizer so every check runs
as a single streaming pass over the buffer.
"""

import logging
from xml.parsers import expat
from xml.sax.saxutils import escape

logger = logging.getLogger(__name__)

STATUS_TAG = b"<status"
PROLOG_START = b"<?"
INDENT = "  "

_ATTR_ENTITIES = {'"': "&quot;", "\n": "&#xA;", "\r": "&#xD;", "\t": "&#x9;"}


def is_status_xml(data: bytes) -> bool:
    """Cheap check for the thermostat status document.

    Matches on the root tag only; the document is not validated.
    """
    trimmed = data.strip()
    if not trimmed:
        return False
    if trimmed.startswith(STATUS_TAG):
        return True
    return trimmed.startswith(PROLOG_START) and STATUS_TAG in trimmed


class _ElementClosed(Exception):
    """Stops the tokenizer once a closing tag has been seen."""


def _stop_on_close(name):
    raise _ElementClosed(name)


def is_xml(data: bytes) -> bool:
    """Return True once the tokenizer has produced one closing tag.

    Anything after the first balanced element is not inspected, so a closed
    element followed by junk still counts as XML.
    """
    if not data:
        return False

    parser = expat.ParserCreate()
    parser.EndElementHandler = _stop_on_close
    try:
        parser.Parse(data.lstrip(), True)
    except _ElementClosed:
        return True
    except expat.ExpatError:
        return False
    return False


def _trim_layout(text: str) -> str:
    """Drop leading/trailing whitespace runs that span a line break."""
    stripped = text.lstrip()
    if "\n" in text[: len(text) - len(stripped)]:
        text = stripped
    stripped = text.rstrip()
    if "\n" in text[len(stripped):]:
        text = stripped
    return text


class _UnsupportedMarkup(Exception):
    """Markup the indenter cannot reproduce faithfully."""


class _IndentingWriter:
    """Re-encodes expat events with two-space indentation.

    An end tag follows its start tag directly when nothing but text was
    written in between; every other tag starts on a new line at its depth.
    """

    def __init__(self):
        self.parts: list[str] = []
        self._text: list[str] = []
        self._depth = 0
        self._put_newline = False
        self._indented_in = False

    def attach(self, parser) -> None:
        parser.ordered_attributes = True
        parser.buffer_text = True
        parser.XmlDeclHandler = self.xml_decl
        parser.StartDoctypeDeclHandler = self.doctype
        parser.StartElementHandler = self.start
        parser.EndElementHandler = self.end
        parser.CharacterDataHandler = self._text.append
        parser.CommentHandler = self.comment
        parser.ProcessingInstructionHandler = self.processing_instruction

    def _write_indent(self, depth_delta: int) -> None:
        if depth_delta < 0:
            self._depth -= 1
            if self._indented_in:
                self._indented_in = False
                return
        self._indented_in = False
        if self._put_newline:
            self.parts.append("\n")
        else:
            self._put_newline = True
        self.parts.append(INDENT * self._depth)
        if depth_delta > 0:
            self._depth += 1
            self._indented_in = True

    def flush_text(self) -> None:
        if not self._text:
            return
        text = "".join(self._text)
        self._text.clear()
        if not text.strip():
            return
        self.parts.append(escape(_trim_layout(text)))

    def xml_decl(self, version, encoding, standalone):
        self.flush_text()
        self._write_indent(0)
        decl = f'<?xml version="{version or "1.0"}"'
        # Output is always re-encoded as UTF-8
        if encoding:
            decl += ' encoding="UTF-8"'
        if standalone != -1:
            decl += f' standalone="{"yes" if standalone else "no"}"'
        self.parts.append(decl + "?>")

    def doctype(self, name, system_id, public_id, has_internal_subset):
        if has_internal_subset:
            raise _UnsupportedMarkup("DOCTYPE internal subset")
        self.flush_text()
        self._write_indent(0)
        decl = f"<!DOCTYPE {name}"
        if public_id:
            decl += f' PUBLIC "{public_id}" "{system_id or ""}"'
        elif system_id:
            decl += f' SYSTEM "{system_id}"'
        self.parts.append(decl + ">")

    def start(self, name, attrs):
        self.flush_text()
        self._write_indent(1)
        rendered = "".join(
            f' {attrs[i]}="{escape(attrs[i + 1], _ATTR_ENTITIES)}"'
            for i in range(0, len(attrs), 2)
        )
        self.parts.append(f"<{name}{rendered}>")

    def end(self, name):
        self.flush_text()
        self._write_indent(-1)
        self.parts.append(f"</{name}>")

    def comment(self, data):
        self.flush_text()
        self._write_indent(0)
        self.parts.append(f"<!--{data}-->")

    def processing_instruction(self, target, data):
        self.flush_text()
        self._write_indent(0)
        self.parts.append(f"<?{target} {data}?>" if data else f"<?{target}?>")


def prettify_xml(data: bytes) -> bytes:
    """Indent XML content for readability.

    Non-XML content is returned as is. If the content fails to parse at any
    point the original bytes are returned untouched, never a partial result.

    Args:
        data: Raw body bytes

    Returns:
        Indented UTF-8 XML, or ``data`` unchanged
    """
    trimmed = data.strip()
    if not trimmed or not trimmed.startswith(b"<"):
        return data

    writer = _IndentingWriter()
    parser = expat.ParserCreate()
    writer.attach(parser)
    try:
        parser.Parse(data.lstrip(), True)
        writer.flush_text()
        result = "".join(writer.parts).encode("utf-8")
    except (expat.ExpatError, _UnsupportedMarkup, UnicodeError) as e:
        logger.debug(f"Leaving body unformatted: {e}")
        return data

    if not result:
        return data
    return result
