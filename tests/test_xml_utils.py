"""Tests for payload classification and XML indentation."""

from __future__ import annotations

import pytest

from core.hvac_proxy.xml_utils import is_status_xml, is_xml, prettify_xml


class TestIsStatusXML:
    @pytest.mark.parametrize(
        "data",
        [
            b'<status version="1.0">',
            b'<?xml version="1.0"?><status>',
            b'  \n<status><oat>1</oat></status>\n',
            b'<?xml version="1.0"?>\n<!-- report -->\n<status/>',
        ],
    )
    def test_recognizes_status_documents(self, data: bytes) -> None:
        assert is_status_xml(data)

    @pytest.mark.parametrize(
        "data",
        [
            b"<config>",
            b"",
            b"   ",
            b"status",
            b'<?xml version="1.0"?><config/>',
            b"data=%3Cstatus%3E",
        ],
    )
    def test_rejects_other_payloads(self, data: bytes) -> None:
        assert not is_status_xml(data)

    def test_accepts_malformed_document_that_looks_right(self) -> None:
        assert is_status_xml(b"<status><oat>63</status>")


class TestIsXML:
    def test_valid_xml(self) -> None:
        assert is_xml(b"<status><oat>63</oat></status>")

    def test_mismatched_tags(self) -> None:
        assert not is_xml(b"<invalid><data>test</invalid>")

    def test_empty_input(self) -> None:
        assert not is_xml(b"")

    def test_incomplete_xml(self) -> None:
        assert not is_xml(b"<status><oat>63")

    def test_plain_text(self) -> None:
        assert not is_xml(b"This is not XML content")

    def test_one_closed_element_is_enough(self) -> None:
        """A balanced element followed by junk still counts as XML."""
        assert is_xml(b"<status><oat>63</oat>")
        assert is_xml(b"<a></a> trailing garbage <<<")

    def test_namespaced_document(self) -> None:
        data = (
            b'<updates xmlns="http://schema.ota.carrier.com">'
            b'<update xmlns="http://schema.ota.carrier.com"><type>thermostat</type></update>'
            b"</updates>"
        )
        assert is_xml(data)

    def test_leading_whitespace_before_declaration(self) -> None:
        assert is_xml(b'\n  <?xml version="1.0"?><a>1</a>')


class TestPrettifyXML:
    def test_indents_valid_xml(self) -> None:
        result = prettify_xml(b"<status><oat>63</oat></status>")
        assert result == b"<status>\n  <oat>63</oat>\n</status>"

    def test_mixed_content(self) -> None:
        result = prettify_xml(b"<root>test<sub>content</sub></root>")
        assert result == b"<root>test\n  <sub>content</sub>\n</root>"

    def test_nested_elements_and_attributes(self) -> None:
        data = b'<?xml version="1.0" encoding="UTF-8"?><status version="1.0"><zones><zone id="1"><rt>71.0</rt></zone></zones></status>'
        expected = (
            b'<?xml version="1.0" encoding="UTF-8"?>\n'
            b'<status version="1.0">\n'
            b"  <zones>\n"
            b'    <zone id="1">\n'
            b"      <rt>71.0</rt>\n"
            b"    </zone>\n"
            b"  </zones>\n"
            b"</status>"
        )
        assert prettify_xml(data) == expected

    def test_empty_element(self) -> None:
        assert prettify_xml(b"<a><b/></a>") == b"<a>\n  <b></b>\n</a>"

    def test_escapes_text_and_attributes(self) -> None:
        result = prettify_xml(b'<a note="x &amp; &quot;y&quot;">1 &lt; 2</a>')
        assert result == b'<a note="x &amp; &quot;y&quot;">1 &lt; 2</a>'

    def test_invalid_xml_returned_unchanged(self) -> None:
        data = b"<invalid><data>test</invalid>"
        assert prettify_xml(data) is data

    def test_truncated_xml_returned_unchanged(self) -> None:
        data = b"<status><oat>63"
        assert prettify_xml(data) == data

    def test_trailing_garbage_returned_unchanged(self) -> None:
        data = b"<a>1</a> junk"
        assert prettify_xml(data) == data

    @pytest.mark.parametrize("data", [b"", b"   \n", b"This is not XML content", b"data=%3Ca%3E", b'{"a": 1}'])
    def test_non_xml_returned_unchanged(self, data: bytes) -> None:
        assert prettify_xml(data) is data

    @pytest.mark.parametrize(
        "data",
        [
            b"<status><oat>63</oat></status>",
            b"<root>test<sub>content</sub>tail</root>",
            b'<?xml version="1.0"?>\n<a>\n\t<b x="1">  spaced  </b>\n<!-- note --><c/></a>\n',
            b"<a><?pi data?><b>line1\nline2</b></a>",
        ],
    )
    def test_idempotent(self, data: bytes) -> None:
        once = prettify_xml(data)
        assert prettify_xml(once) == once

    def test_comment_on_its_own_line(self) -> None:
        assert prettify_xml(b"<a><!--c--></a>") == b"<a>\n  <!--c-->\n</a>"

    def test_reencodes_declared_charset_as_utf8(self) -> None:
        data = '<?xml version="1.0" encoding="ISO-8859-1"?><a>caf\xe9</a>'.encode("latin-1")
        result = prettify_xml(data)
        assert result == '<?xml version="1.0" encoding="UTF-8"?>\n<a>café</a>'.encode("utf-8")
