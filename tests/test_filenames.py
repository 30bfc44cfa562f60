"""Tests for capture file name construction."""

from __future__ import annotations

import pytest

from core.hvac_proxy.exceptions import ConfigurationError
from core.hvac_proxy.filenames import (
    MAX_FILENAME_LENGTH,
    UNSAFE_CHARACTERS,
    build_identifier,
    truncate_filename,
    request_target_for,
    sanitize_pattern,
    sanitize_string,
)


class TestSanitize:
    def test_strict_replaces_each_character(self) -> None:
        assert sanitize_string('a/b\\c:d*e?f"g<h>i|j=k&l') == "a_b_c_d_e_f_g_h_i_j_k_l"

    def test_strict_trims_whitespace(self) -> None:
        assert sanitize_string("  status  ") == "status"

    def test_pattern_collapses_runs_and_keeps_query_separators(self) -> None:
        assert sanitize_pattern("a//b?c=d&e") == "a_b_c=d&e"


class TestRequestTarget:
    def test_prefers_request_target(self) -> None:
        assert request_target_for("/ignored", "x=1", "/a?b=2") == "/a?b=2"

    def test_rebuilds_from_path_and_query(self) -> None:
        assert request_target_for("/path", "foo=bar") == "/path?foo=bar"

    def test_path_without_query(self) -> None:
        assert request_target_for("/path") == "/path"


class TestBuildIdentifier:
    def test_response_with_nested_path(self) -> None:
        name = build_identifier("POST", "/user/123/profile", suffix="response", extension=".xml")
        assert name == "POST-user_123_profile-response.xml"

    def test_request_without_suffix(self) -> None:
        assert build_identifier("POST", "/status", extension=".xml") == "POST-status.xml"

    def test_non_xml_has_no_extension(self) -> None:
        assert build_identifier("GET", "/plain") == "GET-plain"

    def test_query_fallback_pattern_style(self) -> None:
        name = build_identifier("GET", "/path", raw_query="foo=bar", extension=".xml", style="pattern")
        assert "GET-path_foo=bar.xml" in name

    def test_query_fallback_strict_style(self) -> None:
        name = build_identifier("GET", "/path", raw_query="foo=bar", extension=".xml")
        assert name == "GET-path_foo_bar.xml"

    def test_request_target_wins_over_path(self) -> None:
        name = build_identifier("GET", "/other", raw_query="x=1", request_target="/systems/1/status?a=b&c=d")
        assert name == "GET-systems_1_status_a_b_c_d"

    def test_strips_only_one_leading_slash(self) -> None:
        assert build_identifier("GET", "//double") == "GET-_double"

    def test_root_path(self) -> None:
        assert build_identifier("GET", "/") == "GET-"

    @pytest.mark.parametrize("style", ["strict", "pattern"])
    def test_traversal_stays_a_single_segment(self, style: str) -> None:
        name = build_identifier("GET", "/../../etc/passwd", style=style)
        assert "/" not in name
        assert name.startswith("GET-")

    def test_no_unsafe_characters_in_strict_style(self) -> None:
        name = build_identifier("PUT", '/a\\b:c*d"e<f>g|h', raw_query="i=j&k=?", suffix="response")
        for char in UNSAFE_CHARACTERS:
            assert char not in name

    def test_truncated_to_255_characters(self) -> None:
        name = build_identifier("GET", "/" + "x" * 400, suffix="response", extension=".xml")
        assert len(name) == MAX_FILENAME_LENGTH
        assert name.startswith("GET-xxx")

    def test_non_ascii_target_capped_in_bytes(self) -> None:
        name = build_identifier("GET", "/x", request_target="/" + "\xe9" * 300, extension=".xml")
        assert len(name.encode("utf-8")) <= MAX_FILENAME_LENGTH
        assert name.startswith("GET-\xe9")

    def test_truncate_drops_split_character(self) -> None:
        assert truncate_filename("ab\xe9", limit=3) == "ab"
        assert truncate_filename("ab\xe9", limit=4) == "ab\xe9"

    def test_unknown_style_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            build_identifier("GET", "/a", style="loose")
