"""Unit tests for vendor prefixing (assetflow.prefixer)."""

from __future__ import annotations

import pytest

from assetflow.prefixer import prefix_css


class TestPrefixCss:
    @pytest.mark.unit
    def test_adds_prefix_before_standard_property(self):
        result = prefix_css(".a { user-select: none; }")
        assert result == ".a{-webkit-user-select:none;user-select:none}"

    @pytest.mark.unit
    def test_multiple_prefixes(self):
        result = prefix_css("button { appearance: none; }")
        assert "-webkit-appearance:none" in result
        assert "-moz-appearance:none" in result
        assert result.index("-webkit-appearance") < result.index(";appearance:none")

    @pytest.mark.unit
    def test_unrelated_declarations_untouched(self):
        result = prefix_css(".a { color: red; margin: 0 auto; }")
        assert result == ".a{color:red;margin:0 auto}"

    @pytest.mark.unit
    def test_existing_prefix_not_duplicated(self):
        result = prefix_css(".a { -webkit-user-select: none; user-select: none; }")
        assert result.count("-webkit-user-select") == 1

    @pytest.mark.unit
    def test_important_preserved(self):
        result = prefix_css(".a { user-select: none !important; }")
        assert "-webkit-user-select:none !important" in result
        assert ";user-select:none !important" in result

    @pytest.mark.unit
    def test_value_prefix_for_sticky(self):
        result = prefix_css(".nav { position: sticky; }")
        assert result == ".nav{position:-webkit-sticky;position:sticky}"

    @pytest.mark.unit
    def test_conditional_background_clip(self):
        assert "-webkit-background-clip:text" in prefix_css(".t { background-clip: text; }")
        assert "-webkit-background-clip" not in prefix_css(".t { background-clip: padding-box; }")

    @pytest.mark.unit
    def test_media_query_rules_are_prefixed(self):
        result = prefix_css("@media (max-width: 600px) { .a { user-select: none; } }")
        assert result.startswith("@media (max-width: 600px){")
        assert "-webkit-user-select:none" in result

    @pytest.mark.unit
    def test_font_face_declarations_kept(self):
        result = prefix_css('@font-face { font-family: "Inter"; src: url(a.woff2); }')
        assert result.startswith("@font-face{")
        assert 'font-family:"Inter"' in result
        assert "src:url(a.woff2)" in result

    @pytest.mark.unit
    def test_statement_at_rules_kept(self):
        result = prefix_css('@charset "UTF-8";\n.a { color: red; }')
        assert result.startswith('@charset "UTF-8";')

    @pytest.mark.unit
    def test_empty_stylesheet(self):
        assert prefix_css("") == ""
