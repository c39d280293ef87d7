"""Tests for uniicon.core.stages.fallback_icon: deterministic SVG icons."""

from __future__ import annotations

import pytest

from uniicon.core.stages.fallback_icon import (
    DEFAULT_ARCHETYPE,
    DEFAULT_PALETTE,
    build_fallback_svg,
    select_archetype,
    select_palette,
)


class TestSelectArchetype:
    @pytest.mark.parametrize(
        "prompt, archetype",
        [
            ("favorite star icon", "star"),
            ("FAVORITE STAR", "star"),
            ("five star rating", "star"),
            ("I love it", "heart"),
            ("Health insurance", "heart"),
            ("a cozy house", "home"),
            ("Home page", "home"),
            ("user profile", "user"),
            ("team of PEOPLE", "user"),
            ("a blue water droplet", DEFAULT_ARCHETYPE),
            ("", DEFAULT_ARCHETYPE),
        ],
    )
    def test_keyword_table(self, prompt, archetype):
        assert select_archetype(prompt) == archetype

    def test_first_match_wins(self):
        """'star' is checked before 'heart', so both keywords yield a star."""
        assert select_archetype("heart shaped star") == "star"


class TestSelectPalette:
    def test_blue_water(self):
        palette = select_palette("a blue water droplet")
        assert palette.name == "blue"
        assert palette.primary == "#3B82F6"
        assert palette.stroke == "#1E40AF"

    @pytest.mark.parametrize(
        "prompt, name",
        [
            ("Ocean wave", "blue"),
            ("fire alarm", "red"),
            ("eco leaf", "green"),
            ("golden sun", "yellow"),
            ("favorite star icon", "yellow"),
            ("crypto wallet", "purple"),
            ("plain square", "default"),
        ],
    )
    def test_keyword_table(self, prompt, name):
        assert select_palette(prompt).name == name

    def test_default_palette(self):
        assert select_palette("nothing matches") == DEFAULT_PALETTE


class TestBuildFallbackSvg:
    def test_is_deterministic(self):
        assert build_fallback_svg("favorite star icon") == build_fallback_svg("favorite star icon")

    def test_is_svg_document(self):
        svg = build_fallback_svg("a house")
        assert svg.startswith("<svg")
        assert svg.endswith("</svg>")
        assert 'width="1024"' in svg and 'height="1024"' in svg

    def test_embeds_selection(self):
        svg = build_fallback_svg("a blue water droplet")
        assert 'data-archetype="default"' in svg
        assert 'data-palette="blue"' in svg
        assert "#3B82F6" in svg

    def test_star_shape(self):
        assert "<polygon" in build_fallback_svg("favorite star icon")

    def test_caption_truncated(self):
        svg = build_fallback_svg("a very long description of an icon")
        assert ">a very long descript...<" in svg

    def test_short_caption_untouched(self):
        assert ">a house<" in build_fallback_svg("a house")

    def test_caption_is_escaped(self):
        svg = build_fallback_svg("<script>&")
        assert "<script>" not in svg
        assert "&lt;script&gt;&amp;" in svg

    def test_fallback_label(self):
        assert "Fallback Icon" in build_fallback_svg("anything")
