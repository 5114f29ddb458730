from __future__ import annotations

from dreamdeck.schemas.generation import FallbackCard
from dreamdeck.services.fallback_card import CARD_THEMES, render_fallback_card, render_svg, resolve_theme


def test_identical_inputs_render_identical_bytes() -> None:
    card = FallbackCard(theme="Colorful", title="The Moon", subtitle="Tides of the Unseen", keywords=["wolf", "water"])
    first = render_fallback_card(card)
    second = render_fallback_card(FallbackCard(**card.model_dump()))

    assert first.data == second.data
    assert first.kind == "fallback"
    assert first.mime_type == "image/svg+xml"


def test_card_encodes_title_subtitle_and_keywords() -> None:
    svg = render_svg(FallbackCard(title="The Moon", subtitle="Tides", keywords=["wolf", "water", "key", "door"]))

    assert svg.startswith("<svg")
    assert "The Moon" in svg
    assert "Tides" in svg
    assert "wolf • water • key" in svg
    assert "door" not in svg


def test_defaults_for_blank_title_and_subtitle() -> None:
    svg = render_svg(FallbackCard(title="  ", subtitle=""))
    assert "My Dream" in svg
    assert "A Beautiful Memory" in svg


def test_text_is_xml_escaped() -> None:
    svg = render_svg(FallbackCard(title="<script>&</script>", keywords=["a<b"]))
    assert "<script>" not in svg
    assert "&lt;script&gt;&amp;&lt;/script&gt;" in svg
    assert "a&lt;b" in svg


def test_theme_changes_palette() -> None:
    minimal = render_svg(FallbackCard(theme="Minimal"))
    colorful = render_svg(FallbackCard(theme="colorful"))
    assert minimal != colorful
    assert CARD_THEMES[1].primary_color in colorful


def test_unknown_theme_uses_first() -> None:
    assert resolve_theme("Baroque") is CARD_THEMES[0]
    assert resolve_theme(None) is CARD_THEMES[0]
