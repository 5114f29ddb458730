"""Prompt and fallback-input derivation from a dream analysis."""

from __future__ import annotations

from dreamdeck.schemas.generation import DreamAnalysis, FallbackCard


def build_card_prompt(analysis: DreamAnalysis, theme: str) -> str:
    """Compose a FLUX prompt for a tarot card illustrating the dream."""
    symbols = ", ".join(analysis.symbols[:3])
    emotions = " and ".join(analysis.emotions[:2])
    archetype = analysis.archetypes[0] if analysis.archetypes else "mysterious figure"
    opening = " ".join(analysis.analysis.split()[:20])

    return (
        f"A mystical tarot card illustration featuring {archetype.lower()}, incorporating {symbols}. "
        f"The scene evokes feelings of {emotions}. {opening}. "
        f"The artwork should be in a {theme.lower()} style with intricate details, symbolic elements, "
        "and a portrait orientation suitable for a tarot card. "
        "The image should be artistic and ethereal, with rich colors and mystical atmosphere."
    )


def suggested_names(analysis: DreamAnalysis | None) -> tuple[str, str]:
    if analysis is not None and analysis.tarot_card is not None:
        return (
            analysis.tarot_card.title or "Dream Vision",
            analysis.tarot_card.subtitle or "A Journey Through the Unconscious",
        )
    return "Dream Vision", "A Journey Through the Unconscious"


def fallback_card_for(
    analysis: DreamAnalysis | None,
    theme: str,
    title: str | None = None,
    subtitle: str | None = None,
) -> FallbackCard:
    """Fallback card inputs; explicit title/subtitle win over the analysis' suggestion."""
    keywords = list(analysis.symbols[:3]) if analysis is not None else []
    if analysis is not None and analysis.tarot_card is not None:
        title = title or analysis.tarot_card.title
        subtitle = subtitle or analysis.tarot_card.subtitle
    return FallbackCard(theme=theme, title=title or "", subtitle=subtitle or "", keywords=keywords)
