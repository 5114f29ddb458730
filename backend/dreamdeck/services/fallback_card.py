"""Fallback tarot card: a self-contained SVG rendered when generation fails.

The output depends only on (theme, title, subtitle, keywords), so the same
inputs always produce byte-identical cards.
"""

from __future__ import annotations

from dataclasses import dataclass
from xml.sax.saxutils import escape

from dreamdeck.schemas.generation import Artifact, FallbackCard

DEFAULT_TITLE = "My Dream"
DEFAULT_SUBTITLE = "A Beautiful Memory"
MAX_KEYWORDS = 3


@dataclass(frozen=True)
class CardTheme:
    id: str
    name: str
    primary_color: str
    secondary_color: str
    accent_color: str
    font_family: str


CARD_THEMES: tuple[CardTheme, ...] = (
    CardTheme("minimal", "Minimal", "#f4efe6", "#d8cfbf", "#3d3a35", "Georgia, serif"),
    CardTheme("colorful", "Colorful", "#3b1f6b", "#c2477a", "#f6d77a", "Palatino, serif"),
)


def resolve_theme(name: str | None) -> CardTheme:
    key = (name or "").strip().lower()
    for theme in CARD_THEMES:
        if key in (theme.id, theme.name.lower()):
            return theme
    return CARD_THEMES[0]


def _shadowed_text(y: int, text: str, theme: CardTheme, size: int, *, opacity: float = 0.9,
                   weight: str | None = None, spacing: str | None = None) -> str:
    extra = ""
    if weight:
        extra += f' font-weight="{weight}"'
    if spacing:
        extra += f' letter-spacing="{spacing}"'
    body = escape(text)
    return (
        f'<text x="200" y="{y + 2}" font-family="{theme.font_family}" font-size="{size}" '
        f'fill="#000000" text-anchor="middle" opacity="0.3"{extra}>{body}</text>\n'
        f'<text x="200" y="{y}" font-family="{theme.font_family}" font-size="{size}" '
        f'fill="{theme.accent_color}" text-anchor="middle" opacity="{opacity}"{extra}>{body}</text>\n'
    )


def render_svg(card: FallbackCard) -> str:
    theme = resolve_theme(card.theme)
    title = str(card.title).strip() or DEFAULT_TITLE
    subtitle = str(card.subtitle).strip() or DEFAULT_SUBTITLE
    keywords = [str(k).strip() for k in card.keywords if str(k).strip()][:MAX_KEYWORDS]
    accent = theme.accent_color

    parts = [
        '<svg width="400" height="600" viewBox="0 0 400 600" xmlns="http://www.w3.org/2000/svg">\n',
        "<defs>\n",
        '<linearGradient id="bg" x1="0%" y1="0%" x2="100%" y2="100%">\n',
        f'<stop offset="0%" stop-color="{theme.primary_color}"/>\n',
        f'<stop offset="100%" stop-color="{theme.secondary_color}"/>\n',
        "</linearGradient>\n",
        '<linearGradient id="panel" x1="0%" y1="0%" x2="100%" y2="100%">\n',
        '<stop offset="0%" stop-color="#000000" stop-opacity="0.3"/>\n',
        '<stop offset="100%" stop-color="#000000" stop-opacity="0.1"/>\n',
        "</linearGradient>\n",
        '<pattern id="texture" patternUnits="userSpaceOnUse" width="40" height="40">\n',
        f'<rect width="40" height="40" fill="{accent}" opacity="0.08"/>\n',
        f'<circle cx="20" cy="20" r="1" fill="{theme.secondary_color}" opacity="0.2"/>\n',
        "</pattern>\n",
        "</defs>\n",
        '<rect width="400" height="600" fill="url(#bg)"/>\n',
        '<rect width="400" height="600" fill="url(#texture)"/>\n',
        f'<rect x="10" y="10" width="380" height="580" fill="none" stroke="{accent}" stroke-width="2" rx="12" opacity="0.8"/>\n',
        f'<rect x="20" y="20" width="360" height="560" fill="none" stroke="{accent}" stroke-width="1" rx="8" opacity="0.6"/>\n',
        '<rect x="30" y="40" width="340" height="90" fill="url(#panel)" rx="8"/>\n',
        _shadowed_text(73, title, theme, 26, opacity=1, weight="700"),
        _shadowed_text(103, subtitle, theme, 14),
        '<rect x="60" y="150" width="280" height="260" fill="url(#panel)" rx="12"/>\n',
    ]
    for radius, width, opacity in ((80, 2, 0.4), (60, 1, 0.6), (40, 1, 0.3)):
        parts.append(
            f'<circle cx="200" cy="280" r="{radius}" fill="none" stroke="{accent}" '
            f'stroke-width="{width}" opacity="{opacity}"/>\n'
        )
    parts.append(_shadowed_text(292, "◈", theme, 48))
    if keywords:
        parts.append(_shadowed_text(338, " • ".join(keywords), theme, 12, weight="500"))
    for cx, cy in ((80, 180), (320, 180), (80, 380), (320, 380)):
        parts.append(f'<circle cx="{cx}" cy="{cy}" r="2" fill="{accent}" opacity="0.6"/>\n')
    parts.append(_shadowed_text(545, "THE SILENT CHRONICLE", theme, 8, opacity=0.6, spacing="1px"))
    parts.append("</svg>\n")
    return "".join(parts)


def render_fallback_card(card: FallbackCard) -> Artifact:
    """Render the placeholder card as an ``image/svg+xml`` fallback Artifact."""
    return Artifact(kind="fallback", data=render_svg(card).encode("utf-8"), mime_type="image/svg+xml")
