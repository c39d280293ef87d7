"""Deterministic local icon synthesis.

When the remote image model cannot be used, a vector icon is built from a
fixed keyword table: the prompt selects an archetype (star, heart, home,
user or default circle) and a color palette by case-insensitive substring
search, first match wins.  The same prompt always yields the same SVG bytes.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from xml.sax.saxutils import escape

logger = logging.getLogger(__name__)

ICON_SIZE = 1024
CAPTION_LENGTH = 20

# Ordered: the first archetype with a matching keyword wins.
ARCHETYPE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("star", ("star", "favorite", "favourite", "rating", "award")),
    ("heart", ("heart", "love", "like", "health", "care")),
    ("home", ("home", "house", "building", "shelter")),
    ("user", ("user", "person", "profile", "account", "avatar", "people")),
)
DEFAULT_ARCHETYPE = "default"


@dataclass(frozen=True)
class Palette:
    name: str
    primary: str
    stroke: str


PALETTE_KEYWORDS: tuple[tuple[Palette, tuple[str, ...]], ...] = (
    (Palette("blue", "#3B82F6", "#1E40AF"), ("blue", "water", "ocean", "sea", "sky", "droplet")),
    (Palette("red", "#EF4444", "#B91C1C"), ("red", "fire", "heart", "love", "danger")),
    (Palette("green", "#10B981", "#047857"), ("green", "nature", "leaf", "tree", "eco", "plant")),
    (Palette("yellow", "#F59E0B", "#B45309"), ("yellow", "sun", "gold", "star", "light")),
    (Palette("purple", "#8B5CF6", "#6D28D9"), ("purple", "magic", "royal", "crypto", "nft")),
)
DEFAULT_PALETTE = Palette("default", "#6366F1", "#4338CA")


def select_archetype(prompt: str) -> str:
    """Return the icon archetype for *prompt*."""
    lowered = prompt.lower()
    for archetype, keywords in ARCHETYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return archetype
    return DEFAULT_ARCHETYPE


def select_palette(prompt: str) -> Palette:
    """Return the color palette for *prompt*."""
    lowered = prompt.lower()
    for palette, keywords in PALETTE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return palette
    return DEFAULT_PALETTE


def _star_points(cx: float, cy: float, outer: float, inner: float) -> str:
    points = []
    for i in range(10):
        radius = outer if i % 2 == 0 else inner
        angle = math.pi / 2 + i * math.pi / 5
        points.append(f"{cx + radius * math.cos(angle):.1f},{cy - radius * math.sin(angle):.1f}")
    return " ".join(points)


def _shape(archetype: str, palette: Palette) -> str:
    paint = f'fill="{palette.primary}" stroke="{palette.stroke}" stroke-width="8"'
    if archetype == "star":
        return f'<polygon points="{_star_points(512, 400, 230, 95)}" {paint}/>'
    if archetype == "heart":
        return (
            '<path d="M512 600 C 300 470, 260 300, 390 250 '
            'C 450 228, 500 260, 512 310 C 524 260, 574 228, 634 250 '
            f'C 764 300, 724 470, 512 600 Z" {paint}/>'
        )
    if archetype == "home":
        return (
            f'<polygon points="512,180 752,400 272,400" {paint}/>'
            f'<rect x="322" y="400" width="380" height="230" {paint}/>'
            f'<rect x="472" y="500" width="80" height="130" fill="white" stroke="{palette.stroke}" stroke-width="8"/>'
        )
    if archetype == "user":
        return (
            f'<circle cx="512" cy="300" r="110" {paint}/>'
            f'<path d="M312 630 C 312 490, 412 440, 512 440 C 612 440, 712 490, 712 630 Z" {paint}/>'
        )
    return f'<circle cx="512" cy="400" r="200" {paint}/>'


def build_fallback_svg(prompt: str) -> str:
    """Build the fallback icon SVG markup for *prompt*.

    Args:
        prompt: Prompt text; also used as the caption.

    Returns:
        Complete SVG document.
    """
    archetype = select_archetype(prompt)
    palette = select_palette(prompt)
    caption = prompt[:CAPTION_LENGTH] + ("..." if len(prompt) > CAPTION_LENGTH else "")
    return (
        f'<svg width="{ICON_SIZE}" height="{ICON_SIZE}" viewBox="0 0 {ICON_SIZE} {ICON_SIZE}" '
        'xmlns="http://www.w3.org/2000/svg" '
        f'data-archetype="{archetype}" data-palette="{palette.name}">'
        f'<rect width="{ICON_SIZE}" height="{ICON_SIZE}" fill="white"/>'
        f"{_shape(archetype, palette)}"
        '<text x="512" y="760" font-family="Arial, sans-serif" font-size="48" '
        f'text-anchor="middle" fill="#1F2937">{escape(caption)}</text>'
        '<text x="512" y="840" font-family="Arial, sans-serif" font-size="24" '
        'text-anchor="middle" fill="#6B7280">Fallback Icon</text>'
        "</svg>"
    )


def rasterize_svg(svg: str) -> bytes:
    """Render SVG markup to PNG bytes with CairoSVG.

    cairosvg is imported lazily: it needs the native cairo library, which
    many hosts lack.

    Raises:
        Exception: Whatever CairoSVG or its native dependencies raise.
    """
    import cairosvg

    return cairosvg.svg2png(
        bytestring=svg.encode("utf-8"), output_width=ICON_SIZE, output_height=ICON_SIZE
    )
