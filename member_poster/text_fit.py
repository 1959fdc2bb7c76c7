"""
Text fitting for the four footer lines.

Picks one font size for the whole block by shrinking until the longest
line's estimated width fits the target. The estimate is a fixed average
glyph width, so results do not depend on the installed fonts.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import List, Tuple

from .models import DisplayRole, Team

logger = logging.getLogger(__name__)

MIN_FONT_SIZE = 12
START_FONT_FLOOR = 18
CHAR_WIDTH_RATIO = 0.55
SHRINK_FACTOR = 0.92
LINE_HEIGHT_RATIO = 1.5
TEXT_PADDING = 2

_MARKUP_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)


@dataclass(frozen=True)
class FittedText:
    """Escaped footer lines and the size they are drawn at."""
    lines: Tuple[str, ...]
    font_size_px: int
    line_height_px: int

    @property
    def block_height(self) -> int:
        return self.line_height_px * len(self.lines)


def escape_markup(text: str) -> str:
    """Escape characters that would corrupt a markup renderer."""
    for raw, escaped in _MARKUP_ESCAPES:
        text = text.replace(raw, escaped)
    return text


def unescape_markup(text: str) -> str:
    for raw, escaped in reversed(_MARKUP_ESCAPES):
        text = text.replace(escaped, raw)
    return text


def normalize_designation(designation: str, brand: str) -> str:
    """
    Map a free-text designation to its branded display form.

    >>> normalize_designation("Senior Wealth Advisor", "WealthPlus")
    'Wealth Manager | WealthPlus'
    """
    if not (designation or "").strip():
        return f"N/A | {brand}"
    lowered = designation.lower()
    if "wealth" in lowered:
        return f"Wealth Manager | {brand}"
    if "health" in lowered:
        return f"Health Insurance Advisor | {brand}"
    collapsed = re.sub(r"\s+", " ", designation).strip()
    return f"{collapsed} | {brand}"


def format_role(role: DisplayRole, brand: str) -> str:
    if isinstance(role, Team):
        return role.label.strip()
    return normalize_designation(role.text, brand)


def estimate_width(line: str, font_size: int) -> float:
    return len(line) * font_size * CHAR_WIDTH_RATIO


def build_lines(name: str, role: DisplayRole, phone: str, tagline: str, brand: str) -> List[str]:
    """Footer lines in display order, escaped."""
    lines = [
        str(name or ""),
        format_role(role, brand),
        tagline,
        f"Phone: {phone or ''}",
    ]
    return [escape_markup(line) for line in lines]


def fit_font_size(lines: List[str], target_width: int, base_font_size: int) -> int:
    """
    Shrink from ``max(base_font_size, 18)`` by 8% steps until the longest
    line fits ``target_width`` minus padding, stopping at the 12px floor.
    """
    max_width = max(10, target_width - TEXT_PADDING * 2)
    longest = max((len(line) for line in lines), default=0)
    size = max(base_font_size, START_FONT_FLOOR)

    while size > MIN_FONT_SIZE and longest * size * CHAR_WIDTH_RATIO > max_width:
        size = max(MIN_FONT_SIZE, math.floor(size * SHRINK_FACTOR))

    if longest * size * CHAR_WIDTH_RATIO > max_width:
        logger.warning(
            f"Footer text overflows {max_width}px at minimum font size {size}px "
            f"(longest line {longest} chars)"
        )
    return size


def fit_text(
    name: str,
    role: DisplayRole,
    phone: str,
    target_width: int,
    base_font_size: int,
    tagline: str,
    brand: str,
) -> FittedText:
    """Build, escape and size the four footer lines for ``target_width``."""
    lines = build_lines(name, role, phone, tagline, brand)
    size = fit_font_size(lines, target_width, base_font_size)
    return FittedText(
        lines=tuple(lines),
        font_size_px=size,
        line_height_px=math.floor(size * LINE_HEIGHT_RATIO + 0.5),
    )
