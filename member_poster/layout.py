"""
LayoutEngine - Footer geometry for member posters.

Handles:
1. Photo, text block and logo sizing from the template width
2. Reserving room on the right for the divider and logo
3. Footer band height for the tallest element
4. Tightening divider/logo placement to the measured text width
"""

import math
from dataclasses import dataclass, replace

PHOTO_RATIO = 0.18
FONT_RATIO = 0.022
LOGO_RATIO = 0.15

PHOTO_LEFT = 40
PHOTO_TEXT_GAP = 20
LINE_WIDTH = 4
LINE_GAP = 20
RIGHT_MARGIN = 24
MIN_TEXT_WIDTH = 120
FOOTER_PADDING = 18
# Line spacing used when sizing the band, tighter than the rendered spacing
BAND_LINE_RATIO = 1.18
TEXT_LINES = 4

MEASURED_TEXT_GAP = 10
LINE_OFFSET = 8
LOGO_GAP = 16


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class Geometry:
    """Pixel plan for one poster footer."""
    template_width: int
    photo_size: int
    font_size_base: int
    logo_size: int
    photo_left: int
    text_left: int
    text_width: int
    footer_height: int
    line_width: int
    line_x: int
    logo_x: int

    @property
    def max_logo_x(self) -> int:
        return self.template_width - self.logo_size - RIGHT_MARGIN

    def centered_top(self, element_height: int) -> int:
        """Top offset that vertically centers an element in the footer band."""
        return (self.footer_height - element_height) // 2

    def with_measured_text(self, measured_width: int) -> "Geometry":
        """
        Second placement pass.

        The divider follows the rendered text rather than the reserved text
        width, and the logo is clamped inside the right margin.
        """
        right_section_start = self.text_left + measured_width + MEASURED_TEXT_GAP
        line_x = min(
            self.text_left + self.text_width + LINE_OFFSET,
            right_section_start + LINE_OFFSET,
        )
        logo_x = min(line_x + self.line_width + LOGO_GAP, self.max_logo_x)
        return replace(self, line_x=line_x, logo_x=logo_x)


class LayoutEngine:
    """
    Calculates footer layouts.

    Sizes scale with the template width; margins and gaps are fixed pixels.
    """

    def plan(self, template_width: int) -> Geometry:
        """
        Calculate the footer plan for a resized template.

        Args:
            template_width: Width of the template after resizing

        Returns:
            Geometry with divider/logo placed against the reserved text width
        """
        width = template_width
        photo_size = math.floor(width * PHOTO_RATIO)
        font_size = _round_half_up(width * FONT_RATIO)
        logo_size = math.floor(width * LOGO_RATIO)

        text_left = PHOTO_LEFT + photo_size + PHOTO_TEXT_GAP
        reserved_right = LINE_GAP + LINE_WIDTH + logo_size + RIGHT_MARGIN

        text_width = max(math.floor(width * 0.38), width - text_left - reserved_right)
        if text_width < MIN_TEXT_WIDTH:
            text_width = max(MIN_TEXT_WIDTH, math.floor(width * 0.35))

        line_height = _round_half_up(font_size * BAND_LINE_RATIO)
        required_text_height = line_height * TEXT_LINES
        footer_height = max(photo_size, required_text_height, logo_size) + FOOTER_PADDING

        geometry = Geometry(
            template_width=width,
            photo_size=photo_size,
            font_size_base=font_size,
            logo_size=logo_size,
            photo_left=PHOTO_LEFT,
            text_left=text_left,
            text_width=text_width,
            footer_height=footer_height,
            line_width=LINE_WIDTH,
            line_x=0,
            logo_x=0,
        )
        return geometry.with_measured_text(text_width)


def plan_geometry(template_width: int) -> Geometry:
    return LayoutEngine().plan(template_width)
