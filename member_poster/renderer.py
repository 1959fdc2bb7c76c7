"""
FooterRenderer - turns fitted footer lines into a transparent text layer.

Two interchangeable backends draw the same layout:
1. DirectDrawBackend - Pillow ImageDraw with per-glyph font fallback
2. MarkupBackend - SVG markup rasterized by CairoSVG

Line placement is computed once here; backends only draw.
"""

import io
import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from PIL import Image, ImageDraw

from .errors import FontResourceError, RenderError
from .fonts import FontSet, strip_variation_selectors
from .text_fit import TEXT_PADDING, FittedText, unescape_markup

logger = logging.getLogger(__name__)

ROLE_LINE = 1  # Second line (designation/team) is italic
BASELINE_RATIO = 0.6


@dataclass
class RenderedLayer:
    """An RGBA raster plus how wide its visible content actually is."""
    image: Image.Image
    content_width: int

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


def line_positions(fitted: FittedText, footer_height: int) -> List[float]:
    """Vertical middle of each line, the block centered in ``footer_height``."""
    line_height = fitted.line_height_px
    padding = (footer_height - fitted.block_height) / 2
    start_y = padding + line_height * BASELINE_RATIO
    return [start_y + i * line_height for i in range(len(fitted.lines))]


def measure_content_width(image: Image.Image) -> int:
    """Right edge of the non-transparent pixels, 0 for an empty layer."""
    bbox = image.getchannel("A").getbbox()
    return bbox[2] if bbox else 0


class RenderBackend(ABC):
    """Draws positioned footer lines onto a transparent canvas."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def draw(
        self,
        fitted: FittedText,
        positions: List[float],
        size: Tuple[int, int],
        fonts: FontSet,
        ink: str
    ) -> Image.Image:
        pass

    def check_fonts(self, fonts: FontSet) -> None:
        """Raise FontResourceError if this backend cannot draw with ``fonts``."""


class DirectDrawBackend(RenderBackend):
    """
    Draws with Pillow.

    Lines arrive markup-escaped and are unescaped just before drawing. Each
    line is split into runs by font so checkmarks and emoji come from the
    symbol fallback chain.
    """

    @property
    def name(self) -> str:
        return "draw"

    def draw(self, fitted, positions, size, fonts, ink):
        canvas = Image.new("RGBA", size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(canvas)
        sized: Dict[Tuple[str, int], object] = {}

        for index, (line, y) in enumerate(zip(fitted.lines, positions)):
            primary = fonts.italic if index == ROLE_LINE else fonts.bold
            x = float(TEXT_PADDING)
            for source, run in fonts.segments(unescape_markup(line), primary):
                key = (source.path, fitted.font_size_px)
                if key not in sized:
                    sized[key] = source.sized(fitted.font_size_px)
                font = sized[key]
                draw.text((x, y), run, font=font, fill=ink, anchor="lm")
                x += font.getlength(run)

        return canvas


def build_footer_svg(
    fitted: FittedText,
    positions: List[float],
    size: Tuple[int, int],
    fonts: FontSet,
    ink: str
) -> str:
    """SVG document for the footer text; lines are already escaped."""
    width, height = size
    bold_families = ", ".join(f"'{f}'" for f in fonts.families(fonts.bold))
    italic_families = ", ".join(f"'{f}'" for f in fonts.families(fonts.italic))

    text_nodes = []
    for index, (line, y) in enumerate(zip(fitted.lines, positions)):
        css_class = "footertext role" if index == ROLE_LINE else "footertext"
        text_nodes.append(
            f'<text x="{TEXT_PADDING}" y="{y:g}" class="{css_class}">'
            f"{strip_variation_selectors(line)}</text>"
        )

    body = "\n  ".join(text_nodes)
    return f"""<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">
  <style>
    .footertext {{
      font-family: {bold_families}, sans-serif;
      fill: {ink};
      font-weight: bold;
      font-size: {fitted.font_size_px}px;
      text-anchor: start;
      dominant-baseline: middle;
    }}
    .role {{
      font-family: {italic_families}, sans-serif;
      font-style: italic;
    }}
  </style>
  {body}
</svg>"""


def fontconfig_family(family: str) -> Optional[str]:
    """Family fontconfig picks for ``family``, or None when it cannot be asked."""
    fc_match = shutil.which("fc-match")
    if not fc_match:
        return None
    try:
        result = subprocess.run(
            [fc_match, "--format=%{family}", family],
            capture_output=True,
            text=True,
            timeout=10,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning(f"fc-match failed for {family!r}: {e}")
        return None
    return result.stdout


def unresolved_families(fonts: FontSet) -> List[str]:
    """Text families that fontconfig would replace with a different family."""
    missing = []
    for source in (fonts.bold, fonts.italic):
        matched = fontconfig_family(source.family)
        if matched is None:
            logger.warning(f"Cannot verify that fontconfig resolves {source.family!r}")
        elif source.family.lower() not in matched.lower() and source.family not in missing:
            missing.append(source.family)
    return missing


class MarkupBackend(RenderBackend):
    """
    Renders SVG markup with CairoSVG.

    Fonts are referenced by family name, so the FontSet files must also be
    installed where fontconfig can find them. ``check_fonts`` rejects a
    FontSet whose text families fontconfig would substitute.
    """

    def __init__(self):
        try:
            import cairosvg
        except (ImportError, OSError) as e:
            raise RenderError("markup", f"CairoSVG is unavailable: {e}") from e
        self._cairosvg = cairosvg

    @property
    def name(self) -> str:
        return "markup"

    def check_fonts(self, fonts):
        missing = unresolved_families(fonts)
        if missing:
            raise FontResourceError(
                "markup font families",
                f"fontconfig does not resolve {', '.join(missing)}; install the font files "
                "system-wide or use the draw backend"
            )

    def draw(self, fitted, positions, size, fonts, ink):
        svg = build_footer_svg(fitted, positions, size, fonts, ink)
        png_bytes = self._cairosvg.svg2png(
            bytestring=svg.encode("utf-8"),
            output_width=size[0],
            output_height=size[1],
        )
        return Image.open(io.BytesIO(png_bytes)).convert("RGBA")


BACKENDS = {
    "draw": DirectDrawBackend,
    "markup": MarkupBackend,
}


def create_backend(name: str) -> RenderBackend:
    try:
        return BACKENDS[name]()
    except KeyError:
        raise RenderError(name, f"unknown backend, expected one of {sorted(BACKENDS)}") from None


class FooterRenderer:
    """
    Renders the footer text block.

    The FontSet is injected and only read, so one renderer can serve
    concurrent assembly calls.
    """

    def __init__(
        self,
        fonts: FontSet,
        backend: Optional[RenderBackend] = None,
        ink_color: str = "#292D6C"
    ):
        self.fonts = fonts
        self.backend = backend or DirectDrawBackend()
        self.backend.check_fonts(fonts)
        self.ink_color = ink_color

    def render(self, fitted: FittedText, text_width: int, footer_height: int) -> RenderedLayer:
        """
        Draw ``fitted`` into a layer of exactly ``text_width`` x ``footer_height``.

        Raises:
            RenderError: the backend failed to produce the layer
        """
        size = (text_width, footer_height)
        positions = line_positions(fitted, footer_height)

        try:
            image = self.backend.draw(fitted, positions, size, self.fonts, self.ink_color)
        except (OSError, ValueError) as e:
            logger.error(f"Footer text render failed ({self.backend.name}): {e}")
            raise RenderError(self.backend.name, str(e)) from e

        if image.size != size:
            image = image.resize(size, Image.Resampling.LANCZOS)

        layer = RenderedLayer(image=image, content_width=measure_content_width(image))
        logger.debug(
            f"Rendered footer text {text_width}x{footer_height} at {fitted.font_size_px}px, "
            f"content width {layer.content_width}px"
        )
        return layer
