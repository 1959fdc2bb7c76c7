"""
FontSet - font resources for footer text.

Font files are read and validated once. The resulting set is immutable and
shared by every assembly call; sized fonts are created per call from the
cached bytes.

A glyph missing from the text font is looked up along the symbol fallback
chain using each font's character map (via fontTools).
"""

import io
import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, List, Optional, Sequence, Tuple

from fontTools.ttLib import TTFont, TTLibError
from PIL import ImageFont

from .config import PosterSettings
from .errors import FontResourceError

logger = logging.getLogger(__name__)

VARIATION_SELECTORS = {"\ufe0e", "\ufe0f"}


def strip_variation_selectors(text: str) -> str:
    return "".join(ch for ch in text if ch not in VARIATION_SELECTORS)


@dataclass(frozen=True)
class FontSource:
    """One loaded font file."""
    path: str
    data: bytes
    family: str
    codepoints: FrozenSet[int]

    def covers(self, char: str) -> bool:
        return ord(char) in self.codepoints

    def sized(self, size: int) -> ImageFont.FreeTypeFont:
        return ImageFont.truetype(io.BytesIO(self.data), size)

    @classmethod
    def load(cls, path: str, resource: str) -> "FontSource":
        """
        Read and validate a font file.

        Raises:
            FontResourceError: file missing, unreadable or not a usable font
        """
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise FontResourceError(f"{resource} ({path})", str(e)) from e

        try:
            tt = TTFont(io.BytesIO(data), fontNumber=0, lazy=True)
            cmap = tt.getBestCmap() or {}
            family = tt["name"].getDebugName(1) or Path(path).stem
            tt.close()
        except (TTLibError, KeyError, AssertionError, struct.error) as e:
            raise FontResourceError(f"{resource} ({path})", f"unreadable font: {e}") from e

        try:
            ImageFont.truetype(io.BytesIO(data), 12)
        except OSError as e:
            raise FontResourceError(f"{resource} ({path})", f"FreeType rejected font: {e}") from e

        return cls(path=path, data=data, family=family, codepoints=frozenset(cmap))


@dataclass(frozen=True)
class FontSet:
    """
    Bold and italic faces of the text family plus a symbol fallback chain.

    Build with ``FontSet.load`` or ``FontSet.from_settings`` once at startup
    and pass the instance to the renderer.
    """
    bold: FontSource
    italic: FontSource
    symbols: Tuple[FontSource, ...] = ()

    @classmethod
    def load(
        cls,
        bold_path: str,
        italic_path: str,
        symbol_paths: Sequence[str] = (),
        required_text: str = ""
    ) -> "FontSet":
        """
        Load all fonts and check ``required_text`` can be drawn.

        Symbol fonts that cannot be loaded are skipped with a warning; the
        set is rejected only if some required glyph ends up uncovered.

        Raises:
            FontResourceError: text font missing or required glyph uncovered
        """
        bold = FontSource.load(bold_path, "bold font")
        italic = FontSource.load(italic_path, "italic font")

        symbols: List[FontSource] = []
        for path in symbol_paths:
            try:
                symbols.append(FontSource.load(path, "symbol font"))
            except FontResourceError as e:
                logger.warning(f"Skipping symbol font: {e}")

        font_set = cls(bold=bold, italic=italic, symbols=tuple(symbols))

        missing = font_set.uncovered(required_text)
        if missing:
            names = ", ".join(f"U+{ord(ch):04X}" for ch in missing)
            raise FontResourceError(
                "symbol fallback chain",
                f"no configured font covers {names}; add a font to symbol_font_paths"
            )

        logger.info(
            f"Loaded fonts: bold={bold.family}, italic={italic.family}, "
            f"symbols={[s.family for s in symbols]}"
        )
        return font_set

    @classmethod
    def from_settings(cls, settings: Optional[PosterSettings] = None) -> "FontSet":
        settings = settings or PosterSettings()
        return cls.load(
            settings.bold_font_path,
            settings.italic_font_path,
            settings.symbol_font_paths,
            required_text=settings.tagline,
        )

    def chain(self, primary: FontSource) -> Tuple[FontSource, ...]:
        return (primary,) + self.symbols

    def font_for(self, char: str, primary: FontSource) -> Optional[FontSource]:
        for source in self.chain(primary):
            if source.covers(char):
                return source
        return None

    def uncovered(self, text: str, primary: Optional[FontSource] = None) -> List[str]:
        """Characters of ``text`` that no font in the chain can draw."""
        primary = primary or self.bold
        missing = []
        for ch in strip_variation_selectors(text):
            if ch.isspace() or ch in missing:
                continue
            if self.font_for(ch, primary) is None:
                missing.append(ch)
        return missing

    def segments(self, text: str, primary: FontSource) -> List[Tuple[FontSource, str]]:
        """
        Split ``text`` into runs that share a font.

        Whitespace stays with the current run. Characters no font covers are
        drawn with ``primary``.
        """
        runs: List[Tuple[FontSource, str]] = []
        for ch in strip_variation_selectors(text):
            if ch.isspace() and runs:
                source = runs[-1][0]
            else:
                source = self.font_for(ch, primary)
                if source is None:
                    logger.warning(f"No configured font covers U+{ord(ch):04X}; using {primary.family}")
                    source = primary
            if runs and runs[-1][0] is source:
                runs[-1] = (source, runs[-1][1] + ch)
            else:
                runs.append((source, ch))
        return runs

    def families(self, primary: FontSource) -> List[str]:
        """Family names of the fallback chain, for markup font lists."""
        names: List[str] = []
        for source in self.chain(primary):
            if source.family not in names:
                names.append(source.family)
        return names
