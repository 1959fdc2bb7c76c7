"""
Poster settings.

Read once from the environment (``POSTER_*``) or a ``.env`` file.
"""

from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DEJAVU_DIR = "/usr/share/fonts/truetype/dejavu"


class PosterSettings(BaseSettings):
    working_width: int = 800
    brand_name: str = "WealthPlus"
    tagline: str = "✔ Investments ✔ Insurance ✔ Properties"

    bold_font_path: str = f"{DEJAVU_DIR}/DejaVuSans-Bold.ttf"
    italic_font_path: str = f"{DEJAVU_DIR}/DejaVuSans-BoldOblique.ttf"
    # Tried in order for glyphs the text fonts lack (checkmarks, emoji)
    symbol_font_paths: List[str] = [
        f"{DEJAVU_DIR}/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/noto/NotoSansSymbols2-Regular.ttf",
    ]

    # "markup" finds fonts by family name through fontconfig, not by the paths above
    render_backend: Literal["draw", "markup"] = "draw"
    jpeg_quality: int = 95

    ink_color: str = "#292D6C"
    footer_background: str = "#F0F7FF"
    divider_color: str = "#1B75BB"
    canvas_background: str = "#FFFFFF"

    model_config = SettingsConfigDict(env_prefix="POSTER_", env_file=".env", extra="ignore")
