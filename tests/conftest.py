import os
import struct
import zlib
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

from member_poster import FontSet, PersonInfo, PosterSettings

FONT_DIRS = [
    "/usr/share/fonts/truetype/dejavu",
    "/usr/share/fonts/dejavu",
    "/usr/share/fonts/TTF",
    "/Library/Fonts",
]


def _find_font(*names):
    for directory in FONT_DIRS:
        for name in names:
            path = os.path.join(directory, name)
            if os.path.isfile(path):
                return path
    return None


@pytest.fixture(scope="session")
def font_paths():
    bold = _find_font("DejaVuSans-Bold.ttf")
    regular = _find_font("DejaVuSans.ttf")
    if not bold or not regular:
        pytest.skip("DejaVu fonts not installed")
    italic = _find_font("DejaVuSans-BoldOblique.ttf") or bold
    return {"bold": bold, "italic": italic, "symbols": [regular]}


@pytest.fixture(scope="session")
def fonts(font_paths):
    return FontSet.load(font_paths["bold"], font_paths["italic"], font_paths["symbols"])


@pytest.fixture
def settings(font_paths):
    return PosterSettings(
        bold_font_path=font_paths["bold"],
        italic_font_path=font_paths["italic"],
        symbol_font_paths=font_paths["symbols"],
    )


@pytest.fixture
def template_path(tmp_path):
    image = Image.new("RGB", (1000, 500), "#3498DB")
    ImageDraw.Draw(image).rectangle([100, 100, 400, 300], fill="#F39C12")
    path = tmp_path / "template.jpg"
    image.save(path)
    return path


@pytest.fixture
def photo_path(tmp_path):
    image = Image.new("RGB", (300, 300), "#2ECC71")
    ImageDraw.Draw(image).ellipse([75, 75, 225, 225], fill="#9B59B6")
    path = tmp_path / "photo.png"
    image.save(path)
    return path


@pytest.fixture
def logo_path(tmp_path):
    image = Image.new("RGBA", (200, 100), (0, 0, 0, 0))
    ImageDraw.Draw(image).rectangle([20, 20, 180, 80], fill=(27, 117, 187, 255))
    path = tmp_path / "logo.png"
    image.save(path)
    return path


@pytest.fixture
def person(photo_path):
    return PersonInfo(
        name="Priya Sharma",
        designation="Wealth Manager",
        phone="9876543210",
        photo=str(photo_path),
    )


@pytest.fixture
def output_dir(tmp_path) -> Path:
    directory = tmp_path / "output"
    directory.mkdir()
    return directory


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))


@pytest.fixture
def oversized_image_path(tmp_path):
    """PNG header declaring 20000x20000 pixels, past Pillow's decompression bomb limit."""
    header = struct.pack(">IIBBBBB", 20000, 20000, 8, 2, 0, 0, 0)
    data = (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", b"")
        + _png_chunk(b"IEND", b"")
    )
    path = tmp_path / "oversized.png"
    path.write_bytes(data)
    return path
