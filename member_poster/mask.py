"""
Circular cropping for profile photos and avatars.
"""

import io
import logging
from pathlib import Path
from typing import Union

from PIL import Image, ImageChops, ImageDraw, UnidentifiedImageError

from .errors import DecodeError, EncodeOrWriteError, InputValidationError
from .models import ImageSource

logger = logging.getLogger(__name__)


def open_image(source: Union[ImageSource, Image.Image], asset: str) -> Image.Image:
    """
    Decode an image from a path, raw bytes or an already-open image.

    Raises:
        InputValidationError: path does not exist or cannot be opened
        DecodeError: data is not a decodable image, or is too large to decode
    """
    if isinstance(source, Image.Image):
        return source

    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    else:
        path = Path(source)
        if not path.is_file():
            raise InputValidationError(asset, f"{asset} file not found: {path}")
        try:
            data = path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to open {asset} file {path}: {e}")
            raise InputValidationError(asset, f"{asset} file cannot be opened: {e}") from e

    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.error(f"Failed to decode {asset}: {e}")
        raise DecodeError(asset, str(e)) from e
    return image


def circle_mask(size: int) -> Image.Image:
    """L-mode mask: 255 inside the inscribed circle, 0 outside."""
    mask = Image.new("L", (size, size), 0)
    ImageDraw.Draw(mask).ellipse([0, 0, size - 1, size - 1], fill=255)
    return mask


def circular_crop(
    source: Union[ImageSource, Image.Image],
    size: int,
    asset: str = "photo"
) -> Image.Image:
    """
    Resize ``source`` to a ``size`` square and cut it to a circle.

    Everything outside the circle is fully transparent. Existing source
    transparency inside the circle is kept.
    """
    image = open_image(source, asset)
    image = image.convert("RGBA").resize((size, size), Image.Resampling.LANCZOS)

    mask = circle_mask(size)
    image.putalpha(ImageChops.multiply(image.getchannel("A"), mask))
    return image


def save_circular_image(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    size: int
) -> Path:
    """Circular-crop an image file and save it as PNG."""
    cropped = circular_crop(input_path, size)
    output_path = Path(output_path)
    try:
        cropped.save(output_path, format="PNG")
    except OSError as e:
        raise EncodeOrWriteError(str(output_path), str(e)) from e
    logger.info(f"Saved circular image {size}x{size} to {output_path}")
    return output_path
