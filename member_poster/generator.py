"""
PosterAssembler - Main orchestrator for member poster generation.

Combines:
- LayoutEngine: footer geometry from the template width
- Text fitting: font size and the four footer lines
- FooterRenderer: transparent text layer
- Circular mask: round profile photo

Workflow:
1. Validate the person record
2. Resize the template to the working width
3. Plan geometry, fit and render the footer text
4. Mask the photo, flatten the logo, place the divider
5. Composite the footer band under the template and encode as JPEG
"""

import asyncio
import io
import logging
import math
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from PIL import Image, ImageDraw, ImageOps

from .config import PosterSettings
from .errors import EncodeOrWriteError, InputValidationError, PosterError
from .fonts import FontSet
from .layout import Geometry, LayoutEngine
from .mask import circular_crop, open_image
from .models import ImageSource, PersonInfo, PosterRequest, resolve_display_role
from .renderer import FooterRenderer, RenderBackend, create_backend
from .text_fit import fit_text

logger = logging.getLogger(__name__)

# Process umask, read once; written posters get the same mode as a plain open()
_UMASK = os.umask(0)
os.umask(_UMASK)


@dataclass
class BatchResult:
    """Outcome of one poster in a batch."""
    request: PosterRequest
    output_path: Optional[Path] = None
    error: Optional[PosterError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def flatten(image: Image.Image, background: str) -> Image.Image:
    """Composite any transparency onto a solid background, returning RGB."""
    rgba = image.convert("RGBA")
    flat = Image.new("RGB", rgba.size, background)
    flat.paste(rgba, mask=rgba.getchannel("A"))
    return flat


class PosterAssembler:
    """
    Builds member posters: template on top, branded footer band below.

    Holds only read-only configuration and fonts; every call owns its own
    intermediate images, so one assembler may be shared across threads.
    """

    def __init__(
        self,
        fonts: FontSet,
        settings: Optional[PosterSettings] = None,
        backend: Optional[RenderBackend] = None
    ):
        """
        Initialize assembler.

        Args:
            fonts: Loaded FontSet shared by all calls
            settings: Poster settings. If None, reads from environment.
            backend: Text render backend. If None, chosen by settings.
        """
        self.settings = settings or PosterSettings()
        self.fonts = fonts
        self.layout_engine = LayoutEngine()
        self.renderer = FooterRenderer(
            fonts,
            backend or create_backend(self.settings.render_backend),
            ink_color=self.settings.ink_color,
        )

    @classmethod
    def from_settings(cls, settings: Optional[PosterSettings] = None) -> "PosterAssembler":
        """Load fonts from settings; raises FontResourceError if unavailable."""
        settings = settings or PosterSettings()
        return cls(FontSet.from_settings(settings), settings)

    def validate(self, person: PersonInfo) -> None:
        """Refuse a person record lacking name, photo or a role."""
        if not (person.name or "").strip():
            raise InputValidationError("name")
        if not person.photo:
            raise InputValidationError("photo")
        if not (person.designation or "").strip() and not (person.team_name or "").strip():
            raise InputValidationError("designation")

    def resize_template(self, template: ImageSource) -> Image.Image:
        """Scale the template to the working width, keeping aspect ratio."""
        image = open_image(template, "template")
        width = self.settings.working_width
        height = max(1, math.floor(image.height * width / image.width + 0.5))
        resized = image.convert("RGBA").resize((width, height), Image.Resampling.LANCZOS)
        logger.info(f"Template resized {image.width}x{image.height} -> {width}x{height}")
        return flatten(resized, self.settings.canvas_background)

    def prepare_logo(self, logo: ImageSource, size: int) -> Image.Image:
        """Fit the logo into a ``size`` square on the footer background."""
        image = open_image(logo, "logo").convert("RGBA")
        image = ImageOps.contain(image, (size, size), Image.Resampling.LANCZOS)
        square = Image.new("RGBA", (size, size), self.settings.footer_background)
        square.alpha_composite(image, ((size - image.width) // 2, (size - image.height) // 2))
        return flatten(square, self.settings.footer_background)

    def compose(self, template: ImageSource, person: PersonInfo, logo: ImageSource) -> Image.Image:
        """
        Compose the full poster in memory.

        Raises:
            InputValidationError: missing field or input path
            DecodeError: template, photo or logo not decodable
            RenderError: footer text could not be rendered
        """
        self.validate(person)
        logger.info(f"Assembling poster for {person.name}")

        template_image = self.resize_template(template)
        geometry = self.layout_engine.plan(template_image.width)

        role = resolve_display_role(person)
        fitted = fit_text(
            person.name,
            role,
            person.phone,
            target_width=geometry.text_width,
            base_font_size=geometry.font_size_base,
            tagline=self.settings.tagline,
            brand=self.settings.brand_name,
        )
        text_layer = self.renderer.render(fitted, geometry.text_width, geometry.footer_height)

        photo = circular_crop(person.photo, geometry.photo_size, asset="photo")
        logo_image = self.prepare_logo(logo, geometry.logo_size)

        geometry = geometry.with_measured_text(text_layer.content_width)
        logger.info(
            f"Footer {geometry.template_width}x{geometry.footer_height}: font {fitted.font_size_px}px, "
            f"divider at {geometry.line_x}, logo at {geometry.logo_x}"
        )

        band = self._footer_band(geometry, photo, text_layer.image, logo_image)

        canvas = Image.new(
            "RGB",
            (geometry.template_width, template_image.height + geometry.footer_height),
            self.settings.canvas_background,
        )
        canvas.paste(template_image, (0, 0))
        canvas.paste(band, (0, template_image.height))
        return canvas

    def _footer_band(
        self,
        geometry: Geometry,
        photo: Image.Image,
        text_layer: Image.Image,
        logo: Image.Image
    ) -> Image.Image:
        band = Image.new(
            "RGB",
            (geometry.template_width, geometry.footer_height),
            self.settings.footer_background,
        )
        band.paste(photo, (geometry.photo_left, geometry.centered_top(photo.height)), photo)
        band.paste(text_layer, (geometry.text_left, geometry.centered_top(text_layer.height)), text_layer)

        top = geometry.centered_top(geometry.logo_size)
        ImageDraw.Draw(band).rectangle(
            [
                (geometry.line_x, top),
                (geometry.line_x + geometry.line_width - 1, top + geometry.logo_size - 1),
            ],
            fill=self.settings.divider_color,
        )
        band.paste(logo, (geometry.logo_x, top))
        return band

    def encode(self, poster: Image.Image) -> bytes:
        buffer = io.BytesIO()
        try:
            poster.save(buffer, format="JPEG", quality=self.settings.jpeg_quality)
        except (OSError, ValueError) as e:
            logger.error(f"JPEG encode failed: {e}")
            raise EncodeOrWriteError(None, str(e)) from e
        return buffer.getvalue()

    def assemble(self, template: ImageSource, person: PersonInfo, logo: ImageSource) -> bytes:
        """Build the poster and return it as JPEG bytes."""
        return self.encode(self.compose(template, person, logo))

    def assemble_to_file(
        self,
        template: ImageSource,
        person: PersonInfo,
        logo: ImageSource,
        output_path: Union[str, Path, None]
    ) -> Path:
        """
        Build the poster and write it to ``output_path``.

        The file appears only once fully written; on failure nothing is left
        at ``output_path``.
        """
        if not output_path:
            raise InputValidationError("output_path")
        output_path = Path(output_path)

        data = self.assemble(template, person, logo)
        write_atomic(output_path, data)
        logger.info(f"Poster written to {output_path} ({len(data)} bytes)")
        return output_path

    async def assemble_batch(
        self,
        requests: Sequence[PosterRequest],
        max_concurrency: int = 4
    ) -> List[BatchResult]:
        """
        Write posters for many requests, at most ``max_concurrency`` at a time.

        A failed request is reported in its result and does not stop the
        others. Results keep the order of ``requests``.
        """
        semaphore = asyncio.Semaphore(max_concurrency)

        async def run(request: PosterRequest) -> BatchResult:
            async with semaphore:
                try:
                    path = await asyncio.to_thread(
                        self.assemble_to_file,
                        request.template,
                        request.person,
                        request.logo,
                        request.output_path,
                    )
                except PosterError as e:
                    logger.error(f"Poster for {request.person.name or '<unnamed>'} failed: {e}")
                    return BatchResult(request=request, error=e)
                except Exception as e:
                    logger.exception(f"Poster for {request.person.name or '<unnamed>'} failed unexpectedly")
                    error = PosterError(
                        str(e) or type(e).__name__,
                        stage="unknown",
                        code="UNEXPECTED_ERROR",
                        details={"type": type(e).__name__},
                    )
                    return BatchResult(request=request, error=error)
                return BatchResult(request=request, output_path=path)

        results = await asyncio.gather(*(run(r) for r in requests))
        succeeded = sum(1 for r in results if r.ok)
        logger.info(f"Batch complete: {succeeded}/{len(results)} posters written")
        return list(results)


def write_atomic(path: Path, data: bytes) -> None:
    """Write via a temporary file in the same directory, then rename."""
    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(tmp_name, 0o666 & ~_UMASK)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        logger.error(f"Failed to write poster to {path}: {e}")
        raise EncodeOrWriteError(str(path), str(e)) from e
