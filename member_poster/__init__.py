# Member Poster Module
# Template on top, branded footer band (photo, text, divider, logo) below

from .config import PosterSettings
from .errors import (
    PosterError,
    InputValidationError,
    DecodeError,
    FontResourceError,
    RenderError,
    EncodeOrWriteError,
)
from .fonts import FontSet
from .generator import PosterAssembler, BatchResult
from .layout import Geometry, LayoutEngine, plan_geometry
from .mask import circular_crop, save_circular_image
from .models import PersonInfo, PosterRequest, Designation, Team, resolve_display_role
from .renderer import FooterRenderer, DirectDrawBackend, MarkupBackend, RenderedLayer
from .text_fit import FittedText, fit_text, normalize_designation

__all__ = [
    "PosterSettings",
    "PosterError",
    "InputValidationError",
    "DecodeError",
    "FontResourceError",
    "RenderError",
    "EncodeOrWriteError",
    "FontSet",
    "PosterAssembler",
    "BatchResult",
    "Geometry",
    "LayoutEngine",
    "plan_geometry",
    "circular_crop",
    "save_circular_image",
    "PersonInfo",
    "PosterRequest",
    "Designation",
    "Team",
    "resolve_display_role",
    "FooterRenderer",
    "DirectDrawBackend",
    "MarkupBackend",
    "RenderedLayer",
    "FittedText",
    "fit_text",
    "normalize_designation",
]
