"""
Error taxonomy for poster assembly.

Every failure carries the pipeline stage it came from so callers can tell
bad input apart from a broken rendering setup or an unwritable destination.
"""

from typing import Optional, Dict, Any


class PosterError(Exception):
    """Base exception for poster assembly failures."""

    def __init__(
        self,
        message: str,
        stage: str = "unknown",
        code: str = "POSTER_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.stage = stage
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to standard error format"""
        return {
            "code": self.code,
            "stage": self.stage,
            "message": self.args[0] if self.args else "",
            "details": self.details
        }


class InputValidationError(PosterError):
    """Raised when a required person field or input path is missing"""
    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(
            message or f"Missing required field: {field}",
            stage="validation",
            code="INPUT_VALIDATION_ERROR",
            details={"field": field}
        )
        self.field = field


class DecodeError(PosterError):
    """Raised when template, photo or logo bytes are not a decodable image"""
    def __init__(self, asset: str, reason: str = ""):
        message = f"Could not decode {asset} image"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            stage=f"{asset}_decode",
            code="DECODE_ERROR",
            details={"asset": asset}
        )
        self.asset = asset


class FontResourceError(PosterError):
    """Raised when a configured font file or variant cannot be loaded"""
    def __init__(self, resource: str, reason: str = ""):
        message = f"Font resource unavailable: {resource}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message,
            stage="font",
            code="FONT_RESOURCE_ERROR",
            details={"resource": resource}
        )
        self.resource = resource


class RenderError(PosterError):
    """Raised when the text layer cannot be produced by the render backend"""
    def __init__(self, backend: str, reason: str = ""):
        super().__init__(
            f"Footer text rendering failed with {backend} backend: {reason}",
            stage="text_render",
            code="RENDER_ERROR",
            details={"backend": backend}
        )
        self.backend = backend


class EncodeOrWriteError(PosterError):
    """Raised when the final image cannot be encoded or written"""
    def __init__(self, path: Optional[str], reason: str = ""):
        target = path or "<memory>"
        super().__init__(
            f"Could not encode or write poster to {target}: {reason}",
            stage="encode_write",
            code="ENCODE_WRITE_ERROR",
            details={"path": path}
        )
        self.path = path
