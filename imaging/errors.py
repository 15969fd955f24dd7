class ImagingError(RuntimeError):
    """Base class for failures while building a print sheet or print page."""


class CompositionError(ImagingError):
    """Raised when a composition request itself is invalid or cannot be saved."""


class TemplateUnavailable(ImagingError):
    """Raised when none of the template candidates can be decoded."""


class ImageProcessingFailed(ImagingError):
    """Raised when one source photo cannot be decoded, cropped or resized."""

    def __init__(self, index: int, path, reason: str) -> None:
        super().__init__(f"Failed to process image {index + 1} ({path}): {reason}")
        self.index = index
        self.path = path


class PagePreparationError(ImagingError):
    """Raised when a sheet cannot be turned into a printable page."""
