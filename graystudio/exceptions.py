"""Custom exceptions for the file and session layers.

The pixel core never raises for expected failures (a bad GB7 file comes back
as a ``FormatError`` value). These exceptions belong to the code around it:
file loading and the editing session.
"""


class GrayStudioError(Exception):
    """Base exception for all graystudio errors."""


class ImageLoadError(GrayStudioError):
    """Raised when an image file cannot be loaded or decoded."""

    def __init__(self, message: str, path: str = "") -> None:
        """Initialize load error with the offending path.

        Args:
            message: Error message
            path: File that failed to load, if any
        """
        super().__init__(message)
        self.path = path


class LayerError(GrayStudioError):
    """Raised when a layer operation is not allowed."""
