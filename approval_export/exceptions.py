"""
Custom exceptions for the approval export engine.
"""

from typing import List, Optional


class ExportError(Exception):
    """Base exception for all export errors."""
    pass


class UnsupportedFormatError(ExportError):
    """Raised when an export format is not registered."""

    def __init__(self, format: str, supported_formats: List[str]):
        self.format = format
        self.supported_formats = list(supported_formats)
        super().__init__(
            f"Unsupported format: {format}. "
            f"Supported formats: {', '.join(self.supported_formats)}"
        )


class MissingTemplateError(ExportError):
    """Raised when a category, sheet or mode has no template."""

    def __init__(self, category: str, kind: str = "template for category", available: Optional[List[str]] = None):
        self.category = category
        self.available = list(available or [])
        message = f"No {kind}: {category}"
        if self.available:
            message += f". Available: {', '.join(self.available)}"
        super().__init__(message)


class MissingCapabilityError(ExportError):
    """Raised when a spreadsheet or document builder is unavailable."""

    def __init__(self, capability: str, hint: Optional[str] = None):
        self.capability = capability
        message = f"{capability} export capability is not available"
        if hint:
            message += f". {hint}"
        super().__init__(message)


class DuplicateFormatError(ExportError):
    """Raised when registering a format name that already exists."""

    def __init__(self, format: str):
        self.format = format
        super().__init__(f"Format {format} already exists")
