"""
Custom Exceptions Module

Exceptions raised by the extraction engine and its outer layers.

Exception Hierarchy:
    ExtractorError (base)
    ├── UnknownFormatError     forced format id not registered
    ├── ConfigError            invalid engine configuration
    └── TextSourceError        document text could not be read
        └── EmptyDocumentError no usable text layer

A field that cannot be parsed is never an error: extractors leave it as
None. Classification in automatic mode never fails.
"""

from pathlib import Path
from typing import Iterable, Union


class ExtractorError(Exception):
    """
    Base exception for all extraction errors.

    Attributes:
        message: Human-readable error message.
        details: Dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class UnknownFormatError(ExtractorError):
    """
    Raised when a forced format id is not in the dispatch set.

    Example:
        >>> raise UnknownFormatError("factura_x", ["sii_clasico", "factura_sii"])
    """

    def __init__(self, format_id: str, available: Iterable[str] = ()):
        self.format_id = format_id
        self.available = list(available)
        message = f"Format not found: '{format_id}'"
        super().__init__(message, {"format_id": format_id, "available": self.available})


class ConfigError(ExtractorError):
    """Raised when the engine configuration file is invalid."""

    def __init__(self, path: Union[str, Path, None], reason: str):
        self.path = path
        self.reason = reason
        message = f"Invalid configuration: {reason}"
        super().__init__(message, {"path": str(path) if path else None})


class TextSourceError(ExtractorError):
    """Raised when text cannot be obtained from a document."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = path
        self.reason = reason
        message = f"Cannot read document text: {reason}"
        super().__init__(message, {"path": str(path)})


class EmptyDocumentError(TextSourceError):
    """
    Raised when a document yields (almost) no text.

    Usually a scanned PDF without a text layer.
    """

    def __init__(self, path: Union[str, Path], length: int):
        self.length = length
        super().__init__(path, f"only {length} characters of text, probably a scanned PDF")
        self.details["length"] = length
