"""Error types raised by the Visio to BPMN conversion pipeline."""

from __future__ import annotations


class ConversionError(Exception):
    """Raised when a diagram cannot be converted to BPMN."""


class MissingPayloadError(ConversionError):
    """Raised when the archive holds no diagram page entry."""


class MalformedInputError(ConversionError):
    """Raised when the input or its normalized markup cannot be parsed."""
