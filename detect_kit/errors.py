from __future__ import annotations


class DecodeError(ValueError):
    """
    Base class for malformed model outputs handed to the decoders.
    """


class ShapeMismatch(DecodeError):
    """Tensors have the wrong rank or disagree on the number of boxes."""


class MissingInput(DecodeError):
    """A required tensor was not provided."""
