"""
Exceptions raised by the bit-packed storage and gene pool operators.

Each error subclasses the builtin it refines so callers that only care about
``IndexError`` / ``ValueError`` keep working.
"""


class BitIndexError(IndexError):
    """A bit index fell outside ``[0, size)``."""

    def __init__(self, index: int, size: int):
        super().__init__(f"Bit index {index} out of range for {size}-bit vector")
        self.index = index
        self.size = size


class InvalidRangeError(ValueError):
    """A multi-bit range crosses a word boundary or runs past the vector end."""


class SizeMismatchError(ValueError):
    """Two genomes (or bit vectors) of different length were combined."""


class FieldOverflowError(ValueError):
    """An input value does not fit the bit width of its field."""
