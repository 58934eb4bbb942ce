"""
Fragment conversion engine.

Maps a fragment's type and bytes to bytes in any type reachable through the
conversion matrix.
"""

from .engine import ConversionResult, convert, convert_to_extension, resolve_target
from .matrix import CONVERSIONS, IMAGE_TYPES, check_matrix, formats_for

__all__ = [
    "CONVERSIONS",
    "IMAGE_TYPES",
    "ConversionResult",
    "check_matrix",
    "convert",
    "convert_to_extension",
    "formats_for",
    "resolve_target",
]
