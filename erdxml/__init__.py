"""
erdxml - ER diagram XML interchange (standard and legacy dialects)
"""
from .errors import InterchangeError, MalformedDocument, MissingRequiredReference, UnserializableText
from .io.dispatcher import DiagramFormat, detect_format, parse, serialize
from .io.legacy_codec import serialize_legacy
from .io.standard_codec import serialize_standard

__version__ = "0.1.0"

__all__ = [
    "DiagramFormat",
    "InterchangeError",
    "MalformedDocument",
    "MissingRequiredReference",
    "UnserializableText",
    "detect_format",
    "parse",
    "serialize",
    "serialize_legacy",
    "serialize_standard",
]
