from .dispatcher import DiagramFormat, detect_format, parse, serialize
from .legacy_codec import LegacyCodec, LegacyIdMap, infer_relationship_type, parse_legacy, serialize_legacy
from .standard_codec import StandardCodec, parse_standard, serialize_standard

__all__ = [
    "DiagramFormat",
    "LegacyCodec",
    "LegacyIdMap",
    "StandardCodec",
    "detect_format",
    "infer_relationship_type",
    "parse",
    "parse_legacy",
    "parse_standard",
    "serialize",
    "serialize_legacy",
    "serialize_standard",
]
