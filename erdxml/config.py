"""
Conversion configuration module

Default element sizes, legacy-dialect compatibility assumptions, and routing constants
"""
from dataclasses import dataclass
from typing import Tuple

# Standard dialect defaults (applied when an attribute is absent on parse)
ENTITY_DEFAULT_SIZE: Tuple[float, float] = (150.0, 80.0)
RELATIONSHIP_DEFAULT_SIZE: Tuple[float, float] = (120.0, 80.0)
GENERALIZATION_DEFAULT_SIZE: Tuple[float, float] = (60.0, 40.0)
DEFAULT_STROKE_WIDTH = 2.0
DEFAULT_POINTER_SIZE = 15.0

# Entity resize limits
ENTITY_MIN_WIDTH = 50.0
ENTITY_MIN_HEIGHT = 30.0

# Canvas attribute sizing heuristic: width = max(min_width, len(name) * char_width + padding)
ATTRIBUTE_MIN_WIDTH = 80.0
ATTRIBUTE_CHAR_WIDTH = 8.0
ATTRIBUTE_PADDING = 20.0
ATTRIBUTE_HEIGHT = 30.0

STANDARD_FORMAT_VERSION = "1.0"
LEGACY_SCHEMA_NAME = "Unnamed_DB_Schema_1"


@dataclass
class ConversionConfig:
    """Settings shared by the codecs, the dispatcher and the geometry helpers"""

    entity_default_size: Tuple[float, float] = ENTITY_DEFAULT_SIZE
    relationship_default_size: Tuple[float, float] = RELATIONSHIP_DEFAULT_SIZE
    generalization_default_size: Tuple[float, float] = GENERALIZATION_DEFAULT_SIZE
    default_stroke_width: float = DEFAULT_STROKE_WIDTH
    default_pointer_size: float = DEFAULT_POINTER_SIZE

    attribute_min_width: float = ATTRIBUTE_MIN_WIDTH
    attribute_char_width: float = ATTRIBUTE_CHAR_WIDTH
    attribute_padding: float = ATTRIBUTE_PADDING
    attribute_height: float = ATTRIBUTE_HEIGHT

    # The legacy application stores centers only. These are the sizes assumed when
    # converting a stored center back to a top-left corner. The application's own
    # default entity size (80x40 in its published constants) was never confirmed,
    # so the standard defaults are assumed; override for documents from that tool.
    legacy_entity_size: Tuple[float, float] = ENTITY_DEFAULT_SIZE
    legacy_relationship_size: Tuple[float, float] = RELATIONSHIP_DEFAULT_SIZE
    legacy_generalization_size: Tuple[float, float] = GENERALIZATION_DEFAULT_SIZE
    legacy_schema_name: str = LEGACY_SCHEMA_NAME

    # Placement of legacy attributes that have no stored position (right of owner)
    unplaced_attribute_gap: float = 40.0
    unplaced_attribute_top: float = 20.0
    unplaced_attribute_step: float = 30.0

    # Length of the straight lead-out added when a route must leave an edge
    # away from its target
    route_stub_length: float = 20.0

    standard_version: str = STANDARD_FORMAT_VERSION
    pretty_print: bool = True

    # Raise MissingRequiredReference instead of recording a warning
    strict_references: bool = False

    def attribute_size(self, name: str) -> Tuple[float, float]:
        """Approximate rendered size of a canvas attribute labelled ``name``"""
        width = max(self.attribute_min_width, len(name or "") * self.attribute_char_width + self.attribute_padding)
        return (width, self.attribute_height)


default_config = ConversionConfig()
