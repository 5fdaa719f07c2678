from .diagram import (
    ArrowShape,
    ArrowType,
    Attribute,
    Cardinality,
    Connection,
    ConnectionPoint,
    ConnectionStyle,
    Diagram,
    Entity,
    EntityAttribute,
    Generalization,
    LineShape,
    Node,
    Participation,
    Position,
    Relationship,
    Size,
    points_origin,
)

__all__ = [
    "ArrowShape",
    "ArrowType",
    "Attribute",
    "Cardinality",
    "Connection",
    "ConnectionPoint",
    "ConnectionStyle",
    "Diagram",
    "Entity",
    "EntityAttribute",
    "Generalization",
    "LineShape",
    "Node",
    "Participation",
    "Position",
    "Relationship",
    "Size",
    "points_origin",
]
