"""
Canonical diagram model

The single in-memory representation that both XML dialects are read into and written from.
Positions are the top-left corner of an element's bounding box.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Union

from ..config import (
    ENTITY_DEFAULT_SIZE, RELATIONSHIP_DEFAULT_SIZE, GENERALIZATION_DEFAULT_SIZE,
    DEFAULT_STROKE_WIDTH, DEFAULT_POINTER_SIZE, ENTITY_MIN_WIDTH, ENTITY_MIN_HEIGHT,
)


class _WireEnum(str, Enum):
    """String enum whose value is the text stored in the XML documents"""

    @classmethod
    def parse(cls, value: Optional[str], default=None):
        """Return the member for ``value``, or ``default`` when it is missing or unknown"""
        if value is None:
            return default
        try:
            return cls(value.strip())
        except ValueError:
            return default

    def __str__(self) -> str:
        return self.value


class Cardinality(_WireEnum):
    ONE = "1"
    N = "N"
    M = "M"

    @property
    def is_many(self) -> bool:
        return self is not Cardinality.ONE


class Participation(_WireEnum):
    TOTAL = "total"
    PARTIAL = "partial"


class ConnectionPoint(_WireEnum):
    """Edge of an element a connection attaches to"""
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"
    CENTER = "center"


class ConnectionStyle(_WireEnum):
    STRAIGHT = "straight"
    CURVED = "curved"
    ORTHOGONAL = "orthogonal"


class ArrowType(_WireEnum):
    LEFT = "arrow-left"
    RIGHT = "arrow-right"


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass
class Size:
    width: float = 0.0
    height: float = 0.0


def points_origin(points: List[float]) -> Position:
    """Componentwise minimum of a flat [x1, y1, x2, y2, ...] list ((0, 0) when empty)"""
    xs = points[0::2]
    ys = points[1::2]
    return Position(min(xs) if xs else 0.0, min(ys) if ys else 0.0)


@dataclass
class EntityAttribute:
    """Attribute owned by an entity or relationship"""
    id: str
    name: str = "Attribute"
    is_key: bool = False
    is_discriminant: bool = False  # partial key of a weak entity
    is_multivalued: bool = False
    is_derived: bool = False
    is_composite: bool = False
    sub_attribute_ids: Optional[List[str]] = None


@dataclass
class Entity:
    id: str
    name: str = "Entity"
    position: Position = field(default_factory=Position)
    size: Size = field(default_factory=lambda: Size(*ENTITY_DEFAULT_SIZE))
    is_weak: bool = False
    attributes: List[EntityAttribute] = field(default_factory=list)
    rotation: Optional[float] = None
    # UI state, never persisted
    selected: bool = field(default=False, compare=False)
    warnings: List[str] = field(default_factory=list, compare=False)

    def resize(self, width: float, height: float) -> None:
        """Resize, keeping the minimum entity box"""
        self.size = Size(max(ENTITY_MIN_WIDTH, width), max(ENTITY_MIN_HEIGHT, height))


@dataclass
class Relationship:
    id: str
    name: str = "Relationship"
    position: Position = field(default_factory=Position)
    size: Size = field(default_factory=lambda: Size(*RELATIONSHIP_DEFAULT_SIZE))
    is_weak: bool = False
    entity_ids: List[str] = field(default_factory=list)
    attributes: List[EntityAttribute] = field(default_factory=list)
    cardinalities: Dict[str, Cardinality] = field(default_factory=dict)
    participations: Dict[str, Participation] = field(default_factory=dict)
    rotation: Optional[float] = None
    selected: bool = field(default=False, compare=False)
    warnings: List[str] = field(default_factory=list, compare=False)

    def cardinality_of(self, entity_id: str) -> Cardinality:
        return self.cardinalities.get(entity_id, Cardinality.ONE)

    def participation_of(self, entity_id: str) -> Participation:
        return self.participations.get(entity_id, Participation.PARTIAL)

    def dangling_keys(self) -> List[str]:
        """Cardinality/participation keys that are not participants"""
        members = set(self.entity_ids)
        keys = list(self.cardinalities) + [k for k in self.participations if k not in self.cardinalities]
        return [k for k in keys if k not in members]


@dataclass
class Attribute:
    """Standalone canvas attribute, attached to exactly one entity or relationship"""
    id: str
    name: str = "Attribute"
    position: Position = field(default_factory=Position)
    is_key: bool = False
    is_discriminant: bool = False
    is_multivalued: bool = False
    is_derived: bool = False
    is_composite: bool = False
    entity_id: Optional[str] = None
    relationship_id: Optional[str] = None
    parent_attribute_id: Optional[str] = None
    sub_attribute_ids: Optional[List[str]] = None
    selected: bool = field(default=False, compare=False)
    warnings: List[str] = field(default_factory=list, compare=False)

    @property
    def owner_id(self) -> Optional[str]:
        return self.entity_id or self.relationship_id


@dataclass
class Connection:
    id: str
    from_id: str
    to_id: str
    from_point: ConnectionPoint = ConnectionPoint.RIGHT
    to_point: ConnectionPoint = ConnectionPoint.LEFT
    style: ConnectionStyle = ConnectionStyle.STRAIGHT
    cardinality: Cardinality = Cardinality.ONE  # at the 'to' end
    participation: Participation = Participation.PARTIAL
    waypoints: List[Position] = field(default_factory=list)
    points: List[float] = field(default_factory=list)  # last computed rendering cache
    label_position: Optional[Position] = None
    role: Optional[str] = None
    selected: bool = field(default=False, compare=False)

    @property
    def position(self) -> Position:
        return points_origin(self.points)


@dataclass
class Generalization:
    """ISA triangle: one supertype, ordered subtypes"""
    id: str
    parent_id: str
    child_ids: List[str] = field(default_factory=list)
    position: Position = field(default_factory=Position)
    size: Size = field(default_factory=lambda: Size(*GENERALIZATION_DEFAULT_SIZE))
    is_total: bool = False
    selected: bool = field(default=False, compare=False)


@dataclass
class LineShape:
    id: str
    points: List[float] = field(default_factory=list)
    stroke_width: float = DEFAULT_STROKE_WIDTH
    selected: bool = field(default=False, compare=False)

    @property
    def position(self) -> Position:
        return points_origin(self.points)


@dataclass
class ArrowShape:
    id: str
    type: ArrowType = ArrowType.RIGHT
    points: List[float] = field(default_factory=list)
    stroke_width: float = DEFAULT_STROKE_WIDTH
    pointer_length: float = DEFAULT_POINTER_SIZE
    pointer_width: float = DEFAULT_POINTER_SIZE
    selected: bool = field(default=False, compare=False)

    @property
    def position(self) -> Position:
        return points_origin(self.points)


Node = Union[Entity, Relationship]


@dataclass
class Diagram:
    """Aggregate root. Connections, generalizations and canvas attributes refer to
    entities and relationships by id; any of those ids may dangle."""
    entities: List[Entity] = field(default_factory=list)
    relationships: List[Relationship] = field(default_factory=list)
    attributes: List[Attribute] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)
    generalizations: List[Generalization] = field(default_factory=list)
    lines: List[LineShape] = field(default_factory=list)
    arrows: List[ArrowShape] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any((self.entities, self.relationships, self.attributes, self.connections,
                        self.generalizations, self.lines, self.arrows))

    def find_entity(self, entity_id: Optional[str]) -> Optional[Entity]:
        return next((e for e in self.entities if e.id == entity_id), None)

    def find_relationship(self, relationship_id: Optional[str]) -> Optional[Relationship]:
        return next((r for r in self.relationships if r.id == relationship_id), None)

    def find_node(self, node_id: Optional[str]) -> Optional[Node]:
        """Entity or relationship with the given id, or None"""
        return self.find_entity(node_id) or self.find_relationship(node_id)

    def find_attribute(self, attribute_id: Optional[str]) -> Optional[Attribute]:
        return next((a for a in self.attributes if a.id == attribute_id), None)

    def find_attribute_owner(self, attribute_id: str) -> Optional[Node]:
        """Entity or relationship whose own attribute list contains ``attribute_id``"""
        for node in self.nodes():
            if any(a.id == attribute_id for a in node.attributes):
                return node
        return None

    def nodes(self) -> Iterator[Node]:
        yield from self.entities
        yield from self.relationships

    def node_ids(self) -> set:
        return {n.id for n in self.nodes()}
