"""
Diagram utilities

Whole-diagram operations used when importing into an existing diagram: bounds,
id remapping, translation, merging and cascading delete. Every function returns
a new Diagram and leaves its input untouched.
"""
import copy
from typing import Callable, Dict, List, Optional, Tuple

from .model.diagram import Diagram, Position
from .io.xml_utils import generate_id

Bounds = Tuple[float, float, float, float]


def _offset_points(points: List[float], dx: float, dy: float) -> List[float]:
    return [v + (dx if i % 2 == 0 else dy) for i, v in enumerate(points)]


def _point_pairs(points: List[float]):
    for i in range(0, len(points) - 1, 2):
        yield points[i], points[i + 1]


def diagram_bounds(diagram: Diagram) -> Bounds:
    """
    Bounding box of everything drawn in a diagram

    Returns:
        (min_x, min_y, max_x, max_y), or (0, 0, 0, 0) for an empty diagram
    """
    xs: List[float] = []
    ys: List[float] = []

    def extend(x: float, y: float) -> None:
        xs.append(x)
        ys.append(y)

    for element in list(diagram.entities) + list(diagram.relationships) + list(diagram.generalizations):
        extend(element.position.x, element.position.y)
        extend(element.position.x + element.size.width, element.position.y + element.size.height)
    for attribute in diagram.attributes:
        extend(attribute.position.x, attribute.position.y)
    for connection in diagram.connections:
        for x, y in _point_pairs(connection.points):
            extend(x, y)
        for waypoint in connection.waypoints:
            extend(waypoint.x, waypoint.y)
        if connection.label_position is not None:
            extend(connection.label_position.x, connection.label_position.y)
    for shape in list(diagram.lines) + list(diagram.arrows):
        for x, y in _point_pairs(shape.points):
            extend(x, y)

    if not xs:
        return (0.0, 0.0, 0.0, 0.0)
    return (min(xs), min(ys), max(xs), max(ys))


def remap_diagram_ids(diagram: Diagram, id_factory: Callable[[], str] = generate_id) -> Diagram:
    """
    Copy of ``diagram`` with a fresh id for every element

    Every reference is rewritten through the same map, so an owned attribute and the
    canvas attribute that shares its id keep sharing it. References to ids the diagram
    does not define are kept unchanged.

    Args:
        diagram: Source diagram
        id_factory: Callable returning a new unique id

    Returns:
        New Diagram
    """
    result = copy.deepcopy(diagram)
    mapping: Dict[str, str] = {}

    def fresh(old_id: str) -> str:
        if old_id not in mapping:
            mapping[old_id] = id_factory()
        return mapping[old_id]

    # First pass: every element defined by the diagram gets its new id
    for node in result.nodes():
        node.id = fresh(node.id)
        for attr in node.attributes:
            attr.id = fresh(attr.id)
    for group in (result.attributes, result.connections, result.generalizations, result.lines, result.arrows):
        for element in group:
            element.id = fresh(element.id)

    def ref(old_id: Optional[str]) -> Optional[str]:
        if old_id is None:
            return None
        return mapping.get(old_id, old_id)

    # Second pass: references
    for node in result.nodes():
        for attr in node.attributes:
            if attr.sub_attribute_ids:
                attr.sub_attribute_ids = [ref(i) for i in attr.sub_attribute_ids]
    for relationship in result.relationships:
        relationship.entity_ids = [ref(i) for i in relationship.entity_ids]
        relationship.cardinalities = {ref(k): v for k, v in relationship.cardinalities.items()}
        relationship.participations = {ref(k): v for k, v in relationship.participations.items()}
    for attribute in result.attributes:
        attribute.entity_id = ref(attribute.entity_id)
        attribute.relationship_id = ref(attribute.relationship_id)
        attribute.parent_attribute_id = ref(attribute.parent_attribute_id)
        if attribute.sub_attribute_ids:
            attribute.sub_attribute_ids = [ref(i) for i in attribute.sub_attribute_ids]
    for connection in result.connections:
        connection.from_id = ref(connection.from_id)
        connection.to_id = ref(connection.to_id)
    for generalization in result.generalizations:
        generalization.parent_id = ref(generalization.parent_id)
        generalization.child_ids = [ref(i) for i in generalization.child_ids]
    return result


def apply_offset(diagram: Diagram, dx: float, dy: float) -> Diagram:
    """Copy of ``diagram`` translated by (dx, dy)"""
    result = copy.deepcopy(diagram)

    def move(p: Position) -> Position:
        return Position(p.x + dx, p.y + dy)

    for element in list(result.entities) + list(result.relationships) + list(result.generalizations):
        element.position = move(element.position)
    for attribute in result.attributes:
        attribute.position = move(attribute.position)
    for connection in result.connections:
        connection.points = _offset_points(connection.points, dx, dy)
        connection.waypoints = [move(w) for w in connection.waypoints]
        if connection.label_position is not None:
            connection.label_position = move(connection.label_position)
    for shape in list(result.lines) + list(result.arrows):
        shape.points = _offset_points(shape.points, dx, dy)
    return result


def merge_diagrams(
    base: Diagram,
    incoming: Diagram,
    gap: float = 50,
    id_factory: Callable[[], str] = generate_id,
) -> Diagram:
    """
    Append ``incoming`` to ``base`` without id collisions

    The incoming diagram gets fresh ids and is moved so that its top-left corner
    sits ``gap`` units below the base diagram, aligned with the base's left edge.

    Returns:
        New Diagram holding the elements of both
    """
    incoming = remap_diagram_ids(incoming, id_factory)
    if not base.is_empty and not incoming.is_empty:
        base_min_x, _, _, base_max_y = diagram_bounds(base)
        in_min_x, in_min_y, _, _ = diagram_bounds(incoming)
        incoming = apply_offset(incoming, base_min_x - in_min_x, base_max_y + gap - in_min_y)

    merged = copy.deepcopy(base)
    merged.entities.extend(incoming.entities)
    merged.relationships.extend(incoming.relationships)
    merged.attributes.extend(incoming.attributes)
    merged.connections.extend(incoming.connections)
    merged.generalizations.extend(incoming.generalizations)
    merged.lines.extend(incoming.lines)
    merged.arrows.extend(incoming.arrows)
    return merged


def delete_element(diagram: Diagram, element_id: str) -> Diagram:
    """
    Copy of ``diagram`` without ``element_id`` and everything that depends on it

    Deleting an entity or relationship also removes its canvas attributes, the
    connections that touch it, generalizations it is the parent of, and its id from
    relationship participants and generalization children. Deleting a canvas
    attribute also removes it from its owner's attribute list. Unknown ids leave the
    diagram unchanged.
    """
    result = copy.deepcopy(diagram)

    if result.find_node(element_id) is not None:
        result.entities = [e for e in result.entities if e.id != element_id]
        result.relationships = [r for r in result.relationships if r.id != element_id]
        result.attributes = [a for a in result.attributes if a.owner_id != element_id]
        result.connections = [
            c for c in result.connections if element_id not in (c.from_id, c.to_id)
        ]
        for relationship in result.relationships:
            relationship.entity_ids = [i for i in relationship.entity_ids if i != element_id]
            relationship.cardinalities.pop(element_id, None)
            relationship.participations.pop(element_id, None)
        result.generalizations = [g for g in result.generalizations if g.parent_id != element_id]
        for generalization in result.generalizations:
            generalization.child_ids = [i for i in generalization.child_ids if i != element_id]
        return result

    attribute = result.find_attribute(element_id)
    if attribute is not None:
        result.attributes = [a for a in result.attributes if a.id != element_id]
        owner = result.find_node(attribute.owner_id)
        if owner is not None:
            owner.attributes = [a for a in owner.attributes if a.id != element_id]
        for other in result.attributes:
            if other.parent_attribute_id == element_id:
                other.parent_attribute_id = None
            if other.sub_attribute_ids and element_id in other.sub_attribute_ids:
                other.sub_attribute_ids = [i for i in other.sub_attribute_ids if i != element_id] or None
        return result

    result.connections = [c for c in result.connections if c.id != element_id]
    result.generalizations = [g for g in result.generalizations if g.id != element_id]
    result.lines = [l for l in result.lines if l.id != element_id]
    result.arrows = [a for a in result.arrows if a.id != element_id]
    return result
