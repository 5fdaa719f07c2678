"""
Edge selection helpers

Pick the side of a rectangular (entity) or diamond (relationship) shape a connection
attaches to. A diamond's vertices sit on the bounding box's edge midpoints, so both
shapes share the same edge geometry.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..model.diagram import Connection, ConnectionPoint, Position

Point = Tuple[float, float]

# Tie-break order when two edges are equally close
EDGE_PRIORITY: Tuple[ConnectionPoint, ...] = (
    ConnectionPoint.TOP,
    ConnectionPoint.RIGHT,
    ConnectionPoint.BOTTOM,
    ConnectionPoint.LEFT,
)


@dataclass(frozen=True)
class Box:
    """Axis-aligned bounding box (top-left + size)"""
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


def box_of(element, size: Optional[Tuple[float, float]] = None) -> Box:
    """
    Bounding box of a positioned element

    Args:
        element: Anything with ``position`` and (unless ``size`` is given) ``size``
        size: Explicit (width, height), for elements that carry no size of their own
    """
    if size is None:
        width, height = element.size.width, element.size.height
    else:
        width, height = size
    return Box(element.position.x, element.position.y, width, height)


def as_point(point: Union[Point, Position, Sequence[float]]) -> Point:
    if isinstance(point, Position):
        return (point.x, point.y)
    return (float(point[0]), float(point[1]))


def rank_edges(point: Union[Point, Position], box: Box) -> List[ConnectionPoint]:
    """
    Order the four edges of ``box`` from nearest to farthest as seen from ``point``

    Offsets are normalized by the box size so that wide or tall shapes do not favour
    their long sides. Scoring each edge by the normalized offset along its outward
    normal is the same as measuring the distance to its midpoint in normalized space.
    """
    px, py = as_point(point)
    cx, cy = box.center
    width = abs(box.width) or 1.0
    height = abs(box.height) or 1.0
    nx = (px - cx) / width
    ny = (py - cy) / height
    scores = {
        ConnectionPoint.TOP: -ny,
        ConnectionPoint.RIGHT: nx,
        ConnectionPoint.BOTTOM: ny,
        ConnectionPoint.LEFT: -nx,
    }
    return sorted(EDGE_PRIORITY, key=lambda edge: (-scores[edge], EDGE_PRIORITY.index(edge)))


def closest_edge(point: Union[Point, Position], box: Box) -> ConnectionPoint:
    """Edge of ``box`` nearest to ``point`` (ties: top, right, bottom, left)"""
    return rank_edges(point, box)[0]


def edge_usage(node_id: str, connections: Iterable[Connection]) -> dict:
    """Number of connections attached to each edge of ``node_id``"""
    usage = {edge: 0 for edge in EDGE_PRIORITY}
    for connection in connections:
        if connection.from_id == node_id and connection.from_point in usage:
            usage[connection.from_point] += 1
        if connection.to_id == node_id and connection.to_point in usage:
            usage[connection.to_point] += 1
    return usage


def best_available_edge(
    node_id: str,
    connections: Iterable[Connection],
    toward_point: Union[Point, Position],
    box: Box,
) -> ConnectionPoint:
    """
    Edge for a new connection leaving ``node_id`` toward ``toward_point``

    Spreads connections that share one endpoint over distinct edges: the least used
    edge wins, and among equally used edges the one nearest ``toward_point``.

    Args:
        node_id: Id of the shape the connection starts from
        connections: Existing connections of the diagram
        toward_point: Where the connection is heading (usually the other shape's center)
        box: Bounding box of the shape

    Returns:
        Chosen edge
    """
    usage = edge_usage(node_id, connections)
    ranked = rank_edges(toward_point, box)
    return min(ranked, key=lambda edge: (usage[edge], ranked.index(edge)))


def connection_point(box: Box, edge: ConnectionPoint) -> Point:
    """Attachment point of ``edge`` (edge midpoint, or the center)"""
    cx, cy = box.center
    if edge == ConnectionPoint.TOP:
        return (cx, box.y)
    if edge == ConnectionPoint.RIGHT:
        return (box.right, cy)
    if edge == ConnectionPoint.BOTTOM:
        return (cx, box.bottom)
    if edge == ConnectionPoint.LEFT:
        return (box.x, cy)
    return (cx, cy)


def outward_vector(edge: Optional[ConnectionPoint]) -> Optional[Point]:
    """Unit direction pointing out of the shape through ``edge`` (None for center/unknown)"""
    return {
        ConnectionPoint.TOP: (0.0, -1.0),
        ConnectionPoint.RIGHT: (1.0, 0.0),
        ConnectionPoint.BOTTOM: (0.0, 1.0),
        ConnectionPoint.LEFT: (-1.0, 0.0),
    }.get(edge)
