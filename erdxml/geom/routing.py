"""
Orthogonal routing

Turns freeform polylines into axis-aligned (Manhattan) paths and recomputes connection
geometry from current element positions. Geometry is derived at render time; nothing
here mutates the diagram.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..config import ConversionConfig, default_config
from ..model.diagram import Connection, ConnectionPoint, ConnectionStyle, Diagram, Generalization
from .edges import Point, box_of, connection_point, outward_vector

# Offset of the second parent line of a total generalization
TOTAL_LINE_OFFSET = 4.0


def _pairs(points: Sequence[float]) -> List[Point]:
    """Flat [x1, y1, x2, y2, ...] -> [(x1, y1), ...]; a trailing odd value is ignored"""
    return [(float(points[i]), float(points[i + 1])) for i in range(0, len(points) - 1, 2)]


def _flatten(points: List[Point]) -> List[float]:
    flat: List[float] = []
    for x, y in points:
        flat.extend((x, y))
    return flat


def _axis_of(edge: Optional[ConnectionPoint]) -> Optional[str]:
    """'h' for left/right, 'v' for top/bottom, None otherwise"""
    if edge in (ConnectionPoint.LEFT, ConnectionPoint.RIGHT):
        return "h"
    if edge in (ConnectionPoint.TOP, ConnectionPoint.BOTTOM):
        return "v"
    return None


def _other(axis: str) -> str:
    return "v" if axis == "h" else "h"


def _route_leg(a: Point, b: Point, first_axis: Optional[str], last_axis: Optional[str]) -> List[Point]:
    """
    Axis-aligned route from a to b (a excluded, b included)

    Args:
        first_axis: Required direction of the first move ('h'/'v'), or None
        last_axis: Required direction of the last move, or None
    """
    (ax, ay), (bx, by) = a, b
    if a == b:
        return []
    if ax == bx or ay == by:
        return [b]
    if first_axis is None and last_axis is None:
        first_axis = "h" if abs(bx - ax) >= abs(by - ay) else "v"
    elif first_axis is None:
        first_axis = _other(last_axis)
    if last_axis is not None and first_axis == last_axis:
        # Both ends on the same axis: Z-shape through the midpoint
        if first_axis == "h":
            mid_x = (ax + bx) / 2.0
            return [(mid_x, ay), (mid_x, by), b]
        mid_y = (ay + by) / 2.0
        return [(ax, mid_y), (bx, mid_y), b]
    if first_axis == "h":
        return [(bx, ay), b]
    return [(ax, by), b]


def _needs_stub(origin: Point, direction: Point, other: Point) -> bool:
    """True when ``other`` is not strictly ahead of ``origin`` along ``direction``"""
    return (other[0] - origin[0]) * direction[0] + (other[1] - origin[1]) * direction[1] <= 0


def orthogonal_path(
    points: Sequence[float],
    from_edge: Optional[ConnectionPoint] = None,
    to_edge: Optional[ConnectionPoint] = None,
    stub: float = 20.0,
) -> List[float]:
    """
    Convert a polyline to an orthogonal polyline

    Start, end and every intermediate point are kept; corners are inserted so that
    each consecutive pair of output points differs in exactly one coordinate, and
    zero-length segments are dropped.

    Args:
        points: Flat [x1, y1, x2, y2, ...] list (start, waypoints..., end)
        from_edge: Edge the path leaves from; the first move follows its outward normal
        to_edge: Edge the path arrives at; the last move enters through it
        stub: Lead-out length used when the next point lies behind ``from_edge``
              (or the previous point behind ``to_edge``)

    Returns:
        Flat list of the routed points
    """
    pts = _pairs(points)
    if len(pts) < 2:
        return _flatten(pts)

    start, end = pts[0], pts[-1]
    inner = pts[1:-1]
    exit_dir = outward_vector(from_edge)
    entry_dir = outward_vector(to_edge)
    exit_axis = _axis_of(from_edge)
    entry_axis = _axis_of(to_edge)

    # anchors[i] -> anchors[i + 1] is leg i; axes[i] = [first move axis, last move axis]
    anchors: List[Point] = [start]
    axes: List[List[Optional[str]]] = []

    leading_leg = 0
    leading = exit_axis
    next_target = inner[0] if inner else end
    if exit_dir is not None and _needs_stub(start, exit_dir, next_target):
        anchors.append((start[0] + exit_dir[0] * stub, start[1] + exit_dir[1] * stub))
        axes.append([exit_axis, None])
        leading_leg = 1
        leading = _other(exit_axis)

    for p in inner:
        anchors.append(p)
        axes.append([None, None])

    trailing = entry_axis
    if entry_dir is not None and _needs_stub(end, entry_dir, anchors[-1]):
        anchors.append((end[0] + entry_dir[0] * stub, end[1] + entry_dir[1] * stub))
        axes.append([None, None])
        # the stub -> end leg is straight; turn before reaching the stub
        trailing = _other(entry_axis)
        trailing_leg = len(axes) - 1
        anchors.append(end)
        axes.append([entry_axis, None])
    else:
        anchors.append(end)
        axes.append([None, None])
        trailing_leg = len(axes) - 1

    if axes[leading_leg][0] is None:
        axes[leading_leg][0] = leading
    axes[trailing_leg][1] = trailing

    routed: List[Point] = [start]
    for i, (first_axis, last_axis) in enumerate(axes):
        for p in _route_leg(anchors[i], anchors[i + 1], first_axis, last_axis):
            if p != routed[-1]:
                routed.append(p)
    return _flatten(routed)


def connection_path(
    connection: Connection,
    diagram: Diagram,
    config: Optional[ConversionConfig] = None,
) -> Optional[List[float]]:
    """
    Recompute a connection's points from the current element positions

    Returns:
        Flat point list, or None when either endpoint does not exist (render nothing)
    """
    config = config or default_config
    source = diagram.find_node(connection.from_id)
    target = diagram.find_node(connection.to_id)
    if source is None or target is None:
        return None

    start = connection_point(box_of(source), connection.from_point)
    end = connection_point(box_of(target), connection.to_point)
    raw = list(start)
    for waypoint in connection.waypoints:
        raw.extend((waypoint.x, waypoint.y))
    raw.extend(end)

    if connection.style == ConnectionStyle.ORTHOGONAL:
        return orthogonal_path(raw, connection.from_point, connection.to_point, config.route_stub_length)
    return raw


@dataclass
class GeneralizationPaths:
    """Routed lines of an ISA triangle"""
    parent: Optional[List[float]] = None
    # Second parent line drawn for total generalizations
    parent_double: Optional[List[float]] = None
    children: List[List[float]] = field(default_factory=list)


def generalization_paths(
    generalization: Generalization,
    diagram: Diagram,
    config: Optional[ConversionConfig] = None,
) -> GeneralizationPaths:
    """Parent -> apex and base -> child routes; missing entities are skipped"""
    config = config or default_config
    stub = config.route_stub_length
    pos, size = generalization.position, generalization.size
    apex_x = pos.x + size.width / 2.0
    apex_y = pos.y
    base_y = pos.y + size.height

    paths = GeneralizationPaths()
    parent = diagram.find_entity(generalization.parent_id)
    if parent is not None:
        parent_x = parent.position.x + parent.size.width / 2.0
        parent_bottom = parent.position.y + parent.size.height
        paths.parent = orthogonal_path(
            [parent_x, parent_bottom, apex_x, apex_y], ConnectionPoint.BOTTOM, ConnectionPoint.TOP, stub
        )
        if generalization.is_total:
            paths.parent_double = orthogonal_path(
                [parent_x + TOTAL_LINE_OFFSET, parent_bottom, apex_x + TOTAL_LINE_OFFSET, apex_y],
                ConnectionPoint.BOTTOM, ConnectionPoint.TOP, stub,
            )

    for child_id in generalization.child_ids:
        child = diagram.find_entity(child_id)
        if child is None:
            continue
        child_x = child.position.x + child.size.width / 2.0
        paths.children.append(orthogonal_path(
            [apex_x, base_y, child_x, child.position.y], ConnectionPoint.BOTTOM, ConnectionPoint.TOP, stub
        ))
    return paths
