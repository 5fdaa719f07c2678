"""
Unit tests for geom: closest_edge, best_available_edge, orthogonal_path, connection_path, generalization_paths.
"""
from __future__ import annotations

import random
from typing import List

import pytest

from erdxml.geom.edges import Box, best_available_edge, box_of, closest_edge, connection_point
from erdxml.geom.routing import connection_path, generalization_paths, orthogonal_path
from erdxml.model import (
    Connection, ConnectionPoint, ConnectionStyle, Diagram, Entity, Generalization, Position,
    Relationship, Size,
)


def _pairs(points: List[float]):
    return [(points[i], points[i + 1]) for i in range(0, len(points), 2)]


def _assert_orthogonal(points: List[float]) -> None:
    pts = _pairs(points)
    for (x1, y1), (x2, y2) in zip(pts, pts[1:]):
        assert (x1 == x2) != (y1 == y2), f"segment {(x1, y1)} -> {(x2, y2)} is not axis-aligned"


# ---- closest_edge ----
@pytest.mark.parametrize(
    "point, expected",
    [
        ((50, -100), ConnectionPoint.TOP),
        ((200, 25), ConnectionPoint.RIGHT),
        ((50, 100), ConnectionPoint.BOTTOM),
        ((-10, 25), ConnectionPoint.LEFT),
    ],
)
def test_closest_edge_each_side(point, expected) -> None:
    assert closest_edge(point, Box(0, 0, 100, 50)) == expected


def test_closest_edge_ties_use_fixed_order() -> None:
    box = Box(0, 0, 100, 50)
    # center: all edges tie -> top
    assert closest_edge((50, 25), box) == ConnectionPoint.TOP
    # diagonal below-right: right and bottom tie -> right
    assert closest_edge((150, 75), box) == ConnectionPoint.RIGHT


def test_closest_edge_normalizes_by_box_size() -> None:
    """A wide box: raw distance favours the right side, normalized offsets pick bottom."""
    box = Box(0, 0, 400, 40)
    assert closest_edge((300, 60), box) == ConnectionPoint.BOTTOM


def test_closest_edge_zero_size_box() -> None:
    assert closest_edge((20, 10), Box(10, 10, 0, 0)) == ConnectionPoint.RIGHT


def test_closest_edge_accepts_position() -> None:
    assert closest_edge(Position(50, -100), Box(0, 0, 100, 50)) == ConnectionPoint.TOP


# ---- best_available_edge ----
def test_best_available_edge_without_connections_is_closest() -> None:
    box = Box(0, 0, 100, 100)
    assert best_available_edge("r1", [], (300, 50), box) == ConnectionPoint.RIGHT


def test_best_available_edge_skips_used_edges() -> None:
    box = Box(0, 0, 100, 100)
    used = [Connection(id="c1", from_id="r1", to_id="e1", from_point=ConnectionPoint.RIGHT)]
    assert best_available_edge("r1", used, (300, 50), box) == ConnectionPoint.TOP

    used.append(Connection(id="c2", from_id="e2", to_id="r1", to_point=ConnectionPoint.TOP))
    assert best_available_edge("r1", used, (300, 50), box) == ConnectionPoint.BOTTOM


def test_best_available_edge_ignores_other_nodes() -> None:
    box = Box(0, 0, 100, 100)
    other = [Connection(id="c1", from_id="x", to_id="y", from_point=ConnectionPoint.RIGHT)]
    assert best_available_edge("r1", other, (300, 50), box) == ConnectionPoint.RIGHT


def test_best_available_edge_is_deterministic() -> None:
    box = Box(0, 0, 100, 100)
    used = [Connection(id="c1", from_id="r1", to_id="e1", from_point=ConnectionPoint.RIGHT)]
    first = best_available_edge("r1", used, (300, 50), box)
    assert all(best_available_edge("r1", used, (300, 50), box) == first for _ in range(5))


# ---- connection_point / box_of ----
def test_connection_point_midpoints() -> None:
    box = Box(100, 100, 150, 80)
    assert connection_point(box, ConnectionPoint.TOP) == (175, 100)
    assert connection_point(box, ConnectionPoint.RIGHT) == (250, 140)
    assert connection_point(box, ConnectionPoint.BOTTOM) == (175, 180)
    assert connection_point(box, ConnectionPoint.LEFT) == (100, 140)
    assert connection_point(box, ConnectionPoint.CENTER) == (175, 140)


def test_box_of_entity() -> None:
    entity = Entity(id="e1", position=Position(10, 20), size=Size(30, 40))
    assert box_of(entity) == Box(10, 20, 30, 40)
    assert box_of(entity, size=(5, 6)) == Box(10, 20, 5, 6)


# ---- orthogonal_path ----
def test_orthogonal_path_dominant_axis_first() -> None:
    assert orthogonal_path([0, 0, 100, 50]) == [0, 0, 100, 0, 100, 50]


def test_orthogonal_path_aligned_is_unchanged() -> None:
    assert orthogonal_path([0, 0, 100, 0]) == [0, 0, 100, 0]


def test_orthogonal_path_short_input() -> None:
    assert orthogonal_path([]) == []
    assert orthogonal_path([5, 5]) == [5, 5]


def test_orthogonal_path_drops_zero_length_segments() -> None:
    assert orthogonal_path([0, 0, 0, 0, 50, 50]) == [0, 0, 50, 0, 50, 50]


def test_orthogonal_path_keeps_waypoints() -> None:
    result = orthogonal_path([0, 0, 50, 80, 100, 0])
    assert result == [0, 0, 0, 80, 50, 80, 50, 0, 100, 0]
    assert (50, 80) in _pairs(result)


def test_orthogonal_path_bottom_hint_leaves_downward() -> None:
    result = orthogonal_path([0, 0, 100, 50], from_edge=ConnectionPoint.BOTTOM)
    assert result == [0, 0, 0, 50, 100, 50]
    assert result[2] == 0 and result[3] > 0


def test_orthogonal_path_z_route_for_same_axis_hints() -> None:
    result = orthogonal_path([0, 0, 100, 100], ConnectionPoint.BOTTOM, ConnectionPoint.TOP)
    assert result == [0, 0, 0, 50, 100, 50, 100, 100]

    result = orthogonal_path([0, 0, 100, 60], ConnectionPoint.RIGHT, ConnectionPoint.LEFT)
    assert result == [0, 0, 50, 0, 50, 60, 100, 60]


def test_orthogonal_path_adds_stub_when_target_behind_edge() -> None:
    result = orthogonal_path([0, 0, 100, -100], from_edge=ConnectionPoint.BOTTOM, stub=20)
    assert result == [0, 0, 0, 20, 100, 20, 100, -100]


def test_orthogonal_path_adds_stub_before_arrival_edge() -> None:
    """Arriving through a top edge from below: the path passes above the target first."""
    result = orthogonal_path([0, 100, 100, 0], to_edge=ConnectionPoint.TOP, stub=20)
    assert result[-4:] == [100, -20, 100, 0]
    _assert_orthogonal(result)


def test_orthogonal_path_is_pure() -> None:
    points = [0, 0, 30, 70, 100, 50]
    copy = list(points)
    assert orthogonal_path(points, ConnectionPoint.LEFT) == orthogonal_path(points, ConnectionPoint.LEFT)
    assert points == copy


def test_orthogonal_path_random_polylines() -> None:
    """Every output segment is horizontal or vertical; start, end and waypoints are kept."""
    rng = random.Random(1234)
    edges = [None, ConnectionPoint.TOP, ConnectionPoint.RIGHT, ConnectionPoint.BOTTOM,
             ConnectionPoint.LEFT, ConnectionPoint.CENTER]
    for _ in range(500):
        count = rng.randint(2, 6)
        # small coordinate range so that repeated and aligned points are common
        points = [float(rng.randint(0, 5) * 10) for _ in range(count * 2)]
        result = orthogonal_path(points, rng.choice(edges), rng.choice(edges), stub=20)

        _assert_orthogonal(result)
        out = _pairs(result)
        src = _pairs(points)
        assert out[0] == src[0]
        if len(set(src)) > 1:
            assert out[-1] == src[-1]
        for waypoint in src[1:-1]:
            assert waypoint in out


# ---- connection_path ----
def _two_node_diagram() -> Diagram:
    return Diagram(
        entities=[Entity(id="e1", position=Position(100, 100))],
        relationships=[Relationship(id="r1", position=Position(315, 100), entity_ids=["e1"])],
    )


def test_connection_path_straight() -> None:
    diagram = _two_node_diagram()
    connection = Connection(id="c1", from_id="e1", to_id="r1")
    assert connection_path(connection, diagram) == [250, 140, 315, 140]


def test_connection_path_orthogonal_through_waypoint() -> None:
    diagram = _two_node_diagram()
    connection = Connection(
        id="c1", from_id="e1", to_id="r1", style=ConnectionStyle.ORTHOGONAL,
        waypoints=[Position(280, 60)],
    )
    result = connection_path(connection, diagram)
    _assert_orthogonal(result)
    assert result[:2] == [250, 140]
    assert result[-2:] == [315, 140]
    assert (280, 60) in _pairs(result)


def test_connection_path_dangling_endpoint_is_none() -> None:
    diagram = _two_node_diagram()
    assert connection_path(Connection(id="c1", from_id="missing", to_id="r1"), diagram) is None
    assert connection_path(Connection(id="c2", from_id="e1", to_id="missing"), diagram) is None


# ---- generalization_paths ----
def test_generalization_paths_total() -> None:
    diagram = Diagram(entities=[
        Entity(id="e1", position=Position(100, 100)),
        Entity(id="e3", position=Position(100, 320)),
    ])
    gen = Generalization(id="g1", parent_id="e1", child_ids=["e3", "missing"],
                         position=Position(145, 230), is_total=True)
    paths = generalization_paths(gen, diagram)
    assert paths.parent == [175, 180, 175, 230]
    assert paths.parent_double == [179, 180, 179, 230]
    assert paths.children == [[175, 270, 175, 320]]


def test_generalization_paths_missing_parent() -> None:
    gen = Generalization(id="g1", parent_id="nobody")
    paths = generalization_paths(gen, Diagram())
    assert paths.parent is None
    assert paths.parent_double is None
    assert paths.children == []
