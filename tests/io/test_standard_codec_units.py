"""
Unit tests for standard_codec and xml_utils: encode layout, escaping, defaults, references, round trip.
"""
from __future__ import annotations

import re

import pytest
from lxml import etree as ET

from erdxml.config import ConversionConfig
from erdxml.errors import InterchangeError, MalformedDocument, MissingRequiredReference, UnserializableText
from erdxml.io.standard_codec import StandardCodec, parse_standard, serialize_standard
from erdxml.io.xml_utils import format_number, generate_id, parse_points, parse_xml, round_half_up
from erdxml.logger import ConversionLogger
from erdxml.model import (
    ArrowShape, ArrowType, Attribute, Cardinality, Connection, ConnectionPoint, ConnectionStyle,
    Diagram, Entity, EntityAttribute, Generalization, LineShape, Participation, Position,
    Relationship, Size,
)


def _doc(body: str) -> str:
    return f'<?xml version="1.0" encoding="UTF-8"?><ERDiagram version="1.0">{body}</ERDiagram>'


def _full_diagram() -> Diagram:
    return Diagram(
        entities=[
            Entity(
                id="e1", name="Student", position=Position(100.5, 100), size=Size(160, 90),
                rotation=15,
                attributes=[
                    EntityAttribute(id="a1", name="StudentID", is_key=True),
                    EntityAttribute(id="a2", name="Address", is_composite=True, sub_attribute_ids=["s1", "s2"]),
                ],
            ),
            Entity(id="e2", name="Dependent", position=Position(400, 300), is_weak=True,
                   attributes=[EntityAttribute(id="a3", name="DepName", is_discriminant=True)]),
        ],
        relationships=[
            Relationship(
                id="r1", name="Supports", position=Position(250, 300), is_weak=True,
                entity_ids=["e1", "e2"],
                attributes=[EntityAttribute(id="a4", name="Since", is_derived=True)],
                cardinalities={"e1": Cardinality.ONE, "e2": Cardinality.N},
                participations={"e1": Participation.PARTIAL, "e2": Participation.TOTAL},
            ),
        ],
        attributes=[
            Attribute(id="a1", name="StudentID", position=Position(120, 20), is_key=True, entity_id="e1"),
            Attribute(id="s1", name="Street", position=Position(20, 40), entity_id="e1", parent_attribute_id="a2"),
            Attribute(id="ca2", name="Hours", position=Position(260, 420), is_multivalued=True,
                      relationship_id="r1", is_composite=True, sub_attribute_ids=["x1"]),
        ],
        connections=[
            Connection(
                id="c1", from_id="e1", to_id="r1", from_point=ConnectionPoint.BOTTOM,
                to_point=ConnectionPoint.TOP, style=ConnectionStyle.ORTHOGONAL,
                cardinality=Cardinality.ONE, participation=Participation.PARTIAL,
                waypoints=[Position(180, 250)], points=[180.25, 190, 180.25, 250, 310, 250, 310, 300],
                label_position=Position(190, 240), role="supporter",
            ),
        ],
        generalizations=[
            Generalization(id="g1", parent_id="e1", child_ids=["e2"], position=Position(145, 220),
                           size=Size(60, 40), is_total=True),
        ],
        lines=[LineShape(id="l1", points=[0, 0, 10, 10], stroke_width=3)],
        arrows=[ArrowShape(id="ar1", type=ArrowType.LEFT, points=[5, 5, 50, 5], stroke_width=1.5,
                           pointer_length=10, pointer_width=12)],
    )


# ---- xml_utils ----
def test_format_number_shortest_form() -> None:
    assert format_number(100.0) == "100"
    assert format_number(100.5) == "100.5"
    assert format_number(-3) == "-3"
    assert format_number(0.1) == "0.1"


def test_parse_points_skips_bad_tokens() -> None:
    assert parse_points("1, 2,x,3,,4") == [1, 2, 3, 4]
    assert parse_points("") == []
    assert parse_points(None) == []


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4) == 2
    assert round_half_up(-0.5) == 0
    assert round_half_up(-1.5) == -1


def test_generate_id_shape() -> None:
    assert re.fullmatch(r"\d+-[0-9a-z]{9}", generate_id())
    assert generate_id() != generate_id()


def test_parse_xml_malformed_carries_detail() -> None:
    with pytest.raises(MalformedDocument) as exc_info:
        parse_xml("<ERDiagram><entity></ERDiagram>")
    assert exc_info.value.detail
    assert "Invalid XML format" in str(exc_info.value)


def test_parse_xml_empty() -> None:
    with pytest.raises(MalformedDocument):
        parse_xml("   ")


def test_parse_xml_text_ignores_declared_encoding() -> None:
    """Decoded text is parsed as-is whatever encoding its declaration names."""
    text = (
        '<?xml version="1.0" encoding="ISO-8859-1"?>'
        '<ERDiagram version="1.0"><entity id="e1" name="Müller"/></ERDiagram>'
    )
    assert parse_standard(text).entities[0].name == "Müller"
    assert parse_xml("\ufeff" + text).find("entity").get("name") == "Müller"


def test_parse_xml_bytes_follow_declared_encoding() -> None:
    data = '<?xml version="1.0" encoding="ISO-8859-1"?><ERDiagram name="Müller"/>'.encode("iso-8859-1")
    assert parse_xml(data).get("name") == "Müller"


# ---- Encode ----
def test_encode_declaration_and_root() -> None:
    text = serialize_standard(Diagram())
    assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    root = ET.fromstring(text.encode("utf-8"))
    assert root.tag == "ERDiagram"
    assert root.get("version") == "1.0"
    assert len(root) == 0


def test_encode_element_order() -> None:
    root = ET.fromstring(serialize_standard(_full_diagram()).encode("utf-8"))
    assert [child.tag for child in root] == [
        "entity", "entity", "relationship", "attribute", "attribute", "attribute",
        "connection", "generalization", "line", "arrow",
    ]


def test_encode_entity_fields() -> None:
    root = ET.fromstring(serialize_standard(_full_diagram()).encode("utf-8"))
    entity = root.find("entity")
    assert entity.get("x") == "100.5"
    assert entity.get("y") == "100"
    assert entity.get("width") == "160"
    assert entity.get("isWeak") == "false"
    assert entity.get("rotation") == "15"
    composite = entity.findall("attribute")[1]
    assert composite.get("isComposite") == "true"
    assert composite.get("subAttributeIds") == "s1,s2"
    assert entity.findall("attribute")[0].get("isComposite") is None


def test_encode_relationship_children() -> None:
    root = ET.fromstring(serialize_standard(_full_diagram()).encode("utf-8"))
    rel = root.find("relationship")
    assert [e.text for e in rel.findall("entityId")] == ["e1", "e2"]
    assert {c.get("entityId"): c.text for c in rel.findall("cardinality")} == {"e1": "1", "e2": "N"}
    assert {p.get("entityId"): p.text for p in rel.findall("participation")} == {
        "e1": "partial", "e2": "total",
    }


def test_encode_optional_fields_omitted() -> None:
    diagram = Diagram(
        entities=[Entity(id="e1")],
        connections=[Connection(id="c1", from_id="e1", to_id="e1")],
    )
    root = ET.fromstring(serialize_standard(diagram).encode("utf-8"))
    assert root.find("entity").get("rotation") is None
    conn = root.find("connection")
    assert conn.get("labelX") is None and conn.get("role") is None
    assert conn.get("points") == ""


def test_encode_escapes_strings() -> None:
    name = 'R&D <"Lab"> \'x\''
    text = serialize_standard(Diagram(entities=[Entity(id="e&1", name=name)]))
    assert "&amp;" in text and "&lt;" in text and "&quot;" in text
    decoded = parse_standard(text)
    assert decoded.entities[0].name == name
    assert decoded.entities[0].id == "e&1"


def test_encode_control_character_raises() -> None:
    with pytest.raises(UnserializableText) as exc_info:
        serialize_standard(Diagram(entities=[Entity(id="e1", name="A\x01B")]))
    assert isinstance(exc_info.value, InterchangeError)

    relationship = Relationship(id="r1", entity_ids=["e\x02"])
    with pytest.raises(UnserializableText):
        serialize_standard(Diagram(relationships=[relationship]))


# ---- Decode ----
def test_decode_round_trip() -> None:
    diagram = _full_diagram()
    logger = ConversionLogger()
    assert parse_standard(serialize_standard(diagram), logger=logger) == diagram


def test_decode_defaults() -> None:
    diagram = parse_standard(_doc(
        "<entity/><relationship/><generalization/><connection fromId='a' toId='b'/>"
        "<line/><arrow/><attribute entityId='x'/>"
    ))
    entity = diagram.entities[0]
    assert entity.name == "Entity"
    assert entity.size == Size(150, 80)
    assert entity.position == Position(0, 0)
    assert entity.rotation is None
    assert re.fullmatch(r"\d+-[0-9a-z]{9}", entity.id)

    rel = diagram.relationships[0]
    assert rel.name == "Relationship" and rel.size == Size(120, 80)
    assert diagram.generalizations[0].size == Size(60, 40)
    assert diagram.attributes[0].name == "Attribute"

    conn = diagram.connections[0]
    assert conn.from_point is ConnectionPoint.RIGHT
    assert conn.to_point is ConnectionPoint.LEFT
    assert conn.style is ConnectionStyle.STRAIGHT
    assert conn.cardinality is Cardinality.ONE
    assert conn.participation is Participation.PARTIAL
    assert conn.position == Position(0, 0)

    assert diagram.lines[0].stroke_width == 2
    arrow = diagram.arrows[0]
    assert arrow.type is ArrowType.RIGHT
    assert (arrow.pointer_length, arrow.pointer_width) == (15, 15)


def test_decode_unparseable_numbers_use_defaults() -> None:
    diagram = parse_standard(_doc('<entity id="e1" x="abc" width="wide" height="NaN"/>'))
    entity = diagram.entities[0]
    assert entity.position.x == 0
    assert entity.size == Size(150, 80)


def test_decode_invalid_enum_falls_back_with_warning() -> None:
    logger = ConversionLogger()
    diagram = parse_standard(_doc(
        '<entity id="e1"/><connection id="c1" fromId="e1" toId="e1" fromPoint="middle" style="zigzag"/>'
    ), logger=logger)
    conn = diagram.connections[0]
    assert conn.from_point is ConnectionPoint.RIGHT
    assert conn.style is ConnectionStyle.STRAIGHT
    fields = [w.details["field"] for w in logger.get_warnings("invalid_value")]
    assert fields == ["fromPoint", "style"]


def test_decode_invalid_cardinality_text() -> None:
    logger = ConversionLogger()
    diagram = parse_standard(_doc(
        '<entity id="e1"/><relationship id="r1"><entityId>e1</entityId>'
        '<cardinality entityId="e1">many</cardinality></relationship>'
    ), logger=logger)
    assert diagram.relationships[0].cardinalities == {"e1": Cardinality.ONE}
    assert len(logger.get_warnings("invalid_value")) == 1


def test_decode_connection_position_from_points() -> None:
    diagram = parse_standard(_doc('<connection id="c1" fromId="a" toId="b" points="40,90,10,30,70,50"/>'))
    assert diagram.connections[0].position == Position(10, 30)


def test_decode_partial_key_alias() -> None:
    diagram = parse_standard(_doc(
        '<entity id="e1" isWeak="true"><attribute id="a1" name="No" isPartialKey="true"/></entity>'
    ))
    assert diagram.entities[0].attributes[0].is_discriminant is True


def test_decode_nested_attributes_are_not_canvas_attributes() -> None:
    diagram = parse_standard(_doc('<entity id="e1"><attribute id="a1"/></entity>'))
    assert diagram.attributes == []
    assert [a.id for a in diagram.entities[0].attributes] == ["a1"]


def test_decode_dangling_reference_is_kept() -> None:
    logger = ConversionLogger()
    diagram = parse_standard(_doc(
        '<entity id="e1"/><connection id="c1" fromId="missing" toId="e1"/>'
    ), logger=logger)
    assert diagram.connections[0].from_id == "missing"
    missing = logger.get_warnings("missing_reference")
    assert [(w.element_id, w.details["ref_id"]) for w in missing] == [("c1", "missing")]


def test_decode_strict_references_raise() -> None:
    codec = StandardCodec(config=ConversionConfig(strict_references=True))
    with pytest.raises(MissingRequiredReference) as exc_info:
        codec.decode(_doc('<generalization id="g1" parentId="ghost"/>'))
    assert exc_info.value.ref_id == "ghost"


def test_decode_wrong_root() -> None:
    with pytest.raises(MalformedDocument):
        parse_standard("<Foo/>")
    diagram = StandardCodec().decode("<Foo/>", strict_root=False)
    assert diagram.is_empty


def test_decode_malformed() -> None:
    with pytest.raises(MalformedDocument):
        parse_standard("<ERDiagram><entity></ERDiagram>")
