"""
Standard dialect codec

Reads and writes the editor's native ``<ERDiagram version="1.0">`` documents, a direct
field-for-field mapping of the canonical model with ids kept as opaque strings
"""
from typing import Iterable, List, Optional, Set

from lxml import etree as ET

from ..config import ConversionConfig, default_config
from ..errors import MalformedDocument, MissingRequiredReference
from ..logger import ConversionLogger
from ..model.diagram import (
    ArrowShape, ArrowType, Attribute, Cardinality, Connection, ConnectionPoint, ConnectionStyle,
    Diagram, Entity, EntityAttribute, Generalization, LineShape, Participation, Position,
    Relationship, Size,
)
from .xml_utils import (
    children, format_bool, format_number, format_points, generate_id, get_bool, get_enum,
    get_float, get_str, local_tag, parse_points, parse_xml, to_text, xml_text_guard,
)

ROOT_TAG = "ERDiagram"


class StandardCodec:
    """Encoder/decoder for the standard dialect"""

    def __init__(self, logger: Optional[ConversionLogger] = None, config: Optional[ConversionConfig] = None):
        """
        Args:
            logger: ConversionLogger instance (a fresh one is created if None)
            config: ConversionConfig instance (uses default_config if None)
        """
        self.config = config or default_config
        self.logger = logger or ConversionLogger()

    # ---- Encode ----

    def encode(self, diagram: Diagram) -> str:
        """
        Serialize a diagram to standard dialect XML text

        Args:
            diagram: Diagram to write (not modified)

        Returns:
            XML document with declaration

        Raises:
            UnserializableText: When a string holds characters XML 1.0 cannot represent
        """
        with xml_text_guard():
            root = self._build_tree(diagram)
        return to_text(root, pretty_print=self.config.pretty_print)

    def _build_tree(self, diagram: Diagram) -> ET._Element:
        root = ET.Element(ROOT_TAG, version=self.config.standard_version)

        for entity in diagram.entities:
            self._encode_entity(root, entity)
        for relationship in diagram.relationships:
            self._encode_relationship(root, relationship)
        for attribute in diagram.attributes:
            self._encode_canvas_attribute(root, attribute)
        for connection in diagram.connections:
            self._encode_connection(root, connection)
        for generalization in diagram.generalizations:
            self._encode_generalization(root, generalization)
        for line in diagram.lines:
            ET.SubElement(root, "line", {
                "id": line.id,
                "points": format_points(line.points),
                "strokeWidth": format_number(line.stroke_width),
            })
        for arrow in diagram.arrows:
            ET.SubElement(root, "arrow", {
                "id": arrow.id,
                "type": arrow.type.value,
                "points": format_points(arrow.points),
                "strokeWidth": format_number(arrow.stroke_width),
                "pointerLength": format_number(arrow.pointer_length),
                "pointerWidth": format_number(arrow.pointer_width),
            })
        return root

    @staticmethod
    def _box_attrs(elem, element) -> None:
        elem.set("x", format_number(element.position.x))
        elem.set("y", format_number(element.position.y))
        elem.set("width", format_number(element.size.width))
        elem.set("height", format_number(element.size.height))

    @staticmethod
    def _flag_attrs(elem, attr) -> None:
        elem.set("isKey", format_bool(attr.is_key))
        elem.set("isDiscriminant", format_bool(attr.is_discriminant))
        elem.set("isMultivalued", format_bool(attr.is_multivalued))
        elem.set("isDerived", format_bool(attr.is_derived))
        if attr.is_composite:
            elem.set("isComposite", "true")
        if attr.sub_attribute_ids:
            elem.set("subAttributeIds", ",".join(attr.sub_attribute_ids))

    def _encode_owned_attribute(self, parent, attr: EntityAttribute) -> None:
        elem = ET.SubElement(parent, "attribute", id=attr.id, name=attr.name)
        self._flag_attrs(elem, attr)

    def _encode_entity(self, root, entity: Entity) -> None:
        elem = ET.SubElement(root, "entity", id=entity.id, name=entity.name)
        self._box_attrs(elem, entity)
        elem.set("isWeak", format_bool(entity.is_weak))
        if entity.rotation is not None:
            elem.set("rotation", format_number(entity.rotation))
        for attr in entity.attributes:
            self._encode_owned_attribute(elem, attr)

    def _encode_relationship(self, root, relationship: Relationship) -> None:
        elem = ET.SubElement(root, "relationship", id=relationship.id, name=relationship.name)
        self._box_attrs(elem, relationship)
        elem.set("isWeak", format_bool(relationship.is_weak))
        if relationship.rotation is not None:
            elem.set("rotation", format_number(relationship.rotation))

        for entity_id in relationship.entity_ids:
            ET.SubElement(elem, "entityId").text = entity_id
        for attr in relationship.attributes:
            self._encode_owned_attribute(elem, attr)
        for entity_id, cardinality in relationship.cardinalities.items():
            ET.SubElement(elem, "cardinality", entityId=entity_id).text = cardinality.value
        for entity_id, participation in relationship.participations.items():
            ET.SubElement(elem, "participation", entityId=entity_id).text = participation.value

    def _encode_canvas_attribute(self, root, attribute: Attribute) -> None:
        elem = ET.SubElement(root, "attribute", id=attribute.id, name=attribute.name)
        elem.set("x", format_number(attribute.position.x))
        elem.set("y", format_number(attribute.position.y))
        self._flag_attrs(elem, attribute)
        if attribute.entity_id:
            elem.set("entityId", attribute.entity_id)
        if attribute.relationship_id:
            elem.set("relationshipId", attribute.relationship_id)
        if attribute.parent_attribute_id:
            elem.set("parentAttributeId", attribute.parent_attribute_id)

    def _encode_connection(self, root, connection: Connection) -> None:
        elem = ET.SubElement(root, "connection", {
            "id": connection.id,
            "fromId": connection.from_id,
            "toId": connection.to_id,
            "fromPoint": connection.from_point.value,
            "toPoint": connection.to_point.value,
            "style": connection.style.value,
            "cardinality": connection.cardinality.value,
            "participation": connection.participation.value,
            "points": format_points(connection.points),
        })
        if connection.label_position is not None:
            elem.set("labelX", format_number(connection.label_position.x))
            elem.set("labelY", format_number(connection.label_position.y))
        if connection.role:
            elem.set("role", connection.role)
        for waypoint in connection.waypoints:
            ET.SubElement(elem, "waypoint", x=format_number(waypoint.x), y=format_number(waypoint.y))

    def _encode_generalization(self, root, generalization: Generalization) -> None:
        elem = ET.SubElement(root, "generalization", id=generalization.id, parentId=generalization.parent_id)
        self._box_attrs(elem, generalization)
        elem.set("isTotal", format_bool(generalization.is_total))
        for child_id in generalization.child_ids:
            ET.SubElement(elem, "childId").text = child_id

    # ---- Decode ----

    def decode(self, text: str, strict_root: bool = True) -> Diagram:
        """
        Parse standard dialect XML text

        Args:
            text: XML document
            strict_root: Reject documents whose root is not <ERDiagram>

        Returns:
            Newly built Diagram

        Raises:
            MalformedDocument: Not well-formed XML, or wrong root with strict_root
        """
        return self.decode_element(parse_xml(text), strict_root=strict_root)

    def decode_element(self, root, strict_root: bool = True) -> Diagram:
        """Build a Diagram from an already parsed root element"""
        tag = local_tag(root)
        if strict_root and tag != ROOT_TAG:
            raise MalformedDocument(
                "Invalid ER diagram XML", f"root element must be <{ROOT_TAG}>, got <{tag}>"
            )

        diagram = Diagram()
        # Only direct children: <attribute> also appears nested in entities and relationships
        for elem in children(root, "entity"):
            diagram.entities.append(self._decode_entity(elem))
        for elem in children(root, "relationship"):
            diagram.relationships.append(self._decode_relationship(elem))
        for elem in children(root, "attribute"):
            diagram.attributes.append(self._decode_canvas_attribute(elem))
        for elem in children(root, "connection"):
            diagram.connections.append(self._decode_connection(elem))
        for elem in children(root, "generalization"):
            diagram.generalizations.append(self._decode_generalization(elem))
        for elem in children(root, "line"):
            diagram.lines.append(self._decode_line(elem))
        for elem in children(root, "arrow"):
            diagram.arrows.append(self._decode_arrow(elem))

        self._check_references(diagram)
        self.logger.debug(
            f"Parsed standard diagram: {len(diagram.entities)} entities, "
            f"{len(diagram.relationships)} relationships, {len(diagram.connections)} connections"
        )
        return diagram

    @staticmethod
    def _id(elem) -> str:
        return get_str(elem, "id") or generate_id()

    @staticmethod
    def _position(elem) -> Position:
        return Position(get_float(elem, "x", 0.0), get_float(elem, "y", 0.0))

    @staticmethod
    def _size(elem, default) -> Size:
        return Size(get_float(elem, "width", default[0]), get_float(elem, "height", default[1]))

    @staticmethod
    def _rotation(elem) -> Optional[float]:
        return get_float(elem, "rotation")

    @staticmethod
    def _is_discriminant(elem) -> bool:
        # isPartialKey is the attribute name used by older documents
        return get_bool(elem, "isDiscriminant") or get_bool(elem, "isPartialKey")

    @staticmethod
    def _sub_attribute_ids(elem) -> Optional[List[str]]:
        ids = [s.strip() for s in (elem.get("subAttributeIds") or "").split(",") if s.strip()]
        return ids or None

    def _decode_owned_attribute(self, elem) -> EntityAttribute:
        return EntityAttribute(
            id=self._id(elem),
            name=get_str(elem, "name", "Attribute"),
            is_key=get_bool(elem, "isKey"),
            is_discriminant=self._is_discriminant(elem),
            is_multivalued=get_bool(elem, "isMultivalued"),
            is_derived=get_bool(elem, "isDerived"),
            is_composite=get_bool(elem, "isComposite"),
            sub_attribute_ids=self._sub_attribute_ids(elem),
        )

    def _decode_entity(self, elem) -> Entity:
        return Entity(
            id=self._id(elem),
            name=get_str(elem, "name", "Entity"),
            position=self._position(elem),
            size=self._size(elem, self.config.entity_default_size),
            is_weak=get_bool(elem, "isWeak"),
            attributes=[self._decode_owned_attribute(a) for a in children(elem, "attribute")],
            rotation=self._rotation(elem),
        )

    def _decode_relationship(self, elem) -> Relationship:
        relationship = Relationship(
            id=self._id(elem),
            name=get_str(elem, "name", "Relationship"),
            position=self._position(elem),
            size=self._size(elem, self.config.relationship_default_size),
            is_weak=get_bool(elem, "isWeak"),
            rotation=self._rotation(elem),
        )
        for child in children(elem, "entityId"):
            entity_id = (child.text or "").strip()
            if entity_id:
                relationship.entity_ids.append(entity_id)
        relationship.attributes = [self._decode_owned_attribute(a) for a in children(elem, "attribute")]

        for child in children(elem, "cardinality"):
            entity_id = get_str(child, "entityId")
            if not entity_id:
                continue
            raw = (child.text or "").strip() or Cardinality.ONE.value
            value = Cardinality.parse(raw)
            if value is None:
                self.logger.warn_invalid_value(relationship.id, "cardinality", raw, Cardinality.ONE.value)
                value = Cardinality.ONE
            relationship.cardinalities[entity_id] = value

        for child in children(elem, "participation"):
            entity_id = get_str(child, "entityId")
            if not entity_id:
                continue
            raw = (child.text or "").strip() or Participation.PARTIAL.value
            value = Participation.parse(raw)
            if value is None:
                self.logger.warn_invalid_value(relationship.id, "participation", raw, Participation.PARTIAL.value)
                value = Participation.PARTIAL
            relationship.participations[entity_id] = value

        return relationship

    def _decode_canvas_attribute(self, elem) -> Attribute:
        return Attribute(
            id=self._id(elem),
            name=get_str(elem, "name", "Attribute"),
            position=self._position(elem),
            is_key=get_bool(elem, "isKey"),
            is_discriminant=self._is_discriminant(elem),
            is_multivalued=get_bool(elem, "isMultivalued"),
            is_derived=get_bool(elem, "isDerived"),
            is_composite=get_bool(elem, "isComposite"),
            entity_id=get_str(elem, "entityId"),
            relationship_id=get_str(elem, "relationshipId"),
            parent_attribute_id=get_str(elem, "parentAttributeId"),
            sub_attribute_ids=self._sub_attribute_ids(elem),
        )

    def _decode_connection(self, elem) -> Connection:
        connection_id = self._id(elem)
        connection = Connection(
            id=connection_id,
            from_id=get_str(elem, "fromId", ""),
            to_id=get_str(elem, "toId", ""),
            from_point=get_enum(elem, "fromPoint", ConnectionPoint, ConnectionPoint.RIGHT, self.logger, connection_id),
            to_point=get_enum(elem, "toPoint", ConnectionPoint, ConnectionPoint.LEFT, self.logger, connection_id),
            style=get_enum(elem, "style", ConnectionStyle, ConnectionStyle.STRAIGHT, self.logger, connection_id),
            cardinality=get_enum(elem, "cardinality", Cardinality, Cardinality.ONE, self.logger, connection_id),
            participation=get_enum(
                elem, "participation", Participation, Participation.PARTIAL, self.logger, connection_id
            ),
            points=parse_points(elem.get("points")),
            role=get_str(elem, "role"),
        )
        for waypoint in children(elem, "waypoint"):
            connection.waypoints.append(self._position(waypoint))

        label_x = get_float(elem, "labelX")
        label_y = get_float(elem, "labelY")
        if label_x is not None and label_y is not None:
            connection.label_position = Position(label_x, label_y)
        return connection

    def _decode_generalization(self, elem) -> Generalization:
        generalization = Generalization(
            id=self._id(elem),
            parent_id=get_str(elem, "parentId", ""),
            position=self._position(elem),
            size=self._size(elem, self.config.generalization_default_size),
            is_total=get_bool(elem, "isTotal"),
        )
        for child in children(elem, "childId"):
            child_id = (child.text or "").strip()
            if child_id:
                generalization.child_ids.append(child_id)
        return generalization

    def _decode_line(self, elem) -> LineShape:
        return LineShape(
            id=self._id(elem),
            points=parse_points(elem.get("points")),
            stroke_width=get_float(elem, "strokeWidth", self.config.default_stroke_width),
        )

    def _decode_arrow(self, elem) -> ArrowShape:
        arrow_id = self._id(elem)
        pointer = self.config.default_pointer_size
        return ArrowShape(
            id=arrow_id,
            type=get_enum(elem, "type", ArrowType, ArrowType.RIGHT, self.logger, arrow_id),
            points=parse_points(elem.get("points")),
            stroke_width=get_float(elem, "strokeWidth", self.config.default_stroke_width),
            pointer_length=get_float(elem, "pointerLength", pointer),
            pointer_width=get_float(elem, "pointerWidth", pointer),
        )

    # ---- References ----

    def _missing(self, element_id: str, field_name: str, ref_id: Optional[str]) -> None:
        if self.config.strict_references:
            raise MissingRequiredReference(element_id, field_name, ref_id)
        self.logger.warn_missing_reference(element_id, field_name, ref_id)

    def _check_all(self, element_id: str, field_name: str, refs: Iterable[Optional[str]], known: Set[str]) -> None:
        for ref in refs:
            # An empty reference means "not set", which is not a dangling id
            if ref and ref not in known:
                self._missing(element_id, field_name, ref)

    def _check_references(self, diagram: Diagram) -> None:
        """Record (or raise on) references to ids that the document does not define"""
        entity_ids = {e.id for e in diagram.entities}
        relationship_ids = {r.id for r in diagram.relationships}
        node_ids = entity_ids | relationship_ids

        for relationship in diagram.relationships:
            self._check_all(relationship.id, "entityId", relationship.entity_ids, node_ids)
        for attribute in diagram.attributes:
            if attribute.entity_id:
                self._check_all(attribute.id, "entityId", [attribute.entity_id], entity_ids)
            if attribute.relationship_id:
                self._check_all(attribute.id, "relationshipId", [attribute.relationship_id], relationship_ids)
        for connection in diagram.connections:
            self._check_all(connection.id, "fromId", [connection.from_id], node_ids)
            self._check_all(connection.id, "toId", [connection.to_id], node_ids)
        for generalization in diagram.generalizations:
            self._check_all(generalization.id, "parentId", [generalization.parent_id], entity_ids)
            self._check_all(generalization.id, "childId", generalization.child_ids, entity_ids)


def serialize_standard(
    diagram: Diagram,
    logger: Optional[ConversionLogger] = None,
    config: Optional[ConversionConfig] = None,
) -> str:
    """Serialize ``diagram`` to standard dialect XML text"""
    return StandardCodec(logger=logger, config=config).encode(diagram)


def parse_standard(
    text: str,
    logger: Optional[ConversionLogger] = None,
    config: Optional[ConversionConfig] = None,
) -> Diagram:
    """Parse standard dialect XML text (root must be <ERDiagram>)"""
    return StandardCodec(logger=logger, config=config).decode(text)
