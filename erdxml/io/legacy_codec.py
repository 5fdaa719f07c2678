"""
Legacy dialect codec

Reads and writes ``<ERDatabaseModel>`` documents of the desktop application:
numeric ids, a logical ``ERDatabaseSchema`` section split from the visual
``ERDatabaseDiagram`` section, center-based integer positions, and relationship
set tags inferred from the branch cardinalities
"""
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from lxml import etree as ET

from ..config import ConversionConfig, default_config
from ..errors import MalformedDocument, MissingRequiredReference
from ..geom.edges import box_of, closest_edge, connection_point
from ..geom.routing import orthogonal_path
from ..logger import ConversionLogger
from ..model.diagram import (
    Attribute, Cardinality, Connection, ConnectionStyle, Diagram, Entity, EntityAttribute,
    Generalization, Participation, Position, Relationship, Size,
)
from .xml_utils import (
    children, first_child, format_bool, generate_id, get_bool, get_float, get_str, local_tag,
    parse_xml, round_half_up, to_text, xml_text_guard,
)

ROOT_TAG = "ERDatabaseModel"
TARGET_NAME = "legacy format"

STRONG_ENTITY_TAG = "StrongEntitySet"
WEAK_ENTITY_TAG = "WeakEntitySet"
ENTITY_TAGS = (STRONG_ENTITY_TAG, WEAK_ENTITY_TAG)
ATTRIBUTE_TAG = "SimpleAttribute"
BRANCH_TAG = "RelationshipSetBranch"
GENERALIZATION_TAG = "Generalization"
TOTAL_GENERALIZATION_TAG = "TotalGeneralization"
GENERALIZATION_TAGS = (GENERALIZATION_TAG, TOTAL_GENERALIZATION_TAG)


class LegacyRelationshipType(str, Enum):
    """Relationship set kinds of the legacy dialect"""
    ONE_TO_ONE = "OneToOne"
    ONE_TO_N = "OneToN"
    N_TO_N = "NToN"
    IDENTIFYING_ONE_TO_ONE = "IdentifyingOneToOne"
    IDENTIFYING_ONE_TO_N = "IdentifyingOneToN"

    @property
    def tag(self) -> str:
        """Element name used in the document"""
        if self is LegacyRelationshipType.IDENTIFYING_ONE_TO_ONE:
            return "IdentifyingRelationshipSetOneToOne"
        if self is LegacyRelationshipType.IDENTIFYING_ONE_TO_N:
            return "IdentifyingRelationshipSetOneToN"
        return f"RelationshipSet{self.value}"


RELATIONSHIP_TAGS = tuple(t.tag for t in LegacyRelationshipType)


class LegacyIdMap:
    """
    Bijective map from canonical string ids to legacy integer ids

    Integers are assigned 1, 2, 3... in first-seen order. Built once per encode call.
    """

    def __init__(self):
        self._ids: Dict[str, int] = {}
        self._keys: Dict[int, str] = {}
        self._next = 1

    @staticmethod
    def branch_key(relationship_id: str, index: int) -> str:
        """Synthetic key of a relationship branch, distinct from every element id"""
        return f"{relationship_id}_branch_{index}"

    def get(self, key: str) -> int:
        """Legacy id of ``key``, assigning the next integer on first use"""
        legacy_id = self._ids.get(key)
        if legacy_id is None:
            legacy_id = self._next
            self._next += 1
            self._ids[key] = legacy_id
            self._keys[legacy_id] = key
        return legacy_id

    def key_of(self, legacy_id: int) -> Optional[str]:
        """Canonical id that was assigned ``legacy_id``"""
        return self._keys.get(legacy_id)

    def __contains__(self, key: str) -> bool:
        return key in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def last_id(self) -> int:
        """Highest id assigned so far (0 when none)"""
        return self._next - 1


def infer_relationship_type(
    relationship: Relationship,
    participant_ids: Optional[List[str]] = None,
) -> LegacyRelationshipType:
    """
    Relationship set kind implied by the branch cardinalities

    A missing cardinality counts as '1' and a missing participation as partial.
    Anything other than a binary 1:1 or 1:N relationship is NToN, which has no
    identifying variant.

    Args:
        relationship: Relationship to classify
        participant_ids: Branch ids to consider (defaults to ``relationship.entity_ids``)

    Returns:
        Inferred type
    """
    ids = relationship.entity_ids if participant_ids is None else participant_ids
    if not ids:
        return LegacyRelationshipType.ONE_TO_ONE

    cardinalities = [relationship.cardinality_of(i) for i in ids]
    one_count = sum(1 for c in cardinalities if c is Cardinality.ONE)
    n_count = sum(1 for c in cardinalities if c.is_many)
    has_total = any(relationship.participation_of(i) is Participation.TOTAL for i in ids)

    if len(ids) == 2 and one_count == 2:
        return LegacyRelationshipType.IDENTIFYING_ONE_TO_ONE if has_total else LegacyRelationshipType.ONE_TO_ONE
    if len(ids) == 2 and one_count == 1 and n_count == 1:
        return LegacyRelationshipType.IDENTIFYING_ONE_TO_N if has_total else LegacyRelationshipType.ONE_TO_N
    return LegacyRelationshipType.N_TO_N


class LegacyCodec:
    """Encoder/decoder for the legacy dialect"""

    def __init__(self, logger: Optional[ConversionLogger] = None, config: Optional[ConversionConfig] = None):
        """
        Args:
            logger: ConversionLogger instance (a fresh one is created if None)
            config: ConversionConfig instance (uses default_config if None)
        """
        self.config = config or default_config
        self.logger = logger or ConversionLogger()

    def _missing(self, element_id: Optional[str], field_name: str, ref_id: Optional[str]) -> None:
        if self.config.strict_references:
            raise MissingRequiredReference(element_id, field_name, ref_id)
        self.logger.warn_missing_reference(element_id, field_name, ref_id)

    # ---- Encode ----

    def encode(self, diagram: Diagram) -> str:
        """
        Serialize a diagram to legacy dialect XML text

        Args:
            diagram: Diagram to write (not modified)

        Returns:
            XML document with declaration

        Raises:
            UnserializableText: When a name holds characters XML 1.0 cannot represent
        """
        self._report_dropped(diagram)
        with xml_text_guard():
            root = self._build_tree(diagram)
        return to_text(root, pretty_print=self.config.pretty_print)

    def _build_tree(self, diagram: Diagram) -> ET._Element:
        ids = LegacyIdMap()

        root = ET.Element(ROOT_TAG)
        schema = ET.SubElement(root, "ERDatabaseSchema", name=self.config.legacy_schema_name)

        entity_sets = ET.SubElement(schema, "EntitySets")
        for entity in diagram.entities:
            self._encode_entity(entity_sets, entity, diagram, ids)

        relationship_sets = ET.SubElement(schema, "RelationshipSets")
        relationship_types: Dict[str, LegacyRelationshipType] = {}
        for relationship in diagram.relationships:
            relationship_types[relationship.id] = self._encode_relationship(
                relationship_sets, relationship, diagram, ids
            )

        generalizations = ET.SubElement(schema, "Generalizations")
        for generalization in diagram.generalizations:
            self._encode_generalization(generalizations, generalization, diagram, ids)

        layout = ET.SubElement(root, "ERDatabaseDiagram")
        for entity in diagram.entities:
            tag = WEAK_ENTITY_TAG if entity.is_weak else STRONG_ENTITY_TAG
            self._encode_position(layout, tag, ids.get(entity.id), entity.position, entity.size)
        for relationship in diagram.relationships:
            tag = relationship_types[relationship.id].tag
            self._encode_position(layout, tag, ids.get(relationship.id), relationship.position, relationship.size)
        for generalization in diagram.generalizations:
            tag = TOTAL_GENERALIZATION_TAG if generalization.is_total else GENERALIZATION_TAG
            self._encode_position(
                layout, tag, ids.get(generalization.id), generalization.position, generalization.size
            )
        for attribute in diagram.attributes:
            if attribute.id not in ids:
                # Not part of any schema attribute list: nothing for the position to refer to
                self.logger.warn_lossy_conversion(attribute.id, "attribute without a known owner", TARGET_NAME)
                continue
            width, height = self.config.attribute_size(attribute.name)
            self._encode_position(layout, ATTRIBUTE_TAG, ids.get(attribute.id), attribute.position, Size(width, height))

        # lastId is only known once every element has been numbered
        schema.set("lastId", str(ids.last_id))
        return root

    def _report_dropped(self, diagram: Diagram) -> None:
        """Log what the legacy dialect cannot hold"""
        if diagram.connections:
            self.logger.info(
                f"{len(diagram.connections)} connection(s) not written to {TARGET_NAME}; "
                "they are rebuilt from relationship branches on import"
            )
        for line in diagram.lines:
            self.logger.warn_lossy_conversion(line.id, "line shape", TARGET_NAME)
        for arrow in diagram.arrows:
            self.logger.warn_lossy_conversion(arrow.id, "arrow shape", TARGET_NAME)
        for node in diagram.nodes():
            if node.rotation:
                self.logger.warn_lossy_conversion(node.id, f"rotation {node.rotation}", TARGET_NAME)
            if any(a.is_composite or a.sub_attribute_ids for a in node.attributes):
                self.logger.warn_lossy_conversion(node.id, "composite attribute structure", TARGET_NAME)
        for relationship in diagram.relationships:
            if relationship.is_weak:
                self.logger.warn_lossy_conversion(relationship.id, "weak relationship flag", TARGET_NAME)
        for attribute in diagram.attributes:
            if attribute.is_composite or attribute.sub_attribute_ids or attribute.parent_attribute_id:
                self.logger.warn_lossy_conversion(attribute.id, "composite attribute structure", TARGET_NAME)

    @staticmethod
    def _schema_attributes(owner_id: str, own: List[EntityAttribute], diagram: Diagram) -> list:
        """Owner's attribute list followed by its canvas attributes not already listed"""
        listed = {a.id for a in own}
        extra = [
            a for a in diagram.attributes
            if a.owner_id == owner_id and a.id not in listed
        ]
        return list(own) + extra

    def _encode_attributes(self, parent, attributes: list, ids: LegacyIdMap) -> None:
        container = ET.SubElement(parent, "Attributes")
        for attr in attributes:
            ET.SubElement(container, ATTRIBUTE_TAG, {
                "id": str(ids.get(attr.id)),
                "name": attr.name,
                "multiValued": format_bool(attr.is_multivalued),
                "derived": format_bool(attr.is_derived),
            })

    @staticmethod
    def _encode_refs(parent, tag: str, attributes: list, ids: LegacyIdMap) -> None:
        if not attributes:
            return
        container = ET.SubElement(parent, tag)
        for attr in attributes:
            ET.SubElement(container, ATTRIBUTE_TAG, refid=str(ids.get(attr.id)))

    def _encode_entity(self, parent, entity: Entity, diagram: Diagram, ids: LegacyIdMap) -> None:
        tag = WEAK_ENTITY_TAG if entity.is_weak else STRONG_ENTITY_TAG
        elem = ET.SubElement(parent, tag, id=str(ids.get(entity.id)), name=entity.name)
        attributes = self._schema_attributes(entity.id, entity.attributes, diagram)
        self._encode_attributes(elem, attributes, ids)
        self._encode_refs(elem, "PrimaryKey", [a for a in attributes if a.is_key], ids)
        self._encode_refs(elem, "Discriminant", [a for a in attributes if a.is_discriminant], ids)

    def _entity_ref_tag(self, diagram: Diagram, ref_id: str) -> str:
        entity = diagram.find_entity(ref_id)
        return WEAK_ENTITY_TAG if entity is not None and entity.is_weak else STRONG_ENTITY_TAG

    def _encode_relationship(
        self,
        parent,
        relationship: Relationship,
        diagram: Diagram,
        ids: LegacyIdMap,
    ) -> LegacyRelationshipType:
        node_ids = diagram.node_ids()
        participants: List[Tuple[int, str]] = []
        for index, entity_id in enumerate(relationship.entity_ids):
            if entity_id not in node_ids:
                self._missing(relationship.id, "entityId", entity_id)
                continue
            participants.append((index, entity_id))

        # The type follows every listed participant, dangling ones included
        rel_type = infer_relationship_type(relationship)
        if rel_type is LegacyRelationshipType.N_TO_N and any(
            relationship.participation_of(entity_id) is Participation.TOTAL for entity_id in relationship.entity_ids
        ):
            self.logger.warn_relationship_degraded(
                relationship.id,
                len(relationship.entity_ids),
                [relationship.cardinality_of(entity_id).value for entity_id in relationship.entity_ids],
            )

        elem = ET.SubElement(parent, rel_type.tag, id=str(ids.get(relationship.id)), name=relationship.name)
        self._encode_attributes(elem, self._schema_attributes(relationship.id, relationship.attributes, diagram), ids)

        branches = ET.SubElement(elem, "Branches")
        for index, entity_id in participants:
            branch = ET.SubElement(branches, BRANCH_TAG, {
                "id": str(ids.get(LegacyIdMap.branch_key(relationship.id, index))),
                "cardinality": relationship.cardinality_of(entity_id).value,
                "totalParticipation": format_bool(
                    relationship.participation_of(entity_id) is Participation.TOTAL
                ),
                "role": "",
            })
            ET.SubElement(branch, self._entity_ref_tag(diagram, entity_id), refid=str(ids.get(entity_id)))
        return rel_type

    def _encode_generalization(
        self,
        parent,
        generalization: Generalization,
        diagram: Diagram,
        ids: LegacyIdMap,
    ) -> None:
        tag = TOTAL_GENERALIZATION_TAG if generalization.is_total else GENERALIZATION_TAG
        elem = ET.SubElement(parent, tag, {
            "id": str(ids.get(generalization.id)),
            "total": format_bool(generalization.is_total),
        })

        parent_elem = ET.SubElement(elem, "Parent")
        if diagram.find_entity(generalization.parent_id) is not None:
            ET.SubElement(
                parent_elem,
                self._entity_ref_tag(diagram, generalization.parent_id),
                refid=str(ids.get(generalization.parent_id)),
            )
        else:
            self._missing(generalization.id, "parentId", generalization.parent_id)

        children_elem = ET.SubElement(elem, "Children")
        for child_id in generalization.child_ids:
            if diagram.find_entity(child_id) is None:
                self._missing(generalization.id, "childId", child_id)
                continue
            ET.SubElement(children_elem, self._entity_ref_tag(diagram, child_id), refid=str(ids.get(child_id)))

    @staticmethod
    def _encode_position(parent, tag: str, legacy_id: int, position: Position, size: Size) -> None:
        elem = ET.SubElement(parent, tag, refid=str(legacy_id))
        center_x = position.x + size.width / 2.0
        center_y = position.y + size.height / 2.0
        ET.SubElement(elem, "Position", x=str(round_half_up(center_x)), y=str(round_half_up(center_y)))

    # ---- Decode ----

    def decode(self, text: str) -> Diagram:
        """
        Parse legacy dialect XML text

        Args:
            text: XML document

        Returns:
            Newly built Diagram with deterministic ids (entity-<n>, relationship-<n>, ...)

        Raises:
            MalformedDocument: Not well-formed XML, wrong root, or no ERDatabaseSchema
        """
        return self.decode_element(parse_xml(text))

    def decode_element(self, root) -> Diagram:
        """Build a Diagram from an already parsed root element"""
        tag = local_tag(root)
        if tag != ROOT_TAG:
            raise MalformedDocument("Invalid legacy XML", f"root element must be <{ROOT_TAG}>, got <{tag}>")
        schema = first_child(root, "ERDatabaseSchema")
        if schema is None:
            raise MalformedDocument("Invalid legacy XML", "missing <ERDatabaseSchema> section")

        diagram = Diagram()
        # Canonical ids handed out so far; duplicate or missing legacy ids get a generated one
        used: Set[str] = set()
        # legacy id -> element; the first element carrying a legacy id owns it
        entities: Dict[str, Entity] = {}
        relationships: Dict[str, Relationship] = {}
        generalizations: Dict[str, Generalization] = {}
        # legacy attribute id -> (attribute, owner)
        attributes: Dict[str, Tuple[EntityAttribute, object]] = {}

        section = first_child(schema, "EntitySets")
        for elem in children(section, *ENTITY_TAGS) if section is not None else []:
            legacy_id, entity_id = self._canonical_id(elem, "entity", used)
            entity = self._decode_entity(elem, entity_id, attributes, used)
            if legacy_id is not None:
                entities.setdefault(legacy_id, entity)
            diagram.entities.append(entity)

        section = first_child(schema, "RelationshipSets")
        rel_elems = children(section, *RELATIONSHIP_TAGS) if section is not None else []
        # Relationships may take part in other relationships, so create them all before reading branches
        pending: List[Tuple[object, Relationship]] = []
        for elem in rel_elems:
            legacy_id, relationship_id = self._canonical_id(elem, "relationship", used)
            relationship = Relationship(
                id=relationship_id,
                name=get_str(elem, "name", "Relationship"),
                size=Size(*self.config.legacy_relationship_size),
            )
            relationship.attributes = [
                attr for _, attr in self._decode_attributes(elem, relationship, attributes, used)
            ]
            if legacy_id is not None:
                relationships.setdefault(legacy_id, relationship)
            diagram.relationships.append(relationship)
            pending.append((elem, relationship))
        branch_refs: Dict[str, List[Tuple[int, str]]] = {}
        for elem, relationship in pending:
            branch_refs[relationship.id] = self._decode_branches(elem, relationship, entities, relationships)

        section = first_child(schema, "Generalizations")
        for elem in children(section, *GENERALIZATION_TAGS) if section is not None else []:
            legacy_id, generalization_id = self._canonical_id(elem, "generalization", used)
            generalization = self._decode_generalization(elem, generalization_id, entities)
            if legacy_id is not None:
                generalizations.setdefault(legacy_id, generalization)
            diagram.generalizations.append(generalization)

        layout = first_child(root, "ERDatabaseDiagram")
        if layout is not None:
            self._decode_layout(layout, diagram, entities, relationships, generalizations, attributes)
        else:
            self.logger.info("No <ERDatabaseDiagram> section; elements keep position (0, 0)")
        self._place_unpositioned_attributes(diagram)

        for relationship in diagram.relationships:
            self._rebuild_connections(diagram, relationship, branch_refs[relationship.id])

        self.logger.debug(
            f"Parsed legacy diagram: {len(diagram.entities)} entities, "
            f"{len(diagram.relationships)} relationships, {len(diagram.generalizations)} generalizations"
        )
        return diagram

    def _canonical_id(self, elem, prefix: str, used: Set[str]) -> Tuple[Optional[str], str]:
        """
        Legacy id of ``elem`` and the canonical id it decodes to

        ``<prefix>-<legacy id>`` unless the legacy id is missing or already taken in
        this document, in which case a generated id is used.

        Returns:
            (legacy id or None, canonical id)
        """
        raw = get_str(elem, "id")
        legacy_id = raw.strip() if raw is not None and raw.strip() else None
        canonical = f"{prefix}-{legacy_id}" if legacy_id is not None else None
        if canonical is None or canonical in used:
            fallback = f"{prefix}-{generate_id()}"
            self.logger.warn_invalid_value(canonical or f"<{local_tag(elem)}>", "id", raw, fallback)
            canonical = fallback
        used.add(canonical)
        return legacy_id, canonical

    def _decode_attributes(
        self,
        elem,
        owner,
        attributes: Dict[str, Tuple[EntityAttribute, object]],
        used: Set[str],
    ) -> List[Tuple[Optional[str], EntityAttribute]]:
        """(legacy id, attribute) pairs of the owner's <Attributes> section"""
        result: List[Tuple[Optional[str], EntityAttribute]] = []
        container = first_child(elem, "Attributes")
        if container is None:
            return result
        for attr_elem in children(container, ATTRIBUTE_TAG):
            legacy_id, attribute_id = self._canonical_id(attr_elem, "attribute", used)
            attr = EntityAttribute(
                id=attribute_id,
                name=get_str(attr_elem, "name", "Attribute"),
                is_multivalued=get_bool(attr_elem, "multiValued"),
                is_derived=get_bool(attr_elem, "derived"),
            )
            if legacy_id is not None:
                attributes.setdefault(legacy_id, (attr, owner))
            result.append((legacy_id, attr))
        return result

    @staticmethod
    def _refids(elem, section: str) -> set:
        container = first_child(elem, section)
        if container is None:
            return set()
        return {get_str(r, "refid").strip() for r in children(container, ATTRIBUTE_TAG) if get_str(r, "refid")}

    def _decode_entity(
        self,
        elem,
        entity_id: str,
        attributes: Dict[str, Tuple[EntityAttribute, object]],
        used: Set[str],
    ) -> Entity:
        entity = Entity(
            id=entity_id,
            name=get_str(elem, "name", "Entity"),
            size=Size(*self.config.legacy_entity_size),
            is_weak=local_tag(elem) == WEAK_ENTITY_TAG,
        )
        owned = self._decode_attributes(elem, entity, attributes, used)
        entity.attributes = [attr for _, attr in owned]
        keys = self._refids(elem, "PrimaryKey")
        discriminants = self._refids(elem, "Discriminant")
        for attr_legacy_id, attr in owned:
            # refids resolve to the first attribute carrying the legacy id
            if attr_legacy_id is None or attributes[attr_legacy_id][0] is not attr:
                continue
            attr.is_key = attr_legacy_id in keys
            attr.is_discriminant = attr_legacy_id in discriminants
        return entity

    @staticmethod
    def _decode_cardinality(raw: Optional[str]) -> Cardinality:
        if raw is None or raw.strip() == "":
            return Cardinality.ONE
        raw = raw.strip()
        if raw == Cardinality.ONE.value:
            return Cardinality.ONE
        if raw == Cardinality.N.value:
            return Cardinality.N
        return Cardinality.M

    def _decode_branches(
        self,
        elem,
        relationship: Relationship,
        entities: Dict[str, Entity],
        relationships: Dict[str, Relationship],
    ) -> List[Tuple[int, str]]:
        """Fill participants from <Branches>; returns (branch index, participant id) pairs"""
        refs: List[Tuple[int, str]] = []
        container = first_child(elem, "Branches")
        if container is None:
            return refs
        for index, branch in enumerate(children(container, BRANCH_TAG)):
            ref_elem = next((c for c in children(branch) if c.get("refid")), None)
            refid = ref_elem.get("refid").strip() if ref_elem is not None else None
            participant = entities.get(refid) or relationships.get(refid)
            if participant is None:
                self._missing(relationship.id, "branch refid", refid)
                continue
            relationship.entity_ids.append(participant.id)
            relationship.cardinalities[participant.id] = self._decode_cardinality(branch.get("cardinality"))
            relationship.participations[participant.id] = (
                Participation.TOTAL if get_bool(branch, "totalParticipation") else Participation.PARTIAL
            )
            refs.append((index, participant.id))
        return refs

    def _decode_generalization(self, elem, generalization_id: str, entities: Dict[str, Entity]) -> Generalization:
        generalization = Generalization(
            id=generalization_id,
            parent_id="",
            size=Size(*self.config.legacy_generalization_size),
            is_total=local_tag(elem) == TOTAL_GENERALIZATION_TAG or get_bool(elem, "total"),
        )
        parent_elem = first_child(elem, "Parent")
        parent_ref = first_child(parent_elem, *ENTITY_TAGS) if parent_elem is not None else None
        parent_refid = get_str(parent_ref, "refid") if parent_ref is not None else None
        if parent_refid in entities:
            generalization.parent_id = entities[parent_refid].id
        else:
            self._missing(generalization.id, "parentId", parent_refid)

        children_elem = first_child(elem, "Children")
        for child_ref in children(children_elem, *ENTITY_TAGS) if children_elem is not None else []:
            refid = get_str(child_ref, "refid")
            if refid in entities:
                generalization.child_ids.append(entities[refid].id)
            else:
                self._missing(generalization.id, "childId", refid)
        return generalization

    def _center_of(self, elem, owner_id: str) -> Optional[Tuple[float, float]]:
        pos = first_child(elem, "Position")
        if pos is None:
            self.logger.debug(f"[{owner_id}] no <Position> in diagram section")
            return None
        return (get_float(pos, "x", 0.0), get_float(pos, "y", 0.0))

    @staticmethod
    def _from_center(center: Tuple[float, float], size: Tuple[float, float]) -> Position:
        return Position(center[0] - size[0] / 2.0, center[1] - size[1] / 2.0)

    def _decode_layout(
        self,
        layout,
        diagram: Diagram,
        entities: Dict[str, Entity],
        relationships: Dict[str, Relationship],
        generalizations: Dict[str, Generalization],
        attributes: Dict[str, Tuple[EntityAttribute, object]],
    ) -> None:
        """Convert stored centers back to top-left positions"""
        for elem in children(layout):
            tag = local_tag(elem)
            refid = (elem.get("refid") or "").strip()

            if tag in ENTITY_TAGS:
                target = entities.get(refid)
            elif tag in RELATIONSHIP_TAGS:
                target = relationships.get(refid)
            elif tag in GENERALIZATION_TAGS:
                target = generalizations.get(refid)
            elif tag == ATTRIBUTE_TAG:
                self._decode_attribute_position(elem, refid, diagram, attributes)
                continue
            else:
                self.logger.debug(f"Skipping unknown diagram element <{tag}>")
                continue

            if target is None:
                self._missing(None, f"{tag} refid", refid)
                continue
            center = self._center_of(elem, target.id)
            if center is not None:
                target.position = self._from_center(center, (target.size.width, target.size.height))

    def _decode_attribute_position(
        self,
        elem,
        refid: str,
        diagram: Diagram,
        attributes: Dict[str, Tuple[EntityAttribute, object]],
    ) -> None:
        found = attributes.get(refid)
        if found is None:
            self._missing(None, "SimpleAttribute refid", refid)
            return
        attr, owner = found
        center = self._center_of(elem, attr.id)
        if center is None:
            return
        position = self._from_center(center, self.config.attribute_size(attr.name))

        existing = diagram.find_attribute(attr.id)
        if existing is not None:
            existing.position = position
            return
        diagram.attributes.append(self._canvas_attribute(attr, owner, position))

    @staticmethod
    def _canvas_attribute(attr: EntityAttribute, owner, position: Position) -> Attribute:
        is_entity = isinstance(owner, Entity)
        return Attribute(
            id=attr.id,
            name=attr.name,
            position=position,
            is_key=attr.is_key,
            is_discriminant=attr.is_discriminant,
            is_multivalued=attr.is_multivalued,
            is_derived=attr.is_derived,
            entity_id=owner.id if is_entity else None,
            relationship_id=None if is_entity else owner.id,
        )

    def _place_unpositioned_attributes(self, diagram: Diagram) -> None:
        """Give schema attributes without a stored position a canvas attribute right of the owner"""
        placed = {a.id for a in diagram.attributes}
        for owner in list(diagram.nodes()):
            for attr in owner.attributes:
                if attr.id in placed:
                    continue
                count = sum(1 for a in diagram.attributes if a.owner_id == owner.id)
                position = Position(
                    owner.position.x + owner.size.width + self.config.unplaced_attribute_gap,
                    owner.position.y + self.config.unplaced_attribute_top + count * self.config.unplaced_attribute_step,
                )
                diagram.attributes.append(self._canvas_attribute(attr, owner, position))
                placed.add(attr.id)

    def _rebuild_connections(self, diagram: Diagram, relationship: Relationship, refs: List[Tuple[int, str]]) -> None:
        """One orthogonal connection per branch whose participant is an entity"""
        legacy_id = relationship.id.split("-", 1)[-1]
        rel_box = box_of(relationship)
        for index, entity_id in refs:
            entity = diagram.find_entity(entity_id)
            if entity is None:
                continue
            entity_box = box_of(entity)
            from_point = closest_edge(rel_box.center, entity_box)
            to_point = closest_edge(entity_box.center, rel_box)
            start = connection_point(entity_box, from_point)
            end = connection_point(rel_box, to_point)
            diagram.connections.append(Connection(
                id=f"connection-{legacy_id}-{index}",
                from_id=entity.id,
                to_id=relationship.id,
                from_point=from_point,
                to_point=to_point,
                style=ConnectionStyle.ORTHOGONAL,
                cardinality=relationship.cardinality_of(entity_id),
                participation=relationship.participation_of(entity_id),
                points=orthogonal_path(
                    [start[0], start[1], end[0], end[1]], from_point, to_point, self.config.route_stub_length
                ),
            ))


def serialize_legacy(
    diagram: Diagram,
    logger: Optional[ConversionLogger] = None,
    config: Optional[ConversionConfig] = None,
) -> str:
    """Serialize ``diagram`` to legacy dialect XML text"""
    return LegacyCodec(logger=logger, config=config).encode(diagram)


def parse_legacy(
    text: str,
    logger: Optional[ConversionLogger] = None,
    config: Optional[ConversionConfig] = None,
) -> Diagram:
    """Parse legacy dialect XML text (root must be <ERDatabaseModel>)"""
    return LegacyCodec(logger=logger, config=config).decode(text)
