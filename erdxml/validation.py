"""
Advisory ER-rule checks

Issues are reported, never raised; a diagram with issues still converts.
"""
from dataclasses import dataclass
from typing import List

from .model.diagram import Attribute, Connection, Diagram, Entity, Relationship


@dataclass
class ValidationIssue:
    element_id: str
    message: str
    severity: str = "warning"


def _entity_attributes(entity: Entity, diagram: Diagram) -> list:
    """Own attributes plus canvas attributes drawn for the entity"""
    listed = {a.id for a in entity.attributes}
    return list(entity.attributes) + [
        a for a in diagram.attributes if a.entity_id == entity.id and a.id not in listed
    ]


def validate_entity(entity: Entity, diagram: Diagram) -> List[str]:
    messages = []
    attributes = _entity_attributes(entity, diagram)
    if not attributes:
        messages.append("Entity must have at least one attribute")
    if not any(a.is_key for a in attributes):
        messages.append("Entity must have at least one key attribute")
    if entity.is_weak and not any(a.is_discriminant for a in attributes):
        messages.append("Weak entity must have a discriminant attribute")
    return messages


def validate_relationship(relationship: Relationship, diagram: Diagram) -> List[str]:
    messages = []
    if len(relationship.entity_ids) < 2:
        messages.append("Relationship must connect at least 2 entities")
    dangling = relationship.dangling_keys()
    if dangling:
        messages.append(
            "Cardinality/participation given for non-participants: " + ", ".join(dangling)
        )
    return messages


def validate_attribute(attribute: Attribute, diagram: Diagram) -> List[str]:
    messages = []
    if not attribute.entity_id and not attribute.relationship_id:
        messages.append("Attribute must connect to exactly one entity or relationship")
    elif attribute.entity_id and attribute.relationship_id:
        messages.append("Attribute cannot connect to both entity and relationship")
    if attribute.is_key and attribute.is_derived:
        messages.append("Attribute cannot be both key and derived")
    if attribute.is_discriminant and attribute.entity_id:
        owner = diagram.find_entity(attribute.entity_id)
        if owner is not None and not owner.is_weak:
            messages.append("Discriminant only valid for weak entity attributes")
    return messages


def validate_connection(connection: Connection, diagram: Diagram) -> List[str]:
    messages = []
    if diagram.find_node(connection.from_id) is None:
        messages.append("Connection source element does not exist")
    if diagram.find_node(connection.to_id) is None:
        messages.append("Connection target element does not exist")
    return messages


def validate_diagram(diagram: Diagram) -> List[ValidationIssue]:
    """
    Check a diagram against the ER modelling rules

    Returns:
        One issue per offending element, its messages joined with '; '
    """
    issues: List[ValidationIssue] = []
    checks = (
        (diagram.entities, validate_entity),
        (diagram.relationships, validate_relationship),
        (diagram.attributes, validate_attribute),
        (diagram.connections, validate_connection),
    )
    for elements, check in checks:
        for element in elements:
            messages = check(element, diagram)
            if messages:
                issues.append(ValidationIssue(element.id, "; ".join(messages)))
    return issues
