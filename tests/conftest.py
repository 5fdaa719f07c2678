"""Shared fixtures: project root, sample paths and small diagrams."""

from pathlib import Path

import pytest

from erdxml.model import (
    Cardinality, Diagram, Entity, EntityAttribute, Participation, Position, Relationship, Size,
)

# Repository root (erdxml/)
ROOT_DIR = Path(__file__).resolve().parent.parent


@pytest.fixture
def sample_dir() -> Path:
    """Path to the sample/ directory."""
    return ROOT_DIR / "sample"


@pytest.fixture
def sample_standard_path(sample_dir: Path) -> Path:
    """Path to sample/sample_standard.xml."""
    path = sample_dir / "sample_standard.xml"
    if not path.exists():
        pytest.skip(f"Sample file not found: {path}")
    return path


@pytest.fixture
def sample_legacy_path(sample_dir: Path) -> Path:
    """Path to sample/sample_legacy.xml."""
    path = sample_dir / "sample_legacy.xml"
    if not path.exists():
        pytest.skip(f"Sample file not found: {path}")
    return path


@pytest.fixture
def binary_diagram() -> Diagram:
    """Two entities joined by a 1:N relationship, all at standard default sizes."""
    student = Entity(
        id="e1",
        name="Student",
        position=Position(100, 100),
        attributes=[
            EntityAttribute(id="a1", name="StudentID", is_key=True),
            EntityAttribute(id="a2", name="Name"),
        ],
    )
    course = Entity(
        id="e2",
        name="Course",
        position=Position(500, 100),
        size=Size(150, 80),
        attributes=[EntityAttribute(id="a3", name="CourseID", is_key=True)],
    )
    enrolls = Relationship(
        id="r1",
        name="Enrolls",
        position=Position(315, 100),
        entity_ids=["e1", "e2"],
        cardinalities={"e1": Cardinality.N, "e2": Cardinality.ONE},
        participations={"e1": Participation.TOTAL, "e2": Participation.PARTIAL},
    )
    return Diagram(entities=[student, course], relationships=[enrolls])
