"""Tests for relationship queries and the NetworkX snapshot."""

import pytest

from genlib.database import create_relationship
from genlib.graph import (
    PARENT_OF,
    SIBLING_OF,
    SPOUSE_OF,
    build_graph,
    children_of,
    neighbors,
    parents_of,
    siblings_of,
    spouses_of,
)
from genlib.models import RelationshipCategory


@pytest.fixture
def family(conn, add_person):
    """Father (1) + mother (2) -> children 3 and 4 (explicit siblings); 3 married to 5."""
    ids = [
        add_person("Johan", "Andersson", "M", birth="1820"),
        add_person("Maria", "Larsdotter", "F"),
        add_person("Erik", "Andersson", "M"),
        add_person("Anna", "Andersson", "F"),
        add_person("Karin", "Persdotter", "F"),
    ]
    father, mother, erik, anna, karin = ids
    with conn:
        create_relationship(conn, father, mother, RelationshipCategory.SPOUSE)
        for child in (erik, anna):
            create_relationship(conn, child, father, RelationshipCategory.PARENT_CHILD, parent_id=father)
            create_relationship(conn, mother, child, RelationshipCategory.PARENT_CHILD, parent_id=mother)
        create_relationship(conn, anna, erik, RelationshipCategory.SIBLING)
        create_relationship(conn, erik, karin, RelationshipCategory.SPOUSE)
    return ids


class TestQueries:
    """Tests for the kinship query helpers."""

    def test_parents_and_children(self, conn, family):
        father, mother, erik, anna, _ = family
        assert parents_of(conn, erik) == [father, mother]
        assert children_of(conn, father) == [erik, anna]
        assert children_of(conn, erik) == []

    def test_spouses_and_siblings(self, conn, family):
        father, mother, erik, anna, karin = family
        assert spouses_of(conn, mother) == [father]
        assert spouses_of(conn, erik) == [karin]
        assert siblings_of(conn, anna) == [erik]

    def test_neighbors(self, conn, family):
        father, mother, erik, anna, karin = family
        assert neighbors(conn, erik) == [father, mother, anna, karin]
        assert neighbors(conn, erik, RelationshipCategory.SPOUSE) == [karin]
        assert neighbors(conn, erik, "parent_child") == [father, mother]

    def test_unknown_person_has_no_neighbors(self, conn, family):
        assert neighbors(conn, 999) == []


class TestBuildGraph:
    """Tests for the NetworkX snapshot of the store."""

    def test_nodes(self, conn, family):
        G = build_graph(conn)
        assert G.number_of_nodes() == 5
        assert G.nodes[family[0]]["person_name"] == "Johan Andersson"
        assert G.nodes[family[0]]["birth_date"].year == 1820
        assert G.nodes[family[1]]["sex"] == "F"

    def test_edges(self, conn, family):
        father, mother, erik, anna, karin = family
        G = build_graph(conn)
        assert G.number_of_edges() == 7
        assert G.edges[father, erik]["relationship_type"] == PARENT_OF
        assert G.edges[mother, anna]["relationship_type"] == PARENT_OF
        assert not G.has_edge(erik, father)
        assert G.edges[father, mother]["relationship_type"] == SPOUSE_OF
        assert G.edges[erik, anna]["relationship_type"] == SIBLING_OF
