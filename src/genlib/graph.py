"""Relationship queries and NetworkX graph building."""

from collections.abc import Iterable
import sqlite3

import networkx as nx

from .database import all_persons, all_relationships, relationships_of
from .models import Kinship, Relationship, RelationshipCategory


# Edge labels used in the NetworkX snapshot
PARENT_OF = "PARENT_OF"
SPOUSE_OF = "SPOUSE_OF"
SIBLING_OF = "SIBLING_OF"


def related_ids(relationships: Iterable[Relationship], person_id: int, kinship: Kinship) -> list[int]:
    """Ids of the people who are `kinship` to person_id, sorted."""
    return sorted(
        rel.other(person_id)
        for rel in relationships
        if rel.involves(person_id) and rel.role_of(person_id) is kinship
    )


def neighbors(
    conn: sqlite3.Connection, person_id: int, category: RelationshipCategory | None = None
) -> list[int]:
    """Everyone directly related to a person, optionally only through one category."""
    return sorted(
        rel.other(person_id)
        for rel in relationships_of(conn, person_id)
        if category is None or rel.category is RelationshipCategory(category)
    )


def parents_of(conn: sqlite3.Connection, person_id: int) -> list[int]:
    return related_ids(relationships_of(conn, person_id), person_id, Kinship.PARENT)


def children_of(conn: sqlite3.Connection, person_id: int) -> list[int]:
    return related_ids(relationships_of(conn, person_id), person_id, Kinship.CHILD)


def spouses_of(conn: sqlite3.Connection, person_id: int) -> list[int]:
    return related_ids(relationships_of(conn, person_id), person_id, Kinship.SPOUSE)


def siblings_of(conn: sqlite3.Connection, person_id: int) -> list[int]:
    """Explicitly stored siblings only; shared-parent siblings are derived by the tree builder."""
    return related_ids(relationships_of(conn, person_id), person_id, Kinship.SIBLING)


def build_graph(conn: sqlite3.Connection) -> nx.DiGraph:
    """
    Build a NetworkX directed graph from the database.

    Parent-child relationships become PARENT_OF edges from parent to child;
    spouse and sibling relationships become SPOUSE_OF / SIBLING_OF edges from
    the lower to the higher person id.
    """
    G = nx.DiGraph()

    for person in all_persons(conn):
        G.add_node(
            person.id,
            person_name=person.full_name(),
            sex=person.sex,
            birth_date=person.birth_date,
            death_date=person.death_date,
            given_name=person.given_name,
            surname=person.surname,
            directory_name=person.directory_name,
        )

    for rel in all_relationships(conn):
        if rel.category is RelationshipCategory.PARENT_CHILD:
            G.add_edge(rel.parent_id, rel.child_id, relationship_type=PARENT_OF, relationship_id=rel.id)
        elif rel.category is RelationshipCategory.SPOUSE:
            G.add_edge(*rel.pair, relationship_type=SPOUSE_OF, relationship_id=rel.id)
        else:
            G.add_edge(*rel.pair, relationship_type=SIBLING_OF, relationship_id=rel.id)

    return G
