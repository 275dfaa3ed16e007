"""Data-quality checks over the family tree graph."""

import networkx as nx

from .dates import StructuredDate
from .graph import PARENT_OF


# Youngest plausible age of a parent at a child's birth
MIN_PARENT_AGE = 12


def _known(date: StructuredDate | None) -> StructuredDate | None:
    if date is None or date.is_unknown:
        return None
    return date


def validate_graph(G: nx.DiGraph) -> list[str]:
    """
    Validate the family tree graph for:
    - Cycles in parent-child relationships
    - Impossible ages (child born before parent, parent under 12)
    - Death before birth

    Only known dates are compared. Returns a list of warning messages.
    """
    warnings: list[str] = []

    parent_edges = [
        (u, v) for u, v, d in G.edges(data=True) if d.get("relationship_type") == PARENT_OF
    ]
    parent_graph = nx.DiGraph(parent_edges)

    try:
        cycle = nx.find_cycle(parent_graph, orientation="original")
        cycle_nodes = [edge[0] for edge in cycle]
        warnings.append(f"Cycle detected in parent-child relationships: {cycle_nodes}")
    except nx.NetworkXNoCycle:
        pass

    for parent, child in parent_edges:
        parent_data = G.nodes[parent]
        child_data = G.nodes[child]

        parent_birth = _known(parent_data.get("birth_date"))
        child_birth = _known(child_data.get("birth_date"))
        if parent_birth is None or child_birth is None:
            continue

        if child_birth < parent_birth:
            warnings.append(
                f"Impossible: {child_data.get('person_name')} born before parent "
                f"{parent_data.get('person_name')}"
            )
        elif child_birth.year - parent_birth.year < MIN_PARENT_AGE:
            warnings.append(
                f"Suspicious: {parent_data.get('person_name')} was less than {MIN_PARENT_AGE} years "
                f"old when {child_data.get('person_name')} was born"
            )

    for _, data in G.nodes(data=True):
        birth = _known(data.get("birth_date"))
        death = _known(data.get("death_date"))
        if birth is not None and death is not None and death < birth:
            warnings.append(f"Impossible: {data.get('person_name')} died before being born")

    return warnings
