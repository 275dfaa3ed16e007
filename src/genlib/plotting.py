"""Static charts of built family trees."""

from pathlib import Path
import logging

import matplotlib.pyplot as plt
import networkx as nx

from .tree import FamilyTree, FamilyTreeNode, LinkCategory, NodeRole


logger = logging.getLogger(__name__)

SEX_COLORS = {"M": "lightblue", "F": "lightpink"}
DEFAULT_COLOR = "lightgray"

EDGE_STYLES = {
    LinkCategory.PARENT_CHILD: {"style": "solid", "edge_color": "darkgray", "arrows": True},
    LinkCategory.SPOUSAL: {"style": "dashed", "edge_color": "gray", "arrows": False},
    LinkCategory.SIBLING: {"style": "dotted", "edge_color": "lightgray", "arrows": False},
}


def node_label(node: FamilyTreeNode) -> str:
    """Given name, surname and life years on three lines."""
    person = node.person
    birth_year = person.birth_date.year if person.birth_date and person.birth_date.year else ""
    death_year = person.death_date.year if person.death_date and person.death_date.year else ""
    return f"{person.given_name or ''}\n{person.surname or ''}\n{birth_year}-{death_year}"


def plot_tree(tree: FamilyTree, output_path: Path | str | None = None) -> plt.Figure:
    """
    Draw a family tree at the builder's coordinates.

    Ancestors appear above the root and descendants below. Nodes are
    coloured by sex and the root is outlined. Parent-child links are solid
    arrows, spousal links dashed, sibling links dotted.

    Args:
        tree: A tree from build_tree()
        output_path: File to save to (format from the suffix). If None, displays interactively.
    """
    G = nx.DiGraph()
    for node in tree.nodes:
        G.add_node(node.person_id)
    for link in tree.links:
        G.add_edge(link.source, link.target, category=link.category)

    # Generation offsets grow downward, matplotlib's y grows upward
    pos = {node.person_id: (node.x, -node.y) for node in tree.nodes}
    width = max(len(tree.generation(g)) for g in tree.generations()) if tree.nodes else 1
    height = len(tree.generations()) or 1

    fig, ax = plt.subplots(figsize=(max(6, 2.5 * width), max(4, 2 * height)))

    nx.draw_networkx_nodes(
        G,
        pos,
        ax=ax,
        node_shape="s",
        node_size=2500,
        node_color=[SEX_COLORS.get(n.person.sex, DEFAULT_COLOR) for n in tree.nodes],
        edgecolors=["black" if n.role is NodeRole.ROOT else "white" for n in tree.nodes],
        linewidths=[2.0 if n.role is NodeRole.ROOT else 0.5 for n in tree.nodes],
        nodelist=[n.person_id for n in tree.nodes],
    )
    nx.draw_networkx_labels(
        G, pos, ax=ax, labels={n.person_id: node_label(n) for n in tree.nodes}, font_size=7
    )

    for category, style in EDGE_STYLES.items():
        edges = [(l.source, l.target) for l in tree.links if l.category is category]
        if edges:
            nx.draw_networkx_edges(G, pos, ax=ax, edgelist=edges, width=1.0, node_size=2500, **style)

    root = tree.get_node(tree.root_id)
    title = root.person.full_name() if root else f"Person {tree.root_id}"
    ax.set_title(f"Family tree of {title} ({len(tree.nodes)} people, {len(tree.links)} links)")
    ax.axis("off")
    fig.tight_layout()

    if output_path:
        fig.savefig(output_path, dpi=150, bbox_inches="tight")
        logger.info("Tree chart saved to %s", output_path)
    else:
        plt.show()

    return fig
