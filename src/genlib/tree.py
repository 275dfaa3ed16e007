"""Build a generation-bounded, positioned family tree around one person."""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
import logging
import sqlite3

from .config import TreeConfig, check_generations
from .database import get_person, relationships_of
from .graph import related_ids
from .models import Kinship, Person, Relationship, RelationshipCategory


logger = logging.getLogger(__name__)


class NodeRole(str, Enum):
    ROOT = "root"
    ANCESTOR = "ancestor"
    DESCENDANT = "descendant"
    SIBLING = "sibling"
    SPOUSE = "spouse"


class LinkCategory(str, Enum):
    PARENT_CHILD = "parent_child"
    SPOUSAL = "spousal"
    SIBLING = "sibling"


_LINK_CATEGORIES = {
    RelationshipCategory.PARENT_CHILD: LinkCategory.PARENT_CHILD,
    RelationshipCategory.SPOUSE: LinkCategory.SPOUSAL,
    RelationshipCategory.SIBLING: LinkCategory.SIBLING,
}


@dataclass
class FamilyTreeNode:
    """
    A person placed in the tree.

    `generation` is relative to the root: negative for ancestors, positive
    for descendants. `position` is the left-to-right slot within the
    generation; `x`/`y` are layout coordinates with the root at (0, 0).
    """

    person: Person
    generation: int
    role: NodeRole
    position: int = 0
    x: float = 0.0
    y: float = 0.0

    @property
    def person_id(self) -> int:
        return self.person.id


@dataclass(frozen=True, order=True)
class FamilyTreeLink:
    """Parent-child links point parent -> child; the others low id -> high id."""

    source: int
    target: int
    category: LinkCategory


@dataclass
class FamilyTree:
    root_id: int
    max_generations: int
    nodes: list[FamilyTreeNode] = field(default_factory=list)
    links: list[FamilyTreeLink] = field(default_factory=list)
    # Persons who are their own ancestor, or both ancestor and descendant of the root
    cycles: list[int] = field(default_factory=list)

    def get_node(self, person_id: int) -> FamilyTreeNode | None:
        for node in self.nodes:
            if node.person_id == person_id:
                return node
        return None

    def generation(self, offset: int) -> list[FamilyTreeNode]:
        """Nodes of one generation, left to right."""
        return sorted((n for n in self.nodes if n.generation == offset), key=lambda n: n.position)

    def generations(self) -> dict[int, list[FamilyTreeNode]]:
        return {g: self.generation(g) for g in sorted({n.generation for n in self.nodes})}

    def bounds(self) -> tuple[float, float, float, float]:
        """(min_x, min_y, max_x, max_y) over all node positions."""
        if not self.nodes:
            return (0.0, 0.0, 0.0, 0.0)
        xs = [n.x for n in self.nodes]
        ys = [n.y for n in self.nodes]
        return (min(xs), min(ys), max(xs), max(ys))


class _TreeBuilder:
    def __init__(self, conn: sqlite3.Connection, root_id: int, max_generations: int, config: TreeConfig):
        self.conn = conn
        self.root_id = root_id
        self.max_generations = max_generations
        self.config = config
        self.nodes: dict[int, FamilyTreeNode] = {}
        self.cycles: set[int] = set()
        self._relationships: dict[int, set[Relationship]] = {}

    def relationships(self, person_id: int) -> set[Relationship]:
        if person_id not in self._relationships:
            self._relationships[person_id] = relationships_of(self.conn, person_id)
        return self._relationships[person_id]

    def related(self, person_id: int, kinship: Kinship) -> list[int]:
        return related_ids(self.relationships(person_id), person_id, kinship)

    def visit(self, person_id: int, generation: int, role: NodeRole) -> bool:
        """Add a node unless already present; True if it was added."""
        node = self.nodes.get(person_id)
        if node is not None:
            if self.closes_cycle(node.role, role):
                self.cycles.add(person_id)
            return False
        self.nodes[person_id] = FamilyTreeNode(get_person(self.conn, person_id), generation, role)
        return True

    @staticmethod
    def closes_cycle(placed: NodeRole, reached: NodeRole) -> bool:
        """
        True if reaching a placed person again means someone is their own ancestor.

        Meeting an ancestor again through another line of parents is pedigree
        collapse (cousin marriage and the like), not a cycle. A cycle is the
        root turning up among its own ancestors or descendants, or a person
        being both an ancestor and a descendant of the root.
        """
        lineal = {NodeRole.ANCESTOR, NodeRole.DESCENDANT}
        if placed is NodeRole.ROOT:
            return reached in lineal
        return {placed, reached} == lineal

    def expand(self, kinship: Kinship, step: int, role: NodeRole):
        """Breadth-first walk from the root through parents (step -1) or children (step +1)."""
        queue = deque([(self.root_id, 0)])
        while queue:
            person_id, generation = queue.popleft()
            if abs(generation) >= self.max_generations:
                continue
            for other_id in self.related(person_id, kinship):
                if self.visit(other_id, generation + step, role):
                    queue.append((other_id, generation + step))

    def add_siblings(self):
        # Other children of every ancestor
        for node in self.ordered_nodes():
            if node.role is not NodeRole.ANCESTOR:
                continue
            for child_id in self.related(node.person_id, Kinship.CHILD):
                self.visit(child_id, node.generation + 1, NodeRole.SIBLING)

        # Explicitly stored siblings of the root's line
        for node in self.ordered_nodes():
            if node.role not in (NodeRole.ROOT, NodeRole.ANCESTOR, NodeRole.DESCENDANT):
                continue
            for sibling_id in self.related(node.person_id, Kinship.SIBLING):
                self.visit(sibling_id, node.generation, NodeRole.SIBLING)

    def add_spouses(self):
        for node in self.ordered_nodes():
            if node.role is NodeRole.SPOUSE:
                continue
            for spouse_id in self.related(node.person_id, Kinship.SPOUSE):
                self.visit(spouse_id, node.generation, NodeRole.SPOUSE)

    def ordered_nodes(self) -> list[FamilyTreeNode]:
        return sorted(self.nodes.values(), key=lambda n: (n.generation, n.person_id))

    def collect_links(self) -> list[FamilyTreeLink]:
        """Every stored relationship between two persons in the tree."""
        links = set()
        for person_id in self.nodes:
            for rel in self.relationships(person_id):
                if rel.other(person_id) not in self.nodes:
                    continue
                if rel.category is RelationshipCategory.PARENT_CHILD:
                    source, target = rel.parent_id, rel.child_id
                else:
                    source, target = rel.pair
                links.add(FamilyTreeLink(source, target, _LINK_CATEGORIES[rel.category]))
        return sorted(links)

    def layout(self):
        """
        Order each generation and assign coordinates.

        Generations are placed top-down. Within a generation, persons with a
        parent in the generation above sort by their leftmost parent's slot,
        the rest come after; ties break on person id. Spouses are placed
        right after their partner.
        """
        cfg = self.config
        by_generation: dict[int, list[FamilyTreeNode]] = {}
        for node in self.nodes.values():
            by_generation.setdefault(node.generation, []).append(node)

        for generation in sorted(by_generation):
            members = by_generation[generation]

            def slot_key(node):
                slots = [
                    self.nodes[p].position
                    for p in self.related(node.person_id, Kinship.PARENT)
                    if p in self.nodes and self.nodes[p].generation == generation - 1
                ]
                return (0, min(slots), node.person_id) if slots else (1, 0, node.person_id)

            spouses = [n for n in members if n.role is NodeRole.SPOUSE]
            ordered = sorted((n for n in members if n.role is not NodeRole.SPOUSE), key=slot_key)

            for spouse in sorted(spouses, key=lambda n: n.person_id):
                partners = set(self.related(spouse.person_id, Kinship.SPOUSE))
                index = next(
                    (i for i, n in enumerate(ordered) if n.person_id in partners and n.role is not NodeRole.SPOUSE),
                    None,
                )
                if index is None:
                    ordered.append(spouse)
                    continue
                # After the partner and any spouses already placed next to them
                index += 1
                while index < len(ordered) and ordered[index].role is NodeRole.SPOUSE:
                    index += 1
                ordered.insert(index, spouse)

            count = len(ordered)
            total_width = count * cfg.node_width + max(count - 1, 0) * cfg.h_spacing
            start_x = -total_width / 2
            y = generation * (cfg.node_height + cfg.v_spacing)
            for position, node in enumerate(ordered):
                node.position = position
                node.x = start_x + position * (cfg.node_width + cfg.h_spacing) + cfg.node_width / 2
                node.y = y

        offset_x = self.nodes[self.root_id].x
        for node in self.nodes.values():
            node.x -= offset_x

    def build(self) -> FamilyTree:
        self.nodes[self.root_id] = FamilyTreeNode(get_person(self.conn, self.root_id), 0, NodeRole.ROOT)
        self.expand(Kinship.PARENT, -1, NodeRole.ANCESTOR)
        self.expand(Kinship.CHILD, 1, NodeRole.DESCENDANT)
        self.add_siblings()
        self.add_spouses()
        self.layout()

        tree = FamilyTree(
            root_id=self.root_id,
            max_generations=self.max_generations,
            nodes=sorted(self.nodes.values(), key=lambda n: (n.generation, n.position)),
            links=self.collect_links(),
            cycles=sorted(self.cycles),
        )
        if tree.cycles:
            logger.warning(
                "Relationship cycle in tree of person %d: persons %s are their own ancestors",
                self.root_id,
                tree.cycles,
            )
        return tree


def build_tree(
    conn: sqlite3.Connection,
    root_id: int,
    max_generations: int | None = None,
    config: TreeConfig | None = None,
) -> FamilyTree:
    """
    Build the family tree around `root_id`.

    Ancestors and descendants are followed breadth-first up to
    `max_generations` (1-5, default from `config`) in each direction. Other
    children of every ancestor are added as siblings, then spouses of
    everyone in the tree. A person already in the tree is never expanded
    again, so cyclic data terminates. The root met again through parents
    or children, or an ancestor met again as a descendant, is listed in
    `FamilyTree.cycles`; an ancestor reached through two lines is not.

    Raises:
        ConfigError: if max_generations is outside 1-5
        PersonNotFound: if the root person does not exist
    """
    config = config or TreeConfig()
    if max_generations is None:
        max_generations = config.max_generations
    check_generations(max_generations)
    return _TreeBuilder(conn, root_id, max_generations, config).build()
