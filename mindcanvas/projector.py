"""Projection of hierarchical items into a render graph."""

import logging
from collections import Counter
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple
from dataclasses import dataclass

from mindcanvas.graph import EdgeIndexCache, GraphIndex
from mindcanvas.items import HierarchicalItem, Position, RenderEdge, RenderNode, Size
from mindcanvas.placement import default_position
from mindcanvas.settings import CanvasSettings
from mindcanvas.visibility import resolve_hidden, valid_parent_id

logger = logging.getLogger(__name__)

SizeLookup = Callable[[str], Optional[Size]]


@dataclass
class ProjectedGraph:
    """Render-ready nodes and edges."""
    nodes: List[RenderNode]
    edges: Tuple[RenderEdge, ...]

    @property
    def visible_nodes(self) -> List[RenderNode]:
        return [n for n in self.nodes if not n.hidden]

    def node(self, node_id: str) -> Optional[RenderNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None


class RenderState:
    """The live render graph of one session.

    Positions held here are authoritative while the session runs. `edges`
    are the visible connectors; `links` are every parent -> child pair,
    hidden ones included. Both tuples are replaced, never mutated, so their
    identity tracks changes.
    """

    def __init__(self):
        self.nodes: Dict[str, RenderNode] = {}
        self.edges: Tuple[RenderEdge, ...] = ()
        self.links: Tuple[RenderEdge, ...] = ()
        self.edges_revision = 0
        self._index_cache = EdgeIndexCache()

    @property
    def index(self) -> GraphIndex:
        """Adjacency index over all links of the current hierarchy."""
        return self._index_cache.get(self.links)

    def get(self, node_id: str) -> Optional[RenderNode]:
        return self.nodes.get(node_id)

    def set_edges(self, edges: Iterable[RenderEdge],
                  links: Optional[Iterable[RenderEdge]] = None):
        self.edges = tuple(edges)
        if links is not None:
            self.links = tuple(links)
        self.edges_revision += 1

    def refresh_edges(self):
        """Reassign the same edges so connectors get redrawn."""
        self.set_edges(list(self.edges))

    def positions(self) -> Dict[str, Position]:
        return {node_id: n.position for node_id, n in self.nodes.items()}

    def size_of(self, node_id: str) -> Optional[Size]:
        node = self.nodes.get(node_id)
        return node.size if node else None

    def visible_nodes(self) -> List[RenderNode]:
        return [n for n in self.nodes.values() if not n.hidden]

    def node_at(self, x: float, y: float, exclude: Optional[str] = None) -> Optional[RenderNode]:
        """Top-most visible node under a canvas point."""
        for node in reversed(list(self.nodes.values())):
            if node.hidden or node.id == exclude:
                continue
            if node.contains_point(x, y):
                return node
        return None

    def snapshot(self) -> ProjectedGraph:
        return ProjectedGraph(nodes=list(self.nodes.values()), edges=self.edges)


def _parents_first(ordered: List[HierarchicalItem],
                   parents: Mapping[str, Optional[str]]) -> List[HierarchicalItem]:
    """Depth-first order with every parent ahead of its children."""
    roots: List[HierarchicalItem] = []
    children: Dict[str, List[HierarchicalItem]] = {}
    for item in ordered:
        parent_id = parents[item.id]
        if parent_id is None:
            roots.append(item)
        else:
            children.setdefault(parent_id, []).append(item)

    result: List[HierarchicalItem] = []
    seen = set()
    stack = list(reversed(roots))
    while stack:
        item = stack.pop()
        if item.id in seen:
            continue
        seen.add(item.id)
        result.append(item)
        stack.extend(reversed(children.get(item.id, [])))

    # Items caught in a parent cycle are never reached from a root
    result.extend(item for item in ordered if item.id not in seen)
    return result


def project(items: Iterable[HierarchicalItem],
            render_state: RenderState,
            size_lookup: Optional[SizeLookup] = None,
            settings: Optional[CanvasSettings] = None) -> ProjectedGraph:
    """Bring render_state in line with items and return the render graph.

    Existing nodes keep their identity and position and get their derived
    fields refreshed. New nodes are seeded from the stored position or a
    free default slot. Nodes whose items are gone are dropped.
    """
    settings = settings or CanvasSettings()

    items_by_id: Dict[str, HierarchicalItem] = {}
    for item in items:
        if item.id in items_by_id:
            logger.warning("Duplicate item id %s, keeping the last one", item.id)
        items_by_id[item.id] = item

    ordered = sorted(items_by_id.values(), key=lambda i: i.sort_order)
    parents = {item.id: valid_parent_id(item, items_by_id) for item in ordered}
    hidden = resolve_hidden(items_by_id)
    child_counts = Counter(p for p in parents.values() if p is not None)

    for item in ordered:
        if item.parent_id is not None and parents[item.id] is None:
            logger.warning("Item %s references unknown parent %s, placing it at the root",
                           item.id, item.parent_id)

    previous = render_state.nodes
    occupied: List[Position] = []
    for item in ordered:
        existing = previous.get(item.id)
        if existing is not None:
            occupied.append(existing.position)
        elif item.position is not None:
            occupied.append(item.position)

    nodes: Dict[str, RenderNode] = {}
    for item in _parents_first(ordered, parents):
        node = previous.get(item.id)
        size = size_lookup(item.id) if size_lookup else None

        if node is None:
            position = item.position
            if position is None:
                parent_id = parents[item.id]
                base = nodes[parent_id].position if parent_id in nodes else None
                position = default_position(parent_id, base, occupied, settings)
                occupied.append(position)
            node = RenderNode(
                id=item.id,
                kind=item.kind,
                x=position.x,
                y=position.y,
                width=settings.default_node_width,
                height=settings.default_node_height,
            )

        node.kind = item.kind
        node.label = item.label
        node.color = item.color
        node.collapsed = item.collapsed
        node.child_count = child_counts.get(item.id, 0)
        node.hidden = hidden.get(item.id, False)
        if size is not None:
            node.width = size.width or node.width
            node.height = size.height or node.height
        nodes[item.id] = node

    links = [
        RenderEdge(parents[item.id], item.id, color=items_by_id[parents[item.id]].color)
        for item in ordered
        if parents[item.id] is not None
    ]
    render_state.nodes = {item.id: nodes[item.id] for item in ordered}
    render_state.set_edges(
        [link for link in links if not hidden.get(link.target_id, False)],
        links=links,
    )

    return render_state.snapshot()
