"""Adjacency index over a parent -> child edge set."""

from typing import Dict, Iterable, List, Optional, Tuple, Union

from mindcanvas.items import RenderEdge

EdgeLike = Union[RenderEdge, Tuple[str, str]]


def edge_endpoints(edge: EdgeLike) -> Tuple[str, str]:
    """Return (source, target) for a RenderEdge or a plain pair."""
    if isinstance(edge, RenderEdge):
        return edge.source_id, edge.target_id
    source, target = edge
    return source, target


class GraphIndex:
    """Children and parent maps built once per edge set.

    Descendant lists are memoized on the index, so they stay valid exactly as
    long as the edge set the index was built from.
    """

    def __init__(self, children: Dict[str, List[str]], parent: Dict[str, str]):
        self.children = children
        self.parent = parent
        self._descendants: Dict[str, List[str]] = {}

    @classmethod
    def from_edges(cls, edges: Iterable[EdgeLike]) -> "GraphIndex":
        children: Dict[str, List[str]] = {}
        parent: Dict[str, str] = {}
        for edge in edges:
            source, target = edge_endpoints(edge)
            if source == target:
                continue
            children.setdefault(source, []).append(target)
            # A forest has one parent per node; keep the first one seen
            parent.setdefault(target, source)
        return cls(children, parent)

    @property
    def node_ids(self) -> set:
        ids = set(self.children)
        ids.update(self.parent)
        return ids

    def children_of(self, node_id: str) -> List[str]:
        return self.children.get(node_id, [])

    def descendants(self, node_id: str) -> List[str]:
        """All descendants of node_id in depth-first order."""
        cached = self._descendants.get(node_id)
        if cached is not None:
            return cached

        result: List[str] = []
        visited = {node_id}
        stack = list(reversed(self.children_of(node_id)))
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            result.append(current)
            stack.extend(reversed(self.children_of(current)))

        self._descendants[node_id] = result
        return result

    def subtree(self, node_id: str) -> List[str]:
        """node_id followed by its descendants."""
        return [node_id] + self.descendants(node_id)


class EdgeIndexCache:
    """Hands out a GraphIndex, rebuilding it only when the edge set changes.

    The key is the identity of the edge collection: the render state replaces
    its edge tuple whenever edges change, which invalidates the cache.
    """

    def __init__(self):
        self._edges: Optional[object] = None
        self._index: Optional[GraphIndex] = None

    def get(self, edges: Iterable[EdgeLike]) -> GraphIndex:
        if self._index is None or edges is not self._edges:
            self._index = GraphIndex.from_edges(edges)
            self._edges = edges
        return self._index

    def invalidate(self):
        self._edges = None
        self._index = None
