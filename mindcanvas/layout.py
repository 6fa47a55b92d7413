"""Hierarchical auto-layout for a subtree of the canvas."""

import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from dataclasses import dataclass

from mindcanvas.errors import NodeNotFoundError
from mindcanvas.graph import EdgeLike, GraphIndex
from mindcanvas.items import Position, Size
from mindcanvas.spacing import (
    DEFAULT_NODE_HEIGHT,
    DEFAULT_NODE_WIDTH,
    STACK_THRESHOLD,
    LayoutOptions,
    balanced_row_size,
    chunk,
    level_offset,
    row_advance,
    sibling_gap,
    snap_to_grid,
)

logger = logging.getLogger(__name__)

SizeLookup = Callable[[str], Optional[Size]]


@dataclass
class LayoutResult:
    """Positions computed for one subtree."""
    root_id: str
    positions: Dict[str, Position]

    def descendant_positions(self) -> Dict[str, Position]:
        """Positions without the root, which callers usually keep fixed."""
        return {nid: pos for nid, pos in self.positions.items() if nid != self.root_id}


class AutoLayoutEngine:
    """Top-down tree layout with single-row and stacked-row children.

    Widths are computed bottom-up and cached for a single run; coordinates
    are then assigned top-down. Only nodes reachable from the root through
    forward edges are visited, each once.
    """

    def __init__(self,
                 edges: Union[GraphIndex, Iterable[EdgeLike]],
                 size_lookup: Optional[SizeLookup] = None,
                 options: Optional[LayoutOptions] = None,
                 positions: Optional[Mapping[str, Position]] = None):
        self.index = edges if isinstance(edges, GraphIndex) else GraphIndex.from_edges(edges)
        self.size_lookup = size_lookup
        self.options = options or LayoutOptions()
        self.positions: Dict[str, Position] = dict(positions) if positions else {}

        self._tree: Dict[str, List[str]] = {}
        self._width_cache: Dict[str, float] = {}
        self._size_cache: Dict[str, Tuple[float, float]] = {}

    def knows(self, node_id: str) -> bool:
        return node_id in self.positions or node_id in self.index.node_ids

    def run(self, root_id: str) -> LayoutResult:
        """Lay out the subtree under root_id."""
        if not self.knows(root_id):
            raise NodeNotFoundError(root_id)

        self._tree = self._build_tree(root_id)
        self._width_cache = {}
        self._size_cache = {}

        origin = self.positions.get(root_id, Position(0.0, 0.0))
        positions: Dict[str, Position] = {}

        # Lay out around a temporary center, then shift back under the root
        self._position_subtree(root_id, 0.0, origin.y, positions, is_root=True)
        self._recenter_root(root_id, origin, positions)

        logger.debug("Laid out %d nodes under %s", len(positions), root_id)
        return LayoutResult(root_id=root_id, positions=positions)

    # ==================== Tree and sizes ====================

    def _build_tree(self, root_id: str) -> Dict[str, List[str]]:
        """Restrict the edge set to the tree reachable from root_id."""
        tree: Dict[str, List[str]] = {}
        seen = {root_id}
        pending = [root_id]
        while pending:
            node_id = pending.pop()
            kids = []
            for child_id in self.index.children_of(node_id):
                if child_id in seen:
                    continue
                seen.add(child_id)
                kids.append(child_id)
            tree[node_id] = kids
            pending.extend(kids)
        return tree

    def _children(self, node_id: str) -> List[str]:
        return self._tree.get(node_id, [])

    def _has_children(self, node_id: str) -> bool:
        return bool(self._tree.get(node_id))

    def _size(self, node_id: str) -> Tuple[float, float]:
        cached = self._size_cache.get(node_id)
        if cached is not None:
            return cached

        size = self.size_lookup(node_id) if self.size_lookup else None
        width = size.width if size is not None and size.width else DEFAULT_NODE_WIDTH
        height = size.height if size is not None and size.height else DEFAULT_NODE_HEIGHT
        self._size_cache[node_id] = (width, height)
        return width, height

    # ==================== Widths ====================

    def subtree_width(self, node_id: str) -> float:
        """Horizontal footprint of node_id and everything below it."""
        cached = self._width_cache.get(node_id)
        if cached is not None:
            return cached

        own_width = self._size(node_id)[0]
        children = self._children(node_id)
        if not children:
            width = own_width
        else:
            child_widths = [self.subtree_width(c) for c in children]
            if self._is_stacked(children):
                arranged = self._stacked_width(child_widths)
            else:
                arranged = self._single_row_width(children, child_widths)
            width = max(own_width, arranged)

        self._width_cache[node_id] = width
        return width

    def _is_stacked(self, children: List[str]) -> bool:
        """Many leaf children wrap into rows; anything else stays in one row."""
        if len(children) < STACK_THRESHOLD:
            return False
        return not any(self._has_children(c) for c in children)

    def _stacked_width(self, child_widths: List[float]) -> float:
        per_row = balanced_row_size(len(child_widths), self.options.children_per_row)
        return max(
            sum(row) + (len(row) - 1) * self.options.node_spacing
            for row in chunk(child_widths, per_row)
        )

    def _single_row_width(self, children: List[str], child_widths: List[float]) -> float:
        total = sum(child_widths)
        for left, right in zip(children, children[1:]):
            total += sibling_gap(self._has_children(left), self._has_children(right), self.options)
        return total

    # ==================== Positioning ====================

    def _position_subtree(self, node_id: str, center_x: float, top_y: float,
                          positions: Dict[str, Position], is_root: bool = False):
        grid = self.options.grid_size
        width, height = self._size(node_id)
        positions[node_id] = Position(snap_to_grid(center_x - width / 2, grid),
                                      snap_to_grid(top_y, grid))

        children = self._children(node_id)
        if not children:
            return

        if self._is_stacked(children):
            children_center = self._position_stacked(children, center_x, top_y, height, positions)
        else:
            children_center = self._position_single_row(children, center_x, top_y, height, positions)

        # Inner nodes sit over their direct children; the root is handled later
        if not is_root:
            positions[node_id] = Position(snap_to_grid(children_center - width / 2, grid),
                                          snap_to_grid(top_y, grid))

    def _position_stacked(self, children: List[str], center_x: float, top_y: float,
                          parent_height: float, positions: Dict[str, Position]) -> float:
        per_row = balanced_row_size(len(children), self.options.children_per_row)
        row_y = top_y + level_offset(parent_height, self.options)

        for row in chunk(children, per_row):
            row_widths = [self.subtree_width(c) for c in row]
            row_total = sum(row_widths) + (len(row) - 1) * self.options.node_spacing
            row_max_height = max(self._size(c)[1] for c in row)

            x = center_x - row_total / 2
            for child_id, child_width in zip(row, row_widths):
                self._position_subtree(child_id, x + child_width / 2, row_y, positions)
                x += child_width + self.options.node_spacing

            row_y += row_advance(row_max_height, self.options)

        return center_x

    def _position_single_row(self, children: List[str], center_x: float, top_y: float,
                             parent_height: float, positions: Dict[str, Position]) -> float:
        child_widths = [self.subtree_width(c) for c in children]
        x = center_x - self._single_row_width(children, child_widths) / 2

        centers: List[float] = []
        for i, child_id in enumerate(children):
            centers.append(x + child_widths[i] / 2)
            x += child_widths[i]
            if i < len(children) - 1:
                x += sibling_gap(self._has_children(child_id),
                                 self._has_children(children[i + 1]),
                                 self.options)

        child_top = top_y + level_offset(parent_height, self.options)
        for child_id, child_center in zip(children, centers):
            self._position_subtree(child_id, child_center, child_top, positions)

        return (min(centers) + max(centers)) / 2

    def _recenter_root(self, root_id: str, origin: Position, positions: Dict[str, Position]):
        """Shift the subtree so the root keeps its center over its direct children."""
        root_width = self._size(root_id)[0]
        root_center = origin.x + root_width / 2

        children = self._children(root_id)
        if children:
            left = min(positions[c].x for c in children)
            right = max(positions[c].x + self._size(c)[0] for c in children)
            current_center = (left + right) / 2
        else:
            current_center = positions[root_id].x + root_width / 2

        offset = snap_to_grid(root_center - current_center, self.options.grid_size)
        if offset:
            for node_id, pos in positions.items():
                positions[node_id] = pos.translated(offset, 0)


def layout(root_id: str,
           size_lookup: Optional[SizeLookup],
           edges: Union[GraphIndex, Iterable[EdgeLike]],
           options: Optional[LayoutOptions] = None,
           positions: Optional[Mapping[str, Position]] = None) -> Dict[str, Position]:
    """Lay out the subtree under root_id and return its position map.

    Raises NodeNotFoundError if root_id is neither positioned nor part of
    the edge set.
    """
    engine = AutoLayoutEngine(edges, size_lookup=size_lookup, options=options, positions=positions)
    return engine.run(root_id).positions
