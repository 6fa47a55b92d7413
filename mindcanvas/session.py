"""Canvas session: items, live render graph, history and store callbacks."""

import logging
from typing import Callable, Dict, Iterable, List, Optional
from dataclasses import dataclass

from mindcanvas.drag import MOVEMENT_THRESHOLD, DragPropagationController, PositionChange
from mindcanvas.errors import LayoutError
from mindcanvas.graph import GraphIndex
from mindcanvas.items import HierarchicalItem, ItemKind, Position, RenderNode, Size
from mindcanvas.layout import AutoLayoutEngine
from mindcanvas.projector import ProjectedGraph, RenderState, project
from mindcanvas.reparent import ReparentValidator
from mindcanvas.settings import CanvasSettings
from mindcanvas.undo import ActionType, UndoAction, UndoManager

logger = logging.getLogger(__name__)

SizeLookup = Callable[[str], Optional[Size]]


@dataclass
class Viewport:
    """Visible window onto the canvas, pushed in by the render surface."""
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def to_canvas(self, screen_x: float, screen_y: float) -> Position:
        """Convert screen coordinates to canvas coordinates."""
        return Position((screen_x - self.pan_x) / self.zoom, (screen_y - self.pan_y) / self.zoom)

    def contains(self, node: RenderNode) -> bool:
        """True when any part of node is on screen."""
        top_left = self.to_canvas(0, 0)
        bottom_right = self.to_canvas(self.width, self.height)
        return not (node.x + node.width < top_left.x or node.x > bottom_right.x or
                    node.y + node.height < top_left.y or node.y > bottom_right.y)


class CanvasSession:
    """One editing session over an item collection.

    Owns the items, the live render graph, the undo history and the
    callbacks that tell the item store what changed. Every public operation
    is synchronous; persistence happens in the callbacks.
    """

    def __init__(self,
                 items: Optional[Iterable[HierarchicalItem]] = None,
                 settings: Optional[CanvasSettings] = None,
                 size_lookup: Optional[SizeLookup] = None):
        self.settings = settings or CanvasSettings()
        self.size_lookup = size_lookup
        self.items: Dict[str, HierarchicalItem] = {}
        self.render_state = RenderState()
        self.drag = DragPropagationController(self.render_state, self.settings.move_with_children)
        self.undo_manager = UndoManager(max_undo=self.settings.max_undo,
                                        max_redo=self.settings.max_redo)
        self.viewport = Viewport()

        # Positions at the start of the current drag gesture
        self._drag_start: Dict[str, Position] = {}

        # Callbacks
        self.on_position_change: Optional[Callable[[str, Position, ItemKind], None]] = None
        self.on_parent_change: Optional[Callable[[str, Optional[str]], None]] = None
        self.on_collapse_change: Optional[Callable[[str, bool], None]] = None
        self.on_label_change: Optional[Callable[[str, str], None]] = None
        self.on_item_added: Optional[Callable[[HierarchicalItem], None]] = None
        self.on_item_removed: Optional[Callable[[str], None]] = None
        self.on_graph_changed: Optional[Callable[[ProjectedGraph], None]] = None

        if items is not None:
            self.load(items)

    @property
    def graph(self) -> ProjectedGraph:
        return self.render_state.snapshot()

    @property
    def move_with_children(self) -> bool:
        return self.drag.move_with_children

    @move_with_children.setter
    def move_with_children(self, value: bool):
        self.drag.move_with_children = bool(value)

    def set_modifier_held(self, held: bool):
        """Temporarily enable move-with-children while a modifier key is down."""
        self.drag.modifier_held = bool(held)

    # ==================== Projection ====================

    def load(self, items: Iterable[HierarchicalItem]) -> ProjectedGraph:
        """Replace the item collection and start a fresh render graph."""
        self.items = {item.id: item for item in items}
        self.render_state.nodes = {}
        self._drag_start = {}
        self.undo_manager.clear()
        return self.refresh()

    def refresh(self) -> ProjectedGraph:
        """Re-project the items into the render graph."""
        graph = project(self.items.values(), self.render_state,
                        size_lookup=self.size_lookup, settings=self.settings)
        if self.on_graph_changed:
            self.on_graph_changed(graph)
        return graph

    def _size_of(self, node_id: str) -> Optional[Size]:
        size = self.size_lookup(node_id) if self.size_lookup else None
        return size or self.render_state.size_of(node_id)

    def _validator(self) -> ReparentValidator:
        return ReparentValidator(self.items)

    # ==================== Items ====================

    def add_item(self, item: HierarchicalItem) -> ProjectedGraph:
        """Add an item; an invalid parent reference puts it at the top level."""
        if item.id in self.items:
            logger.warning("Item %s already exists, replacing it", item.id)

        parent_id = item.parent_id
        item.parent_id = None
        self.items[item.id] = item
        if parent_id is not None:
            if self._validator().reparent(item.id, parent_id):
                item.parent_id = parent_id
            else:
                logger.warning("Item %s cannot be placed under %s, adding it at the top level",
                               item.id, parent_id)

        if self.on_item_added:
            self.on_item_added(item)
        return self.refresh()

    def rename(self, item_id: str, label: str) -> bool:
        item = self.items.get(item_id)
        if item is None:
            logger.warning("Rename ignored: unknown item %s", item_id)
            return False
        if item.label == label:
            return False

        self.undo_manager.push(UndoManager.rename_action(item_id, item.label, label))
        self._set_label(item, label)
        self.refresh()
        return True

    def _set_label(self, item: HierarchicalItem, label: str):
        item.label = label
        if self.on_label_change:
            self.on_label_change(item.id, label)

    def remove_item(self, item_id: str, cascade: bool = False) -> bool:
        """Delete an item.

        Children move to the top level unless cascade is set, in which case
        the whole subtree goes.
        """
        if item_id not in self.items:
            logger.warning("Delete ignored: unknown item %s", item_id)
            return False
        self._remove(item_id, cascade, record=True)
        self.refresh()
        return True

    def _remove(self, item_id: str, cascade: bool, record: bool):
        # The index mirrors self.items: every mutation re-projects
        index = self.render_state.index
        removed_ids = index.subtree(item_id) if cascade else [item_id]
        removed_set = set(removed_ids)
        orphaned = [c for c in index.children_of(item_id) if c not in removed_set]
        snapshots = [self.items[i].to_dict() for i in removed_ids]

        for child_id in orphaned:
            self.items[child_id].parent_id = None
            if self.on_parent_change:
                self.on_parent_change(child_id, None)

        for removed_id in removed_ids:
            del self.items[removed_id]
            self._drag_start.pop(removed_id, None)
            if self.on_item_removed:
                self.on_item_removed(removed_id)

        if record:
            self.undo_manager.push(UndoManager.delete_action(item_id, snapshots, orphaned))

    def toggle_collapse(self, item_id: str) -> bool:
        """Collapse or expand a folder."""
        item = self.items.get(item_id)
        if item is None or item.kind is not ItemKind.FOLDER:
            logger.debug("Collapse ignored: %s is not a folder", item_id)
            return False

        self._set_collapsed(item, not item.collapsed)
        self.undo_manager.push(UndoManager.collapse_action(item_id, item.collapsed))
        self.refresh()
        return True

    def _set_collapsed(self, item: HierarchicalItem, collapsed: bool):
        item.collapsed = collapsed
        if self.on_collapse_change:
            self.on_collapse_change(item.id, collapsed)

    # ==================== Dragging ====================

    def begin_drag(self, node_id: str):
        """Start a drag gesture on node_id."""
        self._drag_start = {}
        self._remember_start(node_id)

    def _remember_start(self, node_id: str):
        for moving_id in [node_id] + self.render_state.index.descendants(node_id):
            node = self.render_state.get(moving_id)
            if node is not None:
                self._drag_start.setdefault(moving_id, node.position)

    def drag_to(self, node_id: str, position: Position, dragging: bool = True) -> List[PositionChange]:
        """Apply a position change from the render surface.

        A change with dragging=False ends the gesture.
        """
        if self.render_state.get(node_id) is None:
            logger.debug("Drag ignored: unknown node %s", node_id)
            return []

        self._remember_start(node_id)
        applied = self.drag.apply([PositionChange(node_id, position, dragging)])
        if not dragging:
            self.end_drag()
        return applied

    def end_drag(self) -> Dict[str, Position]:
        """Finish the gesture: persist moved nodes and record one undo step."""
        before: Dict[str, Position] = {}
        after: Dict[str, Position] = {}
        for node_id, start in self._drag_start.items():
            node = self.render_state.get(node_id)
            if node is None:
                continue
            if (abs(node.x - start.x) >= MOVEMENT_THRESHOLD or
                    abs(node.y - start.y) >= MOVEMENT_THRESHOLD):
                before[node_id] = start
                after[node_id] = node.position

        self._drag_start = {}
        if after:
            self._write_positions(after)
            self.undo_manager.push(UndoManager.move_action(before, after))
        self.drag.end_drag()
        return after

    def _write_positions(self, positions: Dict[str, Position]):
        """Move render nodes, store the positions on the items and notify."""
        for node_id, pos in positions.items():
            node = self.render_state.get(node_id)
            if node is not None:
                node.move_to(pos)
            item = self.items.get(node_id)
            if item is None:
                continue
            item.position = pos
            if self.on_position_change:
                self.on_position_change(node_id, pos, item.kind)

    def flush_positions(self) -> List[str]:
        """Persist every render position that differs from the stored one."""
        changed = {}
        for node_id, node in self.render_state.nodes.items():
            item = self.items.get(node_id)
            if item is not None and item.position != node.position:
                changed[node_id] = node.position
        self._write_positions(changed)
        return list(changed)

    # ==================== Reparenting ====================

    def connect(self, parent_id: str, child_id: str) -> bool:
        """Make child_id a child of parent_id.

        Returns False, without changing anything, when the gesture would
        break the forest or nothing would change.
        """
        return self._reparent(child_id, parent_id)

    def move_into(self, child_id: str, folder_id: str) -> bool:
        return self._reparent(child_id, folder_id)

    def move_to_top_level(self, child_id: str) -> bool:
        return self._reparent(child_id, None)

    def _reparent(self, child_id: str, new_parent_id: Optional[str], record: bool = True) -> bool:
        child = self.items.get(child_id)
        if child is None:
            logger.debug("Reparent ignored: unknown item %s", child_id)
            return False
        old_parent_id = child.parent_id
        if old_parent_id == new_parent_id:
            return False
        if not self._validator().reparent(child_id, new_parent_id):
            return False

        if self.on_parent_change:
            self.on_parent_change(child_id, new_parent_id)
        if record:
            self.undo_manager.push(UndoManager.reparent_action(child_id, old_parent_id, new_parent_id))
        self.refresh()
        return True

    # ==================== Auto layout ====================

    def auto_layout(self, root_id: str) -> Dict[str, Position]:
        """Lay out the visible subtree under root_id, keeping the root in place.

        Returns the new descendant positions, or an empty map when root_id
        is unknown.
        """
        engine = AutoLayoutEngine(
            GraphIndex.from_edges(self.render_state.edges),
            size_lookup=self._size_of,
            options=self.settings.layout,
            positions=self.render_state.positions(),
        )
        try:
            result = engine.run(root_id)
        except LayoutError as exc:
            logger.warning("Auto layout skipped: %s", exc)
            return {}

        positions = result.descendant_positions()
        if not positions:
            return {}

        before = {nid: self.render_state.nodes[nid].position for nid in positions}
        self._write_positions(positions)
        self.undo_manager.push(UndoManager.layout_action(root_id, before, positions))
        self.render_state.refresh_edges()
        return positions

    # ==================== Undo/Redo ====================

    def undo(self) -> bool:
        """Undo the last action."""
        action = self.undo_manager.undo()
        if not action:
            return False
        self._apply_undo_action(action, is_undo=True)
        return True

    def redo(self) -> bool:
        """Redo the last undone action."""
        action = self.undo_manager.redo()
        if not action:
            return False
        self._apply_undo_action(action, is_undo=False)
        return True

    def _apply_undo_action(self, action: UndoAction, is_undo: bool):
        data = action.data if is_undo else action.redo_data

        if action.action_type in (ActionType.ITEM_MOVE, ActionType.SUBTREE_LAYOUT):
            positions = {nid: Position(x, y) for nid, (x, y) in data["positions"].items()}
            self._write_positions(positions)
            self.render_state.refresh_edges()

        elif action.action_type == ActionType.ITEM_REPARENT:
            if not self._reparent(data["item_id"], data["parent_id"], record=False):
                logger.warning("Could not restore parent of %s", data["item_id"])

        elif action.action_type == ActionType.ITEM_COLLAPSE:
            item = self.items.get(data["item_id"])
            if item is not None:
                self._set_collapsed(item, data["collapsed"])

        elif action.action_type == ActionType.ITEM_RENAME:
            item = self.items.get(data["item_id"])
            if item is not None:
                self._set_label(item, data["label"])

        elif action.action_type == ActionType.ITEM_DELETE:
            if is_undo:
                self._restore_deleted(data)
            elif data["item_id"] in self.items:
                self._remove(data["item_id"], data.get("cascade", False), record=False)

        self.refresh()

    def _restore_deleted(self, data: dict):
        for snapshot in data.get("items", []):
            item = HierarchicalItem.from_dict(snapshot)
            self.items[item.id] = item
            if self.on_item_added:
                self.on_item_added(item)
        for child_id in data.get("orphaned", []):
            child = self.items.get(child_id)
            if child is not None and child.parent_id is None:
                child.parent_id = data["item_id"]
                if self.on_parent_change:
                    self.on_parent_change(child_id, data["item_id"])

    # ==================== Viewport ====================

    def viewport_changed(self, viewport: Viewport):
        """Record the render surface's current viewport."""
        self.viewport = viewport

    def nodes_in_viewport(self) -> List[RenderNode]:
        """Visible nodes that intersect the current viewport."""
        return [n for n in self.render_state.visible_nodes() if self.viewport.contains(n)]

    def fit_viewport(self, width: float, height: float) -> Viewport:
        """Zoom and pan so every visible node fits, never zooming past 100%."""
        nodes = self.render_state.visible_nodes()
        if not nodes:
            self.viewport = Viewport(width=width, height=height)
            return self.viewport

        min_x = min(n.x for n in nodes)
        max_x = max(n.x + n.width for n in nodes)
        min_y = min(n.y for n in nodes)
        max_y = max(n.y + n.height for n in nodes)

        map_width = max_x - min_x + 100
        map_height = max_y - min_y + 100
        zoom = min((width - 40) / map_width, (height - 40) / map_height, 1.0)
        zoom = max(zoom, 0.1)

        center_x = (min_x + max_x) / 2
        center_y = (min_y + max_y) / 2
        self.viewport = Viewport(
            zoom=zoom,
            pan_x=width / 2 - center_x * zoom,
            pan_y=height / 2 - center_y * zoom,
            width=width,
            height=height,
        )
        return self.viewport
