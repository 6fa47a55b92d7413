"""Undo/Redo history for canvas edits."""

from typing import Optional, List, Callable, Dict
from dataclasses import dataclass
from enum import Enum

from mindcanvas.items import Position


class ActionType(Enum):
    """Types of undoable actions."""
    ITEM_MOVE = "item_move"
    ITEM_REPARENT = "item_reparent"
    ITEM_COLLAPSE = "item_collapse"
    ITEM_RENAME = "item_rename"
    ITEM_DELETE = "item_delete"
    SUBTREE_LAYOUT = "subtree_layout"


@dataclass
class UndoAction:
    """Represents an undoable action."""
    action_type: ActionType
    description: str
    data: dict  # State to restore on undo
    redo_data: dict  # State to restore on redo


class UndoManager:
    """Manages undo/redo history."""

    def __init__(self, max_undo: int = 50, max_redo: int = 50):
        self.max_undo = max_undo
        self.max_redo = max_redo
        self._undo_stack: List[UndoAction] = []
        self._redo_stack: List[UndoAction] = []

        # Callbacks
        self.on_state_changed: Optional[Callable[[], None]] = None

    @property
    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    @property
    def undo_description(self) -> str:
        """Description of the next undo action."""
        return self._undo_stack[-1].description if self._undo_stack else ""

    @property
    def redo_description(self) -> str:
        """Description of the next redo action."""
        return self._redo_stack[-1].description if self._redo_stack else ""

    def push(self, action: UndoAction):
        """Record a new action; this discards anything that could be redone."""
        self._undo_stack.append(action)
        self._redo_stack.clear()
        del self._undo_stack[:-self.max_undo or None]
        self._notify_changed()

    def undo(self) -> Optional[UndoAction]:
        """Pop and return the last action for undoing."""
        if not self._undo_stack:
            return None
        action = self._undo_stack.pop()
        self._redo_stack.append(action)
        del self._redo_stack[:-self.max_redo or None]
        self._notify_changed()
        return action

    def redo(self) -> Optional[UndoAction]:
        """Pop and return the last undone action for redoing."""
        if not self._redo_stack:
            return None
        action = self._redo_stack.pop()
        self._undo_stack.append(action)
        del self._undo_stack[:-self.max_undo or None]
        self._notify_changed()
        return action

    def clear(self):
        """Clear all history."""
        self._undo_stack.clear()
        self._redo_stack.clear()
        self._notify_changed()

    def _notify_changed(self):
        if self.on_state_changed:
            self.on_state_changed()

    # ==================== Action Factories ====================

    @staticmethod
    def _positions_payload(positions: Dict[str, Position]) -> dict:
        return {"positions": {nid: (p.x, p.y) for nid, p in positions.items()}}

    @staticmethod
    def move_action(before: Dict[str, Position], after: Dict[str, Position]) -> UndoAction:
        """Create action for a drag that moved one or more nodes."""
        count = len(after)
        return UndoAction(
            action_type=ActionType.ITEM_MOVE,
            description="Move node" if count == 1 else f"Move {count} nodes",
            data=UndoManager._positions_payload(before),
            redo_data=UndoManager._positions_payload(after),
        )

    @staticmethod
    def layout_action(root_id: str, before: Dict[str, Position],
                      after: Dict[str, Position]) -> UndoAction:
        """Create action for an auto-layout pass."""
        return UndoAction(
            action_type=ActionType.SUBTREE_LAYOUT,
            description="Auto layout",
            data={"root_id": root_id, **UndoManager._positions_payload(before)},
            redo_data={"root_id": root_id, **UndoManager._positions_payload(after)},
        )

    @staticmethod
    def reparent_action(item_id: str, old_parent_id: Optional[str],
                        new_parent_id: Optional[str]) -> UndoAction:
        """Create action for a parent change."""
        return UndoAction(
            action_type=ActionType.ITEM_REPARENT,
            description="Move into folder" if new_parent_id else "Move to top level",
            data={"item_id": item_id, "parent_id": old_parent_id},
            redo_data={"item_id": item_id, "parent_id": new_parent_id},
        )

    @staticmethod
    def collapse_action(item_id: str, collapsed: bool) -> UndoAction:
        """Create action for a collapse toggle; collapsed is the new state."""
        return UndoAction(
            action_type=ActionType.ITEM_COLLAPSE,
            description="Collapse folder" if collapsed else "Expand folder",
            data={"item_id": item_id, "collapsed": not collapsed},
            redo_data={"item_id": item_id, "collapsed": collapsed},
        )

    @staticmethod
    def rename_action(item_id: str, old_label: str, new_label: str) -> UndoAction:
        """Create action for a label edit."""
        return UndoAction(
            action_type=ActionType.ITEM_RENAME,
            description=f"Rename '{new_label[:20]}...'" if len(new_label) > 20 else f"Rename '{new_label}'",
            data={"item_id": item_id, "label": old_label},
            redo_data={"item_id": item_id, "label": new_label},
        )

    @staticmethod
    def delete_action(item_id: str, removed: List[dict], orphaned: List[str]) -> UndoAction:
        """Create action for a deletion.

        removed holds item snapshots (HierarchicalItem.to_dict) of everything
        deleted; orphaned lists children that were moved to the top level.
        """
        label = removed[0].get("label", "") if removed else ""
        return UndoAction(
            action_type=ActionType.ITEM_DELETE,
            description=f"Delete '{label[:20]}...'" if len(label) > 20 else f"Delete '{label}'",
            data={"items": removed, "orphaned": orphaned, "item_id": item_id},
            redo_data={"item_id": item_id, "cascade": len(removed) > 1},
        )
