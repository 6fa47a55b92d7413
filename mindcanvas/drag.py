"""Drag handling with optional "move with children"."""

import logging
from typing import List
from dataclasses import dataclass

from mindcanvas.items import Position
from mindcanvas.projector import RenderState

logger = logging.getLogger(__name__)

# Deltas smaller than this on both axes are jitter, not movement
MOVEMENT_THRESHOLD = 0.1


@dataclass(frozen=True)
class PositionChange:
    """A node position reported by the render surface."""
    node_id: str
    position: Position
    dragging: bool = False


class DragPropagationController:
    """Turns a node's position change into a batch for its whole subtree."""

    def __init__(self, render_state: RenderState, move_with_children: bool = False):
        self.render_state = render_state
        self.move_with_children = move_with_children
        self.modifier_held = False

    @property
    def active(self) -> bool:
        """Propagation is on when toggled or while the modifier is held."""
        return self.move_with_children or self.modifier_held

    def expand(self, change: PositionChange) -> List[PositionChange]:
        """The change itself plus a matching move for every descendant.

        Descendant positions are read from the live render state at the time
        of the call, so consecutive drag events compose.
        """
        node = self.render_state.get(change.node_id)
        if node is None:
            return [change]

        dx = change.position.x - node.x
        dy = change.position.y - node.y
        if abs(dx) < MOVEMENT_THRESHOLD and abs(dy) < MOVEMENT_THRESHOLD:
            return [change]

        batch = [change]
        for descendant_id in self.render_state.index.descendants(change.node_id):
            descendant = self.render_state.get(descendant_id)
            if descendant is None:
                continue
            batch.append(PositionChange(
                node_id=descendant_id,
                position=descendant.position.translated(dx, dy),
                dragging=change.dragging,
            ))
        return batch

    def apply(self, changes: List[PositionChange]) -> List[PositionChange]:
        """Apply a batch of changes to the render state and return what moved.

        A batch naming several nodes is a multi-selection drag; only the
        named nodes move in that case.
        """
        moved_ids = {c.node_id for c in changes}
        if self.active and len(moved_ids) == 1:
            expanded: List[PositionChange] = []
            for change in changes:
                expanded.extend(self.expand(change))
        else:
            expanded = list(changes)

        applied = []
        for change in expanded:
            node = self.render_state.get(change.node_id)
            if node is None:
                logger.debug("Ignoring position change for unknown node %s", change.node_id)
                continue
            node.move_to(change.position)
            applied.append(change)
        return applied

    def end_drag(self):
        """Redraw connectors whose endpoints moved as a side effect."""
        self.render_state.refresh_edges()
