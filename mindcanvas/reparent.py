"""Cycle-safe reparenting of items."""

import logging
from typing import MutableMapping, Optional

from mindcanvas.items import HierarchicalItem

logger = logging.getLogger(__name__)


class ReparentValidator:
    """Checks and commits parent changes without breaking the forest.

    Rejections are normal outcomes of free-form dragging, so they are
    reported as False and logged at debug level, never raised.
    """

    def __init__(self, items_by_id: MutableMapping[str, HierarchicalItem]):
        self.items_by_id = items_by_id

    def ancestor_chain(self, item_id: str):
        """Yield ids from item_id up to its root."""
        seen = set()
        current: Optional[str] = item_id
        while current is not None and current not in seen:
            yield current
            seen.add(current)
            item = self.items_by_id.get(current)
            current = item.parent_id if item is not None else None

    def would_create_cycle(self, child_id: str, new_parent_id: Optional[str]) -> bool:
        """True when child_id is new_parent_id or one of its ancestors."""
        if new_parent_id is None:
            return False
        return any(ancestor == child_id for ancestor in self.ancestor_chain(new_parent_id))

    def can_reparent(self, child_id: str, new_parent_id: Optional[str]) -> bool:
        child = self.items_by_id.get(child_id)
        if child is None:
            logger.debug("Reparent rejected: unknown item %s", child_id)
            return False
        if new_parent_id is None:
            return True

        parent = self.items_by_id.get(new_parent_id)
        if parent is None:
            logger.debug("Reparent rejected: unknown parent %s", new_parent_id)
            return False
        if child_id == new_parent_id:
            logger.debug("Reparent rejected: %s cannot contain itself", child_id)
            return False
        if not parent.kind.can_contain:
            logger.debug("Reparent rejected: %s (%s) cannot hold children",
                         new_parent_id, parent.kind.value)
            return False
        if self.would_create_cycle(child_id, new_parent_id):
            logger.debug("Reparent rejected: %s is an ancestor of %s", child_id, new_parent_id)
            return False
        return True

    def reparent(self, child_id: str, new_parent_id: Optional[str]) -> bool:
        """Set the child's parent if allowed. Replaces any previous parent."""
        if not self.can_reparent(child_id, new_parent_id):
            return False
        self.items_by_id[child_id].parent_id = new_parent_id
        return True


def connect(items_by_id: MutableMapping[str, HierarchicalItem],
            parent_id: str, child_id: str) -> bool:
    """Commit a connect gesture whose parent endpoint is given explicitly."""
    return ReparentValidator(items_by_id).reparent(child_id, parent_id)
