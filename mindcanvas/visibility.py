"""Visibility through collapsed ancestors."""

import logging
from typing import Dict, Mapping, Optional

from mindcanvas.items import HierarchicalItem

logger = logging.getLogger(__name__)


def valid_parent_id(item: HierarchicalItem,
                    items_by_id: Mapping[str, HierarchicalItem]) -> Optional[str]:
    """The item's parent id, or None when it points nowhere useful.

    A reference to a missing item or to the item itself orphans the item to
    the root instead of failing the pass.
    """
    parent_id = item.parent_id
    if parent_id is None or parent_id == item.id:
        return None
    if parent_id not in items_by_id:
        return None
    return parent_id


def resolve_hidden(items_by_id: Mapping[str, HierarchicalItem]) -> Dict[str, bool]:
    """Map every item id to whether some strict ancestor is collapsed.

    Recomputed from scratch on every call; results are only shared between
    items of the same call.
    """
    hidden: Dict[str, bool] = {}

    for item_id in items_by_id:
        if item_id in hidden:
            continue

        # Walk up until an answer is known, then fill in the chain
        chain = []
        on_chain = set()
        current: Optional[str] = item_id
        answer = False
        while current is not None and current not in hidden:
            if current in on_chain:
                logger.warning("Parent cycle detected at item %s", current)
                answer = False
                current = None
                break
            chain.append(current)
            on_chain.add(current)
            current = valid_parent_id(items_by_id[current], items_by_id)

        if current is not None:
            answer = hidden[current] or items_by_id[current].collapsed

        # chain[-1] is the topmost item; each child inherits from its parent
        for node_id in reversed(chain):
            hidden[node_id] = answer
            answer = answer or items_by_id[node_id].collapsed

    return hidden


def is_hidden(item_id: str, items_by_id: Mapping[str, HierarchicalItem]) -> bool:
    """Whether a single item sits under a collapsed ancestor."""
    return resolve_hidden(items_by_id).get(item_id, False)
